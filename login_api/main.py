"""
Portal Login API: automates the identity provider's login form and reports the outcome
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .browser import select_launcher
from .models import Credentials, HealthResponse, LoginOutcome, LoginRequest
from .orchestrator import attempt_login
from .settings import settings

# Configure logging
logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

MISSING_FIELDS_MESSAGE = "Les champs username et password sont requis"


@asynccontextmanager
async def lifespan(app: FastAPI):
    # browser discovery happens once, at startup
    app.state.launcher = select_launcher(settings)
    logger.info(f"Browser mode: {app.state.launcher.mode}")
    yield


app = FastAPI(title="Portal Login API", version="1.0.0", lifespan=lifespan)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


def missing_fields_response() -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content=LoginOutcome.failure(MISSING_FIELDS_MESSAGE).model_dump(),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    # an absent, null or unparseable login body is answered like missing fields
    if request.url.path == "/api/login":
        return missing_fields_response()
    return await request_validation_exception_handler(request, exc)


@app.get("/")
async def root():
    return {
        "message": "Portal Login API",
        "status": "running",
        "endpoint": "POST /api/login",
        "body": {"username": "prenom.nom", "password": "votre_mot_de_passe"},
    }


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint"""
    return HealthResponse(status="ok", timestamp=datetime.now(timezone.utc).isoformat())


@app.post("/api/login", response_model=LoginOutcome)
async def login(request: Request, body: Optional[LoginRequest] = None):
    """Run one login attempt against the identity provider"""
    if body is None or not body.username or not body.password:
        return missing_fields_response()

    try:
        logger.info(f"Login attempt for: {body.username}")
        credentials = Credentials(username=body.username, password=body.password)
        result = await attempt_login(
            credentials,
            settings=settings,
            launcher=getattr(request.app.state, "launcher", None),
        )

        logger.info(f"Result: {'success' if result.is_success else 'failure'}")
        if result.error_message:
            logger.info(f"Message: {result.error_message}")
        return result

    except Exception as e:
        logger.error(f"Unexpected error during login: {e}")
        return JSONResponse(
            status_code=500,
            content=LoginOutcome.failure(f"Erreur serveur: {str(e)}").model_dump(),
        )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)
