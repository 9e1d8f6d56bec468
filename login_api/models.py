# login_api/models.py
from typing import Optional

from pydantic import BaseModel, SecretStr, model_validator


class Credentials(BaseModel):
    username: str
    password: SecretStr


class LoginOutcome(BaseModel):
    is_success: bool
    error_message: Optional[str] = None

    @model_validator(mode="after")
    def _success_has_no_message(self) -> "LoginOutcome":
        if self.is_success and self.error_message is not None:
            raise ValueError("a successful outcome cannot carry an error_message")
        return self

    @classmethod
    def success(cls) -> "LoginOutcome":
        return cls(is_success=True, error_message=None)

    @classmethod
    def failure(cls, message: Optional[str]) -> "LoginOutcome":
        return cls(is_success=False, error_message=message)


# Both fields optional so a missing one is answered with a LoginOutcome body, not a 422
class LoginRequest(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


class HealthResponse(BaseModel):
    status: str
    timestamp: str
