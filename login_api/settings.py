# login_api/settings.py
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_PORTAL_LOGIN_URL = (
    "https://authkey.asp-public.fr/iam/realms/calypso-x/protocol/openid-connect/auth"
    "?client_id=2a5e70139a25174f7bb832167e8f251d"
    "&redirect_uri=https%3A%2F%2Fsylae.asp.gouv.fr%2Fportail-employeur%2F"
    "&response_mode=fragment&response_type=code&scope=openid"
)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class Settings(BaseSettings):
    PORTAL_LOGIN_URL: str = DEFAULT_PORTAL_LOGIN_URL

    USERNAME_SELECTOR: str = "#username"
    PASSWORD_SELECTOR: str = "#password-input"
    SUBMIT_SELECTOR: str = "#login-button"
    ERROR_REGION_SELECTOR: str = '.fr-alert--error, .fr-message--error, [role="alert"]'

    # matched against host + path of the settled URL
    SUCCESS_URL_FRAGMENTS: list[str] = ["sylae.asp", "portail-employeur"]
    IDP_URL_FRAGMENTS: list[str] = ["authkey.asp-public.fr", "login-actions"]
    URL_PRECEDENCE: Literal["strict", "success_first"] = "strict"

    NAVIGATION_TIMEOUT_MS: int = 30000
    FORM_TIMEOUT_MS: int = 10000
    SUBMIT_TIMEOUT_MS: int = 30000
    SETTLE_DELAY_MS: int = 2000
    TYPE_DELAY_MS: int = 50                   # per-character pacing, cosmetic only

    VIEWPORT_WIDTH: int = 1280
    VIEWPORT_HEIGHT: int = 800
    USER_AGENT: str = DEFAULT_USER_AGENT

    BROWSER_MODE: Literal["packaged", "local"] = "packaged"
    BROWSER_EXECUTABLE: str | None = None     # only read in "local" mode
    HEADLESS: bool = True
    BROWSER_ARGS: list[str] = [
        "--no-sandbox",
        "--disable-setuid-sandbox",
        "--disable-dev-shm-usage",
    ]

    HOST: str = "0.0.0.0"
    PORT: int = 3000
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
