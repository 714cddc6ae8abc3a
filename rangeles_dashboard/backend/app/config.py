# backend/app/config.py
from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict

LOCAL_API_BASE_URL = "http://localhost:5050/api"
PROD_API_BASE_URL = "https://rangeles.online/api"

DEFAULT_SESSION_SECRET = "dev-change-me"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ---- App ----
    app_env: str = "local"  # local|dev|prod
    app_version: str = "2026-10-19.v1"

    # ---- Logging ----
    log_level: str = "INFO"
    # httpx logs every upstream request at INFO
    httpx_log_level: str = "WARNING"

    # ---- CORS (used by main.py) ----
    cors_allow_origins: list[str] | str = ["*"]

    # ---- Property API (system of record) ----
    # Empty means "pick by app_env" (see resolved_api_base_url).
    api_base_url: str | None = None
    api_timeout_seconds: float = 15.0

    # ---- Browser session ----
    session_secret: str = DEFAULT_SESSION_SECRET
    session_cookie_name: str = "rangeles_session"
    session_https_only: bool = False

    # Keys inside the session store
    credential_session_key: str = "token"
    verification_session_key: str = "verificationShown"
    verification_state_key: str = "verificationState"

    # ---- Verification gate routing ----
    admin_destination: str = "/admin"
    staff_destination: str = "/staff"

    # ---- Dashboard metrics ----
    recent_payments_window_days: int = 30
    recent_payments_display_limit: int = 8

    def resolved_api_base_url(self) -> str:
        if self.api_base_url:
            return self.api_base_url.rstrip("/")
        env = (self.app_env or "local").strip().lower()
        if env in ("prod", "production"):
            return PROD_API_BASE_URL
        return LOCAL_API_BASE_URL

    def model_post_init(self, __context) -> None:
        env = (self.app_env or "local").strip().lower()
        if env not in ("prod", "production"):
            return

        # Hard fail: default session secret in prod
        if self.session_secret == DEFAULT_SESSION_SECRET:
            raise ValueError("SECURITY: session_secret must be set in prod")

        origins = self.cors_allow_origins
        if origins == "*" or origins == ["*"] or (isinstance(origins, str) and "*" in origins):
            raise ValueError("SECURITY: cors_allow_origins wildcard is not allowed in prod")


settings = Settings()
