# backend/app/main.py
from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.sessions import SessionMiddleware

from .config import settings
from .logging_config import configure_logging
from .middleware.request_context import RequestContextMiddleware
from .routers.dashboard import router as dashboard_router
from .routers.health import router as health_router

API_PREFIX = "/api"


def _cors_origins() -> list[str]:
    val = getattr(settings, "cors_allow_origins", ["*"])
    if isinstance(val, str):
        v = val.strip()
        return ["*"] if v == "*" else [x.strip() for x in v.split(",") if x.strip()]
    if isinstance(val, list) and val:
        return val
    return ["*"]


configure_logging()

app = FastAPI(
    title="Rangeles Dashboard",
    version=settings.app_version,
)

# add_middleware wraps: the last one added runs first.
# max_age=None -> browser-session cookie, gone when the browser session ends
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.session_secret,
    session_cookie=settings.session_cookie_name,
    max_age=None,
    https_only=settings.session_https_only,
    same_site="lax",
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)
app.add_middleware(RequestContextMiddleware)

app.include_router(health_router, prefix=API_PREFIX)
app.include_router(dashboard_router, prefix=API_PREFIX)
