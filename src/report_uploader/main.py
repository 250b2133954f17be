from textwrap import dedent
import logging

import pydantic
from fastapi import FastAPI, Request
from fastapi.routing import APIRoute
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.sessions import SessionMiddleware

from report_uploader.config.settings import Settings, get_settings
from report_uploader.auth.token_store import TokenStore
from report_uploader.dependencies import session_access_token
from report_uploader.errors import (
    APIError,
    handle_api_errors,
    handle_broad_exceptions,
    handle_pydantic_validation_errors,
)
from report_uploader.routers.auth import router as auth_router
from report_uploader.routers.files import router as files_router
from report_uploader.routers.health import router as health_router
from report_uploader.routers.uploads import router as uploads_router

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    """Send package logs to stderr once, at the configured level."""
    root = logging.getLogger()
    if not any(getattr(h, "_report_uploader", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._report_uploader = True
        root.addHandler(handler)
    root.setLevel(level)
    # msal logs every HTTP exchange at DEBUG
    logging.getLogger("msal").setLevel(max(logging.getLevelName(level), logging.INFO))


async def log_requests(request: Request, call_next):
    logger.info(
        "%s %s (has access token: %s)",
        request.method,
        request.url.path,
        bool(session_access_token(request)),
    )
    return await call_next(request)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create a FastAPI application."""
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Report Uploader API",
        summary="Upload daily reports to OneDrive / SharePoint",
        version="v1",
        description=dedent(
            """\
        Sign in with a Microsoft work account, then upload daily report files.

        | Endpoint | Notes |
        | --- | --- |
        | `/auth/login` | starts the Microsoft sign-in |
        | `/api/direct-upload` | bearer token; stores the file in today's folder |
        | `/api/files` | recent files of the signed-in user |
        """
        ),
        docs_url="/docs",
        generate_unique_id_function=custom_generate_unique_id,
    )
    app.state.settings = settings
    app.state.token_store = TokenStore(settings.session_max_age_seconds)

    app.include_router(health_router, tags=["health"])
    app.include_router(auth_router, prefix="/auth", tags=["auth"])
    app.include_router(uploads_router, prefix="/api", tags=["uploads"])
    app.include_router(files_router, prefix="/api", tags=["files"])

    app.add_exception_handler(APIError, handle_api_errors)
    app.add_exception_handler(
        exc_class_or_status_code=pydantic.ValidationError,
        handler=handle_pydantic_validation_errors,
    )

    # Middleware added later wraps the earlier ones, so the session is
    # available to request logging and CORS answers preflights first.
    app.middleware("http")(handle_broad_exceptions)
    app.middleware("http")(log_requests)
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret,
        max_age=settings.session_max_age_seconds,
        same_site="lax",
        https_only=settings.is_production,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "Accept"],
        expose_headers=["Set-Cookie"],
    )

    if settings.session_secret == Settings.model_fields["session_secret"].default:
        logger.warning("SESSION_SECRET is not set; using the development default")

    return app


def custom_generate_unique_id(route: APIRoute):
    """
    Generate prettier `operationId`s in the OpenAPI schema.

    These become the function names in generated client SDKs.
    """
    return f"{route.tags[0]}-{route.name}"


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)
