import logging
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse, RedirectResponse

from report_uploader.auth.msal_client import is_allowed_email
from report_uploader.auth.token_store import TokenStore
from report_uploader.config.settings import Settings
from report_uploader.dependencies import (
    SESSION_AUTH_FLOW,
    SESSION_TOKEN_KEY,
    SESSION_USER,
    AuthClientProvider,
    get_app_settings,
    get_auth_client_provider,
    get_token_store,
    session_access_token,
)
from report_uploader.errors import AuthenticationError, ConfigurationError
from report_uploader.schemas import AuthCheckResponse, TokenResponse

logger = logging.getLogger(__name__)

router = APIRouter()


def _frontend_redirect(settings: Settings, error: Optional[str] = None) -> RedirectResponse:
    url = settings.frontend_url
    if error:
        url = f"{url}?error={quote(error, safe='')}"
    return RedirectResponse(url, status_code=status.HTTP_302_FOUND)


@router.get("/login")
def login(
    request: Request,
    provide_auth_client: AuthClientProvider = Depends(get_auth_client_provider),
):
    """Send the browser to the Microsoft sign-in page."""
    logger.info("Login request received")
    try:
        flow = provide_auth_client().start_login()
    except (ConfigurationError, AuthenticationError) as e:
        logger.error("Login error: %s", e)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Authentication failed", "details": str(e)},
        )

    request.session[SESSION_AUTH_FLOW] = flow
    logger.info("Redirecting to Microsoft login")
    return RedirectResponse(flow["auth_uri"], status_code=status.HTTP_302_FOUND)


@router.get("/callback")
def callback(
    request: Request,
    settings: Settings = Depends(get_app_settings),
    provide_auth_client: AuthClientProvider = Depends(get_auth_client_provider),
    token_store: TokenStore = Depends(get_token_store),
):
    """
    Finish the authorization-code flow.

    Every outcome is a redirect back to the form; failures carry an `error` query parameter.
    """
    params = dict(request.query_params)
    if params.get("error"):
        logger.error("Auth error: %s %s", params.get("error"), params.get("error_description"))
        return _frontend_redirect(settings, params.get("error_description") or params["error"])

    if not params.get("code"):
        logger.error("No code received")
        return _frontend_redirect(settings, "no_code")

    flow = request.session.pop(SESSION_AUTH_FLOW, None)
    if not flow:
        logger.error("Callback without a pending sign-in in the session")
        return _frontend_redirect(settings, "Authentication failed")

    try:
        result = provide_auth_client().complete_login(flow, params)
    except (ConfigurationError, AuthenticationError) as e:
        logger.error("Callback error: %s", e)
        return _frontend_redirect(settings, "Authentication failed")

    if not result.get("access_token"):
        logger.error("No access token received")
        return _frontend_redirect(settings, "no_token")

    claims = result.get("id_token_claims") or {}
    username = claims.get("preferred_username") or claims.get("email") or claims.get("upn")
    if not is_allowed_email(username, settings.allowed_email_domain):
        logger.warning("Rejected sign-in from outside %s", settings.allowed_email_domain)
        return _frontend_redirect(settings, "unauthorized_domain")

    token_store.discard(request.session.get(SESSION_TOKEN_KEY))
    request.session[SESSION_TOKEN_KEY] = token_store.put(result["access_token"])
    request.session[SESSION_USER] = {"name": claims.get("name"), "username": username}
    logger.info("Auth successful for %s, redirecting to frontend", username)
    return _frontend_redirect(settings)


@router.get("/token", response_model=TokenResponse)
def token(request: Request):
    """Hand the session's access token to the form for direct uploads."""
    access_token = session_access_token(request)
    if not access_token:
        return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content={"error": "Not authenticated"})
    return TokenResponse(access_token=access_token)


@router.get("/check", response_model=AuthCheckResponse)
def check(request: Request):
    has_token = bool(session_access_token(request))
    return AuthCheckResponse(
        is_authenticated=has_token,
        session_exists=bool(request.session),
        has_access_token=has_token,
    )


@router.get("/logout")
def logout(
    request: Request,
    settings: Settings = Depends(get_app_settings),
    token_store: TokenStore = Depends(get_token_store),
):
    token_store.discard(request.session.get(SESSION_TOKEN_KEY))
    request.session.clear()
    logger.info("Logout successful")
    return _frontend_redirect(settings)
