"""
Authentication module using Microsoft Identity (MSAL).

Wraps a ConfidentialClientApplication for the delegated authorization-code
flow used by the browser, plus an app-only token for diagnostics.
"""
import logging
from typing import Any, Dict, Optional

import msal

from report_uploader.config.settings import Settings
from report_uploader.errors import AuthenticationError, ConfigurationError

logger = logging.getLogger(__name__)

APP_ONLY_SCOPES = ["https://graph.microsoft.com/.default"]


def is_allowed_email(email: Optional[str], domain: Optional[str]) -> bool:
    """True when no domain restriction is set or `email` belongs to `domain`."""
    if not domain:
        return True
    if not email:
        return False
    return email.lower().endswith("@" + domain.lstrip("@").lower())


class MsalAuthClient:
    """Sign users in through the authorization-code flow."""

    def __init__(self, settings: Settings, app: Optional[msal.ConfidentialClientApplication] = None):
        missing = settings.missing_auth_settings()
        if missing:
            raise ConfigurationError(f"Missing required environment variables: {', '.join(missing)}")

        self.settings = settings
        self.scopes = list(settings.auth_scopes)
        self.redirect_uri = settings.redirect_uri
        self.app = app or msal.ConfidentialClientApplication(
            settings.microsoft_client_id,
            client_credential=settings.microsoft_client_secret,
            authority=settings.authority,
        )

    def start_login(self) -> Dict[str, Any]:
        """
        Begin a sign-in.

        The returned flow must be kept (in the session) until the callback;
        its `auth_uri` is where the browser goes next.
        """
        flow = self.app.initiate_auth_code_flow(
            self.scopes,
            redirect_uri=self.redirect_uri,
            prompt="select_account",
        )
        if "auth_uri" not in flow:
            raise AuthenticationError(flow.get("error_description") or "Could not build the sign-in URL")
        logger.info("Auth code flow started (state=%s)", flow.get("state"))
        return flow

    def complete_login(self, flow: Dict[str, Any], auth_response: Dict[str, Any]) -> Dict[str, Any]:
        """Exchange the callback's code for tokens."""
        try:
            result = self.app.acquire_token_by_auth_code_flow(flow, auth_response)
        except ValueError as e:
            # MSAL raises ValueError on a state mismatch or a replayed callback
            raise AuthenticationError(f"Invalid authorization response: {e}") from e

        if "error" in result:
            logger.error("Token acquisition error: %s", result.get("error"))
            raise AuthenticationError(result.get("error_description") or result["error"])
        return result

    def acquire_app_token(self) -> str:
        """Client-credentials token, used only by the site probing command."""
        result = self.app.acquire_token_for_client(scopes=APP_ONLY_SCOPES)
        if "access_token" not in result:
            raise AuthenticationError(result.get("error_description") or "Failed to acquire app token")
        return result["access_token"]
