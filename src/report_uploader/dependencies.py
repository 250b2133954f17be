"""Request-scoped dependencies shared by the routers."""
from typing import Callable, Iterator, List, Optional

from fastapi import Depends, Header, Request

from report_uploader.auth.msal_client import MsalAuthClient
from report_uploader.auth.token_store import TokenStore
from report_uploader.config.settings import Settings
from report_uploader.graph.client import GraphClient

# The session cookie holds a key into the app's TokenStore, never the token itself
SESSION_TOKEN_KEY = "token_key"
SESSION_USER = "user"
SESSION_AUTH_FLOW = "auth_flow"

GraphClientFactory = Callable[[str], GraphClient]
AuthClientProvider = Callable[[], MsalAuthClient]


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_token_store(request: Request) -> TokenStore:
    return request.app.state.token_store


def get_auth_client_provider(
    request: Request,
    settings: Settings = Depends(get_app_settings),
) -> AuthClientProvider:
    """
    Lazily build one MSAL application per app (construction performs authority discovery).

    Returned as a callable so handlers can turn a ConfigurationError into their own response.
    """
    def provide() -> MsalAuthClient:
        auth_client = getattr(request.app.state, "auth_client", None)
        if auth_client is None:
            auth_client = MsalAuthClient(settings)
            request.app.state.auth_client = auth_client
        return auth_client
    return provide


def get_graph_client_factory(settings: Settings = Depends(get_app_settings)) -> Iterator[GraphClientFactory]:
    """Hand out Graph clients for this request and close their HTTP sessions afterwards."""
    clients: List[GraphClient] = []

    def factory(access_token: str) -> GraphClient:
        client = GraphClient(
            access_token,
            base_url=settings.graph_base_url,
            timeout=settings.graph_timeout_seconds,
        )
        clients.append(client)
        return client

    try:
        yield factory
    finally:
        for client in clients:
            client.close()


def session_access_token(request: Request) -> Optional[str]:
    """The signed-in user's token, looked up through the key kept in the session."""
    return get_token_store(request).get(request.session.get(SESSION_TOKEN_KEY))


def bearer_token(authorization: Optional[str] = Header(None)) -> Optional[str]:
    """Token from an `Authorization: Bearer <token>` header, or None."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme != "Bearer" or not token.strip():
        return None
    return token.strip()
