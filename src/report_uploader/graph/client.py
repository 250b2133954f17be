"""Thin Microsoft Graph REST client bound to one delegated access token."""
import logging
from typing import Any, Dict, Optional

import requests

from report_uploader.errors import GraphAPIError

logger = logging.getLogger(__name__)

GRAPH_BASE = "https://graph.microsoft.com/v1.0"


def _error_from_response(response: requests.Response) -> GraphAPIError:
    """Build a GraphAPIError from Graph's `{"error": {"code", "message"}}` body when present."""
    code = None
    message = response.text or response.reason or "Unknown error"
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        code = body["error"].get("code")
        message = body["error"].get("message") or message
    return GraphAPIError(response.status_code, message, code)


class GraphClient:
    """Sends Graph requests with a bearer token and raises GraphAPIError on failure."""

    def __init__(
        self,
        access_token: str,
        base_url: str = GRAPH_BASE,
        timeout: float = 30,
        session: Optional[requests.Session] = None,
    ):
        if not access_token:
            raise ValueError("access_token is required")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Authorization": f"Bearer {access_token}"})

    def url_for(self, path: str) -> str:
        """Absolute URLs (e.g. beta endpoints) pass through; relative paths join the base URL."""
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    def request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = self.url_for(path)
        kwargs.setdefault("timeout", self.timeout)
        logger.debug("Graph %s %s", method, url)
        response = self.session.request(method, url, **kwargs)
        if not response.ok:
            raise _error_from_response(response)
        return response

    def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return self.request("GET", path, params=params).json()

    def post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        response = self.request("POST", path, json=payload)
        return response.json() if response.content else {}

    def put_content(
        self,
        path: str,
        data: bytes,
        content_type: str = "application/octet-stream",
    ) -> Dict[str, Any]:
        response = self.request("PUT", path, data=data, headers={"Content-Type": content_type})
        return response.json() if response.content else {}

    def put_chunk(
        self,
        upload_url: str,
        chunk: bytes,
        start: int,
        total_size: int,
        timeout: Optional[float] = None,
    ) -> requests.Response:
        """
        PUT one byte range to an upload session.

        Upload URLs are pre-authenticated, so the bearer header is not sent.
        """
        end = start + len(chunk) - 1
        headers = {
            "Content-Length": str(len(chunk)),
            "Content-Range": f"bytes {start}-{end}/{total_size}",
        }
        response = requests.put(upload_url, headers=headers, data=chunk, timeout=timeout or self.timeout)
        if not response.ok:
            raise _error_from_response(response)
        return response

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "GraphClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
