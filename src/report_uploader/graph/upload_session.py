"""Simple and chunked (upload session) file transfers to a drive."""
import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import requests

from report_uploader.config.settings import Settings
from report_uploader.errors import GraphAPIError, UploadError
from report_uploader.graph.client import GraphClient
from report_uploader.utils.decorators import retry

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


def drive_item_path(drive_path: str, file_name: str, folder: Optional[str] = None) -> str:
    """
    Path-based address of an item, e.g. `/drives/abc/root:/19-10-2026/report.xlsx`.

    Segments are percent-encoded so names with spaces, `#` or non-ASCII letters survive.
    """
    relative = f"{folder.strip('/')}/{file_name}" if folder else file_name
    return f"{drive_path.rstrip('/')}/root:/{quote(relative, safe='/')}"


def create_upload_session(client: GraphClient, item_path: str) -> str:
    payload = {"item": {"@microsoft.graph.conflictBehavior": "replace"}}
    session = client.post(f"{item_path}:/createUploadSession", payload)
    upload_url = session.get("uploadUrl")
    if not upload_url:
        raise UploadError("Upload session response did not include an uploadUrl")
    logger.info("Upload session created for %s", item_path)
    return upload_url


def _is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, GraphAPIError):
        return exc.is_transient
    return True


def upload_in_chunks(
    client: GraphClient,
    upload_url: str,
    data: bytes,
    chunk_size: int,
    timeout: Optional[float] = None,
    max_attempts: int = 3,
    retry_delay: float = 1.0,
) -> Dict[str, Any]:
    """
    Send `data` to an upload session in fixed-size byte ranges.

    A 202 answer asks for the next range; 200/201 carries the finished drive item.
    Transient failures (429, 5xx, connection drops) resend the same range.
    """
    total_size = len(data)
    if total_size == 0:
        raise ValueError("Cannot upload an empty file through an upload session")
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")

    send_chunk = retry(
        max_attempts=max_attempts,
        delay=retry_delay,
        exceptions=(GraphAPIError, requests.ConnectionError, requests.Timeout),
        should_retry=_is_retryable,
        logger_name=__name__,
    )(client.put_chunk)

    start = 0
    while start < total_size:
        chunk = data[start:start + chunk_size]
        logger.info("Uploading chunk: %d to %d of %d", start, start + len(chunk) - 1, total_size)
        response = send_chunk(upload_url, chunk, start, total_size, timeout)

        if response.status_code in (200, 201):
            return response.json()

        if response.status_code == 202:
            start += len(chunk)
            continue

        raise UploadError(f"Unexpected upload session status {response.status_code}")

    raise UploadError("Upload finished loop without completion response.")


def put_file(
    client: GraphClient,
    drive_path: str,
    file_name: str,
    data: bytes,
    settings: Settings,
    folder: Optional[str] = None,
    content_type: str = DEFAULT_CONTENT_TYPE,
) -> Dict[str, Any]:
    """Upload into a drive, choosing a single PUT or an upload session by size."""
    item_path = drive_item_path(drive_path, file_name, folder)

    if len(data) < settings.simple_upload_max_bytes:
        logger.info("Using simple upload for %s (%d bytes)", item_path, len(data))
        return client.put_content(f"{item_path}:/content", data, content_type)

    logger.info("Using upload session for %s (%d bytes)", item_path, len(data))
    upload_url = create_upload_session(client, item_path)
    return upload_in_chunks(
        client,
        upload_url,
        data,
        chunk_size=settings.upload_chunk_size_bytes,
        timeout=settings.upload_chunk_timeout_seconds,
        max_attempts=settings.upload_chunk_max_attempts,
    )
