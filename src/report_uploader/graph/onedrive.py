"""
Upload destination resolution for daily reports.

Given a delegated Graph client, find somewhere the user can write and place the
file there inside a folder named after today's date. Destinations are tried in
order: the user's own drive, the known SharePoint site (looked up through
several site-path formats), then any site the user can reach.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import pydantic
import requests

from report_uploader.config.settings import Settings
from report_uploader.errors import GraphAPIError, UploadError
from report_uploader.graph.client import GraphClient
from report_uploader.graph.upload_session import DEFAULT_CONTENT_TYPE, put_file
from report_uploader.schemas import DriveItem, UploadMetadata
from report_uploader.utils.decorators import log_execution_time

logger = logging.getLogger(__name__)

DATE_FOLDER_FORMAT = "%d-%m-%Y"
RECENT_FILE_FIELDS = "id,name,webUrl,createdDateTime,size"

# Errors that move resolution on to the next destination
FALLBACK_ERRORS = (GraphAPIError, UploadError, requests.RequestException, KeyError)
# Listing also gives up on items Graph returned without an id or name
LISTING_ERRORS = FALLBACK_ERRORS + (pydantic.ValidationError,)


class UploadDestination(str, Enum):
    PERSONAL_DRIVE = "personal_drive"
    SHAREPOINT_SITE = "sharepoint_site"
    AVAILABLE_SITE = "available_site"


@dataclass
class UploadResult:
    destination: UploadDestination
    drive_id: str
    folder: str
    item: Dict[str, Any] = field(default_factory=dict)
    site_name: Optional[str] = None

    @property
    def web_url(self) -> Optional[str]:
        return self.item.get("webUrl")


@dataclass(frozen=True)
class SiteCandidate:
    """One way of addressing the known SharePoint site."""
    label: str
    lookup_path: str
    # Root used to list the site's drives; None means the client's own base URL
    api_root: Optional[str] = None

    def drives_path(self, site_id: str) -> str:
        if self.api_root:
            return f"{self.api_root.rstrip('/')}/sites/{site_id}/drives"
        return f"/sites/{site_id}/drives"


@dataclass
class SiteProbe:
    label: str
    ok: bool
    site_id: Optional[str] = None
    error: Optional[str] = None


def date_folder_name(now: Optional[datetime] = None) -> str:
    """Today's folder name, e.g. `19-10-2026`."""
    return (now or datetime.now()).strftime(DATE_FOLDER_FORMAT)


def ensure_folder(client: GraphClient, drive_id: str, folder_name: str) -> None:
    """Create `folder_name` at the drive root unless it is already there."""
    try:
        client.get(f"/drives/{drive_id}/root:/{quote(folder_name)}")
        logger.info("Folder %s already exists", folder_name)
        return
    except GraphAPIError as e:
        if not e.is_not_found:
            raise
    logger.info("Folder %s does not exist, creating it", folder_name)

    body = {
        "name": folder_name,
        "folder": {},
        "@microsoft.graph.conflictBehavior": "fail",
    }
    try:
        client.post(f"/drives/{drive_id}/root/children", body)
    except GraphAPIError as e:
        # Another request created the folder between the lookup and the create
        if e.is_conflict:
            logger.info("Folder %s was created concurrently", folder_name)
            return
        raise
    logger.info("Folder %s created successfully", folder_name)


def site_candidates(settings: Settings) -> List[SiteCandidate]:
    host = settings.sharepoint_hostname
    site = settings.sharepoint_site_name
    if not host:
        return []
    beta = settings.graph_beta_url.rstrip("/")
    return [
        SiteCandidate("format 1", f"/sites/{host},sites,{site}"),
        SiteCandidate("format 2", f"/sites/{host}:/sites/{site}:/"),
        SiteCandidate("format 3 (beta)", f"{beta}/sites/{host}:/sites/{site}", api_root=beta),
    ]


def _first_drive_id(client: GraphClient, drives_path: str) -> Optional[str]:
    drives = client.get(drives_path).get("value") or []
    if not drives:
        return None
    return drives[0]["id"]


def _upload_into_drive(
    client: GraphClient,
    drive_id: str,
    folder: str,
    file_name: str,
    data: bytes,
    settings: Settings,
    content_type: str,
) -> Dict[str, Any]:
    ensure_folder(client, drive_id, folder)
    return put_file(
        client,
        f"/drives/{drive_id}",
        file_name,
        data,
        settings,
        folder=folder,
        content_type=content_type,
    )


def _upload_to_personal_drive(client, data, file_name, folder, settings, content_type) -> UploadResult:
    drive_id = client.get("/me/drive")["id"]
    item = _upload_into_drive(client, drive_id, folder, file_name, data, settings, content_type)
    return UploadResult(UploadDestination.PERSONAL_DRIVE, drive_id, folder, item)


def _upload_to_known_site(client, data, file_name, folder, settings, content_type) -> UploadResult:
    candidates = site_candidates(settings)
    if not candidates:
        raise UploadError("No SharePoint site configured")

    for candidate in candidates:
        try:
            logger.info("Trying %s: %s", candidate.label, candidate.lookup_path)
            site = client.get(candidate.lookup_path)
            drive_id = _first_drive_id(client, candidate.drives_path(site["id"]))
            if drive_id is None:
                logger.warning("%s: site has no document libraries", candidate.label)
                continue
            item = _upload_into_drive(client, drive_id, folder, file_name, data, settings, content_type)
            return UploadResult(
                UploadDestination.SHAREPOINT_SITE,
                drive_id,
                folder,
                item,
                site_name=site.get("displayName") or settings.sharepoint_site_name,
            )
        except FALLBACK_ERRORS as e:
            logger.warning("%s failed: %s", candidate.label, e)

    raise UploadError("Could not access SharePoint site with any method")


def _upload_to_available_site(client, data, file_name, folder, settings, content_type) -> UploadResult:
    sites = client.get("/sites", params={"search": "*"}).get("value") or []
    logger.info("Sites available: %s", [s.get("displayName") for s in sites])
    if not sites:
        raise UploadError("No SharePoint sites found")

    last_error: Optional[Exception] = None
    for site in sites:
        name = site.get("displayName") or site.get("name") or site.get("id")
        try:
            logger.info("Trying site: %s", name)
            drive_id = _first_drive_id(client, f"/sites/{site['id']}/drives")
            if drive_id is None:
                continue
            item = _upload_into_drive(client, drive_id, folder, file_name, data, settings, content_type)
            return UploadResult(UploadDestination.AVAILABLE_SITE, drive_id, folder, item, site_name=name)
        except FALLBACK_ERRORS as e:
            logger.warning("Failed to upload to site %s: %s", name, e)
            last_error = e

    if last_error is not None:
        raise last_error
    raise UploadError("Could not upload to any available site")


@log_execution_time
def upload_with_fallback(
    client: GraphClient,
    data: bytes,
    file_name: str,
    settings: Settings,
    metadata: Optional[UploadMetadata] = None,
    now: Optional[datetime] = None,
    content_type: str = DEFAULT_CONTENT_TYPE,
) -> UploadResult:
    """
    Place a report in the first writable location, inside today's folder.

    Raises:
        UploadError: when every destination failed; the message names the last cause.
    """
    folder = date_folder_name(now)
    logger.info("Uploading %s (%d bytes) into folder %s", file_name, len(data), folder)
    if metadata:
        logger.info("File metadata: %s", metadata.model_dump(by_alias=True))

    attempts = (
        ("user's personal OneDrive", _upload_to_personal_drive),
        ("SharePoint site document library", _upload_to_known_site),
        ("first available site", _upload_to_available_site),
    )
    last_error: Optional[Exception] = None
    for number, (description, attempt) in enumerate(attempts, start=1):
        logger.info("Attempt %d: trying %s", number, description)
        try:
            result = attempt(client, data, file_name, folder, settings, content_type)
        except FALLBACK_ERRORS as e:
            logger.warning("Attempt %d (%s) failed: %s", number, description, e)
            last_error = e
            continue
        logger.info("Upload successful to %s", description)
        return result

    raise UploadError(f"Failed to upload file to OneDrive: {last_error}") from last_error


def upload_to_personal_root(
    client: GraphClient,
    data: bytes,
    file_name: str,
    settings: Settings,
    content_type: str = DEFAULT_CONTENT_TYPE,
) -> Dict[str, Any]:
    """Upload straight into the root of the signed-in user's drive, without a date folder."""
    try:
        return put_file(client, "/me/drive", file_name, data, settings, content_type=content_type)
    except FALLBACK_ERRORS as e:
        logger.error("OneDrive upload error: %s", e)
        raise UploadError(f"Failed to upload file to OneDrive: {e}") from e


def _list_children(client: GraphClient, children_path: str, limit: int) -> List[DriveItem]:
    params = {
        "$select": RECENT_FILE_FIELDS,
        "$orderby": "createdDateTime desc",
        "$top": limit,
    }
    items = client.get(children_path, params=params).get("value") or []
    return [DriveItem.model_validate(item) for item in items]


def get_recent_files(client: GraphClient, limit: int = 20) -> List[DriveItem]:
    """Most recent items at the root of the user's first drive; empty when nothing is reachable."""
    try:
        drives = client.get("/me/drives").get("value") or []
        if drives:
            files = _list_children(client, f"/drives/{drives[0]['id']}/root/children", limit)
            logger.info("Retrieved %d files from drive", len(files))
            return files
    except LISTING_ERRORS as e:
        logger.warning("Failed to get files from user drives: %s", e)

    try:
        files = _list_children(client, "/me/drive/root/children", limit)
        logger.info("Retrieved %d files from personal OneDrive", len(files))
        return files
    except LISTING_ERRORS as e:
        logger.warning("Failed to get files from personal OneDrive: %s", e)

    return []


def probe_site_candidates(client: GraphClient, settings: Settings) -> List[SiteProbe]:
    """Try every known-site lookup format and report which ones resolve."""
    probes = []
    for candidate in site_candidates(settings):
        try:
            site = client.get(candidate.lookup_path)
            probes.append(SiteProbe(candidate.label, True, site_id=site.get("id")))
        except FALLBACK_ERRORS as e:
            probes.append(SiteProbe(candidate.label, False, error=str(e)))
    return probes
