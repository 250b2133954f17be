import logging

from fastapi import APIRouter, Depends, Request, status

from report_uploader.config.settings import Settings
from report_uploader.dependencies import (
    GraphClientFactory,
    get_app_settings,
    get_graph_client_factory,
    session_access_token,
)
from report_uploader.errors import APIError
from report_uploader.graph.onedrive import get_recent_files
from report_uploader.schemas import GetFilesResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/files", response_model=GetFilesResponse)
def get_files(
    request: Request,
    settings: Settings = Depends(get_app_settings),
    graph_client_factory: GraphClientFactory = Depends(get_graph_client_factory),
):
    """
    List the most recently created files in the signed-in user's drive.

    Returns:
        GetFilesResponse: up to `recent_files_limit` items, newest first
    """
    access_token = session_access_token(request)
    if not access_token:
        raise APIError(status.HTTP_401_UNAUTHORIZED, "Unauthorized")

    files = get_recent_files(graph_client_factory(access_token), limit=settings.recent_files_limit)
    logger.info("Retrieved %d files", len(files))
    return GetFilesResponse(message="Files retrieved successfully", files=files)
