import logging
from typing import Optional

from fastapi import (
    APIRouter,
    Depends,
    File,
    Form,
    Request,
    UploadFile,
    status,
)

from report_uploader.config.settings import Settings
from report_uploader.dependencies import (
    GraphClientFactory,
    bearer_token,
    get_app_settings,
    get_graph_client_factory,
    session_access_token,
)
from report_uploader.errors import APIError, UploadError
from report_uploader.graph.onedrive import upload_to_personal_root, upload_with_fallback
from report_uploader.graph.upload_session import DEFAULT_CONTENT_TYPE
from report_uploader.reports import ReportType, format_report_file_name
from report_uploader.schemas import DirectUploadResponse, UploadMetadata, UploadResponse

logger = logging.getLogger(__name__)

router = APIRouter()


def _read_upload(file: UploadFile, settings: Settings) -> bytes:
    """Read the uploaded file, refusing anything over the configured size limit."""
    data = file.file.read(settings.max_upload_size_bytes + 1)
    if len(data) > settings.max_upload_size_bytes:
        raise APIError(
            status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            f"File too large - limit is {settings.max_upload_size_bytes} bytes",
        )
    logger.info(
        "File received: name=%s size=%d type=%s", file.filename, len(data), file.content_type
    )
    return data


def _resolve_file_name(
    file: UploadFile,
    file_name: Optional[str],
    report_type: Optional[str],
    custom_report_name: Optional[str],
) -> str:
    if file_name:
        return file_name
    if report_type:
        try:
            return format_report_file_name(
                file.filename or "",
                ReportType.parse(report_type),
                custom_report_name,
            )
        except ValueError as e:
            raise APIError(status.HTTP_400_BAD_REQUEST, str(e)) from e
    return file.filename


@router.post("/upload", response_model=UploadResponse)
def upload(
    request: Request,
    file: Optional[UploadFile] = File(None),
    file_name: Optional[str] = Form(None, alias="fileName"),
    settings: Settings = Depends(get_app_settings),
    graph_client_factory: GraphClientFactory = Depends(get_graph_client_factory),
):
    """Upload a file into the root of the signed-in user's OneDrive."""
    logger.info("Received upload request")
    if file is None or not file.filename:
        raise APIError(status.HTTP_400_BAD_REQUEST, "No file uploaded")

    access_token = session_access_token(request)
    if not access_token:
        raise APIError(status.HTTP_401_UNAUTHORIZED, "Unauthorized - User not authenticated")

    data = _read_upload(file, settings)
    target_name = file_name or file.filename
    logger.info("Using filename: %s", target_name)

    try:
        upload_to_personal_root(
            graph_client_factory(access_token),
            data,
            target_name,
            settings,
            content_type=file.content_type or DEFAULT_CONTENT_TYPE,
        )
    except UploadError as e:
        raise APIError(status.HTTP_500_INTERNAL_SERVER_ERROR, str(e)) from e

    logger.info("File uploaded successfully")
    return UploadResponse(message="File uploaded successfully", file_name=target_name)


@router.post("/direct-upload", response_model=DirectUploadResponse)
def direct_upload(
    file: Optional[UploadFile] = File(None),
    file_name: Optional[str] = Form(None, alias="fileName"),
    original_file_name: Optional[str] = Form(None, alias="originalFileName"),
    formatted_report_name: Optional[str] = Form(None, alias="formattedReportName"),
    report_type: Optional[str] = Form(None, alias="reportType"),
    custom_report_name: Optional[str] = Form(None, alias="customReportName"),
    access_token: Optional[str] = Depends(bearer_token),
    settings: Settings = Depends(get_app_settings),
    graph_client_factory: GraphClientFactory = Depends(get_graph_client_factory),
):
    """
    Upload a daily report with the caller's own token.

    The file lands in today's folder of the first writable destination:
    the personal drive, the known SharePoint site, or any accessible site.
    """
    logger.info("Received direct upload request")
    if file is None or not file.filename:
        raise APIError(status.HTTP_400_BAD_REQUEST, "No file uploaded")

    if not access_token:
        raise APIError(status.HTTP_401_UNAUTHORIZED, "Unauthorized - Missing or invalid token")

    target_name = _resolve_file_name(file, file_name, report_type, custom_report_name)
    data = _read_upload(file, settings)

    original_file_name = original_file_name or file.filename
    formatted_report_name = formatted_report_name or target_name
    metadata = UploadMetadata(original_file_name=original_file_name, report_name=formatted_report_name)

    try:
        result = upload_with_fallback(
            graph_client_factory(access_token),
            data,
            target_name,
            settings,
            metadata=metadata,
            content_type=file.content_type or DEFAULT_CONTENT_TYPE,
        )
    except UploadError as e:
        raise APIError(status.HTTP_500_INTERNAL_SERVER_ERROR, str(e)) from e

    logger.info("File uploaded successfully to %s", result.destination.value)
    return DirectUploadResponse(
        message="File uploaded successfully",
        file_name=target_name,
        original_file_name=original_file_name,
        formatted_report_name=formatted_report_name,
        destination=result.destination.value,
        web_url=result.web_url,
    )
