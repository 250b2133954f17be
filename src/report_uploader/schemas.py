####################################
# --- Request/response schemas --- #
####################################

from datetime import datetime
from typing import List, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
)


class CamelModel(BaseModel):
    """Fields are snake_case in Python and camelCase on the wire, as the browser form expects."""
    model_config = ConfigDict(populate_by_name=True)


class DriveItem(CamelModel):
    """A file in OneDrive / SharePoint as returned by Microsoft Graph."""
    id: str
    name: str
    web_url: Optional[str] = Field(None, alias="webUrl")
    created_date_time: Optional[datetime] = Field(None, alias="createdDateTime")
    size: int = Field(0, description="The size of the file in bytes.")

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "id": "01ABCDEF",
                "name": "19-10-2026_Sevkiyat raporu_09.15.42.xlsx",
                "webUrl": "https://contoso-my.sharepoint.com/personal/user/Documents/report.xlsx",
                "createdDateTime": "2026-10-19T09:15:44Z",
                "size": 20480,
            }
        },
    )


class GetFilesResponse(BaseModel):
    """Response model for `GET /api/files`."""
    message: str
    files: List[DriveItem]


class UploadMetadata(CamelModel):
    """Extra information the form sends with a report; it is logged with the upload."""
    original_file_name: Optional[str] = Field(None, alias="originalFileName")
    report_name: Optional[str] = Field(None, alias="reportName")


class UploadResponse(CamelModel):
    """Response model for `POST /api/upload`."""
    message: str
    file_name: str = Field(alias="fileName")


class DirectUploadResponse(CamelModel):
    """Response model for `POST /api/direct-upload`."""
    message: str
    file_name: str = Field(alias="fileName")
    original_file_name: str = Field(alias="originalFileName")
    formatted_report_name: str = Field(alias="formattedReportName")
    destination: str = Field(description="Which fallback step stored the file.")
    web_url: Optional[str] = Field(None, alias="webUrl")

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "message": "File uploaded successfully",
                "fileName": "19-10-2026_Teklif raporu_10.02.11.pdf",
                "originalFileName": "teklif.pdf",
                "formattedReportName": "19-10-2026_Teklif raporu_10.02.11.pdf",
                "destination": "personal_drive",
                "webUrl": "https://contoso-my.sharepoint.com/personal/user/Documents/19-10-2026/teklif.pdf",
            }
        },
    )


class AuthCheckResponse(CamelModel):
    """Response model for `GET /auth/check`."""
    is_authenticated: bool = Field(alias="isAuthenticated")
    session_exists: bool = Field(alias="sessionExists")
    has_access_token: bool = Field(alias="hasAccessToken")


class TokenResponse(CamelModel):
    """Response model for `GET /auth/token`."""
    access_token: str = Field(alias="accessToken")
