"""Upload daily report files to OneDrive / SharePoint through Microsoft Graph."""

__version__ = "0.1.0"
