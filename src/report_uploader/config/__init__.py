"""Configuration for the report uploader."""
from report_uploader.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
