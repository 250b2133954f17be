import pytest
from pydantic import ValidationError

from report_uploader.config.settings import UPLOAD_CHUNK_MULTIPLE, Settings
from tests.fixtures.app_client import make_settings


def test_defaults():
    settings = Settings(_env_file=None)

    assert settings.port == 3001
    assert settings.sharepoint_site_name == "dailyreports"
    assert settings.upload_chunk_size_bytes % UPLOAD_CHUNK_MULTIPLE == 0
    assert settings.simple_upload_max_bytes < settings.max_upload_size_bytes


def test_reads_environment(monkeypatch):
    monkeypatch.setenv("MICROSOFT_CLIENT_ID", "env-client")
    monkeypatch.setenv("ENVIRONMENT", "prod")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = Settings(_env_file=None)

    assert settings.microsoft_client_id == "env-client"
    assert settings.is_production
    assert settings.log_level == "DEBUG"


@pytest.mark.parametrize("overrides", [
    {"environment": "staging"},
    {"log_level": "VERBOSE"},
    {"upload_chunk_size_bytes": 4 * 1024 * 1024},
    {"upload_chunk_size_bytes": 0},
])
def test_invalid_values_are_rejected(overrides):
    with pytest.raises(ValidationError):
        make_settings(**overrides)


def test_blank_sharepoint_hostname_disables_site():
    assert make_settings(sharepoint_hostname="  ").sharepoint_hostname is None


def test_allowed_email_domain_is_normalised():
    assert make_settings(allowed_email_domain="@Kaymet.COM").allowed_email_domain == "kaymet.com"
    assert make_settings(allowed_email_domain="").allowed_email_domain is None


def test_authority_and_missing_auth_settings():
    settings = make_settings(microsoft_tenant_id=None, microsoft_client_id=None)

    assert settings.authority == "https://login.microsoftonline.com/common"
    assert settings.missing_auth_settings() == ["MICROSOFT_CLIENT_ID", "MICROSOFT_TENANT_ID"]
    assert make_settings().authority == "https://login.microsoftonline.com/tenant-id"
