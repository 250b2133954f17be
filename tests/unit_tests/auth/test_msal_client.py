import pytest

from report_uploader.auth.msal_client import MsalAuthClient, is_allowed_email
from report_uploader.errors import AuthenticationError, ConfigurationError
from tests.consts import TEST_AUTH_URI, TEST_STATE
from tests.fixtures.app_client import make_settings


class FakeConfidentialClient:
    """Records MSAL calls and answers with scripted results."""

    def __init__(self, flow=None, token_result=None, exchange_error=None, app_token_result=None):
        self.flow = flow if flow is not None else {"auth_uri": TEST_AUTH_URI, "state": TEST_STATE}
        self.token_result = token_result if token_result is not None else {"access_token": "user-token"}
        self.exchange_error = exchange_error
        self.app_token_result = app_token_result if app_token_result is not None else {"access_token": "app-token"}
        self.calls = []

    def initiate_auth_code_flow(self, scopes, redirect_uri=None, prompt=None):
        self.calls.append(("initiate", scopes, redirect_uri, prompt))
        return self.flow

    def acquire_token_by_auth_code_flow(self, flow, auth_response):
        self.calls.append(("exchange", flow, auth_response))
        if self.exchange_error:
            raise self.exchange_error
        return self.token_result

    def acquire_token_for_client(self, scopes):
        self.calls.append(("client_credentials", scopes))
        return self.app_token_result


@pytest.mark.parametrize(
    "email, domain, expected",
    [
        ("someone@example.com", None, True),
        (None, None, True),
        ("Ali.Veli@Kaymet.com", "kaymet.com", True),
        ("ali@kaymet.com", "@kaymet.com", True),
        ("ali@notkaymet.com", "kaymet.com", False),
        ("ali@kaymet.com.evil.org", "kaymet.com", False),
        (None, "kaymet.com", False),
    ],
)
def test_is_allowed_email(email, domain, expected):
    assert is_allowed_email(email, domain) is expected


def test_missing_settings_raise_configuration_error():
    settings = make_settings(microsoft_client_secret=None, microsoft_tenant_id="")

    with pytest.raises(ConfigurationError) as exc_info:
        MsalAuthClient(settings, app=FakeConfidentialClient())

    assert str(exc_info.value) == (
        "Missing required environment variables: MICROSOFT_CLIENT_SECRET, MICROSOFT_TENANT_ID"
    )


def test_start_login_requests_account_selection():
    app = FakeConfidentialClient()
    settings = make_settings(redirect_uri="https://reports.example/auth/callback")

    flow = MsalAuthClient(settings, app=app).start_login()

    assert flow["auth_uri"] == TEST_AUTH_URI
    assert app.calls == [
        ("initiate", settings.auth_scopes, "https://reports.example/auth/callback", "select_account")
    ]


def test_start_login_without_auth_uri():
    app = FakeConfidentialClient(flow={"error": "invalid_scope", "error_description": "Bad scope"})

    with pytest.raises(AuthenticationError, match="Bad scope"):
        MsalAuthClient(make_settings(), app=app).start_login()


def test_complete_login_returns_tokens():
    app = FakeConfidentialClient()
    flow = {"state": TEST_STATE}
    response = {"code": "abc", "state": TEST_STATE}

    result = MsalAuthClient(make_settings(), app=app).complete_login(flow, response)

    assert result == {"access_token": "user-token"}
    assert app.calls[-1] == ("exchange", flow, response)


def test_complete_login_state_mismatch():
    app = FakeConfidentialClient(exchange_error=ValueError("state missing from auth_code_flow"))

    with pytest.raises(AuthenticationError, match="^Invalid authorization response"):
        MsalAuthClient(make_settings(), app=app).complete_login({}, {"code": "abc"})


def test_complete_login_error_result():
    app = FakeConfidentialClient(token_result={"error": "invalid_grant", "error_description": "Code expired"})

    with pytest.raises(AuthenticationError, match="Code expired"):
        MsalAuthClient(make_settings(), app=app).complete_login({}, {"code": "abc"})


def test_acquire_app_token():
    app = FakeConfidentialClient()

    assert MsalAuthClient(make_settings(), app=app).acquire_app_token() == "app-token"
    assert app.calls == [("client_credentials", ["https://graph.microsoft.com/.default"])]


def test_acquire_app_token_failure():
    app = FakeConfidentialClient(app_token_result={"error": "unauthorized_client"})

    with pytest.raises(AuthenticationError, match="Failed to acquire app token"):
        MsalAuthClient(make_settings(), app=app).acquire_app_token()
