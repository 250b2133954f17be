from datetime import datetime
from urllib.parse import quote

from report_uploader.graph.onedrive import UploadDestination
from tests.consts import (
    TEST_ACCESS_TOKEN,
    TEST_AUTH_URI,
    TEST_DATE_FOLDER,
    TEST_FRONTEND_URL,
    TEST_NOW,
    TEST_STATE,
)
from tests.fixtures.app_client import FakeAuthClient, make_client, make_settings

BEARER = {"Authorization": f"Bearer {TEST_ACCESS_TOKEN}"}
UPLOADED_ITEM = {"id": "item-1", "webUrl": "https://contoso-my.sharepoint.com/report"}


class FrozenDatetime(datetime):
    @classmethod
    def now(cls, tz=None):
        return TEST_NOW


def test_root_and_health(client):
    assert client.get("/").json() == {"message": "OneDrive Upload API is running"}

    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {
        "status": "OK",
        "environment": "development",
        "components": {
            "api": "ready",
            "identity_provider": "configured",
            "sharepoint_site": "kaymet365.sharepoint.com",
        },
    }


def test_login_redirects_to_microsoft(client):
    response = client.get("/auth/login", follow_redirects=False)

    assert response.status_code == 302
    assert response.headers["location"] == TEST_AUTH_URI


def test_callback_stores_token_and_returns_to_form(client, fake_auth):
    client.get("/auth/login", follow_redirects=False)

    response = client.get(
        "/auth/callback",
        params={"code": "auth-code", "state": TEST_STATE},
        follow_redirects=False,
    )

    assert response.status_code == 302
    assert response.headers["location"] == TEST_FRONTEND_URL
    flow, auth_response = fake_auth.completed[0]
    assert flow["state"] == TEST_STATE
    assert auth_response == {"code": "auth-code", "state": TEST_STATE}

    assert client.get("/auth/token").json() == {"accessToken": TEST_ACCESS_TOKEN}
    assert client.get("/auth/check").json() == {
        "isAuthenticated": True,
        "sessionExists": True,
        "hasAccessToken": True,
    }


def test_callback_accepts_user_from_allowed_domain(fake_graph):
    settings = make_settings(allowed_email_domain="kaymet.com")
    with make_client(settings, fake_graph, FakeAuthClient()) as client:
        client.get("/auth/login", follow_redirects=False)
        response = client.get("/auth/callback", params={"code": "c", "state": TEST_STATE}, follow_redirects=False)

        assert response.headers["location"] == TEST_FRONTEND_URL
        assert client.get("/auth/check").json()["isAuthenticated"] is True


def test_logout_clears_session(logged_in_client):
    response = logged_in_client.get("/auth/logout", follow_redirects=False)

    assert response.status_code == 302
    assert response.headers["location"] == TEST_FRONTEND_URL
    assert logged_in_client.get("/auth/check").json() == {
        "isAuthenticated": False,
        "sessionExists": False,
        "hasAccessToken": False,
    }


def test_direct_upload_into_personal_drive(client, fake_graph, monkeypatch):
    monkeypatch.setattr("report_uploader.graph.onedrive.date_folder_name", lambda now=None: TEST_DATE_FOLDER)
    fake_graph.on("GET", "/me/drive", {"id": "d1"})
    fake_graph.on("GET", f"/drives/d1/root:/{TEST_DATE_FOLDER}", {"id": "folder"})
    fake_graph.on("PUT", f"/drives/d1/root:/{TEST_DATE_FOLDER}/custom.xlsx:/content", UPLOADED_ITEM)

    response = client.post(
        "/api/direct-upload",
        headers=BEARER,
        files={"file": ("orig.xlsx", b"report bytes", "application/vnd.ms-excel")},
        data={"fileName": "custom.xlsx", "formattedReportName": "Shipment"},
    )

    assert response.status_code == 200
    assert response.json() == {
        "message": "File uploaded successfully",
        "fileName": "custom.xlsx",
        "originalFileName": "orig.xlsx",
        "formattedReportName": "Shipment",
        "destination": UploadDestination.PERSONAL_DRIVE.value,
        "webUrl": UPLOADED_ITEM["webUrl"],
    }
    assert fake_graph.tokens == [TEST_ACCESS_TOKEN]
    put = fake_graph.call_extra("PUT", f"/drives/d1/root:/{TEST_DATE_FOLDER}/custom.xlsx:/content")
    assert put["data"] == b"report bytes"
    assert put["content_type"] == "application/vnd.ms-excel"


def test_direct_upload_names_file_after_report_type(client, fake_graph, monkeypatch):
    monkeypatch.setattr("report_uploader.graph.onedrive.date_folder_name", lambda now=None: TEST_DATE_FOLDER)
    monkeypatch.setattr("report_uploader.reports.datetime", FrozenDatetime)
    expected_name = f"{TEST_DATE_FOLDER}_Sevkiyat raporu_09.15.42.xlsx"
    fake_graph.on("GET", "/me/drive", {"id": "d1"})
    fake_graph.on("GET", f"/drives/d1/root:/{TEST_DATE_FOLDER}", {"id": "folder"})
    fake_graph.on("PUT", f"/drives/d1/root:/{TEST_DATE_FOLDER}/{quote(expected_name)}:/content", UPLOADED_ITEM)

    response = client.post(
        "/api/direct-upload",
        headers=BEARER,
        files={"file": ("sevkiyat.xlsx", b"x", "application/octet-stream")},
        data={"reportType": "SHIPMENT"},
    )

    assert response.status_code == 200
    assert response.json()["fileName"] == expected_name
    assert response.json()["formattedReportName"] == expected_name


def test_session_upload_into_drive_root(logged_in_client, fake_graph):
    fake_graph.on("PUT", "/me/drive/root:/notes.txt:/content", UPLOADED_ITEM)

    response = logged_in_client.post(
        "/api/upload",
        files={"file": ("notes.txt", b"hello", "text/plain")},
    )

    assert response.status_code == 200
    assert response.json() == {"message": "File uploaded successfully", "fileName": "notes.txt"}


def test_session_upload_with_file_name(logged_in_client, fake_graph):
    fake_graph.on("PUT", "/me/drive/root:/renamed.txt:/content", UPLOADED_ITEM)

    response = logged_in_client.post(
        "/api/upload",
        files={"file": ("notes.txt", b"hello", "text/plain")},
        data={"fileName": "renamed.txt"},
    )

    assert response.json()["fileName"] == "renamed.txt"


def test_get_files(logged_in_client, fake_graph):
    fake_graph.on("GET", "/me/drives", {"value": [{"id": "d1"}]})
    fake_graph.on("GET", "/drives/d1/root/children", {"value": [
        {"id": "f1", "name": "a.xlsx", "webUrl": "https://x/a.xlsx", "createdDateTime": "2026-10-19T07:00:00Z", "size": 10},
    ]})

    response = logged_in_client.get("/api/files")

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Files retrieved successfully"
    assert body["files"][0]["id"] == "f1"
    assert body["files"][0]["webUrl"] == "https://x/a.xlsx"
    params = fake_graph.call_extra("GET", "/drives/d1/root/children")["params"]
    assert params["$top"] == 20


def test_long_work_account_token_stays_out_of_the_cookie(fake_graph):
    long_token = "eyJ0eXAiOiJKV1QiLCJub25jZSI6" + "x" * 3200
    fake_auth = FakeAuthClient(result={
        "access_token": long_token,
        "id_token_claims": {"name": "Test User", "preferred_username": "test.user@kaymet.com"},
    })
    with make_client(make_settings(), fake_graph, fake_auth) as client:
        client.get("/auth/login", follow_redirects=False)
        response = client.get("/auth/callback", params={"code": "c", "state": TEST_STATE}, follow_redirects=False)

        set_cookie = response.headers["set-cookie"]
        assert len(set_cookie) < 1024
        assert client.get("/auth/token").json() == {"accessToken": long_token}

        token_store = client.app.state.token_store
        assert len(token_store) == 1
        client.get("/auth/logout", follow_redirects=False)
        assert len(token_store) == 0
