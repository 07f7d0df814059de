"""
Tests for the weighted average endpoint
"""
import pytest
import requests
from fastapi.testclient import TestClient

from config import ServerConfig
from errors import AuthenticationFailed, SubjectDataNotFound
from server import create_app
from conftest import FakeGradeClient


def make_client(fake):
    return TestClient(create_app(ServerConfig(), client=fake))


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_average_success(client, fake_client, credentials):
    response = client.post("/average", json=credentials)
    assert response.status_code == 200
    assert response.json() == {
        "overallAverage": 13.33,
        "details": [
            {"name": "Math", "average": 15.0, "coefficient": 2.0},
            {"name": "Art", "average": 10.0, "coefficient": 1.0},
        ],
    }
    assert [call[0] for call in fake_client.calls] == ["authenticate", "fetch_subjects"]
    assert fake_client.calls[0] == ("authenticate", credentials["url"], "alice")


def test_moyenne_alias(client, credentials):
    response = client.post("/moyenne", json=credentials)
    assert response.status_code == 200
    assert response.json()["overallAverage"] == 13.33


def test_heterogeneous_records(credentials):
    fake = FakeGradeClient(subjects=[
        {"intitule": "Français", "moyenne": "12,5", "coeff": "4"},
        {"libelle": "EPS", "moy": None},
        {"name": "Latin"},
    ])
    response = make_client(fake).post("/average", json=credentials)
    assert response.status_code == 200
    data = response.json()
    assert data["overallAverage"] == 12.5
    assert data["details"] == [
        {"name": "Français", "average": 12.5, "coefficient": 4.0},
        {"name": "EPS", "average": None, "coefficient": None},
        {"name": "Latin", "average": None, "coefficient": None},
    ]


def test_no_subjects_returns_null_average(credentials):
    response = make_client(FakeGradeClient(subjects=[])).post("/average", json=credentials)
    assert response.status_code == 200
    assert response.json() == {"overallAverage": None, "details": []}


@pytest.mark.parametrize("missing", ["url", "username", "password"])
def test_missing_field_is_invalid_request(fake_client, credentials, missing):
    del credentials[missing]
    response = make_client(fake_client).post("/average", json=credentials)
    assert response.status_code == 400
    assert "error" in response.json()
    assert fake_client.calls == []


def test_empty_field_is_invalid_request(fake_client, credentials):
    credentials["password"] = ""
    response = make_client(fake_client).post("/average", json=credentials)
    assert response.status_code == 400
    assert fake_client.calls == []


@pytest.mark.parametrize("payload", [None, [], "not an object"])
def test_malformed_body_is_invalid_request(fake_client, payload):
    if payload is None:
        response = make_client(fake_client).post("/average")
    else:
        response = make_client(fake_client).post("/average", json=payload)
    assert response.status_code == 400
    assert fake_client.calls == []


def test_authentication_failed(rejecting_client, credentials):
    response = make_client(rejecting_client).post("/average", json=credentials)
    assert response.status_code == 401
    assert response.json() == {"error": "Authentication failed"}
    assert [call[0] for call in rejecting_client.calls] == ["authenticate"]


def test_fetch_failure_is_internal_error(credentials):
    fake = FakeGradeClient(fetch_error=requests.ConnectionError("connection refused"))
    response = make_client(fake).post("/average", json=credentials)
    assert response.status_code == 500
    assert response.json() == {"error": "Internal error", "message": "connection refused"}


def test_missing_subject_list_is_internal_error(credentials):
    fake = FakeGradeClient(fetch_error=SubjectDataNotFound("cannot locate the subject list"))
    response = make_client(fake).post("/average", json=credentials)
    assert response.status_code == 500
    assert response.json()["message"] == "cannot locate the subject list"


def test_unexpected_data_shape_is_internal_error(credentials):
    fake = FakeGradeClient(subjects=None)
    fake.subjects = 12
    response = make_client(fake).post("/average", json=credentials)
    assert response.status_code == 500
    assert response.json()["error"] == "Internal error"


def test_failures_are_logged(credentials, caplog):
    fake = FakeGradeClient(fetch_error=RuntimeError("boom"))
    with caplog.at_level("ERROR", logger="server"):
        make_client(fake).post("/average", json=credentials)
    assert any("boom" in record.getMessage() for record in caplog.records)
    assert any(record.exc_info for record in caplog.records)


def test_authentication_error_raised_during_fetch(credentials):
    fake = FakeGradeClient(fetch_error=AuthenticationFailed())
    response = make_client(fake).post("/average", json=credentials)
    assert response.status_code == 401


def test_opposite_huge_averages_return_json(credentials):
    fake = FakeGradeClient(subjects=[
        {"name": "A", "average": 1e308, "coefficient": 2},
        {"name": "B", "average": -1e308, "coefficient": 2},
    ])
    response = make_client(fake).post("/average", json=credentials)
    assert response.status_code == 200
    assert response.json()["overallAverage"] == 0.0


def test_huge_average_keeps_overall_average(credentials):
    fake = FakeGradeClient(subjects=[{"name": "A", "average": 1e308, "coefficient": 10}])
    response = make_client(fake).post("/average", json=credentials)
    assert response.status_code == 200
    assert response.json()["overallAverage"] == 1e308


def test_numeric_credentials_are_accepted(fake_client, credentials):
    credentials["username"] = 20231234
    credentials["password"] = 1234
    response = make_client(fake_client).post("/average", json=credentials)
    assert response.status_code == 200
    assert fake_client.calls[0] == ("authenticate", credentials["url"], "20231234")


def test_invalid_body_log_hides_submitted_values(fake_client, credentials, caplog):
    credentials["password"] = ["very-secret-value"]
    with caplog.at_level("WARNING", logger="server"):
        response = make_client(fake_client).post("/average", json=credentials)
    assert response.status_code == 400
    assert "请求体无效" in caplog.text
    assert "password" in caplog.text
    assert "very-secret-value" not in caplog.text
