"""
HTTP service: one lock session driven through FastAPI endpoints.
"""

import pytest
from fastapi.testclient import TestClient

from passcodelock import main
from passcodelock.biometrics import ApprovalQueueBiometrics
from passcodelock.config import ServiceConfig
from passcodelock.errors import RepositoryError
from passcodelock.main import LockService
from passcodelock.repository import InMemoryPasscodeRepository


@pytest.fixture
def service(monkeypatch):
    repo = InMemoryPasscodeRepository(passcode="1234")
    svc = LockService(
        ServiceConfig(allowed_retries=3, initial_mode="enter_passcode"),
        repository=repo,
        biometrics=ApprovalQueueBiometrics(),
    )
    monkeypatch.setattr(main, "SERVICE", svc)
    return svc


@pytest.fixture
def client(service):
    return TestClient(main.app)


def _press(client, code):
    body = None
    for sign in code:
        r = client.post("/lock/sign", json={"sign": sign})
        assert r.status_code == 200
        body = r.json()
    return body


def test_ping(client):
    r = client.get("/ping")
    assert r.status_code == 200
    assert r.json()["ok"] is True


def test_passcode_status_reports_store(client, service):
    assert client.get("/passcode").json() == {"ok": True, "has_passcode": True, "failed_attempts": 0}

    _press(client, "0000")
    assert client.get("/passcode").json()["failed_attempts"] == 1

    service.lock_configuration.repository.delete_passcode()
    assert client.get("/passcode").json()["has_passcode"] is False


def test_view_and_biometric_prompt_on_start(client, service):
    body = client.get("/lock").json()

    assert body["lock"]["state"] == "EnterPasscode"
    assert body["lock"]["title"] == "Enter Passcode"
    assert service.biometrics.pending == 1


def test_correct_code_unlocks(client):
    body = _press(client, "1234")

    assert body["lock"]["is_dismissed"] is True
    events = [e["event"] for e in client.get("/lock/events").json()["items"]]
    assert events[-1] == "succeed"


def test_wrong_code_then_feedback(client):
    body = _press(client, "9999")
    assert body["lock"]["placeholders"] == ["error"] * 4
    assert body["lock"]["failed_attempts"] == 1

    r = client.post("/lock/sign", json={"sign": "1"})
    assert r.json()["accepted"] is False

    body = client.post("/lock/feedback-finished").json()
    assert body["lock"]["is_input_enabled"] is True


def test_set_flow_stores_passcode(client, service):
    client.post("/lock/start", json={"mode": "set_passcode"})
    _press(client, "2468")
    body = _press(client, "2468")

    assert body["lock"]["is_dismissed"] is True
    status = client.get("/passcode").json()
    assert status["has_passcode"] is True
    assert service.lock_configuration.repository.get_passcode() == "2468"


def test_unknown_mode_is_rejected(client):
    r = client.post("/lock/start", json={"mode": "open_sesame"})
    assert r.status_code == 422


def test_invalid_sign_is_rejected(client):
    r = client.post("/lock/sign", json={"sign": "x"})
    assert r.status_code == 422


def test_delete_and_cancel(client):
    r = client.post("/lock/delete")
    assert r.json()["accepted"] is False

    r = client.post("/lock/cancel")
    assert r.status_code == 409

    client.post("/lock/start", json={"mode": "remove_passcode"})
    r = client.post("/lock/cancel")
    assert r.status_code == 200
    assert r.json()["lock"]["is_dismissed"] is True
    assert client.get("/passcode").json()["has_passcode"] is True


def test_biometric_approval_over_http(client, service):
    r = client.post("/lock/biometrics/resolve", json={"approved": True})

    assert r.status_code == 200
    assert r.json()["lock"]["is_dismissed"] is True
    assert r.json()["pending"] == 0


def test_biometric_denial_and_retry(client):
    client.post("/lock/biometrics/resolve", json={"approved": False})
    r = client.post("/lock/biometrics/resolve", json={"approved": True})
    assert r.status_code == 409

    r = client.post("/lock/biometrics")
    assert r.json()["pending"] == 1


def test_background_foreground(client, service):
    client.post("/lock/biometrics/resolve", json={"approved": False})
    client.post("/lock/background")
    r = client.post("/lock/foreground")

    assert r.json()["pending"] == 1


def test_restart_drops_pending_prompt(client, service):
    client.post("/lock/start", json={"mode": "set_passcode"})

    assert service.biometrics.pending == 0


def test_storage_failure_maps_to_503(client, service, monkeypatch):
    def broken(code):
        raise RepositoryError("disk unavailable")

    monkeypatch.setattr(service.lock_configuration.repository, "set_passcode", broken)
    client.post("/lock/start", json={"mode": "set_passcode"})
    _press(client, "1357")
    for sign in "135":
        client.post("/lock/sign", json={"sign": sign})
    r = client.post("/lock/sign", json={"sign": "7"})

    assert r.status_code == 503
    assert r.json()["error"] == "STORAGE_UNAVAILABLE"
    assert client.get("/lock").json()["lock"]["state"] == "ConfirmPasscode"
