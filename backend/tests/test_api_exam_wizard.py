from __future__ import annotations

import threading
import time
import uuid

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from api.deps import get_gateway, get_wizard_store
from api.routes import exam_wizard as exam_wizard_routes
from core.config import settings
from main import app
from scheduling import wizard as wz
from services.wizard_store import WizardStore


def _token(role: str = "ADMIN", sub: str = "user-1") -> str:
    return jwt.encode({"sub": sub, "role": role}, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def _auth(role: str = "ADMIN") -> dict:
    return {"Authorization": f"Bearer {_token(role)}"}


@pytest.fixture
def client(gateway):
    store = WizardStore()
    app.dependency_overrides[get_gateway] = lambda: gateway
    app.dependency_overrides[get_wizard_store] = lambda: store
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def _open(client) -> dict:
    r = client.post("/api/exam-wizards/", headers=_auth())
    assert r.status_code == 201, r.text
    return r.json()


def _walk_to_build(client, wizard_id: str) -> dict:
    base = f"/api/exam-wizards/{wizard_id}"
    h = _auth()
    steps = [
        ("PATCH", "/parameters", {"name": "Mid-Term Exam", "start_date": "2025-03-10", "end_date": "2025-03-11"}),
        ("POST", "/next", None),
        ("POST", "/classes/toggle-grade", {"class_name": "10"}),
        ("POST", "/next", None),
        ("PUT", "/mode", {"mode": "auto"}),
        ("POST", "/next", None),
        ("POST", "/next", None),
        ("POST", "/next", None),
    ]
    body = None
    for method, path, payload in steps:
        r = client.request(method, base + path, headers=h, json=payload)
        assert r.status_code == 200, r.text
        body = r.json()
    return body


def test_requires_authentication(client):
    assert client.post("/api/exam-wizards/").status_code == 401
    r = client.post("/api/exam-wizards/", headers={"Authorization": "Bearer not-a-token"})
    assert r.status_code == 401
    assert r.json()["detail"] == "INVALID_TOKEN"


def test_requires_admin_role(client):
    r = client.post("/api/exam-wizards/", headers=_auth("TEACHER"))

    assert r.status_code == 403
    assert r.json()["detail"] == "NOT_AUTHORIZED"


def test_open_wizard_returns_defaults(client):
    body = _open(client)

    assert body["step"] == 1
    assert body["step_title"] == "Basic Details"
    assert body["total_steps"] == 6
    assert body["can_proceed"] is False
    assert body["form"]["parameters"]["term"] == "2025-26"
    assert body["form"]["parameters"]["max_marks"] == 100
    assert body["form"]["mode"] is None
    assert "Custom" in body["exam_types"]
    assert [c["id"] for c in body["classes"]] == ["c10a", "c10b", "c9a"]


def test_unknown_wizard_is_404(client):
    r = client.get("/api/exam-wizards/00000000-0000-0000-0000-000000000000", headers=_auth())

    assert r.status_code == 404
    assert r.json()["detail"] == "WIZARD_NOT_FOUND"


def test_class_step_blocks_without_selection(client):
    wizard_id = _open(client)["id"]
    h = _auth()
    client.patch(
        f"/api/exam-wizards/{wizard_id}/parameters",
        headers=h,
        json={"name": "Unit Test 1", "start_date": "2025-03-10", "end_date": "2025-03-10"},
    )
    assert client.post(f"/api/exam-wizards/{wizard_id}/next", headers=h).json()["step"] == 2

    body = client.post(f"/api/exam-wizards/{wizard_id}/next", headers=h).json()

    assert body["step"] == 2
    assert body["can_proceed"] is False


def test_invalid_slot_is_rejected(client):
    wizard_id = _open(client)["id"]

    r = client.post(
        f"/api/exam-wizards/{wizard_id}/slots",
        headers=_auth(),
        json={"start_time": "14:00", "end_time": "13:00"},
    )

    assert r.status_code == 422


def test_auto_schedule_grid_and_commit(client, gateway):
    wizard_id = _open(client)["id"]
    body = _walk_to_build(client, wizard_id)
    assert body["step"] == 6
    assert body["total_pairs"] == 6

    body = client.post(f"/api/exam-wizards/{wizard_id}/auto-schedule", headers=_auth()).json()
    assert len(body["form"]["schedule"]) == 4
    assert body["unscheduled_subject_ids"] == ["eng"]
    assert body["can_proceed"] is True

    grid = client.get(f"/api/exam-wizards/{wizard_id}/grid", headers=_auth()).json()
    assert [d["date"] for d in grid["days"]] == ["2025-03-10", "2025-03-11"]
    assert grid["entries"] == 4
    assert len(grid["days"][0]["slots"]) == 2

    r = client.post(f"/api/exam-wizards/{wizard_id}/commit", headers=_auth())
    assert r.status_code == 200, r.text
    committed = r.json()
    assert committed["created"] == 4
    assert {e["name"] for e in committed["exams"]} == {"Mid-Term Exam (2025-26)"}
    assert {e["exam_time"] for e in committed["exams"]} == {"09:30 - 11:30"}
    assert len(gateway.inserted) == 1

    # The draft is gone once committed.
    assert client.get(f"/api/exam-wizards/{wizard_id}", headers=_auth()).status_code == 404


def test_manual_cell_edits(client):
    wizard_id = _open(client)["id"]
    _walk_to_build(client, wizard_id)
    base = f"/api/exam-wizards/{wizard_id}"
    cell = {"date": "2025-03-10", "slot_id": "1", "class_id": "c10a"}

    body = client.put(f"{base}/cells", headers=_auth(), json={**cell, "subject_id": "math"}).json()
    assert body["last_assignment_accepted"] is True
    body = client.put(f"{base}/cells", headers=_auth(), json={**cell, "subject_id": "sci"}).json()
    assert [e["subject_id"] for e in body["form"]["schedule"]] == ["sci"]

    body = client.request("DELETE", f"{base}/cells", headers=_auth(), json=cell).json()
    assert body["form"]["schedule"] == []


def test_commit_with_empty_schedule(client, gateway):
    wizard_id = _open(client)["id"]

    r = client.post(f"/api/exam-wizards/{wizard_id}/commit", headers=_auth())

    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "NOTHING_TO_SCHEDULE"
    assert gateway.inserted == []


def test_failed_commit_keeps_the_draft(client, gateway):
    wizard_id = _open(client)["id"]
    _walk_to_build(client, wizard_id)
    client.post(f"/api/exam-wizards/{wizard_id}/auto-schedule", headers=_auth())
    gateway.fail_with = "insert rejected"

    r = client.post(f"/api/exam-wizards/{wizard_id}/commit", headers=_auth())

    assert r.status_code == 502
    assert r.json()["detail"] == {"code": "COMMIT_FAILED", "message": "insert rejected"}
    body = client.get(f"/api/exam-wizards/{wizard_id}", headers=_auth()).json()
    assert body["step"] == 6
    assert len(body["form"]["schedule"]) == 4


def test_close_wizard(client):
    wizard_id = _open(client)["id"]

    assert client.delete(f"/api/exam-wizards/{wizard_id}", headers=_auth()).json() == {"ok": True}
    assert client.get(f"/api/exam-wizards/{wizard_id}", headers=_auth()).status_code == 404


def test_schedule_view_is_open_to_any_signed_in_role(client):
    wizard_id = _open(client)["id"]
    _walk_to_build(client, wizard_id)
    client.post(f"/api/exam-wizards/{wizard_id}/auto-schedule", headers=_auth())
    client.post(f"/api/exam-wizards/{wizard_id}/commit", headers=_auth())

    r = client.get("/api/exams/schedule", headers=_auth("PARENT"), params={"class_id": "c10b"})

    assert r.status_code == 200
    body = r.json()
    assert body["exam_names"] == ["Mid-Term Exam (2025-26)"]
    (session,) = body["sessions"]
    assert session["entry_count"] == 2
    assert {row["class_label"] for day in session["days"] for row in day["rows"]} == {"10-B"}


def test_concurrent_edits_to_one_wizard_are_not_lost(client, monkeypatch):
    wizard_id = uuid.UUID(_open(client)["id"])
    store = app.dependency_overrides[get_wizard_store]()
    real_apply = wz.apply

    def slow_apply(state, event):
        time.sleep(0.1)
        return real_apply(state, event)

    monkeypatch.setattr(wz, "apply", slow_apply)
    start = threading.Barrier(2)

    def toggle(class_id):
        start.wait()
        exam_wizard_routes._dispatch(store, wizard_id, wz.ToggleClass(class_id=class_id))

    threads = [threading.Thread(target=toggle, args=(cid,)) for cid in ("c10a", "c10b")]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert set(store.get(wizard_id).state.form.selected_classes) == {"c10a", "c10b"}


def test_mode_change_outside_its_step_is_ignored(client):
    wizard_id = _open(client)["id"]
    _walk_to_build(client, wizard_id)

    body = client.put(f"/api/exam-wizards/{wizard_id}/mode", headers=_auth(), json={"mode": "manual"}).json()

    assert body["form"]["mode"] == "auto"


def test_view_reports_entries_hidden_from_the_grid(client):
    wizard_id = _open(client)["id"]
    _walk_to_build(client, wizard_id)
    base = f"/api/exam-wizards/{wizard_id}"
    cell = {"date": "2025-03-10", "slot_id": "1", "class_id": "c10b", "subject_id": "math"}
    assert client.put(f"{base}/cells", headers=_auth(), json=cell).json()["off_grid_entries"] == 0

    body = client.post(f"{base}/classes/toggle", headers=_auth(), json={"class_id": "c10b"}).json()

    assert body["off_grid_entries"] == 1
    assert len(body["form"]["schedule"]) == 1
