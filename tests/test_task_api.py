from fastapi.testclient import TestClient

from src.server import dependencies
from src.server.app import create_app, get_task_store

PM = {"X-Role": "pm"}
ALICE = {"X-Role": "user", "X-User": "alice"}
BOB = {"X-Role": "user", "X-User": "bob"}


def create_test_client(tmp_path, monkeypatch) -> TestClient:
    db_path = tmp_path / "api_tasks.db"
    monkeypatch.setenv("TASK_MANAGER_DB_PATH", str(db_path))
    get_task_store.cache_clear()
    app = create_app()
    return TestClient(app)


def create_task(client: TestClient, **overrides) -> dict:
    payload = {
        "title": "Prepare slides",
        "description": "For Friday meeting",
        "deadline": "2099-12-10T17:00",
        "assignedUser": "alice",
        **overrides,
    }
    resp = client.post("/api/tasks", json=payload, headers=PM)
    assert resp.status_code == 200, resp.text
    return resp.json()


def test_health_and_users(tmp_path, monkeypatch):
    client = create_test_client(tmp_path, monkeypatch)

    assert client.get("/api/health").json() == {"status": "ok"}
    assert client.get("/api/users").json() == ["alice", "bob", "charlie"]


def test_session_resolution(tmp_path, monkeypatch):
    client = create_test_client(tmp_path, monkeypatch)

    resp = client.get("/api/session", headers=PM)
    assert resp.json() == {"role": "pm", "username": "Project Manager", "display_role": "Project Manager"}

    resp = client.get("/api/session", headers={"X-Role": "user"})
    assert resp.status_code == 400

    resp = client.get("/api/session", headers={"X-Role": "user", "X-User": "mallory"})
    assert resp.status_code == 400


def test_task_api_crud_flow(tmp_path, monkeypatch):
    client = create_test_client(tmp_path, monkeypatch)

    resp = client.get("/api/tasks", headers=PM)
    assert resp.status_code == 200
    assert resp.json() == []

    task = create_task(client, status="Done")
    assert task["status"] == "Pending"
    assert task["assignedUser"] == "alice"
    assert task["overdue"] is False
    task_id = task["id"]

    resp = client.patch(f"/api/tasks/{task_id}", json={"title": "Final slides"}, headers=PM)
    assert resp.status_code == 200
    updated = resp.json()
    assert updated["title"] == "Final slides"
    assert updated["description"] == "For Friday meeting"
    assert updated["createdAt"] == task["createdAt"]

    resp = client.delete(f"/api/tasks/{task_id}", headers=PM)
    assert resp.status_code == 200
    assert resp.json() == {"deleted": True, "id": task_id}

    resp = client.delete(f"/api/tasks/{task_id}", headers=PM)
    assert resp.json() == {"deleted": False, "id": task_id}

    assert client.get("/api/tasks", headers=PM).json() == []


def test_create_validation(tmp_path, monkeypatch):
    client = create_test_client(tmp_path, monkeypatch)

    resp = client.post("/api/tasks", json={"title": " ", "deadline": "2099-01-01T00:00", "assignedUser": "alice"}, headers=PM)
    assert resp.status_code == 422

    resp = client.post("/api/tasks", json={"title": "x", "assignedUser": "alice"}, headers=PM)
    assert resp.status_code == 422

    resp = client.post("/api/tasks", json={"title": "x", "deadline": "2099-01-01T00:00", "assignedUser": "mallory"}, headers=PM)
    assert resp.status_code == 422


def test_user_role_views_and_permissions(tmp_path, monkeypatch):
    client = create_test_client(tmp_path, monkeypatch)
    alice_task = create_task(client, title="for alice")
    bob_task = create_task(client, title="for bob", assignedUser="bob")

    resp = client.get("/api/tasks", headers=BOB)
    assert [t["title"] for t in resp.json()] == ["for bob"]

    resp = client.patch(f"/api/tasks/{bob_task['id']}", json={"status": "In Progress"}, headers=BOB)
    assert resp.status_code == 200
    assert resp.json()["status"] == "In Progress"

    resp = client.patch(f"/api/tasks/{bob_task['id']}", json={"title": "renamed"}, headers=BOB)
    assert resp.status_code == 403

    resp = client.patch(f"/api/tasks/{alice_task['id']}", json={"status": "Done"}, headers=BOB)
    assert resp.status_code == 404

    resp = client.patch(f"/api/tasks/{bob_task['id']}", json={"status": "Blocked"}, headers=BOB)
    assert resp.status_code == 422

    assert client.post("/api/tasks", json={"title": "x"}, headers=ALICE).status_code == 403
    assert client.delete(f"/api/tasks/{alice_task['id']}", headers=ALICE).status_code == 403
    assert client.post("/api/reset", headers=ALICE).status_code == 403


def test_status_filter(tmp_path, monkeypatch):
    client = create_test_client(tmp_path, monkeypatch)
    first = create_task(client, title="first")
    create_task(client, title="second")
    client.patch(f"/api/tasks/{first['id']}", json={"status": "Done"}, headers=ALICE)

    resp = client.get("/api/tasks", params={"status": "Done"}, headers=PM)
    assert [t["title"] for t in resp.json()] == ["first"]

    resp = client.get("/api/tasks", params={"status": "Pending"}, headers=ALICE)
    assert [t["title"] for t in resp.json()] == ["second"]

    resp = client.get("/api/tasks", params={"status": "nope"}, headers=PM)
    assert resp.status_code == 422


def test_overdue_and_reset(tmp_path, monkeypatch):
    client = create_test_client(tmp_path, monkeypatch)
    late = create_task(client, title="Ship v1", deadline="2024-01-01T00:00")
    create_task(client, title="future")

    resp = client.get("/api/overdue", headers=PM)
    assert resp.status_code == 200
    body = resp.json()
    assert body["has_overdue"] is True
    assert [t["id"] for t in body["tasks"]] == [late["id"]]
    assert body["tasks"][0]["overdue"] is True

    client.patch(f"/api/tasks/{late['id']}", json={"status": "Done"}, headers=PM)
    assert client.get("/api/overdue", headers=PM).json() == {"has_overdue": False, "tasks": []}

    resp = client.post("/api/reset", headers=PM)
    assert resp.status_code == 200
    assert resp.json() == {"reset": True, "users": ["alice", "bob", "charlie"]}
    assert client.get("/api/tasks", headers=PM).json() == []


def test_store_reads_happen_under_store_lock(tmp_path, monkeypatch):
    """ハンドラ内の全ストア読み出しはロック保持中のワーカースレッドで行われる"""
    client = create_test_client(tmp_path, monkeypatch)
    task = create_task(client, assignedUser="bob")
    store = get_task_store()
    unlocked_calls = []

    def guarded(name):
        method = getattr(store, name)

        def wrapper(*args, **kwargs):
            if not dependencies._store_lock.locked():
                unlocked_calls.append(name)
            return method(*args, **kwargs)

        return wrapper

    monkeypatch.setattr(store, "get_users", guarded("get_users"))
    monkeypatch.setattr(store, "get_tasks", guarded("get_tasks"))

    client.get("/api/session", headers=BOB)
    client.get("/api/tasks", headers=BOB)
    client.post(
        "/api/tasks",
        json={"title": "t", "deadline": "2099-01-01T00:00", "assignedUser": "alice"},
        headers=PM,
    )
    client.patch(f"/api/tasks/{task['id']}", json={"title": "renamed", "status": "Done"}, headers=PM)
    client.get("/api/overdue", headers=PM)
    resp = client.delete(f"/api/tasks/{task['id']}", headers=PM)

    assert resp.json() == {"deleted": True, "id": task["id"]}
    assert unlocked_calls == []
