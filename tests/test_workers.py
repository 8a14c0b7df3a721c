from cutroom import db
from cutroom.models import ProductionTask

from conftest import plan_body


def test_list_and_get_workers(client):
    r = client.get("/api/workers")
    assert [w["name"] for w in r.json["data"]] == ["Admin", "Maya", "Ravi"]
    assert "password_hash" not in r.json["data"][0]
    assert client.get("/api/workers/3").json["data"]["worker_group"] == "spreading"


def test_second_admin_or_manager_rejected(client):
    r = client.post("/api/workers", json={"name": "Root", "role": "admin", "password": "pw"})
    assert r.status_code == 400 and "admin" in r.json["message"]
    r = client.post("/api/workers", json={"name": "Boss", "role": "manager"})
    assert r.status_code == 400 and "manager" in r.json["message"]
    r = client.put("/api/workers/3", json={"name": "Ravi", "role": "manager"})
    assert r.status_code == 400 and "manager" in r.json["message"]


def test_duplicate_name_rejected(client):
    r = client.post("/api/workers", json={"name": "Ravi"})
    assert r.status_code == 400 and "Ravi" in r.json["message"]


def test_worker_crud(client):
    r = client.post("/api/workers", json={"name": "Lena", "role": "pattern_maker", "notes": "nights"})
    assert r.status_code == 201
    wid = r.json["data"]["id"]
    r = client.put(f"/api/workers/{wid}", json={"name": "Lena K", "role": "worker", "is_active": False})
    assert r.status_code == 200
    assert r.json["data"]["name"] == "Lena K" and r.json["data"]["is_active"] is False
    assert client.delete(f"/api/workers/{wid}").status_code == 200
    assert client.get(f"/api/workers/{wid}").status_code == 404


def test_invalid_role_rejected(client):
    r = client.post("/api/workers", json={"name": "X", "role": "owner"})
    assert r.status_code == 400


def test_admin_cannot_be_deleted(client):
    r = client.delete("/api/workers/1")
    assert r.status_code == 400
    assert client.get("/api/workers/1").status_code == 200


def test_worker_with_logs_cannot_be_deleted(client):
    client.post("/api/production-logs", json={"worker_id": 3, "process_name": "issue"})
    assert client.delete("/api/workers/3").status_code == 409


def test_password_permissions(client):
    # admin may change anyone's password
    r = client.put("/api/workers/2/password", json={"password": "new-pw"}, headers={"X-Worker-ID": "1"})
    assert r.status_code == 200
    # manager may change a worker's password, not the admin's
    r = client.put("/api/workers/3/password", json={"password": "floor"}, headers={"X-Worker-ID": "2"})
    assert r.status_code == 200
    r = client.put("/api/workers/1/password", json={"password": "x"}, headers={"X-Worker-ID": "2"})
    assert r.status_code == 403
    # plain workers may not change passwords at all
    r = client.put("/api/workers/3/password", json={"password": "x"}, headers={"X-Worker-ID": "3"})
    assert r.status_code == 403
    r = client.put("/api/workers/3/password", json={"password": "x"})
    assert r.status_code == 403

    assert client.post("/api/auth/login", json={"name": "Maya", "password": "new-pw"}).status_code == 200
    assert client.post("/api/auth/login", json={"name": "Ravi", "password": "floor"}).status_code == 200


def test_login(client):
    r = client.post("/api/auth/login", json={"name": "Admin", "password": "secret"})
    assert r.status_code == 200 and r.json["data"]["role"] == "admin"
    r = client.post("/api/auth/login", json={"name": "Admin", "password": "wrong"})
    assert r.status_code == 401 and r.json["success"] is False
    # no password set yet
    r = client.post("/api/auth/login", json={"name": "Ravi", "password": "anything"})
    assert r.status_code == 401


def test_inactive_worker_cannot_login(client):
    client.put("/api/workers/2", json={"name": "Maya", "role": "manager", "is_active": False})
    r = client.post("/api/auth/login", json={"name": "Maya", "password": "manager-pw"})
    assert r.status_code == 401 and "disabled" in r.json["message"]


def test_worker_task_board(client, app):
    client.post("/api/production-plans", json=plan_body())
    done = db.session.get(ProductionTask, 3)
    done.completed_layers = done.planned_layers
    db.session.get(ProductionTask, 1).completed_layers = 10
    db.session.commit()

    r = client.get("/api/workers/3/tasks")
    assert r.status_code == 200
    [group] = r.json["data"]
    assert group["plan_name"] == "Spring run" and group["style_number"] == "ABC"
    # totals over unfinished tasks only, task list over the whole plan
    assert group["total_planned"] == 60 and group["total_completed"] == 10
    assert [t["id"] for t in group["tasks"]] == [1, 2, 3]

    assert client.get("/api/workers/99/tasks").status_code == 404


def test_worker_board_empty_when_all_done(client, app):
    client.post("/api/production-plans", json=plan_body())
    for task in ProductionTask.query:
        task.completed_layers = task.planned_layers
    db.session.commit()
    assert client.get("/api/workers/3/tasks").json["data"] == []


def test_worker_logs_newest_first(client):
    first = client.post("/api/production-logs", json={"worker_id": 3, "process_name": "issue"}).json["data"]["id"]
    second = client.post("/api/production-logs", json={"worker_id": 3, "process_name": "pack"}).json["data"]["id"]
    client.post("/api/production-logs", json={"worker_id": 2, "process_name": "pack"})
    r = client.get("/api/workers/3/logs")
    assert [l["id"] for l in r.json["data"]] == [second, first]
