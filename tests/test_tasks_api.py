from fastapi.testclient import TestClient

from taskboard.api.main import create_app
from taskboard.api.repositories import InMemoryTaskRepository, InMemoryUserRepository, Repositories

from .conftest import assert_task_shape, task_payload


def create(client, headers, **fields):
    res = client.post("/api/tasks", json=task_payload(**fields), headers=headers)
    assert res.status_code == 201, res.text
    return res.json()["data"]["task"]


def list_tasks(client, headers, **params):
    res = client.get("/api/tasks", params=params, headers=headers)
    assert res.status_code == 200, res.text
    return res.json()


class TestHealth:
    def test_health_check(self, client):
        res = client.get("/api/health")
        assert res.status_code == 200
        body = res.json()
        assert body["success"] is True
        assert body["message"] == "Server is running"
        assert body["backend"] == "memory"
        assert "timestamp" in body

    def test_unknown_route_uses_error_envelope(self, client):
        res = client.get("/api/nope")
        assert res.status_code == 404
        assert res.json() == {"success": False, "message": "Not Found"}


class TestTaskCrud:
    def test_create_and_get(self, client, auth_headers):
        task = create(client, auth_headers, title="Write docs", priority="high", dueDate="2099-05-01")
        assert_task_shape(task)
        assert task["title"] == "Write docs"
        assert task["priority"] == "high"
        assert task["status"] == "todo"
        assert task["position"] == 0
        assert task["dueDate"].startswith("2099-05-01T00:00:00")

        res = client.get(f"/api/tasks/{task['id']}", headers=auth_headers)
        assert res.status_code == 200
        assert res.json() == {"success": True, "data": {"task": task}}

    def test_positions_append_per_column(self, client, auth_headers):
        assert create(client, auth_headers, title="A")["position"] == 0
        assert create(client, auth_headers, title="B")["position"] == 1
        assert create(client, auth_headers, title="C", status="completed")["position"] == 0

    def test_client_supplied_position_is_ignored(self, client, auth_headers):
        create(client, auth_headers, title="A")
        assert create(client, auth_headers, title="B", position=42)["position"] == 1

    def test_title_and_description_are_trimmed(self, client, auth_headers):
        task = create(client, auth_headers, title="  Spaced  ", description="  text ")
        assert task["title"] == "Spaced"
        assert task["description"] == "text"

    def test_update_put_and_patch(self, client, auth_headers):
        task = create(client, auth_headers, title="A")
        res = client.put(
            f"/api/tasks/{task['id']}", json={"title": "A2", "status": "in-progress"}, headers=auth_headers
        )
        assert res.status_code == 200, res.text
        updated = res.json()["data"]["task"]
        assert updated["title"] == "A2"
        assert updated["status"] == "in-progress"
        assert updated["description"] == task["description"]

        res = client.patch(f"/api/tasks/{task['id']}", json={"priority": "low"}, headers=auth_headers)
        assert res.status_code == 200
        assert res.json()["data"]["task"]["priority"] == "low"
        assert res.json()["data"]["task"]["title"] == "A2"

    def test_update_null_clears_optional_fields(self, client, auth_headers):
        task = create(client, auth_headers, title="A", dueDate="2099-01-01")
        res = client.patch(
            f"/api/tasks/{task['id']}", json={"description": None, "dueDate": None}, headers=auth_headers
        )
        assert res.status_code == 200
        updated = res.json()["data"]["task"]
        assert updated["description"] is None
        assert updated["dueDate"] is None

    def test_delete_then_get_is_not_found(self, client, auth_headers):
        task = create(client, auth_headers, title="A")
        res = client.delete(f"/api/tasks/{task['id']}", headers=auth_headers)
        assert res.status_code == 204
        assert res.content == b""

        res = client.get(f"/api/tasks/{task['id']}", headers=auth_headers)
        assert res.status_code == 404
        assert res.json() == {"success": False, "message": "Task not found"}

        res = client.delete(f"/api/tasks/{task['id']}", headers=auth_headers)
        assert res.status_code == 404


class TestOwnership:
    def test_other_users_task_looks_absent(self, client, register):
        alice = register(email="alice@example.com")
        bob = register(email="bob@example.com")
        task = create(client, alice["headers"], title="Private")

        foreign = client.get(f"/api/tasks/{task['id']}", headers=bob["headers"])
        missing = client.get("/api/tasks/9999", headers=bob["headers"])
        assert foreign.status_code == missing.status_code == 404
        assert foreign.json() == missing.json()

    def test_other_user_cannot_modify(self, client, register):
        alice = register(email="alice@example.com")
        bob = register(email="bob@example.com")
        task = create(client, alice["headers"], title="Private")

        assert client.put(f"/api/tasks/{task['id']}", json={"title": "x"}, headers=bob["headers"]).status_code == 404
        assert client.delete(f"/api/tasks/{task['id']}", headers=bob["headers"]).status_code == 404
        drag = {"from": {"status": "todo", "index": 0}, "to": {"status": "completed", "index": 0}, "task": task}
        assert client.put("/api/tasks/reorder", json=drag, headers=bob["headers"]).status_code == 404

        res = client.get(f"/api/tasks/{task['id']}", headers=alice["headers"])
        assert res.json()["data"]["task"]["title"] == "Private"
        assert res.json()["data"]["task"]["status"] == "todo"

    def test_list_never_returns_other_users_tasks(self, client, register):
        alice = register(email="alice@example.com")
        bob = register(email="bob@example.com")
        create(client, alice["headers"], title="A")
        create(client, bob["headers"], title="B")

        for params in ({}, {"status": "todo"}, {"priority": "medium"}):
            body = list_tasks(client, bob["headers"], **params)
            assert [t["title"] for t in body["data"]["tasks"]] == ["B"]
            assert body["results"] == 1

    def test_positions_are_per_user(self, client, register):
        alice = register(email="alice@example.com")
        bob = register(email="bob@example.com")
        create(client, alice["headers"], title="A")
        assert create(client, bob["headers"], title="B")["position"] == 0


class TestListFilterSort:
    def seed(self, client, headers):
        create(client, headers, title="b", priority="low", status="todo")
        create(client, headers, title="a", priority="high", status="in-progress")
        create(client, headers, title="c", priority="medium", status="completed")
        create(client, headers, title="d", priority="high", status="todo")

    def titles(self, body):
        return [t["title"] for t in body["data"]["tasks"]]

    def test_envelope_and_default_newest_first(self, client, auth_headers):
        self.seed(client, auth_headers)
        body = list_tasks(client, auth_headers)
        assert body["success"] is True
        assert body["results"] == 4
        assert self.titles(body) == ["d", "c", "a", "b"]
        for task in body["data"]["tasks"]:
            assert_task_shape(task)

    def test_filter_by_status(self, client, auth_headers):
        self.seed(client, auth_headers)
        body = list_tasks(client, auth_headers, status="todo")
        assert sorted(self.titles(body)) == ["b", "d"]
        assert all(t["status"] == "todo" for t in body["data"]["tasks"])

    def test_filter_by_priority_and_status(self, client, auth_headers):
        self.seed(client, auth_headers)
        assert self.titles(list_tasks(client, auth_headers, priority="high", status="todo")) == ["d"]

    def test_sort_by_priority_rank(self, client, auth_headers):
        self.seed(client, auth_headers)
        assert self.titles(list_tasks(client, auth_headers, sort="priority")) == ["b", "c", "a", "d"]

    def test_sort_by_title_descending(self, client, auth_headers):
        self.seed(client, auth_headers)
        assert self.titles(list_tasks(client, auth_headers, sort="-title")) == ["d", "c", "b", "a"]

    def test_unknown_sort_falls_back_to_newest_first(self, client, auth_headers):
        self.seed(client, auth_headers)
        assert self.titles(list_tasks(client, auth_headers, sort="passwordHash")) == ["d", "c", "a", "b"]

    def test_invalid_status_filter_is_rejected(self, client, auth_headers):
        res = client.get("/api/tasks", params={"status": "archived"}, headers=auth_headers)
        assert res.status_code == 400
        assert res.json()["errors"][0]["field"] == "status"


class TestReorder:
    def drag(self, task, from_status, from_index, to_status, to_index):
        return {
            "from": {"status": from_status, "index": from_index},
            "to": {"status": to_status, "index": to_index},
            "task": task,
        }

    def test_move_within_column(self, client, auth_headers):
        a, b, c = (create(client, auth_headers, title=t) for t in "ABC")
        res = client.put("/api/tasks/reorder", json=self.drag(a, "todo", 0, "todo", 2), headers=auth_headers)
        assert res.status_code == 200, res.text
        data = res.json()["data"]
        assert data["task"]["id"] == a["id"]
        assert data["task"]["position"] == 2
        assert [(t["title"], t["position"]) for t in data["updated"]] == [("B", 0), ("C", 1), ("A", 2)]

    def test_move_across_columns_renumbers_both(self, client, auth_headers):
        a, b = (create(client, auth_headers, title=t) for t in "AB")
        x = create(client, auth_headers, title="X", status="in-progress")
        res = client.put(
            "/api/tasks/reorder", json=self.drag(a, "todo", 0, "in-progress", 0), headers=auth_headers
        )
        assert res.status_code == 200, res.text
        data = res.json()["data"]
        assert data["task"]["status"] == "in-progress"

        by_id = {t["id"]: t for t in data["updated"]}
        assert (by_id[a["id"]]["status"], by_id[a["id"]]["position"]) == ("in-progress", 0)
        assert (by_id[x["id"]]["status"], by_id[x["id"]]["position"]) == ("in-progress", 1)
        assert (by_id[b["id"]]["status"], by_id[b["id"]]["position"]) == ("todo", 0)
        # Sorted by position
        assert [t["position"] for t in data["updated"]] == sorted(t["position"] for t in data["updated"])

    def test_index_past_end_is_clamped(self, client, auth_headers):
        a = create(client, auth_headers, title="A")
        create(client, auth_headers, title="Done", status="completed")
        res = client.put(
            "/api/tasks/reorder", json=self.drag(a, "todo", 0, "completed", 50), headers=auth_headers
        )
        assert res.status_code == 200
        assert res.json()["data"]["task"]["position"] == 1

    def test_only_task_id_is_required(self, client, auth_headers):
        a = create(client, auth_headers, title="A")
        res = client.put(
            "/api/tasks/reorder",
            json=self.drag({"id": a["id"]}, "todo", 0, "completed", 0),
            headers=auth_headers,
        )
        assert res.status_code == 200
        assert res.json()["data"]["task"]["status"] == "completed"

    def test_invalid_drag_is_rejected(self, client, auth_headers):
        a = create(client, auth_headers, title="A")
        res = client.put(
            "/api/tasks/reorder", json=self.drag(a, "todo", 0, "blocked", -1), headers=auth_headers
        )
        assert res.status_code == 400
        fields = {e["field"] for e in res.json()["errors"]}
        assert {"to.status", "to.index"} <= fields

    def test_unknown_task_is_not_found(self, client, auth_headers):
        res = client.put(
            "/api/tasks/reorder", json=self.drag({"id": 404}, "todo", 0, "todo", 0), headers=auth_headers
        )
        assert res.status_code == 404
        assert res.json()["message"] == "Task not found"


class TestValidation:
    def test_missing_title(self, client, auth_headers):
        res = client.post("/api/tasks", json={"description": "no title"}, headers=auth_headers)
        assert res.status_code == 400
        body = res.json()
        assert body["success"] is False
        assert body["message"] == "Validation failed"
        assert [e["field"] for e in body["errors"]] == ["title"]

    def test_blank_and_overlong_title(self, client, auth_headers):
        for title in ("   ", "x" * 101):
            res = client.post("/api/tasks", json={"title": title}, headers=auth_headers)
            assert res.status_code == 400
            assert res.json()["errors"][0] == {
                "field": "title",
                "message": "Title must be between 1 and 100 characters",
            }

    def test_overlong_description(self, client, auth_headers):
        res = client.post("/api/tasks", json={"title": "A", "description": "x" * 501}, headers=auth_headers)
        assert res.status_code == 400
        assert res.json()["errors"][0]["field"] == "description"

    def test_bad_enum_values(self, client, auth_headers):
        res = client.post(
            "/api/tasks", json={"title": "A", "priority": "urgent", "status": "doing"}, headers=auth_headers
        )
        assert res.status_code == 400
        assert {e["field"] for e in res.json()["errors"]} == {"priority", "status"}

    def test_due_date_must_be_future(self, client, auth_headers):
        res = client.post("/api/tasks", json={"title": "A", "dueDate": "2000-01-01"}, headers=auth_headers)
        assert res.status_code == 400
        assert res.json()["errors"][0] == {"field": "dueDate", "message": "Due date must be in the future"}

    def test_due_date_must_parse(self, client, auth_headers):
        res = client.post("/api/tasks", json={"title": "A", "dueDate": "next tuesday"}, headers=auth_headers)
        assert res.status_code == 400
        assert res.json()["errors"][0]["field"] == "dueDate"

    def test_update_is_validated_too(self, client, auth_headers):
        task = create(client, auth_headers, title="A")
        res = client.put(
            f"/api/tasks/{task['id']}", json={"dueDate": "2000-01-01", "position": -1}, headers=auth_headers
        )
        assert res.status_code == 400
        assert {e["field"] for e in res.json()["errors"]} == {"dueDate", "position"}

    def test_non_integer_id(self, client, auth_headers):
        res = client.get("/api/tasks/abc", headers=auth_headers)
        assert res.status_code == 400
        assert res.json()["errors"][0]["field"] == "task_id"


class TestAuthRequired:
    def test_task_routes_require_a_token(self, client):
        for method, path in [
            ("get", "/api/tasks"),
            ("post", "/api/tasks"),
            ("get", "/api/tasks/1"),
            ("put", "/api/tasks/1"),
            ("delete", "/api/tasks/1"),
            ("put", "/api/tasks/reorder"),
        ]:
            res = getattr(client, method)(path)
            assert res.status_code == 401, (method, path)
            assert res.json() == {"success": False, "message": "Not authorized to access this route"}


class _FailingTasks(InMemoryTaskRepository):
    def list(self, user_id, query=None):
        raise RuntimeError("disk on fire at /var/lib/secret")


class TestServerErrors:
    def test_unexpected_errors_are_generic(self, settings):
        repos = Repositories(tasks=_FailingTasks(), users=InMemoryUserRepository())
        client = TestClient(create_app(settings=settings, repositories=repos), raise_server_exceptions=False)
        token = client.post(
            "/api/auth/register", json={"name": "Ada", "email": "ada@example.com", "password": "secret1"}
        ).json()["token"]

        res = client.get("/api/tasks", headers={"Authorization": f"Bearer {token}"})
        assert res.status_code == 500
        assert res.json() == {"success": False, "message": "Internal Server Error"}
        assert "secret" not in res.text


class TestBoardScenario:
    def test_register_create_list_reorder(self, client, register):
        user = register(email="u@example.com")
        headers = user["headers"]
        a = create(client, headers, title="A", status="todo")
        b = create(client, headers, title="B", status="todo")
        c = create(client, headers, title="C", status="in-progress")

        todo = list_tasks(client, headers, status="todo", sort="createdAt")["data"]["tasks"]
        assert [t["id"] for t in todo] == [a["id"], b["id"]]
        assert [t["position"] for t in todo] == [0, 1]
        assert all(t["user"] == user["id"] for t in todo)

        drag = {"from": {"status": "todo", "index": 0}, "to": {"status": "in-progress", "index": 0}, "task": a}
        assert client.put("/api/tasks/reorder", json=drag, headers=headers).status_code == 200

        tasks = {t["id"]: t for t in list_tasks(client, headers)["data"]["tasks"]}
        assert tasks[a["id"]]["status"] == "in-progress"
        assert tasks[a["id"]]["position"] == 0
        assert tasks[c["id"]]["position"] == 1
        assert tasks[b["id"]]["position"] == 0
