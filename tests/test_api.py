# tests/test_api.py

from __future__ import annotations

from presentation import app
from services.auth_service import create_access_token

from .fakes import wait_until


def _connect_as(ws, user_id: int) -> None:
    assert ws.receive_json() == {"type": "connected"}
    ws.send_json({"type": "auth", "userId": user_id})
    wait_until(lambda: app.state.registry.lookup(user_id) is not None)


# -----------------------------------------------------------------------------
# Auth & users
# -----------------------------------------------------------------------------
class TestAuth:
    def test_signup_login_and_me(self, client, signup) -> None:
        user_id, headers = signup("alice", "Alice Liddell")

        resp = client.post("/auth/login", json={"username": "alice", "password": "secret123"})
        assert resp.status_code == 200
        assert resp.json()["user_id"] == user_id

        me = client.get("/auth/me", headers=headers).json()
        assert me == {"id": user_id, "username": "alice", "name": "Alice Liddell"}

    def test_duplicate_username_and_bad_password(self, client, signup) -> None:
        signup("alice")
        resp = client.post("/auth/signup",
                           json={"username": "alice", "password": "secret123", "name": "Al"})
        assert resp.status_code == 409

        resp = client.post("/auth/login", json={"username": "alice", "password": "wrong-pass"})
        assert resp.status_code == 401

    def test_signup_validation(self, client) -> None:
        resp = client.post("/auth/signup", json={"username": "al", "password": "123", "name": "A"})
        assert resp.status_code == 422

    def test_requires_token(self, client) -> None:
        assert client.get("/tasks/").status_code in (401, 403)
        resp = client.get("/tasks/", headers={"Authorization": "Bearer garbage"})
        assert resp.status_code == 401

    def test_token_for_unknown_user_is_rejected(self, client) -> None:
        token = create_access_token(404, "ghost")
        resp = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 401
        assert resp.json()["detail"] == "User not found"

    def test_user_directory(self, client, signup) -> None:
        _, headers = signup("zed", "Zed")
        signup("amy", "Amy")
        names = [u["name"] for u in client.get("/users/", headers=headers).json()]
        assert names == ["Amy", "Zed"]


# -----------------------------------------------------------------------------
# Tasks
# -----------------------------------------------------------------------------
class TestTasks:
    def test_crud_round(self, client, signup) -> None:
        alice_id, alice = signup("alice")
        bob_id, bob = signup("bob")

        resp = client.post("/tasks/", json={"title": "Write docs", "priority": "high",
                                            "assignee_id": bob_id}, headers=alice)
        assert resp.status_code == 201
        task = resp.json()
        assert task["status"] == "todo"
        assert task["creator"]["id"] == alice_id
        assert task["assignee"]["username"] == "bob"

        assert client.get(f"/tasks/{task['id']}", headers=bob).json()["title"] == "Write docs"

        resp = client.patch(f"/tasks/{task['id']}", json={"status": "in_progress"}, headers=bob)
        assert resp.status_code == 200
        assert resp.json()["status"] == "in_progress"

        assert client.delete(f"/tasks/{task['id']}", headers=bob).status_code == 403
        assert client.delete(f"/tasks/{task['id']}", headers=alice).status_code == 200
        assert client.get(f"/tasks/{task['id']}", headers=alice).status_code == 404

    def test_rejections_are_distinct(self, client, signup) -> None:
        _, alice = signup("alice")
        _, carol = signup("carol")
        task_id = client.post("/tasks/", json={"title": "Private"}, headers=alice).json()["id"]

        assert client.patch(f"/tasks/{task_id}", json={"title": "Mine now"},
                            headers=carol).status_code == 403
        assert client.patch("/tasks/9999", json={"title": "Nothing"}, headers=carol).status_code == 404
        assert client.patch(f"/tasks/{task_id}", json={"title": "no"}, headers=alice).status_code == 422
        assert client.patch(f"/tasks/{task_id}", json={"assignee_id": 9999},
                            headers=alice).status_code == 400

    def test_validation(self, client, signup) -> None:
        _, alice = signup("alice")
        assert client.post("/tasks/", json={"title": "ab"}, headers=alice).status_code == 422
        assert client.post("/tasks/", json={"title": "Fine", "description": "tiny"},
                           headers=alice).status_code == 422
        assert client.post("/tasks/", json={"title": "Fine", "status": "blocked"},
                           headers=alice).status_code == 422
        assert client.post("/tasks/", json={"title": "Fine", "description": ""},
                           headers=alice).status_code == 201

    def test_queries(self, client, signup) -> None:
        _, alice = signup("alice")
        bob_id, bob = signup("bob")
        client.post("/tasks/", json={"title": "Budget review", "assignee_id": bob_id,
                                     "priority": "urgent"}, headers=alice)
        client.post("/tasks/", json={"title": "Old chore", "due_date": "2020-01-01T09:00:00Z"},
                    headers=alice)

        assert [t["title"] for t in client.get("/tasks/me?type=assigned", headers=bob).json()] == [
            "Budget review"
        ]
        assert client.get("/tasks/me?type=bogus", headers=bob).status_code == 422
        assert len(client.get("/tasks/status/todo", headers=bob).json()) == 2
        assert [t["title"] for t in client.get("/tasks/overdue", headers=alice).json()] == ["Old chore"]
        assert [t["title"] for t in client.get("/tasks/search?q=budget", headers=bob).json()] == [
            "Budget review"
        ]
        assert client.get("/tasks/search?q=", headers=bob).status_code == 400
        urgent = client.get("/tasks/filter?priority=urgent&status=all", headers=alice).json()
        assert [t["title"] for t in urgent] == ["Budget review"]
        assert client.get("/tasks/filter?status=blocked", headers=alice).status_code == 400
        assert client.get("/tasks/?priority=urgent", headers=alice).json()[0]["title"] == "Budget review"


# -----------------------------------------------------------------------------
# Notifications & real time
# -----------------------------------------------------------------------------
class TestNotifications:
    def test_assignment_is_pushed_to_connected_assignee(self, client, signup) -> None:
        _, alice = signup("alice")
        bob_id, bob = signup("bob")

        with client.websocket_connect("/ws") as ws:
            _connect_as(ws, bob_id)
            resp = client.post("/tasks/", json={"title": "Draft spec", "assignee_id": bob_id},
                               headers=alice)
            assert resp.status_code == 201
            message = ws.receive_json()

        assert message["type"] == "notification"
        assert message["data"]["user_id"] == bob_id
        assert message["data"]["task_id"] == resp.json()["id"]
        assert "Draft spec" in message["data"]["message"]

        stored = client.get("/notifications/", headers=bob).json()
        assert [n["id"] for n in stored] == [message["data"]["id"]]
        wait_until(lambda: app.state.registry.lookup(bob_id) is None)

    def test_completion_while_creator_offline_then_mark_read(self, client, signup) -> None:
        alice_id, alice = signup("alice")
        bob_id, bob = signup("bob")
        task_id = client.post("/tasks/", json={"title": "Draft spec", "assignee_id": bob_id},
                              headers=alice).json()["id"]

        resp = client.patch(f"/tasks/{task_id}", json={"status": "completed"}, headers=bob)
        assert resp.status_code == 200

        unread = client.get("/notifications/?unread_only=true", headers=alice).json()
        assert len(unread) == 1
        assert unread[0]["user_id"] == alice_id
        assert unread[0]["is_read"] is False
        assert client.get("/notifications/unread-count", headers=alice).json() == {"count": 1}

        for _ in range(2):
            resp = client.patch(f"/notifications/{unread[0]['id']}/read", headers=alice)
            assert resp.status_code == 200
            assert resp.json()["is_read"] is True
        assert client.get("/notifications/unread-count", headers=alice).json() == {"count": 0}

        # repeating the completion adds nothing
        client.patch(f"/tasks/{task_id}", json={"status": "completed"}, headers=bob)
        assert len(client.get("/notifications/", headers=alice).json()) == 1

    def test_mark_read_of_someone_elses_notification_is_404(self, client, signup) -> None:
        _, alice = signup("alice")
        bob_id, bob = signup("bob")
        client.post("/tasks/", json={"title": "Draft spec", "assignee_id": bob_id}, headers=alice)
        notif_id = client.get("/notifications/", headers=bob).json()[0]["id"]

        assert client.patch(f"/notifications/{notif_id}/read", headers=alice).status_code == 404
        assert client.patch("/notifications/read-all", headers=bob).json()["count"] == 1

    def test_explicit_send_stores_and_pushes(self, client, signup) -> None:
        alice_id, alice = signup("alice")
        bob_id, _ = signup("bob")
        task_id = client.post("/tasks/", json={"title": "Heads up"}, headers=alice).json()["id"]

        with client.websocket_connect("/ws") as ws:
            _connect_as(ws, bob_id)
            resp = client.post("/notifications/send",
                               json={"user_id": bob_id, "task_id": task_id, "message": "Look"},
                               headers=alice)
            assert resp.status_code == 201
            message = ws.receive_json()

        assert message == {"type": "notification", "data": resp.json()}

        assert client.post("/notifications/send",
                           json={"user_id": alice_id, "task_id": task_id, "message": "Me"},
                           headers=alice).status_code == 400
        assert client.post("/notifications/send",
                           json={"user_id": 999, "task_id": task_id, "message": "Nobody"},
                           headers=alice).status_code == 404
        assert client.post("/notifications/send",
                           json={"user_id": bob_id, "task_id": task_id, "message": ""},
                           headers=alice).status_code == 422

    def test_malformed_socket_messages_keep_connection_open(self, client, signup) -> None:
        _, alice = signup("alice")
        bob_id, _ = signup("bob")

        with client.websocket_connect("/ws") as ws:
            assert ws.receive_json() == {"type": "connected"}
            ws.send_text("definitely not json")
            ws.send_json({"type": "auth"})
            ws.send_json({"type": "auth", "userId": bob_id})
            wait_until(lambda: app.state.registry.lookup(bob_id) is not None)

            client.post("/tasks/", json={"title": "Still here", "assignee_id": bob_id}, headers=alice)
            assert ws.receive_json()["type"] == "notification"
