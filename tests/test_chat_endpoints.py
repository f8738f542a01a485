import os
import tempfile
from pathlib import Path

# Keep the chat DB out of the repository (must be set before importing the app)
tmp_dir = Path(tempfile.gettempdir()) / "vibeflows_test"
tmp_dir.mkdir(parents=True, exist_ok=True)
os.environ["VIBEFLOWS_CHAT_DB_PATH"] = str(tmp_dir / "chat_test.db")

from fastapi.testclient import TestClient

from vibeflows.main import app
from vibeflows.services import chat_store

client = TestClient(app)


def _new_chat(**payload) -> dict:
    resp = client.post("/api/chats", json=payload)
    assert resp.status_code == 200
    return resp.json()


def test_create_and_get_chat() -> None:
    chat = _new_chat(title="Campaign ideas", user_id="owner-1")
    assert chat["chat_id"].startswith("chat_")
    assert chat["title"] == "Campaign ideas"
    assert chat["user_id"] == "owner-1"
    assert chat["created_at"].endswith("Z")

    resp = client.get(f"/api/chats/{chat['chat_id']}")
    assert resp.status_code == 200
    body = resp.json()
    assert body["chat"]["chat_id"] == chat["chat_id"]
    assert body["messages"] == []


def test_get_unknown_chat_returns_404() -> None:
    resp = client.get("/api/chats/chat_does_not_exist")
    assert resp.status_code == 404
    assert resp.json()["detail"] == "chat not found"


def test_list_chats_filters_by_user_and_orders_by_activity() -> None:
    first = _new_chat(title="older", user_id="lister")
    second = _new_chat(title="newer", user_id="lister")
    _new_chat(title="someone else", user_id="other-user")

    # A new message bumps the first chat back to the top.
    chat_store.insert_message(first["chat_id"], "lister", "ping", "user")

    resp = client.get("/api/chats", params={"user_id": "lister"})
    assert resp.status_code == 200
    ids = [c["chat_id"] for c in resp.json()["chats"]]
    assert ids == [first["chat_id"], second["chat_id"]]

    resp = client.get("/api/chats", params={"user_id": "lister", "limit": 1})
    assert len(resp.json()["chats"]) == 1


def test_rename_chat() -> None:
    chat = _new_chat(title="draft")

    resp = client.patch(f"/api/chats/{chat['chat_id']}", json={"title": "final title"})
    assert resp.status_code == 200
    assert resp.json()["title"] == "final title"

    resp = client.patch(f"/api/chats/{chat['chat_id']}", json={"title": ""})
    assert resp.status_code == 422

    resp = client.patch("/api/chats/chat_missing", json={"title": "x"})
    assert resp.status_code == 404


def test_delete_chat_removes_messages() -> None:
    chat = _new_chat(title="to delete")
    chat_store.insert_message(chat["chat_id"], None, "hello", "user")

    resp = client.delete(f"/api/chats/{chat['chat_id']}")
    assert resp.status_code == 200
    assert resp.json() == {"deleted": True}

    assert client.get(f"/api/chats/{chat['chat_id']}").status_code == 404
    assert chat_store.list_messages(chat["chat_id"]) == []
    assert client.delete(f"/api/chats/{chat['chat_id']}").status_code == 404


def test_post_and_list_messages_oldest_first() -> None:
    chat = _new_chat(title="messages")

    for role, text in (("user", "Q1"), ("assistant", "A1"), ("user", "Q2")):
        resp = client.post(
            "/api/messages",
            json={"chat_id": chat["chat_id"], "text": text, "role": role},
        )
        assert resp.status_code == 201
        created = resp.json()
        assert created["id"].startswith("msg_")
        assert created["type"] == "text"

    resp = client.get("/api/messages", params={"chat_id": chat["chat_id"]})
    assert resp.status_code == 200
    assert [m["text"] for m in resp.json()["messages"]] == ["Q1", "A1", "Q2"]

    detail = client.get(f"/api/chats/{chat['chat_id']}").json()
    assert [m["role"] for m in detail["messages"]] == ["user", "assistant", "user"]


def test_post_message_rejects_unknown_role() -> None:
    chat = _new_chat()
    resp = client.post("/api/messages", json={"chat_id": chat["chat_id"], "text": "x", "role": "robot"})
    assert resp.status_code == 422


def test_latest_message_per_user() -> None:
    mine = _new_chat(title="mine", user_id="latest-user")
    theirs = _new_chat(title="theirs", user_id="latest-other")

    chat_store.insert_message(mine["chat_id"], "latest-user", "older", "user")
    chat_store.insert_message(mine["chat_id"], "latest-user", "newest mine", "assistant")
    chat_store.insert_message(theirs["chat_id"], "latest-other", "not mine", "user")

    resp = client.get("/api/messages/latest", params={"user_id": "latest-user"})
    assert resp.status_code == 200
    assert resp.json()["latest_message"]["text"] == "newest mine"

    resp = client.get("/api/messages/latest", params={"user_id": "nobody-here"})
    assert resp.json() == {"latest_message": None}
