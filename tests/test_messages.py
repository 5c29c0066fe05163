from botocore.exceptions import ClientError

from bookcircle import database
from bookcircle.routes import message as message_routes
from bookcircle.routes import user as user_routes


def send(client, to, text):
    return client.post("/messages", json={"to": to, "text": text})


def test_reply_shows_in_conversation_and_thread(alice, bob):
    assert send(alice, bob.user_id, "hi").status_code == 200
    assert send(bob, alice.user_id, "hello back").status_code == 200

    conversations = alice.get("/messages/conversations").json()
    assert len(conversations) == 1
    assert conversations[0]["userId"] == bob.user_id
    assert conversations[0]["username"] == "bob"
    assert conversations[0]["lastMessage"] == "hello back"

    thread = alice.get(f"/messages/thread/{bob.user_id}").json()
    assert [m["text"] for m in thread] == ["hi", "hello back"]
    assert thread[0]["sender"] == alice.user_id
    assert thread[0]["recipient"] == bob.user_id
    assert thread[1]["sender"] == bob.user_id


def test_send_returns_stored_message(alice, bob):
    resp = send(alice, bob.user_id, "is the book still available?")

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["message"]["text"] == "is the book still available?"
    assert body["message"]["sender"] == alice.user_id
    assert body["message"]["recipient"] == bob.user_id
    assert body["message"]["read"] is False
    assert "message_key" not in body["message"]


def test_thread_is_the_same_from_both_sides(alice, bob):
    for text in ("one", "two", "three"):
        send(alice, bob.user_id, text)
    send(bob, alice.user_id, "four")

    from_alice = alice.get(f"/messages/thread/{bob.user_id}").json()
    from_bob = bob.get(f"/messages/thread/{alice.user_id}").json()

    assert [m["text"] for m in from_alice] == ["one", "two", "three", "four"]
    assert from_alice == from_bob
    stamps = [m["created_at"] for m in from_alice]
    assert stamps == sorted(stamps)


def test_thread_excludes_other_counterparts(alice, bob, carol):
    send(alice, bob.user_id, "for bob")
    send(alice, carol.user_id, "for carol")
    send(carol, bob.user_id, "carol to bob")

    thread = alice.get(f"/messages/thread/{bob.user_id}").json()

    assert [m["text"] for m in thread] == ["for bob"]


def test_thread_with_unknown_user_is_empty(alice):
    resp = alice.get("/messages/thread/nobody")

    assert resp.status_code == 200
    assert resp.json() == []


def test_one_conversation_per_counterpart_newest_first(alice, bob, carol):
    send(alice, bob.user_id, "first to bob")
    send(carol, alice.user_id, "carol says hi")
    send(bob, alice.user_id, "bob answers")
    send(alice, bob.user_id, "thanks bob")

    conversations = alice.get("/messages/conversations").json()

    assert [c["username"] for c in conversations] == ["bob", "carol"]
    assert conversations[0]["lastMessage"] == "thanks bob"
    assert conversations[1]["lastMessage"] == "carol says hi"
    updated = [c["updatedAt"] for c in conversations]
    assert updated == sorted(updated, reverse=True)


def test_conversations_empty_without_messages(alice):
    resp = alice.get("/messages/conversations")

    assert resp.status_code == 200
    assert resp.json() == []


def test_deleted_counterpart_shows_placeholder(alice, bob):
    send(bob, alice.user_id, "bye")
    database.users_table().delete_item(Key={"user_id": bob.user_id})

    conversations = alice.get("/messages/conversations").json()

    assert conversations == [{
        "userId": bob.user_id,
        "username": "Unknown",
        "lastMessage": "bye",
        "updatedAt": conversations[0]["updatedAt"],
    }]


def test_unknown_recipient_is_not_found_and_not_stored(alice):
    resp = send(alice, "no-such-user", "hello?")

    assert resp.status_code == 404
    assert resp.json()["detail"] == "Recipient not found"
    assert database.fetch_all(database.messages_table().scan) == []


def test_missing_fields_are_rejected(alice, bob):
    assert alice.post("/messages", json={"to": bob.user_id}).status_code == 400
    assert alice.post("/messages", json={"text": "hi"}).status_code == 400
    assert send(alice, bob.user_id, "").status_code == 400
    assert database.fetch_all(database.messages_table().scan) == []


def test_message_to_yourself_is_stored_once(alice):
    resp = send(alice, alice.user_id, "note to self")

    assert resp.status_code == 200
    thread = alice.get(f"/messages/thread/{alice.user_id}").json()
    assert [m["text"] for m in thread] == ["note to self"]
    conversations = alice.get("/messages/conversations").json()
    assert [(c["userId"], c["lastMessage"]) for c in conversations] == [(alice.user_id, "note to self")]
    assert len(message_routes._messages_involving(alice.user_id)) == 1


def test_duplicate_sends_create_duplicates(alice, bob):
    send(alice, bob.user_id, "ping")
    send(alice, bob.user_id, "ping")

    thread = alice.get(f"/messages/thread/{bob.user_id}").json()

    assert [m["text"] for m in thread] == ["ping", "ping"]
    assert thread[0]["message_id"] != thread[1]["message_id"]


def test_messaging_requires_session(client):
    assert client.post("/messages", json={"to": "x", "text": "hi"}).status_code == 401
    assert client.get("/messages/conversations").status_code == 401
    assert client.get("/messages/thread/x").status_code == 401


def test_storage_failure_is_a_generic_server_error(alice, bob, monkeypatch):
    class BrokenTable:
        def put_item(self, **kwargs):
            raise ClientError({"Error": {"Code": "InternalServerError", "Message": "disk on fire"}}, "PutItem")

    monkeypatch.setattr(message_routes, "messages_table", lambda: BrokenTable())

    resp = send(alice, bob.user_id, "hi")

    assert resp.status_code == 500
    assert resp.json() == {"detail": "Internal server error"}


class UnreachableTable:
    def __getattr__(self, name):
        def call(**kwargs):
            raise ClientError({"Error": {"Code": "ValidationException", "Message": "key too large"}}, name)
        return call


def test_oversized_counterpart_id_gives_empty_thread(alice, monkeypatch):
    monkeypatch.setattr(message_routes, "messages_table", lambda: UnreachableTable())

    resp = alice.get(f"/messages/thread/{'x' * 2100}")

    assert resp.status_code == 200
    assert resp.json() == []


def test_oversized_recipient_id_is_not_found(alice, monkeypatch):
    monkeypatch.setattr(user_routes, "users_table", lambda: UnreachableTable())

    resp = send(alice, "x" * 2100, "hello?")

    assert resp.status_code == 404
    assert database.fetch_all(database.messages_table().scan) == []
