"""End-to-end relay over the /ws/chat endpoint."""
from __future__ import annotations

import time

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from estate_chat.api.deps import get_relay
from estate_chat.app import create_app
from tests.conftest import BUYER_ID, CONVERSATION_ID, SELLER_ID, SlowMessageWriter


def _frame(content: str = "Is this still available?", conversation_id: int = CONVERSATION_ID) -> dict:
    return {"conversationId": conversation_id, "senderId": BUYER_ID, "content": content}


@pytest.fixture
def client(relay):
    app = create_app()
    app.dependency_overrides[get_relay] = lambda: relay
    # single portal so that a send from one session reaches another
    with TestClient(app) as client:
        yield client


def test_message_is_forwarded_and_echoed(client, registry, uow):
    with client.websocket_connect(f"/ws/chat?userId={BUYER_ID}") as buyer, \
            client.websocket_connect(f"/ws/chat?userId={SELLER_ID}") as seller:
        assert str(BUYER_ID) in registry and str(SELLER_ID) in registry

        buyer.send_json(_frame())
        echo = buyer.receive_text()
        forward = seller.receive_text()

    assert echo == forward
    assert uow.messages_w.calls == 1


def test_offline_recipient_only_echo(client, registry, uow):
    with client.websocket_connect(f"/ws/chat?userId={BUYER_ID}") as buyer:
        buyer.send_json(_frame())
        echo = buyer.receive_json()

    assert echo["senderId"] == BUYER_ID
    assert echo["conversationId"] == CONVERSATION_ID
    assert len(uow.messages._messages) == 1


def test_malformed_frame_keeps_connection_open(client, uow):
    with client.websocket_connect(f"/ws/chat?userId={BUYER_ID}") as buyer:
        buyer.send_text("{not json")
        error = buyer.receive_json()
        buyer.send_json(_frame("second try"))
        echo = buyer.receive_json()

    assert error["type"] == "error"
    assert echo["content"] == "second try"
    assert uow.messages_w.calls == 1


def test_unknown_conversation_gets_error_not_echo(client, uow):
    with client.websocket_connect(f"/ws/chat?userId={BUYER_ID}") as buyer:
        buyer.send_json(_frame(conversation_id=999))
        reply = buyer.receive_json()

    assert reply["data"]["code"] == "conversation_not_found"
    assert uow.messages_w.calls == 0


def test_binary_frame(client):
    with client.websocket_connect(f"/ws/chat?userId={BUYER_ID}") as buyer:
        buyer.send_bytes(b'{"conversationId": 42, "senderId": 5, "content": "bytes"}')
        echo = buyer.receive_json()

    assert echo["content"] == "bytes"


def test_anonymous_connection_can_send_but_is_not_registered(client, registry):
    with client.websocket_connect("/ws/chat") as anon:
        assert len(registry) == 0
        anon.send_json(_frame())
        echo = anon.receive_json()

    assert echo["senderId"] == BUYER_ID


def test_close_removes_registration(client, registry):
    with client.websocket_connect(f"/ws/chat?userId={SELLER_ID}"):
        assert registry.lookup(str(SELLER_ID)) is not None

    assert registry.lookup(str(SELLER_ID)) is None


def test_late_close_of_superseded_connection_keeps_new_one(client, registry):
    first = client.websocket_connect(f"/ws/chat?userId={SELLER_ID}")
    first.__enter__()
    with client.websocket_connect(f"/ws/chat?userId={SELLER_ID}"):
        newer = registry.lookup(str(SELLER_ID))
        first.__exit__(None, None, None)

        assert registry.lookup(str(SELLER_ID)) is newer

    assert registry.lookup(str(SELLER_ID)) is None


def test_back_to_back_frames_are_relayed_in_arrival_order(client, uow):
    contents = [f"msg-{i}" for i in range(5)]

    with client.websocket_connect(f"/ws/chat?userId={BUYER_ID}") as buyer, \
            client.websocket_connect(f"/ws/chat?userId={SELLER_ID}") as seller:
        for content in contents:
            buyer.send_json(_frame(content))
        echoes = [buyer.receive_json() for _ in contents]
        forwards = [seller.receive_json() for _ in contents]

    stored = uow.messages._messages
    assert [m.content for m in stored] == contents
    assert [e["content"] for e in echoes] == contents
    assert [e["id"] for e in echoes] == [m.id for m in stored]
    assert forwards == echoes


def test_message_in_flight_is_stored_when_client_closes(client, registry, uow, monkeypatch):
    writer = SlowMessageWriter(uow.messages, delay=0.1)
    uow.messages_w = writer
    removed = []
    real_remove = registry.remove

    def _remove(user_id, handle=None):
        removed.append(user_id)
        return real_remove(user_id, handle)

    monkeypatch.setattr(registry, "remove", _remove)

    with client.websocket_connect(f"/ws/chat?userId={BUYER_ID}") as buyer:
        buyer.send_json(_frame("last words"))
        assert writer.started.wait(timeout=5)

    deadline = time.monotonic() + 5
    while not uow._committed and time.monotonic() < deadline:
        time.sleep(0.01)

    assert [m.content for m in uow.messages._messages] == ["last words"]
    assert uow._committed
    assert removed == [str(BUYER_ID)]
    assert registry.lookup(str(BUYER_ID)) is None


def test_user_id_is_registered_in_canonical_form(client, registry):
    with client.websocket_connect(f"/ws/chat?userId=0{SELLER_ID}") as seller, \
            client.websocket_connect(f"/ws/chat?userId={BUYER_ID}") as buyer:
        assert registry.lookup(str(SELLER_ID)) is not None

        buyer.send_json(_frame())
        echo = buyer.receive_text()
        forward = seller.receive_text()

    assert forward == echo


@pytest.mark.parametrize("user_id", ["abc", "0", "-5"])
def test_non_numeric_or_non_positive_user_id_is_refused(client, registry, user_id):
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect(f"/ws/chat?userId={user_id}"):
            pass

    assert len(registry) == 0
