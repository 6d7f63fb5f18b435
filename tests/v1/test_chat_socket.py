# mypy: ignore-errors
"""Tests for the realtime chat websocket."""

import pytest
from fastapi import WebSocketDisconnect, status

from sugarpot.core.security import create_access_token
from sugarpot.models import Message

WS_PATH = "/api/v1/chat/ws"


def _url(user):
    return f"{WS_PATH}?token={create_access_token(user.id)}"


def _send(ws, conversation, receiver, text="hello"):
    ws.send_json(
        {
            "event": "send_message",
            "data": {
                "conversationId": conversation.id,
                "receiverId": receiver.id,
                "messageType": "text",
                "body": text,
            },
        }
    )


def _sync(ws, conversation):
    """Round-trip a history fetch so the connection is known to be registered."""
    ws.send_json({"event": "get_messages", "data": {"conversationId": conversation.id}})
    frame = ws.receive_json()
    assert frame["event"] == "messages_history"
    return frame["data"]


def test_rejects_missing_token(client) -> None:
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect(WS_PATH):
            pass
    assert exc_info.value.code == status.WS_1008_POLICY_VIOLATION


def test_rejects_invalid_token(client) -> None:
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect(f"{WS_PATH}?token=garbage"):
            pass
    assert exc_info.value.code == status.WS_1008_POLICY_VIOLATION


def test_accepts_bearer_header(client, matched_pair, alice) -> None:
    headers = {"Authorization": f"Bearer {create_access_token(alice.id)}"}
    with client.websocket_connect(WS_PATH, headers=headers) as ws:
        assert _sync(ws, matched_pair) == []


def test_online_receiver_gets_message(client, matched_pair, alice, bob) -> None:
    """Both online: receiver is pushed the message and sender learns it was delivered."""
    with client.websocket_connect(_url(alice)) as alice_ws, client.websocket_connect(
        _url(bob)
    ) as bob_ws:
        _sync(alice_ws, matched_pair)
        _sync(bob_ws, matched_pair)

        _send(alice_ws, matched_pair, bob, "hi bob")

        sent = alice_ws.receive_json()
        assert sent["event"] == "message_sent"
        assert sent["data"]["sequenceId"] == 1
        assert sent["data"]["body"] == "hi bob"
        assert sent["data"]["delivered"] is False

        pushed = bob_ws.receive_json()
        assert pushed["event"] == "new_message"
        assert pushed["data"]["id"] == sent["data"]["id"]
        assert pushed["data"]["delivered"] is True

        delivered = alice_ws.receive_json()
        assert delivered["event"] == "message_delivered"
        assert delivered["data"]["id"] == sent["data"]["id"]
        assert delivered["data"]["conversationId"] == matched_pair.id
        assert delivered["data"]["deliveredAt"] is not None


def test_offline_receiver_catches_up_with_history(client, db_session, matched_pair, alice, bob) -> None:
    """Offline receiver fetches history later; only then is the sender notified."""
    with client.websocket_connect(_url(alice)) as alice_ws:
        _sync(alice_ws, matched_pair)
        _send(alice_ws, matched_pair, bob, "are you there?")
        sent = alice_ws.receive_json()
        assert sent["event"] == "message_sent"
        message_id = sent["data"]["id"]

        db_session.expire_all()
        assert db_session.get(Message, message_id).delivered is False

        with client.websocket_connect(_url(bob)) as bob_ws:
            history = _sync(bob_ws, matched_pair)
            assert [m["id"] for m in history] == [message_id]
            assert history[0]["isSent"] is False
            assert history[0]["delivered"] is False

            delivered = alice_ws.receive_json()
            assert delivered["event"] == "message_delivered"
            assert delivered["data"]["id"] == message_id

    db_session.expire_all()
    assert db_session.get(Message, message_id).delivered is True


def test_sequences_are_consecutive(client, matched_pair, alice, bob) -> None:
    with client.websocket_connect(_url(alice)) as ws:
        _sync(ws, matched_pair)
        sequences = []
        for text in ("one", "two", "three"):
            _send(ws, matched_pair, bob, text)
            frame = ws.receive_json()
            assert frame["event"] == "message_sent"
            sequences.append(frame["data"]["sequenceId"])
        assert sequences == [1, 2, 3]

        history = _sync(ws, matched_pair)
        assert [m["body"] for m in history] == ["one", "two", "three"]
        assert all(m["isSent"] for m in history)


def test_read_receipt_reaches_sender(client, matched_pair, alice, bob) -> None:
    with client.websocket_connect(_url(alice)) as alice_ws, client.websocket_connect(
        _url(bob)
    ) as bob_ws:
        _sync(alice_ws, matched_pair)
        _sync(bob_ws, matched_pair)

        _send(alice_ws, matched_pair, bob)
        message_id = alice_ws.receive_json()["data"]["id"]
        assert bob_ws.receive_json()["event"] == "new_message"
        assert alice_ws.receive_json()["event"] == "message_delivered"

        bob_ws.send_json({"event": "mark_read", "data": {"messageIds": [message_id]}})
        receipt = alice_ws.receive_json()
        assert receipt["event"] == "message_read"
        assert receipt["data"]["id"] == message_id
        assert receipt["data"]["readAt"] is not None


def test_explicit_mark_delivered(client, matched_pair, alice, bob) -> None:
    with client.websocket_connect(_url(alice)) as alice_ws:
        _sync(alice_ws, matched_pair)
        _send(alice_ws, matched_pair, bob)
        message_id = alice_ws.receive_json()["data"]["id"]

        with client.websocket_connect(_url(bob)) as bob_ws:
            bob_ws.send_json({"event": "mark_delivered", "data": {"messageIds": [message_id]}})
            delivered = alice_ws.receive_json()
            assert delivered["event"] == "message_delivered"
            assert delivered["data"]["id"] == message_id

            # Already delivered: nothing new, so history carries the stored state.
            history = _sync(bob_ws, matched_pair)
            assert history[0]["delivered"] is True


def test_outsider_cannot_send(client, matched_pair, alice, carol) -> None:
    with client.websocket_connect(_url(carol)) as ws:
        _send(ws, matched_pair, alice)
        frame = ws.receive_json()
        assert frame["event"] == "error"
        assert frame["data"]["code"] == "not_authorized"


def test_wrong_receiver_rejected(client, matched_pair, alice, carol) -> None:
    with client.websocket_connect(_url(alice)) as ws:
        _send(ws, matched_pair, carol)
        frame = ws.receive_json()
        assert frame["event"] == "error"
        assert frame["data"]["code"] == "invalid_participants"


def test_unknown_event(client, alice) -> None:
    with client.websocket_connect(_url(alice)) as ws:
        ws.send_json({"event": "dance", "data": {}})
        frame = ws.receive_json()
        assert frame["event"] == "error"
        assert frame["data"]["code"] == "unknown_event"


def test_malformed_frames(client, alice) -> None:
    with client.websocket_connect(_url(alice)) as ws:
        ws.send_text("{not json")
        assert ws.receive_json()["data"]["code"] == "invalid_payload"

        ws.send_json({"event": "send_message", "data": {"conversationId": 1}})
        frame = ws.receive_json()
        assert frame["event"] == "error"
        assert frame["data"]["code"] == "invalid_payload"


def test_binary_frame_is_rejected_without_closing(client, matched_pair, alice) -> None:
    with client.websocket_connect(_url(alice)) as ws:
        ws.send_bytes(b'{"event":"get_messages","data":{}}')
        frame = ws.receive_json()
        assert frame["event"] == "error"
        assert frame["data"]["code"] == "invalid_payload"

        assert _sync(ws, matched_pair) == []


def test_history_limit_must_be_positive(client, matched_pair, alice) -> None:
    with client.websocket_connect(_url(alice)) as ws:
        for limit in (0, -1):
            ws.send_json(
                {"event": "get_messages", "data": {"conversationId": matched_pair.id, "limit": limit}}
            )
            frame = ws.receive_json()
            assert frame["event"] == "error"
            assert frame["data"]["code"] == "invalid_payload"


def test_reconnect_replaces_presence(client, app, matched_pair, alice) -> None:
    with client.websocket_connect(_url(alice)) as first:
        _sync(first, matched_pair)
        original = app.state.presence.lookup(alice.id)
        with client.websocket_connect(_url(alice)) as second:
            _sync(second, matched_pair)
            assert app.state.presence.lookup(alice.id) is not original
