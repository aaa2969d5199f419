import uuid

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from sensafe.api.routers import realtime
from sensafe.main import create_app

from conftest import PARENT, PATIENT


@pytest.fixture
def ws_client(settings):
    # with 블록 안에서 lifespan 이 돌아 테이블이 만들어짐
    with TestClient(create_app(settings)) as client:
        yield client


def _register(client, payload) -> tuple[str, str]:
    resp = client.post("/auth/register", json=payload)
    assert resp.status_code == 201, resp.text
    return resp.json()["user"]["id"], client.cookies.get("authToken")


def test_join_own_room(ws_client):
    user_id, token = _register(ws_client, PARENT)

    with ws_client.websocket_connect(f"/ws?token={token}") as ws:
        ws.send_json({"event": "join-room", "userId": user_id})
        assert ws.receive_json() == {"event": "user joined", "userId": user_id}


def test_cookie_is_accepted_when_query_token_is_missing(ws_client):
    user_id, _ = _register(ws_client, PARENT)

    with ws_client.websocket_connect("/ws") as ws:
        ws.send_json({"event": "join-room", "userId": user_id})
        assert ws.receive_json()["event"] == "user joined"


def test_parent_receives_patient_locations(ws_client):
    parent_id, parent_token = _register(ws_client, PARENT)
    patient_id, _ = _register(ws_client, PATIENT)

    with ws_client.websocket_connect(f"/ws?token={parent_token}") as ws:
        ws.send_json({"event": "join-room", "userId": patient_id})
        assert ws.receive_json() == {"event": "user joined", "userId": parent_id}

        resp = ws_client.post("/location", json={"latitude": 12.5, "longitude": 22.5, "serialNumber": "SN1"})
        assert resp.status_code == 201

        message = ws.receive_json()
        assert message["event"] == "location"
        assert message["geolocation"]["latitude"] == 12.5
        assert message["geolocation"]["id"] == resp.json()["geolocation"]["id"]


def test_unlinked_room_is_refused(ws_client):
    _, token = _register(ws_client, PARENT)
    stranger_id, _ = _register(ws_client, {**PARENT, "email": "stranger@x.com"})

    with ws_client.websocket_connect(f"/ws?token={token}") as ws:
        ws.send_json({"event": "join-room", "userId": stranger_id})
        assert ws.receive_json() == {"event": "error", "message": "Not allowed to join this room."}


def test_bad_messages_get_error_events(ws_client):
    _, token = _register(ws_client, PARENT)

    with ws_client.websocket_connect(f"/ws?token={token}") as ws:
        ws.send_text("not json")
        assert ws.receive_json()["message"] == "Messages must be JSON."

        ws.send_json({"event": "dance"})
        assert ws.receive_json() == {"event": "error", "message": "Unknown event: dance"}

        ws.send_json({"event": "join-room", "userId": "nobody"})
        assert ws.receive_json() == {"event": "error", "message": "Invalid userId."}


def test_invalid_token_is_rejected(ws_client):
    ws_client.cookies.clear()

    with pytest.raises(WebSocketDisconnect) as exc:
        with ws_client.websocket_connect("/ws?token=garbage"):
            pass
    assert exc.value.code == 1008


def test_missing_token_is_rejected(ws_client):
    ws_client.cookies.clear()

    with pytest.raises(WebSocketDisconnect):
        with ws_client.websocket_connect("/ws"):
            pass


def test_socket_leaves_rooms_when_the_handler_fails(ws_client, monkeypatch):
    user_id, token = _register(ws_client, PARENT)

    async def broken_are_linked(db, user_a, user_b):
        raise RuntimeError("store unavailable")

    monkeypatch.setattr(realtime, "are_linked", broken_are_linked)

    with ws_client.websocket_connect(f"/ws?token={token}") as ws:
        ws.send_json({"event": "join-room", "userId": user_id})
        assert ws.receive_json()["event"] == "user joined"
        assert ws_client.app.state.connections.rooms

        ws.send_json({"event": "join-room", "userId": str(uuid.uuid4())})

    assert ws_client.app.state.connections.rooms == {}
