import uuid
from typing import Optional

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status
from loguru import logger

from sensafe.config import SESSION_COOKIE_NAME
from sensafe.errors import AppError
from sensafe.services.auth_service import Identity, resolve_identity
from sensafe.services.connection_manager import ConnectionManager, user_room
from sensafe.services.relationship_service import are_linked

router = APIRouter(tags=["realtime"])


async def _join_room(websocket: WebSocket, manager: ConnectionManager, identity: Identity, data: dict):
    try:
        target = uuid.UUID(str(data.get("userId")))
    except ValueError:
        await websocket.send_json({"event": "error", "message": "Invalid userId."})
        return

    # 본인 방이거나, 연결된 보호자/환자의 방만 입장 가능
    if target != identity.user_id:
        async with websocket.app.state.database.sessionmaker() as db:
            allowed = await are_linked(db, identity.user_id, target)
        if not allowed:
            await websocket.send_json({"event": "error", "message": "Not allowed to join this room."})
            return

    room = user_room(target)
    manager.join(room, websocket)
    await manager.broadcast(room, {"event": "user joined", "userId": str(identity.user_id)})


@router.websocket("/ws")
async def realtime_endpoint(
    websocket: WebSocket,
    token: Optional[str] = Query(None),  # 핸드셰이크 쿼리 (없으면 쿠키)
):
    settings = websocket.app.state.settings
    manager: ConnectionManager = websocket.app.state.connections

    # 1. 토큰 검증 (HTTP 와 동일: 서명 + 세션 + 사용자)
    try:
        async with websocket.app.state.database.sessionmaker() as db:
            identity = await resolve_identity(db, settings, token or websocket.cookies.get(SESSION_COOKIE_NAME))
    except AppError as e:
        logger.warning("[ws] Connection rejected: {}", e.message)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    # 2. 연결 수락
    await manager.connect(websocket)
    logger.info("[ws] User {} connected", identity.user_id)

    try:
        while True:
            try:
                data = await websocket.receive_json()
            except ValueError:
                await websocket.send_json({"event": "error", "message": "Messages must be JSON."})
                continue

            event = data.get("event") if isinstance(data, dict) else None
            if event == "join-room":
                await _join_room(websocket, manager, identity, data)
            else:
                await websocket.send_json({"event": "error", "message": f"Unknown event: {event}"})

    except WebSocketDisconnect:
        logger.info("[ws] User {} disconnected", identity.user_id)
    except Exception:
        logger.exception("[ws] Connection for user {} failed", identity.user_id)
    finally:
        manager.disconnect(websocket)
