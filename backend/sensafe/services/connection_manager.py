from collections import defaultdict
import uuid

from fastapi import WebSocket, WebSocketDisconnect
from loguru import logger


def user_room(user_id: uuid.UUID) -> str:
    return f"u-{user_id}"


class ConnectionManager:
    """
    웹소켓 방(room) 관리. 방 이름은 사용자별 `u-<userId>`.
    앱 인스턴스 하나에 하나 (app.state.connections).
    """

    def __init__(self):
        self.rooms: dict[str, set[WebSocket]] = defaultdict(set)

    async def connect(self, websocket: WebSocket):
        await websocket.accept()

    def join(self, room: str, websocket: WebSocket):
        self.rooms[room].add(websocket)

    def disconnect(self, websocket: WebSocket):
        for room in list(self.rooms):
            members = self.rooms[room]
            members.discard(websocket)
            if not members:
                del self.rooms[room]

    async def broadcast(self, room: str, message: dict):
        for websocket in list(self.rooms.get(room, ())):
            try:
                await websocket.send_json(message)
            except (RuntimeError, WebSocketDisconnect, OSError) as e:
                # 이미 닫혔거나 끊긴 소켓
                logger.debug("Dropping closed websocket from {}: {}", room, e)
                self.disconnect(websocket)
