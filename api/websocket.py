"""
WebSocket Manager - Live Editing Sessions

A client opens one WebSocket per browser tab (``/ws?token=...``) and tells
the server which designs it is editing:

    {"type": "join_design", "design_id": "..."}
    {"type": "leave_design", "design_id": "..."}
    {"type": "ping"}

Joins and leaves are forwarded to the DesignLifecycleAgent through the
MessageBroker, so the ActiveSessionRegistry stays the single record of who
is editing what; this module only remembers which connection asked for
which design so it can route broadcasts and clean up after a disconnect.

A user can have several connections open on the same design. The registry
tracks users, so the user only leaves a design when their last connection
on it goes away.
"""

import asyncio
import uuid
from typing import Dict, Set, Optional, Any
from datetime import datetime
import logging

from fastapi import WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from core.event_bus import EventBus, Event, EventType
from core.message_broker import MessageBroker
from core.agent_base import MessageType

logger = logging.getLogger(__name__)

DESIGN_AGENT = "design_lifecycle_agent"

_ws_manager_instance = None


class WebSocketManager:
    """
    Tracks live connections and the design rooms they joined.

    Singleton, like the broker and the event bus. Events published by the
    agents for a design are pushed to every connection in that design's room.
    """

    def __new__(cls):
        global _ws_manager_instance
        if _ws_manager_instance is None:
            _ws_manager_instance = super().__new__(cls)
            _ws_manager_instance._initialized = False
        return _ws_manager_instance

    def __init__(self):
        if self._initialized:
            return

        # connection_id -> WebSocket
        self._connections: Dict[str, WebSocket] = {}
        # connection_id -> user_id
        self._owners: Dict[str, str] = {}
        # design_id -> connection ids in the room
        self._rooms: Dict[str, Set[str]] = {}
        # connection_id -> design ids it joined
        self._joined: Dict[str, Set[str]] = {}

        self._event_bus = EventBus()
        self._event_bus.subscribe_all(self._handle_event)

        self._initialized = True
        logger.info("WebSocketManager initialized")

    async def connect(self, websocket: WebSocket, user_id: str) -> str:
        """Accept the connection and return its id."""
        await websocket.accept()

        connection_id = str(uuid.uuid4())
        self._connections[connection_id] = websocket
        self._owners[connection_id] = user_id
        self._joined[connection_id] = set()

        logger.info(f"WebSocket connected: user {user_id} ({connection_id})")

        await self._send(connection_id, {
            "type": "connected",
            "user_id": user_id,
            "connection_id": connection_id
        })
        return connection_id

    async def disconnect(self, connection_id: str):
        """Leave every design this connection joined, then forget it."""
        user_id = self._owners.get(connection_id)
        for design_id in list(self._joined.get(connection_id, ())):
            await self.leave_design(connection_id, design_id, notify=False)

        self._connections.pop(connection_id, None)
        self._owners.pop(connection_id, None)
        self._joined.pop(connection_id, None)

        logger.info(f"WebSocket disconnected: user {user_id} ({connection_id})")

    # ==================== ROOMS ====================

    def _user_connections_in(self, design_id: str, user_id: str) -> Set[str]:
        return {
            cid for cid in self._rooms.get(design_id, ())
            if self._owners.get(cid) == user_id
        }

    async def join_design(self, connection_id: str, design_id: str):
        user_id = self._owners[connection_id]
        response = await MessageBroker().ask(
            MessageType.DESIGN_SESSION,
            DESIGN_AGENT,
            {"design_id": design_id, "user_id": user_id, "action": "join"},
            sender="websocket_gateway"
        )

        if response is None or not response.payload.get("success"):
            payload = response.payload if response else {"error": "Request timeout", "error_type": "storage_failure"}
            await self._send(connection_id, {
                "type": "error",
                "design_id": design_id,
                "error": payload.get("error"),
                "error_type": payload.get("error_type")
            })
            return

        self._rooms.setdefault(design_id, set()).add(connection_id)
        self._joined[connection_id].add(design_id)

        await self._send(connection_id, {
            "type": "room_info",
            "design_id": design_id,
            "active_editors": response.payload.get("active_editors", [])
        })

    async def leave_design(self, connection_id: str, design_id: str, notify: bool = True):
        user_id = self._owners.get(connection_id)
        room = self._rooms.get(design_id)
        if room is None or connection_id not in room:
            return

        room.discard(connection_id)
        self._joined.get(connection_id, set()).discard(design_id)
        if not room:
            del self._rooms[design_id]

        if user_id and not self._user_connections_in(design_id, user_id):
            response = await MessageBroker().ask(
                MessageType.DESIGN_SESSION,
                DESIGN_AGENT,
                {"design_id": design_id, "user_id": user_id, "action": "leave"},
                sender="websocket_gateway"
            )
            if response is None:
                logger.error(f"Leave of design {design_id} by {user_id} timed out")

        if notify:
            await self._send(connection_id, {"type": "left", "design_id": design_id})

    # ==================== MESSAGES ====================

    async def handle_message(self, connection_id: str, data: dict):
        message_type = data.get("type")
        design_id = data.get("design_id")

        if message_type == "join_design" and design_id:
            await self.join_design(connection_id, design_id)

        elif message_type == "leave_design" and design_id:
            await self.leave_design(connection_id, design_id)

        elif message_type == "ping":
            await self._send(connection_id, {"type": "pong"})

        else:
            logger.warning(f"Unknown message type: {message_type}")
            await self._send(connection_id, {
                "type": "error",
                "error": f"Unknown message type: {message_type}",
                "error_type": "invalid_input"
            })

    async def _handle_event(self, event: Event):
        """Push agent events to the room of the design they concern."""
        if not event.design_id:
            return

        await self._broadcast_to_design(event.design_id, event.to_dict())

        if event.event_type == EventType.DESIGN_DELETED:
            for connection_id in self._rooms.pop(event.design_id, set()):
                self._joined.get(connection_id, set()).discard(event.design_id)

    async def _send(self, connection_id: str, data: dict):
        websocket = self._connections.get(connection_id)
        if websocket and websocket.client_state == WebSocketState.CONNECTED:
            try:
                await websocket.send_json(data)
            except (WebSocketDisconnect, RuntimeError) as e:
                logger.warning(f"Send to connection {connection_id} failed: {e}")

    async def _broadcast_to_design(self, design_id: str, data: dict):
        tasks = [self._send(cid, data) for cid in list(self._rooms.get(design_id, ()))]
        if tasks:
            await asyncio.gather(*tasks)

    def get_stats(self) -> Dict[str, Any]:
        return {
            "total_connections": len(self._connections),
            "design_rooms": len(self._rooms),
            "connections_per_room": {
                design_id: len(connections)
                for design_id, connections in self._rooms.items()
            },
            "timestamp": datetime.utcnow().isoformat()
        }


async def websocket_endpoint(websocket: WebSocket, user_id: str):
    """Run one connection until the client goes away; always clean up."""
    manager = WebSocketManager()
    connection_id = await manager.connect(websocket, user_id)

    try:
        while True:
            data = await websocket.receive_json()
            await manager.handle_message(connection_id, data)
    except WebSocketDisconnect:
        pass
    finally:
        await manager.disconnect(connection_id)
