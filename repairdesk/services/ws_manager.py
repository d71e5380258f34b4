"""WebSocket connection manager for live entry lists."""

from __future__ import annotations

import logging

from fastapi import WebSocket

from repairdesk.storage.facade import StorageFacade
from repairdesk.storage.subscription import Subscription

logger = logging.getLogger(__name__)


class ConnectionManager:
    """One entry subscription per connected socket, keyed by user."""

    def __init__(self):
        self._connections: dict[str, dict[WebSocket, Subscription]] = {}

    def count(self, user_id: str | None = None) -> int:
        if user_id is not None:
            return len(self._connections.get(user_id, {}))
        return sum(len(c) for c in self._connections.values())

    async def connect(self, user_id: str, websocket: WebSocket, storage: StorageFacade) -> Subscription:
        await websocket.accept()

        async def push(entries):
            await websocket.send_json([e.model_dump(by_alias=True) for e in entries])

        sub = await storage.subscribe(user_id, push)
        self._connections.setdefault(user_id, {})[websocket] = sub
        logger.info("Live entries connected for user %s (%s)", user_id, sub.mode)
        return sub

    def disconnect(self, user_id: str, websocket: WebSocket):
        conns = self._connections.get(user_id, {})
        sub = conns.pop(websocket, None)
        if sub is not None:
            sub.cancel()
        if not conns:
            self._connections.pop(user_id, None)

    def close_all(self):
        for conns in self._connections.values():
            for sub in conns.values():
                sub.cancel()
        self._connections.clear()


ws_manager = ConnectionManager()
