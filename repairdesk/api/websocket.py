from __future__ import annotations

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect

from repairdesk.dependencies import get_storage
from repairdesk.services.ws_manager import ws_manager
from repairdesk.storage.facade import StorageFacade

router = APIRouter(tags=["websocket"])


@router.websocket("/ws/entries")
async def entries_socket(
    websocket: WebSocket,
    user_id: str = Query(default="", alias="userId"),
    storage: StorageFacade = Depends(get_storage),
):
    if not user_id:
        await websocket.close(code=4400, reason="userId required")
        return

    await ws_manager.connect(user_id, websocket, storage)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        ws_manager.disconnect(user_id, websocket)
