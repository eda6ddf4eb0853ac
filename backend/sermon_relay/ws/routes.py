from __future__ import annotations

import json
import logging
import uuid

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from sermon_relay.schemas import events
from sermon_relay.ws.dispatcher import EventDispatcher

logger = logging.getLogger(__name__)

router = APIRouter()


def get_dispatcher(websocket: WebSocket) -> EventDispatcher:
    # Access the globally created dispatcher from app.state in main.py
    return websocket.app.state.dispatcher  # type: ignore[attr-defined]


@router.websocket("/ws")
async def websocket_endpoint(
    websocket: WebSocket,
    dispatcher: EventDispatcher = Depends(get_dispatcher),
) -> None:
    connection_id = str(uuid.uuid4())
    await dispatcher.manager.connect(connection_id, websocket)
    logger.info("Client connected", extra={"connection_id": connection_id})
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                data = json.loads(raw)
            except json.JSONDecodeError:
                data = None
            if not isinstance(data, dict) or not isinstance(data.get("event"), str):
                await dispatcher.manager.send(connection_id, events.ERROR, {"message": "Malformed message"})
                continue
            payload = data.get("payload")
            await dispatcher.dispatch(connection_id, data["event"], payload if isinstance(payload, dict) else None)
    except WebSocketDisconnect:
        pass
    finally:
        await dispatcher.disconnect(connection_id)
