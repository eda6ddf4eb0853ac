from __future__ import annotations

import logging
from typing import Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Request

from sermon_relay.core.exceptions import StorageError
from sermon_relay.schemas.room import (
    AllRoomStats,
    CreateRoomResponse,
    ListenerList,
    Room,
    RoomInfo,
    RoomList,
    SuccessResponse,
    TranscriptList,
)
from sermon_relay.services.interfaces import StorageClient
from sermon_relay.services.languages import SUPPORTED_LANGUAGES
from sermon_relay.services.storage import generate_unique_room_code
from sermon_relay.ws.dispatcher import EventDispatcher

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/rooms", tags=["rooms"])


def get_storage(request: Request) -> StorageClient:
    return request.app.state.storage


def get_dispatcher(request: Request) -> EventDispatcher:
    return request.app.state.dispatcher


async def _require_room(code: str, storage: StorageClient) -> Room:
    try:
        room = await storage.get_room_by_code(code.upper())
    except StorageError:
        raise HTTPException(status_code=500, detail="Failed to get room information")
    if room is None:
        raise HTTPException(status_code=404, detail="Room not found")
    return room


@router.get("", response_model=RoomList)
async def list_rooms(storage: StorageClient = Depends(get_storage)) -> RoomList:
    try:
        rooms = await storage.list_active_rooms()
    except StorageError:
        logger.exception("List rooms failed")
        raise HTTPException(status_code=500, detail="Failed to get rooms")
    return RoomList(rooms=rooms)


@router.post("/create", response_model=CreateRoomResponse, status_code=201)
async def create_room(storage: StorageClient = Depends(get_storage)) -> CreateRoomResponse:
    try:
        room_code = await generate_unique_room_code(storage)
        room = await storage.create_room(room_code)
    except StorageError:
        logger.exception("Create room failed")
        raise HTTPException(status_code=500, detail="Failed to create room")
    logger.info("Created room", extra={"room_code": room_code})
    return CreateRoomResponse(roomCode=room.room_code, room=room)


@router.get("/stats", response_model=AllRoomStats)
async def get_all_room_stats(dispatcher: EventDispatcher = Depends(get_dispatcher)) -> AllRoomStats:
    return AllRoomStats(rooms=dispatcher.all_room_stats())


@router.get("/languages")
async def get_languages() -> Dict[str, str]:
    return SUPPORTED_LANGUAGES


@router.get("/{code}", response_model=RoomInfo)
async def get_room(
    code: str,
    storage: StorageClient = Depends(get_storage),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
) -> RoomInfo:
    room = await _require_room(code, storage)
    listeners = await storage.get_listeners_by_room(room.id)
    return RoomInfo(room=room, listeners=listeners, stats=dispatcher.room_stats(room.room_code))


@router.post("/{code}/end", response_model=SuccessResponse)
async def end_room(
    code: str,
    storage: StorageClient = Depends(get_storage),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
) -> SuccessResponse:
    room = await _require_room(code, storage)
    try:
        await storage.end_room(room.room_code)
    except StorageError:
        logger.exception("End room failed", extra={"room_code": room.room_code})
        raise HTTPException(status_code=500, detail="Failed to end room")
    await dispatcher.relay_room_ended(room.room_code)
    return SuccessResponse(success=True, message="Room ended successfully")


@router.get("/{code}/transcripts", response_model=TranscriptList)
async def get_transcripts(
    code: str,
    language: Optional[str] = None,
    storage: StorageClient = Depends(get_storage),
) -> TranscriptList:
    room = await _require_room(code, storage)
    transcripts = await storage.get_transcripts_by_room(room.id, language=language or None)
    return TranscriptList(transcripts=transcripts)


@router.get("/{code}/listeners", response_model=ListenerList)
async def get_listeners(code: str, storage: StorageClient = Depends(get_storage)) -> ListenerList:
    room = await _require_room(code, storage)
    return ListenerList(listeners=await storage.get_listeners_by_room(room.id))


@router.delete("/{code}/listeners/{listener_id}", response_model=SuccessResponse)
async def remove_listener(
    code: str,
    listener_id: int,
    storage: StorageClient = Depends(get_storage),
) -> SuccessResponse:
    room = await _require_room(code, storage)
    listeners = await storage.get_listeners_by_room(room.id)
    if not any(l.id == listener_id for l in listeners):
        raise HTTPException(status_code=404, detail="Listener not found")
    try:
        await storage.remove_listener(listener_id)
    except StorageError:
        logger.exception("Remove listener failed", extra={"room_code": room.room_code})
        raise HTTPException(status_code=500, detail="Failed to remove listener")
    logger.info("Removed listener", extra={"room_code": room.room_code, "listener_id": listener_id})
    return SuccessResponse(success=True, message="Listener removed successfully")
