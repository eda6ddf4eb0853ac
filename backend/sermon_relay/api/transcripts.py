from __future__ import annotations

import logging
from collections import Counter
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from sermon_relay.api.rooms import get_storage
from sermon_relay.core.exceptions import StorageError
from sermon_relay.schemas.room import (
    SuccessResponse,
    TranscriptDetail,
    TranscriptList,
    TranscriptSearchRequest,
    TranscriptSearchResult,
    TranscriptStats,
    TranscriptStatsResponse,
)
from sermon_relay.services.interfaces import StorageClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/transcripts", tags=["transcripts"])


@router.post("/search", response_model=TranscriptSearchResult)
async def search_transcripts(
    body: TranscriptSearchRequest,
    storage: StorageClient = Depends(get_storage),
) -> TranscriptSearchResult:
    try:
        transcripts = await storage.search_transcripts(
            body.query,
            room_id=body.roomId,
            language=body.language or None,
            limit=body.limit,
        )
    except StorageError:
        logger.exception("Search transcripts failed")
        raise HTTPException(status_code=500, detail="Failed to search transcripts")
    return TranscriptSearchResult(transcripts=transcripts, query=body.query, count=len(transcripts))


@router.get("/room/{room_id}", response_model=TranscriptList)
async def get_room_transcripts(
    room_id: int,
    language: Optional[str] = None,
    limit: Optional[int] = Query(default=None, ge=1),
    offset: Optional[int] = Query(default=None, ge=0),
    storage: StorageClient = Depends(get_storage),
) -> TranscriptList:
    try:
        transcripts = await storage.get_transcripts_by_room(
            room_id, language=language or None, limit=limit, offset=offset
        )
    except StorageError:
        logger.exception("Get room transcripts failed", extra={"room_id": room_id})
        raise HTTPException(status_code=500, detail="Failed to get room transcripts")
    return TranscriptList(transcripts=transcripts)


@router.delete("/room/{room_id}", response_model=SuccessResponse)
async def delete_room_transcripts(room_id: int, storage: StorageClient = Depends(get_storage)) -> SuccessResponse:
    try:
        await storage.delete_transcripts_by_room(room_id)
    except StorageError:
        logger.exception("Delete room transcripts failed", extra={"room_id": room_id})
        raise HTTPException(status_code=500, detail="Failed to delete room transcripts")
    logger.info("Deleted room transcripts", extra={"room_id": room_id})
    return SuccessResponse(success=True, message="All transcripts deleted successfully")


@router.get("/stats/{room_id}", response_model=TranscriptStatsResponse)
async def get_transcript_stats(room_id: int, storage: StorageClient = Depends(get_storage)) -> TranscriptStatsResponse:
    """Record count, per-language breakdown and first/last timestamps for a room."""
    try:
        transcripts = await storage.get_transcripts_by_room(room_id)
    except StorageError:
        logger.exception("Get transcript stats failed", extra={"room_id": room_id})
        raise HTTPException(status_code=500, detail="Failed to get transcript statistics")
    if not transcripts:
        return TranscriptStatsResponse(stats=TranscriptStats())
    timestamps = [t.created_at for t in transcripts]
    return TranscriptStatsResponse(
        stats=TranscriptStats(
            totalTranscripts=len(transcripts),
            languageBreakdown=dict(Counter(t.language for t in transcripts)),
            firstTranscript=min(timestamps),
            lastTranscript=max(timestamps),
        )
    )


@router.get("/{transcript_id}", response_model=TranscriptDetail)
async def get_transcript(transcript_id: int, storage: StorageClient = Depends(get_storage)) -> TranscriptDetail:
    try:
        transcript = await storage.get_transcript(transcript_id)
    except StorageError:
        logger.exception("Get transcript failed", extra={"transcript_id": transcript_id})
        raise HTTPException(status_code=500, detail="Failed to get transcript")
    if transcript is None:
        raise HTTPException(status_code=404, detail="Transcript not found")
    return TranscriptDetail(transcript=transcript)


@router.delete("/{transcript_id}", response_model=SuccessResponse)
async def delete_transcript(transcript_id: int, storage: StorageClient = Depends(get_storage)) -> SuccessResponse:
    try:
        await storage.delete_transcript(transcript_id)
    except StorageError:
        logger.exception("Delete transcript failed", extra={"transcript_id": transcript_id})
        raise HTTPException(status_code=500, detail="Failed to delete transcript")
    logger.info("Deleted transcript", extra={"transcript_id": transcript_id})
    return SuccessResponse(success=True, message="Transcript deleted successfully")
