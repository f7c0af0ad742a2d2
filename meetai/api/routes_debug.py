from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from meetai.services.meeting_store import MeetingStore, get_meeting_store
from meetai.settings import Settings, get_settings

router = APIRouter(prefix="/debug")


def _require_debug(settings: Settings = Depends(get_settings)) -> Settings:
    if not settings.ALLOW_DEBUG_ENDPOINTS:
        raise HTTPException(status_code=404, detail="Not found")
    return settings


@router.get("/ping")
def ping(_: Settings = Depends(_require_debug)) -> dict:
    return {"ok": True}


@router.get("/info")
def info(settings: Settings = Depends(_require_debug)) -> dict[str, Any]:
    # Avoid leaking secrets; this is intentionally small.
    return {
        "env": settings.ENV,
        "redis_url": settings.REDIS_URL,
        "rq_queue_name": settings.RQ_QUEUE_NAME,
        "stream_call_type": settings.STREAM_CALL_TYPE,
        "openai_chat_model": settings.OPENAI_CHAT_MODEL,
    }


@router.get("/meetings/{meeting_id}")
def debug_meeting(
    meeting_id: str,
    _: Settings = Depends(_require_debug),
    store: MeetingStore = Depends(get_meeting_store),
) -> dict[str, Any]:
    meeting = store.get_meeting(meeting_id)
    if meeting is None:
        raise HTTPException(status_code=404, detail="Meeting not found")
    return {
        "id": meeting.id,
        "name": meeting.name,
        "agent_id": meeting.agent_id,
        "status": meeting.status.value,
        "started_at": meeting.started_at.isoformat() if meeting.started_at else None,
        "ended_at": meeting.ended_at.isoformat() if meeting.ended_at else None,
        "transcript_url": meeting.transcript_url,
        "recording_url": meeting.recording_url,
        "has_summary": bool(meeting.summary),
    }
