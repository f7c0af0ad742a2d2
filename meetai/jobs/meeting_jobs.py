from __future__ import annotations

import logging
from typing import Optional

from meetai.db.models import MeetingStatus
from meetai.jobs.retry import PermanentJobError, TransientJobError, run_job
from meetai.services.llm_service import LLMClient, get_llm_client
from meetai.services.meeting_store import MeetingStore, get_meeting_store
from meetai.services.transcript_service import fetch_transcript, format_transcript, speaker_ids

logger = logging.getLogger(__name__)

EMPTY_TRANSCRIPT_SUMMARY = "No transcript content was captured."


def summarize_meeting(
    *,
    meeting_id: str,
    transcript_url: str,
    store: Optional[MeetingStore] = None,
    llm: Optional[LLMClient] = None,
) -> Optional[str]:
    store = store or get_meeting_store()
    llm = llm or get_llm_client()

    meeting = store.get_meeting(meeting_id)
    if meeting is None:
        raise PermanentJobError(f"Meeting not found: {meeting_id}")
    if meeting.status == MeetingStatus.COMPLETED:
        logger.info("Meeting already completed; skipping summary. meeting_id=%s", meeting_id)
        return meeting.summary
    if meeting.status in (MeetingStatus.UPCOMING, MeetingStatus.CANCELLED):
        raise PermanentJobError(f"Meeting {meeting_id} is {meeting.status.value}; nothing to summarize")
    if meeting.status == MeetingStatus.ACTIVE:
        # Transcription can land before call.session_ended.
        raise TransientJobError(f"Meeting {meeting_id} still active")

    items = fetch_transcript(transcript_url)
    if not items:
        summary = EMPTY_TRANSCRIPT_SUMMARY
    else:
        names = {a.id: a.name for a in store.get_agents(speaker_ids(items))}
        text = format_transcript(items, names)
        summary = llm.summarize_transcript(text) if text else EMPTY_TRANSCRIPT_SUMMARY

    completed = store.complete_meeting(meeting_id, summary)
    if completed is None:
        current = store.get_meeting(meeting_id)
        if current is not None and current.status == MeetingStatus.COMPLETED:
            return current.summary
        raise PermanentJobError(f"Meeting {meeting_id} left processing during summarization")

    logger.info("Meeting completed. meeting_id=%s summary_len=%d", meeting_id, len(summary))
    return summary


def process_meeting(meeting_id: str, transcript_url: str) -> Optional[str]:
    return run_job(
        "meetings/processing",
        summarize_meeting,
        meeting_id=meeting_id,
        transcript_url=transcript_url,
    )
