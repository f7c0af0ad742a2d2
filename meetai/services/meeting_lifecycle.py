from __future__ import annotations

import logging

from meetai.services.agent_connection import connect_agent_to_call
from meetai.services.errors import NotFound
from meetai.services.rq_service import MEETINGS_PROCESSING
from meetai.services.webhook_context import WebhookContext

logger = logging.getLogger(__name__)


def handle_session_started(ctx: WebhookContext, meeting_id: str) -> None:
    # The guarded update is the only thing standing between a duplicate
    # call.session_started delivery and a second agent on the call.
    meeting = ctx.store.start_meeting(meeting_id)
    if meeting is None:
        logger.info("session_started ignored; meeting missing or not upcoming. meeting_id=%s", meeting_id)
        raise NotFound("Meeting not found or already started")

    logger.info("Meeting active. meeting_id=%s", meeting_id)
    connect_agent_to_call(ctx, meeting)


def handle_session_ended(ctx: WebhookContext, meeting_id: str) -> None:
    meeting = ctx.store.end_meeting(meeting_id)
    if meeting is None:
        logger.info("session_ended no-op; meeting not active. meeting_id=%s", meeting_id)
        return
    logger.info("Meeting processing. meeting_id=%s", meeting_id)


def handle_participant_left(ctx: WebhookContext, meeting_id: str) -> None:
    # Best effort regardless of stored status; the platform tolerates ending an ended call.
    call = ctx.video.call(ctx.settings.STREAM_CALL_TYPE, meeting_id)
    call.end()


def handle_transcription_ready(ctx: WebhookContext, meeting_id: str, transcript_url: str) -> None:
    meeting = ctx.store.set_transcript_url(meeting_id, transcript_url)
    if meeting is None:
        logger.warning("transcription_ready for unknown meeting. meeting_id=%s", meeting_id)
        raise NotFound("Meeting not found")

    ctx.jobs.enqueue(
        MEETINGS_PROCESSING,
        {"meeting_id": meeting.id, "transcript_url": meeting.transcript_url},
    )


def handle_recording_ready(ctx: WebhookContext, meeting_id: str, recording_url: str) -> None:
    meeting = ctx.store.set_recording_url(meeting_id, recording_url)
    if meeting is None:
        logger.info("recording_ready for unknown meeting; ignored. meeting_id=%s", meeting_id)
        return
    logger.info("Recording stored. meeting_id=%s", meeting_id)
