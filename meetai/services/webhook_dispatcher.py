from __future__ import annotations

import json
import logging
from typing import Optional

from pydantic import ValidationError

from meetai.schemas.webhook import (
    HANDLED_EVENT_TYPES,
    CallRecordingReadyEvent,
    CallSessionEndedEvent,
    CallSessionParticipantLeftEvent,
    CallSessionStartedEvent,
    CallTranscriptionReadyEvent,
    MessageNewEvent,
    WebhookEvent,
    webhook_event_adapter,
)
from meetai.services import meeting_lifecycle
from meetai.services.assistant_bridge import handle_new_message
from meetai.services.errors import MalformedPayload, MissingMeetingId
from meetai.services.webhook_context import WebhookContext

logger = logging.getLogger(__name__)


def parse_event(raw: bytes) -> Optional[WebhookEvent]:
    """
    Decode a verified body into a typed event.

    Returns None for event types we do not handle (acknowledged, never retried).
    Raises MalformedPayload for invalid JSON or a handled type with a bad shape.
    """
    try:
        payload = json.loads(raw.decode("utf-8") if raw else "")
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.warning("Webhook: Invalid JSON. Error: %s, Body preview: %s", e, raw[:500] if raw else "empty")
        raise MalformedPayload("Invalid JSON payload") from e

    if not isinstance(payload, dict):
        raise MalformedPayload("Invalid JSON payload")

    event_type = payload.get("type")
    if event_type is not None and not isinstance(event_type, str):
        logger.warning("Webhook: non-string type field. type=%r", event_type)
        raise MalformedPayload("Invalid JSON payload")
    if event_type not in HANDLED_EVENT_TYPES:
        logger.info("Webhook ignored: unsupported type=%s", event_type)
        return None

    try:
        return webhook_event_adapter.validate_python(payload)
    except ValidationError as e:
        logger.warning("Webhook: payload does not match %s schema: %s", event_type, e)
        raise MalformedPayload(f"Invalid {event_type} payload") from e


def _require_meeting_id(meeting_id: Optional[str]) -> str:
    if not meeting_id:
        raise MissingMeetingId("Meeting ID is missing in the event")
    return meeting_id


def dispatch(ctx: WebhookContext, raw: bytes) -> None:
    event = parse_event(raw)
    if event is None:
        return

    logger.info("Webhook received. type=%s", event.type)

    if isinstance(event, MessageNewEvent):
        # Field checks for chat messages are part of the bridge's own preconditions.
        handle_new_message(ctx, event)
        return

    meeting_id = _require_meeting_id(event.meeting_id)

    if isinstance(event, CallSessionStartedEvent):
        meeting_lifecycle.handle_session_started(ctx, meeting_id)
    elif isinstance(event, CallSessionEndedEvent):
        meeting_lifecycle.handle_session_ended(ctx, meeting_id)
    elif isinstance(event, CallSessionParticipantLeftEvent):
        meeting_lifecycle.handle_participant_left(ctx, meeting_id)
    elif isinstance(event, CallTranscriptionReadyEvent):
        meeting_lifecycle.handle_transcription_ready(ctx, meeting_id, event.call_transcription.url)
    elif isinstance(event, CallRecordingReadyEvent):
        meeting_lifecycle.handle_recording_ready(ctx, meeting_id, event.call_recording.url)
