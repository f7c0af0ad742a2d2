from __future__ import annotations

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


def meeting_id_from_cid(cid: Optional[str]) -> Optional[str]:
    """'default:abc' -> 'abc'. Only the second segment is used; 'a:b:c' -> 'b'."""
    if not cid or ":" not in cid:
        return None
    return cid.split(":")[1] or None


class _Event(BaseModel):
    model_config = ConfigDict(extra="ignore")


class CallCustom(_Event):
    meeting_id: Optional[str] = Field(default=None, alias="meetingId")


class CallInfo(_Event):
    id: Optional[str] = None
    custom: Optional[CallCustom] = None


class CallSessionStartedEvent(_Event):
    type: Literal["call.session_started"]
    call_cid: Optional[str] = None
    session_id: Optional[str] = None
    call: Optional[CallInfo] = None

    @property
    def meeting_id(self) -> Optional[str]:
        return self.call.custom.meeting_id if self.call and self.call.custom else None


class CallSessionEndedEvent(_Event):
    type: Literal["call.session_ended"]
    call_cid: Optional[str] = None
    session_id: Optional[str] = None
    call: Optional[CallInfo] = None

    @property
    def meeting_id(self) -> Optional[str]:
        return self.call.custom.meeting_id if self.call and self.call.custom else None


class CallSessionParticipantLeftEvent(_Event):
    type: Literal["call.session_participant_left"]
    call_cid: Optional[str] = None
    session_id: Optional[str] = None
    participant: Optional[dict[str, Any]] = None

    @property
    def meeting_id(self) -> Optional[str]:
        return meeting_id_from_cid(self.call_cid)


class CallArtifact(_Event):
    url: str
    filename: Optional[str] = None


class CallTranscriptionReadyEvent(_Event):
    type: Literal["call.transcription_ready"]
    call_cid: Optional[str] = None
    call_transcription: CallArtifact

    @property
    def meeting_id(self) -> Optional[str]:
        return meeting_id_from_cid(self.call_cid)


class CallRecordingReadyEvent(_Event):
    type: Literal["call.recording_ready"]
    call_cid: Optional[str] = None
    call_recording: CallArtifact

    @property
    def meeting_id(self) -> Optional[str]:
        return meeting_id_from_cid(self.call_cid)


class ChatUser(_Event):
    id: Optional[str] = None
    name: Optional[str] = None


class ChatMessagePayload(_Event):
    id: Optional[str] = None
    cid: Optional[str] = None
    text: Optional[str] = None


class MessageNewEvent(_Event):
    type: Literal["message.new"]
    cid: Optional[str] = None
    channel_id: Optional[str] = None
    channel_type: Optional[str] = None
    message: Optional[ChatMessagePayload] = None
    user: Optional[ChatUser] = None

    @property
    def meeting_id(self) -> Optional[str]:
        return meeting_id_from_cid(self.message.cid if self.message else None)

    @property
    def user_id(self) -> Optional[str]:
        return self.user.id if self.user else None

    @property
    def text(self) -> Optional[str]:
        return self.message.text if self.message else None


WebhookEvent = Annotated[
    Union[
        CallSessionStartedEvent,
        CallSessionEndedEvent,
        CallSessionParticipantLeftEvent,
        CallTranscriptionReadyEvent,
        CallRecordingReadyEvent,
        MessageNewEvent,
    ],
    Field(discriminator="type"),
]

webhook_event_adapter: TypeAdapter[WebhookEvent] = TypeAdapter(WebhookEvent)

HANDLED_EVENT_TYPES = frozenset(
    {
        "call.session_started",
        "call.session_ended",
        "call.session_participant_left",
        "call.transcription_ready",
        "call.recording_ready",
        "message.new",
    }
)
