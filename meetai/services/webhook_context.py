from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Protocol

from meetai.db.models import Agent, Meeting
from meetai.settings import Settings


class MeetingRepository(Protocol):
    def start_meeting(self, meeting_id: str) -> Optional[Meeting]: ...
    def end_meeting(self, meeting_id: str) -> Optional[Meeting]: ...
    def set_transcript_url(self, meeting_id: str, url: str) -> Optional[Meeting]: ...
    def set_recording_url(self, meeting_id: str, url: str) -> Optional[Meeting]: ...
    def get_completed_meeting(self, meeting_id: str) -> Optional[Meeting]: ...
    def get_agent(self, agent_id: str) -> Optional[Agent]: ...


class VideoPlatform(Protocol):
    def verify_webhook(self, body: bytes, signature: Optional[str]) -> bool: ...
    def call(self, call_type: str, call_id: str) -> Any: ...
    def connect_openai(self, *, call: Any, openai_api_key: str, agent_user_id: str) -> Any: ...
    def upsert_users(self, users: list[dict[str, Any]]) -> None: ...


class ChatPlatform(Protocol):
    def channel(self, channel_type: str, channel_id: str) -> Any: ...
    def upsert_user(self, *, id: str, name: str, image: Optional[str] = None, role: Optional[str] = None) -> None: ...


class CompletionService(Protocol):
    def chat_completion(self, messages: list[dict[str, str]]) -> str: ...


class JobQueue(Protocol):
    def enqueue(self, job_name: str, payload: dict[str, Any]) -> str: ...


@dataclass(frozen=True)
class WebhookContext:
    """Everything one webhook delivery may touch. Built per request; swapped wholesale in tests."""

    store: MeetingRepository
    video: VideoPlatform
    chat: ChatPlatform
    llm: CompletionService
    jobs: JobQueue
    settings: Settings
