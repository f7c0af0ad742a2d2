from __future__ import annotations

import hashlib
import hmac
import json
import threading
from dataclasses import dataclass, field
from typing import Any, Optional

from meetai.services.errors import EnqueueFailed
from meetai.services.stream_chat_service import ChannelState, ChatMessage
from meetai.util.security import verify_stream_signature

TEST_API_KEY = "test-key"
TEST_API_SECRET = "test-secret"


def sign(body: bytes, secret: str = TEST_API_SECRET) -> str:
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def encode(payload: dict[str, Any]) -> bytes:
    return json.dumps(payload).encode("utf-8")


class FakeSession:
    def __init__(self, video: "FakeVideo", call_id: str) -> None:
        self.video = video
        self.call_id = call_id

    def update_session(self, *, instructions: str) -> None:
        self.video.instructions.append((self.call_id, instructions))


class FakeCall:
    def __init__(self, video: "FakeVideo", call_type: str, call_id: str) -> None:
        self.video = video
        self.call_type = call_type
        self.call_id = call_id

    def end(self) -> None:
        if self.video.end_error is not None:
            raise self.video.end_error
        self.video.ended.append(self.call_id)


class FakeVideo:
    def __init__(self, api_secret: str = TEST_API_SECRET) -> None:
        self.api_secret = api_secret
        self.ended: list[str] = []
        self.connects: list[tuple[str, str]] = []
        self.instructions: list[tuple[str, str]] = []
        self.upserted: list[dict[str, Any]] = []
        self.end_error: Optional[Exception] = None
        self.connect_error: Optional[Exception] = None
        self._lock = threading.Lock()

    def verify_webhook(self, body: bytes, signature: Optional[str]) -> bool:
        return verify_stream_signature(api_secret=self.api_secret, signature=signature, raw_body=body).ok

    def call(self, call_type: str, call_id: str) -> FakeCall:
        return FakeCall(self, call_type, call_id)

    def connect_openai(self, *, call: FakeCall, openai_api_key: str, agent_user_id: str) -> FakeSession:
        if self.connect_error is not None:
            raise self.connect_error
        with self._lock:
            self.connects.append((call.call_id, agent_user_id))
        return FakeSession(self, call.call_id)

    def upsert_users(self, users: list[dict[str, Any]]) -> None:
        self.upserted.extend(users)


class FakeChannel:
    def __init__(self, chat: "FakeChat", channel_type: str, channel_id: str) -> None:
        self.chat = chat
        self.channel_type = channel_type
        self.channel_id = channel_id
        self.state = ChannelState()

    def watch(self) -> ChannelState:
        self.chat.watched.append(self.channel_id)
        self.state = ChannelState(messages=list(self.chat.history.get(self.channel_id, [])))
        return self.state

    def send_message(self, *, text: str, user: dict[str, Any]) -> dict[str, Any]:
        self.chat.sent.append({"channel_id": self.channel_id, "text": text, "user": user})
        return {}


class FakeChat:
    def __init__(self) -> None:
        self.history: dict[str, list[ChatMessage]] = {}
        self.watched: list[str] = []
        self.sent: list[dict[str, Any]] = []
        self.upserted: list[dict[str, Any]] = []

    def channel(self, channel_type: str, channel_id: str) -> FakeChannel:
        return FakeChannel(self, channel_type, channel_id)

    def upsert_user(self, *, id: str, name: str, image: Optional[str] = None, role: Optional[str] = None) -> None:
        self.upserted.append({"id": id, "name": name, "image": image})


class FakeLLM:
    def __init__(self, reply: str = "The team agreed on the Q3 budget.") -> None:
        self.reply = reply
        self.calls: list[list[dict[str, str]]] = []

    def chat_completion(self, messages: list[dict[str, str]]) -> str:
        self.calls.append(messages)
        return self.reply

    def summarize_transcript(self, transcript_text: str) -> str:
        self.calls.append([{"role": "user", "content": transcript_text}])
        return self.reply


@dataclass
class FakeJobQueue:
    jobs: list[tuple[str, dict[str, Any]]] = field(default_factory=list)
    fail: bool = False

    def enqueue(self, job_name: str, payload: dict[str, Any]) -> str:
        if self.fail:
            raise EnqueueFailed("Failed to enqueue job")
        self.jobs.append((job_name, payload))
        return f"job-{len(self.jobs)}"
