from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx

from meetai.services.stream_base import StreamRestClient
from meetai.settings import get_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChatMessage:
    text: str
    user_id: str


@dataclass
class ChannelState:
    messages: list[ChatMessage] = field(default_factory=list)


def _parse_message(raw: dict[str, Any]) -> ChatMessage:
    user = raw.get("user") if isinstance(raw.get("user"), dict) else {}
    return ChatMessage(text=str(raw.get("text") or ""), user_id=str(user.get("id") or ""))


class Channel:
    def __init__(self, client: "StreamChatClient", channel_type: str, channel_id: str) -> None:
        self.client = client
        self.channel_type = channel_type
        self.channel_id = channel_id
        self.state = ChannelState()

    @property
    def cid(self) -> str:
        return f"{self.channel_type}:{self.channel_id}"

    def watch(self) -> ChannelState:
        body = self.client.rest.post(
            f"chat/channels/{self.channel_type}/{self.channel_id}/query",
            {"state": True, "watch": False, "presence": False},
        )
        raw_messages = body.get("messages") or []
        self.state = ChannelState(messages=[_parse_message(m) for m in raw_messages if isinstance(m, dict)])
        logger.debug("Channel state loaded. cid=%s messages=%d", self.cid, len(self.state.messages))
        return self.state

    def send_message(self, *, text: str, user: dict[str, Any]) -> dict[str, Any]:
        logger.info("Sending chat message. cid=%s user_id=%s len=%d", self.cid, user.get("id"), len(text))
        return self.client.rest.post(
            f"chat/channels/{self.channel_type}/{self.channel_id}/message",
            {"message": {"text": text, "user": user}},
        )


class StreamChatClient:
    def __init__(
        self,
        *,
        base_url: str,
        api_key: str,
        api_secret: str,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.rest = StreamRestClient(base_url=base_url, api_key=api_key, api_secret=api_secret, transport=transport)

    def channel(self, channel_type: str, channel_id: str) -> Channel:
        return Channel(self, channel_type, channel_id)

    def upsert_user(self, *, id: str, name: str, image: Optional[str] = None, role: Optional[str] = None) -> None:
        user: dict[str, Any] = {"id": id, "name": name}
        if image:
            user["image"] = image
        if role:
            user["role"] = role
        self.rest.upsert_users([user])


_chat: StreamChatClient | None = None


def get_stream_chat() -> StreamChatClient:
    global _chat
    if _chat is None:
        settings = get_settings()
        _chat = StreamChatClient(
            base_url=settings.STREAM_BASE_URL,
            api_key=settings.STREAM_API_KEY,
            api_secret=settings.STREAM_API_SECRET,
        )
    return _chat
