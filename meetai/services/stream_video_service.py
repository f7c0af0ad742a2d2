from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Optional
from urllib.parse import urlencode

import httpx
from websockets.exceptions import ConnectionClosed, InvalidStatus, WebSocketException
from websockets.sync.client import connect as ws_connect

from meetai.services.stream_base import StreamError, StreamRestClient, StreamTransientError
from meetai.settings import get_settings
from meetai.util.security import create_user_token, verify_stream_signature

logger = logging.getLogger(__name__)

OPENAI_REALTIME_SUBPROTOCOL = "openai-beta.realtime-v1"


@dataclass
class Call:
    client: "StreamVideoClient"
    call_type: str
    call_id: str

    @property
    def cid(self) -> str:
        return f"{self.call_type}:{self.call_id}"

    def end(self) -> None:
        logger.info("Ending call. cid=%s", self.cid)
        self.client.rest.post(f"video/call/{self.call_type}/{self.call_id}/mark_ended")
        self.client.close_realtime(self.cid)


def _decode_event(message: Any) -> dict[str, Any]:
    try:
        event = json.loads(message)
    except (TypeError, ValueError):
        return {}
    return event if isinstance(event, dict) else {}


class RealtimeSession:
    """
    OpenAI realtime agent attached to a call through Stream's agent bridge.

    The bridge relays the OpenAI Realtime event protocol over a single websocket and
    keeps the agent in the call for as long as that socket stays open. Client events
    (session.update) go out on the socket; server events are drained by a daemon thread.
    """

    def __init__(self, *, client: "StreamVideoClient", call: Call, agent_user_id: str, connection: Any) -> None:
        self.client = client
        self.call = call
        self.agent_user_id = agent_user_id
        self.session_id = ""
        self._ws = connection
        self.reader: Optional[threading.Thread] = None

    def start(self) -> None:
        self.reader = threading.Thread(target=self._drain, name=f"realtime-{self.call.cid}", daemon=True)
        self.reader.start()

    def _drain(self) -> None:
        try:
            for message in self._ws:
                event = _decode_event(message)
                etype = event.get("type")
                if etype in ("session.created", "session.updated"):
                    self.session_id = str((event.get("session") or {}).get("id") or self.session_id)
                    logger.info("Realtime %s. cid=%s session_id=%s", etype, self.call.cid, self.session_id)
                elif etype == "error":
                    logger.error("Realtime bridge error. cid=%s error=%s", self.call.cid, event.get("error"))
        except ConnectionClosed as e:
            logger.warning("Realtime bridge closed abnormally. cid=%s error=%s", self.call.cid, e)
        finally:
            self.client.forget_realtime(self)
            logger.info("Realtime agent detached. cid=%s agent_id=%s", self.call.cid, self.agent_user_id)

    def send(self, event: dict[str, Any]) -> None:
        try:
            self._ws.send(json.dumps(event))
        except ConnectionClosed as e:
            raise StreamError(f"Realtime bridge closed for {self.call.cid}: {e}") from e

    def update_session(self, *, instructions: str) -> None:
        logger.info("Updating realtime session instructions. cid=%s", self.call.cid)
        self.send({"type": "session.update", "session": {"instructions": instructions}})

    def close(self) -> None:
        self._ws.close()


class StreamVideoClient:
    def __init__(
        self,
        *,
        base_url: str,
        realtime_url: str,
        api_key: str,
        api_secret: str,
        realtime_model: str = "gpt-4o-realtime-preview",
        connect_timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
        connector: Callable[..., Any] = ws_connect,
    ) -> None:
        self.api_key = api_key
        self.api_secret = api_secret
        self.realtime_url = realtime_url
        self.realtime_model = realtime_model
        self.connect_timeout = connect_timeout
        self.rest = StreamRestClient(base_url=base_url, api_key=api_key, api_secret=api_secret, transport=transport)
        self._connector = connector
        self._sessions: dict[str, RealtimeSession] = {}
        self._lock = threading.Lock()

    def verify_webhook(self, body: bytes, signature: Optional[str]) -> bool:
        # Any failure in verification counts as invalid.
        try:
            check = verify_stream_signature(api_secret=self.api_secret, signature=signature, raw_body=body)
        except Exception as e:  # noqa: BLE001
            logger.warning("Webhook signature verification raised; rejecting. error=%s", e)
            return False
        if not check.ok:
            logger.warning("Webhook signature rejected. reason=%s", check.reason)
        return check.ok

    def call(self, call_type: str, call_id: str) -> Call:
        return Call(client=self, call_type=call_type, call_id=call_id)

    def _bridge_url(self, call: Call) -> str:
        query = urlencode(
            {
                "call_type": call.call_type,
                "call_id": call.call_id,
                "api_key": self.api_key,
                "model": self.realtime_model,
            }
        )
        return f"{self.realtime_url}?{query}"

    def connect_openai(self, *, call: Call, openai_api_key: str, agent_user_id: str) -> RealtimeSession:
        if not openai_api_key:
            raise StreamError("OPENAI_API_KEY not configured; cannot connect realtime agent")
        if not self.api_secret:
            raise StreamError("STREAM_API_SECRET not configured")

        token = create_user_token(self.api_secret, agent_user_id, call_cids=[call.cid])
        try:
            connection = self._connector(
                self._bridge_url(call),
                additional_headers={"Authorization": token, "Stream-Auth-Type": "jwt"},
                subprotocols=["realtime", f"openai-insecure-api-key.{openai_api_key}", OPENAI_REALTIME_SUBPROTOCOL],
                open_timeout=self.connect_timeout,
                max_size=None,
            )
        except InvalidStatus as e:
            code = e.response.status_code
            if code == 429 or 500 <= code <= 599:
                raise StreamTransientError(f"Realtime bridge handshake for {call.cid}: HTTP {code}") from e
            raise StreamError(f"Realtime bridge handshake for {call.cid}: HTTP {code}") from e
        except OSError as e:
            raise StreamTransientError(f"Realtime bridge unreachable for {call.cid}: {e}") from e
        except WebSocketException as e:
            raise StreamError(f"Realtime bridge handshake for {call.cid}: {e}") from e

        session = RealtimeSession(client=self, call=call, agent_user_id=agent_user_id, connection=connection)
        with self._lock:
            previous = self._sessions.pop(call.cid, None)
            self._sessions[call.cid] = session
        if previous is not None:
            previous.close()
        session.start()
        logger.info("Realtime agent connected. cid=%s agent_id=%s", call.cid, agent_user_id)
        return session

    def forget_realtime(self, session: RealtimeSession) -> None:
        with self._lock:
            if self._sessions.get(session.call.cid) is session:
                del self._sessions[session.call.cid]

    def close_realtime(self, cid: str) -> None:
        with self._lock:
            session = self._sessions.pop(cid, None)
        if session is not None:
            session.close()

    def upsert_users(self, users: list[dict[str, Any]]) -> None:
        self.rest.upsert_users(users)


_video: StreamVideoClient | None = None


def get_stream_video() -> StreamVideoClient:
    global _video
    if _video is None:
        settings = get_settings()
        _video = StreamVideoClient(
            base_url=settings.STREAM_BASE_URL,
            realtime_url=settings.STREAM_REALTIME_URL,
            api_key=settings.STREAM_API_KEY,
            api_secret=settings.STREAM_API_SECRET,
            realtime_model=settings.OPENAI_REALTIME_MODEL,
        )
    return _video
