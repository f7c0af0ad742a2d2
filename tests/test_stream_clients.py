from __future__ import annotations

import json
import threading
from urllib.parse import parse_qs, urlsplit

import httpx
import jwt
import pytest

from meetai.services.stream_base import StreamError, StreamTransientError
from meetai.services.stream_chat_service import ChatMessage, StreamChatClient
from meetai.services.stream_video_service import StreamVideoClient
from tests.util_fakes import sign


class _Recorder:
    """httpx.MockTransport handler that records requests and replies from a path table."""

    def __init__(self, responses=None, status_code: int = 200) -> None:
        self.requests: list[httpx.Request] = []
        self.responses = responses or {}
        self.status_code = status_code

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json=self.responses.get(request.url.path, {}))

    @property
    def paths(self) -> list[str]:
        return [r.url.path for r in self.requests]

    def body(self, i: int):
        return json.loads(self.requests[i].content)


class _FakeConnection:
    def __init__(self, events=()) -> None:
        self.sent: list[dict] = []
        self.closed = False
        self._events = [json.dumps(e) for e in events]
        self._release = threading.Event()

    def __iter__(self):
        yield from self._events
        # The real socket blocks until the bridge or the caller closes it.
        self._release.wait(timeout=5)

    def send(self, message: str) -> None:
        self.sent.append(json.loads(message))

    def close(self) -> None:
        self.closed = True
        self._release.set()


class _FakeConnector:
    def __init__(self, connection=None, error: Exception | None = None) -> None:
        self.connection = connection or _FakeConnection()
        self.error = error
        self.calls: list[tuple[str, dict]] = []

    def __call__(self, uri: str, **kwargs):
        self.calls.append((uri, kwargs))
        if self.error is not None:
            raise self.error
        return self.connection


def _video(recorder=None, connector=None) -> StreamVideoClient:
    return StreamVideoClient(
        base_url="https://chat.stream.test",
        realtime_url="wss://video.stream.test/video/connect_agent",
        api_key="k",
        api_secret="test-secret",
        transport=httpx.MockTransport(recorder or _Recorder()),
        connector=connector or _FakeConnector(),
    )


def test_verify_webhook():
    video = _video()
    body = b'{"type":"call.session_ended"}'
    assert video.verify_webhook(body, sign(body)) is True
    assert video.verify_webhook(body, "deadbeef") is False
    assert video.verify_webhook(body, None) is False
    assert video.verify_webhook(body, 12345) is False  # type: ignore[arg-type]


def test_rest_calls_use_v2_paths_with_server_auth():
    recorder = _Recorder()
    video = _video(recorder)

    video.call("default", "m1").end()
    video.upsert_users([{"id": "agent-1", "name": "Bot"}])

    assert recorder.paths == ["/api/v2/video/call/default/m1/mark_ended", "/api/v2/users"]
    first = recorder.requests[0]
    assert first.url.host == "chat.stream.test"
    assert first.url.params["api_key"] == "k"
    assert first.headers["stream-auth-type"] == "jwt"
    assert jwt.decode(first.headers["authorization"], "test-secret", algorithms=["HS256"]) == {"server": True}
    assert recorder.body(1) == {"users": {"agent-1": {"id": "agent-1", "name": "Bot"}}}


@pytest.mark.parametrize("status_code,error", [(503, StreamTransientError), (429, StreamTransientError), (403, StreamError)])
def test_rest_error_classification(status_code, error):
    video = _video(_Recorder(status_code=status_code))
    with pytest.raises(error):
        video.call("default", "m1").end()


def test_connect_openai_opens_bridge_socket_and_updates_session():
    connection = _FakeConnection(events=[{"type": "session.created", "session": {"id": "sess_1"}}])
    connector = _FakeConnector(connection)
    video = _video(connector=connector)

    session = video.connect_openai(call=video.call("default", "m1"), openai_api_key="sk-test", agent_user_id="agent-1")
    session.update_session(instructions="Be concise.")

    uri, kwargs = connector.calls[0]
    parts = urlsplit(uri)
    assert (parts.scheme, parts.netloc, parts.path) == ("wss", "video.stream.test", "/video/connect_agent")
    assert parse_qs(parts.query) == {
        "call_type": ["default"],
        "call_id": ["m1"],
        "api_key": ["k"],
        "model": ["gpt-4o-realtime-preview"],
    }
    assert kwargs["additional_headers"]["Stream-Auth-Type"] == "jwt"
    claims = jwt.decode(kwargs["additional_headers"]["Authorization"], "test-secret", algorithms=["HS256"])
    assert claims["user_id"] == "agent-1"
    assert claims["call_cids"] == ["default:m1"]
    assert "openai-insecure-api-key.sk-test" in kwargs["subprotocols"]
    assert connection.sent == [{"type": "session.update", "session": {"instructions": "Be concise."}}]

    video.call("default", "m1").end()
    assert connection.closed is True
    session.reader.join(timeout=5)
    assert session.session_id == "sess_1"


def test_connect_openai_handshake_failures():
    video = _video(connector=_FakeConnector(error=ConnectionRefusedError("refused")))
    with pytest.raises(StreamTransientError):
        video.connect_openai(call=video.call("default", "m1"), openai_api_key="sk-test", agent_user_id="a")

    with pytest.raises(StreamError):
        video.connect_openai(call=video.call("default", "m1"), openai_api_key="", agent_user_id="a")


def test_channel_watch_send_and_upsert():
    recorder = _Recorder(
        {
            "/api/v2/chat/channels/messaging/m2/query": {
                "messages": [
                    {"text": "hello", "user": {"id": "u1"}},
                    {"text": None, "user": None},
                    "junk",
                ]
            }
        }
    )
    chat = StreamChatClient(
        base_url="https://chat.stream.test",
        api_key="k",
        api_secret="s",
        transport=httpx.MockTransport(recorder),
    )

    channel = chat.channel("messaging", "m2")
    state = channel.watch()
    assert state.messages == [ChatMessage(text="hello", user_id="u1"), ChatMessage(text="", user_id="")]

    channel.send_message(text="answer", user={"id": "agent-1"})
    chat.upsert_user(id="agent-1", name="Bot", image="https://img")

    assert recorder.paths == [
        "/api/v2/chat/channels/messaging/m2/query",
        "/api/v2/chat/channels/messaging/m2/message",
        "/api/v2/users",
    ]
    assert recorder.body(0) == {"state": True, "watch": False, "presence": False}
    assert recorder.body(1) == {"message": {"text": "answer", "user": {"id": "agent-1"}}}
    assert recorder.body(2) == {"users": {"agent-1": {"id": "agent-1", "name": "Bot", "image": "https://img"}}}
