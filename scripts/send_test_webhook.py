"""
Sign and POST a sample Stream webhook to a running instance.

Usage:
    python scripts/send_test_webhook.py session_started <meeting_id>
    python scripts/send_test_webhook.py transcription_ready <meeting_id> https://example.com/t.jsonl
    python scripts/send_test_webhook.py message_new <meeting_id> <user_id> "What was decided?"
"""

from __future__ import annotations

import hashlib
import hmac
import json
import sys

import httpx

from meetai.settings import get_settings


def build_payload(kind: str, meeting_id: str, extra: list[str]) -> dict:
    cid = f"default:{meeting_id}"
    if kind == "session_started":
        return {"type": "call.session_started", "call_cid": cid, "call": {"id": meeting_id, "custom": {"meetingId": meeting_id}}}
    if kind == "session_ended":
        return {"type": "call.session_ended", "call_cid": cid, "call": {"id": meeting_id, "custom": {"meetingId": meeting_id}}}
    if kind == "participant_left":
        return {"type": "call.session_participant_left", "call_cid": cid}
    if kind == "transcription_ready":
        return {"type": "call.transcription_ready", "call_cid": cid, "call_transcription": {"url": extra[0]}}
    if kind == "recording_ready":
        return {"type": "call.recording_ready", "call_cid": cid, "call_recording": {"url": extra[0]}}
    if kind == "message_new":
        user_id, text = extra[0], extra[1]
        return {
            "type": "message.new",
            "cid": f"messaging:{meeting_id}",
            "channel_id": meeting_id,
            "channel_type": "messaging",
            "message": {"cid": f"messaging:{meeting_id}", "text": text},
            "user": {"id": user_id},
        }
    raise SystemExit(f"Unknown event kind: {kind}")


def main() -> None:
    if len(sys.argv) < 3:
        raise SystemExit(__doc__)
    kind, meeting_id, extra = sys.argv[1], sys.argv[2], sys.argv[3:]

    settings = get_settings()
    if not settings.STREAM_API_SECRET:
        raise SystemExit("STREAM_API_SECRET must be set to sign the webhook")

    body = json.dumps(build_payload(kind, meeting_id, extra)).encode("utf-8")
    signature = hmac.new(settings.STREAM_API_SECRET.encode("utf-8"), body, hashlib.sha256).hexdigest()
    url = f"{settings.BASE_URL.rstrip('/')}/webhooks/stream"

    print(f"📤 Sending {kind} webhook to: {url}")
    resp = httpx.post(
        url,
        content=body,
        headers={"content-type": "application/json", "x-signature": signature, "x-api-key": settings.STREAM_API_KEY},
        timeout=30.0,
    )
    print(f"Status: {resp.status_code}")
    print(resp.text)


if __name__ == "__main__":
    main()
