from __future__ import annotations

import hashlib
import hmac
import time
from dataclasses import dataclass
from typing import Any, Optional

import jwt


@dataclass(frozen=True)
class SignatureCheck:
    ok: bool
    reason: str = ""


def verify_stream_signature(
    *,
    api_secret: str,
    signature: Optional[str],
    raw_body: bytes,
) -> SignatureCheck:
    """
    Stream webhook signature verification.

    Stream signs each delivery with HMAC-SHA256 over the raw request body using the
    app's API secret and sends the hex digest in the X-Signature header.

    Unlike the optional shared-secret checks, an empty secret fails closed: this
    endpoint has no other authentication.
    """
    if not api_secret:
        return SignatureCheck(ok=False, reason="api_secret_not_set")
    if not signature:
        return SignatureCheck(ok=False, reason="missing_signature")

    received = signature.strip().lower()
    try:
        bytes.fromhex(received)
    except ValueError:
        return SignatureCheck(ok=False, reason="malformed_signature")

    digest = hmac.new(api_secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()
    if not hmac.compare_digest(digest, received):
        return SignatureCheck(ok=False, reason="signature_mismatch")
    return SignatureCheck(ok=True)


def create_server_token(api_secret: str) -> str:
    """Server-side Stream token (full access, no user scope)."""
    return jwt.encode({"server": True}, api_secret, algorithm="HS256")


def create_user_token(
    api_secret: str,
    user_id: str,
    ttl_seconds: int = 60 * 60,
    call_cids: Optional[list[str]] = None,
) -> str:
    # Backdate iat slightly to tolerate clock skew with Stream's edge.
    now = int(time.time())
    payload: dict[str, Any] = {"user_id": user_id, "iat": now - 60, "exp": now + ttl_seconds}
    if call_cids:
        # Call token: scoped to the listed calls only.
        payload["call_cids"] = list(call_cids)
    return jwt.encode(payload, api_secret, algorithm="HS256")


def verify_api_key(
    *,
    expected: str,
    provided: Optional[str],
) -> SignatureCheck:
    if not expected:
        return SignatureCheck(ok=False, reason="api_key_not_set")
    if not provided:
        return SignatureCheck(ok=False, reason="missing_api_key")
    # Headers arrive latin-1 decoded; compare_digest rejects non-ASCII str operands.
    if not hmac.compare_digest(expected.encode("utf-8"), provided.encode("utf-8")):
        return SignatureCheck(ok=False, reason="api_key_mismatch")
    return SignatureCheck(ok=True)
