from __future__ import annotations

import jwt

from meetai.util.security import create_server_token, create_user_token, verify_api_key, verify_stream_signature
from tests.util_fakes import sign


def test_stream_signature_accepts_matching_digest():
    body = b'{"type":"call.session_started"}'
    check = verify_stream_signature(api_secret="test-secret", signature=sign(body), raw_body=body)
    assert check.ok is True


def test_stream_signature_rejects_tampered_body():
    body = b'{"type":"call.session_started"}'
    check = verify_stream_signature(api_secret="test-secret", signature=sign(body), raw_body=body + b" ")
    assert check.ok is False
    assert check.reason == "signature_mismatch"


def test_stream_signature_fails_closed():
    body = b"{}"
    assert verify_stream_signature(api_secret="", signature=sign(body), raw_body=body).reason == "api_secret_not_set"
    assert verify_stream_signature(api_secret="test-secret", signature=None, raw_body=body).reason == "missing_signature"
    assert verify_stream_signature(api_secret="test-secret", signature="zz-not-hex", raw_body=body).reason == "malformed_signature"


def test_api_key_check():
    assert verify_api_key(expected="k", provided="k").ok is True
    assert verify_api_key(expected="k", provided="other").reason == "api_key_mismatch"
    assert verify_api_key(expected="k", provided=None).reason == "missing_api_key"
    assert verify_api_key(expected="", provided="k").ok is False


def test_server_and_user_tokens_are_signed_with_secret():
    server = jwt.decode(create_server_token("s3cret"), "s3cret", algorithms=["HS256"])
    assert server == {"server": True}

    user = jwt.decode(create_user_token("s3cret", "agent-1"), "s3cret", algorithms=["HS256"])
    assert user["user_id"] == "agent-1"
    assert user["exp"] > user["iat"]


def test_api_key_check_with_non_ascii_header_is_rejected():
    # Starlette decodes header bytes as latin-1.
    provided = b"cl\xe9".decode("latin-1")
    check = verify_api_key(expected="k", provided=provided)
    assert check.ok is False
    assert check.reason == "api_key_mismatch"
