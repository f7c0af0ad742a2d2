from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from meetai.services.errors import AuthFailure, MissingFields, WebhookError
from meetai.services.llm_service import get_llm_client
from meetai.services.meeting_store import get_meeting_store
from meetai.services.rq_service import get_job_queue
from meetai.services.stream_chat_service import get_stream_chat
from meetai.services.stream_video_service import get_stream_video
from meetai.services.webhook_context import WebhookContext
from meetai.services.webhook_dispatcher import dispatch
from meetai.settings import get_settings
from meetai.util.security import verify_api_key

logger = logging.getLogger(__name__)
router = APIRouter()


def get_webhook_context() -> WebhookContext:
    return WebhookContext(
        store=get_meeting_store(),
        video=get_stream_video(),
        chat=get_stream_chat(),
        llm=get_llm_client(),
        jobs=get_job_queue(),
        settings=get_settings(),
    )


def authenticate(ctx: WebhookContext, raw: bytes, signature: Optional[str], api_key: Optional[str]) -> None:
    # This endpoint sits outside user-session auth; the signature is the only gate.
    if not signature or not api_key:
        raise MissingFields("Missing signature or API Key")

    key_check = verify_api_key(expected=ctx.settings.STREAM_API_KEY, provided=api_key)
    if not key_check.ok:
        logger.warning("Webhook rejected: api key check failed. reason=%s", key_check.reason)
        raise AuthFailure("Invalid API Key")

    if not ctx.video.verify_webhook(raw, signature):
        raise AuthFailure("Invalid signature")


def _error(e: WebhookError) -> JSONResponse:
    return JSONResponse({"error": e.message}, status_code=e.status_code)


@router.post("/webhooks/stream")
async def stream_webhook(request: Request, ctx: WebhookContext = Depends(get_webhook_context)) -> Any:
    raw = await request.body()

    try:
        authenticate(ctx, raw, request.headers.get("x-signature"), request.headers.get("x-api-key"))
        # Handlers do blocking DB/HTTP I/O in sequence; keep them off the event loop.
        await run_in_threadpool(dispatch, ctx, raw)
    except WebhookError as e:
        if e.status_code >= 500:
            logger.error("Webhook failed. status=%s error=%s", e.status_code, e.message)
        return _error(e)
    except Exception:  # noqa: BLE001
        logger.exception("Webhook handler crashed")
        return JSONResponse({"error": "Internal error"}, status_code=500)

    return {"status": "ok"}
