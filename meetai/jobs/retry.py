from __future__ import annotations

import logging
from typing import Any, Callable, Optional, TypeVar

import httpx
from rq import get_current_job

from meetai.services.llm_service import LLMTransientError
from meetai.services.stream_base import StreamTransientError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TransientJobError(Exception):
    """An error that should be retried with backoff."""


class PermanentJobError(Exception):
    """An error that should not be retried."""


def _is_transient_exc(exc: BaseException) -> bool:
    if isinstance(exc, TransientJobError):
        return True
    if isinstance(exc, PermanentJobError):
        return False
    if isinstance(exc, (LLMTransientError, StreamTransientError)):
        return True
    if isinstance(exc, (httpx.TimeoutException, httpx.NetworkError)):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        code = exc.response.status_code
        return code == 429 or 500 <= code <= 599
    return False


def _retries_left() -> Optional[int]:
    job = get_current_job()
    if not job:
        return None
    # rq exposes retries_left when Retry is used; keep defensive fallback.
    return getattr(job, "retries_left", None)


def run_job(name: str, handler: Callable[..., T], **kwargs: Any) -> Optional[T]:
    """
    Wrapper providing:
    - Consistent start/finish logging
    - Respecting RQ Retry: raise to retry on transient errors
    - Permanent errors are logged and swallowed so RQ does not reschedule them
    """
    logger.info("Job start. name=%s args=%s", name, kwargs)
    try:
        result = handler(**kwargs)
    except Exception as e:  # noqa: BLE001
        transient = _is_transient_exc(e)
        retries_left = _retries_left()
        logger.exception("Job error. name=%s transient=%s retries_left=%s", name, transient, retries_left)
        if transient:
            if retries_left == 0:
                logger.error("Job failed terminally after retries. name=%s args=%s error=%s", name, kwargs, e)
            raise
        logger.error("Job failed permanently. name=%s args=%s error=%s", name, kwargs, e)
        return None
    logger.info("Job done. name=%s", name)
    return result
