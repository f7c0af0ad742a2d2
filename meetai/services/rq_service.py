from __future__ import annotations

import logging
from typing import Any

from rq import Queue, Retry

from meetai.services.errors import EnqueueFailed
from meetai.services.redis_client import get_redis_bytes
from meetai.settings import get_settings

logger = logging.getLogger(__name__)

MEETINGS_PROCESSING = "meetings/processing"

# Enqueue by string path to avoid importing job modules at API startup time.
JOB_FUNCS: dict[str, str] = {
    MEETINGS_PROCESSING: "meetai.jobs.meeting_jobs.process_meeting",
}


def get_queue() -> Queue:
    settings = get_settings()
    return Queue(
        name=settings.RQ_QUEUE_NAME,
        connection=get_redis_bytes(),
        default_timeout=900,
    )


def default_retry() -> Retry:
    # Max attempts: 4; backoff schedule seconds: 0, 60, 300, 900
    return Retry(max=4, interval=[0, 60, 300, 900])


class RQJobQueue:
    """Named-job facade over an RQ queue. Any enqueue failure surfaces as EnqueueFailed."""

    def __init__(self, queue_factory=get_queue) -> None:
        self._queue_factory = queue_factory

    def enqueue(self, job_name: str, payload: dict[str, Any]) -> str:
        func = JOB_FUNCS.get(job_name)
        if func is None:
            raise EnqueueFailed(f"Unknown job: {job_name}")
        try:
            q = self._queue_factory()
            job = q.enqueue(
                func,
                kwargs=payload,
                retry=default_retry(),
                description=f"{job_name} meeting_id={payload.get('meeting_id', '')}",
            )
        except Exception as e:  # noqa: BLE001
            logger.exception("Failed to enqueue job. name=%s payload=%s", job_name, payload)
            raise EnqueueFailed("Failed to enqueue job") from e
        logger.info("Enqueued job. name=%s job_id=%s", job_name, job.id)
        return job.id


_job_queue: RQJobQueue | None = None


def get_job_queue() -> RQJobQueue:
    global _job_queue
    if _job_queue is None:
        _job_queue = RQJobQueue()
    return _job_queue
