from __future__ import annotations

import logging
import os
import socket

from rq import Worker
from rq.job import Job

from meetai.db.session import init_db
from meetai.logging import configure_logging
from meetai.services.redis_client import get_redis_bytes
from meetai.services.rq_service import JOB_FUNCS, get_queue
from meetai.settings import get_settings

logger = logging.getLogger(__name__)


def log_failed_job(job: Job, exc_type, exc_value, traceback) -> bool:
    # RQ calls this for every failed attempt, retries included; retries_left tells them apart.
    kwargs = job.kwargs or {}
    logger.error(
        "Job attempt failed. job_id=%s func=%s meeting_id=%s retries_left=%s error=%s: %s",
        job.id,
        job.func_name,
        kwargs.get("meeting_id", ""),
        job.retries_left,
        getattr(exc_type, "__name__", exc_type),
        exc_value,
    )
    return True


def main() -> None:
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL, log_sql=settings.LOG_SQL)
    settings.validate_and_fail_fast()

    # Jobs write meeting rows; make sure the schema exists before the first one runs.
    if settings.DB_AUTO_CREATE:
        init_db()

    queue = get_queue()
    worker = Worker(
        [queue],
        connection=get_redis_bytes(),
        name=f"meetai-{socket.gethostname()}-{os.getpid()}",
        exception_handlers=[log_failed_job],
    )
    logger.info(
        "Starting RQ worker. name=%s queue=%s jobs=%s",
        worker.name,
        queue.name,
        ",".join(sorted(JOB_FUNCS)),
    )
    worker.work(with_scheduler=True)


if __name__ == "__main__":
    main()
