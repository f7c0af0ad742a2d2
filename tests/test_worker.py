from __future__ import annotations

import logging
from types import SimpleNamespace

from meetai.jobs.retry import TransientJobError
from meetai.logging import configure_logging
from meetai.worker import log_failed_job


def test_failed_job_is_logged_with_meeting_id(caplog):
    job = SimpleNamespace(
        id="job-1",
        func_name="meetai.jobs.meeting_jobs.process_meeting",
        kwargs={"meeting_id": "m1", "transcript_url": "https://t"},
        retries_left=2,
    )
    with caplog.at_level(logging.ERROR, logger="meetai.worker"):
        handled = log_failed_job(job, TransientJobError, TransientJobError("still active"), None)

    assert handled is True
    assert "meeting_id=m1" in caplog.text
    assert "retries_left=2" in caplog.text
    assert "TransientJobError" in caplog.text


def test_configure_logging_quiets_client_libraries():
    configure_logging("DEBUG")
    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("httpx").level == logging.WARNING
    assert logging.getLogger("websockets").level == logging.WARNING
    assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING

    configure_logging("INFO", log_sql=True)
    assert logging.getLogger("sqlalchemy.engine").level == logging.INFO
    assert len(logging.getLogger().handlers) == 1
