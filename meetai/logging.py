from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s [%(threadName)s] %(name)s - %(message)s"

# Client libraries that log per request/frame at INFO or DEBUG. Request URLs carry the
# Stream api_key as a query param, and the bridge handshake logs its subprotocols.
NOISY_LOGGERS = ("httpx", "httpcore", "websockets")


def configure_logging(level: str, *, log_sql: bool = False) -> None:
    """
    Single stdout handler on the root logger, shared by the API process, the RQ worker
    and the realtime bridge threads (thread name is part of every line).
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S%z"))

    root = logging.getLogger()
    root.setLevel(numeric_level)
    # uvicorn --reload and repeated create_app() calls re-run this.
    root.handlers.clear()
    root.addHandler(handler)

    floor = max(numeric_level, logging.WARNING)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(floor)

    logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO if log_sql else floor)
