from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter
from sqlalchemy import text

from meetai.db.session import get_engine
from meetai.services.redis_client import get_redis_bytes

logger = logging.getLogger(__name__)
router = APIRouter()


def _check_db() -> str:
    try:
        with get_engine().connect() as conn:
            conn.execute(text("SELECT 1"))
        return "ok"
    except Exception as e:  # noqa: BLE001
        logger.warning("Health: database check failed: %s", e)
        return "error"


def _check_redis() -> str:
    try:
        get_redis_bytes().ping()
        return "ok"
    except Exception as e:  # noqa: BLE001
        logger.warning("Health: redis check failed: %s", e)
        return "error"


@router.get("/health")
def health() -> dict[str, Any]:
    return {"ok": True, "db": _check_db(), "redis": _check_redis()}
