from __future__ import annotations

import json
import logging
from typing import Iterable

import httpx
from pydantic import ValidationError

from meetai.schemas.transcript import TranscriptItem

logger = logging.getLogger(__name__)

UNKNOWN_SPEAKER = "Participant"


def parse_jsonl(text: str) -> list[TranscriptItem]:
    items: list[TranscriptItem] = []
    for lineno, line in enumerate(text.splitlines(), start=1):
        line = line.strip()
        if not line:
            continue
        try:
            items.append(TranscriptItem.model_validate(json.loads(line)))
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning("Skipping unparseable transcript line %d: %s", lineno, e)
    return items


def fetch_transcript(url: str) -> list[TranscriptItem]:
    with httpx.Client(timeout=30.0, follow_redirects=True) as client:
        resp = client.get(url)
        resp.raise_for_status()
    items = parse_jsonl(resp.text)
    logger.info("Transcript fetched. items=%d bytes=%d", len(items), len(resp.content))
    return items


def _fmt_ts(ms: int) -> str:
    total = max(ms, 0) // 1000
    return f"{total // 60:02d}:{total % 60:02d}"


def speaker_ids(items: Iterable[TranscriptItem]) -> list[str]:
    seen: list[str] = []
    for item in items:
        if item.speaker_id and item.speaker_id not in seen:
            seen.append(item.speaker_id)
    return seen


def format_transcript(items: list[TranscriptItem], names: dict[str, str]) -> str:
    """'[mm:ss] Name: text' per speech line; non-speech and blank lines are dropped."""
    lines = []
    for item in items:
        if item.type != "speech" or not item.text.strip():
            continue
        name = names.get(item.speaker_id, UNKNOWN_SPEAKER)
        lines.append(f"[{_fmt_ts(item.start_ts)}] {name}: {item.text.strip()}")
    return "\n".join(lines)
