from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class TranscriptItem(BaseModel):
    """One line of a Stream transcript (JSON Lines)."""

    model_config = ConfigDict(extra="ignore")

    speaker_id: str = Field(default="")
    type: str = Field(default="speech")
    text: str = Field(default="")
    start_ts: int = Field(default=0)  # ms from call start
    stop_ts: int = Field(default=0)
