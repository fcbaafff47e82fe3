"""
Pydantic v2 response schemas for the log volume chart.

One VolumePoint per bucket that contains at least one event; every level
field is present (0 when the bucket has no events of that level).
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel

BucketInterval = Literal["minute", "hour", "day"]


class VolumePoint(BaseModel):
    """Per-level event counts for one time bucket."""

    timestamp: datetime
    error: int = 0
    warn: int = 0
    info: int = 0
    log: int = 0


class VolumeResponse(BaseModel):
    """Chronologically ordered buckets plus the granularity used."""

    data: list[VolumePoint]
    interval: BucketInterval
