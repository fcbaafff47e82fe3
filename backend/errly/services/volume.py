"""
Log volume aggregation for the dashboard chart.

Counting happens in SQL (GROUP BY date_trunc(bucket), level); only the
pivot into one row per bucket happens in Python.

Granularity policy (fixed, not user-configurable):
  span ≤ 2h        → minute buckets
  2h < span ≤ 48h  → hour buckets
  span > 48h       → day buckets

Buckets without any event are not synthesized; the chart receives only
buckets that actually contain data.
"""

from __future__ import annotations

import datetime
import logging
import uuid
from collections.abc import Iterable
from dataclasses import dataclass

from sqlalchemy import Select, func, literal_column, select
from sqlalchemy.ext.asyncio import AsyncSession

from errly.models.error_event import EVENT_LEVELS, ErrorEvent
from errly.models.project import Project
from errly.schemas.volume import BucketInterval, VolumePoint, VolumeResponse

logger = logging.getLogger(__name__)

MINUTE_BUCKETS_MAX_SPAN = datetime.timedelta(hours=2)
HOUR_BUCKETS_MAX_SPAN = datetime.timedelta(hours=48)

_BUCKET_INTERVALS = ("minute", "hour", "day")


@dataclass(frozen=True, slots=True)
class LevelCount:
    """One grouped row: events of `level` inside the bucket at `bucket_start`."""

    bucket_start: datetime.datetime
    level: str
    count: int


def choose_bucket_interval(
    start: datetime.datetime,
    end: datetime.datetime,
) -> BucketInterval:
    """Pick the bucket width from the span between start and end."""
    span = end - start
    if span <= MINUTE_BUCKETS_MAX_SPAN:
        return "minute"
    if span <= HOUR_BUCKETS_MAX_SPAN:
        return "hour"
    return "day"


async def get_owned_project(
    session: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
) -> Project | None:
    """The project if it exists AND belongs to user_id, else None."""
    stmt = select(Project).where(
        Project.id == project_id,
        Project.owner_user_id == user_id,
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


def build_level_count_query(
    project_id: uuid.UUID,
    start: datetime.datetime,
    end: datetime.datetime,
    interval: BucketInterval,
) -> Select:
    """
    SQL: SELECT date_trunc(:interval, received_at) AS bucket_start,
                level, COUNT(*)
         FROM errors
         WHERE project_id = :project_id
           AND received_at BETWEEN :start AND :end
         GROUP BY bucket_start, level

    The interval is inlined as a literal so the SELECT and GROUP BY
    expressions are identical to Postgres. The
    ix_errors_project_id_received_at index supports the range filter.
    """
    if interval not in _BUCKET_INTERVALS:
        raise ValueError(f"Unsupported bucket interval: {interval!r}")

    bucket = func.date_trunc(
        literal_column(f"'{interval}'"),
        ErrorEvent.received_at,
    ).label("bucket_start")

    return (
        select(
            bucket,
            ErrorEvent.level,
            func.count().label("count"),
        )
        .where(
            ErrorEvent.project_id == project_id,
            ErrorEvent.received_at >= start,
            ErrorEvent.received_at <= end,
        )
        .group_by(bucket, ErrorEvent.level)
    )


async def fetch_level_counts(
    session: AsyncSession,
    project_id: uuid.UUID,
    start: datetime.datetime,
    end: datetime.datetime,
    interval: BucketInterval,
) -> list[LevelCount]:
    stmt = build_level_count_query(project_id, start, end, interval)
    rows = (await session.execute(stmt)).all()
    return [LevelCount(row.bucket_start, row.level, row.count) for row in rows]


def pivot_level_counts(rows: Iterable[LevelCount]) -> list[VolumePoint]:
    """
    One VolumePoint per distinct bucket, every level defaulting to 0,
    sorted by timestamp ascending. Unknown levels are ignored.
    """
    buckets: dict[datetime.datetime, VolumePoint] = {}

    for row in rows:
        point = buckets.get(row.bucket_start)
        if point is None:
            point = VolumePoint(timestamp=row.bucket_start)
            buckets[row.bucket_start] = point

        level = row.level.lower()
        if level not in EVENT_LEVELS:
            continue
        setattr(point, level, getattr(point, level) + row.count)

    return sorted(buckets.values(), key=lambda p: p.timestamp)


async def get_log_volume(
    session: AsyncSession,
    project_id: uuid.UUID,
    start: datetime.datetime,
    end: datetime.datetime,
) -> VolumeResponse:
    """Chart-ready volume series for [start, end]. Ownership is checked by the caller."""
    interval = choose_bucket_interval(start, end)
    rows = await fetch_level_counts(session, project_id, start, end, interval)
    data = pivot_level_counts(rows)

    logger.debug(
        "Volume for project %s: %d %s buckets", project_id, len(data), interval,
    )
    return VolumeResponse(data=data, interval=interval)
