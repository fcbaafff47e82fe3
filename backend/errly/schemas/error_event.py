"""
Pydantic v2 schemas for error-event ingestion.

Separation:
  • ErrorEventCreate   what the SDK sends (camelCase on the wire).
  • ErrorEventResponse what the server returns after persistence.

The client never supplies id, received_at or state; those are assigned
server-side.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

EventLevel = Literal["error", "warn", "info", "log"]


# ── Request schema ──────────────────────────────────────────
class ErrorEventCreate(BaseModel):
    """
    Payload accepted by POST /errors.

    populate_by_name lets tests and internal callers use snake_case;
    the SDK sends the camelCase aliases.
    """

    model_config = ConfigDict(populate_by_name=True)

    api_key: str = Field(
        ...,
        alias="apiKey",
        min_length=1,
        description="Project API key issued at project creation.",
    )
    message: str = Field(
        ...,
        min_length=1,
        examples=["TypeError: cannot read property 'id' of undefined"],
        description="Rendered log message.",
    )
    stack_trace: str | None = Field(
        default=None,
        alias="stackTrace",
        description="Trace text of the first exception in the log call.",
    )
    metadata: dict[str, Any] | None = Field(
        default=None,
        examples=[{"args": [{"userId": 42}]}],
        description="Structured arguments of the log call (JSONB).",
    )
    level: EventLevel = Field(
        default="error",
        description="Severity; case-insensitive on input.",
    )

    @field_validator("level", mode="before")
    @classmethod
    def _lowercase_level(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value


# ── Response schema ─────────────────────────────────────────
class ErrorEventResponse(BaseModel):
    """Full record returned after an error event is persisted."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    project_id: uuid.UUID
    level: str
    message: str
    stack_trace: str | None
    metadata: dict[str, Any] | None = Field(
        default=None,
        # Maps to the ORM attribute `metadata_` (column name is `metadata`)
        validation_alias="metadata_",
    )
    received_at: datetime
    state: str
    muted_until: datetime | None
