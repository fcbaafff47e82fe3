"""
Event normalizer: turns one log call's arguments into an Errly event.

Every argument falls into exactly one kind, checked in this order:
  ERROR     an exception instance: contributes str(exc) to the message
            and (first one only) its formatted traceback as stack_trace
  NULLISH   None: rendered as "null"
  PRIMITIVE str / int / float / bool: rendered with str()
  OBJECT    anything else: compact JSON, or "[Unserializable Object]"

An optional leading level token ("error" / "warn" / "info" / "log",
any case) is consumed; otherwise the level is "error".

normalize_event() never raises.
"""

from __future__ import annotations

import enum
import json
import traceback
from dataclasses import dataclass
from typing import Any

LEVELS = ("error", "warn", "info", "log")
DEFAULT_LEVEL = "error"
UNSERIALIZABLE = "[Unserializable Object]"

_COMPACT = (",", ":")


class ArgumentKind(enum.Enum):
    ERROR = "error"
    NULLISH = "nullish"
    PRIMITIVE = "primitive"
    OBJECT = "object"


@dataclass(frozen=True, slots=True)
class NormalizedEvent:
    """Transmittable form of one log call."""

    level: str
    message: str
    stack_trace: str | None = None
    metadata: dict[str, Any] | None = None

    def to_payload(self, api_key: str) -> dict[str, Any]:
        """JSON body for POST /errors; absent fields are omitted."""
        payload: dict[str, Any] = {
            "apiKey": api_key,
            "message": self.message,
            "level": self.level,
        }
        if self.stack_trace is not None:
            payload["stackTrace"] = self.stack_trace
        if self.metadata is not None:
            payload["metadata"] = self.metadata
        return payload


def classify(arg: Any) -> ArgumentKind:
    if isinstance(arg, BaseException):
        return ArgumentKind.ERROR
    if arg is None:
        return ArgumentKind.NULLISH
    if isinstance(arg, (str, int, float, bool)):
        return ArgumentKind.PRIMITIVE
    return ArgumentKind.OBJECT


def split_level(args: tuple[Any, ...]) -> tuple[str, tuple[Any, ...]]:
    """Consume a leading level token, if any."""
    if args and isinstance(args[0], str) and args[0].lower() in LEVELS:
        return args[0].lower(), args[1:]
    return DEFAULT_LEVEL, args


def _to_json(arg: Any) -> str:
    # ValueError covers circular references and NaN/Infinity (not valid
    # JSON, and rejected by the request encoder); TypeError non-JSON types.
    try:
        return json.dumps(arg, separators=_COMPACT, allow_nan=False)
    except (TypeError, ValueError, RecursionError):
        return UNSERIALIZABLE


def _error_text(exc: BaseException) -> str:
    try:
        return str(exc) or type(exc).__name__
    except Exception:
        return type(exc).__name__


def _stack_text(exc: BaseException) -> str | None:
    try:
        return "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    except Exception:
        return None


def render_argument(arg: Any) -> str:
    """Message text for a single argument."""
    kind = classify(arg)
    if kind is ArgumentKind.ERROR:
        return _error_text(arg)
    if kind is ArgumentKind.NULLISH:
        return "null"
    if kind is ArgumentKind.PRIMITIVE:
        try:
            return str(arg)
        except Exception:
            return UNSERIALIZABLE
    return _to_json(arg)


def _metadata_value(arg: Any) -> Any:
    """The argument itself if it survives JSON encoding, else the sentinel."""
    try:
        json.dumps(arg, allow_nan=False)
    except (TypeError, ValueError, RecursionError):
        return UNSERIALIZABLE
    return arg


def normalize_event(*args: Any) -> NormalizedEvent:
    """Build a NormalizedEvent from one log call's arguments."""
    level, rest = split_level(args)

    message = " ".join(render_argument(arg) for arg in rest)

    errors = [arg for arg in rest if classify(arg) is ArgumentKind.ERROR]
    stack_trace = _stack_text(errors[0]) if errors else None

    others = [_metadata_value(arg) for arg in rest if classify(arg) is not ArgumentKind.ERROR]
    metadata = {"args": others} if others else None

    return NormalizedEvent(
        level=level,
        message=message,
        stack_trace=stack_trace,
        metadata=metadata,
    )
