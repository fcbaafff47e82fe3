"""
ErrlyClient: the public SDK surface.

    import logging
    from errly_sdk.client import ErrlyClient

    app_logger = logging.getLogger("myapp")
    errly = ErrlyClient(app_logger)
    errly.set_key("errly_…")
    errly.patch()

    app_logger.error("payment failed")            # reported
    app_logger.exception("checkout crashed")      # reported with its traceback
    errly.ext("warn", "cache miss", {"key": "user:42"})

patch() attaches an ErrlyHandler to the injected logger, so existing log
calls at or above `capture_level` (ERROR by default) are reported without
changing any call site. ext() logs through the same logger as before and
ships a normalized copy of its raw arguments. Nothing here raises into the
caller.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from concurrent.futures import Future
from typing import Any

from errly_sdk.normalizer import (
    ArgumentKind,
    NormalizedEvent,
    classify,
    normalize_event,
    split_level,
)
from errly_sdk.transport import ClientConfig, Transport

logger = logging.getLogger(__name__)

# Errly level → method on a stdlib-compatible logger.
_LOGGER_METHODS = {
    "error": "error",
    "warn": "warning",
    "info": "info",
    "log": "debug",
}

# Set on records that ext() already reported, so the handler skips them.
REPORTED_ATTR = "errly_reported"

# Records from these loggers are never captured: the SDK's own warnings and
# the HTTP client it sends with would otherwise feed back into the handler.
_IGNORED_LOGGERS = ("errly_sdk", "httpx", "httpcore")


def level_for_record(levelno: int) -> str:
    """Map a stdlib level number to an Errly level."""
    if levelno >= logging.ERROR:
        return "error"
    if levelno >= logging.WARNING:
        return "warn"
    if levelno >= logging.INFO:
        return "info"
    return "log"


class ErrlyHandler(logging.Handler):
    """logging.Handler that forwards records to an ErrlyClient."""

    def __init__(self, client: ErrlyClient, level: int = logging.ERROR) -> None:
        super().__init__(level)
        self.client = client
        self._local = threading.local()

    def emit(self, record: logging.LogRecord) -> None:
        if getattr(record, REPORTED_ATTR, False):
            return
        if record.name.split(".", 1)[0] in _IGNORED_LOGGERS:
            return
        # A record logged while this thread is already reporting one.
        if getattr(self._local, "busy", False):
            return

        self._local.busy = True
        try:
            args: list[Any] = [level_for_record(record.levelno), record.getMessage()]
            if record.exc_info and record.exc_info[1] is not None:
                args.append(record.exc_info[1])
            self.client._deliver(normalize_event(*args))
        except Exception:
            logger.warning("Errly SDK: could not report log record", exc_info=True)
        finally:
            self._local.busy = False


class ErrlyClient:
    """Forwards calls on an injected logger to the Errly ingestion API."""

    def __init__(
        self,
        target: logging.Logger | None = None,
        transport: Transport | None = None,
    ) -> None:
        self.target = target if target is not None else logging.getLogger()
        self.transport = transport if transport is not None else Transport()
        self.handler: ErrlyHandler | None = None
        self._originals: dict[str, Callable[..., Any]] | None = None

    # ── Setup ───────────────────────────────────────────────
    def set_key(self, api_key: str, **options: Any) -> None:
        """Configure the API key (and optionally endpoint/timeout)."""
        if not api_key or not isinstance(api_key, str):
            logger.error("Errly SDK: invalid API key provided to set_key()")
            return
        self.transport.configure(ClientConfig(api_key=api_key, **options))
        logger.debug("Errly SDK: API key set")

    @property
    def patched(self) -> bool:
        return self._originals is not None

    def patch(self, capture_level: int = logging.ERROR) -> None:
        """
        Start capturing the target logger's records at `capture_level` and
        above, and enable ext(). A second call warns and changes nothing.
        """
        if self._originals is not None:
            logger.warning("Errly SDK: logger %r is already patched", self.target.name)
            return

        self._originals = {
            level: getattr(self.target, method)
            for level, method in _LOGGER_METHODS.items()
        }
        self.handler = ErrlyHandler(self, capture_level)
        self.target.addHandler(self.handler)
        logger.debug("Errly SDK: patched logger %r", self.target.name)

    def unpatch(self) -> None:
        """Detach the handler; ext() is disabled until patch() is called again."""
        if self.handler is not None:
            self.target.removeHandler(self.handler)
        self.handler = None
        self._originals = None

    # ── Reporting ───────────────────────────────────────────
    def ext(self, *args: Any) -> Future[None] | None:
        """
        Log locally, then report remotely.

        Returns the delivery future (tests wait on it), or None when
        nothing was sent.
        """
        if self._originals is None:
            logger.warning("Errly SDK: ext() called before patch(), event dropped")
            return None

        try:
            event = normalize_event(*args)
        except Exception:
            logger.warning("Errly SDK: could not normalize event", exc_info=True)
            return None

        self._call_original(self._originals, event.level, args)
        return self._deliver(event)

    def _deliver(self, event: NormalizedEvent) -> Future[None] | None:
        try:
            return self.transport.send(event)
        except Exception:
            logger.warning("Errly SDK: could not schedule event delivery", exc_info=True)
            return None

    def _call_original(
        self,
        originals: dict[str, Callable[..., Any]],
        level: str,
        args: tuple[Any, ...],
    ) -> None:
        _, rest = split_level(args)

        exc_info = next((a for a in rest if classify(a) is ArgumentKind.ERROR), None)
        fmt = " ".join(["%s"] * len(rest))

        try:
            originals[level](fmt, *rest, exc_info=exc_info, extra={REPORTED_ATTR: True})
        except Exception as exc:
            logger.warning("Errly SDK: original %s logger call failed - %s", level, exc)
