"""
Transport: best-effort delivery of one event to POST /errors.

Guarantees:
  • send() returns immediately; the POST runs on a small worker pool.
  • Pool workers are joined at interpreter exit, so a process that is
    shutting down (often right after the crash being reported) still
    finishes in-flight requests. The httpx timeout bounds that wait.
  • At most one attempt per event. Network errors and non-2xx responses
    are logged as warnings and never raised into the caller.
"""

from __future__ import annotations

import logging
import os
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field

import httpx

from errly_sdk.normalizer import NormalizedEvent

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "http://localhost:8000/errors"
DEFAULT_TIMEOUT = 5.0
MAX_WORKERS = 4


def _default_endpoint() -> str:
    return os.environ.get("ERRLY_API_ENDPOINT") or DEFAULT_ENDPOINT


@dataclass(frozen=True, slots=True)
class ClientConfig:
    """Per-process SDK settings, created by ErrlyClient.set_key()."""

    api_key: str
    endpoint: str = field(default_factory=_default_endpoint)
    timeout: float = DEFAULT_TIMEOUT


class Transport:
    """Fire-and-forget HTTP sender bound to one ClientConfig."""

    def __init__(
        self,
        config: ClientConfig | None = None,
        http_transport: httpx.BaseTransport | None = None,
        max_workers: int = MAX_WORKERS,
    ) -> None:
        self.config = config
        # http_transport is injected in tests (httpx.MockTransport).
        self._http = httpx.Client(transport=http_transport)
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="errly-transport",
        )

    def configure(self, config: ClientConfig) -> None:
        self.config = config

    def send(self, event: NormalizedEvent) -> Future[None] | None:
        """
        Queue delivery of `event` and return its future.

        Returns None (and warns) when no API key is configured or the pool
        no longer accepts work; nothing is sent in either case.
        """
        config = self.config
        if config is None or not config.api_key:
            logger.warning("Errly SDK: API key not set, event not sent. Call set_key() first.")
            return None

        try:
            return self._executor.submit(self._post, config, event)
        except RuntimeError as exc:
            # Raised after close() or once interpreter shutdown has begun.
            logger.warning("Errly SDK: event not sent - %s", exc)
            return None

    def close(self) -> None:
        """Wait for queued events, then release the pool and connections."""
        self._executor.shutdown(wait=True)
        self._http.close()

    def _post(self, config: ClientConfig, event: NormalizedEvent) -> None:
        try:
            response = self._http.post(
                config.endpoint,
                json=event.to_payload(config.api_key),
                timeout=config.timeout,
            )
        except httpx.HTTPError as exc:
            logger.warning("Errly SDK: network error sending event - %s", exc)
            return
        except Exception:
            logger.warning("Errly SDK: unexpected failure sending event", exc_info=True)
            return

        if not response.is_success:
            logger.warning(
                "Errly SDK: request to %s failed with status %d. Response: %s",
                config.endpoint,
                response.status_code,
                response.text[:500],
            )
