"""
Twilio SMS gateway.

The Twilio REST client is synchronous, so sends run in the threadpool to
keep the event loop free. The HTTP client is built with a timeout so a
hanging gateway can never stall the notification runner indefinitely.

Configuration:
  TWILIO_ACCOUNT_SID / TWILIO_AUTH_TOKEN  server-side only
  TWILIO_FROM_NUMBER                      E.164 sender number
"""

from __future__ import annotations

import functools
import logging
from typing import Protocol

from fastapi.concurrency import run_in_threadpool
from twilio.base.exceptions import TwilioException, TwilioRestException
from twilio.http.http_client import TwilioHttpClient
from twilio.rest import Client

from errly.core.config import settings

logger = logging.getLogger(__name__)


class SMSGatewayError(Exception):
    """The gateway did not accept the message.

    Carries the gateway's status/code/detail for operator diagnosis.
    """

    def __init__(
        self,
        detail: str,
        status: int | None = None,
        code: int | None = None,
    ) -> None:
        super().__init__(detail)
        self.detail = detail
        self.status = status
        self.code = code

    def __str__(self) -> str:
        return f"status={self.status} code={self.code} detail={self.detail}"


class SMSGateway(Protocol):
    """Anything that can deliver one SMS and return its message id."""

    async def send(self, to: str, body: str) -> str: ...


class TwilioSMSGateway:
    """SMSGateway backed by the Twilio Messages API."""

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        from_number: str,
        timeout: float,
    ) -> None:
        self.from_number = from_number
        self._client = Client(
            account_sid,
            auth_token,
            http_client=TwilioHttpClient(timeout=timeout),
        )

    def _create(self, to: str, body: str) -> str:
        message = self._client.messages.create(
            body=body,
            from_=self.from_number,
            to=to,
        )
        return message.sid

    async def send(self, to: str, body: str) -> str:
        try:
            sid = await run_in_threadpool(self._create, to, body)
        except TwilioRestException as exc:
            raise SMSGatewayError(exc.msg, status=exc.status, code=exc.code) from exc
        except TwilioException as exc:
            raise SMSGatewayError(str(exc)) from exc

        logger.info("SMS accepted by Twilio, sid=%s", sid)
        return sid


@functools.lru_cache(maxsize=1)
def get_sms_gateway() -> SMSGateway | None:
    """
    FastAPI dependency: the configured gateway, or None when Twilio
    credentials are missing (notifications are then skipped and logged).
    """
    if not (
        settings.TWILIO_ACCOUNT_SID
        and settings.TWILIO_AUTH_TOKEN
        and settings.TWILIO_FROM_NUMBER
    ):
        return None

    return TwilioSMSGateway(
        account_sid=settings.TWILIO_ACCOUNT_SID,
        auth_token=settings.TWILIO_AUTH_TOKEN,
        from_number=settings.TWILIO_FROM_NUMBER,
        timeout=settings.SMS_TIMEOUT_SECONDS,
    )
