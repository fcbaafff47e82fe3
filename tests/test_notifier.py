"""Tests for the SMS notification dispatcher."""

import asyncio
import datetime
import logging
import uuid

import pytest

from errly.models.phone_number import PhoneNumber
from errly.services.notifier import (
    NotificationOutcome,
    dispatch_error_notification,
    format_alert,
    is_within_cooldown,
    notify_in_background,
)
from errly.services.sms_gateway import SMSGatewayError

UTC = datetime.timezone.utc
LAST_ALERT = datetime.datetime(2026, 10, 18, 12, 0, 0, tzinfo=UTC)


def _dispatch(store, gateway, project_id, message="boom", now=None):
    return store.run(
        lambda s: dispatch_error_notification(s, gateway, project_id, message, now=now)
    )


class TestFormatAlert:
    def test_short_message_is_kept_whole(self):
        assert format_alert("api", "boom") == (
            'Errly Alert: New error received for project "api". Message: boom'
        )

    def test_exactly_100_chars_has_no_ellipsis(self):
        body = format_alert("api", "x" * 100)
        assert body.endswith("Message: " + "x" * 100)

    def test_long_message_is_truncated_with_ellipsis(self):
        body = format_alert("api", "y" * 150)
        assert body.endswith("Message: " + "y" * 100 + "...")


class TestCooldownWindow:
    COOLDOWN = datetime.timedelta(minutes=5)

    def test_never_notified(self):
        assert is_within_cooldown(None, LAST_ALERT, self.COOLDOWN) is False

    def test_inside_window(self):
        now = LAST_ALERT + datetime.timedelta(minutes=4, seconds=59)
        assert is_within_cooldown(LAST_ALERT, now, self.COOLDOWN) is True

    def test_window_boundary_reopens(self):
        now = LAST_ALERT + self.COOLDOWN
        assert is_within_cooldown(LAST_ALERT, now, self.COOLDOWN) is False

    def test_naive_timestamp_is_treated_as_utc(self):
        naive = LAST_ALERT.replace(tzinfo=None)
        now = LAST_ALERT + datetime.timedelta(minutes=1)
        assert is_within_cooldown(naive, now, self.COOLDOWN) is True


class TestDispatch:
    def test_first_alert_sends_and_stamps(self, store, gateway):
        seeded = store.create_project()

        outcome = _dispatch(store, gateway, seeded.project_id, now=LAST_ALERT)

        assert outcome is NotificationOutcome.SENT
        assert gateway.sent[0][0] == "+15550001111"
        stamped = store.project(seeded.project_id).last_notified_at
        assert stamped.replace(tzinfo=UTC) == LAST_ALERT

    def test_suppressed_inside_cooldown(self, store, gateway):
        seeded = store.create_project(last_notified_at=LAST_ALERT)
        now = LAST_ALERT + datetime.timedelta(minutes=4, seconds=59)

        outcome = _dispatch(store, gateway, seeded.project_id, now=now)

        assert outcome is NotificationOutcome.COOLDOWN
        assert gateway.sent == []
        stamped = store.project(seeded.project_id).last_notified_at
        assert stamped.replace(tzinfo=UTC) == LAST_ALERT

    def test_sent_after_cooldown_expires(self, store, gateway):
        seeded = store.create_project(last_notified_at=LAST_ALERT)
        now = LAST_ALERT + datetime.timedelta(minutes=5, seconds=1)

        outcome = _dispatch(store, gateway, seeded.project_id, now=now)

        assert outcome is NotificationOutcome.SENT
        assert len(gateway.sent) == 1
        stamped = store.project(seeded.project_id).last_notified_at
        assert stamped.replace(tzinfo=UTC) == now

    def test_notifications_disabled(self, store, gateway):
        seeded = store.create_project(notifications_enabled=False)

        outcome = _dispatch(store, gateway, seeded.project_id, now=LAST_ALERT)

        assert outcome is NotificationOutcome.NOTIFICATIONS_DISABLED
        assert gateway.sent == []
        assert store.project(seeded.project_id).last_notified_at is None

    def test_no_phone_number(self, store, gateway):
        seeded = store.create_project(phone=None)

        outcome = _dispatch(store, gateway, seeded.project_id, now=LAST_ALERT)

        assert outcome is NotificationOutcome.NO_PHONE_NUMBER
        assert gateway.sent == []

    def test_non_primary_number_is_not_used(self, store, gateway):
        seeded = store.create_project(phone=None)

        async def _add_secondary(session):
            session.add(PhoneNumber(user_id=seeded.user_id, phone_number="+15550002222", is_primary=False))
            await session.commit()

        store.run(_add_secondary)

        outcome = _dispatch(store, gateway, seeded.project_id, now=LAST_ALERT)

        assert outcome is NotificationOutcome.NO_PHONE_NUMBER
        assert gateway.sent == []

    def test_unknown_project(self, store, gateway):
        outcome = _dispatch(store, gateway, uuid.uuid4(), now=LAST_ALERT)

        assert outcome is NotificationOutcome.PROJECT_NOT_FOUND
        assert gateway.sent == []

    def test_gateway_not_configured(self, store):
        seeded = store.create_project()

        outcome = _dispatch(store, None, seeded.project_id, now=LAST_ALERT)

        assert outcome is NotificationOutcome.GATEWAY_NOT_CONFIGURED
        assert store.project(seeded.project_id).last_notified_at is None

    def test_gateway_failure_leaves_timestamp_unchanged(self, store, failing_gateway):
        seeded = store.create_project()

        with pytest.raises(SMSGatewayError):
            _dispatch(store, failing_gateway, seeded.project_id, now=LAST_ALERT)

        assert store.project(seeded.project_id).last_notified_at is None


class TestNotifyInBackground:
    def test_returns_outcome(self, store, session_factory, gateway):
        seeded = store.create_project()

        outcome = store.run(
            lambda _s: notify_in_background(session_factory, gateway, seeded.project_id, "boom")
        )

        assert outcome is NotificationOutcome.SENT
        assert len(gateway.sent) == 1

    def test_gateway_failure_is_logged_not_raised(self, store, session_factory, failing_gateway, caplog):
        seeded = store.create_project()

        with caplog.at_level(logging.ERROR, logger="errly.services.notifier"):
            outcome = store.run(
                lambda _s: notify_in_background(session_factory, failing_gateway, seeded.project_id, "boom")
            )

        assert outcome is None
        assert "SMS gateway rejected alert" in caplog.text
        assert store.project(seeded.project_id).last_notified_at is None

    def test_unexpected_failure_is_logged_not_raised(self, store, session_factory, caplog):
        seeded = store.create_project()

        class ExplodingGateway:
            async def send(self, to, body):
                raise RuntimeError("socket closed")

        with caplog.at_level(logging.ERROR, logger="errly.services.notifier"):
            outcome = store.run(
                lambda _s: notify_in_background(
                    session_factory, ExplodingGateway(), seeded.project_id, "boom"
                )
            )

        assert outcome is None
        assert "Notification dispatch failed" in caplog.text

    def test_slow_gateway_times_out(self, store, session_factory, caplog):
        seeded = store.create_project()

        class HangingGateway:
            def __init__(self):
                self.cancelled = False

            async def send(self, to, body):
                try:
                    await asyncio.sleep(1)
                except asyncio.CancelledError:
                    self.cancelled = True
                    raise
                return "SM-late"

        gateway = HangingGateway()

        with caplog.at_level(logging.ERROR, logger="errly.services.notifier"):
            outcome = store.run(
                lambda _s: notify_in_background(
                    session_factory, gateway, seeded.project_id, "boom", timeout=0.01
                )
            )

        assert outcome is None
        assert gateway.cancelled
        assert "timed out after" in caplog.text
        assert store.project(seeded.project_id).last_notified_at is None
