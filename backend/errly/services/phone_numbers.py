"""
Phone number management: keeps "one primary per user" true.

The dispatcher reads exactly one row: the user's primary number. Every
mutation that touches is_primary therefore demotes and promotes inside the
same transaction, so a concurrent reader sees either the old primary or the
new one, never zero or two. The partial unique index
uq_phone_numbers_one_primary_per_user backs this up in the database.

Rules:
  • The first number a user adds becomes primary.
  • Removing the primary promotes the oldest remaining number.
"""

from __future__ import annotations

import logging
import re
import uuid

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from errly.models.phone_number import PhoneNumber

logger = logging.getLogger(__name__)

_E164 = re.compile(r"^\+[1-9]\d{1,14}$")


class PhoneNumberNotFound(LookupError):
    """No such phone number for this user."""


def validate_e164(number: str) -> str:
    """Return the number stripped of spaces, or raise ValueError."""
    candidate = number.replace(" ", "")
    if not _E164.match(candidate):
        raise ValueError(f"Phone number must be in E.164 format (e.g. +15551234567), got {number!r}")
    return candidate


async def _demote_primaries(
    session: AsyncSession,
    user_id: uuid.UUID,
) -> None:
    await session.execute(
        update(PhoneNumber)
        .where(
            PhoneNumber.user_id == user_id,
            PhoneNumber.is_primary.is_(True),
        )
        .values(is_primary=False)
    )


async def _get_user_phone(
    session: AsyncSession,
    user_id: uuid.UUID,
    phone_id: int,
) -> PhoneNumber:
    stmt = select(PhoneNumber).where(
        PhoneNumber.id == phone_id,
        PhoneNumber.user_id == user_id,
    )
    phone = (await session.execute(stmt)).scalar_one_or_none()
    if phone is None:
        raise PhoneNumberNotFound(f"Phone number {phone_id} not found")
    return phone


async def get_primary_phone_number(
    session: AsyncSession,
    user_id: uuid.UUID,
) -> PhoneNumber | None:
    stmt = select(PhoneNumber).where(
        PhoneNumber.user_id == user_id,
        PhoneNumber.is_primary.is_(True),
    )
    return (await session.execute(stmt)).scalar_one_or_none()


async def add_phone_number(
    session: AsyncSession,
    user_id: uuid.UUID,
    number: str,
    label: str | None = None,
    make_primary: bool = False,
) -> PhoneNumber:
    """
    Add a number for user_id.

    It becomes primary when requested or when the user has no primary yet;
    a previous primary is demoted in the same transaction.

    Raises:
        ValueError: number is not E.164.
    """
    number = validate_e164(number)

    try:
        current = await get_primary_phone_number(session, user_id)
        is_primary = make_primary or current is None

        if is_primary and current is not None:
            await _demote_primaries(session, user_id)
            await session.flush()

        phone = PhoneNumber(
            user_id=user_id,
            phone_number=number,
            label=label,
            is_primary=is_primary,
        )
        session.add(phone)
        await session.commit()
    except Exception:
        await session.rollback()
        raise

    await session.refresh(phone)
    return phone


async def set_primary_phone_number(
    session: AsyncSession,
    user_id: uuid.UUID,
    phone_id: int,
) -> PhoneNumber:
    """
    Make phone_id the user's primary number (demote + promote atomically).

    Raises:
        PhoneNumberNotFound: phone_id does not belong to user_id.
    """
    try:
        phone = await _get_user_phone(session, user_id, phone_id)
        if not phone.is_primary:
            await _demote_primaries(session, user_id)
            await session.flush()
            phone.is_primary = True
        await session.commit()
    except Exception:
        await session.rollback()
        raise

    await session.refresh(phone)
    logger.info("Phone number %s is now primary for user %s", phone_id, user_id)
    return phone


async def remove_phone_number(
    session: AsyncSession,
    user_id: uuid.UUID,
    phone_id: int,
) -> PhoneNumber | None:
    """
    Delete phone_id. If it was primary, promote the oldest remaining number
    in the same transaction.

    Returns:
        The newly promoted number, or None if no promotion happened.

    Raises:
        PhoneNumberNotFound: phone_id does not belong to user_id.
    """
    promoted: PhoneNumber | None = None

    try:
        phone = await _get_user_phone(session, user_id, phone_id)
        was_primary = phone.is_primary

        await session.delete(phone)
        await session.flush()

        if was_primary:
            stmt = (
                select(PhoneNumber)
                .where(PhoneNumber.user_id == user_id)
                .order_by(PhoneNumber.created_at.asc(), PhoneNumber.id.asc())
                .limit(1)
            )
            promoted = (await session.execute(stmt)).scalar_one_or_none()
            if promoted is not None:
                promoted.is_primary = True

        await session.commit()
    except Exception:
        await session.rollback()
        raise

    return promoted
