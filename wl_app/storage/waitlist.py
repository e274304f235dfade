# wl_app/storage/waitlist.py
from __future__ import annotations

import math
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence

from sqlalchemy import desc, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from wl_app.core.config import logger
from wl_app.core.errors import (
    CREATE_ERROR,
    EMAIL_EXISTS,
    EXPORT_ERROR,
    FETCH_ERROR,
    INVALID_TOKEN,
    STATS_ERROR,
    UPDATE_ERROR,
    VERIFY_ERROR,
    WAITLIST_NOT_FOUND,
    StorageError,
)
from wl_app.db.models import WaitlistSignup, utcnow
from wl_app.schemas.waitlist import StatsOut, WaitlistSignupIn, WaitlistSignupUpdate

TOKEN_BYTES = 32  # 64 hex chars


def generate_verification_token() -> str:
    return secrets.token_hex(TOKEN_BYTES)


def weekly_growth(this_week: int, last_week: int) -> int:
    """Percent change between two 7-day windows, rounded half up."""
    if last_week > 0:
        return math.floor((this_week - last_week) / last_week * 100 + 0.5)
    return 100 if this_week > 0 else 0


def apply_update(row: WaitlistSignup, changes: Dict[str, object], now: datetime) -> None:
    previous = row.status
    for key, value in changes.items():
        setattr(row, key, value)
    if row.status != previous:
        if row.status == "invited":
            row.invited_at = now
        elif row.status == "declined":
            row.declined_at = now


@dataclass
class BulkUpdateResult:
    updated_ids: List[int] = field(default_factory=list)
    missing_ids: List[int] = field(default_factory=list)


class WaitlistStorage:
    """Store for waitlist signups."""

    def __init__(self, session_maker: async_sessionmaker, token_ttl_hours: int = 24):
        self.session_maker = session_maker
        self.token_ttl = timedelta(hours=token_ttl_hours)

    async def create_signup(
        self,
        data: WaitlistSignupIn,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> WaitlistSignup:
        """
        Insert a new pending signup with a fresh verification token.

        Uniqueness is enforced by the table constraint, so two concurrent
        signups for the same email cannot both succeed.

        Raises:
            StorageError: EMAIL_EXISTS on a duplicate email, CREATE_ERROR otherwise
        """
        now = utcnow()
        row = WaitlistSignup(
            full_name=data.fullName,
            email=data.email,
            timestamp=now,
            status="pending",
            email_verified=False,
            verification_token=generate_verification_token(),
            verification_expiry=now + self.token_ttl,
            referral_source=data.referralSource,
            interests=data.interests,
            ip_address=ip_address[:45] if ip_address else None,
            user_agent=user_agent or None,
            priority=0,
        )
        try:
            async with self.session_maker() as s:
                s.add(row)
                await s.commit()
        except IntegrityError:
            logger.info(f"waitlist signup already exists for {data.email}")
            raise StorageError(EMAIL_EXISTS, "Email address is already registered in our waitlist")
        except SQLAlchemyError as e:
            logger.exception(f"waitlist signup insert failed for {data.email}")
            raise StorageError(CREATE_ERROR, "Failed to create waitlist signup") from e

        logger.info(f"waitlist signup created id={row.id} email={row.email}")
        return row

    async def get_signup_by_id(self, signup_id: int) -> Optional[WaitlistSignup]:
        try:
            async with self.session_maker() as s:
                return await s.get(WaitlistSignup, signup_id)
        except SQLAlchemyError as e:
            logger.exception(f"waitlist lookup failed for id={signup_id}")
            raise StorageError(FETCH_ERROR, "Failed to fetch waitlist signup") from e

    async def get_signup_by_email(self, email: str) -> Optional[WaitlistSignup]:
        needle = (email or "").strip().lower()
        try:
            async with self.session_maker() as s:
                return (
                    await s.execute(
                        select(WaitlistSignup).where(func.lower(WaitlistSignup.email) == needle)
                    )
                ).scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.exception(f"waitlist lookup failed for {needle}")
            raise StorageError(FETCH_ERROR, "Failed to fetch waitlist signup") from e

    async def get_signup_by_token(
        self, token: str, now: Optional[datetime] = None
    ) -> Optional[WaitlistSignup]:
        """Signup holding this token, only while the token is unexpired."""
        now = now or utcnow()
        try:
            async with self.session_maker() as s:
                return (
                    await s.execute(
                        select(WaitlistSignup).where(
                            WaitlistSignup.verification_token == token,
                            WaitlistSignup.verification_expiry > now,
                        )
                    )
                ).scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.exception("waitlist token lookup failed")
            raise StorageError(FETCH_ERROR, "Failed to fetch waitlist signup") from e

    async def verify_email(self, token: str, now: Optional[datetime] = None) -> WaitlistSignup:
        """
        Consume a verification token.

        Marks the signup verified (status and email_verified) and clears the
        token so it cannot be replayed.

        Raises:
            StorageError: INVALID_TOKEN when the token is unknown or expired
        """
        now = now or utcnow()
        try:
            async with self.session_maker() as s:
                row = (
                    await s.execute(
                        select(WaitlistSignup).where(
                            WaitlistSignup.verification_token == token,
                            WaitlistSignup.verification_expiry > now,
                        )
                    )
                ).scalar_one_or_none()
                if row is None:
                    raise StorageError(INVALID_TOKEN, "Invalid or expired verification token")

                row.status = "verified"
                row.email_verified = True
                row.verification_token = None
                row.verification_expiry = None
                await s.commit()
        except SQLAlchemyError as e:
            logger.exception("waitlist email verification failed")
            raise StorageError(VERIFY_ERROR, "Failed to verify email") from e

        logger.info(f"waitlist email verified id={row.id}")
        return row

    async def update_signup(self, signup_id: int, update: WaitlistSignupUpdate) -> WaitlistSignup:
        changes = update.changes()
        try:
            async with self.session_maker() as s:
                row = await s.get(WaitlistSignup, signup_id)
                if row is None:
                    raise StorageError(WAITLIST_NOT_FOUND, "Waitlist signup not found")
                apply_update(row, changes, utcnow())
                await s.commit()
        except SQLAlchemyError as e:
            logger.exception(f"waitlist update failed for id={signup_id}")
            raise StorageError(UPDATE_ERROR, "Failed to update waitlist signup") from e

        logger.info(f"waitlist signup updated id={signup_id} fields={sorted(changes)}")
        return row

    async def bulk_update(
        self, signup_ids: Sequence[int], update: WaitlistSignupUpdate
    ) -> BulkUpdateResult:
        """
        Apply one update to many signups.

        Best effort: every id that exists is updated in a single transaction,
        ids with no row are reported back in ``missing_ids``.
        """
        changes = update.changes()
        ids = list(dict.fromkeys(signup_ids))
        result = BulkUpdateResult()
        if not ids:
            return result

        now = utcnow()
        try:
            async with self.session_maker() as s:
                rows = (
                    await s.execute(select(WaitlistSignup).where(WaitlistSignup.id.in_(ids)))
                ).scalars().all()
                by_id = {r.id: r for r in rows}
                for signup_id in ids:
                    row = by_id.get(signup_id)
                    if row is None:
                        result.missing_ids.append(signup_id)
                        continue
                    apply_update(row, changes, now)
                    result.updated_ids.append(signup_id)
                await s.commit()
        except SQLAlchemyError as e:
            logger.exception(f"waitlist bulk update failed for {len(ids)} ids")
            raise StorageError(UPDATE_ERROR, "Failed to bulk update waitlist signups") from e

        if result.missing_ids:
            logger.warning(f"waitlist bulk update skipped missing ids={result.missing_ids}")
        logger.info(f"waitlist bulk update applied to {len(result.updated_ids)} signups")
        return result

    async def list_signups(self, status: Optional[str] = None) -> List[WaitlistSignup]:
        query = select(WaitlistSignup)
        if status:
            query = query.where(WaitlistSignup.status == status)
        query = query.order_by(desc(WaitlistSignup.timestamp), desc(WaitlistSignup.id))
        try:
            async with self.session_maker() as s:
                return list((await s.execute(query)).scalars().all())
        except SQLAlchemyError as e:
            logger.exception(f"waitlist list failed status={status}")
            raise StorageError(FETCH_ERROR, "Failed to fetch waitlist signups") from e

    async def compute_stats(self, now: Optional[datetime] = None) -> StatsOut:
        now = now or utcnow()
        today = now.replace(hour=0, minute=0, second=0, microsecond=0)
        week_ago = today - timedelta(days=7)
        two_weeks_ago = today - timedelta(days=14)

        def _count(*where):
            return select(func.count()).select_from(WaitlistSignup).where(*where)

        try:
            async with self.session_maker() as s:
                total = (await s.execute(_count())).scalar_one()
                today_count = (
                    await s.execute(_count(WaitlistSignup.timestamp >= today))
                ).scalar_one()
                this_week = (
                    await s.execute(_count(WaitlistSignup.timestamp >= week_ago))
                ).scalar_one()
                last_week = (
                    await s.execute(
                        _count(
                            WaitlistSignup.timestamp >= two_weeks_ago,
                            WaitlistSignup.timestamp < week_ago,
                        )
                    )
                ).scalar_one()
                by_status = dict(
                    (
                        await s.execute(
                            select(WaitlistSignup.status, func.count()).group_by(
                                WaitlistSignup.status
                            )
                        )
                    ).all()
                )
        except SQLAlchemyError as e:
            logger.exception("waitlist stats failed")
            raise StorageError(STATS_ERROR, "Failed to compute waitlist stats") from e

        return StatsOut(
            totalSignups=total,
            todaySignups=today_count,
            weeklyGrowth=weekly_growth(this_week, last_week),
            verifiedCount=by_status.get("verified", 0),
            pendingCount=by_status.get("pending", 0),
            invitedCount=by_status.get("invited", 0),
            declinedCount=by_status.get("declined", 0),
        )

    async def export_all(self) -> List[WaitlistSignup]:
        try:
            async with self.session_maker() as s:
                return list(
                    (await s.execute(select(WaitlistSignup).order_by(WaitlistSignup.id))).scalars().all()
                )
        except SQLAlchemyError as e:
            logger.exception("waitlist export failed")
            raise StorageError(EXPORT_ERROR, "Failed to export waitlist signups") from e
