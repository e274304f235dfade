"""Unit tests for the waitlist storage layer."""

from datetime import datetime, timedelta

import pytest

from wl_app.core.errors import (
    EMAIL_EXISTS,
    INVALID_TOKEN,
    WAITLIST_NOT_FOUND,
    StorageError,
)
from wl_app.db.models import WaitlistSignup, utcnow
from wl_app.schemas.waitlist import WaitlistSignupIn, WaitlistSignupUpdate
from wl_app.storage.waitlist import weekly_growth


def _signup(name="Jane Doe", email="jane@example.com", **extra):
    return WaitlistSignupIn(fullName=name, email=email, **extra)


class TestCreateSignup:
    @pytest.mark.asyncio
    async def test_create_assigns_defaults_and_token(self, storage):
        row = await storage.create_signup(
            _signup(referralSource="twitter", interests=["ai", "tools"]),
            ip_address="203.0.113.9",
            user_agent="pytest",
        )

        assert row.id is not None
        assert row.email == "jane@example.com"
        assert row.status == "pending"
        assert row.email_verified is False
        assert row.priority == 0
        assert len(row.verification_token) == 64
        ttl = row.verification_expiry - row.timestamp
        assert timedelta(hours=23, minutes=59) < ttl <= timedelta(hours=24)
        assert row.ip_address == "203.0.113.9"
        assert row.user_agent == "pytest"
        assert row.interests == ["ai", "tools"]

    @pytest.mark.asyncio
    async def test_duplicate_email_raises_email_exists(self, storage):
        await storage.create_signup(_signup())

        with pytest.raises(StorageError) as exc:
            await storage.create_signup(_signup(name="Other", email="JANE@Example.com"))

        assert exc.value.code == EMAIL_EXISTS
        assert exc.value.http_status == 409

    @pytest.mark.asyncio
    async def test_tokens_are_unique_per_signup(self, storage):
        a = await storage.create_signup(_signup(email="a@example.com"))
        b = await storage.create_signup(_signup(email="b@example.com"))
        assert a.verification_token != b.verification_token


class TestLookups:
    @pytest.mark.asyncio
    async def test_get_by_email_is_case_insensitive(self, storage):
        created = await storage.create_signup(_signup())

        found = await storage.get_signup_by_email("  JANE@EXAMPLE.COM ")

        assert found is not None
        assert found.id == created.id
        assert await storage.get_signup_by_email("nobody@example.com") is None

    @pytest.mark.asyncio
    async def test_get_by_token_respects_expiry(self, storage):
        created = await storage.create_signup(_signup())
        token = created.verification_token

        assert (await storage.get_signup_by_token(token)).id == created.id
        later = utcnow() + timedelta(hours=25)
        assert await storage.get_signup_by_token(token, now=later) is None
        assert await storage.get_signup_by_token("not-a-token") is None


class TestVerifyEmail:
    @pytest.mark.asyncio
    async def test_verify_marks_verified_and_consumes_token(self, storage):
        created = await storage.create_signup(_signup())

        row = await storage.verify_email(created.verification_token)

        assert row.status == "verified"
        assert row.email_verified is True
        assert row.verification_token is None
        assert row.verification_expiry is None

        with pytest.raises(StorageError) as exc:
            await storage.verify_email(created.verification_token)
        assert exc.value.code == INVALID_TOKEN

    @pytest.mark.asyncio
    async def test_expired_token_is_rejected(self, storage):
        created = await storage.create_signup(_signup())
        later = utcnow() + timedelta(hours=24, seconds=1)

        with pytest.raises(StorageError) as exc:
            await storage.verify_email(created.verification_token, now=later)

        assert exc.value.code == INVALID_TOKEN
        fresh = await storage.get_signup_by_id(created.id)
        assert fresh.status == "pending"
        assert fresh.email_verified is False


class TestUpdates:
    @pytest.mark.asyncio
    async def test_update_stamps_invited_at(self, storage):
        created = await storage.create_signup(_signup())

        row = await storage.update_signup(
            created.id, WaitlistSignupUpdate(status="invited", priority=7, notes="vip")
        )

        assert row.status == "invited"
        assert row.priority == 7
        assert row.notes == "vip"
        assert row.invited_at is not None
        assert row.declined_at is None

    @pytest.mark.asyncio
    async def test_update_stamps_declined_at(self, storage):
        created = await storage.create_signup(_signup())
        row = await storage.update_signup(created.id, WaitlistSignupUpdate(status="declined"))
        assert row.declined_at is not None

    @pytest.mark.asyncio
    async def test_same_status_does_not_restamp(self, storage):
        created = await storage.create_signup(_signup())
        first = await storage.update_signup(created.id, WaitlistSignupUpdate(status="invited"))
        second = await storage.update_signup(created.id, WaitlistSignupUpdate(status="invited"))
        assert second.invited_at == first.invited_at

    @pytest.mark.asyncio
    async def test_update_missing_raises_not_found(self, storage):
        with pytest.raises(StorageError) as exc:
            await storage.update_signup(999, WaitlistSignupUpdate(priority=1))
        assert exc.value.code == WAITLIST_NOT_FOUND
        assert exc.value.http_status == 404

    @pytest.mark.asyncio
    async def test_bulk_update_is_best_effort(self, storage):
        a = await storage.create_signup(_signup(email="a@example.com"))
        b = await storage.create_signup(_signup(email="b@example.com"))

        result = await storage.bulk_update([a.id, b.id, 999], WaitlistSignupUpdate(status="invited"))

        assert result.updated_ids == [a.id, b.id]
        assert result.missing_ids == [999]
        for signup_id in (a.id, b.id):
            row = await storage.get_signup_by_id(signup_id)
            assert row.status == "invited"
            assert row.invited_at is not None


class TestListing:
    @pytest.mark.asyncio
    async def test_list_newest_first_with_filter(self, storage):
        first = await storage.create_signup(_signup(email="first@example.com"))
        second = await storage.create_signup(_signup(email="second@example.com"))
        await storage.verify_email(second.verification_token)

        rows = await storage.list_signups()
        assert [r.id for r in rows] == [second.id, first.id]

        verified = await storage.list_signups("verified")
        assert [r.id for r in verified] == [second.id]

    @pytest.mark.asyncio
    async def test_export_all_orders_by_id(self, storage):
        a = await storage.create_signup(_signup(email="a@example.com"))
        b = await storage.create_signup(_signup(email="b@example.com"))
        rows = await storage.export_all()
        assert [r.id for r in rows] == [a.id, b.id]


class TestStats:
    @pytest.mark.asyncio
    async def test_empty_table(self, storage):
        stats = await storage.compute_stats()
        assert stats.totalSignups == 0
        assert stats.todaySignups == 0
        assert stats.weeklyGrowth == 0
        assert stats.pendingCount == 0

    @pytest.mark.asyncio
    async def test_counts_windows_and_statuses(self, storage, session_maker):
        now = datetime(2026, 10, 18, 12, 0, 0)
        rows = [
            ("today@example.com", now - timedelta(hours=2), "pending"),
            ("week@example.com", now - timedelta(days=3), "verified"),
            ("last@example.com", now - timedelta(days=10), "invited"),
            ("old@example.com", now - timedelta(days=30), "declined"),
        ]
        async with session_maker() as s:
            for email, ts, status in rows:
                s.add(WaitlistSignup(full_name="Test User", email=email, timestamp=ts, status=status))
            await s.commit()

        stats = await storage.compute_stats(now=now)

        assert stats.totalSignups == 4
        assert stats.todaySignups == 1
        # this week 2, last week 1
        assert stats.weeklyGrowth == 100
        assert stats.pendingCount == 1
        assert stats.verifiedCount == 1
        assert stats.invitedCount == 1
        assert stats.declinedCount == 1


@pytest.mark.parametrize(
    "this_week,last_week,expected",
    [
        (10, 5, 100),
        (5, 0, 100),
        (0, 0, 0),
        (5, 10, -50),
        (3, 4, -25),
        (0, 3, -100),
    ],
)
def test_weekly_growth(this_week, last_week, expected):
    assert weekly_growth(this_week, last_week) == expected
