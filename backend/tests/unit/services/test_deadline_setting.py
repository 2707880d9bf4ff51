"""
Unit Tests for the submission deadline setting
"""
from datetime import datetime, timedelta, timezone

import pytest

from abiboard.core.exceptions import DeadlineExpiredError
from abiboard.models import UserRole
from abiboard.services.deadline import (
    SubmissionWindow,
    get_deadline,
    parse_deadline,
    set_deadline,
)


class TestParseDeadline:

    @pytest.mark.parametrize('raw', [None, '', 'kein Datum'])
    def test_no_deadline(self, raw):
        assert parse_deadline(raw) is None

    def test_iso_with_z(self):
        assert parse_deadline('2030-06-30T12:00:00Z') == datetime(2030, 6, 30, 12, 0)

    def test_aware_datetime(self):
        aware = datetime(2030, 6, 30, 14, 0, tzinfo=timezone(timedelta(hours=2)))

        assert parse_deadline(aware) == datetime(2030, 6, 30, 12, 0)


class TestSubmissionWindow:

    def test_open_without_deadline(self):
        window = SubmissionWindow(deadline=None)

        assert window.is_deadline_passed() is False
        window.ensure_open()

    def test_closed_after_deadline(self):
        now = datetime(2030, 1, 1, 12, 0)
        window = SubmissionWindow(deadline=now - timedelta(seconds=1), now=now)

        with pytest.raises(DeadlineExpiredError):
            window.ensure_open()


class TestStoredDeadline:

    @pytest.mark.asyncio
    async def test_set_update_and_clear(self, db_session, admin_user, make_user):
        other_admin = await make_user(role=UserRole.ADMIN)

        assert await get_deadline(db_session) is None

        await set_deadline(db_session, datetime(2030, 6, 30, 12, 0), updated_by=admin_user.id)
        assert await get_deadline(db_session) == datetime(2030, 6, 30, 12, 0)

        setting = await set_deadline(db_session, datetime(2031, 1, 1), updated_by=other_admin.id)
        assert setting.updated_by == other_admin.id
        assert await get_deadline(db_session) == datetime(2031, 1, 1)

        await set_deadline(db_session, None)
        assert await get_deadline(db_session) is None
