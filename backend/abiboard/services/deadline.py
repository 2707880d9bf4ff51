"""
Submission deadline.

The deadline is a global admin setting. Requests read it once through
``get_submission_window`` and pass the resulting ``SubmissionWindow`` down,
so tests can override the dependency with any deadline.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from abiboard.core.database import get_db
from abiboard.core.exceptions import DeadlineExpiredError
from abiboard.core.logging_config import logger
from abiboard.core.types import utcnow
from abiboard.models.system_setting import SystemSetting

DEADLINE_SETTING_KEY = "submission.deadline"


def to_naive_utc(value: datetime) -> datetime:
    """Normalize to the naive UTC format stored in DateTime columns"""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def parse_deadline(raw: Any) -> Optional[datetime]:
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        return to_naive_utc(raw)
    try:
        return to_naive_utc(datetime.fromisoformat(str(raw).replace("Z", "+00:00")))
    except ValueError:
        logger.warning(f"[Deadline] Ignoring unparsable deadline setting: {raw!r}")
        return None


@dataclass(frozen=True)
class SubmissionWindow:
    """Deadline and clock as seen by a single request"""
    deadline: Optional[datetime] = None
    now: datetime = field(default_factory=utcnow)

    def is_deadline_passed(self) -> bool:
        return self.deadline is not None and self.now > self.deadline

    def ensure_open(self) -> None:
        if self.is_deadline_passed():
            raise DeadlineExpiredError()


async def get_deadline_setting(db: AsyncSession) -> Optional[SystemSetting]:
    return await db.scalar(select(SystemSetting).where(SystemSetting.key == DEADLINE_SETTING_KEY))


async def get_deadline(db: AsyncSession) -> Optional[datetime]:
    setting = await get_deadline_setting(db)
    if not setting:
        return None
    return parse_deadline(setting.value)


async def set_deadline(
    db: AsyncSession,
    deadline: Optional[datetime],
    updated_by: Optional[str] = None,
) -> SystemSetting:
    """Store the deadline; ``None`` removes it. Commits."""
    value = to_naive_utc(deadline).isoformat() if deadline else None

    setting = await get_deadline_setting(db)
    if setting:
        setting.value = value
        setting.updated_by = updated_by
        setting.updated_at = utcnow()
    else:
        setting = SystemSetting(
            key=DEADLINE_SETTING_KEY,
            value=value,
            description="Abgabefrist für Steckbriefe",
            category="submission",
            updated_by=updated_by,
        )
        db.add(setting)

    await db.commit()
    await db.refresh(setting)

    logger.info(f"[Deadline] Set to {value or 'none'} by {updated_by}")
    return setting


async def get_submission_window(db: AsyncSession = Depends(get_db)) -> SubmissionWindow:
    """FastAPI dependency: the deadline read once for this request"""
    return SubmissionWindow(deadline=await get_deadline(db))
