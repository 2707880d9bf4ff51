"""Student activity feed; writes are best effort"""
from sqlalchemy.ext.asyncio import AsyncSession

from abiboard.core.logging_config import logger
from abiboard.models.student_activity import ActivityAction, StudentActivity

PROFILE_ENTITY = "Steckbrief"


async def log_student_activity(
    db: AsyncSession,
    user_id: str,
    action: ActivityAction,
    entity: str = PROFILE_ENTITY,
    count: int = 1,
) -> None:
    """
    Append an activity row in its own commit.

    Call this after the primary operation has been committed. Failures are
    logged and discarded, they never reach the caller.
    """
    try:
        db.add(StudentActivity(user_id=user_id, action=action, entity=entity, count=count))
        await db.commit()
    except Exception as e:
        await db.rollback()
        logger.warning(f"[Activity] Failed to log {action.value} {entity} for {user_id}: {e}")
