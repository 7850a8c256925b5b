from uuid import UUID

from fastapi import Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user
from app.auth.schemas import TEACHER_ROLE, CurrentUser
from app.core.models import Teacher


async def require_admin(
    current_user: CurrentUser = Depends(get_current_user),
) -> CurrentUser:
    """Require ADMIN or SUPER_ADMIN role. Used for every assignment write and for audits."""
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only administrators can perform this action",
        )
    return current_user


async def ensure_admin_or_teacher(db: AsyncSession, current_user: CurrentUser, teacher_id: UUID) -> None:
    """Admins may act for any teacher; a TEACHER only for the profile linked to their user id."""
    if current_user.is_admin:
        return
    if current_user.role == TEACHER_ROLE:
        result = await db.execute(select(Teacher.id).where(Teacher.user_id == current_user.id))
        if result.scalar_one_or_none() == teacher_id:
            return
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Insufficient permissions",
    )
