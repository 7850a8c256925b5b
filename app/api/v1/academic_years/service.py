from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NoActiveAcademicYearError
from app.core.models import AcademicYear


async def get_active_academic_year(db: AsyncSession) -> Optional[AcademicYear]:
    """Return the active academic year, or None. If data is bad and several are active, the earliest-starting wins."""
    result = await db.execute(
        select(AcademicYear)
        .where(AcademicYear.is_active.is_(True))
        .order_by(AcademicYear.start_date, AcademicYear.id)
        .limit(1)
    )
    return result.scalar_one_or_none()


async def require_active_academic_year(db: AsyncSession) -> AcademicYear:
    ay = await get_active_academic_year(db)
    if ay is None:
        raise NoActiveAcademicYearError()
    return ay
