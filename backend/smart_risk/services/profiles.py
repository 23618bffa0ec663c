"""Profile queries shared by the admin and self-service routers."""
import logging
from typing import List, Optional, Tuple

from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from smart_risk.models.profile import Profile

logger = logging.getLogger(__name__)

SORTABLE_FIELDS = {
    "created_at": Profile.created_at,
    "email": Profile.email,
    "full_name": Profile.full_name,
    "role": Profile.role,
    "subscription_end_date": Profile.subscription_end_date,
}


async def search_profiles(
    db: AsyncSession,
    search: Optional[str] = None,
    role: Optional[str] = None,
    subscribed: Optional[bool] = None,
    sort_by: str = "created_at",
    sort_order: str = "desc",
    skip: int = 0,
    limit: int = 20,
) -> Tuple[List[Profile], int]:
    """Filtered, sorted page of profiles plus the total matching count."""
    criteria = []
    if search:
        pattern = f"%{search}%"
        criteria.append(or_(Profile.email.ilike(pattern), Profile.full_name.ilike(pattern)))
    if role:
        criteria.append(Profile.role == role)
    if subscribed is not None:
        criteria.append(Profile.is_subscribed.is_(subscribed))

    total = (await db.execute(select(func.count(Profile.id)).where(*criteria))).scalar() or 0

    column = SORTABLE_FIELDS.get(sort_by, Profile.created_at)
    ordering = column.asc() if sort_order == "asc" else column.desc()
    result = await db.execute(
        select(Profile).where(*criteria).order_by(ordering).offset(skip).limit(limit)
    )
    return list(result.scalars().all()), total


async def find_by_email(db: AsyncSession, email: str) -> Optional[Profile]:
    result = await db.execute(select(Profile).where(func.lower(Profile.email) == email.lower()))
    return result.scalars().first()
