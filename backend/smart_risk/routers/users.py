"""Profile self-service endpoints."""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from smart_risk.database import get_db
from smart_risk.models.profile import Profile
from smart_risk.schemas.profiles import ProfileRecord, ProfileSelfUpdate
from smart_risk.auth.dependencies import get_current_profile

router = APIRouter()


@router.get("/me", response_model=ProfileRecord)
async def get_my_profile(
    current_profile: Profile = Depends(get_current_profile)
):
    """Get the caller's profile."""
    return current_profile


@router.put("/me", response_model=ProfileRecord)
async def update_my_profile(
    profile_update: ProfileSelfUpdate,
    current_profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_db)
):
    """
    Update the caller's profile.

    - Only ``full_name`` can be changed here; role and subscription
      fields are owned by admins and billing
    """
    if profile_update.full_name is not None:
        current_profile.full_name = profile_update.full_name.strip()

    db.add(current_profile)
    await db.commit()
    await db.refresh(current_profile)

    return current_profile
