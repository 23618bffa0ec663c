"""The site-settings function: public read, admin write."""
import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Request, status, Body
from sqlalchemy.ext.asyncio import AsyncSession

from smart_risk.database import get_db
from smart_risk.models.profile import Profile
from smart_risk.schemas.settings import SettingsUpdateResponse
from smart_risk.auth.dependencies import admin_required
from smart_risk.services import site_settings
from smart_risk.rate_limit import limiter

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/site-settings", response_model=Dict[str, Any])
async def get_site_settings(db: AsyncSession = Depends(get_db)):
    """Public settings (landing page, general, appearance) as one object."""
    return await site_settings.load_public_settings(db)


@router.post("/site-settings", response_model=SettingsUpdateResponse)
@limiter.limit("30/minute")
async def update_site_settings(
    request: Request,
    updates: Dict[str, Any] = Body(...),
    current_admin: Profile = Depends(admin_required),
    db: AsyncSession = Depends(get_db)
):
    """
    Upsert settings, one row per key.

    - Each key's category comes from the fixed key table (default ``general``)
    - Returns every stored setting after the write
    """
    if not updates:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No settings provided"
        )

    try:
        await site_settings.upsert_settings(db, updates, updated_by=current_admin.id)
        await db.commit()
    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to save site settings: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

    return {"success": True, "settings": await site_settings.load_settings(db)}
