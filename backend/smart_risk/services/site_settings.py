"""Reading and writing ``site_settings`` rows."""
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from smart_risk.content_defaults import PUBLIC_CATEGORIES, category_for_key, parse_value
from smart_risk.models.site_setting import SiteSetting

logger = logging.getLogger(__name__)


async def load_settings(db: AsyncSession, categories: Optional[Iterable[str]] = None) -> Dict[str, Any]:
    """All settings (optionally restricted to some categories) as one ``{key: value}`` object."""
    query = select(SiteSetting)
    if categories is not None:
        query = query.where(SiteSetting.category.in_(list(categories)))
    result = await db.execute(query.order_by(SiteSetting.key))
    return {row.key: parse_value(row.value) for row in result.scalars().all()}


async def load_public_settings(db: AsyncSession) -> Dict[str, Any]:
    return await load_settings(db, PUBLIC_CATEGORIES)


async def upsert_settings(db: AsyncSession, updates: Dict[str, Any], updated_by: Optional[str] = None) -> int:
    """
    Insert or replace each key, categorising it from the fixed key table.

    Rows are staged on the session; the caller commits. Returns the number
    of keys written.
    """
    now = datetime.utcnow()
    for key, value in updates.items():
        setting = await db.get(SiteSetting, key)
        if setting is None:
            setting = SiteSetting(key=key)
            db.add(setting)
        setting.value = value
        setting.category = category_for_key(key)
        setting.updated_by = updated_by
        setting.updated_at = now

    logger.info(f"Upserted {len(updates)} site settings (by {updated_by})")
    return len(updates)
