"""Seed script for Smart Risk Management.

Creates the default plan and default site settings when they are missing and
promotes ADMIN_EMAIL's profile to admin. Idempotent: existing rows are never
overwritten, so it is safe to run on every deploy.
"""

import asyncio
import logging
from sqlalchemy import select, func

from smart_risk.config import settings
from smart_risk.content_defaults import DEFAULT_PLAN, all_defaults, category_for_key
from smart_risk.database import session_scope
from smart_risk.logging_config import setup_logging
from smart_risk.models.site_setting import SiteSetting
from smart_risk.models.subscription_plan import SubscriptionPlan
from smart_risk.services.profiles import find_by_email

logger = logging.getLogger(__name__)


async def seed_plan(session) -> bool:
    """Create the default plan when no plan exists at all."""
    count = (await session.execute(select(func.count(SubscriptionPlan.id)))).scalar() or 0
    if count:
        logger.info("Plans already exist, skipping default plan")
        return False
    session.add(SubscriptionPlan(**DEFAULT_PLAN))
    logger.info(f"Default plan created: {DEFAULT_PLAN['name']} ({DEFAULT_PLAN['price']})")
    return True


async def seed_settings(session) -> int:
    """Insert every default setting whose key is not stored yet."""
    existing = set((await session.execute(select(SiteSetting.key))).scalars().all())
    created = 0
    for key, value in all_defaults().items():
        if key in existing:
            continue
        session.add(SiteSetting(key=key, value=value, category=category_for_key(key)))
        created += 1
    logger.info(f"Seeded {created} default settings ({len(existing)} already present)")
    return created


async def promote_admin(session, email: str) -> bool:
    if not email:
        logger.info("ADMIN_EMAIL not set, skipping admin promotion")
        return False
    profile = await find_by_email(session, email)
    if profile is None:
        logger.warning(f"No profile for {email} yet; sign up first, then re-run this script")
        return False
    if profile.role != "admin":
        profile.role = "admin"
        logger.info(f"Promoted {email} to admin")
    return True


async def seed_defaults():
    async with session_scope() as session:
        await seed_plan(session)
        await seed_settings(session)
        await promote_admin(session, settings.ADMIN_EMAIL)


def main():
    """Entry point for the seed script."""
    setup_logging(settings.LOG_LEVEL)
    asyncio.run(seed_defaults())


if __name__ == "__main__":
    main()
