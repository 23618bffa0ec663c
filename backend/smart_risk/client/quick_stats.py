"""Admin quick-stats counters, refreshed on a timer."""
import logging
from datetime import datetime, timezone
from typing import Optional

from smart_risk.client.polling import PeriodicTask
from smart_risk.client.remote import RemoteDataClient
from smart_risk.client.repositories import PaymentRepository, ProfileRepository
from smart_risk.config import settings
from smart_risk.schemas.analytics import QuickStats

logger = logging.getLogger(__name__)


class QuickStatsPoller:
    """Keeps ``stats`` current while started; the last good value survives failures."""

    def __init__(self, remote: RemoteDataClient, interval: Optional[float] = None):
        self.profiles = ProfileRepository(remote)
        self.payments = PaymentRepository(remote)
        self.stats: Optional[QuickStats] = None
        self.task = PeriodicTask(
            self.refresh,
            settings.QUICK_STATS_INTERVAL_SECONDS if interval is None else interval,
            name="admin-quick-stats",
        )

    async def refresh(self) -> QuickStats:
        now = datetime.now(timezone.utc)
        midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
        self.stats = QuickStats(
            total_users=await self.profiles.count(),
            subscribed_users=await self.profiles.count(subscribed=True),
            payments_today=await self.payments.count_since(midnight),
            fetched_at=now,
        )
        return self.stats

    def start(self) -> None:
        self.task.start()

    async def stop(self) -> None:
        await self.task.stop()
