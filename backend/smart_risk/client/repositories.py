"""Typed access to platform tables.

Raw rows never leave this module: every read is validated into a pydantic
record and every write is validated before the network call. A row that
does not fit its record is reported as a :class:`RemoteDataError`, like any
other failed read.
"""
import logging
from dataclasses import is_dataclass
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from smart_risk.client.remote import Filter, RemoteDataClient, RemoteDataError, Row
from smart_risk.contracts import PositionSizingResult
from smart_risk.schemas.contracts import PositionSizeResponse
from smart_risk.schemas.journal import JournalEntryRecord, PositionCalculationRecord, TradingSettingsRecord
from smart_risk.schemas.payments import PaymentRecord
from smart_risk.schemas.plans import PlanRecord
from smart_risk.schemas.profiles import ProfileRecord, ProfileSelfUpdate

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)

PROFILE_COLUMNS = (
    "id, email, full_name, role, is_subscribed, subscription_status, "
    "subscription_end_date, stripe_customer_id, stripe_subscription_id, created_at, updated_at"
)


def decode(model: Type[RecordT], row: Row, table: str) -> RecordT:
    """Validate one row read from ``table``."""
    try:
        return model.model_validate(row)
    except ValidationError as e:
        logger.error(f"Unreadable row in {table}: {e}")
        raise RemoteDataError("decode", table, e) from e


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ProfileRepository:
    table = "user_profiles"

    def __init__(self, remote: RemoteDataClient):
        self.remote = remote

    async def get(self, user_id: str) -> Optional[ProfileRecord]:
        row = await self.remote.select_one(self.table, PROFILE_COLUMNS, [Filter.eq("id", user_id)])
        return decode(ProfileRecord, row, self.table) if row else None

    async def create(self, user_id: str, email: Optional[str], full_name: Optional[str] = None,
                     is_subscribed: bool = False) -> ProfileRecord:
        record = ProfileRecord(
            id=user_id,
            email=email,
            full_name=full_name,
            role="user",
            is_subscribed=is_subscribed,
        )
        payload = record.model_dump(
            mode="json",
            include={"id", "email", "full_name", "role", "is_subscribed"},
        )
        rows = await self.remote.insert(self.table, payload)
        return decode(ProfileRecord, rows[0], self.table) if rows else record

    async def set_subscribed(self, user_id: str, subscribed: bool = True) -> None:
        await self.remote.update(self.table, {"is_subscribed": subscribed}, [Filter.eq("id", user_id)])

    async def update_self(self, user_id: str, full_name: str) -> Optional[ProfileRecord]:
        """Change the caller's display name (raises ``ValidationError`` before any request)."""
        update = ProfileSelfUpdate(full_name=full_name)
        rows = await self.remote.update(
            self.table, update.model_dump(exclude_none=True), [Filter.eq("id", user_id)]
        )
        return decode(ProfileRecord, rows[0], self.table) if rows else None

    async def count(self, subscribed: Optional[bool] = None) -> int:
        filters = [] if subscribed is None else [Filter.eq("is_subscribed", subscribed)]
        return await self.remote.count(self.table, filters)


class PaymentRepository:
    table = "payments"

    def __init__(self, remote: RemoteDataClient):
        self.remote = remote

    async def recent(self, limit: int = 5) -> List[PaymentRecord]:
        result = await self.remote.select(self.table, order="created_at", desc=True, limit=limit)
        return [decode(PaymentRecord, row, self.table) for row in result.data]

    async def count_since(self, since: datetime) -> int:
        return await self.remote.count(self.table, [Filter.gte("created_at", since.isoformat())])


class PlanRepository:
    table = "subscription_plans"

    def __init__(self, remote: RemoteDataClient):
        self.remote = remote

    async def active(self) -> List[PlanRecord]:
        result = await self.remote.select(self.table, filters=[Filter.eq("is_active", True)], order="price")
        return [decode(PlanRecord, row, self.table) for row in result.data]


class JournalRepository:
    """The signed-in user's trading journal, one entry per date."""

    table = "trading_journal"

    def __init__(self, remote: RemoteDataClient):
        self.remote = remote

    async def entries(self, user_id: str) -> Dict[date, JournalEntryRecord]:
        """All entries keyed by trade date, newest first."""
        result = await self.remote.select(
            self.table, filters=[Filter.eq("user_id", user_id)], order="trade_date", desc=True
        )
        records = [decode(JournalEntryRecord, row, self.table) for row in result.data]
        return {record.trade_date: record for record in records}

    async def get(self, user_id: str, trade_date: date) -> Optional[JournalEntryRecord]:
        row = await self.remote.select_one(
            self.table,
            filters=[Filter.eq("user_id", user_id), Filter.eq("trade_date", trade_date.isoformat())],
        )
        return decode(JournalEntryRecord, row, self.table) if row else None

    async def save(
        self,
        user_id: str,
        trade_date: date,
        pnl: Union[float, str, None] = 0.0,
        notes: Optional[str] = "",
        has_traded: bool = True,
    ) -> JournalEntryRecord:
        """Create or replace the entry for ``trade_date``."""
        entry = JournalEntryRecord(
            user_id=user_id, trade_date=trade_date, pnl=pnl, notes=notes, has_traded=has_traded
        )
        payload = entry.model_dump(mode="json", exclude={"id", "created_at", "updated_at"})
        payload["updated_at"] = _now()
        rows = await self.remote.upsert(self.table, payload, on_conflict="user_id,trade_date")
        return decode(JournalEntryRecord, rows[0], self.table) if rows else entry

    async def delete(self, user_id: str, trade_date: date) -> None:
        await self.remote.delete(
            self.table,
            [Filter.eq("user_id", user_id), Filter.eq("trade_date", trade_date.isoformat())],
        )


class TradingSettingsRepository:
    table = "user_settings"

    def __init__(self, remote: RemoteDataClient):
        self.remote = remote

    async def get(self, user_id: str) -> TradingSettingsRecord:
        """Saved settings, or the defaults when none are saved or they cannot be read."""
        try:
            row = await self.remote.select_one(self.table, filters=[Filter.eq("user_id", user_id)])
            if row:
                return decode(TradingSettingsRecord, row, self.table)
        except RemoteDataError as e:
            logger.error(f"Failed to load trading settings for {user_id}, using defaults: {e}")
        return TradingSettingsRecord(user_id=user_id)

    async def save(self, user_id: str, **changes: Any) -> TradingSettingsRecord:
        """Merge ``changes`` over the current settings and store them."""
        current = await self.get(user_id)
        settings = TradingSettingsRecord.model_validate(
            {**current.model_dump(), **changes, "user_id": user_id}
        )
        payload = settings.model_dump(mode="json", exclude={"updated_at"})
        payload["updated_at"] = _now()
        rows = await self.remote.upsert(self.table, payload, on_conflict="user_id")
        return decode(TradingSettingsRecord, rows[0], self.table) if rows else settings


class PositionCalculationRepository:
    table = "position_calculations"

    def __init__(self, remote: RemoteDataClient):
        self.remote = remote

    async def save(
        self, user_id: str, calculation: Union[PositionSizingResult, Mapping[str, Any]]
    ) -> PositionCalculationRecord:
        if is_dataclass(calculation):
            data = PositionSizeResponse.model_validate(calculation).model_dump(mode="json")
        else:
            data = dict(calculation)
        record = PositionCalculationRecord(user_id=user_id, calculation_data=data)
        rows = await self.remote.insert(self.table, record.model_dump(mode="json", exclude_none=True))
        return decode(PositionCalculationRecord, rows[0], self.table) if rows else record

    async def recent(self, user_id: str, limit: int = 10) -> List[PositionCalculationRecord]:
        result = await self.remote.select(
            self.table, filters=[Filter.eq("user_id", user_id)], order="created_at", desc=True, limit=limit
        )
        return [decode(PositionCalculationRecord, row, self.table) for row in result.data]
