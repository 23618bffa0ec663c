"""Pydantic schemas for the trading journal, trading settings and saved calculations."""
from datetime import date, datetime
from typing import Optional, Dict, Any
from pydantic import BaseModel, Field, field_validator


class JournalEntryRecord(BaseModel):
    """One journal day; at most one per user and date."""

    id: Optional[str] = None
    user_id: str
    trade_date: date
    pnl: float = 0.0
    notes: str = Field("", max_length=5000)
    has_traded: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @field_validator("pnl", mode="before")
    @classmethod
    def blank_pnl_is_zero(cls, v):
        """The journal form submits an empty string for a flat day."""
        if v is None or (isinstance(v, str) and not v.strip()):
            return 0.0
        return v

    @field_validator("notes", mode="before")
    @classmethod
    def notes_default(cls, v):
        return v or ""


class TradingSettingsRecord(BaseModel):
    """Per-user money management settings; the defaults apply until first saved."""

    user_id: str
    initial_capital: float = Field(0.0, ge=0)
    current_balance: float = Field(0.0, ge=0)
    risk_per_trade: float = Field(1.0, gt=0, le=100)
    daily_loss_max: float = Field(3.0, ge=0, le=100)
    weekly_target: float = Field(2.0, ge=0)
    monthly_target: float = Field(8.0, ge=0)
    secure_mode: bool = False
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PositionCalculationRecord(BaseModel):
    """A position sizing result the user chose to keep."""

    id: Optional[str] = None
    user_id: str
    calculation_data: Dict[str, Any]
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
