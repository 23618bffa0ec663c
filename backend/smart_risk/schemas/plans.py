"""Pydantic schemas for subscription plans."""
from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field, field_validator


class PlanRecord(BaseModel):
    """Typed subscription plan row."""

    id: str
    name: str
    price: float
    features: List[str] = Field(default_factory=list)
    is_active: bool = True
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @field_validator("features", mode="before")
    @classmethod
    def unwrap_features(cls, v):
        """Older rows stored features as ``{"features": [...]}``."""
        if v is None:
            return []
        if isinstance(v, dict):
            return v.get("features") or []
        return v


def _clean_features(v: Optional[List[str]]) -> Optional[List[str]]:
    if v is None:
        return v
    return [feature.strip() for feature in v if feature and feature.strip()]


class PlanCreate(BaseModel):
    """Schema for creating a plan."""

    name: str = Field(..., min_length=1, max_length=255)
    price: float = Field(..., ge=0)
    features: List[str] = Field(default_factory=list)
    is_active: bool = True

    @field_validator("features")
    @classmethod
    def strip_features(cls, v: List[str]) -> List[str]:
        return _clean_features(v)


class PlanUpdate(BaseModel):
    """Schema for updating a plan."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    price: Optional[float] = Field(None, ge=0)
    features: Optional[List[str]] = None
    is_active: Optional[bool] = None

    @field_validator("features")
    @classmethod
    def strip_features(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return _clean_features(v)


class PlanStatsResponse(BaseModel):
    """Header statistics of the admin subscriptions screen."""

    total_plans: int
    active_plans: int
    total_subscribers: int
    monthly_revenue: float
