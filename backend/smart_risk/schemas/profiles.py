"""Pydantic schemas for user profiles."""
from datetime import datetime
from typing import Optional, List, Literal
from pydantic import BaseModel, Field


class ProfileRecord(BaseModel):
    """Typed profile row, used both for API responses and client-side mapping."""

    id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    role: str = "user"
    is_subscribed: bool = False
    subscription_status: Optional[str] = None
    subscription_end_date: Optional[datetime] = None
    stripe_customer_id: Optional[str] = None
    stripe_subscription_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


class ProfileSelfUpdate(BaseModel):
    """Fields a user may change on their own profile."""

    full_name: Optional[str] = Field(None, min_length=1, max_length=255)


class ProfileAdminUpdate(BaseModel):
    """Schema for admin profile update (any field)."""

    email: Optional[str] = Field(None, max_length=255)
    full_name: Optional[str] = Field(None, max_length=255)
    role: Optional[Literal["user", "admin"]] = None
    is_subscribed: Optional[bool] = None
    subscription_status: Optional[
        Literal["active", "trialing", "past_due", "canceled", "payment_failed"]
    ] = None
    subscription_end_date: Optional[datetime] = None
    stripe_customer_id: Optional[str] = Field(None, max_length=255)
    stripe_subscription_id: Optional[str] = Field(None, max_length=255)


class ProfileListResponse(BaseModel):
    """Schema for paginated profile list response."""

    items: List[ProfileRecord]
    total: int
    skip: int
    limit: int
