"""Pydantic schemas for the billing-portal function."""
from typing import Optional
from pydantic import BaseModel, ConfigDict, EmailStr, Field


class PortalSessionRequest(BaseModel):
    """Accepts both snake_case and the camelCase keys sent by older web clients."""

    model_config = ConfigDict(populate_by_name=True)

    customer_email: Optional[EmailStr] = Field(None, alias="customerEmail")
    return_url: Optional[str] = Field(None, alias="returnUrl", max_length=2048)


class PortalSessionResponse(BaseModel):
    url: str
