"""Pydantic schemas for site settings."""
from typing import Any, Dict
from pydantic import BaseModel


class SettingsUpdateResponse(BaseModel):
    """Response of a settings POST: every stored setting after the upsert."""

    success: bool = True
    settings: Dict[str, Any]
