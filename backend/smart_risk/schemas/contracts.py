"""Pydantic schemas for contract specifications and position sizing."""
from typing import List
from pydantic import BaseModel, Field


class ContractResponse(BaseModel):
    symbol: str
    name: str
    margin: float
    tick_value: float
    tick_size: float
    multiplier: float
    category: str
    description: str = ""

    class Config:
        from_attributes = True


class PositionSizeRequest(BaseModel):
    """Inputs of the position calculator; validated before any computation."""

    capital: float = Field(..., gt=0)
    risk_percent: float = Field(1.0, gt=0, le=100)
    daily_loss_percent: float = Field(3.0, ge=0, le=100)
    stop_loss_ticks: float = Field(..., gt=0)


class PositionRecommendationResponse(BaseModel):
    symbol: str
    contract: ContractResponse
    recommended_contracts: int
    max_contracts_by_risk: int
    max_contracts_by_margin: int
    loss_per_contract: float
    total_risk: float
    total_margin: float
    risk_percent: float
    margin_percent: float
    potential_1to1: float
    potential_1to2: float
    potential_1to3: float

    class Config:
        from_attributes = True


class PositionSizeResponse(BaseModel):
    capital: float
    risk_percent: float
    daily_loss_percent: float
    stop_loss_ticks: float
    max_risk_per_trade: float
    max_daily_loss: float
    max_trades_per_day: int
    recommendations: List[PositionRecommendationResponse]

    class Config:
        from_attributes = True
