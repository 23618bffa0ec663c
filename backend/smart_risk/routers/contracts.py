"""Futures contract reference table and position calculator."""
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status

from smart_risk.contracts import CONTRACTS, calculate_position_size, get_contract
from smart_risk.schemas.contracts import ContractResponse, PositionSizeRequest, PositionSizeResponse

router = APIRouter()


@router.get("", response_model=list[ContractResponse])
async def list_contracts(category: Optional[str] = Query(None)):
    """All contracts in table order, optionally restricted to one category."""
    contracts = CONTRACTS.values()
    if category:
        contracts = [c for c in contracts if c.category == category.lower()]
    return list(contracts)


@router.get("/{symbol}", response_model=ContractResponse)
async def get_contract_spec(symbol: str):
    contract = get_contract(symbol)
    if contract is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown contract: {symbol}"
        )
    return contract


@router.post("/position-size", response_model=PositionSizeResponse)
async def position_size(request: PositionSizeRequest):
    """
    Size a trade in every contract.

    - Contracts by risk: risk budget divided by the stop-loss cost of one contract
    - Contracts by margin: capital divided by the contract margin
    - Recommended: the smaller of the two; contracts that fit zero times are left out
    """
    result = calculate_position_size(
        request.capital,
        request.risk_percent,
        request.daily_loss_percent,
        request.stop_loss_ticks,
    )
    # Read through attributes so the 1:N potentials (properties) are included
    return PositionSizeResponse.model_validate(result)
