"""Futures contract specifications and position sizing.

The table is static: margins are the broker's intraday margins in USD and
``tick_value`` is the dollar value of one ``tick_size`` move for one contract.

Position sizing
---------------
For every contract:

1. ``loss_per_contract = stop_loss_ticks * tick_value``
2. ``by_risk = floor(max_risk_per_trade / loss_per_contract)`` where
   ``max_risk_per_trade = capital * risk_percent / 100``
3. ``by_margin = floor(capital / margin)``
4. ``recommended = min(by_risk, by_margin)``; contracts with zero
   recommended size are dropped.

Recommendations are sorted by recommended size, largest first.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping


@dataclass(frozen=True)
class ContractSpec:
    """Specification of one futures contract."""

    symbol: str
    name: str
    margin: float
    tick_value: float
    tick_size: float
    multiplier: float
    category: str
    description: str = ""


CONTRACTS: Mapping[str, ContractSpec] = MappingProxyType({
    spec.symbol: spec
    for spec in (
        ContractSpec("MNQ", "Micro E-mini Nasdaq (MNQ)", 50, 0.50, 0.25, 2, "nasdaq", "1/10 of the standard NQ"),
        ContractSpec("NQ", "E-mini Nasdaq (NQ)", 1000, 5.00, 0.25, 20, "nasdaq", "Standard Nasdaq contract"),
        ContractSpec("MES", "Micro E-mini S&P 500 (MES)", 50, 1.25, 0.25, 5, "sp500", "1/10 of the standard ES"),
        ContractSpec("ES", "E-mini S&P 500 (ES)", 1000, 12.50, 0.25, 50, "sp500", "Standard S&P 500 contract"),
        ContractSpec("MYM", "Micro E-mini Dow (MYM)", 50, 0.50, 1.00, 2, "dow", "1/10 of the standard YM"),
        ContractSpec("YM", "E-mini Dow (YM)", 1000, 5.00, 1.00, 20, "dow", "Standard Dow Jones contract"),
        ContractSpec("M2K", "Micro E-mini Russell 2000 (M2K)", 50, 0.50, 0.10, 2, "russell", "1/10 of the standard RTY"),
        ContractSpec("RTY", "E-mini Russell 2000 (RTY)", 1000, 5.00, 0.10, 20, "russell", "Standard Russell 2000 contract"),
        ContractSpec("MCL", "Micro Crude Oil (MCL)", 50, 1.00, 0.01, 1, "energy", "1/10 of the standard CL"),
        ContractSpec("CL", "Crude Oil (CL)", 1000, 10.00, 0.01, 10, "energy", "Standard Crude Oil contract"),
        ContractSpec("MGC", "Micro Gold (MGC)", 50, 0.10, 0.10, 0.1, "metals", "1/10 of the standard GC"),
        ContractSpec("GC", "Gold (GC)", 1000, 1.00, 0.10, 1, "metals", "Standard Gold contract"),
    )
})


def get_contract(symbol: str) -> ContractSpec | None:
    """Look up a contract by symbol (case-insensitive)."""
    return CONTRACTS.get(symbol.strip().upper())


@dataclass(frozen=True)
class PositionRecommendation:
    symbol: str
    contract: ContractSpec
    recommended_contracts: int
    max_contracts_by_risk: int
    max_contracts_by_margin: int
    loss_per_contract: float
    total_risk: float
    total_margin: float
    risk_percent: float
    margin_percent: float

    @property
    def potential_1to1(self) -> float:
        return self.total_risk

    @property
    def potential_1to2(self) -> float:
        return self.total_risk * 2

    @property
    def potential_1to3(self) -> float:
        return self.total_risk * 3


@dataclass(frozen=True)
class PositionSizingResult:
    capital: float
    risk_percent: float
    daily_loss_percent: float
    stop_loss_ticks: float
    max_risk_per_trade: float
    max_daily_loss: float
    max_trades_per_day: int
    recommendations: list[PositionRecommendation] = field(default_factory=list)


def calculate_position_size(
    capital: float,
    risk_percent: float,
    daily_loss_percent: float,
    stop_loss_ticks: float,
    contracts: Mapping[str, ContractSpec] | None = None,
) -> PositionSizingResult:
    """Size a position in every contract of the table.

    Raises:
        ValueError: if capital, risk percent or stop-loss ticks are not positive.
    """
    if capital <= 0:
        raise ValueError("capital must be positive")
    if stop_loss_ticks <= 0:
        raise ValueError("stop_loss_ticks must be positive")
    if risk_percent <= 0:
        raise ValueError("risk_percent must be positive")
    if daily_loss_percent < 0:
        raise ValueError("daily_loss_percent cannot be negative")

    contracts = CONTRACTS if contracts is None else contracts

    max_risk_per_trade = capital * risk_percent / 100
    max_daily_loss = capital * daily_loss_percent / 100
    max_trades_per_day = math.floor(max_daily_loss / max_risk_per_trade)

    recommendations = []
    for symbol, spec in contracts.items():
        loss_per_contract = stop_loss_ticks * spec.tick_value
        by_risk = math.floor(max_risk_per_trade / loss_per_contract)
        by_margin = math.floor(capital / spec.margin)
        recommended = min(by_risk, by_margin)
        if recommended <= 0:
            continue

        total_risk = recommended * loss_per_contract
        total_margin = recommended * spec.margin
        recommendations.append(PositionRecommendation(
            symbol=symbol,
            contract=spec,
            recommended_contracts=recommended,
            max_contracts_by_risk=by_risk,
            max_contracts_by_margin=by_margin,
            loss_per_contract=loss_per_contract,
            total_risk=total_risk,
            total_margin=total_margin,
            risk_percent=total_risk / capital * 100,
            margin_percent=total_margin / capital * 100,
        ))

    # Stable sort keeps table order between equal sizes
    recommendations.sort(key=lambda rec: rec.recommended_contracts, reverse=True)

    return PositionSizingResult(
        capital=capital,
        risk_percent=risk_percent,
        daily_loss_percent=daily_loss_percent,
        stop_loss_ticks=stop_loss_ticks,
        max_risk_per_trade=max_risk_per_trade,
        max_daily_loss=max_daily_loss,
        max_trades_per_day=max_trades_per_day,
        recommendations=recommendations,
    )
