"""Trading journal statistics.

A journal holds at most one entry per day: the day's net P&L, free-text
notes and whether the user traded at all. Days marked as not traded are
ignored by every figure below.

Drawdown protection
-------------------
The drawdown is measured from the highest balance reached in the current
calendar month (starting from the balance at the beginning of the month).
The size of the drawdown selects a protection level and a multiplier that
scales the risk per trade down:

=========  ============  ==========
level      drawdown >=   multiplier
=========  ============  ==========
emergency  8 %           0.2
danger     5 %           0.3
warning    3 %           0.6
caution    1.5 %         0.8
safe       -             1.0
=========  ============  ==========
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, Optional, Protocol, Sequence


class JournalDay(Protocol):
    trade_date: date
    pnl: float
    has_traded: bool


PROTECTION_LEVELS = (
    ("emergency", 8.0, 0.2),
    ("danger", 5.0, 0.3),
    ("warning", 3.0, 0.6),
    ("caution", 1.5, 0.8),
)

# Losing days in a row that trigger the pattern warning
LOSING_STREAK_LIMIT = 3
LOSING_STREAK_WINDOW = 5


def traded_days(entries: Iterable[JournalDay]) -> list[JournalDay]:
    """Traded days, oldest first."""
    return sorted((e for e in entries if e.has_traded), key=lambda e: e.trade_date)


def balance_from_journal(initial_capital: float, entries: Iterable[JournalDay]) -> Optional[float]:
    """Initial capital plus every traded day's P&L, or None without a capital."""
    if not initial_capital:
        return None
    return round(initial_capital + sum(e.pnl for e in traded_days(entries)), 2)


@dataclass(frozen=True)
class BalancePoint:
    trade_date: date
    pnl: float
    balance: float


def pnl_series(initial_capital: float, entries: Iterable[JournalDay]) -> list[BalancePoint]:
    """Running balance after each traded day."""
    series = []
    balance = initial_capital
    for entry in traded_days(entries):
        balance += entry.pnl
        series.append(BalancePoint(entry.trade_date, entry.pnl, round(balance, 2)))
    return series


@dataclass(frozen=True)
class JournalStats:
    total_trades: int = 0
    winning_trades: int = 0
    losing_trades: int = 0
    total_pnl: float = 0.0
    win_rate: float = 0.0
    avg_win: float = 0.0
    avg_loss: float = 0.0
    consecutive_losses: int = 0
    profit_factor: float = 0.0


def journal_stats(entries: Iterable[JournalDay]) -> JournalStats:
    """
    Win/loss statistics over traded days.

    ``avg_loss`` is positive. ``profit_factor`` is gross profit over gross
    loss, 0 when there is no losing day. ``consecutive_losses`` counts the
    losing days at the end of the journal, looking back at most five days;
    a break-even day ends the streak.
    """
    days = traded_days(entries)
    if not days:
        return JournalStats()

    wins = [e.pnl for e in days if e.pnl > 0]
    losses = [e.pnl for e in days if e.pnl < 0]
    gross_profit = sum(wins)
    gross_loss = abs(sum(losses))

    streak = 0
    for entry in reversed(days[-LOSING_STREAK_WINDOW:]):
        if entry.pnl >= 0:
            break
        streak += 1

    return JournalStats(
        total_trades=len(days),
        winning_trades=len(wins),
        losing_trades=len(losses),
        total_pnl=round(sum(e.pnl for e in days), 2),
        win_rate=len(wins) / len(days) * 100,
        avg_win=gross_profit / len(wins) if wins else 0.0,
        avg_loss=gross_loss / len(losses) if losses else 0.0,
        consecutive_losses=streak,
        profit_factor=gross_profit / gross_loss if gross_loss > 0 else 0.0,
    )


@dataclass(frozen=True)
class DrawdownStatus:
    monthly_peak: float
    peak_date: Optional[date]
    current_balance: float
    drawdown_amount: float
    drawdown_percent: float
    protection_level: str
    risk_multiplier: float
    days_in_drawdown: int


def protection_for(drawdown_percent: float) -> tuple[str, float]:
    for level, threshold, multiplier in PROTECTION_LEVELS:
        if drawdown_percent >= threshold:
            return level, multiplier
    return "safe", 1.0


def drawdown_protection(
    initial_capital: float,
    entries: Sequence[JournalDay],
    today: date,
) -> Optional[DrawdownStatus]:
    """Drawdown from this month's peak balance, or None without a capital."""
    current = balance_from_journal(initial_capital, entries)
    if current is None:
        return None

    month_start = today.replace(day=1)
    days = traded_days(entries)
    running = initial_capital + sum(e.pnl for e in days if e.trade_date < month_start)
    peak, peak_date = running, None
    for entry in days:
        if entry.trade_date < month_start or entry.trade_date > today:
            continue
        running += entry.pnl
        if running > peak:
            peak, peak_date = running, entry.trade_date

    drawdown_amount = max(peak - current, 0.0)
    drawdown_percent = drawdown_amount / peak * 100 if peak > 0 else 0.0
    level, multiplier = protection_for(drawdown_percent)

    return DrawdownStatus(
        monthly_peak=round(peak, 2),
        peak_date=peak_date,
        current_balance=current,
        drawdown_amount=round(drawdown_amount, 2),
        drawdown_percent=drawdown_percent,
        protection_level=level,
        risk_multiplier=multiplier,
        days_in_drawdown=(today - peak_date).days if peak_date and drawdown_amount > 0 else 0,
    )


@dataclass(frozen=True)
class TargetProgress:
    total_pnl: float
    total_pnl_percent: float
    weekly_pnl: float
    weekly_pnl_percent: float
    monthly_pnl: float
    monthly_pnl_percent: float
    weekly_target: float
    monthly_target: float

    @property
    def weekly_achieved(self) -> bool:
        return self.weekly_pnl_percent >= self.weekly_target

    @property
    def monthly_achieved(self) -> bool:
        return self.monthly_pnl_percent >= self.monthly_target

    @property
    def week_progress(self) -> float:
        if not self.weekly_target:
            return 0.0
        return min(100.0, abs(self.weekly_pnl_percent / self.weekly_target) * 100)

    @property
    def month_progress(self) -> float:
        if not self.monthly_target:
            return 0.0
        return min(100.0, abs(self.monthly_pnl_percent / self.monthly_target) * 100)


def target_progress(
    initial_capital: float,
    entries: Iterable[JournalDay],
    weekly_target: float,
    monthly_target: float,
    today: date,
) -> Optional[TargetProgress]:
    """P&L this week (from Monday) and this month, as a share of the initial capital."""
    if not initial_capital:
        return None

    days = traded_days(entries)
    monday = today - timedelta(days=today.weekday())
    month_start = today.replace(day=1)

    total = sum(e.pnl for e in days)
    weekly = sum(e.pnl for e in days if monday <= e.trade_date <= today)
    monthly = sum(e.pnl for e in days if month_start <= e.trade_date <= today)

    return TargetProgress(
        total_pnl=round(total, 2),
        total_pnl_percent=total / initial_capital * 100,
        weekly_pnl=round(weekly, 2),
        weekly_pnl_percent=weekly / initial_capital * 100,
        monthly_pnl=round(monthly, 2),
        monthly_pnl_percent=monthly / initial_capital * 100,
        weekly_target=weekly_target,
        monthly_target=monthly_target,
    )


@dataclass(frozen=True)
class RiskAdvice:
    status: str
    risk_adjustment: float
    adjusted_risk_percent: float
    max_risk_amount: float


def risk_advice(
    initial_capital: float,
    entries: Sequence[JournalDay],
    risk_per_trade: float,
    weekly_target: float,
    monthly_target: float,
    today: date,
    secure_mode: bool = False,
) -> Optional[RiskAdvice]:
    """
    Risk for the next trade after drawdown, losing streaks and targets.

    The first matching rule wins: emergency or danger drawdown, a losing
    streak, the monthly target reached, the weekly target reached. Otherwise
    the drawdown multiplier applies. Secure mode halves the result.
    """
    drawdown = drawdown_protection(initial_capital, entries, today)
    progress = target_progress(initial_capital, entries, weekly_target, monthly_target, today)
    if drawdown is None or progress is None:
        return None
    stats = journal_stats(entries)

    if drawdown.protection_level in ("emergency", "danger"):
        status, adjustment = drawdown.protection_level, drawdown.risk_multiplier
    elif stats.consecutive_losses >= LOSING_STREAK_LIMIT:
        status, adjustment = "pattern_warning", 0.5
    elif progress.monthly_achieved:
        status, adjustment = "monthly_achieved", 0.2
    elif progress.weekly_achieved:
        status, adjustment = "weekly_achieved", 0.4
    else:
        status, adjustment = "neutral", drawdown.risk_multiplier

    adjusted = risk_per_trade * adjustment * (0.5 if secure_mode else 1.0)
    return RiskAdvice(
        status=status,
        risk_adjustment=adjustment,
        adjusted_risk_percent=adjusted,
        max_risk_amount=round(drawdown.current_balance * adjusted / 100, 2),
    )
