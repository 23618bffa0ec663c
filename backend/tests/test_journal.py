"""Tests for trading journal statistics and the journal model."""
from datetime import date

import pytest
from sqlalchemy.exc import IntegrityError

from smart_risk.journal import (
    balance_from_journal,
    drawdown_protection,
    journal_stats,
    pnl_series,
    protection_for,
    risk_advice,
    target_progress,
)
from smart_risk.models.trading_journal import TradingJournalEntry
from smart_risk.schemas.journal import JournalEntryRecord

TODAY = date(2025, 3, 20)  # a Thursday


def day(trade_date, pnl, has_traded=True):
    return JournalEntryRecord(user_id="u1", trade_date=trade_date, pnl=pnl, has_traded=has_traded)


@pytest.fixture
def march():
    return [
        day(date(2025, 2, 25), 500),
        day(date(2025, 3, 3), 300),
        day(date(2025, 3, 10), -200),
        day(date(2025, 3, 17), -150),
        day(date(2025, 3, 18), -100),
        day(date(2025, 3, 19), 999, has_traded=False),
    ]


def test_balance_ignores_days_not_traded(march):
    assert balance_from_journal(10_000, march) == 10_350
    assert balance_from_journal(0, march) is None


def test_pnl_series_is_chronological(march):
    series = pnl_series(10_000, reversed(march))

    assert [p.balance for p in series] == [10_500, 10_800, 10_600, 10_450, 10_350]
    assert series[0].trade_date == date(2025, 2, 25)


def test_journal_stats(march):
    stats = journal_stats(march)

    assert stats.total_trades == 5
    assert stats.winning_trades == 2
    assert stats.losing_trades == 3
    assert stats.total_pnl == 350
    assert stats.win_rate == 40.0
    assert stats.avg_win == 400
    assert stats.avg_loss == 150
    assert stats.consecutive_losses == 3
    assert stats.profit_factor == pytest.approx(800 / 450)


def test_stats_of_empty_journal():
    stats = journal_stats([])
    assert stats.total_trades == 0
    assert stats.win_rate == 0.0


def test_break_even_day_ends_losing_streak():
    entries = [day(date(2025, 3, 3), -10), day(date(2025, 3, 4), 0), day(date(2025, 3, 5), -5)]
    stats = journal_stats(entries)

    assert stats.consecutive_losses == 1
    # No winning day, so no profit factor
    assert stats.profit_factor == 0.0


def test_drawdown_from_monthly_peak(march):
    status = drawdown_protection(10_000, march, TODAY)

    # The month starts at 10 500 and peaks at 10 800 on the 3rd
    assert status.monthly_peak == 10_800
    assert status.peak_date == date(2025, 3, 3)
    assert status.current_balance == 10_350
    assert status.drawdown_amount == 450
    assert status.drawdown_percent == pytest.approx(450 / 10_800 * 100)
    assert status.protection_level == "warning"
    assert status.risk_multiplier == 0.6
    assert status.days_in_drawdown == 17


@pytest.mark.parametrize("percent,level,multiplier", [
    (0.0, "safe", 1.0),
    (1.5, "caution", 0.8),
    (3.0, "warning", 0.6),
    (5.0, "danger", 0.3),
    (12.0, "emergency", 0.2),
])
def test_protection_levels(percent, level, multiplier):
    assert protection_for(percent) == (level, multiplier)


def test_no_drawdown_without_capital(march):
    assert drawdown_protection(0, march, TODAY) is None


def test_target_progress(march):
    progress = target_progress(10_000, march, weekly_target=2, monthly_target=8, today=TODAY)

    assert progress.total_pnl == 350
    assert progress.weekly_pnl == -250
    assert progress.weekly_pnl_percent == pytest.approx(-2.5)
    assert progress.monthly_pnl == -150
    assert progress.monthly_pnl_percent == pytest.approx(-1.5)
    assert progress.weekly_achieved is False
    assert progress.week_progress == 100.0
    assert progress.month_progress == pytest.approx(18.75)


def test_losing_streak_halves_risk(march):
    advice = risk_advice(10_000, march, risk_per_trade=1, weekly_target=2, monthly_target=8, today=TODAY)

    assert advice.status == "pattern_warning"
    assert advice.adjusted_risk_percent == 0.5
    assert advice.max_risk_amount == 51.75

    secure = risk_advice(
        10_000, march, risk_per_trade=1, weekly_target=2, monthly_target=8, today=TODAY, secure_mode=True
    )
    assert secure.adjusted_risk_percent == 0.25


@pytest.mark.parametrize("entries,status,adjustment", [
    ([day(date(2025, 3, 3), 100)], "monthly_achieved", 0.2),
    ([day(date(2025, 3, 18), 30)], "weekly_achieved", 0.4),
    ([day(date(2025, 3, 3), 100), day(date(2025, 3, 4), -100)], "emergency", 0.2),
    ([day(date(2025, 3, 3), 50), day(date(2025, 3, 4), -20)], "neutral", 0.8),
])
def test_risk_advice_rules(entries, status, adjustment):
    advice = risk_advice(1_000, entries, risk_per_trade=2, weekly_target=2, monthly_target=8, today=TODAY)

    assert advice.status == status
    assert advice.risk_adjustment == adjustment
    assert advice.adjusted_risk_percent == pytest.approx(2 * adjustment)


def test_blank_pnl_reads_as_zero():
    assert day(date(2025, 3, 3), "").pnl == 0.0
    assert day(date(2025, 3, 3), "12.5").pnl == 12.5


@pytest.mark.asyncio
async def test_one_journal_entry_per_user_and_day(test_db, make_profile):
    trader = await make_profile()
    test_db.add(TradingJournalEntry(user_id=trader.id, trade_date=date(2025, 3, 3), pnl=120.0))
    await test_db.commit()

    test_db.add(TradingJournalEntry(user_id=trader.id, trade_date=date(2025, 3, 3), pnl=-40.0))
    with pytest.raises(IntegrityError):
        await test_db.commit()
    await test_db.rollback()
