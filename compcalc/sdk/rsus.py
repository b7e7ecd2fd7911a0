"""
RSU vesting resolution and valuation.

SDK layer - pure logic. Splits each year of a grant's vesting schedule into
tranches on the vesting calendar months, prices tranches (historical price
for past vests, current price otherwise) and computes the vested and
remaining value of a grant at a point in time.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Iterator, List, Optional, Sequence

from .diagnostics import (
    HISTORICAL_PRICE_UNAVAILABLE,
    ProjectionDiagnostics,
    record,
)
from .prices import HistoricalPriceLookup
from .schemas import DEFAULT_VESTING_CALENDAR, GrantSummary, RSUGrant

logger = logging.getLogger(__name__)

# Each schedule year is split into this many equal tranches, however many
# months the vesting calendar has. tranche_divisor="calendar" uses the
# calendar length instead.
TRANCHES_PER_YEAR = 4


@dataclass(frozen=True)
class Tranche:
    """Shares of one grant vesting in one (year, month)."""

    year: int
    month: int
    shares: float
    percent: float


@dataclass(frozen=True)
class VestedValue:
    """Value of a grant's completed tranches."""

    total_vested_value: float
    vested_shares: float


def tranches_per_year(vesting_calendar: Sequence[int], divisor: str = "fixed") -> int:
    """Number of equal parts an annual percentage is split into."""
    if divisor == "calendar" and vesting_calendar:
        return len(vesting_calendar)
    return TRANCHES_PER_YEAR


def resolve_vests(
    grant: RSUGrant,
    target_year: int,
    vesting_calendar: Sequence[int],
    divisor: str = "fixed",
) -> List[Tranche]:
    """Tranches of a grant vesting in target_year.

    Empty before the grant year and once the schedule is exhausted. In the
    grant year, calendar months before the grant month are skipped.
    """
    grant_year = grant.grant_date.year
    grant_month = grant.grant_date.month
    schedule = grant.schedule
    years_from_grant = target_year - grant_year

    if years_from_grant < 0 or years_from_grant >= len(schedule):
        return []

    annual_pct = schedule[years_from_grant]
    if annual_pct == 0:
        return []

    tranche_pct = annual_pct / tranches_per_year(vesting_calendar, divisor)
    tranche_shares = grant.total_shares * tranche_pct / 100

    vests = []
    for month in sorted(vesting_calendar):
        if years_from_grant == 0 and month < grant_month:
            continue
        vests.append(Tranche(year=target_year, month=month, shares=tranche_shares,
                             percent=tranche_pct))
    return vests


def is_past_tranche(year: int, month: int, today: date) -> bool:
    """True if the tranche month is the current month or earlier."""
    return year < today.year or (year == today.year and month <= today.month)


def tranche_price(
    symbol: str,
    year: int,
    month: int,
    current_price: float,
    prices: HistoricalPriceLookup,
    today: date,
    diagnostics: Optional[ProjectionDiagnostics] = None,
) -> float:
    """Price a tranche: historical close for past months, else current price.

    A missing or non-positive historical price falls back to current price.
    """
    if not is_past_tranche(year, month, today):
        return current_price

    try:
        price = prices.get_price(symbol, year, month)
    except Exception as e:
        logger.warning(f"Price lookup failed for {symbol} {year}-{month:02d}: {e}")
        price = 0.0

    if not price or price <= 0:
        record(diagnostics, HISTORICAL_PRICE_UNAVAILABLE, year=year, month=month,
               symbol=symbol, fallback_price=current_price)
        return current_price
    return price


def completed_tranches(
    grant: RSUGrant,
    vesting_calendar: Sequence[int],
    as_of_year: int,
    as_of_month: int,
    divisor: str = "fixed",
) -> Iterator[Tranche]:
    """Tranches of a grant that vested at or before (as_of_year, as_of_month)."""
    grant_year = grant.grant_date.year
    for year in range(grant_year, grant_year + len(grant.schedule)):
        if year > as_of_year:
            break
        for tranche in resolve_vests(grant, year, vesting_calendar, divisor):
            if year == as_of_year and tranche.month > as_of_month:
                continue
            yield tranche


def _as_of(as_of_year: Optional[int], as_of_month: Optional[int], today: date):
    return (as_of_year or today.year, as_of_month or today.month)


def vested_value(
    grant: RSUGrant,
    vesting_calendar: Sequence[int],
    stock_symbol: str,
    current_price: float,
    prices: HistoricalPriceLookup,
    as_of_year: Optional[int] = None,
    as_of_month: Optional[int] = None,
    today: Optional[date] = None,
    divisor: str = "fixed",
    diagnostics: Optional[ProjectionDiagnostics] = None,
) -> VestedValue:
    """Value of the tranches vested by the as-of month (defaults to today).

    Only completed tranches count; each is valued at its vest-month price
    where known. A fully vested grant counts every share at current price.
    """
    today = today or date.today()
    as_of_year, as_of_month = _as_of(as_of_year, as_of_month, today)
    years_from_grant = as_of_year - grant.grant_date.year

    if years_from_grant < 0:
        return VestedValue(total_vested_value=0.0, vested_shares=0.0)
    if years_from_grant >= len(grant.schedule):
        return VestedValue(total_vested_value=grant.total_shares * current_price,
                           vested_shares=grant.total_shares)

    total_value = 0.0
    shares = 0.0
    for tranche in completed_tranches(grant, vesting_calendar, as_of_year, as_of_month, divisor):
        price = tranche_price(stock_symbol, tranche.year, tranche.month, current_price,
                              prices, today, diagnostics)
        shares += tranche.shares
        total_value += tranche.shares * price

    return VestedValue(total_vested_value=total_value, vested_shares=shares)


def vested_percentage(
    grant: RSUGrant,
    vesting_calendar: Sequence[int],
    as_of_year: int,
    as_of_month: int,
    divisor: str = "fixed",
) -> float:
    """Percent of the grant vested by the as-of month (0-100)."""
    years_from_grant = as_of_year - grant.grant_date.year
    if years_from_grant < 0:
        return 0.0
    if years_from_grant >= len(grant.schedule):
        return 100.0
    pct = sum(t.percent for t in completed_tranches(
        grant, vesting_calendar, as_of_year, as_of_month, divisor))
    return min(pct, 100.0)


def remaining_shares(
    grant: RSUGrant,
    current_year: int,
    vesting_calendar: Optional[Sequence[int]] = None,
    current_month: Optional[int] = None,
    today: Optional[date] = None,
    divisor: str = "fixed",
) -> float:
    """Unvested shares as of the given year and month."""
    today = today or date.today()
    if vesting_calendar is None:
        vesting_calendar = DEFAULT_VESTING_CALENDAR
    current_month = current_month or today.month
    pct = vested_percentage(grant, vesting_calendar, current_year, current_month, divisor)
    return grant.total_shares * max(0.0, 100.0 - pct) / 100


def remaining_value(
    grant: RSUGrant,
    current_price: float,
    current_year: int,
    vesting_calendar: Optional[Sequence[int]] = None,
    current_month: Optional[int] = None,
    today: Optional[date] = None,
    divisor: str = "fixed",
) -> float:
    """Unvested shares valued at the current price.

    Unvested shares have no vest-date price, so historical prices never apply.
    """
    shares = remaining_shares(grant, current_year, vesting_calendar, current_month,
                              today, divisor)
    return shares * current_price


def total_grant_value(grant: RSUGrant, current_price: float) -> float:
    return grant.total_shares * current_price


def has_grant_vested(
    grant: RSUGrant,
    vesting_calendar: Sequence[int],
    as_of_year: Optional[int] = None,
    as_of_month: Optional[int] = None,
    today: Optional[date] = None,
) -> bool:
    """Whether any tranche of the grant has vested by the as-of month."""
    today = today or date.today()
    as_of_year, as_of_month = _as_of(as_of_year, as_of_month, today)
    grant_year = grant.grant_date.year
    grant_month = grant.grant_date.month

    if as_of_year < grant_year:
        return False
    if as_of_year >= grant_year + len(grant.schedule):
        return True
    if as_of_year > grant_year:
        return True

    months = [m for m in vesting_calendar if m >= grant_month]
    if not months:
        return False
    return as_of_month >= min(months)


def grant_summary(
    grant: RSUGrant,
    vesting_calendar: Sequence[int],
    stock_symbol: str,
    current_price: float,
    prices: HistoricalPriceLookup,
    as_of_year: Optional[int] = None,
    as_of_month: Optional[int] = None,
    today: Optional[date] = None,
    divisor: str = "fixed",
    diagnostics: Optional[ProjectionDiagnostics] = None,
) -> GrantSummary:
    """Vested, remaining and total value of one grant for display."""
    today = today or date.today()
    as_of_year, as_of_month = _as_of(as_of_year, as_of_month, today)

    vested = vested_value(grant, vesting_calendar, stock_symbol, current_price, prices,
                          as_of_year, as_of_month, today, divisor, diagnostics)
    remaining = remaining_value(grant, current_price, as_of_year, vesting_calendar,
                                as_of_month, today, divisor)

    return GrantSummary(
        grant_id=grant.id,
        grant_date=grant.grant_date,
        total_shares=grant.total_shares,
        vested_shares=vested.vested_shares,
        vested_value=vested.total_vested_value,
        remaining_value=remaining,
        total_value=total_grant_value(grant, current_price),
        has_vested=has_grant_vested(grant, vesting_calendar, as_of_year, as_of_month, today),
    )
