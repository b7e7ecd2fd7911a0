"""Pydantic schemas for comp-calc compensation data.

Input schemas use extra='forbid' to reject unknown fields, ensuring
typos in profile.yaml cause clear errors rather than silent ignoring.

Numbers are plain floats. Nothing here checks that a vesting schedule sums
to 100 or that a grant has shares; those are profile validation warnings,
not schema errors.
"""

import calendar
from datetime import date
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


DEFAULT_VESTING_CALENDAR = [2, 5, 8, 11]
DEFAULT_BONUS_PERCENTAGE = 15.0


# =============================================================================
# Inputs
# =============================================================================


class SalaryConfig(BaseModel):
    """Base salary effective from a year onward."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    amount: float = Field(..., description="Annual base salary in base currency")
    year: int = Field(..., description="First year this salary applies")
    is_historical: bool = Field(default=False, description="Entered as past actuals")


class BonusConfig(BaseModel):
    """Target bonus effective from a year onward."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    percentage: float = Field(..., description="Target bonus as percent of base salary")
    year: int = Field(..., description="First year this bonus target applies")
    performance_multiplier: float = Field(
        default=1.0, description="Rating multiplier (1.0 meets, 1.2 exceeds)"
    )
    is_historical: bool = Field(default=False, description="Entered as past actuals")


class VestingPattern(BaseModel):
    """Percent of a grant vesting in each year after the grant."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str = Field(..., description="Display name")
    type: Literal["equal", "increasing", "custom"] = Field(..., description="Pattern family")
    schedule: List[float] = Field(
        default_factory=list,
        description="schedule[i] = percent of total shares vesting in year i after grant",
    )


class RSUGrant(BaseModel):
    """A single RSU grant. Replaced wholesale on edit."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str = Field(..., description="Unique grant identifier")
    grant_date: date = Field(..., description="Award date")
    total_shares: float = Field(..., description="Shares awarded")
    grant_price: float = Field(default=0.0, description="Price at grant (informational)")
    vesting_pattern: VestingPattern = Field(..., description="Annual vesting percentages")
    custom_vesting_schedule: Optional[List[float]] = Field(
        default=None, description="Overrides vesting_pattern.schedule when non-empty"
    )

    @property
    def schedule(self) -> List[float]:
        """Annual vesting percentages in effect for this grant."""
        if self.custom_vesting_schedule:
            return list(self.custom_vesting_schedule)
        return list(self.vesting_pattern.schedule)

    def renewed(self, grant_year: int, grant_id: Optional[str] = None,
                total_shares: Optional[float] = None) -> "RSUGrant":
        """Copy of this grant re-dated to the same month/day in grant_year.

        Feb 29 becomes Feb 28 in non-leap years.
        """
        month = self.grant_date.month
        day = min(self.grant_date.day, calendar.monthrange(grant_year, month)[1])
        update = {
            "id": grant_id or f"future-{grant_year}",
            "grant_date": date(grant_year, month, day),
        }
        if total_shares is not None:
            update["total_shares"] = total_shares
        return self.model_copy(update=update)


class CompensationConfig(BaseModel):
    """Everything needed to project compensation. Passed whole on every request."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    base_salary: float = Field(
        default=0.0, description="Legacy scalar salary used when no salary config applies"
    )
    salary_configs: List[SalaryConfig] = Field(default_factory=list)
    bonus_configs: List[BonusConfig] = Field(default_factory=list)
    rsu_grants: List[RSUGrant] = Field(default_factory=list)
    vesting_calendar: List[int] = Field(
        default_factory=lambda: list(DEFAULT_VESTING_CALENDAR),
        description="Months (1-12) in which vesting tranches occur",
    )
    stock_price: float = Field(default=0.0, description="Current price in RSU currency")
    base_currency: str = Field(default="USD", description="Salary/bonus/reporting currency")
    rsu_currency: str = Field(default="USD", description="Currency of the stock price")
    company: str = Field(default="Other", description="Employer, used for presets and symbol")
    stock_symbol: Optional[str] = Field(default=None, description="Overrides company symbol")

    @field_validator("vesting_calendar")
    @classmethod
    def normalize_calendar(cls, v: List[int]) -> List[int]:
        """Store the calendar as a sorted set of valid months."""
        for month in v:
            if not 1 <= month <= 12:
                raise ValueError(f"vesting_calendar months must be 1-12, got {month}")
        return sorted(set(v))

    @field_validator("base_currency", "rsu_currency")
    @classmethod
    def upper_currency(cls, v: str) -> str:
        return v.strip().upper()

    @property
    def symbol(self) -> str:
        """Ticker used for historical price lookups."""
        if self.stock_symbol:
            return self.stock_symbol.upper()
        return symbol_for_company(self.company)

    @property
    def same_currency(self) -> bool:
        return self.base_currency == self.rsu_currency


# =============================================================================
# Outputs
# =============================================================================


class YearlyProjection(BaseModel):
    """Projected compensation for one calendar year."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    year: int
    base_salary: float = Field(..., description="Base currency")
    bonus: float = Field(..., description="Base currency")
    rsu_vest: float = Field(..., description="RSU currency")
    rsu_vest_in_base_currency: float
    total_comp: float = Field(..., description="salary + bonus + rsu_vest")
    total_comp_in_base_currency: float = Field(
        ..., description="salary + bonus + rsu_vest_in_base_currency"
    )


class GrantSummary(BaseModel):
    """Point-in-time view of one grant for display."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    grant_id: str
    grant_date: date
    total_shares: float
    vested_shares: float
    vested_value: float = Field(..., description="Valued at vest-date prices where known")
    remaining_value: float = Field(..., description="Unvested shares at current price")
    total_value: float = Field(..., description="All shares at current price")
    has_vested: bool


# =============================================================================
# Presets
# =============================================================================

VESTING_PATTERNS: Dict[str, VestingPattern] = {
    "meta": VestingPattern(name="Meta Standard (25% yearly)", type="equal",
                           schedule=[25, 25, 25, 25]),
    "amazon": VestingPattern(name="Amazon (5%, 15%, 40%, 40%)", type="increasing",
                             schedule=[5, 15, 40, 40]),
    "google": VestingPattern(name="Google Standard (25% yearly)", type="equal",
                             schedule=[25, 25, 25, 25]),
    "apple": VestingPattern(name="Apple Standard (25% yearly)", type="equal",
                            schedule=[25, 25, 25, 25]),
    "netflix": VestingPattern(name="Netflix (25% yearly)", type="equal",
                              schedule=[25, 25, 25, 25]),
    "custom": VestingPattern(name="Custom", type="custom", schedule=[]),
}

COMPANIES: Dict[str, Dict] = {
    "Meta": {"vesting_pattern": "meta", "bonus_percentages": [10, 15, 20, 25]},
    "Amazon": {"vesting_pattern": "amazon", "bonus_percentages": [15, 20, 25, 30]},
    "Google": {"vesting_pattern": "google", "bonus_percentages": [15, 20, 25]},
    "Apple": {"vesting_pattern": "apple", "bonus_percentages": [12, 18, 25]},
    "Netflix": {"vesting_pattern": "netflix", "bonus_percentages": [10, 15, 20]},
    "Other": {"vesting_pattern": "meta", "bonus_percentages": [10, 15, 20, 25]},
}

COMPANY_SYMBOLS: Dict[str, str] = {
    "Meta": "META",
    "Apple": "AAPL",
    "Google": "GOOGL",
    "Amazon": "AMZN",
    "Microsoft": "MSFT",
    "Tesla": "TSLA",
    "Netflix": "NFLX",
    "NVIDIA": "NVDA",
}

CURRENCIES: Dict[str, Dict[str, str]] = {
    "USD": {"name": "US Dollar", "symbol": "$"},
    "GBP": {"name": "British Pound", "symbol": "£"},
    "EUR": {"name": "Euro", "symbol": "€"},
    "CAD": {"name": "Canadian Dollar", "symbol": "C$"},
    "AUD": {"name": "Australian Dollar", "symbol": "A$"},
    "CHF": {"name": "Swiss Franc", "symbol": "CHF"},
    "SEK": {"name": "Swedish Krona", "symbol": "kr"},
    "NOK": {"name": "Norwegian Krone", "symbol": "kr"},
}


def symbol_for_company(company: str) -> str:
    """Map a company name to its ticker. Unknown companies map to META."""
    return COMPANY_SYMBOLS.get(company, "META")


def default_pattern_for_company(company: str) -> VestingPattern:
    """Default vesting pattern for a company (Other uses the 25x4 pattern)."""
    preset = COMPANIES.get(company, COMPANIES["Other"])
    return VESTING_PATTERNS[preset["vesting_pattern"]]


def currency_symbol(code: str) -> str:
    return CURRENCIES.get(code.upper(), {}).get("symbol", code.upper() + " ")
