"""Shared CLI helpers: load the profile and wire SDK collaborators."""

from datetime import date, datetime
from typing import Optional, Tuple

import click

from compcalc.sdk import (
    CompensationConfig,
    CompensationConfigError,
    CurrencyConverter,
    MonthlyPriceHistory,
    ProfileNotFoundError,
    load_compensation_config,
    load_profile,
    make_converter,
)


def load_config_or_fail(price: Optional[float] = None) -> Tuple[CompensationConfig, dict]:
    """Load profile and compensation config, converting SDK errors to ClickException.

    Args:
        price: Optional stock price overriding the profile's stock_price
    """
    try:
        profile = load_profile(require_exists=True)
        config = load_compensation_config(profile)
    except (ProfileNotFoundError, CompensationConfigError) as e:
        raise click.ClickException(str(e))

    if price is not None:
        if price < 0:
            raise click.BadParameter(f"Price must be non-negative, got {price}")
        config = config.model_copy(update={"stock_price": price})
    return config, profile


def collaborators(profile: dict) -> Tuple[MonthlyPriceHistory, CurrencyConverter]:
    return MonthlyPriceHistory(), make_converter(profile)


def parse_year_month(value: Optional[str]) -> Tuple[Optional[int], Optional[int]]:
    """Parse YYYY-MM into (year, month); None passes through."""
    if not value:
        return None, None
    try:
        parsed = datetime.strptime(value, "%Y-%m")
    except ValueError:
        raise click.BadParameter(f"Invalid month '{value}'. Use YYYY-MM.")
    return parsed.year, parsed.month


def today() -> date:
    return date.today()
