"""Comp Calc MCP Server - FastMCP implementation for compensation projection tools."""

import logging
import os
from datetime import date
from typing import Any

from mcp.server.fastmcp import FastMCP
from pydantic import Field

logger = logging.getLogger(__name__)

# Initialize FastMCP server
mcp = FastMCP("comp-calc")


# --- Tools ---

@mcp.tool()
async def project_compensation(
    start_year: int | None = Field(default=None, description="First year (default: 4 years ago)"),
    end_year: int | None = Field(default=None, description="Last year (default: 3 years ahead)"),
    stock_price: float | None = Field(default=None, description="Current stock price; overrides the profile's stock_price"),
) -> dict[str, Any]:
    """Project salary, bonus and RSU vesting for each year from the active profile.

    Past RSU tranches are valued at historical monthly prices when a price
    file has been imported. RSU values are converted into the base currency
    using the profile's exchange_rates. 'warnings' lists every fallback used
    (missing historical price, missing exchange rate, etc).
    """
    try:
        from compcalc.sdk import (
            MonthlyPriceHistory,
            ProjectionRunner,
            ProjectionSeriesBuilder,
            default_year_range,
            get_projection_timeout,
            get_tranche_divisor,
            load_compensation_config,
            load_profile,
            make_converter,
        )

        profile = load_profile(require_exists=True)
        config = load_compensation_config(profile)
        if stock_price is not None:
            config = config.model_copy(update={"stock_price": stock_price})

        today = date.today()
        default_start, default_end = default_year_range(today)
        start = start_year if start_year is not None else default_start
        end = end_year if end_year is not None else default_end
        if start > end:
            return {"error": f"start_year {start} is after end_year {end}", "projections": []}

        builder = ProjectionSeriesBuilder(
            prices=MonthlyPriceHistory(),
            converter=make_converter(profile),
            today=today,
            divisor=get_tranche_divisor(),
        )
        runner = ProjectionRunner(builder, timeout=get_projection_timeout())
        series = await runner.run(config, start, end)
        if series is None:
            return {"error": f"Projection timed out after {runner.timeout:g}s", "projections": []}

        return {
            "start_year": start,
            "end_year": end,
            "base_currency": config.base_currency,
            "rsu_currency": config.rsu_currency,
            "exchange_rate": runner.latest_result.exchange_rate,
            "projections": [p.model_dump() for p in series],
            "warnings": runner.latest_result.diagnostics.warnings,
        }

    except Exception as e:
        logger.error(f"Error generating projection: {e}")
        return {"error": str(e), "projections": []}


@mcp.tool()
async def list_grants(
    as_of: str | None = Field(default=None, description="Month to value grants at (YYYY-MM, default: this month)"),
) -> dict[str, Any]:
    """List RSU grants with vested, remaining and total value."""
    try:
        from compcalc.sdk import (
            MonthlyPriceHistory,
            get_tranche_divisor,
            grant_summary,
            load_compensation_config,
        )

        as_of_year = as_of_month = None
        if as_of:
            year_str, _, month_str = as_of.partition("-")
            as_of_year, as_of_month = int(year_str), int(month_str)

        config = load_compensation_config()
        prices = MonthlyPriceHistory()
        divisor = get_tranche_divisor()
        grants = [
            grant_summary(
                grant, config.vesting_calendar, config.symbol, config.stock_price, prices,
                as_of_year=as_of_year, as_of_month=as_of_month, divisor=divisor,
            ).model_dump(mode="json")
            for grant in config.rsu_grants
        ]
        return {
            "symbol": config.symbol,
            "currency": config.rsu_currency,
            "grants": grants,
            "count": len(grants),
        }

    except Exception as e:
        logger.error(f"Error listing grants: {e}")
        return {"error": str(e), "grants": [], "count": 0}


# --- Server Entry Point ---

def run_server():
    """Run the MCP server in stdio mode."""
    logging.basicConfig(
        level=getattr(logging, os.environ.get("LOG_LEVEL", "INFO").upper(), logging.INFO),
        format="%(asctime)s.%(msecs)03d %(levelname)s: %(message)s",
        datefmt="%H:%M:%S"
    )
    mcp.run(transport="stdio")


if __name__ == "__main__":
    run_server()
