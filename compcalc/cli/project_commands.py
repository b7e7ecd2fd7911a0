"""Compensation projection CLI command."""

import asyncio
import json

import click


@click.command("project")
@click.option("--start", type=int, help="First year. Defaults to 4 years ago.")
@click.option("--end", type=int, help="Last year. Defaults to 3 years ahead.")
@click.option("--price", type=float, help="Current stock price (overrides profile).")
@click.option("--future-grants", "policy", type=click.Choice(["annual_renewal", "declining_renewal", "none"]),
              default="annual_renewal", show_default=True,
              help="How grants after this year are assumed.")
@click.option("--decline", type=float, default=0.9, show_default=True,
              help="Yearly grant size factor for declining_renewal.")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def project(start, end, price, policy, decline, as_json):
    """Project salary, bonus and RSU vesting year by year.

    Past RSU tranches use historical monthly prices when a price file has
    been imported (see 'comp-calc prices import'); everything else uses the
    current stock price.

    \b
    Examples:
      comp-calc project
      comp-calc project --start 2022 --end 2028
      comp-calc project --price 612.50 --future-grants none
      comp-calc project --json
    """
    from rich.console import Console

    from compcalc.sdk import (
        ProjectionRunner,
        ProjectionSeriesBuilder,
        default_year_range,
        get_policy,
        get_projection_timeout,
        get_tranche_divisor,
    )
    from . import context
    from .renderers.projection_renderer import render_projection

    config, profile = context.load_config_or_fail(price)
    prices, converter = context.collaborators(profile)
    today = context.today()

    default_start, default_end = default_year_range(today)
    start = default_start if start is None else start
    end = default_end if end is None else end
    if start > end:
        raise click.UsageError(f"--start ({start}) must not be after --end ({end})")

    policy_kwargs = {"factor": decline} if policy == "declining_renewal" else {}
    try:
        grant_policy = get_policy(policy, **policy_kwargs)
    except ValueError as e:
        raise click.BadParameter(str(e))

    builder = ProjectionSeriesBuilder(
        prices=prices,
        converter=converter,
        today=today,
        future_grant_policy=grant_policy,
        divisor=get_tranche_divisor(),
    )
    runner = ProjectionRunner(builder, timeout=get_projection_timeout())
    series = asyncio.run(runner.run(config, start, end))

    if series is None:
        raise click.ClickException(
            f"No projection available: timed out after {runner.timeout:g}s"
        )

    result = runner.latest_result
    diagnostics = result.diagnostics

    if as_json:
        output = {
            "start_year": start,
            "end_year": end,
            "base_currency": config.base_currency,
            "rsu_currency": config.rsu_currency,
            "exchange_rate": result.exchange_rate,
            "projections": [p.model_dump() for p in series],
            "warnings": diagnostics.warnings,
        }
        click.echo(json.dumps(output, indent=2))
        return

    render_projection(
        Console(),
        series,
        base_currency=config.base_currency,
        rsu_currency=config.rsu_currency,
        current_year=today.year,
        exchange_rate=result.exchange_rate,
        warnings=_summarize_warnings(diagnostics),
    )


def _summarize_warnings(diagnostics) -> list:
    """Collapse per-tranche fallback events into one line per kind."""
    from compcalc.sdk.diagnostics import (
        EXCHANGE_RATE_UNAVAILABLE,
        HISTORICAL_PRICE_UNAVAILABLE,
        TRANCHE_COUNT_MISMATCH,
    )

    lines = []
    missing = diagnostics.of_kind(HISTORICAL_PRICE_UNAVAILABLE)
    if missing:
        months = sorted({f"{e.year}-{e.month:02d}" for e in missing})
        lines.append(
            f"No historical price for {len(months)} vest month(s) "
            f"({months[0]} .. {months[-1]}); valued at current price"
        )
    for event in diagnostics.of_kind(EXCHANGE_RATE_UNAVAILABLE)[:1]:
        lines.append(
            f"Exchange rate {event.detail['from_currency']}->{event.detail['to_currency']} "
            f"unavailable; RSU value converted 1:1"
        )
    for event in diagnostics.of_kind(TRANCHE_COUNT_MISMATCH)[:1]:
        lines.append(
            f"Vesting calendar has {event.detail['months']} month(s) but each tranche is "
            f"1/{event.detail['tranches_per_year']} of the annual percentage"
        )
    return lines
