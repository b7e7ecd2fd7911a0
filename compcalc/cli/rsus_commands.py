"""RSU grant CLI commands."""

import json

import click


@click.group("rsus")
def rsus():
    """RSU grant commands.

    Grants are read from the 'compensation.rsu_grants' list in profile.yaml.

    \b
    Usage:
    1. Add grants to profile.yaml (comp-calc profile show for the path)
    2. Optionally import monthly prices: comp-calc prices import <file>
    3. View vested/remaining values: comp-calc rsus list
    """
    pass


@rsus.command("list")
@click.option("--as-of", "as_of", type=str, help="Month to value grants at (YYYY-MM). Defaults to this month.")
@click.option("--price", type=float, help="Current stock price (overrides profile).")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def rsus_list(as_of, price, as_json):
    """Show vested, remaining and total value for each grant.

    Vested tranches are valued at their vest-month price when a price file
    is available; unvested shares use the current price.
    """
    from rich.console import Console

    from compcalc.sdk import ProjectionDiagnostics, get_tranche_divisor, grant_summary
    from . import context
    from .renderers.projection_renderer import render_grants

    config, profile = context.load_config_or_fail(price)
    prices, _ = context.collaborators(profile)
    as_of_year, as_of_month = context.parse_year_month(as_of)
    today = context.today()
    divisor = get_tranche_divisor()

    if not config.rsu_grants:
        if as_json:
            click.echo(json.dumps({"grants": [], "count": 0}, indent=2))
        else:
            click.echo("No RSU grants in profile.")
        return

    diagnostics = ProjectionDiagnostics()
    summaries = [
        grant_summary(
            grant,
            config.vesting_calendar,
            config.symbol,
            config.stock_price,
            prices,
            as_of_year=as_of_year,
            as_of_month=as_of_month,
            today=today,
            divisor=divisor,
            diagnostics=diagnostics,
        )
        for grant in config.rsu_grants
    ]

    if as_json:
        click.echo(json.dumps({
            "symbol": config.symbol,
            "stock_price": config.stock_price,
            "currency": config.rsu_currency,
            "grants": [s.model_dump(mode="json") for s in summaries],
            "count": len(summaries),
            "warnings": diagnostics.warnings,
        }, indent=2))
        return

    render_grants(Console(), summaries, config.rsu_currency)
    if diagnostics.events:
        click.secho(
            f"Note: {len(diagnostics.events)} vested tranche(s) had no historical "
            f"{config.symbol} price and were valued at the current price.",
            fg="yellow",
        )


@rsus.command("vests")
@click.argument("grant_id")
@click.argument("year", type=int)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def rsus_vests(grant_id, year, as_json):
    """Show the tranches of GRANT_ID that vest in YEAR."""
    from compcalc.sdk import get_tranche_divisor, resolve_vests
    from . import context

    config, _ = context.load_config_or_fail()
    grant = next((g for g in config.rsu_grants if g.id == grant_id), None)
    if grant is None:
        known = ", ".join(g.id for g in config.rsu_grants) or "none"
        raise click.ClickException(f"Grant not found: {grant_id} (grants: {known})")

    tranches = resolve_vests(grant, year, config.vesting_calendar, get_tranche_divisor())

    if as_json:
        click.echo(json.dumps({
            "grant_id": grant.id,
            "year": year,
            "tranches": [
                {"month": t.month, "shares": t.shares, "percent": t.percent}
                for t in tranches
            ],
        }, indent=2))
        return

    if not tranches:
        click.echo(f"No {grant.id} shares vest in {year}.")
        return

    click.echo(f"{grant.id} vests in {year}:\n")
    for t in tranches:
        click.echo(f"  {t.year}-{t.month:02d}  {t.shares:>12,.2f} shares  ({t.percent:g}%)")
    click.echo(f"\n  Total: {sum(t.shares for t in tranches):,.2f} shares")


@rsus.command("patterns")
def rsus_patterns():
    """List vesting pattern presets for the vesting_pattern field of a grant."""
    from compcalc.sdk.schemas import COMPANIES, VESTING_PATTERNS, default_pattern_for_company

    click.echo("Vesting patterns:\n")
    for key, pattern in VESTING_PATTERNS.items():
        schedule = " / ".join(f"{pct:g}%" for pct in pattern.schedule) or "(set custom_vesting_schedule)"
        click.echo(f"  {key:<8} {pattern.name}: {schedule}")

    click.echo("\nCompany defaults:\n")
    for company in COMPANIES:
        click.echo(f"  {company:<8} {default_pattern_for_company(company).name}")
