"""Exchange rate CLI commands."""

import json

import click


@click.group("rates")
def rates():
    """Currency exchange rates.

    Rates are fetched from exchangerate-api.com and reused for an hour.
    When that fails, rates under 'exchange_rates' in profile.yaml
    (FROM -> {TO: rate}) are used; the inverse direction is derived
    automatically. Set "live_exchange_rates": false in settings.json to use
    only the profile table.
    """
    pass


@rates.command("show")
@click.option("--from", "from_code", type=str, help="Source currency. Defaults to the RSU currency.")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def rates_show(from_code, as_json):
    """Show rates from one currency to every supported currency.

    Missing rates are shown as 1.0.
    """
    from compcalc.sdk import CURRENCIES, load_profile, make_converter

    profile = load_profile(require_exists=False)
    if not from_code:
        from_code = (profile.get("compensation") or {}).get("rsu_currency") or "USD"
    from_code = from_code.upper()

    converter = make_converter(profile)
    result = converter.get_rates(from_code, [c for c in CURRENCIES if c != from_code])

    if as_json:
        click.echo(json.dumps({"from": from_code, "rates": result}, indent=2))
        return

    click.echo(f"1 {from_code} =")
    for code, rate in result.items():
        click.echo(f"  {rate:>10.4f} {code}  ({CURRENCIES[code]['name']})")


@rates.command("set")
@click.argument("from_code")
@click.argument("to_code")
@click.argument("rate", type=float)
def rates_set(from_code, to_code, rate):
    """Set the rate converting FROM_CODE into TO_CODE.

    \b
    Example:
      comp-calc rates set USD GBP 0.79
    """
    from compcalc.sdk import load_profile, save_profile
    from compcalc.sdk.rates import set_profile_rate

    profile = load_profile(require_exists=False)
    try:
        set_profile_rate(profile, from_code, to_code, rate)
    except ValueError as e:
        raise click.BadParameter(str(e))

    path = save_profile(profile)
    click.echo(f"Set {from_code.upper()} -> {to_code.upper()} = {rate} in {path}")
