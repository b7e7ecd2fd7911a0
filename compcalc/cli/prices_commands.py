"""Historical stock price CLI commands."""

import json
from pathlib import Path

import click


@click.group("prices")
def prices():
    """Historical monthly stock prices.

    Past RSU tranches are valued at the close of their vest month. Prices
    come from monthly time-series JSON files (Alpha Vantage
    TIME_SERIES_MONTHLY format) stored in the data directory.
    """
    pass


@prices.command("import")
@click.argument("source", type=click.Path(exists=True))
@click.option("--symbol", type=str, help="Ticker to store under if the file has no metadata.")
@click.option("--force", is_flag=True, help="Overwrite an existing price file.")
def prices_import(source, symbol, force):
    """Import a monthly time-series JSON file.

    SOURCE is the path to the downloaded JSON file.
    """
    from compcalc.sdk.prices import import_price_file

    result = import_price_file(Path(source), symbol=symbol, overwrite=force)

    if "error" in result:
        message = result["error"]
        if "dest_path" in result:
            message += f": {result['dest_path']} (use --force to replace)"
        raise click.ClickException(message)

    click.echo(f"Imported: {result['dest_path']}")
    click.echo(f"  Symbol: {result['symbol']}")
    click.echo(f"  Months: {result['months']} ({result['first']} .. {result['last']})")


@prices.command("fetch")
@click.argument("symbol")
@click.option("--api-key", envvar="ALPHAVANTAGE_API_KEY", required=True,
              help="Alpha Vantage API key (or set ALPHAVANTAGE_API_KEY).")
@click.option("--force", is_flag=True, help="Overwrite an existing price file.")
def prices_fetch(symbol, api_key, force):
    """Download monthly closes for SYMBOL from Alpha Vantage.

    \b
    Examples:
      ALPHAVANTAGE_API_KEY=... comp-calc prices fetch META
      comp-calc prices fetch AAPL --api-key KEY --force
    """
    from compcalc.sdk.prices import fetch_price_file

    result = fetch_price_file(symbol, api_key, overwrite=force)

    if "error" in result:
        message = result["error"]
        if "dest_path" in result:
            message += f": {result['dest_path']} (use --force to replace)"
        raise click.ClickException(message)

    click.echo(f"Saved: {result['dest_path']}")
    click.echo(f"  Months: {result['months']} ({result['first']} .. {result['last']})")


@prices.command("list")
def prices_list():
    """List imported price files."""
    from compcalc.sdk.prices import get_prices_path, list_price_files

    files = list_price_files()
    if not files:
        click.echo(f"No price files in {get_prices_path()}")
        click.echo("\nTo import one:")
        click.echo("  comp-calc prices import <path-to-json>")
        return

    click.echo(f"Price files in {get_prices_path()}:\n")
    for f in files:
        click.echo(f"  {f['symbol']}: {f['months']} months ({f['first']} .. {f['last']})")


@prices.command("show")
@click.argument("symbol")
@click.option("--year", type=int, help="Year of the historical close to show.")
@click.option("--month", type=click.IntRange(1, 12), help="Month of the historical close (requires --year).")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def prices_show(symbol, year, month, as_json):
    """Show the latest price for SYMBOL, or the close for a given month."""
    from compcalc.sdk.prices import MonthlyPriceHistory, latest_price

    if month is not None and year is None:
        raise click.UsageError("--month requires --year")

    history = MonthlyPriceHistory()

    if year is None:
        quote = latest_price(symbol, history)
        if as_json:
            click.echo(json.dumps(quote, indent=2))
            return
        source = " (fallback quote)" if quote["source"] == "fallback" else ""
        click.echo(
            f"{quote['symbol']}: {quote['price']:,.2f} "
            f"({quote['change']:+,.2f}, {quote['change_percent']:+.2f}%) "
            f"as of {quote['as_of']}{source}"
        )
        return

    month = month or 12
    price = history.get_price(symbol, year, month)
    if as_json:
        click.echo(json.dumps({
            "symbol": symbol.upper(), "year": year, "month": month, "price": price,
        }, indent=2))
        return

    if price <= 0:
        raise click.ClickException(f"No {symbol.upper()} price for {year}-{month:02d}")
    click.echo(f"{symbol.upper()} {year}-{month:02d}: {price:,.2f}")
