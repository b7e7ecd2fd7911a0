"""Rich renderers for projection series and grant summaries.

Transforms SDK output into formatted Rich tables.
"""

from typing import List, Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from compcalc.sdk.schemas import GrantSummary, YearlyProjection, currency_symbol


def _money(symbol: str, value: float) -> str:
    return f"{symbol}{value:,.0f}"


def render_projection(
    console: Console,
    series: List[YearlyProjection],
    base_currency: str,
    rsu_currency: str,
    current_year: int,
    exchange_rate: Optional[float] = None,
    warnings: Optional[List[str]] = None,
) -> None:
    """Render a projection series as a year-per-row table.

    Args:
        console: Rich Console instance
        series: Output of build_series()
        current_year: Year to highlight; earlier years are marked historical
        exchange_rate: Rate used for the RSU conversion (shown when currencies differ)
        warnings: Fallback messages to show below the table
    """
    base_sym = currency_symbol(base_currency)
    rsu_sym = currency_symbol(rsu_currency)
    same = base_currency == rsu_currency

    table = Table(box=box.SIMPLE_HEAVY, title="Compensation Projection")
    table.add_column("Year")
    table.add_column("Base Salary", justify="right")
    table.add_column("Bonus", justify="right")
    table.add_column(f"RSU Vest ({rsu_currency})", justify="right")
    if not same:
        table.add_column(f"RSU Vest ({base_currency})", justify="right")
    table.add_column(f"Total ({base_currency})", justify="right", style="bold")

    for p in series:
        if p.year < current_year:
            label = f"{p.year} [dim](actual)[/dim]"
        elif p.year == current_year:
            label = f"[cyan]{p.year}[/cyan]"
        else:
            label = f"{p.year} [dim](proj.)[/dim]"
        row = [
            label,
            _money(base_sym, p.base_salary),
            _money(base_sym, p.bonus),
            _money(rsu_sym, p.rsu_vest),
        ]
        if not same:
            row.append(_money(base_sym, p.rsu_vest_in_base_currency))
        row.append(_money(base_sym, p.total_comp_in_base_currency))
        table.add_row(*row)

    console.print(table)

    if not same and exchange_rate is not None:
        console.print(f"[dim]1 {rsu_currency} = {exchange_rate:.4f} {base_currency}[/dim]")

    for warning in warnings or []:
        console.print(Panel(f"[yellow]{warning}[/yellow]", title="Note", border_style="yellow"))


def render_grants(console: Console, summaries: List[GrantSummary], rsu_currency: str) -> None:
    """Render per-grant vested/remaining values."""
    sym = currency_symbol(rsu_currency)

    table = Table(box=box.SIMPLE_HEAVY, title="RSU Grants")
    table.add_column("Grant")
    table.add_column("Date")
    table.add_column("Shares", justify="right")
    table.add_column("Vested", justify="right")
    table.add_column("Vested Value", justify="right")
    table.add_column("Remaining", justify="right")
    table.add_column("Total", justify="right")

    for s in summaries:
        vested_pct = (s.vested_shares / s.total_shares * 100) if s.total_shares else 0
        table.add_row(
            s.grant_id,
            s.grant_date.isoformat(),
            f"{s.total_shares:,.2f}",
            f"{s.vested_shares:,.2f} ({vested_pct:.0f}%)",
            _money(sym, s.vested_value),
            _money(sym, s.remaining_value),
            _money(sym, s.total_value),
        )

    if summaries:
        table.add_section()
        table.add_row(
            "[bold]TOTAL[/bold]", "",
            f"{sum(s.total_shares for s in summaries):,.2f}",
            f"{sum(s.vested_shares for s in summaries):,.2f}",
            _money(sym, sum(s.vested_value for s in summaries)),
            _money(sym, sum(s.remaining_value for s in summaries)),
            _money(sym, sum(s.total_value for s in summaries)),
        )

    console.print(table)
