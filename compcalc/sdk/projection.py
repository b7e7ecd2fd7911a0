"""Year-by-year compensation projection.

Combines the salary and bonus effective in each year with the value of the
RSU tranches vesting that year, converts the RSU part into the base
currency and returns one YearlyProjection per year.

RSU tranches already in the past are valued at the historical monthly close
where one is available; everything else uses the current stock price. Years
after the current one also include grants the future grant policy expects to
be awarded (by default, a copy of the latest grant every year).

Known limitation: the exchange rate is resolved once per series, so a rate
change part-way through the range is not reflected.
"""

import asyncio
import logging
import threading
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, List, Optional, Tuple

from .comp import bonus_amount, bonus_schedule, default_bonus, salary_schedule
from .config import DEFAULT_PROJECTION_TIMEOUT
from .diagnostics import (
    DEFAULT_BONUS,
    EXCHANGE_RATE_UNAVAILABLE,
    LEGACY_SALARY_FALLBACK,
    TRANCHE_COUNT_MISMATCH,
    ProjectionDiagnostics,
    record,
)
from .future_grants import AnnualRenewalPolicy, FutureGrantPolicy
from .prices import HistoricalPriceLookup, NoPriceHistory
from .rates import CurrencyConverter
from .rsus import TRANCHES_PER_YEAR, resolve_vests, tranche_price
from .schemas import CompensationConfig, YearlyProjection

logger = logging.getLogger(__name__)

YEARS_BACK = 4
YEARS_FORWARD = 3


def default_year_range(today: Optional[date] = None) -> Tuple[int, int]:
    """Four years back through three years ahead (8 years)."""
    year = (today or date.today()).year
    return year - YEARS_BACK, year + YEARS_FORWARD


class YearlyProjector:
    """Projects single years for one CompensationConfig."""

    def __init__(
        self,
        config: CompensationConfig,
        prices: Optional[HistoricalPriceLookup] = None,
        today: Optional[date] = None,
        future_grant_policy: Optional[FutureGrantPolicy] = None,
        divisor: str = "fixed",
        diagnostics: Optional[ProjectionDiagnostics] = None,
    ):
        self.config = config
        self.prices = prices or NoPriceHistory()
        self.today = today or date.today()
        self.policy = future_grant_policy if future_grant_policy is not None else AnnualRenewalPolicy()
        self.divisor = divisor
        self.diagnostics = diagnostics
        self._salaries = salary_schedule(config.salary_configs)
        self._bonuses = bonus_schedule(config.bonus_configs)

    def base_salary(self, year: int) -> float:
        entry = self._salaries.resolve(year)
        if entry is None:
            record(self.diagnostics, LEGACY_SALARY_FALLBACK, year=year,
                   base_salary=self.config.base_salary)
            return self.config.base_salary
        return entry.amount

    def bonus(self, year: int, base_salary: float) -> float:
        entry = self._bonuses.resolve(year)
        if entry is None:
            record(self.diagnostics, DEFAULT_BONUS, year=year)
            entry = default_bonus(year)
        return bonus_amount(base_salary, entry)

    def granted_vest(self, year: int) -> float:
        """Value of tranches from grants already awarded."""
        config = self.config
        total = 0.0
        for grant in config.rsu_grants:
            for tranche in resolve_vests(grant, year, config.vesting_calendar, self.divisor):
                price = tranche_price(config.symbol, year, tranche.month, config.stock_price,
                                      self.prices, self.today, self.diagnostics)
                total += tranche.shares * price
        return total

    def future_grant_vest(self, year: int) -> float:
        """Value of tranches from grants expected after the current year."""
        config = self.config
        current_year = self.today.year
        if year <= current_year or not config.rsu_grants:
            return 0.0

        total = 0.0
        for grant in self.policy.future_grants(config.rsu_grants, current_year, year):
            for tranche in resolve_vests(grant, year, config.vesting_calendar, self.divisor):
                total += tranche.shares * config.stock_price
        return total

    def rsu_vest(self, year: int) -> float:
        return self.granted_vest(year) + self.future_grant_vest(year)

    def project(self, year: int, exchange_rate: float = 1.0) -> YearlyProjection:
        base_salary = self.base_salary(year)
        bonus = self.bonus(year, base_salary)
        rsu_vest = self.rsu_vest(year)

        if self.config.same_currency:
            rsu_vest_base = rsu_vest
        else:
            rsu_vest_base = rsu_vest * exchange_rate

        return YearlyProjection(
            year=year,
            base_salary=base_salary,
            bonus=bonus,
            rsu_vest=rsu_vest,
            rsu_vest_in_base_currency=rsu_vest_base,
            total_comp=base_salary + bonus + rsu_vest,
            total_comp_in_base_currency=base_salary + bonus + rsu_vest_base,
        )


def project_year(config: CompensationConfig, year: int, exchange_rate: float = 1.0,
                 **kwargs) -> YearlyProjection:
    """Project one year. kwargs are passed to YearlyProjector."""
    return YearlyProjector(config, **kwargs).project(year, exchange_rate)


@dataclass
class ProjectionResult:
    """One series build: the projections, the rate applied and its fallbacks."""

    series: List[YearlyProjection]
    exchange_rate: float
    diagnostics: ProjectionDiagnostics


class ProjectionSeriesBuilder:
    """Builds a projection series from a config and its collaborators.

    Holds no per-request state; one builder can serve many configs. Fallback
    events go to the diagnostics passed with each build.
    """

    def __init__(
        self,
        prices: Optional[HistoricalPriceLookup] = None,
        converter: Optional[CurrencyConverter] = None,
        today: Optional[date] = None,
        future_grant_policy: Optional[FutureGrantPolicy] = None,
        divisor: str = "fixed",
    ):
        self.prices = prices or NoPriceHistory()
        self.converter = converter
        self.today = today
        self.future_grant_policy = future_grant_policy
        self.divisor = divisor

    def exchange_rate(self, config: CompensationConfig,
                      diagnostics: Optional[ProjectionDiagnostics] = None) -> float:
        """RSU -> base currency rate, or 1.0 if it cannot be resolved."""
        if config.same_currency:
            return 1.0

        if self.converter is None:
            rate = None
            reason = "no converter configured"
        else:
            try:
                rate = self.converter.get_rate(config.rsu_currency, config.base_currency)
                reason = f"non-positive rate {rate}"
            except Exception as e:
                rate = None
                reason = str(e)

        if not rate or rate <= 0:
            logger.warning(
                f"Exchange rate {config.rsu_currency}->{config.base_currency} unavailable "
                f"({reason}); using 1:1"
            )
            record(diagnostics, EXCHANGE_RATE_UNAVAILABLE,
                   from_currency=config.rsu_currency, to_currency=config.base_currency,
                   reason=reason)
            return 1.0
        return rate

    def build(self, config: CompensationConfig, start_year: int, end_year: int,
              diagnostics: Optional[ProjectionDiagnostics] = None) -> ProjectionResult:
        """Project every year in [start_year, end_year] and keep the rate used."""
        if diagnostics is None:
            diagnostics = ProjectionDiagnostics()
        today = self.today or date.today()
        exchange_rate = self.exchange_rate(config, diagnostics)

        months = len(config.vesting_calendar)
        if self.divisor == "fixed" and months != TRANCHES_PER_YEAR:
            record(diagnostics, TRANCHE_COUNT_MISMATCH, months=months,
                   tranches_per_year=TRANCHES_PER_YEAR)

        projector = YearlyProjector(
            config,
            prices=self.prices,
            today=today,
            future_grant_policy=self.future_grant_policy,
            divisor=self.divisor,
            diagnostics=diagnostics,
        )
        series = [projector.project(year, exchange_rate) for year in range(start_year, end_year + 1)]
        logger.debug(f"Projected {len(series)} year(s) {start_year}-{end_year} at rate {exchange_rate}")
        return ProjectionResult(series=series, exchange_rate=exchange_rate, diagnostics=diagnostics)

    def build_series(self, config: CompensationConfig, start_year: int, end_year: int,
                     diagnostics: Optional[ProjectionDiagnostics] = None) -> List[YearlyProjection]:
        """One projection per year in [start_year, end_year], ascending."""
        return self.build(config, start_year, end_year, diagnostics).series


def build_series(config: CompensationConfig, start_year: int, end_year: int,
                 diagnostics: Optional[ProjectionDiagnostics] = None,
                 **kwargs) -> List[YearlyProjection]:
    """Project every year in [start_year, end_year]. kwargs go to ProjectionSeriesBuilder."""
    return ProjectionSeriesBuilder(**kwargs).build_series(config, start_year, end_year, diagnostics)


def _settle(future: asyncio.Future, result: Any = None,
            error: Optional[BaseException] = None) -> None:
    # wait_for cancels the future on timeout; a late result is dropped
    if future.done():
        return
    if error is not None:
        future.set_exception(error)
    else:
        future.set_result(result)


def _run_detached(fn: Callable, *args) -> asyncio.Future:
    """Run fn(*args) on a daemon thread and return a future for its result.

    The thread is never joined, so an abandoned call cannot hold up the event
    loop shutdown or interpreter exit.
    """
    loop = asyncio.get_running_loop()
    future = loop.create_future()

    def work():
        try:
            outcome = {"result": fn(*args)}
        except Exception as e:
            outcome = {"error": e}
        try:
            loop.call_soon_threadsafe(_settle, future, outcome.get("result"), outcome.get("error"))
        except RuntimeError:
            logger.debug("Event loop closed before an abandoned projection finished")

    threading.Thread(target=work, name="comp-calc-projection", daemon=True).start()
    return future


class ProjectionRunner:
    """Runs series builds for a caller that re-projects on every input change.

    Each run takes a new generation number. A run only publishes its result
    (to `latest`, and as its return value) if no newer run has started and
    cancel() has not been called since; otherwise it returns None. A run that
    exceeds the timeout also returns None, without waiting for the build.

    Every run records fallbacks into its own ProjectionDiagnostics, so events
    from a discarded run never reach the published result.
    """

    def __init__(self, builder: ProjectionSeriesBuilder,
                 timeout: float = DEFAULT_PROJECTION_TIMEOUT):
        self.builder = builder
        self.timeout = timeout
        self._generation = 0
        self.latest: Optional[List[YearlyProjection]] = None
        self.latest_result: Optional[ProjectionResult] = None
        self.latest_generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    def cancel(self) -> None:
        """Invalidate any run in flight."""
        self._generation += 1

    async def run(self, config: CompensationConfig, start_year: int, end_year: int,
                  diagnostics: Optional[ProjectionDiagnostics] = None
                  ) -> Optional[List[YearlyProjection]]:
        self._generation += 1
        generation = self._generation
        if diagnostics is None:
            diagnostics = ProjectionDiagnostics()

        try:
            result = await asyncio.wait_for(
                _run_detached(self.builder.build, config, start_year, end_year, diagnostics),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Projection run {generation} timed out after {self.timeout}s")
            return None

        if generation != self._generation:
            logger.debug(f"Discarding stale projection run {generation} (latest {self._generation})")
            return None

        self.latest = result.series
        self.latest_result = result
        self.latest_generation = generation
        return result.series
