"""Resolve year-keyed salary and bonus configs.

SDK layer - pure logic. Salary and bonus configs are step functions over
years: the entry effective for a year is the latest one at or before it.
Several entries for the same year collapse to the last one supplied.
"""

from bisect import bisect_right
from typing import Generic, Iterable, List, Optional, Tuple, TypeVar

from ..schemas import (
    DEFAULT_BONUS_PERCENTAGE,
    BonusConfig,
    CompensationConfig,
    SalaryConfig,
)

T = TypeVar("T")


class StepSchedule(Generic[T]):
    """Sorted year -> value map with a "latest entry <= year" lookup.

    Built once per projection so each lookup is a binary search instead of
    a filter and sort over the raw list.
    """

    def __init__(self, entries: Iterable[Tuple[int, T]] = ()):
        by_year = {}
        for year, value in entries:
            # Later insertions win for a duplicate year
            by_year[year] = value
        self._years: List[int] = sorted(by_year)
        self._values: List[T] = [by_year[y] for y in self._years]

    def __len__(self) -> int:
        return len(self._years)

    def __bool__(self) -> bool:
        return bool(self._years)

    def resolve(self, year: int, default: Optional[T] = None) -> Optional[T]:
        """Value effective in year, or default if nothing starts at or before it."""
        idx = bisect_right(self._years, year)
        if idx == 0:
            return default
        return self._values[idx - 1]

    def items(self) -> List[Tuple[int, T]]:
        return list(zip(self._years, self._values))


def salary_schedule(configs: Iterable[SalaryConfig]) -> StepSchedule[SalaryConfig]:
    return StepSchedule((c.year, c) for c in configs)


def bonus_schedule(configs: Iterable[BonusConfig]) -> StepSchedule[BonusConfig]:
    return StepSchedule((c.year, c) for c in configs)


def default_bonus(year: int) -> BonusConfig:
    """Bonus used when no config starts at or before the year (15% x 1.0)."""
    return BonusConfig(percentage=DEFAULT_BONUS_PERCENTAGE, year=year, performance_multiplier=1.0)


def resolve_salary(config: CompensationConfig, year: int,
                   schedule: Optional[StepSchedule[SalaryConfig]] = None) -> float:
    """Effective base salary for a year, falling back to the legacy scalar."""
    if schedule is None:
        schedule = salary_schedule(config.salary_configs)
    entry = schedule.resolve(year)
    if entry is None:
        return config.base_salary
    return entry.amount


def resolve_bonus(config: CompensationConfig, year: int,
                  schedule: Optional[StepSchedule[BonusConfig]] = None) -> BonusConfig:
    """Effective bonus config for a year."""
    if schedule is None:
        schedule = bonus_schedule(config.bonus_configs)
    return schedule.resolve(year) or default_bonus(year)


def bonus_amount(base_salary: float, bonus: BonusConfig) -> float:
    return base_salary * (bonus.percentage / 100) * bonus.performance_multiplier
