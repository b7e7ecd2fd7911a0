"""comp - Salary and bonus resolution by year."""

from .step_configs import (
    StepSchedule,
    bonus_amount,
    bonus_schedule,
    default_bonus,
    resolve_bonus,
    resolve_salary,
    salary_schedule,
)

__all__ = [
    "StepSchedule",
    "bonus_amount",
    "bonus_schedule",
    "default_bonus",
    "resolve_bonus",
    "resolve_salary",
    "salary_schedule",
]
