"""Configuration management for Comp Calc.

Configuration is split into two files:

1. settings.json - Machine-specific settings
   - profile: path to profile.yaml (optional, if not colocated)
   - data_dir: override for the data directory (price files)
   - projection_timeout: seconds before a projection run is abandoned
   - tranche_divisor: "fixed" (4 tranches per year) or "calendar"

2. profile.yaml - User's compensation data
   - compensation: salary/bonus history, RSU grants, vesting calendar,
     stock price and currencies
   - exchange_rates: {FROM: {TO: rate}}

Config directory resolution:
1. COMP_CALC_CONFIG_PATH environment variable (if set)
2. ~/.config/comp-calc/ (XDG_CONFIG_HOME fallback)

Cache and data paths follow XDG spec:
- Cache: XDG_CACHE_HOME/comp-calc/ or ~/.cache/comp-calc/
- Data: settings data_dir, else XDG_DATA_HOME/comp-calc/ or ~/.local/share/comp-calc/
"""

import json
import os
from datetime import date
from pathlib import Path
from typing import Any, List, Optional

import yaml
from pydantic import ValidationError

from .schemas import (
    COMPANIES,
    DEFAULT_BONUS_PERCENTAGE,
    DEFAULT_VESTING_CALENDAR,
    CompensationConfig,
)


APP_NAME = "comp-calc"
SETTINGS_FILENAME = "settings.json"
PROFILE_FILENAME = "profile.yaml"

DEFAULT_PROJECTION_TIMEOUT = 10.0
TRANCHE_DIVISORS = ("fixed", "calendar")


class ProfileNotFoundError(Exception):
    """Raised when no profile is found."""
    pass


class CompensationConfigError(Exception):
    """Raised when the compensation block of a profile fails schema validation."""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.errors = errors or []


def get_config_dir() -> Path:
    """Get the configuration directory path.

    Resolution order:
    1. COMP_CALC_CONFIG_PATH environment variable
    2. ~/.config/comp-calc/ (XDG_CONFIG_HOME)
    """
    env_path = os.environ.get("COMP_CALC_CONFIG_PATH")
    if env_path:
        return Path(env_path)

    xdg_config_home = os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config")
    return Path(xdg_config_home) / APP_NAME


def get_settings_path() -> Path:
    return get_config_dir() / SETTINGS_FILENAME


def load_settings() -> dict:
    """Load machine-specific settings from settings.json.

    Returns:
        Settings dictionary (empty dict if file doesn't exist)
    """
    settings_file = get_settings_path()

    if not settings_file.exists():
        return {}

    with open(settings_file, "r") as f:
        return json.load(f)


def save_settings(settings: dict) -> Path:
    """Save machine-specific settings to settings.json."""
    config_dir = get_config_dir()
    config_dir.mkdir(parents=True, exist_ok=True)

    settings_file = config_dir / SETTINGS_FILENAME

    with open(settings_file, "w") as f:
        json.dump(settings, f, indent=2)

    return settings_file


def get_setting(key: str, default: Any = None) -> Any:
    return load_settings().get(key, default)


def get_projection_timeout() -> float:
    """Seconds a projection run may take before it is abandoned."""
    value = get_setting("projection_timeout", DEFAULT_PROJECTION_TIMEOUT)
    try:
        return float(value)
    except (TypeError, ValueError):
        return DEFAULT_PROJECTION_TIMEOUT


def get_tranche_divisor() -> str:
    value = get_setting("tranche_divisor", "fixed")
    return value if value in TRANCHE_DIVISORS else "fixed"


def get_live_rates_enabled() -> bool:
    """Whether exchange rates are fetched online before the profile table is used."""
    return bool(get_setting("live_exchange_rates", True))


def get_profile_path(require_exists: bool = False) -> Path:
    """Get the path to the profile.yaml file.

    Resolution order:
    1. settings.json "profile" key (if set)
    2. profile.yaml in config directory

    Raises:
        ProfileNotFoundError: If require_exists=True and no profile found
    """
    settings = load_settings()
    custom_profile = settings.get("profile")
    if custom_profile:
        profile_path = Path(custom_profile)
        if require_exists and not profile_path.exists():
            raise ProfileNotFoundError(
                f"Profile not found at configured path: {profile_path}\n\n"
                f"Fix the 'profile' key in {get_settings_path()}"
            )
        return profile_path

    profile_path = get_config_dir() / PROFILE_FILENAME
    if require_exists and not profile_path.exists():
        raise ProfileNotFoundError(
            f"No profile found at {profile_path}\n\n"
            f"Create a profile with: comp-calc profile init"
        )

    return profile_path


def load_profile(require_exists: bool = True) -> dict:
    """Load user profile from profile.yaml.

    Returns:
        Profile dictionary (empty dict if not required and not found)

    Raises:
        ProfileNotFoundError: If require_exists=True and no profile found
    """
    profile_path = get_profile_path(require_exists=require_exists)

    if not profile_path.exists():
        return {}

    with open(profile_path, "r") as f:
        return yaml.safe_load(f) or {}


def save_profile(profile: dict, path: Optional[Path] = None) -> Path:
    """Save user profile to profile.yaml."""
    if path is None:
        path = get_profile_path(require_exists=False)

    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w") as f:
        yaml.dump(profile, f, default_flow_style=False, sort_keys=False)

    return path


def parse_compensation(data: dict) -> CompensationConfig:
    """Validate a compensation dict into a CompensationConfig.

    Raises:
        CompensationConfigError: With one message per schema failure
    """
    try:
        return CompensationConfig.model_validate(data or {})
    except ValidationError as e:
        errors = [
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
            for err in e.errors()
        ]
        raise CompensationConfigError(
            "Invalid compensation config:\n  ! " + "\n  ! ".join(errors),
            errors=errors,
        )


def load_compensation_config(profile: Optional[dict] = None) -> CompensationConfig:
    """Load the compensation block of the profile as a CompensationConfig.

    Raises:
        ProfileNotFoundError: If no profile exists
        CompensationConfigError: If the compensation block is invalid
    """
    if profile is None:
        profile = load_profile(require_exists=True)
    return parse_compensation(profile.get("compensation", {}))


def sample_profile(today: Optional[date] = None, company: str = "Meta") -> dict:
    """Starter profile written by `comp-calc profile init`.

    The bonus target is 15% when that is one of the company's usual levels,
    otherwise the middle one.
    """
    year = (today or date.today()).year
    percentages = COMPANIES.get(company, COMPANIES["Other"])["bonus_percentages"]
    if DEFAULT_BONUS_PERCENTAGE in percentages:
        bonus_pct = DEFAULT_BONUS_PERCENTAGE
    else:
        bonus_pct = percentages[len(percentages) // 2]
    return {
        "compensation": {
            "base_salary": 120000,
            "salary_configs": [
                {"amount": 120000, "year": year, "is_historical": False},
            ],
            "bonus_configs": [
                {"percentage": bonus_pct, "year": year, "performance_multiplier": 1.0},
            ],
            "rsu_grants": [],
            "vesting_calendar": list(DEFAULT_VESTING_CALENDAR),
            "stock_price": 350,
            "base_currency": "GBP",
            "rsu_currency": "USD",
            "company": company,
        },
        "exchange_rates": {},
    }


# =============================================================================
# XDG path helpers
# =============================================================================

def get_cache_path() -> Path:
    """Get the cache directory path (XDG_CACHE_HOME/comp-calc/), creating it."""
    xdg_cache_home = os.environ.get("XDG_CACHE_HOME", Path.home() / ".cache")
    cache_path = Path(xdg_cache_home) / APP_NAME
    cache_path.mkdir(parents=True, exist_ok=True)
    return cache_path


def get_data_path() -> Path:
    """Get the data directory path, creating it.

    settings.json data_dir wins over XDG_DATA_HOME/comp-calc/.
    """
    data_dir = get_setting("data_dir")
    if data_dir:
        data_path = Path(data_dir).expanduser()
    else:
        xdg_data_home = os.environ.get("XDG_DATA_HOME", Path.home() / ".local" / "share")
        data_path = Path(xdg_data_home) / APP_NAME
    data_path.mkdir(parents=True, exist_ok=True)
    return data_path


# =============================================================================
# Profile validation
# =============================================================================

class ProfileValidationResult:
    """Result of profile validation.

    Errors make the profile unusable. Warnings describe inputs the projection
    will compute anyway but that are probably not what the user meant.
    """

    def __init__(
        self,
        location_path: Path,
        profile: dict,
        config: Optional[CompensationConfig] = None,
        errors: list = None,
        warnings: list = None,
    ):
        self.location_path = location_path
        self.profile = profile
        self.config = config
        self.errors = errors or []
        self.warnings = warnings or []

    @property
    def valid(self) -> bool:
        return not self.errors

    def require_valid(self) -> CompensationConfig:
        """Return the parsed config or raise with all errors listed."""
        if self.errors:
            error_str = "\n  ! ".join(self.errors)
            raise CompensationConfigError(
                f"Profile has validation errors:\n\n"
                f"  ! {error_str}\n\n"
                f"Profile: {self.location_path}\n"
                f"View with: comp-calc profile show",
                errors=self.errors,
            )
        return self.config


def validate_profile(profile: Optional[dict] = None) -> ProfileValidationResult:
    """Validate the compensation block and collect warnings.

    Args:
        profile: Profile dict to validate (loads the active profile if None)
    """
    location_path = get_profile_path(require_exists=False)
    if profile is None:
        profile = load_profile(require_exists=True)

    errors = []
    warnings = []
    config = None

    if "compensation" not in profile:
        errors.append("Missing 'compensation' section")
    else:
        try:
            config = parse_compensation(profile["compensation"])
        except CompensationConfigError as e:
            errors.extend(e.errors)

    rates = profile.get("exchange_rates", {}) or {}
    if not isinstance(rates, dict):
        errors.append("exchange_rates must be a mapping of FROM -> {TO: rate}")
        rates = {}

    if config is not None:
        warnings.extend(_compensation_warnings(config))
        if not config.same_currency and not _has_rate(rates, config.rsu_currency, config.base_currency):
            warnings.append(
                f"No exchange rate {config.rsu_currency}->{config.base_currency}; "
                f"RSU values will be converted 1:1 unless a cached rate exists"
            )

    return ProfileValidationResult(
        location_path=location_path,
        profile=profile,
        config=config,
        errors=errors,
        warnings=warnings,
    )


def _compensation_warnings(config: CompensationConfig) -> List[str]:
    warnings = []
    months = len(config.vesting_calendar)
    if months != 4:
        warnings.append(
            f"vesting_calendar has {months} month(s); each tranche is still sized "
            f"as 1/4 of the annual percentage unless tranche_divisor is 'calendar'"
        )
    if config.stock_price <= 0:
        warnings.append("stock_price is not positive; future RSU values will be 0")
    if not config.salary_configs and not config.base_salary:
        warnings.append("No salary configured")
    for grant in config.rsu_grants:
        if grant.total_shares <= 0:
            warnings.append(f"Grant {grant.id}: total_shares is {grant.total_shares}")
        total_pct = sum(grant.schedule)
        if abs(total_pct - 100) > 1e-6:
            warnings.append(f"Grant {grant.id}: vesting schedule sums to {total_pct:g}%, not 100%")
    ids = [g.id for g in config.rsu_grants]
    for dup in sorted({i for i in ids if ids.count(i) > 1}):
        warnings.append(f"Duplicate grant id: {dup}")
    return warnings


def _has_rate(rates: dict, from_code: str, to_code: str) -> bool:
    direct = rates.get(from_code, {}) or {}
    reverse = rates.get(to_code, {}) or {}
    return to_code in direct or from_code in reverse
