"""Shared fixtures.

Uses isolated directories via tmp_path and COMP_CALC_CONFIG_PATH
to avoid touching real profiles, price files or the rate cache.
"""

import json
from datetime import date
from pathlib import Path

import pytest
import yaml

from compcalc.sdk.schemas import RSUGrant, VestingPattern


EQUAL_PATTERN = VestingPattern(name="Equal", type="equal", schedule=[25, 25, 25, 25])


@pytest.fixture
def isolated_env(tmp_path, monkeypatch):
    """Set up isolated environment with config, data and cache directories."""
    config_dir = tmp_path / "config"
    data_dir = tmp_path / "data"
    cache_dir = tmp_path / "cache"

    config_dir.mkdir()
    data_dir.mkdir()
    cache_dir.mkdir()

    # Point SDK to isolated directories
    monkeypatch.setenv("COMP_CALC_CONFIG_PATH", str(config_dir))
    monkeypatch.setenv("XDG_CACHE_HOME", str(cache_dir))

    settings = {"data_dir": str(data_dir), "live_exchange_rates": False}
    (config_dir / "settings.json").write_text(json.dumps(settings))

    return {
        "config_dir": config_dir,
        "data_dir": data_dir,
        "cache_dir": cache_dir,
    }


def write_profile(config_dir: Path, profile_data: dict):
    """Write profile.yaml to config directory."""
    (config_dir / "profile.yaml").write_text(yaml.dump(profile_data))


def make_grant(grant_id="g1", grant_date=date(2022, 3, 15), total_shares=1000.0, **kwargs):
    """1000-share grant vesting 25% a year unless overridden."""
    kwargs.setdefault("vesting_pattern", EQUAL_PATTERN)
    return RSUGrant(id=grant_id, grant_date=grant_date, total_shares=total_shares, **kwargs)


@pytest.fixture
def base_profile():
    """Profile with two salary steps, a bonus target and one grant."""
    return {
        "compensation": {
            "salary_configs": [
                {"amount": 100000, "year": 2022},
                {"amount": 140000, "year": 2025},
            ],
            "bonus_configs": [
                {"percentage": 10, "year": 2022},
            ],
            "rsu_grants": [{
                "id": "g1",
                "grant_date": "2022-03-15",
                "total_shares": 1000,
                "vesting_pattern": {
                    "name": "Equal",
                    "type": "equal",
                    "schedule": [25, 25, 25, 25],
                },
            }],
            "vesting_calendar": [2, 5, 8, 11],
            "stock_price": 100,
            "base_currency": "USD",
            "rsu_currency": "USD",
            "company": "Meta",
        },
    }
