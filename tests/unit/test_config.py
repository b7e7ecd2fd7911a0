"""Tests for settings, profile loading and profile validation."""

import json

import pytest

from compcalc.sdk.config import (
    CompensationConfigError,
    ProfileNotFoundError,
    get_data_path,
    get_projection_timeout,
    get_tranche_divisor,
    load_compensation_config,
    load_profile,
    parse_compensation,
    sample_profile,
    save_profile,
    validate_profile,
)

from conftest import write_profile


def write_settings(config_dir, **settings):
    path = config_dir / "settings.json"
    current = json.loads(path.read_text())
    current.update(settings)
    path.write_text(json.dumps(current))


class TestLoadProfile:

    def test_missing_profile_raises(self, isolated_env):
        with pytest.raises(ProfileNotFoundError, match="comp-calc profile init"):
            load_profile()

    def test_missing_profile_optional(self, isolated_env):
        assert load_profile(require_exists=False) == {}

    def test_load_compensation_config(self, isolated_env, base_profile):
        write_profile(isolated_env["config_dir"], base_profile)

        config = load_compensation_config()

        assert len(config.salary_configs) == 2
        assert config.rsu_grants[0].grant_date.isoformat() == "2022-03-15"
        assert config.symbol == "META"

    def test_custom_profile_path(self, isolated_env, base_profile, tmp_path):
        custom = tmp_path / "elsewhere" / "mine.yaml"
        save_profile(base_profile, custom)
        write_settings(isolated_env["config_dir"], profile=str(custom))

        assert load_profile()["compensation"]["stock_price"] == 100

    def test_data_dir_setting(self, isolated_env):
        assert get_data_path() == isolated_env["data_dir"]


class TestParseCompensation:

    def test_unknown_field_rejected(self):
        with pytest.raises(CompensationConfigError) as exc_info:
            parse_compensation({"stock_prize": 100})

        assert any("stock_prize" in e for e in exc_info.value.errors)

    def test_calendar_normalized(self):
        config = parse_compensation({"vesting_calendar": [11, 2, 5, 8, 2]})

        assert config.vesting_calendar == [2, 5, 8, 11]

    def test_calendar_month_out_of_range(self):
        with pytest.raises(CompensationConfigError, match="vesting_calendar"):
            parse_compensation({"vesting_calendar": [2, 13]})

    def test_currency_uppercased(self):
        config = parse_compensation({"base_currency": "gbp", "rsu_currency": "usd"})

        assert config.base_currency == "GBP"
        assert not config.same_currency

    def test_defaults(self):
        config = parse_compensation({})

        assert config.vesting_calendar == [2, 5, 8, 11]
        assert config.base_currency == config.rsu_currency == "USD"
        assert config.symbol == "META"


class TestSettings:

    def test_projection_timeout_default(self, isolated_env):
        assert get_projection_timeout() == 10.0

    def test_projection_timeout_setting(self, isolated_env):
        write_settings(isolated_env["config_dir"], projection_timeout=2.5)

        assert get_projection_timeout() == 2.5

    def test_tranche_divisor(self, isolated_env):
        assert get_tranche_divisor() == "fixed"

        write_settings(isolated_env["config_dir"], tranche_divisor="calendar")
        assert get_tranche_divisor() == "calendar"

        write_settings(isolated_env["config_dir"], tranche_divisor="weekly")
        assert get_tranche_divisor() == "fixed"


class TestValidateProfile:

    def test_valid_profile(self, isolated_env, base_profile):
        write_profile(isolated_env["config_dir"], base_profile)

        result = validate_profile()

        assert result.valid
        assert result.warnings == []
        assert result.require_valid().stock_price == 100

    def test_missing_compensation(self, isolated_env):
        result = validate_profile({"exchange_rates": {}})

        assert not result.valid
        assert "Missing 'compensation' section" in result.errors
        with pytest.raises(CompensationConfigError):
            result.require_valid()

    def test_schema_errors_collected(self, isolated_env):
        result = validate_profile({"compensation": {"stock_price": "lots", "bogus": 1}})

        assert len(result.errors) == 2

    def test_warnings(self, isolated_env, base_profile):
        comp = base_profile["compensation"]
        comp["vesting_calendar"] = [3, 6, 9]
        comp["stock_price"] = 0
        comp["rsu_currency"] = "EUR"
        grant = comp["rsu_grants"][0]
        comp["rsu_grants"] = [
            dict(grant, total_shares=0),
            dict(grant, custom_vesting_schedule=[30, 30, 30]),
        ]

        warnings = validate_profile(base_profile).warnings

        assert any("vesting_calendar has 3" in w for w in warnings)
        assert any("stock_price" in w for w in warnings)
        assert any("total_shares is 0" in w for w in warnings)
        assert any("sums to 90%" in w for w in warnings)
        assert any("Duplicate grant id: g1" in w for w in warnings)
        assert any("No exchange rate EUR->USD" in w for w in warnings)

    def test_inverse_rate_counts(self, isolated_env, base_profile):
        base_profile["compensation"]["base_currency"] = "GBP"
        base_profile["exchange_rates"] = {"GBP": {"USD": 1.25}}

        assert validate_profile(base_profile).warnings == []

    def test_sample_profile_is_valid(self, isolated_env):
        result = validate_profile(sample_profile())

        assert result.valid
        assert result.config.base_currency == "GBP"
