"""Tests for the comp-calc CLI commands."""

import json
import threading
import time
from datetime import date

import pytest
import yaml
from click.testing import CliRunner

from compcalc import __version__
from compcalc.cli import context
from compcalc.cli.__main__ import cli

from conftest import write_profile
from test_prices import FakeAlphaVantage, make_series
from test_rates import FakeSession


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def fixed_today(monkeypatch):
    monkeypatch.setattr(context, "today", lambda: date(2024, 6, 15))
    return date(2024, 6, 15)


@pytest.fixture
def with_profile(isolated_env, base_profile, fixed_today):
    write_profile(isolated_env["config_dir"], base_profile)
    return isolated_env


def test_version(runner):
    result = runner.invoke(cli, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


class TestProfileCommands:

    def test_init_creates_profile(self, runner, isolated_env, fixed_today):
        result = runner.invoke(cli, ["profile", "init"])

        assert result.exit_code == 0, result.output
        profile = yaml.safe_load((isolated_env["config_dir"] / "profile.yaml").read_text())
        assert profile["compensation"]["salary_configs"][0]["year"] == 2024

    def test_init_refuses_to_overwrite(self, runner, with_profile):
        result = runner.invoke(cli, ["profile", "init"])

        assert result.exit_code == 1
        assert "already exists" in result.output

    def test_init_force(self, runner, with_profile):
        result = runner.invoke(cli, ["profile", "init", "--force"])

        assert result.exit_code == 0

    def test_show_without_profile(self, runner, isolated_env):
        result = runner.invoke(cli, ["profile", "show"])

        assert result.exit_code == 0
        assert "not created" in result.output

    def test_show(self, runner, with_profile):
        result = runner.invoke(cli, ["profile", "show"])

        assert result.exit_code == 0
        assert "RSU grants: 1" in result.output

    def test_validate_ok(self, runner, with_profile):
        result = runner.invoke(cli, ["profile", "validate"])

        assert result.exit_code == 0
        assert "Profile is valid" in result.output

    def test_validate_errors(self, runner, isolated_env):
        write_profile(isolated_env["config_dir"], {"compensation": {"salary": 1}})

        result = runner.invoke(cli, ["profile", "validate"])

        assert result.exit_code == 1
        assert "salary" in result.output


class TestProjectCommand:

    def test_json(self, runner, with_profile):
        result = runner.invoke(cli, ["project", "--start", "2022", "--end", "2025",
                                     "--future-grants", "none", "--json"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        by_year = {p["year"]: p for p in data["projections"]}
        assert list(by_year) == [2022, 2023, 2024, 2025]
        assert by_year[2022]["rsu_vest"] == pytest.approx(18750)
        assert by_year[2025]["base_salary"] == 140000
        assert data["warnings"]

    def test_default_range(self, runner, with_profile):
        result = runner.invoke(cli, ["project", "--json"])

        data = json.loads(result.output)
        assert (data["start_year"], data["end_year"]) == (2020, 2027)

    def test_price_override(self, runner, with_profile):
        result = runner.invoke(cli, ["project", "--start", "2025", "--end", "2025",
                                     "--future-grants", "none", "--price", "200", "--json"])

        data = json.loads(result.output)
        assert data["projections"][0]["rsu_vest"] == pytest.approx(50000)

    def test_table(self, runner, with_profile):
        result = runner.invoke(cli, ["project", "--start", "2023", "--end", "2026"])

        assert result.exit_code == 0, result.output
        assert "Compensation Projection" in result.output
        assert "2026" in result.output

    def test_start_after_end(self, runner, with_profile):
        result = runner.invoke(cli, ["project", "--start", "2026", "--end", "2024"])

        assert result.exit_code == 2

    def test_timeout_fails_fast(self, runner, with_profile, monkeypatch):
        released = threading.Event()

        class StalledPrices:
            def get_price(self, symbol, year, month):
                released.wait(5.0)
                return 0.0

        settings = with_profile["config_dir"] / "settings.json"
        data = json.loads(settings.read_text())
        data["projection_timeout"] = 0.05
        settings.write_text(json.dumps(data))
        monkeypatch.setattr(context, "collaborators", lambda profile: (StalledPrices(), None))

        started = time.monotonic()
        result = runner.invoke(cli, ["project", "--start", "2022", "--end", "2022"])
        elapsed = time.monotonic() - started
        released.set()

        assert result.exit_code == 1
        assert "No projection available" in result.output
        assert elapsed < 1.0

    def test_json_exchange_rate(self, runner, with_profile, base_profile):
        base_profile["compensation"]["base_currency"] = "GBP"
        base_profile["exchange_rates"] = {"USD": {"GBP": 0.8}}
        write_profile(with_profile["config_dir"], base_profile)

        result = runner.invoke(cli, ["project", "--start", "2022", "--end", "2022",
                                     "--future-grants", "none", "--json"])

        data = json.loads(result.output)
        assert data["exchange_rate"] == 0.8
        assert data["projections"][0]["rsu_vest_in_base_currency"] == pytest.approx(15000)

    def test_no_profile(self, runner, isolated_env):
        result = runner.invoke(cli, ["project"])

        assert result.exit_code == 1
        assert "No profile found" in result.output

    def test_invalid_profile(self, runner, isolated_env):
        write_profile(isolated_env["config_dir"], {"compensation": {"vesting_calendar": [14]}})

        result = runner.invoke(cli, ["project"])

        assert result.exit_code == 1
        assert "vesting_calendar" in result.output


class TestRsusCommands:

    def test_list_json(self, runner, with_profile):
        result = runner.invoke(cli, ["rsus", "list", "--as-of", "2024-06", "--json"])

        assert result.exit_code == 0, result.output
        [grant] = json.loads(result.output)["grants"]
        assert grant["vested_shares"] == pytest.approx(562.5)
        assert grant["remaining_value"] == pytest.approx(43750)

    def test_list_bad_month(self, runner, with_profile):
        result = runner.invoke(cli, ["rsus", "list", "--as-of", "June"])

        assert result.exit_code == 2

    def test_list_table(self, runner, with_profile):
        result = runner.invoke(cli, ["rsus", "list"])

        assert result.exit_code == 0
        assert "RSU Grants" in result.output
        assert "g1" in result.output

    def test_vests(self, runner, with_profile):
        result = runner.invoke(cli, ["rsus", "vests", "g1", "2022"])

        assert result.exit_code == 0
        assert "2022-05" in result.output
        assert "2022-02" not in result.output
        assert "187.50" in result.output

    def test_vests_unknown_grant(self, runner, with_profile):
        result = runner.invoke(cli, ["rsus", "vests", "nope", "2022"])

        assert result.exit_code == 1
        assert "Grant not found" in result.output


class TestRatesCommands:

    def test_set_then_show(self, runner, with_profile):
        result = runner.invoke(cli, ["rates", "set", "usd", "gbp", "0.8"])
        assert result.exit_code == 0, result.output

        result = runner.invoke(cli, ["rates", "show", "--from", "USD", "--json"])

        data = json.loads(result.output)
        assert data["rates"]["GBP"] == 0.8
        assert data["rates"]["EUR"] == 1.0

    def test_set_rejects_non_positive(self, runner, with_profile):
        result = runner.invoke(cli, ["rates", "set", "USD", "GBP", "0"])

        assert result.exit_code == 2

    def test_show_prefers_live_rates(self, runner, with_profile, monkeypatch):
        settings = with_profile["config_dir"] / "settings.json"
        settings.write_text(settings.read_text().replace("false", "true"))
        monkeypatch.setattr("requests.get", FakeSession({"GBP": 0.79}).get)
        runner.invoke(cli, ["rates", "set", "USD", "GBP", "0.8"])

        result = runner.invoke(cli, ["rates", "show", "--from", "USD", "--json"])

        data = json.loads(result.output)
        assert data["rates"]["GBP"] == 0.79
        assert data["rates"]["EUR"] == 1.0


class TestPricesCommands:

    def test_import_and_show(self, runner, with_profile, tmp_path):
        source = tmp_path / "meta.json"
        source.write_text(json.dumps(make_series()))

        result = runner.invoke(cli, ["prices", "import", str(source)])
        assert result.exit_code == 0, result.output
        assert "Months: 4" in result.output

        result = runner.invoke(cli, ["prices", "show", "META", "--year", "2023", "--month", "3"])
        assert result.exit_code == 0
        assert "200.00" in result.output

    def test_historical_prices_used_by_projection(self, runner, with_profile, tmp_path):
        source = tmp_path / "meta.json"
        source.write_text(json.dumps(make_series(closes={
            "2022-05-31": "200.0",
            "2022-08-31": "200.0",
            "2022-11-30": "200.0",
        })))
        runner.invoke(cli, ["prices", "import", str(source)])

        result = runner.invoke(cli, ["project", "--start", "2022", "--end", "2022", "--json"])

        data = json.loads(result.output)
        assert data["projections"][0]["rsu_vest"] == pytest.approx(37500)
        assert data["warnings"] == []

    def test_fetch(self, runner, isolated_env, monkeypatch):
        monkeypatch.setattr("requests.get", FakeAlphaVantage(make_series("NVDA")).get)

        result = runner.invoke(cli, ["prices", "fetch", "nvda", "--api-key", "KEY"])

        assert result.exit_code == 0, result.output
        assert "NVDA.json" in result.output
        assert "Months: 4" in result.output

    def test_fetch_requires_api_key(self, runner, isolated_env, monkeypatch):
        monkeypatch.delenv("ALPHAVANTAGE_API_KEY", raising=False)

        result = runner.invoke(cli, ["prices", "fetch", "META"])

        assert result.exit_code == 2

    def test_month_requires_year(self, runner, isolated_env):
        result = runner.invoke(cli, ["prices", "show", "META", "--month", "3"])

        assert result.exit_code == 2


def test_rsus_patterns(runner):
    result = runner.invoke(cli, ["rsus", "patterns"])

    assert result.exit_code == 0
    assert "5% / 15% / 40% / 40%" in result.output
    assert "Amazon" in result.output


def test_profile_init_company_preset(runner, isolated_env, fixed_today):
    result = runner.invoke(cli, ["profile", "init", "--company", "Apple"])

    assert result.exit_code == 0, result.output
    profile = yaml.safe_load((isolated_env["config_dir"] / "profile.yaml").read_text())
    assert profile["compensation"]["company"] == "Apple"
    assert profile["compensation"]["bonus_configs"][0]["percentage"] == 18


def test_profile_use(runner, isolated_env, base_profile, tmp_path):
    elsewhere = tmp_path / "repo" / "profile.yaml"
    elsewhere.parent.mkdir()
    write_profile(elsewhere.parent, base_profile)

    result = runner.invoke(cli, ["profile", "use", str(elsewhere)])
    assert result.exit_code == 0, result.output

    result = runner.invoke(cli, ["profile", "show"])
    assert "Location: custom" in result.output
    assert "RSU grants: 1" in result.output
