"""Tests for historical price files and lookups."""

import json

import pytest
import requests

from compcalc.sdk.prices import (
    MonthlyPriceHistory,
    fetch_price_file,
    find_closest_date,
    import_price_file,
    latest_price,
    list_price_files,
)


def make_series(symbol="META", closes=None):
    """Monthly time-series document in the Alpha Vantage layout."""
    if closes is None:
        closes = {
            "2022-12-30": "120.0",
            "2023-01-31": "150.0",
            "2023-03-31": "200.0",
            "2023-06-30": "250.0",
        }
    return {
        "Meta Data": {"1. Information": "Monthly Prices", "2. Symbol": symbol},
        "Monthly Time Series": {
            day: {"1. open": close, "4. close": close, "5. volume": "1000"}
            for day, close in closes.items()
        },
    }


@pytest.fixture
def price_file(tmp_path):
    path = tmp_path / "download.json"
    path.write_text(json.dumps(make_series()))
    return path


class TestFindClosestDate:

    CLOSES = {"2023-01-31": 1.0, "2023-03-31": 2.0, "2023-06-30": 3.0, "2022-12-30": 4.0}

    def test_exact_month(self):
        assert find_closest_date(self.CLOSES, 2023, 3) == "2023-03-31"

    def test_nearest_month_same_year(self):
        assert find_closest_date(self.CLOSES, 2023, 5) == "2023-06-30"

    def test_tie_prefers_earlier_month(self):
        assert find_closest_date(self.CLOSES, 2023, 2) == "2023-01-31"

    def test_other_years_never_used(self):
        assert find_closest_date(self.CLOSES, 2021, 12) is None


class TestMonthlyPriceHistory:

    def test_get_price(self, tmp_path):
        (tmp_path / "META.json").write_text(json.dumps(make_series()))
        history = MonthlyPriceHistory(prices_dir=tmp_path)

        assert history.get_price("meta", 2023, 3) == 200.0
        assert history.get_price("META", 2023, 12) == 250.0
        assert history.get_price("META", 2019, 1) == 0.0

    def test_missing_file_returns_zero(self, tmp_path):
        history = MonthlyPriceHistory(prices_dir=tmp_path)

        assert history.get_price("AAPL", 2023, 3) == 0.0

    def test_corrupt_file_returns_zero(self, tmp_path):
        (tmp_path / "META.json").write_text("{not json")
        history = MonthlyPriceHistory(prices_dir=tmp_path)

        assert history.get_price("META", 2023, 3) == 0.0

    def test_file_read_once(self, tmp_path):
        path = tmp_path / "META.json"
        path.write_text(json.dumps(make_series()))
        history = MonthlyPriceHistory(prices_dir=tmp_path)

        history.get_price("META", 2023, 3)
        path.unlink()

        assert history.get_price("META", 2023, 3) == 200.0
        history.clear_cache()
        assert history.get_price("META", 2023, 3) == 0.0


class TestLatestPrice:

    def test_from_file(self, tmp_path):
        (tmp_path / "META.json").write_text(json.dumps(make_series()))

        quote = latest_price("META", MonthlyPriceHistory(prices_dir=tmp_path))

        assert quote["price"] == 250.0
        assert quote["change"] == 50.0
        assert quote["change_percent"] == pytest.approx(25.0)
        assert quote["as_of"] == "2023-06-30"
        assert quote["source"] == "file"

    def test_fallback_quote(self, tmp_path):
        quote = latest_price("nvda", MonthlyPriceHistory(prices_dir=tmp_path))

        assert quote["symbol"] == "NVDA"
        assert quote["price"] == 900.0
        assert quote["source"] == "fallback"

    def test_unknown_symbol(self, tmp_path):
        quote = latest_price("ZZZZ", MonthlyPriceHistory(prices_dir=tmp_path))

        assert quote["price"] == 0.0
        assert quote["change_percent"] == 0.0


class TestImportPriceFile:

    def test_import(self, isolated_env, price_file):
        result = import_price_file(price_file)

        assert result["imported"] is True
        assert result["symbol"] == "META"
        assert result["months"] == 4
        assert result["first"] == "2022-12-30"
        assert result["last"] == "2023-06-30"
        assert (isolated_env["data_dir"] / "prices" / "META.json").exists()

    def test_symbol_from_filename_without_metadata(self, isolated_env, tmp_path):
        data = make_series()
        del data["Meta Data"]
        path = tmp_path / "goog.json"
        path.write_text(json.dumps(data))

        result = import_price_file(path)

        assert result["symbol"] == "GOOG"

    def test_existing_file_needs_overwrite(self, isolated_env, price_file):
        import_price_file(price_file)

        result = import_price_file(price_file)
        assert result["error"] == "File already exists"

        result = import_price_file(price_file, overwrite=True)
        assert result["imported"] is True

    def test_missing_file(self, isolated_env, tmp_path):
        result = import_price_file(tmp_path / "nope.json")

        assert "File not found" in result["error"]

    def test_invalid_json(self, isolated_env, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{oops")

        assert "Invalid JSON" in import_price_file(path)["error"]

    def test_no_series(self, isolated_env, tmp_path):
        path = tmp_path / "empty.json"
        path.write_text(json.dumps({"Note": "rate limited"}))

        assert "Monthly Time Series" in import_price_file(path)["error"]

    def test_listed_after_import(self, isolated_env, price_file):
        import_price_file(price_file)

        [entry] = list_price_files()

        assert entry["symbol"] == "META"
        assert entry["months"] == 4


class FakeAlphaVantage:
    """Stands in for requests when fetching a monthly series."""

    def __init__(self, payload=None, error=None):
        self.payload = payload
        self.error = error
        self.params = None

    def get(self, url, params=None, timeout=None):
        self.params = params
        if self.error is not None:
            raise self.error
        return self

    def raise_for_status(self):
        pass

    def json(self):
        return self.payload


class TestFetchPriceFile:

    def test_saves_series(self, isolated_env):
        session = FakeAlphaVantage(make_series("AAPL"))

        result = fetch_price_file("aapl", "KEY", session=session)

        assert result["fetched"] is True
        assert result["months"] == 4
        assert session.params == {"function": "TIME_SERIES_MONTHLY", "symbol": "AAPL", "apikey": "KEY"}
        assert MonthlyPriceHistory().get_price("AAPL", 2023, 3) == 200.0

    def test_refuses_overwrite(self, isolated_env):
        fetch_price_file("META", "KEY", session=FakeAlphaVantage(make_series()))

        result = fetch_price_file("META", "KEY", session=FakeAlphaVantage(make_series()))

        assert result["error"] == "File already exists"

    def test_rate_limit_note(self, isolated_env):
        session = FakeAlphaVantage({"Note": "5 calls per minute"})

        result = fetch_price_file("META", "KEY", session=session)

        assert "API limit" in result["error"]
        assert list_price_files() == []

    def test_api_error(self, isolated_env):
        session = FakeAlphaVantage({"Error Message": "Invalid API call"})

        assert "Invalid API call" in fetch_price_file("NOPE", "KEY", session=session)["error"]

    def test_network_error(self, isolated_env):
        session = FakeAlphaVantage(error=requests.ConnectionError("offline"))

        assert "offline" in fetch_price_file("META", "KEY", session=session)["error"]
