"""
Historical stock prices from monthly time-series files.

Price files use the Alpha Vantage TIME_SERIES_MONTHLY JSON layout and live in
<data>/prices/<SYMBOL>.json. The projection core only sees the
HistoricalPriceLookup protocol; MonthlyPriceHistory is the file-backed
implementation and owns its own memo of loaded files.
"""

import json
import logging
import shutil
from datetime import date
from pathlib import Path
from typing import Dict, List, Optional, Protocol

import requests

from .config import get_data_path

logger = logging.getLogger(__name__)

SERIES_KEY = "Monthly Time Series"
CLOSE_KEY = "4. close"
ALPHA_VANTAGE_URL = "https://www.alphavantage.co/query"
REQUEST_TIMEOUT = 30

# Quotes used when no price file exists for a symbol
FALLBACK_QUOTES = {
    "META": {"price": 738.0, "change": 5.25},
    "AAPL": {"price": 175.0, "change": 2.10},
    "GOOGL": {"price": 140.0, "change": 1.85},
    "AMZN": {"price": 155.0, "change": 3.20},
    "MSFT": {"price": 410.0, "change": 4.75},
    "TSLA": {"price": 240.0, "change": -2.30},
    "NFLX": {"price": 480.0, "change": 6.40},
    "NVDA": {"price": 900.0, "change": 15.20},
}


class HistoricalPriceLookup(Protocol):
    """Resolves a month's closing price. Returns 0.0 when unknown; never raises for missing data."""

    def get_price(self, symbol: str, year: int, month: int) -> float:
        ...


class NoPriceHistory:
    """Lookup with no data. Every tranche is valued at the current price."""

    def get_price(self, symbol: str, year: int, month: int) -> float:
        return 0.0


class StaticPriceHistory:
    """In-memory lookup keyed by (symbol, year, month)."""

    def __init__(self, prices: Optional[Dict[tuple, float]] = None):
        self.prices = dict(prices or {})

    def get_price(self, symbol: str, year: int, month: int) -> float:
        return self.prices.get((symbol.upper(), year, month), 0.0)


def get_prices_path() -> Path:
    """Get the prices subdirectory of the data path."""
    prices_path = get_data_path() / "prices"
    prices_path.mkdir(parents=True, exist_ok=True)
    return prices_path


def parse_monthly_series(data: Dict) -> Dict[str, float]:
    """Extract {"YYYY-MM-DD": close} from a monthly time-series document.

    Entries with an unparseable close are skipped.
    """
    series = data.get(SERIES_KEY) or {}
    closes = {}
    for day, bar in series.items():
        try:
            closes[day] = float(bar[CLOSE_KEY])
        except (KeyError, TypeError, ValueError):
            continue
    return closes


def find_closest_date(closes: Dict[str, float], year: int, month: int) -> Optional[str]:
    """Pick the series date to use for (year, month).

    Exact year-month first (latest day if several), then the nearest month
    within the same year. Other years are never used.
    """
    year_str = str(year)
    month_str = f"{month:02d}"

    exact = sorted(d for d in closes if d[:4] == year_str and d[5:7] == month_str)
    if exact:
        return exact[-1]

    same_year = sorted(d for d in closes if d[:4] == year_str)
    if not same_year:
        return None

    closest = same_year[0]
    closest_diff = abs(int(closest[5:7]) - month)
    for d in same_year:
        diff = abs(int(d[5:7]) - month)
        if diff < closest_diff:
            closest = d
            closest_diff = diff
    return closest


class MonthlyPriceHistory:
    """File-backed HistoricalPriceLookup.

    Files are read once per symbol per instance. A missing or corrupt file is
    remembered as empty so it is not re-read on every tranche.
    """

    def __init__(self, prices_dir: Optional[Path] = None):
        self._prices_dir = prices_dir
        self._cache: Dict[str, Dict[str, float]] = {}

    @property
    def prices_dir(self) -> Path:
        if self._prices_dir is None:
            self._prices_dir = get_prices_path()
        return self._prices_dir

    def load(self, symbol: str) -> Dict[str, float]:
        symbol = symbol.upper()
        if symbol in self._cache:
            return self._cache[symbol]

        path = self.prices_dir / f"{symbol}.json"
        closes = {}
        if not path.exists():
            logger.debug(f"No price file for {symbol} at {path}")
        else:
            try:
                with open(path) as f:
                    closes = parse_monthly_series(json.load(f))
            except (OSError, json.JSONDecodeError) as e:
                logger.warning(f"Could not read price file {path}: {e}")

        self._cache[symbol] = closes
        return closes

    def get_price(self, symbol: str, year: int, month: int) -> float:
        closes = self.load(symbol)
        target = find_closest_date(closes, year, month)
        if target is None:
            logger.debug(f"No historical price for {symbol} at {year}-{month:02d}")
            return 0.0
        return closes[target]

    def clear_cache(self) -> None:
        self._cache.clear()


def latest_price(symbol: str, history: Optional[MonthlyPriceHistory] = None) -> Dict:
    """Most recent close with month-over-month change.

    Falls back to a static quote when there is no data for the symbol.

    Returns:
        Dict with symbol, price, change, change_percent, as_of, source
    """
    symbol = symbol.upper()
    history = history or MonthlyPriceHistory()
    closes = history.load(symbol)

    if not closes:
        fallback = FALLBACK_QUOTES.get(symbol, {"price": 0.0, "change": 0.0})
        price = fallback["price"]
        return {
            "symbol": symbol,
            "price": price,
            "change": fallback["change"],
            "change_percent": (fallback["change"] / price * 100) if price > 0 else 0.0,
            "as_of": date.today().isoformat(),
            "source": "fallback",
        }

    dates = sorted(closes, reverse=True)
    price = closes[dates[0]]
    change = 0.0
    change_percent = 0.0
    if len(dates) > 1:
        previous = closes[dates[1]]
        change = price - previous
        change_percent = (change / previous * 100) if previous else 0.0

    return {
        "symbol": symbol,
        "price": price,
        "change": change,
        "change_percent": change_percent,
        "as_of": dates[0],
        "source": "file",
    }


def list_price_files() -> List[Dict]:
    """List imported price files with their date coverage."""
    results = []
    for path in sorted(get_prices_path().glob("*.json")):
        try:
            with open(path) as f:
                closes = parse_monthly_series(json.load(f))
        except (OSError, json.JSONDecodeError):
            closes = {}
        dates = sorted(closes)
        results.append({
            "symbol": path.stem,
            "path": str(path),
            "months": len(dates),
            "first": dates[0] if dates else None,
            "last": dates[-1] if dates else None,
        })
    return results


def import_price_file(source_path: Path, symbol: Optional[str] = None,
                      overwrite: bool = False) -> Dict:
    """
    Import a monthly time-series JSON file into the prices folder.

    The symbol comes from the file's metadata ("2. Symbol"), else the
    argument, else the file name.

    Returns:
        Dict with import result, or {"error": ...}
    """
    source_path = Path(source_path).expanduser().resolve()

    if not source_path.exists():
        return {"error": f"File not found: {source_path}"}

    try:
        with open(source_path) as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        return {"error": f"Invalid JSON in {source_path.name}: {e}"}

    closes = parse_monthly_series(data) if isinstance(data, dict) else {}
    if not closes:
        return {
            "error": f"No '{SERIES_KEY}' closes found",
            "filename": source_path.name,
        }

    meta_symbol = (data.get("Meta Data") or {}).get("2. Symbol")
    symbol = (meta_symbol or symbol or source_path.stem).upper()

    dest_path = get_prices_path() / f"{symbol}.json"
    if dest_path.exists() and not overwrite:
        return {
            "error": "File already exists",
            "dest_path": str(dest_path),
        }

    shutil.copy2(source_path, dest_path)

    dates = sorted(closes)
    return {
        "imported": True,
        "symbol": symbol,
        "dest_path": str(dest_path),
        "months": len(dates),
        "first": dates[0],
        "last": dates[-1],
    }


def fetch_price_file(symbol: str, api_key: str, overwrite: bool = False,
                     session=None) -> Dict:
    """
    Download the monthly time series for symbol from Alpha Vantage.

    Saves it to the prices folder in the same layout import_price_file
    accepts.

    Returns:
        Dict with fetch result, or {"error": ...}
    """
    symbol = symbol.upper()
    dest_path = get_prices_path() / f"{symbol}.json"
    if dest_path.exists() and not overwrite:
        return {
            "error": "File already exists",
            "dest_path": str(dest_path),
        }

    session = session if session is not None else requests
    params = {"function": "TIME_SERIES_MONTHLY", "symbol": symbol, "apikey": api_key}
    try:
        response = session.get(ALPHA_VANTAGE_URL, params=params, timeout=REQUEST_TIMEOUT)
        response.raise_for_status()
        data = response.json()
    except (requests.RequestException, ValueError) as e:
        return {"error": f"Request for {symbol} failed: {e}"}

    if not isinstance(data, dict):
        return {"error": f"Unexpected response for {symbol}"}

    if data.get("Error Message"):
        return {"error": f"API error for {symbol}: {data['Error Message']}"}
    if data.get("Note") or data.get("Information"):
        return {"error": f"API limit for {symbol}: {data.get('Note') or data.get('Information')}"}

    closes = parse_monthly_series(data)
    if not closes:
        return {"error": f"No '{SERIES_KEY}' closes in response for {symbol}"}

    with open(dest_path, "w") as f:
        json.dump(data, f, indent=2)
    logger.info(f"Saved {len(closes)} monthly closes for {symbol} to {dest_path}")

    dates = sorted(closes)
    return {
        "fetched": True,
        "symbol": symbol,
        "dest_path": str(dest_path),
        "months": len(dates),
        "first": dates[0],
        "last": dates[-1],
    }
