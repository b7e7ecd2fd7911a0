"""Currency conversion rates.

Two converters are available. LiveRateConverter fetches rates from
exchangerate-api.com and keeps them for an hour; RateTable reads the
profile's exchange_rates table. make_converter() puts the live source in
front of the profile table unless live_exchange_rates is off in settings.

Every rate that is resolved is written to <cache>/exchange_rates.json, so a
pair that later becomes unavailable still converts at its last known rate.
"""

import json
import logging
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Dict, Iterable, Optional, Protocol

import requests

from .config import get_cache_path, get_live_rates_enabled, load_profile

logger = logging.getLogger(__name__)

RATES_CACHE_FILENAME = "exchange_rates.json"
EXCHANGE_API_URL = "https://api.exchangerate-api.com/v4/latest"
LIVE_RATE_MAX_AGE = timedelta(hours=1)
REQUEST_TIMEOUT = 5


class ExchangeRateUnavailable(Exception):
    """Raised when no rate is known for a currency pair."""
    pass


class CurrencyConverter(Protocol):
    """Rate to multiply an amount in from_code by to get to_code. May raise."""

    def get_rate(self, from_code: str, to_code: str) -> float:
        ...


def get_rates_cache_path() -> Path:
    return get_cache_path() / RATES_CACHE_FILENAME


def load_cached_rates(path: Optional[Path] = None) -> Dict[str, Dict]:
    """Last known rates: {"USD-GBP": {"rate": 0.79, "last_updated": iso, "source": ...}}."""
    path = path or get_rates_cache_path()
    if not path.exists():
        return {}
    try:
        with open(path) as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Ignoring unreadable rate cache {path}: {e}")
        return {}


def save_cached_rate(from_code: str, to_code: str, rate: float,
                     path: Optional[Path] = None, source: str = "profile",
                     updated: Optional[datetime] = None) -> Path:
    path = path or get_rates_cache_path()
    cached = load_cached_rates(path)
    cached[f"{from_code}-{to_code}"] = {
        "rate": rate,
        "last_updated": (updated or datetime.now()).isoformat(timespec="seconds"),
        "source": source,
    }
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(cached, f, indent=2)
    return path


class _Converter:
    _cache_path: Optional[Path] = None

    @property
    def cache_path(self) -> Path:
        if self._cache_path is None:
            self._cache_path = get_rates_cache_path()
        return self._cache_path

    def get_rate(self, from_code: str, to_code: str) -> float:
        raise NotImplementedError

    def get_rates(self, from_code: str, to_codes: Iterable[str]) -> Dict[str, float]:
        """Rates from one currency to several, using 1.0 where a rate is missing."""
        result = {}
        for to_code in to_codes:
            try:
                result[to_code.upper()] = self.get_rate(from_code, to_code)
            except ExchangeRateUnavailable as e:
                logger.warning(str(e))
                result[to_code.upper()] = 1.0
        return result


class RateTable(_Converter):
    """CurrencyConverter over a {FROM: {TO: rate}} table.

    Lookup order: identical codes (1.0), direct rate, inverse of the reverse
    rate, last known cached rate. Anything else raises ExchangeRateUnavailable.
    """

    def __init__(self, rates: Optional[Dict[str, Dict[str, float]]] = None,
                 cache_path: Optional[Path] = None, use_cache: bool = True):
        self.rates = {
            str(src).upper(): {str(dst).upper(): float(r) for dst, r in (targets or {}).items()}
            for src, targets in (rates or {}).items()
        }
        self.use_cache = use_cache
        self._cache_path = cache_path

    @classmethod
    def from_profile(cls, profile: Optional[dict] = None, **kwargs) -> "RateTable":
        if profile is None:
            profile = load_profile(require_exists=False)
        return cls(profile.get("exchange_rates") or {}, **kwargs)

    def _lookup(self, from_code: str, to_code: str) -> Optional[float]:
        direct = self.rates.get(from_code, {}).get(to_code)
        if direct:
            return direct
        reverse = self.rates.get(to_code, {}).get(from_code)
        if reverse:
            return 1 / reverse
        return None

    def get_rate(self, from_code: str, to_code: str) -> float:
        from_code = from_code.upper()
        to_code = to_code.upper()
        if from_code == to_code:
            return 1.0

        rate = self._lookup(from_code, to_code)
        if rate is not None:
            if self.use_cache:
                try:
                    save_cached_rate(from_code, to_code, rate, self.cache_path)
                except OSError as e:
                    logger.debug(f"Could not persist rate {from_code}-{to_code}: {e}")
            return rate

        if self.use_cache:
            cached = load_cached_rates(self.cache_path).get(f"{from_code}-{to_code}")
            if cached and cached.get("rate"):
                logger.info(
                    f"Using cached {from_code}->{to_code} rate from {cached.get('last_updated')}"
                )
                return float(cached["rate"])

        raise ExchangeRateUnavailable(f"Exchange rate not found for {from_code} to {to_code}")


class LiveRateConverter(_Converter):
    """CurrencyConverter backed by exchangerate-api.com.

    A fetched rate is reused from the cache file for max_age. When the
    request fails, or the response has no rate for the pair, the fallback
    converter is asked; without one, the last fetched rate is used
    whatever its age.

    Args:
        fallback: Converter tried when the live lookup fails (usually a RateTable)
        session: Object with a requests-style get(); defaults to the requests module
        cache_path: Rate cache file (default <cache>/exchange_rates.json)
        max_age: How long a fetched rate is reused without a new request
        now: Clock, for tests
    """

    def __init__(self, fallback: Optional[CurrencyConverter] = None, session=None,
                 cache_path: Optional[Path] = None,
                 max_age: timedelta = LIVE_RATE_MAX_AGE,
                 url: str = EXCHANGE_API_URL,
                 now: Optional[Callable[[], datetime]] = None):
        self.fallback = fallback
        self.session = session if session is not None else requests
        self._cache_path = cache_path
        self.max_age = max_age
        self.url = url
        self._now = now or datetime.now

    def _cached(self, from_code: str, to_code: str) -> Optional[Dict]:
        entry = load_cached_rates(self.cache_path).get(f"{from_code}-{to_code}")
        if entry and entry.get("source") == "live" and entry.get("rate"):
            return entry
        return None

    def _is_fresh(self, entry: Dict) -> bool:
        try:
            updated = datetime.fromisoformat(entry["last_updated"])
        except (KeyError, TypeError, ValueError):
            return False
        return self._now() - updated < self.max_age

    def fetch_rates(self, from_code: str) -> Dict[str, float]:
        """All published rates from from_code. Raises on HTTP or decode errors."""
        response = self.session.get(f"{self.url}/{from_code}", timeout=REQUEST_TIMEOUT)
        response.raise_for_status()
        return response.json().get("rates") or {}

    def get_rate(self, from_code: str, to_code: str) -> float:
        from_code = from_code.upper()
        to_code = to_code.upper()
        if from_code == to_code:
            return 1.0

        cached = self._cached(from_code, to_code)
        if cached and self._is_fresh(cached):
            return float(cached["rate"])

        try:
            rate = self.fetch_rates(from_code).get(to_code)
        except (requests.RequestException, ValueError) as e:
            logger.warning(f"Could not fetch {from_code}->{to_code} rate: {e}")
        else:
            if rate and float(rate) > 0:
                try:
                    save_cached_rate(from_code, to_code, float(rate), self.cache_path,
                                     source="live", updated=self._now())
                except OSError as e:
                    logger.debug(f"Could not persist rate {from_code}-{to_code}: {e}")
                return float(rate)
            logger.warning(f"No {to_code} rate published for {from_code}")

        if self.fallback is not None:
            return self.fallback.get_rate(from_code, to_code)

        if cached:
            logger.info(f"Using stale {from_code}->{to_code} rate from {cached.get('last_updated')}")
            return float(cached["rate"])

        raise ExchangeRateUnavailable(f"Unable to fetch exchange rate from {from_code} to {to_code}")


def make_converter(profile: Optional[dict] = None, **kwargs) -> _Converter:
    """Converter for CLI and server use: live rates, then the profile table.

    kwargs are passed to LiveRateConverter.
    """
    table = RateTable.from_profile(profile)
    if not get_live_rates_enabled():
        return table
    return LiveRateConverter(fallback=table, **kwargs)


def set_profile_rate(profile: dict, from_code: str, to_code: str, rate: float) -> dict:
    """Return profile with exchange_rates[FROM][TO] set."""
    if rate <= 0:
        raise ValueError(f"Exchange rate must be positive, got {rate}")
    rates = profile.setdefault("exchange_rates", {}) or {}
    profile["exchange_rates"] = rates
    rates.setdefault(from_code.upper(), {})[to_code.upper()] = rate
    return profile
