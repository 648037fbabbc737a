"""
Finance Manager - crypto prices from CoinGecko plus the dashboard's config layer.
Run this script for a one-shot fetch of every card's data, printed to the console.

  python finance_manager.py                      # weather, crypto and portfolios
  python finance_manager.py --source crypto      # just one source
"""

import argparse
import copy
import json
import logging
import os
import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import requests
from dotenv import load_dotenv

_base = Path(__file__).resolve().parent
load_dotenv(_base / ".env")

logger = logging.getLogger(__name__)

COINGECKO_PRICE_URL = (
    "https://api.coingecko.com/api/v3/simple/price"
    "?ids=bitcoin,ethereum&vs_currencies=usd&include_24hr_change=true&include_last_updated_at=true"
)

# CoinGecko id -> display symbol, in card order
COINGECKO_IDS = {
    "bitcoin": "BTC",
    "ethereum": "ETH",
}

DEFAULT_CONFIG = {
    "location": {
        "name": "Abu Dhabi",
        "lat": 24.4539,
        "lon": 54.3773,
        "timezone": "Asia/Dubai",
        "label": "Abu Dhabi (GST)",
    },
    "reference_timezone": {
        "timezone": "America/New_York",
        "label": "New York (EST)",
    },
    "refresh_seconds": {
        "weather": 60,
        "crypto": 30,
        "portfolios": 60,
    },
    "http_timeout_seconds": 15,
    "api_keys": {},
}


class PriceFetchError(Exception):
    pass


@dataclass(frozen=True)
class CryptoQuote:
    symbol: str
    current_price: float
    price_change_percentage_24h: float
    last_updated: str  # ISO-8601, UTC


@dataclass(frozen=True)
class CryptoSnapshot:
    btc: Optional[CryptoQuote] = None
    eth: Optional[CryptoQuote] = None

    def is_empty(self) -> bool:
        return self.btc is None and self.eth is None


def _merge(base: dict, override: dict) -> dict:
    out = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(out.get(key), dict):
            out[key] = _merge(out[key], value)
        else:
            out[key] = value
    return out


def load_config(config_path: Optional[Path] = None) -> dict:
    """Load configuration from JSON over DEFAULT_CONFIG. A missing file means defaults."""
    if config_path is None or not Path(config_path).exists():
        return copy.deepcopy(DEFAULT_CONFIG)
    with open(config_path, "r", encoding="utf-8") as f:
        return _merge(DEFAULT_CONFIG, json.load(f))


def get_effective_api_keys(config: dict) -> dict:
    """
    Return API keys with environment overrides. Env vars take precedence over config
    so secrets can live in env (e.g. OPENWEATHER_API_KEY) and config.json can stay
    out of version control. Coinbase Prime secrets are env-only, see coinbase_auth.
    """
    keys = dict(config.get("api_keys") or {})
    if os.environ.get("OPENWEATHER_API_KEY"):
        keys["openweather"] = os.environ.get("OPENWEATHER_API_KEY", "").strip()
    return keys


def _quote_from(symbol: str, entry: dict) -> CryptoQuote:
    updated = datetime.fromtimestamp(int(entry["last_updated_at"]), tz=timezone.utc)
    return CryptoQuote(
        symbol=symbol,
        current_price=float(entry["usd"]),
        price_change_percentage_24h=float(entry.get("usd_24h_change") or 0.0),
        last_updated=updated.isoformat().replace("+00:00", "Z"),
    )


def parse_crypto_prices(data: dict) -> CryptoSnapshot:
    quotes = {}
    for cg_id, symbol in COINGECKO_IDS.items():
        entry = (data or {}).get(cg_id)
        if entry and "usd" in entry:
            quotes[symbol.lower()] = _quote_from(symbol, entry)
    return CryptoSnapshot(**quotes)


def fetch_crypto_snapshot(session=None, timeout: Optional[float] = None) -> CryptoSnapshot:
    """Fetch BTC and ETH from CoinGecko (free, no key). Single attempt."""
    http = session or requests
    r = http.get(COINGECKO_PRICE_URL, timeout=timeout or DEFAULT_CONFIG["http_timeout_seconds"])
    if not r.ok:
        logger.warning("CoinGecko responded %s", r.status_code)
        raise PriceFetchError("Failed to fetch price data")
    return parse_crypto_prices(r.json())


def main():
    parser = argparse.ArgumentParser(description="Dashboard one-shot fetch")
    parser.add_argument("--source", choices=["weather", "crypto", "portfolios"], action="append",
        help="Source to fetch (repeatable). Default: all")
    parser.add_argument("--config", type=Path, default=Path(os.environ.get("DASHBOARD_CONFIG", _base / "config.json")),
        help="Path to config.json")
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s")

    from page_controller import build_fetchers

    config = load_config(args.config)
    fetchers = build_fetchers(config)
    failed = False
    for source in args.source or list(fetchers):
        try:
            data = fetchers[source]()
        except Exception as e:
            print(f"  {source}: {e}")
            failed = True
            continue
        print(f"  {source}: {data}")
    sys.exit(1 if failed else 0)


if __name__ == "__main__":
    main()
