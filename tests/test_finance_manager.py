import json
from unittest.mock import MagicMock

import pytest

from finance_manager import (
    COINGECKO_PRICE_URL,
    DEFAULT_CONFIG,
    CryptoQuote,
    CryptoSnapshot,
    PriceFetchError,
    fetch_crypto_snapshot,
    get_effective_api_keys,
    load_config,
    parse_crypto_prices,
)

PRICES = {
    "bitcoin": {"usd": 65000, "usd_24h_change": 2.5, "last_updated_at": 1700000000},
    "ethereum": {"usd": 3200, "usd_24h_change": -1.2, "last_updated_at": 1700000000},
}


def test_price_url_matches_coingecko_query():
    assert COINGECKO_PRICE_URL == (
        "https://api.coingecko.com/api/v3/simple/price?ids=bitcoin,ethereum&vs_currencies=usd"
        "&include_24hr_change=true&include_last_updated_at=true"
    )


def test_parse_crypto_prices():
    snap = parse_crypto_prices(PRICES)
    assert snap.btc == CryptoQuote("BTC", 65000.0, 2.5, "2023-11-14T22:13:20Z")
    assert snap.eth == CryptoQuote("ETH", 3200.0, -1.2, "2023-11-14T22:13:20Z")


def test_parse_crypto_prices_missing_asset():
    snap = parse_crypto_prices({"bitcoin": PRICES["bitcoin"]})
    assert snap.eth is None
    assert not snap.is_empty()
    assert parse_crypto_prices({}).is_empty()


def test_fetch_crypto_snapshot(response):
    session = MagicMock()
    session.get.return_value = response(200, PRICES)
    snap = fetch_crypto_snapshot(session=session, timeout=5)
    assert isinstance(snap, CryptoSnapshot)
    assert snap.btc.current_price == 65000.0
    session.get.assert_called_once_with(COINGECKO_PRICE_URL, timeout=5)


def test_fetch_crypto_snapshot_does_not_retry(response):
    session = MagicMock()
    session.get.return_value = response(429, text="rate limited")
    with pytest.raises(PriceFetchError, match="Failed to fetch price data"):
        fetch_crypto_snapshot(session=session)
    assert session.get.call_count == 1


def test_load_config_defaults_when_missing(tmp_path):
    cfg = load_config(tmp_path / "nope.json")
    assert cfg == DEFAULT_CONFIG
    assert cfg is not DEFAULT_CONFIG
    assert cfg["refresh_seconds"] == {"weather": 60, "crypto": 30, "portfolios": 60}


def test_load_config_merges_over_defaults(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"location": {"name": "Dubai"}, "refresh_seconds": {"crypto": 15}}))
    cfg = load_config(path)
    assert cfg["location"]["name"] == "Dubai"
    assert cfg["location"]["timezone"] == "Asia/Dubai"
    assert cfg["refresh_seconds"] == {"weather": 60, "crypto": 15, "portfolios": 60}


def test_effective_api_keys_prefer_environment(monkeypatch):
    monkeypatch.setenv("OPENWEATHER_API_KEY", " from-env ")
    assert get_effective_api_keys({"api_keys": {"openweather": "from-config"}})["openweather"] == "from-env"
    monkeypatch.delenv("OPENWEATHER_API_KEY")
    assert get_effective_api_keys({"api_keys": {"openweather": "from-config"}})["openweather"] == "from-config"


def _run_cli(monkeypatch, argv, fetchers):
    import finance_manager

    monkeypatch.setattr("sys.argv", ["finance_manager.py", *argv])
    monkeypatch.setattr("page_controller.build_fetchers", lambda config: fetchers)
    with pytest.raises(SystemExit) as exc:
        finance_manager.main()
    return exc.value.code


def test_cli_prints_each_source_and_exits_zero(monkeypatch, capsys, tmp_path):
    fetchers = {
        "weather": MagicMock(return_value="sunny"),
        "crypto": MagicMock(return_value="btc up"),
        "portfolios": MagicMock(return_value=[]),
    }
    code = _run_cli(monkeypatch, ["--config", str(tmp_path / "none.json")], fetchers)
    assert code == 0
    out = capsys.readouterr().out.splitlines()
    assert out == ["  weather: sunny", "  crypto: btc up", "  portfolios: []"]


def test_cli_single_source_failure_exits_one(monkeypatch, capsys, tmp_path):
    fetchers = {
        "weather": MagicMock(return_value="sunny"),
        "crypto": MagicMock(side_effect=PriceFetchError("Failed to fetch price data")),
        "portfolios": MagicMock(return_value=[]),
    }
    code = _run_cli(monkeypatch, ["--config", str(tmp_path / "none.json"), "--source", "crypto"], fetchers)
    assert code == 1
    assert capsys.readouterr().out.splitlines() == ["  crypto: Failed to fetch price data"]
    fetchers["weather"].assert_not_called()
