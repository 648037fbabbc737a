"""
Coinbase Prime portfolio fetch.
Signs GET /v1/portfolios, calls the API once and hands back the JSON verbatim.
No retries, no caching.
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

import requests

from coinbase_auth import CoinbaseError, Credentials, build_headers, load_credentials

logger = logging.getLogger(__name__)

PRIME_API_URL = "https://api.prime.coinbase.com"
PORTFOLIOS_PATH = "/v1/portfolios"
DEFAULT_TIMEOUT = 15


class RemoteApiError(CoinbaseError):
    """Non-2xx response from Prime. Message carries the status and the raw body."""

    def __init__(self, status: int, reason: str, body: str):
        self.status = status
        self.reason = reason or ""
        self.body = body or ""
        status_line = f"{status} {self.reason}".strip()
        super().__init__(f"API Error: {status_line} - {self.body}")


class FetchFailure(CoinbaseError):
    """Network or parse failure while fetching from Prime."""


@dataclass(frozen=True)
class Portfolio:
    id: str
    name: str = ""
    entity_id: str = ""
    organization_id: str = ""


def get_api_url() -> str:
    return (os.environ.get("COINBASE_PRIME_API_URL") or PRIME_API_URL).rstrip("/")


def fetch_portfolios_payload(
    credentials: Optional[Credentials] = None,
    session=None,
    base_url: Optional[str] = None,
    timeout: Optional[float] = None,
) -> dict:
    """
    GET /v1/portfolios with signed headers. Returns the decoded JSON body.
    Raises RemoteApiError or FetchFailure. MissingCredentials is raised as-is, before any
    request is made, so callers can tell a configuration problem from a failed fetch.
    """
    if credentials is None:
        credentials = load_credentials()
    method = "GET"
    headers = build_headers(credentials, method, PORTFOLIOS_PATH)
    url = (base_url or get_api_url()) + PORTFOLIOS_PATH
    http = session or requests
    logger.info("Requesting %s %s", method, url)
    try:
        r = http.request(method, url, headers=headers, timeout=timeout or DEFAULT_TIMEOUT)
    except requests.RequestException as e:
        raise FetchFailure(str(e)) from e

    text = r.text or ""
    logger.info("Coinbase Prime responded %s (%d bytes)", r.status_code, len(text))
    if not r.ok:
        raise RemoteApiError(r.status_code, r.reason, text)
    try:
        return r.json()
    except ValueError as e:
        raise FetchFailure(f"Invalid JSON from Coinbase Prime: {e}") from e


def parse_portfolios(payload: dict) -> list[Portfolio]:
    """Map the `portfolios` array to Portfolio records, in received order."""
    out = []
    for p in (payload or {}).get("portfolios") or []:
        out.append(Portfolio(
            id=str(p.get("id", "")),
            name=p.get("name") or "",
            entity_id=p.get("entity_id") or "",
            organization_id=p.get("organization_id") or "",
        ))
    return out


def fetch_portfolios(credentials: Optional[Credentials] = None, session=None,
                     timeout: Optional[float] = None) -> list[Portfolio]:
    return parse_portfolios(fetch_portfolios_payload(credentials, session=session, timeout=timeout))
