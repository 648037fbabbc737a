"""
Coinbase Prime request signing.
Builds the x-cb-access-* header set: HMAC-SHA256 over timestamp + METHOD + path + body,
base64 encoded, keyed with the signing key.
"""

import base64
import hashlib
import hmac
import logging
import os
import time
from dataclasses import dataclass
from typing import Mapping, Optional

logger = logging.getLogger(__name__)


class CoinbaseError(Exception):
    """Base class for everything that can go wrong talking to Coinbase Prime."""


class MissingCredentials(CoinbaseError):
    def __init__(self, message: str = "Missing required Coinbase credentials"):
        super().__init__(message)


@dataclass(frozen=True)
class Credentials:
    access_key: str = ""
    signing_key: str = ""
    passphrase: str = ""

    def validate(self) -> "Credentials":
        """Return a trimmed copy, or raise MissingCredentials if any secret is blank."""
        access_key = (self.access_key or "").strip()
        signing_key = (self.signing_key or "").strip()
        passphrase = (self.passphrase or "").strip()
        if not access_key or not signing_key or not passphrase:
            raise MissingCredentials()
        return Credentials(access_key, signing_key, passphrase)


def load_credentials(environ: Optional[Mapping[str, str]] = None) -> Credentials:
    """Read credentials from the environment. Call per request; never cache the result."""
    env = os.environ if environ is None else environ
    return Credentials(
        access_key=(env.get("COINBASE_ACCESS_KEY") or "").strip(),
        signing_key=(env.get("COINBASE_SIGNING_KEY") or "").strip(),
        passphrase=(env.get("COINBASE_PASSPHRASE") or "").strip(),
    )


def build_prehash(timestamp: str, method: str, path: str, body: str = "") -> str:
    return f"{timestamp}{method.upper()}{path}{body}"


def sign(prehash: str, signing_key: str) -> str:
    digest = hmac.new(signing_key.encode("utf-8"), prehash.encode("utf-8"), hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def build_headers(
    credentials: Credentials,
    method: str,
    path: str,
    body: str = "",
    timestamp: Optional[str] = None,
) -> dict:
    """
    Return the authentication headers for one request.
    `timestamp` defaults to the current Unix time in whole seconds; the signature is only
    accepted by the API inside its clock-skew window.
    """
    creds = credentials.validate()
    body = body or ""
    if timestamp is None:
        timestamp = str(int(time.time()))
    prehash = build_prehash(timestamp, method, path, body)
    logger.debug(
        "Prehash components: timestamp=%s method=%s path=%s body_len=%d prehash_len=%d",
        timestamp, method.upper(), path, len(body), len(prehash),
    )
    signature = sign(prehash, creds.signing_key)
    logger.debug("Generated signature (len=%d) for timestamp %s", len(signature), timestamp)

    # exact casing
    return {
        "x-cb-access-key": creds.access_key,
        "x-cb-access-signature": signature,
        "x-cb-access-timestamp": timestamp,
        "x-cb-access-passphrase": creds.passphrase,
        "Content-Type": "application/json",
    }
