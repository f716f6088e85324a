"""
Have I Been Pwned Client
========================

Breach lookups for a single account against the HIBP v3 API.

Design Decisions:
-----------------
1. One request per call; pacing is the verifier's job, so this client
   never sleeps or retries
2. HTTP 404 means "not found in any breach" and maps to an empty list
3. Every failure surfaces as a BreachLookupError subclass so callers can
   turn it into a per-user Error outcome
"""

from typing import Optional, Protocol
from urllib.parse import quote

import requests

from ..config import BreachCheckConfig
from ..errors import (
    BreachLookupError, BreachRateLimitedError,
    BreachAuthError, BreachNetworkError
)


HIBP_URL = "https://haveibeenpwned.com/api/v3/breachedaccount/{account}"


def _parse_retry_after(value: Optional[str]) -> Optional[float]:
    try:
        return float(value) if value else None
    except ValueError:
        return None


class BreachClient(Protocol):
    """Contract the breach verifier needs from a breach-intelligence source."""

    def check_breaches(self, email: str) -> list[dict]:
        ...


class HIBPClient:
    """Client for the Have I Been Pwned breachedaccount endpoint.

    Usage:
        client = HIBPClient(api_key="...")
        breaches = client.check_breaches("alice@corp.example")
        for breach in breaches:
            print(breach["Name"], breach.get("BreachDate"))
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        config: Optional[BreachCheckConfig] = None,
        session: Optional[requests.Session] = None
    ):
        """Initialize the HIBP client.

        Args:
            api_key: HIBP API key (overrides config.api_key)
            config: BreachCheckConfig with user agent and timeout
            session: Optional requests session (mainly for tests)
        """
        self.config = config or BreachCheckConfig()
        self.api_key = api_key or self.config.api_key
        if not self.api_key:
            raise ValueError("HIBP API key is required (set HIBP_API_KEY or pass --api-key)")

        self._session = session or requests.Session()
        self._session.headers.update({
            "hibp-api-key": self.api_key,
            "user-agent": self.config.user_agent,
        })

    def check_breaches(self, email: str) -> list[dict]:
        """Return the breaches an account appears in.

        Args:
            email: Account to look up

        Returns:
            List of HIBP breach objects (Name, BreachDate, DataClasses, ...)

        Raises:
            BreachRateLimitedError: HTTP 429
            BreachAuthError: HTTP 401/403
            BreachNetworkError: Transport failure
            BreachLookupError: Unexpected status or malformed body
        """
        url = HIBP_URL.format(account=quote(email, safe=""))
        try:
            resp = self._session.get(
                url,
                params={"truncateResponse": "false"},
                timeout=self.config.timeout
            )
        except requests.RequestException as e:
            raise BreachNetworkError(f"Network error: {e}") from e

        if resp.status_code == 404:
            return []
        if resp.status_code == 429:
            raise BreachRateLimitedError(
                "Rate limit exceeded (HTTP 429)",
                retry_after=_parse_retry_after(resp.headers.get("Retry-After"))
            )
        if resp.status_code in (401, 403):
            raise BreachAuthError(
                f"API key rejected (HTTP {resp.status_code})",
                status_code=resp.status_code
            )
        if resp.status_code != 200:
            raise BreachLookupError(
                f"Unexpected HTTP {resp.status_code}: {resp.text[:200]}",
                status_code=resp.status_code
            )

        try:
            payload = resp.json()
        except ValueError as e:
            raise BreachLookupError(f"Malformed response: {e}", status_code=200) from e

        if not isinstance(payload, list):
            raise BreachLookupError("Malformed response: expected a list of breaches", status_code=200)
        return payload

    def close(self) -> None:
        self._session.close()
