"""HTTP client for the HERE geocoding service."""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable

import httpx

from ...config import settings
from ...models.errors import VerificationUnavailable
from ..naming import names_match
from .models import GeocodeMatch, VerificationResult

logger = logging.getLogger(__name__)

RATE_WINDOW_SECONDS = 60.0


class RequestWindow:
    """Fixed-window limiter: at most ``limit`` requests per ``window`` seconds."""

    def __init__(
        self,
        limit: int,
        window: float = RATE_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.limit = limit
        self.window = window
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._window_start = clock()
        self._count = 0

    def acquire(self) -> None:
        while True:
            with self._lock:
                now = self._clock()
                if now - self._window_start >= self.window:
                    self._window_start = now
                    self._count = 0
                if self._count < self.limit:
                    self._count += 1
                    return
                wait_time = self.window - (now - self._window_start)
            logger.info(f"Geocode rate limit reached, waiting {wait_time:.1f}s")
            self._sleep(wait_time)


def _parse_item(item: dict[str, Any]) -> GeocodeMatch | None:
    address = item.get("address") or {}
    position = item.get("position") or {}
    try:
        return GeocodeMatch(
            city=str(address.get("city") or ""),
            state=str(address.get("stateCode") or address.get("state") or "").upper(),
            latitude=float(position["lat"]),
            longitude=float(position["lng"]),
            postal_code=str(address.get("postalCode") or ""),
        )
    except (KeyError, TypeError, ValueError):
        return None


class HereGeocodeClient:
    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        requests_per_minute: int | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.api_key = api_key or settings.here_api_key
        if not self.api_key:
            raise ValueError("HERE API key is not configured.")
        self.base_url = base_url or settings.here_geocode_url
        self.timeout = timeout if timeout is not None else settings.geocode_timeout_seconds
        self.window = RequestWindow(requests_per_minute or settings.geocode_requests_per_minute)
        self._transport = transport

    def _get_client(self) -> httpx.Client:
        return httpx.Client(timeout=httpx.Timeout(self.timeout, connect=5.0), transport=self._transport)

    def verify(self, city: str, state: str, zip_code: str | None = None) -> VerificationResult:
        """Geocode ``city, state [zip]``; raises ``VerificationUnavailable`` on transport failure."""

        query = f"{city}, {state} {zip_code}" if zip_code else f"{city}, {state}"
        params = {"q": query, "countryCode": "USA", "limit": 5, "apiKey": self.api_key}

        self.window.acquire()
        client = self._get_client()
        try:
            response = client.get(self.base_url, params=params)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            raise VerificationUnavailable(
                f"HERE geocode returned HTTP {e.response.status_code} for '{query}'"
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise VerificationUnavailable(f"HERE geocode request failed for '{query}': {e}") from e
        finally:
            client.close()

        if not isinstance(payload, dict):
            raise VerificationUnavailable(f"Unexpected HERE geocode payload for '{query}'")
        matches = tuple(match for match in map(_parse_item, payload.get("items") or []) if match is not None)
        if not matches:
            return VerificationResult(verified=False, candidates=())

        state_code = state.strip().upper()
        best = next(
            (match for match in matches if names_match(match.city, city) and match.state == state_code),
            matches[0],
        )
        return VerificationResult(verified=True, data=best, candidates=matches)


def check_health(api_key: str | None = None) -> bool:
    """Return True when the geocoder answers a known-good query."""
    if not (api_key or settings.here_api_key):
        return False
    try:
        result = HereGeocodeClient(api_key=api_key, requests_per_minute=1).verify("Chicago", "IL")
        return result.verified
    except (ValueError, VerificationUnavailable):
        return False
