"""Cached, retry-bounded, non-blocking wrapper around a geocode verifier."""

from __future__ import annotations

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from functools import lru_cache
from typing import Any, Callable, Iterable, Optional, Protocol

from ...config import settings
from ...models.domain import City
from ...models.errors import VerificationUnavailable
from .cache import VerificationCache
from .here_client import HereGeocodeClient
from .models import VerificationResult

logger = logging.getLogger(__name__)

VerificationSink = Callable[[City, VerificationResult], None]


class Geocoder(Protocol):
    def verify(self, city: str, state: str, zip_code: str | None = None) -> VerificationResult:
        ...


class CityVerifier:
    """Applies the cache, a single bounded retry and failure isolation to every call.

    ``verify`` never raises: an unavailable geocoder yields an unverified result
    carrying the error text, and such results are not cached so a later call can
    try again. ``annotate`` runs verification on a private executor so callers on
    the selection path never wait for it.
    """

    def __init__(
        self,
        geocoder: Geocoder,
        cache: VerificationCache | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        max_workers: int = 2,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.geocoder = geocoder
        self.cache = cache if cache is not None else VerificationCache()
        retries = max_retries if max_retries is not None else settings.geocode_max_retries
        self.max_retries = max(0, min(retries, 1))
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.geocode_backoff_seconds
        self._sleep = sleep
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="verify")

    def verify(self, city: str, state: str, zip_code: str | None = None) -> VerificationResult:
        return self._lookup(city, state, zip_code)[0]

    def _lookup(self, city: str, state: str, zip_code: str | None) -> tuple[VerificationResult, bool]:
        """Return the result and whether it came from the cache."""
        cached = self.cache.get(city, state)
        if cached is not None:
            return cached, True

        attempt = 0
        while True:
            try:
                result = self.geocoder.verify(city, state, zip_code or None)
            except VerificationUnavailable as e:
                attempt += 1
                if attempt > self.max_retries:
                    logger.warning(f"Verification unavailable for {city}, {state}: {e}")
                    return VerificationResult(verified=False, error=str(e)), False
                logger.debug(f"Verification failed for {city}, {state}, retrying (attempt {attempt}/{self.max_retries}): {e}")
                self._sleep(self.backoff_seconds * attempt)
                continue
            except Exception as e:
                logger.warning(f"Unexpected verification error for {city}, {state}: {e}")
                return VerificationResult(verified=False, error=str(e)), False

            self.cache.put(city, state, result)
            return result, False

    def _annotate_one(self, city: City, sink: Optional[VerificationSink]) -> VerificationResult:
        result, cached = self._lookup(city.name, city.state_code, city.zip_code)
        # Cached outcomes were already recorded by the call that produced them.
        if sink is not None and result.error is None and not cached:
            try:
                sink(city, result)
            except Exception as e:
                logger.warning(f"Failed to record verification for {city.name}, {city.state_code}: {e}")
        return result

    def annotate(self, cities: Iterable[City], sink: Optional[VerificationSink] = None) -> list[Future]:
        """Verify not-yet-verified cities out of band; returns the pending futures."""
        seen: set[str] = set()
        futures: list[Future] = []
        for city in cities:
            key = VerificationCache.key_for(city.name, city.state_code)
            if city.verified or key in seen:
                continue
            seen.add(key)
            futures.append(self._executor.submit(self._annotate_one, city, sink))
        return futures

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)


@lru_cache()
def get_city_verifier() -> CityVerifier | None:
    """Process-wide verifier, or None when no geocoder key is configured."""
    if not settings.here_api_key:
        return None
    return CityVerifier(HereGeocodeClient())


def directory_sink(directory: Any) -> Optional[VerificationSink]:
    """Sink writing verification outcomes back to directories that support it."""
    mark_verified = getattr(directory, "mark_verified", None)
    if mark_verified is None:
        return None

    def _record(city: City, result: VerificationResult) -> None:
        mark_verified(city, result.verified)

    return _record
