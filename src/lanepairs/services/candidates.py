"""Nearby-market candidate search around a lane end."""

from __future__ import annotations

import logging
import math
from typing import Iterable

from ..data.city_repository import CityDirectory
from ..models.domain import City
from .geospatial import distance_miles
from .naming import normalize_city_name

# Hard cap on the search radius regardless of configuration.
MAX_RADIUS_MILES = 100.0

logger = logging.getLogger(__name__)


def clamp_radius(radius_miles: float) -> float:
    try:
        radius = float(radius_miles)
    except (TypeError, ValueError):
        return MAX_RADIUS_MILES
    if math.isnan(radius) or radius > MAX_RADIUS_MILES:
        return MAX_RADIUS_MILES
    return max(radius, 0.0)


def _rank_key(city: City, distance: float) -> tuple[float, str, str]:
    return (distance, normalize_city_name(city.name), city.state_code)


class CandidateFinder:
    """Ranks one representative city per nearby market around a center city."""

    def __init__(self, directory: CityDirectory) -> None:
        self.directory = directory

    def ranked_candidates(
        self,
        center: City,
        radius_miles: float,
        exclude_market_ids: Iterable[str] = (),
    ) -> list[tuple[City, float]]:
        """Return ``(city, distance)`` pairs, nearest market first.

        A failing directory yields an empty list; the caller's fallback policy
        absorbs the gap.
        """

        radius = clamp_radius(radius_miles)
        excluded = set(exclude_market_ids)
        excluded.add(center.market_id)

        try:
            found = self.directory.find_within_radius(center, radius, excluded)
        except Exception as e:
            logger.warning(
                f"City directory unavailable for {center.name}, {center.state_code}: {e}. "
                "Continuing with no candidates."
            )
            return []

        nearest_by_market: dict[str, tuple[City, float]] = {}
        for city in found:
            if not city.market_id or city.market_id in excluded:
                continue
            distance = distance_miles(center, city)
            if not math.isfinite(distance) or distance > radius:
                continue
            current = nearest_by_market.get(city.market_id)
            if current is None or _rank_key(city, distance) < _rank_key(*current):
                nearest_by_market[city.market_id] = (city, distance)

        ranked = sorted(nearest_by_market.values(), key=lambda item: _rank_key(*item))
        logger.debug(
            f"{len(found)} cities within {radius:.0f} mi of {center.name}, {center.state_code} "
            f"-> {len(ranked)} distinct markets"
        )
        return ranked

    def find_candidates(
        self,
        center: City,
        radius_miles: float,
        exclude_market_ids: Iterable[str] = (),
    ) -> list[City]:
        return [city for city, _ in self.ranked_candidates(center, radius_miles, exclude_market_ids)]
