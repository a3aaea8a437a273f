"""Exact-quota alternate pair selection for a lane."""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError

from ...config import settings
from ...models.domain import CandidatePair, City, Lane, PairSequence
from ..candidates import CandidateFinder

logger = logging.getLogger(__name__)


class PairSelector:
    """Builds the base pair plus exactly ``K`` alternates for a lane.

    Alternate ``i`` pairs the ``i``-th ranked origin candidate with the ``i``-th
    ranked destination candidate. A side whose candidates run out reuses the
    lane's own base city for every remaining index, so the sequence length is
    always ``K + 1``.
    """

    def __init__(self, finder: CandidateFinder, lookup_timeout: float | None = None) -> None:
        self.finder = finder
        self.lookup_timeout = lookup_timeout if lookup_timeout is not None else settings.lookup_timeout_seconds

    def _collect(self, future: Future, side: str, center: City) -> list[tuple[City, float]]:
        try:
            return list(future.result(timeout=self.lookup_timeout))
        except FutureTimeoutError:
            logger.warning(
                f"{side} candidate lookup for {center.name}, {center.state_code} timed out after "
                f"{self.lookup_timeout:.1f}s; using base city for all {side.lower()} alternates"
            )
        except Exception as e:
            logger.warning(f"{side} candidate lookup for {center.name}, {center.state_code} failed: {e}")
        return []

    def _lookup_both(
        self, origin: City, destination: City, radius_miles: float
    ) -> tuple[list[tuple[City, float]], list[tuple[City, float]]]:
        executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="candidates")
        try:
            origin_future = executor.submit(
                self.finder.ranked_candidates, origin, radius_miles, {origin.market_id}
            )
            dest_future = executor.submit(
                self.finder.ranked_candidates, destination, radius_miles, {destination.market_id}
            )
            return (
                self._collect(origin_future, "Origin", origin),
                self._collect(dest_future, "Destination", destination),
            )
        finally:
            # A timed-out lookup keeps its thread; do not block the lane on it.
            executor.shutdown(wait=False, cancel_futures=True)

    def select_pairs(
        self,
        lane: Lane,
        radius_miles: float,
        target_count: int,
        origin: City | None = None,
        destination: City | None = None,
    ) -> PairSequence:
        lane.validate()
        if target_count < 0:
            raise ValueError(f"target_count must be >= 0, got {target_count}")

        origin = origin or City.unresolved(lane.origin_city, lane.origin_state)
        destination = destination or City.unresolved(lane.dest_city, lane.dest_state)

        pairs: list[CandidatePair] = [CandidatePair(origin=origin, destination=destination, is_base=True)]
        if target_count == 0:
            return PairSequence(lane=lane, pairs=tuple(pairs))

        origin_ranked, dest_ranked = self._lookup_both(origin, destination, radius_miles)

        for index in range(target_count):
            if index < len(origin_ranked):
                pickup, pickup_distance = origin_ranked[index]
                origin_fallback = False
            else:
                pickup, pickup_distance = origin, 0.0
                origin_fallback = True

            if index < len(dest_ranked):
                delivery, delivery_distance = dest_ranked[index]
                dest_fallback = False
            else:
                delivery, delivery_distance = destination, 0.0
                dest_fallback = True

            pairs.append(
                CandidatePair(
                    origin=pickup,
                    destination=delivery,
                    origin_distance_miles=pickup_distance,
                    dest_distance_miles=delivery_distance,
                    origin_fallback=origin_fallback,
                    dest_fallback=dest_fallback,
                )
            )

        sequence = PairSequence(lane=lane, pairs=tuple(pairs))
        if sequence.fallback_count:
            logger.info(
                f"Lane {origin.name}, {origin.state_code} -> {destination.name}, {destination.state_code}: "
                f"{len(origin_ranked)} origin / {len(dest_ranked)} destination markets for {target_count} "
                f"alternates; {sequence.fallback_count} filled with base cities"
            )
        return sequence
