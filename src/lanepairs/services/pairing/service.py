"""Lane pairing orchestration: resolve lane ends, select pairs, run batches."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Sequence

from ...config import settings
from ...data.city_repository import CityDirectory, get_city_directory
from ...models.domain import City, Lane, PairSequence
from ...models.errors import InvalidLaneInput
from ..candidates import CandidateFinder
from ..verification.verifier import CityVerifier, VerificationSink
from .selector import PairSelector

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class LaneFailure:
    index: int
    lane_id: str | None
    error: str
    missing_fields: tuple[str, ...] = ()
    invalid_fields: tuple[str, ...] = ()


@dataclass(slots=True)
class LaneBatchResult:
    sequences: list[PairSequence] = field(default_factory=list)
    failures: list[LaneFailure] = field(default_factory=list)

    @property
    def lane_count(self) -> int:
        return len(self.sequences) + len(self.failures)


def resolve_city(directory: CityDirectory, name: str, state: str) -> City:
    """Best directory match for a lane end, or an unresolved placeholder."""
    try:
        matches = directory.find_by_normalized_name(name, state)
    except Exception as e:
        logger.warning(f"City lookup failed for {name}, {state}: {e}")
        matches = []

    if not matches:
        logger.warning(f"City not found in directory: {name}, {state}. Alternates will reuse the lane city.")
        return City.unresolved(name, state)
    if len(matches) > 1:
        logger.debug(
            f"{len(matches)} directory entries match {name}, {state}; using "
            f"{matches[0].name} ({matches[0].market_id})"
        )
    return matches[0]


def generate_lane_pairs(
    lane: Lane,
    *,
    directory: CityDirectory | None = None,
    radius_miles: float | None = None,
    target_count: int | None = None,
    verifier: CityVerifier | None = None,
    verification_sink: VerificationSink | None = None,
    lookup_timeout: float | None = None,
) -> PairSequence:
    lane.validate()
    directory = directory if directory is not None else get_city_directory()
    radius = radius_miles if radius_miles is not None else settings.default_radius_miles
    target = (
        target_count
        if target_count is not None
        else lane.alternate_target(settings.standard_alternate_count, settings.fill_alternate_count)
    )

    origin = resolve_city(directory, lane.origin_city, lane.origin_state)
    destination = resolve_city(directory, lane.dest_city, lane.dest_state)

    selector = PairSelector(CandidateFinder(directory), lookup_timeout=lookup_timeout)
    sequence = selector.select_pairs(lane, radius, target, origin=origin, destination=destination)

    if verifier is not None:
        verifier.annotate([origin, destination], sink=verification_sink)
    return sequence


def process_lanes(
    lanes: Sequence[Lane],
    *,
    directory: CityDirectory | None = None,
    radius_miles: float | None = None,
    target_count: int | None = None,
    verifier: CityVerifier | None = None,
    verification_sink: VerificationSink | None = None,
    max_workers: int | None = None,
) -> LaneBatchResult:
    """Pair every lane in parallel; invalid lanes are reported, not raised."""
    directory = directory if directory is not None else get_city_directory()
    workers = max_workers or settings.max_parallel_lanes
    result = LaneBatchResult()
    if not lanes:
        return result

    def _run(lane: Lane) -> PairSequence:
        return generate_lane_pairs(
            lane,
            directory=directory,
            radius_miles=radius_miles,
            target_count=target_count,
            verifier=verifier,
            verification_sink=verification_sink,
        )

    logger.info(f"Generating pairs for {len(lanes)} lanes ({workers} workers)")
    with ThreadPoolExecutor(max_workers=min(workers, len(lanes)), thread_name_prefix="lanes") as executor:
        futures = [executor.submit(_run, lane) for lane in lanes]
        for index, (lane, future) in enumerate(zip(lanes, futures)):
            try:
                result.sequences.append(future.result())
            except InvalidLaneInput as e:
                logger.warning(f"Skipping lane {lane.lane_id or index}: {e}")
                result.failures.append(
                    LaneFailure(
                        index=index,
                        lane_id=lane.lane_id,
                        error=str(e),
                        missing_fields=e.missing_fields,
                        invalid_fields=e.invalid_fields,
                    )
                )
            except ValueError as e:
                logger.warning(f"Skipping lane {lane.lane_id or index}: {e}")
                result.failures.append(LaneFailure(index=index, lane_id=lane.lane_id, error=str(e)))

    fallback_total = sum(sequence.fallback_count for sequence in result.sequences)
    logger.info(
        f"Generated {len(result.sequences)} pair sequences ({len(result.failures)} invalid lanes, "
        f"{fallback_total} fallback alternates)"
    )
    return result
