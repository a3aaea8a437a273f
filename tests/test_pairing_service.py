import math
from concurrent.futures import wait

import pytest

from lanepairs.data.city_repository import InMemoryCityDirectory
from lanepairs.models.domain import City, Lane
from lanepairs.models.errors import InvalidLaneInput
from lanepairs.services.pairing.service import generate_lane_pairs, process_lanes, resolve_city
from lanepairs.services.verification.models import GeocodeMatch, VerificationResult
from lanepairs.services.verification.verifier import CityVerifier

CHICAGO = City("Chicago", "IL", 41.8781, -87.6298, "IL_CHI", zip_code="60601")
DALLAS = City("Dallas", "TX", 32.7767, -96.7970, "TX_DAL", zip_code="75201")
JOLIET = City("Joliet", "IL", 41.5250, -88.0817, "IL_JOL")
FORT_WORTH = City("Fort Worth", "TX", 32.7555, -97.3308, "TX_FTW")


def _directory(*extra: City) -> InMemoryCityDirectory:
    return InMemoryCityDirectory([CHICAGO, DALLAS, JOLIET, FORT_WORTH, *extra])


class _RecordingGeocoder:
    def __init__(self):
        self.calls = []

    def verify(self, city, state, zip_code=None):
        self.calls.append((city, state, zip_code))
        return VerificationResult(verified=True, data=GeocodeMatch(city, state, 0.0, 0.0))


def test_resolve_city_prefers_verified_match():
    unverified = City("St. Louis", "MO", 38.63, -90.20, "MO_STL", zip_code="63102")
    verified = City("Saint Louis", "MO", 38.62, -90.19, "MO_STL", zip_code="63101", verified=True)
    directory = InMemoryCityDirectory([unverified, verified])

    assert resolve_city(directory, "ST LOUIS", "mo") == verified


def test_resolve_city_returns_placeholder_when_missing():
    city = resolve_city(_directory(), " Nowhere ", "il")

    assert city.name == "Nowhere"
    assert city.state_code == "IL"
    assert city.market_id == ""
    assert not city.has_coordinates
    assert math.isnan(city.latitude)


def test_resolve_city_survives_directory_errors():
    class _Broken:
        def find_by_normalized_name(self, name, state):
            raise ConnectionError("offline")

    assert resolve_city(_Broken(), "Chicago", "IL").name == "Chicago"


def test_generate_lane_pairs_uses_directory_cities():
    lane = Lane("chicago", "IL", "Ft. Worth", "TX", lane_id="L1")

    sequence = generate_lane_pairs(lane, directory=_directory(), radius_miles=75.0, target_count=1)

    assert sequence.base_pair.origin == CHICAGO
    assert sequence.base_pair.destination == FORT_WORTH
    assert sequence.alternates[0].origin == JOLIET
    assert sequence.alternates[0].destination == DALLAS


def test_default_target_follows_fill_preference():
    standard = generate_lane_pairs(Lane("Chicago", "IL", "Dallas", "TX"), directory=_directory())
    fill = generate_lane_pairs(Lane("Chicago", "IL", "Dallas", "TX", prefer_fill=True), directory=_directory())
    explicit = generate_lane_pairs(
        Lane("Chicago", "IL", "Dallas", "TX", target_alternate_count=2), directory=_directory()
    )

    assert len(standard) == 4
    assert len(fill) == 6
    assert len(explicit) == 3


def test_process_lanes_reports_invalid_lanes_and_keeps_order():
    lanes = [
        Lane("Chicago", "IL", "Dallas", "TX", lane_id="A"),
        Lane("", "IL", "Dallas", "", lane_id="B"),
        Lane("Dallas", "TX", "Chicago", "IL", lane_id="C"),
    ]

    batch = process_lanes(lanes, directory=_directory(), target_count=2)

    assert batch.lane_count == 3
    assert [sequence.lane.lane_id for sequence in batch.sequences] == ["A", "C"]
    assert len(batch.failures) == 1
    failure = batch.failures[0]
    assert failure.index == 1
    assert failure.lane_id == "B"
    assert failure.missing_fields == ("origin_city", "dest_state")


def test_process_lanes_with_no_lanes():
    batch = process_lanes([], directory=_directory())

    assert batch.sequences == [] and batch.failures == []


def test_empty_directory_is_used_rather_than_replaced(monkeypatch):
    def _fail():
        raise AssertionError("default directory should not be loaded")

    monkeypatch.setattr("lanepairs.services.pairing.service.get_city_directory", _fail)

    sequence = generate_lane_pairs(Lane("Chicago", "IL", "Dallas", "TX"), directory=InMemoryCityDirectory(), target_count=2)

    assert sequence.fallback_count == 2


def test_verification_runs_out_of_band_and_feeds_sink():
    geocoder = _RecordingGeocoder()
    verifier = CityVerifier(geocoder, max_retries=0)
    recorded = []
    lane = Lane("Chicago", "IL", "Dallas", "TX")

    try:
        sequence = generate_lane_pairs(
            lane,
            directory=_directory(),
            target_count=1,
            verifier=verifier,
            verification_sink=lambda city, result: recorded.append((city.name, result.verified)),
        )
    finally:
        verifier.shutdown(wait=True)

    assert len(sequence) == 2
    assert sorted(geocoder.calls) == [("Chicago", "IL", "60601"), ("Dallas", "TX", "75201")]
    assert sorted(recorded) == [("Chicago", True), ("Dallas", True)]


def test_annotate_skips_verified_and_duplicate_cities():
    geocoder = _RecordingGeocoder()
    verifier = CityVerifier(geocoder, max_retries=0)
    already = City("Joliet", "IL", 41.5, -88.1, "IL_JOL", verified=True)

    try:
        futures = verifier.annotate([CHICAGO, CHICAGO, already])
        wait(futures)
    finally:
        verifier.shutdown()

    assert len(futures) == 1
    assert geocoder.calls == [("Chicago", "IL", "60601")]


def test_invalid_values_are_reported_per_lane_in_a_batch():
    bad_target = Lane.from_record(
        {"origin_city": "Dallas", "origin_state": "TX", "dest_city": "Chicago", "dest_state": "IL",
         "target_alternate_count": "-1", "lane_id": "NEG"},
        validate=False,
    )
    lanes = [Lane("Chicago", "IL", "Dallas", "TX", lane_id="OK"), bad_target]

    batch = process_lanes(lanes, directory=_directory())

    assert [sequence.lane.lane_id for sequence in batch.sequences] == ["OK"]
    assert len(batch.failures) == 1
    assert batch.failures[0].index == 1
    assert batch.failures[0].invalid_fields == ("target_alternate_count",)


def test_from_record_rejects_unparsable_and_negative_values():
    record = {"origin_city": "Chicago", "origin_state": "IL", "dest_city": "Dallas", "dest_state": "TX"}

    with pytest.raises(InvalidLaneInput) as excinfo:
        Lane.from_record({**record, "weight": "heavy"}, validate=False)
    assert excinfo.value.invalid_fields == ("weight",)

    with pytest.raises(InvalidLaneInput) as excinfo:
        Lane.from_record({**record, "weight": -5, "target_alternate_count": "-1"})
    assert excinfo.value.invalid_fields == ("weight", "target_alternate_count")

    lane = Lane.from_record({**record, "weight": " 42000 ", "target_alternate_count": "4"})
    assert (lane.weight, lane.target_alternate_count) == (42000.0, 4)


def test_cached_verifications_are_not_written_back_again():
    geocoder = _RecordingGeocoder()
    verifier = CityVerifier(geocoder, max_retries=0)
    recorded = []

    def sink(city, result):
        recorded.append(city.name)

    try:
        wait(verifier.annotate([CHICAGO], sink=sink))
        wait(verifier.annotate([CHICAGO], sink=sink))
    finally:
        verifier.shutdown()

    assert recorded == ["Chicago"]
    assert len(geocoder.calls) == 1
