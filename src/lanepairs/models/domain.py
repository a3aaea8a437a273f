"""Domain models for cities, lanes and the pair sequences built from them."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Iterator, Mapping, NamedTuple, Optional

from .errors import InvalidLaneInput

REQUIRED_LANE_FIELDS = ("origin_city", "origin_state", "dest_city", "dest_state")


@dataclass(frozen=True, slots=True)
class City:
    """A directory city and the freight market (KMA) it belongs to."""

    name: str
    state_code: str
    latitude: float
    longitude: float
    market_id: str
    market_name: str = ""
    zip_code: str = ""
    verified: bool = False

    @property
    def has_coordinates(self) -> bool:
        return math.isfinite(self.latitude) and math.isfinite(self.longitude)

    @classmethod
    def unresolved(cls, name: str, state_code: str) -> "City":
        """Placeholder for a lane end the directory could not resolve."""
        return cls(
            name=name.strip(),
            state_code=state_code.strip().upper(),
            latitude=math.nan,
            longitude=math.nan,
            market_id="",
        )


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "y"}
    return bool(value)


def _optional_number(value: Any, kind: type) -> Any:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return kind(value.strip() if isinstance(value, str) else value)


@dataclass(frozen=True, slots=True)
class Lane:
    """A freight lane as entered by a user or imported from a sheet."""

    origin_city: str
    origin_state: str
    dest_city: str
    dest_state: str
    equipment_code: str = ""
    weight: Optional[float] = None
    prefer_fill: bool = False
    target_alternate_count: Optional[int] = None
    lane_id: Optional[str] = None

    def missing_fields(self) -> list[str]:
        return [name for name in REQUIRED_LANE_FIELDS if not _text(getattr(self, name))]

    def invalid_fields(self) -> list[str]:
        invalid = []
        if self.weight is not None and not (math.isfinite(self.weight) and self.weight >= 0):
            invalid.append("weight")
        if self.target_alternate_count is not None and self.target_alternate_count < 0:
            invalid.append("target_alternate_count")
        return invalid

    def validate(self) -> "Lane":
        missing = self.missing_fields()
        invalid = self.invalid_fields()
        if missing or invalid:
            raise InvalidLaneInput(missing, lane_id=self.lane_id, invalid_fields=invalid)
        return self

    def alternate_target(self, standard: int, fill: int) -> int:
        """Number of alternate pairs this lane asks for."""
        if self.target_alternate_count is not None:
            return self.target_alternate_count
        return fill if self.prefer_fill else standard

    @classmethod
    def from_record(cls, record: Mapping[str, Any], validate: bool = True) -> "Lane":
        """Build a lane from a loosely-typed record (API payload, sheet row).

        Values that cannot be parsed (a weight of ``"heavy"``) always raise
        ``InvalidLaneInput``. With ``validate=False`` a parsed lane is returned
        as-is so batch callers can report missing fields per lane instead of
        failing the whole batch.
        """
        unparsable = []
        try:
            weight = _optional_number(record.get("weight"), float)
        except (TypeError, ValueError, OverflowError):
            weight = None
            unparsable.append("weight")
        try:
            target = _optional_number(record.get("target_alternate_count"), int)
        except (TypeError, ValueError, OverflowError):
            target = None
            unparsable.append("target_alternate_count")

        lane = cls(
            origin_city=_text(record.get("origin_city")),
            origin_state=_text(record.get("origin_state")).upper(),
            dest_city=_text(record.get("dest_city")),
            dest_state=_text(record.get("dest_state")).upper(),
            equipment_code=_text(record.get("equipment_code")).upper(),
            weight=weight,
            prefer_fill=_flag(record.get("prefer_fill")),
            target_alternate_count=target,
            lane_id=_text(record.get("lane_id")) or None,
        )
        if unparsable:
            raise InvalidLaneInput(
                lane.missing_fields(), lane_id=lane.lane_id, invalid_fields=unparsable + lane.invalid_fields()
            )
        return lane.validate() if validate else lane


@dataclass(frozen=True, slots=True)
class CandidatePair:
    origin: City
    destination: City
    origin_distance_miles: float = 0.0
    dest_distance_miles: float = 0.0
    origin_fallback: bool = False
    dest_fallback: bool = False
    is_base: bool = False

    @property
    def is_fallback(self) -> bool:
        return self.origin_fallback or self.dest_fallback


@dataclass(frozen=True, slots=True)
class PairSequence:
    """Base pair followed by the alternates generated for one lane."""

    lane: Lane
    pairs: tuple[CandidatePair, ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.pairs)

    def __iter__(self) -> Iterator[CandidatePair]:
        return iter(self.pairs)

    def __getitem__(self, index: int) -> CandidatePair:
        return self.pairs[index]

    @property
    def base_pair(self) -> CandidatePair:
        return self.pairs[0]

    @property
    def alternates(self) -> tuple[CandidatePair, ...]:
        return self.pairs[1:]

    @property
    def target_count(self) -> int:
        return len(self.pairs) - 1

    @property
    def fallback_count(self) -> int:
        return sum(1 for pair in self.alternates if pair.is_fallback)


class PostingRow(NamedTuple):
    """One export row: a pair and the index of the contact method it carries."""

    pair: CandidatePair
    contact_index: int
