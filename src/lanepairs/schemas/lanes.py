"""Lane pairing request/response schemas."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from ..models.domain import CandidatePair, City, PairSequence


class LaneModel(BaseModel):
    """Lane as submitted by clients. Required fields are checked when the lane is built."""

    origin_city: Optional[str] = None
    origin_state: Optional[str] = None
    dest_city: Optional[str] = None
    dest_state: Optional[str] = None
    equipment_code: str = ""
    weight: Optional[float] = Field(default=None, ge=0)
    prefer_fill: bool = Field(default=False, description="Fill mode: request the larger alternate quota.")
    target_alternate_count: Optional[int] = Field(default=None, ge=0)
    lane_id: Optional[str] = None


class PairRequest(BaseModel):
    lane: LaneModel
    radius_miles: Optional[float] = Field(default=None, gt=0)


class ExportRequest(BaseModel):
    lanes: List[LaneModel]
    radius_miles: Optional[float] = Field(default=None, gt=0)
    target_count: Optional[int] = Field(default=None, ge=0)
    persist: bool = False
    run_label: Optional[str] = Field(default=None, description="Friendly name for persisted outputs.")


class CityModel(BaseModel):
    name: str
    state_code: str
    market_id: str
    market_name: str = ""
    zip_code: str = ""

    @classmethod
    def from_city(cls, city: City) -> "CityModel":
        return cls(
            name=city.name,
            state_code=city.state_code,
            market_id=city.market_id,
            market_name=city.market_name,
            zip_code=city.zip_code,
        )


class PairModel(BaseModel):
    origin: CityModel
    destination: CityModel
    origin_distance_miles: float
    dest_distance_miles: float
    origin_fallback: bool
    dest_fallback: bool
    is_base: bool

    @classmethod
    def from_pair(cls, pair: CandidatePair) -> "PairModel":
        return cls(
            origin=CityModel.from_city(pair.origin),
            destination=CityModel.from_city(pair.destination),
            origin_distance_miles=round(pair.origin_distance_miles, 2),
            dest_distance_miles=round(pair.dest_distance_miles, 2),
            origin_fallback=pair.origin_fallback,
            dest_fallback=pair.dest_fallback,
            is_base=pair.is_base,
        )


class PairSequenceResponse(BaseModel):
    lane_id: Optional[str]
    target_count: int
    row_count: int
    pairs: List[PairModel]

    @classmethod
    def from_sequence(cls, sequence: PairSequence, row_count: int) -> "PairSequenceResponse":
        return cls(
            lane_id=sequence.lane.lane_id,
            target_count=sequence.target_count,
            row_count=row_count,
            pairs=[PairModel.from_pair(pair) for pair in sequence],
        )


class LaneFailureModel(BaseModel):
    index: int
    lane_id: Optional[str]
    error: str
    missing_fields: List[str] = Field(default_factory=list)
    invalid_fields: List[str] = Field(default_factory=list)


class ExportResponse(BaseModel):
    lane_count: int
    row_count: int
    rows: List[dict]
    failures: List[LaneFailureModel]
    output_dir: Optional[str] = None
