"""Alternate pair selection for freight lanes."""

from .selector import PairSelector
from .service import LaneBatchResult, LaneFailure, generate_lane_pairs, process_lanes, resolve_city

__all__ = [
    "LaneBatchResult",
    "LaneFailure",
    "PairSelector",
    "generate_lane_pairs",
    "process_lanes",
    "resolve_city",
]
