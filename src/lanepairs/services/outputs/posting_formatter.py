"""Utilities to serialize pair sequences into export CSV/JSON artifacts."""

from __future__ import annotations

import csv
import io
from typing import Sequence

from ...models.domain import PairSequence
from ..pairing.service import LaneBatchResult
from ..posting.expander import expand, row_count

POSTING_COLUMNS = [
    "lane_id",
    "pair_index",
    "origin_city",
    "origin_state",
    "dest_city",
    "dest_state",
    "equipment",
    "weight",
    "contact_method",
]


def posting_rows(sequences: Sequence[PairSequence], contact_methods: Sequence[str]) -> list[dict]:
    rows: list[dict] = []
    for sequence in sequences:
        lane = sequence.lane
        for row_number, posting in enumerate(expand(sequence, len(contact_methods))):
            pair = posting.pair
            rows.append(
                {
                    "lane_id": lane.lane_id or "",
                    "pair_index": row_number // len(contact_methods),
                    "origin_city": pair.origin.name,
                    "origin_state": pair.origin.state_code,
                    "dest_city": pair.destination.name,
                    "dest_state": pair.destination.state_code,
                    "equipment": lane.equipment_code,
                    "weight": "" if lane.weight is None else lane.weight,
                    "contact_method": contact_methods[posting.contact_index],
                }
            )
    return rows


def posting_rows_to_csv(sequences: Sequence[PairSequence], contact_methods: Sequence[str]) -> str:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=POSTING_COLUMNS)
    writer.writeheader()
    writer.writerows(posting_rows(sequences, contact_methods))
    return buffer.getvalue()


def export_summary(batch: LaneBatchResult, contact_methods: Sequence[str]) -> dict:
    methods = len(contact_methods)
    return {
        "lane_count": batch.lane_count,
        "exported_lanes": len(batch.sequences),
        "row_count": sum(row_count(sequence, methods) for sequence in batch.sequences),
        "contact_methods": list(contact_methods),
        "lanes": [
            {
                "lane_id": sequence.lane.lane_id,
                "origin": f"{sequence.lane.origin_city}, {sequence.lane.origin_state}",
                "destination": f"{sequence.lane.dest_city}, {sequence.lane.dest_state}",
                "pairs": len(sequence),
                "fallback_alternates": sequence.fallback_count,
                "rows": row_count(sequence, methods),
            }
            for sequence in batch.sequences
        ],
        "failures": [
            {
                "index": failure.index,
                "lane_id": failure.lane_id,
                "error": failure.error,
                "missing_fields": list(failure.missing_fields),
                "invalid_fields": list(failure.invalid_fields),
            }
            for failure in batch.failures
        ],
    }
