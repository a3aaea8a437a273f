"""Batch export orchestration: lanes in, posting rows (and optional files) out."""

from __future__ import annotations

import logging
from typing import Sequence

from ...config import settings
from ...data.city_repository import CityDirectory
from ...models.domain import Lane
from ...models.errors import InvalidLaneInput
from ...persistence.filesystem import FileStorage
from ...schemas.lanes import ExportRequest, ExportResponse, LaneFailureModel
from ..outputs.posting_formatter import export_summary, posting_rows, posting_rows_to_csv
from ..pairing.service import LaneFailure, process_lanes
from ..verification.verifier import CityVerifier, VerificationSink

logger = logging.getLogger(__name__)


def _build_lanes(payload: ExportRequest) -> tuple[list[Lane], list[int], list[LaneFailure]]:
    """Parse submitted lanes; unparsable ones become failures at their position."""
    lanes: list[Lane] = []
    positions: list[int] = []
    rejected: list[LaneFailure] = []
    for index, model in enumerate(payload.lanes):
        try:
            lanes.append(Lane.from_record(model.model_dump(), validate=False))
        except InvalidLaneInput as e:
            logger.warning(f"Rejecting lane {e.lane_id or index}: {e}")
            rejected.append(
                LaneFailure(
                    index=index,
                    lane_id=e.lane_id,
                    error=str(e),
                    missing_fields=e.missing_fields,
                    invalid_fields=e.invalid_fields,
                )
            )
            continue
        positions.append(index)
    return lanes, positions, rejected


def export_lanes(
    payload: ExportRequest,
    *,
    directory: CityDirectory | None = None,
    verifier: CityVerifier | None = None,
    verification_sink: VerificationSink | None = None,
    contact_methods: Sequence[str] | None = None,
) -> ExportResponse:
    methods = tuple(contact_methods if contact_methods is not None else settings.contact_methods)
    lanes, positions, rejected = _build_lanes(payload)

    batch = process_lanes(
        lanes,
        directory=directory,
        radius_miles=payload.radius_miles,
        target_count=payload.target_count,
        verifier=verifier,
        verification_sink=verification_sink,
    )
    # Report failures against the submitted lane positions.
    for failure in batch.failures:
        failure.index = positions[failure.index]
    batch.failures = sorted(batch.failures + rejected, key=lambda failure: failure.index)
    summary = export_summary(batch, methods)
    rows = posting_rows(batch.sequences, methods)

    output_dir: str | None = None
    if payload.persist:
        run_dir = FileStorage().save_export(
            posting_rows_to_csv(batch.sequences, methods), summary, label=payload.run_label
        )
        output_dir = str(run_dir)
        logger.info(f"Persisted {summary['row_count']} posting rows to {run_dir}")

    return ExportResponse(
        lane_count=summary["lane_count"],
        row_count=summary["row_count"],
        rows=rows,
        failures=[LaneFailureModel(**failure) for failure in summary["failures"]],
        output_dir=output_dir,
    )
