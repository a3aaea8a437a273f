"""Lane pairing and export endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status

from ...config import settings
from ...data.city_repository import get_city_directory
from ...models.domain import Lane
from ...schemas.lanes import ExportRequest, ExportResponse, PairRequest, PairSequenceResponse
from ...services.pairing.service import generate_lane_pairs
from ...services.posting.expander import row_count
from ...services.posting.service import export_lanes
from ...services.verification.verifier import directory_sink, get_city_verifier

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/lanes", tags=["lanes"])


@router.post("/pairs", response_model=PairSequenceResponse, status_code=status.HTTP_200_OK)
def lane_pairs(payload: PairRequest) -> PairSequenceResponse:
    try:
        lane = Lane.from_record(payload.lane.model_dump())
        directory = get_city_directory()
        sequence = generate_lane_pairs(
            lane,
            directory=directory,
            radius_miles=payload.radius_miles,
            verifier=get_city_verifier(),
            verification_sink=directory_sink(directory),
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception(f"Error generating lane pairs: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to generate lane pairs: {str(exc)}",
        ) from exc
    return PairSequenceResponse.from_sequence(sequence, row_count(sequence, len(settings.contact_methods)))


@router.post("/export", response_model=ExportResponse, status_code=status.HTTP_200_OK)
def export(payload: ExportRequest) -> ExportResponse:
    try:
        directory = get_city_directory()
        return export_lanes(
            payload,
            directory=directory,
            verifier=get_city_verifier(),
            verification_sink=directory_sink(directory),
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception(f"Error exporting lanes: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to export lanes: {str(exc)}",
        ) from exc
