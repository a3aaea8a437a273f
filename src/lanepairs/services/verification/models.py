"""Verification result types."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True, slots=True)
class GeocodeMatch:
    city: str
    state: str
    latitude: float
    longitude: float
    postal_code: str = ""


@dataclass(frozen=True, slots=True)
class VerificationResult:
    verified: bool
    data: Optional[GeocodeMatch] = None
    error: Optional[str] = None
    candidates: tuple[GeocodeMatch, ...] = field(default_factory=tuple)
