"""Error types raised by the lane pairing core."""

from __future__ import annotations

from typing import Sequence


class InvalidLaneInput(ValueError):
    """A lane is missing required fields or carries values that cannot be used."""

    def __init__(
        self,
        missing_fields: Sequence[str] = (),
        lane_id: str | None = None,
        invalid_fields: Sequence[str] = (),
    ) -> None:
        self.missing_fields = tuple(missing_fields)
        self.invalid_fields = tuple(invalid_fields)
        self.lane_id = lane_id
        label = f"Lane '{lane_id}'" if lane_id else "Lane"
        problems = []
        if self.missing_fields:
            problems.append(f"missing required fields: {', '.join(self.missing_fields)}")
        if self.invalid_fields:
            problems.append(f"invalid values for: {', '.join(self.invalid_fields)}")
        super().__init__(f"{label} has {'; '.join(problems) or 'invalid input'}")

    @property
    def fields(self) -> tuple[str, ...]:
        return self.missing_fields + self.invalid_fields


class DirectoryUnavailable(RuntimeError):
    """The city directory could not answer a query (network, timeout, bad payload)."""


class VerificationUnavailable(RuntimeError):
    """The geocode verification service failed or timed out."""
