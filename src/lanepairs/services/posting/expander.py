"""Row arithmetic for expanding pair sequences into export postings."""

from __future__ import annotations

from typing import Sequence

from ...models.domain import CandidatePair, PostingRow


def _check_methods(contact_methods_per_posting: int) -> int:
    if contact_methods_per_posting < 0:
        raise ValueError(f"contact_methods_per_posting must be >= 0, got {contact_methods_per_posting}")
    return contact_methods_per_posting


def row_count(pair_sequence: Sequence[CandidatePair], contact_methods_per_posting: int) -> int:
    return len(pair_sequence) * _check_methods(contact_methods_per_posting)


def expand(pair_sequence: Sequence[CandidatePair], contact_methods_per_posting: int) -> list[PostingRow]:
    """One row per (pair, contact method), pair order first."""
    methods = _check_methods(contact_methods_per_posting)
    return [PostingRow(pair, contact_index) for pair in pair_sequence for contact_index in range(methods)]
