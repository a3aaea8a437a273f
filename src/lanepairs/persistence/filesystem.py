"""File-based persistence for posting exports."""

from __future__ import annotations

import json
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from ..config import settings

POSTINGS_FILENAME = "postings.csv"
SUMMARY_FILENAME = "summary.json"


def run_prefix(label: str | None, default: str = "exports") -> str:
    """Directory prefix for a run, e.g. ``exports_week_42`` for label ``"week 42"``."""
    slug = re.sub(r"[^A-Za-z0-9_-]+", "_", label or "").strip("_")
    return f"{default}_{slug}" if slug else default


class FileStorage:
    """Export runs under ``<data_root>/outputs``, one timestamped directory per run."""

    def __init__(self, root: Path | None = None) -> None:
        self.root = (root or settings.data_root).resolve()
        self.output_root = self.root / "outputs"
        self.output_root.mkdir(parents=True, exist_ok=True)

    def make_run_directory(self, prefix: str = "exports") -> Path:
        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
        path = self.output_root / f"{prefix}_{stamp}"
        path.mkdir(parents=True, exist_ok=False)
        return path

    def write_json(self, path: Path, data: Any, *, indent: int = 2) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data, ensure_ascii=False, indent=indent), encoding="utf-8")

    def write_csv(self, path: Path, content: str) -> None:
        # newline="" keeps the csv module's \r\n row endings intact.
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8", newline="") as handle:
            handle.write(content)

    def save_export(self, postings_csv: str, summary: dict, label: str | None = None) -> Path:
        run_dir = self.make_run_directory(prefix=run_prefix(label))
        self.write_csv(run_dir / POSTINGS_FILENAME, postings_csv)
        self.write_json(run_dir / SUMMARY_FILENAME, summary)
        return run_dir
