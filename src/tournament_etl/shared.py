"""tournament_etl.shared

Shared pieces used across the pipeline stages: exception taxonomy,
RejectWriter for skipped source rows, the RunReport accumulator and
report-writing support.
"""

from __future__ import annotations

import csv
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class ProviderError(Exception):
    """Raised when an upstream source cannot be fetched or decoded."""


class CommitError(Exception):
    """Raised when the transactional write to the relational store fails."""


# ---------------------------------------------------------------------------
# RejectWriter
# ---------------------------------------------------------------------------

class RejectWriter:
    """Lazy-open CSV writer for source rows the fixture builder skipped."""

    def __init__(self, path: Path) -> None:
        self._path = path
        self._fh = None
        self._writer = None
        self._fieldnames: list[str] = []

    def write(self, row: dict[str, Any], reason: str, group_id: str = "") -> None:
        if self._fh is None:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._fh = open(self._path, "w", newline="", encoding="utf-8")
            self._fieldnames = ["_group_id"] + list(row.keys()) + ["_reject_reason"]
            self._writer = csv.DictWriter(
                self._fh, fieldnames=self._fieldnames, extrasaction="ignore"
            )
            self._writer.writeheader()
        out = {"_group_id": group_id, **row, "_reject_reason": reason}
        self._writer.writerow(out)
        self._fh.flush()

    def close(self) -> None:
        if self._fh:
            self._fh.close()
            self._fh = None


# ---------------------------------------------------------------------------
# Write counters
# ---------------------------------------------------------------------------

@dataclass
class WriteCounters:
    tournament_inserted: int = 0
    tournament_updated: int = 0
    groups_inserted: int = 0
    groups_updated: int = 0
    teams_inserted: int = 0
    teams_updated: int = 0
    fixtures_inserted: int = 0
    fixtures_updated: int = 0
    results_inserted: int = 0
    results_updated: int = 0
    files_written: list[str] = field(default_factory=list)

    def record(self, entity: str, inserted: bool) -> None:
        attr = f"{entity}_{'inserted' if inserted else 'updated'}"
        setattr(self, attr, getattr(self, attr) + 1)

    def to_dict(self) -> dict[str, Any]:
        return {
            "tournament_inserted": self.tournament_inserted,
            "tournament_updated": self.tournament_updated,
            "groups_inserted": self.groups_inserted,
            "groups_updated": self.groups_updated,
            "teams_inserted": self.teams_inserted,
            "teams_updated": self.teams_updated,
            "fixtures_inserted": self.fixtures_inserted,
            "fixtures_updated": self.fixtures_updated,
            "results_inserted": self.results_inserted,
            "results_updated": self.results_updated,
            "files_written": self.files_written,
        }


# ---------------------------------------------------------------------------
# RunReport
# ---------------------------------------------------------------------------

@dataclass
class RunReport:
    run_id: str
    started_at: str
    meta: dict[str, Any]
    counts: dict[str, int] = field(
        default_factory=lambda: {"groups": 0, "teams": 0, "fixtures": 0, "results": 0}
    )
    duplicates: list[dict[str, str]] = field(default_factory=list)
    validation_errors: list[str] = field(default_factory=list)
    missing_teams: list[dict[str, str]] = field(default_factory=list)
    per_group: dict[str, dict[str, int]] = field(default_factory=dict)
    skipped_rows: list[dict[str, Any]] = field(default_factory=list)
    writes: WriteCounters = field(default_factory=WriteCounters)
    commit_error: str | None = None

    @property
    def commit(self) -> bool:
        return bool(self.meta.get("commit"))

    def to_dict(self) -> dict[str, Any]:
        return {
            "runId": self.run_id,
            "startedAt": self.started_at,
            "finishedAt": datetime.now(timezone.utc).isoformat(),
            "meta": self.meta,
            "counts": self.counts,
            "duplicates": self.duplicates,
            "validationErrors": self.validation_errors,
            "missingTeams": self.missing_teams,
            "perGroup": self.per_group,
            "skippedRows": self.skipped_rows,
            "writes": self.writes.to_dict(),
            "commitError": self.commit_error,
        }


# ---------------------------------------------------------------------------
# Report writer
# ---------------------------------------------------------------------------

def report_file_name(commit: bool, now: datetime | None = None) -> str:
    """'2025-06-01T09-30-00-000Z_preview.json' style name (UTC)."""
    now = now or datetime.now(timezone.utc)
    stamp = now.astimezone(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S")
    millis = now.microsecond // 1000
    suffix = "commit" if commit else "preview"
    return f"{stamp}-{millis:03d}Z_{suffix}.json"


def write_run_report(
    report: RunReport,
    report_dir: Path,
    now: datetime | None = None,
) -> Path:
    report_dir.mkdir(parents=True, exist_ok=True)
    report_path = report_dir / report_file_name(report.commit, now)
    report_path.write_text(
        json.dumps(report.to_dict(), indent=2, default=str), encoding="utf-8"
    )
    return report_path
