"""tournament_etl.sinks

Output side of the pipeline. build_tables() turns the built entities into
five flat tables with provenance columns; a Sink then persists them:

  PostgresSink: one connection, one transaction, natural-key upserts in
    dependency order; any failure rolls everything back
  CsvExportSink: one CSV file per table in a target directory
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Iterator, Protocol

import psycopg

from tournament_etl.build import Fixture, Result, Team
from tournament_etl.config import pg_connect_kwargs
from tournament_etl.csv_text import write_csv_file
from tournament_etl.identity import row_hash
from tournament_etl.providers import Group
from tournament_etl.shared import CommitError, WriteCounters
from tournament_etl.store import (
    upsert_fixture,
    upsert_group,
    upsert_result,
    upsert_team,
    upsert_tournament,
)

log = logging.getLogger(__name__)

META_COLUMNS = ["source", "source_row_hash", "ingested_at"]

TOURNAMENT_COLUMNS = ["id", "name"]
GROUP_COLUMNS = ["tournament_id", "id", "label"]
TEAM_COLUMNS = ["tournament_id", "id", "group_id", "name", "is_placeholder"]
FIXTURE_COLUMNS = [
    "tournament_id", "id", "group_id", "date", "time", "venue", "round", "pool",
    "team1", "team2", "team1_id", "team2_id", "fixture_key",
    "score1", "score2", "status",
]
RESULT_COLUMNS = ["tournament_id", "fixture_id", "score1", "score2", "status"]


# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------

@dataclass
class Table:
    name: str
    entity: str
    columns: list[str]
    rows: list[dict[str, Any]] = field(default_factory=list)


@dataclass
class TableSet:
    tournament: Table
    groups: Table
    teams: Table
    fixtures: Table
    results: Table

    def __iter__(self) -> Iterator[Table]:
        # Dependency order: parents before children
        return iter([self.tournament, self.groups, self.teams, self.fixtures, self.results])


def _with_meta(entity: dict[str, Any], source: str, ingested_at: datetime) -> dict[str, Any]:
    return {
        **entity,
        "source": source,
        "source_row_hash": row_hash(entity),
        "ingested_at": ingested_at,
    }


def build_tables(
    tournament_id: str,
    source: str,
    groups: list[Group],
    teams: list[Team],
    fixtures: list[Fixture],
    results: list[Result],
    ingested_at: datetime,
    tournament_name: str | None = None,
) -> TableSet:
    """Project entities onto table rows, stamping source/hash/ingested_at."""
    tournament = {"id": tournament_id, "name": tournament_name or tournament_id}
    return TableSet(
        tournament=Table(
            "tournament", "tournament", TOURNAMENT_COLUMNS + META_COLUMNS,
            [_with_meta(tournament, source, ingested_at)],
        ),
        groups=Table(
            "groups", "groups", GROUP_COLUMNS + META_COLUMNS,
            [
                _with_meta(
                    {"tournament_id": tournament_id, "id": g.id, "label": g.label},
                    source, ingested_at,
                )
                for g in groups
            ],
        ),
        teams=Table(
            "team", "teams", TEAM_COLUMNS + META_COLUMNS,
            [_with_meta(t.to_dict(), source, ingested_at) for t in teams],
        ),
        fixtures=Table(
            "fixture", "fixtures", FIXTURE_COLUMNS + META_COLUMNS,
            [_with_meta(f.to_dict(), source, ingested_at) for f in fixtures],
        ),
        results=Table(
            "result", "results", RESULT_COLUMNS + META_COLUMNS,
            [_with_meta(r.to_dict(), source, ingested_at) for r in results],
        ),
    )


# ---------------------------------------------------------------------------
# Sink contract
# ---------------------------------------------------------------------------

class Sink(Protocol):
    counters: WriteCounters

    def write(self, tables: TableSet) -> None:
        ...


# ---------------------------------------------------------------------------
# Relational upsert
# ---------------------------------------------------------------------------

UPSERTS: dict[str, Callable[[psycopg.Connection, dict[str, Any]], bool]] = {
    "tournament": upsert_tournament,
    "groups": upsert_group,
    "team": upsert_team,
    "fixture": upsert_fixture,
    "result": upsert_result,
}


class PostgresSink:
    def __init__(self, database_url: str, connect_kwargs: dict[str, Any] | None = None) -> None:
        self.database_url = database_url
        self.connect_kwargs = pg_connect_kwargs() if connect_kwargs is None else connect_kwargs
        self.counters = WriteCounters()

    def write(self, tables: TableSet) -> None:
        pending = WriteCounters()
        try:
            conn = psycopg.connect(self.database_url, autocommit=False, **self.connect_kwargs)
        except psycopg.Error as exc:
            raise CommitError(f"could not connect to database: {exc}") from exc
        try:
            with conn.transaction():
                for table in tables:
                    upsert = UPSERTS[table.name]
                    for row in table.rows:
                        pending.record(table.entity, upsert(conn, row))
                    log.info("Upserted %d %s row(s)", len(table.rows), table.name)
        except (psycopg.Error, ValueError) as exc:
            raise CommitError(f"commit failed and was rolled back: {exc}") from exc
        finally:
            conn.close()
        self.counters = pending


# ---------------------------------------------------------------------------
# CSV export
# ---------------------------------------------------------------------------

def _export_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    return value


class CsvExportSink:
    def __init__(self, export_dir: Path) -> None:
        self.export_dir = export_dir
        self.counters = WriteCounters()

    def write(self, tables: TableSet) -> None:
        self.export_dir.mkdir(parents=True, exist_ok=True)
        for table in tables:
            path = self.export_dir / f"{table.name}.csv"
            write_csv_file(
                path,
                table.columns,
                ([_export_value(row.get(col)) for col in table.columns] for row in table.rows),
            )
            self.counters.files_written.append(str(path))
            log.info("Exported %d %s row(s) to %s", len(table.rows), table.name, path)
