"""tournament_etl.store

Natural-key upserts for the five canonical tables. Each helper issues one
INSERT ... ON CONFLICT DO UPDATE that overwrites every mutable column and
returns True when the row was inserted, False when an existing row was
updated. Caller manages the transaction.
"""

from __future__ import annotations

from datetime import date
from typing import Any

import psycopg


def _inserted(row: tuple[Any, ...] | None) -> bool:
    return bool(row[0]) if row else False


def _score_text(value: Any) -> str:
    return "" if value is None or value == "" else str(value)


def upsert_tournament(conn: psycopg.Connection, row: dict[str, Any]) -> bool:
    rec = conn.execute(
        """
        INSERT INTO tournament (id, name, source, source_row_hash, ingested_at)
        VALUES (%(id)s, %(name)s, %(source)s, %(source_row_hash)s, %(ingested_at)s)
        ON CONFLICT (id) DO UPDATE SET
          name = EXCLUDED.name,
          source = EXCLUDED.source,
          source_row_hash = EXCLUDED.source_row_hash,
          ingested_at = EXCLUDED.ingested_at
        RETURNING (xmax = 0) AS inserted
        """,
        row,
    ).fetchone()
    return _inserted(rec)


def upsert_group(conn: psycopg.Connection, row: dict[str, Any]) -> bool:
    rec = conn.execute(
        """
        INSERT INTO groups (tournament_id, id, label, source, source_row_hash, ingested_at)
        VALUES (%(tournament_id)s, %(id)s, %(label)s,
                %(source)s, %(source_row_hash)s, %(ingested_at)s)
        ON CONFLICT (tournament_id, id) DO UPDATE SET
          label = EXCLUDED.label,
          source = EXCLUDED.source,
          source_row_hash = EXCLUDED.source_row_hash,
          ingested_at = EXCLUDED.ingested_at
        RETURNING (xmax = 0) AS inserted
        """,
        row,
    ).fetchone()
    return _inserted(rec)


def upsert_team(conn: psycopg.Connection, row: dict[str, Any]) -> bool:
    rec = conn.execute(
        """
        INSERT INTO team
          (tournament_id, id, group_id, name, is_placeholder,
           source, source_row_hash, ingested_at)
        VALUES (%(tournament_id)s, %(id)s, %(group_id)s, %(name)s, %(is_placeholder)s,
                %(source)s, %(source_row_hash)s, %(ingested_at)s)
        ON CONFLICT (tournament_id, id) DO UPDATE SET
          group_id = EXCLUDED.group_id,
          name = EXCLUDED.name,
          is_placeholder = EXCLUDED.is_placeholder,
          source = EXCLUDED.source,
          source_row_hash = EXCLUDED.source_row_hash,
          ingested_at = EXCLUDED.ingested_at
        RETURNING (xmax = 0) AS inserted
        """,
        row,
    ).fetchone()
    return _inserted(rec)


def upsert_fixture(conn: psycopg.Connection, row: dict[str, Any]) -> bool:
    params = dict(row)
    params["date"] = date.fromisoformat(row["date"])
    params["score1"] = _score_text(row["score1"])
    params["score2"] = _score_text(row["score2"])
    rec = conn.execute(
        """
        INSERT INTO fixture
          (tournament_id, id, group_id, date, time, venue, round, pool,
           team1, team2, team1_id, team2_id, fixture_key,
           score1, score2, status,
           source, source_row_hash, ingested_at)
        VALUES (%(tournament_id)s, %(id)s, %(group_id)s, %(date)s, %(time)s,
                %(venue)s, %(round)s, %(pool)s,
                %(team1)s, %(team2)s, %(team1_id)s, %(team2_id)s, %(fixture_key)s,
                %(score1)s, %(score2)s, %(status)s,
                %(source)s, %(source_row_hash)s, %(ingested_at)s)
        ON CONFLICT (tournament_id, id) DO UPDATE SET
          group_id = EXCLUDED.group_id,
          date = EXCLUDED.date,
          time = EXCLUDED.time,
          venue = EXCLUDED.venue,
          round = EXCLUDED.round,
          pool = EXCLUDED.pool,
          team1 = EXCLUDED.team1,
          team2 = EXCLUDED.team2,
          team1_id = EXCLUDED.team1_id,
          team2_id = EXCLUDED.team2_id,
          fixture_key = EXCLUDED.fixture_key,
          score1 = EXCLUDED.score1,
          score2 = EXCLUDED.score2,
          status = EXCLUDED.status,
          source = EXCLUDED.source,
          source_row_hash = EXCLUDED.source_row_hash,
          ingested_at = EXCLUDED.ingested_at
        RETURNING (xmax = 0) AS inserted
        """,
        params,
    ).fetchone()
    return _inserted(rec)


def upsert_result(conn: psycopg.Connection, row: dict[str, Any]) -> bool:
    rec = conn.execute(
        """
        INSERT INTO result
          (tournament_id, fixture_id, score1, score2, status, updated_at,
           source, source_row_hash, ingested_at)
        VALUES (%(tournament_id)s, %(fixture_id)s, %(score1)s, %(score2)s, %(status)s,
                %(ingested_at)s, %(source)s, %(source_row_hash)s, %(ingested_at)s)
        ON CONFLICT (tournament_id, fixture_id) DO UPDATE SET
          score1 = EXCLUDED.score1,
          score2 = EXCLUDED.score2,
          status = EXCLUDED.status,
          updated_at = EXCLUDED.updated_at,
          source = EXCLUDED.source,
          source_row_hash = EXCLUDED.source_row_hash,
          ingested_at = EXCLUDED.ingested_at
        RETURNING (xmax = 0) AS inserted
        """,
        row,
    ).fetchone()
    return _inserted(rec)
