"""tournament_etl.build

Sink-agnostic construction of the canonical entities from a SourceBundle.

Design decisions:
  - Standings are the primary source of team names; teams that appear only
    in fixtures are still created but reported as missing_teams
  - is_placeholder is decided once, when a team is first seen
  - Fixture rows are processed in source order per group; a blank Date
    inherits the last valid date, an unparseable Date drops the row
  - Duplicate fixture keys within a group: first occurrence wins
  - Fixture keeps '' for an empty score, Result uses None
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Any

from tournament_etl.identity import fixture_id, team_id
from tournament_etl.normalize import (
    is_placeholder_team,
    normalize_date,
    normalize_score,
    text,
)
from tournament_etl.providers import Group

log = logging.getLogger(__name__)

SKIP_UNPARSEABLE_DATE = "unparseable_date"
SKIP_NO_DATE = "no_date"
SKIP_MISSING_TEAM = "missing_team"

Score = int | float | str


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------

@dataclass
class Team:
    tournament_id: str
    id: str
    group_id: str
    name: str
    is_placeholder: bool

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class Fixture:
    tournament_id: str
    id: str
    group_id: str
    date: str
    time: str
    venue: str
    round: str
    pool: str
    team1: str
    team2: str
    team1_id: str
    team2_id: str
    fixture_key: str
    score1: Score
    score2: Score
    status: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class Result:
    tournament_id: str
    fixture_id: str
    score1: int | float | None
    score2: int | float | None
    status: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class SkippedRow:
    group_id: str
    index: int
    reason: str
    row: dict[str, Any]

    def to_report(self) -> dict[str, Any]:
        return {
            "groupId": self.group_id,
            "row": self.index,
            "reason": self.reason,
            "date": text(self.row.get("Date")),
        }


@dataclass
class TeamBuild:
    teams: list[Team] = field(default_factory=list)
    missing_teams: list[dict[str, str]] = field(default_factory=list)


@dataclass
class FixtureBuild:
    fixtures: list[Fixture] = field(default_factory=list)
    duplicates: list[dict[str, str]] = field(default_factory=list)
    skipped: list[SkippedRow] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def validate_groups(groups: list[Group]) -> list[str]:
    """Return validation errors for groups lacking an id or a label."""
    errors: list[str] = []
    for g in groups:
        if not g.id:
            errors.append("Group missing id")
        if not g.label:
            errors.append(f"Group {g.id or '(unknown)'} missing label")
    return errors


# ---------------------------------------------------------------------------
# Teams
# ---------------------------------------------------------------------------

def build_teams(
    tournament_id: str,
    standings_by_group: dict[str, list[dict[str, Any]]],
    fixtures_by_group: dict[str, list[dict[str, Any]]],
) -> TeamBuild:
    out = TeamBuild()
    known: set[tuple[str, str]] = set()

    def add(group_id: str, name: str) -> bool:
        tid = team_id(tournament_id, group_id, name)
        if (group_id, tid) in known:
            return False
        known.add((group_id, tid))
        out.teams.append(
            Team(
                tournament_id=tournament_id,
                id=tid,
                group_id=group_id,
                name=name,
                is_placeholder=is_placeholder_team(name),
            )
        )
        return True

    for group_id, rows in standings_by_group.items():
        for row in rows:
            name = text(row.get("Team"))
            if name:
                add(group_id, name)

    for group_id, rows in fixtures_by_group.items():
        for row in rows:
            for col in ("Team1", "Team2"):
                name = text(row.get(col))
                if name and add(group_id, name):
                    out.missing_teams.append({"groupId": group_id, "team": name})

    if out.missing_teams:
        log.warning("%d team(s) found in fixtures but not in standings", len(out.missing_teams))
    return out


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

def make_fixture_key(
    date: str, time: str, team1: str, team2: str, venue: str, round_: str, pool: str
) -> str:
    return "|".join([date, time, team1, team2, venue, round_, pool])


def build_fixtures(
    tournament_id: str,
    fixtures_by_group: dict[str, list[dict[str, Any]]],
) -> FixtureBuild:
    out = FixtureBuild()
    seen: set[tuple[str, str]] = set()

    for group_id, rows in fixtures_by_group.items():
        last_valid_date = ""
        for idx, row in enumerate(rows, start=1):
            date_raw = text(row.get("Date"))
            if date_raw:
                date = normalize_date(date_raw)
                if not date:
                    out.skipped.append(SkippedRow(group_id, idx, SKIP_UNPARSEABLE_DATE, row))
                    continue
                last_valid_date = date
            elif last_valid_date:
                date = last_valid_date
            else:
                out.skipped.append(SkippedRow(group_id, idx, SKIP_NO_DATE, row))
                continue

            team1 = text(row.get("Team1"))
            team2 = text(row.get("Team2"))
            if not team1 or not team2:
                # Day headers and notes carry a date but no teams
                out.skipped.append(SkippedRow(group_id, idx, SKIP_MISSING_TEAM, row))
                continue

            time = text(row.get("Time"))
            venue = text(row.get("Venue"))
            round_ = text(row.get("Round"))
            pool = text(row.get("Pool"))

            key = make_fixture_key(date, time, team1, team2, venue, round_, pool)
            if (group_id, key) in seen:
                out.duplicates.append({"groupId": group_id, "fixtureKey": key})
                continue
            seen.add((group_id, key))

            out.fixtures.append(
                Fixture(
                    tournament_id=tournament_id,
                    id=fixture_id(tournament_id, group_id, key),
                    group_id=group_id,
                    date=date,
                    time=time,
                    venue=venue,
                    round=round_,
                    pool=pool,
                    team1=team1,
                    team2=team2,
                    team1_id=team_id(tournament_id, group_id, team1),
                    team2_id=team_id(tournament_id, group_id, team2),
                    fixture_key=key,
                    score1=normalize_score(row.get("Score1")),
                    score2=normalize_score(row.get("Score2")),
                    status=text(row.get("Status")),
                )
            )

    if out.duplicates:
        log.warning("%d duplicate fixture row(s) dropped", len(out.duplicates))
    return out


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

def build_results(fixtures: list[Fixture]) -> list[Result]:
    results = []
    for fx in fixtures:
        final = fx.score1 != "" and fx.score2 != ""
        results.append(
            Result(
                tournament_id=fx.tournament_id,
                fixture_id=fx.id,
                score1=None if fx.score1 == "" else fx.score1,
                score2=None if fx.score2 == "" else fx.score2,
                status="Final" if final else "",
            )
        )
    return results


def per_group_counts(
    groups: list[Group], fixtures: list[Fixture], teams: list[Team]
) -> dict[str, dict[str, int]]:
    out = {g.id: {"fixtures": 0, "teams": 0} for g in groups}
    for fx in fixtures:
        if fx.group_id in out:
            out[fx.group_id]["fixtures"] += 1
    for t in teams:
        if t.group_id in out:
            out[t.group_id]["teams"] += 1
    return out
