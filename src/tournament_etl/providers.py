"""tournament_etl.providers

Source loaders. Both providers return the same SourceBundle shape so the
builders never need to know where rows came from:

  ApiProvider: Apps Script JSON API, one fixtures + one standings
    request per group, issued sequentially
  SheetsCsvProvider: two whole-sheet CSV exports; groups are derived from
    the group-id column of the rows

Any network, HTTP-status or decode failure raises ProviderError and the
whole load is abandoned; no partially loaded bundle is ever returned.
"""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

import requests

from tournament_etl.config import SOURCE_API, SOURCE_CSV, IngestConfig
from tournament_etl.csv_text import csv_to_objects
from tournament_etl.normalize import text
from tournament_etl.shared import ProviderError

log = logging.getLogger(__name__)

REQUEST_TIMEOUT = 30
SHEETS_CSV_URL = "https://docs.google.com/spreadsheets/d/{sheet_id}/export?format=csv"

GROUP_ID_FIELDS = ("ageId", "Age", "age")
DEFAULT_GROUP_ID = "default"

# Lower-cased source header → canonical field name used by the builders.
CANONICAL_FIELDS = {
    "team1": "Team1",
    "team2": "Team2",
    "date": "Date",
    "time": "Time",
    "venue": "Venue",
    "round": "Round",
    "pool": "Pool",
    "score1": "Score1",
    "score2": "Score2",
    "status": "Status",
    "team": "Team",
    "ageid": "ageId",
}


# ---------------------------------------------------------------------------
# Bundle + contract
# ---------------------------------------------------------------------------

@dataclass
class Group:
    id: str
    label: str


@dataclass
class SourceBundle:
    source: str
    groups: list[Group]
    fixtures_by_group: dict[str, list[dict[str, Any]]] = field(default_factory=dict)
    standings_by_group: dict[str, list[dict[str, Any]]] = field(default_factory=dict)


class Provider(Protocol):
    source: str

    def load(self) -> SourceBundle:
        ...


# ---------------------------------------------------------------------------
# Row helpers
# ---------------------------------------------------------------------------

def normalize_row(row: dict[str, Any]) -> dict[str, Any]:
    """Map known headers to their canonical spelling; other keys pass through.

    Header keys are whitespace-stripped. When two source headers map to the
    same canonical name the first non-blank value wins.
    """
    out: dict[str, Any] = {}
    for key, value in row.items():
        name = str(key).strip()
        canonical = CANONICAL_FIELDS.get(name.lower(), name)
        if canonical in out and text(out[canonical]):
            continue
        out[canonical] = value
    return out


def row_group_id(row: dict[str, Any]) -> str:
    for name in GROUP_ID_FIELDS:
        value = text(row.get(name))
        if value:
            return value
    return ""


def sheet_group_id(row: dict[str, Any]) -> str:
    """Group id for a CSV row; sheets without any group column share one group."""
    if not any(name in row for name in GROUP_ID_FIELDS):
        return DEFAULT_GROUP_ID
    return row_group_id(row)


def _filter_groups(groups: list[Group], limit_groups: list[str]) -> list[Group]:
    if not limit_groups:
        return groups
    allow = set(limit_groups)
    return [g for g in groups if g.id in allow]


def _get(session: requests.Session, url: str, params: dict[str, str] | None = None) -> requests.Response:
    log.debug("GET %s params=%s", url, params)
    try:
        resp = session.get(url, params=params, timeout=REQUEST_TIMEOUT)
    except requests.RequestException as exc:
        raise ProviderError(f"request failed for {url}: {exc}") from exc
    if not resp.ok:
        raise ProviderError(f"HTTP {resp.status_code} for {resp.url}")
    return resp


def _get_json(session: requests.Session, url: str, params: dict[str, str]) -> dict[str, Any]:
    resp = _get(session, url, params)
    try:
        payload = resp.json()
    except ValueError as exc:
        raise ProviderError(f"invalid JSON from {resp.url}: {exc}") from exc
    if not isinstance(payload, dict):
        raise ProviderError(f"unexpected JSON payload from {resp.url}")
    return payload


# ---------------------------------------------------------------------------
# Provider A: Apps Script JSON API
# ---------------------------------------------------------------------------

class ApiProvider:
    source = SOURCE_API

    def __init__(
        self,
        api_base: str,
        limit_groups: list[str] | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.api_base = api_base
        self.limit_groups = limit_groups or []
        self._session = session or requests.Session()

    def load(self) -> SourceBundle:
        payload = _get_json(self._session, self.api_base, {"groups": "1"})
        groups = [
            Group(id=text(g.get("id")), label=text(g.get("label")))
            for g in payload.get("groups") or []
        ]
        groups = _filter_groups(groups, self.limit_groups)
        bundle = SourceBundle(source=self.source, groups=groups)

        for group in groups:
            fixtures = _get_json(
                self._session, self.api_base, {"sheet": "Fixtures", "age": group.id}
            )
            standings = _get_json(
                self._session, self.api_base, {"sheet": "Standings", "age": group.id}
            )
            bundle.fixtures_by_group[group.id] = [
                normalize_row(r) for r in fixtures.get("rows") or []
            ]
            bundle.standings_by_group[group.id] = [
                normalize_row(r) for r in standings.get("rows") or []
            ]
            log.info(
                "Loaded group %s: %d fixture rows, %d standings rows",
                group.id,
                len(bundle.fixtures_by_group[group.id]),
                len(bundle.standings_by_group[group.id]),
            )
        return bundle


# ---------------------------------------------------------------------------
# Provider B: Google Sheets CSV export
# ---------------------------------------------------------------------------

def derive_groups(rows: list[dict[str, Any]]) -> list[Group]:
    """Distinct group ids in first-seen order; label mirrors the id."""
    seen: dict[str, Group] = {}
    for row in rows:
        gid = sheet_group_id(row)
        if gid and gid not in seen:
            seen[gid] = Group(id=gid, label=gid)
    return list(seen.values())


class SheetsCsvProvider:
    source = SOURCE_CSV

    def __init__(
        self,
        fixtures_sheet_id: str | None,
        teams_sheet_id: str | None,
        limit_groups: list[str] | None = None,
        session: requests.Session | None = None,
        url_template: str = SHEETS_CSV_URL,
    ) -> None:
        self.fixtures_sheet_id = fixtures_sheet_id
        self.teams_sheet_id = teams_sheet_id
        self.limit_groups = limit_groups or []
        self.url_template = url_template
        self._session = session or requests.Session()

    def _fetch_rows(self, sheet_id: str) -> list[dict[str, Any]]:
        resp = _get(self._session, self.url_template.format(sheet_id=sheet_id))
        body = resp.content.decode("utf-8-sig", errors="replace")
        try:
            rows = csv_to_objects(body)
        except csv.Error as exc:
            raise ProviderError(f"malformed CSV from {resp.url}: {exc}") from exc
        return [normalize_row(r) for r in rows]

    def load(self) -> SourceBundle:
        if not self.fixtures_sheet_id or not self.teams_sheet_id:
            raise ProviderError(
                "fixtures and teams sheet ids are required when no API base is set"
            )
        fixture_rows = self._fetch_rows(self.fixtures_sheet_id)
        standings_rows = self._fetch_rows(self.teams_sheet_id)

        groups = _filter_groups(derive_groups(fixture_rows + standings_rows), self.limit_groups)
        allow = {g.id for g in groups}
        bundle = SourceBundle(source=self.source, groups=groups)

        for target, rows in (
            (bundle.fixtures_by_group, fixture_rows),
            (bundle.standings_by_group, standings_rows),
        ):
            for row in rows:
                gid = sheet_group_id(row)
                if not gid or gid not in allow:
                    continue
                target.setdefault(gid, []).append(row)

        log.info(
            "Loaded %d fixture rows and %d standings rows across %d groups",
            len(fixture_rows), len(standings_rows), len(groups),
        )
        return bundle


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------

def select_provider(
    config: IngestConfig,
    session: requests.Session | None = None,
) -> ApiProvider | SheetsCsvProvider:
    """Pick the provider once, up front: API base set → API, else CSV."""
    if config.api_base:
        return ApiProvider(config.api_base, config.limit_groups, session=session)
    return SheetsCsvProvider(
        config.fixtures_sheet_id,
        config.teams_sheet_id,
        config.limit_groups,
        session=session,
    )
