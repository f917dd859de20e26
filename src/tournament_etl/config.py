"""tournament_etl.config

Resolved run configuration. The CLI collects flags (with environment
fallbacks) into an IngestConfig; everything downstream reads from it.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

DEFAULT_TOURNAMENT_ID = "hj-indoor-allstars-2025"
DEFAULT_REPORT_DIR = "reports/ingestion"

SOURCE_API = "AppsScript"
SOURCE_CSV = "SheetsCSV"

_TRUTHY = {"1", "true", "yes"}
CA_CERT_ENV_VARS = ("PG_CA_CERT", "SUPABASE_CA_CERT")


@dataclass
class IngestConfig:
    tournament_id: str = DEFAULT_TOURNAMENT_ID
    fixtures_sheet_id: str | None = None
    teams_sheet_id: str | None = None
    api_base: str | None = None
    database_url: str | None = None
    commit: bool = False
    report_dir: Path = Path(DEFAULT_REPORT_DIR)
    limit_groups: list[str] = field(default_factory=list)
    export_dir: Path | None = None
    rejects_path: Path | None = None

    @property
    def provider_name(self) -> str:
        return SOURCE_API if self.api_base else SOURCE_CSV

    @property
    def output_mode(self) -> str:
        """'export', 'commit' or 'preview'; export wins over commit."""
        if self.export_dir is not None:
            return "export"
        if self.commit:
            return "commit"
        return "preview"

    def report_meta(self) -> dict[str, Any]:
        return {
            "commit": self.commit,
            "tournamentId": self.tournament_id,
            "fixturesSheetId": self.fixtures_sheet_id,
            "teamsSheetId": self.teams_sheet_id,
            "apiBase": self.api_base or None,
            "reportDir": str(self.report_dir),
        }


def parse_limit_groups(raw: str | None) -> list[str]:
    """'U13B, U15G,,' → ['U13B', 'U15G']"""
    if not raw:
        return []
    return [part.strip() for part in raw.split(",") if part.strip()]


# ---------------------------------------------------------------------------
# Postgres TLS settings
# ---------------------------------------------------------------------------

def pg_tls_insecure(env: Mapping[str, str] | None = None) -> bool:
    env = os.environ if env is None else env
    return env.get("PG_TLS_INSECURE", "").strip().lower() in _TRUTHY


def pg_ca_cert_path(env: Mapping[str, str] | None = None) -> str | None:
    """CA bundle path from PG_CA_CERT, falling back to SUPABASE_CA_CERT."""
    env = os.environ if env is None else env
    for name in CA_CERT_ENV_VARS:
        raw = env.get(name, "").strip()
        if raw:
            return raw
    return None


def pg_connect_kwargs(env: Mapping[str, str] | None = None) -> dict[str, str]:
    """Extra psycopg.connect() keywords derived from PG_CA_CERT / PG_TLS_INSECURE.

    A CA bundle takes precedence and turns on full verification; the
    insecure flag keeps TLS but skips certificate checks.
    """
    ca_cert = pg_ca_cert_path(env)
    if ca_cert:
        return {"sslmode": "verify-full", "sslrootcert": ca_cert}
    if pg_tls_insecure(env):
        return {"sslmode": "require"}
    return {}
