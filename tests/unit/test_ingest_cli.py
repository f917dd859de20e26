"""CLI tests for tournament_etl.ingest.

Both providers are driven through a patched requests.Session; nothing here
touches the network or a database.
"""

from __future__ import annotations

import csv
import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from tournament_etl.ingest import main
from tournament_etl.shared import CommitError

API_BASE = "https://script.example.com/exec"

# No group column: both sheets collapse into the single default group.
FIXTURES_CSV = (
    "Date,Time,Team1,Team2,Venue,Round,Pool,Score1,Score2\n"
    "2025-06-01,09:00,Lions,Tigers,Court A,Round 1,A,2,\n"
)
TEAMS_CSV = "Team\nLions\nTigers\n"

CLEAN_ENV = {
    "FIXTURES_SHEET_ID": None,
    "TEAMS_SHEET_ID": None,
    "API_BASE": None,
    "DATABASE_URL": None,
    "PG_CA_CERT": None,
    "SUPABASE_CA_CERT": None,
    "PG_TLS_INSECURE": None,
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _response(*, content: bytes = b"", payload=None, status: int = 200) -> MagicMock:
    resp = MagicMock()
    resp.ok = status < 400
    resp.status_code = status
    resp.url = "https://example.com"
    resp.content = content
    resp.json.return_value = payload
    return resp


def _csv_session(fixtures: str = FIXTURES_CSV, teams: str = TEAMS_CSV) -> MagicMock:
    session = MagicMock()

    def get(url, params=None, timeout=None):
        body = fixtures if "/FIX/" in url else teams
        return _response(content=body.encode("utf-8"))

    session.get.side_effect = get
    return session


def _invoke(session: MagicMock, args: list[str], env: dict | None = None):
    runner = CliRunner()
    with patch("tournament_etl.providers.requests.Session", return_value=session):
        return runner.invoke(main, args, env={**CLEAN_ENV, **(env or {})})


def _csv_args(tmp_path: Path, *extra: str) -> list[str]:
    return [
        "--fixtures-sheet-id", "FIX",
        "--teams-sheet-id", "TEAMS",
        "--report-dir", str(tmp_path / "reports"),
        "--run-id", "test-run",
        *extra,
    ]


def _only_report(tmp_path: Path) -> dict:
    reports = list((tmp_path / "reports").glob("*.json"))
    assert len(reports) == 1
    return json.loads(reports[0].read_text(encoding="utf-8"))


# ---------------------------------------------------------------------------
# Preview
# ---------------------------------------------------------------------------

class TestPreview:
    def test_single_default_group_scenario(self, tmp_path):
        result = _invoke(_csv_session(), _csv_args(tmp_path))
        assert result.exit_code == 0, result.output
        assert "Preview complete." in result.output
        assert "Report written:" in result.output

        report = _only_report(tmp_path)
        assert report["counts"] == {"groups": 1, "teams": 2, "fixtures": 1, "results": 1}
        assert report["duplicates"] == []
        assert report["missingTeams"] == []
        assert report["validationErrors"] == []
        assert report["perGroup"] == {"default": {"fixtures": 1, "teams": 2}}
        assert report["meta"]["commit"] is False
        assert report["meta"]["apiBase"] is None
        assert report["runId"] == "test-run"

    def test_report_file_name_marks_preview(self, tmp_path):
        _invoke(_csv_session(), _csv_args(tmp_path))
        (path,) = (tmp_path / "reports").glob("*.json")
        assert path.name.endswith("_preview.json")

    def test_sheet_ids_from_environment(self, tmp_path):
        result = _invoke(
            _csv_session(),
            ["--report-dir", str(tmp_path / "reports")],
            env={"FIXTURES_SHEET_ID": "FIX", "TEAMS_SHEET_ID": "TEAMS"},
        )
        assert result.exit_code == 0, result.output
        assert _only_report(tmp_path)["meta"]["fixturesSheetId"] == "FIX"

    def test_debug_args_prints_resolved_config(self, tmp_path):
        result = _invoke(
            _csv_session(),
            _csv_args(tmp_path, "--debug-args"),
            env={"PG_TLS_INSECURE": "true"},
        )
        assert result.exit_code == 0, result.output
        assert '"provider": "SheetsCSV"' in result.output
        assert '"pgTlsVerifyDisabled": true' in result.output

    def test_rejects_path_receives_skipped_rows(self, tmp_path):
        fixtures = FIXTURES_CSV + "TBC,10:00,Lions,Tigers,Court A,Round 2,A,,\n"
        rejects = tmp_path / "rejects.csv"
        result = _invoke(
            _csv_session(fixtures=fixtures),
            _csv_args(tmp_path, "--rejects-path", str(rejects)),
        )
        assert result.exit_code == 0, result.output
        with rejects.open(newline="", encoding="utf-8") as fh:
            rows = list(csv.DictReader(fh))
        assert [(r["Date"], r["_reject_reason"]) for r in rows] == [("TBC", "unparseable_date")]
        assert _only_report(tmp_path)["skippedRows"] == [
            {"groupId": "default", "row": 2, "reason": "unparseable_date", "date": "TBC"}
        ]


# ---------------------------------------------------------------------------
# Failure paths
# ---------------------------------------------------------------------------

class TestFailures:
    def test_provider_error_writes_report_and_exits_1(self, tmp_path):
        session = MagicMock()
        session.get.return_value = _response(status=503)
        result = _invoke(session, _csv_args(tmp_path))
        assert result.exit_code == 1
        assert "Failed to load provider data" in result.output
        errors = _only_report(tmp_path)["validationErrors"]
        assert len(errors) == 1
        assert errors[0].startswith("Provider error:")

    def test_missing_sheet_ids_is_a_provider_error(self, tmp_path):
        result = _invoke(MagicMock(), ["--report-dir", str(tmp_path / "reports")])
        assert result.exit_code == 1
        assert "sheet ids" in _only_report(tmp_path)["validationErrors"][0]

    def test_group_without_label_is_a_validation_error(self, tmp_path):
        session = MagicMock()

        def get(url, params=None, timeout=None):
            if params == {"groups": "1"}:
                return _response(payload={"groups": [{"id": "U13B"}]})
            return _response(payload={"rows": []})

        session.get.side_effect = get
        result = _invoke(session, [
            "--api-base", API_BASE,
            "--report-dir", str(tmp_path / "reports"),
        ])
        assert result.exit_code == 1
        assert "Validation errors found" in result.output
        report = _only_report(tmp_path)
        assert report["validationErrors"] == ["Group U13B missing label"]
        assert report["meta"]["apiBase"] == API_BASE

    def test_commit_without_database_url(self, tmp_path):
        result = _invoke(_csv_session(), _csv_args(tmp_path, "--commit"))
        assert result.exit_code == 1
        report = _only_report(tmp_path)
        assert "DATABASE_URL is required for --commit" in report["validationErrors"]
        assert report["meta"]["commit"] is True

    def test_commit_error_is_reported_and_reraised(self, tmp_path):
        with patch(
            "tournament_etl.ingest.PostgresSink.write",
            side_effect=CommitError("commit failed and was rolled back: boom"),
        ):
            result = _invoke(
                _csv_session(),
                _csv_args(tmp_path, "--commit", "--database-url", "postgresql://db/x"),
            )
        assert result.exit_code != 0
        assert isinstance(result.exception, CommitError)
        report = _only_report(tmp_path)
        assert report["commitError"] == "commit failed and was rolled back: boom"
        assert "Commit failed" in result.output

    def test_unexpected_write_error_still_writes_report(self, tmp_path):
        with patch(
            "tournament_etl.ingest.CsvExportSink.write",
            side_effect=OSError("disk full"),
        ):
            result = _invoke(
                _csv_session(),
                _csv_args(tmp_path, "--export-dir", str(tmp_path / "export")),
            )
        assert result.exit_code != 0
        assert isinstance(result.exception, OSError)
        assert "Export failed: disk full" in result.output
        assert _only_report(tmp_path)["commitError"] == "disk full"


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------

class TestExport:
    def test_export_writes_tables(self, tmp_path):
        export_dir = tmp_path / "export"
        result = _invoke(_csv_session(), _csv_args(tmp_path, "--export-dir", str(export_dir)))
        assert result.exit_code == 0, result.output
        assert sorted(p.name for p in export_dir.iterdir()) == [
            "fixture.csv", "groups.csv", "result.csv", "team.csv", "tournament.csv",
        ]
        assert len(_only_report(tmp_path)["writes"]["files_written"]) == 5

    def test_export_suppresses_database_write(self, tmp_path):
        with patch("tournament_etl.ingest.PostgresSink") as pg_sink:
            result = _invoke(
                _csv_session(),
                _csv_args(
                    tmp_path,
                    "--commit",
                    "--database-url", "postgresql://db/x",
                    "--export-dir", str(tmp_path / "export"),
                ),
            )
        assert result.exit_code == 0, result.output
        pg_sink.assert_not_called()
        assert "Commit complete." in result.output
        assert _only_report(tmp_path)["meta"]["commit"] is True

    @pytest.mark.parametrize("flag", ["--no-commit", None])
    def test_export_preview_message(self, tmp_path, flag):
        extra = ["--export-dir", str(tmp_path / "export")]
        if flag:
            extra.append(flag)
        result = _invoke(_csv_session(), _csv_args(tmp_path, *extra))
        assert result.exit_code == 0, result.output
        assert "Preview complete." in result.output
