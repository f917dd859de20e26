"""tournament_etl.ingest

CLI entrypoint for tournament sheet ingestion.

Stages: LOAD → VALIDATE → BUILD → (WRITE | EXPORT | PREVIEW) → REPORT

Output mode:
  preview (default): build everything, write only the run report
  --commit         : upsert into Postgres in a single transaction
  --export-dir     : write the five tables as CSV files instead; suppresses
                     the database write even when --commit is given

Usage (preview from the CSV exports):
    python -m tournament_etl.ingest \\
        --fixtures-sheet-id "$FIXTURES_SHEET_ID" \\
        --teams-sheet-id "$TEAMS_SHEET_ID"

Usage (commit from the Apps Script API, two groups only):
    python -m tournament_etl.ingest \\
        --api-base "$API_BASE" \\
        --database-url "$DATABASE_URL" \\
        --limit-groups U13B,U15G \\
        --commit
"""

from __future__ import annotations

import json
import logging
import sys
import uuid
from datetime import datetime, timezone
from pathlib import Path

import click

from tournament_etl.build import (
    Fixture,
    Result,
    Team,
    build_fixtures,
    build_results,
    build_teams,
    per_group_counts,
    validate_groups,
)
from tournament_etl.config import (
    DEFAULT_REPORT_DIR,
    DEFAULT_TOURNAMENT_ID,
    IngestConfig,
    parse_limit_groups,
    pg_ca_cert_path,
    pg_tls_insecure,
)
from tournament_etl.providers import SourceBundle, select_provider
from tournament_etl.shared import (
    ProviderError,
    RejectWriter,
    RunReport,
    write_run_report,
)
from tournament_etl.sinks import CsvExportSink, PostgresSink, Sink, build_tables

log = logging.getLogger(__name__)


@click.command()
@click.option("--tournament-id", default=DEFAULT_TOURNAMENT_ID, show_default=True)
@click.option("--fixtures-sheet-id", envvar="FIXTURES_SHEET_ID", default=None, help="[csv] Fixtures sheet id")
@click.option("--teams-sheet-id", envvar="TEAMS_SHEET_ID", default=None, help="[csv] Teams/standings sheet id")
@click.option("--api-base", envvar="API_BASE", default=None, help="Apps Script base URL; selects the API provider")
@click.option("--database-url", envvar="DATABASE_URL", default=None, help="PostgreSQL DSN (required with --commit)")
@click.option("--commit/--no-commit", default=False, show_default=True, help="Write to the database")
@click.option("--report-dir", default=DEFAULT_REPORT_DIR, show_default=True, type=click.Path())
@click.option("--limit-groups", default=None, help="Comma-separated group ids to include")
@click.option("--export-dir", default=None, type=click.Path(), help="Write CSV tables here instead of the database")
@click.option("--rejects-path", default=None, type=click.Path(), help="CSV of fixture rows skipped while building")
@click.option("--run-id", default=None, help="Override UUID for log correlation")
@click.option("--debug-args", is_flag=True, default=False, help="Print the resolved configuration")
@click.option(
    "--log-level",
    default="WARNING",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    show_default=True,
)
def main(
    tournament_id: str,
    fixtures_sheet_id: str | None,
    teams_sheet_id: str | None,
    api_base: str | None,
    database_url: str | None,
    commit: bool,
    report_dir: str,
    limit_groups: str | None,
    export_dir: str | None,
    rejects_path: str | None,
    run_id: str | None,
    debug_args: bool,
    log_level: str,
) -> None:
    """Ingest tournament fixtures and standings into the canonical tables."""
    logging.basicConfig(
        level=getattr(logging, log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    run_id = run_id or str(uuid.uuid4())
    started_at = datetime.now(timezone.utc).isoformat()

    config = IngestConfig(
        tournament_id=tournament_id,
        fixtures_sheet_id=fixtures_sheet_id or None,
        teams_sheet_id=teams_sheet_id or None,
        api_base=api_base or None,
        database_url=database_url or None,
        commit=commit,
        report_dir=Path(report_dir),
        limit_groups=parse_limit_groups(limit_groups),
        export_dir=Path(export_dir) if export_dir else None,
        rejects_path=Path(rejects_path) if rejects_path else None,
    )

    if debug_args:
        click.echo(json.dumps(_resolved_args(config), indent=2))

    report = RunReport(run_id=run_id, started_at=started_at, meta=config.report_meta())
    click.echo(
        f"[{run_id}] Starting {config.provider_name} ingestion "
        f"(tournament={config.tournament_id}, mode={config.output_mode})"
    )

    # LOAD
    provider = select_provider(config)
    try:
        bundle = provider.load()
    except ProviderError as exc:
        report.validation_errors.append(f"Provider error: {exc}")
        report_path = write_run_report(report, config.report_dir)
        click.echo(
            f"[{run_id}] Failed to load provider data. Report written: {report_path}",
            err=True,
        )
        sys.exit(1)

    # VALIDATE + BUILD
    report.validation_errors.extend(validate_groups(bundle.groups))
    teams, fixtures, results = _build(bundle, config, report)
    click.echo(
        f"[{run_id}] Built {len(bundle.groups)} groups, {len(teams)} teams, "
        f"{len(fixtures)} fixtures ({len(report.duplicates)} duplicates, "
        f"{len(report.skipped_rows)} skipped rows, {len(report.missing_teams)} missing teams)"
    )

    if config.output_mode == "commit" and not config.database_url:
        report.validation_errors.append("DATABASE_URL is required for --commit")

    if report.validation_errors:
        report_path = write_run_report(report, config.report_dir)
        click.echo(
            f"[{run_id}] Validation errors found. Report written: {report_path}",
            err=True,
        )
        sys.exit(1)

    # WRITE | EXPORT | PREVIEW
    sink = _select_sink(config)
    if sink is not None:
        tables = build_tables(
            config.tournament_id,
            bundle.source,
            bundle.groups,
            teams,
            fixtures,
            results,
            ingested_at=datetime.now(timezone.utc),
        )
        try:
            sink.write(tables)
        except Exception as exc:
            report.commit_error = str(exc)
            report_path = write_run_report(report, config.report_dir)
            click.echo(
                f"[{run_id}] {config.output_mode.capitalize()} failed: {exc}. Report written: {report_path}",
                err=True,
            )
            raise
        report.writes = sink.counters

    # REPORT
    report_path = write_run_report(report, config.report_dir)
    click.echo(f"Report written: {report_path}")
    click.echo("Commit complete." if config.commit else "Preview complete.")


def _build(
    bundle: SourceBundle,
    config: IngestConfig,
    report: RunReport,
) -> tuple[list[Team], list[Fixture], list[Result]]:
    team_build = build_teams(
        config.tournament_id, bundle.standings_by_group, bundle.fixtures_by_group
    )
    fixture_build = build_fixtures(config.tournament_id, bundle.fixtures_by_group)
    results = build_results(fixture_build.fixtures)

    report.counts = {
        "groups": len(bundle.groups),
        "teams": len(team_build.teams),
        "fixtures": len(fixture_build.fixtures),
        "results": len(results),
    }
    report.duplicates = fixture_build.duplicates
    report.missing_teams = team_build.missing_teams
    report.skipped_rows = [s.to_report() for s in fixture_build.skipped]
    report.per_group = per_group_counts(bundle.groups, fixture_build.fixtures, team_build.teams)

    if config.rejects_path is not None and fixture_build.skipped:
        rejects = RejectWriter(config.rejects_path)
        try:
            for skipped in fixture_build.skipped:
                rejects.write(skipped.row, skipped.reason, skipped.group_id)
        finally:
            rejects.close()

    return team_build.teams, fixture_build.fixtures, results


def _select_sink(config: IngestConfig) -> Sink | None:
    if config.output_mode == "export":
        return CsvExportSink(config.export_dir)  # type: ignore[arg-type]
    if config.output_mode == "commit":
        return PostgresSink(config.database_url)  # type: ignore[arg-type]
    return None


def _resolved_args(config: IngestConfig) -> dict[str, object]:
    ca_cert = pg_ca_cert_path()
    insecure = pg_tls_insecure()
    return {
        "tournamentId": config.tournament_id,
        "fixturesSheetId": config.fixtures_sheet_id,
        "teamsSheetId": config.teams_sheet_id,
        "apiBase": config.api_base,
        "provider": config.provider_name,
        "mode": config.output_mode,
        "databaseUrlProvided": bool(config.database_url),
        "reportDir": str(config.report_dir),
        "exportDir": str(config.export_dir) if config.export_dir else None,
        "limitGroups": config.limit_groups,
        "pgTlsVerifyDisabled": insecure and not ca_cert,
        "pgCaCertProvided": bool(ca_cert),
    }


if __name__ == "__main__":
    main()
