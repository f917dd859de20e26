"""Unit tests for tournament_etl.config."""

from pathlib import Path

from tournament_etl.config import (
    IngestConfig,
    parse_limit_groups,
    pg_ca_cert_path,
    pg_connect_kwargs,
    pg_tls_insecure,
)


class TestParseLimitGroups:
    def test_splits_and_trims(self):
        assert parse_limit_groups(" U13B, U15G,,") == ["U13B", "U15G"]

    def test_empty(self):
        assert parse_limit_groups(None) == []
        assert parse_limit_groups("") == []


class TestIngestConfig:
    def test_provider_name(self):
        assert IngestConfig(api_base="https://x").provider_name == "AppsScript"
        assert IngestConfig().provider_name == "SheetsCSV"

    def test_output_mode(self):
        assert IngestConfig().output_mode == "preview"
        assert IngestConfig(commit=True).output_mode == "commit"
        assert IngestConfig(commit=True, export_dir=Path("out")).output_mode == "export"

    def test_report_meta(self):
        meta = IngestConfig(tournament_id="t1", commit=True).report_meta()
        assert meta["commit"] is True
        assert meta["tournamentId"] == "t1"
        assert meta["apiBase"] is None


class TestPgTls:
    def test_no_settings(self):
        assert pg_connect_kwargs({}) == {}

    def test_insecure_flag(self):
        assert pg_tls_insecure({"PG_TLS_INSECURE": "TRUE"}) is True
        assert pg_tls_insecure({"PG_TLS_INSECURE": "0"}) is False
        assert pg_connect_kwargs({"PG_TLS_INSECURE": "1"}) == {"sslmode": "require"}

    def test_ca_cert_fallback_name(self):
        assert pg_ca_cert_path({"SUPABASE_CA_CERT": " /ca.pem "}) == "/ca.pem"
        assert pg_ca_cert_path({"PG_CA_CERT": "/a.pem", "SUPABASE_CA_CERT": "/b.pem"}) == "/a.pem"

    def test_ca_cert_wins(self):
        env = {"PG_CA_CERT": "/etc/ssl/ca.pem", "PG_TLS_INSECURE": "yes"}
        assert pg_connect_kwargs(env) == {
            "sslmode": "verify-full",
            "sslrootcert": "/etc/ssl/ca.pem",
        }
