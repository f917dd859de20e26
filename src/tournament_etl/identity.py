"""tournament_etl.identity

Deterministic identifiers and change-detection hashes.

Ids never depend on machine-local state: the same input string yields the
same id on every run, so re-ingesting a sheet upserts onto the rows written
by the previous run.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any

from tournament_etl.normalize import slug_name

_DIGEST_LEN = 12


def hash_string(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def slug(value: Any) -> str:
    """Return '<kebab-name>-<12 hex>' for value, or just the hex for blank input.

    The hash covers the untrimmed input; the readable prefix is cosmetic.
    """
    raw = "" if value is None else str(value)
    digest = hash_string(raw)[:_DIGEST_LEN]
    base = slug_name(raw)
    return f"{base}-{digest}" if base else digest


def team_id(tournament_id: str, group_id: str, name: str) -> str:
    return slug(f"{tournament_id}:{group_id}:{name.strip()}")


def fixture_id(tournament_id: str, group_id: str, fixture_key: str) -> str:
    return slug(f"{tournament_id}:{group_id}:{fixture_key}")


def canonical_json(obj: Any) -> str:
    """Key-sorted compact JSON; arrays keep their order."""
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def row_hash(obj: Any) -> str:
    return hash_string(canonical_json(obj))
