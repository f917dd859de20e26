"""tournament_etl.csv_text

Parsing of whole-file CSV exports held in memory, and the writer used for
flat-file exports.
"""

from __future__ import annotations

import csv
import io
from pathlib import Path
from typing import Any, Iterable, Sequence


def parse_csv_rows(text: str) -> list[list[str]]:
    """Tokenize CSV text into rows of raw cells.

    Handles quoted fields, doubled quotes inside quotes, CRLF or LF line
    endings, and a last row without a trailing newline.
    """
    reader = csv.reader(io.StringIO(text, newline=""))
    return [row for row in reader]


def _is_blank(row: Sequence[str]) -> bool:
    return all(not cell.strip() for cell in row)


def csv_to_objects(text: str) -> list[dict[str, str]]:
    """Return data rows keyed by the first non-blank row's trimmed headers.

    Blank rows are dropped before the header is chosen; columns with a blank
    header are ignored; short rows are padded with ''.
    """
    rows = [r for r in parse_csv_rows(text) if not _is_blank(r)]
    if not rows:
        return []
    header = [h.strip() for h in rows[0]]
    out: list[dict[str, str]] = []
    for row in rows[1:]:
        obj: dict[str, str] = {}
        for idx, name in enumerate(header):
            if not name:
                continue
            obj[name] = row[idx].strip() if idx < len(row) else ""
        out.append(obj)
    return out


def _cell(value: Any) -> Any:
    if isinstance(value, bool):
        return "true" if value else "false"
    return value


def write_csv_file(path: Path, headers: Sequence[str], rows: Iterable[Sequence[Any]]) -> None:
    """Write headers + rows with RFC 4180 quoting; None is written as ''."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="", encoding="utf-8") as fh:
        writer = csv.writer(fh)
        writer.writerow(headers)
        for row in rows:
            writer.writerow([_cell(v) for v in row])
