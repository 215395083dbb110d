"""Manifest CSV codec.

Manifests are delimited text with a header row. The delimiter is taken from
the header line (comma, semicolon, or tab) and reused on output, so a stamped
manifest keeps the shape it arrived in. Output uses minimal quoting: values
holding the delimiter, a quote, or a line break are quoted and inner quotes
are doubled.
"""

from __future__ import annotations

import csv
import io
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from .exceptions import InvalidObjectNameError, ManifestParseError

CANDIDATE_DELIMITERS = (",", ";", "\t")
DEFAULT_DELIMITER = ","

RESULT_FIELD = "resultado"
OPERATOR_ID_FIELD = "matriculaValidador"
OPERATOR_NAME_FIELD = "nombreValidador"
TIMESTAMP_FIELD = "fechaValidacion"
STAMP_FIELDS = (RESULT_FIELD, OPERATOR_ID_FIELD, OPERATOR_NAME_FIELD, TIMESTAMP_FIELD)


@dataclass(frozen=True, slots=True)
class Stamp:
    """Values written into every row of one processed manifest."""

    outcome: str
    operator_id: str
    operator_name: str
    timestamp: str

    def as_fields(self) -> dict[str, str]:
        return {
            RESULT_FIELD: self.outcome,
            OPERATOR_ID_FIELD: self.operator_id,
            OPERATOR_NAME_FIELD: self.operator_name,
            TIMESTAMP_FIELD: self.timestamp,
        }


@dataclass(slots=True)
class Manifest:
    headers: list[str]
    rows: list[dict[str, str]] = field(default_factory=list)
    delimiter: str = DEFAULT_DELIMITER

    def __len__(self) -> int:
        return len(self.rows)


def detect_delimiter(header_line: str) -> str:
    """Pick the candidate delimiter that occurs most often in the header line."""

    best, best_count = DEFAULT_DELIMITER, 0
    for candidate in CANDIDATE_DELIMITERS:
        count = header_line.count(candidate)
        if count > best_count:
            best, best_count = candidate, count
    return best


def decode_manifest(data: bytes) -> str:
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ManifestParseError("Manifest is not valid UTF-8 text") from exc


def parse_manifest(data: bytes | str) -> Manifest:
    """Parse manifest bytes into header-keyed rows.

    Leading line breaks before the header are ignored. Short rows are padded
    with empty strings and cells beyond the header are dropped. Empty lines
    are skipped, but a row of empty cells is kept so that parsing a serialized
    manifest gives back the same rows. A file with headers and no rows parses
    to an empty manifest; whether that is acceptable is the caller's decision.
    """

    text = decode_manifest(data) if isinstance(data, bytes) else data
    text = text.lstrip("\r\n")
    if not text.strip():
        raise ManifestParseError("Manifest is empty")

    delimiter = detect_delimiter(text.splitlines()[0])

    try:
        reader = csv.reader(io.StringIO(text, newline=""), delimiter=delimiter)
        raw_headers = next(reader, None)
        if raw_headers is None:
            raise ManifestParseError("Manifest has no header row")
        headers = [header.strip() for header in raw_headers]
        if not any(headers):
            raise ManifestParseError("Manifest header row is blank")
        if len(set(headers)) != len(headers):
            raise ManifestParseError("Manifest header row has duplicate columns")

        rows: list[dict[str, str]] = []
        for record in reader:
            if not record:
                continue
            padded = record + [""] * (len(headers) - len(record))
            rows.append(dict(zip(headers, padded, strict=False)))
    except csv.Error as exc:
        raise ManifestParseError(f"Malformed manifest: {exc}") from exc

    return Manifest(headers=headers, rows=rows, delimiter=delimiter)


def stamp_manifest(manifest: Manifest, stamp: Stamp) -> Manifest:
    """Return a copy with the stamp fields set on every row.

    Existing stamp columns keep their position and are overwritten; missing
    ones are appended after the original headers in ``STAMP_FIELDS`` order.
    """

    headers = list(manifest.headers)
    for name in STAMP_FIELDS:
        if name not in headers:
            headers.append(name)
    values = stamp.as_fields()
    rows = [{**row, **values} for row in manifest.rows]
    return Manifest(headers=headers, rows=rows, delimiter=manifest.delimiter)


def serialize_manifest(manifest: Manifest) -> bytes:
    buffer = io.StringIO(newline="")
    writer = csv.writer(
        buffer,
        delimiter=manifest.delimiter,
        quoting=csv.QUOTE_MINIMAL,
        lineterminator="\n",
    )
    writer.writerow(manifest.headers)
    for row in manifest.rows:
        writer.writerow([row.get(header, "") for header in manifest.headers])
    return buffer.getvalue().encode("utf-8")


def plain_name(name: str) -> str:
    """Return ``name`` stripped, rejecting anything that is not a single path segment."""

    stripped = name.strip()
    if not stripped or stripped in {".", ".."} or "/" in stripped or "\\" in stripped:
        raise InvalidObjectNameError(name)
    return stripped


def document_ids(rows: Iterable[Mapping[str, str]], column: str) -> list[str]:
    """Distinct non-empty document references, in first-seen row order."""

    seen: dict[str, None] = {}
    for row in rows:
        value = (row.get(column) or "").strip()
        if value:
            seen.setdefault(value, None)
    return list(seen)


__all__ = [
    "CANDIDATE_DELIMITERS",
    "Manifest",
    "STAMP_FIELDS",
    "Stamp",
    "decode_manifest",
    "detect_delimiter",
    "document_ids",
    "parse_manifest",
    "plain_name",
    "serialize_manifest",
    "stamp_manifest",
]
