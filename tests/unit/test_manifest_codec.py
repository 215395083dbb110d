"""Manifest CSV parsing, stamping, and serialization."""

from __future__ import annotations

import pytest

from docportal.features.files.exceptions import ManifestParseError
from docportal.features.files.manifest import (
    STAMP_FIELDS,
    Manifest,
    Stamp,
    detect_delimiter,
    document_ids,
    parse_manifest,
    serialize_manifest,
    stamp_manifest,
)

STAMP = Stamp(
    outcome="OK",
    operator_id="usuario1",
    operator_name="Usuario Uno",
    timestamp="2024-05-01T10:00:00.000Z",
)


def test_parse_comma_manifest() -> None:
    manifest = parse_manifest(b"idDocumento,cliente\nDOC1,ACME\nDOC2,Globex\n")

    assert manifest.headers == ["idDocumento", "cliente"]
    assert manifest.rows == [
        {"idDocumento": "DOC1", "cliente": "ACME"},
        {"idDocumento": "DOC2", "cliente": "Globex"},
    ]
    assert manifest.delimiter == ","


def test_parse_detects_semicolon_and_strips_bom() -> None:
    manifest = parse_manifest("\ufeffidDocumento;importe\nDOC1;12,50\n".encode())

    assert manifest.delimiter == ";"
    assert manifest.headers == ["idDocumento", "importe"]
    assert manifest.rows[0]["importe"] == "12,50"


def test_detect_delimiter_prefers_most_frequent() -> None:
    assert detect_delimiter("a\tb\tc") == "\t"
    assert detect_delimiter("single") == ","


def test_short_rows_are_padded_and_extra_cells_dropped() -> None:
    manifest = parse_manifest("a,b,c\n1\n1,2,3,4\n\n")

    assert manifest.rows == [
        {"a": "1", "b": "", "c": ""},
        {"a": "1", "b": "2", "c": "3"},
    ]


def test_headers_without_rows_parse_to_empty_manifest() -> None:
    manifest = parse_manifest("idDocumento,cliente\n")
    assert manifest.headers == ["idDocumento", "cliente"]
    assert len(manifest) == 0


@pytest.mark.parametrize(
    "data",
    [b"", b"   \n", b"a,a\n1,2\n", b"\xff\xfe\x00bad"],
)
def test_unusable_input_raises(data: bytes) -> None:
    with pytest.raises(ManifestParseError):
        parse_manifest(data)


def test_stamp_appends_missing_fields_in_order() -> None:
    stamped = stamp_manifest(parse_manifest("idDocumento\nDOC1\n"), STAMP)

    assert stamped.headers == ["idDocumento", *STAMP_FIELDS]
    assert stamped.rows[0] == {
        "idDocumento": "DOC1",
        "resultado": "OK",
        "matriculaValidador": "usuario1",
        "nombreValidador": "Usuario Uno",
        "fechaValidacion": "2024-05-01T10:00:00.000Z",
    }


def test_stamp_overwrites_existing_columns_in_place() -> None:
    manifest = parse_manifest("resultado,idDocumento\nKO,DOC1\n")

    stamped = stamp_manifest(manifest, STAMP)

    assert stamped.headers[:2] == ["resultado", "idDocumento"]
    assert stamped.headers[2:] == ["matriculaValidador", "nombreValidador", "fechaValidacion"]
    assert stamped.rows[0]["resultado"] == "OK"
    assert manifest.rows[0]["resultado"] == "KO"


def test_serialize_quotes_delimiters_quotes_and_newlines() -> None:
    original = (
        'idDocumento,comentario\n'
        'DOC1,"uno, dos"\n'
        'DOC2,"dijo ""hola"""\n'
        'DOC3,"linea1\nlinea2"\n'
    )
    manifest = parse_manifest(original)

    output = serialize_manifest(manifest).decode("utf-8")

    assert output == original
    assert parse_manifest(output).rows == manifest.rows


def test_serialize_keeps_the_input_delimiter() -> None:
    manifest = stamp_manifest(parse_manifest("idDocumento;importe\nDOC1;12,50\n"), STAMP)

    lines = serialize_manifest(manifest).decode("utf-8").splitlines()

    assert lines[0].split(";") == ["idDocumento", "importe", *STAMP_FIELDS]
    assert lines[1] == "DOC1;12,50;OK;usuario1;Usuario Uno;2024-05-01T10:00:00.000Z"


def test_document_ids_are_distinct_and_ordered() -> None:
    rows = [
        {"idDocumento": "DOC2"},
        {"idDocumento": " DOC1 "},
        {"idDocumento": "DOC2"},
        {"idDocumento": ""},
        {"otro": "x"},
    ]
    assert document_ids(rows, "idDocumento") == ["DOC2", "DOC1"]


@pytest.mark.parametrize("delimiter", [",", ";"])
@pytest.mark.parametrize(
    "rows",
    [
        [{"idDocumento": "DOC1", "nota": "simple"}],
        [
            {"idDocumento": "DOC1", "nota": "uno, dos; tres"},
            {"idDocumento": "DOC2", "nota": 'dijo "hola"'},
            {"idDocumento": "DOC3", "nota": "linea1\nlinea2"},
        ],
        [
            {"idDocumento": "DOC1", "nota": "a"},
            {"idDocumento": "", "nota": ""},
            {"idDocumento": "DOC2", "nota": " con espacios "},
        ],
    ],
)
def test_parse_after_serialize_returns_the_same_rows(
    delimiter: str,
    rows: list[dict[str, str]],
) -> None:
    manifest = Manifest(headers=["idDocumento", "nota"], rows=rows, delimiter=delimiter)

    parsed = parse_manifest(serialize_manifest(manifest))

    assert parsed.delimiter == delimiter
    assert parsed.headers == manifest.headers
    assert parsed.rows == rows


def test_leading_blank_lines_before_header_are_ignored() -> None:
    manifest = parse_manifest("\r\n\nidDocumento;cliente\nDOC1;ACME\n")

    assert manifest.delimiter == ";"
    assert manifest.headers == ["idDocumento", "cliente"]
    assert manifest.rows == [{"idDocumento": "DOC1", "cliente": "ACME"}]


def test_rows_of_empty_cells_are_kept() -> None:
    manifest = parse_manifest("a,b\n1,2\n,\n\n")

    assert manifest.rows == [{"a": "1", "b": "2"}, {"a": "", "b": ""}]
