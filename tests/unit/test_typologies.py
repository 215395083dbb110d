from __future__ import annotations

import pytest

from docportal.features.authorizations.typologies import (
    UNKNOWN_CODE,
    Typology,
    classify_filename,
    group_accepts,
)


@pytest.mark.parametrize(
    ("filename", "code"),
    [
        ("spool_BIOKTYP001_0001.csv", "BIOKTYP001"),
        ("F401-2024-05.csv", "F401"),
        ("cartas_G348.csv", "G348"),
        ("C003_1_lote.csv", "C003"),
    ],
)
def test_classify_filename_finds_first_catalog_code(filename: str, code: str) -> None:
    assert classify_filename(filename).code == code


def test_unknown_filename() -> None:
    typology = classify_filename("readme.csv")
    assert typology.code == UNKNOWN_CODE
    assert typology.description == "Tipo de archivo no identificado"


def test_invoice_group_accepts_invoice_descriptions_only() -> None:
    path = "Recepcion/Muestreo/Facturas"
    assert group_accepts(path, classify_filename("F001.csv"))
    assert group_accepts(path, classify_filename("BIOKTYP027.csv"))
    assert not group_accepts(path, classify_filename("C101.csv"))


def test_letters_group_accepts_collection_and_contract_letters() -> None:
    path = "Recepcion/Muestreo/Cartas"
    assert group_accepts(path, classify_filename("C101.csv"))
    assert group_accepts(path, classify_filename("G347.csv"))
    assert not group_accepts(path, classify_filename("F002.csv"))


def test_group_without_keyword_accepts_nothing() -> None:
    typology = Typology(code="F001", description="Facturas GNCOM gas")
    assert not group_accepts("Recepcion/Otros", typology)
