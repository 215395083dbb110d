"""Document typology catalog and filename classification.

Manifest filenames embed a typology code (``BIOKTYP001``, ``F401``, ``C112``,
...). The first catalog code, in catalog order, found anywhere in the filename
wins.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType

UNKNOWN_CODE = "UNKNOWN"
UNKNOWN_DESCRIPTION = "Tipo de archivo no identificado"

_COLLECTION_LETTERS = "Cartas de cobro"
_CONTRACT_LETTERS = "Cartas de Contratación"

_COLLECTION_LETTER_CODES = (
    "C001", "C002", "C003", "C003_1", "C004", "C005",
    "C009", "C010", "C011", "C012", "C013", "C014", "C015", "C016", "C017", "C018", "C019",
    "C101", "C102", "C103", "C104", "C105", "C107",
    "C109", "C110", "C111", "C112", "C113", "C114", "C117",
    "C120", "C121", "C124", "C125", "C126", "C132", "C144",
    "C301", "C302", "C303", "C304", "C308", "C309", "C312",
    "C401", "C402",
)  # fmt: skip

TYPOLOGIES: MappingProxyType[str, str] = MappingProxyType(
    {
        # Electricity invoicing
        "BIOKTYP001": "Facturación Electricidad PVPC Horario",
        "BIOKTYP016": "Facturación Electricidad PVPC Táctico",
        "BIOKTYP002": "Facturación Electricidad Bono social",
        "BIOKTYP003": "Facturación Electricidad Precio Fijo",
        "BIOKTYP015": "Facturación Electricidad Transitorio",
        "BIOKTYP007": "Facturación Electricidad Cargos Varios",
        # Gas invoicing
        "BIOKTYP027": "Facturación Gas RL.1",
        "BIOKTYP028": "Facturación Gas RL.2",
        "BIOKTYP029": "Facturación Gas RL.3",
        "BIOKTYP030": "Facturación Gas Transitorio",
        "BIOKTYP021": "Facturación Gas Cargos Varios",
        "BIOKTYP022": "Facturación Gas Clientes VIP",
        # Invoice families
        "F001": "Facturas GNCOM gas",
        "F002": "Facturas GNCOM electricidad",
        "F003": "Facturas GNL",
        "F004": "Facturas Clientes No Finales",
        "F401": "Factura gas de Gas Natural Comercializadora",
        "F402": "Factura eléctrica de Gas Natural Comercializadora",
        **{code: _COLLECTION_LETTERS for code in _COLLECTION_LETTER_CODES},
        "G347": _CONTRACT_LETTERS,
        "G348": _CONTRACT_LETTERS,
        "G349": _CONTRACT_LETTERS,
    }
)

# Group keyword (as it appears in a grant's folder) -> description fragment.
GROUP_KEYWORDS: tuple[tuple[str, str], ...] = (
    ("Facturas", "factur"),
    ("Cartas", "cartas"),
)


@dataclass(frozen=True, slots=True)
class Typology:
    code: str
    description: str

    @property
    def is_known(self) -> bool:
        return self.code != UNKNOWN_CODE


def classify_filename(filename: str) -> Typology:
    for code, description in TYPOLOGIES.items():
        if code in filename:
            return Typology(code=code, description=description)
    return Typology(code=UNKNOWN_CODE, description=UNKNOWN_DESCRIPTION)


def group_accepts(document_group_path: str, typology: Typology) -> bool:
    """Whether a grant's group keyword admits ``typology``.

    A group containing "Facturas" admits invoice typologies, one containing
    "Cartas" admits letters; any other group admits nothing.
    """

    description = typology.description.lower()
    for keyword, fragment in GROUP_KEYWORDS:
        if keyword in document_group_path:
            return fragment in description
    return False


__all__ = [
    "GROUP_KEYWORDS",
    "TYPOLOGIES",
    "Typology",
    "UNKNOWN_CODE",
    "UNKNOWN_DESCRIPTION",
    "classify_filename",
    "group_accepts",
]
