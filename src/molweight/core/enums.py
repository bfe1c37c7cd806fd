"""molweight constants."""

import enum


class AbbreviationMode(str, enum.Enum):
    """Abbreviation recognition modes used to build the symbol table."""

    NONE = "none"
    """Only element symbols are recognized."""

    NORMAL = "normal"
    """Element symbols and abbreviations that are not amino acids."""

    NORMAL_PLUS_AMINO_ACIDS = "normal_plus_amino_acids"
    """Element symbols, abbreviations and amino acids."""


class CaseConversionMode(str, enum.Enum):
    """Case handling while matching formula symbols."""

    CONVERT_CASE_UP = "convert_case_up"
    """Match using an uppercase first letter and capitalize matched symbols in the normalized formula."""

    EXACT_CASE = "exact_case"
    """Symbols must be written with the exact case."""

    SMART_CASE = "smart_case"
    """Match using an uppercase first letter but keep the formula text as written."""


class ElementMassMode(str, enum.Enum):
    """Element mass used to compute formula masses."""

    AVERAGE = "average"
    """Average atomic weight, with the tabulated uncertainty."""

    ISOTOPIC = "isotopic"
    """Monoisotopic mass, without uncertainty."""

    INTEGER = "integer"
    """Nominal mass, without uncertainty."""


class StdDevMode(str, enum.Enum):
    """Display format of mass values with standard deviation."""

    SHORT = "short"
    DECIMAL = "decimal"
    SCIENTIFIC = "scientific"


class SymbolKind(str, enum.Enum):
    """Type of entries in the symbol table."""

    ELEMENT = "element"
    ABBREVIATION = "abbreviation"
