"""Abbreviation table: named shorthands for formulas, including amino acid residues."""

from __future__ import annotations

from logging import getLogger
from typing import Iterator

from ..core import messages
from ..core.exceptions import AbbreviationNotFound, InvalidAbbreviation
from ..core.models import AbbreviationDefinition

logger = getLogger(__name__)

MAX_ABBREVIATION_LENGTH = 6
MAX_ABBREVIATION_COUNT = 500


def _amino_acid(symbol: str, formula: str, code: str, comment: str) -> AbbreviationDefinition:
    return AbbreviationDefinition(
        symbol=symbol, formula=formula, is_amino_acid=True, one_letter_symbol=code, comment=comment
    )


def _group(symbol: str, formula: str, charge: float, comment: str) -> AbbreviationDefinition:
    return AbbreviationDefinition(symbol=symbol, formula=formula, charge=charge, comment=comment)


DEFAULT_ABBREVIATIONS = (
    _amino_acid("Ala", "C3H5NO", "A", "Alanine"),
    _amino_acid("Arg", "C6H12N4O", "R", "Arginine, (unprotonated NH2)"),
    _amino_acid("Asn", "C4H6N2O2", "N", "Asparagine"),
    _amino_acid("Asp", "C4H5NO3", "D", "Aspartic acid (undissociated COOH)"),
    _amino_acid("Cys", "C3H5NOS", "C", "Cysteine (no disulfide link)"),
    _amino_acid("Gla", "C6H7NO5", "U", "gamma-Carboxyglutamate"),
    _amino_acid("Gln", "C5H8N2O2", "Q", "Glutamine"),
    _amino_acid("Glu", "C5H7NO3", "E", "Glutamic acid (undissociated COOH)"),
    _amino_acid("Gly", "C2H3NO", "G", "Glycine"),
    _amino_acid("His", "C6H7N3O", "H", "Histidine (unprotonated NH)"),
    _amino_acid("Hse", "C4H7NO2", "", "Homoserine"),
    _amino_acid("Hyl", "C6H12N2O2", "", "Hydroxylysine"),
    _amino_acid("Hyp", "C5H7NO2", "", "Hydroxyproline"),
    _amino_acid("Ile", "C6H11NO", "I", "Isoleucine"),
    _amino_acid("Leu", "C6H11NO", "L", "Leucine"),
    _amino_acid("Lys", "C6H12N2O", "K", "Lysine (unprotonated NH2)"),
    _amino_acid("Met", "C5H9NOS", "M", "Methionine"),
    _amino_acid("Orn", "C5H10N2O", "O", "Ornithine"),
    _amino_acid("Phe", "C9H9NO", "F", "Phenylalanine"),
    _amino_acid("Pro", "C5H7NO", "P", "Proline"),
    _amino_acid("Pyr", "C5H5NO2", "", "Pyroglutamic acid"),
    _amino_acid("Sar", "C3H5NO", "", "Sarcosine"),
    _amino_acid("Ser", "C3H5NO2", "S", "Serine"),
    _amino_acid("Thr", "C4H7NO2", "T", "Threonine"),
    _amino_acid("Trp", "C11H10N2O", "W", "Tryptophan"),
    _amino_acid("Tyr", "C9H9NO2", "Y", "Tyrosine"),
    _amino_acid("Val", "C5H9NO", "V", "Valine"),
    _amino_acid("Xxx", "C6H12N2O", "X", "Unknown"),
    _group("Bpy", "C10H8N2", 0.0, "Bipyridine"),
    _group("Bu", "C4H9", 1.0, "Butyl"),
    _group("D", "^2.014H", 1.0, "Deuterium"),
    _group("En", "C2H8N2", 0.0, "Ethylenediamine"),
    _group("Et", "CH3CH2", 1.0, "Ethyl"),
    _group("Me", "CH3", 1.0, "Methyl"),
    _group("Ms", "CH3SOO", -1.0, "Mesyl"),
    _group("Oac", "C2H3O2", -1.0, "Acetate"),
    _group("Otf", "OSO2CF3", -1.0, "Triflate"),
    _group("Ox", "C2O4", -2.0, "Oxalate"),
    _group("Ph", "C6H5", 1.0, "Phenyl"),
    _group("Phen", "C12H8N2", 0.0, "Phenanthroline"),
    _group("Py", "C5H5N", 0.0, "Pyridine"),
    _group("Tpp", "(C4H2N(C6H5C)C4H2N(C6H5C))2", 0.0, "Tetraphenylporphyrin"),
    _group("Ts", "CH3C6H4SOO", -1.0, "Tosyl"),
    _group("Urea", "H2NCONH2", 0.0, "Urea"),
)


def check_abbreviation_symbol(symbol: str) -> str:
    """Check that an abbreviation symbol is valid and convert it to proper case.

    :param symbol: the abbreviation symbol
    :return: the symbol with the first letter in uppercase and the rest in lowercase
    :raises InvalidAbbreviation: if the symbol is empty, too long, or contains characters other than letters.

    """
    if not symbol:
        raise InvalidAbbreviation(messages.ABBREVIATION_EMPTY_SYMBOL, symbol)
    if len(symbol) > MAX_ABBREVIATION_LENGTH:
        raise InvalidAbbreviation(messages.ABBREVIATION_TOO_LONG, symbol)
    if not (symbol.isascii() and symbol.isalpha()):
        raise InvalidAbbreviation(messages.ABBREVIATION_NOT_LETTERS, symbol)
    return symbol[0].upper() + symbol[1:].lower()


class AbbreviationTable:
    """Store abbreviation definitions, keyed by symbol.

    Symbol lookups are case insensitive. Definitions are kept in insertion order. Formula
    validation is not performed by the table, as it requires a formula parser. Use the
    calculator :py:meth:`~molweight.chem.calculator.MolecularWeightCalculator.set_abbreviation`
    method to add validated definitions.

    :param defaults: if ``True``, the table is populated with the default abbreviations.

    """

    def __init__(self, defaults: bool = True):
        self._abbreviations: dict[str, AbbreviationDefinition] = dict()
        if defaults:
            for abbreviation in DEFAULT_ABBREVIATIONS:
                self.add(abbreviation)

    def __contains__(self, symbol: str) -> bool:
        return symbol.lower() in self._abbreviations

    def __iter__(self) -> Iterator[AbbreviationDefinition]:
        return iter(self._abbreviations.values())

    def __len__(self) -> int:
        return len(self._abbreviations)

    def get(self, symbol: str) -> AbbreviationDefinition:
        """Retrieve an abbreviation by symbol.

        :raises AbbreviationNotFound: if the abbreviation is not in the table

        """
        key = symbol.lower()
        if key not in self._abbreviations:
            raise AbbreviationNotFound(f"Abbreviation `{symbol}` not found.")
        return self._abbreviations[key]

    def add(self, abbreviation: AbbreviationDefinition) -> None:
        """Add a new abbreviation or replace an existing one with the same symbol.

        :raises InvalidAbbreviation: if the symbol is invalid, the formula is blank or the table is full.

        """
        symbol = check_abbreviation_symbol(abbreviation.symbol)
        if not abbreviation.formula.strip():
            raise InvalidAbbreviation(messages.ABBREVIATION_BLANK_FORMULA, symbol)

        key = symbol.lower()
        if key not in self._abbreviations and len(self._abbreviations) >= MAX_ABBREVIATION_COUNT:
            raise InvalidAbbreviation(messages.ABBREVIATION_LIMIT_REACHED, symbol)

        if symbol != abbreviation.symbol:
            abbreviation = abbreviation.model_copy(update={"symbol": symbol})

        if abbreviation.invalid:
            logger.warning(f"Abbreviation `{symbol}` with formula `{abbreviation.formula}` is flagged as invalid.")
        self._abbreviations[key] = abbreviation

    def remove(self, symbol: str) -> AbbreviationDefinition:
        """Remove an abbreviation from the table.

        :raises AbbreviationNotFound: if the abbreviation is not in the table

        """
        abbreviation = self.get(symbol)
        del self._abbreviations[symbol.lower()]
        logger.info(f"Removed abbreviation `{abbreviation.symbol}`.")
        return abbreviation

    def clear(self) -> None:
        """Remove all abbreviations."""
        self._abbreviations.clear()
        logger.info("Removed all abbreviations.")

    def convert_amino_acid_symbol(self, symbol: str, one_to_three: bool = True) -> str:
        """Convert amino acid codes between one letter and three letter notation.

        :param symbol: the one letter or three letter code. Case insensitive.
        :param one_to_three: the conversion direction
        :return: the converted symbol or an empty string if the symbol is not found.

        """
        for abbreviation in self._abbreviations.values():
            if not abbreviation.is_amino_acid:
                continue
            if one_to_three and abbreviation.one_letter_symbol.lower() == symbol.lower():
                return abbreviation.symbol
            if not one_to_three and abbreviation.symbol.lower() == symbol.lower():
                return abbreviation.one_letter_symbol
        return ""

    def one_to_three_letter_sequence(self, sequence: str, separator: str = "") -> str:
        """Convert a one letter amino acid sequence to three letter notation.

        Unknown codes are converted to ``Xxx``.

        """
        residues = [self.convert_amino_acid_symbol(x) or "Xxx" for x in sequence if not x.isspace()]
        return separator.join(residues)

    def three_to_one_letter_sequence(self, sequence: str) -> str:
        """Convert a three letter amino acid sequence to one letter notation.

        Separators between residues (spaces or dashes) are ignored. Unknown codes are converted to ``X``.

        """
        compact = "".join(x for x in sequence if x.isalpha())
        residues = [compact[k : k + 3] for k in range(0, len(compact), 3)]
        return "".join(self.convert_amino_acid_symbol(x, one_to_three=False) or "X" for x in residues)
