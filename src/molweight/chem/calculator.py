"""Molecular weight calculator: owns the element and abbreviation tables and exposes every computation."""

from __future__ import annotations

import threading
from logging import getLogger
from typing import Sequence

from ..core import messages
from ..core.config import FormulaOptions, IsotopeOptions, ProfileOptions
from ..core.enums import ElementMassMode
from ..core.exceptions import ComputationFailure, InvalidAbbreviation, ParseFailure
from ..core.models import (
    AbbreviationDefinition,
    ElementDefinition,
    Isotope,
    IsotopeResult,
    ParseError,
    ParseResult,
    PercentComposition,
    ProfileSpectrum,
)
from ..core.progress import CancellationToken, ProgressCallback
from ..utils.formatting import format_mass_and_std_dev
from ..utils.gaussian import create_profile
from .abbreviations import AbbreviationTable, check_abbreviation_symbol
from .composition import compute_percent_composition, to_empirical_formula
from .elements import ElementTable
from .isotopes import compute_isotopic_distribution
from .mz import convolute_mass
from .parser import FormulaParser
from .symbols import SymbolTable

logger = getLogger(__name__)


class MolecularWeightCalculator:
    """Parse formulas and compute masses, compositions and isotopic distributions.

    Table mutations and computations are serialized with a re-entrant lock. The symbol table is
    rebuilt after each table mutation and when the abbreviation mode changes.

    :param mode: the element mass mode
    :param options: formula parsing and formatting options
    :param isotope_options: isotopic distribution settings

    """

    def __init__(
        self,
        mode: ElementMassMode = ElementMassMode.AVERAGE,
        options: FormulaOptions | None = None,
        isotope_options: IsotopeOptions | None = None,
    ):
        self._lock = threading.RLock()
        self.elements = ElementTable(mode)
        self.abbreviations = AbbreviationTable()
        self.options = options or FormulaOptions()
        self.isotope_options = isotope_options or IsotopeOptions()
        self._symbols = SymbolTable.build(self.elements, self.abbreviations, self.options.abbreviation_mode)
        self._symbols_mode = self.options.abbreviation_mode

    @property
    def parser(self) -> FormulaParser:
        """A formula parser that uses the current tables and options."""
        with self._lock:
            if self._symbols_mode != self.options.abbreviation_mode:
                self._rebuild_symbols()
            return FormulaParser(self.elements, self.abbreviations, self._symbols, self.options)

    @property
    def charge_carrier_mass(self) -> float:
        """The charge carrier mass used in m/z conversions."""
        return self.elements.charge_carrier_mass

    @charge_carrier_mass.setter
    def charge_carrier_mass(self, value: float) -> None:
        with self._lock:
            self.elements.charge_carrier_mass = value

    def _rebuild_symbols(self) -> None:
        self._symbols = SymbolTable.build(self.elements, self.abbreviations, self.options.abbreviation_mode)
        self._symbols_mode = self.options.abbreviation_mode
        logger.info(f"Rebuilt symbol table with {len(self._symbols)} symbols.")

    def parse(self, formula: str, expand_abbreviations: bool = False, value_for_x: float = 1.0) -> ParseResult:
        """Parse a formula. See :py:meth:`molweight.chem.parser.FormulaParser.parse`."""
        with self._lock:
            return self.parser.parse(formula, expand_abbreviations=expand_abbreviations, value_for_x=value_for_x)

    def _parse_or_raise(self, formula: str, expand_abbreviations: bool = False) -> ParseResult:
        result = self.parse(formula, expand_abbreviations=expand_abbreviations)
        if result.error is not None:
            raise ParseFailure(formula, result.error)
        return result

    def compute_mass(self, formula: str) -> float:
        """Compute the mass of a formula using the current element mass mode.

        :raises ParseFailure: if the formula cannot be parsed

        """
        return self._parse_or_raise(formula).mass

    def compute_percent_composition(self, formula: str) -> dict[str, PercentComposition]:
        """Compute the percent of the formula mass contributed by each element.

        :raises ParseFailure: if the formula cannot be parsed

        """
        with self._lock:
            result = self._parse_or_raise(formula)
            return compute_percent_composition(result.composition, self.elements, result.std_dev)

    def format_percent_composition(self, formula: str, include_std_dev: bool = True) -> dict[str, str]:
        """Create a text representation of the percent composition of each element."""
        composition = self.compute_percent_composition(formula)
        mode = self.options.std_dev_mode
        return {
            k: format_mass_and_std_dev(v.percent, v.std_dev, mode, include_std_dev, include_percent_sign=True)
            for k, v in composition.items()
        }

    def to_empirical_formula(self, formula: str) -> str:
        """Convert a formula to its empirical formula.

        :raises ParseFailure: if the formula cannot be parsed

        """
        return to_empirical_formula(self._parse_or_raise(formula).composition)

    def expand_abbreviations(self, formula: str) -> str:
        """Replace abbreviations by their formulas.

        :raises ParseFailure: if the formula cannot be parsed

        """
        return self._parse_or_raise(formula, expand_abbreviations=True).formula

    def format_mass(self, formula: str, include_std_dev: bool = True) -> str:
        """Create a text representation of the formula mass and standard deviation.

        :raises ParseFailure: if the formula cannot be parsed

        """
        result = self._parse_or_raise(formula)
        return format_mass_and_std_dev(result.mass, result.std_dev, self.options.std_dev_mode, include_std_dev)

    def compute_isotopic_distribution(
        self,
        formula: str,
        charge: int = 0,
        charge_carrier_mass: float = 0.0,
        progress: ProgressCallback | None = None,
        token: CancellationToken | None = None,
    ) -> IsotopeResult:
        """Compute the isotopic distribution of a formula.

        See :py:func:`molweight.chem.isotopes.compute_isotopic_distribution`.

        """
        with self._lock:
            return compute_isotopic_distribution(
                self.parser,
                formula,
                charge=charge,
                options=self.isotope_options,
                charge_carrier_mass=charge_carrier_mass,
                progress=progress,
                token=token,
            )

    def compute_profile(self, formula: str, charge: int = 0, options: ProfileOptions | None = None) -> ProfileSpectrum:
        """Compute the isotopic distribution of a formula and convert it into a Gaussian profile.

        :param formula: the formula
        :param charge: the charge state
        :param options: resolution and sampling settings of the profile
        :raises ParseFailure: if the formula cannot be parsed
        :raises ComputationFailure: if the isotopic distribution cannot be computed

        """
        result = self.compute_isotopic_distribution(formula, charge=charge)
        if isinstance(result.error, ParseError):
            raise ParseFailure(formula, result.error)
        if result.error is not None:
            raise ComputationFailure(result.error)
        assert result.spectrum is not None
        return result.spectrum.to_profile(options)

    def convert_stick_data_to_gaussian(
        self, data: Sequence[tuple[float, float]], options: ProfileOptions | None = None
    ) -> list[tuple[float, float]]:
        """Convert a list of ``(m/z, intensity)`` sticks into a Gaussian profile.

        See :py:func:`molweight.utils.gaussian.create_profile`.

        """
        options = options or ProfileOptions()
        mz = [x for x, _ in data]
        intensity = [y for _, y in data]
        x, y = create_profile(
            mz,
            intensity,
            options.resolution,
            options.resolution_mass,
            quality_factor=options.quality_factor,
            fill=options.fill_gaps,
            max_points=options.max_points,
        )
        return [(float(a), float(b)) for a, b in zip(x, y)]

    def convolute_mass(
        self, mass: float, current_charge: int, desired_charge: int = 1, charge_carrier_mass: float = 0.0
    ) -> float:
        """Convert a mass between charge states, using the table charge carrier mass by default."""
        return convolute_mass(
            mass, current_charge, desired_charge, charge_carrier_mass, self.elements.charge_carrier_mass
        )

    def set_mass_mode(self, mode: ElementMassMode, keep_isotopes: bool = False) -> None:
        """Set the element mass mode. See :py:meth:`molweight.chem.elements.ElementTable.set_mode`."""
        with self._lock:
            self.elements.set_mode(mode, keep_isotopes=keep_isotopes)
            self._rebuild_symbols()

    def set_element(self, symbol: str, mass: float, uncertainty: float, charge: float) -> ElementDefinition:
        """Update an element mass, uncertainty and charge."""
        with self._lock:
            element = self.elements.set_element(symbol, mass, uncertainty, charge)
            self._rebuild_symbols()
            return element

    def set_isotopes(self, symbol: str, isotopes: Sequence[Isotope | tuple[float, float]]) -> ElementDefinition:
        """Replace the isotopes of an element."""
        with self._lock:
            return self.elements.set_isotopes(symbol, isotopes)

    def reset_elements(self) -> None:
        """Restore reference element values."""
        with self._lock:
            self.elements.reset()
            self._rebuild_symbols()

    def get_abbreviation(self, symbol: str) -> AbbreviationDefinition:
        """Retrieve an abbreviation definition."""
        return self.abbreviations.get(symbol)

    def set_abbreviation(
        self,
        symbol: str,
        formula: str,
        charge: float = 0.0,
        is_amino_acid: bool = False,
        one_letter_symbol: str = "",
        comment: str = "",
        validate: bool = True,
    ) -> AbbreviationDefinition:
        """Add or update an abbreviation.

        Abbreviations with symbols equal to element symbols and abbreviations with formulas that
        cannot be parsed are stored but flagged as invalid, and are not recognized in formulas.

        :param symbol: the abbreviation symbol. Converted to proper case.
        :param formula: the abbreviation formula. May contain other abbreviations.
        :param charge: the abbreviation charge
        :param is_amino_acid: flag amino acid residues
        :param one_letter_symbol: one letter code of amino acids
        :param comment: description of the abbreviation
        :param validate: if ``True``, check that the formula can be parsed. Set to ``False`` to add
            abbreviations that depend on abbreviations that will be added later.
        :return: the stored definition
        :raises InvalidAbbreviation: if the symbol is invalid, the formula is blank or the table is full

        """
        with self._lock:
            symbol = check_abbreviation_symbol(symbol)
            if not formula.strip():
                raise InvalidAbbreviation(messages.ABBREVIATION_BLANK_FORMULA, symbol)
            clashes = self.elements.is_valid_symbol(symbol)
            if clashes:
                logger.warning(f"Abbreviation `{symbol}` is an element symbol.")
            definition = AbbreviationDefinition(
                symbol=symbol,
                formula=formula,
                charge=charge,
                is_amino_acid=is_amino_acid,
                one_letter_symbol=one_letter_symbol.upper()[:1],
                comment=comment,
                invalid=clashes,
            )
            self.abbreviations.add(definition)
            self._rebuild_symbols()

            if validate and not clashes:
                result = self.parser.parse(formula)
                if result.error is not None:
                    logger.warning(f"Formula `{formula}` of abbreviation `{symbol}` is invalid: {result.error.message}.")
                    self.abbreviations.add(definition.model_copy(update={"invalid": True}))
                    self._rebuild_symbols()
            logger.info(f"Set abbreviation `{symbol}` to `{formula}`.")
            return self.abbreviations.get(symbol)

    def remove_abbreviation(self, symbol: str) -> AbbreviationDefinition:
        """Remove an abbreviation. Case insensitive.

        :raises AbbreviationNotFound: if the abbreviation is not in the table

        """
        with self._lock:
            abbreviation = self.abbreviations.remove(symbol)
            self._rebuild_symbols()
            return abbreviation

    def remove_all_abbreviations(self) -> None:
        """Remove every abbreviation, including amino acids."""
        with self._lock:
            self.abbreviations.clear()
            self._rebuild_symbols()

    def reset_abbreviations(self) -> None:
        """Restore the default abbreviations."""
        with self._lock:
            self.abbreviations = AbbreviationTable()
            self._rebuild_symbols()

    def validate_abbreviations(self) -> int:
        """Check every abbreviation and update invalid flags.

        :return: the number of invalid abbreviations

        """
        with self._lock:
            candidates = list()
            for abbreviation in self.abbreviations:
                clashes = self.elements.is_valid_symbol(abbreviation.symbol)
                candidates.append(abbreviation.model_copy(update={"invalid": clashes}))
            for abbreviation in candidates:
                self.abbreviations.add(abbreviation)
            self._rebuild_symbols()

            parser = self.parser
            invalid = [x for x in candidates if x.invalid or parser.parse(x.formula).error is not None]
            for abbreviation in invalid:
                self.abbreviations.add(abbreviation.model_copy(update={"invalid": True}))
            self._rebuild_symbols()
            logger.info(f"Validated {len(candidates)} abbreviations, found {len(invalid)} invalid.")
            return len(invalid)

    def compute_abbreviation_mass(self, symbol: str) -> float:
        """Compute the mass of an abbreviation formula.

        :raises AbbreviationNotFound: if the abbreviation is not in the table
        :raises ParseFailure: if the abbreviation formula cannot be parsed

        """
        return self.compute_mass(self.abbreviations.get(symbol).formula)

    def convert_amino_acid_symbol(self, symbol: str, one_to_three: bool = True) -> str:
        """Convert amino acid codes. See :py:meth:`AbbreviationTable.convert_amino_acid_symbol`."""
        return self.abbreviations.convert_amino_acid_symbol(symbol, one_to_three=one_to_three)

    def create_compound(self, formula: str = "") -> Compound:
        """Create a compound bound to this calculator."""
        return Compound(self, formula)


class Compound:
    """A formula bound to a calculator.

    The formula is parsed when it is set. Parse results are cached until the formula changes.

    """

    def __init__(self, calculator: MolecularWeightCalculator, formula: str = ""):
        self.calculator = calculator
        self._formula = formula
        self._result = calculator.parse(formula)

    @property
    def formula(self) -> str:
        """The compound formula, as set by the user."""
        return self._formula

    @formula.setter
    def formula(self, value: str) -> None:
        self._formula = value
        self._result = self.calculator.parse(value)

    @property
    def result(self) -> ParseResult:
        """The formula parse result."""
        return self._result

    @property
    def ok(self) -> bool:
        return self._result.ok

    @property
    def mass(self) -> float:
        return self._result.mass

    @property
    def charge(self) -> float:
        return self._result.charge

    @property
    def std_dev(self) -> float:
        return self._result.std_dev

    @property
    def normalized_formula(self) -> str:
        """The formula with capitalized symbols."""
        return self._result.formula

    def get_element_count(self, symbol: str) -> float:
        """Retrieve the number of atoms of an element."""
        return self._result.composition.get_count(symbol)

    def get_percent_composition(self) -> dict[str, PercentComposition]:
        return self.calculator.compute_percent_composition(self._formula)

    def get_empirical_formula(self) -> str:
        return self.calculator.to_empirical_formula(self._formula)

    def get_expanded_formula(self) -> str:
        return self.calculator.expand_abbreviations(self._formula)

    def get_isotopic_distribution(self, charge: int = 0) -> IsotopeResult:
        return self.calculator.compute_isotopic_distribution(self._formula, charge=charge)

    def get_profile(self, charge: int = 0, options: ProfileOptions | None = None) -> ProfileSpectrum:
        return self.calculator.compute_profile(self._formula, charge=charge, options=options)

    def convert_to_mz(self, charge: int) -> float:
        """Compute the m/z of the compound mass at a charge state."""
        return self.calculator.convolute_mass(self.mass, 0, charge)

    def format_mass(self, include_std_dev: bool = True) -> str:
        return self.calculator.format_mass(self._formula, include_std_dev=include_std_dev)
