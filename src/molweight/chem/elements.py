"""Element table with masses, uncertainties, charges and isotopes."""

from __future__ import annotations

import json
from functools import cache
from logging import getLogger
from pathlib import Path
from typing import Iterator, Sequence, assert_never

import pydantic

from ..core.config import DEFAULT_CHARGE_CARRIER_MASS_AVERAGE, DEFAULT_CHARGE_CARRIER_MASS_MONOISOTOPIC
from ..core.enums import ElementMassMode
from ..core.exceptions import ElementNotFound, InvalidIsotopeData
from ..core.models import ELEMENT_COUNT, ElementDefinition, Isotope

logger = getLogger(__name__)

ELEMENTS_DATA_PATH = Path(__file__).parent / "data" / "elements.json"

HYDROGEN = 1
CARBON = 6
SILICON = 14

# periods 2 to 7, groups 1 to 14
_HYDRIDE_PARTNER_RANGES = ((3, 6), (11, 14), (19, 32), (37, 50), (55, 82), (87, 109))


def is_hydride_partner(atomic_number: int) -> bool:
    """Check if hydrogen bound after this element contributes a charge of -1 instead of +1.

    Hydrogen itself and the elements of groups 1 to 14 (metals, metalloids, boron and carbon)
    belong to this group.

    """
    if atomic_number == HYDROGEN:
        return True
    return any(lo <= atomic_number <= hi for lo, hi in _HYDRIDE_PARTNER_RANGES)


def is_chain_forming(atomic_number: int) -> bool:
    """Check if the element forms chains whose charge is corrected by two per bond, i.e. C or Si."""
    return atomic_number in (CARBON, SILICON)


class ElementRecord(pydantic.BaseModel):
    """Reference data for an element."""

    atomic_number: int
    symbol: str
    charge: float
    integer_mass: int
    isotopic_mass: float
    average_mass: float
    uncertainty: float
    isotopes: tuple[Isotope, ...]

    model_config = pydantic.ConfigDict(frozen=True)

    def get_mass(self, mode: ElementMassMode) -> float:
        match mode:
            case ElementMassMode.AVERAGE:
                return self.average_mass
            case ElementMassMode.ISOTOPIC:
                return self.isotopic_mass
            case ElementMassMode.INTEGER:
                return float(self.integer_mass)
            case _ as never:
                assert_never(never)

    def get_uncertainty(self, mode: ElementMassMode) -> float:
        return self.uncertainty if mode == ElementMassMode.AVERAGE else 0.0


@cache
def load_element_records() -> tuple[ElementRecord, ...]:
    """Load the reference element data."""
    with ELEMENTS_DATA_PATH.open() as f:
        data = json.load(f)
    records = tuple(ElementRecord(**x) for x in data)
    assert len(records) == ELEMENT_COUNT
    return records


def get_default_charge_carrier_mass(mode: ElementMassMode) -> float:
    """Retrieve the default charge carrier mass for an element mass mode."""
    if mode == ElementMassMode.AVERAGE:
        return DEFAULT_CHARGE_CARRIER_MASS_AVERAGE
    return DEFAULT_CHARGE_CARRIER_MASS_MONOISOTOPIC


class ElementTable:
    """Maintain the element definitions used to parse formulas and compute masses.

    Element definitions are created from reference data using the current element mass mode.
    Definitions may be customized using :py:meth:`set_element` and :py:meth:`set_isotopes`.

    :param mode: the element mass mode

    """

    def __init__(self, mode: ElementMassMode = ElementMassMode.AVERAGE):
        self._mode = mode
        self._elements: dict[int, ElementDefinition] = dict()
        self._symbol_to_atomic_number: dict[str, int] = dict()
        self.charge_carrier_mass = get_default_charge_carrier_mass(mode)
        self._load(keep_isotopes=False)

    def __getitem__(self, element: int | str) -> ElementDefinition:
        return self.get(element)

    def __iter__(self) -> Iterator[ElementDefinition]:
        return iter(self._elements.values())

    def __len__(self) -> int:
        return len(self._elements)

    @property
    def mode(self) -> ElementMassMode:
        """The current element mass mode."""
        return self._mode

    def get(self, element: int | str) -> ElementDefinition:
        """Retrieve an element definition.

        :param element: the element symbol or atomic number. Symbols are case sensitive.
        :raises ElementNotFound: if the element is not in the table

        """
        if isinstance(element, str):
            element = self.get_atomic_number(element)
        if element not in self._elements:
            raise ElementNotFound(f"No element with atomic number {element}.")
        return self._elements[element]

    def get_atomic_number(self, symbol: str) -> int:
        """Retrieve the atomic number of an element symbol.

        :raises ElementNotFound: if the symbol is not in the table

        """
        if symbol not in self._symbol_to_atomic_number:
            raise ElementNotFound(f"Element `{symbol}` not found.")
        return self._symbol_to_atomic_number[symbol]

    def is_valid_symbol(self, symbol: str, case_sensitive: bool = True) -> bool:
        """Check if a string is an element symbol."""
        if case_sensitive:
            return symbol in self._symbol_to_atomic_number
        return symbol.lower() in {x.lower() for x in self._symbol_to_atomic_number}

    def list_symbols(self, alphabetical: bool = False) -> list[str]:
        """List element symbols, sorted by atomic number or alphabetically."""
        symbols = [x.symbol for x in self._elements.values()]
        return sorted(symbols) if alphabetical else symbols

    def set_mode(self, mode: ElementMassMode, keep_isotopes: bool = False) -> None:
        """Set the element mass mode and reload element masses and uncertainties from the reference data.

        :param mode: the new element mass mode
        :param keep_isotopes: if ``True``, customized isotopes are kept. Otherwise, reference isotopes
            are restored.

        """
        logger.info(f"Setting element mass mode to `{mode.value}`.")
        self._mode = mode
        self.charge_carrier_mass = get_default_charge_carrier_mass(mode)
        self._load(keep_isotopes=keep_isotopes)

    def set_element(self, symbol: str, mass: float, uncertainty: float, charge: float) -> ElementDefinition:
        """Update the mass, uncertainty and charge of an element.

        :param symbol: the element symbol. Case insensitive.
        :raises ElementNotFound: if the symbol is not in the table

        """
        current = self.get(self._find_symbol(symbol))
        updated = current.model_copy(update={"mass": mass, "uncertainty": uncertainty, "charge": charge})
        self._elements[current.atomic_number] = updated
        logger.info(f"Updated element `{current.symbol}`: mass={mass}, uncertainty={uncertainty}, charge={charge}.")
        return updated

    def set_isotopes(self, symbol: str, isotopes: Sequence[Isotope | tuple[float, float]]) -> ElementDefinition:
        """Replace the isotopes of an element.

        :param symbol: the element symbol. Case insensitive.
        :param isotopes: isotopes or `(mass, abundance)` pairs. Sorted by mass before storing them.
        :raises ElementNotFound: if the symbol is not in the table
        :raises InvalidIsotopeData: if the isotope list is empty or contains invalid values

        """
        current = self.get(self._find_symbol(symbol))
        if not isotopes:
            raise InvalidIsotopeData(f"At least one isotope is required for element `{current.symbol}`.")
        try:
            items = [x if isinstance(x, Isotope) else Isotope(mass=x[0], abundance=x[1]) for x in isotopes]
        except pydantic.ValidationError as e:
            raise InvalidIsotopeData(f"Invalid isotope data for element `{current.symbol}`.") from e
        items.sort(key=lambda x: x.mass)
        updated = current.model_copy(update={"isotopes": tuple(items)})
        self._elements[current.atomic_number] = updated
        logger.info(f"Updated isotopes of element `{current.symbol}`: {len(items)} isotopes.")
        return updated

    def reset(self, symbol: str | None = None) -> None:
        """Restore reference values for one element or for all elements if `symbol` is ``None``."""
        if symbol is None:
            self._load(keep_isotopes=False)
            return
        atomic_number = self.get_atomic_number(self._find_symbol(symbol))
        record = load_element_records()[atomic_number - 1]
        self._elements[atomic_number] = self._create_definition(record)

    def _find_symbol(self, symbol: str) -> str:
        for candidate in self._symbol_to_atomic_number:
            if candidate.lower() == symbol.lower():
                return candidate
        raise ElementNotFound(f"Element `{symbol}` not found.")

    def _create_definition(self, record: ElementRecord) -> ElementDefinition:
        return ElementDefinition(
            atomic_number=record.atomic_number,
            symbol=record.symbol,
            mass=record.get_mass(self._mode),
            uncertainty=record.get_uncertainty(self._mode),
            charge=record.charge,
            isotopes=tuple(sorted(record.isotopes, key=lambda x: x.mass)),
        )

    def _load(self, keep_isotopes: bool) -> None:
        elements = dict()
        for record in load_element_records():
            definition = self._create_definition(record)
            if keep_isotopes and record.atomic_number in self._elements:
                isotopes = self._elements[record.atomic_number].isotopes
                definition = definition.model_copy(update={"isotopes": isotopes})
            elements[record.atomic_number] = definition
        self._elements = elements
        self._symbol_to_atomic_number = {x.symbol: x.atomic_number for x in elements.values()}
