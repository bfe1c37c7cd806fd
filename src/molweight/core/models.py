"""molweight core data models."""

from __future__ import annotations

from typing import Annotated

import numpy
import pydantic

from ..utils.gaussian import create_profile
from ..utils.numpy import FloatArray1D
from .config import ProfileOptions
from .messages import lookup_message

ELEMENT_COUNT = 103
"""Number of elements in the periodic table supported by the library."""

ElementId = Annotated[int, pydantic.Field(ge=1, le=ELEMENT_COUNT)]
"""Atomic number of an element in the element table."""


class Isotope(pydantic.BaseModel):
    """Store the mass and natural abundance of an isotope."""

    mass: pydantic.PositiveFloat
    """The isotope exact mass."""

    abundance: float = pydantic.Field(ge=0.0, le=1.0)
    """The isotope relative abundance."""

    model_config = pydantic.ConfigDict(frozen=True)


class ElementDefinition(pydantic.BaseModel):
    """Store element data used to compute formula masses.

    The `mass` and `uncertainty` values depend on the element mass mode used to create the
    definition. Isotopes are sorted by mass.

    """

    atomic_number: ElementId
    """The element atomic number. Used as element identifier."""

    symbol: str
    """The element symbol."""

    mass: float
    """The element mass used in mass computations."""

    uncertainty: float = pydantic.Field(default=0.0, ge=0.0)
    """The element mass uncertainty."""

    charge: float = 0.0
    """The default ionic charge of the element."""

    isotopes: tuple[Isotope, ...] = tuple()
    """The element isotopes, sorted by mass."""

    model_config = pydantic.ConfigDict(frozen=True)

    @property
    def lightest_isotope(self) -> Isotope:
        """Retrieve the isotope with the lowest mass."""
        return self.isotopes[0]


class AbbreviationDefinition(pydantic.BaseModel):
    """Store a named shorthand for a formula."""

    symbol: str = pydantic.Field(min_length=1, max_length=6, pattern=r"^[A-Za-z]+$")
    """The abbreviation symbol. Only letters are allowed."""

    formula: str = pydantic.Field(min_length=1)
    """The formula represented by the abbreviation. May contain other abbreviations."""

    charge: float = 0.0
    """The declared charge of the abbreviation."""

    is_amino_acid: bool = False
    """Flag abbreviations that represent amino acid residues."""

    one_letter_symbol: str = ""
    """The one letter code of amino acids."""

    comment: str = ""
    """A description of the abbreviation."""

    invalid: bool = False
    """Set to ``True`` if the symbol clashes with an element or the formula cannot be parsed."""

    model_config = pydantic.ConfigDict(frozen=True)


class ExplicitIsotope(pydantic.BaseModel):
    """Store atoms of an element specified with the caret notation, e.g. ``^13C``."""

    mass: float
    """The isotope mass written in the formula."""

    count: float
    """Number of atoms with the specified isotope mass. Negative if more atoms were subtracted than added."""

    model_config = pydantic.ConfigDict(frozen=True)


class ElementCount(pydantic.BaseModel):
    """Store the number of atoms of an element in a formula."""

    atomic_number: ElementId
    """The element atomic number."""

    symbol: str
    """The element symbol."""

    count: float = pydantic.Field(default=0.0, ge=0.0)
    """The total number of atoms, including explicit isotopes. May be fractional."""

    isotopic_correction: float = 0.0
    """Mass delta added by explicit isotopes with respect to the element mass."""

    explicit_isotopes: tuple[ExplicitIsotope, ...] = tuple()
    """Atoms specified using the caret notation, net of subtracted isotopes."""

    model_config = pydantic.ConfigDict(frozen=True)

    @property
    def explicit_count(self) -> float:
        """The number of atoms specified as explicit isotopes."""
        return sum(x.count for x in self.explicit_isotopes)


class ElementComposition(pydantic.BaseModel):
    """Store the elemental composition of a formula, keyed by atomic number."""

    elements: dict[ElementId, ElementCount] = dict()
    """Element counts, sorted by atomic number."""

    model_config = pydantic.ConfigDict(frozen=True)

    def __contains__(self, symbol: str) -> bool:
        return any(x.symbol == symbol for x in self.elements.values())

    def __len__(self) -> int:
        return len(self.elements)

    def get_count(self, symbol: str) -> float:
        """Retrieve the number of atoms of an element. Return ``0.0`` for elements not in the formula."""
        for element in self.elements.values():
            if element.symbol == symbol:
                return element.count
        return 0.0

    def to_dict(self) -> dict[str, float]:
        """Create a dictionary that maps element symbols to atom counts."""
        return {x.symbol: x.count for x in self.elements.values()}


class ParseError(pydantic.BaseModel):
    """Describe the first error found while parsing a formula."""

    code: int
    """The message id of the error."""

    position: int
    """Position of the error in the formula text."""

    character: str
    """The character found at the error position."""

    model_config = pydantic.ConfigDict(frozen=True)

    @property
    def message(self) -> str:
        """The error description."""
        return lookup_message(self.code)


class ComputationError(pydantic.BaseModel):
    """Describe an error that prevented the completion of an isotopic distribution computation."""

    code: int
    """The message id of the error."""

    detail: str = ""
    """Additional information about the error."""

    model_config = pydantic.ConfigDict(frozen=True)

    @property
    def message(self) -> str:
        """The error description."""
        msg = lookup_message(self.code)
        return f"{msg}: {self.detail}" if self.detail else msg


class PercentComposition(pydantic.BaseModel):
    """Store the percent of the total formula mass contributed by an element."""

    symbol: str
    percent: float
    std_dev: float

    model_config = pydantic.ConfigDict(frozen=True)


class ParseResult(pydantic.BaseModel):
    """Store the result of parsing a formula.

    If `error` is not ``None``, the formula could not be parsed and composition values must
    not be used.

    """

    formula: str
    """The normalized formula. Symbols are capitalized and abbreviations are expanded if requested."""

    composition: ElementComposition = ElementComposition()
    """The formula elemental composition."""

    mass: float = 0.0
    """The formula mass."""

    charge: float = 0.0
    """The formula net charge."""

    std_dev: float = 0.0
    """The formula mass standard deviation, propagated from the element mass uncertainties."""

    cautions: tuple[str, ...] = tuple()
    """Caution statements on commonly mistyped symbols and unlikely isotopic masses."""

    error: ParseError | None = None
    """The first error found while parsing the formula."""

    model_config = pydantic.ConfigDict(frozen=True)

    @property
    def ok(self) -> bool:
        """Check if the formula was parsed without errors."""
        return self.error is None


class IsotopePattern(pydantic.BaseModel):
    """Store the isotopic abundances of the atoms of a single element in a formula.

    Abundances are indexed by nominal mass offset with respect to `start_mass`.

    """

    atomic_number: ElementId
    """The element atomic number."""

    symbol: str
    """The element symbol."""

    atom_count: pydantic.PositiveInt
    """Number of atoms of the element."""

    start_mass: int
    """Nominal mass of the first abundance entry."""

    exact_start_mass: float
    """Exact mass of the first abundance entry: the atom count times the lightest isotope mass."""

    abundance: FloatArray1D
    """Fractional abundance at each nominal mass."""

    combinations: int
    """Number of isotope combinations evaluated."""

    explicit: bool = False
    """``True`` if the pattern was created from atoms with an explicit isotope mass."""

    model_config = pydantic.ConfigDict(frozen=True, arbitrary_types_allowed=True)

    @property
    def nominal_mass(self) -> numpy.ndarray:
        """The nominal mass of each abundance entry."""
        return numpy.arange(self.abundance.size) + self.start_mass


class ConvolvedSpectrum(pydantic.BaseModel):
    """Store the isotopic distribution of a formula."""

    formula: str
    """The formula used to compute the spectrum."""

    charge: int = 0
    """The charge state of the spectrum. If ``0``, `mz` contains neutral masses."""

    mz: FloatArray1D
    """The m/z (or neutral mass, if charge is ``0``) of each peak."""

    fraction: FloatArray1D
    """Fractional abundance of each peak."""

    abundance: FloatArray1D
    """Abundance of each peak, normalized so that the tallest peak is equal to the normalization scale."""

    model_config = pydantic.ConfigDict(frozen=True, arbitrary_types_allowed=True)

    def __len__(self) -> int:
        return self.mz.size

    def to_list(self) -> list[tuple[float, float]]:
        """Create a list of ``(m/z, abundance)`` pairs."""
        return [(float(x), float(y)) for x, y in zip(self.mz, self.abundance)]

    def to_profile(self, options: ProfileOptions | None = None) -> ProfileSpectrum:
        """Create a profile spectrum by replacing each peak with a Gaussian peak with height equal to its abundance."""
        options = options or ProfileOptions()
        mz, intensity = create_profile(
            self.mz,
            self.abundance,
            options.resolution,
            options.resolution_mass,
            quality_factor=options.quality_factor,
            fill=options.fill_gaps,
            max_points=options.max_points,
        )
        return ProfileSpectrum(formula=self.formula, charge=self.charge, mz=mz, intensity=intensity)


class ProfileSpectrum(pydantic.BaseModel):
    """Store an isotopic distribution in profile mode."""

    formula: str
    """The formula used to compute the spectrum."""

    charge: int = 0
    """The charge state of the spectrum."""

    mz: FloatArray1D
    """The m/z (or neutral mass, if charge is ``0``) of each point."""

    intensity: FloatArray1D
    """The intensity of each point."""

    model_config = pydantic.ConfigDict(frozen=True, arbitrary_types_allowed=True)

    def __len__(self) -> int:
        return self.mz.size

    def to_list(self) -> list[tuple[float, float]]:
        """Create a list of ``(m/z, intensity)`` pairs."""
        return [(float(x), float(y)) for x, y in zip(self.mz, self.intensity)]


class IsotopeResult(pydantic.BaseModel):
    """Store the result of an isotopic distribution computation."""

    formula: str
    """The formula used in the computation, after deuterium substitution."""

    spectrum: ConvolvedSpectrum | None = None
    """The isotopic distribution. ``None`` if the computation could not be completed."""

    patterns: tuple[IsotopePattern, ...] = tuple()
    """The per element isotopic patterns, trimmed."""

    error: ParseError | ComputationError | None = None
    """Error that prevented the completion of the computation."""

    model_config = pydantic.ConfigDict(frozen=True, arbitrary_types_allowed=True)

    @property
    def ok(self) -> bool:
        """Check if the computation was completed."""
        return self.error is None
