"""Chemistry utilities.

Provides:

- element and abbreviation tables, with the default abbreviations and amino acid residues.
- a formula parser that computes the elemental composition, mass, charge and mass uncertainty of formulas.
- percent composition and empirical formula computations.
- an isotopic distribution engine that computes per-element isotopic patterns and convolves them into a
  whole molecule distribution.
- conversion of masses between charge states.
- conversion of stick spectra into Gaussian profile spectra.

The :py:class:`MolecularWeightCalculator` class ties all these functionalities together.

"""

from .abbreviations import DEFAULT_ABBREVIATIONS, AbbreviationTable
from .calculator import Compound, MolecularWeightCalculator
from .composition import compute_percent_composition, to_empirical_formula
from .elements import ElementTable
from .isotopes import compute_isotopic_distribution, iter_combinations, predict_combinations
from .mz import convolute_mass, mass_to_ppm, mono_mass_to_mz
from .parser import FormulaParser
from .symbols import SymbolTable

__all__ = [
    "DEFAULT_ABBREVIATIONS",
    "AbbreviationTable",
    "Compound",
    "ElementTable",
    "FormulaParser",
    "MolecularWeightCalculator",
    "SymbolTable",
    "compute_isotopic_distribution",
    "compute_percent_composition",
    "convolute_mass",
    "iter_combinations",
    "mass_to_ppm",
    "mono_mass_to_mz",
    "predict_combinations",
    "to_empirical_formula",
]
