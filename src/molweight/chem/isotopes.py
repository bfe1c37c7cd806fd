"""Isotope combinatorics: per-element isotopic abundance patterns.

The abundance of each distribution of `n` atoms into isotope bins is given by the multinomial
distribution. Abundances are computed in the log domain while they are significant and derived from
the previous combination using abundance ratios once they fall below a cutoff.

"""

from __future__ import annotations

import math
import re
from logging import getLogger
from typing import Iterator, Sequence

import numpy
from scipy.special import gammaln

from ..core import messages
from ..core.config import IsotopeOptions
from ..core.exceptions import ComputationFailure
from ..core.models import (
    ComputationError,
    ConvolvedSpectrum,
    ElementComposition,
    ElementDefinition,
    IsotopePattern,
    IsotopeResult,
)
from ..core.progress import CancellationToken, ProgressCallback, ProgressTracker
from ..utils.numpy import find_bounds_above
from .convolution import convolve_patterns, create_spectrum
from .elements import HYDROGEN, ElementTable
from .parser import FormulaParser

logger = getLogger(__name__)

DEUTERIUM_PATTERN = re.compile(r"D(?![a-z])")
DEUTERIUM_REPLACEMENT = "^2.0141018H"
INTEGER_TOLERANCE = 1e-6


def predict_combinations(atom_count: int, isotope_count: int) -> int:
    """Compute the number of ways to distribute indistinguishable atoms into isotope bins.

    :param atom_count: the number of atoms
    :param isotope_count: the number of isotopes
    :return: the binomial coefficient ``C(atom_count + isotope_count - 1, isotope_count - 1)``.

    """
    if atom_count == 1 or isotope_count == 1:
        return isotope_count
    return math.comb(atom_count + isotope_count - 1, isotope_count - 1)


def iter_combinations(atom_count: int, isotope_count: int) -> Iterator[tuple[int, ...]]:
    """Enumerate the distributions of `atom_count` atoms into `isotope_count` bins.

    Distributions are generated with the first bin count decreasing from `atom_count` to zero
    and the remaining atoms distributed recursively into the other bins.

    """
    if isotope_count == 1:
        yield (atom_count,)
        return
    for first in range(atom_count, -1, -1):
        for rest in iter_combinations(atom_count - first, isotope_count - 1):
            yield (first, *rest)


def _check_cancelled(token: CancellationToken | None) -> None:
    if token is not None and token.cancelled:
        logger.warning("Isotopic distribution computation aborted.")
        raise ComputationFailure(ComputationError(code=messages.PROCESS_ABORTED))


def compute_element_pattern(
    element: ElementDefinition,
    atom_count: int,
    options: IsotopeOptions | None = None,
    progress: ProgressCallback | None = None,
    token: CancellationToken | None = None,
) -> IsotopePattern:
    """Compute the isotopic pattern of `atom_count` atoms of an element.

    :param element: the element definition. Isotopes must be sorted by mass.
    :param atom_count: number of atoms
    :param options: limits used in the computation
    :param progress: receives progress updates
    :param token: cancellation token checked after each combination
    :raises ComputationFailure: if the number of combinations exceeds the limit or if the computation
        is cancelled.

    """
    options = options or IsotopeOptions()
    isotopes = element.isotopes
    isotope_count = len(isotopes)
    predicted = predict_combinations(atom_count, isotope_count)
    if predicted > options.max_combinations:
        logger.warning(
            f"Too many isotope combinations for {element.symbol}{atom_count}: {predicted} > {options.max_combinations}."
        )
        detail = f"{element.symbol}{atom_count}"
        raise ComputationFailure(ComputationError(code=messages.TOO_MANY_COMBINATIONS, detail=detail))

    nominal = numpy.array([round(x.mass) for x in isotopes], dtype=int)
    with numpy.errstate(divide="ignore"):
        log_abundance = numpy.log(numpy.array([x.abundance for x in isotopes]))
    log_factorial = gammaln(numpy.arange(atom_count + 1) + 1.0)
    start_mass = atom_count * int(nominal[0])
    size = atom_count * int(nominal[-1] - nominal[0]) + 1
    abundance = numpy.zeros(size)

    tracker = ProgressTracker(progress, f"Computing isotopes of {element.symbol}", predicted, options.progress_interval)
    previous_bins: tuple[int, ...] | None = None
    previous = 0.0
    count = 0
    for bins in iter_combinations(atom_count, isotope_count):
        _check_cancelled(token)
        if previous_bins is None or previous == 0.0 or previous >= options.ratio_method_cutoff:
            current = _multinomial_abundance(bins, atom_count, log_abundance, log_factorial)
        else:
            current = previous * _abundance_ratio(previous_bins, bins, log_abundance, log_factorial)
        index = int(numpy.dot(bins, nominal)) - start_mass
        abundance[index] += current
        previous_bins, previous = bins, current
        count += 1
        tracker.advance()
    tracker.finish()

    if count != predicted:
        logger.warning(f"Predicted {predicted} combinations for {element.symbol}{atom_count}, computed {count}.")

    _, end = find_bounds_above(abundance, options.min_abundance)
    abundance = abundance[: max(end, 1)]

    return IsotopePattern(
        atomic_number=element.atomic_number,
        symbol=element.symbol,
        atom_count=atom_count,
        start_mass=start_mass,
        exact_start_mass=atom_count * isotopes[0].mass,
        abundance=abundance,
        combinations=count,
    )


def _multinomial_abundance(
    bins: Sequence[int], atom_count: int, log_abundance: numpy.ndarray, log_factorial: numpy.ndarray
) -> float:
    log_value = log_factorial[atom_count]
    for n, log_p in zip(bins, log_abundance):
        if n == 0:
            continue
        if not numpy.isfinite(log_p):
            return 0.0
        log_value += n * log_p - log_factorial[n]
    return math.exp(log_value)


def _abundance_ratio(
    previous: Sequence[int], current: Sequence[int], log_abundance: numpy.ndarray, log_factorial: numpy.ndarray
) -> float:
    log_ratio = 0.0
    for before, after, log_p in zip(previous, current, log_abundance):
        if before == after:
            continue
        if after > before and not numpy.isfinite(log_p):
            return 0.0
        log_ratio += log_factorial[before] - log_factorial[after]
        if numpy.isfinite(log_p):
            log_ratio += (after - before) * log_p
    return math.exp(log_ratio)


def create_explicit_isotope_pattern(element: ElementDefinition, mass: float, count: int) -> IsotopePattern:
    """Create a single peak pattern for atoms with an explicit isotope mass."""
    return IsotopePattern(
        atomic_number=element.atomic_number,
        symbol=element.symbol,
        atom_count=count,
        start_mass=count * round(mass),
        exact_start_mass=count * mass,
        abundance=numpy.ones(1),
        combinations=1,
        explicit=True,
    )


def _as_integer(value: float) -> int | None:
    rounded = round(value)
    if abs(value - rounded) > INTEGER_TOLERANCE:
        return None
    return int(rounded)


def build_patterns(
    composition: ElementComposition,
    elements: ElementTable,
    options: IsotopeOptions | None = None,
    progress: ProgressCallback | None = None,
    token: CancellationToken | None = None,
) -> list[IsotopePattern]:
    """Create the isotopic patterns of every element in a composition.

    Atoms with explicit isotope masses are removed from the element counts and added as
    independent single peak patterns.

    :raises ComputationFailure: if the composition contains fractional or negative atom counts, if the
        number of combinations exceeds the limit or if the computation is cancelled.

    """
    options = options or IsotopeOptions()
    patterns = list()
    for atomic_number, item in composition.elements.items():
        element = elements[atomic_number]
        plain_count = _as_integer(item.count - item.explicit_count)
        if plain_count is None:
            error = ComputationError(code=messages.FRACTIONAL_ATOMS, detail=f"{item.symbol}{item.count:g}")
            raise ComputationFailure(error)
        if plain_count < 0:
            # e.g. ^13CH4>C, a mass difference rather than a molecule
            detail = f"{item.symbol}{plain_count}"
            raise ComputationFailure(ComputationError(code=messages.NEGATIVE_ATOMS, detail=detail))

        for isotope in item.explicit_isotopes:
            isotope_count = _as_integer(isotope.count)
            detail = f"^{isotope.mass:g}{item.symbol}{isotope.count:g}"
            if isotope_count is None:
                raise ComputationFailure(ComputationError(code=messages.FRACTIONAL_ATOMS, detail=detail))
            if isotope_count < 0:
                raise ComputationFailure(ComputationError(code=messages.NEGATIVE_ATOMS, detail=detail))
            if isotope_count > 0:
                patterns.append(create_explicit_isotope_pattern(element, isotope.mass, isotope_count))

        if plain_count > 0:
            patterns.append(compute_element_pattern(element, plain_count, options, progress, token))
    return patterns


def compute_isotopic_distribution(
    parser: FormulaParser,
    formula: str,
    charge: int = 0,
    options: IsotopeOptions | None = None,
    charge_carrier_mass: float = 0.0,
    progress: ProgressCallback | None = None,
    token: CancellationToken | None = None,
) -> IsotopeResult:
    """Compute the isotopic distribution of a formula.

    :param parser: the formula parser
    :param formula: the formula
    :param charge: the charge state. If ``0``, neutral masses are reported. Otherwise, m/z values. Negative
        charge states are reported as an error.
    :param options: computation limits and output settings
    :param charge_carrier_mass: the charge carrier mass used to compute m/z values. If ``0``, the
        element table charge carrier mass is used.
    :param progress: receives progress updates
    :param token: checked periodically to stop the computation
    :return: the computation result. Parse errors, combinatorial explosion, negative charge states and
        cancellation are reported in the result error.

    """
    options = options or IsotopeOptions()
    if charge < 0:
        logger.warning(f"Cannot compute the isotopic distribution of `{formula}` at charge state {charge}.")
        error = ComputationError(code=messages.NEGATIVE_CHARGE_STATE, detail=str(charge))
        return IsotopeResult(formula=formula, error=error)

    result = parser.parse(formula)
    if result.error is not None:
        return IsotopeResult(formula=formula, error=result.error)

    hydrogen = result.composition.elements.get(HYDROGEN)
    if hydrogen is not None and _as_integer(hydrogen.count) is None:
        # rewrite deuterium as an explicit hydrogen isotope
        formula = DEUTERIUM_PATTERN.sub(DEUTERIUM_REPLACEMENT, result.formula)
        logger.debug(f"Replaced deuterium symbols: `{formula}`.")
        result = parser.parse(formula)
        if result.error is not None:
            return IsotopeResult(formula=formula, error=result.error)

    if not result.composition.elements or result.mass == 0.0:
        empty = numpy.zeros(0)
        spectrum = ConvolvedSpectrum(formula=result.formula, charge=charge, mz=empty, fraction=empty, abundance=empty)
        return IsotopeResult(formula=result.formula, spectrum=spectrum)

    if charge_carrier_mass == 0.0:
        charge_carrier_mass = parser.elements.charge_carrier_mass

    try:
        patterns = build_patterns(result.composition, parser.elements, options, progress, token)
        start_mass, fraction = convolve_patterns(patterns, progress, token)
    except ComputationFailure as e:
        logger.warning(f"Cannot compute the isotopic distribution of `{formula}`: {e.error.message}.")
        return IsotopeResult(formula=result.formula, error=e.error)

    spectrum = create_spectrum(
        result.formula, patterns, start_mass, fraction, charge, options, charge_carrier_mass
    )
    return IsotopeResult(formula=result.formula, spectrum=spectrum, patterns=tuple(patterns))
