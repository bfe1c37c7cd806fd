"""Convolution of per-element isotopic patterns into a whole molecule distribution."""

from __future__ import annotations

from logging import getLogger
from typing import Sequence

import numpy

from ..core import messages
from ..core.config import IsotopeOptions
from ..core.exceptions import ComputationFailure
from ..core.models import ComputationError, ConvolvedSpectrum, IsotopePattern
from ..core.progress import CancellationToken, ProgressCallback, ProgressTracker
from ..utils.numpy import normalize_to_max
from .mz import convolute_mass

logger = getLogger(__name__)


def convolve_patterns(
    patterns: Sequence[IsotopePattern],
    progress: ProgressCallback | None = None,
    token: CancellationToken | None = None,
) -> tuple[int, numpy.ndarray]:
    """Combine isotopic patterns using a depth-first traversal of the pattern list.

    Each path in the traversal selects one entry of each pattern. Nominal masses are added and
    abundances are multiplied. The last pattern is combined using array operations.

    :param patterns: the per-element isotopic patterns
    :param progress: receives progress updates
    :param token: checked at each traversal node to stop the computation
    :return: the nominal mass of the first entry and the fractional abundance at each nominal mass.
    :raises ComputationFailure: if the computation is cancelled

    """
    if not patterns:
        return 0, numpy.zeros(0)

    start_mass = sum(x.start_mass for x in patterns)
    size = sum(x.abundance.size - 1 for x in patterns) + 1
    result = numpy.zeros(size)
    last = len(patterns) - 1
    tracker = ProgressTracker(progress, "Convolving isotopic patterns", patterns[0].abundance.size)

    def visit(level: int, offset: int, abundance: float) -> None:
        if token is not None and token.cancelled:
            logger.warning("Isotopic pattern convolution aborted.")
            raise ComputationFailure(ComputationError(code=messages.PROCESS_ABORTED))
        pattern = patterns[level].abundance
        if level == last:
            result[offset : offset + pattern.size] += abundance * pattern
            return
        for k, value in enumerate(pattern):
            if value > 0.0:
                visit(level + 1, offset + k, abundance * value)
            if level == 0:
                tracker.advance()

    visit(0, 0, 1.0)
    tracker.finish()
    return start_mass, result


def compute_mass_defect(patterns: Sequence[IsotopePattern]) -> float:
    """Compute the difference between the exact and nominal mass of the lightest isotopologue."""
    exact = sum(x.exact_start_mass for x in patterns)
    nominal = sum(x.start_mass for x in patterns)
    return round(exact - nominal, 5)


def trim_distribution(fraction: numpy.ndarray, min_abundance: float) -> tuple[int, int]:
    """Find the region of a distribution that excludes negligible leading and trailing abundances.

    Trailing entries less than or equal to `min_abundance` and leading entries lower than
    `min_abundance` are excluded.

    :return: a tuple `(start, end)` such that ``fraction[start:end]`` is the trimmed distribution.

    """
    (above,) = numpy.where(fraction > min_abundance)
    if not above.size:
        return 0, 0
    end = int(above[-1]) + 1
    (kept,) = numpy.where(fraction[:end] >= min_abundance)
    return int(kept[0]), end


def create_spectrum(
    formula: str,
    patterns: Sequence[IsotopePattern],
    start_mass: int,
    fraction: numpy.ndarray,
    charge: int = 0,
    options: IsotopeOptions | None = None,
    charge_carrier_mass: float = 0.0,
) -> ConvolvedSpectrum:
    """Create a spectrum from a convolved distribution.

    The mass defect is added to nominal masses, negligible abundances are trimmed and abundances are
    normalized. If `charge` is greater than zero, masses are converted to m/z values.

    :param formula: the formula of the distribution
    :param patterns: the patterns used to create the distribution
    :param start_mass: nominal mass of the first distribution entry
    :param fraction: the fractional abundance at each nominal mass
    :param charge: the charge state
    :param options: trimming, normalization and m/z conversion settings
    :param charge_carrier_mass: the charge carrier mass used in m/z conversion

    """
    options = options or IsotopeOptions()
    mass_defect = compute_mass_defect(patterns)
    mass = start_mass + numpy.arange(fraction.size) + mass_defect

    start, end = trim_distribution(fraction, options.min_abundance)
    mass = mass[start:end]
    fraction = fraction[start:end]

    if charge >= 1:
        if options.add_proton_charge_carrier:
            mz = numpy.array([convolute_mass(x, 0, charge, charge_carrier_mass) for x in mass])
        else:
            mz = mass / charge
    else:
        mz = mass

    abundance = normalize_to_max(fraction, options.normalization_scale)
    logger.debug(f"Created isotopic distribution of `{formula}` with {mz.size} peaks.")
    return ConvolvedSpectrum(formula=formula, charge=charge, mz=mz, fraction=fraction, abundance=abundance)
