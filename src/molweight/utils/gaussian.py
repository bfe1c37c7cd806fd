"""Conversion of stick spectra into Gaussian profile spectra."""

from __future__ import annotations

import math

import numpy
from numpy.typing import NDArray

FWHM_TO_SIGMA = math.sqrt(5.54)
"""Ratio between the peak width at half height and the standard deviation of a Gaussian peak, approx."""

WINDOW_SIGMA = 12.0
"""Width, in standard deviations, of the window used to evaluate each Gaussian peak."""


def round_to_nice_step(value: float) -> float:
    """Round a positive number to 1, 2 or 5 times a power of ten, e.g. 0.0037 is rounded to 0.002."""
    exponent = math.floor(math.log10(value))
    mantissa = round(value / 10**exponent)
    if mantissa >= 10:
        mantissa, exponent = 1, exponent + 1
    if mantissa <= 1:
        factor = 1
    elif mantissa <= 4:
        factor = 2
    else:
        factor = 5
    # round trip through str removes float noise, e.g. 2 * 10 ** -3 == 0.0020000000000000005
    return float(f"{factor}e{exponent}")


def stick_to_gaussian(
    mz: NDArray,
    intensity: NDArray,
    resolution: int,
    resolution_mass: float,
    quality_factor: int = 50,
    max_points: int = 1_000_000,
) -> tuple[NDArray, NDArray]:
    """Replace each peak of a stick spectrum with a Gaussian peak.

    The peak width at half height is ``resolution_mass / resolution``. Gaussian peaks are sampled
    on a shared grid with spacing ``resolution_mass / resolution / quality_factor``, rounded to 1, 2
    or 5 times a power of ten. Overlapping peaks are added. Grid regions far from any peak are not
    sampled.

    :param mz: the m/z of each stick
    :param intensity: the intensity of each stick
    :param resolution: the instrument resolution
    :param resolution_mass: the m/z at which the resolution applies
    :param quality_factor: number of grid points per peak width
    :param max_points: maximum number of grid points spanned by the m/z range. The grid spacing is
        increased if needed.
    :return: the m/z and intensity of the profile, sorted by m/z

    """
    mz = numpy.asarray(mz, dtype=float)
    intensity = numpy.asarray(intensity, dtype=float)
    if not mz.size:
        return numpy.zeros(0), numpy.zeros(0)

    order = numpy.argsort(mz)
    mz = mz[order]
    intensity = intensity[order]

    mz_range = max(mz[-1] - mz[0], 1.0)
    width = resolution_mass / resolution
    step = round_to_nice_step(width / quality_factor)
    if mz_range / step > max_points:
        step = mz_range / max_points
    sigma = width / FWHM_TO_SIGMA

    half_size = int(round(WINDOW_SIGMA * sigma / step)) // 2
    offset = numpy.arange(-half_size, half_size + 1)
    kernel = numpy.exp(-((offset * step) ** 2) / (2 * sigma**2))

    # peak apexes are moved to the next grid point
    center = numpy.ceil(numpy.round(mz / step, 6)).astype(int)
    grid_index = center[:, numpy.newaxis] + offset
    values = intensity[:, numpy.newaxis] * kernel
    index, inverse = numpy.unique(grid_index.ravel(), return_inverse=True)
    profile = numpy.zeros(index.size)
    numpy.add.at(profile, inverse.ravel(), values.ravel())
    return index * step, profile


def fill_gaps(x: NDArray, y: NDArray, spacing: float) -> tuple[NDArray, NDArray]:
    """Add linearly interpolated points between consecutive points farther apart than `spacing`.

    :param x: sorted x values
    :param y: y values
    :param spacing: maximum distance between consecutive points in the output
    :return: the x and y values with the interpolated points

    """
    if x.size < 2:
        return x.copy(), y.copy()
    dx = numpy.diff(x)
    dy = numpy.diff(y)
    # number of output points in each interval, including the left end point
    count = numpy.where(dx > spacing, numpy.ceil(dx / spacing), 1).astype(int)
    start = numpy.cumsum(count) - count
    j = numpy.arange(count.sum()) - numpy.repeat(start, count)
    fill_x = numpy.repeat(x[:-1], count) + j * numpy.repeat(dx / count, count)
    fill_y = numpy.repeat(y[:-1], count) + j * numpy.repeat(dy / count, count)
    return numpy.append(fill_x, x[-1]), numpy.append(fill_y, y[-1])


def create_profile(
    mz: NDArray,
    intensity: NDArray,
    resolution: int,
    resolution_mass: float,
    quality_factor: int = 50,
    fill: bool = True,
    max_points: int = 1_000_000,
) -> tuple[NDArray, NDArray]:
    """Convert a stick spectrum into a profile spectrum.

    See :py:func:`stick_to_gaussian`. If `fill` is ``True``, gaps in the profile larger than 1 % of the
    stick m/z range are filled with :py:func:`fill_gaps`.

    """
    x, y = stick_to_gaussian(mz, intensity, resolution, resolution_mass, quality_factor, max_points)
    if fill and x.size:
        mz_range = max(float(numpy.ptp(numpy.asarray(mz, dtype=float))), 1.0)
        x, y = fill_gaps(x, y, mz_range / 100)
    return x, y
