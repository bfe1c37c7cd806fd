"""Text formatting of numeric values."""

import math
from typing import assert_never

from ..core.enums import StdDevMode


def format_decimal(value: float, max_decimals: int = 5) -> str:
    """Format a number using at least one and at most `max_decimals` decimal places."""
    text = f"{value:.{max_decimals}f}".rstrip("0")
    if text.endswith("."):
        text += "0"
    return text


def round_to_std_dev(value: float, std_dev: float) -> tuple[float, float, int]:
    """Round a standard deviation to one significant digit and a value to the same decimal place.

    :param value: the value to round
    :param std_dev: the value standard deviation. Must be positive.
    :return: a tuple with the rounded value, the rounded standard deviation and the decimal exponent of the
        standard deviation significant digit.

    """
    mantissa, exponent = f"{abs(std_dev):.0e}".split("e")
    exp = int(exponent)
    rounded_std = int(mantissa) * 10.0**exp
    rounded_value = round(value / 10.0**exp) * 10.0**exp
    return rounded_value, rounded_std, exp


def format_mass_and_std_dev(
    mass: float,
    std_dev: float,
    mode: StdDevMode = StdDevMode.DECIMAL,
    include_std_dev: bool = True,
    include_percent_sign: bool = False,
) -> str:
    """Format a mass (or percent composition) and its standard deviation.

    The standard deviation is rounded to a single significant digit and the mass is rounded to the
    decimal place of that digit.

    :param mass: the mass value
    :param std_dev: the mass standard deviation
    :param mode: the display format. ``short`` shows the significant digit of the standard deviation in
        parentheses, ``decimal`` shows the rounded standard deviation and ``scientific`` shows the standard
        deviation in scientific notation.
    :param include_std_dev: if ``False``, only the rounded mass is shown
    :param include_percent_sign: add a percent sign after the mass. Used to format percent compositions.
    :return: the formatted text

    """
    pct = "%" if include_percent_sign else ""

    if math.isclose(std_dev, 0.0, abs_tol=1e-12):
        text = f"{format_decimal(mass)}{pct}"
        return f"{text} (±0)" if include_std_dev else text

    rounded_mass, rounded_std, exp = round_to_std_dev(mass, std_dev)
    decimals = max(0, -exp)
    mass_text = f"{rounded_mass:.{decimals}f}"

    match mode:
        case StdDevMode.SHORT:
            std_text = f"(±{round(rounded_std / 10.0**exp)})"
            return f"{mass_text}{std_text if include_std_dev else ''}{pct}"
        case StdDevMode.DECIMAL:
            std_text = f" (±{rounded_std:.{decimals}f})"
        case StdDevMode.SCIENTIFIC:
            std_text = f" (±{std_dev:.3E})"
        case _ as never:
            assert_never(never)

    return f"{mass_text}{pct}{std_text if include_std_dev else ''}"
