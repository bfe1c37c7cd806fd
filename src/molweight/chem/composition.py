"""Mass, percent composition and empirical formula of an elemental composition."""

import math

from ..core.models import ElementComposition, PercentComposition
from ..utils.formatting import format_decimal
from .elements import CARBON, HYDROGEN, ElementTable


def compute_mass(composition: ElementComposition, elements: ElementTable) -> float:
    """Compute the total mass of a composition, including isotopic corrections."""
    mass = 0.0
    for atomic_number, item in composition.elements.items():
        mass += elements[atomic_number].mass * item.count + item.isotopic_correction
    return mass


def compute_percent_composition(
    composition: ElementComposition, elements: ElementTable, std_dev: float = 0.0
) -> dict[str, PercentComposition]:
    """Compute the fraction of the total mass contributed by each element.

    The standard deviation of each percent combines the element mass uncertainty and the
    formula mass standard deviation. Elements with an isotopic correction are assumed to have
    exact masses. If the total mass is zero, every percent is set to zero.

    :param composition: the formula composition
    :param elements: the element table used to parse the formula
    :param std_dev: the formula mass standard deviation
    :return: a dictionary that maps element symbols to percent compositions, sorted by atomic number.

    """
    total = compute_mass(composition, elements)
    result = dict()
    for atomic_number, item in sorted(composition.elements.items()):
        element = elements[atomic_number]
        if total <= 0.0:
            result[item.symbol] = PercentComposition(symbol=item.symbol, percent=0.0, std_dev=0.0)
            continue

        element_mass = element.mass * item.count + item.isotopic_correction
        percent = element_mass / total * 100.0

        if math.isclose(element_mass, total) and math.isclose(percent, 100.0):
            percent_std = 0.0
        elif item.isotopic_correction == 0.0 and element.mass > 0.0:
            percent_std = percent * math.sqrt((element.uncertainty / element.mass) ** 2 + (std_dev / total) ** 2)
        else:
            percent_std = percent * std_dev / total
        result[item.symbol] = PercentComposition(symbol=item.symbol, percent=percent, std_dev=percent_std)
    return result


def format_count(count: float) -> str:
    """Format an atom count as written in a formula: omitted if 1, decimals only if fractional."""
    if count == 1.0:
        return ""
    if count.is_integer():
        return str(int(count))
    return format_decimal(count)


def to_empirical_formula(composition: ElementComposition) -> str:
    """Create the empirical formula of a composition.

    Carbon is written first, then hydrogen and then the remaining elements in alphabetical
    order. Elements with zero atoms are omitted.

    """
    items = [x for x in composition.elements.values() if x.count > 0.0]
    first = [x for z in (CARBON, HYDROGEN) for x in items if x.atomic_number == z]
    rest = sorted((x for x in items if x.atomic_number not in (CARBON, HYDROGEN)), key=lambda x: x.symbol)
    return "".join(f"{x.symbol}{format_count(x.count)}" for x in first + rest)
