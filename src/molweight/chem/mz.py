"""Conversion between neutral masses and m/z values at different charge states."""

from logging import getLogger

from ..core.config import DEFAULT_CHARGE_CARRIER_MASS_MONOISOTOPIC

logger = getLogger(__name__)

INVALID_MASS = 0.0
"""Value returned when a conversion involves a negative charge state."""


def convolute_mass(
    mass: float,
    current_charge: int,
    desired_charge: int = 1,
    charge_carrier_mass: float = 0.0,
    default_charge_carrier_mass: float = DEFAULT_CHARGE_CARRIER_MASS_MONOISOTOPIC,
) -> float:
    """Convert a mass from one charge state to another.

    Charge state ``0`` is the neutral mass and charge state ``1`` is the M+H mass. Masses are
    converted to M+H first and then to the desired charge state.

    :param mass: the mass (or m/z) at the current charge state
    :param current_charge: the charge state of `mass`
    :param desired_charge: the target charge state
    :param charge_carrier_mass: the charge carrier mass. If ``0``, `default_charge_carrier_mass`
        is used.
    :param default_charge_carrier_mass: fallback charge carrier mass
    :return: the converted mass. If either charge is negative, ``0.0`` is returned.

    """
    if charge_carrier_mass == 0.0:
        charge_carrier_mass = default_charge_carrier_mass or DEFAULT_CHARGE_CARRIER_MASS_MONOISOTOPIC

    if current_charge < 0 or desired_charge < 0:
        logger.warning(f"Negative charge states are not supported: {current_charge} -> {desired_charge}.")
        return INVALID_MASS

    if current_charge == desired_charge:
        return mass

    if current_charge == 1:
        mh_mass = mass
    elif current_charge > 1:
        mh_mass = mass * current_charge - charge_carrier_mass * (current_charge - 1)
    else:
        mh_mass = mass + charge_carrier_mass

    if desired_charge > 1:
        return (mh_mass + charge_carrier_mass * (desired_charge - 1)) / desired_charge
    if desired_charge == 1:
        return mh_mass
    return mh_mass - charge_carrier_mass


def mono_mass_to_mz(mass: float, charge: int, charge_carrier_mass: float = 0.0) -> float:
    """Compute the m/z of a neutral monoisotopic mass at a charge state."""
    if charge_carrier_mass == 0.0:
        charge_carrier_mass = DEFAULT_CHARGE_CARRIER_MASS_MONOISOTOPIC
    return convolute_mass(mass + charge_carrier_mass, 1, charge, charge_carrier_mass)


def mass_to_ppm(mass_difference: float, mz: float) -> float:
    """Convert a mass difference to parts per million of `mz`. Return ``0.0`` if `mz` is not positive."""
    if mz <= 0.0:
        return 0.0
    return mass_difference * 1e6 / mz
