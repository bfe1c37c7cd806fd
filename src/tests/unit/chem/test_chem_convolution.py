import numpy as np
import pytest

from molweight.chem.convolution import compute_mass_defect, convolve_patterns, create_spectrum, trim_distribution
from molweight.chem.elements import ElementTable
from molweight.chem.isotopes import build_patterns, compute_element_pattern
from molweight.chem.parser import FormulaParser
from molweight.core import messages
from molweight.core.config import IsotopeOptions
from molweight.core.exceptions import ComputationFailure
from molweight.core.models import IsotopePattern
from molweight.core.progress import CancellationToken


def create_pattern(abundance: list[float], start_mass: int, exact_start_mass: float) -> IsotopePattern:
    return IsotopePattern(
        atomic_number=1,
        symbol="H",
        atom_count=1,
        start_mass=start_mass,
        exact_start_mass=exact_start_mass,
        abundance=np.array(abundance),
        combinations=len(abundance),
    )


class TestConvolvePatterns:
    def test_empty_pattern_list(self):
        start, fraction = convolve_patterns([])
        assert start == 0
        assert fraction.size == 0

    def test_single_pattern(self):
        pattern = create_pattern([0.5, 0.3, 0.2], 10, 10.0)
        start, fraction = convolve_patterns([pattern])
        assert start == 10
        assert np.allclose(fraction, [0.5, 0.3, 0.2])

    def test_two_patterns_equal_numpy_convolution(self):
        p1 = create_pattern([0.6, 0.4], 1, 1.0)
        p2 = create_pattern([0.5, 0.3, 0.2], 10, 10.0)
        start, fraction = convolve_patterns([p1, p2])
        assert start == 11
        assert np.allclose(fraction, np.convolve(p1.abundance, p2.abundance))

    def test_three_patterns_with_zeros(self):
        p1 = create_pattern([0.7, 0.0, 0.3], 0, 0.0)
        p2 = create_pattern([0.9, 0.1], 0, 0.0)
        p3 = create_pattern([0.5, 0.0, 0.0, 0.5], 0, 0.0)
        _, fraction = convolve_patterns([p1, p2, p3])
        expected = np.convolve(np.convolve(p1.abundance, p2.abundance), p3.abundance)
        assert np.allclose(fraction, expected)

    def test_total_abundance_is_conserved(self, parser: FormulaParser, elements: ElementTable):
        result = parser.parse("C12H22O11NSCl2")
        patterns = build_patterns(result.composition, elements)
        _, fraction = convolve_patterns(patterns)
        expected = np.prod([x.abundance.sum() for x in patterns])
        assert fraction.sum() == pytest.approx(expected)

    def test_cancelled(self):
        token = CancellationToken()
        token.cancel()
        pattern = create_pattern([0.5, 0.5], 0, 0.0)
        with pytest.raises(ComputationFailure) as excinfo:
            convolve_patterns([pattern, pattern], token=token)
        assert excinfo.value.error.code == messages.PROCESS_ABORTED

    def test_progress(self):
        updates = list()
        pattern = create_pattern([0.5, 0.5], 0, 0.0)
        convolve_patterns([pattern, pattern], progress=lambda x, y: updates.append(x))
        assert updates[0] == 0.0
        assert updates[-1] == 100.0


class TestMassDefect:
    def test_chlorine(self, elements: ElementTable):
        pattern = compute_element_pattern(elements["Cl"], 2)
        assert compute_mass_defect([pattern]) == pytest.approx(-0.06229)

    def test_mass_defect_adds_up(self):
        p1 = create_pattern([1.0], 2, 2.0156492)
        p2 = create_pattern([1.0], 16, 15.994915)
        assert compute_mass_defect([p1, p2]) == pytest.approx(0.01056)


class TestTrimDistribution:
    def test_trailing_and_leading_values_are_trimmed(self):
        fraction = np.array([1e-8, 0.5, 0.0, 0.3, 1e-8, 0.0])
        assert trim_distribution(fraction, 1e-6) == (1, 4)

    def test_inner_zeros_are_kept(self):
        fraction = np.array([0.5, 0.0, 0.5])
        assert trim_distribution(fraction, 1e-6) == (0, 3)

    def test_leading_value_equal_to_min_is_kept(self):
        fraction = np.array([1e-6, 0.5, 1e-6])
        assert trim_distribution(fraction, 1e-6) == (0, 2)

    def test_all_values_trimmed(self):
        fraction = np.array([1e-8, 1e-9])
        assert trim_distribution(fraction, 1e-6) == (0, 0)


class TestCreateSpectrum:
    def test_neutral_spectrum(self):
        pattern = create_pattern([0.8, 0.2], 10, 10.01)
        spectrum = create_spectrum("X", [pattern], 10, pattern.abundance)
        assert np.allclose(spectrum.mz, [10.01, 11.01])
        assert np.allclose(spectrum.abundance, [100.0, 25.0])
        assert np.allclose(spectrum.fraction, [0.8, 0.2])

    def test_normalization_scale(self):
        pattern = create_pattern([0.8, 0.2], 10, 10.0)
        options = IsotopeOptions(normalization_scale=1.0)
        spectrum = create_spectrum("X", [pattern], 10, pattern.abundance, options=options)
        assert np.allclose(spectrum.abundance, [1.0, 0.25])

    def test_charged_spectrum(self):
        pattern = create_pattern([1.0], 1000, 1000.0)
        spectrum = create_spectrum("X", [pattern], 1000, pattern.abundance, charge=2, charge_carrier_mass=1.00727649)
        assert spectrum.mz[0] == pytest.approx(501.00727649)

    def test_charged_spectrum_without_charge_carrier(self):
        pattern = create_pattern([1.0], 1000, 1000.0)
        options = IsotopeOptions(add_proton_charge_carrier=False)
        spectrum = create_spectrum("X", [pattern], 1000, pattern.abundance, charge=2, options=options)
        assert spectrum.mz[0] == pytest.approx(500.0)

    def test_to_list(self):
        pattern = create_pattern([0.8, 0.2], 10, 10.0)
        spectrum = create_spectrum("X", [pattern], 10, pattern.abundance)
        actual = spectrum.to_list()
        assert len(actual) == 2
        assert actual[0] == (10.0, 100.0)
        assert actual[1][1] == pytest.approx(25.0)
