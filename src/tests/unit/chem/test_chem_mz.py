import pytest

from molweight.chem.mz import INVALID_MASS, convolute_mass, mass_to_ppm, mono_mass_to_mz

PROTON = 1.00727649


class TestConvoluteMass:
    def test_neutral_to_singly_charged(self):
        assert convolute_mass(1000.0, 0, 1, PROTON) == pytest.approx(1001.00727649)

    def test_neutral_to_doubly_charged(self):
        assert convolute_mass(1000.0, 0, 2) == pytest.approx(501.00727649)

    def test_doubly_charged_to_neutral(self):
        assert convolute_mass(501.00727649, 2, 0) == pytest.approx(1000.0)

    def test_singly_to_triply_charged(self):
        expected = (1001.0 + 2 * PROTON) / 3
        assert convolute_mass(1001.0, 1, 3, PROTON) == pytest.approx(expected)

    def test_same_charge(self):
        assert convolute_mass(500.0, 2, 2) == 500.0

    def test_custom_charge_carrier(self):
        assert convolute_mass(1000.0, 0, 1, 22.98977) == pytest.approx(1022.98977)

    @pytest.mark.parametrize("current,desired", [(-1, 1), (0, -2)])
    def test_negative_charge_returns_invalid_mass(self, current: int, desired: int):
        assert convolute_mass(1000.0, current, desired) == INVALID_MASS

    @pytest.mark.parametrize("charge", [0, 1, 2, 5])
    def test_round_trip(self, charge: int):
        mz = convolute_mass(1234.5678, 0, charge)
        assert convolute_mass(mz, charge, 0) == pytest.approx(1234.5678)


class TestMonoMassToMz:
    def test_doubly_charged(self):
        assert mono_mass_to_mz(1000.0, 2) == pytest.approx(501.00727649)

    def test_singly_charged(self):
        assert mono_mass_to_mz(1000.0, 1) == pytest.approx(1001.00727649)

    def test_neutral(self):
        assert mono_mass_to_mz(1000.0, 0) == pytest.approx(1000.0)


class TestMassToPpm:
    def test_ppm(self):
        assert mass_to_ppm(0.001, 1000.0) == pytest.approx(1.0)

    def test_non_positive_mz(self):
        assert mass_to_ppm(0.001, 0.0) == 0.0
