import math

import numpy as np
import pytest

from molweight.chem.elements import ElementTable
from molweight.chem.isotopes import (
    build_patterns,
    compute_element_pattern,
    compute_isotopic_distribution,
    create_explicit_isotope_pattern,
    iter_combinations,
    predict_combinations,
)
from molweight.chem.parser import FormulaParser
from molweight.core import messages
from molweight.core.config import IsotopeOptions
from molweight.core.exceptions import ComputationFailure
from molweight.core.models import ComputationError, ParseError
from molweight.core.progress import CancellationToken


class TestPredictCombinations:
    @pytest.mark.parametrize(
        "atom_count,isotope_count,expected",
        [(1, 3, 3), (5, 1, 1), (2, 2, 3), (2, 3, 6), (10, 2, 11), (4, 3, 15), (100, 2, 101)],
    )
    def test_predict(self, atom_count: int, isotope_count: int, expected: int):
        assert predict_combinations(atom_count, isotope_count) == expected

    @pytest.mark.parametrize("atom_count,isotope_count", [(1, 2), (2, 3), (3, 3), (6, 4), (5, 5)])
    def test_prediction_equals_enumerated_combinations(self, atom_count: int, isotope_count: int):
        combinations = list(iter_combinations(atom_count, isotope_count))
        assert predict_combinations(atom_count, isotope_count) == len(combinations)


class TestIterCombinations:
    def test_order(self):
        actual = list(iter_combinations(2, 3))
        expected = [(2, 0, 0), (1, 1, 0), (1, 0, 1), (0, 2, 0), (0, 1, 1), (0, 0, 2)]
        assert actual == expected

    def test_single_bin(self):
        assert list(iter_combinations(4, 1)) == [(4,)]

    def test_combinations_add_up_to_atom_count(self):
        assert all(sum(x) == 5 for x in iter_combinations(5, 4))

    def test_combinations_are_unique(self):
        combinations = list(iter_combinations(5, 4))
        assert len(set(combinations)) == len(combinations)


class TestComputeElementPattern:
    def test_chlorine(self, elements: ElementTable):
        pattern = compute_element_pattern(elements["Cl"], 2)
        expected = [0.7578**2, 0.0, 2 * 0.7578 * 0.2422, 0.0, 0.2422**2]
        assert pattern.start_mass == 70
        assert pattern.exact_start_mass == pytest.approx(2 * 34.968853)
        assert pattern.combinations == 3
        assert pattern.combinations == predict_combinations(2, 2)
        assert np.allclose(pattern.abundance, expected)

    def test_single_atom(self, elements: ElementTable):
        pattern = compute_element_pattern(elements["O"], 1)
        assert np.allclose(pattern.abundance, [0.99757, 0.00038, 0.00205])

    def test_single_isotope_element(self, elements: ElementTable):
        pattern = compute_element_pattern(elements["F"], 6)
        assert pattern.combinations == 1
        assert np.allclose(pattern.abundance, [1.0])

    def test_abundances_add_up_to_one(self, elements: ElementTable):
        options = IsotopeOptions(min_abundance=0.0)
        pattern = compute_element_pattern(elements["S"], 12, options)
        total = sum(x.abundance for x in elements["S"].isotopes)
        assert pattern.abundance.sum() == pytest.approx(total**12)

    def test_trailing_abundances_are_trimmed(self, elements: ElementTable):
        pattern = compute_element_pattern(elements["C"], 10)
        assert pattern.abundance.size < 11
        assert pattern.abundance[-1] >= 1e-6

    def test_log_and_ratio_methods_are_equivalent(self, elements: ElementTable):
        log_options = IsotopeOptions(ratio_method_cutoff=0.0)
        ratio_options = IsotopeOptions(ratio_method_cutoff=0.999)
        log_pattern = compute_element_pattern(elements["C"], 100, log_options)
        ratio_pattern = compute_element_pattern(elements["C"], 100, ratio_options)
        assert log_pattern.abundance.size == ratio_pattern.abundance.size
        assert np.allclose(log_pattern.abundance, ratio_pattern.abundance, rtol=1e-6, atol=1e-12)

    def test_methods_are_equivalent_with_three_isotopes(self, elements: ElementTable):
        log_options = IsotopeOptions(ratio_method_cutoff=0.0, min_abundance=0.0)
        ratio_options = IsotopeOptions(ratio_method_cutoff=0.999, min_abundance=0.0)
        log_pattern = compute_element_pattern(elements["O"], 20, log_options)
        ratio_pattern = compute_element_pattern(elements["O"], 20, ratio_options)
        assert np.allclose(log_pattern.abundance, ratio_pattern.abundance, rtol=1e-6, atol=1e-15)

    def test_zero_abundance_isotope(self, elements: ElementTable):
        elements.set_isotopes("Cl", [(35.0, 1.0), (37.0, 0.0)])
        options = IsotopeOptions(min_abundance=0.0)
        pattern = compute_element_pattern(elements["Cl"], 3, options)
        assert pattern.abundance[0] == pytest.approx(1.0)
        assert np.allclose(pattern.abundance[1:], 0.0)

    def test_too_many_combinations(self, elements: ElementTable):
        options = IsotopeOptions(max_combinations=2)
        with pytest.raises(ComputationFailure) as excinfo:
            compute_element_pattern(elements["C"], 10, options)
        assert excinfo.value.error.code == messages.TOO_MANY_COMBINATIONS
        assert excinfo.value.error.detail == "C10"

    def test_cancelled(self, elements: ElementTable):
        token = CancellationToken()
        token.cancel()
        with pytest.raises(ComputationFailure) as excinfo:
            compute_element_pattern(elements["C"], 10, token=token)
        assert excinfo.value.error.code == messages.PROCESS_ABORTED

    def test_progress_is_reported(self, elements: ElementTable):
        updates = list()
        compute_element_pattern(elements["C"], 50, progress=lambda x, y: updates.append(x))
        assert updates[0] == 0.0
        assert updates[-1] == 100.0


class TestBuildPatterns:
    def test_one_pattern_per_element(self, parser: FormulaParser, elements: ElementTable):
        result = parser.parse("C6H12O6")
        patterns = build_patterns(result.composition, elements)
        assert [x.symbol for x in patterns] == ["H", "C", "O"]

    def test_explicit_isotopes_are_separate_patterns(self, parser: FormulaParser, elements: ElementTable):
        result = parser.parse("^13CCH4")
        patterns = build_patterns(result.composition, elements)
        carbon = [x for x in patterns if x.symbol == "C"]
        assert len(carbon) == 2
        explicit = [x for x in carbon if x.explicit]
        assert explicit[0].start_mass == 13
        assert explicit[0].atom_count == 1

    def test_fractional_atoms(self, parser: FormulaParser, elements: ElementTable):
        result = parser.parse("C1.5H4")
        with pytest.raises(ComputationFailure) as excinfo:
            build_patterns(result.composition, elements)
        assert excinfo.value.error.code == messages.FRACTIONAL_ATOMS
        assert excinfo.value.error.detail == "C1.5"

    def test_create_explicit_isotope_pattern(self, elements: ElementTable):
        pattern = create_explicit_isotope_pattern(elements["H"], 2.014, 3)
        assert pattern.start_mass == 6
        assert pattern.exact_start_mass == pytest.approx(6.042)
        assert np.array_equal(pattern.abundance, [1.0])


class TestComputeIsotopicDistribution:
    def test_chlorine(self, parser: FormulaParser):
        result = compute_isotopic_distribution(parser, "Cl2")
        assert result.ok
        assert result.spectrum is not None
        assert np.allclose(result.spectrum.mz, 69.93771 + np.arange(5))
        assert result.spectrum.abundance.max() == pytest.approx(100.0)
        assert result.spectrum.abundance[0] == pytest.approx(100.0)
        assert result.spectrum.abundance[2] == pytest.approx(100.0 * 2 * 0.2422 / 0.7578)

    def test_fractions_of_full_distribution_add_up_to_one(self, parser: FormulaParser):
        options = IsotopeOptions(min_abundance=0.0)
        result = compute_isotopic_distribution(parser, "C6H12O6", options=options)
        assert result.spectrum is not None
        assert result.spectrum.fraction.sum() == pytest.approx(1.0)

    def test_explicit_isotope(self, parser: FormulaParser):
        result = compute_isotopic_distribution(parser, "^13C")
        assert result.spectrum is not None
        assert np.allclose(result.spectrum.mz, [13.0])
        assert np.allclose(result.spectrum.abundance, [100.0])

    def test_charged(self, parser: FormulaParser):
        result = compute_isotopic_distribution(parser, "H2O", charge=1, charge_carrier_mass=1.00727649)
        assert result.spectrum is not None
        assert result.spectrum.charge == 1
        assert result.spectrum.mz[0] == pytest.approx(19.01783649)

    def test_charged_without_charge_carrier(self, parser: FormulaParser):
        options = IsotopeOptions(add_proton_charge_carrier=False)
        result = compute_isotopic_distribution(parser, "H2O", charge=2, options=options)
        assert result.spectrum is not None
        assert result.spectrum.mz[0] == pytest.approx(18.01056 / 2)

    def test_default_charge_carrier_is_taken_from_element_table(self, parser: FormulaParser):
        result = compute_isotopic_distribution(parser, "H2O", charge=1)
        assert result.spectrum is not None
        assert result.spectrum.mz[0] == pytest.approx(18.01056 + parser.elements.charge_carrier_mass)

    def test_deuterium(self, parser: FormulaParser):
        result = compute_isotopic_distribution(parser, "D2O")
        assert result.spectrum is not None
        assert math.isclose(result.spectrum.mz[0], 2 * 2.014 + 15.994915, abs_tol=1e-4)

    def test_empty_formula(self, parser: FormulaParser):
        result = compute_isotopic_distribution(parser, "")
        assert result.ok
        assert result.spectrum is not None
        assert len(result.spectrum) == 0

    def test_parse_error(self, parser: FormulaParser):
        result = compute_isotopic_distribution(parser, "Qz")
        assert isinstance(result.error, ParseError)
        assert result.error.code == messages.UNKNOWN_ELEMENT
        assert result.spectrum is None

    def test_fractional_atoms(self, parser: FormulaParser):
        result = compute_isotopic_distribution(parser, "C1.5H4")
        assert isinstance(result.error, ComputationError)
        assert result.error.code == messages.FRACTIONAL_ATOMS

    @pytest.mark.parametrize("formula", ["^13CH4>C", "C2>^13C", "D3>H3"])
    def test_mass_differences_are_rejected(self, parser: FormulaParser, formula: str):
        result = compute_isotopic_distribution(parser, formula)
        assert isinstance(result.error, ComputationError)
        assert result.error.code == messages.NEGATIVE_ATOMS
        assert result.spectrum is None

    def test_subtraction_of_plain_atoms_next_to_explicit_isotopes(self, parser: FormulaParser):
        result = compute_isotopic_distribution(parser, "^13CCH4>C")
        assert result.spectrum is not None
        assert math.isclose(result.spectrum.mz[0], 13.0 + 4 * 1.0078246, abs_tol=1e-4)

    def test_negative_charge(self, parser: FormulaParser):
        result = compute_isotopic_distribution(parser, "H2O", charge=-1)
        assert isinstance(result.error, ComputationError)
        assert result.error.code == messages.NEGATIVE_CHARGE_STATE
        assert result.spectrum is None

    def test_too_many_combinations(self, parser: FormulaParser):
        options = IsotopeOptions(max_combinations=2)
        result = compute_isotopic_distribution(parser, "C10", options=options)
        assert isinstance(result.error, ComputationError)
        assert result.error.code == messages.TOO_MANY_COMBINATIONS

    def test_cancelled(self, parser: FormulaParser):
        token = CancellationToken()
        token.cancel()
        result = compute_isotopic_distribution(parser, "C10H22", token=token)
        assert isinstance(result.error, ComputationError)
        assert result.error.code == messages.PROCESS_ABORTED

    def test_progress(self, parser: FormulaParser):
        updates = list()
        compute_isotopic_distribution(parser, "C20H42", progress=lambda x, y: updates.append((x, y)))
        assert updates
        assert updates[-1][0] == 100.0
        assert all(0.0 <= x <= 100.0 for x, _ in updates)
