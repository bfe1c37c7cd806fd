import numpy as np
import pydantic
import pytest

from molweight.utils.numpy import FloatArray1D, find_bounds_above, normalize_to_max


class NumpyFloatModel(pydantic.BaseModel):
    model_config = pydantic.ConfigDict(arbitrary_types_allowed=True)
    arr: FloatArray1D


class TestSerializeFloatArray:
    def test_empty_array(self):
        expected = np.array([], dtype=float)
        model = NumpyFloatModel(arr=expected)
        actual = NumpyFloatModel(**model.model_dump()).arr
        assert np.array_equal(actual, expected)

    def test_1D_array(self):
        expected = np.random.normal(size=100)
        model = NumpyFloatModel(arr=expected)
        actual = NumpyFloatModel(**model.model_dump()).arr
        assert np.array_equal(actual, expected)

    def test_list_is_converted_to_array(self):
        model = NumpyFloatModel(arr=[1.0, 2.0])  # type: ignore
        assert isinstance(model.arr, np.ndarray)


class TestFindBoundsAbove:
    def test_all_values_above(self):
        arr = np.array([1.0, 2.0, 3.0])
        assert find_bounds_above(arr, 0.5) == (0, 3)

    def test_leading_and_trailing_values_excluded(self):
        arr = np.array([0.0, 0.1, 2.0, 0.0, 3.0, 0.1])
        assert find_bounds_above(arr, 1.0) == (2, 5)

    def test_values_equal_to_threshold_are_included(self):
        arr = np.array([1.0, 2.0, 1.0])
        assert find_bounds_above(arr, 1.0) == (0, 3)

    def test_no_values_above(self):
        arr = np.array([0.1, 0.2])
        assert find_bounds_above(arr, 1.0) == (0, 0)

    def test_empty_array(self):
        assert find_bounds_above(np.array([]), 1.0) == (0, 0)


class TestNormalizeToMax:
    def test_max_is_equal_to_scale(self):
        arr = np.array([0.25, 0.5, 0.125])
        actual = normalize_to_max(arr, 100.0)
        assert np.allclose(actual, [50.0, 100.0, 25.0])

    def test_input_is_not_modified(self):
        arr = np.array([0.25, 0.5])
        normalize_to_max(arr, 100.0)
        assert np.array_equal(arr, [0.25, 0.5])

    def test_zero_array_is_not_scaled(self):
        arr = np.zeros(3)
        assert np.array_equal(normalize_to_max(arr, 100.0), arr)

    def test_empty_array(self):
        assert normalize_to_max(np.array([]), 100.0).size == 0

    @pytest.mark.parametrize("scale", [1.0, 100.0])
    def test_relative_values_are_preserved(self, scale: float):
        arr = np.random.uniform(low=0.1, high=1.0, size=20)
        actual = normalize_to_max(arr, scale)
        assert np.allclose(actual / actual.max(), arr / arr.max())
