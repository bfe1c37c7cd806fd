"""Numpy helpers: serializable array types and abundance array utilities."""

from __future__ import annotations

import base64
import json
from typing import Literal, TypeVar

import numpy
from numpy import floating
from numpy.typing import NDArray
from pydantic.functional_serializers import PlainSerializer
from pydantic.functional_validators import BeforeValidator
from typing_extensions import Annotated


def serialize_array(arr: NDArray) -> str:
    """Serialize a numpy array into a JSON string.

    :param arr: the array to serialize
    :return: a JSON object with the array `dtype`, `shape` and `data`, where `data` is the base64 encoded
        array buffer.

    """
    return json.dumps(
        {
            "dtype": arr.dtype.str,
            "shape": list(arr.shape),
            "data": base64.b64encode(numpy.ascontiguousarray(arr).tobytes()).decode("ascii"),
        }
    )


def deserialize_array(s: str) -> NDArray:
    """Create a numpy array from a string created with :py:func:`serialize_array`."""
    d = json.loads(s)
    buffer = base64.b64decode(d["data"])
    return numpy.frombuffer(buffer, dtype=numpy.dtype(d["dtype"])).reshape(d["shape"]).copy()


def _coerce_array(value):
    if isinstance(value, str):
        return deserialize_array(value)
    if isinstance(value, (list, tuple)):
        return numpy.asarray(value)
    return value


def find_bounds_above(arr: NDArray, threshold: float) -> tuple[int, int]:
    """Find the first and last position of values greater than or equal to a threshold.

    :param arr: a 1D array
    :param threshold: the threshold value
    :return: a tuple `(start, end)` such that ``arr[start:end]`` contains all values above the threshold.
        If no value is above the threshold, ``(0, 0)`` is returned.

    """
    (above,) = numpy.where(arr >= threshold)
    if not above.size:
        return 0, 0
    return int(above[0]), int(above[-1]) + 1


def normalize_to_max(arr: NDArray, scale: float) -> NDArray:
    """Scale an array so that its maximum is equal to `scale`. Arrays with zero maximum are returned unscaled."""
    if not arr.size:
        return arr.copy()
    max_value = arr.max()
    if max_value <= 0.0:
        return arr.copy()
    return arr / max_value * scale


FloatDtype = TypeVar("FloatDtype", bound=floating)


FloatArray1D = Annotated[
    NDArray[FloatDtype],
    Literal["N"],
    BeforeValidator(_coerce_array),
    PlainSerializer(serialize_array, return_type=str),
]