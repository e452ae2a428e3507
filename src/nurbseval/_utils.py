"""Input normalization and output validation shared by the public modules."""

from __future__ import annotations

from typing import Any

import numpy as np
from numpy import typing as npt

from .errors import InconsistentBsplineDataError


def _resolve_float_dtype(*arrays: npt.ArrayLike) -> np.dtype[np.floating[Any]]:
    """Resolve the working floating dtype for a set of inputs.

    The result is float32 only when every floating input is float32; any
    other combination (integers, float16, longdouble, mixed) resolves to
    float64, the only other precision the kernels are compiled for.

    Args:
        *arrays (npt.ArrayLike): Inputs taking part in one computation.

    Returns:
        np.dtype[np.floating[Any]]: Either float32 or float64.
    """
    dtypes = [np.asarray(arr).dtype for arr in arrays]
    if dtypes and all(dt == np.float32 for dt in dtypes):
        return np.dtype(np.float32)
    return np.dtype(np.float64)


def _normalize_points_1D(
    pts: npt.ArrayLike, dtype: npt.DTypeLike
) -> npt.NDArray[np.float32 | np.float64]:
    """Normalize parametric values to a contiguous 1D array.

    Scalars become one-element arrays and multi-dimensional input is
    flattened. The caller keeps ``np.shape(pts)`` to restore the shape of
    the results.

    Args:
        pts (npt.ArrayLike): Parametric values.
        dtype (npt.DTypeLike): Target floating dtype.

    Returns:
        npt.NDArray[np.float32 | np.float64]: 1D contiguous array.
    """
    return np.ascontiguousarray(np.asarray(pts, dtype=dtype).ravel())


def _normalize_knots(
    knots: npt.ArrayLike, dtype: npt.DTypeLike
) -> npt.NDArray[np.float32 | np.float64]:
    """Convert a knot vector to a contiguous 1D array.

    Args:
        knots (npt.ArrayLike): Knot vector.
        dtype (npt.DTypeLike): Target floating dtype.

    Returns:
        npt.NDArray[np.float32 | np.float64]: 1D contiguous knot vector.

    Raises:
        TypeError: If `knots` is not one-dimensional.
    """
    knots_arr = np.ascontiguousarray(np.asarray(knots, dtype=dtype))
    if knots_arr.ndim != 1:
        raise TypeError("knots must be a 1D array")
    return knots_arr


def _normalize_control_points(
    control_points: npt.ArrayLike, dtype: npt.DTypeLike
) -> npt.NDArray[np.float32 | np.float64]:
    """Convert control points to a contiguous ``(dim, nc)`` matrix.

    A 1D input is treated as a single scalar coordinate, i.e. ``(1, nc)``.

    Args:
        control_points (npt.ArrayLike): Control points, one column per point.
        dtype (npt.DTypeLike): Target floating dtype.

    Returns:
        npt.NDArray[np.float32 | np.float64]: Matrix of shape ``(dim, nc)``.

    Raises:
        TypeError: If `control_points` has more than two dimensions.
    """
    cps = np.asarray(control_points, dtype=dtype)
    if cps.ndim == 1:
        cps = cps.reshape(1, -1)
    elif cps.ndim != 2:  # noqa: PLR2004
        raise TypeError("control_points must be a 1D or 2D array")
    return np.ascontiguousarray(cps)


def _check_degree(degree: int) -> int:
    """Validate a spline degree and return it as a Python int."""
    if int(degree) != degree:
        raise TypeError("degree must be an integer")
    if degree < 0:
        raise ValueError("degree must be non-negative")
    return int(degree)


def _check_num_derivatives(n_ders: int) -> int:
    """Validate a derivative order and return it as a Python int."""
    if int(n_ders) != n_ders:
        raise TypeError("n_ders must be an integer")
    if n_ders < 0:
        raise ValueError("n_ders must be non-negative")
    return int(n_ders)


def _check_consistency(num_control_points: int, degree: int, num_knots: int) -> None:
    """Check that control point count, degree and knot count agree.

    Args:
        num_control_points (int): Number of control points along the direction.
        degree (int): Spline degree along the direction.
        num_knots (int): Length of the knot vector.

    Raises:
        InconsistentBsplineDataError: If ``num_control_points + degree != num_knots - 1``.
    """
    if num_control_points + degree != num_knots - 1:
        raise InconsistentBsplineDataError(
            "inconsistent B-spline data, degree + number of control points != "
            f"number of knots - 1 ({degree} + {num_control_points} != {num_knots} - 1)"
        )


def _validate_out_array(
    out: npt.NDArray[Any],
    expected_shape: tuple[int, ...],
    expected_dtype: npt.DTypeLike,
) -> None:
    """Validate that an output array has the correct shape and dtype.

    This follows NumPy's style for output array validation.

    Args:
        out (npt.NDArray[Any]): The output array to validate.
        expected_shape (tuple[int, ...]): The expected shape of the output array.
        expected_dtype (npt.DTypeLike): The expected dtype.

    Raises:
        ValueError: If the array shape or dtype does not match expectations,
            or if the array is not writeable or not C-contiguous.
    """
    if out.shape != expected_shape:
        raise ValueError(f"Output array has shape {out.shape}, but expected shape {expected_shape}")
    if out.dtype != np.dtype(expected_dtype):
        raise ValueError(f"Output array has dtype {out.dtype}, but expected dtype {expected_dtype}")
    if not out.flags.writeable:
        raise ValueError("Output array is not writeable")
    if not out.flags.c_contiguous:
        raise ValueError("Output array must be C-contiguous")


def _allocate_out(
    out: npt.NDArray[Any] | None,
    expected_shape: tuple[int, ...],
    expected_dtype: npt.DTypeLike,
) -> npt.NDArray[Any]:
    """Return `out` after validation, or a new zeroed array if it is None."""
    if out is None:
        return np.zeros(expected_shape, dtype=expected_dtype)
    _validate_out_array(out, expected_shape, expected_dtype)
    return out
