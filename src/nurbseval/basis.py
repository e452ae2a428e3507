"""Evaluation of B-spline basis functions and their derivatives."""

from __future__ import annotations

import numpy as np
import numpy.typing as npt

from ._basis_impl import _basis_function_derivatives_batch_impl, _basis_functions_batch_impl
from ._knots_impl import _check_spline_info
from ._utils import (
    _allocate_out,
    _check_degree,
    _check_num_derivatives,
    _normalize_knots,
    _normalize_points_1D,
    _resolve_float_dtype,
)


def _prepare_spans_and_points(
    span: int | npt.ArrayLike,
    u: float | npt.ArrayLike,
    degree: int,
    knots: npt.ArrayLike,
) -> tuple[
    npt.NDArray[np.int_],
    npt.NDArray[np.float32 | np.float64],
    npt.NDArray[np.float32 | np.float64],
    tuple[int, ...],
]:
    """Normalize spans, points and knots, and check that the spans are valid.

    Returns:
        tuple: ``(spans, pts, knots, input_shape)`` where `input_shape` is
            the shape of `u`.

    Raises:
        ValueError: If the knot vector or degree fails basic validation, if
            `span` and `u` have different sizes, or if a span index cannot
            support ``degree + 1`` basis functions.
    """
    dtype = _resolve_float_dtype(knots, u)
    knots_arr = _normalize_knots(knots, dtype)
    _check_spline_info(knots_arr, degree)

    input_shape = np.shape(u)
    pts = _normalize_points_1D(u, dtype)
    spans = np.ascontiguousarray(np.asarray(span, dtype=np.int_).ravel())
    if spans.size == 1 and pts.size > 1:
        spans = np.full(pts.size, spans[0], dtype=np.int_)
    if spans.size != pts.size:
        raise ValueError(
            f"span and u must have the same number of entries, got {spans.size} and {pts.size}"
        )
    if np.any(spans < degree) or np.any(spans > knots_arr.size - degree - 2):
        raise ValueError(
            f"span indices must be between {degree} and {knots_arr.size - degree - 2}"
        )
    return spans, pts, knots_arr, input_shape


def basis_functions(
    span: int | npt.ArrayLike,
    u: float | npt.ArrayLike,
    degree: int,
    knots: npt.ArrayLike,
    out: npt.NDArray[np.float32 | np.float64] | None = None,
) -> npt.NDArray[np.float32 | np.float64]:
    """Evaluate the ``degree + 1`` nonzero B-spline basis functions.

    Entry ``i`` of the last axis is ``N_{span - degree + i, degree}(u)``.
    The values are nonnegative and sum to one. Spans are usually obtained
    with :func:`nurbseval.knots.find_span`.

    Args:
        span (int | npt.ArrayLike): Knot span index of each value of `u`. A
            single span is broadcast to all values.
        u (float | npt.ArrayLike): Parametric value(s).
        degree (int): B-spline degree.
        knots (npt.ArrayLike): B-spline knot vector.
        out (npt.NDArray[np.float32 | np.float64] | None): Optional output
            array where the result will be stored. If None, a new array is
            allocated. This follows NumPy's style for output arrays.
            Defaults to None.

    Returns:
        npt.NDArray[np.float32 | np.float64]: Array of shape ``(degree + 1,)``
            for a scalar `u`, otherwise ``(*u.shape, degree + 1)``.

    Raises:
        ValueError: If the inputs fail validation or if `out` has an
            incorrect shape or dtype.

    Example:
        >>> basis_functions(3, 1.0, 2, [0, 0, 0, 0.5, 1, 1, 1])
        array([0., 0., 1.])
    """
    degree = _check_degree(degree)
    spans, pts, knots_arr, input_shape = _prepare_spans_and_points(span, u, degree, knots)

    final_shape = (*input_shape, degree + 1)
    out = _allocate_out(out, final_shape, knots_arr.dtype)
    _basis_functions_batch_impl(
        spans, pts, degree, knots_arr, out.reshape(pts.size, degree + 1)
    )
    return out


def basis_function_derivatives(
    span: int | npt.ArrayLike,
    u: float | npt.ArrayLike,
    degree: int,
    knots: npt.ArrayLike,
    n_ders: int,
    out: npt.NDArray[np.float32 | np.float64] | None = None,
) -> npt.NDArray[np.float32 | np.float64]:
    """Evaluate the nonzero basis functions and their derivatives up to `n_ders`.

    Entry ``[..., k, i]`` is the k-th derivative of
    ``N_{span - degree + i, degree}`` at `u`. Orders above `degree` are zero.

    Args:
        span (int | npt.ArrayLike): Knot span index of each value of `u`.
        u (float | npt.ArrayLike): Parametric value(s).
        degree (int): B-spline degree.
        knots (npt.ArrayLike): B-spline knot vector.
        n_ders (int): Highest derivative order.
        out (npt.NDArray[np.float32 | np.float64] | None): Optional output
            array. Defaults to None.

    Returns:
        npt.NDArray[np.float32 | np.float64]: Array of shape
            ``(*u.shape, n_ders + 1, degree + 1)``.

    Raises:
        ValueError: If the inputs fail validation or if `out` has an
            incorrect shape or dtype.
    """
    degree = _check_degree(degree)
    n_ders = _check_num_derivatives(n_ders)
    spans, pts, knots_arr, input_shape = _prepare_spans_and_points(span, u, degree, knots)

    final_shape = (*input_shape, n_ders + 1, degree + 1)
    out = _allocate_out(out, final_shape, knots_arr.dtype)
    _basis_function_derivatives_batch_impl(
        spans, pts, degree, knots_arr, n_ders, out.reshape(pts.size, n_ders + 1, degree + 1)
    )
    return out
