"""Knot span location and parametric domain queries."""

from __future__ import annotations

from typing import Any, overload

import numpy as np
import numpy.typing as npt

from ._knots_impl import _check_spline_info, _find_spans_impl, _is_in_domain_impl
from ._utils import _check_degree, _normalize_knots, _normalize_points_1D, _resolve_float_dtype
from .tolerance import resolve_tolerance


def get_domain(knots: npt.ArrayLike, degree: int) -> tuple[float, float]:
    """Get the parametric domain ``[knots[degree], knots[-degree-1]]``.

    Args:
        knots (npt.ArrayLike): B-spline knot vector.
        degree (int): B-spline degree.

    Returns:
        tuple[float, float]: Start and end of the domain.

    Raises:
        ValueError: If the knot vector or degree fails basic validation.
    """
    degree = _check_degree(degree)
    knots_arr = _normalize_knots(knots, _resolve_float_dtype(knots))
    _check_spline_info(knots_arr, degree)
    return float(knots_arr[degree]), float(knots_arr[-degree - 1])


def is_in_domain(
    knots: npt.ArrayLike,
    degree: int,
    pts: npt.ArrayLike,
    tol: float | None = None,
) -> npt.NDArray[np.bool_]:
    """Check whether parametric values lie in the B-spline domain.

    Args:
        knots (npt.ArrayLike): B-spline knot vector.
        degree (int): B-spline degree.
        pts (npt.ArrayLike): Parametric values.
        tol (float | None): Tolerance for the comparison with the domain
            ends. Defaults to the default tolerance of the working dtype.

    Returns:
        npt.NDArray[np.bool_]: Boolean array with the shape of `pts`.

    Raises:
        ValueError: If the knot vector or degree fails basic validation,
            or if `tol` is negative.
    """
    degree = _check_degree(degree)
    dtype = _resolve_float_dtype(knots, pts)
    knots_arr = _normalize_knots(knots, dtype)
    _check_spline_info(knots_arr, degree)
    tol = resolve_tolerance(tol, dtype)

    input_shape = np.shape(pts)
    pts_arr = _normalize_points_1D(pts, dtype)
    out = np.empty(pts_arr.size, dtype=np.bool_)
    _is_in_domain_impl(knots_arr, degree, pts_arr, dtype.type(tol), out)
    return out.reshape(input_shape)


def _snap_to_domain(
    knots: npt.NDArray[np.float32 | np.float64],
    degree: int,
    n: int,
    pts: npt.NDArray[np.float32 | np.float64],
    tol: float | None,
) -> npt.NDArray[np.float32 | np.float64]:
    """Check `pts` against ``[knots[degree], knots[n + 1]]`` and clamp them onto it.

    Values outside the domain by less than `tol` are moved onto the nearest
    end, which guarantees termination of the knot span search.

    Args:
        knots (npt.NDArray[np.float32 | np.float64]): Validated knot vector.
        degree (int): B-spline degree.
        n (int): Highest control point index.
        pts (npt.NDArray[np.float32 | np.float64]): 1D parametric values.
        tol (float | None): Domain tolerance. Defaults to the default
            tolerance of the working dtype.

    Returns:
        npt.NDArray[np.float32 | np.float64]: Clamped copy of `pts`.

    Raises:
        ValueError: If a value lies outside the domain beyond tolerance,
            or if `tol` is negative.
    """
    tol = resolve_tolerance(tol, knots.dtype)
    begin, end = knots[degree], knots[n + 1]
    if np.any(pts < begin - tol) or np.any(pts > end + tol) or np.any(np.isnan(pts)):
        raise ValueError(
            f"One or more values in pts are outside the knot vector domain "
            f"[{float(begin)}, {float(end)}]"
        )
    return np.clip(pts, begin, end)


@overload
def find_span(
    n: int, degree: int, u: float, knots: npt.ArrayLike, tol: float | None = None
) -> int: ...


@overload
def find_span(
    n: int, degree: int, u: npt.NDArray[Any], knots: npt.ArrayLike, tol: float | None = None
) -> npt.NDArray[np.int_]: ...


def find_span(
    n: int,
    degree: int,
    u: float | npt.ArrayLike,
    knots: npt.ArrayLike,
    tol: float | None = None,
) -> int | npt.NDArray[np.int_]:
    """Find the knot span index of one or many parametric values.

    The span ``s`` satisfies ``knots[s] <= u < knots[s + 1]``, except at the
    upper domain end ``u == knots[n + 1]`` where ``s == n``. Repeated knots
    are handled: the returned span is never of zero length.

    Args:
        n (int): Highest control point index (number of control points - 1).
        degree (int): B-spline degree.
        u (float | npt.ArrayLike): Parametric value(s) in
            ``[knots[degree], knots[n + 1]]``.
        knots (npt.ArrayLike): B-spline knot vector.
        tol (float | None): Values outside the domain by less than `tol`
            are snapped onto it. Defaults to the default tolerance of the
            working dtype.

    Returns:
        int | npt.NDArray[np.int_]: Span index for a scalar `u`, otherwise
            an integer array with the shape of `u`.

    Raises:
        ValueError: If the knot vector or degree fails basic validation, if
            `n` is not a valid control point index, or if any value is
            outside the domain.

    Example:
        >>> find_span(3, 2, np.linspace(0, 1, 10), [0, 0, 0, 0.5, 1, 1, 1])
        array([2, 2, 2, 2, 2, 3, 3, 3, 3, 3])
    """
    degree = _check_degree(degree)
    dtype = _resolve_float_dtype(knots, u)
    knots_arr = _normalize_knots(knots, dtype)
    _check_spline_info(knots_arr, degree)
    if not degree <= n <= knots_arr.size - degree - 2:
        raise ValueError(
            f"n must be between {degree} and {knots_arr.size - degree - 2}, got {n}"
        )

    input_shape = np.shape(u)
    pts = _snap_to_domain(knots_arr, degree, n, _normalize_points_1D(u, dtype), tol)
    spans = np.empty(pts.size, dtype=np.int_)
    _find_spans_impl(n, degree, pts, knots_arr, spans)

    if len(input_shape) == 0:
        return int(spans[0])
    return spans.reshape(input_shape)
