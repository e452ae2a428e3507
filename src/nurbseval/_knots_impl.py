"""Knot vector kernels: validation, domain checks and knot span search."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, TypeVar

import numba as nb
import numpy as np
import numpy.typing as npt

F = TypeVar("F", bound=Callable[..., Any])

if TYPE_CHECKING:
    # During type-checking, make the decorator a no-op that preserves types.
    def nb_jit(*args: object, **kwargs: object) -> Callable[[F], F]:
        def decorator(func: F) -> F:
            return func

        return decorator
else:
    # At runtime, use the real Numba decorator.
    nb_jit = nb.jit  # type: ignore[attr-defined]


@nb_jit(
    nopython=True,
    cache=True,
    parallel=False,
)
def _check_spline_info(knots: npt.NDArray[np.float32 | np.float64], degree: int) -> None:
    """Validate a knot vector against a polynomial degree.

    Args:
        knots (npt.NDArray[np.float32 | np.float64]): Knot vector to check.
        degree (int): B-spline degree.

    Raises:
        TypeError: If `knots` is not 1-dimensional.
        ValueError: If `degree` is negative, if there are fewer than
            ``2 * degree + 2`` knots, if a knot is not finite, or if the
            knot vector decreases.
    """
    if knots.ndim != 1:
        raise TypeError("knots must be a 1D array")
    if degree < 0:
        raise ValueError("degree must be non-negative")
    if knots.size < 2 * degree + 2:
        raise ValueError("knots must have at least 2*degree+2 elements")
    for i in range(knots.size):
        if not np.isfinite(knots[i]):
            raise ValueError("knots must be finite")
        if i > 0 and knots[i] < knots[i - 1]:
            raise ValueError("knots must be non-decreasing")


@nb_jit(
    nopython=True,
    cache=True,
    parallel=False,
)
def _is_in_domain_impl(
    knots: npt.NDArray[np.float32 | np.float64],
    degree: int,
    pts: npt.NDArray[np.float32 | np.float64],
    tol: float,
    out: npt.NDArray[np.bool_],
) -> None:
    """Flag the points lying in ``[knots[degree] - tol, knots[-degree-1] + tol]``.

    NaN values are flagged as outside.

    Args:
        knots (npt.NDArray[np.float32 | np.float64]): B-spline knot vector.
        degree (int): B-spline degree.
        pts (npt.NDArray[np.float32 | np.float64]): Points to check.
        tol (float): Absolute tolerance.
        out (npt.NDArray[np.bool_]): Output array with one entry per point.

    Note:
        Inputs are assumed to be correct (no validation performed).
    """
    lower = knots[degree] - tol
    upper = knots[knots.size - degree - 1] + tol
    for pt_id in range(pts.size):
        out[pt_id] = pts[pt_id] >= lower and pts[pt_id] <= upper


@nb_jit(
    nopython=True,
    cache=True,
    parallel=False,
)
def _find_span_impl(
    n: int,
    degree: int,
    u: float,
    knots: npt.NDArray[np.float32 | np.float64],
) -> int:
    """Find the knot span index containing a parametric value.

    This function implements Algorithm A2.1 from "The NURBS Book" by
    Piegl and Tiller: a binary search for ``span`` such that
    ``knots[span] <= u < knots[span + 1]``. The upper domain boundary
    ``u == knots[n + 1]`` is mapped to the last span ``n``.

    Args:
        n (int): Highest control point index (number of control points - 1).
        degree (int): B-spline degree.
        u (float): Parametric value in ``[knots[degree], knots[n + 1]]``.
        knots (npt.NDArray[np.float32 | np.float64]): B-spline knot vector.

    Returns:
        int: Knot span index.

    Note:
        Inputs are assumed to be correct (no validation performed). The
        search does not terminate for values outside the domain.
    """
    if u == knots[n + 1]:
        return n

    low = degree
    high = n + 1
    mid = (low + high) // 2
    while u < knots[mid] or u >= knots[mid + 1]:
        if u < knots[mid]:
            high = mid
        else:
            low = mid
        mid = (low + high) // 2

    return mid


@nb_jit(
    nopython=True,
    cache=True,
    parallel=False,
)
def _find_spans_impl(
    n: int,
    degree: int,
    pts: npt.NDArray[np.float32 | np.float64],
    knots: npt.NDArray[np.float32 | np.float64],
    out: npt.NDArray[np.int_],
) -> None:
    """Find the knot span of every point in `pts`, writing to `out`.

    Note:
        Inputs are assumed to be correct (no validation performed).
    """
    for pt_id in range(pts.size):
        out[pt_id] = _find_span_impl(n, degree, pts[pt_id], knots)


def _warmup_numba_functions() -> None:
    """Precompile numba functions with float64 signatures for faster first call."""
    knots_dummy = np.array([0.0, 0.0, 0.0, 1.0, 1.0, 1.0], dtype=np.float64)
    pts_dummy = np.array([0.5], dtype=np.float64)
    degree_dummy = 2

    _check_spline_info(knots_dummy, degree_dummy)
    _is_in_domain_impl(knots_dummy, degree_dummy, pts_dummy, 1e-10, np.empty(1, dtype=np.bool_))
    _find_spans_impl(2, degree_dummy, pts_dummy, knots_dummy, np.empty(1, dtype=np.int_))


# Precompile numba functions on module import (skip during type checking)
if not TYPE_CHECKING:
    _warmup_numba_functions()


__all__ = [
    "_check_spline_info",
    "_find_span_impl",
    "_find_spans_impl",
    "_is_in_domain_impl",
]
