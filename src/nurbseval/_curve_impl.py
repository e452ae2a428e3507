"""B-spline curve kernels: point evaluation and derivative control points.

Control points are stored column-wise, ``control_points[coord, index]``.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, TypeVar

import numba as nb
import numpy as np
import numpy.typing as npt

from ._basis_impl import _all_basis_functions_impl, _basis_functions_impl
from ._knots_impl import _find_span_impl

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
def _evaluate_curve_impl(
    degree: int,
    control_points: npt.NDArray[np.float32 | np.float64],
    knots: npt.NDArray[np.float32 | np.float64],
    pts: npt.NDArray[np.float32 | np.float64],
    out: npt.NDArray[np.float32 | np.float64],
) -> None:
    """Evaluate a B-spline curve at parametric points.

    ``out[:, j]`` receives ``sum_i N_{s-degree+i}(pts[j]) * control_points[:, s-degree+i]``
    where ``s`` is the knot span of ``pts[j]``.

    Args:
        degree (int): B-spline degree.
        control_points (npt.NDArray[np.float32 | np.float64]): Array of shape ``(dim, nc)``.
        knots (npt.NDArray[np.float32 | np.float64]): Knot vector of length ``nc + degree + 1``.
        pts (npt.NDArray[np.float32 | np.float64]): Parametric values inside the domain.
        out (npt.NDArray[np.float32 | np.float64]): Output array of shape ``(dim, pts.size)``.

    Note:
        Inputs are assumed to be correct (no validation performed).
    """
    dim, nc = control_points.shape
    basis = np.empty(degree + 1, dtype=knots.dtype)

    for col in range(pts.size):
        span = _find_span_impl(nc - 1, degree, pts[col], knots)
        _basis_functions_impl(span, pts[col], degree, knots, basis)
        first = span - degree
        for row in range(dim):
            value = 0.0
            for i in range(degree + 1):
                value += basis[i] * control_points[row, first + i]
            out[row, col] = value


@nb_jit(
    nopython=True,
    cache=True,
    parallel=False,
)
def _derivative_bspline_impl(
    degree: int,
    control_points: npt.NDArray[np.float32 | np.float64],
    knots: npt.NDArray[np.float32 | np.float64],
    out_control_points: npt.NDArray[np.float32 | np.float64],
    out_knots: npt.NDArray[np.float32 | np.float64],
) -> None:
    """Compute the B-spline representation of the first derivative.

    This function implements a modified Algorithm A3.3 from "The NURBS Book":
    the derivative of a degree ``p`` B-spline is a degree ``p - 1`` B-spline
    with control points ``p / (U[i+p+1] - U[i+1]) * (P[i+1] - P[i])`` on the
    knot vector without its first and last knots. Coefficients whose
    interval ``U[i+p+1] - U[i+1]`` is empty are set to zero.

    Args:
        degree (int): B-spline degree.
        control_points (npt.NDArray[np.float32 | np.float64]): Array of shape ``(dim, nc)``.
        knots (npt.NDArray[np.float32 | np.float64]): Knot vector of length ``nk``.
        out_control_points (npt.NDArray[np.float32 | np.float64]): Output array of
            shape ``(dim, nc - 1)``.
        out_knots (npt.NDArray[np.float32 | np.float64]): Output array of length ``nk - 2``.

    Note:
        Inputs are assumed to be correct (no validation performed).
    """
    dim, nc = control_points.shape

    for i in range(nc - 1):
        length = knots[i + degree + 1] - knots[i + 1]
        # Zero-length support: the matching basis function is identically zero.
        tmp = 0.0 if length == 0.0 else degree / length
        for j in range(dim):
            out_control_points[j, i] = tmp * (control_points[j, i + 1] - control_points[j, i])

    for i in range(1, knots.size - 1):
        out_knots[i - 1] = knots[i]


@nb_jit(
    nopython=True,
    cache=True,
    parallel=False,
)
def _curve_derivative_control_points_impl(
    degree: int,
    knots: npt.NDArray[np.float32 | np.float64],
    local_control_points: npt.NDArray[np.float32 | np.float64],
    n_ders: int,
    r1: int,
    out: npt.NDArray[np.float32 | np.float64],
) -> None:
    """Compute the control points of all derivatives up to `n_ders` of a curve piece.

    This function implements Algorithm A3.5 from "The NURBS Book". The
    piece is given by the control points ``r1..r2`` of the curve, already
    sliced into `local_control_points`; `r1` is only used to address the
    knot vector. ``out[k, :, i]`` receives the i-th control point of the
    k-th derivative, for ``i <= r2 - r1 - k``; other entries are zero.
    Coefficients over an empty knot interval are left at zero.

    Args:
        degree (int): B-spline degree.
        knots (npt.NDArray[np.float32 | np.float64]): Knot vector of the curve.
        local_control_points (npt.NDArray[np.float32 | np.float64]): Array of shape
            ``(dim, r2 - r1 + 1)``.
        n_ders (int): Highest derivative order, at most ``min(degree, r2 - r1)``.
        r1 (int): Index of the first control point of the piece.
        out (npt.NDArray[np.float32 | np.float64]): Output array of shape
            ``(>= n_ders + 1, dim, r2 - r1 + 1)``.

    Note:
        Inputs are assumed to be correct (no validation performed).
    """
    dim, n_local = local_control_points.shape
    r = n_local - 1

    out.fill(0.0)
    for c in range(dim):
        for i in range(n_local):
            out[0, c, i] = local_control_points[c, i]

    for k in range(1, n_ders + 1):
        tmp = degree - k + 1
        for i in range(r - k + 1):
            denominator = knots[r1 + i + degree + 1] - knots[r1 + i + k]
            if denominator == 0.0:
                continue
            for c in range(dim):
                out[k, c, i] = tmp * (out[k - 1, c, i + 1] - out[k - 1, c, i]) / denominator


@nb_jit(
    nopython=True,
    cache=True,
    parallel=False,
)
def _evaluate_curve_derivatives_impl(
    degree: int,
    control_points: npt.NDArray[np.float32 | np.float64],
    knots: npt.NDArray[np.float32 | np.float64],
    pts: npt.NDArray[np.float32 | np.float64],
    n_ders: int,
    out: npt.NDArray[np.float32 | np.float64],
) -> None:
    """Evaluate a B-spline curve and its derivatives up to `n_ders`.

    This function implements Algorithm A3.4 from "The NURBS Book": the
    derivative control points of the active piece are combined with the
    basis functions of the reduced degrees. ``out[k, :, j]`` receives the
    k-th derivative at ``pts[j]``; orders above `degree` are zero.

    Args:
        degree (int): B-spline degree.
        control_points (npt.NDArray[np.float32 | np.float64]): Array of shape ``(dim, nc)``.
        knots (npt.NDArray[np.float32 | np.float64]): Knot vector of length ``nc + degree + 1``.
        pts (npt.NDArray[np.float32 | np.float64]): Parametric values inside the domain.
        n_ders (int): Highest derivative order.
        out (npt.NDArray[np.float32 | np.float64]): Output array of shape
            ``(n_ders + 1, dim, pts.size)``.

    Note:
        Inputs are assumed to be correct (no validation performed).
    """
    dim, nc = control_points.shape
    du = min(n_ders, degree)
    all_basis = np.empty((degree + 1, degree + 1), dtype=knots.dtype)
    pk = np.empty((du + 1, dim, degree + 1), dtype=knots.dtype)

    out.fill(0.0)
    for col in range(pts.size):
        span = _find_span_impl(nc - 1, degree, pts[col], knots)
        _all_basis_functions_impl(span, pts[col], degree, knots, all_basis)
        _curve_derivative_control_points_impl(
            degree,
            knots,
            control_points[:, span - degree : span + 1],
            du,
            span - degree,
            pk,
        )
        for k in range(du + 1):
            for c in range(dim):
                value = 0.0
                for j in range(degree - k + 1):
                    value += all_basis[degree - k, j] * pk[k, c, j]
                out[k, c, col] = value


def _warmup_numba_functions() -> None:
    """Precompile numba functions with float64 signatures for faster first call."""
    knots_dummy = np.array([0.0, 0.0, 0.0, 1.0, 1.0, 1.0], dtype=np.float64)
    cps_dummy = np.array([[0.0, 0.5, 1.0]], dtype=np.float64)
    pts_dummy = np.array([0.5], dtype=np.float64)
    degree_dummy = 2

    _evaluate_curve_impl(
        degree_dummy, cps_dummy, knots_dummy, pts_dummy, np.empty((1, 1), dtype=np.float64)
    )
    _derivative_bspline_impl(
        degree_dummy,
        cps_dummy,
        knots_dummy,
        np.empty((1, 2), dtype=np.float64),
        np.empty(4, dtype=np.float64),
    )
    _evaluate_curve_derivatives_impl(
        degree_dummy, cps_dummy, knots_dummy, pts_dummy, 1, np.empty((2, 1, 1), dtype=np.float64)
    )


# Precompile numba functions on module import (skip during type checking)
if not TYPE_CHECKING:
    _warmup_numba_functions()


__all__ = [
    "_curve_derivative_control_points_impl",
    "_derivative_bspline_impl",
    "_evaluate_curve_derivatives_impl",
    "_evaluate_curve_impl",
]
