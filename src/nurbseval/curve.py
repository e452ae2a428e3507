"""B-spline curve evaluation and differentiation.

Control points are passed as ``(dim, nc)`` matrices (one column per control
point) and results are returned as ``(dim, n_pts)`` matrices.
"""

from __future__ import annotations

import logging

import numpy as np
import numpy.typing as npt

from ._curve_impl import (
    _curve_derivative_control_points_impl,
    _derivative_bspline_impl,
    _evaluate_curve_derivatives_impl,
    _evaluate_curve_impl,
)
from ._knots_impl import _check_spline_info
from ._utils import (
    _allocate_out,
    _check_consistency,
    _check_degree,
    _check_num_derivatives,
    _normalize_control_points,
    _normalize_knots,
    _normalize_points_1D,
    _resolve_float_dtype,
)
from .knots import _snap_to_domain

_logger = logging.getLogger(__name__)


def _prepare_curve(
    degree: int,
    control_points: npt.ArrayLike,
    knots: npt.ArrayLike,
    *others: npt.ArrayLike,
) -> tuple[int, npt.NDArray[np.float32 | np.float64], npt.NDArray[np.float32 | np.float64]]:
    """Normalize and validate the data of a B-spline curve.

    Returns:
        tuple: ``(degree, control_points, knots)`` with a common dtype.

    Raises:
        InconsistentBsplineDataError: If ``nc + degree != len(knots) - 1``.
        ValueError: If the degree or knot vector fails basic validation.
    """
    degree = _check_degree(degree)
    dtype = _resolve_float_dtype(control_points, knots, *others)
    cps = _normalize_control_points(control_points, dtype)
    knots_arr = _normalize_knots(knots, dtype)
    _check_consistency(cps.shape[1], degree, knots_arr.size)
    _check_spline_info(knots_arr, degree)
    return degree, cps, knots_arr


def evaluate_bspline(
    degree: int,
    control_points: npt.ArrayLike,
    knots: npt.ArrayLike,
    pts: npt.ArrayLike,
    tol: float | None = None,
    out: npt.NDArray[np.float32 | np.float64] | None = None,
) -> npt.NDArray[np.float32 | np.float64]:
    """Evaluate a B-spline curve at parametric points.

    Args:
        degree (int): B-spline degree.
        control_points (npt.ArrayLike): Control points of shape ``(dim, nc)``;
            a 1D array is a scalar-valued spline.
        knots (npt.ArrayLike): Knot vector of length ``nc + degree + 1``.
        pts (npt.ArrayLike): Parametric values; flattened if multi-dimensional.
        tol (float | None): Domain tolerance, see :func:`nurbseval.knots.find_span`.
        out (npt.NDArray[np.float32 | np.float64] | None): Optional output
            array of shape ``(dim, n_pts)``. Defaults to None.

    Returns:
        npt.NDArray[np.float32 | np.float64]: Points of shape ``(dim, n_pts)``.

    Raises:
        InconsistentBsplineDataError: If ``nc + degree != len(knots) - 1``.
        ValueError: If any point is outside the domain, if the inputs fail
            validation, or if `out` has an incorrect shape or dtype.

    Example:
        >>> evaluate_bspline(1, [[0.0, 2.0]], [0, 0, 1, 1], [0.25, 0.5])
        array([[0.5, 1. ]])
    """
    degree, cps, knots_arr = _prepare_curve(degree, control_points, knots, pts)
    nc = cps.shape[1]
    pts_arr = _snap_to_domain(
        knots_arr, degree, nc - 1, _normalize_points_1D(pts, knots_arr.dtype), tol
    )

    out = _allocate_out(out, (cps.shape[0], pts_arr.size), knots_arr.dtype)
    _logger.debug("evaluating degree %d B-spline at %d points", degree, pts_arr.size)
    _evaluate_curve_impl(degree, cps, knots_arr, pts_arr, out)
    return out


def derivative_bspline(
    degree: int,
    control_points: npt.ArrayLike,
    knots: npt.ArrayLike,
) -> tuple[npt.NDArray[np.float32 | np.float64], npt.NDArray[np.float32 | np.float64]]:
    """Compute the B-spline representation of the derivative of a curve.

    The derivative of a degree ``p`` B-spline with ``nc`` control points is
    a degree ``p - 1`` B-spline with ``nc - 1`` control points on the knot
    vector stripped of its first and last knots. Applying the function
    again to the result gives the second derivative, and so on.

    Where a repeated knot makes ``knots[i + degree + 1] == knots[i + 1]``,
    the plain formula ``degree / (knots[i + degree + 1] - knots[i + 1])``
    divides by zero. That coefficient is returned as zero instead of
    ``inf`` or ``nan``, since it multiplies a basis function that vanishes
    everywhere.

    Args:
        degree (int): B-spline degree.
        control_points (npt.ArrayLike): Control points of shape ``(dim, nc)``.
        knots (npt.ArrayLike): Knot vector of length ``nc + degree + 1``.

    Returns:
        tuple[npt.NDArray[np.float32 | np.float64], npt.NDArray[np.float32 | np.float64]]:
            ``(derivative_control_points, derivative_knots)`` of shapes
            ``(dim, nc - 1)`` and ``(len(knots) - 2,)``.

    Raises:
        InconsistentBsplineDataError: If ``nc + degree != len(knots) - 1``.
        ValueError: If the inputs fail validation or the degree is zero.
    """
    degree, cps, knots_arr = _prepare_curve(degree, control_points, knots)
    if degree == 0:
        raise ValueError("degree must be positive to compute a derivative B-spline")

    dim, nc = cps.shape
    out_cps = np.empty((dim, nc - 1), dtype=knots_arr.dtype)
    out_knots = np.empty(knots_arr.size - 2, dtype=knots_arr.dtype)
    _derivative_bspline_impl(degree, cps, knots_arr, out_cps, out_knots)
    return out_cps, out_knots


def compute_curve_derivative_control_points(
    degree: int,
    control_points: npt.ArrayLike,
    knots: npt.ArrayLike,
    n_ders: int,
    r1: int = 0,
    r2: int | None = None,
) -> npt.NDArray[np.float32 | np.float64]:
    """Compute the control points of all derivatives of a piece of a curve.

    Entry ``[k, :, i]`` is the i-th control point of the k-th derivative
    curve restricted to the control points ``r1..r2``, for
    ``i <= r2 - r1 - k``. Other entries, and every order above `degree`,
    are zero. Coefficients over an empty knot interval are zero, as in
    :func:`derivative_bspline`.

    Args:
        degree (int): B-spline degree.
        control_points (npt.ArrayLike): Control points of shape ``(dim, nc)``.
        knots (npt.ArrayLike): Knot vector of length ``nc + degree + 1``.
        n_ders (int): Highest derivative order.
        r1 (int): First control point of the piece. Defaults to 0.
        r2 (int | None): Last control point of the piece. Defaults to the
            last control point.

    Returns:
        npt.NDArray[np.float32 | np.float64]: Array of shape
            ``(n_ders + 1, dim, r2 - r1 + 1)``.

    Raises:
        InconsistentBsplineDataError: If ``nc + degree != len(knots) - 1``.
        ValueError: If the inputs fail validation or ``0 <= r1 <= r2 < nc``
            does not hold.
    """
    degree, cps, knots_arr = _prepare_curve(degree, control_points, knots)
    n_ders = _check_num_derivatives(n_ders)
    nc = cps.shape[1]
    r2 = nc - 1 if r2 is None else r2
    if not 0 <= r1 <= r2 < nc:
        raise ValueError(f"control point range must satisfy 0 <= r1 <= r2 < {nc}")

    out = np.zeros((n_ders + 1, cps.shape[0], r2 - r1 + 1), dtype=knots_arr.dtype)
    top = min(n_ders, degree, r2 - r1)
    _curve_derivative_control_points_impl(
        degree, knots_arr, cps[:, r1 : r2 + 1], top, r1, out
    )
    return out


def evaluate_bspline_derivatives(
    degree: int,
    control_points: npt.ArrayLike,
    knots: npt.ArrayLike,
    pts: npt.ArrayLike,
    n_ders: int,
    tol: float | None = None,
    out: npt.NDArray[np.float32 | np.float64] | None = None,
) -> npt.NDArray[np.float32 | np.float64]:
    """Evaluate a B-spline curve and its derivatives at parametric points.

    Args:
        degree (int): B-spline degree.
        control_points (npt.ArrayLike): Control points of shape ``(dim, nc)``.
        knots (npt.ArrayLike): Knot vector of length ``nc + degree + 1``.
        pts (npt.ArrayLike): Parametric values; flattened if multi-dimensional.
        n_ders (int): Highest derivative order.
        tol (float | None): Domain tolerance, see :func:`nurbseval.knots.find_span`.
        out (npt.NDArray[np.float32 | np.float64] | None): Optional output
            array of shape ``(n_ders + 1, dim, n_pts)``. Defaults to None.

    Returns:
        npt.NDArray[np.float32 | np.float64]: Array of shape
            ``(n_ders + 1, dim, n_pts)``; entry ``[k]`` holds the k-th
            derivative. Orders above `degree` are zero.

    Raises:
        InconsistentBsplineDataError: If ``nc + degree != len(knots) - 1``.
        ValueError: If any point is outside the domain, if the inputs fail
            validation, or if `out` has an incorrect shape or dtype.
    """
    degree, cps, knots_arr = _prepare_curve(degree, control_points, knots, pts)
    n_ders = _check_num_derivatives(n_ders)
    nc = cps.shape[1]
    pts_arr = _snap_to_domain(
        knots_arr, degree, nc - 1, _normalize_points_1D(pts, knots_arr.dtype), tol
    )

    out = _allocate_out(out, (n_ders + 1, cps.shape[0], pts_arr.size), knots_arr.dtype)
    _evaluate_curve_derivatives_impl(degree, cps, knots_arr, pts_arr, n_ders, out)
    return out
