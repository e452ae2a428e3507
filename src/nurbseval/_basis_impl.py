"""B-spline basis function kernels.

Implements the triangular recurrences of "The NURBS Book" (Piegl and
Tiller) for the nonzero basis functions on one knot span (A2.2), for all
the lower degrees at once, and for their derivatives (A2.3).
"""

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
def _basis_functions_impl(
    span: int,
    u: float,
    degree: int,
    knots: npt.NDArray[np.float32 | np.float64],
    out: npt.NDArray[np.float32 | np.float64],
) -> None:
    """Evaluate the ``degree + 1`` nonzero basis functions on a knot span.

    This function implements Algorithm A2.2 from "The NURBS Book".
    ``out[i]`` receives ``N_{span - degree + i, degree}(u)``.

    Args:
        span (int): Knot span index of `u`.
        u (float): Parametric value.
        degree (int): B-spline degree.
        knots (npt.NDArray[np.float32 | np.float64]): B-spline knot vector.
        out (npt.NDArray[np.float32 | np.float64]): Output array with at
            least ``degree + 1`` entries.

    Note:
        Inputs are assumed to be correct (no validation performed). Knot
        spans of zero length inside the support produce a division by zero.
    """
    left = np.empty(degree + 1, dtype=knots.dtype)
    right = np.empty(degree + 1, dtype=knots.dtype)

    out[0] = 1.0
    for j in range(1, degree + 1):
        left[j] = u - knots[span + 1 - j]
        right[j] = knots[span + j] - u
        saved = 0.0
        for r in range(j):
            temp = out[r] / (right[r + 1] + left[j - r])
            out[r] = saved + right[r + 1] * temp
            saved = left[j - r] * temp
        out[j] = saved


@nb_jit(
    nopython=True,
    cache=True,
    parallel=False,
)
def _basis_functions_batch_impl(
    spans: npt.NDArray[np.int_],
    pts: npt.NDArray[np.float32 | np.float64],
    degree: int,
    knots: npt.NDArray[np.float32 | np.float64],
    out: npt.NDArray[np.float32 | np.float64],
) -> None:
    """Evaluate basis functions for every point, writing row ``i`` of `out`.

    Note:
        Inputs are assumed to be correct (no validation performed).
    """
    for pt_id in range(pts.size):
        _basis_functions_impl(spans[pt_id], pts[pt_id], degree, knots, out[pt_id])


@nb_jit(
    nopython=True,
    cache=True,
    parallel=False,
)
def _all_basis_functions_impl(
    span: int,
    u: float,
    degree: int,
    knots: npt.NDArray[np.float32 | np.float64],
    out: npt.NDArray[np.float32 | np.float64],
) -> None:
    """Evaluate the nonzero basis functions of every degree up to `degree`.

    ``out[d, i]`` receives ``N_{span - d + i, d}(u)`` for ``i <= d``; the
    remaining entries of each row are zero. The derivative evaluation
    algorithms need the lower-degree functions on the same span.

    Args:
        span (int): Knot span index of `u` (for degree `degree`).
        u (float): Parametric value.
        degree (int): Highest B-spline degree.
        knots (npt.NDArray[np.float32 | np.float64]): B-spline knot vector.
        out (npt.NDArray[np.float32 | np.float64]): Output array of shape
            ``(degree + 1, degree + 1)``.

    Note:
        Inputs are assumed to be correct (no validation performed).
    """
    out.fill(0.0)
    for sub_degree in range(degree + 1):
        _basis_functions_impl(span, u, sub_degree, knots, out[sub_degree])


@nb_jit(
    nopython=True,
    cache=True,
    parallel=False,
)
def _basis_function_derivatives_impl(  # noqa: PLR0912
    span: int,
    u: float,
    degree: int,
    knots: npt.NDArray[np.float32 | np.float64],
    n_ders: int,
    out: npt.NDArray[np.float32 | np.float64],
) -> None:
    """Evaluate the nonzero basis functions on a span and their derivatives.

    This function implements Algorithm A2.3 from "The NURBS Book".
    ``out[k, i]`` receives the k-th derivative of ``N_{span - degree + i, degree}``
    at `u`. Derivatives of order above `degree` are zero.

    Args:
        span (int): Knot span index of `u`.
        u (float): Parametric value.
        degree (int): B-spline degree.
        knots (npt.NDArray[np.float32 | np.float64]): B-spline knot vector.
        n_ders (int): Highest derivative order.
        out (npt.NDArray[np.float32 | np.float64]): Output array of shape
            ``(n_ders + 1, degree + 1)``.

    Note:
        Inputs are assumed to be correct (no validation performed).
    """
    order = degree + 1
    ndu = np.empty((order, order), dtype=knots.dtype)
    left = np.empty(order, dtype=knots.dtype)
    right = np.empty(order, dtype=knots.dtype)
    a = np.empty((2, order), dtype=knots.dtype)

    # Basis functions in the upper triangle, knot differences in the lower one.
    ndu[0, 0] = 1.0
    for j in range(1, order):
        left[j] = u - knots[span + 1 - j]
        right[j] = knots[span + j] - u
        saved = 0.0
        for r in range(j):
            ndu[j, r] = right[r + 1] + left[j - r]
            temp = ndu[r, j - 1] / ndu[j, r]
            ndu[r, j] = saved + right[r + 1] * temp
            saved = left[j - r] * temp
        ndu[j, j] = saved

    out.fill(0.0)
    for j in range(order):
        out[0, j] = ndu[j, degree]

    top = min(n_ders, degree)
    for r in range(order):
        s1 = 0
        s2 = 1
        a[0, 0] = 1.0
        for k in range(1, top + 1):
            d = 0.0
            rk = r - k
            pk = degree - k
            if r >= k:
                a[s2, 0] = a[s1, 0] / ndu[pk + 1, rk]
                d = a[s2, 0] * ndu[rk, pk]
            j1 = 1 if rk >= -1 else -rk
            j2 = k - 1 if r - 1 <= pk else degree - r
            for j in range(j1, j2 + 1):
                a[s2, j] = (a[s1, j] - a[s1, j - 1]) / ndu[pk + 1, rk + j]
                d += a[s2, j] * ndu[rk + j, pk]
            if r <= pk:
                a[s2, k] = -a[s1, k - 1] / ndu[pk + 1, r]
                d += a[s2, k] * ndu[r, pk]
            out[k, r] = d
            s1, s2 = s2, s1

    factor = degree
    for k in range(1, top + 1):
        for j in range(order):
            out[k, j] *= factor
        factor *= degree - k


@nb_jit(
    nopython=True,
    cache=True,
    parallel=False,
)
def _basis_function_derivatives_batch_impl(
    spans: npt.NDArray[np.int_],
    pts: npt.NDArray[np.float32 | np.float64],
    degree: int,
    knots: npt.NDArray[np.float32 | np.float64],
    n_ders: int,
    out: npt.NDArray[np.float32 | np.float64],
) -> None:
    """Evaluate basis function derivatives for every point into ``out[i]``.

    Note:
        Inputs are assumed to be correct (no validation performed).
    """
    for pt_id in range(pts.size):
        _basis_function_derivatives_impl(
            spans[pt_id], pts[pt_id], degree, knots, n_ders, out[pt_id]
        )


def _warmup_numba_functions() -> None:
    """Precompile numba functions with float64 signatures for faster first call."""
    knots_dummy = np.array([0.0, 0.0, 0.0, 1.0, 1.0, 1.0], dtype=np.float64)
    pts_dummy = np.array([0.5], dtype=np.float64)
    spans_dummy = np.array([2], dtype=np.int_)
    degree_dummy = 2

    _basis_functions_batch_impl(
        spans_dummy, pts_dummy, degree_dummy, knots_dummy, np.empty((1, 3), dtype=np.float64)
    )
    _all_basis_functions_impl(2, 0.5, degree_dummy, knots_dummy, np.empty((3, 3), dtype=np.float64))
    _basis_function_derivatives_batch_impl(
        spans_dummy, pts_dummy, degree_dummy, knots_dummy, 1, np.empty((1, 2, 3), dtype=np.float64)
    )


# Precompile numba functions on module import (skip during type checking)
if not TYPE_CHECKING:
    _warmup_numba_functions()


__all__ = [
    "_all_basis_functions_impl",
    "_basis_function_derivatives_batch_impl",
    "_basis_function_derivatives_impl",
    "_basis_functions_batch_impl",
    "_basis_functions_impl",
]
