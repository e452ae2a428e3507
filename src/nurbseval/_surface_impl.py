"""Tensor-product B-spline surface kernels.

A scalar field on the control grid is stored as ``control_net[i, j]`` with
``i`` the control index along u and ``j`` along v. Parametric samples are
stored as ``uv[0, s] = u``, ``uv[1, s] = v``.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, TypeVar

import numba as nb
import numpy as np
import numpy.typing as npt

from ._basis_impl import _all_basis_functions_impl, _basis_functions_impl
from ._curve_impl import _curve_derivative_control_points_impl
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
def _surface_derivative_control_points_impl(  # noqa: PLR0913
    degree_u: int,
    knots_u: npt.NDArray[np.float32 | np.float64],
    degree_v: int,
    knots_v: npt.NDArray[np.float32 | np.float64],
    control_net: npt.NDArray[np.float32 | np.float64],
    n_ders: int,
    r1: int,
    r2: int,
    s1: int,
    s2: int,
    out: npt.NDArray[np.float32 | np.float64],
) -> None:
    """Compute the derivative control points of a patch of a scalar field.

    This function implements Algorithm A3.7 from "The NURBS Book": the curve
    reduction of A3.5 is applied along u to every column ``s1..s2`` of the
    patch, and then along v to every resulting row. ``out[k, l, i, j]``
    receives the ``(i, j)`` control point of the ``(k, l)`` mixed partial
    derivative, for ``k <= min(n_ders, degree_u)``,
    ``l <= min(n_ders - k, degree_v)``, ``i <= r2 - r1 - k`` and
    ``j <= s2 - s1 - l``. Other entries are zero.

    Args:
        degree_u (int): Degree along u.
        knots_u (npt.NDArray[np.float32 | np.float64]): Knot vector along u.
        degree_v (int): Degree along v.
        knots_v (npt.NDArray[np.float32 | np.float64]): Knot vector along v.
        control_net (npt.NDArray[np.float32 | np.float64]): Scalar control values
            of shape ``(nu, nv)``.
        n_ders (int): Highest total derivative order.
        r1 (int): First control index of the patch along u.
        r2 (int): Last control index of the patch along u.
        s1 (int): First control index of the patch along v.
        s2 (int): Last control index of the patch along v.
        out (npt.NDArray[np.float32 | np.float64]): Output array of shape
            ``(min(n_ders, degree_u) + 1, min(n_ders, degree_v) + 1, r2 - r1 + 1, s2 - s1 + 1)``.

    Note:
        Inputs are assumed to be correct (no validation performed).
    """
    du = min(n_ders, degree_u)
    dv = min(n_ders, degree_v)
    r = r2 - r1
    s = s2 - s1

    out.fill(0.0)

    u_ders = np.empty((du + 1, 1, r + 1), dtype=out.dtype)
    for j in range(s1, s2 + 1):
        _curve_derivative_control_points_impl(
            degree_u, knots_u, control_net[r1 : r2 + 1, j : j + 1].T, du, r1, u_ders
        )
        for k in range(du + 1):
            for i in range(r - k + 1):
                out[k, 0, i, j - s1] = u_ders[k, 0, i]

    v_ders = np.empty((dv + 1, 1, s + 1), dtype=out.dtype)
    for k in range(du + 1):
        dd = min(n_ders - k, dv)
        for i in range(r - k + 1):
            _curve_derivative_control_points_impl(
                degree_v, knots_v, out[k, 0, i : i + 1, :], dd, s1, v_ders
            )
            for l in range(1, dd + 1):  # noqa: E741
                for j in range(s - l + 1):
                    out[k, l, i, j] = v_ders[l, 0, j]


@nb_jit(
    nopython=True,
    cache=True,
    parallel=False,
)
def _surface_derivatives_impl(  # noqa: PLR0913
    degree_u: int,
    knots_u: npt.NDArray[np.float32 | np.float64],
    degree_v: int,
    knots_v: npt.NDArray[np.float32 | np.float64],
    control_net: npt.NDArray[np.float32 | np.float64],
    u: float,
    v: float,
    n_ders: int,
    out: npt.NDArray[np.float32 | np.float64],
) -> None:
    """Evaluate all partial derivatives of a scalar B-spline surface field.

    This function implements Algorithm A3.8 from "The NURBS Book".
    ``out[k, l]`` receives the k-th u / l-th v mixed partial derivative at
    ``(u, v)`` for ``k + l <= n_ders``. Entries with ``k > degree_u``,
    ``l > degree_v`` or ``k + l > n_ders`` are zero.

    Args:
        degree_u (int): Degree along u.
        knots_u (npt.NDArray[np.float32 | np.float64]): Knot vector along u.
        degree_v (int): Degree along v.
        knots_v (npt.NDArray[np.float32 | np.float64]): Knot vector along v.
        control_net (npt.NDArray[np.float32 | np.float64]): Scalar control values
            of shape ``(nu, nv)``.
        u (float): Parametric value along u.
        v (float): Parametric value along v.
        n_ders (int): Highest total derivative order.
        out (npt.NDArray[np.float32 | np.float64]): Output array of shape
            ``(n_ders + 1, n_ders + 1)``.

    Note:
        Inputs are assumed to be correct (no validation performed).
    """
    nu, nv = control_net.shape
    du = min(n_ders, degree_u)
    dv = min(n_ders, degree_v)

    out.fill(0.0)

    span_u = _find_span_impl(nu - 1, degree_u, u, knots_u)
    span_v = _find_span_impl(nv - 1, degree_v, v, knots_v)
    basis_u = np.empty((degree_u + 1, degree_u + 1), dtype=out.dtype)
    basis_v = np.empty((degree_v + 1, degree_v + 1), dtype=out.dtype)
    _all_basis_functions_impl(span_u, u, degree_u, knots_u, basis_u)
    _all_basis_functions_impl(span_v, v, degree_v, knots_v, basis_v)

    pkl = np.empty((du + 1, dv + 1, degree_u + 1, degree_v + 1), dtype=out.dtype)
    _surface_derivative_control_points_impl(
        degree_u,
        knots_u,
        degree_v,
        knots_v,
        control_net,
        n_ders,
        span_u - degree_u,
        span_u,
        span_v - degree_v,
        span_v,
        pkl,
    )

    for k in range(du + 1):
        dd = min(n_ders - k, dv)
        for l in range(dd + 1):  # noqa: E741
            value = 0.0
            for i in range(degree_v - l + 1):
                tmp = 0.0
                for j in range(degree_u - k + 1):
                    tmp += basis_u[degree_u - k, j] * pkl[k, l, j, i]
                value += basis_v[degree_v - l, i] * tmp
            out[k, l] = value


@nb_jit(
    nopython=True,
    cache=True,
    parallel=False,
)
def _surface_derivatives_batch_impl(  # noqa: PLR0913
    degree_u: int,
    knots_u: npt.NDArray[np.float32 | np.float64],
    degree_v: int,
    knots_v: npt.NDArray[np.float32 | np.float64],
    control_net: npt.NDArray[np.float32 | np.float64],
    uv: npt.NDArray[np.float32 | np.float64],
    n_ders: int,
    out: npt.NDArray[np.float32 | np.float64],
) -> None:
    """Evaluate scalar surface derivatives at every sample into ``out[:, :, s]``.

    Note:
        Inputs are assumed to be correct (no validation performed).
    """
    ders = np.empty((n_ders + 1, n_ders + 1), dtype=out.dtype)
    for sample in range(uv.shape[1]):
        _surface_derivatives_impl(
            degree_u,
            knots_u,
            degree_v,
            knots_v,
            control_net,
            uv[0, sample],
            uv[1, sample],
            n_ders,
            ders,
        )
        for k in range(n_ders + 1):
            for l in range(n_ders + 1):  # noqa: E741
                out[k, l, sample] = ders[k, l]


@nb_jit(
    nopython=True,
    cache=True,
    parallel=False,
)
def _evaluate_surface_impl(  # noqa: PLR0913
    degree_u: int,
    knots_u: npt.NDArray[np.float32 | np.float64],
    degree_v: int,
    knots_v: npt.NDArray[np.float32 | np.float64],
    coefs: npt.NDArray[np.float32 | np.float64],
    uv: npt.NDArray[np.float32 | np.float64],
    out: npt.NDArray[np.float32 | np.float64],
) -> None:
    """Evaluate a tensor-product B-spline surface at samples.

    ``out[c, s]`` receives ``sum_ij N_i(u_s) N_j(v_s) coefs[c, i, j]``.

    Args:
        degree_u (int): Degree along u.
        knots_u (npt.NDArray[np.float32 | np.float64]): Knot vector along u.
        degree_v (int): Degree along v.
        knots_v (npt.NDArray[np.float32 | np.float64]): Knot vector along v.
        coefs (npt.NDArray[np.float32 | np.float64]): Control values of shape
            ``(n_coords, nu, nv)``.
        uv (npt.NDArray[np.float32 | np.float64]): Samples of shape ``(2, n_samples)``.
        out (npt.NDArray[np.float32 | np.float64]): Output array of shape
            ``(n_coords, n_samples)``.

    Note:
        Inputs are assumed to be correct (no validation performed).
    """
    n_coords, nu, nv = coefs.shape
    basis_u = np.empty(degree_u + 1, dtype=out.dtype)
    basis_v = np.empty(degree_v + 1, dtype=out.dtype)

    for sample in range(uv.shape[1]):
        u = uv[0, sample]
        v = uv[1, sample]
        span_u = _find_span_impl(nu - 1, degree_u, u, knots_u)
        span_v = _find_span_impl(nv - 1, degree_v, v, knots_v)
        _basis_functions_impl(span_u, u, degree_u, knots_u, basis_u)
        _basis_functions_impl(span_v, v, degree_v, knots_v, basis_v)
        first_u = span_u - degree_u
        first_v = span_v - degree_v
        for c in range(n_coords):
            value = 0.0
            for i in range(degree_u + 1):
                tmp = 0.0
                for j in range(degree_v + 1):
                    tmp += basis_v[j] * coefs[c, first_u + i, first_v + j]
                value += basis_u[i] * tmp
            out[c, sample] = value


def _warmup_numba_functions() -> None:
    """Precompile numba functions with float64 signatures for faster first call."""
    knots_dummy = np.array([0.0, 0.0, 1.0, 1.0], dtype=np.float64)
    net_dummy = np.array([[0.0, 0.0], [1.0, 1.0]], dtype=np.float64)
    uv_dummy = np.array([[0.5], [0.5]], dtype=np.float64)

    ders_dummy = np.empty((2, 2, 1), dtype=np.float64)

    _surface_derivatives_batch_impl(
        1, knots_dummy, 1, knots_dummy, net_dummy, uv_dummy, 1, ders_dummy
    )
    _evaluate_surface_impl(
        1,
        knots_dummy,
        1,
        knots_dummy,
        net_dummy.reshape(1, 2, 2),
        uv_dummy,
        np.empty((1, 1), dtype=np.float64),
    )


# Precompile numba functions on module import (skip during type checking)
if not TYPE_CHECKING:
    _warmup_numba_functions()


__all__ = [
    "_evaluate_surface_impl",
    "_surface_derivative_control_points_impl",
    "_surface_derivatives_batch_impl",
    "_surface_derivatives_impl",
]
