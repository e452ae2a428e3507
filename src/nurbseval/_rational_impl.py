"""Rational (NURBS) surface derivative kernels.

A NURBS surface is evaluated through its homogeneous representation: the
weighted coordinates ``x*w, y*w, z*w`` and the weight ``w`` are ordinary
B-spline fields. The derivatives of the rational coordinates are recovered
from theirs with the Leibniz rule (Algorithm A4.4 of "The NURBS Book").
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, TypeVar

import numba as nb
import numpy as np
import numpy.typing as npt

from ._surface_impl import _surface_derivatives_impl

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
    error_model="numpy",
)
def _unweight_derivatives_impl(
    aders: npt.NDArray[np.float32 | np.float64],
    wders: npt.NDArray[np.float32 | np.float64],
    binomials: npt.NDArray[np.float64],
    n_ders: int,
    out: npt.NDArray[np.float32 | np.float64],
) -> None:
    """Convert derivatives of a weighted coordinate into rational derivatives.

    With ``A = S * w``, the Leibniz rule gives

    ``S_kl = (A_kl - sum_{j>=1} C(l,j) w_0j S_k,l-j
    - sum_{i>=1} C(k,i) w_i0 S_k-i,l
    - sum_{i>=1} C(k,i) sum_{j>=1} C(l,j) w_ij S_k-i,l-j) / w_00``.

    Orders are processed with ``k`` outer and ``l`` inner so that every
    ``S`` on the right-hand side is already final.

    Args:
        aders (npt.NDArray[np.float32 | np.float64]): Derivatives of the
            weighted coordinate, shape ``(n_ders + 1, n_ders + 1)``.
        wders (npt.NDArray[np.float32 | np.float64]): Derivatives of the
            weight, shape ``(n_ders + 1, n_ders + 1)``.
        binomials (npt.NDArray[np.float64]): Binomial table covering `n_ders`.
        n_ders (int): Highest total derivative order.
        out (npt.NDArray[np.float32 | np.float64]): Output array of shape
            ``(n_ders + 1, n_ders + 1)``; entries with ``k + l > n_ders``
            are set to zero.

    Note:
        Inputs are assumed to be correct (no validation performed). A zero
        weight produces ``inf`` or ``nan``.
    """
    out.fill(0.0)
    for k in range(n_ders + 1):
        for l in range(n_ders - k + 1):  # noqa: E741
            value = aders[k, l]
            for j in range(1, l + 1):
                value -= binomials[l, j] * wders[0, j] * out[k, l - j]
            for i in range(1, k + 1):
                value -= binomials[k, i] * wders[i, 0] * out[k - i, l]
                cross = 0.0
                for j in range(1, l + 1):
                    cross += binomials[l, j] * wders[i, j] * out[k - i, l - j]
                value -= binomials[k, i] * cross
            out[k, l] = value / wders[0, 0]


@nb_jit(
    nopython=True,
    cache=True,
    parallel=False,
    error_model="numpy",
)
def _rational_surface_derivatives_impl(  # noqa: PLR0913
    degree_u: int,
    knots_u: npt.NDArray[np.float32 | np.float64],
    degree_v: int,
    knots_v: npt.NDArray[np.float32 | np.float64],
    coefs: npt.NDArray[np.float32 | np.float64],
    uv: npt.NDArray[np.float32 | np.float64],
    n_ders: int,
    binomials: npt.NDArray[np.float64],
    out: npt.NDArray[np.float32 | np.float64],
) -> None:
    """Evaluate the partial derivatives of a NURBS surface at samples.

    ``out[i, k, l, s]`` receives the ``(k, l)`` mixed partial derivative of
    the i-th Cartesian coordinate at sample ``s``, for ``k + l <= n_ders``.

    Args:
        degree_u (int): Degree along u.
        knots_u (npt.NDArray[np.float32 | np.float64]): Knot vector along u.
        degree_v (int): Degree along v.
        knots_v (npt.NDArray[np.float32 | np.float64]): Knot vector along v.
        coefs (npt.NDArray[np.float32 | np.float64]): Homogeneous control net of
            shape ``(4, nu, nv)``: ``x*w, y*w, z*w, w``.
        uv (npt.NDArray[np.float32 | np.float64]): Samples of shape ``(2, n_samples)``.
        n_ders (int): Highest total derivative order.
        binomials (npt.NDArray[np.float64]): Binomial table covering `n_ders`.
        out (npt.NDArray[np.float32 | np.float64]): Output array of shape
            ``(3, n_ders + 1, n_ders + 1, n_samples)``.

    Note:
        Inputs are assumed to be correct (no validation performed).
    """
    aders = np.empty((n_ders + 1, n_ders + 1), dtype=out.dtype)
    wders = np.empty((n_ders + 1, n_ders + 1), dtype=out.dtype)
    skl = np.empty((n_ders + 1, n_ders + 1), dtype=out.dtype)

    for sample in range(uv.shape[1]):
        u = uv[0, sample]
        v = uv[1, sample]
        _surface_derivatives_impl(
            degree_u, knots_u, degree_v, knots_v, coefs[3], u, v, n_ders, wders
        )
        for dim in range(3):
            _surface_derivatives_impl(
                degree_u, knots_u, degree_v, knots_v, coefs[dim], u, v, n_ders, aders
            )
            _unweight_derivatives_impl(aders, wders, binomials, n_ders, skl)
            for k in range(n_ders + 1):
                for l in range(n_ders + 1):  # noqa: E741
                    out[dim, k, l, sample] = skl[k, l]


def _warmup_numba_functions() -> None:
    """Precompile numba functions with float64 signatures for faster first call."""
    knots_dummy = np.array([0.0, 0.0, 1.0, 1.0], dtype=np.float64)
    coefs_dummy = np.ones((4, 2, 2), dtype=np.float64)
    uv_dummy = np.array([[0.5], [0.5]], dtype=np.float64)
    binomials_dummy = np.array([[1.0, 0.0], [1.0, 1.0]], dtype=np.float64)

    _rational_surface_derivatives_impl(
        1,
        knots_dummy,
        1,
        knots_dummy,
        coefs_dummy,
        uv_dummy,
        1,
        binomials_dummy,
        np.empty((3, 2, 2, 1), dtype=np.float64),
    )


# Precompile numba functions on module import (skip during type checking)
if not TYPE_CHECKING:
    _warmup_numba_functions()


__all__ = [
    "_rational_surface_derivatives_impl",
    "_unweight_derivatives_impl",
]
