"""Log-gamma, log-factorial and binomial coefficient kernels.

Binomial coefficients are obtained as ``exp(ln n! - ln k! - ln (n-k)!)``
rounded to the nearest integer, which stays finite for orders where the
factorials themselves would overflow.
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


# Lanczos series coefficients (Numerical Recipes, gammln).
_LANCZOS_COEFFICIENTS = np.array(
    [
        76.18009172947146,
        -86.50532032291677,
        24.01409824083091,
        -1.231739572450155,
        0.12086650973866179e-2,
        -0.5395239384953e-5,
    ],
    dtype=np.float64,
)


@nb_jit(
    nopython=True,
    cache=True,
    parallel=False,
)
def _ln_gamma_impl(x: float) -> float:
    """Natural logarithm of the gamma function for ``x > 0``.

    Args:
        x (float): Positive argument.

    Returns:
        float: ``ln(Gamma(x))``.

    Note:
        Inputs are assumed to be correct (no validation performed).
    """
    y = x
    tmp = x + 5.5
    tmp -= (x + 0.5) * np.log(tmp)
    series = 1.000000000190015
    for coefficient in _LANCZOS_COEFFICIENTS:
        y += 1.0
        series += coefficient / y
    return -tmp + np.log(2.5066282746310005 * series / x)


@nb_jit(
    nopython=True,
    cache=True,
    parallel=False,
)
def _fill_ln_factorials_impl(out: npt.NDArray[np.float64], start: int) -> None:
    """Fill ``out[n] = ln(n!)`` for ``n >= start``.

    Entries for ``n <= 1`` are zero.

    Args:
        out (npt.NDArray[np.float64]): Log-factorial cache to complete in place.
        start (int): First index to compute; entries below are kept.

    Note:
        Inputs are assumed to be correct (no validation performed).
    """
    for n in range(start, out.size):
        out[n] = 0.0 if n <= 1 else _ln_gamma_impl(n + 1.0)


@nb_jit(
    nopython=True,
    cache=True,
    parallel=False,
)
def _binomial_impl(ln_factorials: npt.NDArray[np.float64], n: int, k: int) -> float:
    """Binomial coefficient ``C(n, k)`` from a log-factorial cache.

    Note:
        Inputs are assumed to be correct (no validation performed): the
        cache must cover ``n`` and ``0 <= k <= n``.
    """
    return np.floor(
        0.5 + np.exp(ln_factorials[n] - ln_factorials[k] - ln_factorials[n - k])
    )


@nb_jit(
    nopython=True,
    cache=True,
    parallel=False,
)
def _fill_binomial_table_impl(
    ln_factorials: npt.NDArray[np.float64], out: npt.NDArray[np.float64]
) -> None:
    """Tabulate ``out[n, k] = C(n, k)`` for ``k <= n``; other entries are zero.

    Args:
        ln_factorials (npt.NDArray[np.float64]): Log-factorial cache covering
            ``out.shape[0] - 1``.
        out (npt.NDArray[np.float64]): Square output table.

    Note:
        Inputs are assumed to be correct (no validation performed).
    """
    out.fill(0.0)
    for n in range(out.shape[0]):
        for k in range(n + 1):
            out[n, k] = _binomial_impl(ln_factorials, n, k)


def _warmup_numba_functions() -> None:
    """Precompile numba functions with float64 signatures for faster first call."""
    ln_factorials = np.zeros(4, dtype=np.float64)
    _fill_ln_factorials_impl(ln_factorials, 0)
    _fill_binomial_table_impl(ln_factorials, np.empty((4, 4), dtype=np.float64))


# Precompile numba functions on module import (skip during type checking)
if not TYPE_CHECKING:
    _warmup_numba_functions()


__all__ = [
    "_binomial_impl",
    "_fill_binomial_table_impl",
    "_fill_ln_factorials_impl",
    "_ln_gamma_impl",
]
