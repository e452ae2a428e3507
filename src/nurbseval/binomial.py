"""Binomial coefficients backed by a growable log-factorial cache."""

from __future__ import annotations

import logging
import threading

import numpy as np
import numpy.typing as npt

from ._binomial_impl import (
    _binomial_impl,
    _fill_binomial_table_impl,
    _fill_ln_factorials_impl,
    _ln_gamma_impl,
)

_logger = logging.getLogger(__name__)


def ln_gamma(x: float) -> float:
    """Natural logarithm of the gamma function.

    Uses the six-term Lanczos approximation from Numerical Recipes, accurate
    to about ``2e-10`` for positive arguments.

    Args:
        x (float): Positive argument.

    Returns:
        float: ``ln(Gamma(x))``.

    Raises:
        ValueError: If `x` is not positive.
    """
    if x <= 0:
        raise ValueError("x must be positive")
    return float(_ln_gamma_impl(float(x)))


class BinomialTable:
    """Binomial coefficients ``C(n, k)`` computed through log-factorials.

    The table owns a cache of ``ln(n!)`` that grows on demand and is never
    evicted, so repeated lookups cost O(1). Growth happens under a lock and
    replaces the cache array atomically: concurrent readers see either the
    old or the new array, both valid for the indices they cover. Evaluating
    many samples from several threads is therefore safe, and calling
    :meth:`warm` up front avoids any growth during evaluation.

    Args:
        max_n (int | None): If given, the cache is precomputed up to this
            order. Defaults to None.

    Example:
        >>> table = BinomialTable()
        >>> table.binom(5, 2)
        10.0
    """

    def __init__(self, max_n: int | None = None) -> None:
        self._lock = threading.Lock()
        self._ln_factorials: npt.NDArray[np.float64] = np.zeros(2, dtype=np.float64)
        if max_n is not None:
            self.warm(max_n)

    @property
    def max_n(self) -> int:
        """Largest ``n`` currently held in the cache."""
        return int(self._ln_factorials.size - 1)

    def _ensure(self, n: int) -> npt.NDArray[np.float64]:
        cache = self._ln_factorials
        if n < cache.size:
            return cache

        with self._lock:
            cache = self._ln_factorials
            if n < cache.size:
                return cache
            new_size = max(n + 1, 2 * cache.size)
            grown = np.empty(new_size, dtype=np.float64)
            grown[: cache.size] = cache
            _fill_ln_factorials_impl(grown, cache.size)
            _logger.debug("log-factorial cache grown from %d to %d entries", cache.size, new_size)
            self._ln_factorials = grown
            return grown

    def warm(self, max_n: int) -> None:
        """Precompute the cache up to ``max_n``.

        Args:
            max_n (int): Largest order that will be requested.

        Raises:
            ValueError: If `max_n` is negative.
        """
        if max_n < 0:
            raise ValueError("max_n must be non-negative")
        self._ensure(int(max_n))

    def ln_factorial(self, n: int) -> float:
        """Natural logarithm of ``n!``; zero for ``n <= 1``.

        Args:
            n (int): Non-negative integer.

        Returns:
            float: ``ln(n!)``.

        Raises:
            ValueError: If `n` is negative.
        """
        if n < 0:
            raise ValueError("n must be non-negative")
        if n <= 1:
            return 0.0
        return float(self._ensure(int(n))[n])

    def binom(self, n: int, k: int) -> float:
        """Binomial coefficient ``C(n, k)``.

        The result is rounded to the nearest integer, which cancels the
        error of the log-gamma evaluation.

        Args:
            n (int): Upper index.
            k (int): Lower index, ``0 <= k <= n``.

        Returns:
            float: Integer-valued binomial coefficient.

        Raises:
            ValueError: If ``0 <= k <= n`` does not hold.
        """
        if not 0 <= k <= n:
            raise ValueError(f"binomial coefficient requires 0 <= k <= n, got n={n}, k={k}")
        return float(_binomial_impl(self._ensure(int(n)), int(n), int(k)))

    def table(self, max_n: int) -> npt.NDArray[np.float64]:
        """Tabulate ``C(n, k)`` for all ``0 <= k <= n <= max_n``.

        Args:
            max_n (int): Largest upper index.

        Returns:
            npt.NDArray[np.float64]: Array of shape ``(max_n + 1, max_n + 1)``
                whose entry ``[n, k]`` is ``C(n, k)`` (zero for ``k > n``).

        Raises:
            ValueError: If `max_n` is negative.
        """
        if max_n < 0:
            raise ValueError("max_n must be non-negative")
        out = np.empty((max_n + 1, max_n + 1), dtype=np.float64)
        _fill_binomial_table_impl(self._ensure(int(max_n)), out)
        return out
