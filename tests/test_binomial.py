"""Tests for binomial coefficients and the log-gamma approximation."""

from __future__ import annotations

import threading

import numpy as np
import pytest
from scipy.special import comb, gammaln

from nurbseval.binomial import BinomialTable, ln_gamma


class TestLnGamma:
    """Test the Lanczos log-gamma approximation."""

    @pytest.mark.parametrize("x", [0.5, 1.0, 1.5, 2.0, 3.7, 10.0, 26.0, 101.0])
    def test_against_scipy(self, x: float) -> None:
        """Test ln_gamma against scipy.special.gammaln."""
        np.testing.assert_allclose(ln_gamma(x), gammaln(x), rtol=1e-9, atol=1e-9)

    def test_factorials(self) -> None:
        """Test that exp(ln_gamma(n + 1)) recovers n!."""
        for n, factorial in enumerate([1, 1, 2, 6, 24, 120, 720, 5040]):
            np.testing.assert_allclose(np.exp(ln_gamma(n + 1.0)), factorial, rtol=1e-9)

    @pytest.mark.parametrize("x", [0.0, -1.0])
    def test_non_positive_raises(self, x: float) -> None:
        """Test that non-positive arguments are rejected."""
        with pytest.raises(ValueError, match="positive"):
            ln_gamma(x)


class TestBinomialTable:
    """Test BinomialTable lookups, tabulation and cache growth."""

    def test_known_values(self, binomials: BinomialTable) -> None:
        """Test a few exact values."""
        table = binomials
        assert table.binom(5, 2) == 10
        assert table.binom(0, 0) == 1
        assert table.binom(1, 0) == 1
        assert table.binom(1, 1) == 1
        assert table.binom(10, 5) == 252

    def test_returns_float(self) -> None:
        """Test that the coefficient is returned as a Python float."""
        assert isinstance(BinomialTable().binom(4, 2), float)

    def test_against_scipy_exact(self, binomials: BinomialTable) -> None:
        """Test every coefficient up to n = 25 against scipy exact integers."""
        table = binomials
        for n in range(26):
            for k in range(n + 1):
                assert table.binom(n, k) == comb(n, k, exact=True)

    def test_ln_factorial(self) -> None:
        """Test ln(n!) against scipy.special.gammaln."""
        table = BinomialTable()
        assert table.ln_factorial(0) == 0.0
        assert table.ln_factorial(1) == 0.0
        for n in range(2, 40):
            np.testing.assert_allclose(table.ln_factorial(n), gammaln(n + 1.0), rtol=1e-9)

    @pytest.mark.parametrize(("n", "k"), [(2, 3), (3, -1), (-1, 0)])
    def test_invalid_indices_raise(self, n: int, k: int) -> None:
        """Test that k outside [0, n] is rejected."""
        with pytest.raises(ValueError, match="0 <= k <= n"):
            BinomialTable().binom(n, k)

    def test_negative_ln_factorial_raises(self) -> None:
        """Test that ln_factorial rejects negative input."""
        with pytest.raises(ValueError, match="non-negative"):
            BinomialTable().ln_factorial(-1)

    def test_table(self) -> None:
        """Test the tabulated coefficients against Pascal's triangle."""
        max_n = 8
        values = BinomialTable().table(max_n)
        assert values.shape == (max_n + 1, max_n + 1)
        expected = np.zeros((max_n + 1, max_n + 1))
        for n in range(max_n + 1):
            expected[n, 0] = 1.0
            for k in range(1, n + 1):
                expected[n, k] = expected[n - 1, k - 1] + expected[n - 1, k]
        np.testing.assert_array_equal(values, expected)

    def test_table_zero_order(self) -> None:
        """Test the smallest table."""
        np.testing.assert_array_equal(BinomialTable().table(0), [[1.0]])

    def test_negative_table_order_raises(self) -> None:
        """Test that negative orders are rejected by table and warm."""
        table = BinomialTable()
        with pytest.raises(ValueError, match="non-negative"):
            table.table(-1)
        with pytest.raises(ValueError, match="non-negative"):
            table.warm(-1)


class TestBinomialCache:
    """Test the growth of the log-factorial cache."""

    def test_initial_size(self, binomials: BinomialTable) -> None:
        """A fresh table covers n <= 1 only."""
        assert binomials.max_n == 1

    def test_warm_on_construction(self) -> None:
        """Test that max_n precomputes the cache."""
        assert BinomialTable(max_n=30).max_n >= 30

    def test_grows_monotonically(self, binomials: BinomialTable) -> None:
        """Test that the cache only grows and keeps earlier values."""
        table = binomials
        first = table.ln_factorial(5)
        size = table.max_n
        table.binom(40, 3)
        assert table.max_n >= max(size, 40)
        assert table.ln_factorial(5) == first
        table.binom(3, 1)
        assert table.max_n >= 40

    def test_grows_by_doubling(self) -> None:
        """Small requests past the end at least double the cache."""
        table = BinomialTable(max_n=9)
        size = table.max_n + 1
        table.binom(size, 1)
        assert table.max_n + 1 >= 2 * size

    def test_concurrent_lookups(self) -> None:
        """Concurrent lookups that grow the cache agree with a serial table."""
        reference = BinomialTable(max_n=64)
        shared = BinomialTable()
        errors: list[tuple[int, int]] = []

        def worker(offset: int) -> None:
            for n in range(offset, 65, 4):
                for k in range(n + 1):
                    if shared.binom(n, k) != reference.binom(n, k):
                        errors.append((n, k))

        threads = [threading.Thread(target=worker, args=(offset,)) for offset in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert shared.max_n >= 64
