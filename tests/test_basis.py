"""Tests for B-spline basis functions and their derivatives."""

from __future__ import annotations

import numpy as np
import pytest

from nurbseval._basis_impl import _all_basis_functions_impl, _basis_functions_impl
from nurbseval.basis import basis_function_derivatives, basis_functions
from nurbseval.knots import find_span

KNOTS = np.array([0.0, 0.0, 0.0, 0.5, 1.0, 1.0, 1.0])
DEGREE = 2
N = 3

CUBIC_KNOTS = np.array([0.0, 0.0, 0.0, 0.0, 0.3, 0.5, 0.5, 0.8, 1.0, 1.0, 1.0, 1.0])
CUBIC_DEGREE = 3
CUBIC_N = CUBIC_KNOTS.size - CUBIC_DEGREE - 2


class TestBasisFunctions:
    """Test basis_functions."""

    def test_reference_table(self) -> None:
        """Test quadratic basis values on a uniform sampling."""
        u = np.linspace(0.0, 1.0, 10)
        spans = find_span(N, DEGREE, u, KNOTS)
        expected = np.array(
            [
                [1.00000, 0.00000, 0.00000],
                [0.60494, 0.37037, 0.02469],
                [0.30864, 0.59259, 0.09877],
                [0.11111, 0.66667, 0.22222],
                [0.01235, 0.59259, 0.39506],
                [0.39506, 0.59259, 0.01235],
                [0.22222, 0.66667, 0.11111],
                [0.09877, 0.59259, 0.30864],
                [0.02469, 0.37037, 0.60494],
                [0.00000, 0.00000, 1.00000],
            ]
        )
        values = basis_functions(spans, u, DEGREE, KNOTS)
        assert values.shape == (10, DEGREE + 1)
        np.testing.assert_allclose(values, expected, atol=1e-5)

    def test_scalar(self) -> None:
        """Test a scalar value at the domain ends."""
        np.testing.assert_allclose(basis_functions(2, 0.0, DEGREE, KNOTS), [1.0, 0.0, 0.0])
        np.testing.assert_allclose(basis_functions(3, 1.0, DEGREE, KNOTS), [0.0, 0.0, 1.0])

    def test_partition_of_unity(self, rng: np.random.Generator) -> None:
        """Basis values are nonnegative and sum to one."""
        u = rng.uniform(0.0, 1.0, 50)
        spans = find_span(CUBIC_N, CUBIC_DEGREE, u, CUBIC_KNOTS)
        values = basis_functions(spans, u, CUBIC_DEGREE, CUBIC_KNOTS)
        assert np.all(values >= 0.0)
        np.testing.assert_allclose(values.sum(axis=-1), 1.0, atol=1e-14)

    def test_single_span_is_broadcast(self) -> None:
        """A single span applies to every value."""
        u = np.array([0.1, 0.2, 0.3])
        np.testing.assert_array_equal(
            basis_functions(2, u, DEGREE, KNOTS), basis_functions([2, 2, 2], u, DEGREE, KNOTS)
        )

    def test_degree_zero(self) -> None:
        """Piecewise constant basis is one on its span."""
        values = basis_functions([0, 1], [0.5, 1.5], 0, [0.0, 1.0, 2.0])
        np.testing.assert_array_equal(values, [[1.0], [1.0]])

    def test_float32(self) -> None:
        """Test that float32 input gives float32 output."""
        u = np.array([0.25, 0.75], dtype=np.float32)
        values = basis_functions([2, 3], u, DEGREE, KNOTS.astype(np.float32))
        assert values.dtype == np.float32
        np.testing.assert_allclose(values.sum(axis=-1), 1.0, rtol=1e-6)

    def test_out_array(self) -> None:
        """Test the out argument."""
        u = np.array([0.25, 0.75])
        out = np.empty((2, DEGREE + 1))
        result = basis_functions([2, 3], u, DEGREE, KNOTS, out=out)
        assert result is out
        np.testing.assert_allclose(out.sum(axis=-1), 1.0)

    def test_wrong_out_shape_raises(self) -> None:
        """Test that out must have the expected shape."""
        with pytest.raises(ValueError, match="shape"):
            basis_functions([2, 3], [0.25, 0.75], DEGREE, KNOTS, out=np.empty((2, 2)))

    def test_mismatched_sizes_raise(self) -> None:
        """Test that span and u must have the same number of entries."""
        with pytest.raises(ValueError, match="same number of entries"):
            basis_functions([2, 2], [0.1, 0.2, 0.3], DEGREE, KNOTS)

    @pytest.mark.parametrize("span", [1, 4])
    def test_invalid_span_raises(self, span: int) -> None:
        """Test that spans must support degree + 1 basis functions."""
        with pytest.raises(ValueError, match="span indices"):
            basis_functions(span, 0.5, DEGREE, KNOTS)

    def test_all_basis_functions_kernel(self) -> None:
        """Row d of the triangular table holds the degree-d basis functions."""
        u = 0.4
        span = find_span(CUBIC_N, CUBIC_DEGREE, u, CUBIC_KNOTS)
        table = np.empty((CUBIC_DEGREE + 1, CUBIC_DEGREE + 1))
        _all_basis_functions_impl(span, u, CUBIC_DEGREE, CUBIC_KNOTS, table)

        for d in range(CUBIC_DEGREE + 1):
            expected = np.empty(d + 1)
            _basis_functions_impl(span, u, d, CUBIC_KNOTS, expected)
            np.testing.assert_allclose(table[d, : d + 1], expected, atol=1e-15)
            np.testing.assert_array_equal(table[d, d + 1 :], 0.0)


class TestBasisFunctionDerivatives:
    """Test basis_function_derivatives."""

    def test_zeroth_order_matches_values(self) -> None:
        """Row 0 holds the basis values."""
        u = np.linspace(0.0, 1.0, 7)
        spans = find_span(CUBIC_N, CUBIC_DEGREE, u, CUBIC_KNOTS)
        ders = basis_function_derivatives(spans, u, CUBIC_DEGREE, CUBIC_KNOTS, 2)
        assert ders.shape == (7, 3, CUBIC_DEGREE + 1)
        np.testing.assert_allclose(
            ders[:, 0, :], basis_functions(spans, u, CUBIC_DEGREE, CUBIC_KNOTS), atol=1e-15
        )

    def test_derivatives_sum_to_zero(self, rng: np.random.Generator) -> None:
        """Derivatives of a partition of unity sum to zero."""
        u = rng.uniform(0.0, 1.0, 20)
        spans = find_span(CUBIC_N, CUBIC_DEGREE, u, CUBIC_KNOTS)
        ders = basis_function_derivatives(spans, u, CUBIC_DEGREE, CUBIC_KNOTS, CUBIC_DEGREE)
        np.testing.assert_allclose(ders[:, 1:, :].sum(axis=-1), 0.0, atol=1e-8)

    def test_first_derivative_finite_differences(self) -> None:
        """First derivatives match central finite differences inside a span."""
        u = np.array([0.1, 0.4, 0.6, 0.9])
        h = 1e-6
        spans = find_span(CUBIC_N, CUBIC_DEGREE, u, CUBIC_KNOTS)
        ders = basis_function_derivatives(spans, u, CUBIC_DEGREE, CUBIC_KNOTS, 1)
        plus = basis_functions(spans, u + h, CUBIC_DEGREE, CUBIC_KNOTS)
        minus = basis_functions(spans, u - h, CUBIC_DEGREE, CUBIC_KNOTS)
        np.testing.assert_allclose(ders[:, 1, :], (plus - minus) / (2.0 * h), atol=1e-5)

    def test_second_derivative_finite_differences(self) -> None:
        """Second derivatives match finite differences of first derivatives."""
        u = np.array([0.1, 0.4, 0.6, 0.9])
        h = 1e-6
        spans = find_span(CUBIC_N, CUBIC_DEGREE, u, CUBIC_KNOTS)
        ders = basis_function_derivatives(spans, u, CUBIC_DEGREE, CUBIC_KNOTS, 2)
        plus = basis_function_derivatives(spans, u + h, CUBIC_DEGREE, CUBIC_KNOTS, 1)
        minus = basis_function_derivatives(spans, u - h, CUBIC_DEGREE, CUBIC_KNOTS, 1)
        np.testing.assert_allclose(
            ders[:, 2, :], (plus[:, 1, :] - minus[:, 1, :]) / (2.0 * h), atol=1e-3
        )

    def test_quadratic_known_derivatives(self) -> None:
        """On the first span the quadratic basis and its derivatives are known in closed form."""
        u = 0.25
        ders = basis_function_derivatives(2, u, DEGREE, KNOTS, 2)
        # N0 = (1 - 2u)^2, N1 = 2u(2 - 3u), N2 = 2u^2
        expected = np.array(
            [
                [(1.0 - 2.0 * u) ** 2, 2.0 * u * (2.0 - 3.0 * u), 2.0 * u**2],
                [-4.0 * (1.0 - 2.0 * u), 4.0 - 12.0 * u, 4.0 * u],
                [8.0, -12.0, 4.0],
            ]
        )
        np.testing.assert_allclose(ders, expected, atol=1e-12)

    def test_orders_above_degree_are_zero(self) -> None:
        """Derivative orders above the degree vanish."""
        ders = basis_function_derivatives(3, 0.7, DEGREE, KNOTS, 4)
        assert ders.shape == (5, DEGREE + 1)
        np.testing.assert_array_equal(ders[DEGREE + 1 :], 0.0)

    def test_negative_order_raises(self) -> None:
        """Test that negative derivative orders are rejected."""
        with pytest.raises(ValueError, match="n_ders must be non-negative"):
            basis_function_derivatives(2, 0.25, DEGREE, KNOTS, -1)
