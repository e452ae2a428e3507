"""Tests for tolerance levels and their use in parametric domain checks."""

from __future__ import annotations

import numpy as np
import numpy.typing as npt
import pytest

from nurbseval.knots import find_span, is_in_domain
from nurbseval.tolerance import (
    ToleranceLevel,
    get_conservative_tolerance,
    get_default_tolerance,
    get_machine_epsilon,
    get_strict_tolerance,
    get_tolerance,
    resolve_tolerance,
)

HAS_LONGDOUBLE = np.dtype(np.longdouble) != np.dtype(np.float64)

FLOAT_DTYPES = [np.float16, np.float32, np.float64, np.longdouble]


class TestGetTolerance:
    """Test the per-dtype tolerance table."""

    @pytest.mark.parametrize(
        ("dtype", "level", "expected"),
        [
            (np.float16, "strict", 1e-4),
            (np.float16, "default", 1e-3),
            (np.float16, "conservative", 1e-2),
            (np.float32, "strict", 1e-7),
            ("float32", "default", 1e-6),
            (np.float32, "conservative", 1e-5),
            ("float64", "strict", 1e-15),
            (np.float64, "default", 1e-12),
            (np.dtype(np.float64), "conservative", 1e-10),
        ],
    )
    def test_table(self, dtype: npt.DTypeLike, level: ToleranceLevel, expected: float) -> None:
        """Test the tabulated values."""
        assert get_tolerance(dtype, level) == expected

    def test_level_defaults_to_default(self) -> None:
        """Omitting the level selects the default tolerance."""
        assert get_tolerance(np.float32) == get_tolerance(np.float32, "default")

    @pytest.mark.skipif(not HAS_LONGDOUBLE, reason="longdouble is float64 on this platform")
    def test_longdouble(self) -> None:
        """Extended precision has its own, tighter tolerances."""
        assert get_tolerance(np.longdouble, "strict") == 1e-18
        assert get_tolerance(np.dtype(np.longdouble)) == 1e-15
        assert get_tolerance(np.longdouble, "conservative") == 1e-12

    @pytest.mark.skipif(HAS_LONGDOUBLE, reason="longdouble is extended precision")
    def test_longdouble_as_float64(self) -> None:
        """Where longdouble is double precision it shares the float64 tolerances."""
        assert get_tolerance(np.longdouble) == get_tolerance(np.float64)

    @pytest.mark.parametrize("dtype", FLOAT_DTYPES)
    def test_shorthands(self, dtype: npt.DTypeLike) -> None:
        """The named getters agree with get_tolerance."""
        assert get_default_tolerance(dtype) == get_tolerance(dtype, "default")
        assert get_strict_tolerance(dtype) == get_tolerance(dtype, "strict")
        assert get_conservative_tolerance(dtype) == get_tolerance(dtype, "conservative")

    @pytest.mark.parametrize("dtype", FLOAT_DTYPES)
    def test_levels_are_ordered(self, dtype: npt.DTypeLike) -> None:
        """Strict <= default <= conservative for every dtype."""
        assert get_strict_tolerance(dtype) <= get_default_tolerance(dtype)
        assert get_default_tolerance(dtype) <= get_conservative_tolerance(dtype)

    @pytest.mark.parametrize("dtype", [np.int32, "int64", np.complex64, np.uint8, np.bool_])
    def test_unsupported_dtype_raises(self, dtype: npt.DTypeLike) -> None:
        """Test that non floating-point dtypes are rejected."""
        with pytest.raises(ValueError, match="Unsupported dtype"):
            get_tolerance(dtype)
        with pytest.raises(ValueError, match="Unsupported dtype"):
            get_machine_epsilon(dtype)

    def test_unknown_level_raises(self) -> None:
        """Test that only the three named levels are accepted."""
        with pytest.raises(ValueError, match="Unknown tolerance level"):
            get_tolerance(np.float64, "loose")  # type: ignore[arg-type]

    @pytest.mark.parametrize("dtype", FLOAT_DTYPES)
    def test_machine_epsilon(self, dtype: npt.DTypeLike) -> None:
        """Test get_machine_epsilon against np.finfo."""
        assert get_machine_epsilon(dtype) == np.finfo(dtype).eps


class TestResolveTolerance:
    """Test the selection of the tolerance used by evaluation functions."""

    def test_none_selects_default(self) -> None:
        """Test that None maps to the default tolerance of the dtype."""
        assert resolve_tolerance(None, np.float32) == get_default_tolerance(np.float32)
        assert resolve_tolerance(None, np.float64) == get_default_tolerance(np.float64)

    def test_explicit_value(self) -> None:
        """Test that explicit values are kept, including zero."""
        assert resolve_tolerance(0.25, np.float64) == 0.25
        assert resolve_tolerance(0.0, np.float32) == 0.0

    @pytest.mark.parametrize("tol", [-1e-12, float("nan")])
    def test_invalid_value_raises(self, tol: float) -> None:
        """Test that negative and NaN tolerances are rejected."""
        with pytest.raises(ValueError, match="tol must be non-negative"):
            resolve_tolerance(tol, np.float64)


class TestToleranceInDomainChecks:
    """The default tolerance drives the parametric domain check."""

    knots = np.array([0.0, 0.0, 0.0, 0.5, 1.0, 1.0, 1.0])

    def test_within_default_tolerance_is_snapped(self) -> None:
        """Values off the domain by less than the default tolerance are accepted."""
        eps = 0.1 * get_default_tolerance(np.float64)
        assert find_span(3, 2, -eps, self.knots) == 2
        assert find_span(3, 2, 1.0 + eps, self.knots) == 3

    def test_beyond_default_tolerance_raises(self) -> None:
        """Values off the domain by more than the default tolerance are rejected."""
        eps = 10.0 * get_default_tolerance(np.float64)
        with pytest.raises(ValueError, match="outside the knot vector domain"):
            find_span(3, 2, 1.0 + eps, self.knots)

    def test_custom_tolerance(self) -> None:
        """An explicit tolerance widens the accepted range."""
        assert find_span(3, 2, 1.05, self.knots, tol=0.1) == 3
        with pytest.raises(ValueError, match="outside the knot vector domain"):
            find_span(3, 2, 1.05, self.knots, tol=0.01)

    def test_float32_uses_its_own_default(self) -> None:
        """A float32 knot vector accepts the wider float32 tolerance."""
        eps = 0.5 * get_default_tolerance(np.float32)
        knots = self.knots.astype(np.float32)
        assert find_span(3, 2, np.float32(1.0 + eps), knots) == 3
        with pytest.raises(ValueError, match="outside the knot vector domain"):
            find_span(3, 2, 1.0 + eps, self.knots)

    def test_negative_tolerance_raises(self) -> None:
        """Test that span search and domain checks reject negative tolerances."""
        with pytest.raises(ValueError, match="tol must be non-negative"):
            find_span(3, 2, 0.5, self.knots, tol=-1.0)
        with pytest.raises(ValueError, match="tol must be non-negative"):
            is_in_domain(self.knots, 2, 0.5, tol=-1.0)
