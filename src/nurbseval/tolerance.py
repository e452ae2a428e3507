"""Tolerances for comparing parametric values against knot vector domains.

Every floating-point dtype has three tolerance levels. ``"default"`` is
the one used when an evaluation function receives ``tol=None``.
``"strict"`` is intended for checks that must not hide rounding errors.
``"conservative"`` suits comparisons against approximations such as finite
differences.
"""

from typing import Any, Final, Literal, cast

import numpy as np
from numpy import typing as npt

ToleranceLevel = Literal["strict", "default", "conservative"]

_LEVELS: Final[tuple[ToleranceLevel, ...]] = ("strict", "default", "conservative")

# (strict, default, conservative), indexed like _LEVELS.
_TOLERANCES: Final[dict[np.dtype[Any], tuple[float, float, float]]] = {
    np.dtype(np.float16): (1e-4, 1e-3, 1e-2),
    np.dtype(np.float32): (1e-7, 1e-6, 1e-5),
    np.dtype(np.float64): (1e-15, 1e-12, 1e-10),
}
# Extended precision; platforms where longdouble is float64 hit the float64 entry.
_LONGDOUBLE_TOLERANCES: Final[tuple[float, float, float]] = (1e-18, 1e-15, 1e-12)


def _float_dtype(dtype: npt.DTypeLike) -> np.dtype[np.floating[Any]]:
    dtype_obj = np.dtype(dtype)
    if dtype_obj.kind != "f":
        raise ValueError(f"Unsupported dtype: {dtype_obj.name}")
    return cast(np.dtype[np.floating[Any]], dtype_obj)


def get_tolerance(dtype: npt.DTypeLike, level: ToleranceLevel = "default") -> float:
    """Get the tolerance of a given level for a floating-point dtype.

    Args:
        dtype (npt.DTypeLike): NumPy floating-point data type.
        level (ToleranceLevel): One of ``"strict"``, ``"default"`` or
            ``"conservative"``. Defaults to ``"default"``.

    Returns:
        float: Tolerance value.

    Raises:
        ValueError: If dtype is not a floating-point type or the level is
            unknown.

    Example:
        >>> get_tolerance(np.float32)
        1e-06
        >>> get_tolerance("float64", "strict")
        1e-15
    """
    if level not in _LEVELS:
        raise ValueError(f"Unknown tolerance level '{level}', expected one of {_LEVELS}")
    values = _TOLERANCES.get(_float_dtype(dtype), _LONGDOUBLE_TOLERANCES)
    return values[_LEVELS.index(level)]


def resolve_tolerance(tol: float | None, dtype: npt.DTypeLike) -> float:
    """Return the domain tolerance to use for values of the given dtype.

    Args:
        tol (float | None): Tolerance given by the caller. ``None`` selects
            the default tolerance of `dtype`.
        dtype (npt.DTypeLike): Working floating-point dtype.

    Returns:
        float: Non-negative tolerance.

    Raises:
        ValueError: If `tol` is negative or NaN, or if dtype is not a
            floating-point type.
    """
    if tol is None:
        return get_tolerance(dtype)
    if not tol >= 0.0:
        raise ValueError("tol must be non-negative")
    return float(tol)


def get_default_tolerance(dtype: npt.DTypeLike) -> float:
    """Get the tolerance used for parametric domain checks.

    Evaluation functions accept parameters that lie outside the knot vector
    domain by at most this amount, and snap them onto the domain boundary.

    Args:
        dtype (npt.DTypeLike): NumPy floating-point data type.

    Returns:
        float: Default tolerance for the given dtype.

    Raises:
        ValueError: If dtype is not a supported floating-point type.
    """
    return get_tolerance(dtype, "default")


def get_strict_tolerance(dtype: npt.DTypeLike) -> float:
    """Shorthand for ``get_tolerance(dtype, "strict")``."""
    return get_tolerance(dtype, "strict")


def get_conservative_tolerance(dtype: npt.DTypeLike) -> float:
    """Shorthand for ``get_tolerance(dtype, "conservative")``."""
    return get_tolerance(dtype, "conservative")


def get_machine_epsilon(dtype: npt.DTypeLike) -> float:
    """Get machine epsilon for a given floating-point dtype.

    Args:
        dtype (npt.DTypeLike): NumPy floating-point data type.

    Returns:
        float: Machine epsilon for the given dtype.

    Raises:
        ValueError: If dtype is not a supported floating-point type.
    """
    return float(np.finfo(_float_dtype(dtype)).eps)
