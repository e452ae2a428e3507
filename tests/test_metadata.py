"""Tests for the package namespace: exports, metadata and logging setup."""

from __future__ import annotations

import logging
from typing import Final

import pytest

import nurbseval

METADATA: Final[set[str]] = {"__version__", "__license__", "__author__"}

# Public name -> submodule defining it.
PUBLIC_API: Final[dict[str, str]] = {
    "NurbsEvalError": "errors",
    "InconsistentBsplineDataError": "errors",
    "BinomialTable": "binomial",
    "ln_gamma": "binomial",
    "find_span": "knots",
    "get_domain": "knots",
    "is_in_domain": "knots",
    "basis_functions": "basis",
    "basis_function_derivatives": "basis",
    "evaluate_bspline": "curve",
    "derivative_bspline": "curve",
    "compute_curve_derivative_control_points": "curve",
    "evaluate_bspline_derivatives": "curve",
    "NurbsSurface": "surface",
    "DerivativeIndex": "surface",
    "SurfaceDerivatives": "surface",
    "evaluate_nurbs_surface": "surface",
    "evaluate_surface_derivatives": "surface",
    "evaluate_rational_surface_derivatives": "surface",
    "get_tolerance": "tolerance",
    "get_default_tolerance": "tolerance",
    "get_strict_tolerance": "tolerance",
    "get_conservative_tolerance": "tolerance",
    "get_machine_epsilon": "tolerance",
}


def test_all_matches_public_api() -> None:
    """__all__ lists the metadata and the public API, sorted, and nothing private."""
    assert set(nurbseval.__all__) == METADATA | set(PUBLIC_API)
    assert list(nurbseval.__all__) == sorted(nurbseval.__all__)
    assert len(nurbseval.__all__) == len(set(nurbseval.__all__))


@pytest.mark.parametrize(("name", "submodule"), sorted(PUBLIC_API.items()))
def test_export_comes_from_submodule(name: str, submodule: str) -> None:
    """Each public name is re-exported unchanged from its submodule."""
    obj = getattr(nurbseval, name)
    assert obj.__module__ == f"nurbseval.{submodule}"


def test_error_hierarchy() -> None:
    """Inconsistent data errors are both package errors and ValueErrors."""
    assert issubclass(nurbseval.InconsistentBsplineDataError, nurbseval.NurbsEvalError)
    assert issubclass(nurbseval.InconsistentBsplineDataError, ValueError)


def test_package_metadata_values() -> None:
    """Validate the package metadata constants."""
    assert nurbseval.__version__ == "0.1.0"
    assert nurbseval.__license__ == "MIT"
    assert nurbseval.__author__ == "Pablo Antolin <pablo.antolin@epfl.ch>"


def test_package_logger_has_null_handler() -> None:
    """The package logger stays silent unless the application configures logging."""
    handlers = logging.getLogger("nurbseval").handlers
    assert any(isinstance(handler, logging.NullHandler) for handler in handlers)
