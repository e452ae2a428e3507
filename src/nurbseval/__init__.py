"""Public API surface for nurbseval.

Defines package metadata and exported interfaces.
"""

import logging
from typing import Final

# Private API imports (accessible but not in __all__)
# Users can access private functions via: nurbseval._basis_impl._function_name, etc.
from . import (
    _basis_impl,  # noqa: F401
    _curve_impl,  # noqa: F401
    _rational_impl,  # noqa: F401
    _surface_impl,  # noqa: F401
)

# Public API imports
from .basis import basis_function_derivatives, basis_functions
from .binomial import BinomialTable, ln_gamma
from .curve import (
    compute_curve_derivative_control_points,
    derivative_bspline,
    evaluate_bspline,
    evaluate_bspline_derivatives,
)
from .errors import InconsistentBsplineDataError, NurbsEvalError
from .knots import find_span, get_domain, is_in_domain
from .surface import (
    DerivativeIndex,
    NurbsSurface,
    SurfaceDerivatives,
    evaluate_nurbs_surface,
    evaluate_rational_surface_derivatives,
    evaluate_surface_derivatives,
)
from .tolerance import (
    get_conservative_tolerance,
    get_default_tolerance,
    get_machine_epsilon,
    get_strict_tolerance,
    get_tolerance,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

# Package metadata
__version__: Final[str] = "0.1.0"
__license__: Final[str] = "MIT"
__author__: Final[str] = "Pablo Antolin <pablo.antolin@epfl.ch>"

# Public interface: only functions/classes that don't start with _
__all__ = [
    "BinomialTable",
    "DerivativeIndex",
    "InconsistentBsplineDataError",
    "NurbsEvalError",
    "NurbsSurface",
    "SurfaceDerivatives",
    "__author__",
    "__license__",
    "__version__",
    "basis_function_derivatives",
    "basis_functions",
    "compute_curve_derivative_control_points",
    "derivative_bspline",
    "evaluate_bspline",
    "evaluate_bspline_derivatives",
    "evaluate_nurbs_surface",
    "evaluate_rational_surface_derivatives",
    "evaluate_surface_derivatives",
    "find_span",
    "get_conservative_tolerance",
    "get_default_tolerance",
    "get_domain",
    "get_machine_epsilon",
    "get_strict_tolerance",
    "get_tolerance",
    "is_in_domain",
    "ln_gamma",
]
