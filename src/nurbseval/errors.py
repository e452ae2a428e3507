"""Exceptions raised by nurbseval."""


class NurbsEvalError(Exception):
    """Base exception for all nurbseval errors."""

    pass


class InconsistentBsplineDataError(NurbsEvalError, ValueError):
    """Control point count, degree and knot count do not describe a B-spline.

    A B-spline of degree ``p`` with ``nc`` control points requires exactly
    ``nc + p + 1`` knots.
    """

    pass
