"""Tensor-product B-spline and NURBS surfaces: evaluation and derivatives.

Parametric samples are passed as an array ``uv`` of shape ``(2, n_samples)``
(a single ``(u, v)`` pair is also accepted). Rational surfaces are described
by :class:`NurbsSurface`, whose control net is stored in homogeneous form.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, NamedTuple

import numpy as np
import numpy.typing as npt

from ._knots_impl import _check_spline_info
from ._rational_impl import _rational_surface_derivatives_impl
from ._surface_impl import _evaluate_surface_impl, _surface_derivatives_batch_impl
from ._utils import (
    _allocate_out,
    _check_consistency,
    _check_degree,
    _check_num_derivatives,
    _normalize_knots,
    _resolve_float_dtype,
)
from .binomial import BinomialTable
from .curve import derivative_bspline
from .knots import _snap_to_domain

_logger = logging.getLogger(__name__)

_NUM_HOMOGENEOUS_COORDS = 4
_NUM_SPATIAL_COORDS = 3


def _prepare_tensor_knots(
    degrees: Sequence[int],
    knots: Sequence[npt.ArrayLike],
    num_control_points: tuple[int, int],
    dtype: np.dtype[np.floating[Any]],
) -> tuple[int, int, npt.NDArray[np.float32 | np.float64], npt.NDArray[np.float32 | np.float64]]:
    """Validate degrees and knot vectors of both parametric directions.

    Raises:
        InconsistentBsplineDataError: If a direction has
            ``nc + degree != len(knots) - 1``.
        ValueError: If `degrees` or `knots` do not have two entries, or if
            a degree or knot vector fails basic validation.
    """
    if len(degrees) != 2 or len(knots) != 2:  # noqa: PLR2004
        raise ValueError("degrees and knots must have one entry per parametric direction")

    degree_u = _check_degree(degrees[0])
    degree_v = _check_degree(degrees[1])
    knots_u = _normalize_knots(knots[0], dtype)
    knots_v = _normalize_knots(knots[1], dtype)
    _check_consistency(num_control_points[0], degree_u, knots_u.size)
    _check_consistency(num_control_points[1], degree_v, knots_v.size)
    _check_spline_info(knots_u, degree_u)
    _check_spline_info(knots_v, degree_v)
    return degree_u, degree_v, knots_u, knots_v


def _prepare_samples(
    uv: npt.ArrayLike,
    degrees: tuple[int, int],
    knots: tuple[npt.NDArray[np.float32 | np.float64], npt.NDArray[np.float32 | np.float64]],
    num_control_points: tuple[int, int],
    tol: float | None,
) -> npt.NDArray[np.float32 | np.float64]:
    """Normalize samples to a ``(2, n_samples)`` array snapped onto the domain.

    Raises:
        ValueError: If `uv` does not have a leading dimension of size 2, or
            if a sample is outside the domain.
    """
    uv_arr = np.asarray(uv, dtype=knots[0].dtype)
    if uv_arr.ndim == 1:
        uv_arr = uv_arr.reshape(2, -1) if uv_arr.size == 2 else uv_arr  # noqa: PLR2004
    if uv_arr.ndim != 2 or uv_arr.shape[0] != 2:  # noqa: PLR2004
        raise ValueError(f"uv must have shape (2, n_samples), got {np.shape(uv)}")

    snapped = np.empty(uv_arr.shape, dtype=uv_arr.dtype)
    for direction in range(2):
        snapped[direction] = _snap_to_domain(
            knots[direction],
            degrees[direction],
            num_control_points[direction] - 1,
            np.ascontiguousarray(uv_arr[direction]),
            tol,
        )
    return snapped


class NurbsSurface:
    """A NURBS surface stored through its homogeneous control net.

    The control net ``coefs`` has shape ``(4, nu, nv)``: entries
    ``coefs[:3, i, j]`` hold the weighted Cartesian coordinates
    ``(x*w, y*w, z*w)`` of control point ``(i, j)`` and ``coefs[3, i, j]``
    its weight ``w``. Index ``i`` runs along u and ``j`` along v.
    """

    def __init__(
        self,
        coefs: npt.ArrayLike,
        knots: Sequence[npt.ArrayLike],
        degrees: Sequence[int],
    ) -> None:
        """Initialize a NURBS surface.

        Args:
            coefs (npt.ArrayLike): Homogeneous control net of shape ``(4, nu, nv)``.
            knots (Sequence[npt.ArrayLike]): Knot vectors along u and v.
            degrees (Sequence[int]): Degrees along u and v.

        Raises:
            InconsistentBsplineDataError: If, along a direction, the number
                of control points plus the degree differs from the number of
                knots minus one.
            ValueError: If `coefs` does not have shape ``(4, nu, nv)`` or the
                knot vectors fail basic validation.
        """
        if len(knots) != 2:  # noqa: PLR2004
            raise ValueError("knots must have one entry per parametric direction")
        dtype = _resolve_float_dtype(coefs, *knots)
        coefs_arr = np.array(coefs, dtype=dtype, order="C")
        if coefs_arr.ndim != 3 or coefs_arr.shape[0] != _NUM_HOMOGENEOUS_COORDS:
            raise ValueError(f"coefs must have shape (4, nu, nv), got {coefs_arr.shape}")

        number = (int(coefs_arr.shape[1]), int(coefs_arr.shape[2]))
        degree_u, degree_v, knots_u, knots_v = _prepare_tensor_knots(
            degrees, knots, number, dtype
        )
        self._coefs = coefs_arr
        self._knots = (knots_u, knots_v)
        self._degrees = (degree_u, degree_v)

    @classmethod
    def from_control_points(
        cls,
        control_points: npt.ArrayLike,
        weights: npt.ArrayLike,
        knots: Sequence[npt.ArrayLike],
        degrees: Sequence[int],
    ) -> NurbsSurface:
        """Build a NURBS surface from Cartesian control points and weights.

        Args:
            control_points (npt.ArrayLike): Cartesian control points of shape
                ``(3, nu, nv)``.
            weights (npt.ArrayLike): Weights of shape ``(nu, nv)``.
            knots (Sequence[npt.ArrayLike]): Knot vectors along u and v.
            degrees (Sequence[int]): Degrees along u and v.

        Returns:
            NurbsSurface: The surface with homogeneous control net
                ``(P * w, w)``.

        Raises:
            ValueError: If the shapes of `control_points` and `weights` do
                not match.
        """
        dtype = _resolve_float_dtype(control_points, weights, *knots)
        points = np.asarray(control_points, dtype=dtype)
        w = np.asarray(weights, dtype=dtype)
        if points.ndim != 3 or points.shape[0] != _NUM_SPATIAL_COORDS:
            raise ValueError(f"control_points must have shape (3, nu, nv), got {points.shape}")
        if w.shape != points.shape[1:]:
            raise ValueError(f"weights must have shape {points.shape[1:]}, got {w.shape}")
        coefs = np.concatenate([points * w, w[np.newaxis]], axis=0)
        return cls(coefs, knots, degrees)

    @property
    def coefs(self) -> npt.NDArray[np.float32 | np.float64]:
        """Homogeneous control net of shape ``(4, nu, nv)``."""
        return self._coefs

    @property
    def knots(self) -> tuple[npt.NDArray[np.float32 | np.float64], ...]:
        """Knot vectors along u and v."""
        return self._knots

    @property
    def degrees(self) -> tuple[int, int]:
        """Degrees along u and v."""
        return self._degrees

    @property
    def order(self) -> tuple[int, int]:
        """Orders (degree + 1) along u and v."""
        return (self._degrees[0] + 1, self._degrees[1] + 1)

    @property
    def number(self) -> tuple[int, int]:
        """Number of control points along u and v."""
        return (int(self._coefs.shape[1]), int(self._coefs.shape[2]))

    @property
    def dtype(self) -> np.dtype[np.floating[Any]]:
        """Floating dtype of the control net and knot vectors."""
        return self._coefs.dtype

    @property
    def weights(self) -> npt.NDArray[np.float32 | np.float64]:
        """Weights of shape ``(nu, nv)``."""
        return self._coefs[3]

    @property
    def control_points(self) -> npt.NDArray[np.float32 | np.float64]:
        """Cartesian control points of shape ``(3, nu, nv)``."""
        return self._coefs[:3] / self._coefs[3]

    def astype(self, dtype: npt.DTypeLike) -> NurbsSurface:
        """Return the surface with control net and knot vectors cast to `dtype`.

        The surface itself is returned when it already has that dtype.
        """
        if np.dtype(dtype) == self.dtype:
            return self
        knots = (self._knots[0].astype(dtype), self._knots[1].astype(dtype))
        return NurbsSurface(self._coefs.astype(dtype), knots, self._degrees)

    def _grid_indices(
        self, index: int | Sequence[int] | npt.NDArray[np.int_]
    ) -> tuple[npt.NDArray[np.int_], npt.NDArray[np.int_]]:
        flat = np.atleast_1d(np.asarray(index, dtype=np.int_))
        size = self.number[0] * self.number[1]
        if np.any(flat < 0) or np.any(flat >= size):
            raise IndexError(f"control point indices must be between 0 and {size - 1}")
        ii, jj = np.unravel_index(flat, self.number)
        return ii, jj

    def with_weights(
        self,
        new_weights: float | npt.ArrayLike,
        index: int | Sequence[int] | npt.NDArray[np.int_],
    ) -> NurbsSurface:
        """Return a copy with new weights for some control points.

        The Cartesian position of the modified control points is kept.

        Args:
            new_weights (float | npt.ArrayLike): One weight per index, or a
                single weight for all of them.
            index (int | Sequence[int] | npt.NDArray[np.int_]): Flat C-order
                indices into the ``(nu, nv)`` control grid.

        Returns:
            NurbsSurface: The modified surface.

        Raises:
            ValueError: If a new weight is not positive, or if a selected
                control point has zero weight, so that its Cartesian position
                is undefined.
            IndexError: If an index is out of range.
        """
        ii, jj = self._grid_indices(index)
        w = np.broadcast_to(np.asarray(new_weights, dtype=self.dtype), ii.shape)
        if not np.all(w > 0):
            raise ValueError("weights must be positive")
        if np.any(self._coefs[3, ii, jj] == 0):
            raise ValueError("cannot reweight a control point whose weight is zero")
        coefs = self._coefs.copy()
        coefs[:3, ii, jj] = coefs[:3, ii, jj] / coefs[3, ii, jj] * w
        coefs[3, ii, jj] = w
        return NurbsSurface(coefs, self._knots, self._degrees)

    def with_moved_control_points(
        self,
        move: npt.ArrayLike,
        index: int | Sequence[int] | npt.NDArray[np.int_],
    ) -> NurbsSurface:
        """Return a copy with some control points displaced.

        The weights are not changed.

        Args:
            move (npt.ArrayLike): Cartesian displacement of length 3, applied
                to every selected control point.
            index (int | Sequence[int] | npt.NDArray[np.int_]): Flat C-order
                indices into the ``(nu, nv)`` control grid.

        Returns:
            NurbsSurface: The modified surface.

        Raises:
            ValueError: If `move` does not have three entries.
            IndexError: If an index is out of range.
        """
        displacement = np.asarray(move, dtype=self.dtype).ravel()
        if displacement.size != _NUM_SPATIAL_COORDS:
            raise ValueError("move must have three entries")
        ii, jj = self._grid_indices(index)
        coefs = self._coefs.copy()
        coefs[:3, ii, jj] += displacement[:, np.newaxis] * coefs[3, ii, jj]
        return NurbsSurface(coefs, self._knots, self._degrees)

    def differentiate(self) -> tuple[NurbsSurface, NurbsSurface]:
        """Differentiate the homogeneous map along u and along v.

        The results hold the control nets of ``d(Pw)/du`` and ``d(Pw)/dv``,
        i.e. the derivatives of the weighted coordinates and of the weight,
        which are B-splines of one degree less in the differentiated
        direction. Rational derivatives follow from the quotient rule, see
        :func:`evaluate_rational_surface_derivatives`.

        Returns:
            tuple[NurbsSurface, NurbsSurface]: Derivative nets along u and v.

        Raises:
            ValueError: If a degree is zero.
        """
        n_coords = _NUM_HOMOGENEOUS_COORDS
        nu, nv = self.number
        degree_u, degree_v = self._degrees
        knots_u, knots_v = self._knots

        along_u = self._coefs.transpose(0, 2, 1).reshape(n_coords * nv, nu)
        dcoefs_u, dknots_u = derivative_bspline(degree_u, along_u, knots_u)
        dcoefs_u = dcoefs_u.reshape(n_coords, nv, nu - 1).transpose(0, 2, 1)

        along_v = self._coefs.reshape(n_coords * nu, nv)
        dcoefs_v, dknots_v = derivative_bspline(degree_v, along_v, knots_v)
        dcoefs_v = dcoefs_v.reshape(n_coords, nu, nv - 1)

        return (
            NurbsSurface(dcoefs_u, (dknots_u, knots_v), (degree_u - 1, degree_v)),
            NurbsSurface(dcoefs_v, (knots_u, dknots_v), (degree_u, degree_v - 1)),
        )

    def evaluate_homogeneous(
        self, uv: npt.ArrayLike, tol: float | None = None
    ) -> npt.NDArray[np.float32 | np.float64]:
        """Evaluate the homogeneous map ``(x*w, y*w, z*w, w)`` at samples.

        The result is float32 only when the surface and `uv` are both float32;
        otherwise a float32 surface is promoted to float64 for the call.

        Args:
            uv (npt.ArrayLike): Samples of shape ``(2, n_samples)``.
            tol (float | None): Domain tolerance. Defaults to the default
                tolerance of the surface dtype.

        Returns:
            npt.NDArray[np.float32 | np.float64]: Array of shape ``(4, n_samples)``.

        Raises:
            ValueError: If `uv` has an invalid shape or a sample is outside
                the domain.
        """
        surface = self.astype(_resolve_float_dtype(self._coefs, uv))
        samples = _prepare_samples(uv, surface.degrees, surface.knots, surface.number, tol)
        out = np.empty((_NUM_HOMOGENEOUS_COORDS, samples.shape[1]), dtype=surface.dtype)
        _evaluate_surface_impl(
            surface.degrees[0],
            surface.knots[0],
            surface.degrees[1],
            surface.knots[1],
            surface.coefs,
            samples,
            out,
        )
        return out


class DerivativeIndex(NamedTuple):
    """Position of one value in a surface derivative tensor.

    The tensor has shape ``(n_dims, d + 1, d + 1, n_samples)`` and is laid
    out in C order, so the flat offset of an index is
    ``((dim * (d + 1) + u_order) * (d + 1) + v_order) * n_samples + sample``.
    """

    dim: int
    u_order: int
    v_order: int
    sample: int

    def offset(self, shape: tuple[int, ...]) -> int:
        """Resolve the flat C-order offset of this index in a tensor of `shape`.

        Args:
            shape (tuple[int, ...]): Tensor shape ``(n_dims, d + 1, d + 1, n_samples)``.

        Returns:
            int: Flat offset.

        Raises:
            IndexError: If a component is out of range.
        """
        if len(shape) != len(self):
            raise IndexError(f"expected a tensor of rank {len(self)}, got shape {shape}")
        for name, value, extent in zip(self._fields, self, shape, strict=True):
            if not 0 <= value < extent:
                raise IndexError(f"{name} index {value} out of range [0, {extent})")
        _, n_u, n_v, n_samples = shape
        return ((self.dim * n_u + self.u_order) * n_v + self.v_order) * n_samples + self.sample


class SurfaceDerivatives:
    """Partial derivatives of a surface at a batch of samples.

    ``values[i, k, l, s]`` is the derivative of the i-th Cartesian
    coordinate taken ``k`` times along u and ``l`` times along v, at sample
    ``s``. Only entries with ``k + l <= n_ders`` are meaningful; the others
    are zero.
    """

    def __init__(self, values: npt.NDArray[np.float32 | np.float64], n_ders: int) -> None:
        """Wrap a derivative tensor.

        Args:
            values (npt.NDArray[np.float32 | np.float64]): Tensor of shape
                ``(n_dims, n_ders + 1, n_ders + 1, n_samples)``.
            n_ders (int): Highest total derivative order.

        Raises:
            ValueError: If the shape of `values` does not match `n_ders`.
        """
        if values.ndim != 4 or values.shape[1:3] != (n_ders + 1, n_ders + 1):  # noqa: PLR2004
            raise ValueError(
                f"values must have shape (n_dims, {n_ders + 1}, {n_ders + 1}, n_samples), "
                f"got {values.shape}"
            )
        self._values = np.ascontiguousarray(values)
        self._n_ders = n_ders

    @property
    def values(self) -> npt.NDArray[np.float32 | np.float64]:
        """The rank-4 derivative tensor."""
        return self._values

    @property
    def n_ders(self) -> int:
        """Highest total derivative order."""
        return self._n_ders

    @property
    def num_samples(self) -> int:
        """Number of samples."""
        return int(self._values.shape[3])

    @property
    def points(self) -> npt.NDArray[np.float32 | np.float64]:
        """Surface points, shape ``(n_dims, n_samples)``."""
        return self._values[:, 0, 0, :]

    def derivative(self, u_order: int, v_order: int) -> npt.NDArray[np.float32 | np.float64]:
        """Get one mixed partial derivative at every sample.

        Args:
            u_order (int): Derivative order along u.
            v_order (int): Derivative order along v.

        Returns:
            npt.NDArray[np.float32 | np.float64]: Array of shape ``(n_dims, n_samples)``.

        Raises:
            IndexError: If an order is negative or ``u_order + v_order > n_ders``.
        """
        if u_order < 0 or v_order < 0 or u_order + v_order > self._n_ders:
            raise IndexError(
                f"derivative orders ({u_order}, {v_order}) not available up to total "
                f"order {self._n_ders}"
            )
        return self._values[:, u_order, v_order, :]

    def __getitem__(self, index: DerivativeIndex | tuple[int, int, int, int]) -> float:
        """Get a single value through a :class:`DerivativeIndex`.

        Raises:
            IndexError: If the index is out of range or its total order
                exceeds `n_ders`.
        """
        if len(index) != len(DerivativeIndex._fields):
            raise IndexError(
                f"expected (dim, u_order, v_order, sample), got {len(index)} components"
            )
        index = DerivativeIndex(*index)
        if index.u_order + index.v_order > self._n_ders:
            raise IndexError(
                f"total derivative order {index.u_order + index.v_order} exceeds {self._n_ders}"
            )
        return float(self._values.reshape(-1)[index.offset(self._values.shape)])


def evaluate_surface_derivatives(
    degrees: Sequence[int],
    knots: Sequence[npt.ArrayLike],
    control_net: npt.ArrayLike,
    uv: npt.ArrayLike,
    n_ders: int,
    tol: float | None = None,
    out: npt.NDArray[np.float32 | np.float64] | None = None,
) -> npt.NDArray[np.float32 | np.float64]:
    """Evaluate the partial derivatives of a scalar tensor-product B-spline.

    Args:
        degrees (Sequence[int]): Degrees along u and v.
        knots (Sequence[npt.ArrayLike]): Knot vectors along u and v.
        control_net (npt.ArrayLike): Scalar control values of shape ``(nu, nv)``.
        uv (npt.ArrayLike): Samples of shape ``(2, n_samples)``.
        n_ders (int): Highest total derivative order.
        tol (float | None): Domain tolerance. Defaults to the default
            tolerance of the working dtype.
        out (npt.NDArray[np.float32 | np.float64] | None): Optional output
            array of shape ``(n_ders + 1, n_ders + 1, n_samples)``.
            Defaults to None.

    Returns:
        npt.NDArray[np.float32 | np.float64]: Array of shape
            ``(n_ders + 1, n_ders + 1, n_samples)`` whose entry ``[k, l, s]``
            is the ``(k, l)`` mixed partial derivative at sample ``s``;
            entries with ``k + l > n_ders`` are zero.

    Raises:
        InconsistentBsplineDataError: If a direction has
            ``nc + degree != len(knots) - 1``.
        ValueError: If the inputs fail validation, a sample is outside the
            domain, or `out` has an incorrect shape or dtype.
    """
    n_ders = _check_num_derivatives(n_ders)
    dtype = _resolve_float_dtype(control_net, uv, *knots)
    net = np.ascontiguousarray(np.asarray(control_net, dtype=dtype))
    if net.ndim != 2:  # noqa: PLR2004
        raise ValueError(f"control_net must have shape (nu, nv), got {net.shape}")

    number = (int(net.shape[0]), int(net.shape[1]))
    degree_u, degree_v, knots_u, knots_v = _prepare_tensor_knots(degrees, knots, number, dtype)
    samples = _prepare_samples(uv, (degree_u, degree_v), (knots_u, knots_v), number, tol)

    out = _allocate_out(out, (n_ders + 1, n_ders + 1, samples.shape[1]), dtype)
    _surface_derivatives_batch_impl(
        degree_u, knots_u, degree_v, knots_v, net, samples, n_ders, out
    )
    return out


def evaluate_nurbs_surface(
    surface: NurbsSurface, uv: npt.ArrayLike, tol: float | None = None
) -> npt.NDArray[np.float32 | np.float64]:
    """Evaluate the Cartesian points of a NURBS surface.

    Args:
        surface (NurbsSurface): The surface.
        uv (npt.ArrayLike): Samples of shape ``(2, n_samples)``.
        tol (float | None): Domain tolerance. Defaults to the default
            tolerance of the surface dtype.

    Returns:
        npt.NDArray[np.float32 | np.float64]: Points of shape ``(3, n_samples)``.

    Raises:
        ValueError: If `uv` has an invalid shape or a sample is outside the
            domain.
    """
    homogeneous = surface.evaluate_homogeneous(uv, tol)
    return homogeneous[:3] / homogeneous[3]


def evaluate_rational_surface_derivatives(
    surface: NurbsSurface,
    uv: npt.ArrayLike,
    n_ders: int,
    binomials: BinomialTable | None = None,
    tol: float | None = None,
) -> SurfaceDerivatives:
    """Evaluate the partial derivatives of a NURBS surface up to a total order.

    The weighted coordinates and the weight are differentiated as ordinary
    B-spline fields, and the rational derivatives are recovered with the
    Leibniz rule. With all weights equal to one the result coincides with
    the derivatives of the polynomial surface. The working dtype follows
    the same promotion rule as :meth:`NurbsSurface.evaluate_homogeneous`.

    Args:
        surface (NurbsSurface): The surface.
        uv (npt.ArrayLike): Samples of shape ``(2, n_samples)``.
        n_ders (int): Highest total derivative order ``d``.
        binomials (BinomialTable | None): Binomial coefficient cache. If
            None, a table warmed up to `n_ders` is created for this call.
        tol (float | None): Domain tolerance. Defaults to the default
            tolerance of the surface dtype.

    Returns:
        SurfaceDerivatives: Derivatives with values of shape
            ``(3, d + 1, d + 1, n_samples)``.

    Raises:
        ValueError: If `n_ders` is negative, `uv` has an invalid shape or a
            sample is outside the domain.

    Note:
        Zero weights are not detected and produce ``inf`` or ``nan``.
    """
    n_ders = _check_num_derivatives(n_ders)
    surface = surface.astype(_resolve_float_dtype(surface.coefs, uv))
    samples = _prepare_samples(uv, surface.degrees, surface.knots, surface.number, tol)
    if binomials is None:
        binomials = BinomialTable(max_n=n_ders)

    values = _allocate_out(
        None, (_NUM_SPATIAL_COORDS, n_ders + 1, n_ders + 1, samples.shape[1]), surface.dtype
    )
    _logger.debug(
        "evaluating NURBS surface derivatives up to order %d at %d samples",
        n_ders,
        samples.shape[1],
    )
    _rational_surface_derivatives_impl(
        surface.degrees[0],
        surface.knots[0],
        surface.degrees[1],
        surface.knots[1],
        surface.coefs,
        samples,
        n_ders,
        binomials.table(n_ders),
        values,
    )
    return SurfaceDerivatives(values, n_ders)
