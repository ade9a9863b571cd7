"""
Vector mass operator
--------------------

.. autoclass:: VectorMassConfig
.. autoclass:: VectorMassOperator

.. autofunction:: make_vector_mass_operator

Stateless entry points
^^^^^^^^^^^^^^^^^^^^^^

.. autofunction:: assemble_operator_data
.. autofunction:: assemble_diagonal
.. autofunction:: apply_mass
"""

from __future__ import annotations


__copyright__ = "Copyright (C) 2025 University of Illinois Board of Trustees"

__license__ = """
Permission is hereby granted, free of charge, to any person obtaining a copy
of this software and associated documentation files (the "Software"), to deal
in the Software without restriction, including without limitation the rights
to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
copies of the Software, and to permit persons to whom the Software is
furnished to do so, subject to the following conditions:

The above copyright notice and this permission notice shall be included in
all copies or substantial portions of the Software.

THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN
THE SOFTWARE.
"""


import logging
from collections.abc import Mapping
from dataclasses import dataclass, fields
from typing import Any

import numpy as np

from arraycontext import Array, ArrayContext
from meshmode.mesh import Mesh
from pytools import ProcessLogger

from pamass.assembly import assemble_operator_data, default_nq1d
from pamass.backends import BACKENDS, make_backend
from pamass.basis import DofToQuad, make_dof_to_quad
from pamass.coefficient import as_coefficient, get_constant_value
from pamass.dispatch import (
    DofQuadLimits,
    KernelDispatcher,
    check_dof_quad_limits,
    get_dof_quad_limits,
)
from pamass.errors import check_dimension
from pamass.geometry import GeometricFactors, geometric_factors_from_mesh


logger = logging.getLogger(__name__)


__all__ = [
    "VectorMassConfig",
    "VectorMassOperator",
    "apply_mass",
    "assemble_diagonal",
    "assemble_operator_data",
    "make_vector_mass_operator",
]


# {{{ configuration

@dataclass(frozen=True)
class VectorMassConfig:
    """Setup parameters of a :class:`VectorMassOperator`.

    .. attribute:: dim

        2 or 3.

    .. attribute:: order

        Polynomial degree of the nodal basis, at least 1.

    .. attribute:: coefficient

        A spatially constant coefficient, see
        :func:`~pamass.coefficient.as_coefficient`. *None* means one.

    .. attribute:: vdim

        Number of vector components, defaults to *dim*.

    .. attribute:: nq1d

        Number of Gauss points per axis. Defaults to
        :func:`~pamass.assembly.default_nq1d` for the degree of the mesh.

    .. attribute:: backend

        A key of :data:`~pamass.backends.BACKENDS`.

    .. attribute:: use_specialized_kernels
    .. attribute:: dof_quad_limits

        A :class:`~pamass.dispatch.DofQuadLimits`. Defaults to the limits of
        the array context, see :func:`~pamass.dispatch.get_dof_quad_limits`.

    .. automethod:: from_dict
    """

    dim: int
    order: int
    coefficient: Any = None
    vdim: int | None = None
    nq1d: int | None = None
    backend: str = "sum_factorization"
    use_specialized_kernels: bool = True
    dof_quad_limits: DofQuadLimits | None = None

    def __post_init__(self) -> None:
        check_dimension(self.dim)

        if self.order < 1:
            raise ValueError(f"order must be at least 1, got {self.order}")
        if self.vdim is not None and self.vdim < 1:
            raise ValueError(f"vdim must be at least 1, got {self.vdim}")
        if self.nq1d is not None and self.nq1d < 1:
            raise ValueError(f"nq1d must be at least 1, got {self.nq1d}")
        if self.backend not in BACKENDS:
            raise ValueError(
                f"unknown backend '{self.backend}', expected one of "
                f"{', '.join(sorted(BACKENDS))}")

        # rejects objects that are not coefficients at all; non-constant
        # coefficients are rejected when the operator is set up
        as_coefficient(self.coefficient)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> VectorMassConfig:
        """Build a configuration from a mapping such as
        ``{"dim": 2, "order": 3, "coefficient": 1.5}``. *dof_quad_limits*
        may be given as a mapping with keys ``max_d1d`` and ``max_q1d``.
        """
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(
                f"unknown configuration keys: {', '.join(sorted(unknown))}")

        kwargs = dict(data)
        limits = kwargs.get("dof_quad_limits")
        if isinstance(limits, Mapping):
            kwargs["dof_quad_limits"] = DofQuadLimits(**limits)

        return cls(**kwargs)

    @property
    def effective_vdim(self) -> int:
        return self.dim if self.vdim is None else self.vdim

    def effective_nq1d(self, mesh_order: int = 1) -> int:
        if self.nq1d is not None:
            return self.nq1d
        return default_nq1d(self.order, self.dim, mesh_order)

# }}}


# {{{ operator

class VectorMassOperator:
    r"""The vector mass operator
    :math:`A_{(c,i),(c',j)} = \delta_{cc'} \int_\Omega c\, \phi_i \phi_j`
    on tensor-product elements, evaluated by partial assembly.

    Everything is validated when the operator is constructed. The
    quadrature-point data is computed once, here; if the geometry or the
    coefficient change, build a new operator.

    DOF arrays have shape :attr:`dof_shape`,
    ``(nelements, vdim, nd1d, ..., nd1d)`` with the :math:`x` axis last.

    .. attribute:: pa_data

        Frozen quadrature-point data, see
        :func:`~pamass.assembly.assemble_operator_data`.

    .. attribute:: backend

        A :class:`~pamass.backends.MassOperatorBackend`.

    .. autoproperty:: dof_shape
    .. autoproperty:: ndofs
    .. automethod:: mult
    .. automethod:: add_mult
    .. automethod:: assemble_diagonal
    .. automethod:: element_matrices
    .. automethod:: zeros_like_dofs

    :raises UnsupportedCoefficientError: if *coefficient* is not constant.
    :raises UnsupportedDimensionError: if the elements are not 2D or 3D.
    :raises DeviceLimitExceededError: if *dof_to_quad* is too large for the
        device of *actx*.
    """

    def __init__(self,
                 actx: ArrayContext,
                 geometry: GeometricFactors,
                 dof_to_quad: DofToQuad,
                 coefficient: Any = None, *,
                 vdim: int | None = None,
                 backend: str = "sum_factorization",
                 use_specialized_kernels: bool = True,
                 dof_quad_limits: DofQuadLimits | None = None) -> None:
        get_constant_value(coefficient)

        dim = geometry.dim
        check_dimension(dim)

        if dof_quad_limits is None:
            dof_quad_limits = get_dof_quad_limits(actx)
        check_dof_quad_limits(dof_to_quad.nd1d, dof_to_quad.nq1d,
                              dof_quad_limits)

        if geometry.nquad != dof_to_quad.nq1d**dim:
            raise ValueError(
                f"geometric factors given at {geometry.nquad} points per "
                f"element, expected {dof_to_quad.nq1d}**{dim}")

        if vdim is None:
            vdim = dim
        if vdim < 1:
            raise ValueError(f"vdim must be at least 1, got {vdim}")

        self.actx = actx
        self.dim = dim
        self.vdim = vdim
        self.nelements = geometry.nelements
        self.dof_to_quad = dof_to_quad
        self.dof_quad_limits = dof_quad_limits

        with ProcessLogger(logger,
                f"VectorMassOperator setup [dim={dim}, "
                f"nelements={geometry.nelements}, nd1d={dof_to_quad.nd1d}, "
                f"nq1d={dof_to_quad.nq1d}, backend={backend}]"):
            self.pa_data = assemble_operator_data(
                actx, geometry,
                dof_to_quad.quadrature.tensor_product_weights(dim),
                coefficient)

            self.backend = make_backend(
                backend, actx, dof_to_quad, self.pa_data, vdim,
                limits=dof_quad_limits,
                use_specialized_kernels=use_specialized_kernels)

    @property
    def nd1d(self) -> int:
        return self.dof_to_quad.nd1d

    @property
    def nq1d(self) -> int:
        return self.dof_to_quad.nq1d

    @property
    def dof_shape(self) -> tuple[int, ...]:
        return (self.nelements, self.vdim) + (self.nd1d,)*self.dim

    @property
    def ndofs(self) -> int:
        """Total number of element-local DOFs over all components."""
        return self.nelements * self.vdim * self.nd1d**self.dim

    def _check_dofs(self, ary: Array, name: str) -> None:
        if tuple(ary.shape) != self.dof_shape:
            raise ValueError(
                f"'{name}' has shape {ary.shape}, expected {self.dof_shape}")

    def zeros_like_dofs(self) -> Array:
        return self.actx.np.zeros(self.dof_shape, dtype=np.float64)

    def mult(self, x: Array) -> Array:
        """Return :math:`A x`."""
        self._check_dofs(x, "x")
        return self.backend.apply(x)

    def add_mult(self, x: Array, y: Array) -> Array:
        """Return :math:`y + A x`. *y* is not modified."""
        self._check_dofs(y, "y")
        return y + self.mult(x)

    def assemble_diagonal(self) -> Array:
        """Return the diagonal of :math:`A` as an array of shape
        :attr:`dof_shape`.
        """
        return self.backend.assemble_diagonal()

    def element_matrices(self) -> Array:
        """Return the explicit matrices of one vector component, see
        :meth:`pamass.backends.MassOperatorBackend.element_matrices`.
        """
        return self.backend.element_matrices()

    def __repr__(self) -> str:
        return (f"{type(self).__name__}(dim={self.dim}, vdim={self.vdim}, "
                f"nelements={self.nelements}, nd1d={self.nd1d}, "
                f"nq1d={self.nq1d}, backend={self.backend.name!r})")


def make_vector_mass_operator(
        actx: ArrayContext,
        mesh: Mesh,
        config: VectorMassConfig) -> VectorMassOperator:
    """Set up a :class:`VectorMassOperator` on the tensor-product elements
    of *mesh*. The quadrature defaults to the rule integrating the mass
    integrand of an element of the mesh's polynomial degree exactly.
    """
    if mesh.dim != config.dim:
        raise ValueError(
            f"mesh has dimension {mesh.dim}, configuration asks for "
            f"{config.dim}")

    get_constant_value(config.coefficient)

    mesh_order = max(grp.order for grp in mesh.groups)
    nq1d = config.effective_nq1d(mesh_order)

    limits = config.dof_quad_limits
    if limits is None:
        limits = get_dof_quad_limits(actx)
    check_dof_quad_limits(config.order + 1, nq1d, limits)

    logger.info("make_vector_mass_operator: order=%d mesh_order=%d nq1d=%d",
                config.order, mesh_order, nq1d)

    dof_to_quad = make_dof_to_quad(config.order, nq1d)
    geometry = geometric_factors_from_mesh(actx, mesh, dof_to_quad.quadrature)

    return VectorMassOperator(
        actx, geometry, dof_to_quad, config.coefficient,
        vdim=config.effective_vdim,
        backend=config.backend,
        use_specialized_kernels=config.use_specialized_kernels,
        dof_quad_limits=limits)

# }}}


# {{{ stateless entry points

def _make_dispatcher(pa_data: Array, dof_to_quad: DofToQuad,
                     use_specialized_kernels: bool,
                     dof_quad_limits: DofQuadLimits | None,
                     actx: ArrayContext) -> KernelDispatcher:
    dim = len(pa_data.shape) - 1
    if dof_quad_limits is None:
        dof_quad_limits = get_dof_quad_limits(actx)

    dispatcher = KernelDispatcher(
        dim, dof_to_quad.nd1d, dof_to_quad.nq1d,
        limits=dof_quad_limits,
        use_specialized_kernels=use_specialized_kernels)

    if tuple(pa_data.shape[1:]) != (dof_to_quad.nq1d,)*dim:
        raise ValueError(
            f"pa_data has shape {pa_data.shape}, expected "
            f"{dof_to_quad.nq1d} quadrature points along each axis")

    return dispatcher


def assemble_diagonal(
        actx: ArrayContext,
        pa_data: Array,
        dof_to_quad: DofToQuad,
        vdim: int | None = None, *,
        use_specialized_kernels: bool = True,
        dof_quad_limits: DofQuadLimits | None = None) -> Array:
    """Compute the diagonal of the operator described by *pa_data* and
    *dof_to_quad* for *vdim* components (defaulting to the dimension).
    *pa_data* is frozen, as returned by
    :func:`~pamass.assembly.assemble_operator_data`.

    :returns: an array of shape ``(nelements, vdim, nd1d, ..., nd1d)``.
    """
    dispatcher = _make_dispatcher(pa_data, dof_to_quad,
                                  use_specialized_kernels, dof_quad_limits,
                                  actx)
    if vdim is None:
        vdim = dispatcher.dim

    return dispatcher.diagonal_kernel(
        actx,
        actx.thaw(dof_to_quad.frozen_basis_squared(actx)),
        actx.thaw(pa_data),
        vdim)


def apply_mass(
        actx: ArrayContext,
        pa_data: Array,
        dof_to_quad: DofToQuad,
        x: Array,
        y: Array | None = None, *,
        use_specialized_kernels: bool = True,
        dof_quad_limits: DofQuadLimits | None = None) -> Array:
    """Return :math:`y + A x`, or :math:`A x` if *y* is not given.

    :arg pa_data: frozen quadrature-point data, as returned by
        :func:`~pamass.assembly.assemble_operator_data`.
    :arg x: DOF values of shape ``(nelements, vdim, nd1d, ..., nd1d)``.
    """
    dispatcher = _make_dispatcher(pa_data, dof_to_quad,
                                  use_specialized_kernels, dof_quad_limits,
                                  actx)

    expected_shape = (
        (pa_data.shape[0],) + tuple(x.shape[1:2])
        + (dof_to_quad.nd1d,)*dispatcher.dim)
    if len(x.shape) != dispatcher.dim + 2 or tuple(x.shape) != expected_shape:
        raise ValueError(
            f"x has shape {x.shape}, expected "
            f"(nelements, vdim) + {(dof_to_quad.nd1d,)*dispatcher.dim}")
    if y is not None and tuple(y.shape) != tuple(x.shape):
        raise ValueError(f"y has shape {y.shape}, expected {x.shape}")

    result = dispatcher.apply_kernel(
        actx,
        actx.thaw(dof_to_quad.frozen_basis(actx)),
        actx.thaw(dof_to_quad.frozen_basis_transpose(actx)),
        actx.thaw(pa_data), x)

    if y is None:
        return result
    return y + result

# }}}

# vim: foldmethod=marker
