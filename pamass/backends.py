"""
Backends
--------

An operator evaluates its action and diagonal through one backend, chosen
when the operator is set up and fixed for its lifetime.

.. autoclass:: MassOperatorBackend
.. autoclass:: SumFactorizationBackend
.. autoclass:: ElementMatrixBackend

.. data:: BACKENDS

    A mapping from backend name to backend class.

.. autofunction:: make_backend
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
from typing import ClassVar

from arraycontext import Array, ArrayContext, tag_axes
from meshmode.transform_metadata import (
    DiscretizationDOFAxisTag,
    DiscretizationElementAxisTag,
)

from pamass.basis import DofToQuad
from pamass.contraction import replicate_components
from pamass.dispatch import (
    CPU_DOF_QUAD_LIMITS,
    DofQuadLimits,
    KernelDispatcher,
    check_dof_quad_limits,
)
from pamass.errors import check_dimension
from pamass.metadata import tag_element_tensor


logger = logging.getLogger(__name__)


# {{{ backend base class

class MassOperatorBackend:
    """
    Evaluates a partially assembled vector mass operator. *pa_data* is
    frozen, as returned by :func:`~pamass.assembly.assemble_operator_data`,
    and is thawed for every evaluation.

    .. autoattribute:: name
    .. automethod:: apply
    .. automethod:: assemble_diagonal
    .. automethod:: element_matrices
    """

    name: ClassVar[str]
    """The key of this backend in :data:`BACKENDS`."""

    def __init__(self,
                 actx: ArrayContext,
                 dof_to_quad: DofToQuad,
                 pa_data: Array,
                 ncomponents: int, *,
                 limits: DofQuadLimits = CPU_DOF_QUAD_LIMITS,
                 use_specialized_kernels: bool = True) -> None:
        self.actx = actx
        self.dim = len(pa_data.shape) - 1
        self.dof_to_quad = dof_to_quad
        self.pa_data = pa_data
        self.ncomponents = ncomponents

    def apply(self, x: Array) -> Array:
        """Return :math:`A x` for DOF values *x* of shape
        ``(nelements, ncomponents, nd1d, ..., nd1d)``.
        """
        raise NotImplementedError("Subclasses should implement how the "
                                  "operator is applied")

    def assemble_diagonal(self) -> Array:
        """Return the operator diagonal with the same shape as the DOF
        values.
        """
        raise NotImplementedError("Subclasses should implement how the "
                                  "diagonal is computed")

    def element_matrices(self) -> Array:
        r"""Return the element matrices of one vector component, an array
        of shape ``(nelements, nd1d**dim, nd1d**dim)``. The vector
        operator is block diagonal with this block repeated for every
        component.

        The matrices are computed by direct quadrature summation,
        :math:`M^e_{ij} = \sum_q B_{qi} d_{eq} B_{qj}` with the
        tensor-product interpolation matrix :math:`B`.
        """
        actx = self.actx
        dim = self.dim

        full_basis = actx.from_numpy(
            self.dof_to_quad.tensor_product_basis(dim))
        nquad, _ = full_basis.shape

        pa_data = actx.np.reshape(actx.thaw(self.pa_data),
                                  (self.pa_data.shape[0], nquad))

        return tag_axes(actx, {
                0: DiscretizationElementAxisTag(),
                1: DiscretizationDOFAxisTag(),
                2: DiscretizationDOFAxisTag()},
            actx.einsum("qi,eq,qj->eij", full_basis, pa_data, full_basis,
                        arg_names=("basis", "pa_data", "basis")))

# }}}


# {{{ sum factorization

class SumFactorizationBackend(MassOperatorBackend):
    """
    The matrix-free backend: applies the operator and computes its diagonal
    by sum factorization through a :class:`~pamass.dispatch.KernelDispatcher`.
    """

    name = "sum_factorization"

    def __init__(self,
                 actx: ArrayContext,
                 dof_to_quad: DofToQuad,
                 pa_data: Array,
                 ncomponents: int, *,
                 limits: DofQuadLimits = CPU_DOF_QUAD_LIMITS,
                 use_specialized_kernels: bool = True) -> None:
        super().__init__(actx, dof_to_quad, pa_data, ncomponents,
                         limits=limits,
                         use_specialized_kernels=use_specialized_kernels)

        self.dispatcher = KernelDispatcher(
            self.dim, dof_to_quad.nd1d, dof_to_quad.nq1d,
            limits=limits,
            use_specialized_kernels=use_specialized_kernels)

    def apply(self, x: Array) -> Array:
        actx = self.actx
        return self.dispatcher.apply_kernel(
            actx,
            actx.thaw(self.dof_to_quad.frozen_basis(actx)),
            actx.thaw(self.dof_to_quad.frozen_basis_transpose(actx)),
            actx.thaw(self.pa_data),
            x)

    def assemble_diagonal(self) -> Array:
        actx = self.actx
        return self.dispatcher.diagonal_kernel(
            actx,
            actx.thaw(self.dof_to_quad.frozen_basis_squared(actx)),
            actx.thaw(self.pa_data),
            self.ncomponents)

# }}}


# {{{ element matrices

class ElementMatrixBackend(MassOperatorBackend):
    """
    The fully algebraic backend: forms dense element matrices once at setup
    and applies them as batched matrix-vector products. Its cost per
    application grows like ``nd1d**(2*dim)`` per element, so it is meant
    for low orders and as a reference for the matrix-free backend.
    """

    name = "element_matrix"

    def __init__(self,
                 actx: ArrayContext,
                 dof_to_quad: DofToQuad,
                 pa_data: Array,
                 ncomponents: int, *,
                 limits: DofQuadLimits = CPU_DOF_QUAD_LIMITS,
                 use_specialized_kernels: bool = True) -> None:
        super().__init__(actx, dof_to_quad, pa_data, ncomponents,
                         limits=limits,
                         use_specialized_kernels=use_specialized_kernels)

        check_dimension(self.dim)
        check_dof_quad_limits(dof_to_quad.nd1d, dof_to_quad.nq1d, limits)

        self._element_matrices = actx.freeze(
            super().element_matrices())

        logger.info("ElementMatrixBackend: %d element matrices of size %d",
                    pa_data.shape[0], dof_to_quad.nd1d**self.dim)

    def _flat_dof_shape(self, nelements: int, ncomponents: int):
        return (nelements, ncomponents, self.dof_to_quad.nd1d**self.dim)

    def _tensor_dof_shape(self, nelements: int, ncomponents: int):
        return (nelements, ncomponents) + (self.dof_to_quad.nd1d,)*self.dim

    def element_matrices(self) -> Array:
        return self.actx.thaw(self._element_matrices)

    def apply(self, x: Array) -> Array:
        actx = self.actx
        nelements, ncomponents = x.shape[:2]

        x_flat = actx.np.reshape(x, self._flat_dof_shape(nelements, ncomponents))
        result = actx.einsum("eij,ecj->eci",
                             actx.thaw(self._element_matrices), x_flat,
                             arg_names=("element_matrices", "x"))

        return tag_element_tensor(
            actx,
            actx.np.reshape(result,
                            self._tensor_dof_shape(nelements, ncomponents)),
            self.dim, has_components=True)

    def assemble_diagonal(self) -> Array:
        actx = self.actx
        nelements = self.pa_data.shape[0]

        full_basis = actx.from_numpy(
            self.dof_to_quad.tensor_product_basis(self.dim))
        nquad, _ = full_basis.shape
        pa_data = actx.np.reshape(actx.thaw(self.pa_data), (nelements, nquad))

        diag = actx.einsum("qi,eq,qi->ei", full_basis, pa_data, full_basis,
                           arg_names=("basis", "pa_data", "basis"))
        diag = actx.np.reshape(
            diag, (nelements,) + (self.dof_to_quad.nd1d,)*self.dim)

        return tag_element_tensor(
            actx,
            replicate_components(actx, self.dim, diag, self.ncomponents),
            self.dim, has_components=True)

# }}}


# {{{ backend selection

BACKENDS: Mapping[str, type[MassOperatorBackend]] = {
    cls.name: cls for cls in [SumFactorizationBackend, ElementMatrixBackend]}


def make_backend(name: str,
                 actx: ArrayContext,
                 dof_to_quad: DofToQuad,
                 pa_data: Array,
                 ncomponents: int, *,
                 limits: DofQuadLimits = CPU_DOF_QUAD_LIMITS,
                 use_specialized_kernels: bool = True) -> MassOperatorBackend:
    try:
        backend_cls = BACKENDS[name]
    except KeyError:
        raise ValueError(
            f"unknown backend '{name}', expected one of "
            f"{', '.join(sorted(BACKENDS))}") from None

    logger.info("make_backend: %s", name)
    return backend_cls(actx, dof_to_quad, pa_data, ncomponents,
                       limits=limits,
                       use_specialized_kernels=use_specialized_kernels)

# }}}

# vim: foldmethod=marker
