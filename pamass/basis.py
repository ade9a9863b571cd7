"""
Reference element data
----------------------

One-dimensional quadrature rules and DOF-to-quadrature interpolation
matrices from which the tensor-product kernels are built. The reference
interval is :math:`[0, 1]`, so that the quadrature weights of the
reference square (cube) sum to one.

Tensor-product points and DOFs are enumerated with the :math:`x` index
varying fastest. In the C-ordered arrays used throughout :mod:`pamass` the
:math:`x` axis is therefore the *last* axis.

.. autoclass:: QuadratureRule1D
.. autoclass:: DofToQuad

.. autofunction:: gauss_legendre_rule
.. autofunction:: make_dof_to_quad
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

from dataclasses import dataclass
from functools import reduce

import numpy as np

import modepy as mp
from arraycontext import Array, ArrayContext, tag_axes
from pytools import memoize, memoize_in

from pamass.metadata import TensorProductOperatorAxisTag


# {{{ quadrature

@dataclass(frozen=True, eq=False)
class QuadratureRule1D:
    """
    .. attribute:: nodes

        A :class:`numpy.ndarray` of shape ``(nq1d,)`` in :math:`[0, 1]`.

    .. attribute:: weights

        A :class:`numpy.ndarray` of shape ``(nq1d,)`` summing to one.
    """

    nodes: np.ndarray
    weights: np.ndarray

    @property
    def nq1d(self) -> int:
        return len(self.weights)

    def tensor_product_nodes(self, dim: int) -> np.ndarray:
        """Return an array of shape ``(dim, nq1d**dim)``, row *i* holding
        reference coordinate *i* (``0`` is :math:`x`) of every point.
        """
        grids = np.meshgrid(*([self.nodes]*dim), indexing="ij")
        return np.array([grids[dim-1-i].reshape(-1) for i in range(dim)])

    def tensor_product_weights(self, dim: int) -> np.ndarray:
        return reduce(np.multiply.outer, [self.weights]*dim).reshape(-1)


@memoize
def gauss_legendre_rule(nq1d: int) -> QuadratureRule1D:
    """Return the *nq1d*-point Gauss-Legendre rule on :math:`[0, 1]`, exact
    for polynomials of degree ``2*nq1d - 1``.
    """
    if nq1d < 1:
        raise ValueError(f"need at least one quadrature point, got {nq1d}")

    quad = mp.LegendreGaussQuadrature(nq1d - 1)
    nodes = 0.5*(np.asarray(quad.nodes, dtype=np.float64).reshape(-1) + 1)
    weights = 0.5*np.asarray(quad.weights, dtype=np.float64).reshape(-1)

    return QuadratureRule1D(nodes=nodes, weights=weights)

# }}}


# {{{ dof-to-quadrature maps

@dataclass(frozen=True, eq=False)
class DofToQuad:
    r"""Interpolation from the nodal values of a degree-*order* Lagrange
    basis on one reference axis to the points of *quadrature*.

    .. attribute:: order
    .. attribute:: quadrature

        A :class:`QuadratureRule1D`.

    .. attribute:: dof_nodes

        Nodes of the Lagrange basis in :math:`[0, 1]`, the
        Gauss-Lobatto-Legendre points for *order* :math:`\ge 1`.

    .. attribute:: basis

        The matrix :math:`B` of shape ``(nq1d, nd1d)``, with
        :math:`B_{qi} = \phi_i(\xi_q)`.

    .. automethod:: tensor_product_basis
    .. automethod:: frozen_basis
    .. automethod:: frozen_basis_transpose
    .. automethod:: frozen_basis_squared
    """

    order: int
    quadrature: QuadratureRule1D
    dof_nodes: np.ndarray
    basis: np.ndarray

    @property
    def nd1d(self) -> int:
        return self.order + 1

    @property
    def nq1d(self) -> int:
        return self.quadrature.nq1d

    @property
    def basis_transpose(self) -> np.ndarray:
        return np.ascontiguousarray(self.basis.T)

    @property
    def basis_squared(self) -> np.ndarray:
        """Elementwise square of :attr:`basis`, the 1D factor of the
        operator diagonal.
        """
        return self.basis * self.basis

    def tensor_product_basis(self, dim: int) -> np.ndarray:
        """Return the full interpolation matrix of shape
        ``(nq1d**dim, nd1d**dim)`` from DOFs to quadrature points of the
        *dim*-dimensional reference element, both enumerated with :math:`x`
        fastest.
        """
        return reduce(np.kron, [self.basis]*dim)

    def _frozen(self, actx: ArrayContext, name: str, ary: np.ndarray) -> Array:
        @memoize_in(actx, (DofToQuad._frozen, name,
                           self.quadrature.nodes.tobytes(),
                           self.dof_nodes.tobytes()))
        def get_frozen():
            return actx.freeze(
                tag_axes(actx, {
                    0: TensorProductOperatorAxisTag(),
                    1: TensorProductOperatorAxisTag()},
                    actx.from_numpy(ary)))

        return get_frozen()

    def frozen_basis(self, actx: ArrayContext) -> Array:
        return self._frozen(actx, "basis", self.basis)

    def frozen_basis_transpose(self, actx: ArrayContext) -> Array:
        return self._frozen(actx, "basis_transpose", self.basis_transpose)

    def frozen_basis_squared(self, actx: ArrayContext) -> Array:
        return self._frozen(actx, "basis_squared", self.basis_squared)


@memoize
def make_dof_to_quad(order: int, nq1d: int) -> DofToQuad:
    """Tabulate the nodal basis of degree *order* at the *nq1d*-point
    Gauss-Legendre rule given by :func:`gauss_legendre_rule`.

    *order* zero gives a single constant basis function with its node at
    the center of the interval.
    """
    if order < 0:
        raise ValueError(f"order must be non-negative, got {order}")

    quadrature = gauss_legendre_rule(nq1d)

    if order == 0:
        dof_nodes = np.array([0.5])
    else:
        from modepy.quadrature.jacobi_gauss import legendre_gauss_lobatto_nodes
        dof_nodes = 0.5*(np.asarray(legendre_gauss_lobatto_nodes(order)) + 1)

    # modepy's bases live on [-1, 1]; interpolation is invariant under the
    # affine map to [0, 1]
    basis_1d = mp.orthonormal_basis_for_space(mp.PN(1, order), mp.Simplex(1))
    interp = mp.resampling_matrix(
        basis_1d.functions,
        (2*quadrature.nodes - 1).reshape(1, -1),
        (2*dof_nodes - 1).reshape(1, -1))

    return DofToQuad(
        order=order,
        quadrature=quadrature,
        dof_nodes=dof_nodes,
        basis=np.ascontiguousarray(interp, dtype=np.float64))

# }}}

# vim: foldmethod=marker
