"""
Geometric factors
-----------------

Physical coordinates and Jacobians of the reference-to-physical mapping,
evaluated at the tensor-product quadrature points of every element.

.. autoclass:: GeometricFactors

.. autofunction:: make_geometric_factors
.. autofunction:: affine_geometric_factors
.. autofunction:: geometric_factors_from_mesh
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
from dataclasses import dataclass

import numpy as np
import numpy.linalg as la

import modepy as mp
from arraycontext import ArrayContext, tag_axes
from meshmode.mesh import Mesh, TensorProductElementGroup
from meshmode.transform_metadata import (
    DiscretizationDOFAxisTag,
    DiscretizationElementAxisTag,
)
from pytools.obj_array import make_obj_array

from pamass.basis import QuadratureRule1D


logger = logging.getLogger(__name__)


# {{{ container

@dataclass(frozen=True, eq=False)
class GeometricFactors:
    r"""
    .. attribute:: dim

        Dimension of the reference element.

    .. attribute:: nelements
    .. attribute:: nquad

        Number of quadrature points per element.

    .. attribute:: coordinates

        An object array of shape ``(ambient_dim,)`` of arrays of shape
        ``(nelements, nquad)``.

    .. attribute:: jacobians

        An object array of shape ``(ambient_dim, dim)`` of arrays of shape
        ``(nelements, nquad)``, entry :math:`(i, j)` holding
        :math:`\partial x_i / \partial \xi_j` on the reference element
        :math:`[0, 1]^d`.
    """

    dim: int
    nelements: int
    nquad: int
    coordinates: np.ndarray
    jacobians: np.ndarray

    @property
    def ambient_dim(self) -> int:
        return self.jacobians.shape[0]


def _tagged(actx: ArrayContext, ary: np.ndarray):
    return actx.freeze(
        tag_axes(actx, {
            0: DiscretizationElementAxisTag(),
            1: DiscretizationDOFAxisTag()},
            actx.from_numpy(np.ascontiguousarray(ary, dtype=np.float64))))


def make_geometric_factors(
        actx: ArrayContext,
        coordinates: np.ndarray,
        jacobians: np.ndarray) -> GeometricFactors:
    """Build :class:`GeometricFactors` from host data.

    :arg coordinates: a :class:`numpy.ndarray` of shape
        ``(ambient_dim, nelements, nquad)``.
    :arg jacobians: a :class:`numpy.ndarray` of shape
        ``(ambient_dim, dim, nelements, nquad)``.
    """
    coordinates = np.asarray(coordinates)
    jacobians = np.asarray(jacobians)

    if jacobians.ndim != 4:
        raise ValueError(
            "jacobians must have shape (ambient_dim, dim, nelements, nquad), "
            f"got {jacobians.shape}")

    ambient_dim, dim, nelements, nquad = jacobians.shape
    if coordinates.shape != (ambient_dim, nelements, nquad):
        raise ValueError(
            f"coordinates must have shape {(ambient_dim, nelements, nquad)}, "
            f"got {coordinates.shape}")

    jac = np.empty((ambient_dim, dim), dtype=object)
    for i in range(ambient_dim):
        for j in range(dim):
            jac[i, j] = _tagged(actx, jacobians[i, j])

    return GeometricFactors(
        dim=dim,
        nelements=nelements,
        nquad=nquad,
        coordinates=make_obj_array([
            _tagged(actx, coordinates[i]) for i in range(ambient_dim)]),
        jacobians=jac)

# }}}


# {{{ affine elements

def affine_geometric_factors(
        actx: ArrayContext,
        quadrature: QuadratureRule1D,
        matrices: np.ndarray,
        offsets: np.ndarray | None = None) -> GeometricFactors:
    r"""Geometric factors of elements mapped by :math:`x = A_k \xi + b_k`
    from the reference element :math:`[0, 1]^d`.

    :arg matrices: a :class:`numpy.ndarray` of shape ``(nelements, dim, dim)``
        holding :math:`A_k`.
    :arg offsets: a :class:`numpy.ndarray` of shape ``(nelements, dim)``
        holding :math:`b_k`, zero if not given.
    """
    matrices = np.asarray(matrices, dtype=np.float64)
    nelements, ambient_dim, dim = matrices.shape
    if offsets is None:
        offsets = np.zeros((nelements, ambient_dim))

    ref_nodes = quadrature.tensor_product_nodes(dim)
    nquad = ref_nodes.shape[1]

    coordinates = (
        np.einsum("eij,jq->ieq", matrices, ref_nodes)
        + np.asarray(offsets).T[:, :, np.newaxis])
    jacobians = np.broadcast_to(
        matrices.transpose(1, 2, 0)[:, :, :, np.newaxis],
        (ambient_dim, dim, nelements, nquad))

    return make_geometric_factors(actx, coordinates, jacobians)

# }}}


# {{{ meshmode meshes

def geometric_factors_from_mesh(
        actx: ArrayContext,
        mesh: Mesh,
        quadrature: QuadratureRule1D) -> GeometricFactors:
    """Evaluate coordinates and Jacobians of the (possibly curvilinear)
    element mapping of *mesh* at the tensor-product points of *quadrature*.

    *mesh* must consist of a single
    :class:`~meshmode.mesh.TensorProductElementGroup` whose ambient
    dimension equals its dimension.
    """
    if len(mesh.groups) != 1:
        raise ValueError(
            "partial assembly requires a single element group, "
            f"got {len(mesh.groups)}")

    grp, = mesh.groups
    if not isinstance(grp, TensorProductElementGroup):
        raise ValueError(
            "partial assembly requires tensor-product elements, "
            f"got '{type(grp).__name__}'")

    if mesh.ambient_dim != grp.dim:
        raise ValueError(
            f"immersed meshes are not supported (dim={grp.dim}, "
            f"ambient_dim={mesh.ambient_dim})")

    dim = grp.dim

    # modepy works on [-1, 1]^d
    ref_nodes = 2*quadrature.tensor_product_nodes(dim) - 1

    shape = mp.Hypercube(dim)
    space = mp.space_for_shape(shape, grp.order)
    basis = mp.orthonormal_basis_for_space(space, shape)

    vdm_inv = la.inv(mp.vandermonde(basis.functions, grp.unit_nodes))
    interp = mp.vandermonde(basis.functions, ref_nodes) @ vdm_inv
    ref_diff = np.array([
        grad_vdm @ vdm_inv
        for grad_vdm in mp.multi_vandermonde(basis.gradients, ref_nodes)])

    coordinates = np.einsum("qn,ien->ieq", interp, grp.nodes)

    # chain rule for xi = 2*r - 1 maps derivatives to [0, 1]^d
    jacobians = 2*np.einsum("jqn,ien->ijeq", ref_diff, grp.nodes)

    logger.debug("geometric_factors_from_mesh: dim=%d nelements=%d nquad=%d",
                 dim, grp.nelements, ref_nodes.shape[1])

    return make_geometric_factors(actx, coordinates, jacobians)

# }}}

# vim: foldmethod=marker
