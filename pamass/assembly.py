"""
Quadrature-point data
---------------------

The mass operator :math:`M_{ij} = \\int_\\Omega c\\, \\phi_i \\phi_j`
is stored in partially assembled form as one scalar per quadrature point
and element, folding together the quadrature weight, the coefficient and
the Jacobian determinant of the element mapping.

.. autofunction:: jacobian_determinant
.. autofunction:: assemble_operator_data
.. autofunction:: default_quadrature_exactness
.. autofunction:: default_nq1d
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
from typing import Any

import numpy as np

from arraycontext import Array, ArrayContext

from pamass.coefficient import get_constant_value
from pamass.errors import check_dimension
from pamass.geometry import GeometricFactors
from pamass.metadata import PartialAssemblyDataTag, tag_element_tensor


logger = logging.getLogger(__name__)


# {{{ quadrature order

def default_quadrature_exactness(order: int, dim: int,
                                 mesh_order: int = 1) -> int:
    """Polynomial degree integrated exactly by the default rule: the
    product of two degree-*order* basis functions times the Jacobian
    determinant of a degree-*mesh_order* tensor-product mapping.
    """
    return 2*order + dim*mesh_order - 1


def default_nq1d(order: int, dim: int, mesh_order: int = 1) -> int:
    """Number of Gauss points per axis achieving
    :func:`default_quadrature_exactness`.
    """
    return default_quadrature_exactness(order, dim, mesh_order) // 2 + 1

# }}}


# {{{ jacobian determinant

def jacobian_determinant(jacobians: np.ndarray) -> Any:
    """Pointwise determinant of an object array of shape ``(dim, dim)`` of
    arrays, for *dim* 2 or 3.
    """
    dim, dim_b = jacobians.shape
    if dim != dim_b:
        raise ValueError(f"Jacobian must be square, got shape {jacobians.shape}")

    check_dimension(dim)

    if dim == 2:
        j11, j12 = jacobians[0]
        j21, j22 = jacobians[1]
        return j11*j22 - j21*j12

    j11, j12, j13 = jacobians[0]
    j21, j22, j23 = jacobians[1]
    j31, j32, j33 = jacobians[2]
    return (
        j11*(j22*j33 - j32*j23)
        - j21*(j12*j33 - j32*j13)
        + j31*(j12*j23 - j22*j13))

# }}}


# {{{ operator data

def assemble_operator_data(
        actx: ArrayContext,
        geometry: GeometricFactors,
        quadrature_weights: np.ndarray,
        coefficient: Any = None) -> Array:
    r"""Compute :math:`w_q\, c \det J_e(\xi_q)` at every quadrature point
    of every element.

    :arg quadrature_weights: a :class:`numpy.ndarray` of shape ``(nquad,)``
        with the tensor-product weights on the reference element, enumerated
        as by :meth:`pamass.basis.QuadratureRule1D.tensor_product_weights`.
    :arg coefficient: anything accepted by
        :func:`pamass.coefficient.as_coefficient`; must be constant.
    :returns: a frozen array of shape ``(nelements, nq1d, ..., nq1d)`` with
        *dim* quadrature axes, the last one along :math:`x`.

    :raises UnsupportedCoefficientError: if *coefficient* is not constant.
    :raises UnsupportedDimensionError: if the elements are not 2D or 3D.

    The result is not tied to *geometry* or *coefficient* after it is
    returned. When either changes, the caller must call this again.
    """
    value = get_constant_value(coefficient)
    check_dimension(geometry.dim)

    dim = geometry.dim
    if geometry.ambient_dim != dim:
        raise ValueError(
            f"immersed elements are not supported (dim={dim}, "
            f"ambient_dim={geometry.ambient_dim})")

    quadrature_weights = np.asarray(quadrature_weights, dtype=np.float64)
    if quadrature_weights.shape != (geometry.nquad,):
        raise ValueError(
            f"expected {geometry.nquad} quadrature weights, "
            f"got shape {quadrature_weights.shape}")

    nq1d = int(round(geometry.nquad ** (1/dim)))
    if nq1d**dim != geometry.nquad:
        raise ValueError(
            f"{geometry.nquad} quadrature points do not form a "
            f"tensor-product rule in {dim} dimensions")

    logger.debug("assemble_operator_data: dim=%d nelements=%d nq1d=%d c=%g",
                 dim, geometry.nelements, nq1d, value)

    det_jacobian = jacobian_determinant(actx.thaw(geometry.jacobians))
    scaled_weights = actx.from_numpy(quadrature_weights * value)

    pa_data = actx.einsum("q,eq->eq",
                          scaled_weights, det_jacobian,
                          arg_names=("weights", "det_jacobian"),
                          tagged=(PartialAssemblyDataTag(),))
    pa_data = actx.np.reshape(pa_data, (geometry.nelements,) + (nq1d,)*dim)

    return actx.freeze(
        tag_element_tensor(actx, pa_data, dim,
                           has_components=False, quadrature=True))

# }}}

# vim: foldmethod=marker
