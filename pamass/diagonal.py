r"""
Diagonal kernels
----------------

Kernels computing the diagonal of the assembled vector mass operator
without forming off-diagonal entries. For the DOF with multi-index
:math:`(i, j)` in 2D,

.. math::

    A_{(ij),(ij)} = \sum_{p, q} B_{pj}^2 B_{qi}^2 d_{pq},

where :math:`d` is the quadrature-point data. The squared 1D basis is
folded against :math:`d` one axis at a time, :math:`z` first (3D), then
:math:`y`, then :math:`x`. The result is identical for all vector
components.

All kernels share the signature
``kernel(actx, basis_squared, pa_data, ncomponents)``, where
``basis_squared`` is the elementwise square of the ``(nq1d, nd1d)``
interpolation matrix.

.. autofunction:: assemble_diagonal_generic
.. autofunction:: make_specialized_diagonal_kernel
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

from collections.abc import Callable

from arraycontext import Array, ArrayContext
from pytools import memoize

from pamass.contraction import (
    component_ones,
    replicate_components,
    single_axis_contraction,
)
from pamass.errors import check_dimension
from pamass.metadata import tag_element_tensor


DiagonalKernel = Callable[[ArrayContext, Array, Array, int], Array]


# {{{ generic

def assemble_diagonal_generic(actx: ArrayContext,
                              basis_squared: Array,
                              pa_data: Array,
                              ncomponents: int) -> Array:
    """Compute the operator diagonal for any dimension and size.

    :returns: an array of shape ``(nelements, ncomponents, nd1d, ..., nd1d)``.
    """
    dim = len(pa_data.shape) - 1

    diag = pa_data
    for axis in reversed(range(dim)):
        diag = single_axis_contraction(
            actx, dim, axis, basis_squared, diag,
            has_components=False, transpose_operator=True,
            arg_names=("basis_squared", f"diag_fold_{axis}"))

    return tag_element_tensor(
        actx, replicate_components(actx, dim, diag, ncomponents),
        dim, has_components=True)

# }}}


# {{{ specialized

def _diagonal_2d(actx, basis_squared, pa_data, ones):
    # i, j: dofs along x, y; q, p: quadrature points along x, y
    temp = actx.einsum("pj,epq->ejq", basis_squared, pa_data,
                       arg_names=("basis_squared", "pa_data"))
    return actx.einsum("qi,ejq,c->ecji", basis_squared, temp, ones,
                       arg_names=("basis_squared", "temp", "ones"))


def _diagonal_3d(actx, basis_squared, pa_data, ones):
    # i, j, k: dofs along x, y, z; q, p, r: quadrature points along x, y, z
    temp = actx.einsum("rk,erpq->ekpq", basis_squared, pa_data,
                       arg_names=("basis_squared", "pa_data"))
    temp2 = actx.einsum("pj,ekpq->ekjq", basis_squared, temp,
                        arg_names=("basis_squared", "temp"))
    return actx.einsum("qi,ekjq,c->eckji", basis_squared, temp2, ones,
                       arg_names=("basis_squared", "temp2", "ones"))


@memoize
def make_specialized_diagonal_kernel(
        dim: int, nd1d: int, nq1d: int) -> DiagonalKernel:
    """Return a diagonal kernel for fixed *dim*, *nd1d* and *nq1d*, with the
    replication over vector components fused into the last fold.
    """
    check_dimension(dim)
    diagonal_for_dim = {2: _diagonal_2d, 3: _diagonal_3d}[dim]

    def diagonal_kernel(actx: ArrayContext,
                        basis_squared: Array,
                        pa_data: Array,
                        ncomponents: int) -> Array:
        if basis_squared.shape != (nq1d, nd1d):
            raise ValueError(
                f"kernel built for basis of shape {(nq1d, nd1d)}, "
                f"got {basis_squared.shape}")
        if pa_data.shape[1:] != (nq1d,)*dim:
            raise ValueError(
                f"kernel built for {(nq1d,)*dim} quadrature points per "
                f"element, got pa_data of shape {pa_data.shape}")

        return tag_element_tensor(
            actx,
            diagonal_for_dim(actx, basis_squared, pa_data,
                             component_ones(actx, ncomponents)),
            dim, has_components=True)

    diagonal_kernel.__name__ = f"assemble_diagonal_{dim}d_d{nd1d}_q{nq1d}"
    return diagonal_kernel

# }}}

# vim: foldmethod=marker
