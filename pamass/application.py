r"""
Operator application kernels
----------------------------

Kernels computing :math:`A x` for the partially assembled vector mass
operator by sum factorization:

1. interpolate DOF values to quadrature points one reference axis at a
   time (:math:`x`, then :math:`y`, then :math:`z`) with :math:`B`,
2. scale pointwise by the quadrature-point data,
3. integrate back against the test functions with :math:`B^T`, one axis
   at a time in reverse order.

Every vector component goes through the same contractions. Per element,
each step costs :math:`O(n_{d}^{d} n_q)` operations (for
:math:`n_d \le n_q`), compared to :math:`O(n_d^{2d})` for an elemental
matrix-vector product.

All kernels share the signature ``kernel(actx, basis, basis_t, pa_data, x)``
and return :math:`A x` (not accumulated into anything).

.. autofunction:: apply_mass_generic
.. autofunction:: make_specialized_apply_kernel
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

from pamass.contraction import scale_by_operator_data, single_axis_contraction
from pamass.errors import check_dimension
from pamass.metadata import tag_element_tensor


ApplyKernel = Callable[[ArrayContext, Array, Array, Array, Array], Array]


def _check_element_tensor(ary: Array, dim: int, n: int, name: str,
                          has_components: bool) -> None:
    expected_ndim = dim + (2 if has_components else 1)
    if len(ary.shape) != expected_ndim or ary.shape[-dim:] != (n,)*dim:
        raise ValueError(
            f"'{name}' has shape {ary.shape}, expected trailing axes "
            f"{(n,)*dim} and {expected_ndim} axes in total")


# {{{ generic

def apply_mass_generic(actx: ArrayContext,
                       basis: Array, basis_t: Array,
                       pa_data: Array, x: Array) -> Array:
    """Apply the operator for any dimension and any number of DOFs and
    quadrature points per axis, looping over reference axes.

    :arg basis: the 1D interpolation matrix of shape ``(nq1d, nd1d)``.
    :arg basis_t: its transpose.
    :arg pa_data: quadrature-point data of shape
        ``(nelements, nq1d, ..., nq1d)``.
    :arg x: DOF values of shape ``(nelements, ncomponents, nd1d, ..., nd1d)``.
    """
    dim = len(pa_data.shape) - 1

    u = x
    for axis in range(dim):
        u = single_axis_contraction(actx, dim, axis, basis, u,
                                    arg_names=("basis", f"dof_to_quad_{axis}"))

    u = scale_by_operator_data(actx, dim, pa_data, u)

    for axis in reversed(range(dim)):
        u = single_axis_contraction(actx, dim, axis, basis_t, u,
                                    arg_names=("basis_t", f"quad_to_dof_{axis}"))

    return tag_element_tensor(actx, u, dim, has_components=True)

# }}}


# {{{ specialized

def _apply_2d(actx, basis, basis_t, pa_data, x):
    # i, j: dofs along x, y; q, p: quadrature points along x, y
    sol_x = actx.einsum("qi,ecji->ecjq", basis, x,
                        arg_names=("basis", "x"))
    sol_xy = actx.einsum("pj,ecjq->ecpq", basis, sol_x,
                         arg_names=("basis", "sol_x"))
    sol_x = actx.einsum("iq,epq,ecpq->ecpi", basis_t, pa_data, sol_xy,
                        arg_names=("basis_t", "pa_data", "sol_xy"))
    return actx.einsum("jp,ecpi->ecji", basis_t, sol_x,
                       arg_names=("basis_t", "sol_x"))


def _apply_3d(actx, basis, basis_t, pa_data, x):
    # i, j, k: dofs along x, y, z; q, p, r: quadrature points along x, y, z
    sol_x = actx.einsum("qi,eckji->eckjq", basis, x,
                        arg_names=("basis", "x"))
    sol_xy = actx.einsum("pj,eckjq->eckpq", basis, sol_x,
                         arg_names=("basis", "sol_x"))
    sol_xyz = actx.einsum("rk,eckpq->ecrpq", basis, sol_xy,
                          arg_names=("basis", "sol_xy"))
    sol_xy = actx.einsum("iq,erpq,ecrpq->ecrpi", basis_t, pa_data, sol_xyz,
                         arg_names=("basis_t", "pa_data", "sol_xyz"))
    sol_x = actx.einsum("jp,ecrpi->ecrji", basis_t, sol_xy,
                        arg_names=("basis_t", "sol_xy"))
    return actx.einsum("kr,ecrji->eckji", basis_t, sol_x,
                       arg_names=("basis_t", "sol_x"))


@memoize
def make_specialized_apply_kernel(dim: int, nd1d: int, nq1d: int) -> ApplyKernel:
    """Return a kernel for fixed *dim*, *nd1d* and *nq1d*. The contraction
    sequence is written out for the dimension and the pointwise scaling is
    fused into the first backward contraction. Arguments of any other size
    are rejected.
    """
    check_dimension(dim)
    apply_for_dim = {2: _apply_2d, 3: _apply_3d}[dim]

    def apply_kernel(actx: ArrayContext,
                     basis: Array, basis_t: Array,
                     pa_data: Array, x: Array) -> Array:
        if basis.shape != (nq1d, nd1d):
            raise ValueError(
                f"kernel built for basis of shape {(nq1d, nd1d)}, "
                f"got {basis.shape}")
        _check_element_tensor(pa_data, dim, nq1d, "pa_data",
                              has_components=False)
        _check_element_tensor(x, dim, nd1d, "x", has_components=True)

        return tag_element_tensor(
            actx, apply_for_dim(actx, basis, basis_t, pa_data, x),
            dim, has_components=True)

    apply_kernel.__name__ = f"apply_mass_{dim}d_d{nd1d}_q{nq1d}"
    return apply_kernel

# }}}

# vim: foldmethod=marker
