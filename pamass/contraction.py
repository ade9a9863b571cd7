"""
Tensor contractions
-------------------

Building blocks shared by the generic (runtime-sized) kernels. Element-local
tensors have shape ``(nelements, [ncomponents,] n, ..., n)``, with the
reference axis :math:`x` last.

.. autofunction:: single_axis_contraction
.. autofunction:: scale_by_operator_data
.. autofunction:: replicate_components
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

import numpy as np

from arraycontext import Array, ArrayContext, tag_axes
from meshmode.transform_metadata import DiscretizationElementAxisTag
from pytools import memoize_in

from pamass.metadata import VectorComponentAxisTag


# letters for the untouched tensor-product axes, by array position
_TP_AXIS_LETTERS = "uvw"


def _tensor_axes_spec(dim: int, pos: int | None = None, letter: str = "") -> str:
    return "".join(
        letter if p == pos else _TP_AXIS_LETTERS[p]
        for p in range(dim))


def _batch_spec(has_components: bool) -> str:
    return "ec" if has_components else "e"


def _tag_batch_axes(actx: ArrayContext, ary: Array,
                    has_components: bool) -> Array:
    tags = {0: DiscretizationElementAxisTag()}
    if has_components:
        tags[1] = VectorComponentAxisTag()

    return tag_axes(actx, tags, ary)


def single_axis_contraction(
        actx: ArrayContext,
        dim: int,
        axis: int,
        operator: Array,
        data: Array, *,
        has_components: bool = True,
        transpose_operator: bool = False,
        arg_names: tuple[str, str] | None = None) -> Array:
    """Apply a 1D *operator* along reference axis *axis* (``0`` is
    :math:`x`) of every element-local tensor in *data*.

    *operator* has shape ``(nout, nin)``, or ``(nin, nout)`` if
    *transpose_operator* is set. The einsum specification is built from
    *dim*, so the same routine serves 2D and 3D.
    """
    if not 0 <= axis < dim:
        raise ValueError(f"axis {axis} out of range for dimension {dim}")

    pos = dim - 1 - axis
    batch = _batch_spec(has_components)

    operator_spec = "ji" if transpose_operator else "ij"
    data_spec = batch + _tensor_axes_spec(dim, pos, "j")
    out_spec = batch + _tensor_axes_spec(dim, pos, "i")

    return _tag_batch_axes(
        actx,
        actx.einsum(f"{operator_spec},{data_spec}->{out_spec}",
                    operator, data, arg_names=arg_names),
        has_components)


def scale_by_operator_data(
        actx: ArrayContext,
        dim: int,
        pa_data: Array,
        data: Array, *,
        has_components: bool = True) -> Array:
    """Multiply quadrature-point values in *data* pointwise by *pa_data*,
    broadcasting over vector components.
    """
    tp_spec = _tensor_axes_spec(dim)
    batch = _batch_spec(has_components)

    return _tag_batch_axes(
        actx,
        actx.einsum(f"e{tp_spec},{batch}{tp_spec}->{batch}{tp_spec}",
                    pa_data, data, arg_names=("pa_data", "quad_values")),
        has_components)


def component_ones(actx: ArrayContext, ncomponents: int) -> Array:
    @memoize_in(actx, (component_ones, ncomponents))
    def get_ones():
        return actx.freeze(actx.from_numpy(np.ones(ncomponents)))

    return actx.thaw(get_ones())


def replicate_components(
        actx: ArrayContext,
        dim: int,
        data: Array,
        ncomponents: int) -> Array:
    """Broadcast scalar element-local tensors in *data* to *ncomponents*
    identical vector components.
    """
    tp_spec = _tensor_axes_spec(dim)

    return _tag_batch_axes(
        actx,
        actx.einsum(f"c,e{tp_spec}->ec{tp_spec}",
                    component_ones(actx, ncomponents), data,
                    arg_names=("ones", "scalar_data")),
        has_components=True)

# vim: foldmethod=marker
