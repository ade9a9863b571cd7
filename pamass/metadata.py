"""
Array axis metadata
-------------------

Tags attached to the axes of arrays produced by the kernels, so that device
array contexts can map the element axis to parallel work items.

.. autoclass:: TensorProductDOFAxisTag
.. autoclass:: TensorProductQuadratureAxisTag
.. autoclass:: TensorProductOperatorAxisTag
.. autoclass:: VectorComponentAxisTag
.. autoclass:: PartialAssemblyDataTag

.. autofunction:: tag_element_tensor
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

from pytato.transform.metadata import AxisIgnoredForPropagationTag

from arraycontext import Array, ArrayContext, tag_axes
from meshmode.transform_metadata import (
    DiscretizationDOFAxisTag,
    DiscretizationElementAxisTag,
    DiscretizationEntityAxisTag,
)
from pytools.tag import Tag, tag_dataclass


@tag_dataclass
class TensorProductDOFAxisTag(DiscretizationEntityAxisTag):
    """
    Signify an axis as holding DOFs along reference axis *iaxis* of a
    tensor-product element (``0`` is :math:`x`).
    """
    iaxis: int


@tag_dataclass
class TensorProductQuadratureAxisTag(DiscretizationEntityAxisTag):
    """
    Signify an axis as holding quadrature points along reference axis
    *iaxis* of a tensor-product element.
    """
    iaxis: int


class TensorProductOperatorAxisTag(DiscretizationDOFAxisTag,
                                   AxisIgnoredForPropagationTag):
    """
    Signify an axis is part of a 1D operator applied to a tensor-product
    discretization. Axis tags are not propagated to or along such axes, so
    the element DOF axes of a contraction keep their own tags.
    """
    pass


class VectorComponentAxisTag(DiscretizationEntityAxisTag):
    """
    Signify an axis as enumerating the independent components of a
    vector-valued field.
    """
    pass


class PartialAssemblyDataTag(Tag):
    """
    Tag an array as holding the quadrature-point data of a partially
    assembled operator.
    """
    pass


def tag_element_tensor(actx: ArrayContext, ary: Array, dim: int, *,
                       has_components: bool,
                       quadrature: bool = False) -> Array:
    """Tag the axes of an element-local tensor of shape
    ``(nelements, [ncomponents,] n, ..., n)`` with *dim* trailing
    tensor-product axes, the last of which is :math:`x`.
    """
    axis_tag_cls = (TensorProductQuadratureAxisTag if quadrature
                    else TensorProductDOFAxisTag)

    tags = {0: DiscretizationElementAxisTag()}
    offset = 1
    if has_components:
        tags[1] = VectorComponentAxisTag()
        offset = 2

    for i in range(dim):
        tags[offset + i] = axis_tag_cls(dim - 1 - i)

    return tag_axes(actx, tags, ary)

# vim: foldmethod=marker
