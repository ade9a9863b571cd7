"""
Kernel dispatch
---------------

Selection of the dimension-specific, size-specialized kernels for common
``(D1D, Q1D)`` pairs, falling back to generic runtime-sized kernels for
everything else. Both produce the same results up to rounding; the
specialized ones exist for speed.

Sizes are validated against the limits of the target device here, once,
when the dispatcher is built. Kernels do not check limits.

.. autoclass:: DofQuadLimits
.. data:: CPU_DOF_QUAD_LIMITS
.. data:: GPU_DOF_QUAD_LIMITS
.. data:: SPECIALIZED_SIZES

    A mapping from dimension to the set of ``(nd1d, nq1d)`` pairs with
    specialized kernels.

.. autofunction:: get_dof_quad_limits
.. autofunction:: check_dof_quad_limits

.. autoclass:: KernelDispatcher
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
from dataclasses import dataclass
from functools import partial

from arraycontext import ArrayContext, NumpyArrayContext

from pamass.application import (
    ApplyKernel,
    apply_mass_generic,
    make_specialized_apply_kernel,
)
from pamass.diagonal import (
    DiagonalKernel,
    assemble_diagonal_generic,
    make_specialized_diagonal_kernel,
)
from pamass.errors import DeviceLimitExceededError, check_dimension


logger = logging.getLogger(__name__)


# {{{ device limits

@dataclass(frozen=True)
class DofQuadLimits:
    """Largest number of DOFs and quadrature points per reference axis the
    kernels may be launched with on a device.
    """

    max_d1d: int
    max_q1d: int


CPU_DOF_QUAD_LIMITS = DofQuadLimits(max_d1d=24, max_q1d=24)
GPU_DOF_QUAD_LIMITS = DofQuadLimits(max_d1d=14, max_q1d=14)


def get_dof_quad_limits(actx: ArrayContext) -> DofQuadLimits:
    """Return the limits for the device *actx* executes on. Host limits apply
    to a :class:`~arraycontext.NumpyArrayContext` and to contexts whose
    command queue targets a CPU device, accelerator limits to all other
    devices.
    """
    if isinstance(actx, NumpyArrayContext):
        return CPU_DOF_QUAD_LIMITS

    queue = getattr(actx, "queue", None)
    if queue is not None:
        import pyopencl as cl
        if queue.device.type & cl.device_type.CPU:
            return CPU_DOF_QUAD_LIMITS

    return GPU_DOF_QUAD_LIMITS


def check_dof_quad_limits(nd1d: int, nq1d: int, limits: DofQuadLimits) -> None:
    """
    :raises DeviceLimitExceededError: if *nd1d* or *nq1d* exceed *limits*.
    """
    if nd1d > limits.max_d1d or nq1d > limits.max_q1d:
        raise DeviceLimitExceededError(nd1d, nq1d, limits)

# }}}


# {{{ dispatch table

SPECIALIZED_SIZES: Mapping[int, frozenset[tuple[int, int]]] = {
    2: frozenset([
        (1, 1), (2, 2), (2, 3), (3, 3), (3, 4), (4, 5), (4, 6), (5, 6),
        (6, 7), (7, 8), (8, 9), (9, 10)]),
    3: frozenset([
        (1, 1), (2, 2), (2, 3), (3, 4), (4, 5), (4, 6), (5, 6), (6, 7),
        (7, 8), (8, 9)]),
}


def _make_kernel_table(factory):
    return {
        (dim, nd1d, nq1d): partial(factory, dim, nd1d, nq1d)
        for dim, sizes in SPECIALIZED_SIZES.items()
        for nd1d, nq1d in sizes}


_APPLY_KERNEL_TABLE = _make_kernel_table(make_specialized_apply_kernel)
_DIAGONAL_KERNEL_TABLE = _make_kernel_table(make_specialized_diagonal_kernel)


class KernelDispatcher:
    """Resolves the kernels for one problem size. The choice is made once,
    at construction, and fixed thereafter.

    .. attribute:: dim
    .. attribute:: nd1d
    .. attribute:: nq1d
    .. attribute:: limits
    .. attribute:: is_specialized

        *True* if size-specialized kernels were selected.

    .. attribute:: apply_kernel

        See :mod:`pamass.application`.

    .. attribute:: diagonal_kernel

        See :mod:`pamass.diagonal`.

    :raises UnsupportedDimensionError: if *dim* is not 2 or 3.
    :raises DeviceLimitExceededError: if *nd1d* or *nq1d* exceed *limits*.
    """

    def __init__(self, dim: int, nd1d: int, nq1d: int, *,
                 limits: DofQuadLimits = CPU_DOF_QUAD_LIMITS,
                 use_specialized_kernels: bool = True) -> None:
        check_dimension(dim)
        if nd1d < 1 or nq1d < 1:
            raise ValueError(
                f"sizes must be positive, got nd1d={nd1d}, nq1d={nq1d}")
        check_dof_quad_limits(nd1d, nq1d, limits)

        self.dim = dim
        self.nd1d = nd1d
        self.nq1d = nq1d
        self.limits = limits

        key = (dim, nd1d, nq1d)
        self.is_specialized = (
            use_specialized_kernels and key in _APPLY_KERNEL_TABLE)

        self.apply_kernel: ApplyKernel
        self.diagonal_kernel: DiagonalKernel
        if self.is_specialized:
            self.apply_kernel = _APPLY_KERNEL_TABLE[key]()
            self.diagonal_kernel = _DIAGONAL_KERNEL_TABLE[key]()
        else:
            self.apply_kernel = apply_mass_generic
            self.diagonal_kernel = assemble_diagonal_generic

        logger.info("KernelDispatcher: dim=%d nd1d=%d nq1d=%d -> %s kernels",
                    dim, nd1d, nq1d,
                    "specialized" if self.is_specialized else "generic")

    def __repr__(self) -> str:
        return (f"{type(self).__name__}(dim={self.dim}, nd1d={self.nd1d}, "
                f"nq1d={self.nq1d}, is_specialized={self.is_specialized})")

# }}}

# vim: foldmethod=marker
