"""
Setup errors
------------

All of these are raised while an operator is being set up or its
quadrature-point data is being assembled, never from within a kernel.

.. autoexception:: PartialAssemblyError
.. autoexception:: UnsupportedCoefficientError
.. autoexception:: UnsupportedDimensionError
.. autoexception:: DeviceLimitExceededError
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


SUPPORTED_DIMENSIONS = (2, 3)


class PartialAssemblyError(ValueError):
    """Base class for configurations the partial assembly kernels cannot
    handle. Callers may catch this to fall back to a different
    (non-matrix-free) discretization of the operator.
    """


class UnsupportedCoefficientError(PartialAssemblyError):
    """Raised when the coefficient of the mass operator is not spatially
    constant.
    """


class UnsupportedDimensionError(PartialAssemblyError):
    def __init__(self, dim: int) -> None:
        super().__init__(
            f"dimension {dim} not supported, "
            f"expected one of {SUPPORTED_DIMENSIONS}")
        self.dim = dim


class DeviceLimitExceededError(PartialAssemblyError):
    """Raised when the number of DOFs or quadrature points per reference
    axis exceeds what the kernels were sized for on the target device.

    .. attribute:: nd1d
    .. attribute:: nq1d
    .. attribute:: limits

        A :class:`~pamass.dispatch.DofQuadLimits`.
    """

    def __init__(self, nd1d: int, nq1d: int, limits) -> None:
        super().__init__(
            f"(D1D, Q1D) = ({nd1d}, {nq1d}) exceeds device limits "
            f"(max_d1d={limits.max_d1d}, max_q1d={limits.max_q1d})")
        self.nd1d = nd1d
        self.nq1d = nq1d
        self.limits = limits


def check_dimension(dim: int) -> None:
    if dim not in SUPPORTED_DIMENSIONS:
        raise UnsupportedDimensionError(dim)

# vim: foldmethod=marker
