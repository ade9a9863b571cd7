"""
Coefficients
------------

.. autoclass:: Coefficient
.. autoclass:: ConstantCoefficient
.. autoclass:: FunctionCoefficient

.. autofunction:: as_coefficient
.. autofunction:: get_constant_value
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
from dataclasses import dataclass
from numbers import Number
from typing import Any

import numpy as np

from pamass.errors import UnsupportedCoefficientError


class Coefficient:
    """A scalar field multiplying the integrand of the mass form."""

    @property
    def is_constant(self) -> bool:
        raise NotImplementedError


@dataclass(frozen=True)
class ConstantCoefficient(Coefficient):
    value: float = 1.0

    @property
    def is_constant(self) -> bool:
        return True


@dataclass(frozen=True)
class FunctionCoefficient(Coefficient):
    """A coefficient given pointwise by *function*, which receives an object
    array of physical coordinates. The partial assembly kernels reject it;
    it exists so that callers can describe such a coefficient and receive
    :exc:`~pamass.errors.UnsupportedCoefficientError` at setup.
    """

    function: Callable[[Any], Any]

    @property
    def is_constant(self) -> bool:
        return False


def as_coefficient(coefficient: Any) -> Coefficient:
    """Convert *None* (meaning one), a scalar or a :class:`Coefficient` to a
    :class:`Coefficient`. Callables become :class:`FunctionCoefficient`.
    """
    if coefficient is None:
        return ConstantCoefficient(1.0)
    if isinstance(coefficient, Coefficient):
        return coefficient
    if isinstance(coefficient, (Number, np.number)):
        return ConstantCoefficient(float(coefficient))
    if callable(coefficient):
        return FunctionCoefficient(coefficient)

    raise TypeError(
        f"cannot interpret object of type '{type(coefficient).__name__}' "
        "as a coefficient")


def get_constant_value(coefficient: Any) -> float:
    """Return the value of a spatially constant coefficient.

    :raises UnsupportedCoefficientError: if *coefficient* is not constant
        or is not a :class:`ConstantCoefficient`.
    """
    coefficient = as_coefficient(coefficient)
    if not coefficient.is_constant:
        raise UnsupportedCoefficientError(
            f"only constant coefficients are supported by partial "
            f"assembly, got '{type(coefficient).__name__}'")

    if not isinstance(coefficient, ConstantCoefficient):
        raise UnsupportedCoefficientError(
            f"constant coefficients must be given as ConstantCoefficient, "
            f"got '{type(coefficient).__name__}'")

    return coefficient.value

# vim: foldmethod=marker
