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


from pamass.assembly import (
    default_nq1d,
    default_quadrature_exactness,
    jacobian_determinant,
)
from pamass.backends import (
    BACKENDS,
    ElementMatrixBackend,
    MassOperatorBackend,
    SumFactorizationBackend,
    make_backend,
)
from pamass.basis import (
    DofToQuad,
    QuadratureRule1D,
    gauss_legendre_rule,
    make_dof_to_quad,
)
from pamass.coefficient import (
    Coefficient,
    ConstantCoefficient,
    FunctionCoefficient,
    as_coefficient,
)
from pamass.dispatch import (
    CPU_DOF_QUAD_LIMITS,
    GPU_DOF_QUAD_LIMITS,
    DofQuadLimits,
    KernelDispatcher,
    get_dof_quad_limits,
)
from pamass.errors import (
    DeviceLimitExceededError,
    PartialAssemblyError,
    UnsupportedCoefficientError,
    UnsupportedDimensionError,
)
from pamass.geometry import (
    GeometricFactors,
    affine_geometric_factors,
    geometric_factors_from_mesh,
    make_geometric_factors,
)
from pamass.operator import (
    VectorMassConfig,
    VectorMassOperator,
    apply_mass,
    assemble_diagonal,
    assemble_operator_data,
    make_vector_mass_operator,
)
from pamass.version import VERSION, VERSION_STATUS, VERSION_TEXT


__all__ = [
    "BACKENDS",
    "CPU_DOF_QUAD_LIMITS",
    "GPU_DOF_QUAD_LIMITS",
    "VERSION",
    "VERSION_STATUS",
    "VERSION_TEXT",
    "Coefficient",
    "ConstantCoefficient",
    "DeviceLimitExceededError",
    "DofQuadLimits",
    "DofToQuad",
    "ElementMatrixBackend",
    "FunctionCoefficient",
    "GeometricFactors",
    "KernelDispatcher",
    "MassOperatorBackend",
    "PartialAssemblyError",
    "QuadratureRule1D",
    "SumFactorizationBackend",
    "UnsupportedCoefficientError",
    "UnsupportedDimensionError",
    "VectorMassConfig",
    "VectorMassOperator",
    "affine_geometric_factors",
    "apply_mass",
    "as_coefficient",
    "assemble_diagonal",
    "assemble_operator_data",
    "default_nq1d",
    "default_quadrature_exactness",
    "gauss_legendre_rule",
    "geometric_factors_from_mesh",
    "get_dof_quad_limits",
    "jacobian_determinant",
    "make_backend",
    "make_dof_to_quad",
    "make_geometric_factors",
    "make_vector_mass_operator",
]
