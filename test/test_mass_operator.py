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
from functools import reduce

import numpy as np
import numpy.linalg as la
import pytest

import meshmode.mesh.generation as mgen
from arraycontext import pytest_generate_tests_for_array_contexts
from meshmode.mesh import TensorProductElementGroup

from pamass import (
    GPU_DOF_QUAD_LIMITS,
    DeviceLimitExceededError,
    DofQuadLimits,
    FunctionCoefficient,
    UnsupportedCoefficientError,
    UnsupportedDimensionError,
    VectorMassConfig,
    VectorMassOperator,
    affine_geometric_factors,
    apply_mass,
    assemble_diagonal,
    make_backend,
    make_dof_to_quad,
    make_vector_mass_operator,
)
from pamass.array_context import (
    PytestNumpyArrayContextFactory,
    PytestPyOpenCLArrayContextFactory,
    PytestPytatoPyOpenCLArrayContextFactory,
)


logger = logging.getLogger(__name__)

pytest_generate_tests = pytest_generate_tests_for_array_contexts(
        [PytestPyOpenCLArrayContextFactory,
         PytestPytatoPyOpenCLArrayContextFactory,
         PytestNumpyArrayContextFactory])


# {{{ helpers

def _random_affine_matrices(rng, nelements, dim):
    # diagonally dominant, hence positive determinant
    return np.eye(dim) + 0.2*rng.uniform(-1, 1, size=(nelements, dim, dim))


def _make_affine_operator(actx, dim, order, nq1d=None, nelements=4,
                          coefficient=None, seed=0, **kwargs):
    rng = np.random.default_rng(seed=seed)
    if nq1d is None:
        nq1d = order + 1

    dof_to_quad = make_dof_to_quad(order, nq1d)
    matrices = _random_affine_matrices(rng, nelements, dim)
    geometry = affine_geometric_factors(actx, dof_to_quad.quadrature, matrices)

    return VectorMassOperator(actx, geometry, dof_to_quad, coefficient,
                              **kwargs), matrices


def _lagrange_mass_matrix_1d(nodes):
    """Mass matrix of the Lagrange basis on *nodes* over :math:`[0, 1]`,
    by a Gauss rule independent of :mod:`modepy`.
    """
    qnodes, qweights = np.polynomial.legendre.leggauss(12)
    qnodes = 0.5*(qnodes + 1)
    qweights = 0.5*qweights

    phi = np.ones((len(qnodes), len(nodes)))
    for i, node_i in enumerate(nodes):
        for m, node_m in enumerate(nodes):
            if m != i:
                phi[:, i] *= (qnodes - node_m)/(node_i - node_m)

    return phi.T @ (qweights[:, np.newaxis] * phi)


def _to_numpy(actx, ary):
    return actx.to_numpy(actx.thaw(ary))

# }}}


# {{{ exact element matrices

def test_bilinear_unit_square(actx_factory):
    actx = actx_factory()

    dof_to_quad = make_dof_to_quad(1, 2)
    geometry = affine_geometric_factors(
        actx, dof_to_quad.quadrature, np.eye(2)[np.newaxis])
    op = VectorMassOperator(actx, geometry, dof_to_quad, 1.0)

    assert op.dof_shape == (1, 2, 2, 2)
    assert op.ndofs == 8
    assert op.backend.dispatcher.is_specialized

    # with det(J) = 1, the data is the quadrature weight
    pa_data = _to_numpy(actx, op.pa_data)
    assert pa_data.shape == (1, 2, 2)
    assert la.norm(pa_data - 0.25) < 1.0e-14

    x = np.zeros(op.dof_shape)
    x[0, 0, 0, 0] = 1
    y = actx.to_numpy(op.mult(actx.from_numpy(x)))

    expected_row = np.array([1/9, 1/18, 1/18, 1/36])
    assert la.norm(y[0, 0].reshape(-1) - expected_row) < 1.0e-14
    assert la.norm(y[0, 1]) == 0

    mats = actx.to_numpy(op.element_matrices())
    m1 = np.array([[1/3, 1/6], [1/6, 1/3]])
    assert la.norm(mats[0] - np.kron(m1, m1)) < 1.0e-14


@pytest.mark.parametrize("dim", [2, 3])
@pytest.mark.parametrize("order", [1, 2, 4])
def test_apply_matches_kronecker_reference(actx_factory, dim, order):
    actx = actx_factory()
    rng = np.random.default_rng(seed=order)

    op, matrices = _make_affine_operator(
        actx, dim, order, coefficient=0.75, seed=order)
    m1 = _lagrange_mass_matrix_1d(op.dof_to_quad.dof_nodes)
    m_full = reduce(np.kron, [m1]*dim)

    x = rng.normal(size=op.dof_shape)
    y = actx.to_numpy(op.mult(actx.from_numpy(x)))

    nelements, vdim = op.dof_shape[:2]
    x_flat = x.reshape(nelements, vdim, -1)
    y_ref = 0.75 * np.einsum("e,ij,ecj->eci", la.det(matrices), m_full, x_flat)

    assert la.norm(y.reshape(y_ref.shape) - y_ref) <= 1.0e-13 * la.norm(y_ref)

# }}}


# {{{ backends

@pytest.mark.parametrize(("dim", "order", "nq1d"), [
    (2, 1, 2),
    (2, 3, 4),
    (2, 3, 6),
    (3, 1, 2),
    (3, 2, 4),
    ])
@pytest.mark.parametrize("use_specialized_kernels", [True, False])
def test_backends_agree(actx_factory, dim, order, nq1d,
                        use_specialized_kernels):
    actx = actx_factory()
    rng = np.random.default_rng(seed=2)

    op, _ = _make_affine_operator(
        actx, dim, order, nq1d, coefficient=1.5,
        use_specialized_kernels=use_specialized_kernels)
    ref = make_backend("element_matrix", actx, op.dof_to_quad, op.pa_data,
                       op.vdim)

    x = actx.from_numpy(rng.normal(size=op.dof_shape))

    y = actx.to_numpy(op.mult(x))
    y_ref = actx.to_numpy(ref.apply(x))
    assert la.norm(y - y_ref) <= 1.0e-13 * la.norm(y_ref)

    diag = actx.to_numpy(op.assemble_diagonal())
    diag_ref = actx.to_numpy(ref.assemble_diagonal())
    assert la.norm(diag - diag_ref) <= 1.0e-13 * la.norm(diag_ref)

    # diagonal of the explicit element matrices
    mats = actx.to_numpy(ref.element_matrices())
    diag_of_mats = np.diagonal(mats, axis1=1, axis2=2)
    for c in range(op.vdim):
        assert (la.norm(diag[:, c].reshape(diag_of_mats.shape) - diag_of_mats)
                <= 1.0e-13 * la.norm(diag_of_mats))


def test_unknown_backend(actx_factory):
    actx = actx_factory()

    with pytest.raises(ValueError):
        _make_affine_operator(actx, 2, 1, backend="sparse")

# }}}


# {{{ operator properties

@pytest.mark.parametrize("dim", [2, 3])
def test_symmetric_positive_definite(actx_factory, dim):
    actx = actx_factory()
    rng = np.random.default_rng(seed=21)

    op, _ = _make_affine_operator(actx, dim, 2, nelements=3)

    mats = actx.to_numpy(op.element_matrices())
    assert la.norm(mats - mats.transpose(0, 2, 1)) <= 1.0e-14 * la.norm(mats)
    assert np.all(la.eigvalsh(mats) > 0)

    x = rng.normal(size=op.dof_shape)
    z = rng.normal(size=op.dof_shape)
    ax = actx.to_numpy(op.mult(actx.from_numpy(x)))
    az = actx.to_numpy(op.mult(actx.from_numpy(z)))

    assert np.sum(x*ax) > 0
    assert abs(np.sum(z*ax) - np.sum(x*az)) <= 1.0e-13 * la.norm(ax) * la.norm(z)


def test_add_mult_accumulates(actx_factory):
    actx = actx_factory()
    rng = np.random.default_rng(seed=8)

    op, _ = _make_affine_operator(actx, 3, 2, vdim=1)
    assert op.dof_shape == (4, 1, 3, 3, 3)

    x = actx.from_numpy(rng.normal(size=op.dof_shape))
    y_np = rng.normal(size=op.dof_shape)
    y = actx.from_numpy(y_np.copy())

    result = actx.to_numpy(op.add_mult(x, y))
    assert la.norm(result - (y_np + actx.to_numpy(op.mult(x)))) < 1.0e-13
    assert np.array_equal(actx.to_numpy(y), y_np)

    zeros = actx.to_numpy(op.zeros_like_dofs())
    assert zeros.shape == op.dof_shape
    assert not np.any(zeros)

    with pytest.raises(ValueError):
        op.mult(actx.from_numpy(np.zeros((4, 3, 3, 3, 3))))
    with pytest.raises(ValueError):
        op.add_mult(x, actx.from_numpy(np.zeros((4, 1, 2, 2, 2))))


def test_mult_is_deterministic(actx_factory):
    actx = actx_factory()
    rng = np.random.default_rng(seed=4)

    op, _ = _make_affine_operator(actx, 3, 3, nq1d=5)
    x = actx.from_numpy(rng.normal(size=op.dof_shape))

    assert np.array_equal(actx.to_numpy(op.mult(x)), actx.to_numpy(op.mult(x)))
    assert np.array_equal(actx.to_numpy(op.assemble_diagonal()),
                          actx.to_numpy(op.assemble_diagonal()))


def test_coefficient_scales_operator(actx_factory):
    actx = actx_factory()

    op_1, _ = _make_affine_operator(actx, 2, 3, seed=6)
    op_c, _ = _make_affine_operator(actx, 2, 3, coefficient=3.0, seed=6)

    assert la.norm(_to_numpy(actx, op_c.pa_data)
                   - 3*_to_numpy(actx, op_1.pa_data)) < 1.0e-13


@pytest.mark.parametrize("dim", [2, 3])
def test_single_dof_single_point_operator(actx_factory, dim):
    actx = actx_factory()

    dof_to_quad = make_dof_to_quad(0, 1)
    scale = np.diag([2.0, 3.0, 0.5][:dim])
    geometry = affine_geometric_factors(
        actx, dof_to_quad.quadrature, np.tile(scale, (5, 1, 1)))
    op = VectorMassOperator(actx, geometry, dof_to_quad, 2.0)

    assert op.dof_shape == (5, dim) + (1,)*dim

    x = np.arange(op.ndofs, dtype=np.float64).reshape(op.dof_shape)
    y = actx.to_numpy(op.mult(actx.from_numpy(x)))

    assert la.norm(y - 2.0*la.det(scale)*x) <= 1.0e-14 * la.norm(y)
    assert la.norm(actx.to_numpy(op.assemble_diagonal())
                   - 2.0*la.det(scale)) < 1.0e-14


def test_operator_setup_errors(actx_factory):
    actx = actx_factory()

    with pytest.raises(UnsupportedCoefficientError):
        _make_affine_operator(actx, 2, 2, coefficient=lambda x: x[0])
    with pytest.raises(UnsupportedCoefficientError):
        _make_affine_operator(
            actx, 2, 2, coefficient=FunctionCoefficient(np.cos))

    dof_to_quad = make_dof_to_quad(1, 2)
    geometry_1d = affine_geometric_factors(
        actx, dof_to_quad.quadrature, np.ones((3, 1, 1)))
    with pytest.raises(UnsupportedDimensionError):
        VectorMassOperator(actx, geometry_1d, dof_to_quad)

    with pytest.raises(DeviceLimitExceededError):
        _make_affine_operator(actx, 2, 14, nq1d=15,
                              dof_quad_limits=GPU_DOF_QUAD_LIMITS)

    geometry = affine_geometric_factors(
        actx, make_dof_to_quad(1, 3).quadrature, np.eye(2)[np.newaxis])
    with pytest.raises(ValueError):
        VectorMassOperator(actx, geometry, dof_to_quad)

    with pytest.raises(ValueError):
        _make_affine_operator(actx, 2, 1, vdim=0)

# }}}


# {{{ stateless entry points

@pytest.mark.parametrize("dim", [2, 3])
def test_stateless_entry_points(actx_factory, dim):
    actx = actx_factory()
    rng = np.random.default_rng(seed=13)

    op, _ = _make_affine_operator(actx, dim, 2, nq1d=4)
    x = actx.from_numpy(rng.normal(size=op.dof_shape))
    y = actx.from_numpy(rng.normal(size=op.dof_shape))

    assert np.array_equal(
        actx.to_numpy(apply_mass(actx, op.pa_data, op.dof_to_quad, x)),
        actx.to_numpy(op.mult(x)))
    assert la.norm(
        actx.to_numpy(apply_mass(actx, op.pa_data, op.dof_to_quad, x, y))
        - actx.to_numpy(op.add_mult(x, y))) < 1.0e-13
    assert np.array_equal(
        actx.to_numpy(assemble_diagonal(actx, op.pa_data, op.dof_to_quad)),
        actx.to_numpy(op.assemble_diagonal()))

    diag_1 = actx.to_numpy(
        assemble_diagonal(actx, op.pa_data, op.dof_to_quad, 1))
    assert diag_1.shape == (op.nelements, 1) + (3,)*dim

    with pytest.raises(ValueError):
        apply_mass(actx, op.pa_data, make_dof_to_quad(2, 5), x)
    with pytest.raises(ValueError):
        apply_mass(actx, op.pa_data, op.dof_to_quad,
                   actx.from_numpy(np.zeros((op.nelements, dim) + (2,)*dim)))
    with pytest.raises(DeviceLimitExceededError):
        assemble_diagonal(actx, op.pa_data, op.dof_to_quad,
                          dof_quad_limits=DofQuadLimits(2, 2))

# }}}


# {{{ configuration

def test_config_validation():
    config = VectorMassConfig(dim=3, order=2)
    assert config.effective_vdim == 3
    assert config.effective_nq1d() == 4
    assert config.effective_nq1d(mesh_order=2) == 5
    assert VectorMassConfig(dim=2, order=2, nq1d=7).effective_nq1d(3) == 7

    with pytest.raises(UnsupportedDimensionError):
        VectorMassConfig(dim=1, order=2)
    with pytest.raises(ValueError):
        VectorMassConfig(dim=2, order=0)
    with pytest.raises(ValueError):
        VectorMassConfig(dim=2, order=1, vdim=0)
    with pytest.raises(ValueError):
        VectorMassConfig(dim=2, order=1, nq1d=0)
    with pytest.raises(ValueError):
        VectorMassConfig(dim=2, order=1, backend="sparse")
    with pytest.raises(TypeError):
        VectorMassConfig(dim=2, order=1, coefficient="one")

    # non-constant coefficients are only rejected at operator setup
    VectorMassConfig(dim=2, order=1, coefficient=np.sin)


def test_config_from_dict():
    config = VectorMassConfig.from_dict({
        "dim": 2, "order": 3, "coefficient": 1.5,
        "backend": "element_matrix",
        "dof_quad_limits": {"max_d1d": 8, "max_q1d": 8},
        })

    assert config == VectorMassConfig(
        dim=2, order=3, coefficient=1.5, backend="element_matrix",
        dof_quad_limits=DofQuadLimits(8, 8))

    with pytest.raises(ValueError):
        VectorMassConfig.from_dict({"dim": 2, "order": 3, "degree": 3})

# }}}


# {{{ meshes

@pytest.mark.parametrize(("dim", "b", "nelements_per_axis"), [
    (2, (2, 1), (4, 3)),
    (3, (1, 2, 1), (2, 3, 2)),
    ])
@pytest.mark.parametrize("mesh_order", [1, 2])
def test_total_mass_on_box(actx_factory, dim, b, nelements_per_axis,
                           mesh_order):
    actx = actx_factory()

    mesh = mgen.generate_regular_rect_mesh(
            a=(0,)*dim, b=b,
            nelements_per_axis=nelements_per_axis,
            order=mesh_order,
            group_cls=TensorProductElementGroup)

    op = make_vector_mass_operator(
        actx, mesh, VectorMassConfig(dim=dim, order=3, coefficient=1.5))
    assert op.vdim == dim
    assert op.nq1d == (6 + dim*mesh_order - 1)//2 + 1

    ones = op.zeros_like_dofs() + 1
    y = actx.to_numpy(op.mult(ones))

    # the orientation is up to the mesh generator, but shared by all elements
    per_element = y.reshape(op.nelements, op.vdim, -1).sum(axis=-1)
    orientation = np.sign(per_element[0, 0])
    assert orientation != 0
    assert np.all(orientation*per_element > 0)

    volume = np.prod(b)
    assert la.norm(orientation*per_element.sum(axis=0) - 1.5*volume) < 1.0e-12


@pytest.mark.parametrize("dim", [2, 3])
def test_warped_mesh_backends_agree(actx_factory, dim):
    actx = actx_factory()
    rng = np.random.default_rng(seed=31)

    mesh = mgen.generate_warped_rect_mesh(
            dim=dim, order=1, nelements_side=3,
            group_cls=TensorProductElementGroup)

    ops = [
        make_vector_mass_operator(
            actx, mesh, VectorMassConfig(dim=dim, order=2, backend=backend))
        for backend in ["sum_factorization", "element_matrix"]]

    x = actx.from_numpy(rng.normal(size=ops[0].dof_shape))
    y, y_ref = (actx.to_numpy(op.mult(x)) for op in ops)
    assert la.norm(y - y_ref) <= 1.0e-13 * la.norm(y_ref)

    diag, diag_ref = (actx.to_numpy(op.assemble_diagonal()) for op in ops)
    assert la.norm(diag - diag_ref) <= 1.0e-13 * la.norm(diag_ref)

    # element volumes do not depend on the polynomial order
    volumes = (_to_numpy(actx, ops[0].pa_data)
               .reshape(mesh.nelements, -1).sum(axis=-1))
    op_high = make_vector_mass_operator(
        actx, mesh, VectorMassConfig(dim=dim, order=4))
    volumes_high = (_to_numpy(actx, op_high.pa_data)
                    .reshape(mesh.nelements, -1).sum(axis=-1))
    assert la.norm(volumes - volumes_high) <= 1.0e-12 * la.norm(volumes)


def test_mesh_setup_errors(actx_factory):
    actx = actx_factory()

    mesh = mgen.generate_regular_rect_mesh(
            a=(0, 0), b=(1, 1), nelements_per_axis=(2, 2),
            group_cls=TensorProductElementGroup)

    with pytest.raises(ValueError):
        make_vector_mass_operator(actx, mesh, VectorMassConfig(dim=3, order=1))

    with pytest.raises(UnsupportedCoefficientError):
        make_vector_mass_operator(
            actx, mesh,
            VectorMassConfig(dim=2, order=1, coefficient=lambda x: x[0]))

    with pytest.raises(DeviceLimitExceededError):
        make_vector_mass_operator(
            actx, mesh,
            VectorMassConfig(dim=2, order=15,
                             dof_quad_limits=GPU_DOF_QUAD_LIMITS))

# }}}


# You can test individual routines by typing
# $ python test_mass_operator.py 'test_routine()'

if __name__ == "__main__":
    import sys
    if len(sys.argv) > 1:
        exec(sys.argv[1])
    else:
        pytest.main([__file__])

# vim: fdm=marker
