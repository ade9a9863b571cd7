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

import numpy as np
import numpy.linalg as la
import pyopencl as cl
import pytest

from arraycontext import (
    NumpyArrayContext,
    pytest_generate_tests_for_array_contexts,
)

from pamass.application import apply_mass_generic, make_specialized_apply_kernel
from pamass.array_context import (
    PytestNumpyArrayContextFactory,
    PytestPyOpenCLArrayContextFactory,
    PytestPytatoPyOpenCLArrayContextFactory,
)
from pamass.basis import make_dof_to_quad
from pamass.diagonal import (
    assemble_diagonal_generic,
    make_specialized_diagonal_kernel,
)
from pamass.dispatch import (
    CPU_DOF_QUAD_LIMITS,
    GPU_DOF_QUAD_LIMITS,
    SPECIALIZED_SIZES,
    DofQuadLimits,
    KernelDispatcher,
    check_dof_quad_limits,
    get_dof_quad_limits,
)
from pamass.errors import DeviceLimitExceededError, UnsupportedDimensionError


logger = logging.getLogger(__name__)

pytest_generate_tests = pytest_generate_tests_for_array_contexts(
        [PytestPyOpenCLArrayContextFactory,
         PytestPytatoPyOpenCLArrayContextFactory,
         PytestNumpyArrayContextFactory])


def _random_kernel_args(actx, rng, dim, nd1d, nq1d, nelements=3, vdim=None):
    if vdim is None:
        vdim = dim

    dof_to_quad = make_dof_to_quad(nd1d - 1, nq1d)
    pa_data = actx.from_numpy(
        rng.uniform(0.5, 1.5, size=(nelements,) + (nq1d,)*dim))
    x = actx.from_numpy(
        rng.normal(size=(nelements, vdim) + (nd1d,)*dim))

    return dof_to_quad, pa_data, x


def _diagonal_from_unit_vectors(apply, shape):
    """Recover the diagonal of the element-block-diagonal operator *apply*
    by applying it to one unit vector per local DOF, in all elements at once.
    """
    diag = np.empty(shape)
    for idx in np.ndindex(*shape[1:]):
        x = np.zeros(shape)
        x[(slice(None),) + idx] = 1
        diag[(slice(None),) + idx] = apply(x)[(slice(None),) + idx]

    return diag


# {{{ specialized vs. generic

SPECIALIZED_CASES = sorted(
    (dim, nd1d, nq1d)
    for dim, sizes in SPECIALIZED_SIZES.items()
    for nd1d, nq1d in sizes)


@pytest.mark.parametrize(("dim", "nd1d", "nq1d"), SPECIALIZED_CASES)
def test_specialized_apply_matches_generic(actx_factory, dim, nd1d, nq1d):
    actx = actx_factory()
    rng = np.random.default_rng(seed=dim*100 + nd1d*10 + nq1d)

    dof_to_quad, pa_data, x = _random_kernel_args(actx, rng, dim, nd1d, nq1d)
    basis = actx.thaw(dof_to_quad.frozen_basis(actx))
    basis_t = actx.thaw(dof_to_quad.frozen_basis_transpose(actx))

    kernel = make_specialized_apply_kernel(dim, nd1d, nq1d)
    y_specialized = actx.to_numpy(kernel(actx, basis, basis_t, pa_data, x))
    y_generic = actx.to_numpy(
        apply_mass_generic(actx, basis, basis_t, pa_data, x))

    assert y_specialized.shape == x.shape
    assert (la.norm(y_specialized - y_generic)
            <= 1.0e-13 * la.norm(y_generic))


@pytest.mark.parametrize(("dim", "nd1d", "nq1d"), SPECIALIZED_CASES)
def test_specialized_diagonal_matches_generic(actx_factory, dim, nd1d, nq1d):
    actx = actx_factory()
    rng = np.random.default_rng(seed=dim*100 + nd1d*10 + nq1d)

    dof_to_quad, pa_data, _ = _random_kernel_args(actx, rng, dim, nd1d, nq1d)
    basis_squared = actx.thaw(dof_to_quad.frozen_basis_squared(actx))

    kernel = make_specialized_diagonal_kernel(dim, nd1d, nq1d)
    diag_specialized = actx.to_numpy(
        kernel(actx, basis_squared, pa_data, dim))
    diag_generic = actx.to_numpy(
        assemble_diagonal_generic(actx, basis_squared, pa_data, dim))

    assert diag_specialized.shape == (3, dim) + (nd1d,)*dim
    assert (la.norm(diag_specialized - diag_generic)
            <= 1.0e-13 * la.norm(diag_generic))


def test_specialized_kernel_rejects_other_sizes(actx_factory):
    actx = actx_factory()
    rng = np.random.default_rng(seed=0)

    dof_to_quad, pa_data, x = _random_kernel_args(actx, rng, 2, 3, 4)
    apply_kernel = make_specialized_apply_kernel(2, 4, 5)
    diagonal_kernel = make_specialized_diagonal_kernel(2, 4, 5)

    with pytest.raises(ValueError):
        apply_kernel(actx,
                     actx.thaw(dof_to_quad.frozen_basis(actx)),
                     actx.thaw(dof_to_quad.frozen_basis_transpose(actx)),
                     pa_data, x)

    with pytest.raises(ValueError):
        diagonal_kernel(actx, actx.thaw(dof_to_quad.frozen_basis_squared(actx)),
                        pa_data, 2)

    assert make_specialized_apply_kernel(2, 4, 5) is apply_kernel
    assert apply_kernel.__name__ == "apply_mass_2d_d4_q5"

# }}}


# {{{ generic kernels

@pytest.mark.parametrize(("dim", "nd1d", "nq1d"), [
    (2, 3, 3),
    (2, 4, 7),
    (3, 2, 4),
    (3, 3, 3),
    ])
def test_diagonal_matches_unit_vector_apply(actx_factory, dim, nd1d, nq1d):
    actx = actx_factory()
    rng = np.random.default_rng(seed=5)

    vdim = 2
    dof_to_quad, pa_data, x = _random_kernel_args(
        actx, rng, dim, nd1d, nq1d, vdim=vdim)
    basis = actx.thaw(dof_to_quad.frozen_basis(actx))
    basis_t = actx.thaw(dof_to_quad.frozen_basis_transpose(actx))

    def apply(x_np):
        return actx.to_numpy(apply_mass_generic(
            actx, basis, basis_t, pa_data, actx.from_numpy(x_np)))

    diag_unit = _diagonal_from_unit_vectors(apply, x.shape)
    diag = actx.to_numpy(assemble_diagonal_generic(
        actx, actx.thaw(dof_to_quad.frozen_basis_squared(actx)), pa_data, vdim))

    assert la.norm(diag - diag_unit) <= 1.0e-13 * la.norm(diag_unit)

    # every component carries the same diagonal
    assert np.array_equal(diag[:, 0], diag[:, 1])


@pytest.mark.parametrize("dim", [2, 3])
def test_single_dof_single_point(actx_factory, dim):
    actx = actx_factory()
    rng = np.random.default_rng(seed=11)

    dof_to_quad, pa_data, x = _random_kernel_args(actx, rng, dim, 1, 1)
    basis = actx.thaw(dof_to_quad.frozen_basis(actx))
    basis_t = actx.thaw(dof_to_quad.frozen_basis_transpose(actx))

    pa_data_np = actx.to_numpy(pa_data)
    x_np = actx.to_numpy(x)
    expected = pa_data_np[:, np.newaxis] * x_np

    for kernel in [apply_mass_generic,
                   make_specialized_apply_kernel(dim, 1, 1)]:
        y = actx.to_numpy(kernel(actx, basis, basis_t, pa_data, x))
        assert la.norm(y - expected) <= 1.0e-15 * la.norm(expected)

    diag = actx.to_numpy(assemble_diagonal_generic(
        actx, actx.thaw(dof_to_quad.frozen_basis_squared(actx)), pa_data, dim))
    assert la.norm(diag - np.broadcast_to(
        pa_data_np[:, np.newaxis], diag.shape)) < 1.0e-15


def test_apply_is_deterministic(actx_factory):
    actx = actx_factory()
    rng = np.random.default_rng(seed=9)

    dof_to_quad, pa_data, x = _random_kernel_args(actx, rng, 3, 4, 6)
    basis = actx.thaw(dof_to_quad.frozen_basis(actx))
    basis_t = actx.thaw(dof_to_quad.frozen_basis_transpose(actx))

    y1 = actx.to_numpy(apply_mass_generic(actx, basis, basis_t, pa_data, x))
    y2 = actx.to_numpy(apply_mass_generic(actx, basis, basis_t, pa_data, x))

    assert np.array_equal(y1, y2)

# }}}


# {{{ dispatch

def test_dispatcher_selection():
    dispatcher = KernelDispatcher(2, 4, 5)
    assert dispatcher.is_specialized
    assert dispatcher.apply_kernel.__name__ == "apply_mass_2d_d4_q5"
    assert dispatcher.diagonal_kernel.__name__ == "assemble_diagonal_2d_d4_q5"

    dispatcher = KernelDispatcher(3, 3, 3)
    assert not dispatcher.is_specialized
    assert dispatcher.apply_kernel is apply_mass_generic
    assert dispatcher.diagonal_kernel is assemble_diagonal_generic

    dispatcher = KernelDispatcher(2, 4, 5, use_specialized_kernels=False)
    assert not dispatcher.is_specialized
    assert dispatcher.apply_kernel is apply_mass_generic

    # sizes past the specialized table, but within device limits
    dispatcher = KernelDispatcher(2, 12, 14, limits=GPU_DOF_QUAD_LIMITS)
    assert not dispatcher.is_specialized


def test_dispatcher_errors():
    with pytest.raises(UnsupportedDimensionError):
        KernelDispatcher(1, 2, 2)
    with pytest.raises(UnsupportedDimensionError):
        KernelDispatcher(4, 2, 2)

    with pytest.raises(ValueError):
        KernelDispatcher(2, 0, 2)

    with pytest.raises(DeviceLimitExceededError) as excinfo:
        KernelDispatcher(3, 14, 15, limits=GPU_DOF_QUAD_LIMITS)
    assert excinfo.value.nd1d == 14
    assert excinfo.value.nq1d == 15
    assert excinfo.value.limits == GPU_DOF_QUAD_LIMITS

    with pytest.raises(DeviceLimitExceededError):
        KernelDispatcher(2, 25, 25, limits=CPU_DOF_QUAD_LIMITS)

    KernelDispatcher(2, 24, 24, limits=CPU_DOF_QUAD_LIMITS)
    KernelDispatcher(3, 14, 14, limits=GPU_DOF_QUAD_LIMITS)


def test_dof_quad_limits(actx_factory):
    actx = actx_factory()

    if isinstance(actx, NumpyArrayContext):
        assert get_dof_quad_limits(actx) == CPU_DOF_QUAD_LIMITS
    elif actx.queue.device.type & cl.device_type.CPU:
        assert get_dof_quad_limits(actx) == CPU_DOF_QUAD_LIMITS
    else:
        assert get_dof_quad_limits(actx) == GPU_DOF_QUAD_LIMITS

    assert CPU_DOF_QUAD_LIMITS == DofQuadLimits(max_d1d=24, max_q1d=24)
    assert GPU_DOF_QUAD_LIMITS == DofQuadLimits(max_d1d=14, max_q1d=14)

    check_dof_quad_limits(14, 14, GPU_DOF_QUAD_LIMITS)
    with pytest.raises(DeviceLimitExceededError):
        check_dof_quad_limits(15, 14, GPU_DOF_QUAD_LIMITS)


@pytest.mark.parametrize(("device_type", "expected"), [
    (cl.device_type.CPU, CPU_DOF_QUAD_LIMITS),
    (cl.device_type.GPU, GPU_DOF_QUAD_LIMITS),
    (cl.device_type.ACCELERATOR, GPU_DOF_QUAD_LIMITS),
    ])
def test_dof_quad_limits_follow_device_type(device_type, expected):
    class _Device:
        type = device_type

    class _Queue:
        device = _Device()

    class _DeviceArrayContext:
        queue = _Queue()

    assert get_dof_quad_limits(_DeviceArrayContext()) == expected

# }}}


# You can test individual routines by typing
# $ python test_kernels.py 'test_routine()'

if __name__ == "__main__":
    import sys
    if len(sys.argv) > 1:
        exec(sys.argv[1])
    else:
        pytest.main([__file__])

# vim: fdm=marker
