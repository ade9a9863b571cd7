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
from time import perf_counter

import numpy as np

import meshmode.mesh.generation as mgen
from meshmode.mesh import TensorProductElementGroup

from pamass import VectorMassConfig, make_vector_mass_operator
from pamass.array_context import get_reasonable_array_context_class


logger = logging.getLogger(__name__)


def make_array_context(lazy=False, numpy=False):
    actx_class = get_reasonable_array_context_class(lazy=lazy, numpy=numpy)
    if numpy:
        return actx_class()

    import pyopencl as cl
    import pyopencl.tools as cl_tools

    cl_ctx = cl.create_some_context()
    queue = cl.CommandQueue(cl_ctx)
    return actx_class(
        queue,
        allocator=cl_tools.MemoryPool(cl_tools.ImmediateAllocator(queue)))


def main(actx, dim=2, order=3, resolution=8, warp=False, nruns=10):
    if warp:
        mesh = mgen.generate_warped_rect_mesh(
            dim=dim, order=1, nelements_side=resolution,
            group_cls=TensorProductElementGroup)
    else:
        mesh = mgen.generate_regular_rect_mesh(
            a=(-0.5,)*dim, b=(0.5,)*dim,
            nelements_per_axis=(resolution,)*dim,
            group_cls=TensorProductElementGroup)

    logger.info("%d elements", mesh.nelements)

    for backend in ["sum_factorization", "element_matrix"]:
        op = make_vector_mass_operator(
            actx, mesh,
            VectorMassConfig(dim=dim, order=order, coefficient=2.0,
                             backend=backend))

        ones = op.zeros_like_dofs() + 1

        y = op.mult(ones)
        t_start = perf_counter()
        for _ in range(nruns):
            y = op.mult(ones)
        y = actx.to_numpy(y)
        t_apply = (perf_counter() - t_start) / nruns

        diag = actx.to_numpy(op.assemble_diagonal())

        per_element = y.reshape(op.nelements, op.vdim, -1).sum(axis=-1)
        npositive = int(np.count_nonzero(per_element[:, 0] > 0))
        total = per_element.sum()

        print(f"{backend}: {op!r}")
        print(f"  ndofs: {op.ndofs}")
        print(f"  positively oriented elements: {npositive}/{op.nelements}")
        if warp:
            print(f"  total mass: {total:.15g}")
        else:
            print(f"  total mass: {total:.15g} "
                  f"(expected magnitude {2.0*op.vdim:g})")
        print(f"  |diagonal|: [{np.abs(diag).min():.6e}, "
              f"{np.abs(diag).max():.6e}]")
        print(f"  time per application: {t_apply:.6e} s")


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser()
    parser.add_argument("--dim", default=2, type=int)
    parser.add_argument("--order", default=3, type=int)
    parser.add_argument("--resolution", default=8, type=int)
    parser.add_argument("--warp", action="store_true",
                        help="use a warped (non-affine) mesh")
    parser.add_argument("--lazy", action="store_true",
                        help="switch to a lazy computation mode")
    parser.add_argument("--numpy", action="store_true",
                        help="run on the host with numpy")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO)
    main(make_array_context(lazy=args.lazy, numpy=args.numpy),
         dim=args.dim,
         order=args.order,
         resolution=args.resolution,
         warp=args.warp)
