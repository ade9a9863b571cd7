"""
.. autoclass:: PyOpenCLArrayContext
.. autoclass:: PytatoPyOpenCLArrayContext
.. autofunction:: get_reasonable_array_context_class

Pytest factories
^^^^^^^^^^^^^^^^

Registered with :func:`arraycontext.pytest.register_pytest_array_context_factory`
as ``pamass.pyopencl``, ``pamass.pytato-pyopencl`` and ``pamass.numpy``.

.. autoclass:: PytestPyOpenCLArrayContextFactory
.. autoclass:: PytestPytatoPyOpenCLArrayContextFactory
.. autoclass:: PytestNumpyArrayContextFactory
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


# {{{ imports

import logging
from typing import TYPE_CHECKING, Optional
from warnings import warn

from arraycontext import ArrayContext, NumpyArrayContext
from arraycontext.pytest import (
    _PytestNumpyArrayContextFactory,
    _PytestPyOpenCLArrayContextFactoryWithClass,
    _PytestPytatoPyOpenCLArrayContextFactory,
    register_pytest_array_context_factory,
)
from meshmode.array_context import (
    PyOpenCLArrayContext as _PyOpenCLArrayContextBase,
    PytatoPyOpenCLArrayContext as _PytatoPyOpenCLArrayContextBase,
)


if TYPE_CHECKING:
    import pyopencl
    import pyopencl.tools


logger = logging.getLogger(__name__)

# }}}


# {{{ eager

class PyOpenCLArrayContext(_PyOpenCLArrayContextBase):
    """Inherits from :class:`meshmode.array_context.PyOpenCLArrayContext`.
    Warns if no memory allocator is given, since the kernels of
    :mod:`pamass` allocate a temporary per contraction.
    """
    def __init__(self, queue: "pyopencl.CommandQueue",
            allocator: Optional["pyopencl.tools.AllocatorBase"] = None,
            wait_event_queue_length: int | None = None,
            force_device_scalars: bool = True) -> None:

        if allocator is None:
            warn("No memory allocator specified, please pass one. "
                 "(Preferably a pyopencl.tools.MemoryPool in order "
                 "to reduce device allocations)", stacklevel=2)

        super().__init__(queue, allocator,
                         wait_event_queue_length, force_device_scalars)

# }}}


# {{{ lazy

class PytatoPyOpenCLArrayContext(_PytatoPyOpenCLArrayContextBase):
    """Inherits from :class:`meshmode.array_context.PytatoPyOpenCLArrayContext`.
    Operator data and basis matrices are frozen at setup, so each
    application compiles to a single program.
    """

# }}}


# {{{ pytest actx factory

class PytestPyOpenCLArrayContextFactory(
        _PytestPyOpenCLArrayContextFactoryWithClass):
    actx_class = PyOpenCLArrayContext

    def __call__(self):
        from pyopencl.tools import ImmediateAllocator, MemoryPool

        _ctx, queue = self.get_command_queue()
        alloc = MemoryPool(ImmediateAllocator(queue))

        return self.actx_class(
                queue,
                allocator=alloc,
                force_device_scalars=self.force_device_scalars)


class PytestPytatoPyOpenCLArrayContextFactory(
        _PytestPytatoPyOpenCLArrayContextFactory):
    actx_class = PytatoPyOpenCLArrayContext

    def __call__(self):
        _ctx, queue = self.get_command_queue()

        from pyopencl.tools import ImmediateAllocator, MemoryPool
        alloc = MemoryPool(ImmediateAllocator(queue))

        return self.actx_class(queue, allocator=alloc)


class PytestNumpyArrayContextFactory(_PytestNumpyArrayContextFactory):
    actx_class = NumpyArrayContext

    def __call__(self):
        return self.actx_class()


register_pytest_array_context_factory("pamass.pyopencl",
        PytestPyOpenCLArrayContextFactory)
register_pytest_array_context_factory("pamass.pytato-pyopencl",
        PytestPytatoPyOpenCLArrayContextFactory)
register_pytest_array_context_factory("pamass.numpy",
        PytestNumpyArrayContextFactory)

# }}}


# {{{ actx selection

def get_reasonable_array_context_class(
        lazy: bool = False, numpy: bool = False) -> type[ArrayContext]:
    """Returns a reasonable :class:`~arraycontext.ArrayContext` given the
    constraints of *lazy* and *numpy*."""
    if numpy:
        if lazy:
            raise ValueError("the numpy array context is not lazy")
        actx_class = NumpyArrayContext
    elif lazy:
        actx_class = PytatoPyOpenCLArrayContext
    else:
        actx_class = PyOpenCLArrayContext

    logger.info("get_reasonable_array_context_class: %s lazy=%r numpy=%r",
                actx_class.__name__, lazy, numpy)
    return actx_class

# }}}


# vim: foldmethod=marker
