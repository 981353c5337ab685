"""Atomic float64 cell primitives for numba nopython code.

Each primitive takes a 1-D float64 array and an integer index and lowers to a
single LLVM atomic instruction on that element with ``monotonic`` (relaxed)
ordering:

* ``atomic_fetch_add(cells, idx, value)`` -> ``atomicrmw fadd``, returns the old value
* ``atomic_load(cells, idx)``             -> ``load atomic``
* ``atomic_store(cells, idx, value)``     -> ``store atomic``

They are only callable from jitted functions. Python callers go through
:class:`numba_vj.matrix.AtomicMatrix`.
"""

from __future__ import annotations

from numba import types
from numba.core import cgutils
from numba.extending import intrinsic

ORDERING = "monotonic"
CELL_ALIGN = 8


def _is_cell_array(ty) -> bool:
    return isinstance(ty, types.Array) and ty.ndim == 1 and ty.dtype == types.float64


def _cell_pointer(context, builder, aryty, ary, idxty, idx):
    array = context.make_array(aryty)(context, builder, ary)
    idx = context.cast(builder, idx, idxty, types.intp)
    return cgutils.get_item_pointer(context, builder, aryty, array, [idx], wraparound=False)


@intrinsic
def atomic_fetch_add(typingctx, cells, idx, value):
    if not (_is_cell_array(cells) and isinstance(idx, types.Integer)
            and isinstance(value, (types.Float, types.Integer))):
        return None

    sig = types.float64(cells, idx, value)

    def codegen(context, builder, signature, args):
        aryty, idxty, valty = signature.args
        ary, index, val = args
        ptr = _cell_pointer(context, builder, aryty, ary, idxty, index)
        val = context.cast(builder, val, valty, types.float64)
        return builder.atomic_rmw("fadd", ptr, val, ORDERING)

    return sig, codegen


@intrinsic
def atomic_load(typingctx, cells, idx):
    if not (_is_cell_array(cells) and isinstance(idx, types.Integer)):
        return None

    sig = types.float64(cells, idx)

    def codegen(context, builder, signature, args):
        aryty, idxty = signature.args
        ary, index = args
        ptr = _cell_pointer(context, builder, aryty, ary, idxty, index)
        return builder.load_atomic(ptr, ORDERING, CELL_ALIGN)

    return sig, codegen


@intrinsic
def atomic_store(typingctx, cells, idx, value):
    if not (_is_cell_array(cells) and isinstance(idx, types.Integer)
            and isinstance(value, (types.Float, types.Integer))):
        return None

    sig = types.void(cells, idx, value)

    def codegen(context, builder, signature, args):
        aryty, idxty, valty = signature.args
        ary, index, val = args
        ptr = _cell_pointer(context, builder, aryty, ary, idxty, index)
        val = context.cast(builder, val, valty, types.float64)
        builder.store_atomic(val, ptr, ORDERING, CELL_ALIGN)
        return context.get_dummy_value()

    return sig, codegen
