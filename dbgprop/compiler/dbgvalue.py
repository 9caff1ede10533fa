"""
The :mod:`dbgvalue` module keeps debug value records attached
to the right IR values while transforms rewrite the IR.

:func:`migrate_debug_value` lets a record follow a value
that replaces the one it used to track.

:func:`try_scatter_debug_value_to_vector_elements` propagates the
record of a vector to the elements it was assembled from through
a chain of ``insertelement`` instructions. This is used after
lowering a vector-returning operation: if the debug info stays
on the recomposed vector, it is lost once later stages break the
vector apart again.
"""

import logging
from llvmlite import ir as ll
from . import ir, metadata
from .dibuilder import DIBuilder
from .datalayout import DataLayout


logger = logging.getLogger(__name__)


class MalformedChainError(AssertionError):
    """
    Raised when an element of a vector construction chain does not fit
    into the bit piece already described by the vector's record.
    """


def find_dbg_value(value):
    """
    Returns the debug value record tracking ``value``, or None.
    """
    handle = metadata.ValueAsMetadata.get_if_exists(value)
    if handle is None:
        return None

    wrapper = ir.MetadataAsValue.get_if_exists(value.context, handle)
    if wrapper is None:
        return None

    for user in wrapper.uses:
        if isinstance(user, ir.DbgValue):
            return user
    return None

def migrate_debug_value(old, new):
    """
    Rebinds the debug value record of ``old``, if any, to ``new``, and moves
    it right after ``new`` if that is an instruction.
    """
    dbg_value = find_dbg_value(old)
    if dbg_value is None:
        return

    logger.debug("migrating %s from %s to %s",
                 dbg_value.variable.name, old.as_operand(), new.as_operand())
    handle = metadata.ValueAsMetadata.get(new)
    dbg_value.set_operand(0, ir.MetadataAsValue.get(new.context, handle))

    if isinstance(new, ir.Instruction) and new.basic_block is not None:
        if new.next_node() is not dbg_value:
            dbg_value.remove_from_parent()
            dbg_value.insert_after(new)

def vector_construction_chain(value):
    """
    Returns the ``insertelement`` instructions building ``value``,
    last one first.
    """
    chain = []
    while isinstance(value, ir.InsertElement):
        chain.append(value)
        value = value.vector()
    return chain

def try_scatter_debug_value_to_vector_elements(value):
    """
    Adds a debug value record for every element inserted into the vector
    ``value``, describing the bits of the variable that element occupies.

    The record of the whole vector is kept, and every call adds a new
    set of element records.

    :raises MalformedChainError: if the vector record describes a bit piece
        too narrow for the vector; no records are added in that case
    """
    if not isinstance(value, ir.InsertElement) or \
            not isinstance(value.type, ll.VectorType):
        return

    vector_dbg_value = find_dbg_value(value)
    if vector_dbg_value is None:
        return

    module = None
    if vector_dbg_value.function is not None:
        module = vector_dbg_value.function.module
    if module is not None:
        data_layout = module.data_layout
    else:
        data_layout = DataLayout()
    builder = DIBuilder(module)
    element_size_in_bits = data_layout.type_size_in_bits(value.type.element)

    parent_bit_piece = vector_dbg_value.expression
    if parent_bit_piece is not None and not parent_bit_piece.is_bit_piece():
        parent_bit_piece = None

    pieces = []
    for insert in vector_construction_chain(value):
        element_index = int(insert.index().value)
        offset_in_bits = element_index * element_size_in_bits

        if parent_bit_piece is not None:
            if offset_in_bits + element_size_in_bits > parent_bit_piece.bit_piece_size():
                raise MalformedChainError(
                    "Nested bit piece expression exceeds bounds of its parent: "
                    "element {} of {} ({} bits at offset {}) in a piece of {} bits"
                    .format(element_index, insert.as_operand(), element_size_in_bits,
                            offset_in_bits, parent_bit_piece.bit_piece_size()))
            offset_in_bits += parent_bit_piece.bit_piece_offset()

        pieces.append((insert, offset_in_bits))

    for insert, offset_in_bits in pieces:
        expression = builder.create_bit_piece_expression(offset_in_bits,
                                                         element_size_in_bits)
        # The offset is deprecated; readers expect it to be zero.
        builder.insert_dbg_value_intrinsic(
            insert.element(), 0, vector_dbg_value.variable, expression,
            vector_dbg_value.loc, insert_after=insert)

    logger.debug("scattered %s over %d elements of %s",
                 vector_dbg_value.variable.name, len(pieces), value.as_operand())
