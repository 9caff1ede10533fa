"""
:class:`DIBuilder` creates debug metadata and debug value records
for the functions of a module.
"""

from . import ir, metadata


class DIBuilder:
    def __init__(self, module):
        self.module = module

    def create_expression(self, elements=()):
        return metadata.DIExpression(elements)

    def create_bit_piece_expression(self, offset_in_bits, size_in_bits):
        return metadata.DIExpression([metadata.DW_OP_bit_piece,
                                      offset_in_bits, size_in_bits])

    def create_dbg_value(self, value, offset, variable, expression, loc):
        """Returns a detached debug value record for ``value``."""
        handle = metadata.ValueAsMetadata.get(value)
        dbg_value = ir.DbgValue(ir.MetadataAsValue.get(value.context, handle),
                                variable, expression, offset)
        dbg_value.loc = loc
        return dbg_value

    def insert_dbg_value_intrinsic(self, value, offset, variable, expression, loc,
                                   insert_before=None, insert_after=None):
        """
        Creates a debug value record binding ``variable`` to ``value``
        and places it before ``insert_before`` or after ``insert_after``.
        """
        assert (insert_before is None) != (insert_after is None)
        dbg_value = self.create_dbg_value(value, offset, variable, expression, loc)
        if insert_before is not None:
            insert_before.basic_block.insert(dbg_value, before=insert_before)
        else:
            dbg_value.insert_after(insert_after)
        return dbg_value
