"""
The :class:`DataLayout` class answers questions about the storage
size of :mod:`llvmlite.ir` types on the target, as described by
an LLVM data layout string.
"""

from llvmlite import ir as ll, binding as llvm


class DataLayout:
    """
    Target data layout.

    LLVM's size queries go through a textual module for every type,
    so results are cached per type.

    :ivar layout: (string) layout string
    :ivar lldatalayout: (:class:`llvmlite.binding.TargetData`)
    """

    def __init__(self, layout="e-p:64:64"):
        self.layout = layout
        self.lldatalayout = llvm.create_target_data(layout)
        self.cache = {}

    @property
    def pointer_size_in_bits(self):
        return self.type_size_in_bits(ll.IntType(8).as_pointer())

    def type_size_in_bits(self, typ):
        """
        Returns the number of bits needed to hold a value of type ``typ``,
        not counting padding.
        """
        key = str(typ)
        if key not in self.cache:
            self.cache[key] = self._type_size_in_bits(typ)
        return self.cache[key]

    def _type_size_in_bits(self, typ):
        if isinstance(typ, ll.IntType):
            # ABI sizes are rounded up to whole bytes.
            return typ.width
        elif isinstance(typ, ll.VectorType):
            return typ.count * self.type_size_in_bits(typ.element)
        elif isinstance(typ, (ll.VoidType, ll.LabelType, ll.MetaDataType,
                              ll.FunctionType)):
            raise TypeError("type {} has no size".format(typ))
        else:
            return typ.get_abi_size(self.lldatalayout) * 8

    def __repr__(self):
        return "<dbgprop.compiler.datalayout.DataLayout {}>".format(repr(self.layout))
