"""
The :mod:`metadata` module contains the debug metadata attached
to the IR: source locations, variable descriptors, DWARF expressions,
and the handles that let ordinary IR values be referenced from metadata.

Handles are kept in per-:class:`Context` side tables rather than on the
values themselves, so that a value never owns the records describing it
and vice versa.
"""

import weakref

# DWARF expression opcodes

DW_OP_deref     = 0x06
DW_OP_plus      = 0x22
DW_OP_bit_piece = 0x9d

_opcode_names = {
    DW_OP_deref:     "DW_OP_deref",
    DW_OP_plus:      "DW_OP_plus",
    DW_OP_bit_piece: "DW_OP_bit_piece",
}

_opcode_arity = {
    DW_OP_plus:      1,
    DW_OP_bit_piece: 2,
}


class Context:
    """
    Owner of the value handle side tables.

    :ivar value_handles: (map of ``id()`` of an :class:`ir.Value`
        to :class:`ValueAsMetadata`)
    :ivar metadata_wrappers: (map of :class:`Metadata` to :class:`ir.MetadataAsValue`)
    """

    def __init__(self):
        # Handles are kept alive by their wrappers, and wrappers by their
        # users (debug value records).
        self.value_handles = weakref.WeakValueDictionary()
        self.metadata_wrappers = weakref.WeakValueDictionary()

global_context = Context()


class Metadata:
    """A node of debug metadata."""

    def kind(self):
        return type(self).__name__

    def _fields(self):
        return []

    def __repr__(self):
        fields = ", ".join("{}: {}".format(name, _field_repr(value))
                           for name, value in self._fields()
                           if value is not None)
        return "!{}({})".format(self.kind(), fields)

def _field_repr(value):
    if isinstance(value, str):
        return "\"{}\"".format(value)
    elif isinstance(value, Metadata):
        return "!{}".format(value.kind())
    else:
        return repr(value)


class DIFile(Metadata):
    def __init__(self, filename, directory=""):
        self.filename, self.directory = filename, directory

    def _fields(self):
        return [("filename", self.filename), ("directory", self.directory)]


class DIScope(Metadata):
    """
    A metadata node that other nodes can be nested in.

    :ivar file: (:class:`DIFile` or None)
    """

    file = None

    def filename(self):
        if self.file is None:
            return None
        return self.file.filename


def _scope_filename(scope):
    if scope is None:
        return None
    elif isinstance(scope, DIFile):
        return scope.filename
    else:
        return scope.filename()


class DICompileUnit(DIScope):
    """
    A translation unit.

    :ivar global_variables: (list of :class:`DIGlobalVariable`)
    :ivar subprograms: (list of :class:`DISubprogram`)
    """

    def __init__(self, file, producer="dbgprop", global_variables=None,
                 subprograms=None):
        self.file, self.producer = file, producer
        self.global_variables = list(global_variables or [])
        self.subprograms = list(subprograms or [])

    def _fields(self):
        return [("file", self.file), ("producer", self.producer)]


class DISubprogram(DIScope):
    def __init__(self, name, file, line, scope=None, linkage_name=None):
        self.name, self.file, self.line = name, file, line
        self.scope, self.linkage_name = scope, linkage_name

    def _fields(self):
        return [("name", self.name), ("linkageName", self.linkage_name),
                ("file", self.file), ("line", self.line)]


class DILocation(Metadata):
    """
    A source location.

    :ivar line: (int) 1-based line number
    :ivar column: (int) 1-based column number, or 0 if unknown
    :ivar scope: (:class:`DIScope`) enclosing scope
    :ivar inlined_at: (:class:`DILocation` or None) call site this location
        was inlined into
    """

    def __init__(self, line, column, scope, inlined_at=None):
        self.line, self.column = line, column
        self.scope, self.inlined_at = scope, inlined_at

    def filename(self):
        return _scope_filename(self.scope)

    def _fields(self):
        return [("line", self.line), ("column", self.column),
                ("scope", self.scope), ("inlinedAt", self.inlined_at)]


class DIVariable(Metadata):
    def __init__(self, name, scope, file=None, line=0):
        self.name, self.scope = name, scope
        self.file, self.line = file, line

    def _fields(self):
        return [("name", self.name), ("scope", self.scope),
                ("file", self.file), ("line", self.line)]


class DILocalVariable(DIVariable):
    """
    A source-level local variable.

    :ivar arg: (int) 1-based argument number, or 0 for locals
    """

    def __init__(self, name, scope, file=None, line=0, arg=0):
        super().__init__(name, scope, file, line)
        self.arg = arg


class DIGlobalVariable(DIVariable):
    """
    A source-level global variable.

    :ivar variable: (:class:`ir.GlobalVariable` or None) storage
        the descriptor refers to
    """

    def __init__(self, name, scope, file=None, line=0, variable=None):
        super().__init__(name, scope, file, line)
        self.variable = variable

    def filename(self):
        if self.file is not None:
            return self.file.filename
        return _scope_filename(self.scope)


class DIExpression(Metadata):
    """
    A DWARF expression qualifying the location of a variable.

    :ivar elements: (list of int) opcodes and their arguments
    """

    def __init__(self, elements=()):
        self.elements = list(elements)

    def is_bit_piece(self):
        """True if the expression describes only part of a variable."""
        return len(self.elements) >= 3 and self.elements[-3] == DW_OP_bit_piece

    def bit_piece_offset(self):
        assert self.is_bit_piece()
        return self.elements[-2]

    def bit_piece_size(self):
        assert self.is_bit_piece()
        return self.elements[-1]

    def __repr__(self):
        parts, elements = [], iter(self.elements)
        for opcode in elements:
            parts.append(_opcode_names.get(opcode, str(opcode)))
            for _ in range(_opcode_arity.get(opcode, 0)):
                parts.append(str(next(elements, "?")))
        return "!DIExpression({})".format(", ".join(parts))


class ValueAsMetadata(Metadata):
    """
    A metadata handle wrapping an IR value.

    Use :meth:`get` rather than instantiating handles directly.
    """

    @staticmethod
    def get(value):
        handle = ValueAsMetadata.get_if_exists(value)
        if handle is None:
            if value.is_constant():
                handle = ConstantAsMetadata(value)
            else:
                handle = LocalAsMetadata(value)
            value.context.value_handles[id(value)] = handle
        return handle

    @staticmethod
    def get_if_exists(value):
        handle = value.context.value_handles.get(id(value))
        # A stale entry may outlive a local value whose id was reused.
        if handle is None or handle.value is not value:
            return None
        return handle

    def __repr__(self):
        value = self.value
        if value is None:
            return "!{}(<deleted>)".format(self.kind())
        return value.as_operand()


class ConstantAsMetadata(ValueAsMetadata):
    """A handle of a constant. Constants live as long as their handles."""

    def __init__(self, value):
        self.value = value


class LocalAsMetadata(ValueAsMetadata):
    """
    A handle of a function-local value.

    The value is referenced weakly; once it is gone, :attr:`value`
    is ``None``.
    """

    def __init__(self, value):
        self._value = weakref.ref(value)

    @property
    def value(self):
        return self._value()
