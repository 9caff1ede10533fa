"""
The :mod:`ir` module contains the SSA intermediate representation
that debug metadata is propagated over.

Types are :mod:`llvmlite.ir` types.
"""

import os
from llvmlite import ir as ll
from . import metadata

# Generic SSA IR classes

def escape_name(name):
    if all([str.isalnum(x) or x == "." for x in name]):
        return name
    else:
        return "\"{}\"".format(name.replace("\"", "\\\""))

lli1 = ll.IntType(1)
llvoid = ll.VoidType()
llmetadata = ll.MetaDataType()

class Value:
    """
    An SSA value that keeps track of its uses.

    :ivar type: (:class:`llvmlite.ir.Type`) type of this value
    :ivar uses: (set of :class:`Value`) values that use this value
    """

    def __init__(self, typ):
        self.uses, self.type = set(), typ
        self._context = None

    @property
    def context(self):
        """
        The :class:`metadata.Context` owning the handles of this value.
        It is fixed the first time it is requested.
        """
        if self._context is None:
            self._context = self._default_context()
        return self._context

    def _default_context(self):
        return metadata.global_context

    def is_constant(self):
        return False

    def __str__(self):
        return self.as_entity()

class Constant(Value):
    """
    A constant value.

    :ivar value: (Python object) value
    """

    def __init__(self, value, typ, context=None):
        super().__init__(typ)
        self.value = value
        self._context = context

    def is_constant(self):
        return True

    def as_operand(self):
        return self.as_entity()

    def as_entity(self):
        return "{} {}".format(self.type, repr(self.value))

class Undef(Constant):
    """
    An undefined value of a given type.
    """

    def __init__(self, typ, context=None):
        super().__init__(None, typ, context)

    def as_entity(self):
        return "{} undef".format(self.type)

class MetadataAsValue(Value):
    """
    A wrapper letting a metadata node be used as an instruction operand.

    :ivar metadata: (:class:`metadata.Metadata`) wrapped node
    """

    def __init__(self, md, context):
        super().__init__(llmetadata)
        self.metadata = md
        self._context = context

    @classmethod
    def get(cls, context, md):
        wrapper = context.metadata_wrappers.get(md)
        if wrapper is None:
            wrapper = cls(md, context)
            context.metadata_wrappers[md] = wrapper
        return wrapper

    @classmethod
    def get_if_exists(cls, context, md):
        return context.metadata_wrappers.get(md)

    def as_operand(self):
        return "metadata {}".format(repr(self.metadata))

    def as_entity(self):
        return self.as_operand()

class NamedValue(Value):
    """
    An SSA value that has a name.

    :ivar name: (string) name of this value
    :ivar function: (:class:`Function`) function containing this value
    """

    def __init__(self, typ, name):
        super().__init__(typ)
        self.name, self.function = name, None

    def _default_context(self):
        if self.function is None:
            return metadata.global_context
        return self.function.context

    def _set_function(self, new_function):
        if self.function != new_function:
            if self.function is not None:
                self.function._remove_name(self.name)
            self.function = new_function
            if self.function is not None:
                self.name = self.function._add_name(self.name)

    def _detach(self):
        self.function = None

    def as_operand(self):
        return "{} %{}".format(self.type, escape_name(self.name))

class User(NamedValue):
    """
    An SSA value that has operands.

    :ivar operands: (list of :class:`Value`) operands of this value
    """

    def __init__(self, operands, typ, name):
        super().__init__(typ, name)
        self.operands = []
        self.set_operands(operands)

    def set_operands(self, new_operands):
        for operand in set(self.operands):
            operand.uses.remove(self)
        self.operands = new_operands
        for operand in set(self.operands):
            operand.uses.add(self)

    def set_operand(self, index, value):
        old_value = self.operands[index]
        self.operands[index] = value
        if old_value not in self.operands:
            old_value.uses.remove(self)
        value.uses.add(self)

    def drop_references(self):
        self.set_operands([])

class Instruction(User):
    """
    An SSA instruction.

    :ivar loc: (:class:`metadata.DILocation` or None)
        source location
    """

    def __init__(self, operands, typ, name=""):
        assert isinstance(operands, list)
        assert isinstance(typ, ll.Type)
        super().__init__(operands, typ, name)
        self.basic_block = None
        self.loc = None

    def set_basic_block(self, new_basic_block):
        self.basic_block = new_basic_block
        if self.basic_block is not None:
            self._set_function(self.basic_block.function)
        else:
            self._set_function(None)

    def opcode(self):
        """String representation of the opcode."""
        return "???"

    def _detach(self):
        self.set_basic_block(None)

    def next_node(self):
        """The instruction following this one in its block, or None."""
        if self.basic_block is None:
            return None
        index = self.basic_block.index(self) + 1
        if index < len(self.basic_block.instructions):
            return self.basic_block.instructions[index]

    def insert_after(self, insn):
        """Place this detached instruction right after ``insn``."""
        assert self.basic_block is None
        assert insn.basic_block is not None
        insn.basic_block.insert_after(self, insn)

    def remove_from_parent(self):
        if self.basic_block is not None:
            self.basic_block.remove(self)

    def erase(self):
        self.remove_from_parent()
        self.drop_references()
        # Check this after drop_references in case this
        # is a self-referencing phi.
        assert not any(self.uses)

    def _operands_as_string(self):
        return ", ".join([operand.as_operand() for operand in self.operands])

    def as_entity(self):
        if isinstance(self.type, ll.VoidType):
            prefix = ""
        else:
            prefix = "%{} = {} ".format(escape_name(self.name), self.type)

        if any(self.operands):
            return "{}{} {}".format(prefix, self.opcode(),
                                    self._operands_as_string())
        else:
            return "{}{}".format(prefix, self.opcode())

class Phi(Instruction):
    """
    An SSA instruction that joins data flow.

    Use :meth:`incoming` and :meth:`add_incoming` instead of
    directly reading :attr:`operands` or calling :meth:`set_operands`.
    """

    def __init__(self, typ, name=""):
        super().__init__([], typ, name)

    def opcode(self):
        return "phi"

    def incoming(self):
        operand_iter = iter(self.operands)
        while True:
            try:
                yield next(operand_iter), next(operand_iter)
            except StopIteration:
                return

    def add_incoming(self, value, block):
        assert value.type == self.type
        self.operands.append(value)
        value.uses.add(self)
        self.operands.append(block)
        block.uses.add(self)

    def as_entity(self):
        prefix = "%{} = {} ".format(escape_name(self.name), self.type)

        if any(self.operands):
            operand_list = ["%{} => {}".format(escape_name(block.name),
                                               value.as_operand())
                            for value, block in self.incoming()]
            return "{}{} [{}]".format(prefix, self.opcode(), ", ".join(operand_list))
        else:
            return "{}{} [???]".format(prefix, self.opcode())

class Terminator(Instruction):
    """
    An SSA instruction that performs control flow.
    """

class BasicBlock(NamedValue):
    """
    A block of instructions with no control flow inside it.

    :ivar instructions: (list of :class:`Instruction`)
    """
    _dump_loc = os.getenv("DBGPROP_IR_NO_LOC") is None

    def __init__(self, instructions, name=""):
        super().__init__(ll.LabelType(), name)
        self.instructions = []
        self.set_instructions(instructions)

    def set_instructions(self, new_insns):
        for insn in self.instructions:
            insn._detach()
        self.instructions = new_insns
        for insn in self.instructions:
            insn.set_basic_block(self)

    def append(self, insn):
        assert isinstance(insn, Instruction)
        insn.set_basic_block(self)
        self.instructions.append(insn)
        return insn

    def index(self, insn):
        return self.instructions.index(insn)

    def insert(self, insn, before):
        assert isinstance(insn, Instruction)
        insn.set_basic_block(self)
        self.instructions.insert(self.index(before), insn)
        return insn

    def insert_after(self, insn, after):
        assert isinstance(insn, Instruction)
        insn.set_basic_block(self)
        self.instructions.insert(self.index(after) + 1, insn)
        return insn

    def remove(self, insn):
        assert insn in self.instructions
        insn._detach()
        self.instructions.remove(insn)
        return insn

    def predecessors(self):
        return [use.basic_block for use in self.uses if isinstance(use, Terminator)]

    def as_entity(self):
        # Header
        lines = ["{}:".format(escape_name(self.name))]
        if self.function is not None:
            lines[0] += " ; predecessors: {}".format(
                ", ".join(sorted([escape_name(pred.name) for pred in self.predecessors()])))

        # Annotated instructions
        loc = None
        for insn in self.instructions:
            if self._dump_loc and loc != insn.loc:
                loc = insn.loc

                if loc is None:
                    lines.append("; <synthesized>")
                else:
                    lines.append("; {}:{}:{}".format(loc.filename(), loc.line, loc.column))
            lines.append("  " + insn.as_entity())

        return "\n".join(lines)

    def __repr__(self):
        return "<dbgprop.compiler.ir.BasicBlock {}>".format(repr(self.name))

class Argument(NamedValue):
    """
    A function argument.
    """

    def as_entity(self):
        return self.as_operand()

class GlobalVariable(Value):
    """
    A module-level variable.

    :ivar name: (string) name of this variable
    :ivar module: (:class:`module.Module` or None) module containing it
    :ivar initializer: (:class:`Constant` or None)
    """

    def __init__(self, typ, name, initializer=None):
        super().__init__(typ)
        self.name, self.initializer = name, initializer
        self.module = None

    def _default_context(self):
        if self.module is None:
            return metadata.global_context
        return self.module.context

    def is_constant(self):
        return True

    def as_operand(self):
        return "{}* @{}".format(self.type, escape_name(self.name))

    def as_entity(self):
        if self.initializer is None:
            return "@{} = external global {}".format(escape_name(self.name), self.type)
        return "@{} = global {}".format(escape_name(self.name),
                                        self.initializer.as_operand())

class Function:
    """
    A function containing SSA IR.

    :ivar module: (:class:`module.Module` or None)
        module containing this function
    :ivar subprogram: (:class:`metadata.DISubprogram` or None)
        debug descriptor of the function
    """

    def __init__(self, typ, name, arguments, subprogram=None, context=None):
        self.type, self.name, self.subprogram = typ, name, subprogram
        self.names, self.arguments, self.basic_blocks = set(), [], []
        self.next_name = 1
        self.module = None
        self._context = context
        self.set_arguments(arguments)

    @property
    def context(self):
        """
        The :class:`metadata.Context` of the values of this function:
        ``context`` if given, else that of the module containing
        the function when first requested.
        """
        if self._context is None:
            if self.module is None:
                self._context = metadata.global_context
            else:
                self._context = self.module.context
        return self._context

    def _remove_name(self, name):
        self.names.remove(name)

    def _add_name(self, base_name):
        if base_name == "":
            name = "UNN.{}".format(self.next_name)
            self.next_name += 1
        elif base_name in self.names:
            name = "{}.{}".format(base_name, self.next_name)
            self.next_name += 1
        else:
            name = base_name

        self.names.add(name)
        return name

    def set_arguments(self, new_arguments):
        for argument in self.arguments:
            argument._set_function(None)
        self.arguments = new_arguments
        for argument in self.arguments:
            argument._set_function(self)

    def add(self, basic_block):
        basic_block._set_function(self)
        self.basic_blocks.append(basic_block)

    def instructions(self):
        for basic_block in self.basic_blocks:
            yield from iter(basic_block.instructions)

    def as_entity(self):
        lines = []
        lines.append("{} {}({}) {{".format(
                        self.type.return_type, self.name,
                        ", ".join([arg.as_operand() for arg in self.arguments])))

        for block in self.basic_blocks:
            lines.append(block.as_entity())

        lines.append("}")
        return "\n".join(lines)

    def __str__(self):
        return self.as_entity()

# Instructions

class Arith(Instruction):
    """
    An arithmetic operation on numbers.

    :ivar op: (string) operation, e.g. ``"add"`` or ``"fmul"``
    """

    def __init__(self, op, lhs, rhs, name=""):
        assert isinstance(lhs, Value)
        assert isinstance(rhs, Value)
        assert lhs.type == rhs.type
        super().__init__([lhs, rhs], lhs.type, name)
        self.op = op

    def opcode(self):
        return self.op

    def lhs(self):
        return self.operands[0]

    def rhs(self):
        return self.operands[1]

class Select(Instruction):
    """
    A conditional select instruction.
    """

    """
    :param cond: (:class:`Value`) select condition
    :param if_true: (:class:`Value`) value of select if condition is truthful
    :param if_false: (:class:`Value`) value of select if condition is falseful
    """
    def __init__(self, cond, if_true, if_false, name=""):
        assert isinstance(cond, Value)
        assert cond.type == lli1
        assert isinstance(if_true, Value)
        assert isinstance(if_false, Value)
        assert if_true.type == if_false.type
        super().__init__([cond, if_true, if_false], if_true.type, name)

    def opcode(self):
        return "select"

    def condition(self):
        return self.operands[0]

    def if_true(self):
        return self.operands[1]

    def if_false(self):
        return self.operands[2]

class InsertElement(Instruction):
    """
    An instruction producing a copy of a vector with
    one element replaced.

    :param vector: (:class:`Value`) vector to insert into
    :param element: (:class:`Value`) inserted element
    :param index: (:class:`Constant`) element index
    """

    def __init__(self, vector, element, index, name=""):
        assert isinstance(vector.type, ll.VectorType)
        assert element.type == vector.type.element
        assert isinstance(index, Constant)
        super().__init__([vector, element, index], vector.type, name)

    def opcode(self):
        return "insertelement"

    def vector(self):
        return self.operands[0]

    def element(self):
        return self.operands[1]

    def index(self):
        return self.operands[2]

class ExtractElement(Instruction):
    """
    An instruction reading one element of a vector.
    """

    def __init__(self, vector, index, name=""):
        assert isinstance(vector.type, ll.VectorType)
        super().__init__([vector, index], vector.type.element, name)

    def opcode(self):
        return "extractelement"

    def vector(self):
        return self.operands[0]

    def index(self):
        return self.operands[1]

class DbgValue(Instruction):
    """
    A debug value record: binds a source variable, or the part of it
    selected by :attr:`expression`, to the tracked IR value.

    :ivar variable: (:class:`metadata.DILocalVariable`)
    :ivar expression: (:class:`metadata.DIExpression`)
    :ivar offset: (int) offset into the variable, always 0
    :param value_md: (:class:`MetadataAsValue`) wrapper of the handle
        of the tracked value
    """

    def __init__(self, value_md, variable, expression, offset=0, name=""):
        assert isinstance(value_md, MetadataAsValue)
        assert isinstance(value_md.metadata, metadata.ValueAsMetadata)
        super().__init__([value_md], llvoid, name)
        self.variable, self.expression, self.offset = variable, expression, offset

    def opcode(self):
        return "dbg.value"

    def value(self):
        """The tracked value, or None if it no longer exists."""
        return self.operands[0].metadata.value

    def _operands_as_string(self):
        return "{}, i64 {}, {}, {}".format(
            self.operands[0].as_operand(), self.offset,
            repr(self.variable), repr(self.expression))

class Branch(Terminator):
    """
    An unconditional branch instruction.
    """

    """
    :param target: (:class:`BasicBlock`) branch target
    """
    def __init__(self, target, name=""):
        assert isinstance(target, BasicBlock)
        super().__init__([target], llvoid, name)

    def opcode(self):
        return "branch"

    def target(self):
        return self.operands[0]

class BranchIf(Terminator):
    """
    A conditional branch instruction.
    """

    """
    :param cond: (:class:`Value`) branch condition
    :param if_true: (:class:`BasicBlock`) branch target if condition is truthful
    :param if_false: (:class:`BasicBlock`) branch target if condition is falseful
    """
    def __init__(self, cond, if_true, if_false, name=""):
        assert isinstance(cond, Value)
        assert cond.type == lli1
        assert isinstance(if_true, BasicBlock)
        assert isinstance(if_false, BasicBlock)
        assert if_true != if_false # use Branch instead
        super().__init__([cond, if_true, if_false], llvoid, name)

    def opcode(self):
        return "branchif"

    def condition(self):
        return self.operands[0]

    def if_true(self):
        return self.operands[1]

    def if_false(self):
        return self.operands[2]

class Return(Terminator):
    """
    A return instruction.
    """

    """
    :param value: (:class:`Value`) return value
    """
    def __init__(self, value, name=""):
        assert isinstance(value, Value)
        super().__init__([value], llvoid, name)

    def opcode(self):
        return "return"

    def value(self):
        return self.operands[0]
