import gc
import unittest
from llvmlite import ir as ll
from dbgprop.compiler import ir, metadata
from dbgprop.compiler.module import Module
from dbgprop.compiler.dibuilder import DIBuilder
from dbgprop.compiler.dbgvalue import find_dbg_value, migrate_debug_value

lli32 = ll.IntType(32)

class DebugValueTestCase(unittest.TestCase):
    def setUp(self):
        self.module = Module("test")
        self.builder = DIBuilder(self.module)

        file = metadata.DIFile("shader.hlsl", "/src")
        self.subprogram = metadata.DISubprogram("main", file, 1)
        self.loc = metadata.DILocation(2, 5, self.subprogram)
        self.variable = metadata.DILocalVariable("x", self.subprogram, file, 2)

        self.a, self.b = ir.Argument(lli32, "a"), ir.Argument(lli32, "b")
        self.func = ir.Function(ll.FunctionType(lli32, [lli32, lli32]), "main",
                                [self.a, self.b], subprogram=self.subprogram)
        self.module.add_function(self.func)
        self.block = ir.BasicBlock([], "entry")
        self.func.add(self.block)

    def bind(self, value, insert_after, expression=None):
        if expression is None:
            expression = self.builder.create_expression()
        return self.builder.insert_dbg_value_intrinsic(
            value, 0, self.variable, expression, self.loc,
            insert_after=insert_after)

class TestFindDebugValue(DebugValueTestCase):
    def test_no_handle(self):
        add = self.block.append(ir.Arith("add", self.a, self.b))
        self.assertIsNone(metadata.ValueAsMetadata.get_if_exists(add))
        self.assertIsNone(find_dbg_value(add))

    def test_handle_without_record(self):
        add = self.block.append(ir.Arith("add", self.a, self.b))
        metadata.ValueAsMetadata.get(add)
        self.assertIsNone(find_dbg_value(add))

    def test_record(self):
        add = self.block.append(ir.Arith("add", self.a, self.b))
        dbg_value = self.bind(add, add)
        self.assertIs(dbg_value, find_dbg_value(add))
        self.assertIs(add, dbg_value.value())
        self.assertIs(self.variable, dbg_value.variable)

    def test_record_of_argument(self):
        add = self.block.append(ir.Arith("add", self.a, self.b))
        dbg_value = self.bind(self.a, add)
        self.assertIs(dbg_value, find_dbg_value(self.a))
        self.assertIsNone(find_dbg_value(self.b))

    def test_record_is_not_a_use(self):
        add = self.block.append(ir.Arith("add", self.a, self.b))
        self.bind(add, add)
        self.assertEqual(set(), add.uses)

class TestMigrateDebugValue(DebugValueTestCase):
    def test_no_record(self):
        add = self.block.append(ir.Arith("add", self.a, self.b))
        mul = self.block.append(ir.Arith("mul", self.a, self.b))
        instructions = list(self.block.instructions)

        migrate_debug_value(add, mul)

        self.assertEqual(instructions, self.block.instructions)
        self.assertIsNone(find_dbg_value(mul))
        self.assertIsNone(metadata.ValueAsMetadata.get_if_exists(mul))

    def test_migrate(self):
        add = self.block.append(ir.Arith("add", self.a, self.b))
        expression = self.builder.create_bit_piece_expression(0, 32)
        dbg_value = self.bind(add, add, expression)
        mul = self.block.append(ir.Arith("mul", self.a, self.b))
        ret = self.block.append(ir.Return(mul))

        migrate_debug_value(add, mul)

        self.assertIsNone(find_dbg_value(add))
        self.assertIs(dbg_value, find_dbg_value(mul))
        self.assertIs(mul, dbg_value.value())
        self.assertEqual([add, mul, dbg_value, ret], self.block.instructions)
        self.assertIs(self.variable, dbg_value.variable)
        self.assertIs(expression, dbg_value.expression)
        self.assertIs(self.loc, dbg_value.loc)

    def test_migrate_in_place(self):
        add = self.block.append(ir.Arith("add", self.a, self.b))
        mul = self.block.append(ir.Arith("mul", self.a, self.b))
        dbg_value = self.bind(add, mul)
        instructions = list(self.block.instructions)

        migrate_debug_value(add, mul)

        self.assertEqual(instructions, self.block.instructions)
        self.assertIs(mul, dbg_value.value())

    def test_migrate_backwards(self):
        add = self.block.append(ir.Arith("add", self.a, self.b))
        mul = self.block.append(ir.Arith("mul", self.a, self.b))
        dbg_value = self.bind(mul, mul)

        migrate_debug_value(mul, add)

        self.assertEqual([add, dbg_value, mul], self.block.instructions)
        self.assertIs(dbg_value, find_dbg_value(add))

    def test_migrate_to_argument(self):
        add = self.block.append(ir.Arith("add", self.a, self.b))
        dbg_value = self.bind(add, add)
        instructions = list(self.block.instructions)

        migrate_debug_value(add, self.b)

        self.assertEqual(instructions, self.block.instructions)
        self.assertIs(self.b, dbg_value.value())
        self.assertIs(dbg_value, find_dbg_value(self.b))
        self.assertIsNone(find_dbg_value(add))

    def test_migrate_to_constant(self):
        add = self.block.append(ir.Arith("add", self.a, self.b))
        dbg_value = self.bind(add, add)
        constant = ir.Constant(42, lli32)

        migrate_debug_value(add, constant)

        self.assertIs(constant, dbg_value.value())
        self.assertIs(dbg_value, find_dbg_value(constant))

    def test_replace_and_migrate(self):
        add = self.block.append(ir.Arith("add", self.a, self.b))
        dbg_value = self.bind(add, add)
        ret = self.block.append(ir.Return(add))
        mul = ir.Arith("mul", self.a, self.b)
        self.block.insert(mul, before=ret)

        ret.set_operand(0, mul)
        migrate_debug_value(add, mul)
        add.erase()

        self.assertEqual([mul, dbg_value, ret], self.block.instructions)
        self.assertIs(mul, ret.value())
        self.assertIs(dbg_value, find_dbg_value(mul))

class TestHandleLifetime(unittest.TestCase):
    def setUp(self):
        self.context = metadata.Context()
        self.module = Module("test", context=self.context)
        self.builder = DIBuilder(self.module)

        file = metadata.DIFile("shader.hlsl", "/src")
        subprogram = metadata.DISubprogram("main", file, 1)
        self.loc = metadata.DILocation(2, 5, subprogram)
        self.variable = metadata.DILocalVariable("x", subprogram, file, 2)

        self.a, self.b = ir.Argument(lli32, "a"), ir.Argument(lli32, "b")
        self.func = ir.Function(ll.FunctionType(lli32, [lli32, lli32]), "main",
                                [self.a, self.b])
        self.block = ir.BasicBlock([], "entry")
        self.func.add(self.block)

    def bind(self, value, insert_after):
        return self.builder.insert_dbg_value_intrinsic(
            value, 0, self.variable, self.builder.create_expression(), self.loc,
            insert_after=insert_after)

    def test_record_survives_adding_function_to_module(self):
        add = self.block.append(ir.Arith("add", self.a, self.b))
        dbg_value = self.bind(add, add)

        self.module.add_function(self.func)

        self.assertIs(metadata.global_context, self.func.context)
        self.assertIs(dbg_value, find_dbg_value(add))
        mul = self.block.append(ir.Arith("mul", self.a, self.b))
        migrate_debug_value(add, mul)
        self.assertIs(dbg_value, find_dbg_value(mul))
        self.assertIs(mul, dbg_value.value())

    def test_function_context_follows_module(self):
        self.module.add_function(self.func)
        add = self.block.append(ir.Arith("add", self.a, self.b))
        self.bind(add, add)

        self.assertIs(self.context, add.context)
        self.assertIsNotNone(metadata.ValueAsMetadata.get_if_exists(add))
        self.assertEqual(1, len(self.context.value_handles))

    def test_explicit_function_context(self):
        func = ir.Function(ll.FunctionType(ll.VoidType(), []), "f", [],
                           context=self.context)
        self.assertIs(self.context, func.context)

    def test_record_survives_detaching(self):
        self.module.add_function(self.func)
        add = self.block.append(ir.Arith("add", self.a, self.b))
        ret = self.block.append(ir.Return(add))
        dbg_value = self.bind(add, add)

        add.remove_from_parent()
        self.assertIs(dbg_value, find_dbg_value(add))
        self.block.insert(add, before=dbg_value)

        self.assertEqual([add, dbg_value, ret], self.block.instructions)
        self.assertIs(dbg_value, find_dbg_value(add))

    def test_erased_records_free_constant_handles(self):
        self.module.add_function(self.func)
        ret = self.block.append(ir.Return(self.a))
        for value in range(100):
            dbg_value = self.builder.insert_dbg_value_intrinsic(
                ir.Constant(value, lli32, self.context), 0, self.variable,
                self.builder.create_expression(), self.loc, insert_before=ret)
            dbg_value.erase()
        del dbg_value
        gc.collect()

        self.assertEqual(0, len(self.context.value_handles))
        self.assertEqual(0, len(self.context.metadata_wrappers))
        self.assertEqual([ret], self.block.instructions)

    def test_live_record_keeps_constant_handle(self):
        self.module.add_function(self.func)
        ret = self.block.append(ir.Return(self.a))
        dbg_value = self.builder.insert_dbg_value_intrinsic(
            ir.Constant(7, lli32, self.context), 0, self.variable,
            self.builder.create_expression(), self.loc, insert_before=ret)
        gc.collect()

        self.assertEqual(7, dbg_value.value().value)
        self.assertIs(dbg_value, find_dbg_value(dbg_value.value()))
        self.assertEqual(1, len(self.context.value_handles))
