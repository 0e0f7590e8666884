"""
Test suite for the Quill IR generator.

Tests cover:
- Expression lowering into temporaries
- Control flow lowering into labels and jumps
- Functions, calls, classes and imports
- Instruction helpers and operand equality

Author: xwest
"""

import unittest
import sys
import os

# Add the project root to the Python path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
sys.path.insert(0, project_root)

from quill.errors import IRGenerationError
from quill.parser import parse_string
from quill.optimizer import Optimizer
from quill.ir import (
    IRGenerator, Opcode, Const, Var, Label, Instruction, format_ir, is_temporary
)


class TestIRGenerator(unittest.TestCase):
    """Test cases for AST to IR lowering."""

    def setUp(self):
        """Set up test fixtures."""
        self.generator = IRGenerator()

    def _lower(self, source: str):
        """Helper returning the IR of a snippet as text lines."""
        return [str(i) for i in self.generator.generate(parse_string(source))]

    def test_arithmetic_precedence(self):
        self.assertEqual(self._lower("let x = 1 + 2 * 3"), [
            "mul 2 3 -> t0",
            "add 1 t0 -> t1",
            "assign t1 -> x",
        ])

    def test_literal_initializer_needs_no_temporary(self):
        self.assertEqual(self._lower('let s = "hi"; let n; let b = true'), [
            "assign 'hi' -> s",
            "assign null -> n",
            "assign true -> b",
        ])

    def test_unary_and_logical(self):
        self.assertEqual(self._lower("let y = !a || -b"), [
            "not a -> t0",
            "neg b -> t1",
            "or t0 t1 -> t2",
            "assign t2 -> y",
        ])

    def test_compound_assignment(self):
        self.assertEqual(self._lower("total += 2"), [
            "add total 2 -> t0",
            "assign t0 -> total",
        ])

    def test_member_compound_assignment(self):
        self.assertEqual(self._lower("o.a += 1"), [
            "get_member o 'a' -> t0",
            "add t0 1 -> t1",
            "set_member t1 'a' -> o",
        ])

    def test_index_assignment_on_literal_materializes_container(self):
        self.assertEqual(self._lower("[1][0] = 2"), [
            "push 1",
            "new_array 1 -> t0",
            "set_index 2 0 -> t0",
        ])

    def test_if_else(self):
        self.assertEqual(self._lower("if x { y = 1 } else { y = 2 }"), [
            "if_false x L0",
            "assign 1 -> y",
            "goto L1",
            "L0:",
            "assign 2 -> y",
            "L1:",
        ])

    def test_elsif_nests_in_else_branch(self):
        lines = self._lower("if a { x = 1 } elsif b { x = 2 } else { x = 3 }")
        self.assertEqual(lines, [
            "if_false a L0",
            "assign 1 -> x",
            "goto L1",
            "L0:",
            "if_false b L2",
            "assign 2 -> x",
            "goto L3",
            "L2:",
            "assign 3 -> x",
            "L3:",
            "L1:",
        ])

    def test_while_loop(self):
        self.assertEqual(self._lower("let i = 0\nwhile i < 3 { i += 1 }"), [
            "assign 0 -> i",
            "L0:",
            "lt i 3 -> t0",
            "if_false t0 L1",
            "add i 1 -> t1",
            "assign t1 -> i",
            "goto L0",
            "L1:",
        ])

    def test_for_loop(self):
        self.assertEqual(self._lower("for i = 1 to 3 { print(i) }"), [
            "assign 1 -> i",
            "L0:",
            "le i 3 -> t0",
            "if_false t0 L2",
            "push i",
            "call print 1 -> t1",
            "L1:",
            "add i 1 -> t2",
            "assign t2 -> i",
            "goto L0",
            "L2:",
        ])

    def test_break_and_continue_targets(self):
        source = "for i = 1 to 3 { if i == 2 { continue } break }"
        instructions = self.generator.generate(parse_string(source))
        gotos = [i.operand1 for i in instructions if i.opcode == Opcode.GOTO]

        # continue -> L1 (increment), end of if, break -> L2 (exit), loop back -> L0
        self.assertIn(Label("L1"), gotos)
        self.assertIn(Label("L2"), gotos)
        self.assertEqual(gotos[-1], Label("L0"))

    def test_function_and_call(self):
        self.assertEqual(self._lower("def add(a, b) { return a + b }\nadd(3, 4)"), [
            "function 'add' 2",
            "param -> a",
            "param -> b",
            "add a b -> t0",
            "return t0",
            "end_function",
            "push 3",
            "push 4",
            "call add 2 -> t1",
        ])

    def test_arguments_are_evaluated_before_pushes(self):
        lines = self._lower("f(g(1), 2)")
        self.assertEqual(lines, [
            "push 1",
            "call g 1 -> t0",
            "push t0",
            "push 2",
            "call f 2 -> t1",
        ])

    def test_class_lowering(self):
        source = "class P { let x = 1\n def get() { return self.x } }"
        self.assertEqual(self._lower(source), [
            "function 'P_get' 1",
            "param -> self",
            "get_member self 'x' -> t0",
            "return t0",
            "end_function",
            "new_object -> t1",
            "set_member 1 'x' -> t1",
            "set_member P_get 'get' -> t1",
            "assign t1 -> P",
        ])

    def test_object_literal(self):
        self.assertEqual(self._lower("let o = {a: 1, b: x}"), [
            "new_object -> t0",
            "set_member 1 'a' -> t0",
            "set_member x 'b' -> t0",
            "assign t0 -> o",
        ])

    def test_imports(self):
        source = 'import { a, b as c } from "m"\nimport * as ns from "m"\nimport d from "m"'
        self.assertEqual(self._lower(source), [
            "import 'm' 'a' -> a",
            "import 'm' 'b' -> c",
            "import 'm' '*' -> ns",
            "import 'm' 'default' -> d",
        ])

    def test_try_keeps_block_and_finalizer(self):
        self.assertEqual(self._lower("try { a = 1 } catch (e) { a = 2 } finally { b = 3 }"), [
            "assign 1 -> a",
            "assign 3 -> b",
        ])

    def test_counters_reset_per_generate(self):
        program = parse_string("let x = a + b")
        first = self.generator.generate(program)
        second = self.generator.generate(program)
        self.assertEqual(first, second)

    def test_source_names_never_collide_with_temporaries(self):
        self.assertEqual(self._lower("let t0 = 5; let x = 2; let z = (x + 1) * t0"), [
            "assign 5 -> t0_",
            "assign 2 -> x",
            "add x 1 -> t0",
            "mul t0 t0_ -> t1",
            "assign t1 -> z",
        ])
        self.assertEqual(self._lower("let t1_ = 1; t1_ += t1"), [
            "assign 1 -> t1__",
            "add t1__ t1_ -> t0",
            "assign t0 -> t1__",
        ])

    def test_temporary_shaped_names_survive_optimization(self):
        program = parse_string("let t3 = 4; def t7(t2) { return t2 }")
        optimized = Optimizer().optimize(self.generator.generate(program))
        text = [str(i) for i in optimized]

        self.assertIn("assign 4 -> t3_", text)
        self.assertIn("function 't7_' 1", text)
        self.assertIn("param -> t2_", text)
        self.assertIn("return t2_", text)

    def test_break_outside_loop(self):
        with self.assertRaises(IRGenerationError):
            self._lower("break")

    def test_break_does_not_cross_function_boundary(self):
        with self.assertRaises(IRGenerationError):
            self._lower("while true { def f() { break } }")

    def test_throw_is_not_compilable(self):
        with self.assertRaises(IRGenerationError) as ctx:
            self._lower('throw "x"')
        self.assertEqual(ctx.exception.diagnostic.code, "C003")

    def test_invalid_assignment_target(self):
        with self.assertRaises(IRGenerationError):
            self._lower("f() = 1")


class TestIRNodes(unittest.TestCase):
    """Operand and instruction helpers."""

    def test_const_equality_is_type_aware(self):
        self.assertEqual(Const(1.0), Const(1.0))
        self.assertNotEqual(Const(1.0), Const(True))
        self.assertNotEqual(Const(0.0), Const(-0.0))
        self.assertNotEqual(Const("1"), Const(1.0))
        self.assertEqual(len({Const(2.0), Const(2.0), Const("2")}), 2)

    def test_const_is_immutable(self):
        with self.assertRaises(AttributeError):
            Const(1.0).value = 2.0

    def test_temporary_names(self):
        self.assertTrue(is_temporary("t12"))
        self.assertFalse(is_temporary("total"))
        self.assertFalse(is_temporary(None))
        self.assertTrue(Var("t0").is_temporary)

    def test_store_reads_container(self):
        store = Instruction(Opcode.SET_MEMBER, Var("v"), Const("k"), "obj")
        self.assertEqual(store.reads(), ["v", "obj"])
        self.assertIsNone(store.defines())

    def test_reads_defines_and_labels(self):
        jump = Instruction(Opcode.IF_FALSE, Var("t0"), Label("L3"))
        self.assertEqual(jump.reads(), ["t0"])
        self.assertEqual(jump.labels(), ["L3"])

        add = Instruction(Opcode.ADD, Var("a"), Const(1.0), "t1")
        self.assertEqual(add.defines(), "t1")
        self.assertEqual(str(add), "add a 1 -> t1")

    def test_format_ir(self):
        text = format_ir([
            Instruction(Opcode.LABEL, Label("L0")),
            Instruction(Opcode.GOTO, Label("L0")),
        ])
        self.assertEqual(text, "L0:\n    goto L0")


if __name__ == '__main__':
    unittest.main()
