"""
Test suite for the Quill backends.

Tests cover:
- Backend registry and target metadata
- Table-driven emitters (python, javascript, ruby, lua)
- Dispatch-loop and native-goto control flow
- The llvmlite-based LLVM backend

Author: xwest
"""

import unittest
import sys
import os

# Add the project root to the Python path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
sys.path.insert(0, project_root)

from quill.errors import BackendError, UnsupportedTargetError
from quill.ir import IRGenerator, Instruction, Opcode, Const
from quill.optimizer import optimize
from quill.parser import parse_string
from quill.backend import (
    Backend, BackendRegistry, TargetInfo, create_default_registry, supported_targets,
    target_info, extension_for, target_type, split_functions,
    PythonBackend, JavaScriptBackend, RubyBackend, LuaBackend, LLVMBackend
)


def lower(source: str):
    """Parse, lower and optimize a snippet."""
    return optimize(IRGenerator().generate(parse_string(source)))


class TestRegistry(unittest.TestCase):

    def test_default_targets(self):
        self.assertEqual(supported_targets(), ["python", "javascript", "ruby", "lua", "llvm"])

    def test_lookup_is_case_insensitive(self):
        registry = create_default_registry()
        self.assertIsInstance(registry.get("  Python "), PythonBackend)
        self.assertIn("JAVASCRIPT", registry)

    def test_unknown_target(self):
        with self.assertRaises(UnsupportedTargetError) as ctx:
            create_default_registry().get("cobol")

        self.assertEqual(ctx.exception.target, "cobol")
        self.assertEqual(ctx.exception.diagnostic.code, "C001")
        self.assertIn("python", ctx.exception.diagnostic.suggestions[0])

    def test_register_and_unregister(self):
        class EchoBackend(Backend):
            name = "echo"
            file_extension = ".txt"

            def generate(self, instructions, options=None):
                return "\n".join(str(i) for i in instructions)

        registry = BackendRegistry()
        registry.register("Echo", EchoBackend())
        self.assertEqual(registry.names(), ["echo"])
        self.assertEqual(registry.get("echo").generate(lower("let x = 1")), "assign 1 -> x")

        registry.unregister("ECHO")
        self.assertEqual(len(registry), 0)

    def test_copy_is_independent(self):
        registry = create_default_registry()
        clone = registry.copy()
        clone.unregister("lua")

        self.assertIn("lua", registry)
        self.assertNotIn("lua", clone)

    def test_extension_table(self):
        self.assertEqual(extension_for("python"), ".py")
        self.assertEqual(extension_for("JavaScript"), ".js")
        self.assertEqual(extension_for("cobol"), ".cob")
        self.assertEqual(extension_for("brainfuck"), ".txt")
        self.assertEqual(target_type("rust"), "compiled")
        self.assertEqual(target_type("nope"), "unknown")

    def test_target_info(self):
        info = target_info("ruby")
        self.assertIsInstance(info, TargetInfo)
        self.assertEqual((info.extension, info.type), (".rb", "interpreted"))
        self.assertIsInstance(info.backend, RubyBackend)
        self.assertIsNone(target_info("cobol"))


class TestEmitters(unittest.TestCase):
    """Every registered backend accepts the basic pipeline output."""

    def test_every_backend_emits_assignment(self):
        instructions = lower("let x = 5")
        for name in supported_targets():
            with self.subTest(target=name):
                output = create_default_registry().get(name).generate(instructions)
                self.assertTrue(output.strip())
                self.assertIn("x", output)

    def test_backends_do_not_mutate_input(self):
        instructions = lower("let x = 2\nwhile x < 10 { x = x * x }\nprint(x)")
        snapshot = list(instructions)
        for name in supported_targets():
            create_default_registry().get(name).generate(instructions)
        self.assertEqual(instructions, snapshot)

    def test_python_straight_line(self):
        output = PythonBackend().generate(lower("let x = 5\nprint(x)"))

        self.assertTrue(output.startswith("#!/usr/bin/env python3\n# Generated by Quill for python\n"))
        self.assertIn("x = 5\n", output)
        self.assertIn("t0 = print(x)", output)

    def test_banner_can_be_disabled(self):
        output = PythonBackend().generate(lower("let x = 5"), {"banner": False})
        self.assertNotIn("Generated by Quill", output)

    def test_javascript_declarations_and_builtins(self):
        output = JavaScriptBackend().generate(lower("let x = 5\nprint(x)"))

        self.assertIn("let x, t0;", output)
        self.assertIn("x = 5;", output)
        self.assertIn("t0 = console.log(x);", output)

    def test_ruby_numbers_and_escapes(self):
        output = RubyBackend().generate(lower('let x = 5\nlet s = "#{x}"'))

        self.assertIn("x = 5.0", output)
        self.assertIn('s = "\\#{x}"', output)

    def test_lua_operators(self):
        output = LuaBackend().generate(lower("let a = 1\nlet b = a != 2\nlet c = a % 2\nlet d = [a, 2]"))

        self.assertIn("~=", output)
        self.assertIn("math.fmod(a, 2)", output)
        self.assertIn("{a, 2}", output)
        self.assertNotIn("local a", output)

    def test_reserved_words_are_renamed(self):
        output = PythonBackend().generate(lower("let pass = 1\nlet y = pass + 1"))
        self.assertIn("pass_ = 1", output)
        self.assertIn("pass_ + 1", output)

    def test_string_quoting(self):
        output = PythonBackend().generate(lower('let s = "a\\"b\\n"'))
        self.assertIn('s = "a\\"b\\n"', output)

    def test_dispatch_loop_for_targets_without_goto(self):
        source = "let i = 0\nwhile i < 3 { i += 1 }"
        python = PythonBackend().generate(lower(source))
        javascript = JavaScriptBackend().generate(lower(source))

        for text in ("_pc = 0", "while True:", "if _pc == 0:", "elif _pc == 1:", "break"):
            self.assertIn(text, python)
        self.assertIn("} else if (_pc === 1) {", javascript)
        self.assertIn("continue;", javascript)

    def test_lua_uses_native_goto(self):
        output = LuaBackend().generate(lower("let i = 0\nwhile i < 3 { i += 1 }"))

        self.assertIn("::L0::", output)
        self.assertIn("goto L0", output)
        self.assertIn("if not (t0) then", output)
        self.assertNotIn("_pc", output)

    def test_functions_are_hoisted(self):
        source = "print(1)\ndef f(a) { return a }\nf(2)"
        output = PythonBackend().generate(lower(source))

        self.assertIn("def f(a):\n    return a\n", output)
        self.assertLess(output.index("def f(a):"), output.index("print(1)"))

    def test_empty_function_body(self):
        python = PythonBackend().generate(lower("def f() { }"))
        ruby = RubyBackend().generate(lower("def f() { }"))

        self.assertIn("def f():\n    pass", python)
        self.assertIn("def f()\n  nil\nend", ruby)

    def test_local_declarations_in_functions(self):
        output = LuaBackend().generate(lower("def f(n) { let m = n * 2\nreturn m }"))

        self.assertIn("local t0, m", output)
        self.assertIn("do return m end", output)

    def test_imports_are_hoisted(self):
        source = 'let a = 1\nimport { b } from "./lib/util.ql"\nimport * as m from "math"'
        python = PythonBackend().generate(lower(source))
        javascript = JavaScriptBackend().generate(lower(source))

        self.assertIn("from lib.util import b as b", python)
        self.assertIn("import math as m", python)
        self.assertLess(python.index("from lib.util"), python.index("a = 1"))
        self.assertIn('import { b as b } from "./lib/util.ql";', javascript)

    def test_unbalanced_functions(self):
        with self.assertRaises(BackendError):
            split_functions([Instruction(Opcode.FUNCTION, Const("f"), Const(0.0))])
        with self.assertRaises(BackendError):
            split_functions([Instruction(Opcode.END_FUNCTION)])


class TestLLVMBackend(unittest.TestCase):

    def setUp(self):
        """Set up test fixtures."""
        self.backend = LLVMBackend()

    def test_module_layout(self):
        text = self.backend.generate(lower("let x = 5\nprint(x + 1)"))

        self.assertIn("fadd double", text)
        self.assertIn("printf", text)
        self.assertIn("define i32", text)
        self.assertIn("global double", text)

    def test_functions_take_doubles(self):
        text = self.backend.generate(lower("def sq(n) { return n * n }\nprint(sq(3))"))

        self.assertIn("define double", text)
        self.assertIn("fmul double", text)
        self.assertIn("sq", text)

    def test_control_flow(self):
        text = self.backend.generate(lower("let i = 0\nwhile i < 3 { i += 1 }"))
        self.assertIn("fcmp olt", text)
        self.assertIn("br i1", text)

    def test_module_name_option(self):
        text = self.backend.generate(lower("let x = 1"), {"module_name": "demo"})
        self.assertIn("demo", text)

    def test_entry_point_name_does_not_clash(self):
        text = self.backend.generate(lower("def main() { return 1 }\nlet printf = main()"))
        self.assertIn("quill.main", text)
        self.assertIn("quill.printf", text)

    def test_strings_are_rejected(self):
        with self.assertRaises(BackendError):
            self.backend.generate(lower('let s = "hi"'))

    def test_unknown_function_is_rejected(self):
        with self.assertRaises(BackendError):
            self.backend.generate(lower("nope(1)"))

    def test_containers_are_rejected(self):
        with self.assertRaises(BackendError):
            self.backend.generate(lower("let a = [1, 2]"))


if __name__ == '__main__':
    unittest.main()
