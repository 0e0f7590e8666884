"""
Test suite for the Quill engine facade.

Tests cover:
- execute / compile_to_target entry points
- Error wrapping in the compile pipeline
- Host-registered modules and `.ql` file imports
- Per-engine isolation of backends and modules

Author: xwest
"""

import io
import os
import shutil
import sys
import tempfile
import unittest

# Add the project root to the Python path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
sys.path.insert(0, project_root)

from quill import Engine, EngineConfig, execute, compile_to_target
from quill.backend import Backend
from quill.errors import (
    CompilationError, ExecutionError, UnsupportedTargetError, IRGenerationError, BackendError
)
from quill.interpreter import ImportResolutionError, InfiniteLoopError, UndefinedVariableError
from quill.ir import Opcode
from quill.lexer import LexError
from quill.parser import ParseError


class TestExecute(unittest.TestCase):

    def test_execute(self):
        self.assertEqual(Engine().execute("let x = 10; let y = 20; x + y"), 30.0)
        self.assertEqual(execute("def add(a, b) { return a + b }\nadd(3, 4)"), 7.0)

    def test_each_call_gets_a_fresh_global_scope(self):
        engine = Engine()
        engine.execute("let leaked = 1")
        with self.assertRaises(ExecutionError) as ctx:
            engine.execute("leaked")
        self.assertIsInstance(ctx.exception.cause, UndefinedVariableError)

    def test_config_limits_and_echo(self):
        output = io.StringIO()
        engine = Engine(EngineConfig(max_loop_iterations=10, echo=output))

        engine.execute('print("hello", 1 + 1)')
        self.assertEqual(output.getvalue(), "hello 2\n")
        with self.assertRaises(ExecutionError) as ctx:
            engine.execute("while true { }")
        self.assertIsInstance(ctx.exception.cause, InfiniteLoopError)

    def test_failures_are_wrapped(self):
        cases = (
            ("let x = @", LexError),
            ("let = 1", ParseError),
            ("undefinedName()", UndefinedVariableError),
        )
        for source, cause_type in cases:
            with self.subTest(source=source):
                with self.assertRaises(ExecutionError) as ctx:
                    execute(source)

                error = ctx.exception
                self.assertTrue(error.message.startswith("Execution failed: "))
                self.assertIsInstance(error.cause, cause_type)
                self.assertIs(error.__cause__, error.cause)
                self.assertEqual(error.location, error.cause.location)
                self.assertEqual(error.diagnostic.code, "R010")


class TestCompile(unittest.TestCase):

    def test_compile_to_every_target(self):
        engine = Engine()
        for target in engine.supported_targets():
            with self.subTest(target=target):
                self.assertIn("x", engine.compile_to_target("let x = 5", target))

    def test_default_target_from_config(self):
        output = compile_to_target("let x = 5", config=EngineConfig(default_target="lua"))
        self.assertIn("-- Generated by Quill for lua", output)

    def test_unsupported_target_is_not_wrapped(self):
        with self.assertRaises(UnsupportedTargetError):
            Engine().compile_to_target("let x = 5", "cobol")

    def test_pipeline_failures_are_wrapped(self):
        with self.assertRaises(CompilationError) as ctx:
            Engine().compile_to_target('throw "x"', "python")

        error = ctx.exception
        self.assertTrue(error.message.startswith("Compilation failed: "))
        self.assertIsInstance(error.cause, IRGenerationError)
        self.assertIs(error.__cause__, error.cause)
        self.assertEqual(error.diagnostic.code, "C002")

    def test_syntax_errors_are_wrapped(self):
        with self.assertRaises(CompilationError) as ctx:
            Engine().compile_to_target("let = 1", "javascript")
        self.assertIsInstance(ctx.exception.cause, ParseError)
        self.assertIsNotNone(ctx.exception.location)

    def test_backend_errors_are_wrapped(self):
        with self.assertRaises(CompilationError) as ctx:
            Engine().compile_to_target('let s = "text"', "llvm")
        self.assertIsInstance(ctx.exception.cause, BackendError)

    def test_optimize_flag(self):
        source = "let x = 1 + 2"
        optimized = Engine().generate_ir(source)
        raw = Engine(EngineConfig(optimize=False)).generate_ir(source)

        self.assertEqual(raw[0].opcode, Opcode.ADD)
        self.assertEqual(optimized[0].opcode, Opcode.ASSIGN)
        self.assertEqual(Engine().generate_ir(source, optimize=False), raw)

    def test_registered_backends_are_per_engine(self):
        class CountingBackend(Backend):
            name = "count"

            def generate(self, instructions, options=None):
                return str(len(instructions))

        engine = Engine()
        engine.register_backend("count", CountingBackend())

        self.assertEqual(engine.compile_to_target("let x = 1", "count"), "1")
        self.assertIn("count", engine.supported_targets())
        self.assertNotIn("count", Engine().supported_targets())

    def test_target_info_and_extension(self):
        engine = Engine()
        self.assertEqual(engine.target_info("llvm").extension, ".ll")
        self.assertIsNone(engine.target_info("php"))
        self.assertEqual(Engine.extension_for("php"), ".php")


class TestModules(unittest.TestCase):

    def setUp(self):
        """Set up a temporary module directory."""
        self.module_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.module_dir, ignore_errors=True)

    def _write_module(self, name: str, source: str):
        with open(os.path.join(self.module_dir, name), "w", encoding="utf-8") as f:
            f.write(source)

    def _engine(self) -> Engine:
        return Engine(EngineConfig(module_paths=[self.module_dir]))

    def test_host_module(self):
        engine = Engine()
        engine.register_module("host", {"double": lambda x: x * 2, "answer": 21, "tags": ("a", "b")})

        self.assertEqual(engine.execute('import { double, answer } from "host"\ndouble(answer)'), 42.0)
        self.assertEqual(engine.execute('import * as h from "host"\nh.tags'), ["a", "b"])

    def test_host_modules_are_per_engine(self):
        engine = Engine()
        engine.register_module("host", {"answer": 1})
        with self.assertRaises(ExecutionError) as ctx:
            Engine().execute('import { answer } from "host"')
        self.assertIsInstance(ctx.exception.cause, ImportResolutionError)

    def test_file_module(self):
        self._write_module("lib.ql", "let secret = 7\ndef twice(n) { return n * 2 }")
        engine = self._engine()

        self.assertEqual(engine.execute('import { twice, secret } from "lib"\ntwice(secret)'), 14.0)
        self.assertEqual(engine.execute('import * as lib from "./lib.ql"\nlib.secret'), 7.0)
        self.assertEqual(len(engine._file_modules), 1)

    def test_nested_file_imports(self):
        self._write_module("base.ql", "let unit = 10")
        self._write_module("mid.ql", 'import { unit } from "base"\nlet double = unit * 2')
        self.assertEqual(self._engine().execute('import { double } from "mid"\ndouble'), 20.0)

    def test_circular_import(self):
        self._write_module("a.ql", 'import { b } from "b"\nlet a = 1')
        self._write_module("b.ql", 'import { a } from "a"\nlet b = 2')

        with self.assertRaises(ExecutionError) as ctx:
            self._engine().execute('import { a } from "a"')
        self.assertIsInstance(ctx.exception.cause, ImportResolutionError)
        self.assertIn("Circular import", ctx.exception.cause.message)

    def test_missing_module(self):
        with self.assertRaises(ExecutionError) as ctx:
            self._engine().execute('import { x } from "nowhere"')
        self.assertEqual(ctx.exception.cause.message, "Cannot find module 'nowhere'")
        self.assertEqual(ctx.exception.message, "Execution failed: Cannot find module 'nowhere'")


if __name__ == '__main__':
    unittest.main()
