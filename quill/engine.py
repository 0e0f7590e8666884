"""
Quill engine facade.

`Engine.execute` runs source through the lexer, parser and evaluator and
wraps the first failure in ExecutionError.
`Engine.compile_to_target` runs it through the lexer, parser, IR
generator, optimizer and a registered backend. Each call builds its own
pipeline objects; engines share nothing with each other.

Usage:
    engine = Engine()
    engine.execute("let x = 10; let y = 20; x + y")      # 30.0
    engine.compile_to_target("let x = 5", "javascript")

Author: xwest
"""

import logging
import os
from typing import Any, Dict, List, Optional, Set

from .config import EngineConfig
from .errors import CompilationError, ExecutionError
from .backend import Backend, BackendRegistry, TargetInfo, create_default_registry, extension_for
from .interpreter import Evaluator, ImportResolutionError
from .interpreter.values import from_host
from .ir import IRGenerator, Instruction
from .lexer import Lexer, SourceLocation
from .optimizer import Optimizer
from .parser import Parser, Program

logger = logging.getLogger(__name__)

MODULE_EXTENSION = ".ql"


class Engine:
    """
    Entry point for running and compiling Quill source.

    Args:
        config: Engine settings; defaults when omitted
        registry: Backends to compile with; a fresh default registry when omitted
    """

    def __init__(self, config: Optional[EngineConfig] = None,
                 registry: Optional[BackendRegistry] = None):
        self.config = config or EngineConfig()
        self.backends = registry.copy() if registry is not None else create_default_registry()
        self.modules: Dict[str, Dict[str, Any]] = {}
        self._file_modules: Dict[str, Dict[str, Any]] = {}
        self._loading: Set[str] = set()
        self.last_evaluator: Optional[Evaluator] = None

    # ========================================================================
    # Front end
    # ========================================================================

    def parse(self, source: str, filename: str = "<string>") -> Program:
        """Tokenize and parse `source`."""
        tokens = Lexer(source, filename).tokenize()
        return Parser(tokens).parse()

    def execute(self, source: str, filename: str = "<string>") -> Any:
        """
        Run `source` in a fresh global scope.

        Returns:
            Value of the last evaluated statement, or None

        Raises:
            ExecutionError: Wrapping the first lex, parse or runtime error
        """
        try:
            return self._run(source, filename)
        except Exception as e:
            raise ExecutionError(e) from e

    def _run(self, source: str, filename: str) -> Any:
        program = self.parse(source, filename)
        evaluator = Evaluator(
            max_loop_iterations=self.config.max_loop_iterations,
            max_call_depth=self.config.max_call_depth,
            echo=self.config.echo,
            import_resolver=self._resolve_module,
        )
        self.last_evaluator = evaluator
        return evaluator.evaluate(program)

    # ========================================================================
    # Compiler pipeline
    # ========================================================================

    def generate_ir(self, source: str, optimize: Optional[bool] = None,
                    filename: str = "<string>") -> List[Instruction]:
        """Lower `source` to IR, optimized unless disabled."""
        program = self.parse(source, filename)
        instructions = IRGenerator().generate(program)
        if self.config.optimize if optimize is None else optimize:
            instructions = Optimizer().optimize(instructions)
        return instructions

    def compile_to_target(self, source: str, target: Optional[str] = None,
                          options: Optional[Dict[str, Any]] = None) -> str:
        """
        Compile `source` to target text.

        Raises:
            UnsupportedTargetError: No backend is registered for `target`
            CompilationError: Any failure inside the pipeline, wrapping the cause
        """
        target = target or self.config.default_target
        backend = self.backends.get(target)

        try:
            instructions = self.generate_ir(source)
            logger.debug("dispatching %d instructions to %s backend", len(instructions), target)
            return backend.generate(instructions, options or {})
        except Exception as e:
            raise CompilationError(e) from e

    def register_backend(self, target: str, backend: Backend):
        self.backends.register(target, backend)

    def supported_targets(self) -> List[str]:
        return self.backends.names()

    def target_info(self, target: str) -> Optional[TargetInfo]:
        return self.backends.target_info(target)

    @staticmethod
    def extension_for(target: str) -> str:
        return extension_for(target)

    # ========================================================================
    # Modules
    # ========================================================================

    def register_module(self, name: str, exports: Dict[str, Any]):
        """Make `exports` importable as `name`; Python callables become builtins."""
        self.modules[name] = {key: from_host(value) for key, value in exports.items()}

    def _resolve_module(self, source: str, location: Optional[SourceLocation]) -> Dict[str, Any]:
        if source in self.modules:
            logger.debug("resolved %s from registered modules", source)
            return self.modules[source]

        path = self._find_module_file(source)
        if path is None:
            raise ImportResolutionError(f"Cannot find module '{source}'", location)
        if path in self._file_modules:
            return self._file_modules[path]
        if path in self._loading:
            raise ImportResolutionError(f"Circular import of '{source}'", location)

        logger.debug("loading module %s from %s", source, path)
        with open(path, "r", encoding="utf-8") as f:
            text = f.read()

        child = Engine(self.config, self.backends)
        child.modules = self.modules
        child._file_modules = self._file_modules
        child._loading = self._loading
        self._loading.add(path)
        try:
            child._run(text, path)
        finally:
            self._loading.discard(path)

        exports = dict(child.last_evaluator.global_scope.values)
        self._file_modules[path] = exports
        return exports

    def _find_module_file(self, source: str) -> Optional[str]:
        names = [source] if source.endswith(MODULE_EXTENSION) else [source + MODULE_EXTENSION, source]
        for root in self.config.module_paths:
            for name in names:
                candidate = os.path.abspath(os.path.join(root, name))
                if os.path.isfile(candidate):
                    return candidate
        return None


def execute(source: str, config: Optional[EngineConfig] = None) -> Any:
    """Run `source` on a fresh engine."""
    return Engine(config).execute(source)


def compile_to_target(source: str, target: Optional[str] = None,
                      config: Optional[EngineConfig] = None) -> str:
    """Compile `source` on a fresh engine."""
    return Engine(config).compile_to_target(source, target)
