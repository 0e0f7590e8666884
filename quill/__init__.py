"""
Quill Language Package

A small dynamically typed scripting language with one front end and two
consumers: a tree-walking evaluator and a compiler pipeline that lowers
programs to a flat three-address IR, optimizes it and hands it to
pluggable target emitters.

Architecture:
    quill/
    ├── lexer/           # Tokenization
    ├── parser/          # Recursive-descent parser and AST
    ├── interpreter/     # Values, scopes, builtins, evaluator
    ├── ir/              # Three-address IR and IR generator
    ├── optimizer/       # Folding, dead-code and common-subexpression passes
    ├── backend/         # Backend contract, registry and emitters
    ├── engine.py        # execute / compile_to_target facade
    └── config.py        # Engine configuration

Author: xwest
License: MIT
"""

__version__ = "0.1.0"
__author__ = "xwest"
__license__ = "MIT"

from .config import EngineConfig, load_config, find_config
from .engine import Engine, execute, compile_to_target
from .errors import QuillError, Diagnostic, UnsupportedTargetError, CompilationError, ExecutionError
from .lexer import Lexer, LexError
from .parser import Parser, ParseError
from .interpreter import Evaluator
from .ir import IRGenerator
from .optimizer import Optimizer
from .backend import Backend, TARGET_EXTENSIONS, extension_for, supported_targets, target_info

__all__ = [
    # Facade
    "Engine",
    "execute",
    "compile_to_target",
    "EngineConfig",
    "load_config",
    "find_config",

    # Pipeline stages
    "Lexer",
    "Parser",
    "Evaluator",
    "IRGenerator",
    "Optimizer",
    "Backend",
    "TARGET_EXTENSIONS",
    "extension_for",
    "supported_targets",
    "target_info",

    # Errors
    "QuillError",
    "Diagnostic",
    "LexError",
    "ParseError",
    "UnsupportedTargetError",
    "CompilationError",
    "ExecutionError",

    # Version info
    "__version__",
    "__author__",
    "__license__",
]
