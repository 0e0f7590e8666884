"""
Quill Backend Package

Backend contract, target registry and the shipped emitters:
python, javascript, ruby and lua through the table-driven emitter, and
llvm through llvmlite.

Author: xwest
"""

from typing import List, Optional

from .base import (
    Backend, BackendRegistry, TargetInfo, FunctionUnit,
    TARGET_EXTENSIONS, TARGET_TYPES, DEFAULT_EXTENSION,
    extension_for, target_type, normalize_target, split_functions, defined_names
)
from .table_emitter import TargetFormat, TableEmitter
from .targets import (
    PythonBackend, JavaScriptBackend, RubyBackend, LuaBackend,
    PYTHON_FORMAT, JAVASCRIPT_FORMAT, RUBY_FORMAT, LUA_FORMAT
)
from .llvm_backend import LLVMBackend


def create_default_registry() -> BackendRegistry:
    """Fresh registry holding every shipped backend."""
    registry = BackendRegistry()
    registry.register("python", PythonBackend())
    registry.register("javascript", JavaScriptBackend())
    registry.register("ruby", RubyBackend())
    registry.register("lua", LuaBackend())
    registry.register("llvm", LLVMBackend())
    return registry


def supported_targets() -> List[str]:
    """Names of the shipped backends."""
    return create_default_registry().names()


def target_info(target: str) -> Optional[TargetInfo]:
    """Describe a shipped target, or None when no backend handles it."""
    return create_default_registry().target_info(target)


__all__ = [
    "Backend",
    "BackendRegistry",
    "TargetInfo",
    "FunctionUnit",
    "TARGET_EXTENSIONS",
    "TARGET_TYPES",
    "DEFAULT_EXTENSION",
    "extension_for",
    "target_type",
    "normalize_target",
    "split_functions",
    "defined_names",
    "TargetFormat",
    "TableEmitter",
    "PythonBackend",
    "JavaScriptBackend",
    "RubyBackend",
    "LuaBackend",
    "PYTHON_FORMAT",
    "JAVASCRIPT_FORMAT",
    "RUBY_FORMAT",
    "LUA_FORMAT",
    "LLVMBackend",
    "create_default_registry",
    "supported_targets",
    "target_info",
]
