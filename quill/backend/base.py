"""
Backend contract and target registry for Quill.

A backend turns an IR instruction list into target source text. It must
not mutate its input and reports the file extension of what it writes.
The registry maps lower-cased target names to backend instances; the
extension table is a wider static list used only to name output files.

Author: xwest
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ..errors import UnsupportedTargetError, BackendError
from ..ir.ir_nodes import Opcode, Instruction

logger = logging.getLogger(__name__)


TARGET_EXTENSIONS: Dict[str, str] = {
    # Assembly
    "x86": ".asm",
    "arm": ".s",
    "wasm": ".wat",
    "llvm": ".ll",
    # Compiled
    "c": ".c",
    "cpp": ".cpp",
    "rust": ".rs",
    "go": ".go",
    "java": ".java",
    "csharp": ".cs",
    "swift": ".swift",
    # Interpreted
    "python": ".py",
    "ruby": ".rb",
    "php": ".php",
    "perl": ".pl",
    "lua": ".lua",
    # Scripting
    "javascript": ".js",
    "typescript": ".ts",
    "bash": ".sh",
    "powershell": ".ps1",
    "vbscript": ".vbs",
    # Functional
    "haskell": ".hs",
    "scala": ".scala",
    "elixir": ".ex",
    "erlang": ".erl",
    "fsharp": ".fs",
    "clojure": ".clj",
    # Web
    "html": ".html",
    "css": ".css",
    "jsx": ".jsx",
    "vue": ".vue",
    # Database
    "sql": ".sql",
    "postgresql": ".sql",
    "mysql": ".sql",
    "sqlite": ".sql",
    "mongodb": ".js",
    # Specialized
    "ada": ".adb",
    "cobol": ".cob",
    "fortran": ".f90",
    "lisp": ".lisp",
    "prolog": ".pl",
    "mlang": ".m",
}

DEFAULT_EXTENSION = ".txt"

TARGET_TYPES: Dict[str, Tuple[str, ...]] = {
    "assembly": ("x86", "arm", "wasm"),
    "compiled": ("llvm", "c", "cpp", "rust", "go", "java", "csharp", "swift"),
    "interpreted": ("python", "ruby", "php", "perl", "lua"),
    "scripting": ("javascript", "typescript", "bash", "powershell", "vbscript"),
    "functional": ("haskell", "scala", "elixir", "erlang", "fsharp", "clojure"),
    "web": ("html", "css", "jsx", "vue"),
    "database": ("sql", "postgresql", "mysql", "sqlite", "mongodb"),
    "specialized": ("ada", "cobol", "fortran", "lisp", "prolog", "mlang"),
}


def normalize_target(target: str) -> str:
    return target.strip().lower()


def extension_for(target: str) -> str:
    """File extension for a target name, `.txt` when unknown."""
    return TARGET_EXTENSIONS.get(normalize_target(target), DEFAULT_EXTENSION)


def target_type(target: str) -> str:
    """Category of a target (`interpreted`, `scripting`, ...) or `unknown`."""
    name = normalize_target(target)
    for category, members in TARGET_TYPES.items():
        if name in members:
            return category
    return "unknown"


class Backend(ABC):
    """Turns IR into target source text."""

    name: str = ""
    file_extension: str = DEFAULT_EXTENSION

    @abstractmethod
    def generate(self, instructions: List[Instruction], options: Optional[Dict[str, Any]] = None) -> str:
        """Emit target text for `instructions` without modifying them."""


@dataclass
class TargetInfo:
    """Description of a registered target."""
    name: str
    extension: str
    type: str
    backend: Backend


class BackendRegistry:
    """Lower-cased target name to backend instance."""

    def __init__(self):
        self._backends: Dict[str, Backend] = {}

    def register(self, target: str, backend: Backend):
        name = normalize_target(target)
        if name in self._backends:
            logger.debug("replacing backend for target %s", name)
        self._backends[name] = backend

    def unregister(self, target: str):
        self._backends.pop(normalize_target(target), None)

    def get(self, target: str) -> Backend:
        """Backend for `target` or UnsupportedTargetError."""
        backend = self._backends.get(normalize_target(target))
        if backend is None:
            raise UnsupportedTargetError(target, self.names())
        return backend

    def names(self) -> List[str]:
        return list(self._backends)

    def target_info(self, target: str) -> Optional[TargetInfo]:
        name = normalize_target(target)
        backend = self._backends.get(name)
        if backend is None:
            return None
        return TargetInfo(name=target, extension=extension_for(name),
                          type=target_type(name), backend=backend)

    def copy(self) -> 'BackendRegistry':
        registry = BackendRegistry()
        registry._backends = dict(self._backends)
        return registry

    def __contains__(self, target: str) -> bool:
        return normalize_target(target) in self._backends

    def __len__(self) -> int:
        return len(self._backends)


# ============================================================================
# Shared IR helpers for emitters
# ============================================================================

@dataclass
class FunctionUnit:
    """One `function` ... `end_function` run, nested functions removed."""
    name: str
    params: List[str]
    body: List[Instruction] = field(default_factory=list)


def split_functions(instructions: List[Instruction]) -> Tuple[List[FunctionUnit], List[Instruction]]:
    """
    Hoist every function out of the flat stream.

    Returns the functions (outer before inner, in source order) and the
    remaining top-level instructions.
    """
    functions: List[FunctionUnit] = []
    main: List[Instruction] = []
    stack: List[FunctionUnit] = []

    for instruction in instructions:
        if instruction.opcode == Opcode.FUNCTION:
            unit = FunctionUnit(instruction.operand1.value, [])
            functions.append(unit)
            stack.append(unit)
        elif instruction.opcode == Opcode.END_FUNCTION:
            if not stack:
                raise BackendError("end_function without a matching function")
            stack.pop()
        elif instruction.opcode == Opcode.PARAM and stack:
            stack[-1].params.append(instruction.result)
        elif stack:
            stack[-1].body.append(instruction)
        else:
            main.append(instruction)

    if stack:
        raise BackendError(f"function '{stack[-1].name}' is missing end_function")
    return functions, main


def defined_names(body: List[Instruction]) -> List[str]:
    """Names written in a body, in first-write order."""
    names: List[str] = []
    seen = set()
    for instruction in body:
        name = instruction.defines()
        if name is not None and name not in seen:
            seen.add(name)
            names.append(name)
    return names
