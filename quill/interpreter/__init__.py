"""
Quill Interpreter Package

Tree-walking evaluator with explicit completion records, lexical scopes,
a JavaScript-flavoured value model and the builtin library.

Author: xwest
"""

from .evaluator import Evaluator, Completion, CompletionKind
from .scope import Scope
from .values import (
    UNDEFINED, FunctionValue, BuiltinFunction, ClassValue, Instance, BoundMethod,
    to_display, to_string, loose_equals
)
from .errors import (
    EvaluationError, UndefinedVariableError, InvalidAssignmentTargetError,
    NotAFunctionError, InfiniteLoopError, ControlFlowError, ThrownValueError,
    QuillTypeError, ImportResolutionError, StackOverflowError
)

__all__ = [
    "Evaluator",
    "Completion",
    "CompletionKind",
    "Scope",
    "UNDEFINED",
    "FunctionValue",
    "BuiltinFunction",
    "ClassValue",
    "Instance",
    "BoundMethod",
    "to_display",
    "to_string",
    "loose_equals",
    "EvaluationError",
    "UndefinedVariableError",
    "InvalidAssignmentTargetError",
    "NotAFunctionError",
    "InfiniteLoopError",
    "ControlFlowError",
    "ThrownValueError",
    "QuillTypeError",
    "ImportResolutionError",
    "StackOverflowError",
]
