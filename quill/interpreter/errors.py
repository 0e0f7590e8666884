"""
Runtime errors raised by the Quill evaluator.

All of them derive from EvaluationError, which is what a Quill `catch`
clause intercepts.

Author: xwest
"""

from typing import Any, Optional

from ..errors import QuillError
from ..lexer.tokens import SourceLocation


class EvaluationError(QuillError):
    """Base class for errors raised while executing a program."""

    code = "R000"


class UndefinedVariableError(EvaluationError):
    code = "R001"

    def __init__(self, name: str, location: Optional[SourceLocation] = None):
        self.name = name
        super().__init__(
            f"Undefined variable: {name}",
            location,
            help_text=f"Declare it first, e.g. `let {name} = ...`"
        )


class InvalidAssignmentTargetError(EvaluationError):
    code = "R002"

    def __init__(self, description: str, location: Optional[SourceLocation] = None):
        super().__init__(
            f"Invalid assignment target: {description}",
            location,
            help_text="Only names, index expressions and member expressions can be assigned to."
        )


class NotAFunctionError(EvaluationError):
    code = "R003"

    def __init__(self, description: str, location: Optional[SourceLocation] = None):
        super().__init__(f"{description} is not a function", location)


class InfiniteLoopError(EvaluationError):
    code = "R004"

    def __init__(self, limit: int, location: Optional[SourceLocation] = None):
        self.limit = limit
        super().__init__(
            f"Infinite loop detected: more than {limit} iterations",
            location,
            help_text="Raise max_loop_iterations in the engine config if the loop is intentional."
        )


class ControlFlowError(EvaluationError):
    """`break` or `continue` escaped every enclosing loop."""

    code = "R005"

    def __init__(self, keyword: str, location: Optional[SourceLocation] = None):
        self.keyword = keyword
        super().__init__(f"'{keyword}' outside of a loop", location)


class ThrownValueError(EvaluationError):
    """A value raised by a Quill `throw` statement."""

    code = "R006"

    def __init__(self, value: Any, location: Optional[SourceLocation] = None):
        from .values import to_display
        self.value = value
        super().__init__(f"Uncaught exception: {to_display(value)}", location)


class QuillTypeError(EvaluationError):
    """Operand of the wrong kind for an index, member, call argument or class."""

    code = "R007"


class ImportResolutionError(EvaluationError):
    code = "R008"

    def __init__(self, message: str, location: Optional[SourceLocation] = None):
        super().__init__(message, location)


class StackOverflowError(EvaluationError):
    code = "R009"

    def __init__(self, limit: int, location: Optional[SourceLocation] = None):
        self.limit = limit
        super().__init__(f"Maximum call depth of {limit} exceeded", location)


# Common runtime error codes
ERROR_CODES = {
    "R001": "Undefined variable",
    "R002": "Invalid assignment target",
    "R003": "Value is not callable",
    "R004": "Loop iteration ceiling exceeded",
    "R005": "break/continue outside of a loop",
    "R006": "Uncaught thrown value",
    "R007": "Operand has the wrong type",
    "R008": "Import could not be resolved",
    "R009": "Call depth exceeded",
}
