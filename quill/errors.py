"""
Shared diagnostics and the root of the Quill error taxonomy.

Every error raised by the lexer, parser, evaluator or compiler pipeline
derives from QuillError and carries a Diagnostic with a source location,
an error code and optional help text, so callers can render any failure
the same way.

Author: xwest
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:
    from .lexer.tokens import SourceLocation


@dataclass
class Diagnostic:
    """A single error/warning report with location and hints."""
    message: str
    location: Optional['SourceLocation']
    severity: str  # "error", "warning", "info", "hint"
    code: Optional[str] = None
    help_text: Optional[str] = None
    suggestions: Optional[List[str]] = None

    def __str__(self) -> str:
        severity_prefix = self.severity.upper()
        result = f"{severity_prefix}: {self.message}"
        if self.code:
            result = f"{severity_prefix}[{self.code}]: {self.message}"

        if self.location is not None:
            result += f"\n  --> {self.location}"

        if self.help_text:
            result += f"\n  help: {self.help_text}"

        if self.suggestions:
            result += "\n  suggestions:"
            for suggestion in self.suggestions:
                result += f"\n    - {suggestion}"

        return result


class QuillError(Exception):
    """
    Base class for every error the Quill toolchain raises.

    Holds a Diagnostic; the plain message is also the exception argument
    so ``e.args[0]`` stays readable.
    """

    code: Optional[str] = None

    def __init__(
        self,
        message: str,
        location: Optional['SourceLocation'] = None,
        code: Optional[str] = None,
        help_text: Optional[str] = None,
        suggestions: Optional[List[str]] = None
    ):
        super().__init__(message)
        self.message = message
        self.location = location
        self.diagnostic = Diagnostic(
            message=message,
            location=location,
            severity="error",
            code=code or self.code,
            help_text=help_text,
            suggestions=suggestions
        )

    def __str__(self) -> str:
        return str(self.diagnostic)


class UnsupportedTargetError(QuillError):
    """Raised when no backend is registered for a compilation target."""

    code = "C001"

    def __init__(self, target: str, available: Optional[List[str]] = None):
        self.target = target
        suggestions = None
        if available:
            suggestions = [f"Available targets: {', '.join(sorted(available))}"]
        super().__init__(
            f"Unsupported compilation target: {target}",
            help_text="Register a backend for this target or pick a registered one.",
            suggestions=suggestions
        )


class CompilationError(QuillError):
    """
    Wraps any failure inside the compile pipeline.

    The message always starts with ``"Compilation failed: "`` and the
    original error is kept on ``cause`` (and chained as ``__cause__``).
    """

    code = "C002"
    PREFIX = "Compilation failed: "

    def __init__(self, cause: Exception):
        self.cause = cause
        detail = cause.message if isinstance(cause, QuillError) else str(cause)
        location = cause.location if isinstance(cause, QuillError) else None
        super().__init__(f"{self.PREFIX}{detail}", location)


class IRGenerationError(QuillError):
    """Raised when a construct cannot be lowered to IR."""

    code = "C003"


class BackendError(QuillError):
    """Raised when a backend cannot express an IR instruction."""

    code = "C004"


class ExecutionError(QuillError):
    """
    Wraps the first lex, parse or runtime failure of `Engine.execute`.

    The message always starts with ``"Execution failed: "``; the original
    error is kept on ``cause`` and chained as ``__cause__``.
    """

    code = "R010"
    PREFIX = "Execution failed: "

    def __init__(self, cause: Exception):
        self.cause = cause
        detail = cause.message if isinstance(cause, QuillError) else str(cause)
        location = cause.location if isinstance(cause, QuillError) else None
        super().__init__(f"{self.PREFIX}{detail}", location)
