"""
Error handling for the Quill lexer.

Provides error reporting with source location information and
suggestions for the most common tokenization mistakes.

Author: xwest
"""

from typing import List

from .tokens import SourceLocation, KEYWORDS
from ..errors import QuillError


class LexError(QuillError):
    """
    Exception raised when the lexer cannot match any token.

    Carries the offending character alongside its line and column.
    """

    code = "L001"

    def __init__(self, message: str, location: SourceLocation, character: str = "", **kwargs):
        super().__init__(message, location, **kwargs)
        self.character = character

    @property
    def line(self) -> int:
        return self.location.line

    @property
    def column(self) -> int:
        return self.location.column


class ErrorRecovery:
    """Suggestion helpers used when building lexer diagnostics."""

    @staticmethod
    def suggest_keyword_corrections(invalid_word: str) -> List[str]:
        """Suggest corrections for misspelled keywords using edit distance."""
        suggestions = []
        for keyword in KEYWORDS.keys():
            distance = ErrorRecovery._edit_distance(invalid_word.lower(), keyword)
            if distance <= 2:
                suggestions.append(keyword)

        return sorted(suggestions, key=lambda k: ErrorRecovery._edit_distance(invalid_word.lower(), k))[:3]

    @staticmethod
    def suggest_operator_alternatives(char: str) -> List[str]:
        """Suggest Quill spellings for operators borrowed from other languages."""
        alternatives = {
            '&': ['&&', 'and'],
            '|': ['||', 'or'],
            '^': ['use * for multiplication; there is no power operator'],
            '~': ['!', 'not'],
            '?': ['if cond { ... } else { ... }'],
            '`': ['"...", \'...\''],
        }

        return alternatives.get(char, [])

    @staticmethod
    def _edit_distance(s1: str, s2: str) -> int:
        """Calculate Levenshtein distance between two strings."""
        if len(s1) < len(s2):
            return ErrorRecovery._edit_distance(s2, s1)

        if len(s2) == 0:
            return len(s1)

        previous_row = list(range(len(s2) + 1))
        for i, c1 in enumerate(s1):
            current_row = [i + 1]
            for j, c2 in enumerate(s2):
                insertions = previous_row[j + 1] + 1
                deletions = current_row[j] + 1
                substitutions = previous_row[j] + (c1 != c2)
                current_row.append(min(insertions, deletions, substitutions))
            previous_row = current_row

        return previous_row[-1]


# Common error codes for categorization
ERROR_CODES = {
    "L001": "Invalid character",
    "L002": "Unterminated string literal",
    "L003": "Invalid numeric literal",
    "L004": "Unterminated block comment",
}


def create_invalid_character_error(char: str, location: SourceLocation) -> LexError:
    """Create an error for a character that starts no token."""
    suggestions = ErrorRecovery.suggest_operator_alternatives(char)

    if suggestions:
        help_text = f"Quill has no '{char}' operator."
    elif char.isprintable():
        help_text = f"The character '{char}' is not valid in Quill source code."
    else:
        help_text = f"Non-printable character (Unicode: U+{ord(char):04X}) is not allowed."

    return LexError(
        f"Unexpected character '{char}' at line {location.line}, column {location.column}",
        location,
        character=char,
        code="L001",
        help_text=help_text,
        suggestions=suggestions
    )


def create_unterminated_string_error(quote: str, location: SourceLocation) -> LexError:
    """Create an error for an unterminated string literal."""
    return LexError(
        f"Unterminated string at line {location.line}, column {location.column}",
        location,
        character=quote,
        code="L002",
        help_text=f"String literals must be closed with a matching {quote} quote.",
        suggestions=[f"Add a closing {quote} quote", "Check for unescaped quotes in the string"]
    )


def create_invalid_number_error(lexeme: str, location: SourceLocation, reason: str) -> LexError:
    """Create an error for a malformed numeric literal."""
    return LexError(
        f"Invalid numeric literal '{lexeme}' at line {location.line}, column {location.column}",
        location,
        character=lexeme[-1:] if lexeme else "",
        code="L003",
        help_text=reason,
    )


def create_unterminated_comment_error(location: SourceLocation) -> LexError:
    """Create an error for a block comment that never closes."""
    return LexError(
        f"Unterminated block comment at line {location.line}, column {location.column}",
        location,
        character="/*",
        code="L004",
        help_text="Block comments do not nest; close this one with */.",
    )
