"""
Error handling for the Quill parser.

Parsing stops at the first syntax error; each error names what the parser
expected, the token it actually found, and where.

Author: xwest
"""

from typing import List, Optional, Union

from ..lexer.tokens import Token, TokenType, SourceLocation, OPERATORS, KEYWORDS
from ..errors import QuillError
from ..lexer.errors import ErrorRecovery


class ParseError(QuillError):
    """
    Exception raised when the parser encounters a syntax error.

    Attributes:
        expected: Description of what the grammar required here
        token: The token actually found
    """

    code = "P001"

    def __init__(
        self,
        message: str,
        location: SourceLocation,
        token: Optional[Token] = None,
        expected: Optional[str] = None,
        **kwargs
    ):
        super().__init__(message, location, **kwargs)
        self.token = token
        self.expected = expected


def describe_token(token: Token) -> str:
    """Human-readable description of a token for messages."""
    if token.type == TokenType.EOF:
        return "end of input"
    return f"'{token.lexeme}'"


def describe_expected(expected: Union[TokenType, str]) -> str:
    if isinstance(expected, TokenType):
        for lexeme, token_type in list(OPERATORS.items()) + list(KEYWORDS.items()):
            if token_type == expected:
                return f"'{lexeme}'"
        return expected.name.lower().replace('_', ' ')
    return expected


class SyntaxErrorRecovery:
    """Hints attached to parse errors."""

    @staticmethod
    def suggest_missing_token(expected: Union[TokenType, str], found: Token) -> List[str]:
        suggestions = []

        if expected == TokenType.RIGHT_BRACE:
            suggestions.append("Add a closing '}' to end the block")
        elif expected == TokenType.RIGHT_PAREN:
            suggestions.append("Add a closing ')' to match the opening parenthesis")
        elif expected == TokenType.RIGHT_BRACKET:
            suggestions.append("Add a closing ']' to end the array or index")
        elif expected == TokenType.LEFT_BRACE:
            suggestions.append("Block bodies must be wrapped in '{ ... }'")
        elif expected == TokenType.IDENTIFIER and found.is_keyword:
            suggestions.append(f"'{found.lexeme}' is a reserved word and cannot be used as a name")
        elif found.type == TokenType.IDENTIFIER and expected in KEYWORDS.values():
            for keyword in ErrorRecovery.suggest_keyword_corrections(found.lexeme):
                if KEYWORDS[keyword] == expected:
                    suggestions.append(f"Did you mean '{keyword}'?")

        return suggestions


# Common parser error codes
ERROR_CODES = {
    "P001": "Unexpected token",
    "P002": "Unexpected end of input",
    "P003": "Invalid expression",
    "P004": "Malformed statement",
}


def create_unexpected_token_error(expected: Union[TokenType, str], found: Token,
                                  help_text: Optional[str] = None) -> ParseError:
    """Create an error for an unexpected token; `help_text` names the construct being parsed."""
    expected_str = describe_expected(expected)
    found_str = describe_token(found)

    if found.type == TokenType.EOF:
        return ParseError(
            message=f"Expected {expected_str}, found end of input",
            location=found.location,
            token=found,
            expected=expected_str,
            code="P002",
            help_text=help_text or f"The parser reached the end of the input while expecting {expected_str}.",
            suggestions=SyntaxErrorRecovery.suggest_missing_token(expected, found)
        )

    return ParseError(
        message=f"Expected {expected_str}, found {found_str} at line {found.line}, column {found.column}",
        location=found.location,
        token=found,
        expected=expected_str,
        code="P001",
        help_text=help_text,
        suggestions=SyntaxErrorRecovery.suggest_missing_token(expected, found)
    )


def create_invalid_expression_error(found: Token) -> ParseError:
    """Create an error for a token that cannot start an expression."""
    if found.type == TokenType.EOF:
        return create_unexpected_token_error("expression", found)

    return ParseError(
        message=f"Unexpected token {describe_token(found)} in expression at line {found.line}, column {found.column}",
        location=found.location,
        token=found,
        expected="expression",
        code="P003",
        help_text="An expression must start with a literal, a name, '(', '[', '{' or a prefix operator."
    )


def create_malformed_statement_error(reason: str, found: Token) -> ParseError:
    """Create an error for a statement that is structurally incomplete."""
    return ParseError(
        message=f"{reason} at line {found.line}, column {found.column}",
        location=found.location,
        token=found,
        expected=reason,
        code="P004",
    )
