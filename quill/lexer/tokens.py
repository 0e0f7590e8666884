"""
Token definitions for the Quill lexer.

This module defines all token types supported by Quill:
- Keywords (declarations, control flow, modules, literals)
- Operators (arithmetic, comparison, logical, assignment)
- Literals (numbers and strings)
- Identifiers
- Punctuation and delimiters

Author: xwest
"""

from enum import Enum, auto
from dataclasses import dataclass
from typing import Any


class TokenType(Enum):
    """
    Enumeration of all token types in Quill.

    Organized by category for clarity and maintainability.
    """

    # ========================================================================
    # Special Tokens
    # ========================================================================
    EOF = auto()                    # End of input

    # ========================================================================
    # Literals
    # ========================================================================
    NUMBER = auto()                 # 42, 3.14, 1e-3
    STRING = auto()                 # "hello", 'world'
    TRUE = auto()                   # true
    FALSE = auto()                  # false
    NULL = auto()                   # null, nil
    UNDEFINED = auto()              # undefined

    # ========================================================================
    # Identifiers and Keywords
    # ========================================================================
    IDENTIFIER = auto()             # variable_name

    # Declaration keywords
    LET = auto()                    # let
    CONST = auto()                  # const
    VAR = auto()                    # var
    DEF = auto()                    # def
    FUNCTION = auto()               # function
    CLASS = auto()                  # class

    # Control flow keywords
    IF = auto()                     # if
    ELSIF = auto()                  # elsif, elif
    ELSE = auto()                   # else
    WHILE = auto()                  # while
    FOR = auto()                    # for
    TO = auto()                     # to
    BREAK = auto()                  # break
    CONTINUE = auto()               # continue
    RETURN = auto()                 # return

    # Exceptions
    TRY = auto()                    # try
    CATCH = auto()                  # catch
    FINALLY = auto()                # finally
    THROW = auto()                  # throw

    # Module system keywords
    IMPORT = auto()                 # import
    FROM = auto()                   # from
    AS = auto()                     # as

    # ========================================================================
    # Operators
    # ========================================================================

    # Arithmetic
    PLUS = auto()                   # +
    MINUS = auto()                  # -
    MULTIPLY = auto()               # *
    DIVIDE = auto()                 # /
    MODULO = auto()                 # %

    # Assignment
    ASSIGN = auto()                 # =
    PLUS_ASSIGN = auto()            # +=
    MINUS_ASSIGN = auto()           # -=
    MULTIPLY_ASSIGN = auto()        # *=
    DIVIDE_ASSIGN = auto()          # /=

    # Comparison
    EQUAL = auto()                  # ==
    NOT_EQUAL = auto()              # !=
    LESS_THAN = auto()              # <
    GREATER_THAN = auto()           # >
    LESS_EQUAL = auto()             # <=
    GREATER_EQUAL = auto()          # >=

    # Logical
    LOGICAL_AND = auto()            # &&, and
    LOGICAL_OR = auto()             # ||, or
    LOGICAL_NOT = auto()            # !, not

    # ========================================================================
    # Punctuation and Delimiters
    # ========================================================================
    LEFT_PAREN = auto()             # (
    RIGHT_PAREN = auto()            # )
    LEFT_BRACKET = auto()           # [
    RIGHT_BRACKET = auto()          # ]
    LEFT_BRACE = auto()             # {
    RIGHT_BRACE = auto()            # }

    SEMICOLON = auto()              # ;
    COMMA = auto()                  # ,
    DOT = auto()                    # .
    COLON = auto()                  # :


@dataclass(frozen=True)
class SourceLocation:
    """
    Represents a location in the source code.

    Used for error reporting and diagnostics.
    """
    filename: str
    line: int
    column: int
    offset: int  # Character offset from start of input

    def __str__(self) -> str:
        return f"{self.filename}:{self.line}:{self.column}"

    def __repr__(self) -> str:
        return f"SourceLocation({self.filename!r}, {self.line}, {self.column}, {self.offset})"


@dataclass(frozen=True)
class Token:
    """
    Represents a lexical token in the Quill language.

    Contains the token type, lexeme (raw text), semantic value,
    and source location for error reporting.
    """
    type: TokenType
    lexeme: str                     # Raw text from source
    value: Any                      # Parsed/semantic value (float for NUMBER)
    location: SourceLocation        # Source location

    def __str__(self) -> str:
        if self.value is not None and self.value != self.lexeme:
            return f"{self.type.name}({self.lexeme!r} -> {self.value!r})"
        return f"{self.type.name}({self.lexeme!r})"

    def __repr__(self) -> str:
        return (f"Token({self.type.name}, {self.lexeme!r}, "
                f"{self.value!r}, {self.location!r})")

    @property
    def line(self) -> int:
        return self.location.line

    @property
    def column(self) -> int:
        return self.location.column

    @property
    def offset(self) -> int:
        return self.location.offset

    @property
    def is_literal(self) -> bool:
        """Check if this token is a literal value."""
        return self.type in {
            TokenType.NUMBER, TokenType.STRING, TokenType.TRUE,
            TokenType.FALSE, TokenType.NULL, TokenType.UNDEFINED,
        }

    @property
    def is_keyword(self) -> bool:
        """Check if this token is a keyword."""
        return self.lexeme in KEYWORDS

    @property
    def is_identifier(self) -> bool:
        """Check if this token is an identifier."""
        return self.type == TokenType.IDENTIFIER


# Reserved words. Matching is case-sensitive and happens only after the
# whole identifier has been read, so `letter` is an identifier, not `let`.
KEYWORDS = {
    # Declarations
    "let": TokenType.LET,
    "const": TokenType.CONST,
    "var": TokenType.VAR,
    "def": TokenType.DEF,
    "function": TokenType.FUNCTION,
    "class": TokenType.CLASS,

    # Control flow
    "if": TokenType.IF,
    "elsif": TokenType.ELSIF,
    "elif": TokenType.ELSIF,
    "else": TokenType.ELSE,
    "while": TokenType.WHILE,
    "for": TokenType.FOR,
    "to": TokenType.TO,
    "break": TokenType.BREAK,
    "continue": TokenType.CONTINUE,
    "return": TokenType.RETURN,

    # Exceptions
    "try": TokenType.TRY,
    "catch": TokenType.CATCH,
    "finally": TokenType.FINALLY,
    "throw": TokenType.THROW,

    # Modules
    "import": TokenType.IMPORT,
    "from": TokenType.FROM,
    "as": TokenType.AS,

    # Literals
    "true": TokenType.TRUE,
    "false": TokenType.FALSE,
    "null": TokenType.NULL,
    "nil": TokenType.NULL,
    "undefined": TokenType.UNDEFINED,

    # Word operators
    "and": TokenType.LOGICAL_AND,
    "or": TokenType.LOGICAL_OR,
    "not": TokenType.LOGICAL_NOT,
}

# Two-character operators are tried before one-character ones (maximal munch).
TWO_CHAR_OPERATORS = {
    "==": TokenType.EQUAL,
    "!=": TokenType.NOT_EQUAL,
    "<=": TokenType.LESS_EQUAL,
    ">=": TokenType.GREATER_EQUAL,
    "&&": TokenType.LOGICAL_AND,
    "||": TokenType.LOGICAL_OR,
    "+=": TokenType.PLUS_ASSIGN,
    "-=": TokenType.MINUS_ASSIGN,
    "*=": TokenType.MULTIPLY_ASSIGN,
    "/=": TokenType.DIVIDE_ASSIGN,
}

ONE_CHAR_OPERATORS = {
    "+": TokenType.PLUS,
    "-": TokenType.MINUS,
    "*": TokenType.MULTIPLY,
    "/": TokenType.DIVIDE,
    "%": TokenType.MODULO,
    "=": TokenType.ASSIGN,
    "<": TokenType.LESS_THAN,
    ">": TokenType.GREATER_THAN,
    "!": TokenType.LOGICAL_NOT,
    "(": TokenType.LEFT_PAREN,
    ")": TokenType.RIGHT_PAREN,
    "[": TokenType.LEFT_BRACKET,
    "]": TokenType.RIGHT_BRACKET,
    "{": TokenType.LEFT_BRACE,
    "}": TokenType.RIGHT_BRACE,
    ";": TokenType.SEMICOLON,
    ",": TokenType.COMMA,
    ".": TokenType.DOT,
    ":": TokenType.COLON,
}

OPERATORS = {**TWO_CHAR_OPERATORS, **ONE_CHAR_OPERATORS}

ESCAPE_SEQUENCES = {
    'n': '\n',
    't': '\t',
    'r': '\r',
    '\\': '\\',
    '"': '"',
    "'": "'",
}
