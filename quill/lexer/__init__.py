"""
Quill Lexer Package

Hand-written lexical analyzer for the Quill scripting language.

Key Features:
- Float-valued numeric literals (integer, decimal, exponent)
- Single- and double-quoted strings with escapes
- Line and block comments
- Maximal-munch operator matching
- Source location tracking for diagnostics

Author: xwest
"""

from .tokens import Token, TokenType, SourceLocation, KEYWORDS, OPERATORS
from .lexer import Lexer, tokenize_string, tokenize_file
from .errors import LexError

__all__ = [
    "Lexer",
    "Token",
    "TokenType",
    "SourceLocation",
    "KEYWORDS",
    "OPERATORS",
    "LexError",
    "tokenize_string",
    "tokenize_file",
]
