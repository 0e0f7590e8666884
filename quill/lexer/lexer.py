"""
Quill Lexer - turns source text into a token list

Hand-written scanner with single-character lookahead. Numbers and
identifiers are matched with precompiled regexes, everything else is
walked character by character so line/column tracking stays exact.

The first error aborts tokenization; there is no recovery.

Author: xwest
"""

import logging
import re
from typing import List

from .tokens import (
    Token, TokenType, SourceLocation, KEYWORDS, TWO_CHAR_OPERATORS,
    ONE_CHAR_OPERATORS, ESCAPE_SEQUENCES
)
from .errors import (
    create_invalid_character_error, create_unterminated_string_error,
    create_invalid_number_error, create_unterminated_comment_error
)

logger = logging.getLogger(__name__)


class Lexer:
    """
    Quill lexical analyzer.

    Converts source code text into a list of tokens terminated by an
    explicit EOF token. Whitespace and comments are discarded.
    """

    def __init__(self, source: str, filename: str = "<unknown>"):
        """
        Initialize the lexer with source code.

        Args:
            source: Source code string
            filename: Name of source file for error reporting
        """
        self.source = source
        self.filename = filename
        self.pos = 0
        self.line = 1
        self.column = 1
        self.tokens: List[Token] = []

        self._compile_patterns()

    def _compile_patterns(self):
        """Compile regex patterns used by the lexer."""
        self.number_pattern = re.compile(r'\d+(?:\.\d+)?(?:[eE][+-]?\d+)?')
        # Catches `1e`, `1e+` so they are reported instead of split apart
        self.bad_exponent_pattern = re.compile(r'\d+(?:\.\d+)?[eE][+-]?(?!\d)')
        self.identifier_pattern = re.compile(r'[A-Za-z_$][A-Za-z0-9_$]*')

    def tokenize(self) -> List[Token]:
        """
        Tokenize the entire source code.

        Returns:
            List of tokens including EOF token

        Raises:
            LexError: On the first character sequence that forms no token
        """
        self.pos = 0
        self.line = 1
        self.column = 1
        self.tokens = []

        while True:
            self._skip_whitespace_and_comments()
            if self.pos >= len(self.source):
                break
            self.tokens.append(self._next_token())

        eof_location = SourceLocation(self.filename, self.line, self.column, self.pos)
        self.tokens.append(Token(TokenType.EOF, "", None, eof_location))

        logger.debug("tokenized %s: %d tokens", self.filename, len(self.tokens))
        return self.tokens

    def _next_token(self) -> Token:
        """Scan one token starting at the current position."""
        location = self._location()
        current_char = self.source[self.pos]

        # Numbers, ASCII digits only
        if current_char.isascii() and current_char.isdigit():
            return self._tokenize_number(location)

        # Identifiers and keywords, ASCII letters only
        if current_char.isascii() and (current_char.isalpha() or current_char in "_$"):
            return self._tokenize_identifier_or_keyword(location)

        # String literals
        if current_char in ('"', "'"):
            return self._tokenize_string(current_char, location)

        # Operators and punctuation, two characters first
        two_chars = self.source[self.pos:self.pos + 2]
        if two_chars in TWO_CHAR_OPERATORS:
            self._advance_by(2)
            return Token(TWO_CHAR_OPERATORS[two_chars], two_chars, None, location)

        if current_char in ONE_CHAR_OPERATORS:
            self._advance()
            return Token(ONE_CHAR_OPERATORS[current_char], current_char, None, location)

        raise create_invalid_character_error(current_char, location)

    def _tokenize_number(self, location: SourceLocation) -> Token:
        """Tokenize an integer, decimal or exponent literal as a float."""
        bad = self.bad_exponent_pattern.match(self.source, self.pos)
        if bad:
            raise create_invalid_number_error(
                bad.group(0), location, "An exponent marker must be followed by digits"
            )

        match = self.number_pattern.match(self.source, self.pos)
        lexeme = match.group(0)
        self._advance_by(len(lexeme))
        return Token(TokenType.NUMBER, lexeme, float(lexeme), location)

    def _tokenize_identifier_or_keyword(self, location: SourceLocation) -> Token:
        """Tokenize an identifier or keyword."""
        match = self.identifier_pattern.match(self.source, self.pos)
        lexeme = match.group(0)
        self._advance_by(len(lexeme))

        token_type = KEYWORDS.get(lexeme, TokenType.IDENTIFIER)
        value = lexeme if token_type == TokenType.IDENTIFIER else None

        # Handle literal keywords
        if token_type == TokenType.TRUE:
            value = True
        elif token_type == TokenType.FALSE:
            value = False

        return Token(token_type, lexeme, value, location)

    def _tokenize_string(self, quote: str, location: SourceLocation) -> Token:
        """Tokenize a single- or double-quoted string literal."""
        start_pos = self.pos
        self._advance()  # Skip opening quote

        value_parts = []
        while self.pos < len(self.source) and self.source[self.pos] != quote:
            if self.source[self.pos] == '\\':
                if self.pos + 1 >= len(self.source):
                    break
                self._advance()  # Skip backslash
                value_parts.append(self._handle_escape_sequence())
            else:
                value_parts.append(self.source[self.pos])
                self._advance()

        if self.pos >= len(self.source):
            raise create_unterminated_string_error(quote, location)

        self._advance()  # Skip closing quote
        lexeme = self.source[start_pos:self.pos]
        return Token(TokenType.STRING, lexeme, ''.join(value_parts), location)

    def _handle_escape_sequence(self) -> str:
        """Decode one escape; unknown escapes keep the escaped character."""
        escape_char = self.source[self.pos]
        self._advance()
        return ESCAPE_SEQUENCES.get(escape_char, escape_char)

    def _skip_whitespace_and_comments(self):
        """Skip whitespace, // line comments and /* */ block comments."""
        while self.pos < len(self.source):
            if self.source[self.pos].isspace():
                self._advance()
                continue

            # Line comments
            if self.source.startswith('//', self.pos):
                while self.pos < len(self.source) and self.source[self.pos] != '\n':
                    self._advance()
                continue

            # Block comments, non-nesting
            if self.source.startswith('/*', self.pos):
                location = self._location()
                end = self.source.find('*/', self.pos + 2)
                if end == -1:
                    raise create_unterminated_comment_error(location)
                self._advance_by(end + 2 - self.pos)
                continue

            break

    def _location(self) -> SourceLocation:
        return SourceLocation(self.filename, self.line, self.column, self.pos)

    def _advance(self):
        """Advance position by one character, updating line/column."""
        if self.pos < len(self.source):
            if self.source[self.pos] == '\n':
                self.line += 1
                self.column = 1
            else:
                self.column += 1
            self.pos += 1

    def _advance_by(self, count: int):
        """Advance position by multiple characters."""
        for _ in range(count):
            self._advance()


def tokenize_string(source: str, filename: str = "<string>") -> List[Token]:
    """
    Convenience function to tokenize a source string.

    Args:
        source: Source code string
        filename: Filename for error reporting

    Returns:
        List of tokens ending with EOF
    """
    return Lexer(source, filename).tokenize()


def tokenize_file(filepath: str) -> List[Token]:
    """
    Convenience function to tokenize a source file.

    Raises:
        LexError: If tokenization fails
        IOError: If file cannot be read
    """
    with open(filepath, 'r', encoding='utf-8') as f:
        source = f.read()
    return tokenize_string(source, filepath)
