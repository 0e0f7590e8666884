"""
Test suite for the Quill lexer.

Tests cover:
- Token types for keywords, identifiers and operators
- Numeric and string literal values
- Comment and whitespace handling
- Source locations and lexical error reporting

Author: xwest
"""

import unittest
import sys
import os

# Add the project root to the Python path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
sys.path.insert(0, project_root)

from quill.lexer import Lexer, TokenType, LexError, tokenize_string


class TestLexer(unittest.TestCase):
    """Test cases for the lexer."""

    def _types(self, source: str):
        """Helper returning the token types of a snippet."""
        return [token.type for token in Lexer(source).tokenize()]

    def test_variable_declaration(self):
        tokens = Lexer("let x = 10;").tokenize()

        self.assertEqual(
            [t.type for t in tokens],
            [TokenType.LET, TokenType.IDENTIFIER, TokenType.ASSIGN,
             TokenType.NUMBER, TokenType.SEMICOLON, TokenType.EOF]
        )
        self.assertEqual(tokens[1].value, "x")
        self.assertEqual(tokens[3].value, 10.0)
        self.assertIsInstance(tokens[3].value, float)

    def test_token_classification(self):
        let_token, name, _, number, _, _ = Lexer("let x = 10;").tokenize()

        self.assertTrue(let_token.is_keyword)
        self.assertFalse(let_token.is_identifier)
        self.assertTrue(name.is_identifier)
        self.assertTrue(number.is_literal)
        self.assertFalse(name.is_literal)

    def test_lexemes_reconstruct_source_without_trivia(self):
        """Joining every lexeme gives the source minus whitespace and comments."""
        source = 'let  x=1.5e3 // c\n/* b */ if (x >= 2) { y += "a b" }'
        tokens = tokenize_string(source)

        self.assertEqual("".join(t.lexeme for t in tokens), 'letx=1.5e3if(x>=2){y+="a b"}')
        self.assertEqual(tokens[-1].type, TokenType.EOF)

    def test_maximal_munch_operators(self):
        self.assertEqual(
            self._types("a<=b!=c&&d||!e"),
            [TokenType.IDENTIFIER, TokenType.LESS_EQUAL, TokenType.IDENTIFIER,
             TokenType.NOT_EQUAL, TokenType.IDENTIFIER, TokenType.LOGICAL_AND,
             TokenType.IDENTIFIER, TokenType.LOGICAL_OR, TokenType.LOGICAL_NOT,
             TokenType.IDENTIFIER, TokenType.EOF]
        )
        self.assertEqual(
            self._types("a += 1 - -2"),
            [TokenType.IDENTIFIER, TokenType.PLUS_ASSIGN, TokenType.NUMBER,
             TokenType.MINUS, TokenType.MINUS, TokenType.NUMBER, TokenType.EOF]
        )

    def test_keyword_aliases(self):
        self.assertEqual(
            self._types("and or not elif nil"),
            [TokenType.LOGICAL_AND, TokenType.LOGICAL_OR, TokenType.LOGICAL_NOT,
             TokenType.ELSIF, TokenType.NULL, TokenType.EOF]
        )

    def test_keyword_prefix_is_identifier(self):
        tokens = Lexer("letter iffy step").tokenize()
        self.assertTrue(all(t.type == TokenType.IDENTIFIER for t in tokens[:-1]))

    def test_boolean_values(self):
        tokens = Lexer("true false").tokenize()
        self.assertIs(tokens[0].value, True)
        self.assertIs(tokens[1].value, False)

    def test_number_forms(self):
        values = [t.value for t in Lexer("42 3.25 1e3 2.5E-2").tokenize()[:-1]]
        self.assertEqual(values, [42.0, 3.25, 1000.0, 0.025])

    def test_string_escapes(self):
        tokens = Lexer(r'"a\nb" ' + r"'it\'s' " + r'"\q"').tokenize()
        self.assertEqual(tokens[0].value, "a\nb")
        self.assertEqual(tokens[1].value, "it's")
        self.assertEqual(tokens[2].value, "q")
        self.assertEqual(tokens[0].lexeme, r'"a\nb"')

    def test_locations(self):
        tokens = Lexer("let a = 1\n  b").tokenize()
        b = tokens[4]
        self.assertEqual(b.lexeme, "b")
        self.assertEqual((b.line, b.column), (2, 3))
        self.assertEqual(b.offset, 12)

    def test_filename_in_location(self):
        token = Lexer("x", "main.ql").tokenize()[0]
        self.assertEqual(str(token.location), "main.ql:1:1")

    def test_empty_source(self):
        tokens = Lexer("  // only a comment\n").tokenize()
        self.assertEqual([t.type for t in tokens], [TokenType.EOF])


class TestLexerErrors(unittest.TestCase):
    """Lexical errors carry a code and a location."""

    def test_unexpected_character(self):
        with self.assertRaises(LexError) as ctx:
            Lexer("let x = @").tokenize()

        error = ctx.exception
        self.assertEqual(error.message, "Unexpected character '@' at line 1, column 9")
        self.assertEqual(error.diagnostic.code, "L001")
        self.assertEqual(error.character, "@")
        self.assertEqual((error.line, error.column), (1, 9))

    def test_non_ascii_letter_inside_identifier(self):
        with self.assertRaises(LexError) as ctx:
            Lexer("let café = 1").tokenize()

        error = ctx.exception
        self.assertEqual(error.character, "é")
        self.assertEqual((error.line, error.column), (1, 8))
        self.assertEqual(error.diagnostic.code, "L001")

    def test_non_ascii_letter_and_digit_start_no_token(self):
        for source, char in (("é = 1", "é"), ("x = ²", "²"), ("x = ٣", "٣")):
            with self.subTest(source=source):
                with self.assertRaises(LexError) as ctx:
                    Lexer(source).tokenize()
                self.assertEqual(ctx.exception.character, char)
                self.assertEqual(ctx.exception.diagnostic.code, "L001")

    def test_borrowed_operator_has_suggestions(self):
        with self.assertRaises(LexError) as ctx:
            Lexer("a & b").tokenize()
        self.assertIn("&&", ctx.exception.diagnostic.suggestions)

    def test_unterminated_string(self):
        with self.assertRaises(LexError) as ctx:
            Lexer('let s = "abc').tokenize()
        self.assertEqual(ctx.exception.diagnostic.code, "L002")
        self.assertEqual(ctx.exception.column, 9)

    def test_invalid_exponent(self):
        with self.assertRaises(LexError) as ctx:
            Lexer("let n = 1e").tokenize()
        self.assertEqual(ctx.exception.diagnostic.code, "L003")

    def test_unterminated_block_comment(self):
        with self.assertRaises(LexError) as ctx:
            Lexer("x /* never closed").tokenize()
        self.assertEqual(ctx.exception.diagnostic.code, "L004")
        self.assertEqual(ctx.exception.column, 3)

    def test_str_renders_diagnostic(self):
        with self.assertRaises(LexError) as ctx:
            Lexer("#", "bad.ql").tokenize()
        text = str(ctx.exception)
        self.assertTrue(text.startswith("ERROR[L001]: Unexpected character '#'"))
        self.assertIn("--> bad.ql:1:1", text)


if __name__ == '__main__':
    unittest.main()
