"""
Quill Parser - Pratt-style recursive descent parser

Single-token lookahead, no backtracking. Statements are dispatched on
their leading keyword; expressions go through the precedence-climbing
loop in `_parse_precedence` driven by the prefix/infix tables below.

Semicolons are optional terminators. Parsing stops at the first error.

Author: xwest
"""

import logging
from typing import Callable, Dict, List, Optional, Tuple
from enum import IntEnum

from ..lexer.tokens import Token, TokenType
from .ast_nodes import *
from .errors import (
    ParseError, create_unexpected_token_error, create_invalid_expression_error,
    create_malformed_statement_error
)

logger = logging.getLogger(__name__)


class Precedence(IntEnum):
    """Operator precedence levels for Pratt parsing."""
    NONE = 0
    ASSIGNMENT = 1      # =, +=, -=, *=, /=
    OR = 2              # ||, or
    AND = 3             # &&, and
    EQUALITY = 4        # ==, !=
    COMPARISON = 5      # <, >, <=, >=
    TERM = 6            # +, -
    FACTOR = 7          # *, /, %
    UNARY = 8           # !, -, +
    CALL = 9            # calls, indexing, member access
    PRIMARY = 10        # literals, identifiers, parentheses


# Canonical spelling for operators that have a word form
CANONICAL_OPERATORS = {
    TokenType.LOGICAL_AND: "&&",
    TokenType.LOGICAL_OR: "||",
    TokenType.LOGICAL_NOT: "!",
}

# The `step` clause of a for loop is introduced by a contextual word, not
# a reserved keyword; it only has meaning right after the end expression.
STEP_WORD = "step"


class Parser:
    """
    Quill Pratt parser.

    Builds a Program AST from the lexer's token list or raises the first
    ParseError it meets.
    """

    def __init__(self, tokens: List[Token]):
        """
        Initialize parser with a list of tokens.

        Args:
            tokens: List of tokens from the lexer, ending with EOF
        """
        self.tokens = tokens
        self.current = 0

        self._init_parsing_tables()

    def _init_parsing_tables(self):
        """Initialize operator precedence and parsing function tables."""

        # Prefix parsing functions (for tokens that can start expressions)
        self.prefix_parsers: Dict[TokenType, Callable[[], Expression]] = {
            # Literals
            TokenType.NUMBER: self._parse_literal,
            TokenType.STRING: self._parse_literal,
            TokenType.TRUE: self._parse_literal,
            TokenType.FALSE: self._parse_literal,
            TokenType.NULL: self._parse_literal,
            TokenType.UNDEFINED: self._parse_literal,

            # Identifiers
            TokenType.IDENTIFIER: self._parse_identifier,

            # Unary operators
            TokenType.MINUS: self._parse_unary,
            TokenType.PLUS: self._parse_unary,
            TokenType.LOGICAL_NOT: self._parse_unary,

            # Grouping and compound literals
            TokenType.LEFT_PAREN: self._parse_grouping,
            TokenType.LEFT_BRACKET: self._parse_array_literal,
            TokenType.LEFT_BRACE: self._parse_object_literal,
        }

        # Infix parsing functions (binary operators and postfix operations)
        self.infix_parsers: Dict[TokenType, Callable[[Expression], Expression]] = {
            # Arithmetic operators
            TokenType.PLUS: self._parse_binary,
            TokenType.MINUS: self._parse_binary,
            TokenType.MULTIPLY: self._parse_binary,
            TokenType.DIVIDE: self._parse_binary,
            TokenType.MODULO: self._parse_binary,

            # Comparison operators
            TokenType.EQUAL: self._parse_binary,
            TokenType.NOT_EQUAL: self._parse_binary,
            TokenType.LESS_THAN: self._parse_binary,
            TokenType.GREATER_THAN: self._parse_binary,
            TokenType.LESS_EQUAL: self._parse_binary,
            TokenType.GREATER_EQUAL: self._parse_binary,

            # Logical operators
            TokenType.LOGICAL_AND: self._parse_logical,
            TokenType.LOGICAL_OR: self._parse_logical,

            # Assignment operators
            TokenType.ASSIGN: self._parse_assignment,
            TokenType.PLUS_ASSIGN: self._parse_assignment,
            TokenType.MINUS_ASSIGN: self._parse_assignment,
            TokenType.MULTIPLY_ASSIGN: self._parse_assignment,
            TokenType.DIVIDE_ASSIGN: self._parse_assignment,

            # Function call and member access
            TokenType.LEFT_PAREN: self._parse_function_call,
            TokenType.DOT: self._parse_member_access,
            TokenType.LEFT_BRACKET: self._parse_index_access,
        }

        # Operator precedence table
        self.precedences: Dict[TokenType, Precedence] = {
            # Assignment (right associative, handled specially)
            TokenType.ASSIGN: Precedence.ASSIGNMENT,
            TokenType.PLUS_ASSIGN: Precedence.ASSIGNMENT,
            TokenType.MINUS_ASSIGN: Precedence.ASSIGNMENT,
            TokenType.MULTIPLY_ASSIGN: Precedence.ASSIGNMENT,
            TokenType.DIVIDE_ASSIGN: Precedence.ASSIGNMENT,

            TokenType.LOGICAL_OR: Precedence.OR,
            TokenType.LOGICAL_AND: Precedence.AND,

            # Equality
            TokenType.EQUAL: Precedence.EQUALITY,
            TokenType.NOT_EQUAL: Precedence.EQUALITY,

            # Comparison
            TokenType.LESS_THAN: Precedence.COMPARISON,
            TokenType.GREATER_THAN: Precedence.COMPARISON,
            TokenType.LESS_EQUAL: Precedence.COMPARISON,
            TokenType.GREATER_EQUAL: Precedence.COMPARISON,

            # Addition/Subtraction
            TokenType.PLUS: Precedence.TERM,
            TokenType.MINUS: Precedence.TERM,

            # Multiplication/Division
            TokenType.MULTIPLY: Precedence.FACTOR,
            TokenType.DIVIDE: Precedence.FACTOR,
            TokenType.MODULO: Precedence.FACTOR,

            # Function calls and member access
            TokenType.LEFT_PAREN: Precedence.CALL,
            TokenType.DOT: Precedence.CALL,
            TokenType.LEFT_BRACKET: Precedence.CALL,
        }

        # Statement parsers keyed by leading token
        self.statement_parsers: Dict[TokenType, Callable[[], Statement]] = {
            TokenType.LET: self._parse_variable_declaration,
            TokenType.CONST: self._parse_variable_declaration,
            TokenType.VAR: self._parse_variable_declaration,
            TokenType.DEF: self._parse_function_declaration,
            TokenType.FUNCTION: self._parse_function_declaration,
            TokenType.CLASS: self._parse_class_declaration,
            TokenType.IF: self._parse_if_statement,
            TokenType.WHILE: self._parse_while_statement,
            TokenType.FOR: self._parse_for_statement,
            TokenType.RETURN: self._parse_return_statement,
            TokenType.BREAK: self._parse_break_statement,
            TokenType.CONTINUE: self._parse_continue_statement,
            TokenType.THROW: self._parse_throw_statement,
            TokenType.TRY: self._parse_try_statement,
            TokenType.IMPORT: self._parse_import_statement,
        }

    def parse(self) -> Program:
        """
        Parse the token stream into a Program.

        Returns:
            Program AST node

        Raises:
            ParseError: On the first syntax error
        """
        start_location = self._peek().location
        statements = []

        while not self._is_at_end():
            if self._match(TokenType.SEMICOLON):
                continue
            statements.append(self._parse_statement())

        span = SourceSpan(start_location, self._peek().location)
        logger.debug("parsed %d top-level statements", len(statements))
        return Program(statements, span)

    # Statements

    def _parse_block(self) -> List[Statement]:
        """Parse `{ statement* }`; the closing brace is mandatory."""
        self._consume(TokenType.LEFT_BRACE, "Expected '{'")
        statements = []

        while not self._check(TokenType.RIGHT_BRACE) and not self._is_at_end():
            if self._match(TokenType.SEMICOLON):
                continue
            statements.append(self._parse_statement())

        self._consume(TokenType.RIGHT_BRACE, "Expected '}'")
        return statements

    def _parse_statement(self) -> Statement:
        """Parse a statement."""
        statement_parser = self.statement_parsers.get(self._peek().type)
        if statement_parser is not None:
            return statement_parser()

        # Expression statement
        start_token = self._peek()
        expr = self._parse_expression()
        self._consume_statement_terminator()
        return ExpressionStatement(expr, SourceSpan(start_token.location, self._previous().location))

    def _parse_variable_declaration(self) -> VariableDeclaration:
        """Parse `let|const|var name [= expr]`."""
        start_token = self._advance()
        name_token = self._consume(TokenType.IDENTIFIER, "Expected variable name")

        initializer = None
        if self._match(TokenType.ASSIGN):
            initializer = self._parse_expression()

        self._consume_statement_terminator()

        span = SourceSpan(start_token.location, self._previous().location)
        return VariableDeclaration(start_token.lexeme, name_token.lexeme, initializer, span)

    def _parse_function_declaration(self) -> FunctionDeclaration:
        """Parse `def|function name(p1, p2) { ... }`."""
        start_token = self._advance()
        name_token = self._consume(TokenType.IDENTIFIER, "Expected function name")
        params = self._parse_parameter_list()
        body = self._parse_block()

        span = SourceSpan(start_token.location, self._previous().location)
        return FunctionDeclaration(name_token.lexeme, params, body, span)

    def _parse_parameter_list(self) -> List[str]:
        """Parse function parameters."""
        self._consume(TokenType.LEFT_PAREN, "Expected '(' after function name")
        params = []

        if not self._check(TokenType.RIGHT_PAREN):
            params.append(self._consume(TokenType.IDENTIFIER, "Expected parameter name").lexeme)
            while self._match(TokenType.COMMA):
                params.append(self._consume(TokenType.IDENTIFIER, "Expected parameter name").lexeme)

        self._consume(TokenType.RIGHT_PAREN, "Expected ')' after parameters")
        return params

    def _parse_class_declaration(self) -> ClassDeclaration:
        """Parse `class Name [< Super] { (let ... | def ...)* }`."""
        start_token = self._advance()
        name_token = self._consume(TokenType.IDENTIFIER, "Expected class name")

        superclass = None
        if self._match(TokenType.LESS_THAN):
            superclass = self._consume(TokenType.IDENTIFIER, "Expected superclass name").lexeme

        self._consume(TokenType.LEFT_BRACE, "Expected '{'")
        properties = []
        methods = []

        while not self._check(TokenType.RIGHT_BRACE) and not self._is_at_end():
            if self._match(TokenType.SEMICOLON):
                continue
            member_type = self._peek().type
            if member_type in (TokenType.LET, TokenType.CONST, TokenType.VAR):
                properties.append(self._parse_variable_declaration())
            elif member_type in (TokenType.DEF, TokenType.FUNCTION):
                methods.append(self._parse_function_declaration())
            else:
                raise create_unexpected_token_error("property or method declaration", self._peek())

        self._consume(TokenType.RIGHT_BRACE, "Expected '}'")

        span = SourceSpan(start_token.location, self._previous().location)
        return ClassDeclaration(name_token.lexeme, superclass, properties, methods, span)

    def _parse_if_statement(self) -> IfStatement:
        """Parse an if statement with elsif/elif branches and optional else."""
        start_token = self._consume(TokenType.IF, "Expected 'if'")

        condition = self._parse_expression()
        consequent = self._parse_block()

        elsif_branches: List[Tuple[Expression, List[Statement]]] = []
        alternate = None
        while True:
            if self._match(TokenType.ELSIF):
                elsif_branches.append((self._parse_expression(), self._parse_block()))
            elif self._match(TokenType.ELSE):
                # `else if` is read as another elsif branch
                if self._match(TokenType.IF):
                    elsif_branches.append((self._parse_expression(), self._parse_block()))
                    continue
                alternate = self._parse_block()
                break
            else:
                break

        span = SourceSpan(start_token.location, self._previous().location)
        return IfStatement(condition, consequent, elsif_branches, alternate, span)

    def _parse_while_statement(self) -> WhileStatement:
        """Parse a while loop statement."""
        start_token = self._consume(TokenType.WHILE, "Expected 'while'")

        condition = self._parse_expression()
        body = self._parse_block()

        span = SourceSpan(start_token.location, self._previous().location)
        return WhileStatement(condition, body, span)

    def _parse_for_statement(self) -> ForStatement:
        """Parse `for x = start to end [step expr] { ... }`."""
        start_token = self._consume(TokenType.FOR, "Expected 'for'")

        var_token = self._consume(TokenType.IDENTIFIER, "Expected loop variable")
        self._consume(TokenType.ASSIGN, "Expected '=' after loop variable")
        start = self._parse_expression()
        self._consume(TokenType.TO, "Expected 'to' after loop start value")
        end = self._parse_expression()

        step = None
        if self._check(TokenType.IDENTIFIER) and self._peek().lexeme == STEP_WORD:
            self._advance()
            step = self._parse_expression()

        body = self._parse_block()

        span = SourceSpan(start_token.location, self._previous().location)
        return ForStatement(var_token.lexeme, start, end, step, body, span)

    def _parse_return_statement(self) -> ReturnStatement:
        """Parse a return statement."""
        start_token = self._consume(TokenType.RETURN, "Expected 'return'")

        # Return value (optional)
        value = None
        if not self._check_statement_terminator():
            value = self._parse_expression()

        self._consume_statement_terminator()

        span = SourceSpan(start_token.location, self._previous().location)
        return ReturnStatement(value, span)

    def _parse_break_statement(self) -> BreakStatement:
        token = self._advance()
        self._consume_statement_terminator()
        return BreakStatement(SourceSpan(token.location, token.location))

    def _parse_continue_statement(self) -> ContinueStatement:
        token = self._advance()
        self._consume_statement_terminator()
        return ContinueStatement(SourceSpan(token.location, token.location))

    def _parse_throw_statement(self) -> ThrowStatement:
        start_token = self._advance()
        value = self._parse_expression()
        self._consume_statement_terminator()
        return ThrowStatement(value, SourceSpan(start_token.location, self._previous().location))

    def _parse_try_statement(self) -> TryStatement:
        """Parse `try { } [catch [(name)] { }] [finally { }]`."""
        start_token = self._consume(TokenType.TRY, "Expected 'try'")
        block = self._parse_block()

        catch_param = None
        handler = None
        finalizer = None

        if self._match(TokenType.CATCH):
            if self._match(TokenType.LEFT_PAREN):
                catch_param = self._consume(TokenType.IDENTIFIER, "Expected catch parameter name").lexeme
                self._consume(TokenType.RIGHT_PAREN, "Expected ')' after catch parameter")
            handler = self._parse_block()

        if self._match(TokenType.FINALLY):
            finalizer = self._parse_block()

        if handler is None and finalizer is None:
            raise create_malformed_statement_error("Expected 'catch' or 'finally' after try block", self._peek())

        span = SourceSpan(start_token.location, self._previous().location)
        return TryStatement(block, catch_param, handler, finalizer, span)

    def _parse_import_statement(self) -> ImportStatement:
        """Parse the named, namespace and default import forms."""
        start_token = self._consume(TokenType.IMPORT, "Expected 'import'")

        specifiers: List[ImportSpecifier] = []
        namespace = None
        default = None

        if self._match(TokenType.LEFT_BRACE):
            if not self._check(TokenType.RIGHT_BRACE):
                specifiers.append(self._parse_import_specifier())
                while self._match(TokenType.COMMA):
                    if self._check(TokenType.RIGHT_BRACE):
                        break
                    specifiers.append(self._parse_import_specifier())
            self._consume(TokenType.RIGHT_BRACE, "Expected '}' after import names")
        elif self._match(TokenType.MULTIPLY):
            self._consume(TokenType.AS, "Expected 'as' after '*'")
            namespace = self._consume(TokenType.IDENTIFIER, "Expected namespace name").lexeme
        else:
            default = self._consume(TokenType.IDENTIFIER, "Expected import name").lexeme

        self._consume(TokenType.FROM, "Expected 'from' in import")
        source = self._consume(TokenType.STRING, "Expected module path string").value
        self._consume_statement_terminator()

        span = SourceSpan(start_token.location, self._previous().location)
        return ImportStatement(source, specifiers, namespace, default, span)

    def _parse_import_specifier(self) -> ImportSpecifier:
        imported = self._consume(TokenType.IDENTIFIER, "Expected imported name").lexeme
        local = imported
        if self._match(TokenType.AS):
            local = self._consume(TokenType.IDENTIFIER, "Expected alias after 'as'").lexeme
        return ImportSpecifier(imported, local)

    # Expressions

    def _parse_expression(self) -> Expression:
        """Parse an expression using Pratt parsing."""
        return self._parse_precedence(Precedence.ASSIGNMENT)

    def _parse_precedence(self, precedence: Precedence) -> Expression:
        """Parse expression with given minimum precedence."""
        prefix_parser = self.prefix_parsers.get(self._peek().type)
        if prefix_parser is None:
            raise create_invalid_expression_error(self._peek())

        left = prefix_parser()

        while precedence <= self._get_precedence(self._peek().type):
            infix_parser = self.infix_parsers.get(self._peek().type)
            if infix_parser is None:
                break
            left = infix_parser(left)

        return left

    def _get_precedence(self, token_type: TokenType) -> Precedence:
        """Get precedence for a token type."""
        return self.precedences.get(token_type, Precedence.NONE)

    # Prefix parsers (tokens that can start expressions)

    def _parse_literal(self) -> Literal:
        token = self._advance()
        span = SourceSpan(token.location, token.location)
        if token.type == TokenType.NULL:
            return Literal(None, span)
        if token.type == TokenType.UNDEFINED:
            return Literal(UNDEFINED, span)
        return Literal(token.value, span)

    def _parse_identifier(self) -> Identifier:
        token = self._advance()
        return Identifier(token.lexeme, SourceSpan(token.location, token.location))

    def _parse_unary(self) -> UnaryExpression:
        """Parse unary operation."""
        operator_token = self._advance()
        operator = CANONICAL_OPERATORS.get(operator_token.type, operator_token.lexeme)

        # Parse operand with unary precedence
        operand = self._parse_precedence(Precedence.UNARY)

        span = SourceSpan(operator_token.location, operand.span.end)
        return UnaryExpression(operator, operand, span)

    def _parse_grouping(self) -> Expression:
        """Parse parenthesized expression."""
        self._advance()  # Consume (
        expr = self._parse_expression()
        self._consume(TokenType.RIGHT_PAREN, "Expected ')' after expression")
        return expr

    def _parse_array_literal(self) -> ArrayLiteral:
        """Parse `[a, b, ...]` (a trailing comma is allowed)."""
        start_token = self._advance()  # Consume [

        elements = []
        if not self._check(TokenType.RIGHT_BRACKET):
            elements.append(self._parse_expression())
            while self._match(TokenType.COMMA):
                if self._check(TokenType.RIGHT_BRACKET):
                    break
                elements.append(self._parse_expression())

        end_token = self._consume(TokenType.RIGHT_BRACKET, "Expected ']' after array elements")
        return ArrayLiteral(elements, SourceSpan(start_token.location, end_token.location))

    def _parse_object_literal(self) -> ObjectLiteral:
        """Parse `{key: value, ...}` with identifier or string keys."""
        start_token = self._advance()  # Consume {

        properties = []
        if not self._check(TokenType.RIGHT_BRACE):
            properties.append(self._parse_object_property())
            while self._match(TokenType.COMMA):
                if self._check(TokenType.RIGHT_BRACE):
                    break
                properties.append(self._parse_object_property())

        end_token = self._consume(TokenType.RIGHT_BRACE, "Expected '}' after object properties")
        return ObjectLiteral(properties, SourceSpan(start_token.location, end_token.location))

    def _parse_object_property(self) -> Tuple[str, Expression]:
        key_token = self._peek()
        if key_token.type == TokenType.STRING:
            key = key_token.value
        elif key_token.type == TokenType.IDENTIFIER or key_token.is_keyword:
            key = key_token.lexeme
        else:
            raise create_unexpected_token_error("property name", key_token)
        self._advance()

        self._consume(TokenType.COLON, "Expected ':' after property name")
        return key, self._parse_expression()

    # Infix parsers (binary operators and postfix operations)

    def _parse_binary(self, left: Expression) -> BinaryExpression:
        """Parse left-associative binary operation."""
        operator_token = self._advance()
        precedence = self._get_precedence(operator_token.type)
        right = self._parse_precedence(Precedence(precedence + 1))

        span = SourceSpan(left.span.start, right.span.end)
        return BinaryExpression(operator_token.lexeme, left, right, span)

    def _parse_logical(self, left: Expression) -> LogicalExpression:
        operator_token = self._advance()
        precedence = self._get_precedence(operator_token.type)
        right = self._parse_precedence(Precedence(precedence + 1))

        span = SourceSpan(left.span.start, right.span.end)
        return LogicalExpression(CANONICAL_OPERATORS[operator_token.type], left, right, span)

    def _parse_assignment(self, left: Expression) -> Assignment:
        """Parse assignment operation."""
        # Assignment is right associative
        operator_token = self._advance()
        right = self._parse_precedence(Precedence.ASSIGNMENT)

        span = SourceSpan(left.span.start, right.span.end)
        return Assignment(left, operator_token.lexeme, right, span)

    def _parse_function_call(self, left: Expression) -> CallExpression:
        """Parse function call."""
        self._advance()  # Consume (

        args = []
        if not self._check(TokenType.RIGHT_PAREN):
            args.append(self._parse_expression())
            while self._match(TokenType.COMMA):
                if self._check(TokenType.RIGHT_PAREN):
                    break
                args.append(self._parse_expression())

        end_token = self._consume(TokenType.RIGHT_PAREN, "Expected ')' after arguments")

        span = SourceSpan(left.span.start, end_token.location)
        return CallExpression(left, args, span)

    def _parse_member_access(self, left: Expression) -> MemberExpression:
        """Parse member access (dot operator); keywords are valid member names."""
        self._advance()  # Consume .

        name_token = self._peek()
        if name_token.type != TokenType.IDENTIFIER and not name_token.is_keyword:
            raise create_unexpected_token_error("member name after '.'", name_token)
        self._advance()

        span = SourceSpan(left.span.start, name_token.location)
        return MemberExpression(left, name_token.lexeme, span)

    def _parse_index_access(self, left: Expression) -> IndexExpression:
        """Parse index access (array[index])."""
        self._advance()  # Consume [
        index = self._parse_expression()
        end_token = self._consume(TokenType.RIGHT_BRACKET, "Expected ']' after index")

        span = SourceSpan(left.span.start, end_token.location)
        return IndexExpression(left, index, span)

    # Utility methods

    def _match(self, token_type: TokenType) -> bool:
        """Check if current token matches type and consume if so."""
        if self._check(token_type):
            self._advance()
            return True
        return False

    def _check(self, token_type: TokenType) -> bool:
        """Check if current token matches type without consuming."""
        return self._peek().type == token_type

    def _advance(self) -> Token:
        """Consume and return current token."""
        if not self._is_at_end():
            self.current += 1
        return self._previous()

    def _is_at_end(self) -> bool:
        """Check if we've reached the end of tokens."""
        return self._peek().type == TokenType.EOF

    def _peek(self) -> Token:
        """Return current token without consuming."""
        return self.tokens[min(self.current, len(self.tokens) - 1)]

    def _previous(self) -> Token:
        """Return previous token."""
        if self.current > 0:
            return self.tokens[self.current - 1]
        return self.tokens[0]

    def _consume(self, token_type: TokenType, message: str) -> Token:
        """Consume token of expected type or raise error."""
        if self._check(token_type):
            return self._advance()
        raise create_unexpected_token_error(token_type, self._peek(), message)

    def _check_statement_terminator(self) -> bool:
        """Check for statement terminators."""
        return (self._check(TokenType.SEMICOLON) or
                self._check(TokenType.EOF) or
                self._check(TokenType.RIGHT_BRACE))

    def _consume_statement_terminator(self):
        """Consume optional statement terminator."""
        self._match(TokenType.SEMICOLON)


def parse_tokens(tokens: List[Token]) -> Program:
    return Parser(tokens).parse()


def parse_string(source: str, filename: str = "<string>") -> Program:
    """
    Convenience function to parse a source string.

    Args:
        source: Source code string
        filename: Filename for error reporting

    Returns:
        Program AST

    Raises:
        LexError: If tokenization fails
        ParseError: If parsing fails
    """
    from ..lexer import tokenize_string

    tokens = tokenize_string(source, filename)
    return Parser(tokens).parse()
