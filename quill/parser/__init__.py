"""
Quill Parser Package

Pratt-style recursive descent parser producing an immutable AST.

Author: xwest
"""

from .ast_nodes import *
from .parser import Parser, Precedence, parse_string, parse_tokens
from .errors import ParseError

__all__ = [
    "Parser",
    "Precedence",
    "ParseError",
    "parse_string",
    "parse_tokens",
    "UNDEFINED",
    "UndefinedType",
    "ASTNode",
    "ASTNodeType",
    "SourceSpan",
    "Statement",
    "Expression",
    "Program",
    "VariableDeclaration",
    "FunctionDeclaration",
    "ClassDeclaration",
    "IfStatement",
    "WhileStatement",
    "ForStatement",
    "ReturnStatement",
    "BreakStatement",
    "ContinueStatement",
    "ThrowStatement",
    "TryStatement",
    "ImportSpecifier",
    "ImportStatement",
    "ExpressionStatement",
    "Assignment",
    "BinaryExpression",
    "LogicalExpression",
    "UnaryExpression",
    "CallExpression",
    "IndexExpression",
    "MemberExpression",
    "Identifier",
    "Literal",
    "ArrayLiteral",
    "ObjectLiteral",
    "walk",
]
