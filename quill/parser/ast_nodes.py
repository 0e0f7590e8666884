"""
Abstract Syntax Tree node definitions for Quill.

Every node records its kind and a source span, owns its children, and is
never mutated after the parser builds it. Blocks are plain lists of
statements.

Author: xwest
"""

from typing import Any, List, Optional, Tuple
from dataclasses import dataclass
from enum import Enum

from ..lexer.tokens import SourceLocation


class UndefinedType:
    """Type of the `undefined` placeholder value (distinct from null/None)."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "undefined"

    def __bool__(self) -> bool:
        return False


UNDEFINED = UndefinedType()


class ASTNodeType(Enum):
    """Enumeration of all AST node types."""

    # Top-level
    PROGRAM = "Program"

    # Declarations
    VARIABLE_DECL = "VariableDeclaration"
    FUNCTION_DECL = "FunctionDeclaration"
    CLASS_DECL = "ClassDeclaration"

    # Statements
    IF_STATEMENT = "IfStatement"
    WHILE_STATEMENT = "WhileStatement"
    FOR_STATEMENT = "ForStatement"
    RETURN_STATEMENT = "ReturnStatement"
    BREAK_STATEMENT = "BreakStatement"
    CONTINUE_STATEMENT = "ContinueStatement"
    THROW_STATEMENT = "ThrowStatement"
    TRY_STATEMENT = "TryStatement"
    IMPORT_STATEMENT = "ImportStatement"
    EXPRESSION_STMT = "ExpressionStatement"

    # Expressions
    ASSIGNMENT = "Assignment"
    BINARY_EXPR = "BinaryExpression"
    LOGICAL_EXPR = "LogicalExpression"
    UNARY_EXPR = "UnaryExpression"
    CALL_EXPR = "CallExpression"
    INDEX_EXPR = "IndexExpression"
    MEMBER_EXPR = "MemberExpression"

    # Literals
    IDENTIFIER = "Identifier"
    LITERAL = "Literal"
    ARRAY_LITERAL = "ArrayLiteral"
    OBJECT_LITERAL = "ObjectLiteral"


@dataclass(frozen=True)
class SourceSpan:
    """Represents a span of source code (start and end locations)."""
    start: SourceLocation
    end: SourceLocation

    def __str__(self) -> str:
        if self.start.filename == self.end.filename:
            return f"{self.start.filename}:{self.start.line}:{self.start.column}-{self.end.line}:{self.end.column}"
        return f"{self.start}-{self.end}"


class ASTNode:
    """Base class for all AST nodes."""

    node_type: ASTNodeType

    def __init__(self, span: SourceSpan):
        self.span = span

    def children(self) -> List['ASTNode']:
        """Get all child nodes."""
        return []

    def __str__(self) -> str:
        return f"{self.node_type.value}@{self.span}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(span={self.span})"


class Statement(ASTNode):
    """Base class for statements."""
    pass


class Expression(ASTNode):
    """Base class for expressions."""
    pass


# ============================================================================
# Top-level
# ============================================================================

class Program(ASTNode):
    """Root AST node representing a complete program."""
    node_type = ASTNodeType.PROGRAM

    def __init__(self, body: List[Statement], span: SourceSpan):
        super().__init__(span)
        self.body = body

    def children(self) -> List[ASTNode]:
        return list(self.body)


# ============================================================================
# Declarations
# ============================================================================

class VariableDeclaration(Statement):
    """`let`/`const`/`var` declaration with an optional initializer."""
    node_type = ASTNodeType.VARIABLE_DECL

    def __init__(self, kind: str, name: str, initializer: Optional[Expression], span: SourceSpan):
        super().__init__(span)
        self.kind = kind
        self.name = name
        self.initializer = initializer

    def children(self) -> List[ASTNode]:
        return [self.initializer] if self.initializer else []


class FunctionDeclaration(Statement):
    """Named function definition (`def` or `function`)."""
    node_type = ASTNodeType.FUNCTION_DECL

    def __init__(self, name: str, params: List[str], body: List[Statement], span: SourceSpan):
        super().__init__(span)
        self.name = name
        self.params = params
        self.body = body

    def children(self) -> List[ASTNode]:
        return list(self.body)


class ClassDeclaration(Statement):
    """Class with property declarations and methods."""
    node_type = ASTNodeType.CLASS_DECL

    def __init__(self, name: str, superclass: Optional[str],
                 properties: List[VariableDeclaration],
                 methods: List[FunctionDeclaration], span: SourceSpan):
        super().__init__(span)
        self.name = name
        self.superclass = superclass
        self.properties = properties
        self.methods = methods

    def children(self) -> List[ASTNode]:
        return list(self.properties) + list(self.methods)


# ============================================================================
# Statements
# ============================================================================

class IfStatement(Statement):
    """if / elsif / else chain."""
    node_type = ASTNodeType.IF_STATEMENT

    def __init__(self, condition: Expression, consequent: List[Statement],
                 elsif_branches: List[Tuple[Expression, List[Statement]]],
                 alternate: Optional[List[Statement]], span: SourceSpan):
        super().__init__(span)
        self.condition = condition
        self.consequent = consequent
        self.elsif_branches = elsif_branches
        self.alternate = alternate

    def children(self) -> List[ASTNode]:
        result: List[ASTNode] = [self.condition] + list(self.consequent)
        for condition, body in self.elsif_branches:
            result.append(condition)
            result.extend(body)
        if self.alternate:
            result.extend(self.alternate)
        return result


class WhileStatement(Statement):
    node_type = ASTNodeType.WHILE_STATEMENT

    def __init__(self, condition: Expression, body: List[Statement], span: SourceSpan):
        super().__init__(span)
        self.condition = condition
        self.body = body

    def children(self) -> List[ASTNode]:
        return [self.condition] + list(self.body)


class ForStatement(Statement):
    """Counting loop: `for i = start to end [step s] { ... }`."""
    node_type = ASTNodeType.FOR_STATEMENT

    def __init__(self, variable: str, start: Expression, end: Expression,
                 step: Optional[Expression], body: List[Statement], span: SourceSpan):
        super().__init__(span)
        self.variable = variable
        self.start = start
        self.end = end
        self.step = step
        self.body = body

    def children(self) -> List[ASTNode]:
        result: List[ASTNode] = [self.start, self.end]
        if self.step:
            result.append(self.step)
        return result + list(self.body)


class ReturnStatement(Statement):
    node_type = ASTNodeType.RETURN_STATEMENT

    def __init__(self, value: Optional[Expression], span: SourceSpan):
        super().__init__(span)
        self.value = value

    def children(self) -> List[ASTNode]:
        return [self.value] if self.value else []


class BreakStatement(Statement):
    node_type = ASTNodeType.BREAK_STATEMENT


class ContinueStatement(Statement):
    node_type = ASTNodeType.CONTINUE_STATEMENT


class ThrowStatement(Statement):
    node_type = ASTNodeType.THROW_STATEMENT

    def __init__(self, value: Expression, span: SourceSpan):
        super().__init__(span)
        self.value = value

    def children(self) -> List[ASTNode]:
        return [self.value]


class TryStatement(Statement):
    """try block with an optional catch clause and/or finally block."""
    node_type = ASTNodeType.TRY_STATEMENT

    def __init__(self, block: List[Statement], catch_param: Optional[str],
                 handler: Optional[List[Statement]],
                 finalizer: Optional[List[Statement]], span: SourceSpan):
        super().__init__(span)
        self.block = block
        self.catch_param = catch_param
        self.handler = handler
        self.finalizer = finalizer

    def children(self) -> List[ASTNode]:
        return list(self.block) + list(self.handler or []) + list(self.finalizer or [])


@dataclass(frozen=True)
class ImportSpecifier:
    """One `name [as alias]` entry of a named import."""
    imported: str
    local: str


class ImportStatement(Statement):
    """
    Import in one of three forms:

    - named: ``import { a, b as c } from "path"``
    - namespace: ``import * as ns from "path"``
    - default: ``import name from "path"``
    """
    node_type = ASTNodeType.IMPORT_STATEMENT

    def __init__(self, source: str, specifiers: List[ImportSpecifier],
                 namespace: Optional[str], default: Optional[str], span: SourceSpan):
        super().__init__(span)
        self.source = source
        self.specifiers = specifiers
        self.namespace = namespace
        self.default = default


class ExpressionStatement(Statement):
    node_type = ASTNodeType.EXPRESSION_STMT

    def __init__(self, expression: Expression, span: SourceSpan):
        super().__init__(span)
        self.expression = expression

    def children(self) -> List[ASTNode]:
        return [self.expression]


# ============================================================================
# Expressions
# ============================================================================

class Assignment(Expression):
    """`target op value` where op is one of = += -= *= /=."""
    node_type = ASTNodeType.ASSIGNMENT

    def __init__(self, target: Expression, operator: str, value: Expression, span: SourceSpan):
        super().__init__(span)
        self.target = target
        self.operator = operator
        self.value = value

    def children(self) -> List[ASTNode]:
        return [self.target, self.value]


class BinaryExpression(Expression):
    node_type = ASTNodeType.BINARY_EXPR

    def __init__(self, operator: str, left: Expression, right: Expression, span: SourceSpan):
        super().__init__(span)
        self.operator = operator
        self.left = left
        self.right = right

    def children(self) -> List[ASTNode]:
        return [self.left, self.right]


class LogicalExpression(Expression):
    """Short-circuiting `&&` / `||`."""
    node_type = ASTNodeType.LOGICAL_EXPR

    def __init__(self, operator: str, left: Expression, right: Expression, span: SourceSpan):
        super().__init__(span)
        self.operator = operator
        self.left = left
        self.right = right

    def children(self) -> List[ASTNode]:
        return [self.left, self.right]


class UnaryExpression(Expression):
    node_type = ASTNodeType.UNARY_EXPR

    def __init__(self, operator: str, operand: Expression, span: SourceSpan):
        super().__init__(span)
        self.operator = operator
        self.operand = operand

    def children(self) -> List[ASTNode]:
        return [self.operand]


class CallExpression(Expression):
    node_type = ASTNodeType.CALL_EXPR

    def __init__(self, callee: Expression, arguments: List[Expression], span: SourceSpan):
        super().__init__(span)
        self.callee = callee
        self.arguments = arguments

    def children(self) -> List[ASTNode]:
        return [self.callee] + list(self.arguments)


class IndexExpression(Expression):
    node_type = ASTNodeType.INDEX_EXPR

    def __init__(self, obj: Expression, index: Expression, span: SourceSpan):
        super().__init__(span)
        self.object = obj
        self.index = index

    def children(self) -> List[ASTNode]:
        return [self.object, self.index]


class MemberExpression(Expression):
    node_type = ASTNodeType.MEMBER_EXPR

    def __init__(self, obj: Expression, property_name: str, span: SourceSpan):
        super().__init__(span)
        self.object = obj
        self.property = property_name

    def children(self) -> List[ASTNode]:
        return [self.object]


class Identifier(Expression):
    node_type = ASTNodeType.IDENTIFIER

    def __init__(self, name: str, span: SourceSpan):
        super().__init__(span)
        self.name = name


class Literal(Expression):
    """Number (float), string, boolean, null (None) or undefined."""
    node_type = ASTNodeType.LITERAL

    def __init__(self, value: Any, span: SourceSpan):
        super().__init__(span)
        self.value = value


class ArrayLiteral(Expression):
    node_type = ASTNodeType.ARRAY_LITERAL

    def __init__(self, elements: List[Expression], span: SourceSpan):
        super().__init__(span)
        self.elements = elements

    def children(self) -> List[ASTNode]:
        return list(self.elements)


class ObjectLiteral(Expression):
    """`{key: value, ...}`; keys keep source order."""
    node_type = ASTNodeType.OBJECT_LITERAL

    def __init__(self, properties: List[Tuple[str, Expression]], span: SourceSpan):
        super().__init__(span)
        self.properties = properties

    def children(self) -> List[ASTNode]:
        return [value for _, value in self.properties]


def walk(node: ASTNode):
    """Yield `node` and every descendant in pre-order."""
    yield node
    for child in node.children():
        yield from walk(child)
