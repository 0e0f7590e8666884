"""
IR Generator for Quill.

Lowers a parsed Program into the flat three-address IR. Expressions
always lower to exactly one operand; statements lower to labels and
jumps. Temporaries (`t0, t1, ...`) and labels (`L0, L1, ...`) are
numbered per call to `generate`; source names that look like
temporaries are renamed with a trailing underscore.

Author: xwest
"""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional

from ..errors import IRGenerationError
from ..parser.ast_nodes import *
from .ir_nodes import (
    Opcode, Const, Var, Label, Operand, Instruction,
    BINARY_OPERATOR_OPCODES, UNARY_OPERATOR_OPCODES,
)

logger = logging.getLogger(__name__)

# Source names shaped like temporaries, with any trailing underscores
_TEMPORARY_LIKE = re.compile(r"^t\d+_*$")


def source_name(name: str) -> str:
    """
    IR name for a source identifier.

    `t0` becomes `t0_` and `t0_` becomes `t0__`, so source names never
    collide with temporaries or with each other.
    """
    if _TEMPORARY_LIKE.match(name):
        return name + "_"
    return name


@dataclass
class LoopTargets:
    """Jump targets for break/continue inside one loop."""
    break_label: Label
    continue_label: Label


class IRGenerator:
    """
    Generates Quill IR from an AST.

    The generator performs the following lowering:
    - expressions into temporaries, one instruction per operator
    - if/while/for into labels, `goto` and `if_false`
    - calls into `push` per argument followed by `call`
    - functions and class methods into flat `function` ... `end_function` runs
    """

    def __init__(self):
        self.instructions: List[Instruction] = []
        self.temp_counter = 0
        self.label_counter = 0
        self.loops: List[LoopTargets] = []

    def generate(self, program: Program) -> List[Instruction]:
        """
        Lower a program to IR.

        Args:
            program: Parsed program

        Returns:
            New instruction list
        """
        self.instructions = []
        self.temp_counter = 0
        self.label_counter = 0
        self.loops = []

        for statement in program.body:
            self._generate_statement(statement)

        logger.debug("lowered %d statements into %d instructions",
                     len(program.body), len(self.instructions))
        return self.instructions

    # ========================================================================
    # Helpers
    # ========================================================================

    def _new_temp(self) -> str:
        name = f"t{self.temp_counter}"
        self.temp_counter += 1
        return name

    def _new_label(self) -> Label:
        label = Label(f"L{self.label_counter}")
        self.label_counter += 1
        return label

    def _emit(self, opcode: Opcode, operand1: Optional[Operand] = None,
              operand2: Optional[Operand] = None, result: Optional[str] = None) -> Instruction:
        instruction = Instruction(opcode, operand1, operand2, result)
        self.instructions.append(instruction)
        return instruction

    def _emit_label(self, label: Label):
        self._emit(Opcode.LABEL, label)

    def _materialize(self, operand: Operand) -> Var:
        """Make sure an operand is a name (containers must be named to be updated)."""
        if isinstance(operand, Var):
            return operand
        temp = self._new_temp()
        self._emit(Opcode.ASSIGN, operand, result=temp)
        return Var(temp)

    def _error(self, message: str, node: ASTNode) -> IRGenerationError:
        return IRGenerationError(message, node.span.start)

    # ========================================================================
    # Statements
    # ========================================================================

    def _generate_block(self, statements: List[Statement]):
        for statement in statements:
            self._generate_statement(statement)

    def _generate_statement(self, stmt: Statement):
        """Generate IR for a statement."""
        if isinstance(stmt, VariableDeclaration):
            self._generate_variable_declaration(stmt)
        elif isinstance(stmt, FunctionDeclaration):
            self._generate_function(source_name(stmt.name), stmt.params, stmt.body)
        elif isinstance(stmt, ClassDeclaration):
            self._generate_class(stmt)
        elif isinstance(stmt, IfStatement):
            self._generate_if_statement(stmt.condition, stmt.consequent,
                                        stmt.elsif_branches, stmt.alternate)
        elif isinstance(stmt, WhileStatement):
            self._generate_while_loop(stmt)
        elif isinstance(stmt, ForStatement):
            self._generate_for_loop(stmt)
        elif isinstance(stmt, ReturnStatement):
            value = self._generate_expression(stmt.value) if stmt.value is not None else None
            self._emit(Opcode.RETURN, value)
        elif isinstance(stmt, BreakStatement):
            if not self.loops:
                raise self._error("'break' outside of a loop", stmt)
            self._emit(Opcode.GOTO, self.loops[-1].break_label)
        elif isinstance(stmt, ContinueStatement):
            if not self.loops:
                raise self._error("'continue' outside of a loop", stmt)
            self._emit(Opcode.GOTO, self.loops[-1].continue_label)
        elif isinstance(stmt, ThrowStatement):
            raise self._error("'throw' cannot be compiled; exceptions are only supported by the evaluator", stmt)
        elif isinstance(stmt, TryStatement):
            self._generate_try_statement(stmt)
        elif isinstance(stmt, ImportStatement):
            self._generate_import(stmt)
        elif isinstance(stmt, ExpressionStatement):
            self._generate_expression(stmt.expression)
        else:
            raise self._error(f"Cannot lower {type(stmt).__name__}", stmt)

    def _generate_variable_declaration(self, decl: VariableDeclaration):
        if decl.initializer is not None:
            value = self._generate_expression(decl.initializer)
        else:
            value = Const(None)
        self._emit(Opcode.ASSIGN, value, result=source_name(decl.name))

    def _generate_function(self, name: str, params: List[str], body: List[Statement]):
        """Emit `function` / `param`s / body / `end_function`."""
        self._emit(Opcode.FUNCTION, Const(name), Const(float(len(params))))
        for param in params:
            self._emit(Opcode.PARAM, result=source_name(param))

        # Loops never span a function boundary
        saved_loops = self.loops
        self.loops = []
        self._generate_block(body)
        self.loops = saved_loops

        self._emit(Opcode.END_FUNCTION)

    def _generate_class(self, decl: ClassDeclaration):
        """Methods become `<Class>_<method>` functions taking `self` first."""
        class_name = source_name(decl.name)
        for method in decl.methods:
            self._generate_function(f"{class_name}_{method.name}", ["self"] + list(method.params), method.body)

        prototype = self._new_temp()
        self._emit(Opcode.NEW_OBJECT, result=prototype)
        for prop in decl.properties:
            value = self._generate_expression(prop.initializer) if prop.initializer is not None else Const(None)
            self._emit(Opcode.SET_MEMBER, value, Const(prop.name), prototype)
        for method in decl.methods:
            self._emit(Opcode.SET_MEMBER, Var(f"{class_name}_{method.name}"), Const(method.name), prototype)
        self._emit(Opcode.ASSIGN, Var(prototype), result=class_name)

    def _generate_if_statement(self, condition: Expression, consequent: List[Statement],
                               elsif_branches, alternate: Optional[List[Statement]]):
        else_label = self._new_label()
        end_label = self._new_label()

        test = self._generate_expression(condition)
        self._emit(Opcode.IF_FALSE, test, else_label)
        self._generate_block(consequent)
        self._emit(Opcode.GOTO, end_label)

        self._emit_label(else_label)
        if elsif_branches:
            (next_condition, next_block), rest = elsif_branches[0], elsif_branches[1:]
            self._generate_if_statement(next_condition, next_block, rest, alternate)
        elif alternate:
            self._generate_block(alternate)
        self._emit_label(end_label)

    def _generate_while_loop(self, loop: WhileStatement):
        start_label = self._new_label()
        end_label = self._new_label()

        self._emit_label(start_label)
        test = self._generate_expression(loop.condition)
        self._emit(Opcode.IF_FALSE, test, end_label)

        self.loops.append(LoopTargets(end_label, start_label))
        self._generate_block(loop.body)
        self.loops.pop()

        self._emit(Opcode.GOTO, start_label)
        self._emit_label(end_label)

    def _generate_for_loop(self, loop: ForStatement):
        """`for x = a to b step s` counts while `x <= b`; bound and step are evaluated once."""
        variable = source_name(loop.variable)
        start_value = self._generate_expression(loop.start)
        self._emit(Opcode.ASSIGN, start_value, result=variable)
        end_value = self._generate_expression(loop.end)
        step_value = self._generate_expression(loop.step) if loop.step is not None else Const(1.0)

        start_label = self._new_label()
        continue_label = self._new_label()
        end_label = self._new_label()

        self._emit_label(start_label)
        test = self._new_temp()
        self._emit(Opcode.LE, Var(variable), end_value, test)
        self._emit(Opcode.IF_FALSE, Var(test), end_label)

        self.loops.append(LoopTargets(end_label, continue_label))
        self._generate_block(loop.body)
        self.loops.pop()

        self._emit_label(continue_label)
        updated = self._new_temp()
        self._emit(Opcode.ADD, Var(variable), step_value, updated)
        self._emit(Opcode.ASSIGN, Var(updated), result=variable)
        self._emit(Opcode.GOTO, start_label)
        self._emit_label(end_label)

    def _generate_try_statement(self, stmt: TryStatement):
        # No exception edges in the IR: the handler is unreachable
        if stmt.handler is not None:
            logger.debug("dropping catch clause at %s; compiled code has no exceptions", stmt.span.start)
        self._generate_block(stmt.block)
        if stmt.finalizer:
            self._generate_block(stmt.finalizer)

    def _generate_import(self, stmt: ImportStatement):
        source = Const(stmt.source)
        for specifier in stmt.specifiers:
            self._emit(Opcode.IMPORT, source, Const(specifier.imported), source_name(specifier.local))
        if stmt.namespace is not None:
            self._emit(Opcode.IMPORT, source, Const("*"), source_name(stmt.namespace))
        if stmt.default is not None:
            self._emit(Opcode.IMPORT, source, Const("default"), source_name(stmt.default))

    # ========================================================================
    # Expressions
    # ========================================================================

    def _generate_expression(self, expr: Expression) -> Operand:
        """Generate IR for an expression and return the operand holding its value."""
        if isinstance(expr, Literal):
            return Const(expr.value)
        elif isinstance(expr, Identifier):
            return Var(source_name(expr.name))
        elif isinstance(expr, (BinaryExpression, LogicalExpression)):
            return self._generate_binary(expr.operator, expr.left, expr.right)
        elif isinstance(expr, UnaryExpression):
            operand = self._generate_expression(expr.operand)
            result = self._new_temp()
            self._emit(UNARY_OPERATOR_OPCODES[expr.operator], operand, result=result)
            return Var(result)
        elif isinstance(expr, Assignment):
            return self._generate_assignment(expr)
        elif isinstance(expr, CallExpression):
            return self._generate_call(expr)
        elif isinstance(expr, IndexExpression):
            container = self._generate_expression(expr.object)
            index = self._generate_expression(expr.index)
            result = self._new_temp()
            self._emit(Opcode.GET_INDEX, container, index, result)
            return Var(result)
        elif isinstance(expr, MemberExpression):
            container = self._generate_expression(expr.object)
            result = self._new_temp()
            self._emit(Opcode.GET_MEMBER, container, Const(expr.property), result)
            return Var(result)
        elif isinstance(expr, ArrayLiteral):
            elements = [self._generate_expression(element) for element in expr.elements]
            for element in elements:
                self._emit(Opcode.PUSH, element)
            result = self._new_temp()
            self._emit(Opcode.NEW_ARRAY, Const(float(len(elements))), result=result)
            return Var(result)
        elif isinstance(expr, ObjectLiteral):
            result = self._new_temp()
            self._emit(Opcode.NEW_OBJECT, result=result)
            for key, value_expr in expr.properties:
                value = self._generate_expression(value_expr)
                self._emit(Opcode.SET_MEMBER, value, Const(key), result)
            return Var(result)
        else:
            raise self._error(f"Cannot lower {type(expr).__name__}", expr)

    def _generate_binary(self, operator: str, left_expr: Expression, right_expr: Expression) -> Var:
        left = self._generate_expression(left_expr)
        right = self._generate_expression(right_expr)
        result = self._new_temp()
        self._emit(BINARY_OPERATOR_OPCODES[operator], left, right, result)
        return Var(result)

    def _combine(self, operator: str, current: Operand, value: Operand) -> Operand:
        """Apply the arithmetic part of a compound assignment (`+=` -> add)."""
        if operator == "=":
            return value
        result = self._new_temp()
        self._emit(BINARY_OPERATOR_OPCODES[operator[:-1]], current, value, result)
        return Var(result)

    def _generate_assignment(self, expr: Assignment) -> Operand:
        target = expr.target

        if isinstance(target, Identifier):
            name = source_name(target.name)
            value = self._generate_expression(expr.value)
            value = self._combine(expr.operator, Var(name), value)
            self._emit(Opcode.ASSIGN, value, result=name)
            return Var(name)

        if isinstance(target, IndexExpression):
            container = self._materialize(self._generate_expression(target.object))
            index = self._generate_expression(target.index)
            value = self._generate_expression(expr.value)
            if expr.operator != "=":
                current = self._new_temp()
                self._emit(Opcode.GET_INDEX, container, index, current)
                value = self._combine(expr.operator, Var(current), value)
            self._emit(Opcode.SET_INDEX, value, index, container.name)
            return value

        if isinstance(target, MemberExpression):
            container = self._materialize(self._generate_expression(target.object))
            key = Const(target.property)
            value = self._generate_expression(expr.value)
            if expr.operator != "=":
                current = self._new_temp()
                self._emit(Opcode.GET_MEMBER, container, key, current)
                value = self._combine(expr.operator, Var(current), value)
            self._emit(Opcode.SET_MEMBER, value, key, container.name)
            return value

        raise self._error(f"Invalid assignment target: {type(target).__name__}", target)

    def _generate_call(self, call: CallExpression) -> Var:
        callee = self._generate_expression(call.callee)
        arguments = [self._generate_expression(argument) for argument in call.arguments]
        for argument in arguments:
            self._emit(Opcode.PUSH, argument)
        result = self._new_temp()
        self._emit(Opcode.CALL, callee, Const(float(len(arguments))), result)
        return Var(result)


def generate_ir(program: Program) -> List[Instruction]:
    """Convenience function to lower a program with a fresh generator."""
    return IRGenerator().generate(program)
