"""
Tree-walking evaluator for Quill.

Statements return a Completion record instead of unwinding through host
exceptions: loops absorb BREAK/CONTINUE, calls absorb RETURN, and a
RETURN at program level ends the program with its value. Errors are
Python exceptions derived from EvaluationError.

Author: xwest
"""

import logging
import sys
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, TextIO

from ..lexer.tokens import SourceLocation
from ..parser.ast_nodes import *
from .scope import Scope
from .values import (
    UNDEFINED, UndefinedType, FunctionValue, BuiltinFunction, ClassValue,
    Instance, BoundMethod, truthy, to_number, to_property_key, add,
    arithmetic, compare, loose_equals, is_number
)
from .builtins import create_builtins, lookup_method, describe_value
from .errors import (
    EvaluationError, UndefinedVariableError, InvalidAssignmentTargetError,
    NotAFunctionError, InfiniteLoopError, ControlFlowError, ThrownValueError,
    QuillTypeError, ImportResolutionError, StackOverflowError
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_LOOP_ITERATIONS = 1_000_000
DEFAULT_MAX_CALL_DEPTH = 200

# Python frames used per Quill call level, with headroom
FRAMES_PER_CALL = 30

ImportResolver = Callable[[str, Optional[SourceLocation]], Dict[str, Any]]


class CompletionKind(Enum):
    NORMAL = "normal"
    BREAK = "break"
    CONTINUE = "continue"
    RETURN = "return"


@dataclass(frozen=True)
class Completion:
    """Outcome of executing a statement."""
    kind: CompletionKind
    value: Any = None

    @property
    def is_abrupt(self) -> bool:
        return self.kind is not CompletionKind.NORMAL


BREAK = Completion(CompletionKind.BREAK)
CONTINUE = Completion(CompletionKind.CONTINUE)

ARITHMETIC_OPERATORS = {"-", "*", "/", "%"}
COMPARISON_OPERATORS = {"<", "<=", ">", ">="}
COMPOUND_OPERATORS = {"+=": "+", "-=": "-", "*=": "*", "/=": "/"}


def _location(node: ASTNode) -> SourceLocation:
    return node.span.start


class Evaluator:
    """
    Executes a Program against a fresh global scope.

    One Evaluator runs one program; it owns its global scope and builtin
    table and shares no mutable state with other instances.
    """

    def __init__(
        self,
        max_loop_iterations: int = DEFAULT_MAX_LOOP_ITERATIONS,
        max_call_depth: int = DEFAULT_MAX_CALL_DEPTH,
        echo: Optional[TextIO] = None,
        import_resolver: Optional[ImportResolver] = None
    ):
        self.max_loop_iterations = max_loop_iterations
        self.max_call_depth = max_call_depth
        self.echo = echo
        self.import_resolver = import_resolver

        self.builtins: Dict[str, Any] = create_builtins()
        self.global_scope = Scope()
        self.call_depth = 0

    def evaluate(self, program: Program) -> Any:
        """
        Run `program` and return the value of its last evaluated statement.

        Raises:
            EvaluationError: Any runtime failure, including an uncaught throw
        """
        needed_limit = self.max_call_depth * FRAMES_PER_CALL + 1000
        if sys.getrecursionlimit() < needed_limit:
            sys.setrecursionlimit(needed_limit)

        completion = self._execute_block(program.body, self.global_scope)

        if completion.kind is CompletionKind.BREAK:
            raise ControlFlowError("break")
        if completion.kind is CompletionKind.CONTINUE:
            raise ControlFlowError("continue")
        return completion.value

    def write_line(self, text: str):
        stream = self.echo if self.echo is not None else sys.stdout
        stream.write(text + "\n")

    # ========================================================================
    # Statements
    # ========================================================================

    def _execute_block(self, statements: List[Statement], scope: Scope) -> Completion:
        """Run statements in order; stop at the first abrupt completion."""
        completion = Completion(CompletionKind.NORMAL)
        for statement in statements:
            completion = self._execute(statement, scope)
            if completion.is_abrupt:
                return completion
        return completion

    def _execute(self, stmt: Statement, scope: Scope) -> Completion:
        """Execute a single statement."""
        if isinstance(stmt, ExpressionStatement):
            return Completion(CompletionKind.NORMAL, self._evaluate(stmt.expression, scope))
        elif isinstance(stmt, VariableDeclaration):
            return self._execute_variable_declaration(stmt, scope)
        elif isinstance(stmt, FunctionDeclaration):
            function = FunctionValue(stmt.name, stmt.params, stmt.body, scope)
            scope.define(stmt.name, function)
            return Completion(CompletionKind.NORMAL, function)
        elif isinstance(stmt, ClassDeclaration):
            return self._execute_class_declaration(stmt, scope)
        elif isinstance(stmt, IfStatement):
            return self._execute_if_statement(stmt, scope)
        elif isinstance(stmt, WhileStatement):
            return self._execute_while_statement(stmt, scope)
        elif isinstance(stmt, ForStatement):
            return self._execute_for_statement(stmt, scope)
        elif isinstance(stmt, ReturnStatement):
            value = self._evaluate(stmt.value, scope) if stmt.value is not None else None
            return Completion(CompletionKind.RETURN, value)
        elif isinstance(stmt, BreakStatement):
            return BREAK
        elif isinstance(stmt, ContinueStatement):
            return CONTINUE
        elif isinstance(stmt, ThrowStatement):
            raise ThrownValueError(self._evaluate(stmt.value, scope), _location(stmt))
        elif isinstance(stmt, TryStatement):
            return self._execute_try_statement(stmt, scope)
        elif isinstance(stmt, ImportStatement):
            return self._execute_import_statement(stmt, scope)
        raise EvaluationError(f"Unknown statement type: {type(stmt).__name__}", _location(stmt))

    def _execute_variable_declaration(self, stmt: VariableDeclaration, scope: Scope) -> Completion:
        value = self._evaluate(stmt.initializer, scope) if stmt.initializer is not None else None
        scope.define(stmt.name, value)
        return Completion(CompletionKind.NORMAL, value)

    def _execute_class_declaration(self, stmt: ClassDeclaration, scope: Scope) -> Completion:
        superclass = None
        if stmt.superclass is not None:
            superclass = self._lookup(stmt.superclass, scope, _location(stmt))
            if not isinstance(superclass, ClassValue):
                raise QuillTypeError(
                    f"Superclass {stmt.superclass} of {stmt.name} is not a class",
                    _location(stmt)
                )

        methods = {
            method.name: FunctionValue(method.name, method.params, method.body, scope)
            for method in stmt.methods
        }
        klass = ClassValue(stmt.name, superclass, stmt.properties, methods, scope)
        scope.define(stmt.name, klass)
        return Completion(CompletionKind.NORMAL, klass)

    def _execute_if_statement(self, stmt: IfStatement, scope: Scope) -> Completion:
        if truthy(self._evaluate(stmt.condition, scope)):
            return self._execute_block(stmt.consequent, scope)

        for condition, body in stmt.elsif_branches:
            if truthy(self._evaluate(condition, scope)):
                return self._execute_block(body, scope)

        if stmt.alternate is not None:
            return self._execute_block(stmt.alternate, scope)
        return Completion(CompletionKind.NORMAL)

    def _execute_while_statement(self, stmt: WhileStatement, scope: Scope) -> Completion:
        result = None
        iterations = 0

        while truthy(self._evaluate(stmt.condition, scope)):
            iterations += 1
            if iterations > self.max_loop_iterations:
                raise InfiniteLoopError(self.max_loop_iterations, _location(stmt))

            completion = self._execute_block(stmt.body, scope)
            if completion.kind is CompletionKind.BREAK:
                break
            if completion.kind is CompletionKind.RETURN:
                return completion
            result = completion.value

        return Completion(CompletionKind.NORMAL, result)

    def _execute_for_statement(self, stmt: ForStatement, scope: Scope) -> Completion:
        """`i = start; while i <= end: body; i += step` in one shared scope."""
        start = to_number(self._evaluate(stmt.start, scope))
        end = to_number(self._evaluate(stmt.end, scope))
        step = to_number(self._evaluate(stmt.step, scope)) if stmt.step is not None else 1.0

        loop_scope = Scope(scope)
        result = None
        iterations = 0

        counter = start
        while counter <= end:
            iterations += 1
            if iterations > self.max_loop_iterations:
                raise InfiniteLoopError(self.max_loop_iterations, _location(stmt))

            loop_scope.define(stmt.variable, counter)
            completion = self._execute_block(stmt.body, loop_scope)
            if completion.kind is CompletionKind.BREAK:
                break
            if completion.kind is CompletionKind.RETURN:
                return completion
            result = completion.value
            counter += step

        return Completion(CompletionKind.NORMAL, result)

    def _execute_try_statement(self, stmt: TryStatement, scope: Scope) -> Completion:
        completion = Completion(CompletionKind.NORMAL)
        pending_error: Optional[EvaluationError] = None

        try:
            completion = self._execute_block(stmt.block, scope)
        except EvaluationError as error:
            if stmt.handler is None:
                pending_error = error
            else:
                catch_scope = Scope(scope)
                if stmt.catch_param is not None:
                    catch_scope.define(stmt.catch_param, self._error_value(error))
                try:
                    completion = self._execute_block(stmt.handler, catch_scope)
                except EvaluationError as handler_error:
                    pending_error = handler_error

        if stmt.finalizer is not None:
            final = self._execute_block(stmt.finalizer, scope)
            if final.is_abrupt:
                return final

        if pending_error is not None:
            raise pending_error
        return completion

    @staticmethod
    def _error_value(error: EvaluationError) -> Any:
        """Value bound by `catch (e)`."""
        if isinstance(error, ThrownValueError):
            return error.value
        return {"name": type(error).__name__, "message": error.message}

    def _execute_import_statement(self, stmt: ImportStatement, scope: Scope) -> Completion:
        location = _location(stmt)
        if self.import_resolver is None:
            raise ImportResolutionError(f"Cannot import '{stmt.source}': no module resolver", location)

        module = self.import_resolver(stmt.source, location)
        logger.debug("imported %s (%d exports)", stmt.source, len(module))

        if stmt.namespace is not None:
            scope.define(stmt.namespace, dict(module))
        elif stmt.default is not None:
            scope.define(stmt.default, module.get("default", dict(module)))
        else:
            for specifier in stmt.specifiers:
                if specifier.imported not in module:
                    raise ImportResolutionError(
                        f"Module '{stmt.source}' has no export named '{specifier.imported}'",
                        location
                    )
                scope.define(specifier.local, module[specifier.imported])

        return Completion(CompletionKind.NORMAL)

    # ========================================================================
    # Expressions
    # ========================================================================

    def _evaluate(self, expr: Expression, scope: Scope) -> Any:
        """Evaluate an expression to a value."""
        if isinstance(expr, Literal):
            return expr.value
        elif isinstance(expr, Identifier):
            return self._lookup(expr.name, scope, _location(expr))
        elif isinstance(expr, BinaryExpression):
            return self._evaluate_binary(expr, scope)
        elif isinstance(expr, LogicalExpression):
            left = self._evaluate(expr.left, scope)
            if expr.operator == "&&":
                return self._evaluate(expr.right, scope) if truthy(left) else left
            return left if truthy(left) else self._evaluate(expr.right, scope)
        elif isinstance(expr, UnaryExpression):
            return self._evaluate_unary(expr, scope)
        elif isinstance(expr, Assignment):
            return self._evaluate_assignment(expr, scope)
        elif isinstance(expr, CallExpression):
            return self._evaluate_call(expr, scope)
        elif isinstance(expr, IndexExpression):
            obj = self._evaluate(expr.object, scope)
            index = self._evaluate(expr.index, scope)
            return self._get_index(obj, index, _location(expr))
        elif isinstance(expr, MemberExpression):
            obj = self._evaluate(expr.object, scope)
            return self._get_member(obj, expr.property, _location(expr))
        elif isinstance(expr, ArrayLiteral):
            return [self._evaluate(element, scope) for element in expr.elements]
        elif isinstance(expr, ObjectLiteral):
            return {key: self._evaluate(value, scope) for key, value in expr.properties}
        raise EvaluationError(f"Unknown expression type: {type(expr).__name__}", _location(expr))

    def _lookup(self, name: str, scope: Scope, location: Optional[SourceLocation]) -> Any:
        """Walk the scope chain, then the builtin table."""
        owner = scope.resolve(name)
        if owner is not None:
            return owner.values[name]
        if name in self.builtins:
            return self.builtins[name]
        raise UndefinedVariableError(name, location)

    def _evaluate_binary(self, expr: BinaryExpression, scope: Scope) -> Any:
        left = self._evaluate(expr.left, scope)
        right = self._evaluate(expr.right, scope)
        return self._apply_binary(expr.operator, left, right)

    @staticmethod
    def _apply_binary(operator: str, left: Any, right: Any) -> Any:
        if operator == "+":
            return add(left, right)
        if operator in ARITHMETIC_OPERATORS:
            return arithmetic(operator, to_number(left), to_number(right))
        if operator in COMPARISON_OPERATORS:
            return compare(operator, left, right)
        if operator == "==":
            return loose_equals(left, right)
        if operator == "!=":
            return not loose_equals(left, right)
        raise EvaluationError(f"Unknown binary operator: {operator}")

    def _evaluate_unary(self, expr: UnaryExpression, scope: Scope) -> Any:
        operand = self._evaluate(expr.operand, scope)
        if expr.operator == "-":
            return -to_number(operand)
        if expr.operator == "+":
            return to_number(operand)
        if expr.operator == "!":
            return not truthy(operand)
        raise EvaluationError(f"Unknown unary operator: {expr.operator}", _location(expr))

    def _evaluate_assignment(self, expr: Assignment, scope: Scope) -> Any:
        target = expr.target
        location = _location(expr)
        operator = COMPOUND_OPERATORS.get(expr.operator)

        if isinstance(target, Identifier):
            if operator is None:
                value = self._evaluate(expr.value, scope)
            else:
                current = self._lookup(target.name, scope, location)
                value = self._apply_binary(operator, current, self._evaluate(expr.value, scope))
            scope.assign(target.name, value)
            return value

        if isinstance(target, IndexExpression):
            obj = self._evaluate(target.object, scope)
            index = self._evaluate(target.index, scope)
            value = self._evaluate(expr.value, scope)
            if operator is not None:
                value = self._apply_binary(operator, self._get_index(obj, index, location), value)
            self._set_index(obj, index, value, location)
            return value

        if isinstance(target, MemberExpression):
            obj = self._evaluate(target.object, scope)
            value = self._evaluate(expr.value, scope)
            if operator is not None:
                value = self._apply_binary(operator, self._get_member(obj, target.property, location), value)
            self._set_index(obj, target.property, value, location)
            return value

        raise InvalidAssignmentTargetError(target.node_type.value, location)

    # ========================================================================
    # Property access
    # ========================================================================

    def _get_index(self, obj: Any, index: Any, location: Optional[SourceLocation]) -> Any:
        if obj is None or isinstance(obj, UndefinedType):
            raise QuillTypeError(f"Cannot read index {describe_value(index)} of {describe_value(obj)}", location)

        if isinstance(obj, (list, str)) and is_number(index):
            if index == int(index) and 0 <= index < len(obj):
                return obj[int(index)]
            return UNDEFINED
        return self._get_member(obj, to_property_key(index), location)

    def _get_member(self, obj: Any, name: str, location: Optional[SourceLocation]) -> Any:
        if obj is None or isinstance(obj, UndefinedType):
            raise QuillTypeError(f"Cannot read property '{name}' of {describe_value(obj)}", location)

        if isinstance(obj, dict):
            if name in obj:
                return obj[name]
            if isinstance(obj, Instance):
                method = obj.klass.find_method(name)
                if method is not None:
                    return BoundMethod(obj, method)
            return UNDEFINED

        if isinstance(obj, (list, str)):
            if name == "length":
                return float(len(obj))
            method = lookup_method(obj, name)
            if method is not None:
                return BoundMethod(obj, method)
            return UNDEFINED

        if isinstance(obj, ClassValue):
            if name == "name":
                return obj.name
            method = obj.find_method(name)
            return method if method is not None else UNDEFINED

        if isinstance(obj, (FunctionValue, BuiltinFunction, BoundMethod)) and name == "name":
            return obj.name

        return UNDEFINED

    def _set_index(self, obj: Any, key: Any, value: Any, location: Optional[SourceLocation]):
        if isinstance(obj, list):
            index = to_number(key)
            if index != index or index < 0 or index != int(index):
                raise QuillTypeError(f"Invalid array index {describe_value(key)}", location)
            index = int(index)
            while len(obj) < index:
                obj.append(UNDEFINED)
            if index == len(obj):
                obj.append(value)
            else:
                obj[index] = value
            return

        if isinstance(obj, dict):
            obj[to_property_key(key)] = value
            return

        raise QuillTypeError(f"Cannot assign property {describe_value(key)} on {describe_value(obj)}", location)

    # ========================================================================
    # Calls
    # ========================================================================

    def _evaluate_call(self, expr: CallExpression, scope: Scope) -> Any:
        callee = self._evaluate(expr.callee, scope)
        args = [self._evaluate(argument, scope) for argument in expr.arguments]
        return self.call_value(callee, args, _location(expr))

    def call_value(self, callee: Any, args: List[Any], location: Optional[SourceLocation] = None) -> Any:
        """Call any callable Quill value with already evaluated arguments."""
        if isinstance(callee, FunctionValue):
            return self._call_function(callee, args, None, location)
        if isinstance(callee, BuiltinFunction):
            return self._call_builtin(callee, args, location)
        if isinstance(callee, BoundMethod):
            if isinstance(callee.function, BuiltinFunction):
                return self._call_builtin(callee.function, [callee.receiver] + list(args), location)
            return self._call_function(callee.function, args, callee.receiver, location)
        if isinstance(callee, ClassValue):
            return self._instantiate(callee, args, location)
        raise NotAFunctionError(describe_value(callee), location)

    def _call_builtin(self, builtin: BuiltinFunction, args: List[Any],
                      location: Optional[SourceLocation]) -> Any:
        try:
            return builtin.impl(self, args)
        except EvaluationError as error:
            if error.location is None:
                error.location = location
                error.diagnostic.location = location
            raise

    def _call_function(self, function: FunctionValue, args: List[Any], receiver: Any,
                       location: Optional[SourceLocation]) -> Any:
        if self.call_depth >= self.max_call_depth:
            raise StackOverflowError(self.max_call_depth, location)

        call_scope = Scope(function.scope)
        if receiver is not None:
            call_scope.define("self", receiver)
        for i, param in enumerate(function.params):
            call_scope.define(param, args[i] if i < len(args) else UNDEFINED)

        self.call_depth += 1
        try:
            completion = self._execute_block(function.body, call_scope)
        finally:
            self.call_depth -= 1

        if completion.kind is CompletionKind.RETURN:
            return completion.value
        if completion.kind is CompletionKind.BREAK:
            raise ControlFlowError("break", location)
        if completion.kind is CompletionKind.CONTINUE:
            raise ControlFlowError("continue", location)
        return None

    def _instantiate(self, klass: ClassValue, args: List[Any], location: Optional[SourceLocation]) -> Instance:
        """Create an instance: properties superclass-first, then `init`."""
        instance = Instance(klass)
        for ancestor in klass.lineage():
            property_scope = Scope(ancestor.scope)
            property_scope.define("self", instance)
            for prop in ancestor.properties:
                value = self._evaluate(prop.initializer, property_scope) if prop.initializer is not None else None
                instance[prop.name] = value

        init = klass.find_method("init")
        if init is not None:
            self._call_function(init, args, instance, location)
        return instance
