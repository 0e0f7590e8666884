"""
Test suite for the Quill parser.

Tests cover:
- Operator precedence and associativity
- Declarations, control flow and import forms
- Postfix chains (calls, members, indexing)
- Syntax error reporting

Author: xwest
"""

import unittest
import sys
import os

# Add the project root to the Python path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
sys.path.insert(0, project_root)

from quill.parser import (
    parse_string, ParseError, walk,
    VariableDeclaration, FunctionDeclaration, ClassDeclaration, IfStatement,
    ForStatement, WhileStatement, ReturnStatement, TryStatement, ImportStatement,
    ExpressionStatement, Assignment, BinaryExpression, LogicalExpression,
    UnaryExpression, CallExpression, IndexExpression, MemberExpression,
    Identifier, Literal, ArrayLiteral, ObjectLiteral, UNDEFINED
)


class TestExpressions(unittest.TestCase):
    """Precedence climbing over the expression grammar."""

    def _expr(self, source: str):
        """Helper returning the expression of a single expression statement."""
        program = parse_string(source)
        self.assertEqual(len(program.body), 1)
        statement = program.body[0]
        self.assertIsInstance(statement, ExpressionStatement)
        return statement.expression

    def test_multiplication_binds_tighter(self):
        expr = self._expr("1 + 2 * 3")

        self.assertIsInstance(expr, BinaryExpression)
        self.assertEqual(expr.operator, "+")
        self.assertEqual(expr.left.value, 1.0)
        self.assertIsInstance(expr.right, BinaryExpression)
        self.assertEqual(expr.right.operator, "*")

    def test_subtraction_is_left_associative(self):
        expr = self._expr("10 - 4 - 3")

        self.assertEqual(expr.operator, "-")
        self.assertIsInstance(expr.left, BinaryExpression)
        self.assertEqual(expr.left.left.value, 10.0)
        self.assertEqual(expr.right.value, 3.0)

    def test_assignment_is_right_associative(self):
        expr = self._expr("a = b = 3")

        self.assertIsInstance(expr, Assignment)
        self.assertEqual(expr.target.name, "a")
        self.assertIsInstance(expr.value, Assignment)
        self.assertEqual(expr.value.target.name, "b")

    def test_compound_assignment_operator(self):
        expr = self._expr("total += 2")
        self.assertEqual(expr.operator, "+=")

    def test_unary_binds_tighter_than_multiplication(self):
        expr = self._expr("-x * 2")

        self.assertEqual(expr.operator, "*")
        self.assertIsInstance(expr.left, UnaryExpression)
        self.assertEqual(expr.left.operator, "-")

    def test_keyword_logical_operators_are_canonical(self):
        expr = self._expr("a or b and not c")

        self.assertIsInstance(expr, LogicalExpression)
        self.assertEqual(expr.operator, "||")
        self.assertEqual(expr.right.operator, "&&")
        self.assertIsInstance(expr.right.right, UnaryExpression)
        self.assertEqual(expr.right.right.operator, "!")

    def test_comparison_below_arithmetic(self):
        expr = self._expr("a + 1 < b * 2 == true")

        self.assertEqual(expr.operator, "==")
        self.assertEqual(expr.left.operator, "<")
        self.assertIs(expr.right.value, True)

    def test_grouping(self):
        expr = self._expr("(1 + 2) * 3")
        self.assertEqual(expr.operator, "*")
        self.assertEqual(expr.left.operator, "+")

    def test_postfix_chain(self):
        expr = self._expr("a.b[0](1)")

        self.assertIsInstance(expr, CallExpression)
        self.assertEqual(len(expr.arguments), 1)
        self.assertIsInstance(expr.callee, IndexExpression)
        self.assertIsInstance(expr.callee.object, MemberExpression)
        self.assertEqual(expr.callee.object.property, "b")

    def test_keyword_as_member_name(self):
        expr = self._expr("obj.from")
        self.assertEqual(expr.property, "from")

    def test_literals(self):
        expr = self._expr('[1, "two", null, undefined, false,]')

        self.assertIsInstance(expr, ArrayLiteral)
        values = [element.value for element in expr.elements]
        self.assertEqual(values, [1.0, "two", None, UNDEFINED, False])

    def test_object_literal_keeps_order(self):
        program = parse_string('let o = {b: 1, "a": 2, if: 3}')
        literal = program.body[0].initializer

        self.assertIsInstance(literal, ObjectLiteral)
        self.assertEqual([key for key, _ in literal.properties], ["b", "a", "if"])


class TestStatements(unittest.TestCase):
    """Statement forms."""

    def test_semicolons_are_optional(self):
        program = parse_string("let a = 1 let b = 2;; a + b")

        self.assertEqual(len(program.body), 3)
        self.assertIsInstance(program.body[0], VariableDeclaration)
        self.assertIsInstance(program.body[2], ExpressionStatement)

    def test_declaration_without_initializer(self):
        declaration = parse_string("var count").body[0]
        self.assertEqual(declaration.kind, "var")
        self.assertIsNone(declaration.initializer)

    def test_function_declaration(self):
        function = parse_string("def add(a, b) { return a + b }").body[0]

        self.assertIsInstance(function, FunctionDeclaration)
        self.assertEqual(function.name, "add")
        self.assertEqual(function.params, ["a", "b"])
        self.assertIsInstance(function.body[0], ReturnStatement)

    def test_bare_return_before_brace(self):
        function = parse_string("function f() { return }").body[0]
        self.assertIsNone(function.body[0].value)

    def test_class_declaration(self):
        source = """
        class Dog < Animal {
            let sound = "woof"
            def speak() { return self.sound }
        }
        """
        klass = parse_string(source).body[0]

        self.assertIsInstance(klass, ClassDeclaration)
        self.assertEqual(klass.superclass, "Animal")
        self.assertEqual([p.name for p in klass.properties], ["sound"])
        self.assertEqual([m.name for m in klass.methods], ["speak"])

    def test_if_elsif_else_chain(self):
        source = "if a { 1 } elsif b { 2 } else if c { 3 } else { 4 }"
        statement = parse_string(source).body[0]

        self.assertIsInstance(statement, IfStatement)
        self.assertEqual(len(statement.elsif_branches), 2)
        self.assertEqual(statement.elsif_branches[1][0].name, "c")
        self.assertEqual(len(statement.alternate), 1)

    def test_while_loop(self):
        statement = parse_string("while i < 3 { i += 1 }").body[0]
        self.assertIsInstance(statement, WhileStatement)
        self.assertEqual(statement.condition.operator, "<")

    def test_for_loop_with_step(self):
        statement = parse_string("for i = 0 to 10 step 2 { print(i) }").body[0]

        self.assertIsInstance(statement, ForStatement)
        self.assertEqual(statement.variable, "i")
        self.assertEqual(statement.step.value, 2.0)

    def test_step_is_an_ordinary_name_elsewhere(self):
        program = parse_string("let step = 2; for i = 1 to step { }")
        self.assertEqual(program.body[0].name, "step")
        self.assertIsNone(program.body[1].step)
        self.assertEqual(program.body[1].end.name, "step")

    def test_try_catch_finally(self):
        statement = parse_string("try { risky() } catch (e) { log(e) } finally { done() }").body[0]

        self.assertIsInstance(statement, TryStatement)
        self.assertEqual(statement.catch_param, "e")
        self.assertEqual(len(statement.handler), 1)
        self.assertEqual(len(statement.finalizer), 1)

    def test_catch_without_binding(self):
        statement = parse_string("try { risky() } catch { }").body[0]
        self.assertIsNone(statement.catch_param)
        self.assertEqual(statement.handler, [])

    def test_import_forms(self):
        program = parse_string(
            'import { a, b as c } from "./lib.ql"\n'
            'import * as utils from "utils"\n'
            'import main from "app"'
        )
        named, namespace, default = program.body

        self.assertIsInstance(named, ImportStatement)
        self.assertEqual(named.source, "./lib.ql")
        self.assertEqual([(s.imported, s.local) for s in named.specifiers], [("a", "a"), ("b", "c")])
        self.assertEqual(namespace.namespace, "utils")
        self.assertEqual(default.default, "main")

    def test_walk_visits_every_node(self):
        program = parse_string("let x = f(1, 2)")
        names = [type(node).__name__ for node in walk(program)]

        self.assertEqual(names, ["Program", "VariableDeclaration", "CallExpression",
                                 "Identifier", "Literal", "Literal"])


class TestParseErrors(unittest.TestCase):
    """Parsing stops at the first syntax error."""

    def test_missing_closing_brace(self):
        with self.assertRaises(ParseError) as ctx:
            parse_string("def f() { return 1")

        self.assertEqual(ctx.exception.diagnostic.code, "P002")
        self.assertIn("end of input", ctx.exception.message)

    def test_unexpected_token(self):
        with self.assertRaises(ParseError) as ctx:
            parse_string("let = 5")

        error = ctx.exception
        self.assertEqual(error.diagnostic.code, "P001")
        self.assertEqual(error.message, "Expected identifier, found '=' at line 1, column 5")
        self.assertEqual(error.token.lexeme, "=")
        self.assertEqual(error.diagnostic.help_text, "Expected variable name")
        self.assertIn("help: Expected variable name", str(error))

    def test_help_names_the_construct(self):
        with self.assertRaises(ParseError) as ctx:
            parse_string("def f(a { return a }")
        self.assertEqual(ctx.exception.diagnostic.help_text, "Expected ')' after parameters")

        with self.assertRaises(ParseError) as ctx:
            parse_string("let xs = [1, 2")
        self.assertEqual(ctx.exception.diagnostic.code, "P002")
        self.assertEqual(ctx.exception.diagnostic.help_text, "Expected ']' after array elements")

    def test_missing_expression(self):
        with self.assertRaises(ParseError) as ctx:
            parse_string("let x = ;")
        self.assertEqual(ctx.exception.diagnostic.code, "P003")

    def test_try_needs_handler_or_finalizer(self):
        with self.assertRaises(ParseError) as ctx:
            parse_string("try { x }")
        self.assertEqual(ctx.exception.diagnostic.code, "P004")

    def test_misspelled_keyword_suggestion(self):
        with self.assertRaises(ParseError) as ctx:
            parse_string("for i = 1 too 3 { }")
        self.assertIn("Did you mean 'to'?", ctx.exception.diagnostic.suggestions)

    def test_reserved_word_as_name(self):
        with self.assertRaises(ParseError) as ctx:
            parse_string("let while = 1")
        self.assertTrue(any("reserved word" in s for s in ctx.exception.diagnostic.suggestions))


if __name__ == '__main__':
    unittest.main()
