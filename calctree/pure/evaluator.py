"""Builds expression trees from parse trees by precedence climbing.

The parse tree is first flattened into a stream of primaries (literals, variables and parenthesized groups), prefix
operators and infix operators; the stream is then folded into a tree using the binding powers below. Parenthesized
groups are evaluated recursively as single primaries.

Binding powers (higher binds tighter):
    + -      10  left
    * / %    20  left
    ^        30  right
    - (pre)  40

Assignment binds looser than all of them, but it only ever appears at the top of a statement, so it is handled there
rather than in the stream.
"""

import math

from calctree.grammar.calc import NAN_LITERAL, ParseError
from calctree.pure.expr import (Assignment, BinaryOperation, BinaryOperator, Binding, Float, Integer,
                                InternalInconsistency, UnaryOperation, UnaryOperator, UnboundVariable)


LEFT, RIGHT = "left", "right"

INFIX = {
    "add": BinaryOperator.ADD,
    "subtract": BinaryOperator.SUBTRACT,
    "multiply": BinaryOperator.MULTIPLY,
    "divide": BinaryOperator.DIVIDE,
    "modulo": BinaryOperator.MODULO,
    "exponent": BinaryOperator.POWER,
}
PREFIX = {"unary_minus": UnaryOperator.MINUS}

BINDING_POWERS = {
    BinaryOperator.ADD: (10, LEFT),
    BinaryOperator.SUBTRACT: (10, LEFT),
    BinaryOperator.MULTIPLY: (20, LEFT),
    BinaryOperator.DIVIDE: (20, LEFT),
    BinaryOperator.MODULO: (20, LEFT),
    BinaryOperator.POWER: (30, RIGHT),
}
PREFIX_POWER = 40

INT_MIN, INT_MAX = -2 ** 31, 2 ** 31 - 1

PRIMARY, PREFIX_OP, INFIX_OP = "primary", "prefix", "infix"


class PrecedenceEvaluator:
    """Evaluates one expression parse tree against a snapshot of variable bindings. Does not modify variables."""

    def __init__(self, tree, variables):
        self.variables = variables
        self.stream = []
        self.pos = 0

        self._flatten(tree)

    def _flatten(self, tree):
        """Appends (kind, value) items for tree to self.stream, in source order."""
        for child in tree.children:
            if child.data in INFIX:
                self.stream.append((INFIX_OP, INFIX[child.data]))
            elif child.data in PREFIX:
                self.stream.append((PREFIX_OP, PREFIX[child.data]))
            elif child.data == "atom":
                self.stream.append((PRIMARY, child.children[0]))
            else:  # term, factor, power, unary
                self._flatten(child)

    def _peek(self):
        return self.stream[self.pos] if self.pos < len(self.stream) else (None, None)

    def _next(self):
        item = self._peek()
        self.pos += 1
        return item

    def evaluate(self):
        """Folds the whole stream into a single expression tree."""
        expr = self._climb(0)
        if self.pos != len(self.stream):
            raise InternalInconsistency(f"operator stream not fully consumed: {self.stream[self.pos:]}")
        return expr

    def _climb(self, min_power):
        kind, value = self._next()
        if kind == PREFIX_OP:
            lhs = UnaryOperation.evaluate(value, self._climb(PREFIX_POWER))
        elif kind == PRIMARY:
            lhs = self.primary(value)
        else:
            raise InternalInconsistency(f"expected operand, found {kind} {value}")

        while True:
            kind, op = self._peek()
            if kind != INFIX_OP:
                break

            power, assoc = BINDING_POWERS[op]
            if power < min_power:
                break

            self._next()
            rhs = self._climb(power + 1 if assoc == LEFT else power)
            lhs = BinaryOperation.evaluate(lhs, op, rhs)

        return lhs

    def primary(self, tree):
        """Converts an integer, float, variable or parenthesized expr parse tree to an expression tree."""
        if tree.data == "expr":
            return PrecedenceEvaluator(tree, self.variables).evaluate()

        token = tree.children[0]

        if tree.data == "integer":
            value = int(token)
            if not INT_MIN <= value <= INT_MAX:
                raise ParseError(token.start_pos, f"integer literal {token.value} is out of 32-bit range")
            return Integer(value)

        if tree.data == "float":
            return Float(math.nan if token.value == NAN_LITERAL else float(token))

        if tree.data == "variable":
            name = str(token)
            if name in self.variables:
                bound = self.variables[name]
                return Float(float(bound), variable=Binding(name, bound))
            return UnboundVariable(name)

        raise InternalInconsistency(f"expected primary, found '{tree.data}'")


def evaluate(tree, variables):
    """Evaluates an equation, assignment or expression parse tree into an expression tree. Assignments evaluate to an
    Assignment wrapping their right-hand side; storing it in variables is up to the caller.
    """
    if tree.data == "equation":
        tree = tree.children[0]

    if tree.data == "assignment":
        identifier, expr = tree.children
        return Assignment(str(identifier.children[0]), evaluate(expr, variables))

    if tree.data == "command":
        raise InternalInconsistency("commands cannot be evaluated")

    return PrecedenceEvaluator(tree, variables).evaluate()
