"""Value-annotated expression trees. Every node is immutable and owns its children; operation nodes compute and cache
their value when they are built, so a finished tree never needs to be re-evaluated.

Numbers follow IEEE-754 double semantics throughout. In particular, nothing in this module raises on division by
zero, overflow or a domain error: those produce infinities or NaN. NaN doubles as "depends on an unbound variable",
so any operation with a NaN operand is NaN.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
import math


class InternalInconsistency(Exception):
    """An invariant between the parser, evaluator and writer was broken. Never expected at runtime."""


def _divide(lhs, rhs):
    if rhs == 0:
        if lhs == 0 or math.isnan(lhs):
            return math.nan
        return math.copysign(math.inf, lhs) * math.copysign(1.0, rhs)
    return lhs / rhs


def _modulo(lhs, rhs):
    try:
        return math.fmod(lhs, rhs)
    except ValueError:  # zero divisor or infinite dividend
        return math.nan


def _is_odd_integer(num):
    return abs(math.fmod(num, 2.0)) == 1.0


def _power(lhs, rhs):
    try:
        return math.pow(lhs, rhs)
    except OverflowError:
        return -math.inf if lhs < 0 and _is_odd_integer(rhs) else math.inf
    except ValueError:
        if lhs == 0:  # zero to a negative power
            return math.copysign(math.inf, lhs) if _is_odd_integer(rhs) else math.inf
        return math.nan  # negative base, fractional exponent


class BinaryOperator(Enum):
    """Infix operators. Values are the display symbols."""
    ADD = "+"
    SUBTRACT = "-"
    MULTIPLY = "*"
    DIVIDE = "/"
    MODULO = "%"
    POWER = "^"

    def apply(self, lhs, rhs):
        """Returns lhs <op> rhs as a float."""
        if math.isnan(lhs) or math.isnan(rhs):
            return math.nan  # pow(nan, 0) would otherwise be 1
        return _OPERATIONS[self](lhs, rhs)

    def __str__(self):
        return self.value


_OPERATIONS = {
    BinaryOperator.ADD: lambda lhs, rhs: lhs + rhs,
    BinaryOperator.SUBTRACT: lambda lhs, rhs: lhs - rhs,
    BinaryOperator.MULTIPLY: lambda lhs, rhs: lhs * rhs,
    BinaryOperator.DIVIDE: _divide,
    BinaryOperator.MODULO: _modulo,
    BinaryOperator.POWER: _power,
}


class UnaryOperator(Enum):
    """Prefix operators. Values are the display symbols."""
    MINUS = "-"

    def apply(self, operand):
        return -operand

    def __str__(self):
        return self.value


class Expr(ABC):
    """Superclass of all expression tree nodes."""

    @abstractmethod
    def __float__(self):
        """Numeric value of this node."""

    @property
    def nodes(self):
        """Child nodes, left to right."""
        return ()

    def _attrs(self):
        return {}

    def display(self, indents=0):
        """Recursively displays the tree in a readable format.

        Format:
        <Expr>(<attr>=<value>, ..., nodes=[
            <Expr>(<attr>=<value>, ...)
        ])
        """
        attrs = ", ".join(f"{key}={value!r}" for key, value in self._attrs().items())
        result = f"{'    ' * indents}{type(self).__name__}({attrs}"
        if self.nodes:
            result += ", nodes=["
            for node in self.nodes:
                result += "\n" + node.display(indents + 1) + ","
            result = result[:-1] + f"\n{'    ' * indents}]"
        return result + ")"


@dataclass(frozen=True)
class Binding:
    """The variable a literal was read from, and the expression that variable was bound to."""
    name: str
    expr: Expr


@dataclass(frozen=True)
class Integer(Expr):
    value: int
    variable: Binding = None

    def __float__(self):
        return float(self.value)

    def _attrs(self):
        attrs = {"value": self.value}
        if self.variable:
            attrs["variable"] = self.variable.name
        return attrs


@dataclass(frozen=True)
class Float(Expr):
    value: float
    variable: Binding = None

    def __float__(self):
        return self.value

    def _attrs(self):
        attrs = {"value": self.value}
        if self.variable:
            attrs["variable"] = self.variable.name
        return attrs


@dataclass(frozen=True)
class UnboundVariable(Expr):
    """A variable with no binding in the environment it was evaluated in."""
    name: str

    def __float__(self):
        return math.nan

    def _attrs(self):
        return {"name": self.name}


@dataclass(frozen=True)
class BinaryOperation(Expr):
    lhs: Expr
    op: BinaryOperator
    rhs: Expr
    value: float

    @classmethod
    def evaluate(cls, lhs, op, rhs):
        """Builds the operation node with its value computed from lhs and rhs."""
        return cls(lhs, op, rhs, op.apply(float(lhs), float(rhs)))

    def __float__(self):
        return self.value

    @property
    def nodes(self):
        return (self.lhs, self.rhs)

    def _attrs(self):
        return {"op": str(self.op), "value": self.value}


@dataclass(frozen=True)
class UnaryOperation(Expr):
    op: UnaryOperator
    expr: Expr
    value: float

    @classmethod
    def evaluate(cls, op, expr):
        return cls(op, expr, op.apply(float(expr)))

    def __float__(self):
        return self.value

    @property
    def nodes(self):
        return (self.expr,)

    def _attrs(self):
        return {"op": str(self.op), "value": self.value}


@dataclass(frozen=True)
class Assignment(Expr):
    """Statement-level wrapper for `identifier = expr`. Not a value itself."""
    identifier: str
    expr: Expr

    def __float__(self):
        raise InternalInconsistency(f"assignment to '{self.identifier}' has no numeric value")

    @property
    def nodes(self):
        return (self.expr,)

    def _attrs(self):
        return {"identifier": self.identifier}
