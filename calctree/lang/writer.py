"""Writes expression trees as box-drawing diagrams, one line per node, e.g. for `1 + 4 * 3`:

```
13.0 = +
       ├─ 1
       └─ 12.0 = *
                 ├─ 4
                 └─ 3
```

Each line is prefixed by one column per ancestor. A binary operation adds a column as wide as its own text (plus one),
so its children's connectors line up under it. The column's state says what to draw on the current line: a branch
for the lhs, a corner for the rhs, a pipe while an earlier lhs still has lines to come, or nothing once it's closed.
"""

from collections import namedtuple
from enum import Enum
import math

from termcolor import colored

from calctree.grammar.calc import NAN_LITERAL
from calctree.pure.expr import BinaryOperation, Float, Integer, InternalInconsistency, UnboundVariable


class ColumnState(Enum):
    """Values are the glyphs drawn for each state."""
    EMPTY = ""
    START = "├─"
    OPEN = "│ "
    END = "└─"


Column = namedtuple("Column", ["width", "state"])

# state of an ancestor's column once its node's children are being drawn
_CONTINUATION = {
    ColumnState.EMPTY: ColumnState.EMPTY,
    ColumnState.START: ColumnState.OPEN,
    ColumnState.OPEN: ColumnState.OPEN,
    ColumnState.END: ColumnState.EMPTY,
}

VALUE = "blue"
VARIABLE = "magenta"
UNBOUND = "red"
RESULT = "cyan"
OPERATOR = "white"


def format_number(value):
    """Formats value so that it parses back to the same number. NaN is shown as ???."""
    if isinstance(value, int):
        return str(value)
    if math.isnan(value):
        return NAN_LITERAL
    return repr(value)


def _leaf(expr, text):
    segments = [(text, VALUE)]
    if expr.variable is not None:
        segments.append((f" ({expr.variable.name})", VARIABLE))
    return segments


def iter_expr_tree(expr, columns=()):
    """Yields (columns, segments) for every line of expr's diagram in pre-order. segments is a list of (text, color)
    pairs making up the node's own text.
    """
    if isinstance(expr, Integer):
        yield columns, _leaf(expr, format_number(expr.value))

    elif isinstance(expr, Float):
        yield columns, _leaf(expr, format_number(expr.value))

    elif isinstance(expr, UnboundVariable):
        yield columns, [(f"{expr.name} <- unbound variable", UNBOUND)]

    elif isinstance(expr, BinaryOperation):
        segments = [(format_number(expr.value), RESULT), (f" = {expr.op}", OPERATOR)]
        yield columns, segments

        width = sum(len(text) for text, __ in segments) + 1
        continued = tuple(Column(column.width, _CONTINUATION[column.state]) for column in columns)

        yield from iter_expr_tree(expr.lhs, continued + (Column(width, ColumnState.START),))
        yield from iter_expr_tree(expr.rhs, continued + (Column(width, ColumnState.END),))

    else:
        raise InternalInconsistency(f"unexpected {type(expr).__name__} in reduced expression tree")


def format_line(columns, segments, color=True):
    """Returns the text of one diagram line."""
    prefix = "".join(f"{column.state.value:>{column.width}} " for column in columns)
    return prefix + "".join(colored(text, col, no_color=not color) for text, col in segments)


def write_expr_tree(expr, color=True):
    """Prints the diagram for expr, a tree containing only literals, unbound variables and binary operations."""
    lines = [format_line(columns, segments, color) for columns, segments in iter_expr_tree(expr)]
    print("\n".join(lines))
