"""Arithmetic statement grammar and parser. Produces lark parse trees whose nodes are named after the grammar rules and
carry start/end positions (used for error carets and highlighting).

Formally, a statement can be defined as

```
<equation>   ::= <assignment> | <command> | <expr>   ; whole line must match
<assignment> ::= <identifier> "=" <expr>
<command>    ::= ":" <identifier>                    ; :state, :reset, :debug
<expr>       ::= <term> (("+" | "-") <term>)*
<term>       ::= <factor> (("*" | "/" | "%") <factor>)*
<factor>     ::= <power>
<power>      ::= <unary> ("^" <power>)?              ; right-associative
<unary>      ::= "-"? <atom>
<atom>       ::= <integer> | <float> | <variable> | "(" <expr> ")"
```

Whitespace and `#` comments may appear between any two tokens. A leading "-" is lexed as part of a number literal
wherever an operand is expected (`1 * -2`), and as an operator everywhere else (`1 -2`).
"""

from collections import namedtuple
import re

from lark import Lark
from lark.exceptions import UnexpectedCharacters, UnexpectedInput, UnexpectedToken


GRAMMAR = r"""
    equation: assignment | command | expr
    partial_term: term

    assignment: identifier "=" expr
    command: ":" identifier

    expr: term ((add | subtract) term)*
    term: factor ((multiply | divide | modulo) factor)*
    factor: power
    power: unary (exponent power)?
    unary: unary_minus? atom
    atom: integer | float | variable | "(" expr ")"

    add: "+"
    subtract: "-"
    multiply: "*"
    divide: "/"
    modulo: "%"
    exponent: "^"
    unary_minus: "-"

    integer: INTEGER
    float: FLOAT
    variable: NAME
    identifier: NAME

    INTEGER: /-?[0-9]+/
    FLOAT.2: /-?(?:[0-9]+\.[0-9]*(?:[eE][+-]?[0-9]+)?|[0-9]+[eE][+-]?[0-9]+)/ | "???"
    NAME: /[A-Za-z][A-Za-z0-9_]*/

    COMMENT: /#[^\n]*/
    WHITESPACE: /\s+/

    %ignore WHITESPACE
    %ignore COMMENT
"""

NAN_LITERAL = "???"

_parser = Lark(GRAMMAR, start=["equation", "partial_term"], parser="lalr", propagate_positions=True)

# readable names for the named terminals (anonymous ones are shown as their literal text)
_TERMINAL_NAMES = {"INTEGER": "integer", "FLOAT": "float", "NAME": "identifier", "$END": "end of input"}

Span = namedtuple("Span", ["start", "end", "category"])

CATEGORIES = {
    "integer": "number",
    "float": "number",
    "add": "operator",
    "subtract": "operator",
    "multiply": "operator",
    "divide": "operator",
    "modulo": "operator",
    "exponent": "operator",
    "unary_minus": "operator",
    "identifier": "identifier",
    "variable": "variable",
}

_SKIPPED = re.compile(r"(?P<whitespace>\s+)|(?P<comment>#[^\n]*)")


class ParseError(Exception):
    """Raised when a statement does not match the grammar. offset is the position of the first character that could
    not be parsed, expectation is a readable description of what was expected there.
    """

    def __init__(self, offset, expectation):
        super().__init__(f"{expectation} (at offset {offset})")
        self.offset = offset
        self.expectation = expectation


def _describe(name):
    if name in _TERMINAL_NAMES:
        return _TERMINAL_NAMES[name]
    return repr(_parser.get_terminal(name).pattern.value)


def _expected(names):
    described = sorted({_describe(name) for name in names if name not in _parser.ignore_tokens})
    if not described:
        return ""
    return ", expected " + (described[0] if len(described) == 1 else "one of " + ", ".join(described))


def _to_parse_error(error, text):
    """Converts a lark UnexpectedInput into a ParseError."""
    if isinstance(error, UnexpectedCharacters):
        offset = error.pos_in_stream
        return ParseError(offset, f"unexpected character {text[offset]!r}" + _expected(error.allowed or ()))

    if isinstance(error, UnexpectedToken) and error.token.type != "$END":
        return ParseError(error.token.start_pos, f"unexpected {error.token.value!r}" + _expected(error.expected))

    expected = getattr(error, "expected", ())
    return ParseError(len(text), "unexpected end of input" + _expected(name for name in expected if name != "$END"))


def parse_equation(text):
    """Parses a complete statement (assignment, command or expression). Raises ParseError if text is malformed."""
    try:
        return _parser.parse(text, start="equation")
    except UnexpectedInput as e:
        raise _to_parse_error(e, text) from e


def parse_partial_term(text):
    """Parses the longest prefix of text that is a complete term, ignoring whatever follows it. Used for highlighting
    lines that are still being typed. Raises ParseError if no prefix of text is a term.

    The interactive parser only finds where the longest term ends; the prefix is then parsed again on its own, since
    trees finished on a copied interactive parser lack end positions.
    """
    interactive = _parser.parse_interactive(text, start="partial_term")
    end, last, error = None, None, None

    def complete():
        """Whether the tokens fed so far form a term."""
        try:
            interactive.copy().feed_eof()
        except UnexpectedInput:
            return False
        return True

    try:
        for token in interactive.iter_parse():  # each token is fed on the following iteration
            if last is not None and complete():
                end = last.end_pos
            last = token
        if last is not None and complete():
            end = last.end_pos
    except UnexpectedInput as e:
        error = e
        # last was fed unless the parser itself rejected it
        if last is not None and getattr(e, "token", None) is not last and complete():
            end = last.end_pos

    if end is not None:
        return _parser.parse(text[:end], start="partial_term")
    if error is None:
        raise ParseError(len(text), "unexpected end of input, expected a term")
    raise _to_parse_error(error, text) from error


def highlight_spans(text, cursor_pos=0):
    """Returns sorted Spans (start, end, category) for the leaf tokens of the longest term prefix of text, plus the
    whitespace and comments around them. If text does not start with a term, the whole line is one "error" span.
    cursor_pos is accepted for line editors that pass it, but does not change the result.
    """
    try:
        tree = parse_partial_term(text)
    except ParseError:
        return [Span(0, len(text), "error")]

    spans = [Span(node.meta.start_pos, node.meta.end_pos, CATEGORIES[node.data])
             for node in tree.iter_subtrees_topdown() if node.data in CATEGORIES and not node.meta.empty]
    spans.sort()

    gaps, pos = [], 0
    for span in spans:
        gaps.append((pos, span.start))
        pos = span.end
    gaps.append((pos, len(text)))

    for start, end in gaps:
        for match in _SKIPPED.finditer(text, start, end):
            spans.append(Span(match.start(), match.end(), match.lastgroup))

    return sorted(spans)
