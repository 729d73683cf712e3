"""Session control for calctree. Runs statements one at a time, either from the command line, a file or the interactive
shell, and keeps the variables bound so far.

A statement is parsed, evaluated against the current variables, checked for unbound variables and then drawn. An
assignment is only stored if its right-hand side has no unbound variables; the tree is drawn either way.
"""

from calctree.grammar.calc import ParseError, parse_equation
from calctree.lang.error import GenericException
from calctree.lang.highlighter import highlight
from calctree.lang.writer import format_number, write_expr_tree
from calctree.pure.evaluator import evaluate
from calctree.pure.expr import Assignment
from calctree.pure.unbound import unbound_variables


def _escape(text):
    """Escapes text for use inside a GenericException format string."""
    return text.replace("{", "{{").replace("}", "}}")


class Session:
    """Governs a calctree session: the variables bound so far and the last evaluated tree."""
    SH_FILE = "<in>"    # interactive shell source name
    ARG_FILE = "<arg>"  # one-shot command-line argument source name

    def __init__(self, error_handler, path=SH_FILE):
        self.error_handler = error_handler
        self.path = path  # used for error messages, and read by run_file

        self.variables = {}     # dict of name: Expr bound by assignments
        self.last_expr = None   # last evaluated statement, for :debug
        self.line_num = 0

        self.commands = {"state": self.state, "reset": self.reset, "debug": self.debug}

    @staticmethod
    def preprocess_line(line):
        """Removes the trailing newline and whitespace."""
        return line.rstrip()

    @staticmethod
    def is_blank(line):
        """Whether line has nothing but whitespace and comments."""
        return not line.split("#", 1)[0].strip()

    def add(self, line, line_num=None):
        """Runs a single statement and returns its expression tree (None for commands). Raises GenericException if the
        statement can't be parsed or names an unknown command.
        """
        line = Session.preprocess_line(line)
        self.line_num = self.line_num + 1 if line_num is None else line_num
        self.error_handler.register_line(self.path, line, self.line_num)  # in case error is raised

        try:
            statement = parse_equation(line).children[0]

            if statement.data == "command":
                self._run_command(statement, line)
                result = None
            else:
                result = self._run_statement(statement, line)

        except ParseError as e:
            msg = "parse failed: " + _escape(e.expectation)
            raise GenericException(msg, line, start=e.offset, end=e.offset + 1) from e

        self.error_handler.remove_line()  # error was not raised
        return result

    def _run_statement(self, statement, line):
        expr = evaluate(statement, self.variables)
        self.last_expr = expr

        unbound = sorted(unbound_variables(expr))
        target = expr.expr if isinstance(expr, Assignment) else expr

        if unbound:
            start, end = min((node.meta.start_pos, node.meta.end_pos) for node in statement.find_data("variable")
                             if str(node.children[0]) in unbound)
            names = ", ".join("'{}'" for __ in unbound)

            if isinstance(expr, Assignment):
                msg = "'{}' was not assigned, unbound variables: " + names
                self.error_handler.warn(msg, (line, expr.identifier, *unbound), start=start, end=end)
            else:
                self.error_handler.warn("unbound variables: " + names, (line, *unbound), start=start, end=end)

        write_expr_tree(target, color=self.error_handler.color)

        if isinstance(expr, Assignment) and not unbound:  # only once the statement has fully succeeded
            self.variables[expr.identifier] = expr.expr
        return expr

    def _run_command(self, statement, line):
        identifier = statement.children[0]
        name = str(identifier.children[0])

        if name not in self.commands:
            start, end = identifier.meta.start_pos, identifier.meta.end_pos
            raise GenericException("unknown command '{}'", (line, name), start=start, end=end)

        self.commands[name]()

    def state(self):
        """Prints every bound variable with its value."""
        for name, expr in self.variables.items():
            print(f"{name} = {format_number(float(expr))}")

    def reset(self):
        """Unbinds all variables."""
        self.variables.clear()

    def debug(self):
        """Prints the structure of the last evaluated statement."""
        if self.last_expr is None:
            self.error_handler.warn("nothing has been evaluated yet", diagnosis=False)
        else:
            print(self.last_expr.display())

    def run_file(self):
        """Runs every statement in the file at self.path, echoing each (highlighted) before its output."""
        try:
            with open(self.path, "r") as file:
                lines = file.readlines()
        except OSError:
            raise GenericException("'{}' could not be opened", ("", self.path), diagnosis=False)

        for line_num, line in enumerate(lines, 1):
            line = Session.preprocess_line(line)
            if Session.is_blank(line):
                continue

            print("> " + highlight(line, color=self.error_handler.color))
            with self.error_handler:
                self.add(line, line_num)
