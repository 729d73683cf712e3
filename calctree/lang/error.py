"""Error handling for calctree sessions. Only GenericExceptions should be encountered during running: if another type of
error is raised and makes it all the way to ErrorHandler, it is assumed to be an internal issue.
"""

import sys

from termcolor import colored


class GenericException(Exception):
    """Templates an error/warning message about a statement. msg is a format string whose placeholders are filled with
    exprs[1:]; exprs[0] is the offending statement, and start/end delimit the offending part of it.
    """

    def __init__(self, msg, exprs=None, start=0, end=-1, diagnosis=True, internal=False):
        if exprs is None:
            exprs = ""
        if isinstance(exprs, str):
            exprs = [exprs]

        super().__init__(msg.format(*exprs[1:]))
        self.msg = msg
        self.exprs = exprs
        self.expr = exprs[0]  # exprs[0] should be the offending expr that caused the error
        self.end = end if end != -1 else len(self.expr)  # needed for error display

        self.start = start
        self.diagnosis = diagnosis
        self.internal = internal


class ErrorHandler:
    """Context manager that reports GenericExceptions as calctree errors and marks anything else as internal."""
    ERROR = "red"
    WARNING = "magenta"

    def __init__(self, fatal=True, color=True):
        self.fatal = fatal
        self.color = color
        self.location = None  # (source, line, line_num) of the statement being run

    def register_line(self, source, line, line_num):
        """Registers the statement about to be run, so errors can point at it."""
        self.location = (source, line, line_num)

    def remove_line(self):
        """Forgets the registered statement. Should be called after it ran successfully."""
        self.location = None

    def _colored(self, text, color=None, attrs=None):
        return colored(text, color, attrs=attrs, no_color=not self.color)

    def format(self, error):
        """Returns error.msg with its placeholders filled in (and bolded)."""
        return error.msg.format(*(self._colored(expr, attrs=["bold"]) for expr in error.exprs[1:]))

    def diagnose(self, error, warning=False):
        """Returns offending part of error.expr highlighted, with a caret underneath."""
        color = ErrorHandler.WARNING if warning else ErrorHandler.ERROR

        diagnosis = "  " + error.expr[:error.start]

        end = max(min(error.end, len(error.expr) + 1), error.start + 1)  # one past the line for end of input
        diagnosis += self._colored(error.expr[error.start:end], color, attrs=["bold"])
        diagnosis += error.expr[end:] + "\n"

        diagnosis += "  " + " " * error.start
        diagnosis += self._colored("^" + "~" * (end - error.start - 1), color, attrs=["bold"])

        return diagnosis

    def _header(self, error):
        """Returns '<source>:<line_num>:<col>: ' for the registered statement, if any."""
        if self.location is None:
            return ""
        source, __, line_num = self.location
        return self._colored(f"{source}:{line_num}:{error.start + 1}: ", attrs=["bold"])

    def warn(self, *args, **kwargs):
        """Generates and prints warning message based on args."""
        error = GenericException(*args, **kwargs)

        print(self._header(error) + self._colored("warning: ", ErrorHandler.WARNING, attrs=["bold"]) + self.format(error))

        if not error.internal and error.expr and error.diagnosis:
            print(self.diagnose(error, warning=True))

    def throw(self, error):
        """Prints error, a GenericException, against the registered statement. Exits if fatal."""
        error_msg = self._header(error)

        if error.internal:
            error_msg += self._colored("[internal] ", ErrorHandler.ERROR, attrs=["bold"])

        error_msg += self._colored("error: ", ErrorHandler.ERROR, attrs=["bold"]) + self.format(error)
        print(error_msg)

        if not error.internal and error.expr and error.diagnosis:
            print(self.diagnose(error))

        if self.fatal:
            sys.exit(1)
        self.location = None  # if error occurred, reset location (no need if error is fatal)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        do_exit = False
        if exc_type is KeyboardInterrupt:
            self.throw(GenericException("keyboard interrupt", diagnosis=False))
        elif exc_type is SystemExit:
            do_exit = True
        elif exc_type is not None and issubclass(exc_type, GenericException):
            self.throw(exc_val)
        elif exc_type is not None:
            self.throw(GenericException("unknown error: '{}'", ("", f"{exc_type.__name__}: {exc_val}"), internal=True))
            do_exit = True

        return not do_exit
