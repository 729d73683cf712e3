"""Command-line entry point: evaluates a single statement, a file of statements, or starts the interactive shell. Also
uses the error handling context manager. Called from the calctree executable script.
"""

import argparse

from calctree.lang.error import ErrorHandler
from calctree.lang.session import Session
from calctree.lang.shell import Shell


def main(argv=None):
    """Runs calctree. Called from the calctree executable script."""
    with ErrorHandler() as error_handler:
        parser = argparse.ArgumentParser(prog="calctree", description="Evaluate arithmetic and draw the evaluation tree.")
        parser.add_argument("expression", help="statement to evaluate (if empty, goes to command-line mode)", nargs="?")
        parser.add_argument("-f", "--file", help="file of statements to evaluate, one per line")
        parser.add_argument("--no-color", help="disable colored output", action="store_true")
        args = parser.parse_args(argv)

        error_handler.color = not args.no_color

        if args.expression is not None:
            Session(error_handler, Session.ARG_FILE).add(args.expression)

        elif args.file is not None:
            Session(error_handler, args.file).run_file()

        else:
            error_handler.fatal = False
            Shell(Session(error_handler, Session.SH_FILE)).cmdloop()


if __name__ == "__main__":
    main()
