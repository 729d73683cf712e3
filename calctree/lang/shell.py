"""Handles interactive/command-line mode for calctree. Uses cmd as backend."""

import cmd


class Shell(cmd.Cmd):
    """Arithmetic expression tree shell."""
    intro = "Expression tree calculator :: Python backend\nType 'help' for more information."
    prompt = "> "

    def __init__(self, sess, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.sess = sess

    def default(self, line):
        """Runs an arbitrary statement."""
        with self.sess.error_handler:  # needed because cmd.Cmd automatically exits on Exception
            if not self.sess.is_blank(line):
                self.sess.add(line)

    def do_help(self, arg):
        """Doesnt return docs, but rather a short intro."""
        if arg:
            return self.default(self.lastcmd)  # a statement that starts with 'help', like 'help = 1'

        print("Welcome to the expression tree calculator!\n\n"
              "Type an arithmetic expression such as '1 + 4 * 3' to see how it is evaluated, one\n"
              "operator at a time. Supported operators are + - * / % ^ and unary minus; '#' starts\n"
              "a comment. Assign variables with 'a = 2 ^ 10' and use them in later expressions.\n\n"
              "Commands:\n"
              "  :state  list bound variables\n"
              "  :reset  unbind all variables\n"
              "  :debug  show the structure of the last expression\n"
              "  exit    leave (or Ctrl-D)")

    def emptyline(self):
        """Do not repeat previous command on empty line."""
        return ""

    def do_EOF(self, arg):
        """Exits the shell."""
        print()
        return True

    def do_exit(self, arg):
        """Exits the shell."""
        if arg:
            return self.default(self.lastcmd)
        return True
