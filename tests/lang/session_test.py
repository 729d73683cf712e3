import contextlib
import io
import os
import tempfile
import unittest

from calctree.lang.error import ErrorHandler, GenericException
from calctree.lang.session import Session
from calctree.lang.shell import Shell
from calctree.pure.expr import Assignment, BinaryOperation, Integer, InternalInconsistency


class SessionTestCase(unittest.TestCase):

    def setUp(self):
        self.error_handler = ErrorHandler(fatal=False, color=False)
        self.sess = Session(self.error_handler)

    def run_line(self, line):
        output = io.StringIO()
        with contextlib.redirect_stdout(output):
            self.sess.add(line)
        return output.getvalue()

    def test_expression(self):
        self.assertEqual("13.0 = +\n       ├─ 1\n       └─ 12.0 = *\n                 ├─ 4\n                 └─ 3\n",
                         self.run_line("1 + 4 * 3"))
        self.assertEqual({}, self.sess.variables)
        self.assertIsInstance(self.sess.last_expr, BinaryOperation)

    def test_assignment(self):
        self.assertEqual("10\n", self.run_line("a = 10"))
        self.assertEqual(Integer(10), self.sess.variables["a"])

        self.assertEqual("20.0 = *\n       ├─ 10.0 (a)\n       └─ 2\n", self.run_line("b = a * 2"))
        self.assertEqual(20.0, float(self.sess.variables["b"]))
        self.assertIsInstance(self.sess.last_expr, Assignment)

        self.run_line("a = a + 1")
        self.assertEqual(11.0, float(self.sess.variables["a"]))
        self.assertEqual(20.0, float(self.sess.variables["b"]))

    def test_unbound_assignment(self):
        output = self.run_line("x = y + 1")
        self.assertNotIn("x", self.sess.variables)
        self.assertIn("<in>:1:5: warning: 'x' was not assigned, unbound variables: 'y'\n"
                      "  x = y + 1\n"
                      "      ^\n", output)
        self.assertIn("??? = +\n      ├─ y <- unbound variable\n      └─ 1\n", output)

        self.run_line("x = 1")
        output = self.run_line("x = x + q * p")
        self.assertIn("unbound variables: 'p', 'q'", output)
        self.assertIn("  x = x + q * p\n          ^\n", output)
        self.assertEqual(Integer(1), self.sess.variables["x"])

    def test_unbound_expression(self):
        output = self.run_line("y * 2")
        self.assertIn("warning: unbound variables: 'y'", output)
        self.assertNotIn("was not assigned", output)
        self.assertEqual({}, self.sess.variables)

    def test_commands(self):
        self.run_line("a = 10")
        self.run_line("b = a * 2")
        self.assertEqual("a = 10.0\nb = 20.0\n", self.run_line(":state"))

        self.assertEqual("", self.run_line(":reset"))
        self.assertEqual({}, self.sess.variables)
        self.assertEqual("", self.run_line(": state  # nothing bound"))

        self.run_line("1 + 2")
        self.assertEqual("BinaryOperation(op='+', value=3.0, nodes=[\n"
                         "    Integer(value=1),\n"
                         "    Integer(value=2)\n"
                         "])\n", self.run_line(":debug"))

    def test_debug_before_evaluation(self):
        self.assertIn("warning: nothing has been evaluated yet", self.run_line(":debug"))

    def test_errors(self):
        should_fail = {
            ":foo": (1, 4),
            "1 +": (3, 4),
            "1 + * 2": (4, 5),
            "a = 2147483648": (4, 5),
            "(": (1, 2),
        }
        for case, (start, end) in should_fail.items():
            with self.assertRaises(GenericException, msg=case) as context:
                self.run_line(case)
            self.assertEqual((start, end), (context.exception.start, context.exception.end), case)
            self.assertEqual(case, context.exception.expr, case)

        self.assertEqual({}, self.sess.variables)

    def test_error_message(self):
        with self.assertRaises(GenericException) as context:
            self.run_line("1 +")
        self.assertTrue(str(context.exception).startswith("parse failed: unexpected end of input, expected one of"))

        with self.assertRaises(GenericException) as context:
            self.run_line(":help")
        self.assertEqual("unknown command 'help'", str(context.exception))

    def test_handled_error(self):
        output = io.StringIO()
        with contextlib.redirect_stdout(output):
            with self.error_handler:
                self.sess.add("1 + * 2")
            with self.error_handler:
                self.sess.add("2 * 3")
        self.assertTrue(output.getvalue().startswith("<in>:1:5: error: parse failed: unexpected '*'"))
        self.assertIn("  1 + * 2\n      ^\n", output.getvalue())
        self.assertTrue(output.getvalue().endswith("6.0 = *\n      ├─ 2\n      └─ 3\n"))
        self.assertIsNone(self.error_handler.location)

    def test_internal_error(self):
        output = io.StringIO()
        with contextlib.redirect_stdout(output):
            with self.assertRaises(InternalInconsistency):
                with self.error_handler:
                    self.sess.add("2 * -(3)")
        self.assertIn("[internal] error: unknown error: 'InternalInconsistency:", output.getvalue())

    def test_failed_assignment_is_not_stored(self):
        with contextlib.redirect_stdout(io.StringIO()):
            with self.assertRaises(InternalInconsistency):
                with self.error_handler:
                    self.sess.add("x = -(1 + 2)")
        self.assertNotIn("x", self.sess.variables)

    def test_is_blank(self):
        self.assertTrue(Session.is_blank(""))
        self.assertTrue(Session.is_blank("   # just a comment"))
        self.assertFalse(Session.is_blank("1 # one"))


class RunFileTestCase(unittest.TestCase):

    def setUp(self):
        fd, self.path = tempfile.mkstemp(suffix=".calc")
        with os.fdopen(fd, "w") as file:
            file.write("a = 2\n"
                       "\n"
                       "# powers of two\n"
                       "b = a ^ 10\n"
                       "1 +\n"
                       "b / 0\n")

    def tearDown(self):
        os.remove(self.path)

    def test_run_file(self):
        sess = Session(ErrorHandler(fatal=False, color=False), self.path)
        output = io.StringIO()
        with contextlib.redirect_stdout(output):
            sess.run_file()

        lines = output.getvalue().splitlines()
        self.assertEqual(["> a = 2", "2", "> b = a ^ 10", "1024.0 = ^", "         ├─ 2.0 (a)", "         └─ 10",
                          "> 1 +"], lines[:7])
        self.assertTrue(lines[7].startswith(f"{self.path}:5:4: error: parse failed"))
        self.assertEqual(["> b / 0", "inf = /", "      ├─ 1024.0 (b)", "      └─ 0"], lines[-4:])
        self.assertEqual({"a", "b"}, set(sess.variables))

    def test_fatal(self):
        sess = Session(ErrorHandler(color=False), self.path)
        with contextlib.redirect_stdout(io.StringIO()):
            with self.assertRaises(SystemExit):
                sess.run_file()
        self.assertEqual(1024.0, float(sess.variables["b"]))

    def test_missing_file(self):
        sess = Session(ErrorHandler(fatal=False, color=False), self.path + ".missing")
        with self.assertRaises(GenericException) as context:
            sess.run_file()
        self.assertIn("could not be opened", str(context.exception))


class ShellTestCase(unittest.TestCase):

    def setUp(self):
        self.shell = Shell(Session(ErrorHandler(fatal=False, color=False)))

    def run_cmd(self, line):
        output = io.StringIO()
        with contextlib.redirect_stdout(output):
            stop = self.shell.onecmd(line)
        return stop, output.getvalue()

    def test_statements(self):
        self.assertEqual((None, "5\n"), self.run_cmd("a = 5"))
        self.assertEqual((None, "6.0 = +\n      ├─ 5.0 (a)\n      └─ 1\n"), self.run_cmd("a + 1"))
        self.assertEqual((None, "a = 5.0\n"), self.run_cmd(":state"))
        self.assertEqual((None, ""), self.run_cmd("   # comment"))

    def test_errors_do_not_stop(self):
        stop, output = self.run_cmd("1 +")
        self.assertFalse(stop)
        self.assertIn("error: parse failed", output)

    def test_help_and_exit(self):
        stop, output = self.run_cmd("help")
        self.assertIn(":state", output)

        self.assertEqual((None, "3\n"), self.run_cmd("help = 3"))
        self.assertEqual((None, "4\n"), self.run_cmd("exit = 4"))
        self.assertEqual({"help", "exit"}, set(self.shell.sess.variables))

        stop, __ = self.run_cmd("exit")
        self.assertTrue(stop)
        stop, __ = self.run_cmd("EOF")
        self.assertTrue(stop)


if __name__ == '__main__':
    unittest.main()
