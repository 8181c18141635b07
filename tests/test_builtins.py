import os
import unittest
from unittest import mock

from support import ShellTestCase

from rush.errors import RedirectionFailed, ShellExit


class TestCd(ShellTestCase):
    def test_cd_changes_shell_cwd(self):
        os.mkdir(self.path("sub"))
        status = self.run_line("cd sub")
        self.assertEqual(status, 0)
        self.assertEqual(self.state.cwd, self.path("sub"))
        self.assertEqual(self.state.env["PWD"], self.path("sub"))
        self.assertEqual(self.state.env["OLDPWD"], self.temp_dir)

    def test_cd_affects_later_commands(self):
        os.mkdir(self.path("sub"))
        self.write_file("sub/inside.txt", "inside\n")
        self.run_line("cd sub && cat inside.txt")
        self.assertEqual(self.output(), "inside\n")

    def test_cd_without_args_goes_home(self):
        os.mkdir(self.path("sub"))
        self.run_line("cd sub")
        self.run_line("cd")
        self.assertEqual(self.state.cwd, self.temp_dir)

    def test_cd_tilde(self):
        os.mkdir(self.path("sub"))
        self.run_line("cd ~/sub")
        self.assertEqual(self.state.cwd, self.path("sub"))

    def test_cd_dash(self):
        os.mkdir(self.path("sub"))
        self.run_line("cd sub")
        status = self.run_line("cd -")
        self.assertEqual(status, 0)
        self.assertEqual(self.state.cwd, self.temp_dir)
        self.assertEqual(self.output(), self.temp_dir + "\n")

    def test_cd_dash_without_oldpwd(self):
        self.assertEqual(self.run_line("cd -"), 1)
        self.assertIn("OLDPWD not set", self.errors())

    def test_cd_missing_directory(self):
        status = self.run_line("cd nowhere")
        self.assertEqual(status, 1)
        self.assertEqual(self.state.cwd, self.temp_dir)
        self.assertIn("cd: nowhere: No such file or directory", self.errors())

    def test_cd_into_file(self):
        self.write_file("plain.txt", "")
        self.assertEqual(self.run_line("cd plain.txt"), 1)
        self.assertIn("Not a directory", self.errors())

    def test_cd_too_many_arguments(self):
        self.assertEqual(self.run_line("cd a b"), 1)
        self.assertIn("too many arguments", self.errors())

    def test_cd_runs_in_process(self):
        os.mkdir(self.path("sub"))
        with mock.patch("rush.executer.subprocess.Popen") as popen:
            self.run_line("cd sub")
        popen.assert_not_called()


class TestExit(ShellTestCase):
    def test_exit_with_status(self):
        with self.assertRaises(ShellExit) as ctx:
            self.run_line("exit 3")
        self.assertEqual(ctx.exception.status, 3)

    def test_exit_uses_last_status(self):
        self.run_line("false")
        with self.assertRaises(ShellExit) as ctx:
            self.run_line("exit")
        self.assertEqual(ctx.exception.status, 1)

    def test_exit_status_wraps(self):
        with self.assertRaises(ShellExit) as ctx:
            self.run_line("exit 257")
        self.assertEqual(ctx.exception.status, 1)

    def test_exit_not_numeric(self):
        with self.assertRaises(ShellExit) as ctx:
            self.run_line("exit abc")
        self.assertEqual(ctx.exception.status, 2)
        self.assertIn("numeric argument required", self.errors())

    def test_exit_stops_the_line(self):
        with self.assertRaises(ShellExit):
            self.run_line("exit 0; echo never")
        self.assertEqual(self.output(), "")


class TestOtherBuiltins(ShellTestCase):
    def test_pwd(self):
        self.run_line("pwd")
        self.assertEqual(self.output(), self.temp_dir + "\n")

    def test_pwd_with_redirection(self):
        self.run_line("pwd > where.txt")
        self.assertEqual(self.read_file("where.txt"), self.temp_dir + "\n")
        self.assertEqual(self.output(), "")

    def test_builtin_redirection_failure(self):
        with self.assertRaises(RedirectionFailed):
            self.run_line("pwd > missing-dir/where.txt")
        self.assertEqual(self.state.last_status, 1)

    def test_export_and_expand(self):
        self.run_line("export GREETING=hola")
        self.assertEqual(self.state.env["GREETING"], "hola")
        self.run_line('echo "$GREETING mundo"')
        self.assertEqual(self.output(), "hola mundo\n")

    def test_exported_variable_reaches_children(self):
        self.run_line("export GREETING=hola; sh -c 'echo $GREETING'")
        self.assertEqual(self.output(), "hola\n")

    def test_export_invalid_name(self):
        self.assertEqual(self.run_line("export 1X=a"), 1)
        self.assertIn("not a valid identifier", self.errors())
        self.assertEqual(self.run_line("export ñu=a"), 1)
        self.assertNotIn("ñu", self.state.env)

    def test_export_lists_variables(self):
        self.state.env = {"B": "2", "A": "1"}
        self.run_line("export")
        self.assertEqual(self.output(), 'export A="1"\nexport B="2"\n')

    def test_unset(self):
        self.state.set("GONE", "x")
        self.assertEqual(self.run_line("unset GONE"), 0)
        self.assertNotIn("GONE", self.state.env)


if __name__ == "__main__":
    unittest.main()
