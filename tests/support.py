import os
import shutil
import tempfile
import unittest

from rush.shell import Shell
from rush.state import ShellState


class ShellTestCase(unittest.TestCase):
    """
    Base para las pruebas que ejecutan procesos reales. La salida estándar
    y de error de la shell van a ficheros dentro de un directorio temporal.
    """

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.out_path = os.path.join(self.temp_dir, ".stdout")
        self.err_path = os.path.join(self.temp_dir, ".stderr")
        self.out_fd = os.open(self.out_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC)
        self.err_fd = os.open(self.err_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC)

        env = dict(os.environ)
        env["HOME"] = self.temp_dir
        env.pop("OLDPWD", None)
        self.state = ShellState(
            env=env, cwd=self.temp_dir, stdout=self.out_fd, stderr=self.err_fd
        )
        self.shell = Shell(self.state)

    def tearDown(self):
        os.close(self.out_fd)
        os.close(self.err_fd)
        shutil.rmtree(self.temp_dir)

    def path(self, name):
        return os.path.join(self.temp_dir, name)

    def write_file(self, name, content):
        with open(self.path(name), "w") as f:
            f.write(content)
        return self.path(name)

    def read_file(self, name):
        with open(self.path(name)) as f:
            return f.read()

    def output(self):
        with open(self.out_path) as f:
            return f.read()

    def errors(self):
        with open(self.err_path) as f:
            return f.read()

    def run_line(self, line):
        return self.shell.run_line(line)
