import os
from typing import Callable, Dict, List, Mapping, Optional, Sequence

from rush.ast_tree import Redirection
from rush.builtins import BUILTINS

Builtin = Callable[[Sequence[str], Sequence[Redirection], "ShellState"], int]


class ShellState:
    """
    Estado de la shell que el núcleo consulta: entorno, directorio de
    trabajo, tabla de built-ins y descriptores estándar.
    """

    def __init__(
        self,
        env: Optional[Mapping[str, str]] = None,
        cwd: Optional[str] = None,
        builtins: Optional[Mapping[str, Builtin]] = None,
        stdin: int = 0,
        stdout: int = 1,
        stderr: int = 2,
    ) -> None:
        self.env: Dict[str, str] = dict(os.environ if env is None else env)
        self.cwd = os.path.abspath(cwd if cwd is not None else os.getcwd())
        self.builtins: Dict[str, Builtin] = dict(BUILTINS if builtins is None else builtins)
        self.stdin = stdin
        self.stdout = stdout
        self.stderr = stderr
        self.last_status = 0

    def get(self, name: str) -> Optional[str]:
        if name == "?":
            return str(self.last_status)
        return self.env.get(name)

    def set(self, name: str, value: str) -> None:
        self.env[name] = value

    def unset(self, name: str) -> None:
        self.env.pop(name, None)

    def search_path(self) -> List[str]:
        path = self.env.get("PATH")
        if path is None:
            path = os.defpath
        return [self.resolve_path(d) if d else self.cwd for d in path.split(os.pathsep)]

    def resolve_path(self, path: str) -> str:
        return os.path.normpath(os.path.join(self.cwd, path))

    def expand_tilde(self, text: str) -> str:
        if text != "~" and not text.startswith("~/"):
            return text
        home = self.env.get("HOME")
        if home is None:
            return text
        return home + text[1:]

    def chdir(self, path: str) -> None:
        new_dir = self.resolve_path(path)
        if not os.path.exists(new_dir):
            raise FileNotFoundError(path)
        if not os.path.isdir(new_dir):
            raise NotADirectoryError(path)
        if not os.access(new_dir, os.X_OK):
            raise PermissionError(path)
        self.env["OLDPWD"] = self.cwd
        self.cwd = new_dir
        self.env["PWD"] = new_dir
