import os
from contextlib import contextmanager
from typing import TYPE_CHECKING, Iterator, Sequence, Tuple

from rush.ast_tree import Redirection
from rush.errors import ShellExit
from rush.redirection import redirected

if TYPE_CHECKING:
    from rush.state import ShellState


@contextmanager
def builtin_streams(
    redirections: Sequence[Redirection], state: "ShellState"
) -> Iterator[Tuple[int, int, int]]:
    """
    Aplica las redirecciones de un built-in y devuelve sus tres
    descriptores (stdin, stdout, stderr). Los ficheros se cierran al salir.
    """
    with redirected(redirections, state) as fds:
        yield (
            fds.get(0, state.stdin),
            fds.get(1, state.stdout),
            fds.get(2, state.stderr),
        )


def write(fd: int, text: str) -> None:
    data = text.encode()
    while data:
        written = os.write(fd, data)
        data = data[written:]


def _is_identifier(name: str) -> bool:
    return bool(name) and name.isascii() and (name[0].isalpha() or name[0] == "_") and all(
        c.isalnum() or c == "_" for c in name
    )


def builtin_cd(
    args: Sequence[str], redirections: Sequence[Redirection], state: "ShellState"
) -> int:
    with builtin_streams(redirections, state) as (_, out, err):
        if len(args) > 1:
            write(err, "cd: too many arguments\n")
            return 1

        if not args:
            new_dir = state.get("HOME")
            if new_dir is None:
                write(err, "cd: HOME not set\n")
                return 1
        elif args[0] == "-":
            new_dir = state.get("OLDPWD")
            if new_dir is None:
                write(err, "cd: OLDPWD not set\n")
                return 1
        else:
            new_dir = args[0]

        try:
            state.chdir(new_dir)
        except FileNotFoundError:
            write(err, f"cd: {new_dir}: No such file or directory\n")
            return 1
        except NotADirectoryError:
            write(err, f"cd: {new_dir}: Not a directory\n")
            return 1
        except PermissionError:
            write(err, f"cd: {new_dir}: Permission denied\n")
            return 1

        if args and args[0] == "-":
            write(out, state.cwd + "\n")
        return 0


def builtin_exit(
    args: Sequence[str], redirections: Sequence[Redirection], state: "ShellState"
) -> int:
    with builtin_streams(redirections, state) as (_, _, err):
        if not args:
            raise ShellExit(state.last_status)
        if len(args) > 1:
            write(err, "exit: too many arguments\n")
            return 1
        try:
            status = int(args[0])
        except ValueError:
            write(err, f"exit: {args[0]}: numeric argument required\n")
            raise ShellExit(2)
        raise ShellExit(status & 0xFF)


def builtin_pwd(
    args: Sequence[str], redirections: Sequence[Redirection], state: "ShellState"
) -> int:
    with builtin_streams(redirections, state) as (_, out, _):
        write(out, state.cwd + "\n")
        return 0


def builtin_export(
    args: Sequence[str], redirections: Sequence[Redirection], state: "ShellState"
) -> int:
    with builtin_streams(redirections, state) as (_, out, err):
        if not args:
            for name in sorted(state.env):
                write(out, f'export {name}="{state.env[name]}"\n')
            return 0

        status = 0
        for arg in args:
            name, sep, value = arg.partition("=")
            if not _is_identifier(name):
                write(err, f"export: '{arg}': not a valid identifier\n")
                status = 1
            elif sep:
                state.set(name, value)
        return status


def builtin_unset(
    args: Sequence[str], redirections: Sequence[Redirection], state: "ShellState"
) -> int:
    with builtin_streams(redirections, state) as (_, _, err):
        status = 0
        for name in args:
            if not _is_identifier(name):
                write(err, f"unset: '{name}': not a valid identifier\n")
                status = 1
            else:
                state.unset(name)
        return status


BUILTINS = {
    "cd": builtin_cd,
    "exit": builtin_exit,
    "pwd": builtin_pwd,
    "export": builtin_export,
    "unset": builtin_unset,
}
