import argparse
import logging
import os
import signal
import sys
from typing import List, Optional

from rush.errors import ShellError, ShellExit
from rush.executer import CommandExecutor
from rush.lexer import ShellLexer
from rush.parser import ShellParser
from rush.state import ShellState

logger = logging.getLogger(__name__)

COLORS = {
    "RESET": "\033[0m",
    "RED": "\033[91m",
    "GREEN": "\033[92m",
    "YELLOW": "\033[93m",
    "CYAN": "\033[96m",
}

DEFAULT_PROMPT = "$ "
LOG_LEVEL_VAR = "RUSH_LOG_LEVEL"
INTERRUPTED_STATUS = 128 + signal.SIGINT


class Shell:
    """
    Punto de entrada del núcleo: lexer -> parser -> ejecutor para cada línea.
    """

    def __init__(self, state: Optional[ShellState] = None) -> None:
        self.state = state if state is not None else ShellState()
        self.lexer = ShellLexer(self.state.get)
        self.executor = CommandExecutor(self.state)

    def run_line(self, line: str) -> int:
        """
        Ejecuta una línea y devuelve su estado de salida.

        Los errores de lexer y parser abortan la línea antes de lanzar
        ningún proceso. Los errores de ejecución no detienen el resto del
        grafo: se lanza el primero cuando termina la línea, y todos quedan
        en `self.executor.errors`. El estado final de la línea siempre queda
        en `self.state.last_status`.
        """
        self.executor.errors = []
        try:
            tokens = self.lexer.tokenize(line)
            graph = ShellParser(tokens).parse()
        except ShellError as e:
            self.state.last_status = e.status
            raise

        status = self.executor.execute(graph)
        if self.executor.errors:
            error = self.executor.errors[0]
            error.reserved_status = error.status
            error.status = status
            raise error
        return status


def _use_colors(env) -> bool:
    return sys.stderr.isatty() and "NO_COLOR" not in env


def report(shell: Shell, error: ShellError) -> None:
    errors = shell.executor.errors or [error]
    colors = _use_colors(shell.state.env)
    for e in errors:
        message = f"rush: {e}"
        if colors:
            message = f"{COLORS['RED']}{message}{COLORS['RESET']}"
        print(message, file=sys.stderr, flush=True)


def repl(shell: Shell) -> int:
    while True:
        prompt = shell.state.get("PS1") or DEFAULT_PROMPT
        try:
            line = input(prompt)
        except KeyboardInterrupt:
            print()
            continue
        except EOFError:
            print()
            return shell.state.last_status

        try:
            shell.run_line(line)
        except ShellError as e:
            report(shell, e)
        except ShellExit as e:
            return e.status
        except KeyboardInterrupt:
            # Ctrl-C fuera de la espera (resolución, Popen, built-ins)
            print()
            shell.state.last_status = INTERRUPTED_STATUS


def configure_logging(level: Optional[str]) -> None:
    level = (level or os.environ.get(LOG_LEVEL_VAR) or "WARNING").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="rush", description="A small POSIX-like shell.")
    parser.add_argument("-c", dest="command", help="run COMMAND and exit with its status")
    parser.add_argument(
        "--log-level",
        help=f"logging level (default: ${LOG_LEVEL_VAR} or WARNING)",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_arg_parser().parse_args(argv)
    configure_logging(args.log_level)

    shell = Shell()
    if args.command is None:
        return repl(shell)

    try:
        return shell.run_line(args.command)
    except ShellError as e:
        report(shell, e)
        return shell.state.last_status
    except ShellExit as e:
        return e.status


if __name__ == "__main__":
    sys.exit(main())
