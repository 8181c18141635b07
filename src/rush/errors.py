from enum import Enum, auto
from typing import Optional


class ErrorKind(Enum):
    # Lexer
    UNTERMINATED_QUOTE = auto()
    DANGLING_ESCAPE = auto()
    UNSUPPORTED_OPERATOR = auto()

    # Parser
    MISSING_REDIRECT_TARGET = auto()
    EMPTY_PIPELINE_SEGMENT = auto()
    UNEXPECTED_OPERATOR = auto()
    MISSING_COMMAND = auto()

    # Ejecución
    COMMAND_NOT_FOUND = auto()
    REDIRECTION_FAILED = auto()
    UNSUPPORTED_BUILTIN_IN_PIPELINE = auto()
    SPAWN_FAILED = auto()
    SIGNAL_TERMINATED = auto()


class ShellError(Exception):
    """
    Base de todos los errores que el núcleo devuelve al REPL.
    """

    kind: ErrorKind
    status = 2

    def __init__(
        self, message: str, fragment: str = "", pos: Optional[int] = None
    ) -> None:
        super().__init__(message)
        self.message = message
        self.fragment = fragment
        self.pos = pos

    def __str__(self) -> str:
        if self.pos is not None:
            return f"{self.message} (columna {self.pos + 1})"
        return self.message


class LexError(ShellError):
    pass


class UnterminatedQuote(LexError):
    kind = ErrorKind.UNTERMINATED_QUOTE


class DanglingEscape(LexError):
    kind = ErrorKind.DANGLING_ESCAPE


class UnsupportedOperator(LexError):
    kind = ErrorKind.UNSUPPORTED_OPERATOR


class ParseError(ShellError):
    pass


class MissingRedirectTarget(ParseError):
    kind = ErrorKind.MISSING_REDIRECT_TARGET


class EmptyPipelineSegment(ParseError):
    kind = ErrorKind.EMPTY_PIPELINE_SEGMENT


class UnexpectedOperator(ParseError):
    kind = ErrorKind.UNEXPECTED_OPERATOR


class MissingCommand(ParseError):
    kind = ErrorKind.MISSING_COMMAND


class ExecError(ShellError):
    """
    Error de un pipeline concreto. `status` es el código reservado que
    recibe el pipeline que falló. Cuando `Shell.run_line` lanza el error,
    `status` pasa a ser el estado final de la línea y el código reservado
    queda en `reserved_status`.
    """

    status = 1
    reserved_status: Optional[int] = None


class CommandNotFound(ExecError):
    kind = ErrorKind.COMMAND_NOT_FOUND
    status = 127

    def __init__(self, name: str) -> None:
        super().__init__(f"{name}: command not found", name)


class RedirectionFailed(ExecError):
    kind = ErrorKind.REDIRECTION_FAILED
    status = 1

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"{path}: {reason}", path)


class UnsupportedBuiltinInPipeline(ExecError):
    kind = ErrorKind.UNSUPPORTED_BUILTIN_IN_PIPELINE
    status = 2

    def __init__(self, name: str) -> None:
        super().__init__(
            f"{name}: built-in commands cannot be part of a multi-command pipeline",
            name,
        )


class SpawnFailed(ExecError):
    kind = ErrorKind.SPAWN_FAILED
    status = 126

    def __init__(self, name: str, reason: str) -> None:
        super().__init__(f"{name}: {reason}", name)


class SignalTerminated(ExecError):
    kind = ErrorKind.SIGNAL_TERMINATED

    def __init__(self, name: str, signum: int, status: int) -> None:
        super().__init__(f"{name}: terminated by signal {signum}", name)
        self.signum = signum
        self.status = status


class ShellExit(Exception):
    """
    Lanzada por el built-in `exit`; el REPL la atrapa y termina.
    """

    def __init__(self, status: int = 0) -> None:
        super().__init__(status)
        self.status = status
