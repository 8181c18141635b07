from enum import Enum, auto
from typing import NamedTuple, Tuple


class RedirectKind(Enum):
    STDIN_FROM = auto()  # <
    STDOUT_TO = auto()  # >
    STDOUT_APPEND = auto()  # >>
    STDERR_TO = auto()  # 2>
    STDERR_APPEND = auto()  # 2>>

    @property
    def stream(self) -> int:
        """Descriptor estándar que reemplaza la redirección."""
        if self is RedirectKind.STDIN_FROM:
            return 0
        if self in (RedirectKind.STDOUT_TO, RedirectKind.STDOUT_APPEND):
            return 1
        return 2

    @property
    def symbol(self) -> str:
        return _SYMBOLS[self]


_SYMBOLS = {
    RedirectKind.STDIN_FROM: "<",
    RedirectKind.STDOUT_TO: ">",
    RedirectKind.STDOUT_APPEND: ">>",
    RedirectKind.STDERR_TO: "2>",
    RedirectKind.STDERR_APPEND: "2>>",
}


class ControlOp(Enum):
    SEQUENTIAL = auto()  # ;
    AND_THEN = auto()  # &&
    OR_ELSE = auto()  # ||
    END = auto()


class Redirection(NamedTuple):
    kind: RedirectKind
    target: str

    def __str__(self) -> str:
        return f"{self.kind.symbol} {self.target}"


class Command(NamedTuple):
    """
    Clase que representa un comando en el AST.
    """

    name: str
    args: Tuple[str, ...] = ()
    redirections: Tuple[Redirection, ...] = ()

    @property
    def argv(self) -> Tuple[str, ...]:
        return (self.name,) + tuple(self.args)

    def __str__(self) -> str:
        parts = []
        for arg in self.argv:
            if " " in arg or not arg:
                parts.append(f'"{arg}"')
            else:
                parts.append(arg)
        parts.extend(str(r) for r in self.redirections)
        return " ".join(parts)


class Pipeline(NamedTuple):
    """
    Clase que representa un pipeline: uno o más comandos unidos por '|'.
    """

    commands: Tuple[Command, ...]

    def __str__(self) -> str:
        return " | ".join(str(c) for c in self.commands)


class CommandList(NamedTuple):
    """
    Grafo de comandos de una línea: pipelines en orden de aparición, cada
    uno con el operador que lo sigue.
    """

    entries: Tuple[Tuple[Pipeline, ControlOp], ...] = ()

    def is_empty(self) -> bool:
        return not self.entries

    def __str__(self) -> str:
        text = ""
        for pipeline, op in self.entries:
            text += str(pipeline)
            if op is ControlOp.SEQUENTIAL:
                text += "; "
            elif op is ControlOp.AND_THEN:
                text += " && "
            elif op is ControlOp.OR_ELSE:
                text += " || "
        return text
