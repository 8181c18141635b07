import logging
import os
from contextlib import contextmanager
from typing import TYPE_CHECKING, Dict, Iterator, Sequence

from rush.ast_tree import RedirectKind, Redirection
from rush.errors import RedirectionFailed

if TYPE_CHECKING:
    from rush.state import ShellState

logger = logging.getLogger(__name__)

OPEN_FLAGS = {
    RedirectKind.STDIN_FROM: os.O_RDONLY,
    RedirectKind.STDOUT_TO: os.O_WRONLY | os.O_CREAT | os.O_TRUNC,
    RedirectKind.STDOUT_APPEND: os.O_WRONLY | os.O_CREAT | os.O_APPEND,
    RedirectKind.STDERR_TO: os.O_WRONLY | os.O_CREAT | os.O_TRUNC,
    RedirectKind.STDERR_APPEND: os.O_WRONLY | os.O_CREAT | os.O_APPEND,
}

FILE_MODE = 0o666


def open_redirection(redirection: Redirection, state: "ShellState") -> int:
    path = state.resolve_path(redirection.target)
    try:
        fd = os.open(path, OPEN_FLAGS[redirection.kind], FILE_MODE)
    except OSError as e:
        raise RedirectionFailed(redirection.target, e.strerror or str(e)) from e
    logger.debug("opened %s as fd %d", redirection, fd)
    return fd


def open_redirections(
    redirections: Sequence[Redirection], state: "ShellState"
) -> Dict[int, int]:
    """
    Abre los ficheros de las redirecciones en orden y devuelve un mapa
    descriptor estándar -> descriptor abierto. Todos los ficheros se abren
    (y se crean o truncan), pero para cada flujo gana la última redirección.
    Si alguna falla se cierran las ya abiertas.
    """
    fds: Dict[int, int] = {}
    try:
        for redirection in redirections:
            fd = open_redirection(redirection, state)
            previous = fds.get(redirection.kind.stream)
            fds[redirection.kind.stream] = fd
            if previous is not None:
                os.close(previous)
    except RedirectionFailed:
        close_all(fds)
        raise
    return fds


def close_all(fds: Dict[int, int]) -> None:
    for fd in fds.values():
        os.close(fd)
    fds.clear()


@contextmanager
def redirected(
    redirections: Sequence[Redirection], state: "ShellState"
) -> Iterator[Dict[int, int]]:
    fds = open_redirections(redirections, state)
    try:
        yield fds
    finally:
        close_all(fds)
