import logging
import os
import signal
import subprocess
from enum import Enum, auto
from typing import List, NamedTuple, Optional

from rush.ast_tree import Command, CommandList, ControlOp, Pipeline, Redirection
from rush.errors import (
    CommandNotFound,
    ExecError,
    SignalTerminated,
    SpawnFailed,
    UnsupportedBuiltinInPipeline,
)
from rush.redirection import close_all, open_redirections
from rush.state import Builtin, ShellState

logger = logging.getLogger(__name__)

SIGNAL_STATUS_BASE = 128


def decode_status(returncode: int) -> int:
    """
    Convierte el returncode de Popen en un estado de salida de shell.
    La muerte por la señal N se codifica como 128 + N.
    """
    if returncode < 0:
        return SIGNAL_STATUS_BASE - returncode
    return returncode


def is_executable(path: str) -> bool:
    return os.path.isfile(path) and os.access(path, os.X_OK)


def find_executable(name: str, state: ShellState) -> Optional[str]:
    if "/" in name:
        path = state.resolve_path(name)
        return path if is_executable(path) else None

    if not name:
        return None

    for directory in state.search_path():
        candidate = os.path.join(directory, name)
        if is_executable(candidate):
            return candidate
    return None


class PipelineState(Enum):
    BUILT = auto()
    RESOLVING = auto()
    SPAWNING = auto()
    RUNNING = auto()
    COLLECTED = auto()
    FAILED = auto()


class ResolvedCommand(NamedTuple):
    command: Command
    executable: Optional[str] = None
    builtin: Optional[Builtin] = None


class PipelineRun:
    """
    Ejecución de un solo pipeline:

        BUILT -> RESOLVING -> SPAWNING -> RUNNING -> COLLECTED

    RESOLVING y SPAWNING pueden pasar directamente a FAILED. El padre cierra
    su copia de cada extremo de pipe en cuanto el hijo que lo necesita lo
    ha heredado, de modo que el último lector siempre recibe EOF.
    """

    def __init__(self, pipeline: Pipeline, state: ShellState) -> None:
        self.pipeline = pipeline
        self.state = state
        self.phase = PipelineState.BUILT
        self.processes: List[subprocess.Popen] = []
        self.errors: List[ExecError] = []
        self.status: Optional[int] = None
        self.pipes_opened = 0

    def _transition(self, phase: PipelineState) -> None:
        logger.debug("pipeline %r: %s -> %s", str(self.pipeline), self.phase.name, phase.name)
        self.phase = phase

    def run(self) -> int:
        self._transition(PipelineState.RESOLVING)
        try:
            stages = self._resolve_all()
        except ExecError as e:
            return self._fail(e)

        if stages[0].builtin is not None:
            return self._run_builtin(stages[0])

        self._transition(PipelineState.SPAWNING)
        try:
            error = self._spawn_all(stages)
        except KeyboardInterrupt:
            # las etapas ya lanzadas se recogen antes de propagar
            self._interrupt()
            self._wait_all()
            raise
        if error is not None:
            self._wait_all()
            return self._fail(error)

        self._transition(PipelineState.RUNNING)
        returncodes = self._wait_all()
        for resolved, returncode in zip(stages, returncodes):
            if returncode < 0 and -returncode != signal.SIGPIPE:
                self.errors.append(
                    SignalTerminated(
                        resolved.command.name, -returncode, decode_status(returncode)
                    )
                )

        self.status = decode_status(returncodes[-1])
        self._transition(PipelineState.COLLECTED)
        return self.status

    def _fail(self, error: ExecError) -> int:
        self.errors.append(error)
        self.status = error.status
        self._transition(PipelineState.FAILED)
        return self.status

    def _resolve_all(self) -> List[ResolvedCommand]:
        multi_stage = len(self.pipeline.commands) > 1
        stages = []
        for command in self.pipeline.commands:
            resolved = self._resolve(command)
            if resolved.builtin is not None and multi_stage:
                raise UnsupportedBuiltinInPipeline(command.name)
            stages.append(resolved)
        return stages

    def _resolve(self, command: Command) -> ResolvedCommand:
        expand = self.state.expand_tilde
        command = Command(
            expand(command.name),
            tuple(expand(arg) for arg in command.args),
            tuple(Redirection(r.kind, expand(r.target)) for r in command.redirections),
        )

        builtin = self.state.builtins.get(command.name)
        if builtin is not None:
            logger.debug("%s: built-in", command.name)
            return ResolvedCommand(command, builtin=builtin)

        executable = find_executable(command.name, self.state)
        if executable is None:
            raise CommandNotFound(command.name)
        logger.debug("%s: resolved to %s", command.name, executable)
        return ResolvedCommand(command, executable=executable)

    def _run_builtin(self, resolved: ResolvedCommand) -> int:
        command = resolved.command
        self._transition(PipelineState.RUNNING)
        try:
            self.status = resolved.builtin(command.args, command.redirections, self.state)
        except ExecError as e:
            return self._fail(e)
        self._transition(PipelineState.COLLECTED)
        return self.status

    def _spawn_all(self, stages: List[ResolvedCommand]) -> Optional[ExecError]:
        """
        Lanza todas las etapas de izquierda a derecha. Devuelve el error de
        la primera etapa que no se pudo lanzar; las anteriores siguen vivas
        y el llamador debe esperarlas.
        """
        count = len(stages)
        pipes = []
        open_fds = set()

        try:
            for _ in range(count - 1):
                read_fd, write_fd = os.pipe()
                self.pipes_opened += 1
                pipes.append((read_fd, write_fd))
                open_fds.update((read_fd, write_fd))

            for i, resolved in enumerate(stages):
                command = resolved.command
                stdin = pipes[i - 1][0] if i > 0 else self.state.stdin
                stdout = pipes[i][1] if i < count - 1 else self.state.stdout
                stderr = self.state.stderr

                try:
                    redirects = open_redirections(command.redirections, self.state)
                except ExecError as e:
                    return e

                try:
                    process = subprocess.Popen(
                        command.argv,
                        executable=resolved.executable,
                        stdin=_stream(redirects.get(0, stdin), 0),
                        stdout=_stream(redirects.get(1, stdout), 1),
                        stderr=_stream(redirects.get(2, stderr), 2),
                        cwd=self.state.cwd,
                        env=self.state.env,
                        close_fds=True,
                    )
                except OSError as e:
                    return SpawnFailed(command.name, e.strerror or str(e))
                finally:
                    close_all(redirects)
                    if i > 0:
                        _close(pipes[i - 1][0], open_fds)
                    if i < count - 1:
                        _close(pipes[i][1], open_fds)

                logger.debug("spawned %s as pid %d", command.name, process.pid)
                self.processes.append(process)
        finally:
            for fd in open_fds:
                os.close(fd)
            open_fds.clear()

        return None

    def _wait_all(self) -> List[int]:
        returncodes = []
        for process in self.processes:
            while True:
                try:
                    process.wait()
                    break
                except KeyboardInterrupt:
                    self._interrupt()
            returncodes.append(process.returncode)
        return returncodes

    def _interrupt(self) -> None:
        for process in self.processes:
            if process.poll() is None:
                try:
                    process.send_signal(signal.SIGINT)
                except ProcessLookupError:
                    pass


def _stream(fd: int, target: int) -> Optional[int]:
    # None hereda el descriptor del padre tal cual
    return None if fd == target else fd


def _close(fd: int, open_fds: set) -> None:
    open_fds.discard(fd)
    os.close(fd)


class CommandExecutor:
    """
    Clase que representa el ejecutor de comandos: recorre el grafo en orden
    aplicando los cortocircuitos de '&&' y '||'.
    """

    def __init__(self, state: ShellState) -> None:
        self.state = state
        self.last_return_code = 0
        self.errors: List[ExecError] = []

    def execute(self, graph: CommandList) -> int:
        self.errors = []
        status = 0
        previous_op: Optional[ControlOp] = None

        for pipeline, op in graph.entries:
            if previous_op is ControlOp.AND_THEN and status != 0:
                logger.debug("skipping %r: previous status %d", str(pipeline), status)
            elif previous_op is ControlOp.OR_ELSE and status == 0:
                logger.debug("skipping %r: previous status 0", str(pipeline))
            else:
                run = PipelineRun(pipeline, self.state)
                try:
                    status = run.run()
                finally:
                    self.errors.extend(run.errors)
            previous_op = op

        self.last_return_code = status
        self.state.last_status = status
        return status
