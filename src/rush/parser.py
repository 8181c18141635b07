import logging
from typing import List, Optional, Sequence

from rush.ast_tree import (
    Command,
    CommandList,
    ControlOp,
    Pipeline,
    RedirectKind,
    Redirection,
)
from rush.errors import (
    EmptyPipelineSegment,
    MissingCommand,
    MissingRedirectTarget,
    UnexpectedOperator,
)
from rush.lexer import CONTROL_TOKENS, REDIRECT_TOKENS, ShellToken, ShellTokenType

logger = logging.getLogger(__name__)

REDIRECT_KINDS = {
    ShellTokenType.REDIRECT_IN: RedirectKind.STDIN_FROM,
    ShellTokenType.REDIRECT_STDOUT: RedirectKind.STDOUT_TO,
    ShellTokenType.REDIRECT_APPEND: RedirectKind.STDOUT_APPEND,
    ShellTokenType.REDIRECT_STDERR: RedirectKind.STDERR_TO,
    ShellTokenType.REDIRECT_APPEND_ERR: RedirectKind.STDERR_APPEND,
}

CONTROL_OPS = {
    ShellTokenType.SEMICOLON: ControlOp.SEQUENTIAL,
    ShellTokenType.AND: ControlOp.AND_THEN,
    ShellTokenType.OR: ControlOp.OR_ELSE,
}


class ShellParser:
    """
    Clase que representa el parser de la shell.

    Gramática (de menor a mayor precedencia, asociativa a la izquierda):

        command-list := pipeline (control-op pipeline)* [';']
        pipeline     := command ('|' command)*
        command      := (WORD | redirection)+   con al menos un WORD
        redirection  := REDIRECT WORD
    """

    def __init__(self, tokens: Sequence[ShellToken]) -> None:
        self.tokens = list(tokens)
        self.current = 0

    def parse(self) -> CommandList:
        entries = []

        while not self._is_at_end():
            pipeline = self._pipeline()

            if self._is_at_end():
                entries.append((pipeline, ControlOp.END))
                break

            op_token = self._advance()
            if self._is_at_end():
                if op_token.token_type is ShellTokenType.SEMICOLON:
                    entries.append((pipeline, ControlOp.END))
                    break
                raise UnexpectedOperator(
                    f"Comando incompleto después de '{op_token.lex}'",
                    op_token.lex,
                    op_token.pos,
                )
            entries.append((pipeline, CONTROL_OPS[op_token.token_type]))

        graph = CommandList(tuple(entries))
        logger.debug("parsed %d pipeline(s): %s", len(graph.entries), graph)
        return graph

    def _pipeline(self) -> Pipeline:
        token = self._peek()
        if token.token_type in CONTROL_TOKENS or (
            token.token_type is ShellTokenType.PIPE and self.current == 0
        ):
            raise UnexpectedOperator(
                f"Operador inesperado '{token.lex}'",
                token.lex,
                token.pos,
            )
        if token.token_type is ShellTokenType.PIPE:
            raise EmptyPipelineSegment(
                "Comando vacío antes del pipe '|'", token.lex, token.pos
            )

        commands = [self._command()]

        while self._match(ShellTokenType.PIPE):
            pipe = self._previous()
            if self._is_at_end() or self._is_command_terminator():
                raise EmptyPipelineSegment(
                    "Comando incompleto después del pipe '|'", pipe.lex, pipe.pos
                )
            commands.append(self._command())

        return Pipeline(tuple(commands))

    def _command(self) -> Command:
        start = self._peek()
        words: List[str] = []
        redirections: List[Redirection] = []

        while not self._is_at_end() and not self._is_command_terminator():
            token = self._advance()
            if token.token_type in REDIRECT_TOKENS:
                if not self._check(ShellTokenType.WORD):
                    raise MissingRedirectTarget(
                        f"Falta archivo después de '{token.lex}'",
                        token.lex,
                        token.pos,
                    )
                target = self._advance().lex
                redirections.append(Redirection(REDIRECT_KINDS[token.token_type], target))
            else:
                words.append(token.lex)

        if not words:
            raise MissingCommand(
                "Redirección sin comando previo", start.lex, start.pos
            )

        return Command(words[0], tuple(words[1:]), tuple(redirections))

    def _match(self, *token_types: ShellTokenType) -> bool:
        for token_type in token_types:
            if self._check(token_type):
                self._advance()
                return True
        return False

    def _check(self, token_type: ShellTokenType) -> bool:
        if self._is_at_end():
            return False
        return self.tokens[self.current].token_type is token_type

    def _peek(self) -> Optional[ShellToken]:
        if self._is_at_end():
            return None
        return self.tokens[self.current]

    def _advance(self) -> ShellToken:
        if not self._is_at_end():
            self.current += 1
        return self._previous()

    def _previous(self) -> ShellToken:
        return self.tokens[self.current - 1]

    def _is_at_end(self) -> bool:
        return self.current >= len(self.tokens)

    def _is_command_terminator(self) -> bool:
        return self._check(ShellTokenType.PIPE) or any(
            self._check(t) for t in CONTROL_TOKENS
        )


def parse(tokens: Sequence[ShellToken]) -> CommandList:
    return ShellParser(tokens).parse()
