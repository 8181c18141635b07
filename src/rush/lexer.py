import logging
from enum import Enum, auto
from typing import Callable, List, NamedTuple, Optional, Tuple

from rush.errors import DanglingEscape, UnsupportedOperator, UnterminatedQuote

logger = logging.getLogger(__name__)

Lookup = Callable[[str], Optional[str]]


class ShellTokenType(Enum):
    WORD = auto()

    # Operadores de control
    PIPE = auto()  # |
    AND = auto()  # &&
    OR = auto()  # ||
    SEMICOLON = auto()  # ;

    # Redirecciones
    REDIRECT_IN = auto()  # <
    REDIRECT_STDOUT = auto()  # >
    REDIRECT_APPEND = auto()  # >>
    REDIRECT_STDERR = auto()  # 2>
    REDIRECT_APPEND_ERR = auto()  # 2>>


REDIRECT_TOKENS = (
    ShellTokenType.REDIRECT_IN,
    ShellTokenType.REDIRECT_STDOUT,
    ShellTokenType.REDIRECT_APPEND,
    ShellTokenType.REDIRECT_STDERR,
    ShellTokenType.REDIRECT_APPEND_ERR,
)

CONTROL_TOKENS = (
    ShellTokenType.AND,
    ShellTokenType.OR,
    ShellTokenType.SEMICOLON,
)


class ShellToken(NamedTuple):
    lex: str
    token_type: ShellTokenType
    pos: int = 0

    def __str__(self) -> str:
        return f"ShellToken('{self.lex}', {self.token_type})"


class LexState(Enum):
    NORMAL = auto()
    IN_SINGLE_QUOTE = auto()
    IN_DOUBLE_QUOTE = auto()
    AFTER_ESCAPE = auto()


OPERATOR_CHARS = "|&;<>"
DOUBLE_QUOTE_ESCAPABLE = '"\\$'


def _is_name_start(char: str) -> bool:
    return char.isascii() and (char.isalpha() or char == "_")


def _is_name_char(char: str) -> bool:
    return char.isascii() and (char.isalnum() or char == "_")


class ShellLexer:
    """
    Clase que representa el lexer de la shell.

    Recorre la línea una sola vez, carácter a carácter, con un estado
    explícito (ver `LexState`). Las comillas, los escapes y las variables
    se resuelven aquí: los tokens WORD llevan el texto final.
    """

    def __init__(self, lookup: Optional[Lookup] = None) -> None:
        self.lookup = lookup

    def tokenize(self, line: str) -> List[ShellToken]:
        self.line = line
        self.tokens: List[ShellToken] = []
        self.state = LexState.NORMAL
        self.escaped_from = LexState.NORMAL
        self.current = ""
        self.word_start: Optional[int] = None
        self.word_quoted = False
        self.quote_start = 0

        i = 0
        while i < len(line):
            char = line[i]

            if self.state is LexState.AFTER_ESCAPE:
                self._escaped_char(char)
                i += 1
                continue

            if self.state is LexState.IN_SINGLE_QUOTE:
                if char == "'":
                    self.state = LexState.NORMAL
                else:
                    self.current += char
                i += 1
                continue

            if self.state is LexState.IN_DOUBLE_QUOTE:
                if char == '"':
                    self.state = LexState.NORMAL
                    i += 1
                elif char == "\\":
                    self.escaped_from = LexState.IN_DOUBLE_QUOTE
                    self.state = LexState.AFTER_ESCAPE
                    i += 1
                elif char == "$":
                    text, i = self._expand(i)
                    self.current += text
                else:
                    self.current += char
                    i += 1
                continue

            if char.isspace():
                self.add_token()
                i += 1
                continue

            if char in ("'", '"'):
                self._start_word(i)
                self.word_quoted = True
                self.quote_start = i
                if char == "'":
                    self.state = LexState.IN_SINGLE_QUOTE
                else:
                    self.state = LexState.IN_DOUBLE_QUOTE
                i += 1
                continue

            if char == "\\":
                self._start_word(i)
                self.word_quoted = True
                self.escaped_from = LexState.NORMAL
                self.state = LexState.AFTER_ESCAPE
                i += 1
                continue

            if char == "$":
                self._start_word(i)
                text, i = self._expand(i)
                self.current += text
                continue

            if (
                char == "2"
                and self.word_start is None
                and i + 1 < len(line)
                and line[i + 1] == ">"
            ):
                if i + 2 < len(line) and line[i + 2] == ">":
                    self.tokens.append(
                        ShellToken("2>>", ShellTokenType.REDIRECT_APPEND_ERR, i)
                    )
                    i += 3
                else:
                    self.tokens.append(
                        ShellToken("2>", ShellTokenType.REDIRECT_STDERR, i)
                    )
                    i += 2
                continue

            if char in OPERATOR_CHARS:
                self.add_token()
                i = self._operator(i)
                continue

            self._start_word(i)
            self.current += char
            i += 1

        if self.state is LexState.AFTER_ESCAPE:
            if self.escaped_from is LexState.IN_DOUBLE_QUOTE:
                raise UnterminatedQuote(
                    "comillas dobles sin cerrar", line[self.quote_start :], self.quote_start
                )
            raise DanglingEscape("barra invertida al final de la línea", "\\", len(line) - 1)
        if self.state is LexState.IN_SINGLE_QUOTE:
            raise UnterminatedQuote(
                "comillas simples sin cerrar", line[self.quote_start :], self.quote_start
            )
        if self.state is LexState.IN_DOUBLE_QUOTE:
            raise UnterminatedQuote(
                "comillas dobles sin cerrar", line[self.quote_start :], self.quote_start
            )

        self.add_token()
        logger.debug("tokenized %r into %d tokens", line, len(self.tokens))
        return self.tokens

    def add_token(self) -> None:
        if self.word_start is None:
            return
        # Una palabra hecha solo de expansiones vacías sin comillas desaparece
        if self.current or self.word_quoted:
            self.tokens.append(
                ShellToken(self.current, ShellTokenType.WORD, self.word_start)
            )
        self.current = ""
        self.word_start = None
        self.word_quoted = False

    def _start_word(self, pos: int) -> None:
        if self.word_start is None:
            self.word_start = pos

    def _escaped_char(self, char: str) -> None:
        if self.escaped_from is LexState.IN_DOUBLE_QUOTE:
            if char in DOUBLE_QUOTE_ESCAPABLE:
                self.current += char
            else:
                self.current += "\\" + char
        else:
            self.current += char
        self.state = self.escaped_from

    def _operator(self, i: int) -> int:
        line = self.line
        char = line[i]
        following = line[i + 1] if i + 1 < len(line) else ""

        if char == "|":
            if following == "|":
                self.tokens.append(ShellToken("||", ShellTokenType.OR, i))
                return i + 2
            self.tokens.append(ShellToken("|", ShellTokenType.PIPE, i))
            return i + 1

        if char == "&":
            if following == "&":
                self.tokens.append(ShellToken("&&", ShellTokenType.AND, i))
                return i + 2
            raise UnsupportedOperator("la ejecución en background no está soportada", "&", i)

        if char == ">":
            if following == ">":
                self.tokens.append(ShellToken(">>", ShellTokenType.REDIRECT_APPEND, i))
                return i + 2
            self.tokens.append(ShellToken(">", ShellTokenType.REDIRECT_STDOUT, i))
            return i + 1

        if char == "<":
            self.tokens.append(ShellToken("<", ShellTokenType.REDIRECT_IN, i))
            return i + 1

        self.tokens.append(ShellToken(";", ShellTokenType.SEMICOLON, i))
        return i + 1

    def _expand(self, i: int) -> Tuple[str, int]:
        """
        Expande la referencia que empieza en `line[i] == "$"`. Devuelve el
        texto sustituido y la posición siguiente a la referencia.
        """
        line = self.line
        following = line[i + 1] if i + 1 < len(line) else ""

        if following == "?":
            return self._value("?"), i + 2

        if following == "{":
            close = line.find("}", i + 2)
            name = line[i + 2 : close] if close != -1 else ""
            if close != -1 and (
                name == "?"
                or (name and _is_name_start(name[0]) and all(map(_is_name_char, name)))
            ):
                return self._value(name), close + 1
            return "$", i + 1

        if following and _is_name_start(following):
            end = i + 1
            while end < len(line) and _is_name_char(line[end]):
                end += 1
            return self._value(line[i + 1 : end]), end

        return "$", i + 1

    def _value(self, name: str) -> str:
        if self.lookup is None:
            return ""
        value = self.lookup(name)
        return value if value is not None else ""


def tokenize(line: str, lookup: Optional[Lookup] = None) -> List[ShellToken]:
    return ShellLexer(lookup).tokenize(line)
