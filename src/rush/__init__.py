from rush.ast_tree import Command, CommandList, ControlOp, Pipeline, RedirectKind, Redirection
from rush.errors import ExecError, LexError, ParseError, ShellError, ShellExit
from rush.executer import CommandExecutor
from rush.lexer import ShellLexer, ShellToken, ShellTokenType, tokenize
from rush.parser import ShellParser, parse
from rush.shell import Shell
from rush.state import ShellState

__version__ = "0.1.0"
