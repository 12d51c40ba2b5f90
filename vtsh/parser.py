"""
Command line lexer.

One pass over the line produces word and operator tokens. The operator
boundary rule:

  - ``2>&1`` is an operator wherever it appears, even inside a word.
  - ``>>`` is the append operator only when followed by whitespace or the
    end of the line; ``>>name`` lexes as a single word, which the
    redirection resolver rejects.
  - ``>`` and ``<`` always end the current word and bind to the word
    after them, so ``>out.txt`` is ``>`` followed by ``out.txt``.
  - ``|`` and ``&`` always end the current word. ``&&`` is one token.

parse_line() then splits the tokens by precedence: a trailing ``&``
first, then ``&&``, then ``|``.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List, Optional

import config
from vtsh.errors import ShellSyntaxError, TokenLimitError


class TokenKind(Enum):
    WORD = "word"
    PIPE = "|"
    REDIRECT_OUT = ">"
    REDIRECT_APPEND = ">>"
    REDIRECT_IN = "<"
    DUP_STDERR_TO_STDOUT = "2>&1"
    AND = "&&"
    BACKGROUND = "&"


REDIRECT_KINDS = frozenset({
    TokenKind.REDIRECT_OUT,
    TokenKind.REDIRECT_APPEND,
    TokenKind.REDIRECT_IN,
    TokenKind.DUP_STDERR_TO_STDOUT,
})

SEPARATORS = " \t\r\n"
OPERATOR_CHARS = "><|&"
DUP_STDERR = "2>&1"


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    value: str

    @property
    def is_word(self) -> bool:
        return self.kind is TokenKind.WORD


def _operator(kind: TokenKind) -> Token:
    return Token(kind, kind.value)


def _at_boundary(line: str, i: int) -> bool:
    return i >= len(line) or line[i] in SEPARATORS


def _word_end(line: str, i: int) -> int:
    while (i < len(line)
           and line[i] not in SEPARATORS
           and line[i] not in OPERATOR_CHARS
           and not line.startswith(DUP_STDERR, i)):
        i += 1
    return i


def iter_tokens(line: str) -> Iterator[Token]:
    """Yield the tokens of ``line`` left to right."""
    if "\x00" in line:
        # the OS rejects NUL in paths and arguments
        raise ShellSyntaxError("unexpected NUL byte")
    i = 0
    n = len(line)
    while i < n:
        ch = line[i]

        if ch in SEPARATORS:
            i += 1
            continue

        if line.startswith(DUP_STDERR, i):
            yield _operator(TokenKind.DUP_STDERR_TO_STDOUT)
            i += len(DUP_STDERR)
            continue

        if line.startswith(">>", i):
            if _at_boundary(line, i + 2):
                yield _operator(TokenKind.REDIRECT_APPEND)
                i += 2
            else:
                end = _word_end(line, i + 2)
                yield Token(TokenKind.WORD, line[i:end])
                i = end
            continue

        if ch == ">":
            yield _operator(TokenKind.REDIRECT_OUT)
            i += 1
            continue

        if ch == "<":
            yield _operator(TokenKind.REDIRECT_IN)
            i += 1
            continue

        if ch == "|":
            yield _operator(TokenKind.PIPE)
            i += 1
            continue

        if ch == "&":
            if line.startswith("&&", i):
                yield _operator(TokenKind.AND)
                i += 2
            else:
                yield _operator(TokenKind.BACKGROUND)
                i += 1
            continue

        end = _word_end(line, i)
        yield Token(TokenKind.WORD, line[i:end])
        i = end


def tokenize(line: str, limit: Optional[int] = None) -> List[Token]:
    """
    Tokenize a whole line.

    Raises TokenLimitError when the line holds more than ``limit`` tokens
    (config.MAX_TOKENS by default).
    """
    if limit is None:
        limit = config.MAX_TOKENS
    tokens = []
    for tok in iter_tokens(line):
        if len(tokens) >= limit:
            raise TokenLimitError(limit)
        tokens.append(tok)
    return tokens


def _split(tokens: List[Token], kind: TokenKind) -> List[List[Token]]:
    parts: List[List[Token]] = [[]]
    for tok in tokens:
        if tok.kind is kind:
            if not parts[-1]:
                raise ShellSyntaxError(f"unexpected token `{kind.value}'")
            parts.append([])
        else:
            parts[-1].append(tok)
    if not parts[-1]:
        raise ShellSyntaxError(f"missing command after `{kind.value}'")
    return parts


@dataclass
class CommandLine:
    """
    A tokenized line split by precedence.

    ``segments`` holds the ``&&``-separated parts; each part is a list of
    pipeline stages; each stage is the token list of one command.
    """
    segments: List[List[List[Token]]] = field(default_factory=list)
    background: bool = False


def parse_line(line: str) -> Optional[CommandLine]:
    """
    Parse one input line.
    Returns: CommandLine, or None for a blank line
    """
    tokens = tokenize(line)
    if not tokens:
        return None

    background = tokens[-1].kind is TokenKind.BACKGROUND
    if background:
        tokens = tokens[:-1]
        if not tokens:
            raise ShellSyntaxError("unexpected token `&'")

    for tok in tokens:
        if tok.kind is TokenKind.BACKGROUND:
            raise ShellSyntaxError("`&' is only allowed at the end of a line")

    segments = [_split(part, TokenKind.PIPE) for part in _split(tokens, TokenKind.AND)]
    return CommandLine(segments=segments, background=background)
