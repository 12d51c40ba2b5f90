"""
Redirection resolver.

Turns the tokens of one command into a Command: the argument words plus
a RedirectionSet that keeps the redirections in the order they were
written. Files are opened later, just before the command runs, through
RedirectionSet.open(); the returned OpenRedirections owns the
descriptors until they are closed.
"""

import logging
import os
import sys
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List, Mapping, Optional, Sequence, Tuple

import config
from vtsh.errors import RedirectionError, ShellSyntaxError
from vtsh.expander import expand_words
from vtsh.parser import REDIRECT_KINDS, Token, TokenKind

logger = logging.getLogger(__name__)

STDIN, STDOUT, STDERR = 0, 1, 2


class StdoutMode(Enum):
    TRUNCATE = "truncate"
    APPEND = "append"


_OPEN_FLAGS = {
    TokenKind.REDIRECT_OUT: os.O_WRONLY | os.O_CREAT | os.O_TRUNC,
    TokenKind.REDIRECT_APPEND: os.O_WRONLY | os.O_CREAT | os.O_APPEND,
    TokenKind.REDIRECT_IN: os.O_RDONLY,
}


@dataclass(frozen=True)
class Redirection:
    kind: TokenKind
    path: Optional[str] = None

    @property
    def stream(self) -> int:
        if self.kind is TokenKind.REDIRECT_IN:
            return STDIN
        if self.kind is TokenKind.DUP_STDERR_TO_STDOUT:
            return STDERR
        return STDOUT


@dataclass(frozen=True)
class RedirectionSet:
    """Ordered redirections of one command."""
    redirections: Tuple[Redirection, ...] = ()

    def __bool__(self) -> bool:
        return bool(self.redirections)

    @property
    def stdin_source(self) -> Optional[str]:
        for r in self.redirections:
            if r.kind is TokenKind.REDIRECT_IN:
                return r.path
        return None

    @property
    def stdout_target(self) -> Optional[Tuple[str, StdoutMode]]:
        for r in self.redirections:
            if r.kind is TokenKind.REDIRECT_OUT:
                return r.path, StdoutMode.TRUNCATE
            if r.kind is TokenKind.REDIRECT_APPEND:
                return r.path, StdoutMode.APPEND
        return None

    @property
    def stderr_to_stdout(self) -> bool:
        return any(r.kind is TokenKind.DUP_STDERR_TO_STDOUT for r in self.redirections)

    def open(self) -> "OpenRedirections":
        """
        Open every file target, in order.

        On failure the descriptors opened so far are closed and
        RedirectionError is raised.
        """
        fds: List[Optional[int]] = []
        try:
            for r in self.redirections:
                if r.path is None:
                    fds.append(None)
                    continue
                try:
                    fd = os.open(r.path, _OPEN_FLAGS[r.kind], config.FILE_MODE)
                except OSError as e:
                    raise RedirectionError(r.path, e) from e
                logger.debug("opened %s %r as fd %d", r.kind.value, r.path, fd)
                fds.append(fd)
        except RedirectionError:
            _close_all(fds)
            raise
        return OpenRedirections(self, fds)


def _close_all(fds: Sequence[Optional[int]]) -> None:
    for fd in fds:
        if fd is not None:
            os.close(fd)


class OpenRedirections:
    """Descriptors opened for one command's redirections."""

    def __init__(self, redirections: RedirectionSet, fds: List[Optional[int]]):
        self._redirections = redirections
        self._fds = fds
        self.closed = False

    def streams(self, stdin: int = STDIN, stdout: int = STDOUT,
                stderr: int = STDERR) -> Tuple[int, int, int]:
        """
        Replay the redirections over the given descriptors, left to right.

        The arguments are what the command would inherit without
        redirections (pipe ends or the interpreter's own 0/1/2). The
        result says which descriptor ends up on each of 0, 1 and 2.
        """
        fds = [stdin, stdout, stderr]
        for r, fd in zip(self._redirections.redirections, self._fds):
            if r.kind is TokenKind.DUP_STDERR_TO_STDOUT:
                fds[STDERR] = fds[STDOUT]
            else:
                fds[r.stream] = fd
        return fds[STDIN], fds[STDOUT], fds[STDERR]

    def close(self) -> None:
        if not self.closed:
            _close_all(self._fds)
            self.closed = True

    def __enter__(self) -> "OpenRedirections":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


@dataclass(frozen=True)
class Command:
    argv: Tuple[str, ...]
    redirections: RedirectionSet = field(default_factory=RedirectionSet)

    @property
    def name(self) -> str:
        return self.argv[0]

    def __str__(self) -> str:
        parts = list(self.argv)
        for r in self.redirections.redirections:
            parts.append(r.kind.value if r.path is None else f"{r.kind.value} {r.path}")
        return " ".join(parts)


def _check_word(tok: Token) -> None:
    if tok.value.startswith(">>"):
        raise ShellSyntaxError(f"unexpected token `{tok.value}'")


def parse_redirections(tokens: Sequence[Token]) -> Tuple[List[str], RedirectionSet]:
    """
    Split one command's tokens into argument words and redirections.

    Raises ShellSyntaxError for a missing filename, an operator where a
    filename is expected, or a second target for stdin or stdout.
    """
    words: List[str] = []
    redirections: List[Redirection] = []
    seen = set()
    i = 0

    while i < len(tokens):
        tok = tokens[i]

        if tok.is_word:
            _check_word(tok)
            words.append(tok.value)
            i += 1
            continue

        if tok.kind not in REDIRECT_KINDS:
            raise ShellSyntaxError(f"unexpected token `{tok.value}'")

        if tok.kind is TokenKind.DUP_STDERR_TO_STDOUT:
            redirections.append(Redirection(tok.kind))
            i += 1
            continue

        if i + 1 >= len(tokens):
            raise ShellSyntaxError(f"{tok.value} requires a filename")
        target = tokens[i + 1]
        if not target.is_word:
            raise ShellSyntaxError(f"unexpected token `{target.value}' after {tok.value}")
        _check_word(target)

        r = Redirection(tok.kind, target.value)
        if r.stream in seen:
            name = "input" if r.stream == STDIN else "output"
            raise ShellSyntaxError(f"duplicate {name} redirection `{tok.value} {target.value}'")
        seen.add(r.stream)

        redirections.append(r)
        i += 2

    return words, RedirectionSet(tuple(redirections))


def build_command(tokens: Sequence[Token], environ: Mapping[str, str]) -> Command:
    """Resolve redirections, then expand variables in the remaining words."""
    words, redirections = parse_redirections(tokens)
    if not words:
        raise ShellSyntaxError("missing command")
    argv = expand_words(words, environ)
    return Command(tuple(argv), redirections)


@contextmanager
def redirect_stdio(opened: OpenRedirections) -> Iterator[None]:
    """
    Apply redirections to the interpreter's own descriptors for the
    duration of the block (used by builtins), then restore them.
    """
    targets = opened.streams()
    if targets == (STDIN, STDOUT, STDERR):
        yield
        return

    sys.stdout.flush()
    sys.stderr.flush()
    saved = [os.dup(fd) for fd in (STDIN, STDOUT, STDERR)]
    try:
        # dup2 from the saved copies so 2>&1 sees the original stdout
        sources = [saved[t] if t in (STDIN, STDOUT, STDERR) else t for t in targets]
        for fd, source in enumerate(sources):
            os.dup2(source, fd)
        yield
    finally:
        sys.stdout.flush()
        sys.stderr.flush()
        for fd, copy in enumerate(saved):
            os.dup2(copy, fd)
            os.close(copy)
