"""
Shell exceptions.

Every error raised while handling one input line derives from ShellError
and carries the exit status the failed command reports. None of them is
fatal to the interpreter; only ShellExit ends a REPL.
"""

from typing import Optional


class ShellError(Exception):
    """Base class for errors that abort the current command line."""

    status = 1

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        if status is not None:
            self.status = status

    def __str__(self) -> str:
        return self.message


class ShellSyntaxError(ShellError):
    """Malformed operator usage; no process is spawned."""

    status = 2

    def __str__(self) -> str:
        return f"syntax error: {self.message}"


class TokenLimitError(ShellSyntaxError):
    """The line holds more tokens than config.MAX_TOKENS."""

    def __init__(self, limit: int) -> None:
        super().__init__(f"too many tokens (limit is {limit})")
        self.limit = limit


class RedirectionError(ShellError):
    """A redirection target could not be opened."""

    def __init__(self, path: str, error: OSError) -> None:
        super().__init__(f"{path}: {error.strerror or error}")
        self.path = path
        self.error = error


class SpawnError(ShellError):
    """Resource exhaustion while creating a process or pipe."""


class ForkError(SpawnError):
    pass


class PipeError(SpawnError):
    pass


class CommandNotFoundError(ShellError):
    """The program does not exist or cannot be executed."""

    status = 127

    def __init__(self, name: str, reason: str = "command not found") -> None:
        super().__init__(f"{name}: {reason}")
        self.name = name


class ShellExit(Exception):
    """Raised by the exit builtin to unwind the running REPL."""

    def __init__(self, code: int = 0) -> None:
        super().__init__(code)
        self.code = code
