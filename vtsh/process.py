"""
Process supervisor: start one external program, wait for it and decode
how it ended.
"""

import errno
import logging
import subprocess
import sys
import time
from dataclasses import dataclass
from typing import Optional, Sequence

from vtsh.errors import CommandNotFoundError, ForkError
from vtsh.redirection import STDERR, STDIN, STDOUT, Command

logger = logging.getLogger(__name__)

# errno values that mean the program itself could not be executed
_EXEC_ERRORS = {
    errno.ENOENT: "command not found",
    errno.ENOTDIR: "command not found",
    errno.EACCES: "permission denied",
    errno.EPERM: "permission denied",
    errno.ENOEXEC: "exec format error",
    errno.EISDIR: "is a directory",
}


@dataclass(frozen=True)
class ExitStatus:
    code: int = 0
    signal: Optional[int] = None

    @classmethod
    def from_returncode(cls, returncode: int) -> "ExitStatus":
        """Popen reports death by signal N as returncode -N."""
        if returncode < 0:
            return cls(code=128 - returncode, signal=-returncode)
        return cls(code=returncode)

    @property
    def signaled(self) -> bool:
        return self.signal is not None

    def describe(self, elapsed: float) -> str:
        if self.signaled:
            return f"terminated by signal: {self.signal}; elapsed: {elapsed:.6f} s"
        return f"exit status: {self.code}; elapsed: {elapsed:.6f} s"


def spawn(argv: Sequence[str], stdin: int = STDIN, stdout: int = STDOUT,
          stderr: int = STDERR) -> subprocess.Popen:
    """
    Start ``argv`` with the given descriptors on 0, 1 and 2.

    Popen closes every other descriptor in the child (close_fds) and
    restores default signal handling before exec.
    Raises CommandNotFoundError when the program cannot be executed and
    ForkError when no process could be created.
    """
    if not argv[0]:
        raise CommandNotFoundError(argv[0])
    sys.stdout.flush()
    sys.stderr.flush()
    try:
        proc = subprocess.Popen(
            list(argv),
            stdin=stdin,
            stdout=stdout,
            stderr=stderr,
            close_fds=True,
        )
    except OSError as e:
        reason = _EXEC_ERRORS.get(e.errno)
        if reason is not None:
            raise CommandNotFoundError(argv[0], reason) from e
        raise ForkError(f"{argv[0]}: cannot start process: {e.strerror or e}") from e
    logger.debug("spawned %s as pid %d (fds %d %d %d)", argv[0], proc.pid, stdin, stdout, stderr)
    return proc


def wait(proc: subprocess.Popen) -> ExitStatus:
    """
    Wait for a child to finish.

    An interrupt from the terminal reaches the child too; keep waiting so
    its status is still collected.
    """
    while True:
        try:
            returncode = proc.wait()
        except KeyboardInterrupt:
            logger.debug("interrupted while waiting for pid %d", proc.pid)
            continue
        return ExitStatus.from_returncode(returncode)


def report(status: ExitStatus, elapsed: float) -> None:
    print(status.describe(elapsed), file=sys.stderr, flush=True)


def run_command(command: Command) -> int:
    """
    Run one command in the foreground with its redirections applied.
    Returns: the shell status (exit code, or 128 + signal)
    """
    start = time.monotonic()
    with command.redirections.open() as opened:
        try:
            proc = spawn(command.argv, *opened.streams())
        except CommandNotFoundError as e:
            print(e, file=sys.stderr)
            status = ExitStatus(code=e.status)
        else:
            # the child holds its own copies now
            opened.close()
            status = wait(proc)
    report(status, time.monotonic() - start)
    return status.code
