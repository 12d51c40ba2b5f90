import logging
import os
import sys

import config
from vtsh import history as command_history
from vtsh.errors import ShellError, ShellExit
from vtsh.job_control import cleanup_jobs
from vtsh.sequencer import run_line

logger = logging.getLogger(__name__)


class Shell:
    """
    Read-eval loop.

    ``environ`` is the read-only variable lookup used for $NAME expansion
    and bare ``cd``; it defaults to the process environment. Nested shells
    share the parent's input and environment.
    """

    def __init__(self, environ=None, stdin=None, depth=0):
        self.environ = os.environ if environ is None else environ
        self.stdin = sys.stdin if stdin is None else stdin
        self.depth = depth
        self.last_status = 0

    @property
    def interactive(self):
        try:
            return self.stdin.isatty()
        except ValueError:
            return False

    def nested(self):
        return Shell(environ=self.environ, stdin=self.stdin, depth=self.depth + 1)

    def read_line(self):
        """Read one line without its newline; raises EOFError at end of input"""
        if self.interactive and self.stdin is sys.stdin:
            return input(config.PROMPT)

        if self.interactive:
            print(config.PROMPT, end="", flush=True)
        line = self.stdin.readline()
        if not line:
            raise EOFError
        line = line.rstrip("\n")
        # input() adds to readline history by itself
        command_history.record(line)
        return line

    def execute(self, line):
        """Run one input line and return its status"""
        line = line.strip()
        if not line:
            return self.last_status
        try:
            return run_line(line, self)
        except ShellError as e:
            print(f"vtsh: {e}", file=sys.stderr)
            return e.status

    def run(self):
        """
        Main shell loop.
        Returns: the exit code (from `exit`, or 0 at end of input)
        """
        keep_history = self.depth == 0 and self.interactive and self.stdin is sys.stdin
        if keep_history:
            command_history.init_readline()
            command_history.load_history()

        try:
            while True:
                try:
                    line = self.read_line()
                except EOFError:
                    if self.interactive:
                        print()
                    break
                except KeyboardInterrupt:
                    print()
                    continue

                try:
                    self.last_status = self.execute(line)
                except KeyboardInterrupt:
                    print()
                    self.last_status = 130
        except ShellExit as e:
            logger.debug("exit %d at depth %d", e.code, self.depth)
            return e.code
        finally:
            if keep_history:
                command_history.save_history()
            if self.depth == 0:
                cleanup_jobs()
        return 0
