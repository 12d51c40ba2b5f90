import logging
import os
import sys

import config
from vtsh.errors import ShellExit
from vtsh import history
from vtsh.job_control import show_jobs
from vtsh.redirection import redirect_stdio

logger = logging.getLogger(__name__)


def builtin_help(shell, args):
    """Print help message"""
    print("""vtsh help:
 Built-in commands:
  cd [dir]      : change directory ($HOME if omitted)
  exit [code]   : exit shell
  help          : print this help
  history [n|-c]: show the last n history entries, or clear them
  jobs          : show background jobs
  ./shell, vtsh : start a nested shell

Operators:
  a | b         : pipe
  > f, >> f     : redirect stdout (truncate, append)
  < f           : redirect stdin
  2>&1          : send stderr where stdout goes
  a && b        : run b only if a succeeds
  a &           : run in background
""")
    return 0


def builtin_exit(shell, args):
    """Leave the current REPL"""
    code = 0
    if args:
        try:
            code = int(args[0]) & 0xFF
        except ValueError:
            print(f"exit: {args[0]}: numeric argument required", file=sys.stderr)
            code = 2
    raise ShellExit(code)


def builtin_cd(shell, args):
    """
    Change the interpreter's working directory.

    A failure is reported but still returns 0, so it never stops an &&
    chain.
    """
    path = args[0] if args else shell.environ.get("HOME")
    if not path:
        print("cd: HOME not set", file=sys.stderr)
        return 0
    try:
        os.chdir(path)
    except OSError as e:
        print(f"cd: {path}: {e.strerror}", file=sys.stderr)
    return 0


def builtin_history(shell, args):
    """List history, the last n entries, or clear it with -c"""
    if not history.available():
        print("history: not available", file=sys.stderr)
        return 1
    if args == ["-c"]:
        history.clear()
        return 0
    count = None
    if args:
        try:
            count = int(args[0])
        except ValueError:
            print(f"history: {args[0]}: numeric argument required", file=sys.stderr)
            return 1
        if count < 0:
            print(f"history: {args[0]}: invalid count", file=sys.stderr)
            return 1
    history.show_history(count)
    return 0


def builtin_jobs(shell, args):
    """Show background jobs"""
    show_jobs()
    return 0


def builtin_cat(shell, args):
    """Echo input lines to stdout until end of input"""
    for line in iter(shell.stdin.readline, ""):
        sys.stdout.write(line)
        sys.stdout.flush()
    return 0


def builtin_shell(shell, args):
    """Run a nested REPL on the same input"""
    if shell.depth + 1 > config.MAX_NESTING_DEPTH:
        print(f"vtsh: maximum nesting depth ({config.MAX_NESTING_DEPTH}) reached", file=sys.stderr)
        return 1
    nested = shell.nested()
    logger.debug("entering nested shell at depth %d", nested.depth)
    return nested.run()


builtins = {
    "cd": builtin_cd,
    "exit": builtin_exit,
    "help": builtin_help,
    "history": builtin_history,
    "jobs": builtin_jobs,
}
for _name in config.SELF_NAMES:
    builtins[_name] = builtin_shell


def find_builtin(command):
    """Builtin handler for a command, or None"""
    # cat is only special with no arguments and no redirections
    if command.argv == ("cat",) and not command.redirections:
        return builtin_cat
    return builtins.get(command.name)


def execute_builtin(command, shell):
    """
    Execute built-in command if it matches.
    Returns (executed: bool, exit_code: int)
    """
    handler = find_builtin(command)
    if handler is None:
        return False, 0

    with command.redirections.open() as opened:
        with redirect_stdio(opened):
            return True, handler(shell, list(command.argv[1:]))
