"""
Command history on top of readline.

Lines typed at the prompt are added by ``input()`` itself; lines read
from a file or pipe are added with ``record``. Only the top-level
interactive shell loads and saves ``config.HISTORY_FILE``.
"""

import logging
import os
import sys

import config

try:
    import readline
except ImportError:
    readline = None

logger = logging.getLogger(__name__)


def available():
    return readline is not None


def init_readline():
    """Cấu hình readline để hoạt động giống terminal Linux"""
    if readline is None:
        return
    try:
        readline.parse_and_bind("set editing-mode emacs")
        readline.parse_and_bind("\\e[A: previous-history")
        readline.parse_and_bind("\\e[B: next-history")
        readline.parse_and_bind("\\e[1;5D: backward-word")
        readline.parse_and_bind("\\e[1;5C: forward-word")
    except Exception as e:
        print(f"vtsh: could not configure readline: {e}", file=sys.stderr)


def load_history(path=None):
    path = path or config.HISTORY_FILE
    if readline is None:
        return
    readline.set_history_length(config.MAX_HISTORY)
    if not os.path.exists(path):
        return
    try:
        readline.read_history_file(path)
    except OSError as e:
        print(f"vtsh: could not load history from {path}: {e.strerror or e}", file=sys.stderr)
    else:
        logger.debug("loaded %d history entries from %s",
                     readline.get_current_history_length(), path)


def save_history(path=None):
    path = path or config.HISTORY_FILE
    if readline is None:
        return
    try:
        readline.set_history_length(config.MAX_HISTORY)
        readline.write_history_file(path)
    except OSError as e:
        print(f"vtsh: could not save history to {path}: {e.strerror or e}", file=sys.stderr)


def record(line):
    """Add a line read without ``input()``; repeats of the last entry are skipped."""
    # readline cannot store NUL
    if readline is None or not line.strip() or "\x00" in line:
        return
    last = readline.get_current_history_length()
    if last and readline.get_history_item(last) == line:
        return
    readline.add_history(line)


def entries(count=None):
    """(number, line) pairs, oldest first; only the last ``count`` when given"""
    if readline is None:
        return []
    total = readline.get_current_history_length()
    first = 1 if count is None else max(1, total - count + 1)
    return [(i, readline.get_history_item(i)) for i in range(first, total + 1)]


def clear():
    if readline is not None:
        readline.clear_history()


def show_history(count=None):
    """In ra history, đánh số từ 1"""
    for number, line in entries(count):
        print(f"{number:5d}  {line}")
