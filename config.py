import os

PROMPT = os.environ.get("VTSH_PROMPT", "shell> ")

HISTORY_FILE = os.path.expanduser(os.environ.get("VTSH_HISTORY", "~/.vtsh_history"))
MAX_HISTORY = 1000  # Giới hạn số lệnh lưu

MAX_TOKENS = 128
MAX_NESTING_DEPTH = int(os.environ.get("VTSH_MAX_DEPTH", "8"))

# Command names that start a nested interpreter instead of an external program
SELF_NAMES = ("./shell", "vtsh")

LOG_LEVEL = os.environ.get("VTSH_LOG_LEVEL", "WARNING").upper()

# Permission bits for files created by > and >>
FILE_MODE = 0o644
