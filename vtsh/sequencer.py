"""
Control flow for one input line: ``&&`` sequencing and a trailing ``&``.

The whole line is parsed, and every command in it resolved, before the
first segment runs; a syntax error anywhere means nothing runs. Files
are opened segment by segment, when that segment starts.
"""

import logging
import sys
from typing import List, Mapping

from vtsh.builtin import execute_builtin
from vtsh.errors import ShellError
from vtsh.executor import run_pipeline
from vtsh.parser import parse_line
from vtsh.redirection import Command, build_command

logger = logging.getLogger(__name__)


def build_segments(line: str, environ: Mapping[str, str]):
    """
    Parse and resolve a line.
    Returns: (segments, background) where segments is a list of pipelines
    (lists of Command); ([], False) for a blank line
    """
    parsed = parse_line(line)
    if parsed is None:
        return [], False
    segments = [[build_command(stage, environ) for stage in pipeline]
                for pipeline in parsed.segments]
    return segments, parsed.background


def run_segment(pipeline: List[Command], background: bool, shell) -> int:
    """Run one && segment: a builtin in place, anything else as a pipeline."""
    if len(pipeline) == 1 and not background:
        executed, status = execute_builtin(pipeline[0], shell)
        if executed:
            return status
    return run_pipeline(pipeline, background)


def run_line(line: str, shell) -> int:
    """
    Run a line, stopping at the first segment that does not exit 0.
    Returns: status of the last segment that ran
    """
    segments, background = build_segments(line, shell.environ)
    status = 0
    last = len(segments) - 1
    for idx, pipeline in enumerate(segments):
        try:
            status = run_segment(pipeline, background and idx == last, shell)
        except ShellError as e:
            print(f"vtsh: {e}", file=sys.stderr)
            status = e.status
        if status != 0:
            logger.debug("segment %d exited %d, skipping the rest", idx, status)
            break
    return status
