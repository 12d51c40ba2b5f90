import logging
import os
import subprocess
import sys
import time
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Union

from vtsh import process
from vtsh.errors import CommandNotFoundError, PipeError
from vtsh.job_control import add_background_job
from vtsh.redirection import STDIN, STDOUT, Command, OpenRedirections

logger = logging.getLogger(__name__)


@dataclass
class Job:
    """Processes started for one pipeline."""
    command: str
    background: bool = False
    # Popen per stage, or the status of a stage that could not be started
    stages: List[Union[subprocess.Popen, int]] = field(default_factory=list)
    status: Optional[int] = None

    @property
    def processes(self) -> List[subprocess.Popen]:
        return [s for s in self.stages if isinstance(s, subprocess.Popen)]

    @property
    def pids(self) -> List[int]:
        return [p.pid for p in self.processes]

    def wait(self) -> process.ExitStatus:
        """Wait for every stage; the last stage's status is the job's."""
        result = process.ExitStatus()
        for stage in self.stages:
            if isinstance(stage, int):
                result = process.ExitStatus(code=stage)
            else:
                result = process.wait(stage)
        self.status = result.code
        return result


def _pipe():
    try:
        return os.pipe()
    except OSError as e:
        raise PipeError(f"pipe: {e.strerror or e}") from e


def _close(fd: Optional[int]) -> None:
    if fd is not None:
        os.close(fd)


def _open_all(commands: Sequence[Command]) -> List[OpenRedirections]:
    opened: List[OpenRedirections] = []
    try:
        for cmd in commands:
            opened.append(cmd.redirections.open())
    except BaseException:
        for o in opened:
            o.close()
        raise
    return opened


def start_pipeline(commands: Sequence[Command], background: bool = False) -> Job:
    """
    Start every stage of a pipeline, wiring stage i's stdout to stage i+1's
    stdin. A stage's own redirections win over the pipe for the streams
    they name.

    All redirection files are opened before the first process starts. The
    parent closes each pipe end as soon as the child that needs it has
    been started, so a reader sees end of file once its writer exits.
    """
    job = Job(command=" | ".join(str(c) for c in commands), background=background)
    opened = _open_all(commands)

    prev_read: Optional[int] = None
    last = len(commands) - 1
    try:
        for idx, cmd in enumerate(commands):
            read_end = write_end = None
            try:
                if idx < last:
                    read_end, write_end = _pipe()
                    logger.debug("pipe %d -> %d between stages %d and %d",
                                 write_end, read_end, idx, idx + 1)

                stdin = prev_read if prev_read is not None else STDIN
                stdout = write_end if write_end is not None else STDOUT
                job.stages.append(process.spawn(cmd.argv, *opened[idx].streams(stdin, stdout)))
            except CommandNotFoundError as e:
                print(e, file=sys.stderr)
                job.stages.append(e.status)
            finally:
                _close(prev_read)
                _close(write_end)
                opened[idx].close()
                prev_read = read_end
    except BaseException:
        # SpawnError, or an interrupt while stages are being started
        _close(prev_read)
        for o in opened:
            o.close()
        # stages already running see EOF or EPIPE now that the parent let go
        job.wait()
        raise
    return job


def run_pipeline(commands: Sequence[Command], background: bool = False) -> int:
    """
    Run a pipeline.

    Foreground: wait for every stage, report and return the last stage's
    status. Background: register the job, print its pid and return 0
    without waiting.
    """
    if len(commands) == 1 and not background:
        return process.run_command(commands[0])

    start = time.monotonic()
    job = start_pipeline(commands, background)

    if background:
        if job.processes and not isinstance(job.stages[-1], int):
            add_background_job(job)
            return 0
        # the last stage could not be started; nothing to announce
        return job.wait().code

    status = job.wait()
    process.report(status, time.monotonic() - start)
    return status.code
