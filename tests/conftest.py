import io
import os
import stat

import pytest

from vtsh import job_control
from vtsh.shell import Shell


def open_fd_count() -> int:
    """Descriptors currently open in this process."""
    return len(os.listdir("/proc/self/fd"))


@pytest.fixture(autouse=True)
def clean_jobs():
    """Kill and forget any background job a test started."""
    job_control.background_jobs.clear()
    yield
    for job in job_control.background_jobs.values():
        for proc in job.processes:
            if proc.poll() is None:
                proc.kill()
            proc.wait()
    job_control.background_jobs.clear()


@pytest.fixture
def make_shell():
    def _make(input_text: str = "", environ=None) -> Shell:
        return Shell(environ={} if environ is None else environ, stdin=io.StringIO(input_text))
    return _make


@pytest.fixture
def noisy_script(tmp_path):
    """An executable that writes 'out' to stdout and 'err' to stderr."""
    path = tmp_path / "noisy"
    path.write_text("#!/bin/sh\necho out\necho err >&2\n")
    path.chmod(path.stat().st_mode | stat.S_IXUSR)
    return path
