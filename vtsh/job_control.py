import logging
import sys

import psutil

logger = logging.getLogger(__name__)

# Background jobs: pid of the last stage → job
background_jobs = {}


def add_background_job(job):
    """Record a background job and announce its pid on stderr"""
    pid = job.pids[-1]
    background_jobs[pid] = job
    logger.debug("background job %s: %s", job.pids, job.command)
    print(f"[{pid}]", file=sys.stderr, flush=True)
    return pid


def job_status(pid):
    """psutil status of a background process, or 'terminated'"""
    try:
        return psutil.Process(pid).status()
    except psutil.NoSuchProcess:
        return "terminated"
    except psutil.AccessDenied:
        return "unknown"


def show_jobs():
    """Hiển thị danh sách tiến trình nền"""
    if not background_jobs:
        print("No background jobs.")
        return

    print(f"{'PID':<8} {'STATUS':<12} {'Command'}")
    print("-" * 40)
    for pid, job in background_jobs.items():
        print(f"{pid:<8} {job_status(pid):<12} {job.command}")


def cleanup_jobs():
    """
    Reap background jobs that have finished, without waiting and without
    signalling the ones still running.
    """
    for pid, job in list(background_jobs.items()):
        running = [p for p in job.processes if p.poll() is None]
        if running:
            logger.debug("leaving background job [%d] running", pid)
        else:
            del background_jobs[pid]
