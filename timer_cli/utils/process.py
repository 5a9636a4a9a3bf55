"""OS process helpers: liveness checks, detached spawning, signals"""
import logging
import os
import signal
import subprocess
import sys
from typing import List

logger = logging.getLogger(__name__)


def is_process_alive(pid: int) -> bool:
    """Check whether a pid refers to a running process (signal 0 probe)."""
    if pid <= 0:
        return False
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        # Exists, owned by someone else
        return True
    return True


def spawn_detached(args: List[str], log_path: str) -> subprocess.Popen:
    """
    Launch ``python -m timer_cli <args>`` in its own session.

    The child survives the launching shell: it has no controlling
    terminal, stdin is closed and its output is appended to the log file.

    Raises:
        OSError: If the process cannot be started
    """
    cmd = [sys.executable, "-m", "timer_cli", *args]
    with open(log_path, "a") as log_handle:
        process = subprocess.Popen(
            cmd,
            stdin=subprocess.DEVNULL,
            stdout=log_handle,
            stderr=subprocess.STDOUT,
            start_new_session=True,
        )
    logger.info(f"Spawned detached process pid={process.pid}: {' '.join(args)}")
    return process


def send_terminate(pid: int) -> bool:
    """
    Send SIGTERM to a process.

    Returns:
        True if the signal was delivered, False if the process is gone
    """
    try:
        os.kill(pid, signal.SIGTERM)
        return True
    except ProcessLookupError:
        return False
    except PermissionError as e:
        logger.warning(f"Not allowed to signal pid {pid}: {e}")
        return False
