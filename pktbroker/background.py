"""PID files and optional detaching into the background."""

from __future__ import annotations

import atexit
import contextlib
import os
from typing import Optional, TextIO

from .log import Logger

_log = Logger()


class PidFileError(RuntimeError):
    """The PID file could not be claimed."""


def _unlink(path: str) -> None:
    with contextlib.suppress(OSError):
        os.unlink(path)


def _process_running(pid: int) -> bool:
    if os.path.isdir("/proc"):
        return os.path.exists(f"/proc/{pid}/comm")
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    except (OverflowError, ValueError):
        return False
    return True


def _pid_exists(path: str) -> TextIO:
    try:
        with open(path) as existing:
            text = existing.read()
    except OSError as exc:
        raise PidFileError(f"could not open PID file: {path}: {exc.strerror}") from exc
    fields = text.split()
    try:
        pid = int(fields[0])
    except (IndexError, ValueError):
        raise PidFileError(
            f"PID file exists but we could not read a pid from it: {path}"
        ) from None
    if _process_running(pid):
        raise PidFileError("PID file exists and points to a running process")
    _log.warning("overwriting a dangling PID file")
    return open(path, "w")


def open_pid_file(path: str) -> TextIO:
    """Claim the PID file exclusively; a dangling one is taken over.

    The file is removed when the interpreter exits.
    """
    try:
        handle: TextIO = open(path, "x")
    except FileExistsError:
        handle = _pid_exists(path)
    except OSError as exc:
        raise PidFileError(f"pid file {path}: {exc.strerror}") from exc
    atexit.register(_unlink, path)
    return handle


def write_pid_file(handle: TextIO) -> None:
    """Write the current pid to the claimed file and close it."""
    with handle:
        handle.write(f"{os.getpid()}\n")


def _daemonize() -> None:
    if os.fork() > 0:
        os._exit(0)
    os.setsid()
    os.chdir("/")


def maybe_background(
    background: bool,
    use_pid: bool,
    pid_path: Optional[str] = None,
    log_path: Optional[str] = None,
) -> None:
    """Write the PID file and, when asked, detach with output going to the log."""
    if background and not use_pid:
        raise PidFileError("cannot run in the background with no PID file")
    if use_pid and pid_path is None:
        raise ValueError("a PID file path is required")

    if not background:
        if use_pid:
            write_pid_file(open_pid_file(pid_path))
        return

    if log_path is None:
        raise ValueError("a log file path is required to run in the background")
    try:
        null_fd = os.open(os.devnull, os.O_RDONLY)
    except OSError as exc:
        raise PidFileError(
            f"daemonize: could not open /dev/null for stdin replacement: {exc.strerror}"
        ) from exc
    try:
        log_fd = os.open(log_path, os.O_WRONLY | os.O_APPEND | os.O_CREAT, 0o644)
    except OSError as exc:
        os.close(null_fd)
        raise PidFileError(f"daemonize: could not open log file: {exc.strerror}") from exc

    handle = open_pid_file(pid_path)
    try:
        _daemonize()
    except OSError as exc:
        raise PidFileError(f"daemonize: daemon() failed: {exc.strerror}") from exc

    os.dup2(null_fd, 0)
    os.close(null_fd)
    os.dup2(log_fd, 1)
    os.dup2(log_fd, 2)
    os.close(log_fd)

    write_pid_file(handle)