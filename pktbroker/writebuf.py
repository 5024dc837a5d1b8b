"""Buffered non-blocking output and child processes fed through it."""

from __future__ import annotations

import os
import subprocess
from collections import deque
from typing import Callable, Iterable, Optional, Union

BytesLike = Union[bytes, bytearray, memoryview]


class WriteBuffer:
    """Writes blocks straight through while possible, queueing the rest.

    ``write`` returns the number of bytes it accepted (0 when it would block)
    and raises OSError when the channel is closed; ``on_close`` is then called.
    ``on_eos`` is called when the end of stream has been written out.
    ``on_want_write`` is told whenever the buffer starts or stops waiting for
    the channel to become writable.
    """

    def __init__(
        self,
        write: Callable[[BytesLike], int],
        on_close: Callable[[], None],
        on_eos: Optional[Callable[[], None]] = None,
        on_want_write: Optional[Callable[[bool], None]] = None,
    ) -> None:
        self._write = write
        self._on_close = on_close
        self._on_eos = on_eos if on_eos is not None else on_close
        self._on_want_write = on_want_write
        self._queue: deque[BytesLike] = deque()
        self._want_write = False
        self.close_on_flushed = False
        self.closed = False

    @property
    def want_write(self) -> bool:
        return self._want_write

    @property
    def pending(self) -> int:
        """Number of queued bytes not yet written."""
        return sum(len(chunk) for chunk in self._queue)

    def _set_want_write(self, value: bool) -> None:
        self._want_write = value
        if self._on_want_write is not None:
            self._on_want_write(value)

    def _attempt(self, chunk: BytesLike) -> Optional[int]:
        try:
            return self._write(chunk)
        except OSError:
            self._on_close()
            return None

    def send(self, blocks: Union[BytesLike, Iterable[BytesLike]]) -> None:
        """Write the blocks, queueing whatever cannot be written now."""
        if isinstance(blocks, (bytes, bytearray, memoryview)):
            blocks = [blocks]
        chunks = [bytes(block) for block in blocks]
        if self._want_write:
            self._queue.extend(chunks)
            return
        for index, chunk in enumerate(chunks):
            written = self._attempt(chunk)
            if written is None:
                return
            if written < len(chunk):
                self._queue.append(memoryview(chunk)[written:])
                self._queue.extend(chunks[index + 1:])
                self._set_want_write(True)
                return

    def write_ready(self) -> None:
        """Called when the channel is writable: flush as much as it takes."""
        if not self._queue:
            self._set_want_write(False)
            return
        while self._queue:
            chunk = self._queue[0]
            written = self._attempt(chunk)
            if written is None:
                return
            if written < len(chunk):
                self._queue[0] = memoryview(chunk)[written:]
                return
            self._queue.popleft()
        if self.close_on_flushed:
            self._finish()

    def send_eos(self) -> None:
        """End the stream now, or once the queue has been flushed."""
        if self._want_write:
            self.close_on_flushed = True
        else:
            self._finish()

    def _finish(self) -> None:
        self.closed = True
        self._on_eos()


class Process:
    """A shell command run with pipes to its stdin and from its stdout."""

    def __init__(self, cmdline: str) -> None:
        self.cmdline = cmdline
        self.pid: Optional[int] = None
        self._popen: Optional[subprocess.Popen] = None
        self.write_buffer = WriteBuffer(self._write_stdin, self._close_stdin)

    @property
    def stdin_fd(self) -> int:
        return self._started().stdin.fileno()

    @property
    def stdout_fd(self) -> int:
        return self._started().stdout.fileno()

    @property
    def returncode(self) -> Optional[int]:
        return self._started().returncode

    def _started(self) -> subprocess.Popen:
        if self._popen is None:
            raise RuntimeError("process has not been started")
        return self._popen

    def start(self) -> int:
        """Start the command under /bin/sh and return its pid."""
        if self._popen is not None:
            raise RuntimeError("process already started")
        self._popen = subprocess.Popen(
            ["/bin/sh", "-c", self.cmdline],
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
        )
        os.set_blocking(self._popen.stdin.fileno(), False)
        self.pid = self._popen.pid
        return self.pid

    def _write_stdin(self, data: BytesLike) -> int:
        try:
            return os.write(self.stdin_fd, data)
        except BlockingIOError:
            return 0

    def _close_stdin(self) -> None:
        if self._popen is not None and self._popen.stdin and not self._popen.stdin.closed:
            self._popen.stdin.close()

    def __enter__(self) -> "Process":
        if self._popen is None:
            self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        popen = self._started()
        self._close_stdin()
        popen.wait()
        if popen.stdout and not popen.stdout.closed:
            popen.stdout.close()