"""Line-oriented logging with severity prefixes and debug realms."""

from __future__ import annotations

import enum
import sys
import threading
import time
from datetime import datetime
from typing import Callable, Optional, TextIO

DBG_SHIFT = 56
DBG_LOW_MASK = 0xFFFFFFF
NUM_APP_ID = 64

_BINARY_RUN = 80
_HEX_PER_LINE = 16


class FatalError(RuntimeError):
    """Raised after a fatal message has been logged."""


class DebugRealm(enum.IntFlag):
    """Built-in debug realms (application id 0)."""

    THREAD = 0x00000001
    PACKET = 0x00000002
    CONNECTION = 0x00000004
    TLS = 0x00000008


def _split_realm(realm: int) -> tuple[int, int]:
    app_id = int(realm) >> DBG_SHIFT
    if not 0 <= app_id < NUM_APP_ID:
        raise ValueError(f"debug realm application id out of range: {app_id}")
    return app_id, int(realm) & DBG_LOW_MASK


class LineBufferedWriter:
    """Buffers text and hands it to a sink when a newline arrives.

    On each write, everything up to and including the first newline of the
    new text is delivered together with what was buffered before; the rest
    stays buffered.
    """

    def __init__(self, sink: TextIO) -> None:
        self._sink = sink
        self._buffer: list[str] = []
        self._lock = threading.Lock()

    def write(self, data: str) -> int:
        with self._lock:
            head, newline, tail = data.partition("\n")
            if newline:
                self._sink.write("".join(self._buffer) + head + newline)
                flush = getattr(self._sink, "flush", None)
                if flush is not None:
                    flush()
                self._buffer = [tail] if tail else []
            else:
                self._buffer.append(data)
        return len(data)


class Logger:
    """Writes prefixed log lines for one program and thread type."""

    def __init__(
        self,
        program: Optional[str] = None,
        thread_type: Optional[str] = None,
        sink: Optional[TextIO] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.program = program
        self.thread_type = thread_type
        self.writer = LineBufferedWriter(sink if sink is not None else sys.stderr)
        self._clock = clock
        self._enabled = [0] * NUM_APP_ID

    def _prefix(self) -> str:
        stamp = format_time(self._clock())
        if self.program is None:
            return f"{stamp}: "
        return f"{stamp}: {self.program}-{self.thread_type}({threading.get_native_id()}): "

    def _emit(self, level: str, msg: object) -> None:
        self.writer.write(f"{level}{self._prefix()}{msg}\n")

    def fatal(self, msg: object) -> None:
        self._emit("FATAL:   ", msg)
        raise FatalError(str(msg))

    def error(self, msg: object) -> None:
        self._emit("ERROR:   ", msg)

    def warning(self, msg: object) -> None:
        self._emit("WARNING: ", msg)

    def message(self, msg: object) -> None:
        self._emit("message: ", msg)

    def debug(self, realm: int, msg: object) -> None:
        if self.enabled(realm):
            self._emit("debug: ", msg)

    def enable(self, realm: int) -> None:
        app_id, bits = _split_realm(realm)
        self._enabled[app_id] |= bits

    def enabled(self, realm: int) -> bool:
        app_id, bits = _split_realm(realm)
        return bool(self._enabled[app_id] & bits)


def format_time(timestamp: float) -> str:
    """Local time as 'YYYY-MM-DD HH:MM:SS.uuuuuu'."""
    moment = datetime.fromtimestamp(timestamp)
    return moment.strftime("%Y-%m-%d %H:%M:%S") + f".{moment.microsecond:06d}"


def format_binary(data: bytes) -> str:
    """Render bytes as indented lines of 80 characters, non-printables as '.'."""
    lines = []
    for start in range(0, len(data), _BINARY_RUN):
        chunk = data[start:start + _BINARY_RUN]
        text = "".join(chr(b) if 0x20 <= b < 0x7F else "." for b in chunk)
        lines.append("\n    " + text)
    return "".join(lines)


def format_hex(data: bytes) -> str:
    """Render bytes as space-separated hex pairs, sixteen per line."""
    parts = ["\n"]
    for count, byte in enumerate(data, start=1):
        parts.append(f" {byte:02x}")
        if count % _HEX_PER_LINE == 0:
            parts.append("\n")
    return "".join(parts)