"""Inter-thread message queue with registered writers."""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Optional

PACKET_PASSTHRU_ID = 1

_MAX_ID = 0xFFFF


@dataclass(frozen=True)
class ItMessage:
    """A message taken from an ItQueue."""

    msg_id: int
    writer_id: int
    payload: Any = None


@dataclass
class ItWriter:
    """One thread's handle for sending into a queue read by another thread.

    The reader, if given, may set ``recv_requires_signal`` and provide a
    ``wake()`` method that is called when a message needs its attention.
    """

    writer: Any
    reader: Any
    queue: "ItQueue" = field(repr=False)
    id: int = -1

    def send(self, msg_id: int, payload: Any = None, send_signal: bool = False) -> ItMessage:
        if not 0 <= msg_id <= _MAX_ID:
            raise ValueError(f"message id out of range: {msg_id}")
        message = ItMessage(msg_id, self.id, payload)
        self.queue._put(message)
        if self.reader is not None and (
            send_signal or getattr(self.reader, "recv_requires_signal", False)
        ):
            wake = getattr(self.reader, "wake", None)
            if wake is not None:
                wake()
        return message


class ItQueue:
    """A FIFO of messages from any number of registered writers."""

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._messages: deque[ItMessage] = deque()
        self.writers: list[ItWriter] = []

    def register_writer(self, writer: Any, reader: Any) -> ItWriter:
        with self._cond:
            if len(self.writers) > _MAX_ID:
                raise ValueError("too many writers registered")
            it_writer = ItWriter(writer, reader, self, len(self.writers))
            self.writers.append(it_writer)
        return it_writer

    def _put(self, message: ItMessage) -> None:
        with self._cond:
            self._messages.append(message)
            self._cond.notify_all()

    def wait(self, timeout: Optional[float] = None) -> ItMessage:
        """Block until a message is available and return it.

        Raises TimeoutError if a timeout is given and it expires first.
        """
        with self._cond:
            if not self._cond.wait_for(lambda: bool(self._messages), timeout):
                raise TimeoutError("no message arrived before the timeout")
            return self._messages.popleft()

    def poll(self) -> bool:
        with self._cond:
            return bool(self._messages)