import os

import pytest

from pktbroker.writebuf import Process, WriteBuffer


class Sink:
    def __init__(self, limit=None):
        self.limit = limit
        self.data = bytearray()
        self.fail = False
        self.calls = 0

    def __call__(self, chunk):
        self.calls += 1
        if self.fail:
            raise BrokenPipeError("closed")
        count = len(chunk) if self.limit is None else min(self.limit, len(chunk))
        self.data += bytes(chunk[:count])
        return count


def _buffer(sink):
    events = []
    buf = WriteBuffer(
        sink,
        on_close=lambda: events.append("close"),
        on_eos=lambda: events.append("eos"),
        on_want_write=lambda value: events.append(("want", value)),
    )
    return buf, events


def test_send_writes_everything_when_possible():
    sink = Sink()
    buf, events = _buffer(sink)
    buf.send([b"hello", b"world"])
    assert sink.data == b"helloworld"
    assert buf.pending == 0
    assert buf.want_write is False
    assert events == []


def test_send_accepts_single_bytes():
    sink = Sink()
    buf, _ = _buffer(sink)
    buf.send(b"abc")
    assert sink.data == b"abc"


def test_partial_write_queues_remainder():
    sink = Sink(limit=3)
    buf, events = _buffer(sink)
    buf.send([b"hello", b"world"])
    assert sink.data == b"hel"
    assert buf.pending == len(b"helloworld") - 3
    assert buf.want_write is True
    assert events == [("want", True)]


def test_write_ready_flushes_queue_then_stops_wanting():
    sink = Sink(limit=3)
    buf, events = _buffer(sink)
    buf.send([b"hello", b"world"])
    sink.limit = None
    buf.write_ready()
    assert sink.data == b"helloworld"
    assert buf.pending == 0
    buf.write_ready()
    assert buf.want_write is False
    assert events[-1] == ("want", False)


def test_write_ready_partial_keeps_rest_in_order():
    sink = Sink(limit=3)
    buf, _ = _buffer(sink)
    buf.send([b"abcdef", b"gh"])
    buf.write_ready()
    buf.write_ready()
    buf.write_ready()
    assert sink.data == b"abcdefgh"
    assert buf.pending == 0


def test_send_while_wanting_write_only_queues():
    sink = Sink(limit=1)
    buf, _ = _buffer(sink)
    buf.send(b"ab")
    calls = sink.calls
    buf.send([b"cd", b"ef"])
    assert sink.calls == calls
    assert buf.pending == len(b"bcdef")


def test_write_error_calls_on_close_and_stops():
    sink = Sink()
    sink.fail = True
    buf, events = _buffer(sink)
    buf.send([b"one", b"two"])
    assert events == ["close"]
    assert sink.calls == 1
    assert buf.pending == 0


def test_write_error_during_flush_calls_on_close():
    sink = Sink(limit=1)
    buf, events = _buffer(sink)
    buf.send(b"xyz")
    sink.fail = True
    buf.write_ready()
    assert "close" in events
    assert buf.pending == 2


def test_send_eos_immediately_when_idle():
    buf, events = _buffer(Sink())
    buf.send_eos()
    assert buf.closed is True
    assert events == ["eos"]


def test_send_eos_deferred_until_flushed():
    sink = Sink(limit=2)
    buf, events = _buffer(sink)
    buf.send(b"abcd")
    buf.send_eos()
    assert buf.closed is False
    assert buf.close_on_flushed is True
    sink.limit = None
    buf.write_ready()
    assert buf.closed is True
    assert events[-1] == "eos"
    assert sink.data == b"abcd"


def test_process_echoes_through_cat():
    with Process("cat") as proc:
        assert proc.pid > 0
        proc.write_buffer.send(b"abc")
        received = b""
        while len(received) < 3:
            chunk = os.read(proc.stdout_fd, 3 - len(received))
            assert chunk
            received += chunk
    assert received == b"abc"


def test_process_exit_status():
    with Process("exit 3") as proc:
        pass
    assert proc.returncode == 3


def test_process_cannot_start_twice():
    proc = Process("true")
    with proc:
        with pytest.raises(RuntimeError):
            proc.start()


def test_unstarted_process_has_no_fds():
    with pytest.raises(RuntimeError):
        Process("true").stdin_fd