# pktbroker

`pktbroker` is a library of building blocks for programs that pass framed
binary packets between processes and threads. It provides the packet wire
format, a queue for handing messages between threads, buffered non-blocking
output, IPv4 socket helpers, TLS contexts and host name checks, line-oriented
logging, calendar date helpers and PID file handling.

## Installing

```
pip install .
```

To run the test suite:

```
pip install .[test]
pytest
```

## Modules

- `pktbroker.log`: `Logger` with `fatal`, `error`, `warning`, `message` and
  per-realm `debug` output. Debug realms (`DebugRealm`) are switched on with
  `Logger.enable` and checked with `Logger.enabled`. `fatal` logs the line and
  then raises `FatalError`. Output goes through a `LineBufferedWriter`, which
  hands text to its sink a line at a time. The helpers `format_time`,
  `format_binary` and `format_hex` render timestamps and raw bytes.
- `pktbroker.itq`: `ItQueue` and `ItWriter`. Threads register a writer with
  `ItQueue.register_writer`, send `ItMessage` values with `ItWriter.send`, and
  the reader takes them with `ItQueue.wait` (which raises `TimeoutError` when
  a timeout expires) or checks for them with `ItQueue.poll`.
- `pktbroker.packet`: the wire format. A packet is a chain of blocks, each
  starting with the 4-byte length of the next one; the first block carries a
  `PacketHeader` (first block length, total length, message id).
  `PacketWriter` builds packets (`open`, `alloc_bytes`, `write_at`,
  `finish`), `PacketReader.feed` reassembles them from a byte stream fed in
  pieces of any size, and `Packet.find` / `pkt_find` address a byte by its
  packet-wide offset. `FieldType` lists the field types a packet layout can
  describe.
- `pktbroker.writebuf`: `WriteBuffer` writes blocks straight through while it
  can and queues the rest until `write_ready` is called; `send_eos` ends the
  stream once the queue is flushed. `Process` starts a shell command with
  pipes to its stdin and from its stdout and feeds its stdin through a
  `WriteBuffer`.
- `pktbroker.net`: `inet_listen`, `inet_connect`, `make_non_blocking` and
  `lookup_host` for IPv4 TCP sockets.
- `pktbroker.tls`: `client_context`, `server_context`,
  `public_client_context`, `internal_client_context` and
  `internal_server_context` build `ssl.SSLContext` objects (raising
  `TlsError` when a key or certificate cannot be loaded); `check_name` and
  `host_match` check a peer certificate against a host name; `tls_read` and
  `tls_write` do non-blocking TLS I/O.
- `pktbroker.dates`: `Date`, `days_between`, `days_since` and `parse_date`.
- `pktbroker.background`: `open_pid_file`, `write_pid_file` and
  `maybe_background`, which claims a PID file and can detach the process with
  its output sent to a log file. Failures raise `PidFileError`.

## Examples

Building a packet and reading it back from a byte stream:

```python
from pktbroker.packet import PacketReader, PacketWriter

writer = PacketWriter()
offset = writer.open(msg_id=42, size=4)
writer.write_at(offset, b"ping")
packet = writer.finish()

reader = PacketReader()
received = reader.feed(packet.raw())
received[0].msg_id           # 42
bytes(received[0].find(offset)[:4])   # b'ping'
```

Passing a message between threads:

```python
from pktbroker.itq import ItQueue

queue = ItQueue()
sender = queue.register_writer(None, None)
sender.send(7, "hello")
queue.wait(1.0)   # ItMessage(msg_id=7, writer_id=0, payload='hello')
```

Host names are matched against certificate patterns. A leading `*.` in the
pattern stands for exactly one label:

```python
from pktbroker.tls import check_name

check_name("db.example.com", "*.example.com")   # True
check_name("example.com", "*.example.com")      # False
```

Dates are compared and measured in whole days:

```python
from pktbroker.dates import Date, days_between, parse_date

days_between(Date(2024, 1, 1), Date(2024, 3, 1))   # 60
parse_date("2024-03-01")                            # Date(year=2024, month=3, day=1)
```

## What the package does not do

The package has no command to run and no server. It does not include an
event loop that waits on sockets and signals, connection objects that read
and write packets over sockets, or a broker that forwards packets to
subscribed clients, retains recent packets or posts them to a database. The
modules above are the pieces such a program would be built from; wiring them
into a running service is left to the code that uses them.