"""Block-chained packet format: building, locating fields and incremental parsing.

A packet is a list of blocks. Every block starts with a 4-byte length of the
*next* block (0 for the last one). The first block carries the packet header
right after that length: first block length, total length, message id.
"""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass, field
from typing import Any, ClassVar, Optional, Sequence

from .itq import PACKET_PASSTHRU_ID

BLOCK_HEADER = struct.Struct("<I")
_HEADER = struct.Struct("<III")
HEADER_SIZE = BLOCK_HEADER.size + _HEADER.size
DEFAULT_BLOCK_SIZE = 8192


class FieldType(enum.IntEnum):
    """Types of fields described in packet type records."""

    BOOL = 1
    INT = 2
    UNSIGNED_INT = 3
    LONG = 4
    UNSIGNED_LONG = 5
    STRING = 6
    CHAR = 7
    LIST = 8


@dataclass(frozen=True)
class PacketHeader:
    """The header at the head of a packet's first block."""

    first_len: int
    total_len: int
    msg_id: int

    SIZE: ClassVar[int] = _HEADER.size

    def pack(self) -> bytes:
        return _HEADER.pack(self.first_len, self.total_len, self.msg_id)

    @classmethod
    def unpack(cls, data: bytes) -> "PacketHeader":
        if len(data) < _HEADER.size:
            raise ValueError(f"packet header needs {_HEADER.size} bytes, got {len(data)}")
        return cls(*_HEADER.unpack_from(data))


def pkt_find(blocks: Sequence[bytes], offset: int) -> Optional[memoryview]:
    """Bytes from a packet-wide offset to the end of the block holding it.

    Offset 0 is the null offset and gives None, as does an offset past the end.
    """
    if offset < 0:
        raise ValueError(f"negative packet offset: {offset}")
    if offset == 0:
        return None
    for block in blocks:
        if offset < len(block):
            return memoryview(block)[offset:]
        offset -= len(block)
    return None


@dataclass(frozen=True)
class Packet:
    """A complete packet as a header and its blocks."""

    header: PacketHeader
    blocks: tuple[bytes, ...]

    @property
    def msg_id(self) -> int:
        return self.header.msg_id

    def find(self, offset: int) -> Optional[memoryview]:
        return pkt_find(self.blocks, offset)

    def raw(self) -> bytes:
        return b"".join(self.blocks)


@dataclass
class _Block:
    capacity: int
    data: bytearray = field(default_factory=bytearray)

    @property
    def available(self) -> int:
        return self.capacity - len(self.data)


class PacketWriter:
    """Builds packets; optionally hands finished packets to an inter-thread writer."""

    def __init__(self, it_writer: Any = None, block_size: int = DEFAULT_BLOCK_SIZE) -> None:
        if block_size <= 0:
            raise ValueError("block size must be positive")
        self.it_writer = it_writer
        self.block_size = block_size
        self._blocks: list[_Block] = []
        self._msg_id: Optional[int] = None

    def _require_open(self) -> None:
        if self._msg_id is None:
            raise RuntimeError("packet writer is not open")

    def _length(self) -> int:
        return sum(len(block.data) for block in self._blocks)

    def open(self, msg_id: int, size: int) -> int:
        """Start a packet; returns the offset of its zero-filled fixed part."""
        self._blocks = []
        self._msg_id = msg_id
        self.alloc_bytes(_HEADER.size)
        return self.alloc_bytes(size)

    def alloc_bytes(self, nb: int) -> int:
        """Reserve nb zeroed bytes and return their packet-wide offset.

        The space never straddles blocks; a new block starts with room for its
        block header.
        """
        self._require_open()
        if nb < 0:
            raise ValueError("cannot allocate a negative number of bytes")
        tail = self._blocks[-1] if self._blocks else None
        if tail is not None and nb <= tail.available:
            offset = self._length()
            tail.data.extend(bytes(nb))
            return offset
        offset = self._length() + BLOCK_HEADER.size
        needed = BLOCK_HEADER.size + nb
        block = _Block(max(self.block_size, needed))
        block.data.extend(bytes(needed))
        self._blocks.append(block)
        return offset

    def write_at(self, offset: int, data: bytes) -> None:
        """Copy data into already allocated space at a packet-wide offset."""
        self._require_open()
        local = offset
        if local < 0:
            raise ValueError(f"negative packet offset: {offset}")
        for block in self._blocks:
            if local < len(block.data):
                if local + len(data) > len(block.data):
                    raise ValueError(f"write of {len(data)} bytes at {offset} leaves its block")
                block.data[local:local + len(data)] = data
                return
            local -= len(block.data)
        raise ValueError(f"offset {offset} is outside the packet")

    def finish(self) -> Packet:
        """Fill in lengths, produce the packet and reset the writer."""
        self._require_open()
        blocks = self._blocks
        header = PacketHeader(len(blocks[0].data), self._length(), self._msg_id)
        blocks[0].data[BLOCK_HEADER.size:HEADER_SIZE] = header.pack()
        successors = blocks[1:] + [None]
        for block, following in zip(blocks, successors):
            next_len = len(following.data) if following is not None else 0
            BLOCK_HEADER.pack_into(block.data, 0, next_len)
        packet = Packet(header, tuple(bytes(block.data) for block in blocks))
        self._blocks = []
        self._msg_id = None
        if self.it_writer is not None:
            self.it_writer.send(PACKET_PASSTHRU_ID, packet, False)
        return packet


class PacketReader:
    """Reassembles packets from a byte stream fed in arbitrary pieces."""

    def __init__(self) -> None:
        self._head = bytearray()
        self._current: Optional[bytearray] = None
        self._need = 0
        self._header: Optional[PacketHeader] = None
        self._blocks: list[bytes] = []

    def _reset(self) -> None:
        self._head = bytearray()
        self._current = None
        self._need = 0
        self._header = None
        self._blocks = []

    def _block_done(self) -> Optional[Packet]:
        block = bytes(self._current)
        self._blocks.append(block)
        next_len = BLOCK_HEADER.unpack_from(block)[0]
        if next_len == 0:
            packet = Packet(self._header, tuple(self._blocks))
            self._reset()
            return packet
        if next_len < BLOCK_HEADER.size:
            raise ValueError(f"block length {next_len} is smaller than its header")
        self._current = bytearray()
        self._need = next_len
        return None

    def feed(self, data: bytes) -> list[Packet]:
        """Consume bytes; return the packets completed by them, in order."""
        view = memoryview(data)
        pos = 0
        packets: list[Packet] = []
        while pos < len(view):
            if self._current is None:
                take = min(HEADER_SIZE - len(self._head), len(view) - pos)
                self._head += view[pos:pos + take]
                pos += take
                if len(self._head) < HEADER_SIZE:
                    continue
                header = PacketHeader.unpack(bytes(self._head[BLOCK_HEADER.size:]))
                if header.first_len < HEADER_SIZE:
                    raise ValueError(f"first block length {header.first_len} is too small")
                self._header = header
                self._current = bytearray(self._head)
                self._head = bytearray()
                self._need = header.first_len
            take = min(self._need - len(self._current), len(view) - pos)
            self._current += view[pos:pos + take]
            pos += take
            if len(self._current) == self._need:
                packet = self._block_done()
                if packet is not None:
                    packets.append(packet)
        return packets