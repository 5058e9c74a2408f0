"""
SubSearch Snapshot Format
=========================
Full-image binary serialization of the index's two-level mapping.

Layout (ALL multi-byte integers BIG-ENDIAN):
  header : magic(4s) format_version(H) flags(H) key_count(I)
  body   : key_count x [ key(str) id_count(I) id_count x [ id(str) value(str) ] ]
  str    : byte_len(I) + UTF-8 bytes
  trailer: crc32(I) over header + body

The blob is self-describing: a reader needs nothing but the bytes.
Keys and ids are written in sorted order so that equal indexes produce
byte-identical snapshots.

Restore re-applies the index invariants (lowercase values, no empty
inner mappings); the codec itself stores whatever it is given.
"""

import io
import os
import struct
import zlib
from typing import BinaryIO, Dict


# ─── Constants ──────────────────────────────────────────────────────────────

MAGIC_BYTES = b"SSDX"
FORMAT_VERSION = 1
MAX_STRING_BYTES = 0xFFFFFFFF

# Header struct: magic(4s) format_version(H) flags(H) key_count(I)
HEADER_FMT = ">4sHHI"
HEADER_STRUCT = struct.Struct(HEADER_FMT)

_COUNT = struct.Struct(">I")
_CRC = struct.Struct(">I")

Entries = Dict[str, Dict[str, str]]


class SerializationError(Exception):
    """Raised when the index structure cannot be encoded."""
    pass


class SnapshotCorruptionError(SerializationError):
    """Raised when a snapshot fails integrity checks (magic, version, CRC, framing)."""
    pass


# ─── Encoding ───────────────────────────────────────────────────────────────

def _pack_str(buf: bytearray, text: str) -> None:
    try:
        encoded = text.encode("utf-8")
    except UnicodeEncodeError as e:
        raise SerializationError(f"Cannot encode {text!r} as UTF-8: {e}") from e
    if len(encoded) > MAX_STRING_BYTES:
        raise SerializationError(
            f"String too long: {len(encoded)} bytes (max {MAX_STRING_BYTES})")
    buf.extend(_COUNT.pack(len(encoded)))
    buf.extend(encoded)


def encode_entries(entries: Entries) -> bytes:
    """Serialize outer key -> (id -> value) into a checksummed blob."""
    buf = bytearray(HEADER_STRUCT.pack(MAGIC_BYTES, FORMAT_VERSION, 0, len(entries)))

    for key in sorted(entries):
        items = entries[key]
        _pack_str(buf, key)
        buf.extend(_COUNT.pack(len(items)))
        for item_id in sorted(items):
            _pack_str(buf, item_id)
            _pack_str(buf, items[item_id])

    buf.extend(_CRC.pack(zlib.crc32(buf) & 0xFFFFFFFF))
    return bytes(buf)


# ─── Decoding ───────────────────────────────────────────────────────────────

class _Reader:
    """Bounds-checked cursor over the snapshot body."""
    __slots__ = ('data', 'offset', 'end')

    def __init__(self, data: bytes, offset: int, end: int):
        self.data = data
        self.offset = offset
        self.end = end

    def count(self) -> int:
        if self.offset + _COUNT.size > self.end:
            raise SnapshotCorruptionError(
                f"Truncated snapshot: count field at offset {self.offset}")
        value = _COUNT.unpack_from(self.data, self.offset)[0]
        self.offset += _COUNT.size
        return value

    def string(self) -> str:
        length = self.count()
        if self.offset + length > self.end:
            raise SnapshotCorruptionError(
                f"Truncated snapshot: {length}-byte string at offset {self.offset}")
        raw = self.data[self.offset:self.offset + length]
        self.offset += length
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise SnapshotCorruptionError(f"Invalid UTF-8 in snapshot: {e}") from e


def decode_entries(data: bytes) -> Entries:
    """
    Parse and verify a snapshot blob.
    Raises SnapshotCorruptionError on any framing, version or checksum problem.
    """
    min_size = HEADER_STRUCT.size + _CRC.size
    if len(data) < min_size:
        raise SnapshotCorruptionError(
            f"Snapshot too short: {len(data)} bytes (min {min_size})")

    magic, version, _flags, key_count = HEADER_STRUCT.unpack_from(data, 0)
    if magic != MAGIC_BYTES:
        raise SnapshotCorruptionError(f"Bad magic {magic!r}, expected {MAGIC_BYTES!r}")
    if version != FORMAT_VERSION:
        raise SnapshotCorruptionError(
            f"Unsupported snapshot format version {version} (expected {FORMAT_VERSION})")

    body_end = len(data) - _CRC.size
    stored_crc = _CRC.unpack_from(data, body_end)[0]
    computed_crc = zlib.crc32(data[:body_end]) & 0xFFFFFFFF
    if stored_crc != computed_crc:
        raise SnapshotCorruptionError(
            f"Checksum mismatch: stored=0x{stored_crc:08X}, computed=0x{computed_crc:08X}")

    reader = _Reader(data, HEADER_STRUCT.size, body_end)
    entries: Entries = {}
    for _ in range(key_count):
        key = reader.string()
        id_count = reader.count()
        items: Dict[str, str] = {}
        for _ in range(id_count):
            item_id = reader.string()
            items[item_id] = reader.string()
        entries[key] = items

    if reader.offset != body_end:
        raise SnapshotCorruptionError(
            f"Trailing data in snapshot: {body_end - reader.offset} bytes")

    return entries


# ─── Stream I/O ─────────────────────────────────────────────────────────────

def sync_stream(stream) -> None:
    """
    Flush Python buffers and fsync when the stream is file-backed.
    In-memory streams (io.BytesIO) have no descriptor and stop at flush().
    """
    stream.flush()
    try:
        fd = stream.fileno()
    except (AttributeError, io.UnsupportedOperation):
        return
    os.fsync(fd)


def write_snapshot(destination: BinaryIO, entries: Entries) -> int:
    """
    Encode entries, write them to destination and force them to disk.
    OSError from write/flush/fsync propagates unchanged.
    Returns the number of bytes written.
    """
    blob = encode_entries(entries)
    destination.write(blob)
    sync_stream(destination)
    return len(blob)


def read_snapshot(source: BinaryIO) -> Entries:
    """Read a whole snapshot stream and decode it."""
    return decode_entries(source.read())
