"""
SubSearch Storage
=================
Snapshot persistence for the search index.

Usage:
    from storage import encode_entries, decode_entries, write_snapshot
    from storage.snapshot_store import SnapshotStore

snapshot_store is not re-exported here: it depends on the indexing
package, which itself imports storage.snapshot.
"""

from storage.snapshot import (
    MAGIC_BYTES, FORMAT_VERSION,
    SerializationError, SnapshotCorruptionError,
    encode_entries, decode_entries, write_snapshot, read_snapshot, sync_stream,
)

__all__ = [
    "MAGIC_BYTES", "FORMAT_VERSION",
    "SerializationError", "SnapshotCorruptionError",
    "encode_entries", "decode_entries", "write_snapshot", "read_snapshot", "sync_stream",
]
