# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Binary decoder for the ninja deps log.

File layout (all integers are 4-byte little-endian unsigned):

    header:  b"# ninjadeps\\n"  version
    record:  size  payload[size & 0x7FFFFFFF]

Bit 31 of `size` selects the record kind:
- clear: path-intern record, payload = path (NUL padded) + checksum
- set:   dependency record, payload = owner, mtime, dep_id*

There is no footer or record count; end of stream ends the log. Any short
read or malformed payload aborts the whole load, and no partial index is
returned to the caller.
"""

import logging
import struct
from pathlib import Path
from typing import BinaryIO, Iterator, Optional, Union

from ninja_deps.index import DependencyIndex
from ninja_deps.models import (
    DEPS_RECORD_FLAG,
    MAGIC,
    PAYLOAD_SIZE_MASK,
    DepsLogHeader,
    DepsRecord,
    PathRecord,
    Record,
    dedupe_preserving_order,
)

logger = logging.getLogger(__name__)

_UINT32 = struct.Struct("<I")

# owner + mtime
_DEPS_PREFIX_SIZE = 8
_CHECKSUM_SIZE = 4


class DepsLogError(Exception):
    """Base class for every failure while decoding a deps log."""

    pass


class FormatError(DepsLogError):
    """Raised when the file does not start with the deps log magic."""

    pass


class TruncatedRecordError(DepsLogError):
    """Raised on a short read of the version, a size field or a payload."""

    pass


class MalformedRecordError(DepsLogError):
    """Raised when a record payload cannot hold its record kind."""

    pass


class UndefinedNodeError(DepsLogError):
    """Raised when a dependency record names an id that is not yet a node."""

    pass


def _read_exact(stream: BinaryIO, size: int, what: str) -> bytes:
    """Read exactly `size` bytes or raise TruncatedRecordError."""
    data = stream.read(size)
    if len(data) != size:
        raise TruncatedRecordError(f"Truncated {what}: expected {size} bytes, got {len(data)}")
    return data


def read_header(stream: BinaryIO) -> DepsLogHeader:
    """Validate the magic marker and read the format version.

    Leaves the stream positioned at the first record's size field.

    Raises:
        FormatError: If the magic does not match.
        TruncatedRecordError: If the stream ends inside the header.
    """
    magic = stream.read(len(MAGIC))
    if len(magic) < len(MAGIC) and MAGIC.startswith(magic):
        raise TruncatedRecordError(
            f"Truncated header: expected {len(MAGIC)} magic bytes, got {len(magic)}"
        )
    if magic != MAGIC:
        raise FormatError(f"Bad deps log magic: {magic!r}")

    (version,) = _UINT32.unpack(_read_exact(stream, _UINT32.size, "version field"))
    return DepsLogHeader(version=version)


def decode_deps_payload(payload: bytes) -> DepsRecord:
    """Decode `[owner, mtime, dep_id*]` and dedupe the dependency ids.

    Raises:
        MalformedRecordError: If the payload is shorter than the fixed prefix
            or is not a whole number of 4-byte integers.
    """
    if len(payload) < _DEPS_PREFIX_SIZE:
        raise MalformedRecordError(
            f"Dependency record too short: {len(payload)} bytes, need {_DEPS_PREFIX_SIZE}"
        )
    if len(payload) % _UINT32.size:
        raise MalformedRecordError(
            f"Dependency record length {len(payload)} is not a multiple of {_UINT32.size}"
        )

    values = [value for (value,) in _UINT32.iter_unpack(payload)]
    owner, mtime = values[0], values[1]
    return DepsRecord(owner=owner, mtime=mtime, deps=dedupe_preserving_order(values[2:]))


def decode_path_payload(payload: bytes) -> PathRecord:
    """Decode a NUL-terminated or NUL-padded path followed by its checksum.

    Raises:
        MalformedRecordError: If there is no room for a path or the path is empty.
    """
    if len(payload) <= _CHECKSUM_SIZE:
        raise MalformedRecordError(f"Path record too short: {len(payload)} bytes")

    raw_path = payload[:-_CHECKSUM_SIZE]
    (checksum,) = _UINT32.unpack(payload[-_CHECKSUM_SIZE:])

    nul = raw_path.find(b"\0")
    if nul != -1:
        raw_path = raw_path[:nul]
    if not raw_path:
        raise MalformedRecordError("Path record has an empty path")

    return PathRecord(path=raw_path.decode("utf-8", "surrogateescape"), checksum=checksum)


def read_record(stream: BinaryIO) -> Optional[Record]:
    """Read one record.

    Returns:
        The decoded record, or None at a clean end of stream.

    Raises:
        TruncatedRecordError: On a partial size field or short payload.
        MalformedRecordError: If the payload does not fit its record kind.
    """
    size_bytes = stream.read(_UINT32.size)
    if not size_bytes:
        return None
    if len(size_bytes) != _UINT32.size:
        raise TruncatedRecordError(
            f"Truncated record size field: expected {_UINT32.size} bytes, got {len(size_bytes)}"
        )

    (size,) = _UINT32.unpack(size_bytes)
    is_deps = bool(size & DEPS_RECORD_FLAG)
    payload = _read_exact(stream, size & PAYLOAD_SIZE_MASK, "record payload")

    if is_deps:
        return decode_deps_payload(payload)
    return decode_path_payload(payload)


def iter_records(stream: BinaryIO) -> Iterator[Record]:
    """Yield records until end of stream. Header must already be consumed."""
    while True:
        record = read_record(stream)
        if record is None:
            return
        yield record


class DepsLogLoader:
    """Builds a frozen DependencyIndex from a deps log stream.

    With `strict_node_ids` enabled, a dependency record naming an owner or
    dependency id that has not been interned yet fails the load with
    UndefinedNodeError. With it disabled the record is accepted and the
    problem surfaces when the id is rendered (NodeNotFoundError).
    """

    def __init__(self, strict_node_ids: bool = True) -> None:
        self.strict_node_ids = strict_node_ids

    def _check_ids(self, index: DependencyIndex, record: DepsRecord) -> None:
        count = index.node_count
        if record.owner >= count:
            raise UndefinedNodeError(
                f"Dependency record owner {record.owner} is not a defined node "
                f"(node count: {count})"
            )
        for dep in record.deps:
            if dep >= count:
                raise UndefinedNodeError(
                    f"Node {record.owner} depends on undefined node {dep} (node count: {count})"
                )

    def load_stream(self, stream: BinaryIO) -> DependencyIndex:
        """Decode a whole stream into a new frozen index."""
        header = read_header(stream)
        index = DependencyIndex(version=header.version)

        records = 0
        for record in iter_records(stream):
            if self.strict_node_ids and isinstance(record, DepsRecord):
                self._check_ids(index, record)
            index.apply(record)
            records += 1

        index.freeze()
        logger.info(
            f"Loaded deps log version {header.version}: {records} records, "
            f"{index.node_count} nodes, {len(index.owners())} owners",
            extra={
                "extra_fields": {
                    "version": header.version,
                    "records": records,
                    "nodes": index.node_count,
                    "owners": len(index.owners()),
                }
            },
        )
        return index

    def load(self, path: Union[str, Path]) -> DependencyIndex:
        """Open and decode a deps log file.

        Raises:
            OSError: If the file cannot be opened.
            DepsLogError: If the contents are not a valid deps log.
        """
        path = Path(path)
        logger.info(f"Loading deps log from {path}")
        with open(path, "rb") as f:
            return self.load_stream(f)


def load_deps_log(path: Union[str, Path], strict_node_ids: bool = True) -> DependencyIndex:
    """Load a deps log file into a frozen DependencyIndex."""
    return DepsLogLoader(strict_node_ids=strict_node_ids).load(path)
