# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Core data models for the ninja deps log.

This module defines the records decoded from a `.ninja_deps` file:
- DepsLogHeader: Magic marker and format version
- PathRecord: A path-intern record (defines the next node id)
- DepsRecord: A dependency record (owner, mtime, deduplicated deps)
- Record: Tagged union of the two record kinds
- Node: An interned path with its positional id

Paths are decoded with surrogateescape so undecodable bytes round-trip;
path_bytes() recovers them and printable_path() makes them display-safe.

All models use JSON-compatible primitives for serialization.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple, Union

# Magic marker at offset 0 of every deps log
MAGIC = b"# ninjadeps\n"

# Bit 31 of a record's size field marks a dependency record
DEPS_RECORD_FLAG = 0x80000000

# Low 31 bits of the size field hold the payload length
PAYLOAD_SIZE_MASK = 0x7FFFFFFF


@dataclass(frozen=True)
class DepsLogHeader:
    """Header of a deps log: the magic literal and the format version."""

    version: int
    magic: bytes = MAGIC

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        return {
            "magic": self.magic.decode("ascii").rstrip("\n"),
            "version": self.version,
        }


@dataclass(frozen=True)
class PathRecord:
    """A path-intern record.

    The record carries no id: the Nth PathRecord in the file defines node N.
    """

    path: str
    checksum: int = 0  # Stored in the log, never validated


@dataclass(frozen=True)
class DepsRecord:
    """A dependency record.

    `deps` is already deduplicated in first-occurrence order.
    """

    owner: int
    mtime: int
    deps: Tuple[int, ...] = field(default_factory=tuple)


Record = Union[PathRecord, DepsRecord]


@dataclass(frozen=True)
class Node:
    """An interned file path with a stable sequential id."""

    node_id: int
    path: str

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        return {"id": self.node_id, "path": printable_path(self.path)}


def path_bytes(path: str) -> bytes:
    """Original file-system bytes of a decoded path."""
    return path.encode("utf-8", "surrogateescape")


def printable_path(path: str) -> str:
    """Path with undecodable bytes replaced by U+FFFD, safe for JSON transports."""
    return path_bytes(path).decode("utf-8", "replace")


def dedupe_preserving_order(ids: List[int]) -> Tuple[int, ...]:
    """Drop repeated ids, keeping each id at its first occurrence."""
    seen = set()
    result = []
    for node_id in ids:
        if node_id in seen:
            continue
        seen.add(node_id)
        result.append(node_id)
    return tuple(result)
