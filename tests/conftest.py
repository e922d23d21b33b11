# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Shared fixtures for deps log tests.

Deps logs are built in memory with DepsLogBuilder, which writes records the
same way ninja does: paths NUL padded to a 4-byte boundary followed by the
checksum ~id, dependency records as packed little-endian uint32 values.
"""

import io
import struct
from pathlib import Path
from typing import Iterable, List, Type, Union

import pytest

from ninja_deps.models import DEPS_RECORD_FLAG, MAGIC


class DepsLogBuilder:
    """Assembles deps log bytes record by record."""

    def __init__(self, version: int = 4) -> None:
        self._parts: List[bytes] = [MAGIC, struct.pack("<I", version)]
        self._next_id = 0

    def path(self, path: Union[str, bytes], pad: bool = True) -> "DepsLogBuilder":
        raw = path if isinstance(path, bytes) else path.encode("utf-8")
        if pad:
            raw += b"\0" * (-len(raw) % 4)
        checksum = ~self._next_id & 0xFFFFFFFF
        self._next_id += 1
        payload = raw + struct.pack("<I", checksum)
        self._parts.append(struct.pack("<I", len(payload)) + payload)
        return self

    def deps(self, owner: int, deps: Iterable[int], mtime: int = 0) -> "DepsLogBuilder":
        values = [owner, mtime, *deps]
        payload = struct.pack(f"<{len(values)}I", *values)
        self._parts.append(struct.pack("<I", len(payload) | DEPS_RECORD_FLAG) + payload)
        return self

    def raw(self, data: bytes) -> "DepsLogBuilder":
        self._parts.append(data)
        return self

    def build(self) -> bytes:
        return b"".join(self._parts)

    def stream(self) -> io.BytesIO:
        return io.BytesIO(self.build())

    def write(self, path: Path) -> Path:
        path.write_bytes(self.build())
        return path


@pytest.fixture
def builder() -> DepsLogBuilder:
    """A fresh builder for a version 4 deps log."""
    return DepsLogBuilder()


@pytest.fixture
def sample_log() -> DepsLogBuilder:
    """A small build: two objects, shared header, one rebuilt object.

    Nodes:
        0 foo.o   1 foo.c   2 common.h   3 bar.o   4 bar.c   5 extra.h

    foo.o is recorded twice; the second record drops common.h and adds
    extra.h, so common.h keeps foo.o in its reverse list from the first record.
    """
    return (
        DepsLogBuilder()
        .path("foo.o")
        .path("foo.c")
        .path("common.h")
        .deps(0, [1, 2], mtime=100)
        .path("bar.o")
        .path("bar.c")
        .deps(3, [4, 2], mtime=101)
        .path("extra.h")
        .deps(0, [1, 5], mtime=200)
    )


@pytest.fixture
def sample_log_file(tmp_path: Path, sample_log: DepsLogBuilder) -> Path:
    return sample_log.write(tmp_path / ".ninja_deps")


@pytest.fixture
def make_builder() -> Type[DepsLogBuilder]:
    """The builder class, for logs that need a non-default version."""
    return DepsLogBuilder
