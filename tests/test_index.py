# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Tests for DependencyIndex."""

import logging

import pytest

from ninja_deps.index import DependencyIndex, IndexFrozenError, NodeNotFoundError
from ninja_deps.models import DepsRecord, Node, PathRecord


def _index(*paths):
    index = DependencyIndex(version=4)
    for path in paths:
        index.add_node(path)
    return index


def test_add_node_returns_sequential_ids():
    index = DependencyIndex()
    assert index.add_node("a.o") == 0
    assert index.add_node("b.o") == 1
    assert index.node_count == 2


def test_resolve_unknown_path_returns_none():
    index = _index("a.o")
    assert index.resolve("b.o") is None
    assert index.resolve("A.O") is None


def test_duplicate_path_keeps_first_id_but_consumes_next(caplog):
    caplog.set_level(logging.WARNING, logger="ninja_deps.index")
    index = _index("a.o", "a.o", "b.o")
    assert index.resolve("a.o") == 0
    assert index.resolve("b.o") == 2
    assert index.path_of(1) == "a.o"
    assert "interned again" in caplog.text


def test_path_of_out_of_range_raises():
    index = _index("a.o")
    with pytest.raises(NodeNotFoundError) as exc_info:
        index.path_of(1)
    assert exc_info.value.node_id == 1
    with pytest.raises(NodeNotFoundError):
        index.path_of(-1)


def test_node_lookup():
    index = _index("a.o")
    assert index.node(0) == Node(node_id=0, path="a.o")


def test_set_dependencies_replaces_forward_list():
    index = _index("a.o", "b.h", "c.h")
    index.set_dependencies(0, [1, 2], mtime=5)
    index.set_dependencies(0, [2], mtime=6)
    assert index.forward_deps(0) == (2,)
    assert index.mtime_of(0) == 6


def test_set_dependencies_appends_reverse_entries():
    index = _index("a.o", "b.h", "c.h")
    index.set_dependencies(0, [1, 2])
    index.set_dependencies(0, [2])
    assert index.reverse_deps(1) == (0,)
    assert index.reverse_deps(2) == (0, 0)


def test_empty_dependency_record_still_counts_as_entry():
    index = _index("x")
    index.set_dependencies(0, [])
    assert index.has_dependency_record(0)
    assert index.forward_deps(0) == ()
    assert index.owners() == [0]


def test_missing_entries_are_empty():
    index = _index("a.o")
    assert index.forward_deps(0) == ()
    assert index.reverse_deps(0) == ()
    assert index.mtime_of(0) is None
    assert not index.has_dependency_record(0)


def test_apply_dispatches_record_kinds():
    index = DependencyIndex()
    index.apply(PathRecord(path="a.o"))
    index.apply(PathRecord(path="a.c"))
    index.apply(DepsRecord(owner=0, mtime=3, deps=(1,)))
    assert index.forward_deps(0) == (1,)
    assert index.reverse_deps(1) == (0,)


def test_apply_rejects_unknown_records():
    with pytest.raises(TypeError):
        DependencyIndex().apply("a.o")  # type: ignore[arg-type]


def test_frozen_index_rejects_mutation():
    index = _index("a.o")
    index.freeze()
    with pytest.raises(IndexFrozenError):
        index.add_node("b.o")
    with pytest.raises(IndexFrozenError):
        index.set_dependencies(0, [])


def test_reverse_deps_returns_snapshot():
    index = _index("a.o", "b.h")
    index.set_dependencies(0, [1])
    deps = index.reverse_deps(1)
    index.set_dependencies(0, [1])
    assert deps == (0,)
    assert index.reverse_deps(1) == (0, 0)


def test_owners_sorted_numerically():
    index = _index(*[f"n{i}" for i in range(12)])
    for owner in (10, 2, 11, 1):
        index.set_dependencies(owner, [0])
    assert index.owners() == [1, 2, 10, 11]


def test_edge_count_uses_current_forward_state():
    index = _index("a.o", "b.h", "c.h")
    index.set_dependencies(0, [1, 2])
    index.set_dependencies(0, [1])
    assert index.edge_count() == 1


def test_validate_consistent_index():
    index = _index("a.o", "b.h")
    index.set_dependencies(0, [1])
    assert index.validate() == (True, [])


def test_validate_reports_undefined_ids():
    index = _index("a.o")
    index.set_dependencies(0, [4])
    index.set_dependencies(9, [0])
    is_valid, issues = index.validate()
    assert not is_valid
    assert "Node 0 depends on undefined node 4" in issues
    assert "Dependency record owner 9 is not a defined node" in issues
    assert "Reverse entry for undefined node 4" in issues


def test_export_to_dict():
    index = _index("a.o", "b.h")
    index.set_dependencies(0, [1], mtime=42)
    exported = index.export_to_dict()
    assert exported["header"] == {"magic": "# ninjadeps", "version": 4}
    assert exported["nodes"] == [{"id": 0, "path": "a.o"}, {"id": 1, "path": "b.h"}]
    assert exported["forward"] == {"0": {"mtime": 42, "deps": [1]}}
    assert exported["reverse"] == {"1": [0]}


def test_export_to_dict_replaces_undecodable_bytes():
    index = _index(b"caf\xe9.h".decode("utf-8", "surrogateescape"))
    exported = index.export_to_dict()
    assert exported["nodes"] == [{"id": 0, "path": "caf�.h"}]
