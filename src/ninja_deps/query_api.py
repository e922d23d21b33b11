# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Query API for a loaded dependency index.

API Methods:
- resolve(path): Node id of an interned path
- forward_deps(node_id) / reverse_deps(node_id): Neighbor id lists
- path_of(node_id): Path of a node
- query(targets, reverse): Neighbor paths for a list of targets, CLI output order
- get_dependencies(path) / get_dependents(path): JSON-compatible results
- get_statistics(): Counts and integrity issues
- export_index(): The whole index as a JSON-compatible dict

The dict-returning methods feed JSON transports, so their paths go through
printable_path(). query() returns paths unchanged; the CLI writes them back
as the original bytes.

Targets that do not resolve produce no output. This is a contract of the
query command, not an error condition.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ninja_deps.index import DependencyIndex
from ninja_deps.models import printable_path

logger = logging.getLogger(__name__)


class QueryAPI:
    """Read-only queries over a frozen DependencyIndex.

    Usage:
        index = load_deps_log(".ninja_deps")
        api = QueryAPI(index)
        for line in api.query(["foo.o"], reverse=False):
            print(line)
    """

    def __init__(self, index: DependencyIndex) -> None:
        self._index = index

    @property
    def index(self) -> DependencyIndex:
        return self._index

    def resolve(self, path: str) -> Optional[int]:
        return self._index.resolve(path)

    def forward_deps(self, node_id: int) -> Tuple[int, ...]:
        return self._index.forward_deps(node_id)

    def reverse_deps(self, node_id: int) -> Tuple[int, ...]:
        return self._index.reverse_deps(node_id)

    def path_of(self, node_id: int) -> str:
        return self._index.path_of(node_id)

    def neighbors(self, node_id: int, reverse: bool = False) -> Tuple[int, ...]:
        if reverse:
            return self.reverse_deps(node_id)
        return self.forward_deps(node_id)

    def query(self, targets: Iterable[str], reverse: bool = False) -> List[str]:
        """Resolve each target and collect its neighbor paths.

        Args:
            targets: Paths to look up, processed in the given order.
            reverse: If True, list dependents instead of dependencies.

        Returns:
            Neighbor paths in stored order, targets concatenated without
            separators. Unresolvable targets contribute nothing.
        """
        lines: List[str] = []
        for target in targets:
            node_id = self.resolve(target)
            if node_id is None:
                logger.debug(f"Skipping unknown target {target!r}")
                continue
            lines.extend(self.path_of(n) for n in self.neighbors(node_id, reverse))
        return lines

    def get_dependencies(self, path: str) -> Dict[str, Any]:
        """Get the current dependencies of a path.

        Returns:
            Dictionary with:
            - path: The queried path
            - found: Whether the path is interned
            - id: Node id (None if not found)
            - has_record: Whether the node has a dependency record
            - mtime: Mtime of its most recent record (None if no record)
            - dependencies: List of dependency paths in stored order
        """
        node_id = self.resolve(path)
        if node_id is None:
            return {
                "path": path,
                "found": False,
                "id": None,
                "has_record": False,
                "mtime": None,
                "dependencies": [],
            }
        return {
            "path": path,
            "found": True,
            "id": node_id,
            "has_record": self._index.has_dependency_record(node_id),
            "mtime": self._index.mtime_of(node_id),
            "dependencies": [printable_path(self.path_of(n)) for n in self.forward_deps(node_id)],
        }

    def get_dependents(self, path: str) -> Dict[str, Any]:
        """Get every owner that has referenced a path.

        Owners appear once per record that named the path, so a path can be
        listed more than once.

        Returns:
            Dictionary with:
            - path: The queried path
            - found: Whether the path is interned
            - id: Node id (None if not found)
            - dependents: List of owner paths in file order
        """
        node_id = self.resolve(path)
        if node_id is None:
            return {"path": path, "found": False, "id": None, "dependents": []}
        return {
            "path": path,
            "found": True,
            "id": node_id,
            "dependents": [printable_path(self.path_of(n)) for n in self.reverse_deps(node_id)],
        }

    def get_statistics(self) -> Dict[str, Any]:
        """Counts and integrity issues for the loaded index."""
        is_valid, issues = self._index.validate()
        return {
            "version": self._index.version,
            "nodes": self._index.node_count,
            "owners": len(self._index.owners()),
            "edges": self._index.edge_count(),
            "valid": is_valid,
            "issues": issues,
        }

    def export_index(self) -> Dict[str, Any]:
        """The whole index: header, nodes, forward and reverse maps."""
        return self._index.export_to_dict()
