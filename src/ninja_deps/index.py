# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""In-memory dependency index built from a deps log.

The index owns three structures:
- Node table: id -> path and path -> id, ids assigned in arrival order
- Forward deps: owner id -> deduplicated dependency ids (last record wins)
- Reverse deps: dependency id -> owner ids, accumulated across every record

The asymmetry is deliberate. Forward state is the most recent build's
measured dependencies; reverse state is the history of every owner that has
ever referenced a node, so an owner appears once per record that named it.

The index is populated by the loader and then frozen. Consumers only read.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ninja_deps.models import DepsLogHeader, DepsRecord, Node, PathRecord, Record

logger = logging.getLogger(__name__)


class NodeNotFoundError(LookupError):
    """Raised when a node id is outside the interned node table."""

    def __init__(self, node_id: int, node_count: int) -> None:
        super().__init__(f"node id {node_id} is not defined (node count: {node_count})")
        self.node_id = node_id
        self.node_count = node_count


class IndexFrozenError(RuntimeError):
    """Raised when a frozen index is mutated."""

    pass


class DependencyIndex:
    """Node table plus forward and reverse adjacency for a deps log.

    Data Structure:
    - _paths: List of interned paths, position == node id
    - _ids: Map path -> first id it was interned under
    - _forward: Map owner id -> tuple of dependency ids
    - _mtimes: Map owner id -> mtime of its most recent record
    - _reverse: Map dependency id -> list of owner ids, file order

    NOT thread-safe. Built once per invocation, then frozen.
    """

    def __init__(self, version: int = 0) -> None:
        self.version = version
        self._paths: List[str] = []
        self._ids: Dict[str, int] = {}
        self._forward: Dict[int, Tuple[int, ...]] = {}
        self._mtimes: Dict[int, int] = {}
        self._reverse: Dict[int, List[int]] = {}
        self._frozen = False

    # Build operations

    def _check_mutable(self) -> None:
        if self._frozen:
            raise IndexFrozenError("dependency index is frozen")

    def add_node(self, path: str) -> int:
        """Intern a path under the next sequential id.

        Args:
            path: Path string from a path-intern record.

        Returns:
            The id assigned to this record.
        """
        self._check_mutable()
        node_id = len(self._paths)
        self._paths.append(path)
        if path in self._ids:
            # Positional ids must still advance; resolve() keeps the first id
            logger.warning(
                f"Path {path!r} interned again as node {node_id} "
                f"(first seen as node {self._ids[path]})"
            )
        else:
            self._ids[path] = node_id
        return node_id

    def set_dependencies(self, owner: int, deps: Iterable[int], mtime: int = 0) -> None:
        """Record a dependency list for an owner.

        The forward list replaces any previous list for `owner`. Each dependency
        gains one more `owner` entry in its reverse list, even if an earlier
        record already named it.

        Args:
            owner: Node id owning the dependency list.
            deps: Dependency ids, already deduplicated by the decoder.
            mtime: Modification time stored with the record.
        """
        self._check_mutable()
        deps = tuple(deps)
        self._forward[owner] = deps
        self._mtimes[owner] = mtime
        for dep in deps:
            self._reverse.setdefault(dep, []).append(owner)

    def apply(self, record: Record) -> None:
        """Apply a decoded record to the index."""
        if isinstance(record, PathRecord):
            self.add_node(record.path)
        elif isinstance(record, DepsRecord):
            self.set_dependencies(record.owner, record.deps, record.mtime)
        else:
            raise TypeError(f"Unknown record type: {type(record).__name__}")

    def freeze(self) -> None:
        """Reject any further mutation."""
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    # Query operations

    @property
    def node_count(self) -> int:
        return len(self._paths)

    def resolve(self, path: str) -> Optional[int]:
        """Return the id of an interned path, or None."""
        return self._ids.get(path)

    def path_of(self, node_id: int) -> str:
        """Return the path of a node.

        Raises:
            NodeNotFoundError: If node_id is not in the node table.
        """
        if node_id < 0 or node_id >= len(self._paths):
            raise NodeNotFoundError(node_id, len(self._paths))
        return self._paths[node_id]

    def node(self, node_id: int) -> Node:
        return Node(node_id=node_id, path=self.path_of(node_id))

    def forward_deps(self, node_id: int) -> Tuple[int, ...]:
        """Dependencies of a node, empty if it never had a dependency record."""
        return self._forward.get(node_id, ())

    def reverse_deps(self, node_id: int) -> Tuple[int, ...]:
        """Owners that referenced a node, in the order their records appeared."""
        return tuple(self._reverse.get(node_id, ()))

    def has_dependency_record(self, node_id: int) -> bool:
        return node_id in self._forward

    def mtime_of(self, node_id: int) -> Optional[int]:
        """Mtime from the most recent dependency record for a node."""
        return self._mtimes.get(node_id)

    def owners(self) -> List[int]:
        """Ids that have a forward entry, numerically ascending."""
        return sorted(self._forward)

    def edge_count(self) -> int:
        """Number of (owner, dependency) pairs in the current forward state."""
        return sum(len(deps) for deps in self._forward.values())

    def validate(self) -> Tuple[bool, List[str]]:
        """Check that every id referenced by the adjacency maps is a node.

        Returns:
            Tuple of (is_valid, list_of_issues).
        """
        issues: List[str] = []
        count = len(self._paths)

        for owner in sorted(self._forward):
            if owner >= count:
                issues.append(f"Dependency record owner {owner} is not a defined node")
            for dep in self._forward[owner]:
                if dep >= count:
                    issues.append(f"Node {owner} depends on undefined node {dep}")

        for dep in sorted(self._reverse):
            if dep >= count:
                issues.append(f"Reverse entry for undefined node {dep}")

        return len(issues) == 0, issues

    def export_to_dict(self) -> Dict[str, Any]:
        """Export the index to a JSON-compatible dict.

        Paths go through printable_path(), so undecodable bytes become U+FFFD.
        """
        return {
            "header": DepsLogHeader(version=self.version).to_dict(),
            "nodes": [self.node(i).to_dict() for i in range(len(self._paths))],
            "forward": {
                str(owner): {"mtime": self._mtimes[owner], "deps": list(self._forward[owner])}
                for owner in self.owners()
            },
            "reverse": {str(dep): list(self._reverse[dep]) for dep in sorted(self._reverse)},
        }
