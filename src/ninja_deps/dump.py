# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Deterministic text dump of a dependency index.

Output format:

    # ninjadeps
    version: <version>
    nodes: <node count>

    <owner path>:
        <dependency path>

One block per node that has a dependency record, each followed by a blank
line. Blocks are ordered by node id ascending. The legacy sort mode orders
ids by their decimal string ("10" before "2") to reproduce older dumps.
"""

import logging
from typing import List, TextIO

from ninja_deps.index import DependencyIndex
from ninja_deps.models import MAGIC

logger = logging.getLogger(__name__)

SORT_NUMERIC = "numeric"
SORT_LEGACY = "legacy"
SORT_MODES = (SORT_NUMERIC, SORT_LEGACY)

DEP_INDENT = "    "


class DumpFormatter:
    """Renders the full index as text."""

    def __init__(self, sort_mode: str = SORT_NUMERIC) -> None:
        if sort_mode not in SORT_MODES:
            raise ValueError(f"Unknown sort mode {sort_mode!r}, expected one of {SORT_MODES}")
        self.sort_mode = sort_mode

    def _ordered_owners(self, index: DependencyIndex) -> List[int]:
        owners = index.owners()
        if self.sort_mode == SORT_LEGACY:
            logger.info("Dumping in legacy order (ids sorted as strings)")
            return sorted(owners, key=str)
        return owners

    def lines(self, index: DependencyIndex) -> List[str]:
        """Build the dump as a list of lines without trailing newlines."""
        result = [
            MAGIC.decode("ascii").rstrip("\n"),
            f"version: {index.version}",
            f"nodes: {index.node_count}",
            "",
        ]
        for owner in self._ordered_owners(index):
            result.append(f"{index.path_of(owner)}:")
            for dep in index.forward_deps(owner):
                result.append(f"{DEP_INDENT}{index.path_of(dep)}")
            result.append("")
        return result

    def render(self, index: DependencyIndex) -> str:
        return "".join(line + "\n" for line in self.lines(index))

    def write(self, index: DependencyIndex, stream: TextIO) -> None:
        stream.write(self.render(index))
