# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""MCP Server Protocol Layer for ninja-deps-query.

Exposes the query engine over MCP. The deps log is loaded once when the
server starts; every tool answers from that frozen index. No query logic
lives here, all of it is delegated to QueryAPI and DumpFormatter.

Tool results travel as JSON, so paths that are not valid UTF-8 are returned
with U+FFFD in place of the undecodable bytes.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

from mcp.server.fastmcp import Context, FastMCP
from mcp.server.session import ServerSession

from ninja_deps.config import Config
from ninja_deps.deps_log import DepsLogLoader
from ninja_deps.dump import DumpFormatter
from ninja_deps.index import DependencyIndex
from ninja_deps.models import printable_path
from ninja_deps.query_api import QueryAPI

logger = logging.getLogger(__name__)


class NinjaDepsMCPServer:
    """MCP Protocol Layer for ninja-deps-query.

    Responsibilities:
    - Load the deps log into a DependencyIndex
    - Register query tools with FastMCP
    - Translate tool calls into QueryAPI calls
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        deps_file: Optional[Path] = None,
        index: Optional[DependencyIndex] = None,
    ):
        """Initialize MCP server.

        Args:
            config: Configuration object. If None, loads from default location.
            deps_file: Deps log to load. If None, uses config.deps_file.
            index: Preloaded index. If given, deps_file is not read.

        Raises:
            OSError: If the deps log cannot be opened.
            DepsLogError: If the deps log is invalid.
        """
        if config is None:
            config = Config()
        self.config = config

        self.deps_file = deps_file or Path(config.deps_file)
        if index is None:
            loader = DepsLogLoader(strict_node_ids=config.strict_node_ids)
            index = loader.load(self.deps_file)
        self.api = QueryAPI(index)
        self.formatter = DumpFormatter(sort_mode=config.dump_sort_mode)

        self.mcp = FastMCP(name="ninja-deps-query")
        self._register_tools()

        logger.info("NinjaDepsMCPServer initialized")

    def _register_tools(self) -> None:
        """Register MCP tools with the server.

        Registers:
        - get_dependencies: Forward query for one path
        - get_dependents: Reverse query for one path
        - dump_deps_log: Full text dump
        - export_index: Whole index as a dict
        - get_statistics: Counts and integrity issues
        """

        @self.mcp.tool()
        async def get_dependencies(
            path: str,
            ctx: Context[ServerSession, None],
        ) -> Dict[str, Any]:
            """List the files a build output currently depends on.

            Args:
                path: Path exactly as recorded in the deps log
                ctx: MCP context for logging

            Returns:
                Dictionary with path, found, id, has_record, mtime, dependencies
            """
            await ctx.info(f"Querying dependencies of {path}")
            result = self.api.get_dependencies(path)
            if not result["found"]:
                await ctx.info(f"{path} is not in the deps log")
            return result

        @self.mcp.tool()
        async def get_dependents(
            path: str,
            ctx: Context[ServerSession, None],
        ) -> Dict[str, Any]:
            """List every build output that has recorded a dependency on a file.

            Args:
                path: Path exactly as recorded in the deps log
                ctx: MCP context for logging

            Returns:
                Dictionary with path, found, id, dependents
            """
            await ctx.info(f"Querying dependents of {path}")
            result = self.api.get_dependents(path)
            if not result["found"]:
                await ctx.info(f"{path} is not in the deps log")
            return result

        @self.mcp.tool()
        async def dump_deps_log(
            ctx: Context[ServerSession, None],
        ) -> str:
            """Render the whole deps log as text, one block per build output."""
            await ctx.info("Dumping deps log")
            try:
                return printable_path(self.formatter.render(self.api.index))
            except LookupError as e:
                await ctx.error(f"Error dumping deps log: {e}")
                raise

        @self.mcp.tool()
        async def export_index(
            ctx: Context[ServerSession, None],
        ) -> Dict[str, Any]:
            """Export the whole deps log index as structured data.

            Returns:
                Dictionary with header, nodes, forward and reverse maps
            """
            await ctx.info("Exporting deps log index")
            export = self.api.export_index()
            await ctx.info(f"Index exported: {len(export['nodes'])} nodes")
            return export

        @self.mcp.tool()
        async def get_statistics(
            ctx: Context[ServerSession, None],
        ) -> Dict[str, Any]:
            """Node, owner and edge counts plus any integrity issues."""
            await ctx.info("Computing deps log statistics")
            return self.api.get_statistics()

        logger.info(
            "MCP tools registered: get_dependencies, get_dependents, dump_deps_log, "
            "export_index, get_statistics"
        )

    def run(self, transport: str = "stdio") -> None:
        """Run the MCP server.

        Args:
            transport: "stdio" (default), "streamable-http" or "sse".
        """
        logger.info(f"Starting MCP server with {transport} transport")
        self.mcp.run(transport=transport)  # type: ignore[arg-type]
