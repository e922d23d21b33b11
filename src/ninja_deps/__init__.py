# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Reader and query tool for ninja .ninja_deps dependency logs."""

from .config import Config, ConfigurationError
from .deps_log import (
    DepsLogError,
    DepsLogLoader,
    FormatError,
    MalformedRecordError,
    TruncatedRecordError,
    UndefinedNodeError,
    iter_records,
    load_deps_log,
    read_header,
    read_record,
)
from .dump import DumpFormatter
from .index import DependencyIndex, IndexFrozenError, NodeNotFoundError
from .models import DepsLogHeader, DepsRecord, Node, PathRecord, Record
from .query_api import QueryAPI

__version__ = "0.1.0"

__all__ = [
    "Config",
    "ConfigurationError",
    "DepsLogError",
    "DepsLogLoader",
    "FormatError",
    "MalformedRecordError",
    "TruncatedRecordError",
    "UndefinedNodeError",
    "iter_records",
    "load_deps_log",
    "read_header",
    "read_record",
    "DumpFormatter",
    "DependencyIndex",
    "IndexFrozenError",
    "NodeNotFoundError",
    "DepsLogHeader",
    "DepsRecord",
    "Node",
    "PathRecord",
    "Record",
    "QueryAPI",
]

# Conditional import for MCP server (requires the mcp package)
try:
    from .mcp_server import NinjaDepsMCPServer

    __all__.append("NinjaDepsMCPServer")
except ImportError:
    # MCP package not available
    pass
