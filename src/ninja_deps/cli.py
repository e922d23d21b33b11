# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Command line interface for ninja-deps-query.

Commands:
    query [-f FILE] [-r] TARGET...   Dependencies (or dependents) of targets
    dump [-f FILE] [--legacy-order]  Full deps log report
    dump [-f FILE] --json            Whole index as JSON
    stats [-f FILE]                  Counts and integrity issues
    serve [-f FILE] [--transport T]  Run the MCP server

Exit status is 0 on success, 1 when the deps log cannot be loaded and 2 on
usage errors. Paths are written as the bytes stored in the log, even when
they are not valid UTF-8.
"""

import argparse
import io
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional, TextIO

from ninja_deps.config import Config, ConfigurationError, load_config
from ninja_deps.deps_log import DepsLogError, DepsLogLoader
from ninja_deps.dump import SORT_LEGACY, DumpFormatter
from ninja_deps.index import DependencyIndex, NodeNotFoundError
from ninja_deps.logging_setup import setup_logging
from ninja_deps.query_api import QueryAPI

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_USAGE = 2


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with one subparser per command."""
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "-f",
        "--file",
        type=Path,
        default=None,
        help="Deps log to read. Default: deps_file from config (.ninja_deps)",
    )
    common.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Configuration file. Default: ./.ninja_deps_query.yml if present",
    )
    common.add_argument(
        "--log-dir",
        type=Path,
        default=None,
        help="Write JSON logs to this directory",
    )
    common.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log at INFO level",
    )

    parser = argparse.ArgumentParser(
        prog="ninja-deps",
        description="Query a ninja .ninja_deps dependency log",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    query = subparsers.add_parser(
        "query", parents=[common], help="Print dependencies of each target"
    )
    query.add_argument(
        "-r",
        "--reverse",
        action="store_true",
        help="Print the targets' dependents instead of their dependencies",
    )
    query.add_argument("targets", nargs="+", metavar="TARGET")

    dump = subparsers.add_parser("dump", parents=[common], help="Print the whole deps log")
    dump.add_argument(
        "--legacy-order",
        action="store_true",
        help="Order nodes by id as strings (10 before 2), as older dumps did",
    )
    dump.add_argument(
        "--json",
        action="store_true",
        help="Print the whole index (nodes, forward and reverse maps) as JSON",
    )

    subparsers.add_parser("stats", parents=[common], help="Print counts and integrity issues")

    serve = subparsers.add_parser("serve", parents=[common], help="Run the MCP server")
    serve.add_argument(
        "--transport",
        type=str,
        choices=["stdio", "streamable-http", "sse"],
        default="stdio",
        help="Transport type for MCP server. Default: stdio",
    )

    return parser


def _load_index(args: argparse.Namespace, config: Config) -> DependencyIndex:
    deps_file = args.file or Path(config.deps_file)
    return DepsLogLoader(strict_node_ids=config.strict_node_ids).load(deps_file)


def _cmd_query(args: argparse.Namespace, config: Config, out: TextIO) -> int:
    api = QueryAPI(_load_index(args, config))
    for line in api.query(args.targets, reverse=args.reverse):
        out.write(line + "\n")
    return EXIT_OK


def _cmd_dump(args: argparse.Namespace, config: Config, out: TextIO) -> int:
    if args.json:
        export = QueryAPI(_load_index(args, config)).export_index()
        out.write(json.dumps(export, indent=2) + "\n")
        return EXIT_OK
    sort_mode = SORT_LEGACY if args.legacy_order else config.dump_sort_mode
    DumpFormatter(sort_mode=sort_mode).write(_load_index(args, config), out)
    return EXIT_OK


def _cmd_stats(args: argparse.Namespace, config: Config, out: TextIO) -> int:
    stats = QueryAPI(_load_index(args, config)).get_statistics()
    out.write(f"version: {stats['version']}\n")
    out.write(f"nodes: {stats['nodes']}\n")
    out.write(f"owners: {stats['owners']}\n")
    out.write(f"edges: {stats['edges']}\n")
    for issue in stats["issues"]:
        out.write(f"issue: {issue}\n")
    return EXIT_OK


def _cmd_serve(args: argparse.Namespace, config: Config, out: TextIO) -> int:
    from ninja_deps.mcp_server import NinjaDepsMCPServer

    server = NinjaDepsMCPServer(config=config, index=_load_index(args, config))
    server.run(transport=args.transport)
    return EXIT_OK


def _write_original_bytes(stream: TextIO) -> TextIO:
    # Paths carry undecodable bytes as surrogates; emit them as the raw bytes
    if isinstance(stream, io.TextIOWrapper):
        stream.reconfigure(errors="surrogateescape")
    return stream


_COMMANDS = {
    "query": _cmd_query,
    "dump": _cmd_dump,
    "stats": _cmd_stats,
    "serve": _cmd_serve,
}


def main(argv: Optional[List[str]] = None, out: Optional[TextIO] = None) -> int:
    """Run the command line tool.

    Args:
        argv: Arguments without the program name. Defaults to sys.argv[1:].
        out: Stream for command output. Defaults to sys.stdout.

    Returns:
        Process exit status.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_usage(sys.stderr)
        return EXIT_USAGE

    out = _write_original_bytes(out or sys.stdout)

    try:
        config = load_config(args.config)
    except ConfigurationError as e:
        sys.stderr.write(f"fatal: {e}\n")
        return EXIT_FATAL

    log_level = logging.INFO if args.verbose else config.log_level
    setup_logging(log_dir=args.log_dir or config.log_dir, log_level=log_level)

    try:
        return _COMMANDS[args.command](args, config, out)
    except (DepsLogError, NodeNotFoundError, OSError) as e:
        logger.debug("Command failed", exc_info=True)
        sys.stderr.write(f"fatal: {e}\n")
        return EXIT_FATAL
