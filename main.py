#!/usr/bin/env python3
"""
Main Entry Point
================
Parses an Xdebug function trace and reports on the reconstructed call tree.

Stages:
1. Trace Parsing - Classify, decode and correlate trace lines
2. Reporting - Print the call tree and/or write a JSON summary
3. Graph Export - Optionally load the calls into Neo4j

Author: Xdebug Trace Call Tree Project
Date: October 19, 2026
"""

import sys
import logging
import argparse
import json
import uuid
from pathlib import Path
from typing import Optional

from neo4j.exceptions import DriverError, Neo4jError

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent / 'src'))

from trace_parser import XtraceParser
from record_decoders import XtraceParseError
from call_graph_builder import CallGraphBuilder


def setup_logging(verbose: bool = False, log_file: Optional[Path] = None):
    """Setup logging configuration."""
    log_level = logging.DEBUG if verbose else logging.INFO

    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, mode='w'))

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s [%(levelname)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
        handlers=handlers
    )


def write_summary(summary_file: Path, trace, stats: dict):
    """Write header fields and parse statistics as JSON."""
    summary_file.parent.mkdir(parents=True, exist_ok=True)
    summary = trace.to_dict(include_calls=False)
    summary['parse_statistics'] = stats
    with open(summary_file, 'w') as f:
        json.dump(summary, f, indent=2)
    logging.info(f"Summary saved to: {summary_file}")


def export_graph(trace, args) -> bool:
    """Load the parsed trace into Neo4j."""
    builder = CallGraphBuilder(
        uri=args.neo4j_uri,
        user=args.neo4j_user,
        password=args.neo4j_password
    )
    if not builder.connect():
        return False

    try:
        if args.clear:
            builder.clear_database()
        builder.create_constraints_and_indexes()
        builder.build_graph(trace)
        if args.graph_stats:
            builder.save_statistics(args.graph_stats)
    finally:
        builder.close()
    return True


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Xdebug trace parser - call tree reconstruction',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Print the call tree of a trace
  python3 main.py traces/trace.xt --tree

  # Write a JSON summary of the header and parse statistics
  python3 main.py traces/trace.xt --summary outputs/summary.json

  # Load the calls into Neo4j
  python3 main.py traces/trace.xt --neo4j --neo4j-password mypassword

  # Also keep the node and relationship counts of the export
  python3 main.py traces/trace.xt --neo4j --graph-stats outputs/
        """
    )

    parser.add_argument(
        'trace',
        type=Path,
        help='Path to the Xdebug trace file (format 4)'
    )

    parser.add_argument(
        '--tree',
        action='store_true',
        help='Print the indented call tree to stdout'
    )

    parser.add_argument(
        '--summary',
        type=Path,
        help='Write a JSON summary to this path'
    )

    parser.add_argument(
        '--neo4j',
        action='store_true',
        help='Load the call graph into Neo4j'
    )

    parser.add_argument(
        '--neo4j-uri',
        default='bolt://localhost:7687',
        help='Neo4j connection URI (default: bolt://localhost:7687)'
    )

    parser.add_argument(
        '--neo4j-user',
        default='neo4j',
        help='Neo4j username (default: neo4j)'
    )

    parser.add_argument(
        '--neo4j-password',
        default='password',
        help='Neo4j password (default: password)'
    )

    parser.add_argument(
        '--clear',
        action='store_true',
        help='Clear the Neo4j database before loading'
    )

    parser.add_argument(
        '--graph-stats',
        type=Path,
        metavar='DIR',
        help='Write graph_stats.json for the Neo4j export to this directory'
    )

    parser.add_argument(
        '--log-file',
        type=Path,
        help='Also write log output to this file'
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose logging'
    )

    return parser


def main(argv=None) -> int:
    """Main entry point."""
    args = build_arg_parser().parse_args(argv)

    setup_logging(args.verbose, args.log_file)

    if not args.trace.is_file():
        logging.error(f"Trace file not found: {args.trace}")
        return 1

    trace_id = uuid.uuid4()
    parser = XtraceParser(trace_id)

    try:
        trace = parser.parse_file(args.trace)
    except XtraceParseError as e:
        logging.error(f"Failed to parse {args.trace.name}: {e}")
        return 1
    except OSError as e:
        logging.error(f"Error reading trace file: {e}")
        return 1
    except KeyboardInterrupt:
        logging.warning("Parsing interrupted by user")
        return 1

    stats = parser.get_statistics()
    logging.info("Parsing Results:")
    logging.info(f"  Tool version: {trace.version or 'unknown'}")
    logging.info(f"  File format: {trace.format if trace.format is not None else 'unknown'}")
    logging.info(f"  Trace start: {trace.start_time or 'unknown'}")
    logging.info(f"  Lines processed: {stats['total_lines']:,}")
    logging.info(f"  Call records: {stats['call_records']:,}")
    logging.info(f"  Unrecognised lines: {stats['unmatched_lines']:,}")

    if args.tree:
        trace.print_tree()

    if args.summary:
        write_summary(args.summary, trace, stats)

    if args.neo4j:
        try:
            exported = export_graph(trace, args)
        except (Neo4jError, DriverError) as e:
            logging.error(f"Neo4j export failed: {e}")
            return 1
        if not exported:
            logging.error("Failed to connect to Neo4j database")
            return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
