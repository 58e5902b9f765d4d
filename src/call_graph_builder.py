"""
Call Graph Builder Module
=========================
Loads a parsed Xdebug trace into Neo4j as a call graph.

Graph layout:
- (:Trace) node holding the header metadata
- (:Function) nodes, one per distinct function name
- (:Call) nodes, one per completed call record
- RECORDED (Trace -> Call), INVOKES (Call -> Function) and
  CALLED (caller Call -> callee Call) relationships

Author: Xdebug Trace Call Tree Project
Date: October 19, 2026
"""

import logging
import json
from pathlib import Path
from typing import Dict, List, Optional, Tuple
from dataclasses import dataclass, field

from neo4j import GraphDatabase
from neo4j.exceptions import ServiceUnavailable, AuthError

from xtrace_records import CallRecord, TraceFile

logger = logging.getLogger(__name__)


@dataclass
class GraphStats:
    """Statistics about the constructed graph."""
    nodes_created: int = 0
    relationships_created: int = 0
    node_counts: Dict[str, int] = field(default_factory=dict)
    relationship_counts: Dict[str, int] = field(default_factory=dict)

    def add_nodes(self, label: str, count: int = 1):
        self.nodes_created += count
        self.node_counts[label] = self.node_counts.get(label, 0) + count

    def add_relationships(self, rel_type: str, count: int = 1):
        self.relationships_created += count
        self.relationship_counts[rel_type] = self.relationship_counts.get(rel_type, 0) + count


def link_callers(records: List[CallRecord]) -> List[Tuple[CallRecord, Optional[CallRecord]]]:
    """
    Pair every call with its caller using entry depth alone.

    Records are replayed in entry order (fn_num ascending) against a
    depth stack. The caller is the open call exactly one level up; when
    that frame never exited (and so was dropped) the call gets no caller.

    Args:
        records: Completed call records in any order

    Returns:
        (call, caller) pairs in entry order; caller is None at the top level
        or when the intermediate frame is missing
    """
    pairs = []
    stack: List[CallRecord] = []
    for record in sorted(records, key=lambda r: r.fn_num):
        while stack and stack[-1].level >= record.level:
            stack.pop()
        caller = stack[-1] if stack and stack[-1].level == record.level - 1 else None
        pairs.append((record, caller))
        stack.append(record)
    return pairs


class CallGraphBuilder:
    """Builds the call graph of one trace in Neo4j."""

    def __init__(self, uri: str = "bolt://localhost:7687",
                 user: str = "neo4j",
                 password: str = "password"):
        """
        Initialize graph builder.

        Args:
            uri: Neo4j connection URI
            user: Neo4j username
            password: Neo4j password
        """
        self.uri = uri
        self.user = user
        self.password = password
        self.driver = None
        self.stats = GraphStats()

        logger.info(f"Initialized CallGraphBuilder for {uri}")

    def connect(self) -> bool:
        """Establish connection to Neo4j database."""
        try:
            self.driver = GraphDatabase.driver(self.uri, auth=(self.user, self.password))
            # Test connection
            with self.driver.session() as session:
                result = session.run("RETURN 1")
                result.single()
            logger.info("Successfully connected to Neo4j database")
            return True
        except AuthError:
            logger.error("Authentication failed. Check Neo4j credentials.")
            return False
        except ServiceUnavailable:
            logger.error("Neo4j service unavailable. Ensure Neo4j is running.")
            return False

    def close(self):
        """Close Neo4j connection."""
        if self.driver:
            self.driver.close()
            logger.info("Closed Neo4j connection")

    def clear_database(self):
        """Clear all nodes and relationships from database."""
        logger.warning("Clearing entire Neo4j database")
        with self.driver.session() as session:
            session.run("MATCH (n) DETACH DELETE n")
        logger.info("Database cleared")

    def create_constraints_and_indexes(self):
        """Create uniqueness constraints and indexes for performance."""
        logger.info("Creating constraints and indexes")

        constraints = [
            "CREATE CONSTRAINT IF NOT EXISTS FOR (t:Trace) REQUIRE t.trace_id IS UNIQUE",
            "CREATE CONSTRAINT IF NOT EXISTS FOR (f:Function) REQUIRE f.name IS UNIQUE",
        ]

        indexes = [
            "CREATE INDEX IF NOT EXISTS FOR (c:Call) ON (c.trace_id, c.fn_num)",
            "CREATE INDEX IF NOT EXISTS FOR (c:Call) ON (c.level)",
        ]

        with self.driver.session() as session:
            for statement in constraints + indexes:
                session.run(statement)
                logger.debug(f"Applied: {statement[:50]}...")

        logger.info("Constraints and indexes created")

    def build_graph(self, trace: TraceFile):
        """
        Build the call graph for a parsed trace.

        Args:
            trace: Parsed TraceFile
        """
        logger.info(f"Building call graph for trace {trace.trace_id}")
        trace_id = str(trace.trace_id)

        with self.driver.session() as session:
            self._create_trace_node(session, trace, trace_id)
            self._create_call_nodes(session, trace, trace_id)
            self._create_call_relationships(session, trace, trace_id)

        logger.info("Graph construction complete")
        logger.info(f"  Total nodes: {self.stats.nodes_created}")
        logger.info(f"  Total relationships: {self.stats.relationships_created}")
        for label, count in self.stats.node_counts.items():
            logger.info(f"    {label}: {count}")

    def _create_trace_node(self, session, trace: TraceFile, trace_id: str):
        session.run(
            """
            CREATE (t:Trace {
                trace_id: $trace_id,
                version: $version,
                format: $format,
                start_time: $start_time,
                end_time: $end_time
            })
            """,
            trace_id=trace_id,
            version=trace.version,
            format=trace.format,
            start_time=trace.start_time,
            end_time=trace.end_time
        )
        self.stats.add_nodes('Trace')

    def _create_call_nodes(self, session, trace: TraceFile, trace_id: str):
        logger.info("  Creating Function and Call nodes")
        functions = set()
        for record in trace.fn_records:
            entry = record.entry
            if entry.fn_name not in functions:
                result = session.run(
                    "MERGE (f:Function {name: $name}) SET f.fn_type = $fn_type",
                    name=entry.fn_name,
                    fn_type=entry.fn_type.display_name
                )
                functions.add(entry.fn_name)
                # MERGE reuses Function nodes left by earlier traces
                self.stats.add_nodes('Function', result.consume().counters.nodes_created)

            session.run(
                """
                MATCH (t:Trace {trace_id: $trace_id}), (f:Function {name: $fn_name})
                CREATE (c:Call {
                    trace_id: $trace_id,
                    fn_num: $fn_num,
                    level: $level,
                    fn_name: $fn_name,
                    file_name: $file_name,
                    inc_file_name: $inc_file_name,
                    line_num: $line_num,
                    arg_num: $arg_num,
                    args: $args,
                    entry_time: $entry_time,
                    exit_time: $exit_time,
                    entry_memory: $entry_memory,
                    exit_memory: $exit_memory
                })
                CREATE (t)-[:RECORDED]->(c)
                CREATE (c)-[:INVOKES]->(f)
                """,
                trace_id=trace_id,
                fn_num=record.fn_num,
                level=entry.level,
                fn_name=entry.fn_name,
                file_name=entry.file_name,
                inc_file_name=entry.inc_file_name,
                line_num=entry.line_num,
                arg_num=entry.arg_num,
                args=json.dumps(entry.args),
                entry_time=entry.time_idx,
                exit_time=record.exit.time_idx,
                entry_memory=entry.mem_usage,
                exit_memory=record.exit.mem_usage
            )
            self.stats.add_nodes('Call')
            self.stats.add_relationships('RECORDED')
            self.stats.add_relationships('INVOKES')

        logger.info(f"    Created {len(functions)} Function nodes, {len(trace.fn_records)} Call nodes")

    def _create_call_relationships(self, session, trace: TraceFile, trace_id: str):
        logger.info("  Creating CALLED relationships")
        created = 0
        for record, caller in link_callers(trace.fn_records):
            if caller is None:
                continue
            session.run(
                """
                MATCH (caller:Call {trace_id: $trace_id, fn_num: $caller_num}),
                      (callee:Call {trace_id: $trace_id, fn_num: $callee_num})
                CREATE (caller)-[:CALLED {line_num: $line_num}]->(callee)
                """,
                trace_id=trace_id,
                caller_num=caller.fn_num,
                callee_num=record.fn_num,
                line_num=record.entry.line_num
            )
            created += 1
        self.stats.add_relationships('CALLED', created)
        logger.info(f"    Created {created} CALLED relationships")

    def save_statistics(self, output_dir: Path):
        """Save graph construction statistics."""
        output_dir.mkdir(parents=True, exist_ok=True)

        stats_dict = {
            'nodes_created': self.stats.nodes_created,
            'relationships_created': self.stats.relationships_created,
            'node_counts': self.stats.node_counts,
            'relationship_counts': self.stats.relationship_counts
        }

        stats_file = output_dir / "graph_stats.json"
        with open(stats_file, 'w') as f:
            json.dump(stats_dict, f, indent=2)

        logger.info(f"Saved graph statistics to {stats_file.name}")
