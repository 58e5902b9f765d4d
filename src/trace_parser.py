"""
Trace Parser Module
===================
Parses Xdebug function trace files (format 4) into a TraceFile.

This module drives the whole parse:
- Reading raw trace lines from a file, byte stream or text iterable
- Classifying each line through the line pattern registry
- Decoding entry/exit/header lines into typed records
- Correlating entries with exits into completed call records

Author: Xdebug Trace Call Tree Project
Date: October 19, 2026
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, BinaryIO, Callable, Dict, Iterable, Iterator, Optional, Union

from call_correlator import CallCorrelator
from line_patterns import LineKind, LinePatternRegistry, get_registry
from record_decoders import XtraceParseError, decode
from trace_accumulator import TraceAccumulator
from xtrace_records import EntryInfo, ExitInfo, TraceFile

logger = logging.getLogger(__name__)

PROGRESS_INTERVAL = 10000


class XtraceParser:
    """Parses one Xdebug trace into a TraceFile."""

    def __init__(self, trace_id: Any, registry: Optional[LinePatternRegistry] = None):
        """
        Initialize trace parser.

        Args:
            trace_id: Caller-supplied identifier stored on the resulting TraceFile
            registry: Line pattern registry (defaults to the shared one)
        """
        self.trace_id = trace_id
        self.registry = registry or get_registry()
        self.accumulator = TraceAccumulator(trace_id)
        self.correlator = CallCorrelator()

        self.total_lines = 0
        self.blank_lines = 0
        self.unmatched_lines = 0
        self.discarded_lines = 0
        self.dangling_entries = 0
        self._finished = False

        self._handlers: Dict[LineKind, Callable] = {
            LineKind.VERSION: self.accumulator.set_version,
            LineKind.FORMAT: self.accumulator.set_format,
            LineKind.START: self.accumulator.set_start,
            LineKind.FUNCTION_ENTRY: self._handle_entry,
            LineKind.FUNCTION_EXIT: self._handle_exit,
            LineKind.END: self.accumulator.set_end,
        }

        logger.info(f"Initialized XtraceParser for trace: {trace_id}")

    def parse_file(self, trace_file: Union[str, Path]) -> TraceFile:
        """
        Parse a trace file from disk.

        Args:
            trace_file: Path to the Xdebug trace file

        Returns:
            The populated TraceFile
        """
        trace_file = Path(trace_file)
        logger.info(f"Opening trace file: {trace_file.name}")
        with open(trace_file, 'rb') as f:
            return self.parse_stream(f)

    def parse_stream(self, stream: BinaryIO) -> TraceFile:
        """Parse a binary stream, decoding each line with lossy UTF-8."""
        return self.parse_lines(self._read_lines(stream))

    def parse_lines(self, lines: Iterable[str]) -> TraceFile:
        """
        Parse an iterable of raw text lines until it is exhausted.

        Returns:
            The populated TraceFile

        Raises:
            XtraceParseError: a field could not be decoded or the file
                format is unsupported
        """
        logger.info("Starting trace parsing")
        start_time = datetime.now()

        for line in lines:
            self.feed(line)

            if self.total_lines % PROGRESS_INTERVAL == 0:
                logger.debug(
                    f"Processed {self.total_lines} lines, "
                    f"completed {self.accumulator.call_count} calls"
                )

        trace = self.finish()

        duration = (datetime.now() - start_time).total_seconds()
        logger.info(
            f"Parsing complete: {len(trace.fn_records)} calls from "
            f"{self.total_lines} lines in {duration:.2f}s"
        )
        if self.unmatched_lines:
            logger.info(f"Skipped {self.unmatched_lines} unrecognised lines")
        return trace

    def feed(self, line: str):
        """Classify, decode and fold a single raw line."""
        self.total_lines += 1

        if not line.strip():
            self.blank_lines += 1
            return

        kind = self.registry.classify(line)
        if kind is None:
            self.unmatched_lines += 1
            logger.warning(f"No matches for line {self.total_lines}: {line.rstrip()!r}")
            return

        handler = self._handlers.get(kind)
        if handler is None:
            self.discarded_lines += 1
            return

        try:
            handler(decode(kind, line))
        except XtraceParseError as e:
            e.line_number = self.total_lines
            if e.line is None:
                e.line = line
            raise

    def finish(self) -> TraceFile:
        """Drop entries that never exited and return the TraceFile."""
        if not self._finished:
            self.dangling_entries = self.correlator.discard_pending()
            self._finished = True
        return self.accumulator.finish()

    def _handle_entry(self, entry: EntryInfo):
        self.correlator.observe_entry(entry)

    def _handle_exit(self, exit_info: ExitInfo):
        record = self.correlator.observe_exit(exit_info)
        if record is not None:
            self.accumulator.append_call(record)

    def _read_lines(self, stream: BinaryIO) -> Iterator[str]:
        lines = iter(stream)
        while True:
            try:
                raw = next(lines)
            except StopIteration:
                return
            except OSError as e:
                # The stream cannot be resumed; finish with what was read
                logger.error(f"Error reading line #{self.total_lines + 1}: {e}")
                return
            if isinstance(raw, bytes):
                raw = raw.decode('utf-8', errors='replace')
            yield raw

    def get_statistics(self) -> Dict[str, Any]:
        """Get parsing statistics."""
        trace = self.accumulator.trace_file
        return {
            'total_lines': self.total_lines,
            'blank_lines': self.blank_lines,
            'unmatched_lines': self.unmatched_lines,
            'discarded_lines': self.discarded_lines,
            'call_records': len(trace.fn_records),
            'overwritten_entries': self.correlator.overwritten,
            'unmatched_exits': self.correlator.unmatched_exits,
            'pending_entries': self.correlator.pending_count,
            'dangling_entries': self.dangling_entries,
        }


def parse_xtrace_lines(trace_id: Any, lines: Iterable[str]) -> TraceFile:
    """Parse already-decoded text lines."""
    return XtraceParser(trace_id).parse_lines(lines)


def parse_xtrace_file(trace_id: Any, trace_file: Union[str, Path]) -> TraceFile:
    """Parse a trace file from disk."""
    return XtraceParser(trace_id).parse_file(trace_file)
