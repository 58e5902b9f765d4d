"""
Xtrace Records Module
=====================
Typed records for Xdebug function trace files (file format 4).

This module holds the data model shared by every pipeline stage:
- Function entry and exit records decoded from single trace lines
- Completed call records pairing an entry with its exit
- The per-file trace aggregate with header metadata

Author: Xdebug Trace Call Tree Project
Date: October 19, 2026
"""

import sys
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, TextIO, Tuple

SUPPORTED_FILE_FORMATS = (4,)


class FnType(Enum):
    """Function type tag written in the seventh column of an entry line."""
    INTERNAL = 0
    USER = 1

    @classmethod
    def from_tag(cls, tag: int) -> "FnType":
        return cls(tag)

    @property
    def display_name(self) -> str:
        return self.name.capitalize()

    def __str__(self):
        return self.display_name


@dataclass
class FormatInfo:
    """Header metadata: tool version text and numeric file format."""
    tool_version: Optional[str] = None
    format_version: Optional[int] = None

    def to_dict(self):
        return asdict(self)


@dataclass
class EntryInfo:
    """Represents a function entry line."""
    level: int
    fn_num: int
    time_idx: float
    mem_usage: int
    fn_name: str
    fn_type: FnType
    inc_file_name: str
    file_name: str
    line_num: int
    arg_num: int
    args: List[str] = field(default_factory=list)

    def to_dict(self):
        data = asdict(self)
        data['fn_type'] = self.fn_type.display_name
        return data


@dataclass
class ExitInfo:
    """Represents a function exit line."""
    level: int
    fn_num: int
    time_idx: float
    mem_usage: int

    def to_dict(self):
        return asdict(self)


@dataclass
class CallRecord:
    """A completed call: an entry paired with the exit sharing its fn_num."""
    fn_num: int
    entry: EntryInfo
    exit: ExitInfo

    @property
    def level(self) -> int:
        # Entry depth is authoritative for tree reconstruction
        return self.entry.level

    @property
    def duration(self) -> float:
        return self.exit.time_idx - self.entry.time_idx

    @property
    def mem_delta(self) -> int:
        return self.exit.mem_usage - self.entry.mem_usage

    def to_dict(self):
        return {
            'fn_num': self.fn_num,
            'entry': self.entry.to_dict(),
            'exit': self.exit.to_dict(),
            'duration': self.duration,
            'mem_delta': self.mem_delta,
        }

    def __repr__(self):
        return f"CallRecord(fn_num={self.fn_num}, name={self.entry.fn_name}, level={self.level})"


@dataclass
class TraceFile:
    """Parsed trace file: header fields plus calls in the order their exits were seen."""
    trace_id: Any
    version: Optional[str] = None
    format: Optional[int] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    fn_records: List[CallRecord] = field(default_factory=list)

    @property
    def format_info(self) -> Optional[FormatInfo]:
        if self.version is None and self.format is None:
            return None
        return FormatInfo(tool_version=self.version, format_version=self.format)

    def iter_tree(self) -> Iterator[Tuple[int, CallRecord]]:
        """Yield (depth, record) pairs in stored order."""
        for record in self.fn_records:
            yield record.level, record

    def render_tree(self) -> List[str]:
        """
        Render the calls as indentation-prefixed lines.

        Depth is the only nesting signal, so the output follows stored
        (exit) order and indents each call by its entry depth.

        Returns:
            One formatted line per call record
        """
        lines = []
        for level, record in self.iter_tree():
            entry = record.entry
            prefix = "  " * level
            lines.append(
                f"{prefix}{entry.fn_name}({entry.fn_type}) "
                f"({entry.file_name}) ({entry.inc_file_name})"
            )
        return lines

    def print_tree(self, stream: Optional[TextIO] = None):
        stream = stream or sys.stdout
        for line in self.render_tree():
            print(line, file=stream)

    def to_dict(self, include_calls: bool = True) -> Dict[str, Any]:
        data = {
            'trace_id': str(self.trace_id),
            'version': self.version,
            'format': self.format,
            'start_time': self.start_time,
            'end_time': self.end_time,
            'record_count': len(self.fn_records),
        }
        if include_calls:
            data['fn_records'] = [record.to_dict() for record in self.fn_records]
        return data
