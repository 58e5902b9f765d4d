"""
Pytest configuration and fixtures for the xtrace parser tests.

Shared sample traces and helpers used across the component tests.
"""

from pathlib import Path
from typing import List

import pytest

from line_patterns import get_registry
from trace_parser import XtraceParser

# =========================================================================
# Sample Trace Lines
# =========================================================================

VERSION_LINE = "Version: 3.1.2\n"
FORMAT_LINE = "File format: 4\n"
START_LINE = "TRACE START [2023-04-01 10:00:00.123456]\n"
END_LINE = "TRACE END   [2023-04-01 10:00:00.124356]\n"
PENULTIMATE_LINE = "\t\t\t0.000900\t354000\n"


def entry_line(level, fn_num, time_idx, mem, name, fn_type, inc_file, file_name,
               line_num, args=()):
    fields = [str(level), str(fn_num), "0", time_idx, str(mem), name, str(fn_type),
              inc_file, file_name, str(line_num), str(len(args))]
    fields.extend(args)
    return "\t".join(fields) + "\n"


def exit_line(level, fn_num, time_idx, mem):
    return f"{level}\t{fn_num}\t1\t{time_idx}\t{mem}\n"


@pytest.fixture
def registry():
    return get_registry()


@pytest.fixture
def sample_lines() -> List[str]:
    """A complete format 4 trace with nested calls and one return-value line."""
    return [
        VERSION_LINE,
        FORMAT_LINE,
        START_LINE,
        entry_line(0, 1, "0.000200", 393680, "{main}", 1, "", "/var/www/index.php", 0),
        entry_line(1, 2, "0.000300", 393720, "strlen", 0, "", "/var/www/index.php", 3, ["'abc'"]),
        exit_line(1, 2, "0.000310", 393720),
        "1\t2\tR\t\t\t3\n",
        entry_line(1, 3, "0.000400", 393800, "foo", 1, "", "/var/www/index.php", 5, ["1", "2"]),
        entry_line(2, 4, "0.000500", 393900, "bar", 1, "", "/var/www/lib.php", 10),
        exit_line(2, 4, "0.000600", 394000),
        exit_line(1, 3, "0.000700", 394100),
        exit_line(0, 1, "0.000800", 394200),
        PENULTIMATE_LINE,
        END_LINE,
    ]


@pytest.fixture
def sample_trace_file(tmp_path, sample_lines) -> Path:
    trace_file = tmp_path / "trace.xt"
    trace_file.write_text("".join(sample_lines))
    return trace_file


@pytest.fixture
def parser() -> XtraceParser:
    return XtraceParser("test-trace")
