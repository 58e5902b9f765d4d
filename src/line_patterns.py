"""Line shape registry for Xdebug trace files.

Every line kind owns one regular expression. All of them are folded into a
single compiled pattern so one match call classifies a line; when several
kinds match, the one declared first wins.
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from functools import lru_cache
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)


class LineKind(Enum):
    """Record kinds in declaration (priority) order."""
    VERSION = 0
    FORMAT = 1
    START = 2
    FUNCTION_ENTRY = 3
    FUNCTION_EXIT = 4
    PENULTIMATE = 5
    END = 6


LINE_PATTERNS: Dict[LineKind, str] = {
    LineKind.VERSION: r'Version:\s+(?P<version>\d+\.\d+\.\d+).*',
    LineKind.FORMAT: r'^File format: (?P<format>\d+)',
    LineKind.START: r'^TRACE START \[(?P<start>\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}.\d+)\]',
    LineKind.FUNCTION_ENTRY: (
        r'^(\d+)\t(\d+)\t(0)\t(\d+\.\d+)\t(\d+)\t([^\t]*)\t([01])\t([^\t]*)\t([^\t]*)\t(\d+)\t(\d+)\t?(.*)'
    ),
    LineKind.FUNCTION_EXIT: r'^(\d+)\t(\d+)\t(1)\t(\d+\.\d+)\t(\d+).*',
    LineKind.PENULTIMATE: r'^\s+(?P<time_idx>\d+\.\d+)\t(?P<mem_usage>\d+)',
    LineKind.END: r'^TRACE END\s+\[(?P<end>\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}.\d+)\]',
}


class LinePatternRegistry:
    """Immutable, ordered set of line patterns."""

    def __init__(self, patterns: Optional[Dict[LineKind, str]] = None) -> None:
        patterns = patterns or LINE_PATTERNS
        self._kinds: List[LineKind] = sorted(patterns, key=lambda kind: kind.value)
        self._compiled: Dict[LineKind, re.Pattern] = {
            kind: re.compile(patterns[kind]) for kind in self._kinds
        }
        self._combined = re.compile(
            '|'.join(self._alternative(kind, patterns[kind]) for kind in self._kinds)
        )
        logger.debug("Compiled line registry with %d patterns", len(self._kinds))

    @staticmethod
    def _group_name(kind: LineKind) -> str:
        return f"kind_{kind.name.lower()}"

    def _alternative(self, kind: LineKind, pattern: str) -> str:
        # Zero-width lookahead so every alternative is tried at position 0;
        # unanchored patterns may match anywhere in the line.
        if not pattern.startswith('^'):
            pattern = '.*?' + pattern
        return f"(?=(?P<{self._group_name(kind)}>{pattern}))"

    @property
    def kinds(self) -> List[LineKind]:
        return list(self._kinds)

    def classify(self, line: str) -> Optional[LineKind]:
        """
        Classify a raw trace line.

        Args:
            line: Raw trace line, with or without its trailing newline

        Returns:
            The first kind in declaration order whose pattern matches,
            or None when no pattern matches
        """
        match = self._combined.match(line)
        if match is None:
            return None
        for kind in self._kinds:
            if match.group(self._group_name(kind)) is not None:
                return kind
        return None

    def match(self, kind: LineKind, line: str) -> Optional[re.Match]:
        """Run a single kind's own pattern, exposing its named groups."""
        return self._compiled[kind].search(line)


@lru_cache(maxsize=None)
def get_registry() -> LinePatternRegistry:
    """Shared registry, compiled on first use."""
    return LinePatternRegistry()
