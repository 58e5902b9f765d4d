"""
Call Correlator Module
======================
Pairs function entry lines with their exit lines.

Entries wait in a cache keyed by fn_num until the exit with the same
fn_num arrives. Exits without a pending entry are dropped, and entries
still pending when input ends are discarded by the caller.

Author: Xdebug Trace Call Tree Project
Date: October 19, 2026
"""

import logging
from typing import Dict, Optional

from xtrace_records import CallRecord, EntryInfo, ExitInfo

logger = logging.getLogger(__name__)


class CallCorrelator:
    """Cache of pending entries, resolved into CallRecords on exit."""

    def __init__(self):
        self._pending: Dict[int, EntryInfo] = {}
        self.overwritten = 0
        self.unmatched_exits = 0

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def observe_entry(self, entry: EntryInfo):
        """
        Store an entry until its exit is seen.

        A second entry with the same fn_num replaces the first one.

        Args:
            entry: Decoded function entry
        """
        if entry.fn_num in self._pending:
            self.overwritten += 1
            logger.debug(f"Replacing pending entry for fn_num {entry.fn_num} ({entry.fn_name})")
        self._pending[entry.fn_num] = entry

    def observe_exit(self, exit_info: ExitInfo) -> Optional[CallRecord]:
        """
        Resolve an exit against the pending entries.

        Args:
            exit_info: Decoded function exit

        Returns:
            The completed CallRecord, or None if no entry is pending for its fn_num
        """
        entry = self._pending.pop(exit_info.fn_num, None)
        if entry is None:
            self.unmatched_exits += 1
            return None
        return CallRecord(fn_num=exit_info.fn_num, entry=entry, exit=exit_info)

    def discard_pending(self) -> int:
        """Drop every pending entry and return how many were dropped."""
        dropped = len(self._pending)
        self._pending.clear()
        return dropped
