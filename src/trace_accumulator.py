"""Accumulates header fields and completed calls into one TraceFile."""

import logging
from typing import Any

from record_decoders import UnsupportedFormatError
from xtrace_records import SUPPORTED_FILE_FORMATS, CallRecord, TraceFile

logger = logging.getLogger(__name__)


class TraceAccumulator:
    """Owns the TraceFile being built for a single parse."""

    def __init__(self, trace_id: Any):
        self._trace = TraceFile(trace_id=trace_id)

    @property
    def trace_file(self) -> TraceFile:
        return self._trace

    def set_version(self, version: str):
        if self._trace.version is not None:
            logger.debug(f"Overriding tool version {self._trace.version} with {version}")
        self._trace.version = version

    def set_format(self, format_version: int):
        if format_version not in SUPPORTED_FILE_FORMATS:
            raise UnsupportedFormatError(format_version)
        self._trace.format = format_version

    def set_start(self, start_time: str):
        self._trace.start_time = start_time

    def set_end(self, end_time: str):
        self._trace.end_time = end_time

    def append_call(self, record: CallRecord):
        self._trace.fn_records.append(record)

    @property
    def call_count(self) -> int:
        return len(self._trace.fn_records)

    def finish(self) -> TraceFile:
        return self._trace
