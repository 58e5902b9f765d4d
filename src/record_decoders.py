"""
Record Decoders Module
======================
Turns classified trace lines into typed records.

One decode function exists per line kind and DECODERS maps each LineKind
to it. Decoders assume the line already matched its kind's pattern and
fail fast when a field cannot be converted:
- UnparseableFieldError for missing or malformed fields
- UnsupportedFormatError for a file format outside SUPPORTED_FILE_FORMATS

Author: Xdebug Trace Call Tree Project
Date: October 19, 2026
"""

import logging
import re
from typing import Callable, Dict, List, Optional

from line_patterns import LineKind, get_registry
from xtrace_records import SUPPORTED_FILE_FORMATS, EntryInfo, ExitInfo, FnType

logger = logging.getLogger(__name__)

ENTRY_RECORD_TAG = '0'
EXIT_RECORD_TAG = '1'

_UINT_PATTERN = re.compile(r'\d+')
_FLOAT_PATTERN = re.compile(r'\d+\.\d+')


class XtraceParseError(Exception):
    """Base class for fatal trace parsing errors."""

    def __init__(self, message: str, line: Optional[str] = None,
                 line_number: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.line = line
        self.line_number = line_number

    def __str__(self):
        if self.line_number is not None:
            return f"line {self.line_number}: {self.message}"
        return self.message


class UnparseableFieldError(XtraceParseError):
    """A matched line carried a field that is missing or cannot be converted."""

    def __init__(self, field_name: str, value: Optional[str], line: Optional[str] = None):
        if value is None:
            message = f"Missing field '{field_name}' in line: {line!r}"
        else:
            message = f"Unable to parse field '{field_name}' from {value!r} in line: {line!r}"
        super().__init__(message, line)
        self.field = field_name
        self.value = value


class UnsupportedFormatError(XtraceParseError):
    """The trace declares a file format this parser does not read."""

    def __init__(self, format_version: int, line: Optional[str] = None,
                 raw: Optional[str] = None):
        supported = ', '.join(str(fmt) for fmt in SUPPORTED_FILE_FORMATS)
        shown = raw if raw is not None else format_version
        super().__init__(f"Unsupported file format: {shown} (supported: {supported})", line)
        self.format_version = format_version
        self.raw = raw


def _parse_uint(field_name: str, value: Optional[str], line: str) -> int:
    if value is None:
        raise UnparseableFieldError(field_name, None, line)
    if not _UINT_PATTERN.fullmatch(value):
        raise UnparseableFieldError(field_name, value, line)
    return int(value)


def _parse_float(field_name: str, value: Optional[str], line: str) -> float:
    if value is None:
        raise UnparseableFieldError(field_name, None, line)
    if not _FLOAT_PATTERN.fullmatch(value):
        raise UnparseableFieldError(field_name, value, line)
    return float(value)


def _parse_text(field_name: str, value: Optional[str], line: str) -> str:
    if value is None:
        raise UnparseableFieldError(field_name, None, line)
    return value


def _parse_fn_type(value: Optional[str], line: str) -> FnType:
    tag = _parse_uint('fn_type', value, line)
    try:
        return FnType.from_tag(tag)
    except ValueError:
        raise UnparseableFieldError('fn_type', value, line) from None


def _expect_tag(field_name: str, value: Optional[str], expected: str, line: str):
    if value != expected:
        raise UnparseableFieldError(field_name, value, line)


def _split_fields(line: str) -> List[str]:
    return line.strip().split('\t')


class _FieldReader:
    """Consumes tab-separated fields front to back."""

    def __init__(self, line: str):
        self.line = line
        self._fields = _split_fields(line)
        self._pos = 0

    def next(self) -> Optional[str]:
        if self._pos >= len(self._fields):
            return None
        value = self._fields[self._pos]
        self._pos += 1
        return value

    def rest(self) -> List[str]:
        remaining = self._fields[self._pos:]
        self._pos = len(self._fields)
        return remaining


def _named_group(kind: LineKind, group: str, line: str) -> str:
    match = get_registry().match(kind, line)
    value = match.group(group) if match else None
    if value is None:
        raise UnparseableFieldError(group, None, line)
    return value


def decode_version(line: str) -> str:
    """Extract the tool version triple, kept verbatim."""
    return _named_group(LineKind.VERSION, 'version', line)


def decode_format(line: str) -> int:
    """Extract and validate the file format number."""
    raw = _named_group(LineKind.FORMAT, 'format', line)
    format_version = _parse_uint('format', raw, line)
    # Compared as text so zero-padded values such as "04" are rejected
    if raw not in {str(fmt) for fmt in SUPPORTED_FILE_FORMATS}:
        raise UnsupportedFormatError(format_version, line, raw=raw)
    return format_version


def decode_start(line: str) -> str:
    return _named_group(LineKind.START, 'start', line)


def decode_end(line: str) -> str:
    return _named_group(LineKind.END, 'end', line)


def decode_entry(line: str) -> EntryInfo:
    """
    Decode a function entry line.

    Layout: level, fn_num, 0, time, memory, name, type, include file,
    file, line, argument count, then zero or more argument fragments.

    Args:
        line: Raw trace line already classified as FUNCTION_ENTRY

    Returns:
        EntryInfo with every field converted
    """
    fields = _FieldReader(line)
    level = _parse_uint('level', fields.next(), line)
    fn_num = _parse_uint('fn_num', fields.next(), line)
    _expect_tag('record_type', fields.next(), ENTRY_RECORD_TAG, line)
    time_idx = _parse_float('time_idx', fields.next(), line)
    mem_usage = _parse_uint('mem_usage', fields.next(), line)
    fn_name = _parse_text('fn_name', fields.next(), line)
    fn_type = _parse_fn_type(fields.next(), line)
    inc_file_name = _parse_text('inc_file_name', fields.next(), line)
    file_name = _parse_text('file_name', fields.next(), line)
    line_num = _parse_uint('line_num', fields.next(), line)
    arg_num = _parse_uint('arg_num', fields.next(), line)

    # Argument columns drift between Xdebug releases; keep whatever is left
    args = fields.rest()

    return EntryInfo(
        level=level,
        fn_num=fn_num,
        time_idx=time_idx,
        mem_usage=mem_usage,
        fn_name=fn_name,
        fn_type=fn_type,
        inc_file_name=inc_file_name,
        file_name=file_name,
        line_num=line_num,
        arg_num=arg_num,
        args=args,
    )


def decode_exit(line: str) -> ExitInfo:
    """Decode a function exit line; anything after the memory column is ignored."""
    fields = _FieldReader(line)
    level = _parse_uint('level', fields.next(), line)
    fn_num = _parse_uint('fn_num', fields.next(), line)
    _expect_tag('record_type', fields.next(), EXIT_RECORD_TAG, line)
    time_idx = _parse_float('time_idx', fields.next(), line)
    mem_usage = _parse_uint('mem_usage', fields.next(), line)
    return ExitInfo(level=level, fn_num=fn_num, time_idx=time_idx, mem_usage=mem_usage)


# Continuation lines are recognised but carry nothing worth keeping
DECODERS: Dict[LineKind, Optional[Callable]] = {
    LineKind.VERSION: decode_version,
    LineKind.FORMAT: decode_format,
    LineKind.START: decode_start,
    LineKind.FUNCTION_ENTRY: decode_entry,
    LineKind.FUNCTION_EXIT: decode_exit,
    LineKind.PENULTIMATE: None,
    LineKind.END: decode_end,
}


def decode(kind: LineKind, line: str):
    """Dispatch to the decoder registered for kind."""
    decoder = DECODERS[kind]
    if decoder is None:
        return None
    return decoder(line)
