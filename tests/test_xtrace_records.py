"""Tests for the record dataclasses and tree rendering."""

import io

import pytest

from xtrace_records import CallRecord, EntryInfo, ExitInfo, FnType, FormatInfo, TraceFile


def make_call(fn_num, level, name, fn_type=FnType.USER, file_name="main.php", inc_file=""):
    entry = EntryInfo(
        level=level,
        fn_num=fn_num,
        time_idx=0.25,
        mem_usage=1000,
        fn_name=name,
        fn_type=fn_type,
        inc_file_name=inc_file,
        file_name=file_name,
        line_num=3,
        arg_num=1,
        args=["'a'"],
    )
    exit_info = ExitInfo(level=level, fn_num=fn_num, time_idx=0.75, mem_usage=1500)
    return CallRecord(fn_num=fn_num, entry=entry, exit=exit_info)


@pytest.mark.unit
class TestFnType:

    def test_tags(self):
        assert FnType.from_tag(0) is FnType.INTERNAL
        assert FnType.from_tag(1) is FnType.USER

    def test_unknown_tag(self):
        with pytest.raises(ValueError):
            FnType.from_tag(7)

    def test_display_name(self):
        assert str(FnType.INTERNAL) == "Internal"
        assert FnType.USER.display_name == "User"


@pytest.mark.unit
class TestCallRecord:

    def test_derived_fields(self):
        record = make_call(1, 2, "foo")
        assert record.level == 2
        assert record.duration == pytest.approx(0.5)
        assert record.mem_delta == 500

    def test_to_dict(self):
        data = make_call(1, 0, "foo", fn_type=FnType.INTERNAL).to_dict()
        assert data['fn_num'] == 1
        assert data['entry']['fn_type'] == "Internal"
        assert data['entry']['args'] == ["'a'"]
        assert data['exit']['mem_usage'] == 1500


@pytest.mark.unit
class TestTraceFile:

    def test_format_info(self):
        assert TraceFile(trace_id=1).format_info is None
        trace = TraceFile(trace_id=1, version="3.1.2", format=4)
        assert trace.format_info == FormatInfo(tool_version="3.1.2", format_version=4)

    def test_render_tree_uses_entry_depth(self):
        trace = TraceFile(trace_id=1, fn_records=[
            make_call(2, 1, "strlen", FnType.INTERNAL, "index.php"),
            make_call(1, 0, "{main}", FnType.USER, "index.php", "boot.php"),
        ])
        assert trace.render_tree() == [
            "  strlen(Internal) (index.php) ()",
            "{main}(User) (index.php) (boot.php)",
        ]

    def test_print_tree(self):
        trace = TraceFile(trace_id=1, fn_records=[make_call(1, 0, "foo")])
        stream = io.StringIO()
        trace.print_tree(stream)
        assert stream.getvalue() == "foo(User) (main.php) ()\n"

    def test_iter_tree(self):
        records = [make_call(3, 2, "c"), make_call(1, 0, "a")]
        trace = TraceFile(trace_id=1, fn_records=records)
        assert [(level, r.fn_num) for level, r in trace.iter_tree()] == [(2, 3), (0, 1)]

    def test_to_dict_without_calls(self):
        trace = TraceFile(trace_id="abc", version="3.1.2", format=4, fn_records=[make_call(1, 0, "foo")])
        data = trace.to_dict(include_calls=False)
        assert data['trace_id'] == "abc"
        assert data['record_count'] == 1
        assert 'fn_records' not in data
