# tests/test_parser.py
import pytest

from aibridge.core.models import ChangeStatus, ConditionKind, EditKind
from aibridge.core.parser import is_safe_relative_path, normalize_path, parse_change_set


def kinds(change_set):
    return [c.kind for c in change_set.conditions]


def test_bare_array_becomes_completed():
    cs = parse_change_set([{"file_path": "a.ts", "type": "FULL_REWRITE", "content": "x"}])
    assert cs.status is ChangeStatus.COMPLETED
    assert len(cs.edits) == 1
    assert cs.edits[0].kind is EditKind.FULL_REWRITE
    assert cs.edits[0].content == "x"


def test_code_changes_without_status_is_completed():
    cs = parse_change_set({"code_changes": [{"file_path": "a.ts", "type": "DIFF", "content": ""}]})
    assert cs.status is ChangeStatus.COMPLETED
    assert cs.edits[0].kind is EditKind.SEARCH_REPLACE_DIFF


def test_edit_type_mapping():
    cs = parse_change_set({"status": "COMPLETED", "code_changes": [
        {"file_path": "a", "type": "FULL_REWRITE", "content": "1"},
        {"file_path": "b", "type": "DIFF", "content": "2"},
        {"file_path": "c", "type": "PATCH", "content": "3"},
    ]})
    assert [e.kind for e in cs.edits] == [
        EditKind.FULL_REWRITE, EditKind.SEARCH_REPLACE_DIFF, EditKind.UNIFIED_PATCH_ENVELOPE,
    ]


def test_unknown_edit_type_is_dropped():
    cs = parse_change_set({"status": "COMPLETED", "code_changes": [
        {"file_path": "a", "type": "DELETE", "content": ""},
        {"file_path": "b", "content": "no type"},
        {"file_path": "c", "type": "FULL_REWRITE", "content": "ok"},
    ]})
    assert [e.file_path for e in cs.edits] == ["c"]
    assert kinds(cs).count(ConditionKind.DROPPED_EDIT) == 2


def test_need_context():
    cs = parse_change_set({
        "status": "NEED_CONTEXT",
        "reasoning": "I need the types",
        "request_files": ["src/types.ts", "./src/a.ts", "src/types.ts", 42],
        "code_changes": [{"file_path": "a", "type": "FULL_REWRITE", "content": "ignored"}],
    })
    assert cs.status is ChangeStatus.NEEDS_CONTEXT
    assert cs.requested_files == ["src/types.ts", "src/a.ts"]
    assert cs.edits == []
    assert cs.reasoning == "I need the types"


def test_completed_ignores_requested_files():
    cs = parse_change_set({
        "status": "COMPLETED",
        "request_files": ["x.ts"],
        "code_changes": [{"file_path": "a", "type": "FULL_REWRITE", "content": "1"}],
    })
    assert cs.requested_files == []


@pytest.mark.parametrize("status", ["DONE", None, 3])
def test_unrecognized_status_is_unknown(status):
    cs = parse_change_set({"status": status, "code_changes": "not a list"})
    assert cs.status is ChangeStatus.UNKNOWN
    assert cs.edits == []
    assert ConditionKind.UNKNOWN_STATUS in kinds(cs)


def test_status_is_case_insensitive():
    assert parse_change_set({"status": " completed ", "code_changes": []}).status is ChangeStatus.COMPLETED


def test_scalar_json_is_unknown():
    cs = parse_change_set("just a string")
    assert cs.status is ChangeStatus.UNKNOWN


def test_completed_without_edits_reports_empty_change_set():
    cs = parse_change_set({"status": "COMPLETED"})
    assert cs.status is ChangeStatus.COMPLETED
    assert ConditionKind.EMPTY_CHANGE_SET in kinds(cs)


def test_unsafe_paths_rejected_by_default():
    cs = parse_change_set([
        {"file_path": "../outside.ts", "type": "FULL_REWRITE", "content": "x"},
        {"file_path": "/etc/passwd", "type": "FULL_REWRITE", "content": "x"},
        {"file_path": "src/ok.ts", "type": "FULL_REWRITE", "content": "x"},
    ])
    assert [e.file_path for e in cs.edits] == ["src/ok.ts"]
    assert kinds(cs).count(ConditionKind.UNSAFE_PATH) == 2


def test_unsafe_paths_allowed_by_policy():
    cs = parse_change_set([{"file_path": "../outside.ts", "type": "FULL_REWRITE", "content": "x"}],
                          allow_unsafe_paths=True)
    assert cs.edits[0].file_path == "../outside.ts"


def test_unsafe_requested_file_ignored():
    cs = parse_change_set({"status": "NEED_CONTEXT", "request_files": ["../secrets.env", "src/a.ts"]})
    assert cs.requested_files == ["src/a.ts"]


@pytest.mark.parametrize("path,expected", [
    ("src/a.ts", True),
    ("src/../a.ts", True),
    ("src/../../a.ts", False),
    ("../a.ts", False),
    ("/abs/a.ts", False),
    ("C:/abs/a.ts", False),
    ("", False),
])
def test_is_safe_relative_path(path, expected):
    assert is_safe_relative_path(path) is expected


def test_normalize_path():
    assert normalize_path(" .\\src\\a.ts ") == "src/a.ts"
