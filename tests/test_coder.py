# tests/test_coder.py
import json
from unittest.mock import patch

import pytest

from aibridge.core.coder import Coder
from aibridge.core.errors import UnparseableResponse
from aibridge.core.models import ChangeStatus, ConditionKind, TaskState


@pytest.fixture
def coder(project, config_data):
    return Coder(config_data=config_data, workspace_root=str(project))


@pytest.fixture
def task(coder):
    return coder.start_task("Improve b.ts", ["src/b.ts"])


def test_start_task_warns_about_missing_files(coder):
    with patch("aibridge.core.coder.warning") as mock_warning:
        task = coder.start_task("goal", ["src/a.ts", "src/ghost.ts"])
    assert task.current_round.files == ("src/a.ts",)
    mock_warning.assert_called_once()
    assert "src/ghost.ts" in mock_warning.call_args[0][0]


def test_fenced_completed_response_is_applied(coder, task, project):
    response = "Here is the fix:\n```json\n" + json.dumps({
        "status": "COMPLETED",
        "reasoning": "Rename line2",
        "code_changes": [{
            "file_path": "src/b.ts",
            "type": "DIFF",
            "content": "<<<<<<< SEARCH\nline2\n=======\nCHANGED\n>>>>>>> REPLACE",
        }],
    }) + "\n```"
    outcome = coder.apply_response(task, response)
    assert outcome.task.state is TaskState.COMPLETED
    assert (project / "src" / "b.ts").read_text(encoding="utf-8") == "line1\nCHANGED\nline3"


def test_need_context_response_stages_next_round(coder, task):
    response = json.dumps({"status": "NEED_CONTEXT", "request_files": ["src/a.ts", "src/missing.ts"]})
    outcome = coder.apply_response(task, response)
    assert outcome.new_round.files == ("src/a.ts",)
    assert outcome.task.current_round.index == 2


def test_unknown_status_reports_warning(coder, task, project):
    with patch("aibridge.core.coder.warning") as mock_warning:
        outcome = coder.apply_response(task, json.dumps({"status": "DONE", "code_changes": []}))
    assert outcome.change_set.status is ChangeStatus.UNKNOWN
    assert outcome.task is task
    assert mock_warning.call_count == 2
    assert (project / "src" / "b.ts").read_text(encoding="utf-8") == "line1\nline2\nline3"


def test_unresolved_block_is_reported_and_file_left_alone(coder, task, project):
    response = json.dumps([{
        "file_path": "src/b.ts",
        "type": "DIFF",
        "content": "<<<<<<< SEARCH\nnot there\n=======\nX\n>>>>>>> REPLACE",
    }])
    outcome = coder.apply_response(task, response)
    kinds = [c.kind for c in outcome.conditions]
    assert kinds == [ConditionKind.UNRESOLVED_SEARCH_BLOCK]
    assert outcome.write_report.skipped == ["src/b.ts"]
    assert (project / "src" / "b.ts").read_text(encoding="utf-8") == "line1\nline2\nline3"


def test_unparseable_response_propagates(coder, task):
    with pytest.raises(UnparseableResponse):
        coder.apply_response(task, "Sorry, I can't help with that.")


def test_unsafe_path_is_not_written(coder, task, project):
    response = json.dumps([{"file_path": "../escape.txt", "type": "FULL_REWRITE", "content": "x"}])
    outcome = coder.apply_response(task, response)
    assert not (project.parent / "escape.txt").exists()
    assert ConditionKind.UNSAFE_PATH in [c.kind for c in outcome.conditions]


def test_start_task_makes_paths_relative_to_project(coder, project):
    with patch("aibridge.core.coder.warning") as mock_warning:
        task = coder.start_task("goal", [
            str(project / "src" / "a.ts"),
            "../outside.txt",
            str(project.parent / "elsewhere.txt"),
        ])
    assert task.current_round.files == ("src/a.ts",)
    assert mock_warning.call_count == 2


def test_markup_in_reasoning_is_printed_literally(coder, task):
    response = json.dumps({
        "status": "NEED_CONTEXT",
        "reasoning": "close the [/b] tag",
        "request_files": ["src/[/b].ts"],
    })
    outcome = coder.apply_response(task, response)
    assert outcome.task.current_round.index == 2
    assert outcome.skipped_requests == ["src/[/b].ts"]


def test_failed_write_does_not_stop_the_batch(coder, task, project):
    response = r'[{"file_path": "a.txt", "type": "FULL_REWRITE", "content": "\ud800"},' \
               r' {"file_path": "b.txt", "type": "FULL_REWRITE", "content": "ok"}]'
    with patch("aibridge.core.coder.error") as mock_error:
        outcome = coder.apply_response(task, response)
    assert outcome.task.state is TaskState.COMPLETED
    assert outcome.write_report.written == ["b.txt"]
    assert (project / "b.txt").read_text(encoding="utf-8") == "ok"
    assert "a.txt" in mock_error.call_args_list[0][0][0]
