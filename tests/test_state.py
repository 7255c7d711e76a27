# tests/test_state.py
from aibridge.core.models import Round, Task, TaskState
from aibridge.core.state import TASK_FILE, clear_task, load_task, save_task


def make_task():
    return Task(
        task_id="tsk_1725293840_5a3b8c",
        goal="Check for bugs",
        workspace_root="/work",
        staging_root="/tmp/ai-bridge/2024",
        state=TaskState.AWAITING_FOLLOW_UP,
        rounds=(
            Round(1, "/tmp/ai-bridge/2024/round-1", ("src/a.ts",), "PROJECT_STRUCTURE.txt"),
            Round(2, "/tmp/ai-bridge/2024/round-2", ("src/b.ts",)),
        ),
        last_system_prompt="prompt text",
    )


def test_save_and_load(isolated_filesystem):
    task = make_task()
    path = save_task(task)
    assert path == TASK_FILE
    assert not TASK_FILE.with_suffix(".json.tmp").exists()
    assert load_task() == task


def test_load_missing(isolated_filesystem):
    assert load_task() is None


def test_load_corrupt(isolated_filesystem):
    TASK_FILE.parent.mkdir(parents=True, exist_ok=True)
    TASK_FILE.write_text("{not json", encoding="utf-8")
    assert load_task() is None


def test_new_task_overwrites_previous(isolated_filesystem):
    save_task(make_task())
    replacement = Task(task_id="tsk_2_abcdef", goal="Other", workspace_root="/w", staging_root="/s")
    save_task(replacement)
    loaded = load_task()
    assert loaded.task_id == "tsk_2_abcdef"
    assert loaded.rounds == ()


def test_clear_task(isolated_filesystem):
    save_task(make_task())
    assert clear_task() is True
    assert clear_task() is False
