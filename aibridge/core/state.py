# aibridge/core/state.py
"""
任务状态持久化模块。
同一时间只有一个活动任务；开始新任务会整体覆盖旧状态。
"""

import json
from pathlib import Path
from typing import Optional

from .config import STATE_DIR
from .models import Task

TASK_FILE = STATE_DIR / "task.json"


def save_task(task: Task, task_file: Optional[Path] = None) -> Path:
    """原子写入：先写临时文件再 rename"""
    task_file = task_file or TASK_FILE
    task_file.parent.mkdir(parents=True, exist_ok=True)
    temp_file = task_file.with_suffix(".json.tmp")
    temp_file.write_text(json.dumps(task.to_dict(), ensure_ascii=False, indent=2), encoding="utf-8")
    temp_file.replace(task_file)
    return task_file


def load_task(task_file: Optional[Path] = None) -> Optional[Task]:
    """
    加载当前任务，文件不存在或损坏时返回 None
    """
    task_file = task_file or TASK_FILE
    if not task_file.exists():
        return None
    try:
        with open(task_file, "r", encoding="utf-8") as f:
            return Task.from_dict(json.load(f))
    except (json.JSONDecodeError, KeyError, TypeError, IOError):
        return None


def clear_task(task_file: Optional[Path] = None) -> bool:
    task_file = task_file or TASK_FILE
    if task_file.exists():
        task_file.unlink()
        return True
    return False
