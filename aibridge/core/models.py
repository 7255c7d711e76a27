# aibridge/core/models.py
"""
定义 AI Bridge 核心数据结构。
这些模型在响应解析、补丁应用和轮次(Round)推进之间传递数据。
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Dict, Any, List, Optional, Tuple


class ChangeStatus(Enum):
    COMPLETED = "completed"
    NEEDS_CONTEXT = "needs_context"
    UNKNOWN = "unknown"


class EditKind(Enum):
    FULL_REWRITE = "FULL_REWRITE"
    SEARCH_REPLACE_DIFF = "DIFF"
    UNIFIED_PATCH_ENVELOPE = "PATCH"


class ConditionKind(Enum):
    UNKNOWN_STATUS = "unknown_status"
    EMPTY_CHANGE_SET = "empty_change_set"
    UNRESOLVED_SEARCH_BLOCK = "unresolved_search_block"
    FILE_READ_FAILURE = "file_read_failure"
    FILE_WRITE_FAILURE = "file_write_failure"
    UNSAFE_PATH = "unsafe_path"
    DROPPED_EDIT = "dropped_edit"
    MISSING_PATCH_SECTION = "missing_patch_section"


@dataclass(frozen=True)
class Condition:
    """A non-fatal, user-visible problem found while processing a response."""
    kind: ConditionKind
    message: str
    file_path: Optional[str] = None


@dataclass(frozen=True)
class Edit:
    """ 对单个文件的一次变更请求。 """
    file_path: str
    kind: EditKind
    content: str


@dataclass(frozen=True)
class SearchReplaceBlock:
    search: str
    replace: str


@dataclass
class ChangeSet:
    """
    模型响应解析后的规范表示。
    edits 仅在 COMPLETED 时存在，requested_files 仅在 NEEDS_CONTEXT 时存在。
    """
    status: ChangeStatus
    reasoning: Optional[str] = None
    requested_files: List[str] = field(default_factory=list)
    edits: List[Edit] = field(default_factory=list)
    conditions: List[Condition] = field(default_factory=list)


@dataclass(frozen=True)
class Round:
    index: int
    directory: str
    files: Tuple[str, ...] = ()
    structure_file: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "directory": self.directory,
            "files": list(self.files),
            "structure_file": self.structure_file,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Round':
        return cls(
            index=int(data["index"]),
            directory=data["directory"],
            files=tuple(data.get("files", [])),
            structure_file=data.get("structure_file"),
        )


class TaskState(Enum):
    AWAITING_FIRST_RESPONSE = "awaiting_first_response"
    AWAITING_FOLLOW_UP = "awaiting_follow_up"
    COMPLETED = "completed"


@dataclass(frozen=True)
class Task:
    """
    一次完整的请求/响应任务。
    Task 不会被原地修改，advance() 总是返回新的 Task。
    """
    task_id: str
    goal: str
    workspace_root: str
    staging_root: str
    state: TaskState = TaskState.AWAITING_FIRST_RESPONSE
    rounds: Tuple[Round, ...] = ()
    last_system_prompt: str = ""
    review_round: Optional[Round] = None
    created_at: float = field(default_factory=lambda: datetime.now().timestamp())
    updated_at: float = field(default_factory=lambda: datetime.now().timestamp())

    @property
    def current_round(self) -> Optional[Round]:
        return self.rounds[-1] if self.rounds else None

    @property
    def is_finished(self) -> bool:
        return self.state is TaskState.COMPLETED

    def evolve(self, **changes) -> 'Task':
        changes.setdefault("updated_at", datetime.now().timestamp())
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "task_id": self.task_id,
            "goal": self.goal,
            "workspace_root": self.workspace_root,
            "staging_root": self.staging_root,
            "state": self.state.value,
            "rounds": [r.to_dict() for r in self.rounds],
            "last_system_prompt": self.last_system_prompt,
            "review_round": self.review_round.to_dict() if self.review_round else None,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Task':
        """
        从字典创建 Task 实例，正确处理 state 和 rounds 字段。
        """
        data = data.copy()
        try:
            data["state"] = TaskState(data.get("state", TaskState.AWAITING_FIRST_RESPONSE.value))
        except ValueError:
            data["state"] = TaskState.AWAITING_FIRST_RESPONSE
        data["rounds"] = tuple(Round.from_dict(r) for r in data.get("rounds", []))
        review = data.get("review_round")
        data["review_round"] = Round.from_dict(review) if review else None
        return cls(**data)
