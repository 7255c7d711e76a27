# aibridge/core/rounds.py
"""
RoundCoordinator：任务的轮次状态机。

    AWAITING_FIRST_RESPONSE --NEED_CONTEXT--> AWAITING_FOLLOW_UP (round N+1)
    AWAITING_FOLLOW_UP      --NEED_CONTEXT--> AWAITING_FOLLOW_UP (round N+1)
    *                       --COMPLETED-----> COMPLETED (edits applied)
    *                       --UNKNOWN-------> unchanged

Task 是不可变的：start() 创建，advance() 返回新的 Task。
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from .applier import ApplyResult, WriteReport, apply_all, write_manifest
from .fs import LocalFileSystem
from .models import ChangeSet, ChangeStatus, Condition, Round, Task, TaskState
from .prompt import PromptRenderer
from .stager import Stager


def generate_task_id() -> str:
    """
    生成任务唯一 ID，格式: tsk_{unix_timestamp}_{random}
    """
    timestamp = int(datetime.now().timestamp())
    return f"tsk_{timestamp}_{uuid.uuid4().hex[:6]}"


def staging_dir_name() -> str:
    return datetime.now().isoformat().replace(":", "-").replace(".", "-")


@dataclass
class AdvanceOutcome:
    task: Task
    change_set: ChangeSet
    apply_result: Optional[ApplyResult] = None
    write_report: Optional[WriteReport] = None
    new_round: Optional[Round] = None
    skipped_requests: List[str] = field(default_factory=list)

    @property
    def conditions(self) -> List[Condition]:
        found = list(self.change_set.conditions)
        if self.apply_result:
            found.extend(self.apply_result.conditions)
        if self.write_report:
            found.extend(self.write_report.conditions)
        return found

    @property
    def actionable(self) -> bool:
        return self.change_set.status is not ChangeStatus.UNKNOWN


class RoundCoordinator:
    def __init__(
        self,
        workspace: LocalFileSystem,
        renderer: Optional[PromptRenderer] = None,
        review_round: bool = False,
    ):
        self.workspace = workspace
        self.renderer = renderer or PromptRenderer()
        self.review_round = review_round

    def stager_for(self, task: Task) -> Stager:
        return Stager(self.workspace, task.staging_root)

    def start(self, goal: str, files: List[str], staging_root: str, structure_text: Optional[str] = None) -> Task:
        """Stage round 1 and return a task awaiting its first response."""
        task = Task(
            task_id=generate_task_id(),
            goal=goal,
            workspace_root=str(self.workspace.root),
            staging_root=str(Path(staging_root) / staging_dir_name()),
        )
        first = self.stager_for(task).stage_round(1, files, structure_text=structure_text)
        return task.evolve(
            rounds=(first,),
            last_system_prompt=self.renderer.render(goal, first),
        )

    def advance(self, task: Task, change_set: ChangeSet) -> AdvanceOutcome:
        if change_set.status is ChangeStatus.NEEDS_CONTEXT:
            return self._request_context(task, change_set)
        if change_set.status is ChangeStatus.COMPLETED:
            return self._complete(task, change_set)
        return AdvanceOutcome(task=task, change_set=change_set)

    def _request_context(self, task: Task, change_set: ChangeSet) -> AdvanceOutcome:
        previous = task.current_round
        index = previous.index + 1 if previous else 1
        new_round = self.stager_for(task).stage_round(index, change_set.requested_files, previous=previous)
        skipped = [p for p in change_set.requested_files if p not in new_round.files]
        updated = task.evolve(
            state=TaskState.AWAITING_FOLLOW_UP,
            rounds=task.rounds + (new_round,),
            last_system_prompt=self.renderer.render(task.goal, new_round),
        )
        return AdvanceOutcome(task=updated, change_set=change_set, new_round=new_round, skipped_requests=skipped)

    def _complete(self, task: Task, change_set: ChangeSet) -> AdvanceOutcome:
        apply_result = apply_all(change_set.edits, self.workspace.read_optional)
        write_report = write_manifest(apply_result, self.workspace.write)

        review = None
        if self.review_round and write_report.written:
            index = task.current_round.index + 1 if task.current_round else 1
            contents = {p: apply_result.files[p].content for p in write_report.written}
            review = self.stager_for(task).stage_snapshot(index, contents)

        updated = task.evolve(state=TaskState.COMPLETED, review_round=review)
        return AdvanceOutcome(
            task=updated,
            change_set=change_set,
            apply_result=apply_result,
            write_report=write_report,
        )
