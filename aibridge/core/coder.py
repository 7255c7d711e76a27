# aibridge/core/coder.py
from typing import Dict, Any, List, Optional

from rich.markup import escape

from .config import load_config
from .fs import LocalFileSystem
from .models import ChangeStatus, Condition, ConditionKind, Task
from .normalizer import normalize_response
from .parser import parse_change_set
from .prompt import PromptRenderer
from .rounds import AdvanceOutcome, RoundCoordinator
from ..utils.console import error, info, success, warning


class Coder:
    """
    Coder 类，把模型响应转换为文件变更或新的暂存轮次。

    raw text -> normalize_response -> parse_change_set -> RoundCoordinator.advance
    """

    def __init__(self, config_data: Optional[Dict[str, Any]] = None, workspace_root: str = "."):
        self.config_data = config_data if config_data is not None else load_config()
        self.workspace = LocalFileSystem(workspace_root)
        self.coordinator = RoundCoordinator(
            workspace=self.workspace,
            renderer=PromptRenderer(self.config_data["diff_format"]),
            review_round=self.config_data["review_round"],
        )

    def start_task(self, goal: str, files: List[str], structure_text: Optional[str] = None) -> Task:
        relative_files = []
        for path in files:
            relative = self.workspace.relative(path)
            if relative is None:
                warning(f"Skipped '{escape(str(path))}': outside the project root.")
            else:
                relative_files.append(relative)

        task = self.coordinator.start(
            goal=goal,
            files=relative_files,
            staging_root=self.config_data["staging_root"],
            structure_text=structure_text,
        )
        staged = task.current_round.files
        missing = [f for f in relative_files if f not in staged]
        for path in missing:
            warning(f"Skipped '{escape(path)}': not a file in the project.")
        info(f"Staged {len(staged)} file(s) for task '{task.task_id}' at {escape(task.current_round.directory)}")
        return task

    def apply_response(self, task: Task, ai_response: str) -> AdvanceOutcome:
        """
        解析并应用一次模型响应。

        Raises:
            UnparseableResponse: 响应中找不到可解析的 JSON，任务状态保持不变。
        """
        value = normalize_response(ai_response)
        change_set = parse_change_set(value, allow_unsafe_paths=self.config_data["allow_unsafe_paths"])
        if change_set.reasoning:
            info(f"Model reasoning: {escape(change_set.reasoning)}")

        outcome = self.coordinator.advance(task, change_set)
        self.report(outcome)
        return outcome

    def report(self, outcome: AdvanceOutcome) -> None:
        for condition in outcome.conditions:
            self._report_condition(condition)

        status = outcome.change_set.status
        if status is ChangeStatus.UNKNOWN:
            warning("Response was not actionable; task state unchanged.")
        elif status is ChangeStatus.NEEDS_CONTEXT:
            new_round = outcome.new_round
            for path in outcome.skipped_requests:
                info(f"Requested file '{escape(path)}' does not exist; skipped.")
            success(f"Round {new_round.index} staged with {len(new_round.files)} file(s) at {escape(new_round.directory)}")
        else:
            report = outcome.write_report
            touched = len(outcome.apply_result.files)
            if report.written and not report.failed and not report.skipped:
                success(f"All {len(report.written)} file(s) updated.")
            elif report.written:
                warning(f"Partially applied: {len(report.written)}/{touched} file(s) updated.")
            elif touched:
                error(f"Failed to apply any of the {touched} file change(s).")
            if outcome.task.review_round:
                info(f"Review snapshot staged at {escape(outcome.task.review_round.directory)}")

    def _report_condition(self, condition: Condition) -> None:
        # message 和 file_path 可能直接来自模型输出，不能当作 rich 标记
        where = f" ({condition.file_path})" if condition.file_path else ""
        text = escape(f"{condition.message}{where}")
        if condition.kind in (ConditionKind.FILE_READ_FAILURE, ConditionKind.FILE_WRITE_FAILURE):
            error(text)
        else:
            warning(text)
