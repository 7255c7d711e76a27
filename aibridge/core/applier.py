# aibridge/core/applier.py
"""
EditApplier: group edits per file, fold them through the patch engine and
produce one write-back manifest. No I/O happens here except through the
``read_file`` callable and the optional ``write_manifest`` helper.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from .models import Condition, ConditionKind, Edit, EditKind
from .patcher import apply_edit

ReadFile = Callable[[str], Optional[str]]


@dataclass
class FileOutcome:
    file_path: str
    original: Optional[str]
    content: str
    edit_count: int = 0
    resolved_blocks: int = 0
    unresolved_blocks: int = 0
    has_full_rewrite: bool = False

    @property
    def changed(self) -> bool:
        """内容是否有变化（新建文件总是视为变化）"""
        return self.original is None or self.content != self.original

    @property
    def resolved_nothing(self) -> bool:
        """所有 diff 块都未命中，且没有整文件重写"""
        return not self.has_full_rewrite and self.resolved_blocks == 0


@dataclass
class ApplyResult:
    files: Dict[str, FileOutcome] = field(default_factory=dict)
    conditions: List[Condition] = field(default_factory=list)

    def manifest(self) -> Dict[str, str]:
        """path -> 新内容，按首次出现顺序"""
        return {path: outcome.content for path, outcome in self.files.items()}


@dataclass
class WriteReport:
    written: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    conditions: List[Condition] = field(default_factory=list)

    @property
    def failed(self) -> List[str]:
        return [c.file_path for c in self.conditions if c.kind is ConditionKind.FILE_WRITE_FAILURE]


def group_edits(edits: List[Edit]) -> Dict[str, List[Edit]]:
    """Group by file_path, keeping first-seen file order and edit order."""
    grouped: Dict[str, List[Edit]] = {}
    for edit in edits:
        grouped.setdefault(edit.file_path, []).append(edit)
    return grouped


def apply_all(edits: List[Edit], read_file: ReadFile) -> ApplyResult:
    """
    A file that cannot be read (permissions, non UTF-8 bytes) is reported
    and left out of the manifest; the other files are still processed.
    """
    result = ApplyResult()
    for file_path, file_edits in group_edits(edits).items():
        try:
            original = read_file(file_path)
        except (OSError, UnicodeDecodeError) as e:
            result.conditions.append(Condition(ConditionKind.FILE_READ_FAILURE, f"Read failed: {e}", file_path))
            continue
        outcome = FileOutcome(file_path=file_path, original=original, content=original if original is not None else "")
        current = original
        for edit in file_edits:
            patched = apply_edit(current, edit)
            current = patched.content
            outcome.edit_count += 1
            outcome.resolved_blocks += patched.resolved_blocks
            outcome.unresolved_blocks += patched.unresolved_blocks
            if edit.kind is EditKind.FULL_REWRITE:
                outcome.has_full_rewrite = True
            result.conditions.extend(patched.conditions)
        outcome.content = current if current is not None else ""
        result.files[file_path] = outcome
    return result


def write_manifest(result: ApplyResult, write_file: Callable[[str, str], None]) -> WriteReport:
    """
    Persist every touched file independently. A file whose edits resolved
    nothing is skipped; a failing write is reported and does not stop the
    rest of the batch.
    """
    report = WriteReport()
    for file_path, outcome in result.files.items():
        if outcome.resolved_nothing:
            report.skipped.append(file_path)
            continue
        try:
            write_file(file_path, outcome.content)
            report.written.append(file_path)
        except (OSError, UnicodeError) as e:
            report.conditions.append(Condition(ConditionKind.FILE_WRITE_FAILURE, f"Write failed: {e}", file_path))
    return report
