# aibridge/core/stager.py
"""
轮次暂存：把项目文件复制到 <staging_dir>/round-N/，保持相对路径结构。
"""

from pathlib import Path
from typing import Dict, List, Optional

from .fs import LocalFileSystem
from .models import Round
from .parser import is_safe_relative_path

STRUCTURE_FILE = "PROJECT_STRUCTURE.txt"


class Stager:
    """
    Materializes rounds for one task. ``staging_dir`` belongs to the task;
    every round gets its own sub directory and is never modified again.
    """

    def __init__(self, workspace: LocalFileSystem, staging_dir: str):
        self.workspace = workspace
        self.staging_dir = Path(staging_dir)

    def round_dir(self, index: int) -> Path:
        return self.staging_dir / f"round-{index}"

    def stage_round(
        self,
        index: int,
        files: List[str],
        structure_text: Optional[str] = None,
        previous: Optional[Round] = None,
    ) -> Round:
        """
        Copy the files that exist in the workspace; missing ones, and paths
        that would land outside the round directory, are skipped.
        The structure listing is written from ``structure_text`` or carried
        over from ``previous``.
        """
        target = self.round_dir(index)
        self.workspace.ensure_dir(target)

        staged = []
        for path in files:
            if path in staged or not is_safe_relative_path(path) or not self.workspace.exists(path):
                continue
            self.workspace.copy(path, target / path)
            staged.append(path)

        structure_file = None
        if structure_text is not None:
            (target / STRUCTURE_FILE).write_text(structure_text, encoding="utf-8")
            structure_file = STRUCTURE_FILE
        elif previous is not None and previous.structure_file:
            source = Path(previous.directory) / previous.structure_file
            if source.is_file():
                self.workspace.copy(source, target / STRUCTURE_FILE)
                structure_file = STRUCTURE_FILE

        return Round(index=index, directory=str(target), files=tuple(staged), structure_file=structure_file)

    def stage_snapshot(self, index: int, contents: Dict[str, str]) -> Round:
        """Stage post-edit content directly (review round)."""
        target = LocalFileSystem(self.round_dir(index))
        target.ensure_dir(".")
        for path, content in contents.items():
            target.write(path, content)
        return Round(index=index, directory=str(target.root), files=tuple(contents))
