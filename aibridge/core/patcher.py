# aibridge/core/patcher.py
"""
PatchEngine: apply a single Edit to in-memory file content.

Three encodings are supported:

- FULL_REWRITE: the edit content replaces the file verbatim.
- DIFF: one or more search/replace blocks::

      <<<<<<< SEARCH
      original lines
      =======
      replacement lines
      >>>>>>> REPLACE

- PATCH: a patch envelope (``*** Begin Patch`` / ``*** Update File: path`` /
  ``@@`` hunks / ``*** End Patch``). Each hunk is reduced to a
  search/replace block and applied exactly like DIFF.

Matching is exact after line-ending normalization; there is no fuzzy
fallback. A block whose search text is not found is skipped and reported
as a Condition, the call itself never raises for diff kinds.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .models import Condition, ConditionKind, Edit, EditKind, SearchReplaceBlock
from .parser import normalize_path

SEARCH_MARKER = "<<<<<<< SEARCH"
DIVIDER_MARKER = "======="
REPLACE_MARKER = ">>>>>>> REPLACE"

BEGIN_PATCH = "*** Begin Patch"
END_PATCH = "*** End Patch"
UPDATE_FILE = "*** Update File:"

# 只按 \r\n、\r、\n 分行并保留行尾；str.splitlines 还会在 \x0c、\u2028 等字符处断行
_LINE_RE = re.compile(r"[^\r\n]*(?:\r\n|\r|\n)|[^\r\n]+")


@dataclass
class PatchResult:
    content: str
    resolved_blocks: int = 0
    unresolved_blocks: int = 0
    conditions: List[Condition] = field(default_factory=list)


def normalize_line_endings(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n")


def _chomp(line: str) -> str:
    if line.endswith("\r\n"):
        return line[:-2]
    if line.endswith("\n") or line.endswith("\r"):
        return line[:-1]
    return line


def _is_marker(line: str, marker: str) -> bool:
    return _chomp(line).rstrip() == marker


# ------------------------------
# DIFF 解析
# ------------------------------

def parse_search_replace(text: str) -> List[SearchReplaceBlock]:
    """
    Scan ``text`` for SEARCH / ======= / REPLACE markers at line starts.
    An unterminated block yields nothing; a new SEARCH marker discards any
    block still in progress.
    """
    blocks = []
    section = None  # None | "search" | "replace"
    search_lines: List[str] = []
    replace_lines: List[str] = []

    for line in _LINE_RE.findall(text):
        if _is_marker(line, SEARCH_MARKER):
            section = "search"
            search_lines, replace_lines = [], []
        elif section == "search" and _is_marker(line, DIVIDER_MARKER):
            section = "replace"
        elif section == "replace" and _is_marker(line, REPLACE_MARKER):
            blocks.append(SearchReplaceBlock(
                search=_chomp("".join(search_lines)),
                replace=_chomp("".join(replace_lines)),
            ))
            section = None
        elif section == "search":
            search_lines.append(line)
        elif section == "replace":
            replace_lines.append(line)
    return blocks


def render_search_replace(blocks: List[SearchReplaceBlock]) -> str:
    """把 SearchReplaceBlock 列表渲染回 DIFF 文本"""
    parts = []
    for block in blocks:
        parts.append(SEARCH_MARKER)
        if block.search:
            parts.append(block.search)
        parts.append(DIVIDER_MARKER)
        if block.replace:
            parts.append(block.replace)
        parts.append(REPLACE_MARKER)
    return "\n".join(parts)


# ------------------------------
# PATCH 解析
# ------------------------------

def split_patch_sections(text: str) -> List[Tuple[str, List[str]]]:
    """Return ``(path, body_lines)`` for every ``*** Update File:`` section."""
    sections = []
    current_path = None
    current_lines: List[str] = []

    for line in normalize_line_endings(text).split("\n"):
        if line.startswith(UPDATE_FILE):
            if current_path is not None:
                sections.append((current_path, current_lines))
            current_path = normalize_path(line[len(UPDATE_FILE):])
            current_lines = []
        elif line.startswith("*** "):
            # End Patch、Begin Patch 或不支持的指令都会结束当前段落
            if current_path is not None:
                sections.append((current_path, current_lines))
            current_path = None
            current_lines = []
            if line.rstrip() == END_PATCH:
                break
        elif current_path is not None:
            current_lines.append(line)

    if current_path is not None:
        sections.append((current_path, current_lines))
    return sections


def hunks_to_blocks(lines: List[str]) -> List[SearchReplaceBlock]:
    blocks = []
    search: List[str] = []
    replace: List[str] = []
    in_hunk = False

    def flush():
        if search or replace:
            blocks.append(SearchReplaceBlock(search="\n".join(search), replace="\n".join(replace)))

    for line in lines:
        if line.startswith("@@"):
            if in_hunk:
                flush()
            search, replace = [], []
            in_hunk = True
            continue
        if line.startswith("+"):
            replace.append(line[1:])
        elif line.startswith("-"):
            search.append(line[1:])
        elif line.startswith(" ") or (line == "" and in_hunk):
            search.append(line[1:])
            replace.append(line[1:])
        else:
            continue
        in_hunk = True
    if in_hunk:
        flush()
    return blocks


def _trim_trailing_blank_context(lines: List[str]) -> List[str]:
    # split() 在文本末尾产生的空行不属于任何 hunk
    lines = list(lines)
    while lines and lines[-1] == "":
        lines.pop()
    return lines


def parse_patch_envelope(text: str, file_path: str) -> Optional[List[SearchReplaceBlock]]:
    """
    Reduce the section of a patch envelope that targets ``file_path`` to
    search/replace blocks. Returns None when the envelope has sections but
    none for this path. An envelope without any ``Update File`` header is
    read as a single section for the edit's own file.
    """
    target = normalize_path(file_path)
    sections = split_patch_sections(text)
    if not sections:
        body = [
            line for line in normalize_line_endings(text).split("\n")
            if not line.startswith("*** ")
        ]
        return hunks_to_blocks(_trim_trailing_blank_context(body))

    blocks = None
    for path, body in sections:
        if path == target:
            blocks = (blocks or []) + hunks_to_blocks(_trim_trailing_blank_context(body))
    return blocks


# ------------------------------
# 应用
# ------------------------------

def apply_blocks(content: str, blocks: List[SearchReplaceBlock], file_path: str = "") -> PatchResult:
    """
    Apply blocks in document order, each against the previous result.
    The replacement text is inserted verbatim.
    """
    result = PatchResult(content=content)
    for number, block in enumerate(blocks, start=1):
        current = normalize_line_endings(result.content)
        search = normalize_line_endings(block.search)
        if search:
            position = current.find(search)
        else:
            # 空 search 只能匹配空文件（新建文件）
            position = 0 if current == "" else -1
        if position == -1:
            result.unresolved_blocks += 1
            preview = search.strip().splitlines()[0] if search.strip() else "<empty>"
            result.conditions.append(Condition(
                ConditionKind.UNRESOLVED_SEARCH_BLOCK,
                f"Search block #{number} not found (starts with: {preview[:60]!r}); block skipped.",
                file_path or None,
            ))
            continue
        result.content = current[:position] + block.replace + current[position + len(search):]
        result.resolved_blocks += 1
    return result


def apply_edit(current_content: Optional[str], edit: Edit) -> PatchResult:
    """
    Apply one Edit. ``current_content`` is None when the file does not
    exist yet.
    """
    if edit.kind is EditKind.FULL_REWRITE:
        return PatchResult(content=edit.content, resolved_blocks=1)

    base = current_content if current_content is not None else ""
    if edit.kind is EditKind.SEARCH_REPLACE_DIFF:
        return apply_blocks(base, parse_search_replace(edit.content), edit.file_path)

    blocks = parse_patch_envelope(edit.content, edit.file_path)
    if blocks is None:
        return PatchResult(content=base, conditions=[Condition(
            ConditionKind.MISSING_PATCH_SECTION,
            "Patch has no '*** Update File:' section for this path; edit skipped.",
            edit.file_path,
        )])
    return apply_blocks(base, blocks, edit.file_path)
