# aibridge/core/parser.py
"""
ChangeSet 解析：将规范化后的 JSON 值转换为 ChangeSet。

支持的历史格式：
- 顶层数组：等价于 code_changes，status 视为 COMPLETED
- 缺少 status 但包含 code_changes 数组的对象
- 标准对象 {status, reasoning, request_files, code_changes}
"""

from pathlib import PurePosixPath, PureWindowsPath
from typing import Any, Dict, List, Optional

from .models import ChangeSet, ChangeStatus, Condition, ConditionKind, Edit, EditKind

STATUS_ALIASES = {
    "COMPLETED": ChangeStatus.COMPLETED,
    "NEED_CONTEXT": ChangeStatus.NEEDS_CONTEXT,
}

EDIT_TYPES = {kind.value: kind for kind in EditKind}


def normalize_path(path: str) -> str:
    """统一使用正斜杠并去掉开头的 ./"""
    path = path.strip().replace("\\", "/")
    while path.startswith("./"):
        path = path[2:]
    return path


def is_safe_relative_path(path: str) -> bool:
    """
    Lexical check: the path must be relative and must not climb above the
    project root through '..' segments.
    """
    if not path:
        return False
    if PurePosixPath(path).is_absolute() or PureWindowsPath(path).is_absolute():
        return False
    if PureWindowsPath(path).drive:
        return False
    depth = 0
    for part in PurePosixPath(path).parts:
        if part == "..":
            depth -= 1
            if depth < 0:
                return False
        elif part != ".":
            depth += 1
    return True


def _coerce_shape(value: Any) -> Optional[Dict[str, Any]]:
    if isinstance(value, list):
        return {"status": "COMPLETED", "code_changes": value}
    if not isinstance(value, dict):
        return None
    if "status" not in value and isinstance(value.get("code_changes"), list):
        return {**value, "status": "COMPLETED"}
    return value


def _parse_status(raw: Any) -> ChangeStatus:
    if not isinstance(raw, str):
        return ChangeStatus.UNKNOWN
    return STATUS_ALIASES.get(raw.strip().upper(), ChangeStatus.UNKNOWN)


def _parse_edit(item: Any, index: int, conditions: List[Condition],
                allow_unsafe_paths: bool) -> Optional[Edit]:
    if not isinstance(item, dict):
        conditions.append(Condition(ConditionKind.DROPPED_EDIT, f"Change #{index + 1} is not an object."))
        return None

    file_path = item.get("file_path")
    if not isinstance(file_path, str) or not file_path.strip():
        conditions.append(Condition(ConditionKind.DROPPED_EDIT, f"Change #{index + 1} has no file_path."))
        return None
    file_path = normalize_path(file_path)

    raw_type = item.get("type")
    kind = EDIT_TYPES.get(raw_type.strip().upper()) if isinstance(raw_type, str) else None
    if kind is None:
        conditions.append(Condition(
            ConditionKind.DROPPED_EDIT,
            f"Unsupported change type {raw_type!r}; change skipped.",
            file_path,
        ))
        return None

    content = item.get("content")
    if content is None:
        content = ""
    if not isinstance(content, str):
        conditions.append(Condition(ConditionKind.DROPPED_EDIT, "Change content is not a string.", file_path))
        return None

    if not allow_unsafe_paths and not is_safe_relative_path(file_path):
        conditions.append(Condition(
            ConditionKind.UNSAFE_PATH,
            "Path is absolute or escapes the project root; change rejected.",
            file_path,
        ))
        return None

    return Edit(file_path=file_path, kind=kind, content=content)


def _parse_requested_files(raw: Any, conditions: List[Condition], allow_unsafe_paths: bool) -> List[str]:
    requested = []
    if not isinstance(raw, list):
        return requested
    for entry in raw:
        if not isinstance(entry, str) or not entry.strip():
            continue
        path = normalize_path(entry)
        if not allow_unsafe_paths and not is_safe_relative_path(path):
            conditions.append(Condition(
                ConditionKind.UNSAFE_PATH,
                "Requested path is absolute or escapes the project root; ignored.",
                path,
            ))
            continue
        if path not in requested:
            requested.append(path)
    return requested


def parse_change_set(value: Any, allow_unsafe_paths: bool = False) -> ChangeSet:
    """
    将 JSON 值映射为 ChangeSet。
    未知 status 不是错误，而是返回 UNKNOWN 并附带一个 Condition。
    """
    data = _coerce_shape(value)
    if data is None:
        return ChangeSet(
            status=ChangeStatus.UNKNOWN,
            conditions=[Condition(ConditionKind.UNKNOWN_STATUS, "Response JSON is neither an object nor an array.")],
        )

    reasoning = data.get("reasoning")
    if reasoning is not None and not isinstance(reasoning, str):
        reasoning = str(reasoning)

    status = _parse_status(data.get("status"))
    conditions: List[Condition] = []

    if status is ChangeStatus.UNKNOWN:
        conditions.append(Condition(
            ConditionKind.UNKNOWN_STATUS,
            f"Unrecognized status {data.get('status')!r}; nothing was applied.",
        ))
        return ChangeSet(status=status, reasoning=reasoning, conditions=conditions)

    if status is ChangeStatus.NEEDS_CONTEXT:
        requested = _parse_requested_files(data.get("request_files"), conditions, allow_unsafe_paths)
        return ChangeSet(status=status, reasoning=reasoning, requested_files=requested, conditions=conditions)

    edits = []
    raw_changes = data.get("code_changes")
    if isinstance(raw_changes, list):
        for index, item in enumerate(raw_changes):
            edit = _parse_edit(item, index, conditions, allow_unsafe_paths)
            if edit is not None:
                edits.append(edit)
    if not edits:
        conditions.append(Condition(ConditionKind.EMPTY_CHANGE_SET, "Response is COMPLETED but contains no usable code changes."))

    return ChangeSet(status=status, reasoning=reasoning, edits=edits, conditions=conditions)
