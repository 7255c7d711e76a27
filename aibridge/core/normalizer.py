# aibridge/core/normalizer.py
"""
响应规范化：从模型返回的任意文本中提取最可能的 JSON 值。

候选提取策略按优先级排列，第一个能被严格 JSON 解析的候选胜出：
1. 代码围栏 (```json ... ```) 内部
2. 未闭合围栏：去掉首尾单个围栏标记
3. 整段文本
4. 顶层 [...] 片段
5. 顶层 {...} 片段

所有严格候选都失败后，才会在修复过未转义 diff 内容的文本上重试。
"""

import json
import re
from typing import Any, Callable, List, Optional

from .errors import UnparseableResponse

FENCE = "```"

_FENCED_BLOCK_RE = re.compile(r"```([\s\S]*?)```")
_LEADING_FENCE_RE = re.compile(r"^```[ \t]*(?:json)?[ \t]*\r?\n?", re.IGNORECASE)
_TRAILING_FENCE_RE = re.compile(r"\r?\n?```[ \t]*$")

# "content": "<<<<<<< SEARCH ... >>>>>>> REPLACE" 中包含未转义换行的情况。
# 正文里的引号只有在后面不紧跟 , } ] 时才算正文，匹配不会越过字符串边界。
_RAW_DIFF_CONTENT_RE = re.compile(
    r'("content"\s*:\s*)"'
    r'(<<<<<<< SEARCH(?:[^"\\]|\\.|"(?!\s*[,}\]]))*?>>>>>>> REPLACE[ \t]*(?:\r\n|\r|\n)?)"'
)


def repair_raw_diff_content(text: str) -> str:
    """
    Re-escape search/replace diff literals that were emitted inside a JSON
    string with raw newlines. Already-valid strings are left untouched.
    Only used once every strict candidate has failed to parse.
    """
    def _escape(match: 're.Match') -> str:
        body = match.group(2)
        if "\n" not in body and "\r" not in body:
            return match.group(0)
        return match.group(1) + json.dumps(body, ensure_ascii=False)

    return _RAW_DIFF_CONTENT_RE.sub(_escape, text)


# ------------------------------
# 候选提取策略
# ------------------------------

def fenced_block(text: str) -> Optional[str]:
    match = _FENCED_BLOCK_RE.search(text)
    if not match:
        return None
    interior = match.group(1).strip()
    if interior[:4].lower() == "json":
        interior = interior[4:].strip()
    return interior


def unterminated_fence(text: str) -> Optional[str]:
    if FENCE not in text or _FENCED_BLOCK_RE.search(text):
        return None
    stripped = _LEADING_FENCE_RE.sub("", text.strip(), count=1)
    stripped = _TRAILING_FENCE_RE.sub("", stripped, count=1)
    return stripped.strip()


def whole_text(text: str) -> Optional[str]:
    return text.strip() or None


def _span(text: str, opener: str, closer: str) -> Optional[str]:
    start = text.find(opener)
    end = text.rfind(closer)
    if start == -1 or end <= start:
        return None
    return text[start:end + 1]


def array_span(text: str) -> Optional[str]:
    # 第一个 { 在第一个 [ 之前时，数组只可能是对象的成员
    brace = text.find("{")
    if brace != -1 and brace < text.find("["):
        return None
    return _span(text, "[", "]")


def object_span(text: str) -> Optional[str]:
    return _span(text, "{", "}")


CANDIDATE_STRATEGIES: List[Callable[[str], Optional[str]]] = [
    fenced_block,
    unterminated_fence,
    whole_text,
    array_span,
    object_span,
]


def extract_candidates(text: str) -> List[str]:
    """按优先级返回去重后的候选字符串列表"""
    candidates = []
    for strategy in CANDIDATE_STRATEGIES:
        candidate = strategy(text)
        if candidate and candidate not in candidates:
            candidates.append(candidate)
    return candidates


def normalize_response(text: str) -> Any:
    """
    Return the best-effort JSON value encoded in ``text``.

    Raises:
        UnparseableResponse: if no candidate parses as strict JSON.
    """
    text = text or ""
    candidates = extract_candidates(text)
    repaired = repair_raw_diff_content(text)
    if repaired != text:
        candidates += [c for c in extract_candidates(repaired) if c not in candidates]

    for candidate in candidates:
        try:
            return json.loads(candidate)
        except json.JSONDecodeError:
            continue
    raise UnparseableResponse(len(text), len(candidates))
