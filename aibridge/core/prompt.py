# aibridge/core/prompt.py
"""
发给模型的指令文本渲染（Jinja2）。
指令中的 JSON 结构与 diff 语法必须与 normalizer/parser/patcher 保持一致。
"""

from pathlib import Path
from typing import Dict, Any, Optional

import jinja2

from . import patcher
from .models import Round

# 📁 模板根目录（相对于当前文件）
TEMPLATES_DIR = Path(__file__).parent.parent / "templates"
SYSTEM_PROMPT_TEMPLATE = "system_prompt.md.j2"

DIFF_FORMATS = {
    "search_replace": "DIFF",
    "patch": "PATCH",
}


class PromptRenderer:
    def __init__(self, diff_format: str = "search_replace"):
        if diff_format not in DIFF_FORMATS:
            raise ValueError(f"Unknown diff format '{diff_format}', expected one of {sorted(DIFF_FORMATS)}")
        self.diff_format = diff_format
        self.env = self._create_jinja_env()

    def _create_jinja_env(self) -> jinja2.Environment:
        loader = jinja2.FileSystemLoader(str(TEMPLATES_DIR))
        return jinja2.Environment(loader=loader, autoescape=False, trim_blocks=True, lstrip_blocks=True)

    def _markers(self) -> Dict[str, str]:
        return {
            "search_marker": patcher.SEARCH_MARKER,
            "divider_marker": patcher.DIVIDER_MARKER,
            "replace_marker": patcher.REPLACE_MARKER,
            "begin_patch": patcher.BEGIN_PATCH,
            "update_file": patcher.UPDATE_FILE,
            "end_patch": patcher.END_PATCH,
        }

    def render(self, goal: str, round_: Round, additional_context: Optional[Dict[str, Any]] = None) -> str:
        try:
            template = self.env.get_template(SYSTEM_PROMPT_TEMPLATE)
        except jinja2.TemplateNotFound:
            raise FileNotFoundError(f"Template not found: {TEMPLATES_DIR / SYSTEM_PROMPT_TEMPLATE}")

        context = {
            **self._markers(),
            "goal": goal,
            "round_index": round_.index,
            "files": list(round_.files),
            "structure_file": round_.structure_file,
            "diff_type": DIFF_FORMATS[self.diff_format],
        }
        if additional_context:
            context.update(additional_context)
        return template.render(**context).strip()
