"""
统一的控制台输出工具，基于 rich 实现结构化的 CLI 交互。
"""
from rich.console import Console as RichConsole
from rich.table import Table
from rich.theme import Theme
from typing import Any, Iterable

# 自定义主题
CUSTOM_THEME = Theme({
    "info": "cyan bold",
    "success": "green bold",
    "warning": "yellow bold",
    "error": "red bold",
    "heading": "bold underline",
    "path": "magenta",
    "prompt": "green",
})

# 全局控制台实例（单例）
console = RichConsole(theme=CUSTOM_THEME, soft_wrap=True)


# --- 便捷输出函数 ---

def info(message: str):
    """蓝色信息提示"""
    console.print(f"💡 [info]INFO[/info]: {message}")


def success(message: str):
    """绿色成功提示"""
    console.print(f"✅ [success]SUCCESS[/success]: {message}")


def warning(message: str):
    """黄色警告提示"""
    console.print(f"⚠️  [warning]WARNING[/warning]: {message}")


def error(message: str):
    """红色错误提示"""
    console.print(f"❌ [error]ERROR[/error]: {message}")


def heading(title: str):
    """标题输出"""
    console.print(f"\n🎯 [heading]{title}[/heading]\n")


def print_json(data: Any):
    console.print_json(data=data)


def confirm(prompt: str, default: bool = True) -> bool:
    """确认对话（Y/N）"""
    yes_no = "[Y/n]" if default else "[y/N]"
    response = console.input(f"❓ {prompt} {yes_no}: ").strip().lower()
    if not response:
        return default
    return response in ("y", "yes")


def print_table(rows: Iterable[Iterable[Any]], headers: list, title: str = None):
    """打印简单表格"""
    table = Table(title=title, show_header=True, header_style="bold magenta")
    for h in headers:
        table.add_column(h)
    for row in rows:
        table.add_row(*[str(cell) for cell in row])
    console.print(table)
