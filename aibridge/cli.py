# aibridge/cli
"""
AI Bridge CLI 主入口
"""
import sys
from datetime import datetime
from pathlib import Path

import click
from rich.markup import escape
from rich.panel import Panel
from rich.text import Text

from aibridge import __version__
from aibridge.core.coder import Coder
from aibridge.core.config import CONFIG_FILE, STATE_DIR, load_config, render_default_config
from aibridge.core.errors import BridgeError
from aibridge.core.state import load_task, save_task
from aibridge.utils.console import (
    console, info, success, error,
    heading, confirm, print_json, print_table
)

# ------------------------------
# CLI 主入口
# ------------------------------

@click.group(invoke_without_command=True)
@click.version_option(__version__, message="AI Bridge CLI v%(version)s")
@click.pass_context
def cli(ctx):
    """🤖 AI Bridge - copy files to an AI chat, apply its edits back"""
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


def _load_coder() -> Coder:
    try:
        return Coder(config_data=load_config())
    except BridgeError as e:
        error(f"Invalid configuration: {e}")
        raise click.Abort()


def _prompt_panel(task, title: str) -> Panel:
    return Panel(Text(task.last_system_prompt), title=title, border_style="blue")


def _require_task():
    task = load_task()
    if task is None:
        error("No active task. Run `aibridge stage FILES... --goal ...` first.")
        raise click.Abort()
    return task

# ------------------------------
# 命令: init / validate
# ------------------------------

@cli.command()
def init():
    """🔧 Write the default .aibridge/config.yaml"""
    heading("Project Initialization")
    if CONFIG_FILE.exists():
        if not confirm(f"{CONFIG_FILE} already exists. Overwrite?", default=False):
            info("Cancelled.")
            return
    STATE_DIR.mkdir(exist_ok=True)
    CONFIG_FILE.write_text(render_default_config(), encoding="utf-8")
    success(f"Generated: {CONFIG_FILE}")


@cli.command(name="validate")
def config_validate():
    """✅ Validate .aibridge/config.yaml"""
    heading("Validating Configuration")
    try:
        config_data = load_config()
    except BridgeError as e:
        error(f"Validation failed: {e}")
        raise click.Abort()
    print_json(config_data)
    success("Configuration file validated successfully!")

# ------------------------------
# 命令: stage
# ------------------------------

@cli.command()
@click.argument("files", nargs=-1, required=True)
@click.option("--goal", "-g", required=True, help="What the model should do with these files")
@click.option("--structure", "structure_file", type=click.Path(exists=True, dir_okay=False),
              help="Project structure listing to stage alongside the files")
def stage(files, goal: str, structure_file: str):
    """📦 Start a new task: stage FILES as round 1 and print the prompt"""
    coder = _load_coder()
    structure_text = Path(structure_file).read_text(encoding="utf-8") if structure_file else None

    task = coder.start_task(goal, [Path(f).as_posix() for f in files], structure_text=structure_text)
    if not task.current_round.files:
        error("No valid files were staged. Did you select a directory instead of files?")
        raise click.Abort()

    save_task(task)
    console.print(_prompt_panel(task, f"📋 Prompt (round 1, task {task.task_id})"))
    console.print(f"\n📂 Attach the files in: [path]{escape(task.current_round.directory)}[/path]")
    console.print(f"💡 Then run: [cyan]aibridge apply RESPONSE_FILE[/cyan]")

# ------------------------------
# 命令: apply
# ------------------------------

@cli.command()
@click.argument("response_file", type=click.File("r", encoding="utf-8"))
def apply(response_file):
    """💾 Apply a model response (use '-' to read stdin)"""
    task = _require_task()
    coder = _load_coder()
    heading(f"Applying response to task {task.task_id} (round {task.current_round.index})")

    ai_response = response_file.read()
    try:
        outcome = coder.apply_response(task, ai_response)
    except BridgeError as e:
        error(escape(str(e)))
        raise click.Abort()

    if outcome.task is not task:
        save_task(outcome.task)
    if outcome.new_round is not None:
        console.print(_prompt_panel(outcome.task, f"📋 Prompt (round {outcome.new_round.index})"))
    if not outcome.actionable:
        sys.exit(1)

# ------------------------------
# 命令: prompt / status
# ------------------------------

@cli.command()
def prompt():
    """🧾 Show the prompt for the current round"""
    task = _require_task()
    console.print(_prompt_panel(task, f"📋 Prompt (round {task.current_round.index})"))


@cli.command()
def status():
    """📊 Show the active task and its rounds"""
    task = _require_task()
    heading(f"Task {task.task_id}")
    console.print(f"🎯 Goal: {escape(task.goal)}")
    console.print(f"📌 State: {task.state.value}")
    console.print(f"🕒 Updated: {datetime.fromtimestamp(task.updated_at).strftime('%Y-%m-%d %H:%M:%S')}")
    rows = [(r.index, len(r.files), r.structure_file or "-", r.directory) for r in task.rounds]
    print_table(rows, headers=["Round", "Files", "Structure", "Directory"], title="Rounds")
    if task.review_round:
        info(f"Review snapshot: {escape(task.review_round.directory)}")


if __name__ == '__main__':
    cli()
