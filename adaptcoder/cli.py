# adaptcoder/cli.py
"""
AdaptCoder CLI 主入口
"""
from pathlib import Path

import click

from adaptcoder import __version__
from adaptcoder.core.config import CONFIG_FILE, STATE_DIR, ConfigError, get_profile, load_config, validate_config
from adaptcoder.core.generator import FeatureGenerator
from adaptcoder.core.init import init_project as perform_init_project
from adaptcoder.core.models import assistant_turn, user_turn
from adaptcoder.core.oracle import HttpOracle, OracleError
from adaptcoder.core.parser import parse_change_set
from adaptcoder.core.prompt import format_conversation
from adaptcoder.core.restart import RestartTrigger
from adaptcoder.core.workspace import Workspace
from adaptcoder.utils.console import (
    console, info, success, warning, error,
    heading, show_welcome, confirm, print_table, assistant_says,
)
from patchflow.core.models import ChangeSet

# ------------------------------
# CLI 主入口
# ------------------------------

@click.group(invoke_without_command=True)
@click.version_option(__version__, message="AdaptCoder CLI v%(version)s")
@click.pass_context
def cli(ctx):
    """🤖 AdaptCoder - let the application patch its own source tree"""
    show_welcome()
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())

# ------------------------------
# 辅助函数
# ------------------------------

def _load_config() -> dict:
    try:
        return load_config(CONFIG_FILE)
    except ConfigError as e:
        error(str(e))
        raise click.Abort()


def _load_workspace(scan: bool = True) -> Workspace:
    workspace = Workspace(_load_config())
    if scan:
        count = workspace.scan()
        info(f"Indexed {count} source files")
    return workspace


def _load_oracle(config: dict) -> HttpOracle:
    try:
        return HttpOracle.from_config(config)
    except KeyError as e:
        error(f"Oracle configuration incomplete: missing {e}")
        raise click.Abort()


def _show_change_set(change_set: ChangeSet):
    console.print(f"[bold]Description:[/bold] {change_set.description or '-'}")
    console.print(f"[bold]Needs restart:[/bold] {change_set.needs_restart}")
    rows = [(i + 1, op.kind.value, op.file_path) for i, op in enumerate(change_set.operations)]
    print_table(rows, headers=["#", "Operation", "File"], title="📋 Planned changes")


def _show_result(result):
    for outcome in result.failures:
        warning(f"{outcome.operation.kind.value} on {outcome.operation.file_path}: {outcome.reason}")
    if result.backup_timestamp is not None:
        info(f"Backup taken: {result.backup_timestamp}")
    if result.failure_count == 0:
        success(f"Applied {result.success_count} changes")
    else:
        warning(f"Applied {result.success_count} of {result.total} changes")

# ------------------------------
# 命令: init / config / validate
# ------------------------------

@cli.command()
def init():
    """🔧 Initialize project configuration"""
    heading("Project Initialization")
    if CONFIG_FILE.exists():
        if not confirm("Configuration already exists. Re-initializing will overwrite. Continue?", default=False):
            info("Cancelled.")
            return
    try:
        config_content = perform_init_project()
    except ValueError as e:
        error(f"Initialization failed: {e}")
        raise click.Abort()

    STATE_DIR.mkdir(exist_ok=True)
    CONFIG_FILE.write_text(config_content, encoding="utf-8")
    success(f"Generated: {CONFIG_FILE}")
    success("Initialization complete!")


@cli.command(name="config")
def show_config():
    """📚 Show the effective configuration (file values merged with defaults)"""
    heading("Effective Configuration")
    console.print_json(data=_load_config())


@cli.command()
def validate():
    """✅ Validate .adaptcoder/config.yaml"""
    problems = validate_config(_load_config())
    if problems:
        for p in problems:
            error(p)
        raise click.Abort()
    success("Configuration is valid")

# ------------------------------
# 命令: index / apply / generate
# ------------------------------

@cli.command()
def index():
    """🗂️ Scan the source tree and show a summary"""
    workspace = _load_workspace()
    rows = [
        (f.path, f.line_count, ", ".join(f.classes) or "-", len(f.functions))
        for f in workspace.store.files()
    ]
    print_table(rows, headers=["File", "Lines", "Classes", "Functions"], title="📋 Source files")


@cli.command()
@click.argument("changeset_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--no-backup", is_flag=True, help="Apply without taking a snapshot first")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
def apply(changeset_file, no_backup, yes):
    """🩹 Apply a ChangeSet JSON file to the source tree"""
    text = Path(changeset_file).read_text(encoding="utf-8")
    change_set = parse_change_set(text)
    if change_set is None:
        error(f"{changeset_file} does not contain a ChangeSet (a JSON object with a 'changes' list)")
        raise click.Abort()

    workspace = _load_workspace()
    _show_change_set(change_set)
    if not yes and not confirm("Apply these changes?", default=True):
        info("Cancelled.")
        return
    result = workspace.engine.apply(change_set.operations, snapshot=not no_backup)
    _show_result(result)
    if change_set.needs_restart:
        info("These changes take effect after the application restarts.")


@cli.command()
@click.option("--description", "-d", required=True, help="Feature description")
@click.option("--yes", "-y", is_flag=True, help="Apply without asking for confirmation")
@click.option("--dry-run", is_flag=True, help="Only show the generated changes")
def generate(description, yes, dry_run):
    """🧠 Generate a feature with the model and apply it"""
    workspace = _load_workspace()
    oracle = _load_oracle(workspace.config)
    generator: FeatureGenerator = workspace.build_generator(oracle)

    change_set = generator.generate([user_turn(description)])
    if change_set.is_empty:
        error(change_set.description)
        raise click.Abort()

    _show_change_set(change_set)
    if change_set.is_fallback:
        warning("The model reply was unusable, showing a built-in change set")
    if dry_run:
        console.print_json(data=change_set.to_dict())
        return
    if not yes and not confirm("Apply these changes?", default=True):
        info("Cancelled.")
        return
    _show_result(generator.apply(change_set, snapshot=True))

# ------------------------------
# 命令: chat (交互式)
# ------------------------------

@cli.command()
@click.option("--no-restart", is_flag=True, help="Never restart automatically after a feature is added")
def chat(no_restart):
    """💬 Chat with the assistant; feature requests start the guided workflow"""
    workspace = _load_workspace()
    oracle = _load_oracle(workspace.config)
    restart_trigger = None if no_restart else RestartTrigger.from_config(workspace.config)
    workflow = workspace.build_workflow(oracle, restart_trigger)
    history = []
    profile = get_profile(workspace.config, "chat")

    info("Type a message, or an empty line to leave.")
    while True:
        try:
            utterance = console.input("[prompt]> [/prompt]").strip()
        except (EOFError, KeyboardInterrupt):
            break
        if not utterance:
            break

        reply = workflow.handle(utterance)
        if reply.handled:
            assistant_says(reply.message)
            continue

        history.append(user_turn(utterance))
        try:
            prompt = format_conversation(history[-10:])
            answer = oracle.complete(prompt + "\nASSISTANT:", profile["temperature"], profile["max_tokens"]).strip()
        except OracleError as e:
            error(str(e))
            continue
        history.append(assistant_turn(answer))
        assistant_says(answer)

# ------------------------------
# backup 命令组
# ------------------------------

@cli.group()
def backup():
    """💾 Manage source snapshots"""
    pass


@backup.command(name="create")
def backup_create():
    """Take a snapshot of every indexed file"""
    workspace = _load_workspace()
    ts = workspace.backup_store.snapshot(operation="manual-backup")
    success(f"Backup created: {ts}")


@backup.command(name="list")
def backup_list():
    """List snapshots, newest first"""
    workspace = _load_workspace(scan=False)
    backups = workspace.backup_store.list_backups()
    if not backups:
        info("No backups found.")
        return
    rows = [(i, b.timestamp, b.date, b.file_count) for i, b in enumerate(backups)]
    print_table(rows, headers=["Index", "Timestamp", "Date", "Files"], title="📋 Backups")


@backup.command(name="restore")
@click.argument("timestamp", type=int)
def backup_restore(timestamp):
    """Restore the snapshot with the given timestamp"""
    workspace = _load_workspace()
    restored = workspace.backup_store.restore(timestamp)
    if restored == 0:
        warning(f"Nothing restored from backup {timestamp}")
    else:
        success(f"Restored {restored} files from backup {timestamp}")


@backup.command(name="rollback")
@click.option("--index", "-i", default=0, show_default=True, help="0 = most recent snapshot")
def backup_rollback(index):
    """Restore a snapshot by its position in `backup list`"""
    workspace = _load_workspace()
    result = workspace.backup_store.rollback(index)
    if not result.success:
        error(result.error)
        raise click.Abort()
    success(result.message)


@backup.command(name="prune")
@click.option("--keep", "-k", required=True, type=int, help="Number of newest snapshots to keep")
def backup_prune(keep):
    """Delete all but the newest KEEP snapshots"""
    workspace = _load_workspace(scan=False)
    try:
        removed = workspace.backup_store.prune(keep)
    except ValueError as e:
        error(str(e))
        raise click.Abort()
    success(f"Removed {removed} backups")


@backup.command(name="log")
def backup_log():
    """Show the operation log"""
    workspace = _load_workspace(scan=False)
    entries = workspace.operation_log.entries()
    if not entries:
        info("Operation log is empty.")
        return
    console.print_json(data=entries)


if __name__ == '__main__':
    cli()
