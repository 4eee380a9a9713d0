#!/usr/bin/env python3
"""
Patchbay CLI

Hand a folder to an agent, watch it work, review the changed files and
commit the ones you approve.
"""

from __future__ import annotations

import argparse
import asyncio
import difflib
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any

from client.api import DEFAULT_URL, ApiError, PatchbayClient
from client.files import collect_files
from client.morph import MorphAnimator
from core.changes import ChangeReview, CommitReport, ModifiedFile, apply_changes
from core.errors import PatchbayError, ValidationError
from core.workspace import FileRecord

logger = logging.getLogger(__name__)


def unified_diff(path: str, original: str | None, modified: str) -> str:
    """Unified diff of one file; a new file diffs against /dev/null."""
    before = (original or "").splitlines(keepends=True)
    after = modified.splitlines(keepends=True)
    return "".join(
        difflib.unified_diff(
            before,
            after,
            fromfile=f"a/{path}" if original is not None else "/dev/null",
            tofile=f"b/{path}",
        )
    )


def load_change_set(path: str | Path) -> list[ModifiedFile]:
    """Read a saved change set: a list, or a terminal record with ``modifiedFiles``."""
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValidationError(f"{path} is not valid JSON: {e}") from e
    if isinstance(data, dict):
        data = data.get("modifiedFiles", data.get("changes", []))
    if not isinstance(data, list):
        raise ValidationError(f"{path} does not hold a list of changes")
    return [ModifiedFile.from_dict(item) for item in data]


def save_change_set(path: str | Path, changes: list[ModifiedFile]) -> None:
    Path(path).write_text(
        json.dumps([c.to_dict() for c in changes], ensure_ascii=False, indent=2),
        encoding="utf-8",
    )


async def _stream_run(args, files: list[FileRecord], console) -> dict[str, Any] | None:
    """Print progress lines; return the terminal record."""
    terminal: dict[str, Any] | None = None
    async with PatchbayClient(args.url) as client:
        async for record in client.run_agent(args.instruction, files, agent_kind=args.agent, trim=args.trim):
            if "stdout" in record:
                console.print(record["stdout"], style="dim", markup=False, highlight=False)
            elif "agentResult" in record:
                console.print_json(data=record["agentResult"])
            else:
                terminal = record
    return terminal


async def _animate_change(console, original: str, modified: str, delay: float) -> None:
    from rich.live import Live
    from rich.text import Text

    with Live(Text(original), console=console, refresh_per_second=30) as live:
        animator = MorphAnimator(lambda lines: live.update(Text("\n".join(lines))), delay=delay, text=original)
        animator.animate_to(modified)
        await animator.wait()


def _print_review(console, review: ChangeReview, originals: dict[str, str], deleted: list[str]) -> None:
    from rich.panel import Panel
    from rich.syntax import Syntax
    from rich.table import Table

    table = Table(title="Proposed changes")
    table.add_column("#", style="dim", justify="right")
    table.add_column("Path", style="cyan")
    table.add_column("Kind", style="yellow")
    for i, change in enumerate(review.pending):
        kind = "modified" if change.path in originals else "new"
        table.add_row(str(i + 1), change.path, kind)
    for path in deleted:
        table.add_row("-", path, "[red]deleted (not applied)[/red]")
    console.print(table)

    for change in review.pending:
        review.select(change.path)
        patch = unified_diff(change.path, originals.get(change.path), change.modified_content)
        console.print(Panel(Syntax(patch or "(no textual difference)", "diff"), title=review.active_path))


def _print_report(console, report: CommitReport) -> None:
    for result in report.results:
        if result.status == "written":
            console.print(f"[green]✓ {result.path}[/green]")
        elif result.status == "unchanged":
            console.print(f"[dim]= {result.path} (unchanged)[/dim]")
        else:
            console.print(f"[red]✗ {result.path}: {result.error}[/red]")
    console.print(
        f"{report.written} written, {report.unchanged} unchanged, {len(report.failed)} failed"
    )


def _server_apply(url: str):
    def apply(changes: list[ModifiedFile]) -> CommitReport:
        async def _commit() -> dict[str, Any]:
            async with PatchbayClient(url) as client:
                return await client.commit_changes(changes)

        return CommitReport.from_dict(asyncio.run(_commit()))

    return apply


def cmd_run(args) -> int:
    """Run an agent over a folder and review the result"""
    from rich.console import Console
    from rich.prompt import Confirm

    console = Console()
    folder = Path(args.folder).expanduser().resolve()
    files = collect_files(folder)
    if not files:
        console.print(f"[yellow]No files to send in {folder}[/yellow]")
        return 1
    originals = {f.path: f.content for f in files}
    console.print(f"[cyan]Sending {len(files)} files to {args.agent or 'the default agent'}...[/cyan]")

    try:
        terminal = asyncio.run(_stream_run(args, files, console))
    except ApiError as e:
        console.print(f"[red]✗ {e.message}[/red]")
        return 1

    if terminal is None:
        console.print("[red]✗ Stream ended without a result[/red]")
        return 1
    if "error" in terminal:
        error = terminal["error"]
        console.print(f"[red]✗ {error.get('type')}: {error.get('message')}[/red]")
        if error.get("stderr"):
            console.print(error["stderr"], style="red dim", markup=False)
        return 1

    changes = [ModifiedFile.from_dict(item) for item in terminal.get("modifiedFiles", [])]
    deleted = terminal.get("deletedFiles", [])
    review = ChangeReview()
    if not review.propose(changes):
        console.print("[yellow]The agent did not modify any files[/yellow]")
        return 0

    if args.save:
        save_change_set(args.save, changes)
        console.print(f"[dim]Saved change set to {args.save}[/dim]")
    if args.animate and review.active is not None:
        active = review.active
        asyncio.run(_animate_change(console, originals.get(active.path, ""), active.modified_content, args.delay))
    _print_review(console, review, originals, deleted)

    if not args.yes and not Confirm.ask("Commit these changes?", default=False):
        review.discard()
        console.print("[yellow]Discarded[/yellow]")
        return 0

    apply = (lambda pending: apply_changes(folder, pending)) if args.local else _server_apply(args.url)
    report = review.commit(apply)
    _print_report(console, report)
    return 0 if not report.failed else 2


def cmd_commit(args) -> int:
    """Apply a saved change set"""
    from rich.console import Console

    console = Console()
    changes = load_change_set(args.change_set)
    if not changes:
        console.print("[yellow]Change set is empty[/yellow]")
        return 0
    review = ChangeReview()
    review.propose(changes)
    if args.local:
        store = Path(args.local).expanduser().resolve()
        report = review.commit(lambda pending: apply_changes(store, pending))
    else:
        report = review.commit(_server_apply(args.url))
    _print_report(console, report)
    return 0 if not report.failed else 2


def cmd_raw(args) -> int:
    """Run a raw shell command on the server"""
    command = " ".join(args.command_line)

    async def _run() -> None:
        async with PatchbayClient(args.url) as client:
            async for text in client.run_raw_command(command):
                sys.stdout.write(text)
                sys.stdout.flush()

    try:
        asyncio.run(_run())
    except ApiError as e:
        print(f"✗ {e.message}", file=sys.stderr)
        return 1
    return 0


def cmd_agents(args) -> int:
    """List agent profiles"""
    from rich.console import Console
    from rich.table import Table

    async def _fetch() -> dict[str, Any]:
        async with PatchbayClient(args.url) as client:
            return await client.list_agents()

    console = Console()
    data = asyncio.run(_fetch())
    table = Table(title="Agents")
    table.add_column("Kind", style="cyan")
    table.add_column("Command", style="white")
    table.add_column("Description", style="dim")
    for agent in data.get("agents", []):
        kind = agent["kind"] + (" (default)" if agent["kind"] == data.get("default") else "")
        table.add_row(kind, " ".join([agent["executable"], *agent.get("args", [])]), agent.get("description", ""))
    console.print(table)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="patchbay", description="Patchbay - run code agents over your files")
    parser.add_argument("--url", default=os.environ.get("PATCHBAY_URL", DEFAULT_URL), help="Backend URL")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Run an agent over a folder")
    run.add_argument("folder", help="Folder whose files are sent")
    run.add_argument("-i", "--instruction", required=True, help="What the agent should do")
    run.add_argument("-a", "--agent", default=None, help="Agent kind (see `patchbay agents`)")
    run.add_argument("--trim", action="store_true", help="Strip surrounding whitespace from file contents")
    run.add_argument("--save", default=None, help="Write the change set to this JSON file")
    run.add_argument("--local", action="store_true", help="Commit into the folder instead of the server store")
    run.add_argument("--animate", action="store_true", help="Animate the first changed file")
    run.add_argument("--delay", type=float, default=0.01, help="Seconds per animation step")
    run.add_argument("-y", "--yes", action="store_true", help="Commit without asking")
    run.set_defaults(func=cmd_run)

    commit = sub.add_parser("commit", help="Apply a saved change set")
    commit.add_argument("change_set", help="JSON file written by `run --save`")
    commit.add_argument("--local", default=None, metavar="DIR", help="Apply into DIR instead of the server store")
    commit.set_defaults(func=cmd_commit)

    raw = sub.add_parser("cmd", help="Run a raw shell command on the server")
    raw.add_argument("command_line", nargs=argparse.REMAINDER, help="Command to run")
    raw.set_defaults(func=cmd_raw)

    agents = sub.add_parser("agents", help="List agent profiles")
    agents.set_defaults(func=cmd_agents)
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)
    try:
        return args.func(args)
    except (PatchbayError, OSError) as e:
        print(f"✗ {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
