"""CLI - Command line interface for the résumé builder."""

import asyncio
import os
from pathlib import Path
from typing import Iterable, List, Optional

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.history import FileHistory
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table

from .config import DEFAULT_CONFIG_PATH, BuilderConfig, load_config, load_raw_config
from .config_validator import Severity, has_errors, validate_config
from .domain.plain_text import build_plain_text_resume
from .llm import ModelClient
from .observability import PipelineObserver, setup_logging
from .session import ImportResult, ResumeSession, TurnResult
from .snapshots import SnapshotStore

console = Console()

DEFAULT_SNAPSHOT_DIR = "snapshots"


class ResumeCLICompleter(Completer):
    """Command auto-completer for interactive CLI."""

    COMMANDS = [
        "/help",
        "/show",
        "/reset",
        "/import",
        "/job",
        "/save",
        "/stats",
        "/quit",
        "/exit",
    ]

    @staticmethod
    def _yield_options(options: Iterable[str], current: str):
        start_position = -len(current)
        current_lower = current.lower()
        for option in options:
            if not current or option.lower().startswith(current_lower):
                yield Completion(option, start_position=start_position)

    @staticmethod
    def _path_options(current: str) -> List[str]:
        base = Path(current).parent if current else Path(".")
        try:
            entries = sorted(base.iterdir())
        except OSError:
            return []
        return [str(entry) + ("/" if entry.is_dir() else "") for entry in entries if not entry.name.startswith(".")]

    def get_completions(self, document, complete_event):
        text = document.text_before_cursor
        if not text.startswith("/"):
            return

        parts = text.split()
        if text.endswith(" "):
            parts.append("")
        if not parts:
            return

        if len(parts) == 1:
            yield from self._yield_options(self.COMMANDS, parts[0])
            return

        if parts[0].lower() in {"/import", "/job"} and len(parts) == 2:
            yield from self._yield_options(self._path_options(parts[1]), parts[1])


def print_banner():
    """Print welcome banner."""
    banner = """
╔═══════════════════════════════════════════════════════════╗
║                   📄 Résumé Builder                       ║
║       Build and tailor your résumé by chatting            ║
╠═══════════════════════════════════════════════════════════╣
║  Quick Commands:                                          ║
║    /help     - Show all commands                          ║
║    /show     - Show the current résumé                    ║
║    /import   - Import résumé text from a file             ║
║    /save     - Save a snapshot                            ║
║    /quit     - Exit                                       ║
╚═══════════════════════════════════════════════════════════╝
"""
    console.print(banner, style="cyan")


def print_help():
    help_text = """
## Commands

| Command | Description |
|---------|-------------|
| `/help` | Show this help |
| `/show` | Show the current résumé |
| `/reset` | Clear the résumé |
| `/import <file>` | Import résumé text from a plain-text file |
| `/job <file>` | Set the target job posting from a file |
| `/save [name]` | Save the résumé and chat as a snapshot |
| `/stats` | Show model call and patch statistics |
| `/quit` | Exit |

Anything else is sent to the assistant, which edits the résumé as you talk.
"""
    console.print(Markdown(help_text))


def show_document(session: ResumeSession):
    text = build_plain_text_resume(session.document)
    if not text:
        console.print("The résumé is empty. Import a file or start describing your experience.", style="dim")
        return
    console.print(Panel(text, title="📄 Résumé", border_style="cyan"))


def show_turn(result: TurnResult):
    if result.error:
        console.print(Panel(result.message, title="🤖 Assistant", border_style="red"))
        return
    if result.message:
        console.print(Panel(Markdown(result.message), title="🤖 Assistant", border_style="green"))
    for warning in result.warnings:
        console.print(f"⚠️ {warning}", style="yellow")
    if result.failure:
        console.print("No résumé changes in this reply.", style="dim")
    elif result.changed:
        console.print("✓ Résumé updated. Use /show to review it.", style="green")


def show_import(result: ImportResult):
    if not result.ok:
        console.print(f"❌ Import failed: {result.error}", style="red")
        return
    for warning in result.warnings:
        console.print(f"⚠️ {warning}", style="yellow")
    doc = result.document
    console.print(
        f"✓ Imported {len(doc.experiences)} experience(s) and {len(doc.skills)} skill(s).",
        style="green",
    )
    if result.followup_scheduled:
        console.print("Asking the assistant for the missing contact name...", style="dim")


def show_stats(observer: PipelineObserver):
    stats = observer.get_session_stats()
    table = Table(title="Session statistics")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    for key, value in stats.items():
        if isinstance(value, float):
            value = f"{value:.0f}"
        table.add_row(key.replace("_", " "), str(value))
    console.print(table)


def _read_text(path: str) -> str:
    return Path(path).expanduser().read_text(encoding="utf-8", errors="replace")


async def handle_command(
    command: str,
    session: ResumeSession,
    store: Optional[SnapshotStore] = None,
) -> bool:
    """Handle slash commands. Returns True if should continue, False to exit."""
    command_text = command.strip()
    cmd, _, arg = command_text.partition(" ")
    cmd = cmd.lower()
    arg = arg.strip()

    if cmd in ["/quit", "/exit", "/q"]:
        console.print("\n👋 Goodbye!", style="yellow")
        return False

    elif cmd == "/help":
        print_help()

    elif cmd == "/show":
        show_document(session)

    elif cmd == "/reset":
        await session.reset()
        session.history.clear()
        console.print("🔄 Résumé and conversation reset.", style="green")

    elif cmd == "/import":
        if not arg:
            console.print("Usage: /import <file>", style="yellow")
            return True
        try:
            raw_text = _read_text(arg)
        except OSError as e:
            console.print(f"❌ Cannot read {arg}: {e}", style="red")
            return True
        with console.status("Importing..."):
            result = await session.import_text(raw_text)
        show_import(result)

    elif cmd == "/job":
        if not arg:
            state = "set" if session.target_job else "not set"
            console.print(f"Target job is {state}. Usage: /job <file>", style="yellow")
            return True
        try:
            session.set_target_job(_read_text(arg))
        except OSError as e:
            console.print(f"❌ Cannot read {arg}: {e}", style="red")
            return True
        console.print("✓ Target job set.", style="green")

    elif cmd == "/save":
        if not store:
            console.print("⚠️ Snapshots not available.", style="yellow")
            return True
        await session.drain()
        try:
            snapshot_id = store.save(
                session.document,
                history=session.history,
                name=arg or None,
                target_job=session.target_job,
            )
            console.print(f"✓ Snapshot saved: {snapshot_id}", style="green")
            console.print("   Use --load to restore it later", style="dim")
        except OSError as e:
            console.print(f"❌ Failed to save snapshot: {e}", style="red")

    elif cmd == "/stats":
        show_stats(session.observer)

    else:
        console.print(f"Unknown command: {command_text}. Type /help for available commands.", style="red")

    return True


async def run_interactive(session: ResumeSession, store: Optional[SnapshotStore] = None):
    """Run interactive chat loop."""
    history_file = Path.home() / ".resume_builder_history"
    prompt = PromptSession(
        history=FileHistory(str(history_file)),
        completer=ResumeCLICompleter(),
        complete_while_typing=False,
    )

    print_banner()
    console.print(f"🤖 Model: {session.client.model}", style="dim")

    while True:
        try:
            user_input = await prompt.prompt_async("\n📝 You: ")
            user_input = user_input.strip()
            if not user_input:
                continue

            if user_input.startswith("/"):
                if not await handle_command(user_input, session, store):
                    break
                continue

            with console.status("🤔 Thinking..."):
                result = await session.send_message(user_input)
            console.print()
            show_turn(result)

        except KeyboardInterrupt:
            console.print("\n\n👋 Goodbye!", style="yellow")
            break
        except EOFError:
            console.print("\n👋 Goodbye!", style="yellow")
            break


async def run(args, config: BuilderConfig, client: ModelClient, store: SnapshotStore):
    snapshot = store.load(args.load) if args.load else None
    document = snapshot.document if snapshot else None

    async with ResumeSession(client, config=config, document=document) as session:
        if snapshot:
            session.history.extend(snapshot.history)
            session.set_target_job(snapshot.target_job)
            console.print(f"✓ Snapshot loaded: {snapshot.id}", style="green")

        if args.job:
            session.set_target_job(_read_text(args.job))

        if args.import_file:
            with console.status("Importing..."):
                show_import(await session.import_text(_read_text(args.import_file)))

        if args.prompt:
            # Non-interactive mode
            with console.status("🤔 Thinking..."):
                show_turn(await session.send_message(args.prompt))
            await session.drain()
            show_document(session)
        else:
            await run_interactive(session, store)

        if args.verbose:
            show_stats(session.observer)


def main():
    """Main entry point."""
    import argparse

    from dotenv import load_dotenv

    # Load environment variables from .env file
    load_dotenv()

    parser = argparse.ArgumentParser(description="Résumé Builder - build and tailor a résumé by chatting")
    parser.add_argument(
        "--config",
        "-c",
        default=DEFAULT_CONFIG_PATH,
        help="Path to configuration file",
    )
    parser.add_argument(
        "--prompt",
        "-p",
        help="Send a single message, print the result and exit",
    )
    parser.add_argument(
        "--import",
        dest="import_file",
        metavar="FILE",
        help="Import résumé text from a plain-text file before chatting",
    )
    parser.add_argument(
        "--job",
        "-j",
        metavar="FILE",
        help="Target job posting to tailor the résumé for",
    )
    parser.add_argument(
        "--load",
        "-l",
        metavar="SNAPSHOT",
        help="Restore a saved snapshot (use 'latest' for the most recent)",
    )
    parser.add_argument(
        "--snapshots",
        default=DEFAULT_SNAPSHOT_DIR,
        help=f"Snapshot directory (default: {DEFAULT_SNAPSHOT_DIR})",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        default=False,
        help="Verbose output (log model calls and extraction, print session stats)",
    )

    args = parser.parse_args()
    setup_logging(args.verbose)

    # Validate configuration at startup
    try:
        raw_config = load_raw_config(args.config)
    except FileNotFoundError:
        console.print(f"⚠️ Config file not found: {args.config}", style="yellow")
        console.print("Using default configuration. Set GEMINI_API_KEY environment variable.", style="dim")
        raw_config = {"api_key": os.environ.get("GEMINI_API_KEY", "")}
    except ValueError as e:
        console.print(f"❌ {e}", style="red")
        return

    issues = validate_config(raw_config)
    if issues:
        for issue in issues:
            icon = "❌" if issue.severity == Severity.ERROR else "⚠️"
            style = "red" if issue.severity == Severity.ERROR else "yellow"
            console.print(f"  {icon} [{issue.field}] {issue.message}", style=style)

        if has_errors(issues):
            console.print(
                "\n💡 Fix the errors above, then try again.\n"
                "   Quick fix: export GEMINI_API_KEY=your_key_here\n"
                "   Or copy config/config.yaml → config/config.local.yaml and set api_key",
                style="dim",
            )
            return

    try:
        config = load_config(args.config)
    except FileNotFoundError:
        config = BuilderConfig.from_dict(raw_config)

    store = SnapshotStore(args.snapshots)
    if args.load == "latest":
        args.load = store.latest()
        if args.load is None:
            console.print("No saved snapshots found.", style="yellow")
            return

    client = ModelClient.from_config(config, observer=PipelineObserver())

    try:
        asyncio.run(run(args, config, client, store))
    except FileNotFoundError as e:
        console.print(f"❌ {e}", style="red")


if __name__ == "__main__":
    main()
