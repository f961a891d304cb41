"""Command line entry point."""

import argparse
import logging

from rich.console import Console
from rich.markdown import Markdown
from rich.markup import escape
from rich.table import Table

from graph_assistant import __version__
from graph_assistant.agent import AgentOrchestrator
from graph_assistant.commands import execute_command, format_insights, insights_to_json
from graph_assistant.config import Settings
from graph_assistant.errors import AssistantError
from graph_assistant.export import ExportFormat
from graph_assistant.insights import InsightCategory, TimeRange
from graph_assistant.observability import LogLevel, read_log_file
from graph_assistant.shell import ChatShell

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    # Keep request-level chatter out of the terminal
    logging.getLogger("httpx").setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="graph-assistant",
        description="Chat assistant for Microsoft 365 meetings, emails and documents.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--log-level", default=None, help="Override GRAPH_ASSISTANT_LOG_LEVEL")
    subs = parser.add_subparsers(dest="command")

    subs.add_parser("chat", help="Interactive chat (default)")

    ask = subs.add_parser("ask", help="Send a single message and print the reply")
    ask.add_argument("text", help="Message to send")

    insights = subs.add_parser("insights", help="Show meeting, email and document insights")
    insights.add_argument("category", choices=[c.value for c in InsightCategory])
    insights.add_argument("--range", dest="time_range", default=TimeRange.TODAY.value,
                          choices=[r.value for r in TimeRange])
    insights.add_argument("--max", dest="max_results", type=int, default=None)
    insights.add_argument("--json", action="store_true", help="Print records as JSON")

    export = subs.add_parser("export", help="Export a saved session file")
    export.add_argument("session_file", help="Session JSON written by /save")
    export.add_argument("output", help="Target file")
    export.add_argument("--format", dest="fmt", default=None,
                        help=f"One of {', '.join(f.value for f in ExportFormat)} (default: from suffix)")
    export.add_argument("--include-metadata", action="store_true")
    export.add_argument("--title", default=None)

    subs.add_parser("sessions", help="List saved sessions")
    subs.add_parser("status", help="Check the Microsoft Graph connection")

    logs = subs.add_parser("logs", help="Show entries from the structured log file")
    logs.add_argument("--last", type=int, default=20)
    logs.add_argument("--level", default=None, help="Verbose, Information, Warning, Error or Debug")

    subs.add_parser("stats", help="Show usage statistics")
    return parser


def run_ask(orchestrator: AgentOrchestrator, args: argparse.Namespace, console: Console) -> int:
    reply = orchestrator.chat(args.text)
    console.print(Markdown(reply.content))
    return 0


def run_insights(orchestrator: AgentOrchestrator, args: argparse.Namespace, console: Console) -> int:
    records = orchestrator.get_insights(args.category, args.time_range, args.max_results)
    if args.json:
        console.print_json(insights_to_json(records))
    else:
        console.print(Markdown(format_insights(records)))
    return 0


def run_export(orchestrator: AgentOrchestrator, args: argparse.Namespace, console: Console) -> int:
    orchestrator.load(args.session_file)
    result = orchestrator.export(args.output, args.fmt, args.include_metadata, args.title)
    console.print(
        f"Exported {result.message_count} messages to [bold]{result.path}[/bold] "
        f"as {result.format.value} ({result.size_bytes:,} bytes)"
    )
    return 0


def run_sessions(orchestrator: AgentOrchestrator, args: argparse.Namespace, console: Console) -> int:
    sessions = orchestrator.store.list_sessions()
    if not sessions:
        console.print("No saved sessions.")
        return 0

    table = Table(title="Saved Sessions")
    table.add_column("ID")
    table.add_column("Started")
    table.add_column("Messages", justify="right")
    for s in sessions:
        table.add_row(s["id"], f"{s['started_at']:%Y-%m-%d %H:%M}", str(s["message_count"]))
    console.print(table)
    return 0


def run_status(orchestrator: AgentOrchestrator, args: argparse.Namespace, console: Console) -> int:
    result = execute_command("/status", orchestrator)
    console.print(Markdown(result.response))
    return 1 if result.is_error else 0


def run_logs(orchestrator: AgentOrchestrator, args: argparse.Namespace, console: Console) -> int:
    log_file = orchestrator.settings.log_file
    if not log_file:
        console.print("No log file configured (set GRAPH_ASSISTANT_LOG_FILE).")
        return 0

    try:
        level = LogLevel(args.level) if args.level else None
    except ValueError:
        console.print(f"[red]Unknown log level:[/red] {args.level}")
        return 2

    entries = read_log_file(log_file, level=level, last=args.last)
    if not entries:
        console.print("No log entries.")
        return 0
    for entry in entries:
        detail = escape(f"[{entry.get('category', '')}] {entry.get('message', '')}")
        console.print(
            f"[dim]{entry.get('timestamp', '')}[/dim] [bold]{entry.get('level', '')}[/bold] {detail}",
            highlight=False,
            soft_wrap=True,
        )
    return 0


def run_stats(orchestrator: AgentOrchestrator, args: argparse.Namespace, console: Console) -> int:
    stats = orchestrator.context.usage.stats()
    if not stats:
        console.print("No usage recorded yet.")
        return 0

    table = Table(title="Usage Statistics")
    table.add_column("Feature")
    table.add_column("Uses", justify="right")
    table.add_column("Errors", justify="right")
    table.add_column("Total time", justify="right")
    table.add_column("Last used")
    for feature, stat in sorted(stats.items()):
        last = f"{stat.last_used:%Y-%m-%d %H:%M}" if stat.last_used else "-"
        table.add_row(feature, str(stat.count), str(stat.error_count), f"{stat.total_duration:.2f}s", last)
    console.print(table)
    return 0


HANDLERS = {
    "ask": run_ask,
    "insights": run_insights,
    "export": run_export,
    "sessions": run_sessions,
    "status": run_status,
    "logs": run_logs,
    "stats": run_stats,
}


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = Settings()
    configure_logging(args.log_level or settings.log_level)

    console = Console()
    orchestrator = AgentOrchestrator.from_settings(settings)
    try:
        handler = HANDLERS.get(args.command)
        if handler is None:
            ChatShell(orchestrator, console).run()
            return 0
        return handler(orchestrator, args, console)
    except AssistantError as e:
        logger.debug(f"Command {args.command} failed: {e}")
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        return 1
    except Exception as e:
        logger.error(f"Command {args.command} failed unexpectedly: {e}", exc_info=True)
        console.print(f"[red]Unexpected error:[/red] {escape(f'{type(e).__name__}: {e}')}")
        return 1
    finally:
        orchestrator.close()


if __name__ == "__main__":
    raise SystemExit(main())
