"""Slash command handling for the interactive shell."""

import json
import logging
import shlex
from dataclasses import dataclass

from graph_assistant.agent import AgentOrchestrator
from graph_assistant.errors import AssistantError, InputValidationError
from graph_assistant.insights import InsightCategory, InsightRecord, TimeRange

logger = logging.getLogger(__name__)

# Max rows shown by /history and /logs
DISPLAY_LIMIT = 15


@dataclass
class CommandResult:
    """Result of executing a command."""
    response: str
    is_command: bool = True
    is_error: bool = False
    exit: bool = False


def is_command(message: str) -> bool:
    """Check if a message is a slash command."""
    return message.strip().startswith("/")


def execute_command(message: str, orchestrator: AgentOrchestrator) -> CommandResult | None:
    """Execute a slash command and return the result."""
    message = message.strip()
    if not is_command(message):
        return None

    try:
        parts = shlex.split(message)
    except ValueError as e:
        return CommandResult(response=f"Could not parse command: {e}", is_error=True)
    command = parts[0].lower()
    args = parts[1:]

    handler = COMMANDS.get(command)
    if handler is None:
        return CommandResult(
            response=f"Unknown command: {command}\n\nType /help to see available commands."
        )

    try:
        return handler(orchestrator, args)
    except AssistantError as e:
        logger.debug(f"{command} failed: {e}")
        return CommandResult(response=f"**Error:** {e}", is_error=True)
    except Exception as e:
        logger.error(f"Unexpected error in {command}: {e}", exc_info=True)
        return CommandResult(response=f"**Error:** {command} failed unexpectedly: {e}", is_error=True)


def cmd_help(orchestrator: AgentOrchestrator, args: list[str]) -> CommandResult:
    """Show available commands."""
    return CommandResult(
        response=(
            "**Available Commands**\n\n"
            "- `/help` - Show this message\n"
            "- `/insights [meetings|emails|documents|all|recent] [today|week|month] [max]` - Show insights\n"
            "- `/export <path> [json|csv|html|markdown|text] [--metadata]` - Export this conversation\n"
            "- `/save [path]` - Save this conversation\n"
            "- `/load <path|session id>` - Load a saved conversation\n"
            "- `/sessions` - List saved conversations\n"
            "- `/history` - Show messages in this conversation\n"
            "- `/new` - Start a new conversation\n"
            "- `/logs [count] [level]` - Show recent log entries\n"
            "- `/stats` - Show usage statistics\n"
            "- `/status` - Check the Microsoft Graph connection\n"
            "- `/exit` - Quit\n\n"
            "Or just send a message to chat!"
        )
    )


def _int_arg(value: str, name: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise InputValidationError(f"{name} must be a number, got {value!r}") from None


def format_insights(records: list[InsightRecord]) -> str:
    if not records:
        return "No insights found for that period."

    lines = []
    current = None
    for record in records:
        if record.type != current:
            current = record.type
            lines.append(f"\n**{record.type.value}s**\n")
        sample = " *(sample data)*" if record.simulated else ""
        lines.append(f"- **{record.title}**{sample} ({record.timestamp:%Y-%m-%d %H:%M})")
        if record.description:
            lines.append(f"  {record.description}")
    return "\n".join(lines).strip()


def insights_to_json(records: list[InsightRecord]) -> str:
    return json.dumps([r.to_dict() for r in records], indent=2, ensure_ascii=False, default=str)


def cmd_insights(orchestrator: AgentOrchestrator, args: list[str]) -> CommandResult:
    """Show meeting, email and document insights."""
    category = args[0] if args else InsightCategory.RECENT
    time_range = args[1] if len(args) > 1 else TimeRange.TODAY
    max_results = _int_arg(args[2], "max") if len(args) > 2 else None

    records = orchestrator.get_insights(category, time_range, max_results)
    return CommandResult(response=format_insights(records))


def cmd_export(orchestrator: AgentOrchestrator, args: list[str]) -> CommandResult:
    """Export the conversation."""
    include_metadata = "--metadata" in args
    args = [a for a in args if a != "--metadata"]
    if not args:
        raise InputValidationError("Usage: /export <path> [format] [--metadata]")

    fmt = args[1] if len(args) > 1 else None
    result = orchestrator.export(args[0], fmt, include_metadata=include_metadata)
    return CommandResult(
        response=(
            f"Exported {result.message_count} messages to `{result.path}` "
            f"as {result.format.value} ({result.size_bytes:,} bytes)."
        )
    )


def cmd_save(orchestrator: AgentOrchestrator, args: list[str]) -> CommandResult:
    """Save the conversation."""
    path = orchestrator.save(args[0] if args else None)
    return CommandResult(response=f"Saved conversation `{orchestrator.session.id}` to `{path}`.")


def cmd_load(orchestrator: AgentOrchestrator, args: list[str]) -> CommandResult:
    """Load a saved conversation."""
    if not args:
        raise InputValidationError("Usage: /load <path|session id>")
    session = orchestrator.load(args[0])
    return CommandResult(
        response=f"Loaded conversation `{session.id}` with {len(session)} messages."
    )


def cmd_sessions(orchestrator: AgentOrchestrator, args: list[str]) -> CommandResult:
    """List saved conversations."""
    sessions = orchestrator.store.list_sessions()
    if not sessions:
        return CommandResult(response="No saved conversations yet. Use `/save` to keep this one.")

    lines = ["**Saved Conversations**\n"]
    for s in sessions:
        lines.append(f"- `{s['id']}` started {s['started_at']:%Y-%m-%d %H:%M} ({s['message_count']} messages)")
    return CommandResult(response="\n".join(lines))


def cmd_history(orchestrator: AgentOrchestrator, args: list[str]) -> CommandResult:
    """Show the current conversation."""
    messages = orchestrator.session.get_messages()
    lines = [f"**Conversation** `{orchestrator.session.id}` ({len(messages)} messages)\n"]
    for m in messages[-DISPLAY_LIMIT:]:
        preview = m.content if len(m.content) <= 200 else m.content[:200] + "..."
        lines.append(f"- **{m.role.value}** ({m.timestamp:%H:%M:%S}): {preview}")
    if len(messages) > DISPLAY_LIMIT:
        lines.append(f"\n*...{len(messages) - DISPLAY_LIMIT} earlier messages not shown*")
    return CommandResult(response="\n".join(lines))


def cmd_new(orchestrator: AgentOrchestrator, args: list[str]) -> CommandResult:
    """Start a new conversation."""
    session = orchestrator.new_session()
    return CommandResult(response=f"Started new conversation `{session.id}`.")


def cmd_logs(orchestrator: AgentOrchestrator, args: list[str]) -> CommandResult:
    """Show recent structured log entries."""
    count = _int_arg(args[0], "count") if args else DISPLAY_LIMIT
    level = args[1] if len(args) > 1 else None
    try:
        entries = orchestrator.context.logger.entries(level=level, last=count)
    except ValueError:
        raise InputValidationError(f"Unknown log level: {level}") from None

    if not entries:
        return CommandResult(response="No log entries.")
    lines = ["**Recent Log Entries**\n"]
    for entry in entries:
        lines.append(
            f"- `{entry.timestamp:%H:%M:%S}` **{entry.level.value}** [{entry.category}] {entry.message}"
        )
    return CommandResult(response="\n".join(lines))


def cmd_stats(orchestrator: AgentOrchestrator, args: list[str]) -> CommandResult:
    """Show usage statistics."""
    stats = orchestrator.context.usage.stats()
    if not stats:
        return CommandResult(response="No usage recorded yet.")

    lines = ["**Usage Statistics**\n"]
    for feature, stat in sorted(stats.items()):
        lines.append(
            f"- **{feature}**: {stat.count} uses, {stat.error_count} errors, "
            f"{stat.total_duration:.2f}s total"
        )
    return CommandResult(response="\n".join(lines))


def cmd_status(orchestrator: AgentOrchestrator, args: list[str]) -> CommandResult:
    """Check status of services."""
    connected = orchestrator.test_connection()
    ms_status = "Connected" if connected else "Not connected (sign in with `az login`)"
    settings = orchestrator.settings
    return CommandResult(
        response=(
            "**Status**\n\n"
            f"- Microsoft Graph ({settings.graph_base_url}): {ms_status}\n"
            f"- Chat backend: {orchestrator.chat_service.responder.name}\n"
            f"- Telemetry: {'Enabled' if orchestrator.context.telemetry.enabled else 'Disabled'}\n"
            f"- Conversation: `{orchestrator.session.id}` ({len(orchestrator.session)} messages)"
        )
    )


def cmd_exit(orchestrator: AgentOrchestrator, args: list[str]) -> CommandResult:
    return CommandResult(response="Goodbye!", exit=True)


COMMANDS = {
    "/help": cmd_help,
    "/start": cmd_help,
    "/insights": cmd_insights,
    "/export": cmd_export,
    "/save": cmd_save,
    "/load": cmd_load,
    "/sessions": cmd_sessions,
    "/history": cmd_history,
    "/new": cmd_new,
    "/logs": cmd_logs,
    "/stats": cmd_stats,
    "/status": cmd_status,
    "/exit": cmd_exit,
    "/quit": cmd_exit,
}