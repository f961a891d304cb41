"""Interactive chat shell."""

import logging

from rich.console import Console
from rich.markdown import Markdown
from rich.markup import escape
from rich.panel import Panel

from graph_assistant import __version__
from graph_assistant.agent import AgentOrchestrator
from graph_assistant.commands import execute_command, is_command
from graph_assistant.errors import AssistantError

logger = logging.getLogger(__name__)

WELCOME = (
    "Ask about your meetings, emails and documents, or type `/help` for commands.\n"
    "Type `/exit` or press Ctrl+D to quit."
)


class ChatShell:
    """Read-eval-print loop over an orchestrator. A failing line never ends the loop."""

    def __init__(self, orchestrator: AgentOrchestrator, console: Console | None = None) -> None:
        self.orchestrator = orchestrator
        self.console = console or Console()

    def print_welcome(self) -> None:
        self.console.print(Panel.fit(
            Markdown(WELCOME),
            title=f"Graph Assistant v{__version__}",
            border_style="blue",
        ))

    def read_line(self) -> str:
        return self.console.input("\n[bold blue]You[/bold blue]: ")

    def handle_line(self, line: str) -> bool:
        """
        Process one line of input.

        Returns:
            False when the shell should exit
        """
        line = line.strip()
        if not line:
            return True

        try:
            if is_command(line):
                result = execute_command(line, self.orchestrator)
                style = "red" if result.is_error else "green"
                self.console.print(Panel(Markdown(result.response), border_style=style))
                return not result.exit

            with self.console.status("[bold blue]Thinking..."):
                reply = self.orchestrator.chat(line)
        except AssistantError as e:
            logger.debug(f"Shell input failed: {e}")
            self.console.print(f"[red]Error:[/red] {escape(str(e))}")
            return True
        except Exception as e:
            logger.error(f"Unexpected error handling input: {e}", exc_info=True)
            self.console.print(f"[red]Unexpected error:[/red] {escape(f'{type(e).__name__}: {e}')}")
            return True

        self.console.print(Panel(
            Markdown(reply.content),
            title="Assistant",
            subtitle=f"[dim]{reply.metadata.get('source', '')}[/dim]",
            border_style="cyan",
        ))
        return True

    def run(self) -> None:
        self.print_welcome()
        while True:
            try:
                line = self.read_line()
            except KeyboardInterrupt:
                self.console.print("\n[dim]Interrupted. Type /exit to quit.[/dim]")
                continue
            except EOFError:
                self.console.print("\n[bold yellow]Goodbye![/bold yellow]")
                break

            if not self.handle_line(line):
                break
