"""Terminal IO for the command line front end."""

import typer
from rich.console import Console
from rich.syntax import Syntax

from opus.host.base import IOInterface


class ConsoleIO(IOInterface):
    """IO sink writing through rich and prompting through typer."""

    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    def write(self, message: str = "") -> None:
        self.console.print(message, markup=False, highlight=False)

    def ask(self, question: str, default: str) -> str:
        answer: str = typer.prompt(question, default=default, show_default=False)
        return answer

    def write_diff(self, diff: str) -> None:
        self.console.print()
        self.console.print(Syntax(diff, "diff", theme="ansi_dark", background_color="default"))
        self.console.print()
