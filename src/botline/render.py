"""Console renderer for botline."""

from __future__ import annotations

import threading

from prompt_toolkit import PromptSession
from prompt_toolkit.patch_stdout import patch_stdout
from rich.console import Console
from rich.markup import escape

BOT_LABEL = "<Bot>"


class Renderer:
    """Console output through Rich, line input through prompt_toolkit.

    Output may come from transport threads while the main thread sits in a
    prompt, so every write goes through one lock and prompts run under
    ``patch_stdout``.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console: Console = console or Console()
        self._prompt_session: PromptSession[str] | None = None
        self._print_lock = threading.Lock()
        self._interrupted = threading.Event()

    def banner(self) -> None:
        self._print("[bold]DirectLine Console App using WebSockets[/bold]")
        self._print("=======================================\n")
        self._print("Please select from the following:")
        self._print("\\[1] Start a new conversation")
        self._print("\\[2] Continue a conversation")

    def info(self, message: str) -> None:
        self._print(escape(message))

    def error(self, message: str) -> None:
        self._print(f"[bold red]Error:[/bold red] {escape(message)}")

    def connected(self, conversation_id: str) -> None:
        self._print("")
        self._print("[green]- Successfully connected via WebSockets[/green]")
        self._print(f"- Starting conversation - [cyan]{escape(conversation_id)}[/cyan]")
        self._print("")

    def bot_message(self, text: str) -> None:
        self._print(f"{BOT_LABEL}: {text}", markup=False)

    def debug_activity(self, activity_id: str, text: str) -> None:
        self._print(f"{activity_id}\t{text}", markup=False)

    def ask(self, prompt: str) -> str:
        """Read one answer outside the conversation loop."""
        return self._session().prompt(prompt)

    def get_user_input(self) -> str:
        """Prompt user for input."""
        if self._interrupted.is_set():
            raise EOFError
        with patch_stdout(raw=True):
            return self._session().prompt("You: ", pre_run=self._exit_if_interrupted)

    def interrupt_input(self) -> None:
        """Abort the running or next prompt from another thread; the reader sees EOFError."""
        self._interrupted.set()
        if self._prompt_session is None:
            return
        app = self._prompt_session.app
        if not app.is_running or app.loop is None:
            # A prompt that has not started yet sees the flag in its pre_run hook.
            return
        app.loop.call_soon_threadsafe(self._exit_if_interrupted)

    def _exit_if_interrupted(self) -> None:
        if not self._interrupted.is_set() or self._prompt_session is None:
            return
        app = self._prompt_session.app
        if app.future is not None and not app.future.done():
            app.exit(exception=EOFError())

    def _session(self) -> PromptSession[str]:
        if self._prompt_session is None:
            self._prompt_session = PromptSession()
        return self._prompt_session

    def _print(self, message: str, *, markup: bool = True) -> None:
        with self._print_lock:
            self.console.print(message, markup=markup, highlight=False)
