"""CLI main module for botline."""

from typing import Optional

import typer
from loguru import logger

from botline.config import Settings, load_settings
from botline.directline.client import DirectLineClient
from botline.errors import BootstrapError, ConfigurationError
from botline.logging_utils import configure_logging
from botline.relay import RelayLoop
from botline.render import Renderer
from botline.session import Session, SessionBootstrapper
from botline.transports import build_transport

app = typer.Typer(
    name="botline",
    help="Talk to a Direct Line bot from the terminal.",
    add_completion=False,
    rich_markup_mode="rich",
)

NEW_CONVERSATION = "1"
CONTINUE_CONVERSATION = "2"


@app.callback(invoke_without_command=True)
def main_callback(ctx: typer.Context) -> None:
    if ctx.invoked_subcommand is None:
        # Default to chat mode
        chat(transport=None, debug=False, replay=False)


def _exit_with_error() -> None:
    """Exit with error code."""
    raise typer.Exit(1)


def _apply_overrides(settings: Settings, transport: Optional[str], debug: bool, replay: bool) -> Settings:
    updates: dict[str, object] = {}
    if transport:
        updates["transport"] = transport
    if debug:
        updates["render_mode"] = "debug"
    if replay:
        updates["replay_history"] = True
    if updates:
        # Re-validate so a bad override fails before any conversation is minted.
        settings = Settings.model_validate({**settings.model_dump(), **updates})
    return settings


def _bootstrap(bootstrapper: SessionBootstrapper, renderer: Renderer) -> Optional[Session]:
    """Ask for the conversation mode and start or resume accordingly."""
    choice = renderer.ask("\nChoice: ").strip()
    if choice == NEW_CONVERSATION:
        return bootstrapper.start_new()
    if choice == CONTINUE_CONVERSATION:
        renderer.info("\nPlease provide the conversation ID and watermark:")
        conversation_id = renderer.ask("Conversation ID: ").strip()
        watermark = renderer.ask("Watermark: ").strip()
        return bootstrapper.resume(conversation_id, watermark or None)
    renderer.error(f"Unknown choice {choice!r}; expected {NEW_CONVERSATION} or {CONTINUE_CONVERSATION}.")
    return None


@app.command()
def chat(
    transport: Optional[str] = typer.Option(None, help="Inbound transport: stream or socket."),
    debug: bool = typer.Option(False, "--debug", help="Show every inbound activity as id and text."),
    replay: bool = typer.Option(False, "--replay", help="Replay history after the watermark when resuming."),
) -> None:
    """Start or continue a conversation with the bot."""
    renderer = Renderer()
    try:
        settings = _apply_overrides(load_settings(), transport, debug, replay)
        configure_logging(settings.log_level, profile="chat")
        settings.ensure_ready()
    except (ConfigurationError, ValueError) as e:
        # pydantic's ValidationError is a ValueError
        renderer.error(f"Invalid configuration: {e!s}")
        raise typer.Exit(1) from e

    renderer.banner()
    try:
        with DirectLineClient.from_settings(settings) as client:
            session = _bootstrap(SessionBootstrapper(client, settings), renderer)
            if session is None:
                _exit_with_error()
            relay = RelayLoop(
                session,
                build_transport(settings.transport, client, session, open_timeout=settings.open_timeout_seconds),
                renderer,
                settings,
            )
            ok = relay.run()
    except (KeyboardInterrupt, EOFError) as e:
        renderer.info("\nGoodbye!")
        raise typer.Exit(0) from e
    except (BootstrapError, ConfigurationError) as e:
        logger.warning("relay.run.aborted error={}", e)
        renderer.error(str(e))
        raise typer.Exit(1) from e

    if not ok:
        _exit_with_error()


if __name__ == "__main__":
    app()
