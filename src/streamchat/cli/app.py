"""Main CLI application using Typer."""
import asyncio

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.live import Live

from ..config import Settings
from ..logging_config import setup_logging
from ..rendering import render_transcript
from ..session import ChatSessionController, SessionState
from .providers import close_transcript, get_client, open_transcript

# Create Typer app
app = typer.Typer(
    name="streamchat",
    help="Streaming chat client for OpenAI-compatible completion APIs",
    no_args_is_help=True,
    add_completion=True,
)

# Console for rich output
console = Console()


def _settings(log_level: str | None, tui: bool = False) -> Settings:
    try:
        settings = Settings.from_env()
    except ValidationError as e:
        for error in e.errors():
            field = ".".join(str(part) for part in error["loc"])
            console.print(f"[red]Invalid configuration for {field}: {error['msg']}[/red]")
        raise typer.Exit(code=2) from e
    setup_logging(
        level=log_level or settings.log_level,
        log_file=settings.log_file,
        console=not tui,
    )
    return settings


@app.command()
def chat(
    log_level: str = typer.Option(
        None,
        "--log-level",
        "-l",
        help="Show the log panel at this level (debug, info, warning, error)"
    ),
):
    """Open the interactive chat window."""
    from ..ui import run_textual_tui

    settings = _settings(log_level, tui=True)
    asyncio.run(run_textual_tui(settings, log_level=log_level))


@app.command()
def ask(
    prompt: str = typer.Argument(..., help="Prompt to send"),
    model: str = typer.Option(None, "--model", "-m", help="Override the configured model"),
    log_level: str = typer.Option(None, "--log-level", "-l", help="Console log level"),
):
    """Send one prompt and stream the answer to the terminal."""
    async def _ask() -> int:
        settings = _settings(log_level)
        transcript = await open_transcript(settings)
        controller = ChatSessionController(
            get_client(settings, console),
            transcript,
            model=model,
            error_policy=settings.error_policy,
            # Only the exchange in progress, not the whole history
            renderer=lambda messages: render_transcript(messages[-2:]),
        )
        errors: list[str] = []
        controller.on_stream_error = errors.append

        try:
            with Live(console=console, refresh_per_second=10) as live:
                controller.on_transcript_changed = live.update
                session = controller.send_prompt(prompt)
                if session is None:
                    console.print("[yellow]Nothing to send: prompt is empty[/yellow]")
                    return 1
                await controller.wait()
        finally:
            await controller.aclose()
            await close_transcript(transcript)

        if errors:
            console.print(f"[red]Error: {errors[-1]}[/red]")
            return 1
        return 0 if session.state is SessionState.COMPLETED else 1

    raise typer.Exit(code=asyncio.run(_ask()))


@app.command()
def history(
    limit: int = typer.Option(0, "--limit", "-n", help="Show only the last N messages (0 = all)"),
):
    """Print the saved conversation."""
    async def _history() -> None:
        settings = _settings(None)
        transcript = await open_transcript(settings)
        await close_transcript(transcript)
        messages = transcript.messages
        if limit > 0:
            messages = messages[-limit:]
        if not messages:
            console.print("[dim]No messages yet.[/dim]")
            return
        console.print(render_transcript(messages))
        console.print(f"[dim]{len(transcript)} message(s) in history[/dim]")

    asyncio.run(_history())


@app.command()
def clear(
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
):
    """Delete the saved conversation."""
    if not yes and not typer.confirm("Delete the saved conversation?"):
        console.print("[dim]Aborted.[/dim]")
        return

    async def _clear() -> None:
        settings = _settings(None)
        transcript = await open_transcript(settings)
        count = len(transcript)
        transcript.clear()
        await close_transcript(transcript)
        console.print(f"[green]Removed {count} message(s).[/green]")

    asyncio.run(_clear())


if __name__ == "__main__":
    app()
