"""
Aleph Quiz CLI - Hebrew reading practice in the terminal.

Usage:
    aleph play --game letters --level 1     # Play a level
    aleph play -g sentences -l 2 -n 3       # Three correct answers to finish
    aleph progress                          # Coins, badges, unlocked levels
    aleph reset-progress                    # Start over
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Annotated

import typer
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table

from aleph_quiz.config import get_settings
from aleph_quiz.generation import GeminiContentSource
from aleph_quiz.log import configure_logging
from aleph_quiz.media import HttpMediaLoader
from aleph_quiz.models import GameType, PreparedItem, SessionView, ViewState
from aleph_quiz.prefetch import MediaGate, SessionController
from aleph_quiz.progress import ProgressStore

# =============================================================================
# CLI Setup
# =============================================================================

app = typer.Typer(
    name="aleph",
    help="Aleph Quiz - Hebrew reading games with an always-ready question buffer",
    add_completion=False,
    rich_markup_mode="rich",
)

console = Console()


class GameChoice(str, Enum):
    letters = "letters"
    nikkud = "nikkud"
    sentences = "sentences"

    def to_game_type(self) -> GameType:
        return GameType[self.name.upper()]


# =============================================================================
# Rendering
# =============================================================================


def render_item(item: PreparedItem, view: SessionView) -> None:
    quiz = item.item
    console.print(
        Panel(
            f"[bold]{quiz.prompt_text}[/bold]",
            title=f"Question {view.correct_count + 1}/{view.target_correct}",
            border_style="cyan",
        )
    )

    table = Table(show_header=True, header_style="bold")
    table.add_column("#", justify="right")
    table.add_column("Answer")
    table.add_column("Picture", overflow="fold")

    per_option_media = len(item.media_urls) == len(quiz.choices())
    for index, choice in enumerate(quiz.choices()):
        picture = ""
        if per_option_media:
            picture = item.media_urls[index]
            if index in item.degraded:
                picture = f"[dim]{picture} (unavailable)[/dim]"
        table.add_row(str(index + 1), choice.text, picture)
    console.print(table)

    if item.media_urls and not per_option_media:
        shared = item.media_urls[0]
        if item.degraded:
            shared = f"{shared} (unavailable)"
        console.print(f"[dim]Picture: {shared}[/dim]")


async def ask_choice(count: int) -> int | None:
    """Read a 1-based choice without blocking the event loop. None = quit."""
    answer = await asyncio.to_thread(
        Prompt.ask, "Your answer ([bold]q[/bold] to quit)", default="q"
    )
    if answer.strip().lower() == "q":
        return None
    try:
        index = int(answer) - 1
    except ValueError:
        return -1
    return index if 0 <= index < count else -1


async def play_session(controller: SessionController, level: int, target: int) -> bool:
    """Drive one session until completion or quit. Returns True on completion."""
    controller.start(level=level, target_correct=target)

    while True:
        view = controller.view()

        if view.state is ViewState.PENDING:
            with console.status("Preparing the next question..."):
                view = await controller.wait_for_ready()
            continue

        if view.state is ViewState.COMPLETE:
            console.print(Panel("[bold green]Level complete![/bold green]", border_style="green"))
            return True

        if view.state is ViewState.CLOSED:
            return False

        if view.state is ViewState.ERROR:
            console.print(f"[red]Could not load a question:[/red] {view.error}")
            again = await asyncio.to_thread(Confirm.ask, "Try again?", default=True)
            if not again:
                return False
            controller.retry()
            continue

        item = view.item
        render_item(item, view)
        choice = await ask_choice(len(item.item.choices()))
        if choice is None:
            return False
        if choice < 0:
            console.print("[yellow]Pick one of the numbers above.[/yellow]")
            continue

        if item.item.is_correct(choice):
            console.print("[green]Correct![/green]")
            controller.advance(True)
        else:
            console.print("[red]Not quite, try again.[/red]")
            controller.advance(False)


async def _run_play(game: GameType, level: int, target: int, buffer: int) -> bool:
    settings = get_settings()
    store = ProgressStore()
    loader = HttpMediaLoader()
    try:
        source = GeminiContentSource(game)
        async with SessionController(
            source,
            MediaGate(loader),
            buffer_target=buffer,
            on_complete=store.record_completion,
            media_timeout=settings.media_timeout_seconds,
            game=game,
        ) as controller:
            return await play_session(controller, level, target)
    finally:
        await loader.aclose()


# =============================================================================
# Commands
# =============================================================================


@app.command()
def play(
    game: Annotated[
        GameChoice, typer.Option("--game", "-g", help="Which game to play")
    ] = GameChoice.letters,
    level: Annotated[int, typer.Option("--level", "-l", min=1, help="Difficulty level")] = 1,
    target: Annotated[
        int | None, typer.Option("--target", "-n", min=1, help="Correct answers to finish")
    ] = None,
    buffer: Annotated[
        int | None, typer.Option("--buffer", "-k", min=1, help="Questions to prepare ahead")
    ] = None,
) -> None:
    """Play one level."""
    game_type = game.to_game_type()
    if level > game_type.max_level:
        console.print(
            f"[red]{game.value} has {game_type.max_level} levels, there is no level {level}.[/red]"
        )
        raise typer.Exit(code=1)

    settings = get_settings()
    if not settings.has_ai_configured():
        console.print("[red]GEMINI_API_KEY is not set.[/red]")
        raise typer.Exit(code=1)

    completed = asyncio.run(
        _run_play(
            game_type,
            level,
            target or settings.session_target_correct,
            buffer or settings.buffer_target_size,
        )
    )
    if not completed:
        raise typer.Exit(code=1)


@app.command()
def progress() -> None:
    """Show coins, badges and unlocked levels."""
    current = ProgressStore().progress

    table = Table(title="Progress", show_header=True, header_style="bold")
    table.add_column("Game")
    table.add_column("Unlocked level", justify="right")
    for game in GameType:
        table.add_row(game.value, f"{current.unlocked(game)}/{game.max_level}")

    console.print(table)
    console.print(f"Coins: [bold yellow]{current.coins}[/bold yellow]")
    console.print(f"Badges: {', '.join(current.badges) if current.badges else '-'}")


@app.command("reset-progress")
def reset_progress(
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation")] = False,
) -> None:
    """Delete all saved progress."""
    if not yes and not Confirm.ask("Delete all progress?", default=False):
        raise typer.Abort()
    ProgressStore().reset()
    console.print("[green]Progress reset.[/green]")


# =============================================================================
# Entry Point
# =============================================================================


def main() -> None:
    """CLI entry point."""
    settings = get_settings()
    configure_logging(level=settings.log_level, log_file=settings.log_file)
    app()


if __name__ == "__main__":
    main()
