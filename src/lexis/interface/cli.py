"""lexis CLI: add words, list what is due, and run review sessions."""

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Annotated

import typer
from pydantic import ValidationError

from lexis.application.config import AppConfig, resolve_config
from lexis.application.utils.time_format import format_interval, format_time_until_review
from lexis.domain.models import Word, utcnow

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="lexis: spaced-repetition vocabulary review.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

config_app = typer.Typer(help="Manage lexis configuration.")
app.add_typer(config_app, name="config")

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)

HINT_COMMAND = "?"
SKIP_COMMAND = "!skip"
QUIT_COMMAND = "!quit"


def _resolve(ctx: typer.Context, **overrides) -> AppConfig:
    overrides.setdefault("verbose", ctx.obj.get("verbose", 1) if ctx.obj else 1)
    try:
        return resolve_config(overrides)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise typer.BadParameter(problems) from None


def hint_text(word: Word) -> str:
    """Phonetic transcription when known, otherwise the first letter and blanks."""
    if word.phonetic:
        return word.phonetic
    text = word.word.strip()
    return text[:1] + " _" * (len(text) - 1)


# ---------------------------------------------------------------------------
# Global callback
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity. Repeat for more detail."
        ),
    ] = 0,
):
    """Global settings for lexis."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = 1 + verbose
    if verbose >= 2:
        logging.getLogger().setLevel(logging.DEBUG)
    elif verbose == 1:
        logging.getLogger().setLevel(logging.INFO)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command()
def add(
    ctx: typer.Context,
    word: Annotated[str, typer.Argument(help="The word to learn.")],
    meaning: Annotated[str, typer.Argument(help="Its meaning.")],
    example: Annotated[str | None, typer.Option(help="Example sentence.")] = None,
    phonetic: Annotated[str | None, typer.Option(help="Phonetic transcription.")] = None,
    category: Annotated[str | None, typer.Option(help="Category used for accuracy stats.")] = None,
    difficulty: Annotated[str, typer.Option(help="easy, medium or hard.")] = "medium",
    data_file: Annotated[Path | None, typer.Option(help="Custom JSON data file.")] = None,
):
    """[bold green]Add[/bold green] a word. It is due for review immediately."""
    from lexis.application.factory import get_word_repository

    config = _resolve(ctx, data_file=data_file)
    repo = get_word_repository(config)
    new_word = asyncio.run(
        repo.add_word(
            word,
            meaning,
            example=example,
            phonetic=phonetic,
            category=category,
            difficulty=difficulty,
        )
    )
    typer.secho(f"Added '{new_word.word}' ({new_word.id}).", fg="green")


@app.command()
def due(
    ctx: typer.Context,
    data_file: Annotated[Path | None, typer.Option(help="Custom JSON data file.")] = None,
    show_all: Annotated[
        bool, typer.Option("--all", help="List every word with its next review.")
    ] = False,
):
    """List words that are due for review."""
    from lexis.application.factory import get_word_repository

    config = _resolve(ctx, data_file=data_file)
    repo = get_word_repository(config)
    now = utcnow()

    async def run():
        if show_all:
            return await repo.list_words(), None
        return await repo.get_due_words(now), await repo.next_due_at(now)

    words, next_due = asyncio.run(run())
    if not words:
        if next_due is not None:
            typer.secho(
                f"No words are due. Next review in {format_time_until_review(next_due, now)}.",
                fg="yellow",
            )
        else:
            typer.secho("No words found. Add some with 'lexis add'.", fg="yellow")
        return

    for word in words:
        next_review = word.srs.next_review if word.srs else None
        typer.echo(f"{word.word:<24} {format_time_until_review(next_review, now):<16} {word.meaning}")


@app.command()
def review(
    ctx: typer.Context,
    data_file: Annotated[Path | None, typer.Option(help="Custom JSON data file.")] = None,
    scheduler: Annotated[
        str | None, typer.Option(help="Scheduling model: basic or adaptive.")
    ] = None,
    limit: Annotated[int | None, typer.Option(help="Maximum words in this session.")] = None,
    retry: Annotated[
        bool | None,
        typer.Option("--retry/--no-retry", help="Require retyping a word after a mistake."),
    ] = None,
):
    """Run an interactive [bold]review session[/bold] over the due words."""
    from lexis.application.factory import build_review_session
    from lexis.application.review.session import SessionState, StartStatus

    config = _resolve(
        ctx,
        data_file=data_file,
        scheduler=scheduler,
        session_limit=limit,
        retry_on_mistake=retry,
    )

    async def run():
        session = build_review_session(config)
        status = await session.start()
        if status is StartStatus.NOTHING_TO_REVIEW:
            if session.next_due_at is not None:
                wait = format_time_until_review(session.next_due_at)
                typer.secho(f"No words are due for review right now. Next one in {wait}.", fg="yellow")
            else:
                typer.secho("No words to review. Add some with 'lexis add'.", fg="yellow")
            return None

        total = session.remaining
        typer.echo(
            f"{total} words to review. Type '{HINT_COMMAND}' for a hint, "
            f"'{SKIP_COMMAND}' to skip, '{QUIT_COMMAND}' to stop."
        )

        while session.state is not SessionState.COMPLETE:
            word = session.current_word
            typer.echo("")
            typer.secho(f"[{session.stats.reviewed + 1}/{total}] {word.meaning}", bold=True)
            if word.example:
                typer.echo(f"  e.g. {word.example}")

            answer = typer.prompt("Answer", default="", show_default=False)
            if answer.strip() == HINT_COMMAND:
                if not session.used_hint:
                    session.show_hint()
                typer.secho(f"Hint: {hint_text(word)}", fg="cyan")
                continue
            if answer.strip() == QUIT_COMMAND:
                await session.end()
                break

            if answer.strip() == SKIP_COMMAND:
                result = await session.skip()
                typer.secho(f"Skipped. The word was: {result.expected}", fg="yellow")
            else:
                result = await session.submit_answer(answer)
                if result.is_correct:
                    typer.secho("Correct!", fg="green")
                else:
                    typer.secho(f"Wrong. The word was: {result.expected}", fg="red")

            if session.awaiting_rating:
                rating = typer.prompt("How well did you know it? (3=hard, 4=good, 5=easy)", default=4, type=int)
                await session.select_quality(rating)

            while session.state is SessionState.RETRY_REQUIRED:
                retype = typer.prompt(f"Type '{word.word}' to continue")
                if not await session.submit_retry(retype):
                    typer.secho("Not quite. Try again.", fg="red")

            updated = session.updated_words.get(word.id)
            if updated and updated.srs:
                typer.echo(f"Next review in {format_interval(updated.srs.interval)}.")

        return session

    session = asyncio.run(run())
    if session is None:
        return

    summary = session.summary
    typer.echo("")
    typer.secho("Review complete!" if summary.remaining_count == 0 else "Review paused.", bold=True)
    typer.echo(f"Reviewed: {summary.reviewed_count}")
    typer.echo(f"Accuracy: {round(summary.accuracy * 100)}%")
    typer.echo(f"Active time: {summary.active_minutes} min")
    if summary.remaining_count:
        typer.echo(f"Remaining: {summary.remaining_count}")
    for warning in session.warnings:
        typer.secho(f"WARNING: {warning.source}: {warning.message}", fg="yellow")


@app.command()
def server(
    host: Annotated[str, typer.Option(help="Bind address.")] = "127.0.0.1",
    port: Annotated[int, typer.Option(help="Port.")] = 8777,
    reload: Annotated[bool, typer.Option(help="Reload on code changes.")] = False,
):
    """Start the review HTTP server."""
    import uvicorn

    uvicorn.run("lexis.server:app", host=host, port=port, reload=reload)


@config_app.command("show")
def config_show(ctx: typer.Context):
    """Print the resolved configuration as JSON."""
    config = _resolve(ctx)
    typer.echo(json.dumps(config.model_dump(mode="json"), indent=2))


def main():
    app()


if __name__ == "__main__":
    main()
