"""Command line interface for notewise."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Any, Optional

import typer

from notewise import __version__
from notewise._assistant import Assistant
from notewise.config import load_settings
from notewise.exceptions import NotewiseError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="notewise",
    help="Note assistant with semantic search over a folder of Markdown notes.",
    no_args_is_help=True,
    rich_markup_mode=None,
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"notewise {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    root: Annotated[Path, typer.Option(
        "--root", "-r",
        envvar="NOTEWISE_ROOT",
        help="Folder holding the notes",
    )] = Path("."),
    settings: Annotated[Optional[Path], typer.Option(
        "--settings", "-s",
        help="Path to the settings JSON file",
    )] = None,
    verbose: Annotated[bool, typer.Option(
        "--verbose", "-v",
        help="Enable debug-level logging to stderr",
    )] = False,
    version: Annotated[Optional[bool], typer.Option(
        "--version",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    )] = None,
) -> None:
    """Note assistant with semantic search over a folder of Markdown notes."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = {"root": root, "settings": settings}


def _run(ctx: typer.Context, action: Callable[[Assistant], Awaitable[Any]]) -> Any:
    """Open an :class:`Assistant` for the command and run *action* on it."""

    async def _main() -> Any:
        settings = load_settings(ctx.obj["settings"])
        async with Assistant(ctx.obj["root"], settings=settings) as assistant:
            result = await action(assistant)
            await assistant.drain()
            return result

    try:
        return asyncio.run(_main())
    except (NotewiseError, OSError, ValueError) as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(1) from None


# -----------------------------------------------------------------------------
# Commands
# -----------------------------------------------------------------------------


@app.command()
def index(ctx: typer.Context) -> None:
    """Embed every note whose stored embeddings are missing or stale."""
    count = _run(ctx, lambda a: a.index())
    typer.echo(f"Indexed {count} notes")


@app.command()
def search(
    ctx: typer.Context,
    query: Annotated[str, typer.Argument(help="Search query text")],
    top_k: Annotated[int, typer.Option("--top-k", "-k", help="Number of hits")] = 5,
) -> None:
    """Find the note chunks most similar to QUERY."""
    hits = _run(ctx, lambda a: a.search(query, top_k))
    if not hits:
        typer.echo("No results")
        return
    for hit in hits:
        snippet = hit.chunk_text.replace("\n", " ")
        if len(snippet) > 80:
            snippet = snippet[:77] + "..."
        typer.echo(f"{hit.score:.3f}  {hit.document.path}  {snippet}")


@app.command("suggest-title")
def suggest_title(
    ctx: typer.Context,
    document: Annotated[str, typer.Argument(help="Note path relative to the root")],
    apply: Annotated[bool, typer.Option("--apply", help="Rename the note")] = False,
) -> None:
    """Suggest a title for DOCUMENT."""

    async def _action(assistant: Assistant) -> str:
        title = await assistant.suggest_title(document)
        if apply:
            ref = await assistant.titles.apply_title(document, title)
            return f"{title}\nRenamed to {ref.path}"
        return title

    typer.echo(_run(ctx, _action))


@app.command("suggest-tags")
def suggest_tags(
    ctx: typer.Context,
    document: Annotated[str, typer.Argument(help="Note path relative to the root")],
    apply: Annotated[bool, typer.Option("--apply", help="Write tags to frontmatter")] = False,
) -> None:
    """Suggest tags for DOCUMENT."""

    async def _action(assistant: Assistant) -> list[str]:
        tags = await assistant.suggest_tags(document)
        if apply and tags:
            await assistant.tags.apply_tags(assistant.documents, document, tags)
        return tags

    tags = _run(ctx, _action)
    typer.echo(", ".join(tags) if tags else "No tags suggested")


@app.command()
def clean(
    ctx: typer.Context,
    document: Annotated[str, typer.Argument(help="Note path relative to the root")],
) -> None:
    """Fix grammar and formatting of DOCUMENT in place."""
    _run(ctx, lambda a: a.cleaner.clean_document(a.documents, document))
    typer.echo(f"Cleaned {document}")


@app.command()
def atomize(
    ctx: typer.Context,
    document: Annotated[str, typer.Argument(help="Note path relative to the root")],
    folder: Annotated[str, typer.Option("--folder", help="Folder for the new notes")] = "",
) -> None:
    """Split DOCUMENT into one new note per key concept."""

    async def _action(assistant: Assistant) -> list[str]:
        notes = await assistant.atomizer.atomize(document)
        refs = await assistant.atomizer.create_notes(notes, folder)
        return [ref.path for ref in refs]

    for path in _run(ctx, _action):
        typer.echo(path)


@app.command()
def move(
    ctx: typer.Context,
    document: Annotated[str, typer.Argument(help="Note path relative to the root")],
    to: Annotated[Optional[str], typer.Option("--to", help="Explicit destination")] = None,
) -> None:
    """Move DOCUMENT by the note path rules, or to --to."""

    async def _action(assistant: Assistant) -> str | None:
        if to is not None:
            return (await assistant.paths.move(document, to)).path
        ref = await assistant.route(document)
        return ref.path if ref is not None else None

    destination = _run(ctx, _action)
    if destination is None:
        typer.echo(f"No rule moves {document}")
    else:
        typer.echo(f"Moved {document} to {destination}")


@app.command()
def chat(ctx: typer.Context) -> None:
    """Chat with the configured model. Type 'exit' to quit."""

    async def _action(assistant: Assistant) -> None:
        session = assistant.chat()
        while True:
            try:
                message = await asyncio.to_thread(typer.prompt, "you", prompt_suffix="> ")
            except typer.Abort:
                break
            if message.strip().lower() in {"exit", "quit"}:
                break
            reply = await session.send(message)
            if reply is not None:
                typer.echo(reply)

    _run(ctx, _action)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
