"""lexis command-line interface."""

import asyncio
import json
import logging
import logging.handlers
import sys
from dataclasses import asdict
from datetime import date, datetime
from pathlib import Path
from typing import Annotated, Literal

import typer

from lexis.application.config import resolve_config
from lexis.consts import VERSION
from lexis.domain.constants import FAMILIARITY_MAX, FAMILIARITY_MIN
from lexis.domain.errors import CatalogError
from lexis.domain.models import FilterSpec, VocabularyItem

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="lexis: review and manage your vocabulary catalog.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logger = logging.getLogger(__name__)

LOG_LEVELS = {0: logging.WARNING, 1: logging.INFO}
LOG_FILE_NAME = "lexis.log"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(config, console_verbose: int = 0) -> list[logging.Handler]:
    """
    Attach a stderr handler and a rotating file handler under config.log_dir
    to the lexis package logger.

    The resolved config.verbose sets the level of the log file. The console
    only shows warnings unless -v was given on the command line.

    Returns:
        The handlers added, for removal once the command finishes.
    """
    level = LOG_LEVELS.get(config.verbose, logging.DEBUG)
    pkg = logging.getLogger("lexis")
    pkg.setLevel(level)
    pkg.propagate = False
    formatter = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(level if console_verbose else logging.WARNING)
    console.setFormatter(formatter)

    config.log_dir.mkdir(parents=True, exist_ok=True)
    file_handler = logging.handlers.RotatingFileHandler(
        config.log_dir / LOG_FILE_NAME,
        maxBytes=5 * 1024 * 1024,
        backupCount=3,
        encoding="utf-8",
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)

    handlers: list[logging.Handler] = [console, file_handler]
    for h in handlers:
        pkg.addHandler(h)
    logger.debug(f"Logging to {config.log_dir / LOG_FILE_NAME} at {logging.getLevelName(level)}")
    return handlers


def _release_logging(handlers: list[logging.Handler]) -> None:
    pkg = logging.getLogger("lexis")
    for h in handlers:
        pkg.removeHandler(h)
        h.close()
    pkg.setLevel(logging.NOTSET)
    pkg.propagate = True


# ---------------------------------------------------------------------------
# Subgroups
# ---------------------------------------------------------------------------

config_app = typer.Typer(help="Manage lexis configuration.")
app.add_typer(config_app, name="config")

tags_app = typer.Typer(help="List and create tags.", no_args_is_help=True)
app.add_typer(tags_app, name="tags")


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
    api_base_url: Annotated[
        str | None, typer.Option("--api", help="Catalog service base URL.")
    ] = None,
):
    """Global settings for lexis."""
    ctx.ensure_object(dict)
    # Unset values fall through to env and the config file.
    ctx.obj["overrides"] = {"verbose": verbose or None, "api_base_url": api_base_url}
    ctx.obj["console_verbose"] = verbose


def _config(ctx: typer.Context, **extra):
    """Resolve the config for this command and start logging with it."""
    obj = ctx.obj or {}
    overrides = dict(obj.get("overrides", {}))
    overrides.update(extra)
    config = resolve_config(overrides)
    handlers = configure_logging(config, obj.get("console_verbose", 0))
    ctx.call_on_close(lambda: _release_logging(handlers))
    return config


def _fail(message: str) -> None:
    typer.secho(message, fg="red", err=True)
    raise typer.Exit(1)


# ---------------------------------------------------------------------------
# Shared filter options
# ---------------------------------------------------------------------------

SearchOpt = Annotated[str | None, typer.Option("--search", "-s", help="Match word or meaning.")]
LetterOpt = Annotated[str | None, typer.Option(help="Words starting with this letter.")]
TagOpt = Annotated[
    list[int] | None, typer.Option("--tag", "-t", help="Tag id. Repeat for several.")
]
HardOpt = Annotated[
    bool | None, typer.Option("--hard/--not-hard", help="Only hard / only not-hard words.")
]
FamMinOpt = Annotated[
    int | None,
    typer.Option(min=FAMILIARITY_MIN, max=FAMILIARITY_MAX, help="Minimum familiarity."),
]
FamMaxOpt = Annotated[
    int | None,
    typer.Option(min=FAMILIARITY_MIN, max=FAMILIARITY_MAX, help="Maximum familiarity."),
]
DateOpt = Annotated[datetime | None, typer.Option(formats=["%Y-%m-%d"])]


def build_filters(
    search: str | None = None,
    letter: str | None = None,
    tag: list[int] | None = None,
    hard: bool | None = None,
    familiarity_min: int | None = None,
    familiarity_max: int | None = None,
    created_after: datetime | None = None,
    created_before: datetime | None = None,
    due_after: datetime | None = None,
    due_before: datetime | None = None,
    last_review_after: datetime | None = None,
    last_review_before: datetime | None = None,
) -> FilterSpec:
    def _d(v: datetime | None) -> date | None:
        return v.date() if v else None

    return FilterSpec(
        search=search,
        letter=letter,
        tag_ids=tuple(tag or ()),
        is_hard=hard,
        familiarity_min=familiarity_min,
        familiarity_max=familiarity_max,
        created_after=_d(created_after),
        created_before=_d(created_before),
        due_after=_d(due_after),
        due_before=_d(due_before),
        last_review_after=_d(last_review_after),
        last_review_before=_d(last_review_before),
    )


def _item_dict(item: VocabularyItem) -> dict:
    d = asdict(item)
    return json.loads(json.dumps(d, default=str))


# ---------------------------------------------------------------------------
# Root commands
# ---------------------------------------------------------------------------


@app.command()
def version():
    """Print the lexis version."""
    typer.echo(VERSION)


@app.command()
def review(
    ctx: typer.Context,
    vocab: Annotated[
        int | None,
        typer.Option("--vocab", help="Review this single item, even if it is not due."),
    ] = None,
):
    """[bold green]Review[/bold green] due words (Space reveals, arrows answer)."""
    from lexis.application.factory import create_review_session, get_catalog_client
    from lexis.domain.review.models import SessionPhase
    from lexis.interface.review_shell import run_review

    config = _config(ctx)

    async def run():
        catalog = get_catalog_client(config)
        try:
            session = create_review_session(config, catalog)
            return await run_review(session, vocab_id=vocab, debounce=config.key_debounce)
        finally:
            await catalog.close()

    phase = asyncio.run(run())
    if phase == SessionPhase.ERROR:
        raise typer.Exit(1)


@app.command("list")
def list_items(
    ctx: typer.Context,
    search: SearchOpt = None,
    letter: LetterOpt = None,
    tag: TagOpt = None,
    hard: HardOpt = None,
    familiarity_min: FamMinOpt = None,
    familiarity_max: FamMaxOpt = None,
    created_after: DateOpt = None,
    created_before: DateOpt = None,
    due_after: DateOpt = None,
    due_before: DateOpt = None,
    last_review_after: DateOpt = None,
    last_review_before: DateOpt = None,
    page: Annotated[int, typer.Option(min=1, help="Page number (1-based).")] = 1,
    size: Annotated[int | None, typer.Option(min=1, help="Items per page.")] = None,
    sort_by: Annotated[
        str | None, typer.Option(help="Sort field, e.g. word or created_at.")
    ] = None,
    sort_order: Annotated[
        Literal["asc", "desc"], typer.Option(help="Sort direction, used with --sort-by.")
    ] = "desc",
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
    show_query: Annotated[
        bool, typer.Option("--show-query", help="Print the composed query and exit.")
    ] = False,
):
    """List words matching the given filters."""
    from lexis.application.factory import get_catalog_client
    from lexis.application.filter_state import FilterState
    from lexis.application.query_composer import encode_query

    config = _config(ctx)
    state = FilterState(
        filters=build_filters(
            search, letter, tag, hard, familiarity_min, familiarity_max,
            created_after, created_before, due_after, due_before,
            last_review_after, last_review_before,
        ),
        page_size=size or config.page_size,
    )
    state.set_page(page)
    if sort_by:
        state.set_sort(sort_by, sort_order)

    if show_query:
        typer.echo(encode_query(state.query(include_sort=bool(sort_by))))
        return

    async def run():
        catalog = get_catalog_client(config)
        try:
            return await catalog.list_items(
                state.filters, state.page_spec, state.sort if sort_by else None
            )
        finally:
            await catalog.close()

    try:
        result = asyncio.run(run())
    except CatalogError as e:
        _fail(f"Listing failed: {e}")

    if json_output:
        typer.echo(
            json.dumps(
                {
                    "items": [_item_dict(i) for i in result.items],
                    "total": result.total,
                    "page": result.page,
                    "size": result.size,
                    "pages": result.page_count,
                },
                indent=2,
            )
        )
        return

    if not result.items:
        typer.secho("No words match these filters.", fg="yellow")
        return
    for item in result.items:
        mark = "!" if item.is_hard else " "
        typer.echo(f"{item.id:>6} {mark} {item.word:<24} {item.meaning}  (fam {item.familiarity})")
    typer.echo(f"Page {result.page}/{max(result.page_count, 1)} - {result.total} word(s)")


@app.command()
def stats(
    ctx: typer.Context,
    logs: Annotated[
        bool, typer.Option("--logs", help="Show individual review log entries instead.")
    ] = False,
    vocab: Annotated[
        int | None, typer.Option("--vocab", help="With --logs: only this item's reviews.")
    ] = None,
    limit: Annotated[
        int | None, typer.Option(min=1, help="With --logs: at most this many entries.")
    ] = None,
):
    """Show review statistics, or the review log with --logs."""
    from lexis.application.factory import get_catalog_client

    config = _config(ctx)

    async def run():
        catalog = get_catalog_client(config)
        try:
            if logs:
                return await catalog.review_logs(vocabulary_id=vocab, limit=limit)
            return await catalog.review_stats()
        finally:
            await catalog.close()

    try:
        result = asyncio.run(run())
    except CatalogError as e:
        _fail(f"Could not fetch {'review logs' if logs else 'stats'}: {e}")
    if logs:
        typer.echo(json.dumps([asdict(r) for r in result], indent=2, default=str))
        return
    typer.echo(json.dumps(asdict(result), indent=2))


# -- Item editing --------------------------------------------------------

PosOpt = Annotated[str | None, typer.Option("--pos", help="Part of speech, e.g. n. or v.")]
IpaOpt = Annotated[str | None, typer.Option("--ipa", help="Phonetic transcription.")]
NotesOpt = Annotated[str | None, typer.Option(help="Free-form notes.")]
ExamplesOpt = Annotated[str | None, typer.Option(help="Example sentences.")]
FamiliarityOpt = Annotated[
    int | None,
    typer.Option(min=FAMILIARITY_MIN, max=FAMILIARITY_MAX, help="Familiarity level."),
]
MarkHardOpt = Annotated[
    bool | None, typer.Option("--hard/--not-hard", help="Mark the word as hard or not.")
]
NewTagOpt = Annotated[
    list[str] | None,
    typer.Option("--new-tag", help="Create a tag with this name and attach it. Repeatable."),
]


def _item_fields(
    word: str | None = None,
    meaning: str | None = None,
    pos: str | None = None,
    ipa: str | None = None,
    notes: str | None = None,
    examples: str | None = None,
    familiarity: int | None = None,
    hard: bool | None = None,
) -> dict:
    return {
        "word": word,
        "meaning": meaning,
        "part_of_speech": pos,
        "phonetic": ipa,
        "notes": notes,
        "examples": examples,
        "familiarity": familiarity,
        "is_hard": hard,
    }


def _echo_saved(verb: str, item: VocabularyItem) -> None:
    typer.secho(f"{verb} {item.id}: {item.word}", fg="green")
    if item.tags:
        typer.echo("Tags: " + ", ".join(f"{t.name} ({t.id})" for t in item.tags))


@app.command("add")
def add_item(
    ctx: typer.Context,
    word: Annotated[str, typer.Argument(help="The word or phrase.")],
    meaning: Annotated[str, typer.Argument(help="Its meaning.")],
    pos: PosOpt = None,
    ipa: IpaOpt = None,
    notes: NotesOpt = None,
    examples: ExamplesOpt = None,
    familiarity: FamiliarityOpt = None,
    hard: MarkHardOpt = None,
    tag: TagOpt = None,
    new_tag: NewTagOpt = None,
):
    """Add a word to the catalog. New tags are created before the word is saved."""
    from lexis.application.factory import get_catalog_client
    from lexis.application.items import resolve_tags, save_item
    from lexis.application.tags import TagSelection

    config = _config(ctx)
    fields = _item_fields(word, meaning, pos, ipa, notes, examples, familiarity, hard)

    async def run():
        catalog = get_catalog_client(config)
        try:
            selection = None
            if tag or new_tag:
                selection = TagSelection()
                for t in await resolve_tags(catalog, tag or []):
                    selection.add_existing(t)
                for name in new_tag or []:
                    selection.add_pending(name)
            return await save_item(catalog, fields, selection)
        finally:
            await catalog.close()

    try:
        item = asyncio.run(run())
    except CatalogError as e:
        _fail(f"Could not add '{word}': {e}")
    _echo_saved("Added", item)


@app.command("edit")
def edit_item(
    ctx: typer.Context,
    vocab_id: Annotated[int, typer.Argument(metavar="ID", help="Item id.")],
    word: Annotated[str | None, typer.Option(help="New spelling.")] = None,
    meaning: Annotated[str | None, typer.Option(help="New meaning.")] = None,
    pos: PosOpt = None,
    ipa: IpaOpt = None,
    notes: NotesOpt = None,
    examples: ExamplesOpt = None,
    familiarity: FamiliarityOpt = None,
    hard: MarkHardOpt = None,
    tag: TagOpt = None,
    new_tag: NewTagOpt = None,
    untag: Annotated[
        list[int] | None, typer.Option("--untag", help="Detach this tag id. Repeatable.")
    ] = None,
):
    """Change fields or tags of an existing word. Unset options are left as they are."""
    from lexis.application.factory import get_catalog_client
    from lexis.application.items import resolve_tags, save_item
    from lexis.application.tags import TagSelection

    config = _config(ctx)
    fields = _item_fields(word, meaning, pos, ipa, notes, examples, familiarity, hard)
    if not any(v is not None for v in fields.values()) and not (tag or new_tag or untag):
        _fail("Nothing to change. Pass at least one field or tag option.")

    async def run():
        catalog = get_catalog_client(config)
        try:
            selection = None
            if tag or new_tag or untag:
                current = await catalog.fetch_item(vocab_id)
                selection = TagSelection.from_tags(current.tags)
                for entry in selection.entries:
                    if entry.tag.id in (untag or []):
                        selection.remove(entry)
                for t in await resolve_tags(catalog, tag or []):
                    selection.add_existing(t)
                for name in new_tag or []:
                    selection.add_pending(name)
            return await save_item(catalog, fields, selection, vocab_id=vocab_id)
        finally:
            await catalog.close()

    try:
        item = asyncio.run(run())
    except CatalogError as e:
        _fail(f"Could not update {vocab_id}: {e}")
    _echo_saved("Updated", item)


@app.command("delete")
def delete_item(
    ctx: typer.Context,
    vocab_id: Annotated[int, typer.Argument(metavar="ID", help="Item id.")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Do not ask for confirmation.")] = False,
):
    """Delete a word from the catalog."""
    from lexis.application.factory import get_catalog_client

    config = _config(ctx)
    if not yes:
        typer.confirm(f"Delete item {vocab_id}?", abort=True)

    async def run():
        catalog = get_catalog_client(config)
        try:
            await catalog.delete_item(vocab_id)
        finally:
            await catalog.close()

    try:
        asyncio.run(run())
    except CatalogError as e:
        _fail(f"Could not delete {vocab_id}: {e}")
    logger.info(f"Deleted item {vocab_id}")
    typer.secho(f"Deleted {vocab_id}", fg="green")


@app.command("export")
def export_items(
    ctx: typer.Context,
    out: Annotated[Path, typer.Option("--out", "-o", help="Destination file.")],
    fmt: Annotated[
        Literal["csv", "json"], typer.Option("--format", "-f", help="Export format.")
    ] = "json",
    search: SearchOpt = None,
    letter: LetterOpt = None,
    tag: TagOpt = None,
    hard: HardOpt = None,
):
    """Export words (optionally filtered) to a CSV or JSON file."""
    from lexis.application.factory import get_catalog_client

    config = _config(ctx)
    filters = build_filters(search, letter, tag, hard)

    async def run():
        catalog = get_catalog_client(config)
        try:
            return await catalog.export_items(fmt, filters)
        finally:
            await catalog.close()

    try:
        payload = asyncio.run(run())
    except CatalogError as e:
        _fail(f"Export failed: {e}")
    out.write_bytes(payload)
    typer.secho(f"Exported to {out}", fg="green")


@app.command("import")
def import_items(
    ctx: typer.Context,
    path: Annotated[Path, typer.Argument(exists=True, dir_okay=False, help="CSV or JSON file.")],
    fmt: Annotated[
        Literal["auto", "csv", "json"],
        typer.Option("--format", "-f", help="auto picks from the file extension."),
    ] = "auto",
):
    """Import words from a CSV or JSON file."""
    from lexis.application.factory import get_catalog_client

    config = _config(ctx)
    if fmt == "auto":
        fmt = "csv" if path.suffix.lower() == ".csv" else "json"
    data = path.read_text(encoding="utf-8")

    async def run():
        catalog = get_catalog_client(config)
        try:
            return await catalog.import_items(data, fmt)
        finally:
            await catalog.close()

    try:
        result = asyncio.run(run())
    except CatalogError as e:
        _fail(f"Import failed: {e}")
    typer.secho(
        f"Imported {result.imported_count}, skipped {result.skipped_count}.", fg="green"
    )
    if result.message:
        typer.echo(result.message)


@app.command()
def serve(
    ctx: typer.Context,
    host: Annotated[str | None, typer.Option(help="Bind address.")] = None,
    port: Annotated[int | None, typer.Option(help="Bind port.")] = None,
    reload: Annotated[bool, typer.Option("--reload", help="Auto-reload on changes.")] = False,
):
    """Run the local review bridge for browser front-ends."""
    import uvicorn

    config = _config(ctx, server_host=host, server_port=port)
    logger.info(f"Starting review bridge on {config.server_host}:{config.server_port}")
    uvicorn.run(
        "lexis.server:app", host=config.server_host, port=config.server_port, reload=reload
    )


# ---------------------------------------------------------------------------
# Tags subgroup
# ---------------------------------------------------------------------------


@tags_app.command("list")
def tags_list(ctx: typer.Context):
    """List all tags."""
    from lexis.application.factory import get_catalog_client

    config = _config(ctx)

    async def run():
        catalog = get_catalog_client(config)
        try:
            return await catalog.list_tags()
        finally:
            await catalog.close()

    try:
        tags = asyncio.run(run())
    except CatalogError as e:
        _fail(f"Could not fetch tags: {e}")
    if not tags:
        typer.secho("No tags yet.", fg="yellow")
    for t in tags:
        typer.echo(f"{t.id:>4}  {t.name}" + (f"  ({t.color})" if t.color else ""))


@tags_app.command("create")
def tags_create(
    ctx: typer.Context,
    names: Annotated[list[str], typer.Argument(help="One or more tag names.")],
    color: Annotated[str | None, typer.Option(help="Display color, e.g. #3b82f6.")] = None,
):
    """Create tags on the catalog."""
    from lexis.application.factory import get_catalog_client
    from lexis.application.tags import TagSelection

    config = _config(ctx)
    selection = TagSelection()
    for name in names:
        selection.add_pending(name, color=color)

    async def run():
        catalog = get_catalog_client(config)
        try:
            return await selection.reconcile(catalog)
        finally:
            await catalog.close()

    try:
        created = asyncio.run(run())
    except CatalogError as e:
        left = ", ".join(p.name for p in selection.pending())
        _fail(f"Tag creation failed ({e}). Not created: {left}")
    for t in created:
        typer.secho(f"Created tag {t.id}: {t.name}", fg="green")


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show(ctx: typer.Context):
    """Display final resolved configuration."""
    overrides = dict((ctx.obj or {}).get("overrides", {}))
    config = resolve_config(overrides)
    d = {k: str(v) if isinstance(v, Path) else v for k, v in config.model_dump().items()}
    typer.echo(json.dumps(d, indent=2))


if __name__ == "__main__":
    app()
