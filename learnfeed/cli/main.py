"""CLI commands for the learnfeed engines."""

import json
import logging
import sys
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import TypeVar

import click
import structlog
from pydantic import BaseModel

from learnfeed import __version__
from learnfeed.app import Services, build_services
from learnfeed.config.loader import ConfigValidationError
from learnfeed.errors import LearnfeedError
from learnfeed.learning.models import ActivityType, DifficultyLevel
from learnfeed.observability.logging import (
    bind_user_context,
    clear_user_context,
    configure_logging,
)
from learnfeed.pack.models import FeedbackAction, PackSource
from learnfeed.settings import AppSettings, get_settings
from learnfeed.store.store import StateStore


logger = structlog.get_logger()

T = TypeVar("T")


@dataclass
class CliContext:
    """Options shared by every command."""

    settings: AppSettings
    json_logs: bool
    verbose: bool


def _echo_json(payload: object) -> None:
    if isinstance(payload, BaseModel):
        payload = payload.model_dump(mode="json")
    elif isinstance(payload, list):
        payload = [p.model_dump(mode="json") if isinstance(p, BaseModel) else p for p in payload]
    click.echo(json.dumps(payload, indent=2, sort_keys=True))


@contextmanager
def _services(ctx: CliContext, user_id: str | None = None) -> Iterator[Services]:
    """Build services, mapping failures to a non-zero exit."""
    configure_logging(
        level=logging.DEBUG if ctx.verbose else logging.WARNING,
        json_format=ctx.json_logs,
    )
    if user_id is not None:
        bind_user_context(user_id)
    try:
        services = build_services(ctx.settings)
    except ConfigValidationError as e:
        click.echo(f"Configuration validation failed: {e.file_path}", err=True)
        for error in e.errors:
            click.echo(f"  - {error.get('loc', '')}: {error.get('msg', '')}", err=True)
        sys.exit(1)

    try:
        yield services
    except LearnfeedError as e:
        logger.bind(component="cli").warning("command_failed", **e.to_dict())
        click.echo(json.dumps(e.to_dict(), sort_keys=True), err=True)
        sys.exit(1)
    finally:
        services.close()
        clear_user_context()


def _run(ctx: CliContext, user_id: str | None, op: Callable[[Services], T]) -> None:
    with _services(ctx, user_id) as services:
        _echo_json(op(services))


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--db",
    "db_path",
    type=click.Path(path_type=Path),
    default=None,
    help="Path to SQLite database (default: LEARNFEED_DB_PATH).",
)
@click.option(
    "--engine-config",
    "engine_config_path",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Path to engine.yaml overriding built-in tunables.",
)
@click.option(
    "--json-logs/--no-json-logs",
    default=True,
    help="Use JSON format for logs (default: true).",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging.")
@click.pass_context
def cli(
    ctx: click.Context,
    db_path: Path | None,
    engine_config_path: Path | None,
    json_logs: bool,
    verbose: bool,
) -> None:
    """Personalized feed, daily pack, and learning progress CLI."""
    settings = get_settings()
    updates: dict[str, object] = {}
    if db_path is not None:
        updates["db_path"] = db_path
    if engine_config_path is not None:
        updates["engine_config_path"] = engine_config_path
    if updates:
        settings = settings.model_copy(update=updates)
    ctx.obj = CliContext(settings=settings, json_logs=json_logs, verbose=verbose)


pass_cli_context = click.make_pass_decorator(CliContext)


@cli.command()
@click.argument("user_id")
@click.option("--limit", type=int, default=None, help="Page size.")
@click.option("--offset", type=int, default=0, show_default=True, help="Items to skip.")
@pass_cli_context
def feed(ctx: CliContext, user_id: str, limit: int | None, offset: int) -> None:
    """Print one page of a user's personalized feed."""
    _run(ctx, user_id, lambda s: s.feed.get_personalized_feed(user_id, limit, offset))


@cli.command()
@click.argument("user_id")
@click.option("--topic", default=None, help="Pack topic (default: ai-ml).")
@pass_cli_context
def pack(ctx: CliContext, user_id: str, topic: str | None) -> None:
    """Print today's daily pack for a user."""
    _run(ctx, user_id, lambda s: s.pack.get_daily_pack(user_id, topic))


@cli.command()
@click.argument("user_id")
@click.argument("item_id")
@click.option(
    "--source",
    type=click.Choice([s.value for s in PackSource]),
    required=True,
    help="Source family of the pack item.",
)
@click.option(
    "--action",
    type=click.Choice([a.value for a in FeedbackAction]),
    required=True,
    help="Reaction to record.",
)
@pass_cli_context
def feedback(ctx: CliContext, user_id: str, item_id: str, source: str, action: str) -> None:
    """Record a reaction to a pack item."""
    _run(ctx, user_id, lambda s: s.pack.record_feedback(user_id, item_id, source, action))


@cli.command()
@click.argument("user_id")
@click.argument("activity_type", type=click.Choice([a.value for a in ActivityType]))
@click.option("--skill", "skill_area", default=None, help="Skill area to credit.")
@click.option(
    "--difficulty",
    type=click.Choice([d.value for d in DifficultyLevel]),
    default=None,
    help="Difficulty of the content.",
)
@click.option("--content-id", default=None, help="Content the activity refers to.")
@click.option("--minutes", "time_spent_minutes", type=float, default=None)
@click.option("--completion", "completion_rate", type=float, default=None)
@pass_cli_context
def track(  # noqa: PLR0913
    ctx: CliContext,
    user_id: str,
    activity_type: str,
    skill_area: str | None,
    difficulty: str | None,
    content_id: str | None,
    time_spent_minutes: float | None,
    completion_rate: float | None,
) -> None:
    """Track a learning activity and print any awards."""
    metadata = {
        "skill_area": skill_area,
        "difficulty_level": difficulty,
        "content_id": content_id,
        "time_spent_minutes": time_spent_minutes,
        "completion_rate": completion_rate,
    }
    _run(
        ctx,
        user_id,
        lambda s: s.learning.track_activity(
            user_id, activity_type, {k: v for k, v in metadata.items() if v is not None}
        ),
    )


@cli.command()
@click.argument("user_id")
@click.option("--skill", "skill_area", default=None, help="Restrict to one skill.")
@click.option("--limit", type=int, default=10, show_default=True)
@pass_cli_context
def recommend(ctx: CliContext, user_id: str, skill_area: str | None, limit: int) -> None:
    """Print learning recommendations for a user."""
    _run(ctx, user_id, lambda s: s.learning.get_recommendations(user_id, skill_area, limit))


@cli.command()
@click.argument("user_id")
@pass_cli_context
def insights(ctx: CliContext, user_id: str) -> None:
    """Print learning progress insights for a user."""
    _run(ctx, user_id, lambda s: s.learning.get_progress_insights(user_id))


@cli.command("seed-achievements")
@pass_cli_context
def seed_achievements(ctx: CliContext) -> None:
    """Install the built-in achievement catalog."""
    _run(ctx, None, lambda s: {"seeded": s.learning.seed_achievements()})


@cli.command("db-stats")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON.")
@pass_cli_context
def db_stats(ctx: CliContext, json_output: bool) -> None:
    """Display database statistics.

    Shows the schema version and row counts for all tables.
    """
    configure_logging(json_format=False, level=logging.WARNING)

    with StateStore(db_path=ctx.settings.db_path) as store:
        stats = store.stats()
        schema_version = store.schema_version()

    if json_output:
        _echo_json({"schema_version": schema_version, "tables": stats})
        return

    click.echo("Database Statistics")
    click.echo("=" * 40)
    click.echo(f"  Schema Version: {schema_version}")
    click.echo("")
    click.echo("Table Row Counts:")
    for table, count in sorted(stats.items()):
        click.echo(f"  {table}: {count}")


if __name__ == "__main__":
    cli()
