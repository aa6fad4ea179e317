#!/usr/bin/env python3
"""
Command-line interface for the SkillPulse pipeline.

Uses typer for clean CLI with subcommands.
"""

import os
import sys
import uuid
from pathlib import Path
from typing import List, Optional

import typer

# Add project root to path so we can import skillpulse
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from skillpulse.contexts.scraping.orchestration import build_orchestrator, setup_logger
from skillpulse.contexts.scraping.schema import OUTCOME_FAILED
from skillpulse.contexts.storage import (
    CacheWriter,
    InvalidProfession,
    ProfessionAlreadyExists,
    ProfessionCache,
    ProfessionDetailProvider,
    ProfessionNotFound,
    get_database_wrapper,
)
from skillpulse.utils.config_helpers import load_pipeline_config
from skillpulse.utils.context import RunContext

app = typer.Typer(
    add_completion=False,
    help="SkillPulse vacancy skill statistics",
)


def _open_cache(config) -> Optional[ProfessionCache]:
    url = os.getenv("REDIS_URL")
    if not url:
        return None
    return ProfessionCache.from_url(
        url,
        ttl_seconds=int(config.cache.ttl_seconds),
        socket_timeout=float(config.cache.write_timeout),
    )


@app.command("run")
def run_command(
    persist: bool = typer.Option(
        True,
        "--persist/--dry",
        help="Write statistics to the database, or only refresh the cache",
    ),
    config_overrides: Optional[List[Path]] = typer.Option(
        None,
        "--config",
        "-c",
        help="YAML file(s) merged over config/pipeline.yaml",
        exists=True,
        dir_okay=False,
    ),
):
    """
    Scrape every active profession and record its skill statistics.

    Examples:

        # Monthly persisted run
        $ run_pipeline.py run

        # Cache-only refresh
        $ run_pipeline.py run --dry

        # Local overrides
        $ run_pipeline.py run -c config/local.yaml
    """
    config = load_pipeline_config(config_overrides)
    setup_logger()

    db = get_database_wrapper(ensure_exists=persist)
    if persist:
        db.ensure_schema()

    cache = _open_cache(config)
    cache_writer = CacheWriter(cache) if cache is not None else None
    orchestrator = build_orchestrator(config, db, cache_writer=cache_writer)

    run_timeout = config.pipeline.run_timeout
    ctx = RunContext(timeout=float(run_timeout) if run_timeout else None)

    try:
        report = orchestrator.run(ctx, persist=persist)
    except KeyboardInterrupt:
        ctx.cancel()
        if cache_writer is not None:
            cache_writer.close(wait=False)
        typer.secho("\n\nInterrupted by user", fg=typer.colors.YELLOW, err=True)
        raise typer.Exit(code=130)
    except Exception as e:
        if cache_writer is not None:
            cache_writer.close(wait=False)
        typer.secho(f"Run aborted: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    if cache_writer is not None:
        cache_writer.close(wait=True)

    # Exit with error code if every profession failed
    if report.outcomes and report.count(OUTCOME_FAILED) == len(report.outcomes):
        raise typer.Exit(code=1)


@app.command("professions")
def professions_command(
    show_all: bool = typer.Option(False, "--all", "-a", help="Include deactivated professions"),
):
    """List active professions."""
    db = get_database_wrapper()
    professions = db.get_all_professions() if show_all else db.get_active_professions()
    title = "Professions" if show_all else "Active professions"
    typer.secho(f"{title} ({len(professions)}):", fg=typer.colors.BLUE, bold=True)
    for profession in professions:
        status = "" if profession.is_active else "  (inactive)"
        typer.echo(f"  • {profession.name}  [{profession.id}]  query: {profession.vacancy_query}{status}")


def _parse_id(profession_id: str) -> uuid.UUID:
    try:
        return uuid.UUID(profession_id)
    except ValueError:
        typer.secho(f"Error: '{profession_id}' is not a valid id", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)


@app.command("add-profession")
def add_profession_command(
    name: str = typer.Argument(..., help="Display name, e.g. 'Python developer'"),
    query: Optional[str] = typer.Option(None, "--query", "-q", help="Vacancy search query (default: name)"),
):
    """Register a profession to track."""
    db = get_database_wrapper(ensure_exists=True)
    db.ensure_schema()
    try:
        profession = db.add_profession(name, name if query is None else query)
    except (InvalidProfession, ProfessionAlreadyExists) as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Added {profession.name} [{profession.id}]")


@app.command("update-profession")
def update_profession_command(
    profession_id: str = typer.Argument(..., help="Profession id"),
    name: Optional[str] = typer.Option(None, "--name", help="New display name"),
    query: Optional[str] = typer.Option(None, "--query", "-q", help="New vacancy search query"),
):
    """Rename a profession or change its vacancy query."""
    pid = _parse_id(profession_id)
    if name is None and query is None:
        typer.secho("Error: nothing to update, pass --name and/or --query", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    try:
        profession = get_database_wrapper().update_profession(pid, name=name, vacancy_query=query)
    except (ProfessionNotFound, InvalidProfession, ProfessionAlreadyExists) as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Updated {profession.name} [{profession.id}]  query: {profession.vacancy_query}")


def _set_active(profession_id: str, active: bool) -> None:
    pid = _parse_id(profession_id)
    try:
        profession = get_database_wrapper().set_profession_active(pid, active)
    except ProfessionNotFound as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    typer.echo(f"{'Activated' if active else 'Deactivated'} {profession.name} [{profession.id}]")


@app.command("deactivate")
def deactivate_command(profession_id: str = typer.Argument(..., help="Profession id")):
    """Stop scraping a profession; its history is kept."""
    _set_active(profession_id, False)


@app.command("activate")
def activate_command(profession_id: str = typer.Argument(..., help="Profession id")):
    """Resume scraping a deactivated profession."""
    _set_active(profession_id, True)


@app.command("show")
def show_command(
    profession_id: str = typer.Argument(..., help="Profession id"),
    top: int = typer.Option(20, "--top", "-n", help="Skills to print per list", min=1),
):
    """Print the latest skill profile of a profession."""
    pid = _parse_id(profession_id)

    config = load_pipeline_config()
    cache = _open_cache(config)
    cache_writer = CacheWriter(cache) if cache is not None else None
    provider = ProfessionDetailProvider(get_database_wrapper(), cache=cache, cache_writer=cache_writer)

    try:
        detail = provider.profession_detail(pid)
    except ProfessionNotFound as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    finally:
        if cache_writer is not None:
            cache_writer.close(wait=True)

    typer.secho(
        f"{detail.profession_name}: {detail.vacancy_count} vacancies (scraped {detail.scraped_at})",
        fg=typer.colors.BLUE,
        bold=True,
    )
    for title, skills in (("Formal skills", detail.formal_skills), ("Extracted skills", detail.extracted_skills)):
        typer.echo(f"\n{title}:")
        for skill in skills[:top]:
            typer.echo(f"  {skill.count:>6}  {skill.skill}")


if __name__ == "__main__":
    app()
