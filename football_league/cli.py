"""
Football League CLI
===================

Usage:
    python -m football_league <command> [options]

Commands:
    init-db                 Create the database schema
    reset-db                Delete the database, recreate it and load demo data
    standings COMPETITION   Print the standings table of a competition
    serve                   Run the HTTP API with uvicorn
"""

import os
from typing import Optional

import click

from football_league.config import configure_logging, get_settings
from football_league.repository import FootballRepository


@click.group()
@click.option("--database", "database_path", default=None, help="SQLite database file.")
@click.pass_context
def cli(ctx: click.Context, database_path: Optional[str]):
    """Football League - teams, matches, events and standings."""
    settings = get_settings()
    configure_logging(settings)
    ctx.obj = {"database_path": database_path or settings.database_path}


@cli.command("init-db")
@click.pass_context
def init_db(ctx: click.Context):
    """Create the database schema."""
    repository = FootballRepository(ctx.obj["database_path"])
    repository.initialize_schema()
    click.echo("DB schema created.")


@cli.command("reset-db")
@click.confirmation_option(prompt="This deletes every stored record. Continue?")
@click.pass_context
def reset_db(ctx: click.Context):
    """Delete the database file, then recreate the schema and demo data."""
    path = ctx.obj["database_path"]
    if os.path.exists(path):
        os.remove(path)
    repository = FootballRepository(path)
    repository.initialize_schema()
    repository.seed_demo_data()
    click.echo("DB reset + seeded.")


@cli.command("standings")
@click.argument("competition_id", type=int)
@click.pass_context
def standings(ctx: click.Context, competition_id: int):
    """Print the standings table of COMPETITION_ID."""
    repository = FootballRepository(ctx.obj["database_path"])
    rows = [standing.as_row() for standing in repository.compute_standings(competition_id)]
    if not rows:
        click.echo("No registered teams.")
        return

    width = max(len(row["team"]) for row in rows)
    columns = ("P", "W", "D", "L", "GF", "GA", "GD", "PTS")
    click.echo(f"{'#':>2}  {'Team':<{width}}  " + " ".join(f"{c:>4}" for c in columns))
    for position, row in enumerate(rows, start=1):
        click.echo(
            f"{position:>2}  {row['team']:<{width}}  " + " ".join(f"{row[c]:>4}" for c in columns)
        )


@cli.command("serve")
@click.option("--host", default=None, help="Bind address.")
@click.option("--port", default=None, type=int, help="Bind port.")
@click.option("--seed/--no-seed", default=None, help="Load demo data on startup.")
@click.pass_context
def serve(ctx: click.Context, host: Optional[str], port: Optional[int], seed: Optional[bool]):
    """Run the HTTP API."""
    import uvicorn

    from football_league.api import create_app

    updates = {"database_path": ctx.obj["database_path"]}
    if seed is not None:
        updates["seed_demo_data"] = seed
    settings = get_settings().model_copy(update=updates)
    uvicorn.run(
        create_app(settings),
        host=host or settings.api_host,
        port=port or settings.api_port,
    )


if __name__ == "__main__":
    cli()
