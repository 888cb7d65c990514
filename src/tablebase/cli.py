"""Command-line interface for TableBase.

This module provides the CLI commands for running and managing
the TableBase application.
"""

import asyncio
from typing import NoReturn

import click

from tablebase.core.config import get_settings
from tablebase.core.logging import configure_logging, get_logger


@click.group()
@click.version_option(version="0.1.0", prog_name="TableBase")
def cli() -> None:
    """TableBase - Dynamic table engine.

    User-defined tables with typed columns, validated rows and
    owner/visibility based access.
    """


@cli.command()
@click.option(
    "--host",
    type=str,
    default=None,
    help="Host to bind to (overrides config)",
)
@click.option(
    "--port",
    type=int,
    default=None,
    help="Port to bind to (overrides config)",
)
@click.option(
    "--workers",
    type=int,
    default=None,
    help="Number of worker processes (overrides config)",
)
@click.option(
    "--reload",
    is_flag=True,
    default=False,
    help="Enable auto-reload for development",
)
def serve(host: str | None, port: int | None, workers: int | None, reload: bool) -> None:
    """Start the TableBase server."""
    import uvicorn

    settings = get_settings()

    bind_host = host or settings.host
    bind_port = port or settings.port
    bind_workers = workers or settings.workers

    configure_logging(settings)

    logger = get_logger(__name__)
    logger.info(
        "Starting TableBase server",
        host=bind_host,
        port=bind_port,
        workers=bind_workers,
        reload=reload,
        environment=settings.environment,
    )

    uvicorn.run(
        "tablebase.infrastructure.api.app:app",
        host=bind_host,
        port=bind_port,
        workers=1 if reload else bind_workers,
        reload=reload,
        log_level=settings.log_level.lower(),
        access_log=True,
    )


@cli.command()
@click.option(
    "--force",
    is_flag=True,
    help="Skip confirmation prompt",
)
def init_db(force: bool) -> None:
    """Initialize the database.

    Creates the user_tables, table_columns and table_rows tables if they
    do not exist yet.
    """
    from tablebase.infrastructure.persistence.database import (
        get_db_manager,
        init_database,
    )

    settings = get_settings()
    configure_logging(settings)

    if not force:
        click.confirm(
            "This will create all database tables. Continue?",
            abort=True,
            default=False,
        )

    async def initialize():
        try:
            await init_database()
            click.echo("Database initialized successfully.")
        finally:
            await get_db_manager().disconnect()

    asyncio.run(initialize())


@cli.command()
@click.argument("table_id")
def schema(table_id: str) -> None:
    """Print a table's columns in position order."""
    from tablebase.domain.exceptions import NotFoundError
    from tablebase.domain.services import SchemaService
    from tablebase.infrastructure.persistence.database import get_db_manager

    configure_logging(get_settings())

    async def show() -> None:
        db = get_db_manager()
        try:
            async with db.session() as session:
                service = SchemaService(session)
                try:
                    table, columns = await service.get_table_schema(table_id)
                except NotFoundError as e:
                    click.echo(f"Error: {e.message}", err=True)
                    raise SystemExit(1)

                click.echo(f"{table.name} ({table.table_type}, {table.visibility})")
                for column in columns:
                    flags = []
                    if column.is_required:
                        flags.append("required")
                    if not column.allow_duplicates:
                        flags.append("unique")
                    if await service.is_column_protected(table_id, column.name):
                        flags.append("protected")
                    suffix = f" [{', '.join(flags)}]" if flags else ""
                    click.echo(f"  {column.position:>3}  {column.name}: {column.type}{suffix}")
        finally:
            await db.disconnect()

    asyncio.run(show())


@cli.command()
def info() -> None:
    """Display TableBase configuration."""
    settings = get_settings()

    click.echo(f"""
TableBase v{settings.app_version}
{'=' * 40}

Configuration:
  Environment:  {settings.environment}
  Debug:        {settings.debug}
  API Prefix:   {settings.api_prefix}

Server:
  Host:         {settings.host}
  Port:         {settings.port}
  Workers:      {settings.workers}

Database:
  URL:          {settings.database_url}
  Pool Size:    {settings.db_pool_size}
  Echo:         {settings.db_echo}

Rows:
  Page Size:    {settings.default_page_size} (max {settings.max_page_size})
  Strict Keys:  {settings.reject_unknown_row_fields}

Logging:
  Level:        {settings.log_level}
  Format:       {settings.log_format}
""")


def main() -> NoReturn:
    """Main entry point for the CLI.

    This function is called when the `tablebase` command is run
    or when using `python -m tablebase`.
    """
    cli()


if __name__ == "__main__":
    main()
