"""CLI commands for the query cache.

Provides command-line interface using Typer:
- querycache key: Print the cache key of a statement
- querycache members: List the keys cached for a table or group
- querycache flush: Invalidate a table or group

Usage:
    querycache --help
    querycache key users "SELECT * FROM users WHERE id = ?" --binding 5
    querycache members orders --group-value 1
    querycache flush orders --group-value 1
"""

import typer

from querycache.cli.scope_cmd import flush, key, members
from querycache.config import settings
from querycache.observability.logging import configure_logging

# Main CLI application
app = typer.Typer(
    name="querycache",
    help="Inspect and invalidate the query result cache",
    no_args_is_help=True,
)

app.command("key")(key)
app.command("members")(members)
app.command("flush")(flush)


@app.callback()
def callback() -> None:
    """Inspect and invalidate the query result cache."""
    configure_logging(json_format=settings.log_json, level=settings.log_level)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
