"""CLI commands working on cache keys and scopes.

Usage:
    querycache key users "SELECT * FROM users WHERE id = ?" -b 5
    querycache members orders --group-value 1
    querycache flush orders
"""

from __future__ import annotations

import asyncio
from typing import Any

import orjson
import typer
from rich.console import Console

from querycache.cache.redis import RedisStore, close_redis, get_redis
from querycache.cache.registry import GroupRegistry
from querycache.cache.store import CacheStore
from querycache.config import settings
from querycache.query.policy import CachePolicy

console = Console()


async def open_store() -> CacheStore:
    """Store the commands operate on."""
    return RedisStore(await get_redis(settings.redis_url))


async def close_store() -> None:
    await close_redis()


def _policy() -> CachePolicy:
    return CachePolicy.from_settings(settings)


def _parse_binding(raw: str) -> Any:
    """Bindings are JSON literals; anything else is taken as a plain string."""
    try:
        return orjson.loads(raw)
    except orjson.JSONDecodeError:
        return raw


def _scope_key(policy: CachePolicy, table: str, group_value: str | None) -> tuple[str, str | None]:
    """Scope key for the command, plus the enclosing table scope for groups."""
    table_scope = policy.keys.table_scope(table)
    group_field = policy.group_field(table)
    if group_value is None:
        return table_scope, None
    if group_field is None:
        console.print(f"[red]Table {table} has no cache group configured[/red]")
        raise typer.Exit(code=2)
    return policy.keys.group_scope(table, group_field, group_value), table_scope


def key(
    table: str = typer.Argument(..., help="Table the statement reads from"),
    sql: str = typer.Argument(..., help="Final SQL text of the statement"),
    bindings: list[str] = typer.Option(
        [],
        "--binding",
        "-b",
        help="Ordered binding values, as JSON literals (5, \"abc\", null)",
    ),
    group_field: str | None = typer.Option(None, "--group-field", help="Cache group column"),
    group_value: str | None = typer.Option(None, "--group-value", help="Cache group value"),
) -> None:
    """Print the cache key a statement is stored under."""
    keys = _policy().keys
    if (group_field is None) != (group_value is None):
        console.print("[red]--group-field and --group-value must be given together[/red]")
        raise typer.Exit(code=2)

    parsed = [_parse_binding(b) for b in bindings]
    console.print(keys.derive(table, sql, parsed, group_field, group_value))


def members(
    table: str = typer.Argument(..., help="Table whose cached results to list"),
    group_value: str | None = typer.Option(None, "--group-value", "-g", help="Cache group value"),
) -> None:
    """List the result keys registered for a table or group."""
    scope_key, _ = _scope_key(_policy(), table, group_value)

    async def run() -> set[str]:
        store = await open_store()
        try:
            return await GroupRegistry(store).members(scope_key)
        finally:
            await close_store()

    found = asyncio.run(run())
    console.print(f"[bold]{scope_key}[/bold]: {len(found)} keys")
    for member in sorted(found):
        console.print(f"  {member}")


def flush(
    table: str = typer.Argument(..., help="Table whose cached results to drop"),
    group_value: str | None = typer.Option(None, "--group-value", "-g", help="Cache group value"),
) -> None:
    """Invalidate every cached result of a table or group."""
    scope_key, table_scope = _scope_key(_policy(), table, group_value)

    async def run() -> int:
        store = await open_store()
        try:
            return await GroupRegistry(store).invalidate(scope_key, table_scope=table_scope)
        finally:
            await close_store()

    count = asyncio.run(run())
    console.print(f"[green]Flushed[/green] {scope_key} ({count} keys)")
