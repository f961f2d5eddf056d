#!/usr/bin/env python3
"""
Apply SQL migrations to the Supabase Postgres database.

Migrations are the numbered *.sql files in migrations/. Each one is
applied at most once; applied names and checksums are tracked in the
_migrations table so edited files are reported.

Usage:
    python run_migrations.py             # Apply pending migrations
    python run_migrations.py --status    # Show applied and pending migrations
    python run_migrations.py --dry-run   # List pending migrations only

Configuration:
    Set SUPABASE_DB_URL in your .env file to the database connection URI
    (Supabase Dashboard → Settings → Database → Connection string → URI).
"""

import argparse
import hashlib
import sys
from pathlib import Path
from typing import NamedTuple

import psycopg2
from psycopg2 import sql
from rich.console import Console
from rich.table import Table

from shared.config import get_settings

console = Console()

MIGRATIONS_DIR = Path(__file__).parent / "migrations"
MIGRATIONS_TABLE = "_migrations"


class Migration(NamedTuple):
    name: str
    path: Path
    checksum: str


def discover_migrations(directory: Path = MIGRATIONS_DIR) -> list[Migration]:
    """All migration files in name order."""
    return [
        Migration(
            name=path.name,
            path=path,
            checksum=hashlib.sha256(path.read_bytes()).hexdigest()[:16],
        )
        for path in sorted(directory.glob("*.sql"))
    ]


def plan(migrations: list[Migration], applied: dict[str, str]) -> tuple[list[Migration], list[str]]:
    """
    Split migrations into pending ones and names whose file changed after
    being applied.

    Args:
        migrations: Discovered migrations
        applied: Applied migration name -> recorded checksum
    """
    pending = [m for m in migrations if m.name not in applied]
    changed = [
        m.name for m in migrations
        if m.name in applied and applied[m.name] != m.checksum
    ]
    return pending, changed


def connect():
    settings = get_settings()
    if not settings.supabase_db_url:
        console.print("[red]Error:[/red] SUPABASE_DB_URL is not set.")
        sys.exit(1)
    try:
        return psycopg2.connect(settings.supabase_db_url)
    except psycopg2.Error as e:
        console.print(f"[red]Database connection failed:[/red] {e}")
        sys.exit(1)


def fetch_applied(conn) -> dict[str, str]:
    with conn.cursor() as cur:
        cur.execute(
            sql.SQL(
                "CREATE TABLE IF NOT EXISTS {} ("
                " name VARCHAR(255) PRIMARY KEY,"
                " checksum VARCHAR(64) NOT NULL,"
                " applied_at TIMESTAMPTZ NOT NULL DEFAULT NOW())"
            ).format(sql.Identifier(MIGRATIONS_TABLE))
        )
        cur.execute(
            sql.SQL("SELECT name, checksum FROM {}").format(sql.Identifier(MIGRATIONS_TABLE))
        )
        rows = cur.fetchall()
    conn.commit()
    return {name: checksum for name, checksum in rows}


def apply(conn, migration: Migration) -> None:
    """Run one migration and record it, in a single transaction."""
    try:
        with conn.cursor() as cur:
            cur.execute(migration.path.read_text())
            cur.execute(
                sql.SQL("INSERT INTO {} (name, checksum) VALUES (%s, %s)").format(
                    sql.Identifier(MIGRATIONS_TABLE)
                ),
                (migration.name, migration.checksum),
            )
        conn.commit()
    except psycopg2.Error as e:
        conn.rollback()
        console.print(f"[red]✗[/red] {migration.name} failed: {e}")
        raise
    console.print(f"[green]✓[/green] {migration.name}")


def print_status(migrations: list[Migration], applied: dict[str, str]) -> None:
    pending, changed = plan(migrations, applied)
    pending_names = {m.name for m in pending}

    table = Table(title="Migration Status")
    table.add_column("Migration", style="cyan")
    table.add_column("Status")
    table.add_column("Checksum")
    for m in migrations:
        if m.name in pending_names:
            status = "[yellow]Pending[/yellow]"
        elif m.name in changed:
            status = "[red]Changed since applied[/red]"
        else:
            status = "[green]Applied[/green]"
        table.add_row(m.name, status, m.checksum)
    console.print(table)


def main():
    parser = argparse.ArgumentParser(description="Apply Supabase SQL migrations")
    parser.add_argument("--status", action="store_true", help="Show migration status")
    parser.add_argument("--dry-run", action="store_true", help="List pending migrations only")
    args = parser.parse_args()

    migrations = discover_migrations()
    conn = connect()
    try:
        applied = fetch_applied(conn)
        if args.status:
            print_status(migrations, applied)
            return

        pending, changed = plan(migrations, applied)
        for name in changed:
            console.print(f"[yellow]Warning:[/yellow] {name} changed after it was applied")
        if not pending:
            console.print("[green]All migrations are up to date.[/green]")
            return

        for migration in pending:
            if args.dry_run:
                console.print(f"[cyan]Would apply:[/cyan] {migration.name}")
            else:
                apply(conn, migration)
    finally:
        conn.close()


if __name__ == "__main__":
    main()
