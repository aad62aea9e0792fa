import asyncio
import logging

import click
import uvicorn

from frontdesk.config import Config
from frontdesk.db import SessionLocal, init_database
from frontdesk.services.maintenance import reset_state
from frontdesk.services.reconciliation import reconcile
from frontdesk.services.rooms import seed_rooms
from frontdesk.store.sql import SqlStore


def _store():
    init_database()
    return SqlStore(SessionLocal)


@click.group()
def cli():
    """Front-desk server and maintenance commands."""
    logging.basicConfig(level=Config.LOG_LEVEL)


@cli.command("serve")
@click.option("--host", default="127.0.0.1", show_default=True)
@click.option("--port", default=8000, show_default=True, type=int)
@click.option("--reload", is_flag=True, help="Restart the server when source files change.")
def serve_command(host, port, reload):
    """Run the HTTP API."""
    uvicorn.run("frontdesk.main:app", host=host, port=port, reload=reload, log_level=Config.LOG_LEVEL.lower())


@cli.command("seed-rooms")
def seed_rooms_command():
    """Install the default room inventory (existing rooms are kept)."""
    created = asyncio.run(seed_rooms(_store()))
    click.echo(f"{created} rooms created")


@cli.command("reconcile")
@click.option("--customer-id", default=None, help="Only repair this guest's bookings.")
@click.option(
    "--release-foreign-locks",
    is_flag=True,
    help="Also free rooms a past-due booking points at while another active booking holds them.",
)
def reconcile_command(customer_id, release_foreign_locks):
    """Close past-due bookings and release rooms left locked."""
    corrected = asyncio.run(
        reconcile(_store(), customer_id=customer_id, release_foreign_locks=release_foreign_locks or None)
    )
    click.echo(f"{corrected} records corrected")


@cli.command("reset-state")
@click.confirmation_option(prompt="Delete all bookings and customers and free every room?")
def reset_state_command():
    """Clear bookings and customers and mark every room available."""
    reset = asyncio.run(reset_state(_store()))
    click.echo(f"Reset complete. Rooms marked available: {reset}. Bookings/customers cleared.")


if __name__ == "__main__":
    cli()
