import asyncio
import logging
import subprocess
import sys
from datetime import date
from typing import Optional

import typer

from library_gateway.config import settings
from library_gateway.exceptions import (
    LimitExceededError,
    NotFoundError,
    OrphanedReservationError,
    UpstreamError,
    UpstreamUnavailableError,
)
from library_gateway.models import BookCondition
from library_gateway.reservations import ReservationOrchestrator, build_orchestrator
from library_gateway.services.http_client import cleanup_http_clients
from library_gateway.ui_helpers import print_rating, print_reservations, print_take_result, set_output_mode

logger = logging.getLogger(__name__)

app = typer.Typer(help="Library gateway CLI")


def _run(action):
    """Run ``action(orchestrator)`` against the configured services and close the clients."""

    async def runner():
        try:
            orchestrator: ReservationOrchestrator = await build_orchestrator()
            return await action(orchestrator)
        finally:
            await cleanup_http_clients()

    try:
        return asyncio.run(runner())
    except LimitExceededError as e:
        print(f"Limit exceeded: {e}")
    except NotFoundError as e:
        print(f"Not found: {e}")
    except OrphanedReservationError as e:
        print(f"Checkout failed, reservation {e.reservation_uid} was left open: {e.cause}")
    except UpstreamUnavailableError as e:
        print(f"Service unavailable: {e}")
    except UpstreamError as e:
        print(f"Service error: {e}")
    raise typer.Exit(code=1)


def _parse_date(value: str, option: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise typer.BadParameter(f"expected YYYY-MM-DD, got {value!r}", param_hint=option)


@app.callback()
def _global_options(
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output format: plain | json | rich (default: plain)",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log collaborator calls"),
):
    """Global CLI options."""
    logging.basicConfig(level=logging.DEBUG if verbose else settings.log_level)
    if output:
        set_output_mode(output)


@app.command("rating")
def cli_rating(user: str):
    """Show a user's star rating."""
    rating = _run(lambda o: o.get_rating(user))
    print_rating(user, rating)


@app.command("reservations")
def cli_reservations(user: str):
    """List all reservations of a user."""
    items = _run(lambda o: o.get_reservations(user))
    print_reservations(items)


@app.command("take")
def cli_take(user: str, book_uid: str, library_uid: str, till: str = typer.Argument(..., help="Return due date, YYYY-MM-DD")):
    """Take a book out of a library."""
    till_date = _parse_date(till, "till")
    result = _run(lambda o: o.take_book(user, book_uid, library_uid, till_date))
    print_take_result(result)


@app.command("return")
def cli_return(
    user: str,
    reservation_uid: str,
    condition: BookCondition = typer.Argument(..., case_sensitive=False, help="EXCELLENT | GOOD | BAD"),
    on: Optional[str] = typer.Option(None, "--date", help="Return date, YYYY-MM-DD (default: today)"),
):
    """Return a rented book and update the user's rating."""
    return_date = _parse_date(on, "--date") if on else date.today()
    _run(lambda o: o.return_book(reservation_uid, user, return_date, condition))
    print(f"Reservation {reservation_uid} returned.")


@app.command("serve")
def cli_serve(
    host: Optional[str] = typer.Option(None, "--host"),
    port: Optional[int] = typer.Option(None, "--port"),
    reload: bool = typer.Option(False, "--reload", help="Restart on code changes"),
):
    """Start the gateway HTTP API with uvicorn."""
    host = host or settings.api_host
    port = int(port or settings.api_port)
    print(f"Starting gateway on http://{host}:{port}/")
    args = [
        sys.executable,
        "-m", "uvicorn",
        "library_gateway.api:app",
        "--host", host,
        "--port", str(port),
        "--log-level", settings.log_level.lower(),
    ]
    if reload:
        args.append("--reload")
    try:
        subprocess.run(args)
    except KeyboardInterrupt:
        print("Gateway stopped.")


if __name__ == "__main__":
    app()
