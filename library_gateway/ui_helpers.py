import json
import os
from typing import Any, Dict, List

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from library_gateway.models import BookReservation, Rating, TakeBookResult

# Environment variable controlling CLI output: 'plain' (default), 'json', 'rich'
OUTPUT_MODE_ENV = "LIB_CLI_OUTPUT"

_console = Console()


def set_output_mode(mode: str) -> None:
    mode = (mode or "").lower().strip()
    if mode in {"plain", "json", "rich"}:
        os.environ[OUTPUT_MODE_ENV] = mode


def get_output_mode() -> str:
    return os.environ.get(OUTPUT_MODE_ENV, "plain").lower()


def _reservation_row(item: BookReservation) -> Dict[str, Any]:
    r = item.reservation
    return {
        "reservationUid": r.reservation_uid,
        "status": r.status.value,
        "startDate": r.start_date.isoformat(),
        "tillDate": r.till_date.isoformat(),
        "book": item.book.name,
        "author": item.book.author,
        "library": item.library.name,
    }


def print_rating(user_name: str, rating: Rating) -> None:
    mode = get_output_mode()
    if mode == "json":
        print(json.dumps({"user": user_name, "stars": rating.stars}, ensure_ascii=False))
    elif mode == "rich":
        _console.print(Panel.fit(f"[bold]Stars:[/] {rating.stars}", title=f"Rating of {user_name}", border_style="blue"))
    else:
        print(f"Rating of {user_name}: {rating.stars} stars")


def print_reservations(items: List[BookReservation]) -> None:
    """Print reservations according to the current output mode.
    - plain: 'uid [STATUS] Book by Author @ Library (start -> till)' lines, or 'No reservations.'
    - json: JSON array
    - rich: Rich table
    """
    mode = get_output_mode()

    if not items:
        print("No reservations.")
        return

    rows = [_reservation_row(item) for item in items]
    if mode == "json":
        print(json.dumps(rows, ensure_ascii=False))
    elif mode == "rich":
        table = Table(title="Reservations", show_lines=True, header_style="bold cyan")
        table.add_column("Reservation", style="magenta", no_wrap=True)
        table.add_column("Status")
        table.add_column("Book")
        table.add_column("Library")
        table.add_column("Period")
        for row in rows:
            table.add_row(
                row["reservationUid"],
                row["status"],
                f"{row['book']} - {row['author']}",
                row["library"],
                f"{row['startDate']} -> {row['tillDate']}",
            )
        _console.print(table)
    else:
        for row in rows:
            print(
                f"{row['reservationUid']} [{row['status']}] {row['book']} by {row['author']} "
                f"@ {row['library']} ({row['startDate']} -> {row['tillDate']})"
            )


def print_take_result(result: TakeBookResult) -> None:
    mode = get_output_mode()
    row = _reservation_row(BookReservation(result.reservation, result.book, result.library))
    if mode == "json":
        row["stars"] = result.rating.stars
        print(json.dumps(row, ensure_ascii=False))
    elif mode == "rich":
        content = (
            f"[bold]Book:[/] {row['book']} - {row['author']}\n"
            f"[bold]Library:[/] {row['library']}\n"
            f"[bold]Until:[/] {row['tillDate']}\n"
            f"[bold]Rating:[/] {result.rating.stars}"
        )
        _console.print(Panel.fit(content, title=f"Reservation {row['reservationUid']}", border_style="green"))
    else:
        print(f"Reserved: {row['book']} by {row['author']} until {row['tillDate']}")
        print(f"Reservation: {row['reservationUid']}")
