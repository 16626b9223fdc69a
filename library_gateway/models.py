"""Domain types shared by the collaborator clients, the orchestrator and the API.

Collaborators speak camelCase JSON; ``from_dict``/``to_dict`` convert between
that wire shape and these dataclasses. Enum tags go through explicit mapping
tables so an unknown tag fails loudly instead of slipping through.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Dict, Optional


class ReservationStatus(Enum):
    RENTED = "RENTED"
    RETURNED = "RETURNED"
    EXPIRED = "EXPIRED"


class BookCondition(Enum):
    EXCELLENT = "EXCELLENT"
    GOOD = "GOOD"
    BAD = "BAD"


_STATUS_FROM_WIRE: Dict[str, ReservationStatus] = {
    "RENTED": ReservationStatus.RENTED,
    "RETURNED": ReservationStatus.RETURNED,
    "EXPIRED": ReservationStatus.EXPIRED,
}
_STATUS_TO_WIRE: Dict[ReservationStatus, str] = {v: k for k, v in _STATUS_FROM_WIRE.items()}

_CONDITION_FROM_WIRE: Dict[str, BookCondition] = {
    "EXCELLENT": BookCondition.EXCELLENT,
    "GOOD": BookCondition.GOOD,
    "BAD": BookCondition.BAD,
}
_CONDITION_TO_WIRE: Dict[BookCondition, str] = {v: k for k, v in _CONDITION_FROM_WIRE.items()}


def status_from_wire(tag: str) -> ReservationStatus:
    # Collaborators built on .NET may send "Rented" instead of "RENTED"
    try:
        return _STATUS_FROM_WIRE[str(tag).upper()]
    except KeyError:
        raise ValueError(f"Unknown reservation status: {tag!r}") from None


def status_to_wire(status: ReservationStatus) -> str:
    try:
        return _STATUS_TO_WIRE[status]
    except KeyError:
        raise ValueError(f"Unmapped reservation status: {status!r}") from None


def condition_from_wire(tag: str) -> BookCondition:
    try:
        return _CONDITION_FROM_WIRE[str(tag).upper()]
    except KeyError:
        raise ValueError(f"Unknown book condition: {tag!r}") from None


def condition_to_wire(condition: BookCondition) -> str:
    try:
        return _CONDITION_TO_WIRE[condition]
    except KeyError:
        raise ValueError(f"Unmapped book condition: {condition!r}") from None


def _parse_date(value: Any) -> date:
    if isinstance(value, date):
        return value
    # Tolerate full timestamps, only the date part matters
    return date.fromisoformat(str(value)[:10])


@dataclass
class Book:
    """A single book copy as the library service sees it."""

    book_uid: str
    name: str
    author: str
    genre: str
    condition: BookCondition
    available_count: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bookUid": self.book_uid,
            "name": self.name,
            "author": self.author,
            "genre": self.genre,
            "condition": condition_to_wire(self.condition),
            "availableCount": self.available_count,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Book":
        return Book(
            book_uid=str(data["bookUid"]),
            name=data.get("name", ""),
            author=data.get("author", ""),
            genre=data.get("genre", ""),
            condition=condition_from_wire(data["condition"]),
            available_count=data.get("availableCount"),
        )


@dataclass
class Library:
    library_uid: str
    name: str
    address: str
    city: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "libraryUid": self.library_uid,
            "name": self.name,
            "address": self.address,
            "city": self.city,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Library":
        return Library(
            library_uid=str(data["libraryUid"]),
            name=data.get("name", ""),
            address=data.get("address", ""),
            city=data.get("city", ""),
        )


@dataclass
class BookWithLibrary:
    book: Book
    library: Library

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "BookWithLibrary":
        return BookWithLibrary(
            book=Book.from_dict(data["libraryBook"]),
            library=Library.from_dict(data["library"]),
        )


@dataclass
class CheckInResult:
    """Book state before and after a check-in."""

    old_book: Book
    new_book: Book

    @property
    def condition_changed(self) -> bool:
        return self.old_book.condition != self.new_book.condition

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "CheckInResult":
        return CheckInResult(
            old_book=Book.from_dict(data["oldBook"]),
            new_book=Book.from_dict(data["newBook"]),
        )


@dataclass
class Rating:
    stars: int

    def to_dict(self) -> Dict[str, Any]:
        return {"stars": self.stars}

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Rating":
        return Rating(stars=int(data["stars"]))


@dataclass
class Reservation:
    reservation_uid: str
    user_name: str
    book_uid: str
    library_uid: str
    status: ReservationStatus
    start_date: date
    till_date: date

    def to_dict(self) -> Dict[str, Any]:
        return {
            "reservationUid": self.reservation_uid,
            "username": self.user_name,
            "bookUid": self.book_uid,
            "libraryUid": self.library_uid,
            "status": status_to_wire(self.status),
            "startDate": self.start_date.isoformat(),
            "tillDate": self.till_date.isoformat(),
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Reservation":
        return Reservation(
            reservation_uid=str(data["reservationUid"]),
            user_name=data.get("username") or data.get("userName", ""),
            book_uid=str(data["bookUid"]),
            library_uid=str(data["libraryUid"]),
            status=status_from_wire(data["status"]),
            start_date=_parse_date(data["startDate"]),
            till_date=_parse_date(data["tillDate"]),
        )


@dataclass
class TakeBookResult:
    reservation: Reservation
    book: Book
    library: Library
    rating: Rating


@dataclass
class BookReservation:
    reservation: Reservation
    book: Book
    library: Library
