from dataclasses import replace
from datetime import date
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from library_gateway.exceptions import NotFoundError
from library_gateway.models import (
    Book,
    BookCondition,
    BookWithLibrary,
    CheckInResult,
    Library,
    Rating,
    Reservation,
    ReservationStatus,
)
from library_gateway.reservations import ReservationOrchestrator

TODAY = date(2024, 3, 1)
USER = "Test Max"


def make_book(book_uid="f7cdc58f-2caf-4b15-9727-f89dcc629b27", condition=BookCondition.EXCELLENT, available=1):
    return Book(
        book_uid=book_uid,
        name="Краткий курс C++ в 7 томах",
        author="Бьерн Страуструп",
        genre="Научная фантастика",
        condition=condition,
        available_count=available,
    )


def make_library(library_uid="83575e12-7ce0-48ee-9931-51919ff3c9ee"):
    return Library(
        library_uid=library_uid,
        name="Библиотека имени 7 Непьющих",
        address="2-я Бауманская ул., д.5, стр.1",
        city="Москва",
    )


def make_reservation(
    reservation_uid="res-1",
    user_name=USER,
    book_uid="f7cdc58f-2caf-4b15-9727-f89dcc629b27",
    library_uid="83575e12-7ce0-48ee-9931-51919ff3c9ee",
    status=ReservationStatus.RENTED,
    start_date=TODAY,
    till_date=date(2024, 3, 15),
):
    return Reservation(
        reservation_uid=reservation_uid,
        user_name=user_name,
        book_uid=book_uid,
        library_uid=library_uid,
        status=status,
        start_date=start_date,
        till_date=till_date,
    )


class FakeLibraryClient:
    """In-memory library service recording every call."""

    def __init__(self):
        self.books = {}
        self.calls = []
        self.checkout_error = None

    def add(self, book, library):
        self.books[(library.library_uid, book.book_uid)] = BookWithLibrary(book=book, library=library)

    def _find(self, library_uid, book_uid):
        try:
            return self.books[(library_uid, book_uid)]
        except KeyError:
            raise NotFoundError(f"book {book_uid} not found in library {library_uid}") from None

    async def get_book(self, library_uid, book_uid):
        self.calls.append(("get_book", library_uid, book_uid))
        return self._find(library_uid, book_uid)

    async def check_out(self, library_uid, book_uid):
        self.calls.append(("check_out", library_uid, book_uid))
        if self.checkout_error is not None:
            raise self.checkout_error
        item = self._find(library_uid, book_uid)
        item.book.available_count -= 1
        return replace(item.book)

    async def check_in(self, library_uid, book_uid, condition):
        self.calls.append(("check_in", library_uid, book_uid, condition))
        item = self._find(library_uid, book_uid)
        old = replace(item.book)
        item.book.condition = condition
        item.book.available_count += 1
        return CheckInResult(old_book=old, new_book=replace(item.book))

    async def get_books_by_ids(self, book_uids):
        uids = list(book_uids)
        self.calls.append(("get_books_by_ids", uids))
        return [item for (_, uid), item in self.books.items() if uid in uids]

    def called(self, name):
        return [c for c in self.calls if c[0] == name]


class FakeRatingClient:
    def __init__(self):
        self.stars = {}
        self.updates = []

    async def get_rating(self, user_name):
        return Rating(stars=self.stars.get(user_name, 1))

    async def update_rating(self, user_name, stars):
        self.updates.append((user_name, stars))
        self.stars[user_name] = stars


class FakeReservationClient:
    """In-memory reservation store; closes as EXPIRED when returned after the till date."""

    def __init__(self):
        self.reservations = []
        self.created = []

    async def get_reservations(self, user_name, status=None):
        return [
            r for r in self.reservations
            if r.user_name == user_name and (status is None or r.status == status)
        ]

    async def create_reservation(self, reservation, max_rented):
        self.created.append((reservation, max_rented))
        self.reservations.append(reservation)
        return replace(reservation)

    async def update_reservation(self, reservation_uid, return_date):
        for r in self.reservations:
            if r.reservation_uid == reservation_uid:
                r.status = ReservationStatus.EXPIRED if return_date > r.till_date else ReservationStatus.RETURNED
                return replace(r)
        raise NotFoundError(f"reservation {reservation_uid} not found")

    def rented(self, user_name):
        return [r for r in self.reservations if r.user_name == user_name and r.status == ReservationStatus.RENTED]


@pytest.fixture
def world():
    """Fake collaborators plus the builders tests use to populate them."""
    return SimpleNamespace(
        library=FakeLibraryClient(),
        ratings=FakeRatingClient(),
        reservations=FakeReservationClient(),
        book=make_book,
        library_record=make_library,
        reservation=make_reservation,
        user=USER,
        today=TODAY,
    )


@pytest.fixture
def orchestrator(world):
    return ReservationOrchestrator(
        library=world.library,
        ratings=world.ratings,
        reservations=world.reservations,
        today=lambda: TODAY,
    )


@pytest.fixture
def client(orchestrator):
    from library_gateway.api import app, get_orchestrator

    async def override():
        return orchestrator

    app.dependency_overrides[get_orchestrator] = override
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
