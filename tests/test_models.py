from datetime import date

import pytest

from library_gateway.models import (
    BookCondition,
    BookWithLibrary,
    CheckInResult,
    Reservation,
    ReservationStatus,
    condition_from_wire,
    condition_to_wire,
    status_from_wire,
    status_to_wire,
)


def test_status_tags_are_case_insensitive():
    assert status_from_wire("RENTED") == ReservationStatus.RENTED
    assert status_from_wire("Expired") == ReservationStatus.EXPIRED
    assert status_to_wire(ReservationStatus.RETURNED) == "RETURNED"


def test_unknown_tags_are_rejected():
    with pytest.raises(ValueError, match="Unknown reservation status"):
        status_from_wire("LOST")
    with pytest.raises(ValueError, match="Unknown book condition"):
        condition_from_wire("TORN")
    with pytest.raises(ValueError):
        condition_to_wire("GOOD")


def test_every_enum_member_is_mapped():
    for status in ReservationStatus:
        assert status_from_wire(status_to_wire(status)) is status
    for condition in BookCondition:
        assert condition_from_wire(condition_to_wire(condition)) is condition


def test_reservation_from_wire():
    reservation = Reservation.from_dict({
        "reservationUid": "e2f3c0b4-9a9f-4d6e-9c0a-0f3a1e6f1c11",
        "username": "Test Max",
        "bookUid": "f7cdc58f-2caf-4b15-9727-f89dcc629b27",
        "libraryUid": "83575e12-7ce0-48ee-9931-51919ff3c9ee",
        "status": "Rented",
        "startDate": "2024-03-01",
        "tillDate": "2024-03-15T00:00:00",
    })

    assert reservation.user_name == "Test Max"
    assert reservation.status == ReservationStatus.RENTED
    assert reservation.start_date == date(2024, 3, 1)
    assert reservation.till_date == date(2024, 3, 15)
    assert reservation.to_dict()["tillDate"] == "2024-03-15"


def test_book_with_library_and_check_in_from_wire():
    book = {
        "bookUid": "f7cdc58f-2caf-4b15-9727-f89dcc629b27",
        "name": "Краткий курс C++ в 7 томах",
        "author": "Бьерн Страуструп",
        "genre": "Научная фантастика",
        "condition": "EXCELLENT",
        "availableCount": 1,
    }
    library = {
        "libraryUid": "83575e12-7ce0-48ee-9931-51919ff3c9ee",
        "name": "Библиотека имени 7 Непьющих",
        "address": "2-я Бауманская ул., д.5, стр.1",
        "city": "Москва",
    }

    item = BookWithLibrary.from_dict({"libraryBook": book, "library": library})
    assert item.book.condition == BookCondition.EXCELLENT
    assert item.library.city == "Москва"

    same = CheckInResult.from_dict({"oldBook": book, "newBook": book})
    assert same.condition_changed is False
    changed = CheckInResult.from_dict({"oldBook": book, "newBook": {**book, "condition": "BAD"}})
    assert changed.condition_changed is True
