"""Reservation workflow: taking out a book, returning it, listing rentals.

Each use case is a short chain of dependent calls to the library, rating and
reservation services. Nothing here is transactional across services: a
failure midway leaves earlier side effects in place.
"""

import logging
import uuid
from datetime import date
from typing import Callable, Dict, List, Optional, Tuple

from library_gateway.exceptions import LimitExceededError, OrphanedReservationError
from library_gateway.models import (
    BookCondition,
    BookReservation,
    BookWithLibrary,
    CheckInResult,
    Rating,
    Reservation,
    ReservationStatus,
    TakeBookResult,
)
from library_gateway.rating import RatingLookup
from library_gateway.services.http_client import get_http_client
from library_gateway.services.library_client import LibraryServiceClient
from library_gateway.services.rating_client import RatingServiceClient
from library_gateway.services.reservation_client import ReservationServiceClient

logger = logging.getLogger(__name__)

CONDITION_PENALTY = 10
EXPIRED_PENALTY = 10
RETURN_BONUS = 1


def calculate_penalty(check_in: CheckInResult, reservation: Reservation) -> int:
    """Rating points lost on return: 10 per violation, summed, no cap."""
    penalty = 0
    if check_in.condition_changed:
        penalty += CONDITION_PENALTY
    if reservation.status == ReservationStatus.EXPIRED:
        penalty += EXPIRED_PENALTY
    return penalty


def next_stars(stars: int, penalty: int) -> int:
    # No floor: a heavily penalised user can go negative
    if penalty == 0:
        return stars + RETURN_BONUS
    return stars - penalty


class ReservationOrchestrator:
    """Coordinates the collaborator services for the reservation use cases."""

    def __init__(
        self,
        library: LibraryServiceClient,
        ratings: RatingServiceClient,
        reservations: ReservationServiceClient,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.library = library
        self.ratings = ratings
        self.reservations = reservations
        self.rating_lookup = RatingLookup(ratings)
        self._today = today

    # ------------------------- Take ------------------------- #
    async def take_book(self, user_name: str, book_uid: str, library_uid: str, till_date: date) -> TakeBookResult:
        """Rent a book copy for ``user_name`` until ``till_date``.

        Raises ``NotFoundError`` when the book is not in that library and
        ``LimitExceededError`` when the user already rents as many books as
        their rating allows; in both cases nothing is created or checked out.
        """
        book_with_library = await self.library.get_book(library_uid, book_uid)
        rented = await self.reservations.get_reservations(user_name, ReservationStatus.RENTED)
        rating = await self.rating_lookup.get_rating(user_name)

        if len(rented) >= rating.stars:
            raise LimitExceededError(user_name, rating.stars, len(rented))

        reservation = await self.reservations.create_reservation(
            Reservation(
                reservation_uid=str(uuid.uuid4()),
                user_name=user_name,
                book_uid=book_uid,
                library_uid=library_uid,
                status=ReservationStatus.RENTED,
                start_date=self._today(),
                till_date=till_date,
            ),
            max_rented=rating.stars,
        )
        logger.info(f"Reservation {reservation.reservation_uid} created for {user_name} (book {book_uid})")

        try:
            book = await self.library.check_out(library_uid, book_uid)
        except Exception as e:
            logger.error(
                f"Checkout of book {book_uid} in library {library_uid} failed; "
                f"reservation {reservation.reservation_uid} is left orphaned"
            )
            raise OrphanedReservationError(reservation.reservation_uid, e) from e

        return TakeBookResult(
            reservation=reservation,
            book=book,
            library=book_with_library.library,
            rating=rating,
        )

    # ------------------------- Return ------------------------- #
    async def return_book(
        self,
        reservation_uid: str,
        user_name: str,
        return_date: date,
        condition: BookCondition,
    ) -> None:
        """Close a reservation, check the copy back in and adjust the rating."""
        closed = await self.reservations.update_reservation(reservation_uid, return_date)
        check_in = await self.library.check_in(closed.library_uid, closed.book_uid, condition)

        penalty = calculate_penalty(check_in, closed)
        rating = await self.rating_lookup.get_rating(user_name)
        stars = next_stars(rating.stars, penalty)

        await self.ratings.update_rating(user_name, stars)
        logger.info(
            f"Reservation {reservation_uid} closed as {closed.status.value}; "
            f"penalty {penalty}, rating {rating.stars} -> {stars} for {user_name}"
        )

    # ------------------------- List ------------------------- #
    async def get_reservations(self, user_name: str) -> List[BookReservation]:
        reservations = await self.reservations.get_reservations(user_name)
        if not reservations:
            return []

        book_uids = list(dict.fromkeys(r.book_uid for r in reservations))
        # A book uid may be stocked by several libraries; the first entry wins
        by_pair: Dict[Tuple[str, str], BookWithLibrary] = {}
        by_book: Dict[str, BookWithLibrary] = {}
        for item in await self.library.get_books_by_ids(book_uids):
            by_pair.setdefault((item.library.library_uid, item.book.book_uid), item)
            by_book.setdefault(item.book.book_uid, item)

        result: List[BookReservation] = []
        for reservation in reservations:
            found: Optional[BookWithLibrary] = by_pair.get(
                (reservation.library_uid, reservation.book_uid)
            ) or by_book.get(reservation.book_uid)
            if found is None:
                logger.warning(
                    f"Reservation {reservation.reservation_uid} references book "
                    f"{reservation.book_uid} unknown to the library service; skipping"
                )
                continue
            result.append(BookReservation(reservation=reservation, book=found.book, library=found.library))
        return result

    async def get_rating(self, user_name: str) -> Rating:
        return await self.rating_lookup.get_rating(user_name)


async def build_orchestrator() -> ReservationOrchestrator:
    """Wire an orchestrator to the shared per-service HTTP clients."""
    return ReservationOrchestrator(
        library=LibraryServiceClient(await get_http_client("library")),
        ratings=RatingServiceClient(await get_http_client("rating")),
        reservations=ReservationServiceClient(await get_http_client("reservation")),
    )
