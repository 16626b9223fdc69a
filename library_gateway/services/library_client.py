import logging
from typing import Iterable, List

from library_gateway.exceptions import UpstreamError
from library_gateway.models import Book, BookCondition, BookWithLibrary, CheckInResult, condition_to_wire
from library_gateway.services.http_client import ServiceHTTPClient

logger = logging.getLogger(__name__)


class LibraryServiceClient:
    """Client for the library catalog service."""

    def __init__(self, http: ServiceHTTPClient):
        self.http = http

    async def get_book(self, library_uid: str, book_uid: str) -> BookWithLibrary:
        data = await self.http.get(f"/api/v1/libraries/{library_uid}/books/{book_uid}")
        return self._parse(BookWithLibrary.from_dict, data)

    async def check_out(self, library_uid: str, book_uid: str) -> Book:
        data = await self.http.post(f"/api/v1/libraries/{library_uid}/books/{book_uid}/checkout")
        return self._parse(Book.from_dict, data)

    async def check_in(self, library_uid: str, book_uid: str, condition: BookCondition) -> CheckInResult:
        data = await self.http.post(
            f"/api/v1/libraries/{library_uid}/books/{book_uid}/checkin",
            json={"condition": condition_to_wire(condition)},
        )
        return self._parse(CheckInResult.from_dict, data)

    async def get_books_by_ids(self, book_uids: Iterable[str]) -> List[BookWithLibrary]:
        ids = ",".join(book_uids)
        data = await self.http.get("/api/v1/books", params={"ids": ids})
        if not isinstance(data, list):
            raise UpstreamError(self.http.service, "expected a list of books")
        return [self._parse(BookWithLibrary.from_dict, item) for item in data]

    def _parse(self, parser, data):
        try:
            return parser(data)
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Unexpected payload from library service: {data!r}")
            raise UpstreamError(self.http.service, f"malformed payload: {e!r}") from e
