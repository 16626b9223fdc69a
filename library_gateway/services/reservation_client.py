import logging
from datetime import date
from typing import List, Optional

from library_gateway.exceptions import LimitExceededError, UpstreamError
from library_gateway.models import Reservation, ReservationStatus, status_to_wire
from library_gateway.services.http_client import ServiceHTTPClient

logger = logging.getLogger(__name__)

USER_HEADER = "X-User-Name"
IDEMPOTENCY_HEADER = "Idempotency-Key"


class ReservationServiceClient:
    """Client for the reservation store."""

    def __init__(self, http: ServiceHTTPClient):
        self.http = http

    async def get_reservations(
        self, user_name: str, status: Optional[ReservationStatus] = None
    ) -> List[Reservation]:
        params = {"status": status_to_wire(status)} if status is not None else None
        data = await self.http.get("/api/v1/reservations", headers={USER_HEADER: user_name}, params=params)
        if data is None:
            return []
        if not isinstance(data, list):
            raise UpstreamError(self.http.service, "expected a list of reservations")
        return [self._parse(item) for item in data]

    async def create_reservation(self, reservation: Reservation, max_rented: int) -> Reservation:
        """Create ``reservation`` unless the user already holds ``max_rented`` books.

        The reservation uid doubles as the idempotency key, so a replayed
        request cannot create a second record. The store answers 409 when
        the conditional limit check fails.
        """
        payload = reservation.to_dict()
        payload["maxRented"] = max_rented
        headers = {
            USER_HEADER: reservation.user_name,
            IDEMPOTENCY_HEADER: reservation.reservation_uid,
        }
        try:
            data = await self.http.post("/api/v1/reservations", headers=headers, json=payload)
        except UpstreamError as e:
            if e.status_code == 409:
                raise LimitExceededError(reservation.user_name, max_rented) from e
            raise
        return self._parse(data)

    async def update_reservation(self, reservation_uid: str, return_date: date) -> Reservation:
        data = await self.http.patch(
            f"/api/v1/reservations/{reservation_uid}",
            json={"date": return_date.isoformat()},
        )
        return self._parse(data)

    def _parse(self, data) -> Reservation:
        try:
            return Reservation.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Unexpected payload from reservation service: {data!r}")
            raise UpstreamError(self.http.service, f"malformed reservation payload: {e!r}") from e
