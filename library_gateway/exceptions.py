"""Error kinds raised by the gateway.

Collaborator clients translate transport and status failures into these
classes at the client boundary. The orchestrator lets them propagate and the
HTTP layer decides what the caller sees.
"""

from typing import Optional


class GatewayError(Exception):
    """Base class for every error the gateway raises on purpose."""


class NotFoundError(GatewayError):
    """A referenced entity does not exist upstream."""


class LimitExceededError(GatewayError):
    """The user already holds as many rented books as their rating allows."""

    def __init__(self, user_name: str, stars: int, rented: Optional[int] = None) -> None:
        self.user_name = user_name
        self.stars = stars
        self.rented = rented
        held = "limit reached" if rented is None else f"{rented} rented"
        super().__init__(
            f"Rented books limit exceeded for user {user_name}: {held}, current rating {stars}."
        )


class UpstreamUnavailableError(GatewayError):
    """A collaborator could not be reached (connection error or timeout)."""

    def __init__(self, service: str, message: str) -> None:
        self.service = service
        super().__init__(f"{service} service unavailable: {message}")


class UpstreamError(GatewayError):
    """A collaborator answered with an unexpected status or payload."""

    def __init__(self, service: str, message: str, status_code: Optional[int] = None) -> None:
        self.service = service
        self.status_code = status_code
        super().__init__(f"{service} service error: {message}")


class OrphanedReservationError(UpstreamError):
    """The reservation was created but the book copy could not be checked out.

    The reservation is left in place; ``reservation_uid`` names it so the
    caller (or an operator) can close it.
    """

    def __init__(self, reservation_uid: str, cause: Exception) -> None:
        self.reservation_uid = reservation_uid
        self.cause = cause
        super().__init__(
            "library",
            f"checkout failed after reservation {reservation_uid} was created: {cause}",
            getattr(cause, "status_code", None),
        )
