from library_gateway.exceptions import UpstreamError
from library_gateway.models import Rating
from library_gateway.services.http_client import ServiceHTTPClient

USER_HEADER = "X-User-Name"


class RatingServiceClient:
    """Client for the user rating service."""

    def __init__(self, http: ServiceHTTPClient):
        self.http = http

    async def get_rating(self, user_name: str) -> Rating:
        data = await self.http.get("/api/v1/rating", headers={USER_HEADER: user_name})
        try:
            return Rating.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            raise UpstreamError(self.http.service, f"malformed rating payload: {e!r}") from e

    async def update_rating(self, user_name: str, stars: int) -> None:
        await self.http.put("/api/v1/rating", headers={USER_HEADER: user_name}, json={"stars": stars})
