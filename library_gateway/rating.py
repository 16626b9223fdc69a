from library_gateway.models import Rating
from library_gateway.services.rating_client import RatingServiceClient


class RatingLookup:
    """Read-through access to a user's star rating."""

    def __init__(self, ratings: RatingServiceClient) -> None:
        self.ratings = ratings

    async def get_rating(self, user_name: str) -> Rating:
        return await self.ratings.get_rating(user_name)
