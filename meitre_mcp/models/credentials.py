from pydantic import BaseModel


class Credentials(BaseModel):
    """Account credentials supplied with every inbound request. Never persisted."""

    username: str
    password: str
    restaurant: str | None = None

    @property
    def cache_key(self) -> str:
        # Tokens are account-level, so the restaurant does not partition the cache.
        return self.username
