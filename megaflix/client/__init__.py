from megaflix.client.api import ApiError, MegaflixClient, SessionExpiredError
from megaflix.client.session import Session, SessionStore

__all__ = ["ApiError", "MegaflixClient", "Session", "SessionExpiredError", "SessionStore"]
