from megaflix.database import Base
from megaflix.models.user import User, MyList
from megaflix.models.watch_history import WatchHistory

# This ensures all models are registered with Base.metadata
__all__ = ["Base", "User", "MyList", "WatchHistory"]
