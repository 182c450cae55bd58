from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from ..database import Base


class WatchHistory(Base):
    """One progress row per watched movie or series episode"""
    __tablename__ = "watch_history"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # External catalog subject
    tmdb_id = Column(Integer, nullable=False, index=True)
    item_type = Column(String(10), nullable=False)  # movie | series

    # Denormalized display fields
    title = Column(String(255), nullable=True)
    poster_path = Column(String(500), nullable=True)

    progress = Column(Integer, default=0, nullable=False)
    season_number = Column(Integer, nullable=True)
    episode_number = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="watch_history", foreign_keys=[user_id])

    def __repr__(self):
        return (
            f"<WatchHistory(user_id={self.user_id}, tmdb_id={self.tmdb_id}, "
            f"S{self.season_number}E{self.episode_number}, progress={self.progress})>"
        )
