"""
Megaflix User Models
Account data plus the user's saved titles (My List)
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ..database import Base


# ==================== USER MODEL ====================

class User(Base):
    """Account used to sign in to the catalog front end"""
    __tablename__ = "users"

    # Primary Key
    id = Column(Integer, primary_key=True, index=True)

    # Authentication
    username = Column(String(100), unique=True, index=True, nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(500), nullable=False)

    # Status
    is_active = Column(Boolean, default=True, index=True)
    is_superuser = Column(Boolean, default=False, index=True)

    # Activity Tracking
    last_login = Column(DateTime(timezone=True), nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # ==================== RELATIONSHIPS ====================

    my_list = relationship("MyList", back_populates="user", cascade="all, delete-orphan")
    watch_history = relationship("WatchHistory", back_populates="user", cascade="all, delete-orphan")

    # ==================== METHODS ====================

    def __repr__(self):
        return f"<User(id={self.id}, username={self.username}, email={self.email})>"

    def is_admin(self, admin_emails=()) -> bool:
        """Check if user is admin, either flagged or listed in ADMIN_EMAILS"""
        return bool(self.is_superuser) or (self.email or "").lower() in admin_emails


# ==================== MY LIST ====================

class MyList(Base):
    """User's saved catalog titles"""
    __tablename__ = "my_list"
    __table_args__ = (
        UniqueConstraint("user_id", "tmdb_id", "item_type", name="uq_my_list_user_item"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    tmdb_id = Column(Integer, nullable=False, index=True)
    item_type = Column(String(10), nullable=False)  # movie | series
    title = Column(String(255), nullable=True)
    poster_path = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    user = relationship("User", back_populates="my_list")

    def __repr__(self):
        return f"<MyList(user_id={self.user_id}, tmdb_id={self.tmdb_id}, item_type={self.item_type})>"
