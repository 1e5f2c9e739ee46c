from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Text, Float, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from moviemonday.database import Base

DEFAULT_CATEGORY_NAME = "My Watchlist"


class WatchLater(Base):
    """
    Legacy flat "watch later" list, one row per user per movie.
    Kept alongside categories because winners are still flagged here.
    """
    __tablename__ = "watch_later"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    tmdb_movie_id = Column(Integer, nullable=False)
    title = Column(String(255), nullable=False)
    poster_path = Column(String(255), nullable=True)
    watched = Column(Boolean, default=False, nullable=False)
    is_winner = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    user = relationship("User", back_populates="watch_later")

    # Ensure one entry per user per movie
    __table_args__ = (
        UniqueConstraint('user_id', 'tmdb_movie_id', name='unique_user_movie_watch_later'),
    )

    def __repr__(self):
        return f"<WatchLater(user_id={self.user_id}, tmdb_movie_id={self.tmdb_movie_id}, watched={self.watched})>"


class WatchlistCategory(Base):
    """
    Named, orderable list of movies owned by a user (e.g. "My Watchlist", "Sci-Fi Collection").
    likes_count always equals the number of WatchlistLike rows for the category.
    """
    __tablename__ = "watchlist_categories"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    is_public = Column(Boolean, default=False, nullable=False)
    slug = Column(String(200), unique=True, nullable=True)
    likes_count = Column(Integer, default=0, nullable=False)
    cover_image_path = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    user = relationship("User", back_populates="watchlist_categories")
    items = relationship(
        "WatchlistItem",
        back_populates="category",
        cascade="all, delete-orphan",
        order_by="WatchlistItem.sort_order",
    )
    likes = relationship("WatchlistLike", back_populates="category", cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint('user_id', 'name', name='unique_user_category_name'),
    )

    def __repr__(self):
        return f"<WatchlistCategory(id={self.id}, name={self.name}, user_id={self.user_id})>"


class WatchlistItem(Base):
    """A movie inside a watchlist category."""
    __tablename__ = "watchlist_items"

    id = Column(Integer, primary_key=True, index=True)
    category_id = Column(
        Integer, ForeignKey('watchlist_categories.id', ondelete='CASCADE'), nullable=False, index=True
    )
    tmdb_movie_id = Column(Integer, nullable=False, index=True)
    title = Column(String(255), nullable=False)
    poster_path = Column(String(255), nullable=True)
    sort_order = Column(Integer, default=0, nullable=False)
    added_at = Column(DateTime(timezone=True), server_default=func.now())
    user_note = Column(Text, nullable=True)
    user_rating = Column(Float, nullable=True)
    watched = Column(Boolean, default=False, nullable=False)
    watched_date = Column(DateTime(timezone=True), nullable=True)
    is_winner = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationship
    category = relationship("WatchlistCategory", back_populates="items")

    __table_args__ = (
        UniqueConstraint('category_id', 'tmdb_movie_id', name='unique_category_movie'),
    )

    def __repr__(self):
        return f"<WatchlistItem(category_id={self.category_id}, tmdb_movie_id={self.tmdb_movie_id})>"


class WatchlistLike(Base):
    __tablename__ = "watchlist_likes"

    id = Column(Integer, primary_key=True, index=True)
    watchlist_category_id = Column(
        Integer, ForeignKey('watchlist_categories.id', ondelete='CASCADE'), nullable=False, index=True
    )
    user_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    category = relationship("WatchlistCategory", back_populates="likes")
    user = relationship("User")

    __table_args__ = (
        UniqueConstraint('watchlist_category_id', 'user_id', name='unique_watchlist_like'),
    )
