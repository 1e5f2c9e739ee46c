from sqlalchemy import (
    Column,
    Integer,
    String,
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Text,
    JSON,
    UniqueConstraint,
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from moviemonday.database import Base

MAX_SELECTIONS = 3

STATUS_PENDING = "pending"
STATUS_IN_PROGRESS = "in-progress"
STATUS_COMPLETED = "completed"


class MovieMonday(Base):
    """
    One scheduled movie night for a group.
    Status moves pending -> in-progress (third candidate added) -> completed (winner set).
    """
    __tablename__ = "movie_mondays"

    id = Column(Integer, primary_key=True, index=True)
    date = Column(Date, nullable=False, index=True)
    picker_user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    group_id = Column(Integer, ForeignKey("groups.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(20), default=STATUS_PENDING, nullable=False)
    is_public = Column(Boolean, default=False, nullable=False)
    slug = Column(String(150), unique=True, nullable=True)
    week_theme = Column(String(255), nullable=True)
    likes_count = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    group = relationship("Group", back_populates="movie_mondays")
    picker = relationship("User", foreign_keys=[picker_user_id])
    selections = relationship(
        "MovieSelection",
        back_populates="movie_monday",
        cascade="all, delete-orphan",
        order_by="MovieSelection.id",
    )
    event_details = relationship(
        "MovieMondayEventDetails",
        back_populates="movie_monday",
        uselist=False,
        cascade="all, delete-orphan",
    )
    likes = relationship("MovieMondayLike", back_populates="movie_monday", cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint("group_id", "date", name="unique_group_date_movie_monday"),
    )

    @property
    def winner(self):
        return next((s for s in self.selections if s.is_winner), None)

    def __repr__(self):
        return f"<MovieMonday(id={self.id}, group_id={self.group_id}, date={self.date}, status={self.status})>"


class MovieSelection(Base):
    """A candidate movie for a MovieMonday (at most three)."""
    __tablename__ = "movie_selections"

    id = Column(Integer, primary_key=True, index=True)
    movie_monday_id = Column(
        Integer, ForeignKey("movie_mondays.id", ondelete="CASCADE"), nullable=False, index=True
    )
    tmdb_movie_id = Column(Integer, nullable=False)
    title = Column(String(255), nullable=False)
    poster_path = Column(String(255), nullable=True)
    is_winner = Column(Boolean, default=False, nullable=False)
    genres = Column(JSON, default=list)
    release_year = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    movie_monday = relationship("MovieMonday", back_populates="selections")
    cast = relationship(
        "MovieCast", back_populates="selection", cascade="all, delete-orphan", order_by="MovieCast.order"
    )
    crew = relationship("MovieCrew", back_populates="selection", cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint("movie_monday_id", "tmdb_movie_id", name="unique_movie_monday_tmdb_movie"),
    )

    def __repr__(self):
        return f"<MovieSelection(id={self.id}, tmdb_movie_id={self.tmdb_movie_id}, is_winner={self.is_winner})>"


class MovieCast(Base):
    __tablename__ = "movie_cast"

    id = Column(Integer, primary_key=True, index=True)
    movie_selection_id = Column(
        Integer, ForeignKey("movie_selections.id", ondelete="CASCADE"), nullable=False, index=True
    )
    actor_id = Column(Integer, nullable=False)
    name = Column(String(255), nullable=False)
    character = Column(String(255), nullable=True)
    profile_path = Column(String(255), nullable=True)
    order = Column(Integer, nullable=True)

    selection = relationship("MovieSelection", back_populates="cast")


class MovieCrew(Base):
    __tablename__ = "movie_crew"

    id = Column(Integer, primary_key=True, index=True)
    movie_selection_id = Column(
        Integer, ForeignKey("movie_selections.id", ondelete="CASCADE"), nullable=False, index=True
    )
    person_id = Column(Integer, nullable=False)
    name = Column(String(255), nullable=False)
    job = Column(String(100), nullable=False)  # Director | Writer
    department = Column(String(100), nullable=True)
    profile_path = Column(String(255), nullable=True)

    selection = relationship("MovieSelection", back_populates="crew")


class MovieMondayEventDetails(Base):
    """Food and drinks for the night, one row per MovieMonday."""
    __tablename__ = "movie_monday_event_details"

    id = Column(Integer, primary_key=True, index=True)
    movie_monday_id = Column(
        Integer, ForeignKey("movie_mondays.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    meals = Column(JSON, default=list)
    cocktails = Column(JSON, default=list)
    desserts = Column(JSON, default=list)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    movie_monday = relationship("MovieMonday", back_populates="event_details")


class MovieMondayLike(Base):
    __tablename__ = "movie_monday_likes"

    id = Column(Integer, primary_key=True, index=True)
    movie_monday_id = Column(
        Integer, ForeignKey("movie_mondays.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    movie_monday = relationship("MovieMonday", back_populates="likes")

    __table_args__ = (
        UniqueConstraint("movie_monday_id", "user_id", name="unique_movie_monday_like"),
    )
