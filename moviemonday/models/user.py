from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from typing import List
from moviemonday.database import Base


class User(Base):
    """
    Application account.
    Users are never hard-deleted; group membership is loaded alongside the
    user by the auth dependency so the helpers below never hit the database.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(30), unique=True, index=True, nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    is_verified = Column(Boolean, default=False, nullable=False)
    verification_token = Column(String(255), index=True, nullable=True)
    verification_token_expires = Column(DateTime(timezone=True), nullable=True)
    password_reset_token = Column(String(64), index=True, nullable=True)  # sha256 hex
    password_reset_expires = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    groups = relationship("Group", secondary="group_members", back_populates="members")
    watchlist_categories = relationship(
        "WatchlistCategory", back_populates="user", cascade="all, delete-orphan"
    )
    watch_later = relationship("WatchLater", back_populates="user", cascade="all, delete-orphan")

    @property
    def group_ids(self) -> List[int]:
        return [group.id for group in self.groups]

    def is_in_group(self, group_id: int) -> bool:
        return any(group.id == group_id for group in self.groups)

    def is_group_owner(self, group_id: int) -> bool:
        return any(
            group.id == group_id and group.created_by_id == self.id
            for group in self.groups
        )

    def __repr__(self):
        return f"<User(id={self.id}, username={self.username})>"
