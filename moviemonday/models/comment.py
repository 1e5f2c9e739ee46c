from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Text, UniqueConstraint, Index
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from moviemonday.database import Base

CONTENT_TYPES = ("movie", "watchlist", "moviemonday")
VOTE_TYPES = ("upvote", "downvote")
REPORT_REASONS = ("spam", "harassment", "inappropriate", "other")

DELETED_PLACEHOLDER = "[deleted]"


class CommentSection(Base):
    """
    Anchor for one comment thread.
    The owner is a (content_type, content_id) pair rather than a foreign key,
    so movies, watchlists and movie mondays share one table.
    """
    __tablename__ = "comment_sections"

    id = Column(Integer, primary_key=True, index=True)
    content_type = Column(String(20), nullable=False)
    content_id = Column(Integer, nullable=False)
    total_comments = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    comments = relationship("Comment", back_populates="section", cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint('content_type', 'content_id', name='unique_comment_section_content'),
    )


class Comment(Base):
    __tablename__ = "comments"

    id = Column(Integer, primary_key=True, index=True)
    comment_section_id = Column(
        Integer, ForeignKey('comment_sections.id', ondelete='CASCADE'), nullable=False, index=True
    )
    user_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    parent_comment_id = Column(Integer, ForeignKey('comments.id', ondelete='CASCADE'), nullable=True, index=True)
    content = Column(Text, nullable=False)
    upvotes = Column(Integer, default=0, nullable=False)
    downvotes = Column(Integer, default=0, nullable=False)
    vote_score = Column(Integer, default=0, nullable=False)
    reply_count = Column(Integer, default=0, nullable=False)
    depth = Column(Integer, default=0, nullable=False)
    is_deleted = Column(Boolean, default=False, nullable=False)
    is_edited = Column(Boolean, default=False, nullable=False)
    edited_at = Column(DateTime(timezone=True), nullable=True)
    is_hidden = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    section = relationship("CommentSection", back_populates="comments")
    author = relationship("User")
    parent = relationship("Comment", remote_side=[id], backref="replies")
    votes = relationship("CommentVote", back_populates="comment", cascade="all, delete-orphan")
    reports = relationship("CommentReport", back_populates="comment", cascade="all, delete-orphan")

    __table_args__ = (
        Index("ix_comments_section_parent", "comment_section_id", "parent_comment_id"),
    )

    def __repr__(self):
        return f"<Comment(id={self.id}, user_id={self.user_id}, depth={self.depth})>"


class CommentVote(Base):
    __tablename__ = "comment_votes"

    id = Column(Integer, primary_key=True, index=True)
    comment_id = Column(Integer, ForeignKey('comments.id', ondelete='CASCADE'), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    vote_type = Column(String(10), nullable=False)  # upvote | downvote
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    comment = relationship("Comment", back_populates="votes")

    __table_args__ = (
        UniqueConstraint('comment_id', 'user_id', name='unique_comment_vote'),
    )


class CommentReport(Base):
    __tablename__ = "comment_reports"

    id = Column(Integer, primary_key=True, index=True)
    comment_id = Column(Integer, ForeignKey('comments.id', ondelete='CASCADE'), nullable=False, index=True)
    reported_by_user_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    reason = Column(String(20), nullable=False)
    description = Column(Text, nullable=True)
    is_resolved = Column(Boolean, default=False, nullable=False)
    resolved_by_user_id = Column(Integer, ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    resolved_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    comment = relationship("Comment", back_populates="reports")

    __table_args__ = (
        UniqueConstraint('comment_id', 'reported_by_user_id', name='unique_comment_report'),
    )
