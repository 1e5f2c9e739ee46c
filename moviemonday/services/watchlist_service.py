from sqlalchemy.orm import Session, joinedload, selectinload
from sqlalchemy import delete, func, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from fastapi import HTTPException, status
from typing import Dict, Iterable, List, Optional, Tuple
import logging

from moviemonday.models.user import User
from moviemonday.models.watchlist import (
    DEFAULT_CATEGORY_NAME,
    WatchlistCategory,
    WatchlistItem,
    WatchlistLike,
)
from moviemonday.schemas.watchlist import (
    CategoryCreate,
    CategoryUpdate,
    CopyMovieRequest,
    ItemCreate,
    ItemUpdate,
    MultiAddRequest,
    QuickAddRequest,
    ReorderRequest,
)
from moviemonday.utils.slugs import category_slug

logger = logging.getLogger(__name__)

PREVIEW_SIZE = 4
FEATURED_LIMIT = 10


class WatchlistService:
    """Service for watchlist categories, their items and likes"""

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #
    @staticmethod
    def _movie_counts(db: Session, category_ids: Iterable[int]) -> Dict[int, int]:
        ids = list(category_ids)
        if not ids:
            return {}
        rows = (
            db.query(WatchlistItem.category_id, func.count(WatchlistItem.id))
            .filter(WatchlistItem.category_id.in_(ids))
            .group_by(WatchlistItem.category_id)
            .all()
        )
        return dict(rows)

    @classmethod
    def _summaries(
        cls,
        db: Session,
        categories: List[WatchlistCategory],
        include_items: bool = True,
        include_owner: bool = False,
    ) -> List[dict]:
        """Category rows plus moviesCount and up to four preview items."""
        counts = cls._movie_counts(db, (c.id for c in categories))
        result = []
        for category in categories:
            data = {
                "id": category.id,
                "user_id": category.user_id,
                "name": category.name,
                "description": category.description,
                "is_public": category.is_public,
                "slug": category.slug,
                "likes_count": category.likes_count,
                "cover_image_path": category.cover_image_path,
                "created_at": category.created_at,
                "updated_at": category.updated_at,
                "movies_count": counts.get(category.id, 0),
                "items": category.items[:PREVIEW_SIZE] if include_items else None,
            }
            if include_owner:
                data["owner"] = category.user
            result.append(data)
        return result

    @staticmethod
    def _get_owned_category(db: Session, user: User, category_id: int) -> WatchlistCategory:
        category = db.query(WatchlistCategory).filter(
            WatchlistCategory.id == category_id,
            WatchlistCategory.user_id == user.id,
        ).first()
        if not category:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Watchlist category not found"
            )
        return category

    @staticmethod
    def _get_owned_item(db: Session, user: User, category_id: int, item_id: int) -> WatchlistItem:
        item = (
            db.query(WatchlistItem)
            .join(WatchlistCategory, WatchlistCategory.id == WatchlistItem.category_id)
            .filter(
                WatchlistItem.id == item_id,
                WatchlistItem.category_id == category_id,
                WatchlistCategory.user_id == user.id,
            )
            .first()
        )
        if not item:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Watchlist item not found or not authorized"
            )
        return item

    @staticmethod
    def _next_sort_order(db: Session, category_id: int) -> int:
        current = db.query(func.max(WatchlistItem.sort_order)).filter(
            WatchlistItem.category_id == category_id
        ).scalar()
        return (current or 0) + 1

    @staticmethod
    def _name_taken(db: Session, user: User, name: str, exclude_id: Optional[int] = None) -> bool:
        query = db.query(WatchlistCategory.id).filter(
            WatchlistCategory.user_id == user.id,
            WatchlistCategory.name == name,
        )
        if exclude_id is not None:
            query = query.filter(WatchlistCategory.id != exclude_id)
        return query.first() is not None

    # ------------------------------------------------------------------ #
    # Categories
    # ------------------------------------------------------------------ #
    @classmethod
    def list_categories(cls, db: Session, user: User, include_items: bool = False) -> List[dict]:
        """Get the caller's categories, newest first"""
        categories = (
            db.query(WatchlistCategory)
            .options(selectinload(WatchlistCategory.items))
            .filter(WatchlistCategory.user_id == user.id)
            .order_by(WatchlistCategory.created_at.desc(), WatchlistCategory.id.desc())
            .all()
        )
        return cls._summaries(db, categories, include_items=include_items)

    @classmethod
    def create_category(cls, db: Session, user: User, data: CategoryCreate) -> dict:
        """Create a category; names are unique per user"""
        if cls._name_taken(db, user, data.name):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="You already have a watchlist with this name"
            )

        category = WatchlistCategory(
            user_id=user.id,
            name=data.name,
            description=data.description or "",
            is_public=data.is_public,
            cover_image_path=data.cover_image_path,
            slug=category_slug(db, WatchlistCategory, data.name, user.id),
        )
        db.add(category)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="You already have a watchlist with this name"
            )
        db.refresh(category)
        return cls._summaries(db, [category], include_items=False)[0]

    @classmethod
    def update_category(cls, db: Session, user: User, category_id: int, data: CategoryUpdate) -> dict:
        """Update provided fields; renaming regenerates the slug"""
        category = cls._get_owned_category(db, user, category_id)

        if category.name == DEFAULT_CATEGORY_NAME and data.name and data.name != category.name:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="The default watchlist cannot be renamed"
            )
        if data.name and data.name != category.name:
            if cls._name_taken(db, user, data.name, exclude_id=category.id):
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail="You already have a watchlist with this name"
                )
            category.name = data.name
            category.slug = category_slug(db, WatchlistCategory, data.name, user.id, exclude_id=category.id)

        if data.description is not None:
            category.description = data.description
        if data.is_public is not None:
            category.is_public = data.is_public
        if data.cover_image_path is not None:
            category.cover_image_path = data.cover_image_path

        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="You already have a watchlist with this name"
            )
        db.refresh(category)
        return cls._summaries(db, [category], include_items=False)[0]

    @classmethod
    def delete_category(cls, db: Session, user: User, category_id: int) -> None:
        """Delete a category; the default watchlist and a user's only category stay"""
        category = cls._get_owned_category(db, user, category_id)
        if category.name == DEFAULT_CATEGORY_NAME:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cannot delete the default watchlist"
            )
        remaining = db.query(func.count(WatchlistCategory.id)).filter(
            WatchlistCategory.user_id == user.id
        ).scalar()
        if remaining <= 1:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cannot delete the only watchlist category"
            )
        db.delete(category)
        db.commit()

    @classmethod
    def get_category(cls, db: Session, identifier: str, viewer: Optional[User] = None) -> dict:
        """
        Get a category with all of its items by numeric id or slug.
        Private categories are visible to their owner only.
        """
        query = db.query(WatchlistCategory).options(
            selectinload(WatchlistCategory.items),
            joinedload(WatchlistCategory.user),
        )
        if identifier.isdigit():
            query = query.filter(WatchlistCategory.id == int(identifier))
        else:
            query = query.filter(WatchlistCategory.slug == identifier)
        category = query.first()

        if not category:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Watchlist category not found"
            )
        if not category.is_public and (viewer is None or viewer.id != category.user_id):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="This watchlist is private"
            )

        user_has_liked = False
        if viewer is not None:
            user_has_liked = db.query(WatchlistLike.id).filter(
                WatchlistLike.watchlist_category_id == category.id,
                WatchlistLike.user_id == viewer.id,
            ).first() is not None

        data = cls._summaries(db, [category], include_items=False, include_owner=True)[0]
        data["items"] = sorted(
            category.items,
            key=lambda item: (item.sort_order, -(item.added_at.timestamp() if item.added_at else 0)),
        )
        data["user_has_liked"] = user_has_liked
        return data

    # ------------------------------------------------------------------ #
    # Items
    # ------------------------------------------------------------------ #
    @classmethod
    def add_item(cls, db: Session, user: User, category_id: int, data: ItemCreate) -> WatchlistItem:
        """Append a movie to a category"""
        category = cls._get_owned_category(db, user, category_id)

        existing = db.query(WatchlistItem.id).filter(
            WatchlistItem.category_id == category.id,
            WatchlistItem.tmdb_movie_id == data.tmdb_movie_id,
        ).first()
        if existing:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Movie already in this watchlist"
            )

        item = WatchlistItem(
            category_id=category.id,
            tmdb_movie_id=data.tmdb_movie_id,
            title=data.title,
            poster_path=data.poster_path,
            user_note=data.user_note,
            user_rating=data.user_rating,
            sort_order=cls._next_sort_order(db, category.id),
        )
        db.add(item)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Movie already in this watchlist"
            )
        db.refresh(item)
        return item

    @classmethod
    def update_item(cls, db: Session, user: User, category_id: int, item_id: int, data: ItemUpdate) -> WatchlistItem:
        """Update notes, rating, watched state or position"""
        item = cls._get_owned_item(db, user, category_id, item_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(item, field, value)
        db.commit()
        db.refresh(item)
        return item

    @classmethod
    def remove_item(cls, db: Session, user: User, category_id: int, item_id: int) -> None:
        item = cls._get_owned_item(db, user, category_id, item_id)
        db.delete(item)
        db.commit()

    @classmethod
    def reorder(cls, db: Session, user: User, category_id: int, data: ReorderRequest) -> None:
        """
        Apply every (id, sortOrder) pair in one transaction.
        An id that does not belong to the category rejects the whole request.
        """
        category = cls._get_owned_category(db, user, category_id)
        requested = {entry.id for entry in data.items}
        owned = {
            item_id
            for (item_id,) in db.query(WatchlistItem.id).filter(
                WatchlistItem.category_id == category.id,
                WatchlistItem.id.in_(requested),
            )
        }
        if owned != requested:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="One or more items do not belong to this watchlist"
            )

        try:
            for entry in data.items:
                db.execute(
                    update(WatchlistItem)
                    .where(WatchlistItem.id == entry.id, WatchlistItem.category_id == category.id)
                    .values(sort_order=entry.sort_order)
                    .execution_options(synchronize_session=False)
                )
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception(f"Failed to reorder watchlist {category.id}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to reorder watchlist items"
            )

    # ------------------------------------------------------------------ #
    # Likes and discovery
    # ------------------------------------------------------------------ #
    @staticmethod
    def toggle_like(db: Session, user: User, category_id: int) -> dict:
        """Like or unlike a public category; likesCount moves by exactly one"""
        category = db.query(WatchlistCategory).filter(
            WatchlistCategory.id == category_id,
            WatchlistCategory.is_public.is_(True),
        ).first()
        if not category:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Public watchlist category not found"
            )

        like = db.query(WatchlistLike).filter(
            WatchlistLike.watchlist_category_id == category.id,
            WatchlistLike.user_id == user.id,
        ).first()

        try:
            if like:
                # A concurrent unlike may already have removed the row
                removed = db.execute(
                    delete(WatchlistLike)
                    .where(WatchlistLike.id == like.id)
                    .execution_options(synchronize_session=False)
                ).rowcount
                delta, liked = -removed, False
            else:
                db.add(WatchlistLike(watchlist_category_id=category.id, user_id=user.id))
                db.flush()
                delta, liked = 1, True
            if delta:
                db.execute(
                    update(WatchlistCategory)
                    .where(WatchlistCategory.id == category.id)
                    .values(likes_count=WatchlistCategory.likes_count + delta)
                    .execution_options(synchronize_session=False)
                )
            db.commit()
        except IntegrityError:
            # Double click: the other request already stored the like
            db.rollback()
            liked = True

        db.refresh(category)
        return {"liked": liked, "likes_count": category.likes_count}

    @classmethod
    def liked_categories(cls, db: Session, user: User) -> List[dict]:
        categories = (
            db.query(WatchlistCategory)
            .join(WatchlistLike, WatchlistLike.watchlist_category_id == WatchlistCategory.id)
            .options(selectinload(WatchlistCategory.items), joinedload(WatchlistCategory.user))
            .filter(WatchlistLike.user_id == user.id)
            .order_by(WatchlistLike.created_at.desc(), WatchlistLike.id.desc())
            .all()
        )
        return cls._summaries(db, categories, include_owner=True)

    @classmethod
    def list_public(cls, db: Session, sort: str = "popular", limit: int = 20, offset: int = 0) -> dict:
        query = db.query(WatchlistCategory).filter(WatchlistCategory.is_public.is_(True))
        total = query.count()

        if sort == "popular":
            order = (WatchlistCategory.likes_count.desc(), WatchlistCategory.created_at.desc())
        else:
            order = (WatchlistCategory.created_at.desc(),)

        categories = (
            query.options(selectinload(WatchlistCategory.items), joinedload(WatchlistCategory.user))
            .order_by(*order, WatchlistCategory.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return {
            "categories": cls._summaries(db, categories, include_owner=True),
            "total": total,
            "offset": offset,
            "limit": limit,
        }

    @classmethod
    def featured(cls, db: Session) -> dict:
        """Discovery page: most liked, newest and largest public watchlists"""
        base = db.query(WatchlistCategory).options(
            selectinload(WatchlistCategory.items),
            joinedload(WatchlistCategory.user),
        ).filter(WatchlistCategory.is_public.is_(True))

        most_liked = (
            base.filter(WatchlistCategory.likes_count > 0)
            .order_by(WatchlistCategory.likes_count.desc(), WatchlistCategory.id.desc())
            .limit(FEATURED_LIMIT)
            .all()
        )
        newest = (
            base.order_by(WatchlistCategory.created_at.desc(), WatchlistCategory.id.desc())
            .limit(FEATURED_LIMIT)
            .all()
        )

        item_count = func.count(WatchlistItem.id).label("item_count")
        populated_ids = [
            category_id
            for category_id, _ in (
                db.query(WatchlistCategory.id, item_count)
                .outerjoin(WatchlistItem, WatchlistItem.category_id == WatchlistCategory.id)
                .filter(WatchlistCategory.is_public.is_(True))
                .group_by(WatchlistCategory.id)
                .order_by(item_count.desc(), WatchlistCategory.id)
                .limit(FEATURED_LIMIT)
                .all()
            )
        ]
        by_id = {c.id: c for c in base.filter(WatchlistCategory.id.in_(populated_ids)).all()} if populated_ids else {}
        most_populated = [by_id[category_id] for category_id in populated_ids if category_id in by_id]

        return {
            "most_liked": cls._summaries(db, most_liked, include_owner=True),
            "newest": cls._summaries(db, newest, include_owner=True),
            "most_populated": cls._summaries(db, most_populated, include_owner=True),
        }

    @classmethod
    def user_public(cls, db: Session, user_id: int) -> dict:
        categories = (
            db.query(WatchlistCategory)
            .options(selectinload(WatchlistCategory.items))
            .filter(WatchlistCategory.user_id == user_id, WatchlistCategory.is_public.is_(True))
            .order_by(WatchlistCategory.created_at.desc(), WatchlistCategory.id.desc())
            .all()
        )
        username = None
        if categories:
            owner = db.get(User, user_id)
            username = owner.username if owner else None
        return {"username": username, "watchlists": cls._summaries(db, categories)}

    # ------------------------------------------------------------------ #
    # Default watchlist and shortcuts
    # ------------------------------------------------------------------ #
    @staticmethod
    def get_default_category(db: Session, user: User) -> WatchlistCategory:
        """Get the user's "My Watchlist", creating it if it went missing"""
        category = db.query(WatchlistCategory).filter(
            WatchlistCategory.user_id == user.id,
            WatchlistCategory.name == DEFAULT_CATEGORY_NAME,
        ).first()
        if category:
            return category

        category = WatchlistCategory(
            user_id=user.id,
            name=DEFAULT_CATEGORY_NAME,
            description="Your default watchlist for saved movies",
            is_public=False,
            slug=category_slug(db, WatchlistCategory, DEFAULT_CATEGORY_NAME, user.id),
        )
        db.add(category)
        db.commit()
        db.refresh(category)
        logger.info(f"Recreated default watchlist for user {user.id}")
        return category

    @classmethod
    def default_summary(cls, db: Session, user: User) -> dict:
        category = cls.get_default_category(db, user)
        return cls._summaries(db, [category], include_items=False)[0]

    @classmethod
    def quick_add(cls, db: Session, user: User, data: QuickAddRequest) -> Tuple[WatchlistItem, bool]:
        """Add to "My Watchlist". Returns (item, already_exists)."""
        if not data.tmdb_movie_id or not data.title:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Movie ID and title are required"
            )

        category = cls.get_default_category(db, user)
        existing = db.query(WatchlistItem).filter(
            WatchlistItem.category_id == category.id,
            WatchlistItem.tmdb_movie_id == data.tmdb_movie_id,
        ).first()
        if existing:
            return existing, True

        item = WatchlistItem(
            category_id=category.id,
            tmdb_movie_id=data.tmdb_movie_id,
            title=data.title,
            poster_path=data.poster_path,
            sort_order=cls._next_sort_order(db, category.id),
        )
        db.add(item)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            existing = db.query(WatchlistItem).filter(
                WatchlistItem.category_id == category.id,
                WatchlistItem.tmdb_movie_id == data.tmdb_movie_id,
            ).one()
            return existing, True
        db.refresh(item)
        return item, False

    @classmethod
    def add_to_many(cls, db: Session, user: User, data: MultiAddRequest) -> dict:
        """
        Add one movie to several categories in a single transaction.
        Every category is checked for ownership before anything is written.
        """
        category_ids = list(dict.fromkeys(data.category_ids))
        categories = db.query(WatchlistCategory).filter(
            WatchlistCategory.id.in_(category_ids),
            WatchlistCategory.user_id == user.id,
        ).all()
        if len(categories) != len(category_ids):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="One or more watchlist categories not found or not authorized"
            )

        existing = {
            item.category_id: item
            for item in db.query(WatchlistItem).filter(
                WatchlistItem.category_id.in_(category_ids),
                WatchlistItem.tmdb_movie_id == data.tmdb_movie_id,
            )
        }

        added_to, already_in, items = [], [], []
        try:
            for category_id in category_ids:
                item = existing.get(category_id)
                if item is not None:
                    already_in.append(category_id)
                else:
                    item = WatchlistItem(
                        category_id=category_id,
                        tmdb_movie_id=data.tmdb_movie_id,
                        title=data.title,
                        poster_path=data.poster_path,
                        sort_order=cls._next_sort_order(db, category_id),
                    )
                    db.add(item)
                    db.flush()
                    added_to.append(category_id)
                items.append(item)
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception(f"Failed to add movie {data.tmdb_movie_id} to watchlists {category_ids}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to add movie to watchlists"
            )

        for item in items:
            db.refresh(item)
        return {
            "message": "Movie added to selected watchlists",
            "added_to": added_to,
            "already_in": already_in,
            "items": items,
        }

    @classmethod
    def copy_movie(cls, db: Session, user: User, data: CopyMovieRequest) -> WatchlistItem:
        """Copy an item (with note and rating) into another of the user's categories"""
        source = (
            db.query(WatchlistItem)
            .join(WatchlistCategory, WatchlistCategory.id == WatchlistItem.category_id)
            .filter(WatchlistItem.id == data.source_item_id, WatchlistCategory.user_id == user.id)
            .first()
        )
        if not source:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Source watchlist item not found or not authorized"
            )

        target = db.query(WatchlistCategory).filter(
            WatchlistCategory.id == data.target_category_id,
            WatchlistCategory.user_id == user.id,
        ).first()
        if not target:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Target watchlist category not found or not authorized"
            )

        duplicate = HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Movie already exists in target watchlist"
        )
        if db.query(WatchlistItem.id).filter(
            WatchlistItem.category_id == target.id,
            WatchlistItem.tmdb_movie_id == source.tmdb_movie_id,
        ).first():
            raise duplicate

        item = WatchlistItem(
            category_id=target.id,
            tmdb_movie_id=source.tmdb_movie_id,
            title=source.title,
            poster_path=source.poster_path,
            sort_order=cls._next_sort_order(db, target.id),
            user_note=source.user_note,
            user_rating=source.user_rating,
        )
        db.add(item)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise duplicate
        db.refresh(item)
        return item

    # ------------------------------------------------------------------ #
    # Membership checks for a movie
    # ------------------------------------------------------------------ #
    @staticmethod
    def _items_for_movie(db: Session, user: User, tmdb_movie_id: int) -> List[WatchlistItem]:
        return (
            db.query(WatchlistItem)
            .join(WatchlistCategory, WatchlistCategory.id == WatchlistItem.category_id)
            .options(joinedload(WatchlistItem.category))
            .filter(WatchlistItem.tmdb_movie_id == tmdb_movie_id, WatchlistCategory.user_id == user.id)
            .order_by(WatchlistCategory.id)
            .all()
        )

    @classmethod
    def movie_status(cls, db: Session, user: User, tmdb_movie_id: int) -> dict:
        items = cls._items_for_movie(db, user, tmdb_movie_id)
        if not items:
            return {"in_watchlist": False, "watchlists": []}

        default = cls.get_default_category(db, user)
        return {
            "in_watchlist": True,
            "in_default_watchlist": any(item.category_id == default.id for item in items),
            "watchlists": [
                {
                    "watchlist_id": item.category.id,
                    "watchlist_name": item.category.name,
                    "item_id": item.id,
                    "is_default": item.category_id == default.id,
                }
                for item in items
            ],
        }

    @classmethod
    def check_movie(cls, db: Session, user: User, tmdb_movie_id: int) -> dict:
        items = cls._items_for_movie(db, user, tmdb_movie_id)
        if not items:
            return {"is_in_watchlist": False}
        return {
            "is_in_watchlist": True,
            "categories": [
                {"id": item.category.id, "name": item.category.name, "watchlist_item_id": item.id}
                for item in items
            ],
        }
