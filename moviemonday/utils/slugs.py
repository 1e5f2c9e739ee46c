"""
URL slug helpers for public groups, movie mondays and watchlists.
"""
import re
import time
from typing import Optional

from sqlalchemy.orm import Session

_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def slugify(value: str, fallback: str = "item") -> str:
    """'Film Club!' -> 'film-club'"""
    slug = _NON_ALNUM.sub("-", (value or "").lower()).strip("-")
    return slug or fallback


def to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(_BASE36[remainder])
    return "".join(reversed(digits))


def unique_slug(db: Session, model, base: str, exclude_id: Optional[int] = None) -> str:
    """
    Return ``base`` or the first free ``base-1``, ``base-2``, ...
    checked against ``model.slug``.
    """
    candidate = base
    counter = 1
    while True:
        query = db.query(model.id).filter(model.slug == candidate)
        if exclude_id is not None:
            query = query.filter(model.id != exclude_id)
        if query.first() is None:
            return candidate
        candidate = f"{base}-{counter}"
        counter += 1


def category_slug(db: Session, model, name: str, user_id: int, exclude_id: Optional[int] = None) -> str:
    """Watchlist slugs carry the owner id and a millisecond timestamp."""
    stamp = to_base36(int(time.time() * 1000))
    return unique_slug(db, model, f"{slugify(name, 'watchlist')}-{user_id}-{stamp}", exclude_id)
