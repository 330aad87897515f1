import logging
from typing import Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.db.models import Category

logger = logging.getLogger(__name__)

# Prefix -> canonical name. Checked in order, first match wins.
CATEGORY_ALIASES = (
    ("Grocery", "Groceries"),
    ("Transport", "Transportation"),
    ("Bill", "Utilities"),
    ("Utility", "Utilities"),
    ("Health", "Healthcare"),
    ("Entertain", "Entertainment"),
)


def normalize_category_name(name: Optional[str]) -> Optional[str]:
    if name is None:
        return None
    normalized = str(name).strip()
    if not normalized:
        return None

    normalized = normalized[:1].upper() + normalized[1:].lower()
    for prefix, canonical in CATEGORY_ALIASES:
        if normalized.startswith(prefix):
            return canonical
    return normalized


class CategoryResolver:
    """Find-or-create categories for one user during a single import run.

    Names are normalized first, then looked up in a run-local cache, then
    matched case-insensitively against the user's categories, and finally
    created. Each normalized name is created at most once per resolver. The
    store scan loads every category of the user, which is fine at personal
    finance scale but would need an indexed lower(name) lookup beyond that.
    Nothing guards against two concurrent imports creating the same name.
    """

    def __init__(self, db: Session, user_id: str) -> None:
        self.db = db
        self.user_id = user_id
        self.created = 0
        self._cache: Dict[str, int] = {}

    def resolve(self, category_name: Optional[str]) -> Optional[int]:
        normalized = normalize_category_name(category_name)
        if not normalized:
            return None

        cache_key = normalized.lower()
        if cache_key in self._cache:
            return self._cache[cache_key]

        try:
            category_id = self._find(normalized)
            if category_id is None:
                category_id = self._create(normalized)
        except SQLAlchemyError:
            logger.exception(
                "Could not resolve category %r for user %s", normalized, self.user_id
            )
            return None

        self._cache[cache_key] = category_id
        return category_id

    def _find(self, name: str) -> Optional[int]:
        wanted = name.lower()
        rows = (
            self.db.query(Category.id, Category.name)
            .filter(Category.user_id == self.user_id)
            .all()
        )
        for category_id, existing_name in rows:
            if existing_name.lower() == wanted:
                return category_id
        return None

    def _create(self, name: str) -> int:
        with self.db.begin_nested():
            category = Category(user_id=self.user_id, name=name)
            self.db.add(category)
            self.db.flush()
        self.created += 1
        logger.info("Created category %r for user %s", name, self.user_id)
        return category.id
