from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session

from app.api.deps import get_current_user
from app.db.models import Category
from app.db.session import get_db
from app.schemas.categories import CategoryCreate, CategoryOut, CategoryUpdate
from app.services.identity import AuthenticatedUser

router = APIRouter()


def _category_out(category: Category) -> CategoryOut:
    return CategoryOut(
        id=category.id,
        name=category.name,
        icon=category.icon,
        color=category.color,
    )


def get_user_category(db: Session, user_id: str, category_id: int) -> Category:
    category = (
        db.query(Category)
        .filter(Category.id == category_id, Category.user_id == user_id)
        .one_or_none()
    )
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")
    return category


def _name_taken(db: Session, user_id: str, name: str, exclude_id: Optional[int] = None) -> bool:
    query = db.query(Category.id).filter(Category.user_id == user_id, Category.name == name)
    if exclude_id is not None:
        query = query.filter(Category.id != exclude_id)
    return query.first() is not None


@router.get("", response_model=List[CategoryOut])
def list_categories(
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> List[CategoryOut]:
    categories = (
        db.query(Category)
        .filter(Category.user_id == user.user_id)
        .order_by(Category.name)
        .all()
    )
    return [_category_out(category) for category in categories]


@router.post("", response_model=CategoryOut, status_code=201)
def create_category(
    payload: CategoryCreate,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> CategoryOut:
    name = (payload.name or "").strip()
    if not name:
        raise HTTPException(status_code=400, detail="Category name is required")
    if _name_taken(db, user.user_id, name):
        raise HTTPException(status_code=400, detail="Category with this name already exists")

    category = Category(
        user_id=user.user_id,
        name=name,
        icon=payload.icon or None,
        color=payload.color or None,
    )
    db.add(category)
    db.commit()
    return _category_out(category)


@router.put("/{category_id}", response_model=CategoryOut)
def update_category(
    category_id: int,
    payload: CategoryUpdate,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> CategoryOut:
    category = get_user_category(db, user.user_id, category_id)
    fields = payload.model_dump(exclude_unset=True)

    if "name" in fields:
        name = (fields["name"] or "").strip()
        if not name:
            raise HTTPException(status_code=400, detail="Category name is required")
        if _name_taken(db, user.user_id, name, exclude_id=category.id):
            raise HTTPException(status_code=400, detail="Category with this name already exists")
        category.name = name
    if "icon" in fields:
        category.icon = fields["icon"] or None
    if "color" in fields:
        category.color = fields["color"] or None

    db.commit()
    return _category_out(category)


@router.delete("/{category_id}", status_code=204)
def delete_category(
    category_id: int,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Response:
    category = get_user_category(db, user.user_id, category_id)
    # Transactions keep existing without a category; budgets go with it.
    db.delete(category)
    db.commit()
    return Response(status_code=204)
