"""Category routes for the storefront catalogue."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from . import schemas, crud
from .auth import SessionSubject, get_current_admin
from .database import get_db

router = APIRouter(prefix="/categories", tags=["categories"])


@router.get("", response_model=None)
def list_categories(
    is_active: bool | None = Query(None, alias="isActive"),
    with_products: bool = Query(False, alias="withProducts"),
    slug: str | None = Query(None),
    db: Session = Depends(get_db),
):
    """
    Retrieve categories ordered by name.

    Args:
        is_active (bool | None): Optional active-flag filter.
        with_products (bool): Embed each category's active products.
        slug (str | None): Optional slug filter.
        db (Session): Database session.

    Returns:
        list[CategoryOut | CategoryWithProducts]: Categories.
    """
    filters = crud.CategoryFilter(
        is_active=is_active, slug=slug, include_products=with_products
    )
    schema = schemas.CategoryWithProducts if with_products else schemas.CategoryOut
    return [schema.model_validate(c) for c in crud.list_categories(db, filters)]


@router.get("/{category_id}", response_model=schemas.CategoryWithProducts)
def get_category(category_id: str, db: Session = Depends(get_db)):
    """
    Retrieve a single category with its active products.

    Raises:
        NotFound: If the category does not exist.
    """
    return crud.get_category_with_products(db, category_id)


@router.post("", response_model=schemas.CategoryOut, status_code=201)
def create_category(
    category_in: schemas.CategoryCreate,
    db: Session = Depends(get_db),
    current_admin: SessionSubject = Depends(get_current_admin),
):
    """
    Create a new category.

    Args:
        category_in (CategoryCreate): Category input data.
        db (Session): Database session.
        current_admin (SessionSubject): Authenticated admin.

    Returns:
        CategoryOut: Created category.
    """
    return crud.create_category(db, category_in)


@router.put("/{category_id}", response_model=schemas.CategoryOut)
def update_category(
    category_id: str,
    changes: schemas.CategoryUpdate,
    db: Session = Depends(get_db),
    current_admin: SessionSubject = Depends(get_current_admin),
):
    """
    Update an existing category.

    Only fields provided in the request will be updated.

    Raises:
        NotFound: If the category does not exist.
        Conflict: If the new name or slug belongs to another category.
    """
    return crud.update_category(db, category_id, changes.model_dump(exclude_unset=True))


@router.delete("/{category_id}", response_model=schemas.Message)
def delete_category(
    category_id: str,
    db: Session = Depends(get_db),
    current_admin: SessionSubject = Depends(get_current_admin),
):
    """
    Delete a category without products.

    Raises:
        NotFound: If the category does not exist.
        Conflict: If products still reference the category.
    """
    crud.delete_category(db, category_id)
    return schemas.Message(message="Category deleted")
