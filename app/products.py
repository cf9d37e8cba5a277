"""Product routes for the storefront catalogue.

Anonymous callers only ever see active products; admins see every
product and may filter on the active flag themselves.
"""

from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from . import schemas, crud
from .auth import SessionSubject, get_current_admin, get_optional_admin
from .database import get_db
from .errors import NotFound
from .models import Product

router = APIRouter(prefix="/products", tags=["products"])


def _visible(product: Product | None, admin: SessionSubject | None) -> Product:
    if product is None or (not product.is_active and admin is None):
        raise NotFound("Product not found")
    return product


@router.get("", response_model=List[schemas.ProductOut])
def list_products(
    is_promo: bool | None = Query(None, alias="isPromo"),
    is_active: bool | None = Query(None, alias="isActive"),
    category: str | None = Query(None),
    skip: int = Query(0, ge=0),
    limit: int | None = Query(None, ge=1),
    db: Session = Depends(get_db),
    admin: SessionSubject | None = Depends(get_optional_admin),
):
    """
    Retrieve products, newest first, each with its category.

    Args:
        is_promo (bool | None): Optional featured-flag filter.
        is_active (bool | None): Optional visibility filter (admins only).
        category (str | None): Optional category identifier.
        skip (int): Number of records to skip.
        limit (int | None): Maximum number of records to return.
        db (Session): Database session.
        admin (SessionSubject | None): Admin, when a valid token is sent.

    Returns:
        list[ProductOut]: Matching products.
    """
    filters = crud.ProductFilter(
        is_promo=is_promo,
        is_active=is_active if admin is not None else True,
        category_id=category,
    )
    return crud.list_products(db, filters, skip=skip, limit=limit)


@router.get("/by-slug/{slug}", response_model=schemas.ProductOut)
def get_product_by_slug(
    slug: str,
    db: Session = Depends(get_db),
    admin: SessionSubject | None = Depends(get_optional_admin),
):
    """Retrieve a product by its slug."""
    return _visible(crud.get_product_by_slug(db, slug), admin)


@router.get("/{product_id}", response_model=schemas.ProductOut)
def get_product(
    product_id: str,
    db: Session = Depends(get_db),
    admin: SessionSubject | None = Depends(get_optional_admin),
):
    return _visible(crud.get_product(db, product_id), admin)


@router.get("/{product_id}/similar", response_model=List[schemas.ProductOut])
def similar_products(
    product_id: str,
    db: Session = Depends(get_db),
    admin: SessionSubject | None = Depends(get_optional_admin),
):
    """
    Retrieve up to three other active products from the same category.

    Raises:
        NotFound: If the reference product does not exist.
    """
    product = _visible(crud.get_product(db, product_id), admin)
    return crud.get_similar_products(db, product.category_id, product.id)


@router.post("", response_model=schemas.ProductOut, status_code=201)
def create_product(
    product_in: schemas.ProductCreate,
    db: Session = Depends(get_db),
    current_admin: SessionSubject = Depends(get_current_admin),
):
    """
    Create a new product.

    Args:
        product_in (ProductCreate): Product input data.
        db (Session): Database session.
        current_admin (SessionSubject): Authenticated admin.

    Raises:
        Conflict: If the slug is already used.
        ValidationError: If the category does not exist.

    Returns:
        ProductOut: Created product.
    """
    return crud.create_product(db, product_in)


@router.put("/{product_id}", response_model=schemas.ProductOut)
def update_product(
    product_id: str,
    changes: schemas.ProductUpdate,
    db: Session = Depends(get_db),
    current_admin: SessionSubject = Depends(get_current_admin),
):
    """
    Update an existing product.

    Only fields provided in the request will be updated.
    """
    return crud.update_product(db, product_id, changes.model_dump(exclude_unset=True))


@router.delete("/{product_id}", response_model=schemas.Message)
def delete_product(
    product_id: str,
    db: Session = Depends(get_db),
    current_admin: SessionSubject = Depends(get_current_admin),
):
    crud.delete_product(db, product_id)
    return schemas.Message(message="Product deleted")
