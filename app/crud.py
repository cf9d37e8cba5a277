"""CRUD operations for admins, the catalogue and contact requests.

This module contains database interaction logic isolated from FastAPI
route handlers. Uniqueness and referential checks run here before any
write, and every write that could still race past them is committed
under storage constraints: an ``IntegrityError`` at commit time is
rolled back and reported as a :class:`~app.errors.Conflict`.
"""

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from . import models, schemas
from .errors import Conflict, NotFound, ValidationError

logger = logging.getLogger(__name__)

SIMILAR_PRODUCTS_LIMIT = 3

# Columns a partial update may set to NULL; a null for any other
# column means "leave unchanged".
CATEGORY_NULLABLE = {"description"}
PRODUCT_NULLABLE = {"content", "image_url", "image_storage_id", "category_id"}


@dataclass
class CategoryFilter:
    """Optional category filters, combined with AND."""

    is_active: bool | None = None
    slug: str | None = None
    include_products: bool = False


@dataclass
class ProductFilter:
    """Optional product filters, combined with AND."""

    is_promo: bool | None = None
    is_active: bool | None = None
    category_id: str | None = None


@dataclass
class ContactFilter:
    read: bool | None = None


def _commit(db: Session, conflict_message: str) -> None:
    """
    Commit the current transaction, translating constraint violations.

    Args:
        db (Session): Database session.
        conflict_message (str): Message for the raised conflict.

    Raises:
        Conflict: If the storage layer rejected the write.
    """
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.info("Write rejected by storage constraint: %s", conflict_message)
        raise Conflict(conflict_message)


def _drop_nulls(changes: dict[str, Any], nullable: set[str]) -> dict[str, Any]:
    return {k: v for k, v in changes.items() if v is not None or k in nullable}


# Admin users


def normalize_email(email: str) -> str:
    return email.strip().lower()


def get_admin_by_email(db: Session, email: str) -> models.AdminUser | None:
    """
    Retrieve an admin by email address, ignoring case.

    Args:
        db (Session): Database session.
        email (str): Admin email.

    Returns:
        AdminUser | None: Admin if found, otherwise ``None``.
    """
    return db.execute(
        select(models.AdminUser).where(
            models.AdminUser.email == normalize_email(email)
        )
    ).scalar_one_or_none()


def create_admin(
    db: Session, email: str, hashed_password: str, name: str
) -> models.AdminUser:
    """
    Create and persist a new admin.

    Raises:
        Conflict: If an admin with the same email already exists.
    """
    if get_admin_by_email(db, email):
        raise Conflict("An admin with this email already exists")

    admin = models.AdminUser(
        email=normalize_email(email), hashed_password=hashed_password, name=name
    )
    db.add(admin)
    _commit(db, "An admin with this email already exists")
    db.refresh(admin)
    return admin


def update_admin(
    db: Session, admin: models.AdminUser, hashed_password: str, name: str
) -> models.AdminUser:
    admin.hashed_password = hashed_password
    admin.name = name
    db.add(admin)
    db.commit()
    db.refresh(admin)
    return admin


# Categories


def find_conflicting_category(
    db: Session,
    name: str | None,
    slug: str | None,
    exclude_id: str | None = None,
) -> models.Category | None:
    clauses = []
    if name is not None:
        clauses.append(models.Category.name == name)
    if slug is not None:
        clauses.append(models.Category.slug == slug)
    if not clauses:
        return None

    stmt = select(models.Category).where(or_(*clauses))
    if exclude_id is not None:
        stmt = stmt.where(models.Category.id != exclude_id)
    return db.execute(stmt.limit(1)).scalar_one_or_none()


def _with_active_products(stmt):
    return stmt.options(
        selectinload(
            models.Category.products.and_(models.Product.is_active.is_(True))
        )
    ).execution_options(populate_existing=True)


def list_categories(db: Session, filters: CategoryFilter) -> list[models.Category]:
    """
    Retrieve categories ordered by name.

    When ``filters.include_products`` is set, each category's ``products``
    collection is loaded with its active products only.

    Args:
        db (Session): Database session.
        filters (CategoryFilter): Optional filters.

    Returns:
        list[Category]: Matching categories.
    """
    stmt = select(models.Category)
    if filters.is_active is not None:
        stmt = stmt.where(models.Category.is_active.is_(filters.is_active))
    if filters.slug is not None:
        stmt = stmt.where(models.Category.slug == filters.slug)
    if filters.include_products:
        stmt = _with_active_products(stmt)
    return list(db.scalars(stmt.order_by(models.Category.name.asc())).all())


def get_category(db: Session, category_id: str) -> models.Category | None:
    return db.execute(
        select(models.Category).where(models.Category.id == category_id)
    ).scalar_one_or_none()


def get_category_with_products(db: Session, category_id: str) -> models.Category:
    """
    Retrieve a category and its active products.

    Raises:
        NotFound: If the category does not exist.
    """
    stmt = _with_active_products(
        select(models.Category).where(models.Category.id == category_id)
    )
    category = db.execute(stmt).scalar_one_or_none()
    if category is None:
        raise NotFound("Category not found")
    return category


def create_category(db: Session, category_in: schemas.CategoryCreate) -> models.Category:
    """
    Create a new active category.

    Args:
        db (Session): Database session.
        category_in (CategoryCreate): Category data.

    Raises:
        Conflict: If another category already uses the name or the slug.

    Returns:
        Category: Newly created category.
    """
    if find_conflicting_category(db, category_in.name, category_in.slug):
        raise Conflict("A category with this name or slug already exists")

    category = models.Category(
        name=category_in.name,
        slug=category_in.slug,
        description=category_in.description,
        is_active=True,
    )
    db.add(category)
    _commit(db, "A category with this name or slug already exists")
    db.refresh(category)
    return category


def update_category(
    db: Session, category_id: str, changes: dict[str, Any]
) -> models.Category:
    """
    Update a category, keeping names and slugs unique.

    Args:
        db (Session): Database session.
        category_id (str): Category identifier.
        changes (dict): Fields to update.

    Raises:
        NotFound: If the category does not exist.
        Conflict: If a different category already uses the new name or slug.

    Returns:
        Category: Updated category.
    """
    category = get_category(db, category_id)
    if category is None:
        raise NotFound("Category not found")

    changes = _drop_nulls(changes, CATEGORY_NULLABLE)
    if find_conflicting_category(
        db, changes.get("name"), changes.get("slug"), exclude_id=category_id
    ):
        raise Conflict("A category with this name or slug already exists")

    for key, value in changes.items():
        setattr(category, key, value)

    db.add(category)
    _commit(db, "A category with this name or slug already exists")
    db.refresh(category)
    return category


def delete_category(db: Session, category_id: str) -> None:
    """
    Delete a category that no product references.

    The dependent-product check and the delete share one transaction;
    the ``RESTRICT`` foreign key rejects the delete if a product was
    attached concurrently.

    Raises:
        NotFound: If the category does not exist.
        Conflict: If products still reference the category.
    """
    category = get_category(db, category_id)
    if category is None:
        raise NotFound("Category not found")

    dependents = db.scalar(
        select(func.count())
        .select_from(models.Product)
        .where(models.Product.category_id == category_id)
    )
    if dependents:
        raise Conflict("Cannot delete a category that still has products")

    db.delete(category)
    _commit(db, "Cannot delete a category that still has products")


# Products


def _ensure_category_exists(db: Session, category_id: str | None) -> None:
    if category_id is not None and get_category(db, category_id) is None:
        raise ValidationError.for_field("categoryId", "Category does not exist")


def _slug_taken(db: Session, slug: str, exclude_id: str | None = None) -> bool:
    stmt = select(models.Product.id).where(models.Product.slug == slug)
    if exclude_id is not None:
        stmt = stmt.where(models.Product.id != exclude_id)
    return db.execute(stmt.limit(1)).first() is not None


def list_products(
    db: Session, filters: ProductFilter, skip: int = 0, limit: int | None = None
) -> list[models.Product]:
    """
    Retrieve products, newest first, with their category.

    Args:
        db (Session): Database session.
        filters (ProductFilter): Optional filters combined with AND.
        skip (int): Number of records to skip.
        limit (int | None): Maximum number of records to return.

    Returns:
        list[Product]: Matching products.
    """
    stmt = select(models.Product).options(selectinload(models.Product.category))
    if filters.is_promo is not None:
        stmt = stmt.where(models.Product.is_promo.is_(filters.is_promo))
    if filters.is_active is not None:
        stmt = stmt.where(models.Product.is_active.is_(filters.is_active))
    if filters.category_id:
        stmt = stmt.where(models.Product.category_id == filters.category_id)

    stmt = stmt.order_by(models.Product.created_at.desc()).offset(skip)
    if limit is not None:
        stmt = stmt.limit(limit)
    return list(db.scalars(stmt).all())


def get_product(db: Session, product_id: str) -> models.Product | None:
    return db.execute(
        select(models.Product)
        .options(selectinload(models.Product.category))
        .where(models.Product.id == product_id)
    ).scalar_one_or_none()


def get_product_by_slug(db: Session, slug: str) -> models.Product | None:
    return db.execute(
        select(models.Product)
        .options(selectinload(models.Product.category))
        .where(models.Product.slug == slug)
    ).scalar_one_or_none()


def get_similar_products(
    db: Session, category_id: str | None, product_id: str
) -> list[models.Product]:
    """
    Retrieve other active products from the same category.

    Args:
        db (Session): Database session.
        category_id (str | None): Category of the reference product.
        product_id (str): Reference product, excluded from the result.

    Returns:
        list[Product]: Up to three products, newest first; empty when the
        reference product has no category.
    """
    if not category_id:
        return []
    return list(
        db.scalars(
            select(models.Product)
            .options(selectinload(models.Product.category))
            .where(
                models.Product.category_id == category_id,
                models.Product.id != product_id,
                models.Product.is_active.is_(True),
            )
            .order_by(models.Product.created_at.desc())
            .limit(SIMILAR_PRODUCTS_LIMIT)
        ).all()
    )


def create_product(db: Session, product_in: schemas.ProductCreate) -> models.Product:
    """
    Create a new product.

    Args:
        db (Session): Database session.
        product_in (ProductCreate): Product data.

    Raises:
        Conflict: If another product already uses the slug.
        ValidationError: If ``category_id`` references no category.

    Returns:
        Product: Newly created product with its category loaded.
    """
    if _slug_taken(db, product_in.slug):
        raise Conflict("A product with this slug already exists")
    _ensure_category_exists(db, product_in.category_id)

    product = models.Product(**product_in.model_dump())
    db.add(product)
    _commit(db, "A product with this slug already exists")
    return get_product(db, product.id)


def update_product(
    db: Session, product_id: str, changes: dict[str, Any]
) -> models.Product:
    """
    Update mutable fields of a product.

    The slug stays unique across products: a new slug already used by a
    different product is rejected.

    Raises:
        NotFound: If the product does not exist.
        Conflict: If the new slug belongs to another product.
        ValidationError: If the new category does not exist.
    """
    product = get_product(db, product_id)
    if product is None:
        raise NotFound("Product not found")

    changes = _drop_nulls(changes, PRODUCT_NULLABLE)
    if changes.get("slug") is not None and _slug_taken(
        db, changes["slug"], exclude_id=product_id
    ):
        raise Conflict("A product with this slug already exists")
    if "category_id" in changes:
        _ensure_category_exists(db, changes["category_id"])

    for key, value in changes.items():
        setattr(product, key, value)

    db.add(product)
    _commit(db, "A product with this slug already exists")
    return get_product(db, product_id)


def delete_product(db: Session, product_id: str) -> None:
    product = get_product(db, product_id)
    if product is None:
        raise NotFound("Product not found")
    db.delete(product)
    db.commit()


# Contact requests


def create_contact_request(
    db: Session, contact_in: schemas.ContactCreate
) -> models.ContactRequest:
    """
    Persist a contact form submission as an unread request.

    Args:
        db (Session): Database session.
        contact_in (ContactCreate): Validated submission.

    Returns:
        ContactRequest: Stored request.
    """
    contact = models.ContactRequest(**contact_in.model_dump(), read=False)
    db.add(contact)
    db.commit()
    db.refresh(contact)
    return contact


def get_contact_request(db: Session, contact_id: str) -> models.ContactRequest | None:
    return db.execute(
        select(models.ContactRequest).where(models.ContactRequest.id == contact_id)
    ).scalar_one_or_none()


def list_contact_requests(
    db: Session, filters: ContactFilter, skip: int = 0, limit: int = 100
) -> list[models.ContactRequest]:
    """
    Retrieve contact requests, newest first.

    Args:
        db (Session): Database session.
        filters (ContactFilter): Optional read-state filter.
        skip (int): Number of records to skip.
        limit (int): Maximum number of records to return.

    Returns:
        list[ContactRequest]: Matching requests.
    """
    stmt = select(models.ContactRequest)
    if filters.read is not None:
        stmt = stmt.where(models.ContactRequest.read.is_(filters.read))
    stmt = (
        stmt.order_by(models.ContactRequest.created_at.desc()).offset(skip).limit(limit)
    )
    return list(db.scalars(stmt).all())


def mark_contact_request(
    db: Session, contact_id: str, read: bool
) -> models.ContactRequest:
    contact = get_contact_request(db, contact_id)
    if contact is None:
        raise NotFound("Contact request not found")
    contact.read = read
    db.add(contact)
    db.commit()
    db.refresh(contact)
    return contact


def delete_contact_request(db: Session, contact_id: str) -> None:
    contact = get_contact_request(db, contact_id)
    if contact is None:
        raise NotFound("Contact request not found")
    db.delete(contact)
    db.commit()
