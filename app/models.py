"""Database models for the storefront.

This module defines SQLAlchemy ORM models used by the application:
the admin account, the catalogue (categories and products) and
contact requests submitted from the public site.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    String,
    Text,
    Numeric,
    Boolean,
    DateTime,
    ForeignKey,
    CheckConstraint,
)
from sqlalchemy.orm import relationship

from .database import Base


def new_id() -> str:
    """Return a new opaque identifier."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AdminUser(Base):
    """
    SQLAlchemy model representing a back-office administrator.

    Admins are created out of band (see ``app.seed``) and are only
    read by the login flow. Emails are stored lower-cased.
    """

    __tablename__ = "admin_users"

    id = Column(String(36), primary_key=True, default=new_id)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    name = Column(String(100), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)


class Category(Base):
    """
    SQLAlchemy model representing a product category.

    Names and slugs are unique. A category referenced by any product
    cannot be deleted; the foreign key on ``products.category_id`` is
    ``RESTRICT`` and the relationship never nulls product references.
    """

    __tablename__ = "categories"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(100), unique=True, nullable=False)
    slug = Column(String(100), unique=True, index=True, nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    #: Products filed under the category
    products = relationship(
        "Product",
        back_populates="category",
        passive_deletes="all",
    )


class Product(Base):
    """
    SQLAlchemy model representing a catalogue product.

    ``is_promo`` marks a featured product, ``is_active`` controls
    public visibility.
    """

    __tablename__ = "products"
    __table_args__ = (CheckConstraint("price >= 0", name="ck_product_price"),)

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    content = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    image_url = Column(String(500), nullable=True)
    image_storage_id = Column(String(255), nullable=True)
    slug = Column(String(200), unique=True, index=True, nullable=False)
    is_promo = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(
        DateTime(timezone=True), default=utcnow, index=True, nullable=False
    )

    category_id = Column(
        String(36),
        ForeignKey("categories.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )

    category = relationship("Category", back_populates="products")


class ContactRequest(Base):
    """
    SQLAlchemy model representing an inquiry sent through the contact form.

    Requests are always created unread; only admins toggle ``read`` or
    delete them.
    """

    __tablename__ = "contact_requests"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(100), nullable=False)
    email = Column(String(100), nullable=False)
    phone = Column(String(50), nullable=True)
    message = Column(Text, nullable=False)
    read = Column(Boolean, default=False, nullable=False, index=True)
    created_at = Column(
        DateTime(timezone=True), default=utcnow, index=True, nullable=False
    )
