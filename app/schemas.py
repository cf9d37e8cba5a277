from datetime import datetime
from decimal import Decimal
from typing import Annotated, List, Literal, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    StringConstraints,
    field_serializer,
    field_validator,
)
from pydantic.alias_generators import to_camel


class APIModel(BaseModel):
    """Base schema: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class LoginRequest(APIModel):
    """Credentials posted to the login endpoint."""

    email: EmailStr
    password: str = Field(min_length=1)


class AdminOut(APIModel):
    """Non-sensitive admin fields returned to the client."""

    id: str
    email: str
    name: str


class LoginResponse(APIModel):
    """Successful login payload."""

    success: bool = True
    token: str
    token_type: str = "bearer"
    admin: AdminOut


class CategoryCreate(APIModel):
    """Schema for creating a category."""

    name: str = Field(min_length=1, max_length=100)
    slug: str = Field(min_length=1, max_length=100, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
    description: Optional[str] = None


class CategoryUpdate(APIModel):
    """Schema for updating a category (all fields optional)."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    slug: Optional[str] = Field(
        default=None, min_length=1, max_length=100, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$"
    )
    description: Optional[str] = None
    is_active: Optional[bool] = None


class ProductSummary(APIModel):
    """Projection of an active product listed under its category."""

    id: str
    name: str
    slug: str
    image_url: Optional[str] = None
    price: Decimal

    @field_serializer("price")
    def serialize_price(self, price: Decimal) -> float:
        return float(price)


class CategoryOut(APIModel):
    """Category without its products."""

    id: str
    name: str
    slug: str
    description: Optional[str] = None
    is_active: bool
    created_at: datetime


class CategoryWithProducts(CategoryOut):
    """Category carrying its active products."""

    products: List[ProductSummary] = []


class ProductBase(APIModel):
    """Shared fields for product schemas."""

    name: str = Field(min_length=1, max_length=200)
    description: str
    content: Optional[str] = None
    price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    image_url: Optional[str] = None
    image_storage_id: Optional[str] = None
    slug: str = Field(min_length=1, max_length=200, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
    category_id: Optional[str] = None
    is_promo: bool = False
    is_active: bool = True

    @field_validator("category_id", mode="before")
    @classmethod
    def empty_category_is_none(cls, value):
        return value or None


class ProductCreate(ProductBase):
    """Schema for creating a product."""

    pass


class ProductUpdate(APIModel):
    """Schema for updating a product (all fields optional)."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    content: Optional[str] = None
    price: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    image_url: Optional[str] = None
    image_storage_id: Optional[str] = None
    slug: Optional[str] = Field(
        default=None, min_length=1, max_length=200, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$"
    )
    category_id: Optional[str] = None
    is_promo: Optional[bool] = None
    is_active: Optional[bool] = None

    @field_validator("category_id", mode="before")
    @classmethod
    def empty_category_is_none(cls, value):
        return value or None


class ProductOut(ProductBase):
    """Schema for returning a product with its category."""

    id: str
    created_at: datetime
    category: Optional[CategoryOut] = None

    @field_serializer("price")
    def serialize_price(self, price: Decimal) -> float:
        return float(price)


class ContactCreate(APIModel):
    """Public contact form submission."""

    name: Annotated[
        str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)
    ]
    email: EmailStr
    phone: Optional[str] = Field(default=None, max_length=50)
    message: str = Field(min_length=10, max_length=1000)

    @field_validator("email")
    @classmethod
    def email_length(cls, value: str) -> str:
        if len(value) > 100:
            raise ValueError("Email must be at most 100 characters")
        return value

    @field_validator("phone", mode="before")
    @classmethod
    def empty_phone_is_none(cls, value):
        return value or None


class ContactOut(APIModel):
    """Stored contact request."""

    id: str
    name: str
    email: str
    phone: Optional[str] = None
    message: str
    read: bool
    created_at: datetime


class ContactReadUpdate(APIModel):
    """Payload toggling the read flag of a contact request."""

    read: bool


class NotificationOutcome(APIModel):
    """Result of the two notification attempts for a contact request."""

    status: Literal["sent", "partial", "failed"]
    admin_email: bool
    client_email: bool
    errors: List[str] = []


class ContactSubmitted(APIModel):
    """Response to a public contact submission."""

    success: bool = True
    message: str
    id: str
    notification: NotificationOutcome


class MailCheck(APIModel):
    """Result of an SMTP connectivity probe."""

    success: bool
    message: str
    config: dict


class Message(APIModel):
    """Plain confirmation message."""

    message: str
