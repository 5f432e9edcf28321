"""Data models for the stationery storefront and admin dashboard."""

from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Optional

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    PlainSerializer,
    computed_field,
)


def _to_decimal(value: Any) -> Any:
    # Floats come from JSON; go through repr so 24.99 stays 24.99
    if isinstance(value, float):
        return Decimal(repr(value))
    return value


Money = Annotated[
    Decimal,
    BeforeValidator(_to_decimal),
    PlainSerializer(float, return_type=float, when_used="json"),
]


class Product(BaseModel):
    """Represents a product from the catalog."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id", description="Product ID")
    name: str = Field(description="Product name")
    description: str = Field(default="", description="Product description")
    price: Money = Field(ge=0, description="Product price")
    image: str = Field(default="", description="Image URL or uploaded file name")
    category: str = Field(default="", description="Product category")
    created_at: Optional[str] = Field(None, alias="createdAt", description="Creation timestamp")


class CartItem(Product):
    """Represents a product in the shopping cart."""

    quantity: int = Field(ge=1, description="Quantity of the product")

    @computed_field
    @property
    def subtotal(self) -> Money:
        return self.price * self.quantity


class Cart(BaseModel):
    """Snapshot of the shopping cart."""

    items: list[CartItem] = Field(default_factory=list, description="Cart items")
    is_open: bool = Field(default=False, description="Cart panel visibility")

    @computed_field
    @property
    def total(self) -> Money:
        return sum((item.price * item.quantity for item in self.items), Decimal("0"))

    @computed_field
    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)


class BlogPost(BaseModel):
    """Represents a blog post."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id", description="Post ID")
    title: str
    content: str = ""
    author: str = ""
    image: str = ""
    created_at: Optional[str] = Field(None, alias="createdAt")

    @property
    def published_on(self) -> Optional[str]:
        """Publication date as YYYY-MM-DD."""
        if not self.created_at:
            return None
        return self.created_at.split("T")[0]


class DeliveryArea(BaseModel):
    """A delivery area with a flat delivery cost."""

    id: str
    name: str
    cost: Money = Field(ge=0)


class OrderLine(BaseModel):
    """A product line snapshotted into an order."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    name: str
    quantity: int
    price: Money


class OrderStatus(str, Enum):
    """Order statuses as stored by the backend."""

    PENDING = "pending"
    DELIVERED = "Delivered"
    CANCELLED = "cancelled"


class OrderPayload(BaseModel):
    """Order as sent to the backend on checkout."""

    name: str
    phone: str
    address: str
    area: str
    products: list[OrderLine] = Field(default_factory=list)
    subtotal: Money
    total: Money
    status: str = OrderStatus.PENDING.value


# lower-cased status -> (label, color)
STATUS_DISPLAY = {
    OrderStatus.PENDING.value: ("Pending", "yellow"),
    OrderStatus.DELIVERED.value.lower(): ("Delivered", "green"),
    OrderStatus.CANCELLED.value: ("Cancelled", "red"),
    "canceled": ("Cancelled", "red"),
}
DEFAULT_STATUS_COLOR = "gray"


def status_display(status: str) -> tuple[str, str]:
    """Map an order status to its display label and color."""
    return STATUS_DISPLAY.get(status.lower(), (status, DEFAULT_STATUS_COLOR))


class Order(OrderPayload):
    """Order as returned by the backend."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    created_at: Optional[str] = Field(None, alias="createdAt")

    @computed_field
    @property
    def status_label(self) -> str:
        return status_display(self.status)[0]

    @computed_field
    @property
    def status_color(self) -> str:
        return status_display(self.status)[1]


class CustomerDetails(BaseModel):
    """Customer fields collected on checkout."""

    name: str
    phone: str
    address: str


class AdminCredentials(BaseModel):
    """Admin login credentials."""

    username: str
    password: str


class AdminSession(BaseModel):
    """Client-side admin session flag and display data."""

    authenticated: bool = Field(default=False, description="Authentication flag")
    user: Optional[dict[str, Any]] = Field(None, description="Admin identity payload")
    login_time: Optional[str] = Field(None, description="Login timestamp")


class PasswordChange(BaseModel):
    """Admin password change form."""

    old_password: str
    new_password: str
    confirm_password: str


class ImageUpload(BaseModel):
    """An image file attached to a product or blog form."""

    filename: str
    content: bytes
    content_type: str = "application/octet-stream"


class ProductForm(BaseModel):
    """Fields of the admin product add/update form."""

    name: str
    description: str
    price: Money = Field(ge=0)
    category: str


class BlogPostForm(BaseModel):
    """Fields of the admin blog post add/update form."""

    title: str
    content: str
    author: str
