"""Data providers for read paths: live backend, offline samples and fallback."""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Generic, Optional, Protocol, TypeVar

from .exceptions import BackendError, BackendUnavailableError
from .models import BlogPost, Order, OrderLine, Product
from .prober import ConnectionProber
from .stationery_client import StationeryClient

logger = logging.getLogger(__name__)

T = TypeVar("T")

OFFLINE_NOTICE = "Unable to connect to server. Showing sample data."

SAMPLE_PRODUCTS = [
    Product(
        id="1",
        name="Premium Notebook",
        description="High-quality paper notebook with leather cover",
        price=Decimal("24.99"),
        image="https://images.unsplash.com/photo-1544816155-12df9643f363?auto=format&fit=crop&q=80&w=400",
        category="Notebooks",
    ),
    Product(
        id="2",
        name="Fountain Pen Set",
        description="Elegant fountain pen with multiple ink cartridges",
        price=Decimal("45.99"),
        image="https://images.unsplash.com/photo-1585336261022-680e295ce3fe?auto=format&fit=crop&q=80&w=400",
        category="Pens",
    ),
    Product(
        id="3",
        name="Watercolor Paper Pack",
        description="Professional grade watercolor paper, 20 sheets",
        price=Decimal("18.99"),
        image="https://images.unsplash.com/photo-1513475382585-d06e58bcb0e0?auto=format&fit=crop&q=80&w=400",
        category="Paper",
    ),
]

SAMPLE_BLOG_POSTS = [
    BlogPost(
        id="1",
        title="The Art of Journaling",
        content=(
            "Discover how daily journaling can enhance your creativity and productivity. "
            "Writing by hand has been shown to improve memory retention and help process "
            "emotions more effectively..."
        ),
        image="https://images.unsplash.com/photo-1517842645767-c639042777db?auto=format&fit=crop&q=80",
        created_at="2024-02-28",
        author="Sarah Johnson",
    ),
    BlogPost(
        id="2",
        title="Choosing the Perfect Fountain Pen",
        content=(
            "A comprehensive guide to selecting your ideal fountain pen. From nib sizes to "
            "ink flow, learn what makes each pen unique and how to find the perfect match "
            "for your writing style..."
        ),
        image="https://images.unsplash.com/photo-1585336261022-680e295ce3fe?auto=format&fit=crop&q=80",
        created_at="2024-02-25",
        author="Michael Chen",
    ),
]

SAMPLE_ORDERS = [
    Order(
        id="sample-order-1",
        name="Alice Johnson",
        phone="+1234567890",
        address="123 Main St, Apartment 4B, Downtown Area",
        area="Tartous",
        products=[
            OrderLine(id="1", name="Premium Notebook", quantity=2, price=Decimal("24.99")),
            OrderLine(id="2", name="Fountain Pen Set", quantity=1, price=Decimal("45.99")),
        ],
        subtotal=Decimal("95.97"),
        total=Decimal("100.97"),
        status="pending",
        created_at="2024-01-20T10:00:00Z",
    ),
    Order(
        id="sample-order-2",
        name="Bob Smith",
        phone="+1987654321",
        address="456 Oak Avenue, Suite 12, Business District",
        area="Damascus",
        products=[
            OrderLine(id="3", name="Watercolor Paper Pack", quantity=3, price=Decimal("18.99")),
        ],
        subtotal=Decimal("56.97"),
        total=Decimal("68.97"),
        status="Delivered",
        created_at="2024-01-19T14:30:00Z",
    ),
]


class DataSource(Protocol):
    """Read capability shared by the live and sample providers."""

    async def list_products(self) -> list[Product]: ...

    async def list_blog_posts(self) -> list[BlogPost]: ...

    async def list_orders(self) -> list[Order]: ...

    async def get_order(self, order_id: str) -> Optional[Order]: ...


class LiveDataSource:
    """Reads from the backend."""

    def __init__(self, client: StationeryClient) -> None:
        self.client = client

    async def list_products(self) -> list[Product]:
        return await self.client.get_products()

    async def list_blog_posts(self) -> list[BlogPost]:
        return await self.client.get_blog_posts()

    async def list_orders(self) -> list[Order]:
        return await self.client.get_orders()

    async def get_order(self, order_id: str) -> Optional[Order]:
        return await self.client.get_order(order_id)


class SampleDataSource:
    """Serves fixed sample records for offline use."""

    async def list_products(self) -> list[Product]:
        return list(SAMPLE_PRODUCTS)

    async def list_blog_posts(self) -> list[BlogPost]:
        return list(SAMPLE_BLOG_POSTS)

    async def list_orders(self) -> list[Order]:
        return list(SAMPLE_ORDERS)

    async def get_order(self, order_id: str) -> Optional[Order]:
        for order in SAMPLE_ORDERS:
            if order.id == order_id:
                return order
        return None


@dataclass
class FetchResult(Generic[T]):
    """Records from a read path, flagged when they came from the fallback."""

    items: list[T] = field(default_factory=list)
    offline: bool = False
    error: Optional[str] = None


class FallbackDataSource:
    """
    Reads from a primary provider and degrades to a fallback on failure.

    Each read is independent: one failing fetch does not affect the others.
    """

    def __init__(
        self,
        primary: DataSource,
        fallback: DataSource,
        prober: Optional[ConnectionProber] = None,
    ) -> None:
        self.primary = primary
        self.fallback = fallback
        self.prober = prober

    def _degrade(self, what: str, error: Exception) -> None:
        logger.error(f"Error fetching {what}: {error}")
        if self.prober is not None:
            self.prober.mark_offline()

    def _recover(self) -> None:
        if self.prober is not None:
            self.prober.mark_online()

    async def products(self) -> FetchResult[Product]:
        try:
            items = await self.primary.list_products()
        except (BackendError, BackendUnavailableError) as e:
            self._degrade("products", e)
            return FetchResult(await self.fallback.list_products(), offline=True, error=str(e))
        self._recover()
        return FetchResult(items)

    async def blog_posts(self) -> FetchResult[BlogPost]:
        try:
            items = await self.primary.list_blog_posts()
        except (BackendError, BackendUnavailableError) as e:
            self._degrade("blog posts", e)
            return FetchResult(await self.fallback.list_blog_posts(), offline=True, error=str(e))
        self._recover()
        return FetchResult(items)

    async def orders(self) -> FetchResult[Order]:
        try:
            items = await self.primary.list_orders()
        except (BackendError, BackendUnavailableError) as e:
            self._degrade("orders", e)
            return FetchResult(await self.fallback.list_orders(), offline=True, error=str(e))
        self._recover()
        return FetchResult(items)

    async def order(self, order_id: str, listed: Optional[Order] = None) -> Optional[Order]:
        """
        Fetch order details, falling back to the order already listed.

        Args:
            order_id: Order ID
            listed: The order as it appeared in the listing
        """
        try:
            order = await self.primary.get_order(order_id)
        except BackendUnavailableError as e:
            logger.error(f"Error fetching order details: {e}")
            order = None
        if order is not None:
            return order
        if listed is not None:
            return listed
        return await self.fallback.get_order(order_id)
