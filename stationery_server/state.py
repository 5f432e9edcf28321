"""Application state shared by the HTTP and MCP surfaces."""

import logging
from typing import Optional

import httpx

from .auth import AuthManager
from .cart_store import CartStore
from .catalog import CatalogFilter
from .checkout import CheckoutAggregator
from .config import Settings
from .data_source import FallbackDataSource, LiveDataSource, SampleDataSource
from .models import Order, Product
from .prober import ConnectionProber
from .stationery_client import StationeryClient
from .storage import LocalStorage

logger = logging.getLogger(__name__)

LOGIN_PROBE_ENDPOINTS = ("/product/get", "/blog/getblogs")

# admin view -> read endpoint probed while the view is open
ADMIN_VIEW_ENDPOINTS = {
    "products": "/product/get",
    "blog-posts": "/blog/getblogs",
    "orders": "/api/getorders",
}


class AppState:
    """
    Everything one running application needs, created once at start-up.

    Surfaces receive this object explicitly instead of reaching for globals.
    """

    def __init__(
        self,
        settings: Settings,
        storage: LocalStorage,
        client: StationeryClient,
    ) -> None:
        self.settings = settings
        self.storage = storage
        self.client = client
        self.auth_manager = client.auth_manager
        self.cart = CartStore(storage)
        self.catalog_filter = CatalogFilter()
        self.checkout = CheckoutAggregator(self.cart, client)
        self.prober = self.admin_prober("products")
        self.data = FallbackDataSource(LiveDataSource(client), SampleDataSource(), self.prober)
        self.catalog: list[Product] = []
        self.catalog_offline = False

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "AppState":
        """
        Build the state from settings.

        Args:
            settings: Runtime settings
            transport: Optional HTTP transport, mainly for tests
        """
        storage = LocalStorage(settings.storage_file)
        auth_manager = AuthManager(storage)
        client = StationeryClient(
            auth_manager,
            base_url=settings.backend_url,
            timeout=settings.request_timeout,
            login_timeout=settings.login_timeout,
            transport=transport,
        )
        logger.info(f"Using backend {settings.backend_url}, storage {settings.storage_file}")
        return cls(settings, storage, client)

    def login_prober(self) -> ConnectionProber:
        """Prober for the login view: GET, short timeout, any non-5xx answer counts."""
        return ConnectionProber(
            self.client,
            endpoints=LOGIN_PROBE_ENDPOINTS,
            method="GET",
            timeout=self.settings.login_probe_timeout,
            interval=self.settings.probe_interval,
            accept_client_errors=True,
        )

    def admin_prober(self, view: str) -> ConnectionProber:
        """Prober for an admin view: HEAD against the view's read endpoint."""
        endpoint = ADMIN_VIEW_ENDPOINTS.get(view, ADMIN_VIEW_ENDPOINTS["products"])
        return ConnectionProber(
            self.client,
            endpoints=(endpoint,),
            method="HEAD",
            timeout=self.settings.probe_timeout,
            interval=self.settings.probe_interval,
        )

    async def refresh_catalog(self) -> bool:
        """
        Refetch the product list.

        Returns:
            True when the list came from the offline samples
        """
        result = await self.data.products()
        self.catalog = result.items
        self.catalog_offline = result.offline
        return result.offline

    async def find_product(self, product_id: str) -> Optional[Product]:
        if not self.catalog:
            await self.refresh_catalog()
        for product in self.catalog:
            if product.id == product_id:
                return product
        return None

    async def find_order(self, order_id: str) -> Optional[Order]:
        """
        Look up one order for the details view.

        The detail endpoint is tried first, then the copy in the order
        listing, then the offline samples.
        """
        listing = await self.data.orders()
        listed = next((order for order in listing.items if order.id == order_id), None)
        return await self.data.order(order_id, listed)

    async def aclose(self) -> None:
        await self.prober.stop()
        await self.client.close()
