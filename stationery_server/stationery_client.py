"""Stationery Hub backend API client."""

import logging
from typing import Any, Optional, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from .auth import AuthManager
from .config import DEFAULT_BACKEND_URL
from .exceptions import BackendError, BackendUnavailableError, InputValidationError
from .models import (
    AdminCredentials,
    BlogPost,
    BlogPostForm,
    ImageUpload,
    Order,
    OrderPayload,
    PasswordChange,
    Product,
    ProductForm,
)

logger = logging.getLogger(__name__)

PLACEHOLDER_IMAGE_URL = (
    "https://images.unsplash.com/photo-1544816155-12df9643f363?auto=format&fit=crop&q=80&w=400"
)

ModelT = TypeVar("ModelT", bound=BaseModel)


class StationeryClient:
    """Client for the stationery hub REST backend."""

    def __init__(
        self,
        auth_manager: AuthManager,
        base_url: str = DEFAULT_BACKEND_URL,
        timeout: float = 30.0,
        login_timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            auth_manager: Admin session manager
            base_url: Backend origin
            timeout: Default request timeout in seconds
            login_timeout: Timeout for the admin login request
            transport: Optional transport, mainly for tests
        """
        self.auth_manager = auth_manager
        self.base_url = base_url.rstrip("/")
        self.login_timeout = login_timeout
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            follow_redirects=True,
            headers={"Accept": "application/json, text/plain, */*"},
            transport=transport,
        )

    async def close(self) -> None:
        await self.client.aclose()

    def image_url(self, image: str) -> str:
        """Resolve a stored image value to an absolute URL."""
        if not image:
            return PLACEHOLDER_IMAGE_URL
        if image.startswith("http"):
            return image
        return f"{self.base_url}/uploads/{image}"

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Send a request, turning transport failures into BackendUnavailableError."""
        try:
            return await self.client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            logger.error(f"{method} {path} timed out: {e}")
            raise BackendUnavailableError(f"Request to {path} timed out") from e
        except httpx.TransportError as e:
            logger.error(f"{method} {path} failed: {e}")
            raise BackendUnavailableError(f"Could not reach backend at {self.base_url}") from e

    @staticmethod
    def _server_message(response: httpx.Response, fallback: str) -> str:
        """Extract the server-provided message, if any."""
        try:
            data = response.json()
        except ValueError:
            return fallback
        if isinstance(data, dict):
            for key in ("message", "error", "msg"):
                if data.get(key):
                    return str(data[key])
        return fallback

    async def _write(self, method: str, path: str, action: str, **kwargs: Any) -> dict[str, Any]:
        """
        Perform an admin write and surface failures with user-facing messages.

        Args:
            method: HTTP method
            path: Endpoint path
            action: Verb phrase used in messages, e.g. "adding product"

        Returns:
            Decoded JSON body, or an empty dict when there is none
        """
        try:
            response = await self._request(method, path, **kwargs)
        except BackendUnavailableError as e:
            raise BackendUnavailableError(
                f"Error {action}. Please check your connection."
            ) from e

        if not response.is_success:
            message = self._server_message(response, "Please try again.")
            logger.error(f"{action} failed: status={response.status_code}, message={message}")
            raise BackendError(f"Error {action}: {message}", status_code=response.status_code)

        logger.info(f"{action} succeeded: status={response.status_code}")
        try:
            data = response.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {"data": data}

    @staticmethod
    def _unwrap_list(data: Any, key: str) -> list[Any]:
        """Find the record list in a response that may wrap it under ``key`` or ``data``."""
        if isinstance(data, dict):
            data = data.get(key) or data.get("data") or []
        return data if isinstance(data, list) else []

    @staticmethod
    def _parse_records(records: list[Any], model: type[ModelT]) -> list[ModelT]:
        parsed: list[ModelT] = []
        for record in records:
            try:
                parsed.append(model.model_validate(record))
            except ValidationError as e:
                logger.warning(f"Skipping invalid {model.__name__} record: {e}")
        return parsed

    async def _get_list(self, path: str, key: str, model: type[ModelT]) -> list[ModelT]:
        response = await self._request("GET", path)
        if not response.is_success:
            logger.error(f"GET {path} failed: status={response.status_code}")
            raise BackendError(f"Failed to fetch {key}", status_code=response.status_code)
        try:
            data = response.json()
        except ValueError as e:
            raise BackendError(f"Failed to fetch {key}: invalid response") from e
        return self._parse_records(self._unwrap_list(data, key), model)

    @staticmethod
    def _multipart(
        fields: dict[str, str], image: Optional[ImageUpload]
    ) -> list[tuple[str, tuple[Optional[str], Any]]]:
        """Build a multipart body; plain fields are sent as parts without a filename."""
        parts: list[tuple[str, tuple[Optional[str], Any]]] = [
            (name, (None, value)) for name, value in fields.items()
        ]
        if image is not None:
            parts.append(("image", (image.filename, image.content, image.content_type)))
        return parts

    # Probing

    async def probe(
        self, path: str, method: str = "HEAD", timeout: Optional[float] = None
    ) -> httpx.Response:
        """Issue a lightweight existence check against an endpoint."""
        kwargs: dict[str, Any] = {}
        if timeout is not None:
            kwargs["timeout"] = timeout
        return await self._request(method, path, **kwargs)

    # Products

    async def get_products(self) -> list[Product]:
        """
        Fetch the full product catalog.

        Returns:
            List of products, in backend order
        """
        logger.info("=== GET PRODUCTS ===")
        products = await self._get_list("/product/get", "products", Product)
        logger.info(f"Fetched {len(products)} products")
        return products

    async def add_product(
        self, form: ProductForm, image: Optional[ImageUpload] = None
    ) -> dict[str, Any]:
        logger.info(f"=== ADD PRODUCT: name={form.name} ===")
        return await self._write(
            "POST",
            "/product/add",
            "adding product",
            files=self._multipart(self._product_fields(form), image),
        )

    async def update_product(
        self, product_id: str, form: ProductForm, image: Optional[ImageUpload] = None
    ) -> dict[str, Any]:
        logger.info(f"=== UPDATE PRODUCT: id={product_id} ===")
        return await self._write(
            "PUT",
            f"/product/update/{product_id}",
            "updating product",
            files=self._multipart(self._product_fields(form), image),
        )

    async def delete_product(self, product_id: str) -> dict[str, Any]:
        logger.info(f"=== DELETE PRODUCT: id={product_id} ===")
        return await self._write("DELETE", f"/product/delete/{product_id}", "deleting product")

    @staticmethod
    def _product_fields(form: ProductForm) -> dict[str, str]:
        return {
            "name": form.name,
            "description": form.description,
            "price": str(form.price),
            "category": form.category,
        }

    # Blog

    async def get_blog_posts(self) -> list[BlogPost]:
        logger.info("=== GET BLOG POSTS ===")
        posts = await self._get_list("/blog/getblogs", "blogs", BlogPost)
        logger.info(f"Fetched {len(posts)} blog posts")
        return posts

    async def add_blog_post(
        self, form: BlogPostForm, image: Optional[ImageUpload] = None
    ) -> dict[str, Any]:
        logger.info(f"=== ADD BLOG POST: title={form.title} ===")
        return await self._write(
            "POST",
            "/blog/addblogs",
            "adding blog post",
            files=self._multipart(form.model_dump(), image),
        )

    async def update_blog_post(
        self, post_id: str, form: BlogPostForm, image: Optional[ImageUpload] = None
    ) -> dict[str, Any]:
        logger.info(f"=== UPDATE BLOG POST: id={post_id} ===")
        return await self._write(
            "PUT",
            f"/blog/updateblog/{post_id}",
            "updating blog post",
            files=self._multipart(form.model_dump(), image),
        )

    async def delete_blog_post(self, post_id: str) -> dict[str, Any]:
        logger.info(f"=== DELETE BLOG POST: id={post_id} ===")
        return await self._write("DELETE", f"/blog/deleteblog/{post_id}", "deleting blog post")

    # Orders

    async def get_orders(self) -> list[Order]:
        logger.info("=== GET ORDERS ===")
        orders = await self._get_list("/api/getorders", "orders", Order)
        logger.info(f"Fetched {len(orders)} orders")
        return orders

    async def get_order(self, order_id: str) -> Optional[Order]:
        """
        Fetch a single order.

        Returns:
            The order, or None when the backend does not answer with one
        """
        logger.info(f"=== GET ORDER: id={order_id} ===")
        response = await self._request("GET", f"/api/getorder/{order_id}")
        if not response.is_success:
            logger.warning(f"Order {order_id} lookup failed: status={response.status_code}")
            return None
        try:
            data = response.json()
        except ValueError:
            logger.warning(f"Order {order_id} lookup returned a non-JSON body")
            return None
        if isinstance(data, dict):
            data = data.get("order") or data.get("data") or data
        try:
            return Order.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Order {order_id} response is not a valid order: {e}")
            return None

    async def send_order(self, payload: OrderPayload) -> dict[str, Any]:
        """
        Submit an order.

        Raises:
            BackendError: The backend rejected the order
            BackendUnavailableError: The backend could not be reached
        """
        logger.info(f"=== SEND ORDER: {len(payload.products)} line(s), total={payload.total} ===")
        try:
            response = await self._request(
                "POST", "/api/sendorder", json=payload.model_dump(mode="json", by_alias=True)
            )
        except BackendUnavailableError as e:
            raise BackendUnavailableError("Error placing order. Please try again.") from e

        if not response.is_success:
            message = self._server_message(response, "Please try again.")
            logger.error(f"Order rejected: status={response.status_code}, message={message}")
            raise BackendError(f"Error placing order: {message}", status_code=response.status_code)

        logger.info("Order placed")
        try:
            data = response.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {"data": data}

    # Admin

    async def login(self, credentials: AdminCredentials) -> dict[str, Any]:
        """
        Log in as admin and set the session flag.

        Args:
            credentials: Admin username and password

        Returns:
            Admin identity payload

        Raises:
            InputValidationError: Username or password is empty
            BackendError: Credentials rejected or unreadable response
            BackendUnavailableError: Timeout or unreachable backend
        """
        username = credentials.username.strip()
        if not username or not credentials.password.strip():
            raise InputValidationError("Please enter both username and password")

        logger.info(f"=== LOGIN: username={username} ===")
        try:
            response = await self.client.post(
                "/admin/login",
                json={"username": username, "password": credentials.password},
                timeout=self.login_timeout,
            )
        except httpx.TimeoutException as e:
            logger.error(f"Login timed out: {e}")
            raise BackendUnavailableError(
                "Request timeout. Please check your connection and try again."
            ) from e
        except httpx.TransportError as e:
            logger.error(f"Login could not reach backend: {e}")
            raise BackendUnavailableError("Unable to connect to the server.") from e

        logger.info(f"Login response: status={response.status_code}")
        content_type = response.headers.get("content-type", "")
        if "application/json" not in content_type:
            raise BackendError(
                "Server response format error. Please check backend configuration.",
                status_code=response.status_code,
            )
        try:
            data = response.json()
        except ValueError as e:
            raise BackendError(
                "Server response format error. Please check backend configuration.",
                status_code=response.status_code,
            ) from e
        if not isinstance(data, dict):
            data = {}

        if not response.is_success:
            message = self._server_message(response, "Invalid username or password")
            logger.error(f"Login failed: {message}")
            raise BackendError(message, status_code=response.status_code)

        admin = data.get("admin") or data.get("user") or data.get("data")
        if not isinstance(admin, dict):
            admin = {"username": username, "id": data.get("id") or "admin", "role": "admin"}

        self.auth_manager.save_session(admin)
        logger.info("Login successful")
        return admin

    def logout(self) -> None:
        """Clear the admin session flag."""
        self.auth_manager.clear_session()
        logger.info("Logged out successfully")

    async def change_password(self, change: PasswordChange) -> str:
        """
        Change the admin password.

        Returns:
            Success message

        Raises:
            InputValidationError: Missing field or mismatched confirmation
            BackendError: The backend refused the change
            BackendUnavailableError: The backend could not be reached
        """
        if not change.old_password or not change.new_password or not change.confirm_password:
            raise InputValidationError("All fields are required")
        if change.new_password != change.confirm_password:
            raise InputValidationError("New passwords do not match")

        logger.info("=== CHANGE ADMIN PASSWORD ===")
        try:
            response = await self._request(
                "PUT",
                "/admin/update",
                json={"oldPassword": change.old_password, "newpassword": change.new_password},
            )
        except BackendUnavailableError as e:
            raise BackendUnavailableError("Network error. Please check your connection.") from e

        if not response.is_success:
            message = self._server_message(response, "Failed to update password")
            logger.error(f"Password change failed: {message}")
            raise BackendError(message, status_code=response.status_code)

        return self._server_message(response, "Password updated successfully!")
