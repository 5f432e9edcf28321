"""MCP Server for the stationery hub storefront."""

import asyncio
import json
import logging
import mimetypes
import os
from typing import Any, Optional

from mcp.server import Server
from mcp.types import Resource, TextContent, Tool
from pydantic import AnyUrl

from .catalog import (
    ALL_CATEGORIES,
    ALL_PRICES,
    CATEGORIES,
    PRICE_RANGES,
    PRODUCT_CATEGORIES,
    filter_products,
    product_form,
    search_blog_posts,
)
from .checkout import DELIVERY_AREAS
from .config import Settings, configure_logging
from .data_source import OFFLINE_NOTICE
from .models import AdminCredentials, BlogPostForm, CartItem, ImageUpload, Order, PasswordChange
from .state import AppState

logger = logging.getLogger("stationery-mcp-server")

NOT_AUTHENTICATED = "Error: Not authenticated. Please login with stationery_admin_login first."

ADMIN_TOOLS = {
    "stationery_admin_list_orders",
    "stationery_admin_get_order",
    "stationery_admin_add_product",
    "stationery_admin_update_product",
    "stationery_admin_delete_product",
    "stationery_admin_add_blog_post",
    "stationery_admin_update_blog_post",
    "stationery_admin_delete_blog_post",
    "stationery_admin_change_password",
}

IMAGE_PROPERTY = {
    "type": "string",
    "description": "Optional path of a local image file to upload",
}

PRODUCT_PROPERTIES = {
    "name": {"type": "string", "description": "Product name"},
    "description": {"type": "string", "description": "Product description"},
    "price": {"type": "number", "minimum": 0, "description": "Price"},
    "category": {"type": "string", "enum": PRODUCT_CATEGORIES, "description": "Category"},
    "image_path": IMAGE_PROPERTY,
}

BLOG_POST_PROPERTIES = {
    "title": {"type": "string", "description": "Post title"},
    "content": {"type": "string", "description": "Post body"},
    "author": {"type": "string", "description": "Author name"},
    "image_path": IMAGE_PROPERTY,
}

TOOLS = [
    Tool(
        name="stationery_list_products",
        description="List catalog products, optionally filtered by search text, category and price range",
        inputSchema={
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "description": "Case-insensitive text matched against name and description",
                },
                "category": {
                    "type": "string",
                    "enum": CATEGORIES,
                    "description": f"Category filter (default: {ALL_CATEGORIES})",
                },
                "price_range": {
                    "type": "string",
                    "enum": [r.id for r in PRICE_RANGES],
                    "description": f"Price range filter (default: {ALL_PRICES})",
                },
            },
        },
    ),
    Tool(
        name="stationery_add_to_cart",
        description="Add one unit of a product to the shopping cart",
        inputSchema={
            "type": "object",
            "properties": {
                "product_id": {"type": "string", "description": "Product ID from the catalog"},
            },
            "required": ["product_id"],
        },
    ),
    Tool(
        name="stationery_remove_from_cart",
        description="Remove a product from the shopping cart",
        inputSchema={
            "type": "object",
            "properties": {
                "product_id": {"type": "string", "description": "Product ID to remove"},
            },
            "required": ["product_id"],
        },
    ),
    Tool(
        name="stationery_update_cart_quantity",
        description="Set the quantity of a cart item; zero or less removes it",
        inputSchema={
            "type": "object",
            "properties": {
                "product_id": {"type": "string", "description": "Product ID to update"},
                "quantity": {"type": "integer", "description": "New quantity"},
            },
            "required": ["product_id", "quantity"],
        },
    ),
    Tool(
        name="stationery_get_cart",
        description="Get current shopping cart contents with totals",
        inputSchema={"type": "object", "properties": {}},
    ),
    Tool(
        name="stationery_clear_cart",
        description="Remove every item from the shopping cart",
        inputSchema={"type": "object", "properties": {}},
    ),
    Tool(
        name="stationery_toggle_cart",
        description="Open or close the cart panel",
        inputSchema={"type": "object", "properties": {}},
    ),
    Tool(
        name="stationery_get_checkout_summary",
        description="Show the order summary: items, selected delivery area, subtotal, delivery cost and total",
        inputSchema={"type": "object", "properties": {}},
    ),
    Tool(
        name="stationery_select_delivery_area",
        description="Select the delivery area used for the checkout total",
        inputSchema={
            "type": "object",
            "properties": {
                "area": {
                    "type": "string",
                    "enum": [a.id for a in DELIVERY_AREAS],
                    "description": "Delivery area",
                },
            },
            "required": ["area"],
        },
    ),
    Tool(
        name="stationery_list_delivery_areas",
        description="List delivery areas and their delivery cost",
        inputSchema={"type": "object", "properties": {}},
    ),
    Tool(
        name="stationery_checkout",
        description="Place an order for the current cart",
        inputSchema={
            "type": "object",
            "properties": {
                "name": {"type": "string", "description": "Customer name"},
                "phone": {"type": "string", "description": "Customer phone number"},
                "address": {"type": "string", "description": "Delivery address"},
                "area": {
                    "type": "string",
                    "enum": [a.id for a in DELIVERY_AREAS],
                    "description": f"Delivery area (default: {DELIVERY_AREAS[0].id})",
                },
            },
            "required": ["name", "phone", "address"],
        },
    ),
    Tool(
        name="stationery_list_blog_posts",
        description="List blog posts, optionally searching title and content",
        inputSchema={
            "type": "object",
            "properties": {
                "search": {"type": "string", "description": "Case-insensitive text to look for"},
            },
        },
    ),
    Tool(
        name="stationery_admin_login",
        description=(
            "Log in to the admin dashboard. Uses credentials from environment "
            "(STATIONERY_ADMIN_USERNAME, STATIONERY_ADMIN_PASSWORD) if not provided."
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "username": {"type": "string", "description": "Admin username"},
                "password": {"type": "string", "description": "Admin password"},
            },
        },
    ),
    Tool(
        name="stationery_admin_logout",
        description="Log out of the admin dashboard",
        inputSchema={"type": "object", "properties": {}},
    ),
    Tool(
        name="stationery_admin_list_orders",
        description="List customer orders (admin)",
        inputSchema={"type": "object", "properties": {}},
    ),
    Tool(
        name="stationery_admin_get_order",
        description="Get full details of one order (admin)",
        inputSchema={
            "type": "object",
            "properties": {
                "order_id": {"type": "string", "description": "Order ID"},
            },
            "required": ["order_id"],
        },
    ),
    Tool(
        name="stationery_admin_add_product",
        description="Add a product to the catalog (admin)",
        inputSchema={
            "type": "object",
            "properties": PRODUCT_PROPERTIES,
            "required": ["name", "description", "price", "category"],
        },
    ),
    Tool(
        name="stationery_admin_update_product",
        description="Replace the fields of an existing product (admin)",
        inputSchema={
            "type": "object",
            "properties": {
                "product_id": {"type": "string", "description": "Product ID"},
                **PRODUCT_PROPERTIES,
            },
            "required": ["product_id", "name", "description", "price", "category"],
        },
    ),
    Tool(
        name="stationery_admin_delete_product",
        description="Delete a product (admin)",
        inputSchema={
            "type": "object",
            "properties": {
                "product_id": {"type": "string", "description": "Product ID"},
            },
            "required": ["product_id"],
        },
    ),
    Tool(
        name="stationery_admin_add_blog_post",
        description="Publish a blog post (admin)",
        inputSchema={
            "type": "object",
            "properties": BLOG_POST_PROPERTIES,
            "required": ["title", "content", "author"],
        },
    ),
    Tool(
        name="stationery_admin_update_blog_post",
        description="Replace the fields of an existing blog post (admin)",
        inputSchema={
            "type": "object",
            "properties": {
                "post_id": {"type": "string", "description": "Blog post ID"},
                **BLOG_POST_PROPERTIES,
            },
            "required": ["post_id", "title", "content", "author"],
        },
    ),
    Tool(
        name="stationery_admin_delete_blog_post",
        description="Delete a blog post (admin)",
        inputSchema={
            "type": "object",
            "properties": {
                "post_id": {"type": "string", "description": "Blog post ID"},
            },
            "required": ["post_id"],
        },
    ),
    Tool(
        name="stationery_admin_change_password",
        description="Change the admin password (admin)",
        inputSchema={
            "type": "object",
            "properties": {
                "old_password": {"type": "string", "description": "Current password"},
                "new_password": {"type": "string", "description": "New password"},
                "confirm_password": {"type": "string", "description": "New password again"},
            },
            "required": ["old_password", "new_password", "confirm_password"],
        },
    ),
    Tool(
        name="stationery_connection_status",
        description="Probe the backend and report whether it is reachable",
        inputSchema={"type": "object", "properties": {}},
    ),
]


def _format_cart(items: list[CartItem], total: Any) -> str:
    if not items:
        return "Your cart is empty"
    lines = [f"Shopping Cart ({len(items)} item(s)):\n"]
    for i, item in enumerate(items, 1):
        lines.append(f"{i}. {item.name} (ID: {item.id})")
        lines.append(f"   Quantity: {item.quantity}")
        lines.append(f"   Price: ${item.price}")
        lines.append(f"   Subtotal: ${item.subtotal}")
    lines.append(f"\nTotal: ${total}")
    return "\n".join(lines)


def _format_order(order: Order) -> str:
    lines = [f"Order {order.id}"]
    lines.append(f"Status: {order.status_label}")
    if order.created_at:
        lines.append(f"Date: {order.created_at}")
    lines.append(f"Customer: {order.name}, {order.phone}")
    lines.append(f"Address: {order.address} ({order.area})")
    for item in order.products:
        lines.append(f"  - {item.name} x{item.quantity} @ ${item.price}")
    lines.append(f"Subtotal: ${order.subtotal}")
    lines.append(f"Total: ${order.total}")
    return "\n".join(lines)


def _format_summary(state: AppState) -> str:
    summary = state.checkout.summary()
    if summary.empty:
        return f"{summary.message}. Use stationery_list_products to continue shopping."
    lines = ["Order Summary:\n"]
    for item in summary.items:
        lines.append(f"- {item.name} x{item.quantity}: ${item.subtotal}")
    lines.append(f"\nSubtotal: ${summary.subtotal}")
    lines.append(f"Delivery ({summary.area.name}): ${summary.delivery_cost}")
    lines.append(f"Total: ${summary.total}")
    return "\n".join(lines)


def _load_image(path: Optional[str]) -> Optional[ImageUpload]:
    """Read a local image file for upload."""
    if not path:
        return None
    content_type = mimetypes.guess_type(path)[0] or "application/octet-stream"
    with open(path, "rb") as f:
        content = f.read()
    return ImageUpload(filename=os.path.basename(path), content=content, content_type=content_type)


async def handle_tool(state: AppState, name: str, arguments: dict[str, Any]) -> str:
    """
    Execute one tool call against the application state.

    Returns:
        Text result shown to the caller
    """
    if name in ADMIN_TOOLS and not state.auth_manager.is_authenticated():
        return NOT_AUTHENTICATED

    if name == "stationery_list_products":
        offline = await state.refresh_catalog()
        products = filter_products(
            state.catalog,
            query=arguments.get("query", ""),
            category=arguments.get("category", ALL_CATEGORIES),
            price_range=arguments.get("price_range", ALL_PRICES),
        )
        lines = []
        if offline:
            lines.append(f"{OFFLINE_NOTICE}\n")
        if not products:
            lines.append("No products found")
            return "\n".join(lines)
        lines.append(f"Found {len(products)} product(s):\n")
        for i, product in enumerate(products, 1):
            lines.append(f"{i}. {product.name}")
            lines.append(f"   ID: {product.id}")
            lines.append(f"   Price: ${product.price}")
            lines.append(f"   Category: {product.category}")
            if product.description:
                lines.append(f"   {product.description}")
        return "\n".join(lines)

    elif name == "stationery_add_to_cart":
        product_id = arguments["product_id"]
        product = await state.find_product(product_id)
        if product is None:
            return f"Product {product_id} not found"
        state.cart.add_to_cart(product)
        item = state.cart.find(product_id)
        return f"Added {product.name} to cart (quantity: {item.quantity if item else 1})"

    elif name == "stationery_remove_from_cart":
        state.cart.remove_from_cart(arguments["product_id"])
        return f"Removed product {arguments['product_id']} from cart"

    elif name == "stationery_update_cart_quantity":
        product_id = arguments["product_id"]
        quantity = int(arguments["quantity"])
        state.cart.update_quantity(product_id, quantity)
        if quantity <= 0:
            return f"Removed product {product_id} from cart"
        return f"Updated product {product_id} quantity to {quantity}"

    elif name == "stationery_get_cart":
        return _format_cart(state.cart.items, state.cart.total_price)

    elif name == "stationery_clear_cart":
        state.cart.clear_cart()
        return "Cart cleared"

    elif name == "stationery_toggle_cart":
        is_open = state.cart.toggle_cart()
        return f"Cart is now {'open' if is_open else 'closed'}"

    elif name == "stationery_get_checkout_summary":
        return _format_summary(state)

    elif name == "stationery_select_delivery_area":
        area = state.checkout.select_area(arguments["area"])
        return f"Delivery area set to {area.name}\n\n{_format_summary(state)}"

    elif name == "stationery_list_delivery_areas":
        return "\n".join(f"{area.name}: ${area.cost}" for area in DELIVERY_AREAS)

    elif name == "stationery_checkout":
        if arguments.get("area"):
            state.checkout.select_area(arguments["area"])
        customer = state.checkout.validate_customer(
            arguments.get("name", ""), arguments.get("phone", ""), arguments.get("address", "")
        )
        subtotal, delivery, total = (
            state.checkout.subtotal,
            state.checkout.delivery_cost,
            state.checkout.total,
        )
        message = await state.checkout.submit(customer)
        return (
            f"{message}\n"
            f"Subtotal: ${subtotal}\n"
            f"Delivery ({state.checkout.area.name}): ${delivery}\n"
            f"Total: ${total}"
        )

    elif name == "stationery_list_blog_posts":
        result = await state.data.blog_posts()
        posts = search_blog_posts(result.items, arguments.get("search", ""))
        lines = [f"{OFFLINE_NOTICE}\n"] if result.offline else []
        for post in posts:
            byline = f" by {post.author}" if post.author else ""
            date = f" ({post.published_on})" if post.published_on else ""
            lines.append(f"- {post.title}{byline}{date} (ID: {post.id})")
        return "\n".join(lines) or "No blog posts"

    elif name == "stationery_admin_login":
        username = arguments.get("username")
        password = arguments.get("password")
        if not username or not password:
            if state.settings.admin_credentials is None:
                return (
                    "Error: No credentials provided and none configured in environment "
                    "(STATIONERY_ADMIN_USERNAME, STATIONERY_ADMIN_PASSWORD)"
                )
            credentials = state.settings.admin_credentials
        else:
            credentials = AdminCredentials(username=username, password=password)
        await state.client.login(credentials)
        return f"Successfully logged in as {credentials.username.strip()}"

    elif name == "stationery_admin_logout":
        state.client.logout()
        return "Successfully logged out"

    elif name == "stationery_admin_list_orders":
        result = await state.data.orders()
        lines = [f"{OFFLINE_NOTICE}\n"] if result.offline else []
        if not result.items:
            lines.append("No orders found")
        for order in result.items:
            lines.append(
                f"- {order.id}: {order.name}, {order.area}, ${order.total} [{order.status_label}]"
            )
        return "\n".join(lines)

    elif name == "stationery_admin_get_order":
        order_id = arguments["order_id"]
        order = await state.find_order(order_id)
        if order is None:
            return f"Order {order_id} not found"
        return _format_order(order)

    elif name == "stationery_admin_add_product":
        form = product_form(
            arguments["name"], arguments["description"], arguments["price"], arguments["category"]
        )
        await state.client.add_product(form, _load_image(arguments.get("image_path")))
        return f"Product {form.name} added"

    elif name == "stationery_admin_update_product":
        product_id = arguments["product_id"]
        form = product_form(
            arguments["name"], arguments["description"], arguments["price"], arguments["category"]
        )
        await state.client.update_product(product_id, form, _load_image(arguments.get("image_path")))
        return f"Product {product_id} updated"

    elif name == "stationery_admin_delete_product":
        await state.client.delete_product(arguments["product_id"])
        return f"Product {arguments['product_id']} deleted"

    elif name == "stationery_admin_add_blog_post":
        form = BlogPostForm(
            title=arguments["title"], content=arguments["content"], author=arguments["author"]
        )
        await state.client.add_blog_post(form, _load_image(arguments.get("image_path")))
        return f"Blog post {form.title} added"

    elif name == "stationery_admin_update_blog_post":
        post_id = arguments["post_id"]
        form = BlogPostForm(
            title=arguments["title"], content=arguments["content"], author=arguments["author"]
        )
        await state.client.update_blog_post(post_id, form, _load_image(arguments.get("image_path")))
        return f"Blog post {post_id} updated"

    elif name == "stationery_admin_delete_blog_post":
        await state.client.delete_blog_post(arguments["post_id"])
        return f"Blog post {arguments['post_id']} deleted"

    elif name == "stationery_admin_change_password":
        change = PasswordChange(
            old_password=arguments.get("old_password", ""),
            new_password=arguments.get("new_password", ""),
            confirm_password=arguments.get("confirm_password", ""),
        )
        return await state.client.change_password(change)

    elif name == "stationery_connection_status":
        status = await state.prober.probe()
        return f"Backend {state.client.base_url} is {status.value}"

    return f"Unknown tool: {name}"


def build_server(state: AppState) -> Server:
    """Create the MCP server bound to one application state."""
    app = Server("stationery-mcp-server")

    @app.list_resources()
    async def list_resources() -> list[Resource]:
        """List available resources."""
        return [
            Resource(
                uri=AnyUrl("stationery://cart"),
                name="Shopping Cart",
                mimeType="application/json",
                description="Current shopping cart contents",
            ),
            Resource(
                uri=AnyUrl("stationery://catalog"),
                name="Product Catalog",
                mimeType="application/json",
                description="Products currently offered",
            ),
        ]

    @app.read_resource()
    async def read_resource(uri: AnyUrl) -> str:
        """Read a resource by URI."""
        uri_str = str(uri)

        if uri_str == "stationery://cart":
            return state.cart.snapshot().model_dump_json(indent=2, by_alias=True)

        elif uri_str == "stationery://catalog":
            await state.refresh_catalog()
            products = [p.model_dump(mode="json", by_alias=True) for p in state.catalog]
            return json.dumps(products, indent=2)

        raise ValueError(f"Unknown resource: {uri}")

    @app.list_tools()
    async def list_tools() -> list[Tool]:
        """List available tools."""
        return TOOLS

    @app.call_tool()
    async def call_tool(name: str, arguments: Any) -> list[TextContent]:
        """Handle tool calls."""
        try:
            text = await handle_tool(state, name, arguments or {})
        except Exception as e:
            logger.error(f"Error executing tool {name}: {e}", exc_info=True)
            text = f"Error: {e}"
        return [TextContent(type="text", text=text)]

    return app


async def main() -> None:
    """Main entry point for the MCP server."""
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    state = AppState.from_settings(settings)

    if settings.admin_credentials:
        logger.info(f"Admin credentials loaded from environment for: {settings.admin_credentials.username}")
    else:
        logger.warning("No admin credentials found in environment variables")
        logger.warning("Order tools will require manual login via stationery_admin_login")

    logger.info("Starting Stationery Hub MCP Server...")
    app = build_server(state)

    from mcp.server.stdio import stdio_server

    try:
        async with stdio_server() as (read_stream, write_stream):
            await app.run(
                read_stream,
                write_stream,
                app.create_initialization_options(),
            )
    finally:
        await state.aclose()


if __name__ == "__main__":
    asyncio.run(main())
