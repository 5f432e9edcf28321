"""HTTP server for the stationery storefront and admin dashboard."""

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import Any, Callable, Optional

from fastapi import APIRouter, Depends, FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse, RedirectResponse, StreamingResponse
from pydantic import BaseModel

from .catalog import (
    ALL_CATEGORIES,
    CATEGORIES,
    PRICE_RANGES,
    product_form,
    search_blog_posts,
    search_products_by_name,
)
from .checkout import EMPTY_CART_MESSAGE
from .config import Settings, configure_logging
from .data_source import OFFLINE_NOTICE
from .exceptions import (
    BackendError,
    BackendUnavailableError,
    EmptyCartError,
    InputValidationError,
)
from .models import (
    AdminCredentials,
    BlogPost,
    BlogPostForm,
    ImageUpload,
    PasswordChange,
    Product,
)
from .state import AppState

configure_logging()
logger = logging.getLogger("stationery-http-server")

router = APIRouter()


def get_state(request: Request) -> AppState:
    return request.app.state.stationery


# Request/Response Models
class FilterRequest(BaseModel):
    query: Optional[str] = None
    category: Optional[str] = None
    price_range: Optional[str] = None


class CartProductRequest(BaseModel):
    product_id: str


class UpdateCartRequest(BaseModel):
    product_id: str
    quantity: int


class AreaRequest(BaseModel):
    area: str


class CheckoutRequest(BaseModel):
    name: str = ""
    phone: str = ""
    address: str = ""
    area: Optional[str] = None


class LoginRequest(BaseModel):
    username: str = ""
    password: str = ""


class LoginResponse(BaseModel):
    success: bool
    message: str
    redirect: Optional[str] = None
    admin: Optional[dict[str, Any]] = None


def _product_view(state: AppState, product: Product) -> dict[str, Any]:
    data = product.model_dump(mode="json", by_alias=True)
    data["image_url"] = state.client.image_url(product.image)
    return data


def _blog_post_view(state: AppState, post: BlogPost) -> dict[str, Any]:
    data = post.model_dump(mode="json", by_alias=True)
    data["image_url"] = state.client.image_url(post.image)
    data["published_on"] = post.published_on
    return data


def _catalog_view(state: AppState) -> dict[str, Any]:
    products = state.catalog_filter.apply(state.catalog)
    return {
        "count": len(products),
        "products": [_product_view(state, product) for product in products],
        "filters": state.catalog_filter.as_dict(),
        "categories": CATEGORIES,
        "price_ranges": [{"id": r.id, "label": r.label} for r in PRICE_RANGES],
        "show_price_filter": state.catalog_filter.category != ALL_CATEGORIES,
        "offline": state.catalog_offline,
        "notice": OFFLINE_NOTICE if state.catalog_offline else None,
        "cart_count": state.cart.item_count,
    }


def _cart_view(state: AppState) -> dict[str, Any]:
    return state.cart.snapshot().model_dump(mode="json", by_alias=True)


def _checkout_view(state: AppState) -> dict[str, Any]:
    data = state.checkout.summary().model_dump(mode="json", by_alias=True)
    if data["empty"]:
        data["actions"] = [{"label": "Continue Shopping", "href": "/"}]
    return data


async def _read_upload(upload: Optional[UploadFile]) -> Optional[ImageUpload]:
    if upload is None or not upload.filename:
        return None
    content = await upload.read()
    return ImageUpload(
        filename=upload.filename,
        content=content,
        content_type=upload.content_type or "application/octet-stream",
    )


def _sse(payload: dict[str, Any]) -> str:
    return f"data: {json.dumps(payload)}\n\n"


# Health check endpoint
@router.get("/health")
async def health_check(state: AppState = Depends(get_state)):
    """Health check endpoint."""
    return {
        "status": "healthy",
        "connection": state.prober.status.value,
        "admin_authenticated": state.auth_manager.is_authenticated(),
    }


# Catalog endpoints
@router.get("/")
async def catalog(state: AppState = Depends(get_state)):
    """Product listing with the current filters applied."""
    await state.refresh_catalog()
    return _catalog_view(state)


@router.post("/products/filter")
async def filter_catalog(request: FilterRequest, state: AppState = Depends(get_state)):
    """Change search text, category or price range."""
    if not state.catalog:
        await state.refresh_catalog()
    if request.query is not None:
        state.catalog_filter.set_query(request.query)
    if request.category is not None:
        state.catalog_filter.set_category(request.category)
    if request.price_range is not None:
        state.catalog_filter.set_price_range(request.price_range)
    return _catalog_view(state)


# Blog endpoints
@router.get("/blog")
async def blog(state: AppState = Depends(get_state)):
    """Blog listing."""
    result = await state.data.blog_posts()
    return {
        "count": len(result.items),
        "posts": [_blog_post_view(state, post) for post in result.items],
        "offline": result.offline,
    }


# Cart endpoints
@router.get("/cart")
async def get_cart(state: AppState = Depends(get_state)):
    """Get the current shopping cart."""
    return _cart_view(state)


@router.post("/cart/add")
async def add_to_cart(request: CartProductRequest, state: AppState = Depends(get_state)):
    """Add one unit of a catalog product to the cart."""
    product = await state.find_product(request.product_id)
    if product is None:
        raise HTTPException(status_code=404, detail=f"Product {request.product_id} not found")
    state.cart.add_to_cart(product)
    return _cart_view(state)


@router.post("/cart/remove")
async def remove_from_cart(request: CartProductRequest, state: AppState = Depends(get_state)):
    state.cart.remove_from_cart(request.product_id)
    return _cart_view(state)


@router.post("/cart/update")
async def update_cart(request: UpdateCartRequest, state: AppState = Depends(get_state)):
    """Set an item's quantity; zero or less removes it."""
    state.cart.update_quantity(request.product_id, request.quantity)
    return _cart_view(state)


@router.post("/cart/toggle")
async def toggle_cart(state: AppState = Depends(get_state)):
    state.cart.toggle_cart()
    return _cart_view(state)


@router.post("/cart/clear")
async def clear_cart(state: AppState = Depends(get_state)):
    state.cart.clear_cart()
    return _cart_view(state)


# Checkout endpoints
@router.get("/checkout")
async def checkout_summary(state: AppState = Depends(get_state)):
    """Order summary, or a prompt to keep shopping when the cart is empty."""
    return _checkout_view(state)


@router.post("/checkout/area")
async def select_area(request: AreaRequest, state: AppState = Depends(get_state)):
    state.checkout.select_area(request.area)
    return _checkout_view(state)


@router.post("/checkout")
async def place_order(request: CheckoutRequest, state: AppState = Depends(get_state)):
    """Place the order. The cart is only cleared when the backend accepts it."""
    if not state.checkout.can_submit():
        raise EmptyCartError(EMPTY_CART_MESSAGE)
    if request.area:
        state.checkout.select_area(request.area)
    customer = state.checkout.validate_customer(request.name, request.phone, request.address)
    message = await state.checkout.submit(customer)
    return {"success": True, "message": message, "redirect": "/"}


# Admin authentication endpoints
@router.get("/admin/login")
async def login_view(state: AppState = Depends(get_state)):
    """Login view: reports whether the backend is reachable."""
    prober = state.login_prober()
    status = await prober.probe()
    return {
        "authenticated": state.auth_manager.is_authenticated(),
        "connection": status.value,
    }


@router.post("/admin/login", response_model=LoginResponse)
async def login(request: LoginRequest, state: AppState = Depends(get_state)):
    """Log in as admin."""
    credentials = AdminCredentials(username=request.username, password=request.password)
    try:
        admin = await state.client.login(credentials)
    except BackendError as e:
        # The backend answered, so it is reachable
        state.prober.mark_online()
        raise HTTPException(status_code=401, detail=e.message)
    state.prober.mark_online()
    return LoginResponse(
        success=True,
        message=f"Successfully logged in as {request.username.strip()}",
        redirect="/admin/products",
        admin=admin,
    )


@router.post("/admin/logout")
async def logout(state: AppState = Depends(get_state)):
    state.client.logout()
    return {"success": True, "redirect": "/admin/login"}


@router.get("/admin/session")
async def session(state: AppState = Depends(get_state)):
    return state.auth_manager.session.model_dump()


# Admin product endpoints
@router.get("/admin")
@router.get("/admin/products")
async def admin_products(search: str = "", state: AppState = Depends(get_state)):
    """Product management listing."""
    result = await state.data.products()
    products = search_products_by_name(result.items, search)
    return {
        "count": len(products),
        "products": [_product_view(state, product) for product in products],
        "offline": result.offline,
        "connection": state.prober.status.value,
    }


@router.post("/admin/products")
async def add_product(
    name: str = Form(...),
    description: str = Form(...),
    price: Decimal = Form(...),
    category: str = Form(...),
    image: Optional[UploadFile] = File(None),
    state: AppState = Depends(get_state),
):
    form = product_form(name, description, price, category)
    result = await state.client.add_product(form, await _read_upload(image))
    return {"success": True, "message": "Product added", "result": result}


@router.put("/admin/products/{product_id}")
async def update_product(
    product_id: str,
    name: str = Form(...),
    description: str = Form(...),
    price: Decimal = Form(...),
    category: str = Form(...),
    image: Optional[UploadFile] = File(None),
    state: AppState = Depends(get_state),
):
    form = product_form(name, description, price, category)
    result = await state.client.update_product(product_id, form, await _read_upload(image))
    return {"success": True, "message": "Product updated", "result": result}


@router.delete("/admin/products/{product_id}")
async def delete_product(product_id: str, state: AppState = Depends(get_state)):
    await state.client.delete_product(product_id)
    return {"success": True, "message": f"Product {product_id} deleted"}


# Admin blog endpoints
@router.get("/admin/blog-posts")
async def admin_blog_posts(search: str = "", state: AppState = Depends(get_state)):
    """Blog management listing."""
    result = await state.data.blog_posts()
    posts = search_blog_posts(result.items, search)
    return {
        "count": len(posts),
        "posts": [_blog_post_view(state, post) for post in posts],
        "offline": result.offline,
        "connection": state.prober.status.value,
    }


@router.post("/admin/blog-posts")
async def add_blog_post(
    title: str = Form(...),
    content: str = Form(...),
    author: str = Form(...),
    image: Optional[UploadFile] = File(None),
    state: AppState = Depends(get_state),
):
    form = BlogPostForm(title=title, content=content, author=author)
    result = await state.client.add_blog_post(form, await _read_upload(image))
    return {"success": True, "message": "Blog post added", "result": result}


@router.put("/admin/blog-posts/{post_id}")
async def update_blog_post(
    post_id: str,
    title: str = Form(...),
    content: str = Form(...),
    author: str = Form(...),
    image: Optional[UploadFile] = File(None),
    state: AppState = Depends(get_state),
):
    form = BlogPostForm(title=title, content=content, author=author)
    result = await state.client.update_blog_post(post_id, form, await _read_upload(image))
    return {"success": True, "message": "Blog post updated", "result": result}


@router.delete("/admin/blog-posts/{post_id}")
async def delete_blog_post(post_id: str, state: AppState = Depends(get_state)):
    await state.client.delete_blog_post(post_id)
    return {"success": True, "message": f"Blog post {post_id} deleted"}


# Admin order endpoints
@router.get("/admin/orders")
async def admin_orders(state: AppState = Depends(get_state)):
    """Order listing."""
    result = await state.data.orders()
    return {
        "count": len(result.items),
        "orders": [order.model_dump(mode="json", by_alias=True) for order in result.items],
        "offline": result.offline,
        "connection": state.prober.status.value,
    }


@router.get("/admin/orders/{order_id}")
async def admin_order_details(order_id: str, state: AppState = Depends(get_state)):
    """Order details, falling back to the listed order when the lookup fails."""
    order = await state.find_order(order_id)
    if order is None:
        raise HTTPException(status_code=404, detail=f"Order {order_id} not found")
    return order.model_dump(mode="json", by_alias=True)


# Admin settings endpoints
@router.put("/admin/settings/password")
async def change_password(request: PasswordChange, state: AppState = Depends(get_state)):
    message = await state.client.change_password(request)
    return {"success": True, "message": message}


# Connection status endpoints
@router.get("/admin/connection")
async def connection_status(state: AppState = Depends(get_state)):
    return {"status": state.prober.status.value}


@router.get("/admin/connection/stream")
async def connection_stream(
    request: Request, view: str = "products", state: AppState = Depends(get_state)
):
    """
    Server-Sent Events stream of the connection status for an admin view.

    The backend is re-probed on a fixed interval for as long as the client
    stays connected; disconnecting cancels the probe task.
    """
    prober = state.admin_prober(view)
    updates: asyncio.Queue = asyncio.Queue()
    prober.subscribe(updates.put_nowait)

    async def event_stream():
        logger.info(f"Connection stream opened for {view}")
        try:
            async with prober:
                yield _sse({"view": view, "status": prober.status.value})
                while True:
                    if await request.is_disconnected():
                        logger.info("Connection stream client disconnected")
                        break
                    try:
                        status = await asyncio.wait_for(updates.get(), timeout=1.0)
                    except asyncio.TimeoutError:
                        continue
                    yield _sse({"view": view, "status": status.value})
        except asyncio.CancelledError:
            logger.info("Connection stream cancelled")
            raise

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


# Error handlers
async def _input_error(request: Request, exc: InputValidationError) -> JSONResponse:
    status_code = 409 if isinstance(exc, EmptyCartError) else 400
    return JSONResponse(status_code=status_code, content={"detail": exc.message})


async def _backend_error(request: Request, exc: BackendError) -> JSONResponse:
    logger.error(f"Backend error on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=502, content={"detail": exc.message})


async def _backend_unavailable(request: Request, exc: BackendUnavailableError) -> JSONResponse:
    logger.error(f"Backend unavailable on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=503, content={"detail": exc.message})


def create_app(state_factory: Optional[Callable[[], AppState]] = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        state_factory: Builds the application state on startup. Defaults to
            building it from the environment.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Lifespan context manager for startup and shutdown."""
        logger.info("Starting Stationery Hub HTTP Server...")
        if state_factory is not None:
            state = state_factory()
        else:
            state = AppState.from_settings(Settings.from_env())
        app.state.stationery = state

        yield

        logger.info("Shutting down Stationery Hub HTTP Server...")
        await state.aclose()

    app = FastAPI(
        title="Stationery Hub Server",
        description="Storefront and admin dashboard for the stationery hub backend",
        version="0.1.0",
        lifespan=lifespan,
    )

    @app.middleware("http")
    async def admin_guard(request: Request, call_next):
        """Send every admin view except login to the login view when logged out."""
        state: AppState = request.app.state.stationery
        target = state.auth_manager.login_redirect(request.url.path)
        if target is not None:
            logger.info(f"Admin flag not set, redirecting {request.url.path} to {target}")
            return RedirectResponse(target, status_code=307)
        return await call_next(request)

    app.add_exception_handler(InputValidationError, _input_error)
    app.add_exception_handler(BackendError, _backend_error)
    app.add_exception_handler(BackendUnavailableError, _backend_unavailable)
    app.include_router(router)
    return app


app = create_app()


def run_http_server(host: str = "0.0.0.0", port: int = 8000, reload: bool = False):
    """
    Run the HTTP server.

    Args:
        host: Host to bind to (default: 0.0.0.0)
        port: Port to bind to (default: 8000)
        reload: Enable hot reloading (default: False)
    """
    import uvicorn

    logger.info(f"Starting server on {host}:{port} (reload={'enabled' if reload else 'disabled'})")

    if reload:
        uvicorn.run(
            "stationery_server.http_server:app",
            host=host,
            port=port,
            reload=True,
            reload_dirs=["stationery_server"],
            log_level="info",
        )
    else:
        uvicorn.run(app, host=host, port=port, log_level="info")


if __name__ == "__main__":
    run_http_server(reload=True)
