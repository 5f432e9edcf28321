"""Catalog filtering: free-text search, category and price range."""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable, Optional

from pydantic import ValidationError

from .exceptions import InputValidationError
from .models import BlogPost, Product, ProductForm

logger = logging.getLogger(__name__)

ALL_CATEGORIES = "All"
ALL_PRICES = "all"

CATEGORIES = [
    ALL_CATEGORIES,
    "Notebooks",
    "Bags",
    "Pens",
    "Paper",
    "Office supplies",
    "Art Supplies",
    "Other tools",
]
PRODUCT_CATEGORIES = CATEGORIES[1:]


@dataclass(frozen=True)
class PriceRange:
    """A named, inclusive price band. ``maximum`` of None means unbounded."""

    id: str
    label: str
    minimum: Decimal
    maximum: Optional[Decimal] = None

    def contains(self, price: Decimal) -> bool:
        if price < self.minimum:
            return False
        return self.maximum is None or price <= self.maximum


PRICE_RANGES = [
    PriceRange(ALL_PRICES, "All Prices", Decimal("0")),
    PriceRange("under-10", "Under $10", Decimal("0"), Decimal("10")),
    PriceRange("10-25", "$10 - $25", Decimal("10"), Decimal("25")),
    PriceRange("25-50", "$25 - $50", Decimal("25"), Decimal("50")),
    PriceRange("over-50", "Over $50", Decimal("50")),
]


def find_price_range(range_id: str) -> Optional[PriceRange]:
    for price_range in PRICE_RANGES:
        if price_range.id == range_id:
            return price_range
    return None


def matches_query(product: Product, query: str) -> bool:
    """Case-insensitive substring match on name or description."""
    needle = query.lower()
    return needle in product.name.lower() or needle in product.description.lower()


def matches_category(product: Product, category: str) -> bool:
    if category == ALL_CATEGORIES:
        return True
    return product.category.lower() == category.lower()


def matches_price(product: Product, range_id: str) -> bool:
    if range_id == ALL_PRICES:
        return True
    price_range = find_price_range(range_id)
    # Unknown ranges do not constrain the price
    if price_range is None:
        return True
    return price_range.contains(product.price)


def filter_products(
    products: Iterable[Product],
    query: str = "",
    category: str = ALL_CATEGORIES,
    price_range: str = ALL_PRICES,
) -> list[Product]:
    """
    Return the products matching every filter, in their original order.

    Args:
        products: Full product list
        query: Free-text search; empty matches everything
        category: Category name or "All"
        price_range: Price range id or "all"

    Returns:
        Matching products
    """
    return [
        product
        for product in products
        if matches_query(product, query)
        and matches_category(product, category)
        and matches_price(product, price_range)
    ]


def search_products_by_name(products: Iterable[Product], query: str) -> list[Product]:
    """Admin product search: name only."""
    needle = query.lower()
    return [product for product in products if needle in product.name.lower()]


def search_blog_posts(posts: Iterable[BlogPost], query: str) -> list[BlogPost]:
    """Admin blog search: title or content."""
    needle = query.lower()
    return [
        post
        for post in posts
        if needle in post.title.lower() or needle in post.content.lower()
    ]


def product_form(name: str, description: str, price: Any, category: str) -> ProductForm:
    """
    Validate the admin product form.

    Raises:
        InputValidationError: Unknown category, or a price that is not a
            non-negative number
    """
    if category not in PRODUCT_CATEGORIES:
        raise InputValidationError(f"Unknown category: {category}")
    try:
        return ProductForm(name=name, description=description, price=price, category=category)
    except ValidationError as e:
        raise InputValidationError(f"Invalid product: {e.errors()[0]['msg']}") from e


class CatalogFilter:
    """
    Filter selection state for the product listing.

    Selecting a category always resets the price range to "all".
    """

    def __init__(self) -> None:
        self.query = ""
        self.category = ALL_CATEGORIES
        self.price_range = ALL_PRICES

    def set_query(self, query: str) -> None:
        self.query = query

    def set_category(self, category: str) -> None:
        self.category = category
        self.price_range = ALL_PRICES

    def set_price_range(self, range_id: str) -> None:
        if find_price_range(range_id) is None:
            raise InputValidationError(f"Unknown price range: {range_id}")
        self.price_range = range_id

    def reset(self) -> None:
        self.query = ""
        self.category = ALL_CATEGORIES
        self.price_range = ALL_PRICES

    def apply(self, products: Iterable[Product]) -> list[Product]:
        result = filter_products(products, self.query, self.category, self.price_range)
        logger.debug(
            f"Filter query='{self.query}' category={self.category} "
            f"price_range={self.price_range}: {len(result)} match(es)"
        )
        return result

    def as_dict(self) -> dict[str, str]:
        return {
            "query": self.query,
            "category": self.category,
            "price_range": self.price_range,
        }
