from decimal import Decimal

import pytest

from stationery_server.catalog import (
    CatalogFilter,
    filter_products,
    search_blog_posts,
    search_products_by_name,
)
from stationery_server.exceptions import InputValidationError
from stationery_server.models import BlogPost, Product


def product(id, name, price, category, description=""):
    return Product(id=id, name=name, price=Decimal(price), category=category, description=description)


PRODUCTS = [
    product("1", "Premium Notebook", "24.99", "Notebooks", "Leather cover"),
    product("2", "Fountain Pen Set", "45.99", "Pens", "Comes with cartridges"),
    product("3", "Gel pens", "10.00", "Pens"),
    product("4", "Canvas Tote", "60", "Bags", "Carries notebooks and pens"),
    product("5", "Eraser", "1.50", "Office supplies"),
]


def ids(products):
    return [p.id for p in products]


def test_no_filters_keeps_everything_in_order():
    assert ids(filter_products(PRODUCTS)) == ["1", "2", "3", "4", "5"]


def test_query_is_case_insensitive_on_name_and_description():
    assert ids(filter_products(PRODUCTS, query="PENS")) == ["3", "4"]
    assert ids(filter_products(PRODUCTS, query="pen")) == ["2", "3", "4"]


def test_category_filter():
    assert ids(filter_products(PRODUCTS, category="Pens")) == ["2", "3"]


def test_price_range_bounds_are_inclusive():
    assert ids(filter_products(PRODUCTS, price_range="under-10")) == ["3", "5"]
    assert ids(filter_products(PRODUCTS, price_range="10-25")) == ["1", "3"]
    assert ids(filter_products(PRODUCTS, price_range="over-50")) == ["4"]


def test_unknown_price_range_does_not_filter():
    assert ids(filter_products(PRODUCTS, price_range="cheap")) == ["1", "2", "3", "4", "5"]


def test_filters_combine():
    assert ids(filter_products(PRODUCTS, query="pen", category="Pens", price_range="25-50")) == ["2"]


def test_selecting_a_category_resets_price_range():
    catalog_filter = CatalogFilter()
    catalog_filter.set_category("Pens")
    catalog_filter.set_price_range("25-50")
    assert ids(catalog_filter.apply(PRODUCTS)) == ["2"]

    catalog_filter.set_category("Bags")
    assert catalog_filter.price_range == "all"
    assert ids(catalog_filter.apply(PRODUCTS)) == ["4"]


def test_filter_rejects_unknown_price_range():
    catalog_filter = CatalogFilter()
    with pytest.raises(InputValidationError):
        catalog_filter.set_price_range("cheap")
    assert catalog_filter.price_range == "all"


def test_reset_and_as_dict():
    catalog_filter = CatalogFilter()
    catalog_filter.set_query("note")
    catalog_filter.set_category("Notebooks")
    catalog_filter.reset()
    assert catalog_filter.as_dict() == {"query": "", "category": "All", "price_range": "all"}


def test_admin_product_search_matches_name_only():
    assert ids(search_products_by_name(PRODUCTS, "NOTEBOOK")) == ["1"]


def test_admin_blog_search_matches_title_or_content():
    posts = [
        BlogPost(id="a", title="Ink care", content="Flush your pen monthly"),
        BlogPost(id="b", title="Paper weights", content="Grams per square meter"),
    ]
    assert [p.id for p in search_blog_posts(posts, "pen")] == ["a"]
    assert [p.id for p in search_blog_posts(posts, "PAPER")] == ["b"]
