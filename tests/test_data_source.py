import pytest

from stationery_server.data_source import (
    SAMPLE_ORDERS,
    SAMPLE_PRODUCTS,
    FallbackDataSource,
    LiveDataSource,
    SampleDataSource,
)
from stationery_server.prober import ConnectionProber, ConnectionStatus


@pytest.fixture
def prober(client):
    return ConnectionProber(client)


@pytest.fixture
def data(client, prober):
    return FallbackDataSource(LiveDataSource(client), SampleDataSource(), prober)


async def test_live_data_marks_online(data, prober):
    result = await data.products()
    assert not result.offline
    assert [p.id for p in result.items] == ["p1", "p2", "p3"]
    assert prober.status == ConnectionStatus.ONLINE


async def test_unreachable_backend_falls_back_to_samples(data, prober, backend):
    backend.fail_all()

    result = await data.products()

    assert result.offline
    assert result.error
    assert [p.id for p in result.items] == [p.id for p in SAMPLE_PRODUCTS]
    assert prober.status == ConnectionStatus.OFFLINE


async def test_error_status_falls_back_per_read(data, backend):
    backend.route("GET", "/api/getorders", 500)

    orders = await data.orders()
    posts = await data.blog_posts()

    assert orders.offline
    assert [o.id for o in orders.items] == ["sample-order-1", "sample-order-2"]
    assert not posts.offline
    assert [p.id for p in posts.items] == ["b1"]


def test_sample_orders_are_consistent():
    for order in SAMPLE_ORDERS:
        subtotal = sum(line.price * line.quantity for line in order.products)
        assert order.subtotal == subtotal
        assert order.total > order.subtotal


async def test_order_details_fall_back_to_listing(data, backend):
    listed = (await data.orders()).items[0]
    backend.route("GET", "/api/getorder/o1", 500)

    assert await data.order("o1", listed) is listed
    assert await data.order("sample-order-2") == SAMPLE_ORDERS[1]
    assert await data.order("missing") is None
