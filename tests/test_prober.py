import asyncio

import httpx

from stationery_server.prober import ConnectionProber, ConnectionStatus


async def test_probe_online(client):
    prober = ConnectionProber(client)
    assert prober.status == ConnectionStatus.CHECKING
    assert await prober.probe() == ConnectionStatus.ONLINE


async def test_probe_offline_when_unreachable(client, backend):
    backend.fail_all()
    prober = ConnectionProber(client)
    assert await prober.probe() == ConnectionStatus.OFFLINE


async def test_client_errors_count_only_when_accepted(client, backend):
    backend.route("GET", "/product/get", 404)
    strict = ConnectionProber(client, method="GET")
    lenient = ConnectionProber(client, method="GET", accept_client_errors=True)

    assert await strict.probe() == ConnectionStatus.OFFLINE
    assert await lenient.probe() == ConnectionStatus.ONLINE


async def test_later_endpoints_are_tried(client, backend):
    def refuse(request):
        raise httpx.ConnectError("refused", request=request)

    backend.handle("GET", "/product/get", refuse)
    prober = ConnectionProber(client, endpoints=("/product/get", "/blog/getblogs"), method="GET")
    assert await prober.probe() == ConnectionStatus.ONLINE


async def test_listeners_fire_on_change_only(client):
    prober = ConnectionProber(client)
    seen = []
    prober.subscribe(seen.append)

    prober.mark_online()
    prober.mark_online()
    prober.mark_offline()

    assert seen == [ConnectionStatus.ONLINE, ConnectionStatus.OFFLINE]


async def test_context_manager_binds_loop_to_scope(client, backend):
    prober = ConnectionProber(client, interval=0.01)

    async with prober:
        assert prober.running
        await asyncio.sleep(0.05)

    assert not prober.running
    probes = [r for r in backend.requests if r.method == "HEAD"]
    assert len(probes) >= 2

    count = len(backend.requests)
    await asyncio.sleep(0.05)
    assert len(backend.requests) == count
