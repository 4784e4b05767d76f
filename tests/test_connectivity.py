import httpx
import pytest

from core.connectivity import ConnectivityProbe

HEALTH_URL = "http://testserver/api/health-check"


def _probe(handler, flag=lambda: True) -> tuple[ConnectivityProbe, list[httpx.Request]]:
    seen: list[httpx.Request] = []

    def recording_handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(recording_handler))
    return ConnectivityProbe(HEALTH_URL, network_flag=flag, client=client), seen


@pytest.mark.asyncio
async def test_flag_off_reports_offline_without_probing():
    probe, seen = _probe(lambda request: httpx.Response(200), flag=lambda: False)
    assert await probe.is_online() is False
    assert seen == []
    await probe.aclose()


@pytest.mark.asyncio
async def test_healthy_endpoint_reports_online():
    probe, seen = _probe(lambda request: httpx.Response(204))
    assert await probe.is_online() is True
    assert len(seen) == 1
    assert seen[0].method == "GET"
    assert str(seen[0].url) == HEALTH_URL
    await probe.aclose()


@pytest.mark.asyncio
async def test_error_status_reports_offline():
    probe, _ = _probe(lambda request: httpx.Response(503))
    assert await probe.is_online() is False
    await probe.aclose()


@pytest.mark.asyncio
async def test_transport_failure_degrades_to_offline():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    probe, _ = _probe(handler)
    assert await probe.is_online() is False
    await probe.aclose()


@pytest.mark.asyncio
async def test_flag_that_raises_degrades_to_offline():
    def broken_flag() -> bool:
        raise RuntimeError("platform unavailable")

    probe, seen = _probe(lambda request: httpx.Response(200), flag=broken_flag)
    assert await probe.is_online() is False
    assert seen == []
    await probe.aclose()
