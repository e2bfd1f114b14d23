from datetime import datetime, timezone

import pytest
import respx
from httpx import Response
from tfe_client.core.client import TFEClient
from tfe_client.resources.meta import read_ip_ranges

IP_RANGES_URL = "https://tfe.example.com/api/meta/ip-ranges"


def _client() -> TFEClient:
    return TFEClient(address="https://tfe.example.com", token="secret")


@pytest.mark.asyncio
async def test_read_ip_ranges_plain_json():
    async with respx.mock:
        route = respx.get(IP_RANGES_URL).mock(
            return_value=Response(
                200,
                json={
                    "api": ["75.2.98.97/32"],
                    "notifications": ["10.0.0.0/24"],
                    "sentinel": [],
                    "vcs": ["52.86.200.106/32"],
                },
            )
        )

        async with _client() as client:
            ranges = await read_ip_ranges(client)

        request = route.calls[0].request
        assert request.headers["Accept"] == "application/json"
        assert "If-Modified-Since" not in request.headers

    assert ranges.api == ["75.2.98.97/32"]
    assert ranges.sentinel == []


@pytest.mark.asyncio
async def test_read_ip_ranges_not_modified_returns_none():
    async with respx.mock:
        route = respx.get(IP_RANGES_URL).mock(return_value=Response(304))

        async with _client() as client:
            ranges = await read_ip_ranges(
                client,
                modified_since=datetime(2024, 10, 1, 0, 0, tzinfo=timezone.utc),
            )

        assert (
            route.calls[0].request.headers["If-Modified-Since"]
            == "Tue, 01 Oct 2024 00:00:00 GMT"
        )

    assert ranges is None


@pytest.mark.asyncio
async def test_read_ip_ranges_passes_header_string_through():
    async with respx.mock:
        route = respx.get(IP_RANGES_URL).mock(return_value=Response(304))

        async with _client() as client:
            await read_ip_ranges(client, modified_since="Tue, 01 Oct 2024 00:00:00 GMT")

        assert route.calls[0].request.headers["If-Modified-Since"].endswith("GMT")
