import asyncio

import anyio
import httpx
import pytest
from tfe_client.core.client import RetryConfig, TFEClient
from tfe_client.core.errors import (
    ErrorKind,
    TFECancelledError,
    TFETimeoutError,
    TFETransportError,
)
from tfe_client.core.operation import ListOptions, Operation
from tfe_client.models import Workspace


def _list_workspaces() -> Operation:
    return Operation(
        "GET",
        "organizations/{organization}/workspaces",
        path_params={"organization": "acme"},
        output=Workspace,
        many=True,
        list_options=ListOptions(page_size=20),
    )


def _hanging_client(calls: list, started: asyncio.Event, **kwargs) -> TFEClient:
    async def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        started.set()
        await asyncio.sleep(30)
        return httpx.Response(200, json={"data": []})

    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return TFEClient(
        address="https://tfe.example.com", token="secret", http=http, **kwargs
    )


@pytest.mark.asyncio
async def test_cancel_signal_aborts_inflight_call():
    calls: list = []
    started = asyncio.Event()
    cancel = asyncio.Event()
    client = _hanging_client(calls, started)

    async def trigger():
        await started.wait()
        cancel.set()

    trigger_task = asyncio.create_task(trigger())
    with pytest.raises(TFECancelledError) as exc:
        await asyncio.wait_for(
            client.execute(_list_workspaces(), cancel=cancel), timeout=5
        )
    await trigger_task
    await client.http.aclose()

    assert exc.value.kind is ErrorKind.TRANSPORT
    assert isinstance(exc.value, TFETransportError)
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_cancelled_call_is_not_retried():
    calls: list = []
    started = asyncio.Event()
    cancel = anyio.Event()
    client = _hanging_client(
        calls,
        started,
        retry=RetryConfig(retry_server_errors=True, backoff_base_seconds=0),
    )

    async def trigger():
        await started.wait()
        cancel.set()

    trigger_task = asyncio.create_task(trigger())
    with pytest.raises(TFECancelledError):
        await asyncio.wait_for(
            client.execute(_list_workspaces(), cancel=cancel), timeout=5
        )
    await trigger_task
    await client.http.aclose()

    assert len(calls) == 1


@pytest.mark.asyncio
async def test_deadline_expiry_raises_timeout_error():
    calls: list = []
    started = asyncio.Event()
    client = _hanging_client(calls, started)

    with pytest.raises(TFETimeoutError) as exc:
        await asyncio.wait_for(
            client.execute(_list_workspaces(), timeout=0.05), timeout=5
        )
    await client.http.aclose()

    assert exc.value.kind is ErrorKind.TRANSPORT
    assert exc.value.method == "GET"
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_unset_cancel_signal_does_not_interfere():
    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "data": [{"type": "workspaces", "id": "ws-1", "attributes": {}}],
            },
        )

    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    client = TFEClient(address="https://tfe.example.com", token="secret", http=http)
    cancel = asyncio.Event()

    result = await client.execute(_list_workspaces(), cancel=cancel, timeout=5)
    await http.aclose()

    assert [w.id for w in result.items] == ["ws-1"]
    assert result.pagination is None
