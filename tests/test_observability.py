import logging

import httpx
import pytest
import respx
from tfe_client.core.client import RetryConfig, TFEClient
from tfe_client.core.errors import TFEClientError
from tfe_client.core.logging import LogfmtFormatter, setup_logging
from tfe_client.core.observability import log_event
from tfe_client.core.operation import Operation


@pytest.mark.asyncio
@respx.mock
async def test_client_logs_success(caplog):
    caplog.set_level(logging.INFO, logger="tfe_client.client")
    route = respx.get("https://tfe.example.com/api/v2/organizations").mock(
        return_value=httpx.Response(200, json={"data": []})
    )
    client = TFEClient(address="https://tfe.example.com", token="secret")
    try:
        await client.execute(Operation("GET", "organizations"))
    finally:
        await client.aclose()

    assert route.called
    record = next(r for r in caplog.records if r.getMessage() == "tfe_call")
    assert record.method == "GET"
    assert record.status == 200
    assert record.endpoint == "/api/v2/organizations"
    assert record.attempt == 0
    assert record.duration_ms >= 0


@pytest.mark.asyncio
@respx.mock
async def test_client_logs_exception(caplog):
    caplog.set_level(logging.INFO, logger="tfe_client.client")
    respx.get("https://tfe.example.com/api/v2/organizations").mock(
        side_effect=httpx.ConnectTimeout("boom")
    )
    client = TFEClient(
        address="https://tfe.example.com",
        token="secret",
        retry=RetryConfig(max_retries=0),
    )
    with pytest.raises(TFEClientError):
        await client.execute(Operation("GET", "organizations"))
    await client.aclose()

    record = next(r for r in caplog.records if r.getMessage() == "tfe_call")
    assert record.status == "exception"
    assert record.error_type == "ConnectTimeout"
    assert record.endpoint == "/api/v2/organizations"


@pytest.mark.asyncio
@respx.mock
async def test_client_logs_retries(caplog):
    caplog.set_level(logging.INFO, logger="tfe_client.client")
    respx.get("https://tfe.example.com/api/v2/organizations").mock(
        side_effect=[httpx.Response(502), httpx.Response(200, json={"data": []})]
    )
    client = TFEClient(
        address="https://tfe.example.com",
        token="secret",
        retry=RetryConfig(retry_server_errors=True, backoff_base_seconds=0),
    )
    await client.execute(Operation("GET", "organizations"))
    await client.aclose()

    retries = [r for r in caplog.records if r.getMessage() == "tfe_retry"]
    calls = [r for r in caplog.records if r.getMessage() == "tfe_call"]
    assert [r.attempt for r in retries] == [1]
    assert retries[0].status == 502
    assert [r.status for r in calls] == [502, 200]


@pytest.mark.asyncio
@respx.mock
async def test_token_never_appears_in_logs(caplog):
    caplog.set_level(logging.DEBUG)
    respx.get("https://tfe.example.com/api/v2/organizations").mock(
        return_value=httpx.Response(401, json={"errors": [{"title": "unauthorized"}]})
    )
    client = TFEClient(address="https://tfe.example.com", token="s3cr3t-token")
    with pytest.raises(TFEClientError):
        await client.execute(Operation("GET", "organizations"))
    await client.aclose()

    assert caplog.records
    for record in caplog.records:
        assert all("s3cr3t-token" not in str(v) for v in vars(record).values())


def test_log_event_drops_reserved_keys(caplog):
    caplog.set_level(logging.INFO, logger="tfe_client.observability")
    log_event("custom", name="clobber", status=201)

    record = next(r for r in caplog.records if r.getMessage() == "custom")
    assert record.name == "tfe_client.observability"
    assert record.status == 201
    assert record.event == "custom"


def test_logfmt_formatter_renders_extras():
    record = logging.LogRecord(
        "tfe_client.client", logging.INFO, __file__, 1, "tfe_call", None, None
    )
    record.method = "GET"
    record.endpoint = "/api/v2/organizations"
    record.status = 200
    record.error_type = None

    line = LogfmtFormatter().format(record)

    assert line == (
        "level=info logger=tfe_client.client event=tfe_call "
        "method=GET endpoint=/api/v2/organizations status=200"
    )


def test_logfmt_formatter_quotes_values_with_spaces():
    record = logging.LogRecord(
        "x", logging.WARNING, __file__, 1, "a b", None, None
    )
    assert LogfmtFormatter().format(record) == 'level=warning logger=x event="a b"'


def test_setup_logging_installs_single_logfmt_handler(monkeypatch):
    monkeypatch.setenv("TFE_LOG_LEVEL", "debug")
    log = logging.getLogger("tfe_client")
    saved_handlers, saved_level = list(log.handlers), log.level
    try:
        setup_logging()
        returned = setup_logging()

        assert returned is log
        formatters = [h.formatter for h in log.handlers]
        assert sum(isinstance(f, LogfmtFormatter) for f in formatters) == 1
        assert log.level == logging.DEBUG
    finally:
        log.handlers[:] = saved_handlers
        log.setLevel(saved_level)


def test_failed_calls_log_at_warning(caplog):
    caplog.set_level(logging.INFO, logger="tfe_client.observability")
    log_event("tfe_call", status=503)
    log_event("tfe_call", status="exception", error_type="ConnectError")
    log_event("tfe_call", status=404)

    assert [r.levelno for r in caplog.records] == [
        logging.WARNING,
        logging.WARNING,
        logging.INFO,
    ]


def test_logfmt_formatter_masks_bearer_values():
    record = logging.LogRecord(
        "tfe_client.client", logging.INFO, __file__, 1, "tfe_call", None, None
    )
    record.error_type = "Bearer abc.def"

    line = LogfmtFormatter().format(record)

    assert "abc.def" not in line
    assert line.endswith('error_type="Bearer ***"')
