from __future__ import annotations

import io
import json
import logging
import random
import time
from dataclasses import dataclass
from typing import (
    Any,
    AsyncIterator,
    Callable,
    Dict,
    List,
    Mapping,
    Optional,
    Protocol,
    Tuple,
)

import anyio
import anyio.to_thread
import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError

from .errors import (
    TFECancelledError,
    TFEClientError,
    TFEInvalidInputError,
    TFEParseError,
    TFERateLimitError,
    TFEServerError,
    TFETimeoutError,
    TFETransportError,
    error_class_for_status,
)
from .jsonapi import (
    MEDIA_TYPE,
    JSONAPIDecodeError,
    JSONAPIModel,
    deserialize_many,
    deserialize_one,
    parse_errors,
    serialize,
)
from .observability import elapsed_ms, log_event
from .operation import Operation, resolve_url
from .ratelimit import RATE_LIMIT_HEADER, RateLimiter

DEFAULT_ADDRESS = "https://app.terraform.io"
DEFAULT_BASE_PATH = "/api/v2"
DEFAULT_REGISTRY_BASE_PATH = "/api/registry"
PING_ENDPOINT = "ping"
USER_AGENT = "tfe-client"
RATE_LIMIT_RESET_HEADER = "X-RateLimit-Reset"
CONTENT_TYPE_JSON = "application/json"
CONTENT_TYPE_OCTET = "application/octet-stream"
API_VERSION_HEADER = "TFP-API-Version"
TFE_VERSION_HEADER = "X-TFE-Version"
APP_NAME_HEADER = "TFP-AppName"

_CHUNK_SIZE = 64 * 1024

RetryLogHook = Callable[[int, Optional[httpx.Response]], None]
ResponseHook = Callable[[int, httpx.Headers], None]
Decoder = Callable[[Operation, httpx.Response], Any]


class CancelSignal(Protocol):
    """Anything with an awaitable ``wait()``: asyncio.Event, anyio.Event, ..."""

    async def wait(self) -> Any: ...


@dataclass(frozen=True)
class RetryConfig:
    retry_server_errors: bool = False  # 5xx and transport failures
    retry_on_429: bool = True
    max_retries: int = 3  # total extra attempts
    backoff_base_seconds: float = 0.3  # 0.3, 0.6, 1.2...
    backoff_max_seconds: float = 5.0
    jitter_seconds: float = 0.1

    def backoff(self, attempt: int) -> float:
        delay = self.backoff_base_seconds * (2**attempt)
        return min(delay, self.backoff_max_seconds)

    def rate_limit_backoff(
        self, attempt: int, response: Optional[httpx.Response]
    ) -> float:
        delay = self.backoff(attempt)
        reset = None
        if response is not None:
            reset = response.headers.get(RATE_LIMIT_RESET_HEADER)
        if reset:
            try:
                delay = max(delay, float(reset))
            except ValueError:
                pass
        if self.jitter_seconds > 0:
            delay += random.uniform(0, self.jitter_seconds)
        return delay


@dataclass(frozen=True)
class APIMetadata:
    """What the ``ping`` endpoint reports about the remote platform."""

    api_version: str = ""
    tfe_version: str = ""
    app_name: str = ""
    rate_limit: str = ""

    @classmethod
    def from_headers(cls, headers: httpx.Headers) -> "APIMetadata":
        return cls(
            api_version=headers.get(API_VERSION_HEADER, ""),
            tfe_version=headers.get(TFE_VERSION_HEADER, ""),
            app_name=headers.get(APP_NAME_HEADER, ""),
            rate_limit=headers.get(RATE_LIMIT_HEADER, ""),
        )


@dataclass
class _PreparedRequest:
    method: str
    url: str
    params: List[Tuple[str, str]]
    headers: httpx.Headers
    content: Any
    rewind: Optional[Callable[[], None]]
    retryable_body: bool
    follow_redirects: bool


class TFEClient:
    """
    Shared HTTP client for the HCP Terraform / Terraform Enterprise JSON:API.
    - Owns the request pipeline: validation, URL/query assembly, JSON:API
      marshalling, auth, status mapping, opt-in retries, cancellation
    - Configuration is fixed at construction, except the rate limiter which
      ``ping`` and ``configure_rate_limit`` replace
    - No business logic; resource modules own endpoints and domain rules

    Concurrent calls share the underlying httpx.AsyncClient, which must be
    safe for concurrent use (the default pooled client is).
    """

    def __init__(
        self,
        *,
        token: str,
        address: str = DEFAULT_ADDRESS,
        base_path: str = DEFAULT_BASE_PATH,
        registry_base_path: str = DEFAULT_REGISTRY_BASE_PATH,
        headers: Optional[Mapping[str, str]] = None,
        timeout_seconds: float = 30.0,
        retry: Optional[RetryConfig] = None,
        logger: Optional[logging.Logger] = None,
        http: Optional[httpx.AsyncClient] = None,
        retry_log_hook: Optional[RetryLogHook] = None,
        response_hook: Optional[ResponseHook] = None,
        rate_limiter: Optional[RateLimiter] = None,
    ):
        address = (address or "").strip().rstrip("/")
        token = token or ""

        if not token:
            raise ValueError("token must be provided.")
        if not address:
            raise ValueError("address must be provided.")
        parsed = httpx.URL(address)
        if parsed.scheme not in ("http", "https") or not parsed.host:
            raise ValueError(f"invalid address: {address!r}")

        self._address = address
        self._base_path = "/" + (base_path or DEFAULT_BASE_PATH).strip("/")
        self._registry_base_path = "/" + (
            registry_base_path or DEFAULT_REGISTRY_BASE_PATH
        ).strip("/")
        self._host = parsed.host
        self._token = token
        self._retry = retry if retry is not None else RetryConfig()
        self._retry_log_hook = retry_log_hook
        self._response_hook = response_hook
        self._limiter = rate_limiter
        self.log = logger or logging.getLogger("tfe_client.client")

        default_headers = {"User-Agent": USER_AGENT}
        default_headers.update(headers or {})
        self._default_headers = tuple(default_headers.items())

        self._owns_http = http is None
        self.http = http or httpx.AsyncClient(timeout=timeout_seconds)

    @classmethod
    def from_env(cls, **kwargs: Any) -> "TFEClient":
        from .config import load_env_config

        env = load_env_config()
        kwargs.setdefault("address", env.address)
        kwargs.setdefault("base_path", env.base_path)
        kwargs.setdefault("registry_base_path", env.registry_base_path)
        if env.retry_server_errors and "retry" not in kwargs:
            kwargs["retry"] = RetryConfig(retry_server_errors=True)
        return cls(token=env.token, **kwargs)

    @property
    def address(self) -> str:
        return self._address

    @property
    def base_url(self) -> str:
        return self._address + self._base_path

    @property
    def registry_base_url(self) -> str:
        return self._address + self._registry_base_path

    @property
    def retry(self) -> RetryConfig:
        return self._retry

    @property
    def rate_limiter(self) -> Optional[RateLimiter]:
        return self._limiter

    def configure_rate_limit(self, raw_limit: Any) -> Optional[RateLimiter]:
        """
        Throttle to a fraction of ``raw_limit`` requests per second, as sent in
        ``X-RateLimit-Limit``. An empty or non-positive limit removes throttling.
        """
        self._limiter = RateLimiter.from_limit(raw_limit)
        self.log.debug(
            "rate limit configured",
            extra={"limit": raw_limit, "enabled": self._limiter is not None},
        )
        return self._limiter

    async def aclose(self) -> None:
        if self._owns_http:
            await self.http.aclose()

    async def __aenter__(self) -> "TFEClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    # --- Pipeline ---

    async def execute(
        self,
        op: Operation,
        *,
        timeout: Optional[float] = None,
        cancel: Optional[CancelSignal] = None,
    ) -> Any:
        """
        Run one operation and return its decoded result.
        - Returns a model instance, a ResourceList, raw bytes or None,
          depending on ``op.output`` / ``op.many`` / ``op.raw_response``
        - Raises a TFEClientError subclass; branch on ``exc.kind``
        - ``timeout`` bounds the whole call including retries
        - Setting ``cancel`` aborts an in-flight call with TFECancelledError
        """
        return await self._execute(op, timeout, cancel, self._decode)

    async def ping(
        self,
        *,
        timeout: Optional[float] = None,
        cancel: Optional[CancelSignal] = None,
    ) -> APIMetadata:
        """
        Call the no-op ``ping`` endpoint and throttle this client to the
        ``X-RateLimit-Limit`` it reports (no header means no throttling).
        """
        op = Operation("GET", PING_ENDPOINT)
        headers = await self._execute(op, timeout, cancel, _response_headers)
        meta = APIMetadata.from_headers(headers)
        self.configure_rate_limit(meta.rate_limit)
        return meta

    async def _execute(
        self,
        op: Operation,
        timeout: Optional[float],
        cancel: Optional[CancelSignal],
        decode: Decoder,
    ) -> Any:
        prepared = self._prepare(op)

        cancelled = False
        outcome: Any = None
        failure: Optional[BaseException] = None

        async def watch_cancel(scope: anyio.CancelScope) -> None:
            nonlocal cancelled
            await cancel.wait()  # type: ignore[union-attr]
            cancelled = True
            scope.cancel()

        try:
            with anyio.fail_after(timeout):
                async with anyio.create_task_group() as tg:
                    if cancel is not None:
                        tg.start_soon(watch_cancel, tg.cancel_scope)
                    try:
                        outcome = await self._run(op, prepared, decode)
                    except Exception as exc:
                        failure = exc
                    finally:
                        tg.cancel_scope.cancel()
        except TimeoutError as exc:
            raise TFETimeoutError(
                f"{op.method} {prepared.url} timed out after {timeout}s",
                method=op.method,
                url=prepared.url,
            ) from exc

        if cancelled and failure is None:
            raise TFECancelledError(
                f"{op.method} {prepared.url} was cancelled",
                method=op.method,
                url=prepared.url,
            )
        if failure is not None:
            raise failure
        return outcome

    async def upload(
        self,
        url: str,
        data: Any,
        *,
        timeout: Optional[float] = None,
        cancel: Optional[CancelSignal] = None,
    ) -> None:
        """
        PUT raw bytes to a pre-signed URL (for example ``links["upload"]``).
        The data is streamed verbatim; no JSON:API envelope is applied.
        """
        op = Operation(
            "PUT",
            url,
            body=data,
            headers={
                "Content-Type": CONTENT_TYPE_OCTET,
                "Accept": "application/json, */*",
            },
        )
        await self.execute(op, timeout=timeout, cancel=cancel)

    async def download(
        self,
        url: str,
        *,
        timeout: Optional[float] = None,
        cancel: Optional[CancelSignal] = None,
    ) -> bytes:
        """GET the raw bytes behind a download link."""
        op = Operation("GET", url, raw_response=True)
        return await self.execute(op, timeout=timeout, cancel=cancel)

    # --- Building ---

    def _prepare(self, op: Operation) -> _PreparedRequest:
        base_path = self._registry_base_path if op.registry else self._base_path
        url = resolve_url(self._address, base_path, op.render_path())
        params = op.query_params()

        headers = httpx.Headers(self._default_headers)
        if op.raw_response:
            headers["Accept"] = "*/*"
        elif op.output is not None and not issubclass(op.output, JSONAPIModel):
            headers["Accept"] = CONTENT_TYPE_JSON
        else:
            headers["Accept"] = MEDIA_TYPE

        content, rewind, retryable_body = self._body(op)
        if op.input is not None:
            headers["Content-Type"] = MEDIA_TYPE
        elif op.body is not None:
            headers["Content-Type"] = CONTENT_TYPE_OCTET

        headers.update(op.headers)

        # The token never leaves the configured API host.
        if httpx.URL(url).host == self._host:
            headers["Authorization"] = f"Bearer {self._token}"
        elif "Authorization" in headers:
            del headers["Authorization"]

        return _PreparedRequest(
            method=op.method,
            url=url,
            params=params,
            headers=headers,
            content=content,
            rewind=rewind,
            retryable_body=retryable_body,
            follow_redirects=op.raw_response,
        )

    def _body(self, op: Operation) -> Tuple[Any, Optional[Callable[[], None]], bool]:
        if op.input is not None:
            return _encode_input(op.input), None, True

        body = op.body
        if body is None or isinstance(body, (bytes, bytearray, str)):
            return body, None, True

        if hasattr(body, "read"):
            seekable = getattr(body, "seekable", None)
            if callable(seekable) and seekable():
                start = body.tell()
                return _FileStream(body), lambda: body.seek(start), True
            return _FileStream(body), None, False

        if hasattr(body, "__aiter__"):
            # Async iterators cannot be replayed.
            return body, None, False

        raise TFEInvalidInputError(
            f"unsupported body type {type(body).__name__}", field="body"
        )

    # --- Sending ---

    async def _run(
        self, op: Operation, prepared: _PreparedRequest, decode: Decoder
    ) -> Any:
        endpoint = httpx.URL(prepared.url).path
        attempt = 0
        while True:
            await self._throttle(op, endpoint)
            if prepared.rewind is not None:
                prepared.rewind()
            start = time.perf_counter()

            try:
                resp = await self.http.request(
                    prepared.method,
                    prepared.url,
                    params=prepared.params or None,
                    headers=prepared.headers,
                    content=prepared.content,
                    follow_redirects=prepared.follow_redirects,
                )
            except httpx.HTTPError as exc:
                log_event(
                    "tfe_call",
                    logger=self.log,
                    method=op.method,
                    endpoint=endpoint,
                    status="exception",
                    error_type=type(exc).__name__,
                    duration_ms=elapsed_ms(start),
                    attempt=attempt,
                )
                error = _transport_error(exc, op.method, prepared.url)
                delay = self._retry_delay(op, prepared, attempt, error, None)
                if delay is None:
                    raise error from exc
                await self._before_retry(op, endpoint, attempt, delay, None)
                attempt += 1
                continue

            log_event(
                "tfe_call",
                logger=self.log,
                method=op.method,
                endpoint=endpoint,
                status=resp.status_code,
                duration_ms=elapsed_ms(start),
                attempt=attempt,
            )
            if self._response_hook is not None:
                self._response_hook(resp.status_code, resp.headers)

            if 200 <= resp.status_code < 300:
                return decode(op, resp)
            if resp.status_code == 304:
                # Not modified: the caller's cached copy is current.
                return None

            error = self._to_error(resp, method=op.method)
            delay = self._retry_delay(op, prepared, attempt, error, resp)
            if delay is None:
                raise error
            await self._before_retry(op, endpoint, attempt, delay, resp)
            attempt += 1

    async def _throttle(self, op: Operation, endpoint: str) -> None:
        limiter = self._limiter
        if limiter is None:
            return
        waited = await limiter.acquire()
        if waited > 0:
            log_event(
                "tfe_throttle",
                logger=self.log,
                level=logging.DEBUG,
                method=op.method,
                endpoint=endpoint,
                duration_ms=int(waited * 1000),
            )

    def _retry_delay(
        self,
        op: Operation,
        prepared: _PreparedRequest,
        attempt: int,
        error: TFEClientError,
        resp: Optional[httpx.Response],
    ) -> Optional[float]:
        if attempt >= self._retry.max_retries or not prepared.retryable_body:
            return None

        # A 429 means the request was not processed, so any verb may repeat it.
        if isinstance(error, TFERateLimitError):
            if not self._retry.retry_on_429:
                return None
            return self._retry.rate_limit_backoff(attempt, resp)

        transient = isinstance(error, TFETransportError) or (
            isinstance(error, TFEServerError)
            and error.status_code is not None
            and error.status_code >= 500
        )
        if not transient or not self._retry.retry_server_errors:
            return None
        if not (op.idempotent or op.retry_unsafe):
            return None
        return self._retry.backoff(attempt)

    async def _before_retry(
        self,
        op: Operation,
        endpoint: str,
        attempt: int,
        delay: float,
        resp: Optional[httpx.Response],
    ) -> None:
        if self._retry_log_hook is not None:
            self._retry_log_hook(attempt + 1, resp)
        log_event(
            "tfe_retry",
            logger=self.log,
            method=op.method,
            endpoint=endpoint,
            status=resp.status_code if resp is not None else "exception",
            attempt=attempt + 1,
            duration_ms=int(delay * 1000),
        )
        await anyio.sleep(delay)

    # --- Decoding ---

    def _decode(self, op: Operation, resp: httpx.Response) -> Any:
        if op.raw_response:
            return resp.content
        if op.output is None:
            return None

        payload = self._safe_json(resp)
        try:
            if issubclass(op.output, JSONAPIModel):
                if op.many:
                    return deserialize_many(payload, op.output)
                return deserialize_one(payload, op.output)
            if op.many:
                return TypeAdapter(List[op.output]).validate_python(payload)
            return op.output.model_validate(payload)
        except (JSONAPIDecodeError, ValidationError) as exc:
            raise TFEParseError(
                f"Response did not match {op.output.__name__}: {exc}",
                method=resp.request.method,
                url=str(resp.request.url),
                status_code=resp.status_code,
                response_json=payload if isinstance(payload, dict) else None,
                response_text=resp.text,
            ) from exc

    def _safe_json(self, resp: httpx.Response) -> Any:
        if not resp.content:
            raise TFEParseError(
                f"Expected a JSON body from {resp.request.method} "
                f"{resp.request.url}, got an empty response",
                response_text="",
            )
        try:
            return resp.json()
        except ValueError as exc:
            snippet = (resp.text or "")[:500]
            raise TFEParseError(
                f"Expected JSON from {resp.request.method} "
                f"{resp.request.url}, got non-JSON body snippet: "
                f"{snippet!r}",
                response_text=resp.text,
            ) from exc

    def _to_error(self, resp: httpx.Response, *, method: str) -> TFEClientError:
        url = str(resp.request.url)
        status = resp.status_code
        response_json: Optional[Dict[str, Any]] = None
        response_text: Optional[str] = None
        field: Optional[str] = None

        try:
            parsed = resp.json()
        except ValueError:
            parsed = None
            response_text = (resp.text or "")[:500]
        if isinstance(parsed, dict):
            response_json = parsed

        errors = parse_errors(parsed)
        messages = [e.text for e in errors if e.text]
        if 300 <= status < 400:
            message = f"unexpected redirect ({status})"
        else:
            message = "\n".join(messages) or resp.reason_phrase or f"HTTP {status}"

        if status == 400 and "include parameter" in message:
            field = "include"
        else:
            for e in errors:
                pointer = (e.source or {}).get("pointer")
                if isinstance(pointer, str) and pointer.startswith("/data/"):
                    field = pointer.rstrip("/").rsplit("/", 1)[-1]
                    break

        return error_class_for_status(status)(
            message,
            status_code=status,
            method=method,
            url=url,
            field=field,
            response_json=response_json,
            response_text=response_text,
        )


def _response_headers(op: Operation, resp: httpx.Response) -> httpx.Headers:
    return resp.headers


def _encode_input(payload: Any) -> bytes:
    if isinstance(payload, JSONAPIModel) or (
        isinstance(payload, list)
        and payload
        and all(isinstance(p, JSONAPIModel) for p in payload)
    ):
        try:
            doc = serialize(payload)
        except JSONAPIDecodeError as exc:
            raise TFEInvalidInputError(str(exc), field="input") from exc
        return json.dumps(doc).encode("utf-8")
    if isinstance(payload, BaseModel):
        return payload.model_dump_json(by_alias=True, exclude_none=True).encode(
            "utf-8"
        )
    raise TFEInvalidInputError(
        f"unsupported input type {type(payload).__name__}", field="input"
    )


def _transport_error(exc: httpx.HTTPError, method: str, url: str) -> TFEClientError:
    if isinstance(exc, httpx.TimeoutException):
        cls: type[TFEClientError] = TFETimeoutError
    else:
        cls = TFETransportError
    return cls(
        f"Network error calling {method} {url}: {exc}", method=method, url=url
    )


class _FileStream:
    """Async byte stream over a binary file object, read off the event loop."""

    def __init__(self, fh: io.BufferedIOBase):
        self._fh = fh

    async def __aiter__(self) -> AsyncIterator[bytes]:
        while True:
            chunk = await anyio.to_thread.run_sync(self._fh.read, _CHUNK_SIZE)
            if not chunk:
                break
            yield chunk


__all__ = [
    "TFEClient",
    "RetryConfig",
    "CancelSignal",
    "APIMetadata",
    "DEFAULT_ADDRESS",
    "DEFAULT_BASE_PATH",
    "DEFAULT_REGISTRY_BASE_PATH",
    "PING_ENDPOINT",
    "USER_AGENT",
]
