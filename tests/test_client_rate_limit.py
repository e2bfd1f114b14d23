import pytest
import respx
from httpx import Response
from tfe_client.core.client import RetryConfig, TFEClient
from tfe_client.core.operation import Operation
from tfe_client.core.ratelimit import RateLimiter

ADDRESS = "https://tfe.example.com"
API = f"{ADDRESS}/api/v2"


class FakeClock:
    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class CountingLimiter(RateLimiter):
    def __init__(self):
        super().__init__(1.0, 1)
        self.calls = 0

    async def acquire(self) -> float:
        self.calls += 1
        return 0.0


def _client(**kwargs) -> TFEClient:
    return TFEClient(address=ADDRESS, token="secret", **kwargs)


def test_from_limit_scales_the_advertised_limit():
    limiter = RateLimiter.from_limit("30")

    assert limiter.rate == pytest.approx(19.8)
    assert limiter.burst == 9


@pytest.mark.parametrize("raw", [None, "", "0", "-5", "abc", "nan", "inf", True])
def test_from_limit_without_a_usable_limit_is_unlimited(raw):
    assert RateLimiter.from_limit(raw) is None


def test_small_limit_still_allows_one_request():
    assert RateLimiter.from_limit(1).burst == 1


def test_limiter_rejects_bad_parameters():
    with pytest.raises(ValueError):
        RateLimiter(0, 1)
    with pytest.raises(ValueError):
        RateLimiter(1.0, 0)


@pytest.mark.asyncio
async def test_acquire_allows_a_burst_then_paces():
    clock = FakeClock()
    limiter = RateLimiter(2.0, 2, clock=clock, sleep=clock.sleep)

    waits = [await limiter.acquire() for _ in range(4)]

    assert waits == [0.0, 0.0, 0.5, 0.5]
    assert clock.sleeps == [0.5, 0.5]


@pytest.mark.asyncio
async def test_idle_time_refills_up_to_burst():
    clock = FakeClock()
    limiter = RateLimiter(1.0, 2, clock=clock, sleep=clock.sleep)
    await limiter.acquire()
    await limiter.acquire()

    clock.now += 60
    waits = [await limiter.acquire() for _ in range(3)]

    assert waits == [0.0, 0.0, 1.0]


@pytest.mark.asyncio
async def test_every_attempt_waits_for_the_limiter():
    limiter = CountingLimiter()
    async with respx.mock:
        route = respx.get(f"{API}/organizations").mock(
            side_effect=[Response(429), Response(200, json={"data": []})]
        )

        async with _client(
            rate_limiter=limiter,
            retry=RetryConfig(backoff_base_seconds=0, jitter_seconds=0),
        ) as client:
            await client.execute(Operation("GET", "organizations"))

    assert route.call_count == 2
    assert limiter.calls == 2


@pytest.mark.asyncio
async def test_requests_are_spaced_by_the_limiter():
    clock = FakeClock()
    limiter = RateLimiter(1.0, 1, clock=clock, sleep=clock.sleep)
    async with respx.mock:
        route = respx.get(f"{API}/organizations").mock(
            return_value=Response(200, json={"data": []})
        )

        async with _client(rate_limiter=limiter) as client:
            for _ in range(3):
                await client.execute(Operation("GET", "organizations"))

    assert route.call_count == 3
    assert clock.sleeps == [1.0, 1.0]


@pytest.mark.asyncio
async def test_ping_reports_metadata_and_configures_the_limiter():
    async with respx.mock:
        route = respx.get(f"{API}/ping").mock(
            return_value=Response(
                204,
                headers={
                    "X-RateLimit-Limit": "30",
                    "TFP-API-Version": "2.6",
                    "X-TFE-Version": "v202401-1",
                    "TFP-AppName": "HCP Terraform",
                },
            )
        )

        async with _client() as client:
            assert client.rate_limiter is None
            meta = await client.ping()

            assert client.rate_limiter is not None
            assert client.rate_limiter.rate == pytest.approx(19.8)
            assert client.rate_limiter.burst == 9

    assert route.called
    assert meta.api_version == "2.6"
    assert meta.tfe_version == "v202401-1"
    assert meta.app_name == "HCP Terraform"
    assert meta.rate_limit == "30"


@pytest.mark.asyncio
async def test_ping_without_a_limit_removes_throttling():
    async with respx.mock:
        respx.get(f"{API}/ping").mock(return_value=Response(200))

        async with _client(rate_limiter=RateLimiter(1.0, 1)) as client:
            meta = await client.ping()

            assert client.rate_limiter is None

    assert meta.rate_limit == ""


@pytest.mark.asyncio
async def test_registry_operations_use_the_registry_base_path():
    async with respx.mock:
        default = respx.get(
            f"{ADDRESS}/api/registry/v1/modules/acme/vpc/aws/versions"
        ).mock(return_value=Response(200, json={"modules": []}))
        custom = respx.get(f"{ADDRESS}/registry/v1/modules/acme/vpc/aws/versions").mock(
            return_value=Response(200, json={"modules": []})
        )
        op = Operation(
            "GET",
            "v1/modules/{organization}/vpc/aws/versions",
            path_params={"organization": "acme"},
            registry=True,
        )

        async with _client() as client:
            assert client.registry_base_url == f"{ADDRESS}/api/registry"
            await client.execute(op)
        async with _client(registry_base_path="registry/") as client:
            assert client.registry_base_url == f"{ADDRESS}/registry"
            await client.execute(op)

    assert default.called
    assert custom.called
    request = default.calls.last.request
    assert request.headers["Authorization"] == "Bearer secret"
