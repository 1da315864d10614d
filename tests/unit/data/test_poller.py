import asyncio
from decimal import Decimal

import pytest

from cryptofolio.config.configs import PollerConfig
from cryptofolio.data.poller import PollingFetcher, is_authorization_error
from cryptofolio.errors.errors import AuthorizationError, FetchError
from cryptofolio.types.events import PortfolioRefreshed
from cryptofolio.types.topics import E_PORTFOLIO_REFRESHED, EventName
from cryptofolio.types.types import Exchange, ExchangeWithAssets


class FakeSleep:
    """Records requested delays instead of sleeping."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)


class FlakyFetch:
    def __init__(self, failures: list[Exception], result) -> None:
        self._failures = list(failures)
        self._result = result
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self._failures:
            raise self._failures.pop(0)
        return self._result


def _portfolio() -> tuple[ExchangeWithAssets, ...]:
    return (ExchangeWithAssets(exchange=Exchange(id="ex-1", name="Binance"), total_value=Decimal("10")),)


@pytest.mark.asyncio
async def test_refresh_success_publishes_data(bus, telemetry):
    received = []
    bus.subscribe(E_PORTFOLIO_REFRESHED, received.append)
    fetch = FlakyFetch([], result=["exchange"])
    fetcher = PollingFetcher(fetch, bus, telemetry=telemetry, sleep=FakeSleep())

    state = await fetcher.refresh()

    assert state.data == ["exchange"]
    assert state.error is None
    assert state.is_loading is False
    assert state.last_updated is not None
    assert received == [["exchange"]]
    assert telemetry.named("fetch_succeeded") == [{"fetcher": "poller", "attempts": 1}]


@pytest.mark.asyncio
async def test_refresh_emits_typed_event(bus):
    received = []
    bus.on(PortfolioRefreshed, received.append)
    fetcher = PollingFetcher(
        FlakyFetch([], result=_portfolio()),
        bus,
        to_event=lambda exchanges: PortfolioRefreshed(exchanges=exchanges),
        sleep=FakeSleep(),
    )

    await fetcher.refresh()

    assert len(received) == 1
    assert received[0].exchanges[0].id == "ex-1"


@pytest.mark.asyncio
async def test_transient_errors_are_retried_with_backoff(bus):
    sleep = FakeSleep()
    fetch = FlakyFetch([ConnectionError("reset"), TimeoutError("slow")], result=[1])
    fetcher = PollingFetcher(fetch, bus, cfg=PollerConfig(retry_delay_s=1.0), sleep=sleep)

    state = await fetcher.refresh()

    assert fetch.calls == 3
    assert sleep.delays == [1.0, 2.0]
    assert state.data == [1]
    assert state.retry_count == 0


@pytest.mark.asyncio
async def test_retries_exhausted_records_error_and_keeps_data(bus, telemetry):
    received = []
    bus.subscribe(E_PORTFOLIO_REFRESHED, received.append)
    sleep = FakeSleep()
    cfg = PollerConfig(max_retries=2, retry_delay_s=0.5)

    fetcher = PollingFetcher(
        FlakyFetch([], result="old"), bus, cfg=cfg, telemetry=telemetry, sleep=sleep
    )
    await fetcher.refresh()

    fetcher._fetch = FlakyFetch([RuntimeError("down")] * 3, result="new")
    state = await fetcher.refresh()

    assert state.data == "old"
    assert isinstance(state.error, FetchError)
    assert not isinstance(state.error, AuthorizationError)
    assert "after 2 retries" in str(state.error)
    assert state.error.attempts == 3
    assert state.retry_count == 2
    assert state.is_loading is False
    assert sleep.delays == [0.5, 1.0]
    assert received == ["old"]
    assert telemetry.named("fetch_failed")[0]["attempts"] == 3


@pytest.mark.asyncio
async def test_authorization_errors_are_not_retried(bus):
    sleep = FakeSleep()
    fetch = FlakyFetch([PermissionError("permission denied for table assets")], result=[])
    fetcher = PollingFetcher(fetch, bus, sleep=sleep)

    state = await fetcher.refresh()

    assert fetch.calls == 1
    assert sleep.delays == []
    assert isinstance(state.error, AuthorizationError)
    assert str(state.error).startswith("Authorization error")


def test_is_authorization_error():
    assert is_authorization_error(AuthorizationError("no session"))
    assert is_authorization_error(RuntimeError("Error de autorización"))
    assert is_authorization_error(RuntimeError("Missing Authorization header"))
    assert not is_authorization_error(RuntimeError("connection reset"))


@pytest.mark.asyncio
async def test_polling_loop_refreshes_until_stopped(bus):
    published = []
    bus.subscribe(EventName.PORTFOLIO_REFRESHED, published.append)
    sleep = FakeSleep()
    fetch = FlakyFetch([], result="tick")
    fetcher = PollingFetcher(fetch, bus, cfg=PollerConfig(interval_s=5.0), sleep=sleep)

    fetcher.start()
    assert fetcher.is_running
    for _ in range(10):
        await asyncio.sleep(0)
    await fetcher.stop()

    assert not fetcher.is_running
    assert fetch.calls >= 2
    assert set(sleep.delays) == {5.0}
    assert len(published) == fetch.calls


@pytest.mark.asyncio
async def test_start_without_interval_refreshes_once(bus):
    fetch = FlakyFetch([], result="once")
    fetcher = PollingFetcher(fetch, bus, cfg=PollerConfig(interval_s=None), sleep=FakeSleep())

    task = fetcher.start()
    await task

    assert fetch.calls == 1
    assert not fetcher.is_running
    await fetcher.stop()


@pytest.mark.asyncio
async def test_start_twice_raises(bus):
    fetcher = PollingFetcher(FlakyFetch([], result=1), bus, sleep=FakeSleep())
    fetcher.start()
    try:
        with pytest.raises(RuntimeError):
            fetcher.start()
    finally:
        await fetcher.stop()


@pytest.mark.asyncio
async def test_retry_count_reset_on_each_refresh(bus):
    cfg = PollerConfig(max_retries=2, retry_delay_s=0.0)
    fetcher = PollingFetcher(
        FlakyFetch([RuntimeError("down")] * 3, result=None), bus, cfg=cfg, sleep=FakeSleep()
    )
    state = await fetcher.refresh()
    assert state.retry_count == 2

    fetcher._fetch = FlakyFetch([AuthorizationError("no session")], result=None)
    state = await fetcher.refresh()

    assert isinstance(state.error, AuthorizationError)
    assert state.retry_count == 0


@pytest.mark.asyncio
async def test_failing_mapper_is_reported_and_keeps_data(bus, telemetry):
    def broken_mapper(_):
        raise ValueError("cannot map")

    fetcher = PollingFetcher(
        FlakyFetch([], result="fresh"),
        bus,
        to_event=broken_mapper,
        telemetry=telemetry,
        sleep=FakeSleep(),
    )

    state = await fetcher.refresh()  # must not raise

    assert state.data == "fresh"
    assert state.error is None
    (failure,) = telemetry.named("announce_failed")
    assert failure["fetcher"] == "poller"
    assert "cannot map" in failure["error"]


@pytest.mark.asyncio
async def test_failing_mapper_does_not_end_polling(bus, telemetry):
    def broken_mapper(_):
        raise ValueError("cannot map")

    fetch = FlakyFetch([], result="tick")
    fetcher = PollingFetcher(
        fetch,
        bus,
        to_event=broken_mapper,
        cfg=PollerConfig(interval_s=5.0),
        telemetry=telemetry,
        sleep=FakeSleep(),
    )

    fetcher.start()
    for _ in range(10):
        await asyncio.sleep(0)
    assert fetcher.is_running
    await fetcher.stop()  # must not re-raise the mapper error

    assert fetch.calls >= 2
    assert len(telemetry.named("announce_failed")) == fetch.calls
