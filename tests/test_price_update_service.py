import asyncio
import pytest
from datetime import timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

from pricewatch.application.services.price_update_service import PriceUpdateService
from pricewatch.domain.entities import AlertStatus, AlertType, TrackedItem
from pricewatch.domain.errors import ItemNotFoundError, StalePriceError, TransientFetchError
from pricewatch.infrastructure.db.repository import (
    AlertRepository,
    ItemRepository,
    PriceHistoryRepository,
)

from conftest import NOW

@pytest.fixture
def fetcher() -> MagicMock:
    mock = MagicMock()
    mock.fetch = AsyncMock(return_value=Decimal("100"))
    return mock

@pytest.fixture
def service(fetcher, session_factory, clock) -> PriceUpdateService:
    return PriceUpdateService(fetcher, session_factory=session_factory, clock=clock,
                              max_retries=2, backoff_seconds=0)

@pytest.mark.asyncio
async def test_first_observation_sets_price_without_alerts(service, db_session, item, make_subscription):
    make_subscription(AlertType.PRICE_DROP)
    result = await service.update_item(item.id, "100")

    assert result.old_price is None
    assert result.alerts == []
    assert ItemRepository(db_session).get(item.id).current_price == Decimal("100")
    assert PriceHistoryRepository(db_session).latest(item.id).price == Decimal("100")

@pytest.mark.asyncio
async def test_percentage_drop_fires_and_is_persisted(service, db_session, item, make_subscription, clock):
    sub = make_subscription(AlertType.PERCENTAGE_DROP, "10")
    await service.update_item(item.id, "100", NOW - timedelta(hours=1))
    result = await service.update_item(item.id, "88")

    assert result.old_price == Decimal("100")
    assert [a.alert_type for a in result.alerts] == [AlertType.PERCENTAGE_DROP]
    pending = AlertRepository(db_session).list_pending()
    assert len(pending) == 1
    assert pending[0].subscription_id == sub.id
    assert pending[0].status == AlertStatus.PENDING
    assert pending[0].new_price == Decimal("88")

@pytest.mark.asyncio
async def test_back_in_stock_after_zero(service, item, make_subscription):
    make_subscription(AlertType.BACK_IN_STOCK)
    await service.update_item(item.id, "0", NOW - timedelta(hours=1))
    result = await service.update_item(item.id, "49.99")
    assert [a.alert_type for a in result.alerts] == [AlertType.BACK_IN_STOCK]

@pytest.mark.asyncio
async def test_stale_observation_is_rejected_without_writes(service, db_session, item):
    await service.update_item(item.id, "100", NOW)
    with pytest.raises(StalePriceError):
        await service.update_item(item.id, "50", NOW - timedelta(minutes=1))

    assert ItemRepository(db_session).get(item.id).current_price == Decimal("100")
    assert len(PriceHistoryRepository(db_session).query(item.id, NOW - timedelta(days=1))) == 1

@pytest.mark.asyncio
async def test_equal_timestamp_is_accepted(service, item):
    await service.update_item(item.id, "100", NOW)
    result = await service.update_item(item.id, "99", NOW)
    assert result.new_price == Decimal("99")

@pytest.mark.asyncio
async def test_unknown_or_inactive_item_is_rejected(service, db_session, item):
    with pytest.raises(ItemNotFoundError):
        await service.update_item(999, "10")
    ItemRepository(db_session).deactivate(item.id)
    with pytest.raises(ItemNotFoundError):
        await service.update_item(item.id, "10")

@pytest.mark.asyncio
async def test_negative_price_is_rejected(service, item):
    with pytest.raises(ValueError):
        await service.update_item(item.id, "-1")

@pytest.mark.asyncio
async def test_concurrent_updates_for_one_item_are_serialized(service, db_session, item, make_subscription):
    make_subscription(AlertType.PRICE_DROP)
    await service.update_item(item.id, "100", NOW - timedelta(hours=1))
    await asyncio.gather(service.update_item(item.id, "90"), service.update_item(item.id, "80"))

    history = PriceHistoryRepository(db_session).query(item.id, NOW - timedelta(days=1))
    assert len(history) == 3
    assert ItemRepository(db_session).get(item.id).current_price == history[-1].price
    pending = AlertRepository(db_session).list_pending()
    assert [a.alert_type for a in pending] == [AlertType.PRICE_DROP, AlertType.PRICE_DROP]
    assert [a.old_price for a in pending] == [Decimal("100"), Decimal("90")]
    assert [a.new_price for a in pending] == [Decimal("90"), Decimal("80")]

@pytest.mark.asyncio
async def test_prices_are_quantized_to_cents_on_ingest(service, db_session, item, make_subscription):
    make_subscription(AlertType.PRICE_DROP)
    await service.update_item(item.id, "10.006", NOW - timedelta(hours=2))
    result = await service.update_item(item.id, "10.004", NOW - timedelta(hours=1))

    assert result.old_price == Decimal("10.01")
    assert result.new_price == Decimal("10.00")
    assert [a.alert_type for a in result.alerts] == [AlertType.PRICE_DROP]
    assert ItemRepository(db_session).get(item.id).current_price == result.new_price
    assert PriceHistoryRepository(db_session).latest(item.id).price == result.new_price

    # 10.001 rounds to the stored 10.00, so nothing moved
    unchanged = await service.update_item(item.id, "10.001")
    assert unchanged.old_price == unchanged.new_price == Decimal("10.00")
    assert unchanged.alerts == []

# --- Sweep ---

@pytest.mark.asyncio
async def test_sweep_continues_past_failing_items(service, fetcher, db_session, item):
    broken = ItemRepository(db_session).add(TrackedItem(name="broken", url="https://shop.example.com/broken"))
    third = ItemRepository(db_session).add(TrackedItem(name="third", url="https://shop.example.com/third"))

    async def fake_fetch(url):
        if url == broken.url:
            raise TransientFetchError(url, "HTTP 503")
        return Decimal("42")
    fetcher.fetch = AsyncMock(side_effect=fake_fetch)

    report = await service.run_sweep()

    assert report.updated == 2
    assert set(report.failures) == {broken.id}
    assert not report.interrupted
    assert ItemRepository(db_session).get(third.id).current_price == Decimal("42")
    # one try plus two retries
    assert sum(1 for c in fetcher.fetch.await_args_list if c.args[0] == broken.url) == 3

@pytest.mark.asyncio
async def test_sweep_survives_unexpected_errors(service, fetcher, item):
    fetcher.fetch = AsyncMock(side_effect=RuntimeError("boom"))
    report = await service.run_sweep()
    assert report.updated == 0
    assert report.failures == {item.id: "boom"}

@pytest.mark.asyncio
async def test_fetch_retry_recovers(service, fetcher, item):
    fetcher.fetch = AsyncMock(side_effect=[TransientFetchError(item.url, "timeout"), Decimal("55")])
    report = await service.run_sweep()
    assert report.updated == 1
    assert report.failures == {}

@pytest.mark.asyncio
async def test_request_stop_interrupts_between_items(service, fetcher, db_session, item):
    ItemRepository(db_session).add(TrackedItem(name="second", url="https://shop.example.com/second"))

    async def stop_after_first(url):
        service.request_stop()
        return Decimal("10")
    fetcher.fetch = AsyncMock(side_effect=stop_after_first)

    report = await service.run_sweep()
    assert report.interrupted
    assert report.updated == 1

@pytest.mark.asyncio
async def test_sweep_is_cancellable(service, fetcher, item):
    started = asyncio.Event()

    async def hang(url):
        started.set()
        await asyncio.sleep(3600)
    fetcher.fetch = AsyncMock(side_effect=hang)

    task = asyncio.create_task(service.run_sweep())
    await started.wait()
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
