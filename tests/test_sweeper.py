import asyncio
import pytest
from unittest.mock import AsyncMock, MagicMock

from pricewatch.application.services.price_update_service import SweepReport
from pricewatch.boot import build_services
from pricewatch.infrastructure.sched.sweeper import SweepScheduler

from conftest import NOW

@pytest.fixture
def updates() -> MagicMock:
    mock = MagicMock()
    mock.run_sweep = AsyncMock(return_value=SweepReport(started_at=NOW))
    return mock

@pytest.fixture
def dispatch() -> MagicMock:
    mock = MagicMock()
    mock.dispatch_pending = AsyncMock()
    return mock

@pytest.mark.asyncio
async def test_run_once_sweeps_then_dispatches(updates, dispatch):
    await SweepScheduler(updates, dispatch).run_once()
    updates.run_sweep.assert_awaited_once()
    dispatch.dispatch_pending.assert_awaited_once()

@pytest.mark.asyncio
async def test_interrupted_sweep_skips_dispatch(updates, dispatch):
    updates.run_sweep.return_value = SweepReport(started_at=NOW, interrupted=True)
    await SweepScheduler(updates, dispatch).run_once()
    dispatch.dispatch_pending.assert_not_awaited()

@pytest.mark.asyncio
async def test_loop_survives_failures_and_stops(updates, dispatch):
    updates.run_sweep = AsyncMock(side_effect=RuntimeError("db down"))
    scheduler = SweepScheduler(updates, dispatch, interval=0)
    scheduler.start()
    await asyncio.sleep(0.05)
    await scheduler.stop()

    assert updates.run_sweep.await_count >= 2
    updates.request_stop.assert_called_once()

def test_build_services_wires_everything():
    services = build_services()
    for name in ("price_update_service", "dispatch_service", "tracking_service", "rule_evaluator", "scheduler"):
        assert services[name] is not None
    assert services["scheduler"].price_update_service is services["price_update_service"]
