import asyncio
from unittest.mock import AsyncMock

from restaurant_queue.engine.sweeper import AutoDepartureSweeper
from restaurant_queue.models.booking import BookingUpdate
from restaurant_queue.models.enums import BookingStatus
from tests.factories import make_booking_request


async def _seat(store, mobile: str = "0512345678"):
    booking = await store.create_booking(make_booking_request(mobile=mobile))
    return await store.update_booking(booking.id, BookingUpdate(status=BookingStatus.SEATED))


class TestRunOnce:
    async def test_completes_after_threshold(self, store, clock, sms):
        seated = await _seat(store)
        clock.advance(minutes=91)
        completed = await AutoDepartureSweeper(store).run_once()

        assert [b.id for b in completed] == [seated.id]
        stored = await store.get_booking(seated.id)
        assert stored.status == BookingStatus.COMPLETED
        assert stored.completed_at == clock.current
        assert stored.visit_duration_minutes == 91

        await store.drain_notifications()
        assert any("https://g.page/r/olaya" in text for _, text in sms.sent)

    async def test_leaves_recent_seatings(self, store, clock):
        seated = await _seat(store)
        clock.advance(minutes=90)
        assert await AutoDepartureSweeper(store).run_once() == []
        assert (await store.get_booking(seated.id)).status == BookingStatus.SEATED

    async def test_custom_threshold(self, store, clock):
        await _seat(store)
        clock.advance(minutes=31)
        completed = await AutoDepartureSweeper(store, threshold_minutes=30).run_once()
        assert len(completed) == 1

    async def test_only_overdue_completed(self, store, clock):
        early = await _seat(store, "0500000001")
        clock.advance(minutes=60)
        late = await _seat(store, "0500000002")
        clock.advance(minutes=45)
        completed = await AutoDepartureSweeper(store).run_once()
        assert [b.id for b in completed] == [early.id]
        assert (await store.get_booking(late.id)).status == BookingStatus.SEATED

    async def test_second_sweep_is_noop(self, store, clock):
        await _seat(store)
        clock.advance(minutes=120)
        sweeper = AutoDepartureSweeper(store)
        assert len(await sweeper.run_once()) == 1
        assert await sweeper.run_once() == []

    async def test_booking_changed_meanwhile_is_skipped(self, store, clock):
        seated = await _seat(store)
        clock.advance(minutes=100)
        await store.update_booking(seated.id, BookingUpdate(status=BookingStatus.CANCELLED))
        assert await AutoDepartureSweeper(store).run_once() == []
        assert (await store.get_booking(seated.id)).status == BookingStatus.CANCELLED


class TestLoop:
    async def test_start_and_stop(self, store):
        sweeper = AutoDepartureSweeper(store, interval_seconds=0.01)
        sweeper.run_once = AsyncMock(return_value=[])
        sweeper.start()
        assert sweeper.running
        await asyncio.sleep(0.05)
        await sweeper.stop()
        assert not sweeper.running
        assert sweeper.run_once.await_count >= 1

    async def test_errors_do_not_stop_loop(self, store, caplog):
        sweeper = AutoDepartureSweeper(store, interval_seconds=0.01)
        sweeper.run_once = AsyncMock(side_effect=[RuntimeError("db locked"), [], [], [], []])
        sweeper.start()
        await asyncio.sleep(0.05)
        await sweeper.stop()
        assert sweeper.run_once.await_count >= 2
        assert "Auto-departure sweep failed" in caplog.text

    async def test_start_twice_keeps_one_task(self, store):
        sweeper = AutoDepartureSweeper(store, interval_seconds=10)
        sweeper.run_once = AsyncMock(return_value=[])
        sweeper.start()
        task = sweeper._task
        sweeper.start()
        assert sweeper._task is task
        await sweeper.stop()

    async def test_stop_without_start(self, store):
        await AutoDepartureSweeper(store).stop()
