import asyncio

from peru_map.search.debounce import DebounceScheduler


def test_rapid_schedules_fire_once_with_last_action():
    async def _run():
        scheduler = DebounceScheduler(delay_ms=50)
        fired = []
        for value in ("L", "Li", "Lim", "Lima"):
            scheduler.schedule(lambda value=value: fired.append(value))
            await asyncio.sleep(0.005)
        assert fired == []
        await asyncio.sleep(0.15)
        assert fired == ["Lima"]
        assert not scheduler.pending

    asyncio.run(_run())


def test_reschedule_restarts_the_wait():
    async def _run():
        scheduler = DebounceScheduler(delay_ms=50)
        fired = []
        scheduler.schedule(lambda: fired.append("first"))
        await asyncio.sleep(0.03)
        scheduler.schedule(lambda: fired.append("second"))
        await asyncio.sleep(0.03)
        assert fired == []
        await asyncio.sleep(0.06)
        assert fired == ["second"]

    asyncio.run(_run())


def test_cancel_drops_pending_action():
    async def _run():
        scheduler = DebounceScheduler(delay_ms=10)
        fired = []
        scheduler.schedule(lambda: fired.append(1))
        assert scheduler.pending
        assert scheduler.cancel() is True
        assert scheduler.cancel() is False
        await asyncio.sleep(0.04)
        assert fired == []

    asyncio.run(_run())


def test_flush_fires_immediately():
    async def _run():
        scheduler = DebounceScheduler(delay_ms=1000)
        fired = []
        scheduler.schedule(lambda: fired.append("now"))
        assert scheduler.flush() is True
        assert fired == ["now"]
        assert scheduler.flush() is False

    asyncio.run(_run())


def test_coroutine_actions_run_as_tasks_and_drain_waits():
    async def _run():
        scheduler = DebounceScheduler(delay_ms=5)
        done = []

        async def action():
            await asyncio.sleep(0.02)
            done.append(True)

        scheduler.schedule(action)
        await scheduler.drain()
        assert done == [True]

    asyncio.run(_run())


def test_new_schedule_does_not_cancel_running_action():
    async def _run():
        scheduler = DebounceScheduler(delay_ms=0)
        finished = []
        release = asyncio.Event()

        async def slow():
            await release.wait()
            finished.append("slow")

        scheduler.schedule(slow)
        await asyncio.sleep(0.01)
        scheduler.schedule(lambda: finished.append("fast"))
        await asyncio.sleep(0.01)
        release.set()
        await scheduler.drain()
        assert finished == ["fast", "slow"]

    asyncio.run(_run())
