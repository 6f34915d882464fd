"""Tests for ExecutionSlot and ExecutionHandle."""

from __future__ import annotations

import asyncio
import threading

import pytest

from apidesk.exceptions import NoActiveRequestError
from apidesk.executor.slot import ExecutionHandle, ExecutionSlot
from apidesk.exit_codes import EXIT_NO_ACTIVE_REQUEST


class TestExecutionHandle:
    def test_new_handle_is_active(self) -> None:
        handle = ExecutionHandle()
        assert handle.cancelled is False
        assert "active" in repr(handle)

    def test_cancel_sets_flag(self) -> None:
        handle = ExecutionHandle()
        assert handle.cancel() is True
        assert handle.cancelled is True
        assert "cancelled" in repr(handle)

    def test_second_cancel_reports_false(self) -> None:
        handle = ExecutionHandle()
        handle.cancel()
        assert handle.cancel() is False
        assert handle.cancelled is True

    def test_ids_are_unique(self) -> None:
        assert ExecutionHandle().id != ExecutionHandle().id

    @pytest.mark.asyncio
    async def test_wait_returns_after_cancel(self) -> None:
        handle = ExecutionHandle(asyncio.get_running_loop())
        waiter = asyncio.ensure_future(handle.wait())
        await asyncio.sleep(0)
        assert not waiter.done()

        handle.cancel()
        await asyncio.wait_for(waiter, timeout=1)

    @pytest.mark.asyncio
    async def test_wait_after_cancel_returns_immediately(self) -> None:
        handle = ExecutionHandle(asyncio.get_running_loop())
        handle.cancel()
        await asyncio.wait_for(handle.wait(), timeout=1)

    @pytest.mark.asyncio
    async def test_cancel_from_other_thread_wakes_waiter(self) -> None:
        handle = ExecutionHandle(asyncio.get_running_loop())
        waiter = asyncio.ensure_future(handle.wait())

        thread = threading.Thread(target=handle.cancel)
        thread.start()
        await asyncio.wait_for(waiter, timeout=1)
        thread.join()
        assert handle.cancelled is True

    def test_cancel_after_loop_closed(self) -> None:
        loop = asyncio.new_event_loop()
        handle = ExecutionHandle(loop)
        loop.close()

        assert handle.cancel() is True
        assert handle.cancelled is True


class TestAcquire:
    def test_empty_slot_is_free(self) -> None:
        slot = ExecutionSlot()
        assert slot.current is None
        assert slot.is_busy is False
        assert "free" in repr(slot)

    def test_acquire_installs_handle(self) -> None:
        slot = ExecutionSlot()
        handle = slot.acquire()
        assert slot.current is handle
        assert slot.is_busy is True
        assert handle.cancelled is False
        assert f"#{handle.id}" in repr(slot)

    def test_acquire_cancels_previous_occupant(self) -> None:
        slot = ExecutionSlot()
        first = slot.acquire()
        second = slot.acquire()

        assert first.cancelled is True
        assert second.cancelled is False
        assert slot.current is second

    def test_acquire_does_not_touch_already_released_handle(self) -> None:
        slot = ExecutionSlot()
        first = slot.acquire()
        slot.release(first)
        slot.acquire()
        assert first.cancelled is False


class TestRelease:
    def test_release_clears_own_handle(self) -> None:
        slot = ExecutionSlot()
        handle = slot.acquire()
        assert slot.release(handle) is True
        assert slot.current is None

    def test_stale_release_keeps_newer_occupant(self) -> None:
        slot = ExecutionSlot()
        first = slot.acquire()
        second = slot.acquire()

        assert slot.release(first) is False
        assert slot.current is second

    def test_release_twice_is_harmless(self) -> None:
        slot = ExecutionSlot()
        handle = slot.acquire()
        slot.release(handle)
        assert slot.release(handle) is False
        assert slot.current is None


class TestCancelCurrent:
    def test_cancels_and_clears(self) -> None:
        slot = ExecutionSlot()
        handle = slot.acquire()

        cancelled = slot.cancel_current()
        assert cancelled is handle
        assert handle.cancelled is True
        assert slot.current is None

    def test_empty_slot_raises(self) -> None:
        slot = ExecutionSlot()
        with pytest.raises(NoActiveRequestError) as exc_info:
            slot.cancel_current()
        assert exc_info.value.exit_code == EXIT_NO_ACTIVE_REQUEST

    def test_second_cancel_raises(self) -> None:
        slot = ExecutionSlot()
        slot.acquire()
        slot.cancel_current()
        with pytest.raises(NoActiveRequestError):
            slot.cancel_current()

    def test_release_after_cancel_is_noop(self) -> None:
        slot = ExecutionSlot()
        handle = slot.acquire()
        slot.cancel_current()
        assert slot.release(handle) is False


class TestClose:
    def test_close_cancels_occupant(self) -> None:
        slot = ExecutionSlot()
        handle = slot.acquire()
        assert slot.close() is handle
        assert handle.cancelled is True
        assert slot.current is None

    def test_close_empty_slot(self) -> None:
        assert ExecutionSlot().close() is None


class TestConcurrentAccess:
    def test_many_threads_leave_one_active_occupant(self) -> None:
        slot = ExecutionSlot()
        handles: list[ExecutionHandle] = []
        lock = threading.Lock()
        start = threading.Barrier(8)

        def _worker() -> None:
            start.wait()
            for _ in range(50):
                handle = slot.acquire()
                with lock:
                    handles.append(handle)

        threads = [threading.Thread(target=_worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        current = slot.current
        assert current is not None
        active = [h for h in handles if not h.cancelled]
        assert active == [current]
        assert len(handles) == 400

    def test_cancel_races_with_acquire(self) -> None:
        slot = ExecutionSlot()
        errors: list[BaseException] = []

        def _canceller() -> None:
            for _ in range(200):
                try:
                    slot.cancel_current()
                except NoActiveRequestError:
                    pass
                except BaseException as exc:  # noqa: BLE001
                    errors.append(exc)

        def _acquirer() -> None:
            for _ in range(200):
                slot.acquire()

        threads = [threading.Thread(target=_canceller), threading.Thread(target=_acquirer)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        current = slot.current
        assert current is None or current.cancelled is False
