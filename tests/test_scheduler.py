import threading
import time
import unittest
from unittest import mock

from fleetscaler.errors import SchedulerBusy, SchedulerStopped, UpstreamUnavailable
from fleetscaler.scheduler import LoopHandle

from helpers import make_config


class BlockingCycle:
    """Cycle stand-in that blocks until released and tracks concurrency."""

    def __init__(self):
        self.release = threading.Event()
        self.entered = threading.Event()
        self.calls = 0
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def __call__(self):
        with self._lock:
            self.calls += 1
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        self.entered.set()
        self.release.wait(5)
        with self._lock:
            self.active -= 1
        return 'decision'


class TestLoopHandle(unittest.TestCase):

    def test_trigger_runs_cycle(self):
        cycle = mock.MagicMock(return_value='decision')
        handle = LoopHandle(cycle, interval=60)

        self.assertEqual(handle.trigger(), 'decision')
        cycle.assert_called_once_with()

    def test_trigger_surfaces_cycle_failure(self):
        cycle = mock.MagicMock(side_effect=UpstreamUnavailable("timeout"))
        handle = LoopHandle(cycle, interval=60)

        with self.assertRaises(UpstreamUnavailable):
            handle.trigger()
        # The guard is released for the next cycle
        cycle.side_effect = None
        cycle.return_value = 'decision'
        self.assertEqual(handle.trigger(), 'decision')

    def test_tick_swallows_cycle_failure(self):
        cycle = mock.MagicMock(side_effect=UpstreamUnavailable("timeout"))
        handle = LoopHandle(cycle, interval=60)

        self.assertIsNone(handle.tick())
        self.assertFalse(handle.busy)

    def test_concurrent_triggers_never_overlap(self):
        cycle = BlockingCycle()
        handle = LoopHandle(cycle, interval=60)
        results = []

        threads = [threading.Thread(target=lambda: results.append(handle.trigger())) for _ in range(3)]
        for thread in threads:
            thread.start()
        self.assertTrue(cycle.entered.wait(5))
        time.sleep(0.1)
        self.assertEqual(cycle.active, 1)

        cycle.release.set()
        for thread in threads:
            thread.join(5)

        self.assertEqual(cycle.max_active, 1)
        self.assertEqual(cycle.calls, 3)
        self.assertEqual(results, ['decision'] * 3)

    def test_tick_is_skipped_while_cycle_in_flight(self):
        cycle = BlockingCycle()
        handle = LoopHandle(cycle, interval=60)
        worker = threading.Thread(target=handle.trigger)
        worker.start()
        self.assertTrue(cycle.entered.wait(5))

        self.assertIsNone(handle.tick())
        self.assertEqual(cycle.calls, 1)

        cycle.release.set()
        worker.join(5)

    def test_trigger_times_out_while_cycle_in_flight(self):
        cycle = BlockingCycle()
        handle = LoopHandle(cycle, interval=60)
        worker = threading.Thread(target=handle.trigger)
        worker.start()
        self.assertTrue(cycle.entered.wait(5))

        with self.assertRaises(SchedulerBusy):
            handle.trigger(timeout=0.05)

        cycle.release.set()
        worker.join(5)

    def test_start_runs_first_cycle_immediately(self):
        ran = threading.Event()
        handle = LoopHandle(lambda: ran.set(), interval=60)

        handle.start()
        try:
            self.assertTrue(ran.wait(5))
            self.assertTrue(handle.running)
        finally:
            handle.stop(grace=1)
        self.assertFalse(handle.running)

    def test_timer_repeats_cycles(self):
        calls = []
        done = threading.Event()

        def cycle():
            calls.append(1)
            if len(calls) >= 3:
                done.set()

        handle = LoopHandle(cycle, interval=0.01)
        handle.start()
        try:
            self.assertTrue(done.wait(5))
        finally:
            handle.stop(grace=1)

    def test_timer_keeps_fixed_period_for_slow_cycles(self):
        starts = []
        done = threading.Event()

        def cycle():
            starts.append(time.monotonic())
            if len(starts) >= 4:
                done.set()
            time.sleep(0.15)

        handle = LoopHandle(cycle, interval=0.2)
        handle.start()
        try:
            self.assertTrue(done.wait(5))
        finally:
            handle.stop(grace=1)

        gaps = [later - earlier for earlier, later in zip(starts, starts[1:4])]
        for gap in gaps:
            self.assertLess(gap, 0.3)

    def test_overrunning_cycle_does_not_bunch_ticks(self):
        starts = []
        done = threading.Event()

        def cycle():
            starts.append(time.monotonic())
            if len(starts) == 1:
                time.sleep(0.25)
            if len(starts) >= 3:
                done.set()

        handle = LoopHandle(cycle, interval=0.1)
        handle.start()
        try:
            self.assertTrue(done.wait(5))
        finally:
            handle.stop(grace=1)

        # The second cycle lands on the grid after the overrun, not immediately
        self.assertGreaterEqual(starts[2] - starts[1], 0.03)

    def test_no_cycles_after_stop(self):
        cycle = mock.MagicMock()
        handle = LoopHandle(cycle, interval=60)

        self.assertTrue(handle.stop(grace=0))
        self.assertTrue(handle.stopping)

        with self.assertRaises(SchedulerStopped):
            handle.trigger()
        self.assertIsNone(handle.tick())
        with self.assertRaises(SchedulerStopped):
            handle.start()
        cycle.assert_not_called()

    def test_stop_waits_for_in_flight_cycle(self):
        cycle = BlockingCycle()
        handle = LoopHandle(cycle, interval=60)
        worker = threading.Thread(target=handle.trigger)
        worker.start()
        self.assertTrue(cycle.entered.wait(5))

        threading.Timer(0.05, cycle.release.set).start()
        self.assertTrue(handle.stop(grace=5))
        worker.join(5)

    def test_stop_gives_up_after_grace_period(self):
        cycle = BlockingCycle()
        handle = LoopHandle(cycle, interval=60)
        worker = threading.Thread(target=handle.trigger)
        worker.start()
        self.assertTrue(cycle.entered.wait(5))

        self.assertFalse(handle.stop(grace=0.05))

        cycle.release.set()
        worker.join(5)

    def test_stop_is_idempotent(self):
        handle = LoopHandle(mock.MagicMock(), interval=60)

        self.assertTrue(handle.stop(grace=0))
        self.assertTrue(handle.stop(grace=0))

    @mock.patch('fleetscaler.scheduler.run_cycle')
    def test_from_config(self, mock_run_cycle):
        config = make_config(polling_interval_ms=1500, shutdown_grace=2)
        queue, fleet, reporter = mock.MagicMock(), mock.MagicMock(), mock.MagicMock()
        mock_run_cycle.return_value = 'decision'

        handle = LoopHandle.from_config(config, queue, fleet, reporter)

        self.assertEqual(handle.trigger(), 'decision')
        mock_run_cycle.assert_called_once_with(config, queue, fleet, reporter)
        self.assertEqual(handle._interval, 1.5)
        self.assertEqual(handle._grace, 2.0)


if __name__ == '__main__':
    unittest.main()
