"""
Scheduling of reconciliation cycles.

``LoopHandle`` runs cycles on a fixed period and on external triggers.
At most one cycle is in flight at any time: timer ticks that find a cycle
running are skipped, triggers wait for it and then run a fresh cycle.
"""
import functools
import logging
import threading
import time

from fleetscaler.errors import SchedulerBusy, SchedulerStopped
from fleetscaler.reconciler import run_cycle


class LoopHandle:
    """
    Owns the timer thread, the shutdown flag and the cycle guard.

    Args:
        cycle: Callable running one reconciliation cycle
        interval: Seconds between timer cycles
        grace: Default seconds to wait for an in-flight cycle on stop()
    """

    def __init__(self, cycle, interval: float, grace: float = 5.0, name: str = 'scaling-loop'):
        self._cycle = cycle
        self._interval = interval
        self._grace = grace
        self._name = name
        self._cycle_lock = threading.Lock()
        self._stopping = threading.Event()
        self._thread = None

    @classmethod
    def from_config(cls, config, queue_source, fleet, reporter=None):
        cycle = functools.partial(run_cycle, config, queue_source, fleet, reporter)
        return cls(cycle, interval=config.polling_interval, grace=config.shutdown_grace)

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._stopping.is_set()

    @property
    def stopping(self) -> bool:
        return self._stopping.is_set()

    @property
    def busy(self) -> bool:
        return self._cycle_lock.locked()

    def start(self):
        """Start the timer thread. The first cycle runs immediately."""
        if self._stopping.is_set():
            raise SchedulerStopped("Scaling loop has been stopped")
        if self._thread is not None:
            return
        logging.info(f"Starting scaling loop (every {self._interval:g} seconds)")
        self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
        self._thread.start()

    def _run(self):
        next_deadline = time.monotonic()
        while not self._stopping.is_set():
            self.tick()
            next_deadline += self._interval
            now = time.monotonic()
            if next_deadline < now:
                # Missed ticks collapse into the next one on the original grid
                skipped = int((now - next_deadline) // self._interval) + 1
                next_deadline += skipped * self._interval
            self._stopping.wait(max(0.0, next_deadline - now))
        logging.debug("Scaling loop exited")

    def tick(self):
        """
        Run a timer cycle unless one is already in flight.

        Returns:
            The cycle's decision, or None if the tick was skipped or failed
        """
        if self._stopping.is_set():
            return None
        if not self._cycle_lock.acquire(blocking=False):
            logging.debug("Scaling cycle already in flight, skipping tick")
            return None
        try:
            if self._stopping.is_set():
                return None
            return self._cycle()
        except Exception as e:
            # Already reported by the cycle; the next tick is the retry
            logging.debug(f"Scheduled scaling cycle failed with {type(e).__name__}, retrying on next tick")
            return None
        finally:
            self._cycle_lock.release()

    def trigger(self, timeout: float = None):
        """
        Run a cycle on demand, after any in-flight cycle finishes.

        Args:
            timeout: Seconds to wait for an in-flight cycle (None waits indefinitely)

        Returns:
            ScalingDecision of the triggered cycle

        Raises:
            SchedulerStopped: If shutdown has begun
            SchedulerBusy: If the in-flight cycle did not finish within ``timeout``
            ScalerError: If the cycle itself fails
        """
        if self._stopping.is_set():
            raise SchedulerStopped("Scaling loop is shutting down")
        if not self._cycle_lock.acquire(timeout=-1 if timeout is None else timeout):
            raise SchedulerBusy(f"Scaling cycle still in flight after {timeout:g} seconds")
        try:
            if self._stopping.is_set():
                raise SchedulerStopped("Scaling loop is shutting down")
            return self._cycle()
        finally:
            self._cycle_lock.release()

    def stop(self, grace: float = None) -> bool:
        """
        Stop admitting cycles and wait for the in-flight one to finish.

        Args:
            grace: Seconds to wait (default: the handle's grace period)

        Returns:
            bool: True if no cycle was left running when the grace period ended
        """
        grace = self._grace if grace is None else grace
        if not self._stopping.is_set():
            logging.info("Stopping scaling loop, no new cycles will start")
        self._stopping.set()

        deadline = time.monotonic() + grace
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(max(0.0, deadline - time.monotonic()))

        if self._cycle_lock.acquire(timeout=max(0.0, deadline - time.monotonic())):
            self._cycle_lock.release()
            logging.info("Scaling loop stopped")
            return True

        logging.warning(f"Scaling cycle still in flight after {grace:g} second grace period")
        return False
