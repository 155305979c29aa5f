"""A background thread that runs a work loop and can be started, stopped and restarted."""

from __future__ import annotations

import signal
import threading
from abc import ABC, abstractmethod
from enum import Enum, auto

from minerkit.log import cwarn

__all__ = ["WorkerState", "Worker"]


class WorkerState(Enum):
    """Life-cycle states of a worker thread."""

    STARTING = auto()
    STARTED = auto()
    STOPPING = auto()
    STOPPED = auto()
    KILLING = auto()


class Worker(ABC):
    """Owns one thread that repeatedly runs :meth:`work_loop` on request.

    The thread is created on the first :meth:`start_working` and kept alive,
    parked, between runs; :meth:`close` ends it for good.
    """

    #: When true, an exception escaping the work loop sends SIGTERM to the process.
    exit_on_error: bool = False

    def __init__(self, name: str) -> None:
        self.name = name
        self._work_lock = threading.Lock()
        self._cond = threading.Condition()
        self._state = WorkerState.STARTING
        self._thread: threading.Thread | None = None

    @property
    def state(self) -> WorkerState:
        """Current state of the worker."""
        with self._cond:
            return self._state

    def _exchange(self, new: WorkerState) -> WorkerState:
        with self._cond:
            old = self._state
            self._state = new
            self._cond.notify_all()
            return old

    def _compare_exchange(self, expected: WorkerState, new: WorkerState) -> bool:
        with self._cond:
            if self._state is not expected:
                return False
            self._state = new
            self._cond.notify_all()
            return True

    def _wait_until(self, predicate) -> None:
        with self._cond:
            self._cond.wait_for(predicate)

    def _run(self) -> None:
        while self.state is not WorkerState.KILLING:
            self._compare_exchange(WorkerState.STARTING, WorkerState.STARTED)
            try:
                self.work_loop()
            except Exception as exc:  # noqa: BLE001 - any failure of the loop is reported
                cwarn("Exception thrown in Worker thread: ", exc)
                if self.exit_on_error:
                    cwarn("Terminating due to --exit")
                    signal.raise_signal(signal.SIGTERM)

            previous = self._exchange(WorkerState.STOPPED)
            if previous in (WorkerState.KILLING, WorkerState.STARTING):
                self._exchange(previous)

            self._wait_until(lambda: self._state is not WorkerState.STOPPED)

    def start_working(self) -> None:
        """Start the work loop, creating the thread on first use; returns once it runs."""
        with self._work_lock:
            if self._thread is not None:
                self._compare_exchange(WorkerState.STOPPED, WorkerState.STARTING)
            else:
                self._exchange(WorkerState.STARTING)
                self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
                self._thread.start()
            self._wait_until(lambda: self._state is not WorkerState.STARTING)

    def trigger_stop_working(self) -> None:
        """Ask the work loop to stop without waiting for it."""
        with self._work_lock:
            if self._thread is not None:
                self._compare_exchange(WorkerState.STARTED, WorkerState.STOPPING)

    def stop_working(self) -> None:
        """Ask the work loop to stop and wait until it has."""
        with self._work_lock:
            if self._thread is None:
                return
            self._compare_exchange(WorkerState.STARTED, WorkerState.STOPPING)
            self._wait_until(lambda: self._state is WorkerState.STOPPED)

    def should_stop(self) -> bool:
        """Whether the work loop ought to return."""
        return self.state is not WorkerState.STARTED

    @abstractmethod
    def work_loop(self) -> None:
        """Do the work; return once :meth:`should_stop` becomes true."""

    def close(self) -> None:
        """End the thread for good and wait for it."""
        with self._work_lock:
            if self._thread is not None:
                self._exchange(WorkerState.KILLING)
                self._thread.join()
                self._thread = None

    def __enter__(self) -> Worker:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()