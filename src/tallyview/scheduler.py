"""Tareas recurrentes con cancelación explícita.

English:
    Recurring tasks with explicit cancellation.

    Each view owns a :class:`TaskGroup`; tearing the view down stops every
    timer it started. A tick that is already running is allowed to finish,
    but no new tick starts once :meth:`RecurringTask.stop` has been called.
"""

from __future__ import annotations

import threading
from typing import Callable, Dict, List, Optional

import structlog


class RecurringTask:
    """Ejecuta ``callback`` cada ``interval_seconds`` en un hilo propio.

    English: Runs ``callback`` every ``interval_seconds`` on its own thread.
    """

    def __init__(
        self,
        name: str,
        interval_seconds: float,
        callback: Callable[[], None],
        run_immediately: bool = False,
        logger: Optional[structlog.BoundLogger] = None,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be > 0, got {interval_seconds}")
        self.name = name
        self.interval_seconds = interval_seconds
        self.callback = callback
        self.run_immediately = run_immediately
        self.logger = logger or structlog.get_logger(__name__)
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self.ticks = 0
        self.errors = 0

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._stop_event.is_set()

    def start(self) -> None:
        """Arranca el hilo; llamadas repetidas no duplican el timer.

        English: Start the thread; repeated calls do not duplicate the timer.
        """
        if self._thread and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._loop, name=f"tallyview-{self.name}", daemon=True)
        self._thread.start()
        self.logger.debug("recurring_task_started", task=self.name, interval=self.interval_seconds)

    def stop(self, timeout: Optional[float] = 2.0) -> None:
        """Cancela el timer y espera al hilo (salvo desde el propio hilo).

        English: Cancel the timer and join the thread (unless called from it).
        """
        self._stop_event.set()
        thread = self._thread
        if thread and thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout=timeout)
        self.logger.debug("recurring_task_stopped", task=self.name, ticks=self.ticks)

    def run_once(self) -> None:
        """Ejecuta un tick de forma síncrona.

        English: Run one tick synchronously.
        """
        with self._lock:
            self.ticks += 1
            try:
                self.callback()
            except Exception as exc:
                # A failed tick is superseded by the next one.
                self.errors += 1
                self.logger.error("recurring_task_error", task=self.name, error=str(exc), exc_info=True)

    def _loop(self) -> None:
        if self.run_immediately and not self._stop_event.is_set():
            self.run_once()
        while not self._stop_event.wait(self.interval_seconds):
            self.run_once()


class TaskGroup:
    """Conjunto de tareas que pertenecen a una misma vista.

    English: Set of tasks owned by a single view.
    """

    def __init__(self, logger: Optional[structlog.BoundLogger] = None) -> None:
        self.logger = logger or structlog.get_logger(__name__)
        self._tasks: Dict[str, RecurringTask] = {}

    def __enter__(self) -> "TaskGroup":
        self.start_all()
        return self

    def __exit__(self, *_exc: object) -> None:
        self.stop_all()

    def __contains__(self, name: str) -> bool:
        return name in self._tasks

    def __getitem__(self, name: str) -> RecurringTask:
        return self._tasks[name]

    @property
    def names(self) -> List[str]:
        return list(self._tasks)

    def add(
        self,
        name: str,
        interval_seconds: float,
        callback: Callable[[], None],
        run_immediately: bool = False,
    ) -> RecurringTask:
        if name in self._tasks:
            raise ValueError(f"Task already registered: {name}")
        task = RecurringTask(
            name,
            interval_seconds,
            callback,
            run_immediately=run_immediately,
            logger=self.logger,
        )
        self._tasks[name] = task
        return task

    def start_all(self) -> None:
        for task in self._tasks.values():
            task.start()

    def stop_all(self, timeout: Optional[float] = 2.0) -> None:
        for task in self._tasks.values():
            task.stop(timeout=timeout)

    @property
    def any_running(self) -> bool:
        return any(task.is_running for task in self._tasks.values())
