"""Background thread that runs a function at a fixed interval."""

from __future__ import annotations

import threading
from collections.abc import Callable

from loguru import logger


class Repeater:
    """Calls ``fn`` every ``interval`` seconds between start() and stop().

    When ``run_on_start``/``run_on_stop`` are set the function is also called
    synchronously once when the repeater starts and once when it stops.
    """

    def __init__(
        self,
        fn: Callable[[], None],
        interval: float,
        *,
        enabled: bool = True,
        run_on_start: bool = False,
        run_on_stop: bool = False,
    ) -> None:
        self._fn = fn
        self._interval = interval
        self._enabled = enabled
        self._run_on_start = run_on_start
        self._run_on_stop = run_on_stop
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        if not self._enabled:
            return
        if self._run_on_start:
            self._fn()
        self._thread = threading.Thread(target=self._loop, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        if not self._enabled or self._thread is None:
            return
        self._stop.set()
        self._thread.join()
        self._thread = None
        if self._run_on_stop:
            self._fn()

    def _loop(self) -> None:
        while not self._stop.wait(self._interval):
            try:
                self._fn()
            except Exception as exc:
                logger.debug(f"Periodic task failed: {exc}")
