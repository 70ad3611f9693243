"""
Background task runner: one daemon thread per task, ticks never overlap.
"""
from typing import Callable, Optional
import logging
import threading

logger = logging.getLogger(__name__)


class PeriodicTask:
    def __init__(self, name: str, interval: float, action: Callable[[], object]):
        self.name = name
        self.interval = float(interval)
        self.action = action
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()
        logger.info("Started %s (every %s seconds).", self.name, self.interval)

    def stop(self):
        """No further ticks; an in-flight tick runs to completion"""
        self._stop.set()

    def join(self, timeout: Optional[float] = None):
        if self._thread is not None:
            self._thread.join(timeout)

    def tick(self):
        try:
            self.action()
        except Exception:
            logger.exception("%s failed.", self.name)

    def _run(self):
        while not self._stop.wait(self.interval):
            self.tick()
