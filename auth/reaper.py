from __future__ import annotations

import logging
import threading
from typing import Callable

LOGGER = logging.getLogger("vaultmcp.auth")
REAPER_INTERVAL_SECONDS = 300


class ExpiryReaper:
    """Periodically sweeps expired codes and tokens on a daemon thread.

    Lazy checks at exchange and validation time already reject stale
    entries; the sweep only bounds memory growth.
    """

    def __init__(
        self,
        sweep: Callable[[], object],
        *,
        interval_seconds: float = REAPER_INTERVAL_SECONDS,
        name: str = "vaultmcp-expiry-reaper",
    ) -> None:
        self._sweep = sweep
        self.interval_seconds = interval_seconds
        self._name = name
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = 5) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    def run_once(self) -> object:
        result = self._sweep()
        LOGGER.debug("Expiry sweep finished: %s", result)
        return result

    def _run(self) -> None:
        while not self._stop_event.wait(self.interval_seconds):
            try:
                self.run_once()
            except Exception:
                LOGGER.exception("Expiry sweep failed")
