# dropfade/services/sweeper.py

import logging
import threading

logger = logging.getLogger(__name__)


class ExpirySweeper:
    """
    Periodically reclaims expired file drops nobody asked for again.

    Optional: peek/consume already reclaim lazily. This only bounds how
    long a blob can outlive its evicted record.
    """

    def __init__(self, manager, interval_seconds: float, batch_size: int = 100):
        self.manager = manager
        self.interval = interval_seconds
        self.batch_size = batch_size
        self._stop = threading.Event()
        self._thread = None

    def run_once(self) -> int:
        try:
            return self.manager.sweep_expired(self.batch_size)
        except Exception as e:
            logger.warning("Expiry sweep failed: %s", e)
            return 0

    def _loop(self):
        while not self._stop.wait(timeout=self.interval):
            self.run_once()

    def start(self):
        if self._thread is not None:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="expiry-sweeper", daemon=True)
        self._thread.start()
        logger.info("Expiry sweeper started (every %ss)", self.interval)

    def stop(self):
        if self._thread is None:
            return
        self._stop.set()
        self._thread.join(timeout=self.interval + 1)
        self._thread = None
        logger.info("Expiry sweeper stopped")
