import logging
import threading
import time
from typing import Callable

from remote_iso.constants import Constants
from remote_iso.discovery import PeerScan

logger = logging.getLogger("remote_iso")


class DiscoveryRetryLoop:
    def __init__(self, on_found: Callable[[str], None],
                 scan_factory: Callable[[], PeerScan] = PeerScan,
                 retry_interval_sec: float = Constants.RETRY_INTERVAL_SEC,
                 clock: Callable[[], float] = time.monotonic):
        """
        Keeps scanning for a server until one is found, waiting retry_interval_sec
        between a failed scan and the next one. Only one scan runs at a time.
        :param on_found: Called once, with the URL of the server found.
        :param scan_factory: Makes a new, unstarted scan.
        :param retry_interval_sec:
        :param clock:
        """
        self._on_found = on_found
        self._scan_factory = scan_factory
        self.retry_interval_sec = retry_interval_sec
        self._clock = clock

        self._scan: PeerScan | None = None
        self._next_retry: float | None = None
        self._handed_off = False
        self._stop_event = threading.Event()

    @property
    def found(self) -> bool:
        return self._handed_off

    @property
    def scan(self) -> PeerScan | None:
        return self._scan

    def start(self) -> None:
        if self._scan is not None:
            logger.warning("[Discovery] Already scanning.")
            return
        self._launch()

    def _launch(self) -> None:
        logger.info("[Discovery] Starting scan.")
        self._scan = self._scan_factory()
        self._scan.start()

    def tick(self) -> None:
        """
        Checks on the current scan, meant to be called regularly (e.g. every UI update).
        """
        scan = self._scan
        if scan is None or not scan.is_complete():
            return

        url = scan.url
        if url:
            if not self._handed_off:
                self._handed_off = True
                self._on_found(url)
            return

        now = self._clock()
        if self._next_retry is None:
            self._next_retry = now + self.retry_interval_sec
            logger.info(f"[Discovery] No server found, retrying in {self.retry_interval_sec:g}s.")
        elif now > self._next_retry:
            self._next_retry = None
            scan.join()
            self._launch()

    def run(self, poll_interval_sec: float = Constants.POLL_INTERVAL_SEC) -> None:
        """
        Ticks until a server has been found or stop() is called.
        """
        self._stop_event.clear()
        if self._scan is None:
            self.start()

        while not self._handed_off:
            self.tick()
            if self._handed_off or self._stop_event.wait(poll_interval_sec):
                break

    def stop(self) -> None:
        self._stop_event.set()

    def close(self, timeout: float | None = None) -> bool:
        """
        Waits for any scan still in flight.
        :return: If no scan is left running.
        """
        self.stop()
        if self._scan is None:
            return True
        return self._scan.join(timeout)
