import logging
import threading
from typing import Callable

import requests

from remote_iso.candidate import PeerCandidate, probe
from remote_iso.constants import Constants

logger = logging.getLogger("remote_iso")


def fetch_candidates(hostname: str = Constants.REPORT_HOSTNAME,
                     port: int = Constants.REPORT_PORT) -> list[PeerCandidate] | None:
    """
    Asks the rendezvous host for the servers recently registered on our network.
    :return: Candidates in the order the host gave them, or None if the list couldn't be fetched.
    """
    try:
        logger.info(f"[Discovery] Requesting server list from {hostname}...")
        response = requests.get(
            f"http://{hostname}:{port}/match/list",
            timeout=Constants.REQUEST_TIMEOUT_SEC
        )
    except requests.RequestException as e:
        logger.info(f"[Discovery] Could not reach {hostname}: {e}")
        return None

    if response.status_code != 200:
        logger.info(f"[Discovery] {hostname} responded with {response.status_code}.")
        return None

    try:
        entries = response.json()
    except ValueError as e:
        logger.warning(f"[Discovery] Server list was not valid JSON: {e}")
        return None

    if isinstance(entries, dict):
        entries = list(entries.values())
    if not isinstance(entries, list):
        logger.warning(f"[Discovery] Unexpected server list: {entries!r}")
        return None

    candidates = []
    for entry in entries:
        candidate = PeerCandidate.from_entry(entry)
        if candidate is None:
            logger.debug(f"[Discovery] Skipping entry {entry!r}.")
            continue
        candidates.append(candidate)
    return candidates


def find_server(hostname: str = Constants.REPORT_HOSTNAME,
                port: int = Constants.REPORT_PORT,
                probe: Callable[[PeerCandidate], bool] = probe) -> str | None:
    """
    Finds the first server from the rendezvous host's list that we can connect to.
    This blocks on the network, so it should be run on its own thread.
    :return: URL of the server, or None if none were reachable.
    """
    candidates = fetch_candidates(hostname, port)
    if not candidates:
        return None

    # The host's order is kept, the first reachable server wins.
    for candidate in candidates:
        if probe(candidate):
            logger.info(f"[Discovery] Found server at {candidate.url}.")
            return candidate.url

    # Probably on a different subnet.
    logger.info(f"[Discovery] None of the {len(candidates)} server(s) were reachable.")
    return None


class PeerScan:
    def __init__(self, find: Callable[[], str | None] = find_server):
        """
        One discovery attempt, run on its own thread.
        There is no cancelling a scan, call join() to wait for it.
        :param find: Does the actual search, returning a URL or None.
        """
        self._find = find
        self._lock = threading.Lock()
        self._complete = False
        self._url: str | None = None
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        if self._thread is not None:
            raise RuntimeError("A scan can only be started once.")
        self._thread = threading.Thread(target=self._execute, name="PeerScan", daemon=True)
        self._thread.start()

    def _execute(self) -> None:
        url = None
        try:
            url = self._find()
        except Exception:
            logger.exception("[Discovery] Scan failed.")
        finally:
            with self._lock:
                self._url = url
                self._complete = True

    def is_complete(self) -> bool:
        with self._lock:
            return self._complete

    @property
    def url(self) -> str | None:
        with self._lock:
            return self._url

    def join(self, timeout: float | None = None) -> bool:
        """
        Waits for the scan to finish.
        :return: If the scan is complete.
        """
        if self._thread is not None:
            self._thread.join(timeout)
        return self.is_complete()
