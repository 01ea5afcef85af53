import logging
import socket

from remote_iso.constants import Constants

logger = logging.getLogger("remote_iso")


class PeerCandidate:

    def __init__(self, host: str, port: int):
        self.host = host
        self.port = port

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}"

    @classmethod
    def from_entry(cls, entry) -> "PeerCandidate | None":
        """
        Reads one entry of the rendezvous host's list, {"ip": str, "p": int}.
        Returns None if the entry isn't usable.
        """
        if not isinstance(entry, dict):
            return None
        host = entry.get("ip")
        port = entry.get("p", 0)
        if not isinstance(host, str) or not host:
            return None
        if not isinstance(port, int) or isinstance(port, bool):
            return None
        return cls(host, port)

    def __eq__(self, other):
        return isinstance(other, PeerCandidate) and (self.host, self.port) == (other.host, other.port)

    def __hash__(self):
        return hash((self.host, self.port))

    def __repr__(self):
        return f"PeerCandidate({self.host!r}, {self.port})"


def probe(candidate: PeerCandidate, timeout: float = Constants.CONNECT_TIMEOUT_SEC) -> bool:
    """
    Returns if a TCP connection can be opened to the candidate. The connection is closed straight away.
    """
    try:
        with socket.create_connection((candidate.host, candidate.port), timeout=timeout):
            return True
    except (OSError, OverflowError, ValueError) as e:
        logger.debug(f"[Discovery] {candidate.url} is unreachable: {e}")
        return False
