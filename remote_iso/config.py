import json
import logging
import os
import threading

from remote_iso.constants import Constants
from remote_iso.errors import ConfigError

logger = logging.getLogger("remote_iso")


def check_port(port) -> int:
    if not isinstance(port, int) or isinstance(port, bool) or not 0 <= port <= 65535:
        raise ConfigError(f"'remote_iso_port' must be a port number, got {port!r}.")
    return port


class Config:
    """
    User state consumed by the file server: the recently used disc images
    (which are the files that get shared) and the preferred listen port.

    The server thread writes the chosen port back once it has bound, so the
    port goes through a lock.
    """

    def __init__(self,
                 recent_isos: list[str] | None = None,
                 remote_iso_port: int = Constants.DEFAULT_PORT,
                 filename: str | None = None):
        self.recent_isos: list[str] = list(recent_isos) if recent_isos else []
        self._remote_iso_port: int = remote_iso_port
        self.filename: str | None = filename
        self._lock = threading.Lock()

    @property
    def remote_iso_port(self) -> int:
        with self._lock:
            return self._remote_iso_port

    @remote_iso_port.setter
    def remote_iso_port(self, port: int) -> None:
        check_port(port)
        with self._lock:
            self._remote_iso_port = port

    def known_files(self) -> list[str]:
        """
        Returns a snapshot of the recent list, in order.
        :return:
        """
        with self._lock:
            return list(self.recent_isos)

    def add_recent(self, filename: str) -> None:
        """
        Moves (or inserts) a file to the front of the recent list.
        :param filename:
        :return:
        """
        filename = os.path.abspath(filename)
        with self._lock:
            if filename in self.recent_isos:
                self.recent_isos.remove(filename)
            self.recent_isos.insert(0, filename)
            del self.recent_isos[Constants.MAX_RECENT:]

    def to_dict(self) -> dict:
        with self._lock:
            return {
                "recent_isos": list(self.recent_isos),
                "remote_iso_port": self._remote_iso_port
            }

    @classmethod
    def from_dict(cls, data: dict, filename: str | None = None) -> "Config":
        if not isinstance(data, dict):
            raise ConfigError("Configuration must be a JSON object.")

        recent = data.get("recent_isos", [])
        port = data.get("remote_iso_port", Constants.DEFAULT_PORT)
        if not isinstance(recent, list) or not all(isinstance(f, str) for f in recent):
            raise ConfigError("'recent_isos' must be a list of file paths.")
        check_port(port)

        return cls(recent_isos=recent, remote_iso_port=port, filename=filename)

    @classmethod
    def load(cls, filename: str) -> "Config":
        """
        Reads the configuration from a JSON file, a missing file gives the defaults.
        :param filename:
        :return:
        """
        if not os.path.exists(filename):
            logger.info(f"[Config] {filename} does not exist, using defaults.")
            return cls(filename=filename)

        try:
            with open(filename, "r") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Could not read {filename}: {e}") from e

        return cls.from_dict(data, filename=filename)

    def save(self, filename: str | None = None) -> None:
        filename = filename or self.filename
        if not filename:
            raise ConfigError("No filename to save configuration to.")

        dirname = os.path.dirname(os.path.abspath(filename))
        os.makedirs(dirname, exist_ok=True)
        with open(filename, "w") as f:
            json.dump(self.to_dict(), f, indent=4)
        logger.debug(f"[Config] Saved to {filename}.")
