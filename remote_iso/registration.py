"""
Reports our local IP address and port to the rendezvous host, which can then
relay that address to another device searching for the server.

This is all best-effort: if the rendezvous host can't be reached nothing is
raised and nothing is retried until the next heartbeat.
"""
import logging
import socket
import time
from typing import Callable

import requests

from remote_iso.constants import Constants

logger = logging.getLogger("remote_iso")


def get_local_ip(hostname: str = Constants.REPORT_HOSTNAME,
                 port: int = Constants.REPORT_PORT) -> str | None:
    """
    Returns the local address the OS would use to reach the given host,
    i.e. our address on the local network. None if the host can't be resolved.
    """
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            sock.connect((hostname, port))  # No packets are sent for UDP.
            return sock.getsockname()[0]
    except OSError as e:
        logger.debug(f"[Register] Could not find a route to {hostname}:{port}: {e}")
        return None


def register_server(port: int,
                    hostname: str = Constants.REPORT_HOSTNAME,
                    report_port: int = Constants.REPORT_PORT) -> bool:
    """
    Sends GET /match/update?local=<ip>&port=<port> to the rendezvous host.
    The response is ignored.
    :param port: Port our file server is bound to.
    :param hostname: Rendezvous host.
    :param report_port: Rendezvous port.
    :return: If the registration was sent.
    """
    local_ip = get_local_ip(hostname, report_port)
    if not local_ip:
        return False

    try:
        response = requests.get(
            f"http://{hostname}:{report_port}/match/update",
            params={"local": local_ip, "port": port},
            timeout=Constants.REQUEST_TIMEOUT_SEC
        )
        response.close()
    except requests.RequestException as e:
        logger.debug(f"[Register] Registration with {hostname} failed: {e}")
        return False

    logger.info(f"[Register] Registered {local_ip}:{port} with {hostname} ({response.status_code}).")
    return True


class Heartbeat:
    def __init__(self, port: int,
                 interval_sec: float = Constants.REGISTER_INTERVAL_SEC,
                 register: Callable[[int], bool] = register_server,
                 clock: Callable[[], float] = time.monotonic):
        """
        Keeps our registration fresh. Nothing here is threaded: the server loop
        calls maybe_beat() between request slices.
        """
        self.port = port
        self.interval_sec = interval_sec
        self._register = register
        self._clock = clock
        self.last_register: float | None = None

    def beat(self) -> bool:
        self.last_register = self._clock()
        return self._register(self.port)

    def maybe_beat(self) -> bool:
        """
        Registers again if the interval has passed since the last registration.
        :return: If a registration was attempted.
        """
        now = self._clock()
        if self.last_register is None or now > self.last_register + self.interval_sec:
            self.last_register = now
            self._register(self.port)
            return True
        return False
