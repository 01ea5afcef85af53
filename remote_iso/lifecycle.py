import logging
import threading
from enum import Enum
from typing import Callable

from remote_iso.config import Config
from remote_iso.constants import Constants
from remote_iso.errors import ListenError
from remote_iso.networking import FileServer
from remote_iso.path_table import build_path_table
from remote_iso.registration import Heartbeat, register_server, get_local_ip

logger = logging.getLogger("remote_iso")


class ServerStatus(Enum):
    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"


class ServerController:
    def __init__(self, config: Config,
                 register: Callable[[int], bool] = register_server,
                 slice_sec: float = Constants.SERVE_SLICE_SEC,
                 register_interval_sec: float = Constants.REGISTER_INTERVAL_SEC,
                 host: str = ""):
        """
        Starts and stops the file server on a background thread.

        Every status change happens under one lock and wakes anyone waiting on
        the condition. start() and stop() never block on the server itself:
        stop() only asks, and the server thread notices within one slice.
        :param config: Supplies the files to share and the preferred port.
        :param register: Called with our port to announce us to the rendezvous host.
        :param slice_sec: How long the server waits for requests before re-checking its status.
        :param register_interval_sec: Time between registrations.
        :param host: Address to listen on, all interfaces by default.
        """
        self.config = config
        self.host = host
        self.slice_sec = slice_sec
        self.register_interval_sec = register_interval_sec
        self._register = register

        self._condition = threading.Condition(threading.RLock())
        self._status = ServerStatus.STOPPED
        self._thread: threading.Thread | None = None
        self._stop_requested = False
        self._port: int | None = None

    @property
    def status(self) -> ServerStatus:
        with self._condition:
            return self._status

    @property
    def port(self) -> int | None:
        """Port the server is bound to, None unless it is running."""
        with self._condition:
            return self._port if self._status == ServerStatus.RUNNING else None

    @property
    def base_url(self) -> str | None:
        """Address other devices can use to reach us, for typing in by hand."""
        port = self.port
        if port is None:
            return None
        local_ip = get_local_ip() or "127.0.0.1"
        return f"http://{local_ip}:{port}"

    def _set_status(self, status: ServerStatus) -> None:
        with self._condition:
            logger.debug(f"[Server] Status {self._status.value} -> {status.value}.")
            self._status = status
            self._condition.notify_all()

    def start(self) -> bool:
        """
        Starts sharing, if not already active.
        :return: False if the server was not stopped (nothing is done).
        """
        with self._condition:
            if self._status != ServerStatus.STOPPED:
                logger.info(f"[Server] Not starting, server is {self._status.value}.")
                return False

            # A previous run has finished but nobody polled for it yet.
            if self._thread is not None:
                self._thread.join()

            self._set_status(ServerStatus.STARTING)
            self._stop_requested = False
            self._thread = threading.Thread(target=self._execute, name="HTTPServer", daemon=True)
            self._thread.start()
            return True

    def stop(self) -> bool:
        """
        Asks the server to stop, if it is running.
        :return: False if the server was not running (nothing is done).
        """
        with self._condition:
            if self._status != ServerStatus.RUNNING:
                logger.info(f"[Server] Not stopping, server is {self._status.value}.")
                return False

            logger.info("[Server] Stopping server...")
            self._stop_requested = True
            self._set_status(ServerStatus.STOPPING)
            return True

    def wait_for(self, *statuses: ServerStatus, timeout: float | None = None) -> bool:
        """
        Blocks until the server reaches any of the given statuses.
        :return: False if the timeout passed first.
        """
        with self._condition:
            return self._condition.wait_for(lambda: self._status in statuses, timeout=timeout)

    def poll(self) -> ServerStatus:
        """
        For observers that check on every UI tick: once the server is seen
        stopped after a stop request, its thread is reclaimed.
        """
        with self._condition:
            status = self._status
            thread = self._thread
            if self._stop_requested and status == ServerStatus.STOPPED:
                self._thread = None
                self._stop_requested = False
            else:
                thread = None

        if thread is not None:
            thread.join()
        return status

    def join(self, timeout: float | None = None) -> bool:
        """
        Waits for the server thread to exit.
        :return: If there is no server thread left running.
        """
        with self._condition:
            thread = self._thread
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()

    def _execute(self) -> None:
        server: FileServer | None = None
        try:
            path_table = build_path_table(self.config.known_files())
            server = FileServer.listen(path_table, host=self.host, port=self.config.remote_iso_port)

            # Saved before RUNNING so anyone woken by the status change sees the new port.
            self._remember_port(server.port)
            with self._condition:
                self._port = server.port
                # stop() can't have been called yet, it only acts on RUNNING.
                self._set_status(ServerStatus.RUNNING)

            heartbeat = Heartbeat(server.port, self.register_interval_sec, self._register)
            heartbeat.beat()
            while self.status == ServerStatus.RUNNING:
                server.run_slice(self.slice_sec)
                heartbeat.maybe_beat()
        except ListenError as e:
            logger.error(f"[Server] {e}")
        except Exception:
            logger.exception("[Server] Server loop failed.")
        finally:
            if server is not None:
                server.server_close()
            with self._condition:
                self._port = None
                self._set_status(ServerStatus.STOPPED)
            logger.info("[Server] Server stopped.")

    def _remember_port(self, port: int) -> None:
        self.config.remote_iso_port = port
        if self.config.filename:
            try:
                self.config.save()
            except OSError as e:
                logger.warning(f"[Server] Could not save port to config: {e}")
