import logging
import os
import socketserver
import time
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Mapping

from remote_iso.constants import Constants
from remote_iso.errors import ListenError, RangeParseError, RangeNotSatisfiableError
from remote_iso.ranges import RangeRequest, parse_range_header

logger = logging.getLogger("remote_iso")


class RangeRequestHandler(BaseHTTPRequestHandler):
    """
    Serves the files in the server's path table, but only in byte ranges.
    Whole-file GETs get a 418 so that only range-aware clients are used.
    """
    server: "FileServer"

    # Stops a stalled client from holding up the (single threaded) server forever.
    timeout = Constants.REQUEST_TIMEOUT_SEC

    def log_message(self, format: str, *args) -> None:
        logger.debug(f"[Server] {self.address_string()} - {format % args}")

    def _send_text(self, code: int, message: str) -> None:
        body = message.encode("utf-8")
        self.send_response(code)
        self.send_header("Content-Type", "text/plain")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        if self.command != "HEAD":
            self.wfile.write(body)

    def _resource(self) -> str:
        return self.path.split("?", 1)[0]

    def _lookup(self) -> tuple[str, int] | None:
        """
        Finds the local file and its size for the requested path, responding
        with an error itself if it can't.
        :return: (filename, size), or None if a response has already been sent.
        """
        filename = self.server.path_table.get(self._resource())
        if filename is None:
            self.send_error(404, "File not found")
            return None

        try:
            size = os.path.getsize(filename)
        except OSError as e:
            logger.error(f"[Server] Could not get size of {filename}: {e}")
            self._send_text(500, "File access failed.")
            return None

        return filename, size

    def do_HEAD(self):
        found = self._lookup()
        if not found:
            return
        filename, size = found

        self.send_response(200)
        self.send_header("Content-Type", "application/octet-stream")
        self.send_header("Content-Length", str(size))
        self.send_header("Accept-Ranges", "bytes")
        self.end_headers()

    def do_GET(self):
        found = self._lookup()
        if not found:
            return
        filename, size = found

        range_header = self.headers.get("Range")
        if range_header is None:
            self._send_text(418, "This server only supports range requests.")
            return

        try:
            byte_range = parse_range_header(range_header)
            byte_range.validate(size)
        except RangeParseError as e:
            logger.info(f"[Server] {e}")
            self._send_text(400, "Could not understand range request.")
            return
        except RangeNotSatisfiableError as e:
            logger.info(f"[Server] {e}")
            self._send_text(416, "Range goes outside of file.")
            return

        self._send_range(filename, size, byte_range)

    def _send_range(self, filename: str, size: int, byte_range: RangeRequest) -> None:
        try:
            f = open(filename, "rb")
        except OSError as e:
            logger.error(f"[Server] Could not open {filename}: {e}")
            self._send_text(500, "File access failed.")
            return

        with f:
            try:
                f.seek(byte_range.begin)
            except (OSError, ValueError) as e:
                logger.error(f"[Server] Could not seek to {byte_range.begin} in {filename}: {e}")
                self._send_text(500, "File access failed.")
                return

            self.send_response(206)
            self.send_header("Content-Type", "application/octet-stream")
            self.send_header("Content-Length", str(byte_range.length))
            self.send_header("Content-Range", byte_range.content_range(size))
            self.end_headers()

            remaining = byte_range.length
            try:
                while remaining > 0:
                    chunk = f.read(min(remaining, Constants.CHUNK_SIZE))
                    if not chunk:
                        logger.warning(f"[Server] {filename} ended {remaining} bytes early.")
                        break
                    self.wfile.write(chunk)
                    remaining -= len(chunk)
                self.wfile.flush()
            except (ConnectionError, TimeoutError) as e:
                logger.warning(f"[Server] Client {self.address_string()} went away mid-transfer: {e}")


class FileServer(HTTPServer):
    def __init__(self, server_address: tuple[str, int], path_table: Mapping[str, str]):
        """
        HTTP server for a fixed path table. Requests are handled one at a time,
        on whichever thread calls run_slice().
        :param server_address: (host, port) to listen on.
        :param path_table: Resource path to local filename, see build_path_table().
        """
        self.path_table: Mapping[str, str] = path_table
        HTTPServer.__init__(
            self,
            server_address=server_address,
            RequestHandlerClass=RangeRequestHandler
        )
        logger.info(f"[Server] Listening on {self.server_address[0]}:{self.port}, "
                    f"serving {len(path_table)} file(s).")

    @classmethod
    def listen(cls, path_table: Mapping[str, str], host: str = "", port: int = 0) -> "FileServer":
        """
        Listens on the preferred port, falling back to an ephemeral port if it's unavailable.
        """
        if port:
            try:
                return cls((host, port), path_table)
            except (OSError, OverflowError) as e:
                logger.warning(f"[Server] Port {port} unavailable ({e}), using an ephemeral port instead.")

        try:
            return cls((host, 0), path_table)
        except (OSError, OverflowError) as e:
            raise ListenError(f"Could not listen on {host or '*'}: {e}") from e

    def server_bind(self):
        # HTTPServer.server_bind() does a reverse DNS lookup we don't need.
        socketserver.TCPServer.server_bind(self)
        host, port = self.server_address[:2]
        self.server_name = host
        self.server_port = port

    @property
    def port(self) -> int:
        return self.server_address[1]

    def run_slice(self, seconds: float) -> None:
        """
        Services requests for up to the given number of seconds, then returns.
        :param seconds:
        :return:
        """
        deadline = time.monotonic() + seconds
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            self.timeout = remaining
            self.handle_request()

    def handle_error(self, request, client_address):
        logger.exception(f"[Server] Exception while handling request from {client_address}.")
