from dataclasses import dataclass


@dataclass
class Constants:
    DEBUG = False

    # Rendezvous host used to swap local addresses between devices.
    REPORT_HOSTNAME = "report.ppsspp.org"
    REPORT_PORT = 80

    REGISTER_INTERVAL_SEC = 540.0  # 9 minutes
    SERVE_SLICE_SEC = 5.0
    RETRY_INTERVAL_SEC = 30.0
    POLL_INTERVAL_SEC = 0.5

    if DEBUG:
        REQUEST_TIMEOUT_SEC: float = 2.0
        CONNECT_TIMEOUT_SEC: float = 0.5
    else:
        REQUEST_TIMEOUT_SEC: float = 10.0
        CONNECT_TIMEOUT_SEC: float = 3.0

    CHUNK_SIZE = 16 * 1024  # 16 KiB
    SUPPORTED_EXTENSIONS = (".iso", ".cso")

    DEFAULT_PORT = 0  # 0 lets the OS pick.
    MAX_RECENT = 30
    CONFIG_FILENAME = "remote_iso.json"
