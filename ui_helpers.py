import argparse
import logging
from sys import stdout

from remote_iso.constants import Constants

LOG_FILENAME = "remote_iso.log"


def port_number(value: str) -> int:
    port = int(value)
    if not 0 <= port <= 65535:
        raise argparse.ArgumentTypeError(f"{value} is not a port number (0-65535).")
    return port


def handle_terminal(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Share disc images over the local network, or find someone who is.")
    parser.add_argument("--verbose", "-v", action="store_true", required=False, default=False,
                        help="If logs should be verbose.")
    parser.add_argument("--config", required=False, default=Constants.CONFIG_FILENAME,
                        help="JSON file holding the recent file list and port.")

    commands = parser.add_subparsers(dest="command", required=True)

    serve = commands.add_parser("serve", help="Share the files in the recent list.")
    serve.add_argument("--port", type=port_number, required=False, default=None,
                       help="Preferred port, an ephemeral port is used if it's taken.")
    serve.add_argument("--add", nargs="+", metavar="FILE", default=[],
                       help="Add files to the recent list before sharing.")
    serve.add_argument("--host", required=False, default="",
                       help="Address to listen on (all interfaces by default).")

    browse = commands.add_parser("browse", help="Search the network for a server.")
    browse.add_argument("--url", required=False, default=None,
                        help="Skip the search and use this server address.")
    browse.add_argument("--retry", type=float, required=False, default=Constants.RETRY_INTERVAL_SEC,
                        help="Seconds to wait before searching again.")

    fetch = commands.add_parser("fetch", help="Download a file from a server.")
    fetch.add_argument("url", help="Server address, e.g. http://192.168.1.2:41234")
    fetch.add_argument("resource", help="File name as served, e.g. \"My Game.iso\".")
    fetch.add_argument("--output", "-o", required=False, default=".",
                       help="File or directory to save to.")

    return parser.parse_args(argv)


def create_logger(verbose: bool) -> logging.Logger:
    logger = logging.getLogger("remote_iso")
    handler = logging.StreamHandler(stdout)

    # clear the log file
    with open(LOG_FILENAME, "w"):
        pass

    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(filename=LOG_FILENAME, level=level,
                        format="%(asctime)s [%(levelname)s] %(threadName)s: %(message)s")
    handler.setLevel(level)

    formatter = logging.Formatter('%(asctime)s [%(levelname)s] %(message)s', datefmt="%H:%M:%S")
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    return logger
