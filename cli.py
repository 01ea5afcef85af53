import logging
import time

import requests

import ui_helpers
from remote_iso import client
from remote_iso.config import Config
from remote_iso.constants import Constants
from remote_iso.errors import ConfigError
from remote_iso.lifecycle import ServerController, ServerStatus
from remote_iso.path_table import build_path_table, is_supported
from remote_iso.retry import DiscoveryRetryLoop

logger = logging.getLogger("remote_iso")


def serve(config: Config, port: int | None, add: list[str], host: str) -> None:
    for filename in add:
        if not is_supported(filename):
            logger.warning(f"{filename} is not a supported disc image ({', '.join(Constants.SUPPORTED_EXTENSIONS)}).")
            continue
        config.add_recent(filename)
    if port is not None:
        config.remote_iso_port = port
    config.save()

    shared = build_path_table(config.known_files())
    if not shared:
        logger.warning("Nothing to share - add some .iso or .cso files with --add.")

    controller = ServerController(config, host=host)
    controller.start()
    controller.wait_for(ServerStatus.RUNNING, ServerStatus.STOPPED, timeout=10)
    if controller.status != ServerStatus.RUNNING:
        logger.error("The server did not start.")
        controller.join()
        return

    print(f"Sharing at {controller.base_url}")
    for resource in shared:
        print(f"    {resource}")
    print("Connect both devices to the same wifi. Press Ctrl+C to stop sharing.")

    try:
        while controller.poll() == ServerStatus.RUNNING:
            time.sleep(Constants.POLL_INTERVAL_SEC)
    except KeyboardInterrupt:
        print()
    finally:
        controller.stop()
        print("Stopping..")
        controller.wait_for(ServerStatus.STOPPED)
        controller.poll()


def browse(url: str | None, retry_interval_sec: float) -> str | None:
    if url:
        return url

    print("Scanning... click Share Games on your desktop")
    found: list[str] = []
    loop = DiscoveryRetryLoop(on_found=found.append, retry_interval_sec=retry_interval_sec)
    try:
        loop.run()
    except KeyboardInterrupt:
        print("\nCancelled, waiting for the current scan to finish.")
    finally:
        loop.close()

    if found:
        print(f"Found a server at {found[0]}")
        return found[0]
    return None


def fetch(url: str, resource: str, output: str) -> None:
    try:
        path = client.download(url, resource, output)
    except (requests.RequestException, OSError) as e:
        logger.error(f"Download failed: {e}")
        return
    print(f"Saved to {path}")


def main(argv: list[str] | None = None) -> None:
    args = ui_helpers.handle_terminal(argv)
    ui_helpers.create_logger(args.verbose)

    if args.command == "serve":
        try:
            config = Config.load(args.config)
        except ConfigError as e:
            logger.error(str(e))
            return
        serve(config, args.port, args.add, args.host)
    elif args.command == "browse":
        browse(args.url, args.retry)
    elif args.command == "fetch":
        fetch(args.url, args.resource, args.output)


if __name__ == "__main__":
    main()
