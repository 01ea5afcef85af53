import logging
import os
from urllib.parse import quote

import requests
from tqdm import tqdm

from remote_iso.constants import Constants

logger = logging.getLogger("remote_iso")


def _resource_url(base_url: str, resource: str) -> str:
    if not resource.startswith("/"):
        resource = "/" + quote(resource)
    return base_url.rstrip("/") + resource


def head(base_url: str, resource: str) -> int:
    """
    Returns the size of a file shared by a server.
    :param base_url: e.g. http://192.168.1.2:41234
    :param resource: Served path (e.g. "/My%20Game.iso") or a plain file name.
    :return:
    """
    response = requests.head(_resource_url(base_url, resource), timeout=Constants.REQUEST_TIMEOUT_SEC)
    response.raise_for_status()
    return int(response.headers["Content-Length"])


def fetch_range(base_url: str, resource: str, begin: int, last: int) -> bytes:
    """
    Fetches bytes begin to last (inclusive) of a shared file.
    """
    response = requests.get(
        _resource_url(base_url, resource),
        headers={"Range": f"bytes={begin}-{last}"},
        timeout=Constants.REQUEST_TIMEOUT_SEC
    )
    response.raise_for_status()
    if response.status_code != 206:
        raise requests.HTTPError(f"Expected 206 Partial Content, got {response.status_code}.",
                                 response=response)
    return response.content


def download(base_url: str, resource: str, destination: str,
             chunk_size: int = 64 * Constants.CHUNK_SIZE, progress: bool = True) -> str:
    """
    Downloads a whole shared file one range at a time.
    :param base_url:
    :param resource:
    :param destination: File, or directory to save into.
    :param chunk_size: Bytes per range request.
    :param progress: Show a progress bar.
    :return: Path of the downloaded file.
    """
    if os.path.isdir(destination):
        name = resource.rsplit("/", 1)[-1].replace("%20", " ")
        destination = os.path.join(destination, name)

    size = head(base_url, resource)
    logger.info(f"[Client] Downloading {resource} ({size} bytes) to {destination}.")

    progress_bar = tqdm(total=size, unit='iB', unit_scale=True, disable=not progress)
    try:
        with open(destination, "wb") as f:
            for begin in range(0, size, chunk_size):
                last = min(begin + chunk_size, size) - 1
                data = fetch_range(base_url, resource, begin, last)
                f.write(data)
                progress_bar.update(len(data))
    finally:
        progress_bar.close()

    return destination
