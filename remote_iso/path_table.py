import re
from types import MappingProxyType
from typing import Iterable, Mapping

from remote_iso.constants import Constants

# Windows paths may use either separator.
_SEPARATORS = re.compile(r"[\\/]")


def is_supported(filename: str) -> bool:
    return filename.lower().endswith(Constants.SUPPORTED_EXTENSIONS)


def resource_path(filename: str) -> str:
    """
    The URL path a file is served under: "/" + basename, with spaces as %20.
    :param filename:
    :return:
    """
    basename = _SEPARATORS.split(filename)[-1]
    return "/" + basename.replace(" ", "%20")


def build_path_table(filenames: Iterable[str]) -> Mapping[str, str]:
    """
    Maps served URL paths to local files. Directories won't work, so only
    single disc images are served.

    A later file with the same basename replaces an earlier one.
    :param filenames: Known files, in order.
    :return: Read-only mapping of resource path to local filename.
    """
    paths: dict[str, str] = {}
    for filename in filenames:
        if is_supported(filename):
            paths[resource_path(filename)] = filename
    return MappingProxyType(paths)
