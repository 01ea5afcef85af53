class RemoteISOError(Exception):
    pass


class RangeParseError(RemoteISOError):
    """Raised when a Range header does not contain a begin and last byte offset."""
    pass


class RangeNotSatisfiableError(RemoteISOError):
    """Raised when a requested range goes outside of the file."""

    def __init__(self, begin: int, last: int, size: int):
        super().__init__(f"Range {begin}-{last} goes outside of file of size {size}.")
        self.begin = begin
        self.last = last
        self.size = size


class ConfigError(RemoteISOError):
    """Raised when the configuration file cannot be read."""


class ListenError(RemoteISOError):
    """Raised when no port at all could be bound."""
