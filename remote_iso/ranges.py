import re
from dataclasses import dataclass

from remote_iso.errors import RangeParseError, RangeNotSatisfiableError

# Only a single "bytes=<begin>-<last>" span is understood, no suffix or open ranges.
# Anything after the second number is ignored.
_RANGE_PATTERN = re.compile(r"bytes=\s*([+-]?\d+)-\s*([+-]?\d+)")


@dataclass(frozen=True)
class RangeRequest:
    """
    Inclusive byte offsets requested by a client.
    """
    begin: int
    last: int

    @property
    def length(self) -> int:
        return self.last - self.begin + 1

    def validate(self, size: int) -> None:
        """
        Raises RangeNotSatisfiableError if the range goes outside of a file of the given size.
        :param size: File size in bytes.
        :return:
        """
        if self.begin < 0 or self.begin > self.last or self.last >= size:
            raise RangeNotSatisfiableError(self.begin, self.last, size)

    def content_range(self, size: int) -> str:
        return f"bytes {self.begin}-{self.last}/{size}"


def parse_range_header(value: str) -> RangeRequest:
    """
    Parses a Range header value of the form "bytes=<begin>-<last>".
    :param value:
    :return:
    """
    match = _RANGE_PATTERN.match(value.strip())
    if not match:
        raise RangeParseError(f"Could not understand range {value!r}.")
    return RangeRequest(begin=int(match.group(1)), last=int(match.group(2)))
