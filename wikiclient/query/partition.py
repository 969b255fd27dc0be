"""Splitting batch subjects into request-sized partitions."""

from collections.abc import Iterable, Iterator
from itertools import islice
from typing import TypeVar

from ..errors import ConfigurationError

T = TypeVar("T")

# Titles/ids per request, by account privilege.
DEFAULT_TITLE_LIMIT = 50
HIGH_TITLE_LIMIT = 500

# Revision content is much larger per item, so the limit shrinks accordingly.
CONTENT_LIMIT_DIVISOR = 10


def max_pagination_size(high_limits: bool, fetch_content: bool = False) -> int:
    """Maximum number of subjects allowed in one request.

    Args:
        high_limits: Whether the account has the ``apihighlimits`` right
        fetch_content: Whether revision content is requested

    Example:
        >>> max_pagination_size(True, fetch_content=True)
        50
    """
    limit = HIGH_TITLE_LIMIT if high_limits else DEFAULT_TITLE_LIMIT
    if fetch_content:
        limit = max(1, limit // CONTENT_LIMIT_DIVISOR)
    return limit


def _chunks(subjects: Iterable[T], max_size: int) -> Iterator[list[T]]:
    iterator = iter(subjects)
    while True:
        chunk = list(islice(iterator, max_size))
        if not chunk:
            return
        yield chunk


def partition(subjects: Iterable[T], max_size: int) -> Iterator[list[T]]:
    """Split subjects into ordered chunks of at most ``max_size`` items.

    ``max_size`` is validated immediately; chunks are produced lazily.

    Raises:
        ConfigurationError: If max_size is less than 1

    Example:
        >>> list(partition(["Cat", "Dog", "Eel"], 2))
        [['Cat', 'Dog'], ['Eel']]
    """
    if isinstance(max_size, bool) or not isinstance(max_size, int) or max_size < 1:
        raise ConfigurationError(f"Partition size must be a positive integer, got {max_size!r}")
    return _chunks(subjects, max_size)
