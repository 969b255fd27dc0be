"""Request parameter encoding for the MediaWiki Action API.

Public Interface:
    - to_wire_value: Encode one parameter value as the API expects it
    - parse_wiki_timestamp: Parse a timestamp echoed back by the server
    - wire_values_equal: Compare a sent value with a value echoed by the server
    - QueryParameters: Ordered parameter builder

Example:
    >>> params = QueryParameters(action="query", prop=["info", "revisions"], redirects=True)
    >>> params.to_wire()
    {'action': 'query', 'prop': 'info|revisions', 'redirects': ''}
"""

import re
from collections.abc import Iterator, Mapping
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any

from ..errors import ConfigurationError

WIRE_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

# Prefix and separator MediaWiki accepts for multi-value parameters whose
# members contain the pipe character.
MULTI_VALUE_SEPARATOR = "|"
ALT_MULTI_VALUE_SEPARATOR = "\x1f"

_TIMESTAMP_RE = re.compile(
    r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d+)?(Z|[+-]\d{2}:?\d{2})?$"
)


def _format_datetime(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime(WIRE_TIMESTAMP_FORMAT)


def to_wire_value(value: Any) -> str | None:
    """Encode a parameter value into its wire string.

    Args:
        value: Raw parameter value

    Returns:
        The encoded string, or None when the parameter must be omitted

    Raises:
        ConfigurationError: If the value type is not supported

    Example:
        >>> to_wire_value(True)
        ''
        >>> to_wire_value(False) is None
        True
        >>> to_wire_value(datetime(2024, 1, 2, 3, 4, 5))
        '2024-01-02T03:04:05Z'
    """
    if value is None or value is False:
        return None
    if value is True:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, datetime):
        return _format_datetime(value)
    if isinstance(value, Enum):
        return to_wire_value(value.value)
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    if isinstance(value, (list, tuple)):
        members = []
        for member in value:
            encoded = to_wire_value(member)
            if encoded is None:
                raise ConfigurationError(
                    f"Multi-value parameter contains an omitted member: {member!r}"
                )
            members.append(encoded)
        if any(MULTI_VALUE_SEPARATOR in m for m in members):
            return ALT_MULTI_VALUE_SEPARATOR + ALT_MULTI_VALUE_SEPARATOR.join(members)
        return MULTI_VALUE_SEPARATOR.join(members)
    raise ConfigurationError(
        f"Unsupported parameter value type: {type(value).__name__} ({value!r})"
    )


def parse_wiki_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp into an aware UTC datetime.

    Returns None if the value does not look like a timestamp.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if not isinstance(value, str) or not _TIMESTAMP_RE.match(value):
        return None
    text = value[:-1] + "+00:00" if value.endswith("Z") else value
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def wire_values_equal(sent: Any, received: Any) -> bool:
    """Tell whether a value echoed by the server equals the value we sent.

    Timestamps are compared as instants, everything else by wire encoding.
    """
    left, right = parse_wiki_timestamp(sent), parse_wiki_timestamp(received)
    if left is not None and right is not None:
        return left == right
    return to_wire_value(sent) == to_wire_value(received)


class QueryParameters(Mapping):
    """Ordered key/value builder for one API request.

    Values are validated on assignment but stored raw, so that date/time
    values stay comparable; ``to_wire()`` produces the encoded form.
    """

    def __init__(self, values: Mapping[str, Any] | None = None, **kwargs: Any):
        self._values: dict[str, Any] = {}
        if values:
            self.update(values)
        if kwargs:
            self.update(kwargs)

    def __getitem__(self, key: str) -> Any:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __setitem__(self, key: str, value: Any) -> None:
        if not isinstance(key, str) or not key:
            raise ConfigurationError(f"Parameter name must be a non-empty string: {key!r}")
        to_wire_value(value)
        self._values[key] = value

    def __delitem__(self, key: str) -> None:
        del self._values[key]

    def __repr__(self) -> str:
        return f"QueryParameters({self._values!r})"

    def update(self, values: Mapping[str, Any]) -> "QueryParameters":
        for key, value in values.items():
            self[key] = value
        return self

    def copy(self) -> "QueryParameters":
        return QueryParameters(self._values)

    def merged(self, extra: Mapping[str, Any]) -> "QueryParameters":
        """Return a copy with ``extra`` entries added or overwritten."""
        return self.copy().update(extra)

    def to_wire(self) -> dict[str, str]:
        """Encode all parameters, dropping the omitted ones."""
        wire = {}
        for key, value in self._values.items():
            encoded = to_wire_value(value)
            if encoded is not None:
                wire[key] = encoded
        return wire

    def require_action(self, action: str) -> None:
        if self._values.get("action") != action:
            raise ConfigurationError(
                f"Expected action={action!r}, got action={self._values.get('action')!r}"
            )
