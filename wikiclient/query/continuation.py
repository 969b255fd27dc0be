"""Continuation parsing for paginated ``action=query`` responses.

Handles both continuation shapes:

    {"continue": {"gcmcontinue": "X", "continue": "gcmcontinue||"}}
    {"query-continue": {"categorymembers": {"gcmcontinue": "X"}}}
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .params import wire_values_equal

logger = logging.getLogger(__name__)


class ContinuationStatus(Enum):
    """Outcome of inspecting one response for continuation."""

    DONE = "done"
    ADVANCE = "advance"
    LOOP = "loop"


@dataclass(frozen=True)
class ContinuationResult:
    """Classified continuation of one response.

    Attributes:
        status: DONE, ADVANCE or LOOP
        parameters: Flat continuation entries to send with the next request
    """

    status: ContinuationStatus
    parameters: dict[str, Any] = field(default_factory=dict)


def find_continuation_root(response: Mapping[str, Any]) -> dict[str, Any] | None:
    """Return the flat continuation entries of a response, or None.

    The legacy ``query-continue`` node nests the entries one level deeper,
    under the name of the module that produced them.
    """
    current = response.get("continue")
    if isinstance(current, Mapping):
        return dict(current)
    legacy = response.get("query-continue")
    if isinstance(legacy, Mapping):
        flattened: dict[str, Any] = {}
        for module_node in legacy.values():
            if isinstance(module_node, Mapping):
                flattened.update(module_node)
        return flattened
    return None


def parse_continuation(
    response: Mapping[str, Any], sent_parameters: Mapping[str, Any]
) -> ContinuationResult:
    """Classify the continuation of ``response``.

    Args:
        response: Decoded response body
        sent_parameters: The exact parameters of the request that produced it

    Returns:
        ContinuationResult; ``parameters`` is empty when status is DONE

    Example:
        >>> parse_continuation({"continue": {"apcontinue": "B"}}, {"apcontinue": "A"}).status
        <ContinuationStatus.ADVANCE: 'advance'>
    """
    root = find_continuation_root(response)
    if not root:
        return ContinuationResult(ContinuationStatus.DONE)

    for key, value in root.items():
        if key not in sent_parameters or not wire_values_equal(sent_parameters[key], value):
            return ContinuationResult(ContinuationStatus.ADVANCE, root)

    logger.debug(f"Continuation {root} matches the parameters just sent")
    return ContinuationResult(ContinuationStatus.LOOP, root)
