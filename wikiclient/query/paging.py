"""Paginated ``action=query`` driver.

Issues one request at a time, follows continuation until the server reports
completion, and yields the ``query`` node of every response as soon as it
arrives.
"""

import logging
import threading
from collections.abc import Iterable, Iterator, Mapping
from typing import Any, Protocol

from ..errors import ContinuationLoopError, QueryCancelledError
from .continuation import ContinuationStatus, parse_continuation
from .params import QueryParameters

logger = logging.getLogger(__name__)


class ApiInvoker(Protocol):
    """Anything able to send one API request and return the decoded body."""

    def invoke(self, parameters: Mapping[str, Any]) -> dict: ...


def iter_page_fragments(query_node: Mapping[str, Any]) -> Iterator[dict]:
    """Yield the page fragments of a query node.

    ``pages`` is either an object keyed by page id or, with
    ``formatversion=2``, a plain list.
    """
    pages = query_node.get("pages")
    if isinstance(pages, Mapping):
        yield from pages.values()
    elif isinstance(pages, list):
        yield from pages


def _page_identity(key: str | None, page: Mapping[str, Any]) -> int | None:
    raw = page.get("pageid", key)
    try:
        page_id = int(raw)
    except (TypeError, ValueError):
        return None
    # Missing and invalid pages get negative placeholder ids.
    return page_id if page_id > 0 else None


def _drop_seen_pages(query_node: dict, seen_ids: set[int]) -> dict:
    pages = query_node.get("pages")
    if not pages:
        return query_node

    if isinstance(pages, Mapping):
        entries = list(pages.items())
    else:
        entries = [(None, page) for page in pages]

    kept = []
    for key, page in entries:
        page_id = _page_identity(key, page)
        if page_id is not None:
            if page_id in seen_ids:
                continue
            seen_ids.add(page_id)
        kept.append((key, page))

    removed = len(entries) - len(kept)
    if removed:
        logger.warning(
            f"Received {len(entries)} pages, removed {removed} already seen, "
            f"{len(kept)} distinct pages left"
        )

    result = dict(query_node)
    if isinstance(pages, Mapping):
        result["pages"] = dict(kept)
    else:
        result["pages"] = [page for _, page in kept]
    return result


def iter_query_pages(
    invoker: ApiInvoker,
    parameters: Mapping[str, Any],
    *,
    distinct_pages: bool = False,
    cancel_event: threading.Event | None = None,
) -> Iterator[dict]:
    """Lazily run a paginated query.

    Args:
        invoker: Object performing the HTTP round trips (a WikiSite or transport)
        parameters: Base parameters; must contain ``action=query``
        distinct_pages: Drop pages whose id was already yielded by this query
        cancel_event: Checked before every request

    Returns:
        A single-use generator of ``query`` nodes, one per round trip

    Raises:
        ConfigurationError: If ``action`` is not ``query`` (raised immediately)
        ContinuationLoopError: (While iterating) the server repeated our continuation
        QueryCancelledError: (While iterating) cancel_event was set

    Example:
        >>> for fragment in iter_query_pages(site, {"action": "query", "list": "allpages"}):
        ...     print(fragment["allpages"])
    """
    base = QueryParameters(parameters)
    base.require_action("query")
    return _drive(invoker, base, distinct_pages, cancel_event)


def _drive(
    invoker: ApiInvoker,
    base: QueryParameters,
    distinct_pages: bool,
    cancel_event: threading.Event | None,
) -> Iterator[dict]:
    continuation: dict[str, Any] = {}
    seen_ids: set[int] | None = set() if distinct_pages else None
    round_trips = 0

    while True:
        if cancel_event is not None and cancel_event.is_set():
            logger.info(f"Query cancelled after {round_trips} request(s)")
            raise QueryCancelledError(f"Query cancelled after {round_trips} request(s)")

        request = base.merged(continuation)
        logger.debug(f"Query request #{round_trips + 1}: {request.to_wire()}")
        response = invoker.invoke(request)
        round_trips += 1

        result = parse_continuation(response, request)
        if result.status is ContinuationStatus.LOOP:
            logger.warning(
                "Continuation information provided by server response leads to "
                f"infinite loop: {result.parameters}"
            )
            raise ContinuationLoopError(result.parameters)

        query_node = response.get("query")
        if query_node is not None:
            if seen_ids is not None:
                query_node = _drop_seen_pages(query_node, seen_ids)
            yield query_node

        if result.status is ContinuationStatus.DONE:
            logger.debug(f"Query finished after {round_trips} request(s)")
            return

        if query_node is None:
            logger.warning("Empty query page with continuation received")
        continuation = result.parameters


def _merge_page(target: dict, page: Mapping[str, Any]) -> None:
    for key, value in page.items():
        existing = target.get(key)
        if isinstance(existing, list) and isinstance(value, list):
            existing.extend(item for item in value if item not in existing)
        elif isinstance(existing, dict) and isinstance(value, Mapping):
            existing.update(value)
        elif isinstance(value, list):
            target[key] = list(value)
        elif isinstance(value, Mapping):
            target[key] = dict(value)
        else:
            target[key] = value


def _fragment_page_key(key: str | None, page: Mapping[str, Any]) -> str:
    if key is not None:
        return key
    if page.get("pageid"):
        return str(page["pageid"])
    return f"title:{page.get('title')}"


def merge_query_fragments(fragments: Iterable[Mapping[str, Any]]) -> dict:
    """Merge the partial ``query`` nodes of one continued request.

    List nodes (``normalized``, ``redirects``, ...) are concatenated without
    duplicates; pages are merged by key, list properties such as
    ``revisions`` are concatenated and scalar properties overwritten.
    The merged ``pages`` node is always keyed.
    """
    merged: dict[str, Any] = {}
    for fragment in fragments:
        for key, value in fragment.items():
            if key == "pages":
                pages = merged.setdefault("pages", {})
                entries = value.items() if isinstance(value, Mapping) else ((None, p) for p in value)
                for page_key, page in entries:
                    target = pages.setdefault(_fragment_page_key(page_key, page), {})
                    _merge_page(target, page)
            elif isinstance(value, list):
                existing = merged.setdefault(key, [])
                existing.extend(item for item in value if item not in existing)
            elif isinstance(value, Mapping):
                merged.setdefault(key, {}).update(value)
            else:
                merged[key] = value
    return merged
