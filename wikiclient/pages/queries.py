"""Batch page and revision queries.

Public Interface:
    - PageQueryOptions: What to fetch besides page info
    - build_page_query_parameters: Parameters shared by every page query
    - refresh_pages: Refresh WikiPage objects in place
    - fetch_revisions: Fetch revisions by id
    - iter_page_revisions: Walk the revision history of one page
    - iter_pages_from_query: Materialize pages from a generator query

Example:
    >>> pages = [WikiPage(title="Cat"), WikiPage(title="dog")]
    >>> refresh_pages(site, pages, PageQueryOptions.RESOLVE_REDIRECTS)
    >>> print(pages[1].title, pages[1].exists)
"""

import logging
import threading
from collections.abc import Iterable, Iterator, Mapping
from datetime import datetime
from typing import Any

from ..errors import ConfigurationError, InvalidTitleError
from ..query.paging import iter_page_fragments, iter_query_pages, merge_query_fragments
from ..query.params import QueryParameters
from ..query.partition import max_pagination_size, partition
from ..query.resolver import (
    SubjectKind,
    ensure_redirects_allowed,
    resolve_batch,
    resolve_revisions,
)
from .materializer import has_marker, populate, revision_from_json
from .models import PageQueryOptions, PageStub, Revision, WikiPage

logger = logging.getLogger(__name__)

__all__ = [
    "PageQueryOptions",
    "build_page_query_parameters",
    "fetch_revisions",
    "iter_page_revisions",
    "iter_pages_from_query",
    "refresh_pages",
]

REVISION_PROPERTIES = [
    "ids",
    "timestamp",
    "flags",
    "comment",
    "user",
    "userid",
    "contentmodel",
    "sha1",
    "tags",
    "size",
]


def _revision_parameters(fetch_content: bool) -> dict[str, Any]:
    rvprop = REVISION_PROPERTIES + ["content"] if fetch_content else REVISION_PROPERTIES
    return {"rvprop": rvprop, "rvslots": "main" if fetch_content else None}


def build_page_query_parameters(
    options: PageQueryOptions = PageQueryOptions.NONE, maxlag: int | None = None
) -> QueryParameters:
    """Parameters for fetching page info and the latest revision.

    Example:
        >>> build_page_query_parameters(PageQueryOptions.FETCH_CONTENT)["rvslots"]
        'main'
    """
    params = QueryParameters(
        action="query",
        prop=["info", "revisions", "categoryinfo", "pageprops"],
        inprop="protection",
        maxlag=maxlag,
    )
    params.update(_revision_parameters(PageQueryOptions.FETCH_CONTENT in options))
    params["redirects"] = PageQueryOptions.RESOLVE_REDIRECTS in options
    return params


def _query_partition(
    site, parameters: QueryParameters, cancel_event: threading.Event | None
) -> dict:
    fragments = list(iter_query_pages(site, parameters, cancel_event=cancel_event))
    return merge_query_fragments(fragments)


def refresh_pages(
    site,
    pages: Iterable[WikiPage],
    options: PageQueryOptions = PageQueryOptions.NONE,
    cancel_event: threading.Event | None = None,
) -> None:
    """Refresh pages in place, in as few requests as the account allows.

    Pages with a title are queried by title; pages without one by page id.
    Each group is split into partitions processed one after another.

    Args:
        site: WikiSite (or anything with ``invoke``, ``has_high_limits`` and ``maxlag``)
        pages: Pages to refresh
        options: Whether to fetch content and follow redirects
        cancel_event: Checked before every request

    Raises:
        ConfigurationError: If a page has neither title nor id
        InvalidTitleError: If the server rejects a title
        CircularRedirectError: If a redirect chain loops
    """
    pages = list(pages)
    by_title = [page for page in pages if page.title]
    by_id = [page for page in pages if not page.title]
    for page in by_id:
        if page.id <= 0:
            raise ConfigurationError(f"Page has neither a title nor a page id: {page!r}")

    fetch_content = PageQueryOptions.FETCH_CONTENT in options
    follow_redirects = PageQueryOptions.RESOLVE_REDIRECTS in options
    size = max_pagination_size(site.has_high_limits, fetch_content)
    base = build_page_query_parameters(options, site.maxlag)

    groups = [
        (SubjectKind.TITLE, by_title, base),
        # Ids are answered by id only; redirect targets would not be found.
        (SubjectKind.PAGE_ID, by_id, base.merged({"redirects": False})),
    ]
    for kind, group, parameters in groups:
        for chunk in partition(group, size):
            subjects = [page.title if kind is SubjectKind.TITLE else page.id for page in chunk]
            logger.debug(f"Refreshing {len(chunk)} page(s) by {kind.value}")
            query_node = _query_partition(
                site, parameters.merged({kind.value: subjects}), cancel_event
            )
            resolved = resolve_batch(
                query_node, subjects, kind, follow_redirects and kind is SubjectKind.TITLE
            )
            for page, result in zip(chunk, resolved):
                populate(page, result.fragment, options)
                page.redirect_path = result.redirect_trace


def fetch_revisions(
    site,
    revision_ids: Iterable[int],
    options: PageQueryOptions = PageQueryOptions.NONE,
    cancel_event: threading.Event | None = None,
) -> Iterator[Revision | None]:
    """Fetch revisions by id, in input order.

    Yields None for ids the server reports as bad (deleted or never existed).
    """
    fetch_content = PageQueryOptions.FETCH_CONTENT in options
    size = max_pagination_size(site.has_high_limits, fetch_content)
    base = QueryParameters(action="query", prop="revisions", maxlag=site.maxlag)
    base.update(_revision_parameters(fetch_content))

    for chunk in partition(list(revision_ids), size):
        query_node = _query_partition(site, base.merged({"revids": chunk}), cancel_event)
        for entry in resolve_revisions(query_node, chunk):
            if entry is None:
                yield None
                continue
            page_node, revision_node = entry
            stub = PageStub(
                id=int(page_node.get("pageid", 0)),
                namespace_id=page_node.get("ns"),
                title=page_node.get("title"),
            )
            yield revision_from_json(revision_node, stub)


def iter_page_revisions(
    site,
    page: WikiPage,
    options: PageQueryOptions = PageQueryOptions.NONE,
    *,
    pagination_size: int | None = None,
    oldest_first: bool = False,
    start_time: datetime | None = None,
    end_time: datetime | None = None,
    cancel_event: threading.Event | None = None,
) -> Iterator[Revision]:
    """Walk the revision history of one page, following ``rvcontinue``.

    The page is looked up by title, or by id when it has no title. A page
    that does not exist has an empty history.

    Args:
        site: WikiSite (or anything with ``invoke``, ``has_high_limits`` and ``maxlag``)
        page: Page whose history to list
        options: FETCH_CONTENT to include revision text
        pagination_size: Revisions per request; None uses the account maximum
        oldest_first: Enumerate from the oldest revision (``rvdir=newer``)
        start_time: Timestamp to start from, in enumeration order
        end_time: Timestamp to stop at, in enumeration order
        cancel_event: Checked before every request

    Raises:
        ConfigurationError: If RESOLVE_REDIRECTS is requested, the page has
            neither title nor id, or the pagination size is not positive
        InvalidTitleError: If the server rejects the title
    """
    if PageQueryOptions.RESOLVE_REDIRECTS in options:
        raise ConfigurationError("Cannot resolve redirects when listing the revisions of a page")
    if not page.title and page.id <= 0:
        raise ConfigurationError(f"Page has neither a title nor a page id: {page!r}")
    if pagination_size is not None and (
        isinstance(pagination_size, bool) or not isinstance(pagination_size, int) or pagination_size < 1
    ):
        raise ConfigurationError(
            f"Pagination size must be a positive integer, got {pagination_size!r}"
        )

    fetch_content = PageQueryOptions.FETCH_CONTENT in options
    params = QueryParameters(
        action="query",
        prop="revisions",
        rvlimit=pagination_size or max_pagination_size(site.has_high_limits, fetch_content),
        rvdir="newer" if oldest_first else "older",
        rvstart=start_time,
        rvend=end_time,
        maxlag=site.maxlag,
    )
    params.update(_revision_parameters(fetch_content))
    if page.title:
        params["titles"] = page.title
    else:
        params["pageids"] = page.id

    fragments = iter_query_pages(site, params, cancel_event=cancel_event)
    return _walk_revisions(fragments, page)


def _walk_revisions(fragments: Iterator[dict], page: WikiPage) -> Iterator[Revision]:
    count = 0
    for query_node in fragments:
        for fragment in iter_page_fragments(query_node):
            if has_marker(fragment, "invalid"):
                raise InvalidTitleError(fragment.get("title", page.title), fragment.get("invalidreason"))
            revisions = fragment.get("revisions") or []
            if not revisions:
                continue
            stub = PageStub(
                id=max(int(fragment.get("pageid", 0)), 0),
                namespace_id=fragment.get("ns"),
                title=fragment.get("title"),
            )
            count += len(revisions)
            logger.debug(f"Fetched {count} revision(s) of [[{stub.title}]]")
            for node in revisions:
                yield revision_from_json(node, stub)


def _by_server_index(fragment: Mapping[str, Any]) -> int:
    return int(fragment.get("index", 0))


def iter_pages_from_query(
    site,
    parameters: Mapping[str, Any],
    options: PageQueryOptions = PageQueryOptions.NONE,
    distinct_pages: bool = False,
    cancel_event: threading.Event | None = None,
) -> Iterator[WikiPage]:
    """Run a generator query and yield a new WikiPage per result.

    ``parameters`` carries the generator (``generator=...`` plus its
    ``g``-prefixed options); page properties are added here.

    Raises:
        ConfigurationError: If RESOLVE_REDIRECTS is combined with a generator
    """
    extra = QueryParameters(parameters)
    ensure_redirects_allowed(
        PageQueryOptions.RESOLVE_REDIRECTS in options, uses_generator="generator" in extra
    )
    merged = build_page_query_parameters(options, site.maxlag).merged(extra)
    fragments = iter_query_pages(
        site, merged, distinct_pages=distinct_pages, cancel_event=cancel_event
    )
    return _materialize(fragments, options)


def _materialize(fragments: Iterator[dict], options: PageQueryOptions) -> Iterator[WikiPage]:
    for query_node in fragments:
        for fragment in sorted(iter_page_fragments(query_node), key=_by_server_index):
            yield populate(WikiPage(), fragment, options)
