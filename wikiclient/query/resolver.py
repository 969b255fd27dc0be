"""Re-association of batch results with the subjects that were requested.

The server answers a batch request keyed by canonical titles (or page ids),
reporting title normalization and followed redirects on the side. This module
maps each requested subject back to its page fragment, in request order.
"""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..errors import CircularRedirectError, ConfigurationError, UnexpectedDataError
from .paging import iter_page_fragments

logger = logging.getLogger(__name__)


class SubjectKind(Enum):
    """How the subjects of one batch identify their pages."""

    TITLE = "titles"
    PAGE_ID = "pageids"
    REVISION_ID = "revids"


@dataclass
class ResolvedSubject:
    """One requested subject with the fragment it resolved to.

    Attributes:
        subject: Title or id exactly as requested
        resolved_title: Canonical title after normalization and redirects
        fragment: Raw page fragment from the response
        redirect_trace: Titles visited before reaching ``resolved_title``
    """

    subject: str | int
    resolved_title: str | None
    fragment: dict
    redirect_trace: list[str] = field(default_factory=list)


def build_title_map(entries: Sequence[Mapping[str, Any]] | None) -> dict[str, str]:
    """Turn a ``normalized`` or ``redirects`` node into a from -> to map."""
    mapping = {}
    for entry in entries or ():
        source, target = entry.get("from"), entry.get("to")
        if source is not None and target is not None:
            mapping[source] = target
    return mapping


def resolve_title(
    title: str,
    normalized: Mapping[str, str],
    redirects: Mapping[str, str],
    follow_redirects: bool,
) -> tuple[str, list[str]]:
    """Resolve one requested title to the title the server answered with.

    Normalization is applied once; redirects are then walked until a title
    that is not a redirect source.

    Returns:
        Tuple of (final title, redirect trace)

    Raises:
        CircularRedirectError: If the redirect chain revisits a title

    Example:
        >>> resolve_title("a", {"a": "A"}, {"A": "B", "B": "C"}, True)
        ('C', ['A', 'B'])
    """
    current = normalized.get(title, title)
    trace: list[str] = []
    if not follow_redirects:
        return current, trace

    while current in redirects:
        trace.append(current)
        target = redirects[current]
        if target in trace:
            raise CircularRedirectError(trace + [target])
        current = target
    return current, trace


def _index_by_title(query_node: Mapping[str, Any]) -> dict[str, dict]:
    return {
        fragment["title"]: fragment
        for fragment in iter_page_fragments(query_node)
        if "title" in fragment
    }


def _index_by_page_id(query_node: Mapping[str, Any]) -> dict[int, dict]:
    index = {}
    pages = query_node.get("pages")
    if isinstance(pages, Mapping):
        entries = pages.items()
    else:
        entries = ((None, fragment) for fragment in pages or ())
    for key, fragment in entries:
        raw = fragment.get("pageid", key)
        try:
            index[int(raw)] = fragment
        except (TypeError, ValueError):
            continue
    return index


def resolve_batch(
    query_node: Mapping[str, Any],
    subjects: Sequence[str | int],
    kind: SubjectKind = SubjectKind.TITLE,
    follow_redirects: bool = False,
) -> list[ResolvedSubject]:
    """Map every requested subject of one partition to its page fragment.

    Args:
        query_node: The (merged) ``query`` node of the partition's responses
        subjects: Titles or page ids, in request order
        kind: SubjectKind.TITLE or SubjectKind.PAGE_ID
        follow_redirects: Whether the request asked the server to resolve redirects

    Returns:
        One ResolvedSubject per subject, in request order

    Raises:
        UnexpectedDataError: If a subject has no fragment in the response
        CircularRedirectError: If a redirect chain loops
    """
    if kind is SubjectKind.REVISION_ID:
        raise ConfigurationError("Use resolve_revisions() for revision id batches")

    results = []
    if kind is SubjectKind.PAGE_ID:
        by_id = _index_by_page_id(query_node)
        for subject in subjects:
            fragment = by_id.get(int(subject))
            if fragment is None:
                raise UnexpectedDataError(f"Cannot find page id {subject} in the response")
            results.append(ResolvedSubject(subject, fragment.get("title"), fragment))
        return results

    normalized = build_title_map(query_node.get("normalized"))
    redirects = build_title_map(query_node.get("redirects"))
    by_title = _index_by_title(query_node)
    for subject in subjects:
        title, trace = resolve_title(subject, normalized, redirects, follow_redirects)
        fragment = by_title.get(title)
        if fragment is None:
            raise UnexpectedDataError(
                f"Cannot find title {title!r} (requested as {subject!r}) in the response"
            )
        if trace:
            logger.debug(f"Resolved {subject!r} to {title!r} via {'->'.join(trace)}")
        results.append(ResolvedSubject(subject, title, fragment, trace))
    return results


def _index_bad_revision_ids(query_node: Mapping[str, Any]) -> set[int]:
    bad = query_node.get("badrevids") or {}
    entries = bad.values() if isinstance(bad, Mapping) else bad
    ids = set()
    for entry in entries:
        try:
            ids.add(int(entry["revid"]))
        except (KeyError, TypeError, ValueError):
            continue
    if isinstance(bad, Mapping):
        for key in bad:
            try:
                ids.add(int(key))
            except ValueError:
                continue
    return ids


def resolve_revisions(
    query_node: Mapping[str, Any], revision_ids: Sequence[int]
) -> list[tuple[dict, dict] | None]:
    """Map revision ids to their (page fragment, revision fragment) pairs.

    Ids the server reported under ``badrevids`` map to None.

    Raises:
        UnexpectedDataError: If an id is neither found nor reported as bad
    """
    found: dict[int, tuple[dict, dict]] = {}
    for page in iter_page_fragments(query_node):
        for revision in page.get("revisions") or ():
            if "revid" in revision:
                found[int(revision["revid"])] = (page, revision)

    bad_ids = _index_bad_revision_ids(query_node)
    results: list[tuple[dict, dict] | None] = []
    for revision_id in revision_ids:
        revision_id = int(revision_id)
        if revision_id in found:
            results.append(found[revision_id])
        elif revision_id in bad_ids:
            results.append(None)
        else:
            raise UnexpectedDataError(f"Cannot find revision id {revision_id} in the response")
    return results


def ensure_redirects_allowed(follow_redirects: bool, uses_generator: bool) -> None:
    """Reject redirect resolution for generator-driven queries.

    Raises:
        ConfigurationError: If both are requested
    """
    if follow_redirects and uses_generator:
        raise ConfigurationError(
            "Cannot resolve redirects when pages come from a generator"
        )
