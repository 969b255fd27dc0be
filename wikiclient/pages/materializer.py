"""Populate WikiPage and Revision objects from raw page fragments."""

import logging
from collections.abc import Mapping
from typing import Any

from ..errors import InvalidTitleError
from ..query.params import parse_wiki_timestamp
from .models import (
    CategoryInfo,
    PageInfo,
    PageQueryOptions,
    PageStub,
    ProtectionInfo,
    Revision,
    WikiPage,
)

logger = logging.getLogger(__name__)


def has_marker(node: Mapping[str, Any], key: str) -> bool:
    """Tell whether a boolean marker is set.

    formatversion=1 marks with an empty string, formatversion=2 with ``true``.
    """
    value = node.get(key)
    return value is not None and value is not False


def _to_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _main_slot(node: Mapping[str, Any]) -> Mapping[str, Any]:
    slots = node.get("slots")
    if isinstance(slots, Mapping):
        return slots.get("main") or {}
    return {}


def revision_from_json(node: Mapping[str, Any], page: PageStub | None = None) -> Revision:
    """Build a Revision from one entry of a ``revisions`` list.

    Content is read from the legacy ``*`` key, the ``content`` key, or the
    main slot, whichever the server used.
    """
    main = _main_slot(node)
    content = node.get("*")
    if content is None:
        content = node.get("content")
    if content is None:
        content = main.get("*", main.get("content"))

    return Revision(
        id=_to_int(node.get("revid")),
        parent_id=_to_int(node.get("parentid")),
        timestamp=parse_wiki_timestamp(node.get("timestamp")),
        user=node.get("user"),
        user_id=_to_int(node.get("userid")),
        comment=node.get("comment"),
        is_minor=has_marker(node, "minor"),
        is_anonymous=has_marker(node, "anon"),
        content_hidden=has_marker(node, "texthidden") or has_marker(main, "texthidden"),
        size=_to_int(node.get("size")),
        sha1=node.get("sha1"),
        content_model=node.get("contentmodel") or main.get("contentmodel"),
        content=content,
        tags=list(node.get("tags") or []),
        page=page,
    )


def _page_info_from_json(fragment: Mapping[str, Any]) -> PageInfo:
    protections = [
        ProtectionInfo(
            type=entry.get("type", ""),
            level=entry.get("level", ""),
            expiry=entry.get("expiry"),
            cascade=has_marker(entry, "cascade"),
        )
        for entry in fragment.get("protection") or []
    ]
    return PageInfo(
        content_model=fragment.get("contentmodel"),
        language=fragment.get("pagelanguage"),
        touched=parse_wiki_timestamp(fragment.get("touched")),
        last_revision_id=_to_int(fragment.get("lastrevid")),
        content_length=_to_int(fragment.get("length")),
        is_redirect=has_marker(fragment, "redirect"),
        protections=protections,
    )


def _pick_latest(revisions: list[Mapping[str, Any]]) -> Mapping[str, Any]:
    # Ordering depends on rvdir, so compare both ends.
    first, last = revisions[0], revisions[-1]
    first_ts = parse_wiki_timestamp(first.get("timestamp"))
    last_ts = parse_wiki_timestamp(last.get("timestamp"))
    if first_ts is None or last_ts is None:
        return first
    return first if first_ts >= last_ts else last


def _clear_content(page: WikiPage) -> None:
    page.content = None
    page.content_model = None
    page.last_revision = None
    page.last_revision_id = 0
    page.page_info = None
    page.category_info = None
    page.page_properties = {}


def populate(
    page: WikiPage,
    fragment: Mapping[str, Any],
    options: PageQueryOptions = PageQueryOptions.NONE,
) -> WikiPage:
    """Update ``page`` in place from one page fragment.

    Args:
        page: Page to update
        fragment: Raw fragment from ``query.pages``
        options: Options the fragment was requested with

    Returns:
        The same page object

    Raises:
        InvalidTitleError: If the server marked the title as invalid
    """
    if has_marker(fragment, "invalid"):
        raise InvalidTitleError(fragment.get("title", page.title), fragment.get("invalidreason"))

    page.id = max(_to_int(fragment.get("pageid")), 0)
    if "ns" in fragment:
        page.namespace_id = _to_int(fragment["ns"])
    page.title = fragment.get("title", page.title)

    if has_marker(fragment, "missing"):
        page.exists = False
        _clear_content(page)
        return page

    page.exists = True
    page.page_info = _page_info_from_json(fragment)
    page.content_model = page.page_info.content_model
    page.last_revision_id = page.page_info.last_revision_id

    revisions = fragment.get("revisions")
    if revisions:
        latest = revision_from_json(_pick_latest(revisions), page.to_stub())
        page.last_revision = latest
        if not page.last_revision_id:
            page.last_revision_id = latest.id
        page.content = latest.content
        if latest.content is None and PageQueryOptions.FETCH_CONTENT in options:
            logger.debug(f"No content returned for revision {latest.id} of {page}")
    else:
        page.last_revision = None
        page.content = None

    if "categoryinfo" in fragment:
        info = fragment["categoryinfo"]
        page.category_info = CategoryInfo(
            size=_to_int(info.get("size")),
            pages=_to_int(info.get("pages")),
            files=_to_int(info.get("files")),
            subcategories=_to_int(info.get("subcats")),
        )
    else:
        page.category_info = None
    page.page_properties = dict(fragment.get("pageprops") or {})
    return page
