"""Write operations: edit, move, delete and purge.

All operations except purge need a CSRF token, which is taken from the
site's token cache. A ``badtoken`` failure drops the cached token so the
next call fetches a fresh one; the failure itself still propagates.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum, Flag, auto
from typing import Any

from ..errors import ConfigurationError, ErrorKind, OperationFailedError
from ..query.params import QueryParameters
from ..query.partition import max_pagination_size, partition
from ..query.resolver import build_title_map
from .materializer import has_marker
from .models import WikiPage

logger = logging.getLogger(__name__)


class WatchBehavior(Enum):
    """How an operation affects the user's watchlist."""

    DEFAULT = "preferences"
    NONE = "nochange"
    WATCH = "watch"
    UNWATCH = "unwatch"


class PageMoveOptions(Flag):
    """Options for move_page."""

    NONE = 0
    LEAVE_TALK = auto()
    MOVE_SUBPAGES = auto()
    NO_REDIRECT = auto()
    IGNORE_WARNINGS = auto()


@dataclass
class PurgeFailure:
    """A page that could not be purged, with the server's reason if any."""

    page: WikiPage
    reason: str | None = None


def _page_target(page: WikiPage, title_key: str = "title", id_key: str = "pageid") -> dict:
    if page.title:
        return {title_key: page.title}
    if page.id > 0:
        return {id_key: page.id}
    raise ConfigurationError(f"Page has neither a title nor a page id: {page!r}")


def _invoke_with_token(site, parameters: Mapping[str, Any]) -> dict:
    # The token goes last so that a truncated request never carries it.
    request = QueryParameters(parameters)
    request["token"] = site.get_token("csrf")
    try:
        return site.invoke(request)
    except OperationFailedError as e:
        if e.kind is ErrorKind.BAD_TOKEN:
            logger.warning(f"Server rejected the CSRF token ({e.code}), dropping cached token")
            site.invalidate_token("csrf")
        raise


def _as_unauthorized(error: OperationFailedError) -> OperationFailedError:
    return OperationFailedError(error.code, error.info, ErrorKind.UNAUTHORIZED)


def edit_page(
    site,
    page: WikiPage,
    text: str,
    summary: str | None = None,
    *,
    minor: bool = False,
    bot: bool = False,
    watch: WatchBehavior = WatchBehavior.DEFAULT,
) -> bool:
    """Replace the content of a page.

    Args:
        site: WikiSite to edit on
        page: Target page; updated with the new revision id on success
        text: New wikitext
        summary: Edit summary
        minor: Mark as a minor edit
        bot: Mark as a bot edit
        watch: Watchlist behavior

    Returns:
        True if a new revision was created, False for a null edit

    Raises:
        OperationFailedError: CONFLICT on edit conflicts, UNAUTHORIZED when protected
        ConfigurationError: If pages cannot exist in the target namespace
    """
    base_timestamp = page.last_revision.timestamp if page.last_revision else None
    parameters = {
        "action": "edit",
        **_page_target(page),
        "minor": minor,
        "bot": bot,
        "recreate": True,
        "maxlag": site.maxlag,
        "basetimestamp": base_timestamp,
        "watchlist": watch,
        "summary": summary,
        "text": text,
    }
    try:
        response = _invoke_with_token(site, parameters)
    except OperationFailedError as e:
        if e.code == "protectedpage":
            raise _as_unauthorized(e) from e
        if e.code == "pagecannotexist":
            raise ConfigurationError(f"Page {page} cannot exist: {e.info}") from e
        raise

    edit = response.get("edit") or {}
    result = edit.get("result")
    if result != "Success":
        raise OperationFailedError(result or "unknown", edit.get("info"))

    page.content = text
    if has_marker(edit, "nochange"):
        logger.info(f"Submitted empty edit to {page}")
        return False

    page.exists = True
    page.content_model = edit.get("contentmodel", page.content_model)
    page.last_revision_id = int(edit.get("newrevid", 0))
    page.id = int(edit.get("pageid", page.id))
    page.title = edit.get("title", page.title)
    logger.info(f"Edited {page}, new revision {page.last_revision_id}")
    return True


def move_page(
    site,
    page: WikiPage,
    new_title: str,
    reason: str | None = None,
    *,
    options: PageMoveOptions = PageMoveOptions.NONE,
    watch: WatchBehavior = WatchBehavior.DEFAULT,
) -> None:
    """Rename a page.

    The page's title is updated from the server response; refresh it to pick
    up the rest of its state.

    Raises:
        OperationFailedError: UNAUTHORIZED for protected pages or ``cantmove*`` codes
    """
    if new_title == page.title:
        return
    parameters = {
        "action": "move",
        **_page_target(page, "from", "fromid"),
        "to": new_title,
        "maxlag": site.maxlag,
        "movetalk": PageMoveOptions.LEAVE_TALK not in options,
        "movesubpages": PageMoveOptions.MOVE_SUBPAGES in options,
        "noredirect": PageMoveOptions.NO_REDIRECT in options,
        "ignorewarnings": PageMoveOptions.IGNORE_WARNINGS in options,
        "watchlist": watch,
        "reason": reason,
    }
    try:
        response = _invoke_with_token(site, parameters)
    except OperationFailedError as e:
        if e.code in ("protectedpage", "protectedtitle") or e.code.startswith("cantmove"):
            raise _as_unauthorized(e) from e
        raise

    move = response.get("move") or {}
    logger.info(f"Page [[{move.get('from')}]] has been moved to [[{move.get('to')}]]")
    page.title = move.get("to", new_title)


def delete_page(
    site,
    page: WikiPage,
    reason: str | None = None,
    *,
    watch: WatchBehavior = WatchBehavior.DEFAULT,
) -> bool:
    """Delete a page.

    Returns:
        True if deleted, False if it was already gone
    """
    parameters = {
        "action": "delete",
        **_page_target(page),
        "maxlag": site.maxlag,
        "watchlist": watch,
        "reason": reason,
    }
    try:
        response = _invoke_with_token(site, parameters)
    except OperationFailedError as e:
        if e.code in ("cantdelete", "missingtitle"):
            logger.info(f"Cannot delete {page}: {e.info}")
            return False
        raise

    page.id = 0
    page.exists = False
    page.last_revision = None
    page.last_revision_id = 0
    page.content = None
    logger.info(f"[[{(response.get('delete') or {}).get('title', page.title)}]] has been deleted")
    return True


def purge_pages(
    site,
    pages: Iterable[WikiPage],
    *,
    force_link_update: bool = False,
    force_recursive_link_update: bool = False,
) -> list[PurgeFailure]:
    """Purge the server-side cache of pages, by title.

    Returns:
        Pages that could not be purged because they are missing or invalid
    """
    pages = list(pages)
    for page in pages:
        if not page.title:
            raise ConfigurationError(f"Cannot purge a page without a title: {page!r}")

    failures = []
    for chunk in partition(pages, max_pagination_size(site.has_high_limits)):
        logger.debug(f"Purging {len(chunk)} page(s)")
        parameters = QueryParameters(
            action="purge",
            titles=[page.title for page in chunk],
            forcelinkupdate=force_link_update,
            forcerecursivelinkupdate=force_recursive_link_update,
        )
        try:
            response = site.invoke(parameters)
        except OperationFailedError as e:
            if e.code == "cantpurge":
                raise _as_unauthorized(e) from e
            raise

        normalized = build_title_map(response.get("normalized"))
        status = {entry.get("title"): entry for entry in response.get("purge") or []}
        for page in chunk:
            entry = status.get(normalized.get(page.title, page.title), {})
            if has_marker(entry, "invalid") or has_marker(entry, "missing") or not entry:
                reason = entry.get("invalidreason")
                logger.warning(f"Cannot purge the page [[{page}]]. {reason or ''}".rstrip())
                failures.append(PurgeFailure(page, reason))
    return failures
