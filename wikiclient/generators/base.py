"""Base classes for ``list=`` modules and their generator form."""

import logging
import threading
from collections.abc import Iterator
from typing import Any

from ..errors import ConfigurationError
from ..pages.models import PageQueryOptions, WikiPage
from ..pages.queries import iter_pages_from_query
from ..query.paging import iter_query_pages
from ..query.partition import max_pagination_size
from ..query.resolver import ensure_redirects_allowed

logger = logging.getLogger(__name__)


class WikiList:
    """A MediaWiki list module, e.g. ``list=allpages``.

    Subclasses set ``list_name`` and ``prefix`` and return their filters from
    ``filter_parameters``.

    Args:
        site: WikiSite to query
        pagination_size: Items per request; None asks the server for its maximum
    """

    list_name: str = ""
    prefix: str = ""

    def __init__(self, site, pagination_size: int | None = None):
        self.site = site
        self.pagination_size = pagination_size

    @property
    def pagination_size(self) -> int | None:
        return self._pagination_size

    @pagination_size.setter
    def pagination_size(self, value: int | None) -> None:
        if value is not None and (isinstance(value, bool) or not isinstance(value, int) or value < 1):
            raise ConfigurationError(f"Pagination size must be a positive integer, got {value!r}")
        self._pagination_size = value

    def filter_parameters(self) -> dict[str, Any]:
        return {}

    def list_parameters(self, limit: int | str | None = None) -> dict[str, Any]:
        """Module parameters, including the ``<prefix>limit`` entry."""
        params = self.filter_parameters()
        params[f"{self.prefix}limit"] = limit or self.pagination_size or "max"
        return params

    def iter_items(self, cancel_event: threading.Event | None = None) -> Iterator[dict]:
        """Yield the raw list entries, following continuation."""
        params = {"action": "query", "list": self.list_name, "maxlag": self.site.maxlag}
        params.update(self.list_parameters())
        fragments = iter_query_pages(self.site, params, cancel_event=cancel_event)
        return self._entries(fragments)

    def _entries(self, fragments: Iterator[dict]) -> Iterator[dict]:
        for query_node in fragments:
            yield from query_node.get(self.list_name) or []

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.filter_parameters()!r})"


class WikiPageGenerator(WikiList):
    """A list module that can also be used as ``generator=``.

    Pages produced this way are full WikiPage objects with page info and the
    latest revision.
    """

    # Drop pages already produced by earlier requests of the same query.
    distinct_pages: bool = False

    @property
    def generator_name(self) -> str:
        return self.list_name

    def generator_parameters(self, fetch_content: bool = False) -> dict[str, Any]:
        """Module parameters prefixed with ``g``, plus ``generator=``."""
        limit = None
        if fetch_content and self.pagination_size is None:
            limit = max_pagination_size(self.site.has_high_limits, fetch_content=True)
        params = {"generator": self.generator_name}
        for key, value in self.list_parameters(limit).items():
            params[f"g{key}"] = value
        return params

    def iter_pages(
        self,
        options: PageQueryOptions = PageQueryOptions.NONE,
        cancel_event: threading.Event | None = None,
    ) -> Iterator[WikiPage]:
        """Yield a WikiPage for every item of the list.

        Raises:
            ConfigurationError: If RESOLVE_REDIRECTS is requested
        """
        ensure_redirects_allowed(PageQueryOptions.RESOLVE_REDIRECTS in options, uses_generator=True)
        params = self.generator_parameters(PageQueryOptions.FETCH_CONTENT in options)
        logger.debug(f"Enumerating pages of {self!r}")
        return iter_pages_from_query(
            self.site,
            params,
            options,
            distinct_pages=self.distinct_pages,
            cancel_event=cancel_event,
        )
