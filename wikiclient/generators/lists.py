"""Concrete list modules."""

import re
from datetime import datetime
from enum import Enum
from typing import Any

from .base import WikiPageGenerator

CATEGORY_PREFIX = re.compile(r"^\s*:?\s*category\s*:\s*", re.IGNORECASE)


def category_title(title: str) -> str:
    """Return ``title`` with exactly one canonical ``Category:`` prefix.

    Example:
        >>> category_title("Cats: A history")
        'Category:Cats: A history'
        >>> category_title("category:Cats")
        'Category:Cats'
    """
    return "Category:" + CATEGORY_PREFIX.sub("", title, count=1).strip()


class RedirectFilter(Enum):
    ALL = "all"
    REDIRECTS = "redirects"
    NON_REDIRECTS = "nonredirects"


class AllPagesGenerator(WikiPageGenerator):
    """All pages in a namespace, in title order (``list=allpages``)."""

    list_name = "allpages"
    prefix = "ap"

    def __init__(
        self,
        site,
        start_title: str | None = None,
        end_title: str | None = None,
        prefix: str | None = None,
        namespace_id: int = 0,
        redirects_filter: RedirectFilter = RedirectFilter.ALL,
        pagination_size: int | None = None,
    ):
        super().__init__(site, pagination_size)
        self.start_title = start_title
        self.end_title = end_title
        self.title_prefix = prefix
        self.namespace_id = namespace_id
        self.redirects_filter = redirects_filter

    def filter_parameters(self) -> dict[str, Any]:
        return {
            "apfrom": self.start_title,
            "apto": self.end_title,
            "apprefix": self.title_prefix,
            "apnamespace": self.namespace_id,
            "apfilterredir": self.redirects_filter,
        }


class CategoryMembersGenerator(WikiPageGenerator):
    """Pages, subcategories and files in a category (``list=categorymembers``)."""

    list_name = "categorymembers"
    prefix = "cm"

    def __init__(
        self,
        site,
        category_title: str,
        namespace_ids: list[int] | None = None,
        member_types: list[str] | None = None,
        pagination_size: int | None = None,
    ):
        super().__init__(site, pagination_size)
        self.category_title = category_title
        self.namespace_ids = namespace_ids
        self.member_types = member_types

    def filter_parameters(self) -> dict[str, Any]:
        return {
            "cmtitle": category_title(self.category_title),
            "cmnamespace": self.namespace_ids,
            "cmtype": self.member_types,
        }


class BacklinksGenerator(WikiPageGenerator):
    """Pages linking to a title (``list=backlinks``)."""

    list_name = "backlinks"
    prefix = "bl"

    def __init__(
        self,
        site,
        target_title: str,
        namespace_ids: list[int] | None = None,
        redirects_filter: RedirectFilter = RedirectFilter.ALL,
        include_redirected: bool = False,
        pagination_size: int | None = None,
    ):
        super().__init__(site, pagination_size)
        self.target_title = target_title
        self.namespace_ids = namespace_ids
        self.redirects_filter = redirects_filter
        self.include_redirected = include_redirected

    def filter_parameters(self) -> dict[str, Any]:
        return {
            "bltitle": self.target_title,
            "blnamespace": self.namespace_ids,
            "blfilterredir": self.redirects_filter,
            "blredirect": self.include_redirected,
        }


class RecentChangesGenerator(WikiPageGenerator):
    """Recent changes, newest first by default (``list=recentchanges``).

    The same page can change many times, so pages are de-duplicated.
    """

    list_name = "recentchanges"
    prefix = "rc"
    distinct_pages = True

    CHANGE_PROPERTIES = ["title", "ids", "timestamp", "user", "comment", "flags", "sizes"]

    def __init__(
        self,
        site,
        start_time: datetime | None = None,
        end_time: datetime | None = None,
        oldest_first: bool = False,
        namespace_ids: list[int] | None = None,
        user: str | None = None,
        change_types: list[str] | None = None,
        pagination_size: int | None = None,
    ):
        super().__init__(site, pagination_size)
        self.start_time = start_time
        self.end_time = end_time
        self.oldest_first = oldest_first
        self.namespace_ids = namespace_ids
        self.user = user
        self.change_types = change_types

    def filter_parameters(self) -> dict[str, Any]:
        return {
            "rcstart": self.start_time,
            "rcend": self.end_time,
            "rcdir": "newer" if self.oldest_first else "older",
            "rcnamespace": self.namespace_ids,
            "rcuser": self.user,
            "rctype": self.change_types,
            "rcprop": self.CHANGE_PROPERTIES,
        }
