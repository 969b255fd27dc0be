"""List modules usable as item lists or page generators."""

from .base import WikiList, WikiPageGenerator
from .lists import (
    AllPagesGenerator,
    BacklinksGenerator,
    CategoryMembersGenerator,
    RecentChangesGenerator,
    RedirectFilter,
    category_title,
)

__all__ = [
    "AllPagesGenerator",
    "BacklinksGenerator",
    "CategoryMembersGenerator",
    "RecentChangesGenerator",
    "RedirectFilter",
    "WikiList",
    "WikiPageGenerator",
    "category_title",
]
