"""Page and revision data model.

Instances are owned by the caller and updated in place by refreshes.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Flag, auto


class PageQueryOptions(Flag):
    """What a page refresh should fetch besides page info."""

    NONE = 0
    FETCH_CONTENT = auto()
    RESOLVE_REDIRECTS = auto()


@dataclass
class PageStub:
    """Identity of a page, without any content."""

    id: int = 0
    namespace_id: int | None = None
    title: str | None = None


@dataclass
class ProtectionInfo:
    """One protection entry from ``inprop=protection``."""

    type: str
    level: str
    expiry: str | None = None
    cascade: bool = False


@dataclass
class PageInfo:
    """Fields returned by ``prop=info``."""

    content_model: str | None = None
    language: str | None = None
    touched: datetime | None = None
    last_revision_id: int = 0
    content_length: int = 0
    is_redirect: bool = False
    protections: list[ProtectionInfo] = field(default_factory=list)


@dataclass
class CategoryInfo:
    """Member counts of a category page."""

    size: int = 0
    pages: int = 0
    files: int = 0
    subcategories: int = 0


@dataclass
class Revision:
    """A single revision of a page.

    ``content`` is only set when revision content was requested and the
    server did not hide it.
    """

    id: int
    parent_id: int = 0
    timestamp: datetime | None = None
    user: str | None = None
    user_id: int = 0
    comment: str | None = None
    is_minor: bool = False
    is_anonymous: bool = False
    content_hidden: bool = False
    size: int = 0
    sha1: str | None = None
    content_model: str | None = None
    content: str | None = None
    tags: list[str] = field(default_factory=list)
    page: PageStub | None = None


@dataclass
class WikiPage:
    """A wiki page as last seen by a refresh.

    Create one with a title or a page id, then pass it to ``refresh_pages``.

    Example:
        >>> page = WikiPage(title="Main Page")
        >>> page.exists is None
        True
    """

    title: str | None = None
    id: int = 0
    namespace_id: int | None = None
    exists: bool | None = None
    last_revision_id: int = 0
    content_model: str | None = None
    content: str | None = None
    last_revision: Revision | None = None
    page_info: PageInfo | None = None
    category_info: CategoryInfo | None = None
    page_properties: dict[str, str] = field(default_factory=dict)
    redirect_path: list[str] = field(default_factory=list)

    @property
    def is_redirect(self) -> bool:
        return bool(self.page_info and self.page_info.is_redirect)

    def to_stub(self) -> PageStub:
        return PageStub(self.id, self.namespace_id, self.title)

    def __str__(self) -> str:
        return self.title or f"#{self.id}"
