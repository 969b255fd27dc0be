"""Page and revision model, batch queries and write operations."""

from .editing import (
    PageMoveOptions,
    PurgeFailure,
    WatchBehavior,
    delete_page,
    edit_page,
    move_page,
    purge_pages,
)
from .materializer import populate, revision_from_json
from .models import (
    CategoryInfo,
    PageInfo,
    PageQueryOptions,
    PageStub,
    ProtectionInfo,
    Revision,
    WikiPage,
)
from .queries import (
    build_page_query_parameters,
    fetch_revisions,
    iter_page_revisions,
    iter_pages_from_query,
    refresh_pages,
)

__all__ = [
    "CategoryInfo",
    "PageInfo",
    "PageMoveOptions",
    "PageQueryOptions",
    "PageStub",
    "ProtectionInfo",
    "PurgeFailure",
    "Revision",
    "WatchBehavior",
    "WikiPage",
    "build_page_query_parameters",
    "delete_page",
    "edit_page",
    "fetch_revisions",
    "iter_page_revisions",
    "iter_pages_from_query",
    "move_page",
    "populate",
    "purge_pages",
    "refresh_pages",
    "revision_from_json",
]
