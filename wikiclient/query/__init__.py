"""Query engine: parameter encoding, continuation, pagination and resolution."""

from .continuation import (
    ContinuationResult,
    ContinuationStatus,
    find_continuation_root,
    parse_continuation,
)
from .paging import ApiInvoker, iter_page_fragments, iter_query_pages, merge_query_fragments
from .params import QueryParameters, parse_wiki_timestamp, to_wire_value, wire_values_equal
from .partition import max_pagination_size, partition
from .resolver import (
    ResolvedSubject,
    SubjectKind,
    ensure_redirects_allowed,
    resolve_batch,
    resolve_revisions,
    resolve_title,
)

__all__ = [
    "ApiInvoker",
    "ContinuationResult",
    "ContinuationStatus",
    "QueryParameters",
    "ResolvedSubject",
    "SubjectKind",
    "ensure_redirects_allowed",
    "find_continuation_root",
    "iter_page_fragments",
    "iter_query_pages",
    "max_pagination_size",
    "merge_query_fragments",
    "parse_continuation",
    "parse_wiki_timestamp",
    "partition",
    "resolve_batch",
    "resolve_revisions",
    "resolve_title",
    "to_wire_value",
    "wire_values_equal",
]
