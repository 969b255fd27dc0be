"""Tests for the paginated query driver."""

import logging
import threading

import pytest

from wikiclient.errors import (
    ConfigurationError,
    ContinuationLoopError,
    QueryCancelledError,
    TransportError,
)
from wikiclient.query.paging import iter_page_fragments, iter_query_pages, merge_query_fragments


def _page(page_id, title):
    return {"pageid": page_id, "ns": 0, "title": title}


class TestIterQueryPages:
    """Test request chaining and termination."""

    def test_single_response_without_continuation(self, fake_invoker):
        invoker = fake_invoker([{"batchcomplete": "", "query": {"pages": {"1": _page(1, "A")}}}])

        fragments = list(iter_query_pages(invoker, {"action": "query", "titles": "A"}))

        assert fragments == [{"pages": {"1": _page(1, "A")}}]
        assert invoker.calls == [{"action": "query", "titles": "A"}]

    def test_next_request_is_base_plus_continuation(self, fake_invoker):
        invoker = fake_invoker(
            [
                {
                    "continue": {"apcontinue": "B", "continue": "-||"},
                    "query": {"allpages": [{"title": "A"}]},
                },
                {
                    "continue": {"apcontinue": "C", "continue": "-||"},
                    "query": {"allpages": [{"title": "B"}]},
                },
                {"query": {"allpages": [{"title": "C"}]}},
            ]
        )
        base = {"action": "query", "list": "allpages", "aplimit": 1}

        titles = [
            item["title"]
            for fragment in iter_query_pages(invoker, base)
            for item in fragment["allpages"]
        ]

        assert titles == ["A", "B", "C"]
        assert invoker.calls[0] == {"action": "query", "list": "allpages", "aplimit": "1"}
        assert invoker.calls[1] == {
            "action": "query",
            "list": "allpages",
            "aplimit": "1",
            "apcontinue": "B",
            "continue": "-||",
        }
        assert invoker.calls[2]["apcontinue"] == "C"

    def test_continuation_state_is_replaced_not_accumulated(self, fake_invoker):
        invoker = fake_invoker(
            [
                {"continue": {"rvcontinue": "10", "continue": "||"}, "query": {"pages": {}}},
                {"continue": {"gapcontinue": "B", "continue": "gapcontinue||"}, "query": {"pages": {}}},
                {"query": {"pages": {}}},
            ]
        )

        list(iter_query_pages(invoker, {"action": "query", "generator": "allpages"}))

        assert "rvcontinue" not in invoker.calls[2]
        assert invoker.calls[2]["gapcontinue"] == "B"

    def test_generator_is_lazy(self, fake_invoker):
        invoker = fake_invoker([{"query": {"pages": {}}}])

        fragments = iter_query_pages(invoker, {"action": "query"})

        assert invoker.calls == []
        next(fragments)
        assert len(invoker.calls) == 1

    def test_requires_action_query_before_any_request(self, fake_invoker):
        invoker = fake_invoker()

        with pytest.raises(ConfigurationError):
            iter_query_pages(invoker, {"action": "parse", "page": "A"})
        with pytest.raises(ConfigurationError):
            iter_query_pages(invoker, {"list": "allpages"})

        assert invoker.calls == []

    def test_empty_page_with_continuation_is_skipped(self, fake_invoker, caplog):
        invoker = fake_invoker(
            [
                {"continue": {"gcmcontinue": "X", "continue": "gcmcontinue||"}},
                {"query": {"pages": {"5": _page(5, "E")}}},
            ]
        )

        with caplog.at_level(logging.WARNING):
            fragments = list(iter_query_pages(invoker, {"action": "query"}))

        assert fragments == [{"pages": {"5": _page(5, "E")}}]
        assert "Empty query page with continuation" in caplog.text

    def test_transport_errors_propagate(self, fake_invoker):
        invoker = fake_invoker([TransportError("connection reset")])

        with pytest.raises(TransportError, match="connection reset"):
            list(iter_query_pages(invoker, {"action": "query"}))


class TestContinuationLoop:
    """Test detection of non-progressing continuation."""

    def test_loop_after_one_emitted_page(self, fake_invoker):
        invoker = fake_invoker(
            [
                {
                    "continue": {"gcmcontinue": "X"},
                    "query": {"pages": {"1": _page(1, "A"), "2": _page(2, "B")}},
                },
                {"continue": {"gcmcontinue": "X"}, "query": {"pages": {}}},
            ],
            max_calls=5,
        )
        base = {"action": "query", "prop": "info", "titles": "A|B"}
        emitted = []

        with pytest.raises(ContinuationLoopError) as exc_info:
            for fragment in iter_query_pages(invoker, base):
                emitted.append(fragment)

        assert len(emitted) == 1
        assert set(emitted[0]["pages"]) == {"1", "2"}
        assert len(invoker.calls) == 2
        assert exc_info.value.continuation == {"gcmcontinue": "X"}
        assert "gcmcontinue" in str(exc_info.value)

    def test_loop_on_first_response(self, fake_invoker, caplog):
        invoker = fake_invoker(
            [{"continue": {"apcontinue": "A"}, "query": {"allpages": []}}], max_calls=3
        )

        with caplog.at_level(logging.WARNING):
            with pytest.raises(ContinuationLoopError):
                list(iter_query_pages(invoker, {"action": "query", "apcontinue": "A"}))

        assert len(invoker.calls) == 1
        assert "infinite loop" in caplog.text


class TestDistinctPages:
    """Test page de-duplication across fragments."""

    def _responses(self):
        return [
            {
                "continue": {"gapcontinue": "B", "continue": "gapcontinue||"},
                "query": {"pages": {"42": _page(42, "Answer"), "1": _page(1, "One")}},
            },
            {"query": {"pages": {"42": _page(42, "Answer"), "7": _page(7, "Seven")}}},
        ]

    def test_second_occurrence_dropped(self, fake_invoker):
        invoker = fake_invoker(self._responses())

        fragments = list(iter_query_pages(invoker, {"action": "query"}, distinct_pages=True))

        assert set(fragments[0]["pages"]) == {"42", "1"}
        assert set(fragments[1]["pages"]) == {"7"}

    def test_duplicates_kept_when_disabled(self, fake_invoker):
        invoker = fake_invoker(self._responses())

        fragments = list(iter_query_pages(invoker, {"action": "query"}))

        assert set(fragments[1]["pages"]) == {"42", "7"}

    def test_list_shaped_pages(self, fake_invoker):
        invoker = fake_invoker(
            [
                {"continue": {"c": "1"}, "query": {"pages": [_page(42, "Answer")]}},
                {"query": {"pages": [_page(42, "Answer"), _page(3, "Three")]}},
            ]
        )

        fragments = list(iter_query_pages(invoker, {"action": "query"}, distinct_pages=True))

        assert [p["pageid"] for p in fragments[1]["pages"]] == [3]

    def test_missing_pages_are_never_dropped(self, fake_invoker):
        missing = {"ns": 0, "title": "Nope", "missing": ""}
        invoker = fake_invoker(
            [
                {"continue": {"c": "1"}, "query": {"pages": {"-1": missing}}},
                {"query": {"pages": {"-1": missing}}},
            ]
        )

        fragments = list(iter_query_pages(invoker, {"action": "query"}, distinct_pages=True))

        assert fragments[1]["pages"] == {"-1": missing}

    def test_removed_count_logged(self, fake_invoker, caplog):
        invoker = fake_invoker(self._responses())

        with caplog.at_level(logging.WARNING):
            list(iter_query_pages(invoker, {"action": "query"}, distinct_pages=True))

        assert "removed 1 already seen" in caplog.text


class TestCancellation:
    """Test cooperative cancellation."""

    def test_cancelled_before_first_request(self, fake_invoker):
        invoker = fake_invoker([{"query": {}}])
        event = threading.Event()
        event.set()

        with pytest.raises(QueryCancelledError):
            list(iter_query_pages(invoker, {"action": "query"}, cancel_event=event))

        assert invoker.calls == []

    def test_cancelled_between_requests(self, fake_invoker):
        invoker = fake_invoker(
            [
                {"continue": {"apcontinue": "B"}, "query": {"allpages": [{"title": "A"}]}},
                {"query": {"allpages": [{"title": "B"}]}},
            ]
        )
        event = threading.Event()
        fragments = iter_query_pages(invoker, {"action": "query"}, cancel_event=event)

        first = next(fragments)
        event.set()
        with pytest.raises(QueryCancelledError):
            next(fragments)

        assert first["allpages"] == [{"title": "A"}]
        assert len(invoker.calls) == 1


class TestIterPageFragments:
    """Test both shapes of the pages node."""

    def test_keyed_pages(self):
        node = {"pages": {"1": _page(1, "A"), "2": _page(2, "B")}}
        assert [p["title"] for p in iter_page_fragments(node)] == ["A", "B"]

    def test_list_pages(self):
        node = {"pages": [_page(1, "A"), _page(2, "B")]}
        assert [p["title"] for p in iter_page_fragments(node)] == ["A", "B"]

    def test_no_pages(self):
        assert list(iter_page_fragments({"allpages": []})) == []


class TestMergeQueryFragments:
    """Test merging of partial fragments of one request."""

    def test_pages_merged_and_revisions_concatenated(self):
        first = {
            "normalized": [{"from": "a", "to": "A"}],
            "pages": {"1": {**_page(1, "A"), "revisions": [{"revid": 10}]}},
        }
        second = {
            "normalized": [{"from": "a", "to": "A"}],
            "pages": {
                "1": {**_page(1, "A"), "revisions": [{"revid": 11}]},
                "2": _page(2, "B"),
            },
        }

        merged = merge_query_fragments([first, second])

        assert merged["normalized"] == [{"from": "a", "to": "A"}]
        assert [r["revid"] for r in merged["pages"]["1"]["revisions"]] == [10, 11]
        assert merged["pages"]["2"]["title"] == "B"

    def test_list_shaped_pages_are_keyed(self):
        merged = merge_query_fragments(
            [
                {"pages": [_page(1, "A"), {"ns": 0, "title": "Gone", "missing": True}]},
                {"pages": [{**_page(1, "A"), "categoryinfo": {"size": 3}}]},
            ]
        )

        assert merged["pages"]["1"]["categoryinfo"] == {"size": 3}
        assert merged["pages"]["title:Gone"]["missing"] is True

    def test_redirects_concatenated(self):
        merged = merge_query_fragments(
            [
                {"redirects": [{"from": "A", "to": "B"}]},
                {"redirects": [{"from": "B", "to": "C"}, {"from": "A", "to": "B"}]},
            ]
        )

        assert merged["redirects"] == [{"from": "A", "to": "B"}, {"from": "B", "to": "C"}]

    def test_does_not_mutate_inputs(self):
        first = {"pages": {"1": {**_page(1, "A"), "revisions": [{"revid": 10}]}}}
        second = {"pages": {"1": {"revisions": [{"revid": 11}]}}}

        merge_query_fragments([first, second])

        assert first["pages"]["1"]["revisions"] == [{"revid": 10}]
