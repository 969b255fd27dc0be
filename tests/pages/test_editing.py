"""Tests for edit, move, delete and purge."""

from datetime import datetime, timezone

import pytest

from wikiclient.errors import ConfigurationError, ErrorKind, OperationFailedError
from wikiclient.pages.editing import (
    PageMoveOptions,
    WatchBehavior,
    delete_page,
    edit_page,
    move_page,
    purge_pages,
)
from wikiclient.pages.models import Revision, WikiPage


class TestEditPage:
    """Test edit_page()."""

    def test_successful_edit(self, fake_site):
        site = fake_site(
            [
                {
                    "edit": {
                        "result": "Success",
                        "pageid": 12,
                        "title": "Sandbox",
                        "contentmodel": "wikitext",
                        "oldrevid": 100,
                        "newrevid": 101,
                    }
                }
            ],
            maxlag=5,
        )
        page = WikiPage(title="Sandbox")
        page.last_revision = Revision(id=100, timestamp=datetime(2024, 1, 2, tzinfo=timezone.utc))

        changed = edit_page(site, page, "Hello", "test edit", minor=True)

        assert changed is True
        assert page.last_revision_id == 101
        assert page.id == 12
        assert page.content == "Hello"
        assert page.exists
        wire = site.calls[0]
        assert wire["action"] == "edit"
        assert wire["title"] == "Sandbox"
        assert wire["minor"] == ""
        assert "bot" not in wire
        assert wire["basetimestamp"] == "2024-01-02T00:00:00Z"
        assert wire["watchlist"] == "preferences"
        assert wire["maxlag"] == "5"
        assert wire["token"] == "abc+\\"
        assert list(wire)[-1] == "token"

    def test_null_edit_returns_false(self, fake_site):
        site = fake_site(
            [{"edit": {"result": "Success", "pageid": 12, "title": "Sandbox", "nochange": ""}}]
        )
        page = WikiPage(title="Sandbox", last_revision_id=100)

        assert edit_page(site, page, "same", watch=WatchBehavior.NONE) is False
        assert page.last_revision_id == 100
        assert site.calls[0]["watchlist"] == "nochange"

    def test_edit_by_page_id(self, fake_site):
        site = fake_site([{"edit": {"result": "Success", "pageid": 7, "title": "T", "newrevid": 2}}])

        edit_page(site, WikiPage(id=7), "text")

        assert site.calls[0]["pageid"] == "7"
        assert "title" not in site.calls[0]

    def test_conflict(self, fake_site):
        site = fake_site([OperationFailedError("editconflict", "Edit conflict.")])

        with pytest.raises(OperationFailedError) as exc_info:
            edit_page(site, WikiPage(title="A"), "text")

        assert exc_info.value.kind is ErrorKind.CONFLICT

    def test_protected_page_is_unauthorized(self, fake_site):
        site = fake_site([OperationFailedError("protectedpage", "This page has been protected.")])

        with pytest.raises(OperationFailedError) as exc_info:
            edit_page(site, WikiPage(title="A"), "text")

        assert exc_info.value.kind is ErrorKind.UNAUTHORIZED
        assert exc_info.value.code == "protectedpage"

    def test_page_cannot_exist(self, fake_site):
        site = fake_site([OperationFailedError("pagecannotexist", "Namespace doesn't allow actual pages.")])

        with pytest.raises(ConfigurationError):
            edit_page(site, WikiPage(title="Special:X"), "text")

    def test_bad_token_invalidates_cache(self, fake_site):
        site = fake_site([OperationFailedError("badtoken", "Invalid CSRF token.")])

        with pytest.raises(OperationFailedError) as exc_info:
            edit_page(site, WikiPage(title="A"), "text")

        assert exc_info.value.kind is ErrorKind.BAD_TOKEN
        assert site.invalidated == ["csrf"]

    def test_failure_result_without_error_node(self, fake_site):
        site = fake_site([{"edit": {"result": "Failure", "info": "Captcha required"}}])

        with pytest.raises(OperationFailedError, match="Failure"):
            edit_page(site, WikiPage(title="A"), "text")


class TestMovePage:
    """Test move_page()."""

    def test_move(self, fake_site):
        site = fake_site([{"move": {"from": "Old", "to": "New", "reason": "rename"}}])
        page = WikiPage(title="Old", id=3)

        move_page(site, page, "New", "rename", options=PageMoveOptions.NO_REDIRECT)

        assert page.title == "New"
        wire = site.calls[0]
        assert wire["from"] == "Old"
        assert wire["to"] == "New"
        assert wire["movetalk"] == ""
        assert wire["noredirect"] == ""
        assert "movesubpages" not in wire

    def test_leave_talk(self, fake_site):
        site = fake_site([{"move": {"from": "Old", "to": "New"}}])

        move_page(site, WikiPage(title="Old"), "New", options=PageMoveOptions.LEAVE_TALK)

        assert "movetalk" not in site.calls[0]

    def test_same_title_is_noop(self, fake_site):
        site = fake_site()

        move_page(site, WikiPage(title="Same"), "Same")

        assert site.calls == []

    def test_cantmove_codes_are_unauthorized(self, fake_site):
        site = fake_site([OperationFailedError("cantmove-titleprotected", "protected")])

        with pytest.raises(OperationFailedError) as exc_info:
            move_page(site, WikiPage(title="Old"), "New")

        assert exc_info.value.kind is ErrorKind.UNAUTHORIZED


class TestDeletePage:
    """Test delete_page()."""

    def test_delete(self, fake_site):
        site = fake_site([{"delete": {"title": "Junk", "reason": "spam", "logid": 1}}])
        page = WikiPage(title="Junk", id=9, exists=True, last_revision_id=5, content="x")

        assert delete_page(site, page, "spam") is True
        assert page.exists is False
        assert page.id == 0
        assert page.last_revision_id == 0
        assert page.content is None

    @pytest.mark.parametrize("code", ["missingtitle", "cantdelete"])
    def test_already_gone(self, fake_site, code):
        site = fake_site([OperationFailedError(code, "gone")])

        assert delete_page(site, WikiPage(title="Junk"), "spam") is False

    def test_permission_denied(self, fake_site):
        site = fake_site([OperationFailedError("permissiondenied", "no")])

        with pytest.raises(OperationFailedError) as exc_info:
            delete_page(site, WikiPage(title="Junk"))

        assert exc_info.value.kind is ErrorKind.UNAUTHORIZED


class TestPurgePages:
    """Test purge_pages()."""

    def test_reports_missing_and_invalid(self, fake_site):
        site = fake_site(
            [
                {
                    "normalized": [{"from": "cat", "to": "Cat"}],
                    "purge": [
                        {"ns": 0, "title": "Cat", "purged": ""},
                        {"ns": 0, "title": "Nope", "missing": ""},
                        {"title": "A|B", "invalid": "", "invalidreason": "bad char"},
                    ],
                }
            ]
        )
        pages = [WikiPage(title="cat"), WikiPage(title="Nope"), WikiPage(title="A|B")]

        failures = purge_pages(site, pages, force_link_update=True)

        assert [f.page.title for f in failures] == ["Nope", "A|B"]
        assert failures[1].reason == "bad char"
        assert site.calls[0]["action"] == "purge"
        assert site.calls[0]["forcelinkupdate"] == ""
        assert "token" not in site.calls[0]

    def test_partitioned(self, fake_site):
        def purged(wire):
            titles = wire["titles"].lstrip("\x1f").split("|")
            return {"purge": [{"ns": 0, "title": t, "purged": ""} for t in titles]}

        site = fake_site([purged, purged])

        failures = purge_pages(site, [WikiPage(title=f"P{i}") for i in range(60)])

        assert failures == []
        assert len(site.calls) == 2

    def test_cantpurge_is_unauthorized(self, fake_site):
        site = fake_site([OperationFailedError("cantpurge", "no")])

        with pytest.raises(OperationFailedError) as exc_info:
            purge_pages(site, [WikiPage(title="A")])

        assert exc_info.value.kind is ErrorKind.UNAUTHORIZED

    def test_requires_titles(self, fake_site):
        with pytest.raises(ConfigurationError):
            purge_pages(fake_site(), [WikiPage(id=3)])
