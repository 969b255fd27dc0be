"""Shared fixtures for wikiclient tests."""

import copy

import pytest

from wikiclient.query.params import QueryParameters


class FakeInvoker:
    """Replays canned API responses and records the wire parameters sent.

    Each response is either a dict, an exception instance to raise, or a
    callable taking the wire parameters. Calls beyond ``max_calls`` fail so a
    looping driver cannot hang the suite.
    """

    def __init__(self, responses=None, max_calls: int = 20):
        self.responses = list(responses or [])
        self.calls: list[dict[str, str]] = []
        self.max_calls = max_calls

    def invoke(self, parameters):
        if len(self.calls) >= self.max_calls:
            raise AssertionError(f"More than {self.max_calls} requests were made")
        if not isinstance(parameters, QueryParameters):
            parameters = QueryParameters(parameters)
        wire = parameters.to_wire()
        self.calls.append(wire)
        if not self.responses:
            raise AssertionError(f"Unexpected request: {wire}")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        if callable(response):
            response = response(wire)
        return copy.deepcopy(response)


class FakeSite(FakeInvoker):
    """FakeInvoker with the site attributes used by page queries and edits."""

    def __init__(
        self,
        responses=None,
        high_limits: bool = False,
        maxlag: int | None = None,
        token: str = "abc+\\",
        max_calls: int = 20,
    ):
        super().__init__(responses, max_calls)
        self.has_high_limits = high_limits
        self.maxlag = maxlag
        self.token = token
        self.invalidated: list[str | None] = []

    def get_token(self, kind: str = "csrf") -> str:
        return self.token

    def invalidate_token(self, kind: str | None = None) -> None:
        self.invalidated.append(kind)


@pytest.fixture
def fake_invoker():
    """Factory for FakeInvoker instances."""
    return FakeInvoker


@pytest.fixture
def fake_site():
    """Factory for FakeSite instances."""
    return FakeSite
