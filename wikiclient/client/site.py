"""A MediaWiki site: account state, tokens and request entry point."""

import logging
import threading
import time
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

from ..config import WikiClientSettings
from ..errors import ErrorKind, OperationFailedError, UnexpectedDataError
from ..query import paging
from .transport import MediaWikiTransport

logger = logging.getLogger(__name__)

HIGH_LIMITS_RIGHT = "apihighlimits"


@dataclass
class AccountInfo:
    """The current user as reported by ``meta=userinfo``."""

    user_id: int = 0
    name: str | None = None
    is_anonymous: bool = True
    rights: set[str] = field(default_factory=set)
    groups: list[str] = field(default_factory=list)


class WikiSite:
    """Entry point for talking to one wiki.

    Args:
        transport: Anything with ``invoke(parameters) -> dict``
        settings: Client settings (defaults are used when omitted)

    Example:
        >>> site = WikiSite.from_settings(WikiClientSettings())
        >>> site.login("Bot", "secret")
        >>> site.has_high_limits
        False
    """

    def __init__(self, transport: MediaWikiTransport, settings: WikiClientSettings | None = None):
        self.transport = transport
        self.settings = settings or WikiClientSettings()
        self.account_info: AccountInfo | None = None
        self._tokens: dict[str, str] = {}

    @classmethod
    def from_settings(cls, settings: WikiClientSettings) -> "WikiSite":
        return cls(MediaWikiTransport.from_settings(settings), settings)

    @property
    def maxlag(self) -> int | None:
        return self.settings.maxlag

    def invoke(self, parameters: Mapping[str, Any]) -> dict:
        return self.transport.invoke(parameters)

    def iter_query_pages(
        self,
        parameters: Mapping[str, Any],
        *,
        distinct_pages: bool = False,
        cancel_event: threading.Event | None = None,
    ) -> Iterator[dict]:
        """Run a paginated query against this site. See ``iter_query_pages``."""
        return paging.iter_query_pages(
            self, parameters, distinct_pages=distinct_pages, cancel_event=cancel_event
        )

    def refresh_account_info(self) -> AccountInfo:
        response = self.invoke(
            {"action": "query", "meta": "userinfo", "uiprop": ["rights", "groups"]}
        )
        node = (response.get("query") or {}).get("userinfo")
        if node is None:
            raise UnexpectedDataError("Response to meta=userinfo has no userinfo node")
        self.account_info = AccountInfo(
            user_id=int(node.get("id", 0)),
            name=node.get("name"),
            is_anonymous="anon" in node and node["anon"] is not False,
            rights=set(node.get("rights") or []),
            groups=list(node.get("groups") or []),
        )
        logger.debug(f"Account: {self.account_info.name}, {len(self.account_info.rights)} rights")
        return self.account_info

    def has_right(self, right: str) -> bool:
        if self.account_info is None:
            self.refresh_account_info()
        return right in self.account_info.rights

    @property
    def has_high_limits(self) -> bool:
        """Whether the account may use the larger batch sizes."""
        return self.has_right(HIGH_LIMITS_RIGHT)

    def get_token(self, kind: str = "csrf") -> str:
        """Return a token of the given type, fetching it once per session."""
        if kind in self._tokens:
            return self._tokens[kind]

        response = self.invoke({"action": "query", "meta": "tokens", "type": kind})
        tokens = (response.get("query") or {}).get("tokens") or {}
        token = tokens.get(f"{kind}token")
        if not token:
            raise UnexpectedDataError(f"Server did not return a {kind} token")
        self._tokens[kind] = token
        return token

    def invalidate_token(self, kind: str | None = None) -> None:
        """Drop one cached token, or all of them."""
        if kind is None:
            self._tokens.clear()
        else:
            self._tokens.pop(kind, None)

    def login(self, username: str, password: str, domain: str | None = None) -> None:
        """Log in with a bot password or account credentials.

        A throttled login is retried after the delay the server asks for, up
        to ``settings.login_throttle_retries`` times.

        Raises:
            OperationFailedError: RATE_LIMITED if still throttled, UNAUTHORIZED otherwise
        """
        retries = self.settings.login_throttle_retries
        for attempt in range(retries + 1):
            # Login tokens are single use.
            self.invalidate_token("login")
            response = self.invoke(
                {
                    "action": "login",
                    "lgname": username,
                    "lgpassword": password,
                    "lgdomain": domain,
                    "lgtoken": self.get_token("login"),
                }
            )
            node = response.get("login") or {}
            result = node.get("result")

            if result == "Success":
                logger.info(f"Logged in as {node.get('lgusername', username)}")
                self.invalidate_token()
                self.refresh_account_info()
                return

            reason = node.get("reason")
            if isinstance(reason, Mapping):
                reason = reason.get("text") or reason.get("code")

            if result == "Throttled":
                wait = int(node.get("wait", 5))
                if attempt < retries:
                    logger.warning(f"Login throttled, retrying in {wait}s ({attempt + 1}/{retries})")
                    time.sleep(wait)
                    continue
                raise OperationFailedError(
                    "throttled", reason or f"Login throttled, wait {wait}s", ErrorKind.RATE_LIMITED
                )

            raise OperationFailedError((result or "failed").lower(), reason, ErrorKind.UNAUTHORIZED)

    def logout(self) -> None:
        self.invoke({"action": "logout", "token": self.get_token("csrf")})
        self.invalidate_token()
        self.account_info = None
        logger.info("Logged out")
