"""HTTP transport and site session."""

from .site import AccountInfo, WikiSite
from .transport import MediaWikiTransport

__all__ = ["AccountInfo", "MediaWikiTransport", "WikiSite"]
