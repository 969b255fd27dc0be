"""
wikiclient CLI - Inspect pages and lists on a MediaWiki site.

Usage:
    wikiclient info "Main Page" "Cat" [--content] [--redirects]
        Shows identity, existence, redirect path and last revision of pages.

    wikiclient list allpages [--prefix Py] [--namespace 0] [--limit 50]
        Lists page titles in title order.

    wikiclient list categorymembers --category "Category:Cats" [--limit 50]
        Lists the members of a category.

Common options:
    --api URL        api.php endpoint (default: English Wikipedia)
    --config FILE    YAML settings file
    -v, --verbose    Debug logging
"""

import argparse
import sys
from itertools import islice

from .client.site import WikiSite
from .config import load_settings
from .errors import WikiClientError
from .generators import AllPagesGenerator, CategoryMembersGenerator
from .pages import PageQueryOptions, WikiPage, refresh_pages
from .utils import get_logger, setup_logging

logger = get_logger("cli")


def _make_site(args: argparse.Namespace) -> WikiSite:
    settings = load_settings(args.config, api_url=args.api)
    setup_logging(settings, level="DEBUG" if args.verbose else None)
    logger.debug(f"Using API endpoint {settings.api_url}")
    return WikiSite.from_settings(settings)


def cmd_info(args: argparse.Namespace) -> None:
    """Execute the 'info' subcommand: refresh and describe pages."""
    site = _make_site(args)
    options = PageQueryOptions.NONE
    if args.content:
        options |= PageQueryOptions.FETCH_CONTENT
    if args.redirects:
        options |= PageQueryOptions.RESOLVE_REDIRECTS

    pages = [WikiPage(title=title) for title in args.titles]
    refresh_pages(site, pages, options)

    for page in pages:
        print(f"{page.title}")
        print(f"{'=' * 50}")
        print(f"  Page id:        {page.id:>10}")
        print(f"  Namespace:      {page.namespace_id!s:>10}")
        print(f"  Exists:         {page.exists!s:>10}")
        if page.redirect_path:
            print(f"  Redirected via: {' -> '.join(page.redirect_path)}")
        if page.last_revision:
            revision = page.last_revision
            print(f"  Last revision:  {revision.id:>10} by {revision.user} at {revision.timestamp}")
        if args.content and page.content is not None:
            print()
            print(page.content)
        print()


def cmd_list(args: argparse.Namespace) -> None:
    """Execute the 'list' subcommand: print titles from a list module."""
    site = _make_site(args)
    if args.module == "categorymembers":
        if not args.category:
            print("Error: --category is required for categorymembers", file=sys.stderr)
            sys.exit(1)
        source = CategoryMembersGenerator(site, args.category)
    else:
        source = AllPagesGenerator(site, prefix=args.prefix, namespace_id=args.namespace)

    if args.limit:
        source.pagination_size = min(args.limit, 500)
        items = islice(source.iter_items(), args.limit)
    else:
        items = source.iter_items()

    count = 0
    for item in items:
        print(item.get("title"))
        count += 1
    logger.info(f"Listed {count} item(s) from {args.module}")


def _add_common_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--api", type=str, default=None, help="URL of api.php")
    parser.add_argument("--config", type=str, default=None, help="Path to YAML settings file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="wikiclient",
        description="wikiclient - MediaWiki Action API client",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # 'info' subcommand
    info_parser = subparsers.add_parser("info", help="Show page information")
    info_parser.add_argument("titles", nargs="+", help="Page titles")
    info_parser.add_argument("--content", action="store_true", help="Fetch and print content")
    info_parser.add_argument("--redirects", action="store_true", help="Follow redirects")
    _add_common_options(info_parser)
    info_parser.set_defaults(func=cmd_info)

    # 'list' subcommand
    list_parser = subparsers.add_parser("list", help="List page titles")
    list_parser.add_argument("module", choices=["allpages", "categorymembers"])
    list_parser.add_argument("--category", type=str, help="Category title (categorymembers)")
    list_parser.add_argument("--prefix", type=str, help="Title prefix (allpages)")
    list_parser.add_argument("--namespace", type=int, default=0, help="Namespace id (allpages)")
    list_parser.add_argument("--limit", type=int, default=None, help="Maximum number of titles")
    _add_common_options(list_parser)
    list_parser.set_defaults(func=cmd_list)

    args = parser.parse_args(argv)

    try:
        args.func(args)
    except WikiClientError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
