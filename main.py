#!/usr/bin/env python3
"""
Social Feed API - unified feeds from Twitter, TikTok, YouTube and Instagram.

Command-line entry point:
  - serve: run the HTTP API
  - fetch: resolve one feed page and print it as JSON

Usage:
    python main.py serve                       # Run the API on PORT (4000)
    python main.py serve --port 8080 --debug   # Custom port, debug mode
    python main.py fetch tiktok someuser       # Print page 1 of a TikTok feed
    python main.py --show-config               # Show configuration and exit

Examples:
    # Local development
    python main.py serve --debug

    # Check which sources answer for a handle
    python main.py fetch twitter @jack --count 20 --per-page 5 -v
"""

import argparse
import json
import sys

from src.config import PORT, print_config_summary, validate_config
from src.errors import AllSourcesExhausted, FeedError
from src.log import set_verbose
from src.services.platforms import PLATFORMS


def create_parser() -> argparse.ArgumentParser:
    """Create the command-line argument parser."""
    parser = argparse.ArgumentParser(
        prog="social-feed",
        description="Unified, paginated feeds from Twitter, TikTok, YouTube and Instagram.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s serve                              Run the API on the configured port
  %(prog)s serve --port 8080                  Run the API on port 8080
  %(prog)s fetch youtube mkbhd                Print page 1 of a YouTube channel feed
  %(prog)s fetch instagram me --own           Read the access token owner's media
  %(prog)s fetch tiktok someuser --page 2     Print page 2 of a TikTok feed
        """,
    )

    parser.add_argument(
        "--show-config",
        action="store_true",
        help="Show current configuration and exit",
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Show detailed progress and debug info",
    )

    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s 1.0.0",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    serve = subparsers.add_parser("serve", help="Run the HTTP API")
    serve.add_argument(
        "--port", "-p",
        type=int,
        default=PORT,
        help=f"Port to listen on (default: {PORT})",
    )
    serve.add_argument(
        "--host",
        default="127.0.0.1",
        help="Interface to bind (default: 127.0.0.1)",
    )
    serve.add_argument(
        "--debug",
        action="store_true",
        help="Run Flask in debug mode",
    )

    fetch = subparsers.add_parser("fetch", help="Fetch one feed page and print it as JSON")
    fetch.add_argument("platform", choices=sorted(PLATFORMS), help="Platform to fetch from")
    fetch.add_argument("username", help="Handle ('@' optional)")
    fetch.add_argument(
        "--count", "-c",
        type=int,
        default=None,
        metavar="N",
        help="Items to fetch upstream (default: per platform)",
    )
    fetch.add_argument("--page", type=int, default=1, metavar="N", help="Page number (default: 1)")
    fetch.add_argument(
        "--per-page",
        type=int,
        default=10,
        metavar="N",
        help="Items per page (default: 10)",
    )
    fetch.add_argument(
        "--own",
        action="store_true",
        help="Instagram: read the access token owner's media",
    )

    return parser


def show_config() -> None:
    """Display current configuration."""
    print("=" * 60)
    print("Social Feed API Configuration")
    print("=" * 60)
    print_config_summary()

    errors = validate_config()
    if errors:
        print("\nConfiguration warnings:")
        for error in errors:
            print(f"  ⚠️  {error}")
    else:
        print("\n✓ Configuration valid")
    print("=" * 60)


def run_serve(args) -> int:
    from web.app import app

    print("=" * 60)
    print("Social Feed API")
    print("=" * 60)
    print(f"Listening on http://{args.host}:{args.port}")
    print("=" * 60)
    app.run(host=args.host, port=args.port, debug=args.debug, threaded=True)
    return 0


def run_fetch(args) -> int:
    from src.services.platforms import FeedService

    for name in ("count", "page", "per_page"):
        value = getattr(args, name)
        if value is not None and value < 1:
            print(f"❌ Invalid parameter: {name.replace('_', '-')}", file=sys.stderr)
            return 1

    try:
        response = FeedService().fetch_feed(
            args.platform,
            args.username,
            page=args.page,
            per_page=args.per_page,
            count=args.count,
            own=args.own,
        )
    except AllSourcesExhausted as e:
        print(json.dumps(e.to_dict(), indent=2))
        return 1
    except FeedError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1

    print(json.dumps(response.to_dict(), indent=2, ensure_ascii=False))
    return 0


def main(argv: list = None) -> int:
    """
    Main entry point.

    Args:
        argv: Command-line arguments (default: sys.argv[1:]).

    Returns:
        Exit code (0 = success, 1 = error).
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        set_verbose(True)

    if args.show_config:
        show_config()
        return 0

    if args.command == "serve":
        return run_serve(args)
    if args.command == "fetch":
        try:
            return run_fetch(args)
        except KeyboardInterrupt:
            print("\n\nInterrupted by user")
            return 130

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
