#!/usr/bin/env python3
"""
Simple CLI entry point for the SupaGuard web dashboard.

Usage:
    python -m supaguard.web [options]

Options:
    --host HOST          Host to bind to (default: 127.0.0.1)
    --port PORT          Port to listen on (default: 8000)
    --api-base URL       Management API base URL
    --proxy URL          Default forwarding proxy prefix
    --row-limit N        Rows read per table during data export (default: 5000)
    --state-file PATH    Where the token and proxy are persisted
    --read-only          Refuse mutating SQL from the console
    --reload             Enable auto-reload (for development)
    --help               Show this help message

Examples:
    python -m supaguard.web
    python -m supaguard.web --port 9000 --proxy https://proxy.internal/
    python -m supaguard.web --read-only --row-limit 1000
"""

import argparse
import os
from dataclasses import replace
from pathlib import Path

import uvicorn

from .api.app import create_app
from .config import Settings, _env_bool
from .session import Dashboard


def parse_args(settings: Settings) -> argparse.Namespace:
    """Parse command line arguments; defaults come from the environment."""
    parser = argparse.ArgumentParser(
        description="SupaGuard - browse, query and back up hosted Postgres projects",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s
  %(prog)s --port 9000 --proxy https://proxy.internal/
  %(prog)s --read-only --row-limit 1000
        """,
    )

    # Web server options
    parser.add_argument(
        "--host",
        default=os.getenv("HOST", "127.0.0.1"),
        help="Host to bind to (default: %(default)s)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.getenv("PORT", "8000")),
        help="Port to listen on (default: %(default)s)",
    )

    # Management API options
    parser.add_argument(
        "--api-base",
        default=settings.api_base_url,
        help="Management API base URL (default: %(default)s)",
    )
    parser.add_argument(
        "--proxy",
        default=settings.default_proxy,
        help="Default forwarding proxy prefix (default: none)",
    )
    parser.add_argument(
        "--row-limit",
        type=int,
        default=settings.row_limit,
        help="Rows read per table during data export (default: %(default)s)",
    )
    parser.add_argument(
        "--state-file",
        type=Path,
        default=settings.state_file,
        help="Where the token and proxy are persisted (default: %(default)s)",
    )
    parser.add_argument(
        "--read-only",
        action="store_true",
        default=settings.read_only,
        help="Refuse mutating SQL from the console (default: %(default)s)",
    )

    # Development options
    parser.add_argument(
        "--reload",
        action="store_true",
        default=_env_bool("RELOAD", False),
        help="Enable auto-reload for development (default: %(default)s)",
    )

    return parser.parse_args()


def main() -> None:
    """Main entry point."""
    settings = Settings.from_env()
    args = parse_args(settings)
    settings = replace(
        settings,
        api_base_url=args.api_base,
        default_proxy=args.proxy,
        row_limit=args.row_limit,
        state_file=args.state_file,
        read_only=args.read_only,
    )

    display_host = "127.0.0.1" if args.host == "0.0.0.0" else args.host
    print("Starting SupaGuard dashboard")
    print(f"   Web UI:   http://{display_host}:{args.port}/ui")
    print(f"   API Docs: http://{display_host}:{args.port}/docs")
    print(f"   API:      {settings.default_proxy}{settings.api_base_url}")
    if settings.read_only:
        print("   Read-only console: yes")
    print()

    if args.reload:
        # Reload needs an import string; the module-level app reads the environment.
        uvicorn.run("supaguard.api.main:app", host=args.host, port=args.port, reload=True)
        return

    app = create_app(Dashboard(settings), restore_session=True)
    uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
