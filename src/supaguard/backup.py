#!/usr/bin/env python3
"""
Command-line SQL backup of one project, without the web dashboard.

Usage:
    python -m supaguard.backup --project REF [--kind full|data|structure] [--output PATH]

The token comes from --token, the SUPAGUARD_TOKEN variable or the session saved
by the dashboard. The dump is streamed to ``<output>.partial`` and renamed when
complete.
"""

import argparse
import logging
import os
import sys
from pathlib import Path

from .config import Settings
from .export import ExportCancelled, ExportKind, ExportProgress, export_to_path
from .session import Dashboard, SessionError

logger = logging.getLogger("supaguard.backup")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Write a SQL backup of a project to disk")
    parser.add_argument("--project", required=True, help="Project reference (id)")
    parser.add_argument(
        "--kind",
        choices=[kind.value for kind in ExportKind],
        default=ExportKind.FULL.value,
        help="What to export (default: %(default)s)",
    )
    parser.add_argument("--output", type=Path, help="Target file (default: generated name)")
    parser.add_argument("--token", default=os.getenv("SUPAGUARD_TOKEN"), help="Access token")
    parser.add_argument("--proxy", default=None, help="Forwarding proxy prefix")
    return parser.parse_args()


def _print_progress(progress: ExportProgress) -> None:
    if progress.active:
        print(f"[{progress.percent:3d}%] {progress.stage}")


def main() -> int:
    args = parse_args()
    dashboard = Dashboard(Settings.from_env())
    try:
        if args.token:
            state = dashboard.sign_in(args.token, args.proxy, persist=False)
        else:
            state = dashboard.restore()
        if not state.authenticated:
            print("No access token: pass --token or sign in through the dashboard first.")
            return 2
        if state.error:
            print(f"Error: {state.error}")
            return 1

        state = dashboard.select_project(args.project)
        if state.error:
            print(f"Error: {state.error}")
            return 1

        kind = ExportKind(args.kind)
        exporter, chunks = dashboard.start_export(kind)
        exporter.on_progress = _print_progress
        target = args.output or Path(exporter.filename(kind))
        try:
            export_to_path(chunks, target)
        except ExportCancelled as exc:
            print(f"Cancelled: {exc}")
            return 1

        print(f"Backup written to {target}")
        for result in exporter.manifest:
            print(f"  {result.describe()}")
        return 0
    except KeyError as exc:
        print(f"Error: {exc.args[0]}")
        return 1
    except SessionError as exc:
        print(f"Error: {exc}")
        return 1
    finally:
        dashboard.close()


if __name__ == "__main__":
    sys.exit(main())
