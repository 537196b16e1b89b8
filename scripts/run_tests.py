#!/usr/bin/env python3
"""
Test runner script for SupaGuard.
Runs one of the test suites against the in-process fake management API.
"""
import argparse
import subprocess
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent

UNIT_TESTS = [
    "tests/test_sql_utils.py",
    "tests/test_client.py",
    "tests/test_discovery.py",
    "tests/test_export.py",
    "tests/test_config.py",
    "tests/test_insight.py",
]


def run_command(cmd: list[str], description: str) -> int:
    """Run command and return exit code."""
    print(f"🚀 {description}")
    print(f"Running: {' '.join(cmd)}")
    print("-" * 50)

    result = subprocess.run(cmd, cwd=ROOT)

    if result.returncode == 0:
        print(f"✅ {description} - PASSED")
    else:
        print(f"❌ {description} - FAILED")

    return result.returncode


def main():
    parser = argparse.ArgumentParser(description="SupaGuard Test Runner")
    parser.add_argument(
        "suite",
        choices=["unit", "session", "api", "all"],
        help="Test suite to run",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    parser.add_argument("--keyword", "-k", help="Only run tests matching this expression")

    args = parser.parse_args()

    base_cmd = [sys.executable, "-m", "pytest"]
    if args.verbose:
        base_cmd.append("-v")
    if args.keyword:
        base_cmd.extend(["-k", args.keyword])

    test_commands = {
        "unit": {"cmd": base_cmd + UNIT_TESTS, "desc": "Running unit tests"},
        "session": {"cmd": base_cmd + ["tests/test_session.py"], "desc": "Running session tests"},
        "api": {"cmd": base_cmd + ["tests/test_api.py"], "desc": "Running HTTP API tests"},
        "all": {"cmd": base_cmd + ["tests/"], "desc": "Running all tests"},
    }

    suite_config = test_commands[args.suite]
    exit_code = run_command(suite_config["cmd"], suite_config["desc"])

    if exit_code == 0:
        print("\n🎉 All tests passed!")
    else:
        print(f"\n💥 Some tests failed (exit code: {exit_code})")

    return exit_code


if __name__ == "__main__":
    sys.exit(main())
