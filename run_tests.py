#!/usr/bin/env python3
"""
Test runner script for the Citadel client.

Unit tests run against a mock socket. Integration tests run only when a
server is given, either with --host/--port or the CITADEL_HOST and
CITADEL_PORT environment variables.
"""

import argparse
import os
import subprocess
import sys


def run_command(cmd, env=None, description=""):
    """Run a command and report failure."""
    if description:
        print(f"\n{description}")
        print("=" * len(description))

    print(f"Running: {' '.join(cmd)}")
    result = subprocess.run(cmd, env=env)

    if result.returncode != 0:
        print(f"Command failed with exit code {result.returncode}")
        return False
    return True


def main():
    """Main test runner function."""
    parser = argparse.ArgumentParser(description="Citadel client test runner")
    parser.add_argument("--unit", action="store_true", help="Run only mock-socket tests")
    parser.add_argument("--integration", action="store_true", help="Run only live server tests")
    parser.add_argument("--host", help="Citadel server for integration tests")
    parser.add_argument("--port", type=int, help="Citadel server port for integration tests")
    parser.add_argument("--coverage", action="store_true", help="Generate coverage report")
    parser.add_argument("--html", action="store_true", help="Generate HTML coverage report")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    parser.add_argument("--file", "-f", help="Run specific test file")
    parser.add_argument("--test", "-t", help="Run tests matching this expression")

    args = parser.parse_args()

    cmd = [sys.executable, "-m", "pytest"]
    env = dict(os.environ)

    if args.verbose:
        cmd.append("-vv")

    if args.host:
        env["CITADEL_HOST"] = args.host
    if args.port:
        env["CITADEL_PORT"] = str(args.port)

    if args.unit:
        cmd.extend(["--ignore", "tests/test_integration.py"])
    elif args.integration:
        cmd.append("tests/test_integration.py")
    elif args.file:
        cmd.append(f"tests/{args.file}")

    if args.test:
        cmd.extend(["-k", args.test])

    if args.coverage or args.html:
        cmd.extend(["--cov=src", "--cov-report=term-missing"])
        if args.html:
            cmd.append("--cov-report=html:htmlcov")

    if run_command(cmd, env=env, description="Running Citadel client tests"):
        print("\nAll tests passed!")
        if args.html:
            print("HTML coverage report: htmlcov/index.html")
        return 0

    print("\nSome tests failed!")
    return 1


if __name__ == "__main__":
    sys.exit(main())
