#!/usr/bin/env python3
"""
Test runner for the jj VCS core.

Wraps the pytest invocations used during development: unit tests, tests that
spawn real processes, timeout tests and coverage reporting.
"""

import argparse
import shutil
import subprocess
import sys
from pathlib import Path
from typing import List


class TestRunner:
    """Manages test execution with various configurations."""

    def __init__(self, project_root: Path):
        self.project_root = project_root

    def run_command(self, command: List[str], description: str) -> bool:
        """Run a command and return success status."""
        print(f"\n🧪 {description}...")
        print(f"Running: {' '.join(command)}")

        try:
            result = subprocess.run(command, cwd=self.project_root, check=False)
        except FileNotFoundError:
            print(f"❌ {description} failed - pytest not found")
            return False

        if result.returncode == 0:
            print(f"✅ {description} completed successfully")
            return True

        print(f"❌ {description} failed with exit code {result.returncode}")
        return False

    def run_marked_tests(self, marker: str, description: str, verbose: bool = False) -> bool:
        """Run tests selected by a marker expression."""
        cmd = ["pytest", "-m", marker]
        if verbose:
            cmd.append("-v")
        return self.run_command(cmd, description)

    def run_coverage_tests(self, min_coverage: int = 85) -> bool:
        """Run tests with coverage reporting."""
        cmd = [
            "pytest",
            "--cov=jj_vcs",
            f"--cov-fail-under={min_coverage}",
            "--cov-report=term-missing",
            "--cov-report=html:htmlcov",
        ]
        return self.run_command(cmd, f"Coverage tests (min {min_coverage}%)")

    def run_specific_test(self, test_path: str, verbose: bool = False) -> bool:
        """Run a specific test file or test function."""
        cmd = ["pytest", test_path]
        if verbose:
            cmd.append("-v")
        return self.run_command(cmd, f"Specific test: {test_path}")

    def run_failed_tests(self, verbose: bool = False) -> bool:
        """Re-run only failed tests from last run."""
        cmd = ["pytest", "--lf"]
        if verbose:
            cmd.append("-v")
        return self.run_command(cmd, "Failed tests from last run")

    def run_all_tests(self, verbose: bool = False) -> bool:
        """Run the whole suite."""
        cmd = ["pytest"]
        if verbose:
            cmd.append("-v")
        return self.run_command(cmd, "All tests")

    def clean_test_artifacts(self) -> None:
        """Clean up test artifacts and cache files."""
        print("\n🧹 Cleaning test artifacts...")

        for artifact in [".pytest_cache", ".coverage", "htmlcov"]:
            artifact_path = self.project_root / artifact
            if not artifact_path.exists():
                continue
            if artifact_path.is_dir():
                shutil.rmtree(artifact_path)
            else:
                artifact_path.unlink()
            print(f"  Removed: {artifact}")

        for pycache in self.project_root.rglob("__pycache__"):
            if pycache.is_dir():
                shutil.rmtree(pycache)
                print(f"  Removed: {pycache}")

        print("✅ Test artifacts cleaned")


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Run tests with various configurations"
    )

    parser.add_argument("--unit", action="store_true", help="Run unit tests only")
    parser.add_argument(
        "--integration",
        action="store_true",
        help="Run tests that spawn real processes",
    )
    parser.add_argument("--fast", action="store_true", help="Skip timeout tests")
    parser.add_argument("--slow", action="store_true", help="Run timeout tests only")
    parser.add_argument(
        "--failed", action="store_true", help="Re-run failed tests from last run"
    )
    parser.add_argument(
        "--coverage", action="store_true", help="Run with coverage reporting"
    )
    parser.add_argument(
        "--min-coverage", type=int, default=85, help="Minimum coverage percentage"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    parser.add_argument("--clean", action="store_true", help="Clean test artifacts")
    parser.add_argument("--test", type=str, help="Run specific test file or function")
    parser.add_argument(
        "--project-root",
        type=Path,
        default=Path(__file__).resolve().parent.parent,
        help="Project root directory",
    )

    args = parser.parse_args()

    runner = TestRunner(args.project_root)

    if args.clean:
        runner.clean_test_artifacts()
        return

    if args.test:
        success = runner.run_specific_test(args.test, args.verbose)
    elif args.unit:
        success = runner.run_marked_tests("unit", "Unit tests", args.verbose)
    elif args.integration:
        success = runner.run_marked_tests("integration", "Integration tests", args.verbose)
    elif args.fast:
        success = runner.run_marked_tests("not slow", "Fast tests", args.verbose)
    elif args.slow:
        success = runner.run_marked_tests("slow", "Slow tests", args.verbose)
    elif args.failed:
        success = runner.run_failed_tests(args.verbose)
    elif args.coverage:
        success = runner.run_coverage_tests(args.min_coverage)
    else:
        success = runner.run_all_tests(args.verbose)

    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
