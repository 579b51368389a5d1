#!/usr/bin/env python3
"""
COR-SAFE — Single-Command Test Runner
======================================
Run:  python run_tests.py
      python run_tests.py --html       (with HTML report)
      python run_tests.py --quick      (engine tests only, skip API tests)
      python run_tests.py --verbose    (verbose output)
"""

import os
import sys
import subprocess
import datetime

ROOT_DIR = os.path.dirname(os.path.abspath(__file__))
ARTIFACTS_DIR = os.path.join(ROOT_DIR, "test_artifacts")

ENGINE_TESTS = [
    "tests/test_storage.py",
    "tests/test_config.py",
    "tests/test_eventstream.py",
    "tests/test_templates.py",
    "tests/test_checklist.py",
    "tests/test_inspections.py",
    "tests/test_findings.py",
    "tests/test_metrics.py",
]
API_TESTS = [
    "tests/test_api.py",
]


def main():
    args = sys.argv[1:]
    quick = "--quick" in args
    html = "--html" in args
    verbose = "--verbose" in args or "-v" in args

    cmd = [sys.executable, "-m", "pytest"]
    cmd.extend(ENGINE_TESTS)
    if not quick:
        cmd.extend(API_TESTS)

    cmd.append("-v" if verbose else "-q")
    cmd.append("--tb=short")

    if html:
        ts = datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
        report_dir = os.path.join(ARTIFACTS_DIR, ts)
        os.makedirs(report_dir, exist_ok=True)
        report_path = os.path.join(report_dir, "test_report.html")
        cmd.extend(["--html", report_path, "--self-contained-html"])
        print(f"[COR-SAFE] HTML report will be saved to: {report_path}")

    print(f"[COR-SAFE] Running: {' '.join(cmd)}")
    print(f"[COR-SAFE] {'Quick mode (engine only)' if quick else 'Full suite (engine + API)'}")
    print()

    result = subprocess.run(cmd, cwd=ROOT_DIR)

    if html and result.returncode == 0:
        print(f"\n[COR-SAFE] HTML report: {report_path}")

    return result.returncode


if __name__ == "__main__":
    sys.exit(main())
