#!/usr/bin/env python3
"""
Test runner for the mediacache suite.

Usage:
    python3 tests/run_tests.py                   # every test_*.py module
    python3 tests/run_tests.py test_media_cache  # one or more modules
    python3 tests/run_tests.py -q test_cache.TestThumbnailCache
"""
import argparse
import os
import sys
import unittest

TESTS_DIR = os.path.dirname(os.path.abspath(__file__))

# Project root for the packages, tests dir for the shared fakes
sys.path.insert(0, os.path.dirname(TESTS_DIR))
sys.path.insert(0, TESTS_DIR)


def build_suite(names):
    loader = unittest.TestLoader()
    if not names:
        return loader.discover(TESTS_DIR, pattern='test_*.py', top_level_dir=TESTS_DIR)
    return loader.loadTestsFromNames(names)


def main() -> int:
    parser = argparse.ArgumentParser(description='Run the mediacache tests')
    parser.add_argument('names', nargs='*', help='Test modules, classes or methods (default: all)')
    parser.add_argument('-q', '--quiet', action='store_true', help='Only print failures')
    args = parser.parse_args()

    runner = unittest.TextTestRunner(verbosity=1 if args.quiet else 2)
    result = runner.run(build_suite(args.names))
    return 0 if result.wasSuccessful() else 1


if __name__ == '__main__':
    sys.exit(main())
