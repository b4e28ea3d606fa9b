# tests/run_tests.py
"""
Test runner for py2lirc unit tests.

Runs the suite with unittest for environments without pytest:
    python tests/run_tests.py            # all tests
    python tests/run_tests.py protocol   # tests/test_protocol.py only
"""
import unittest
import sys
from pathlib import Path

tests_dir = Path(__file__).parent
sys.path.insert(0, str(tests_dir.parent / 'src'))
sys.path.insert(0, str(tests_dir))  # mock_lircd_server


def run_all_tests():
    """Run all unit tests and return whether they passed."""
    loader = unittest.TestLoader()
    suite = loader.discover(str(tests_dir), pattern='test_*.py')

    runner = unittest.TextTestRunner(verbosity=2)
    return runner.run(suite).wasSuccessful()


def run_specific_test(test_module):
    """Run a specific test module."""
    loader = unittest.TestLoader()
    suite = loader.loadTestsFromName(test_module)

    runner = unittest.TextTestRunner(verbosity=2)
    return runner.run(suite).wasSuccessful()


if __name__ == '__main__':
    print("=" * 70)
    print("py2lirc Unit Test Suite")
    print("=" * 70)

    if len(sys.argv) > 1:
        test_name = sys.argv[1]
        print(f"\nRunning specific test: {test_name}")
        success = run_specific_test(f'test_{test_name}')
    else:
        print("\nRunning all tests...")
        success = run_all_tests()

    print("\n" + "=" * 70)
    if success:
        print("All tests passed!")
        sys.exit(0)
    else:
        print("Some tests failed!")
        sys.exit(1)
