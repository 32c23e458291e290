import unittest
import sys
import os

# Pfad zum Projektverzeichnis hinzufügen, damit die Module importiert werden können
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from backoff import Backoff, BackoffPolicy, retry_with_backoff


class TestBackoff(unittest.TestCase):
    """Testklasse für die Backoff-Strategie"""

    def test_capped_exponential(self):
        policy = BackoffPolicy(initial=1, cap=30, multiplier=2)
        self.assertEqual([policy.delay(i) for i in range(7)], [1, 2, 4, 8, 16, 30, 30])

    def test_stateful_backoff(self):
        backoff = Backoff(BackoffPolicy(initial=1, cap=5))
        self.assertTrue(backoff.ready(0))
        backoff.failed(10)
        self.assertFalse(backoff.ready(10.5))
        self.assertTrue(backoff.ready(11))
        backoff.failed(11)
        self.assertEqual(backoff.next_attempt_at, 13)
        backoff.reset()
        self.assertEqual(backoff.failures, 0)
        self.assertTrue(backoff.ready(0))

    def test_retry_until_success(self):
        calls = []
        waits = []

        def operation():
            calls.append(1)
            if len(calls) < 3:
                raise OSError("nope")
            return "ok"

        def wait(delay):
            waits.append(delay)
            return False

        result = retry_with_backoff(operation, BackoffPolicy(1, 30), wait)
        self.assertEqual(result, "ok")
        self.assertEqual(waits, [1, 2])

    def test_interrupted_wait_aborts(self):
        def operation():
            raise OSError("nope")

        result = retry_with_backoff(operation, BackoffPolicy(1, 30), wait=lambda delay: True)
        self.assertIsNone(result)

    def test_unexpected_errors_propagate(self):
        def operation():
            raise KeyError("bug")

        with self.assertRaises(KeyError):
            retry_with_backoff(operation, BackoffPolicy(), wait=lambda d: False, retry_on=(OSError,))


if __name__ == "__main__":
    unittest.main()
