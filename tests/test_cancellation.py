"""Tests for cancellation tokens."""

import threading
import unittest

from companycam import CancellationSignal, CancellationToken


class TestCancellationToken(unittest.TestCase):
    """Tests for CancellationToken."""

    def test_is_not_cancelled_initially(self):
        token = CancellationToken()
        self.assertFalse(token.cancelled)

    def test_cancel_sets_cancelled(self):
        token = CancellationToken()
        token.cancel()
        self.assertTrue(token.cancelled)

    def test_cancel_is_idempotent_and_runs_callbacks_once(self):
        """Callbacks should run exactly once even when cancel() is called twice."""
        token = CancellationToken()
        calls = []
        token.add_callback(lambda: calls.append(1))

        token.cancel()
        token.cancel()

        self.assertEqual(calls, [1])

    def test_callback_runs_immediately_when_already_cancelled(self):
        token = CancellationToken()
        token.cancel()
        calls = []

        token.add_callback(lambda: calls.append("late"))

        self.assertEqual(calls, ["late"])

    def test_unregistered_callback_is_not_called(self):
        token = CancellationToken()
        calls = []
        unregister = token.add_callback(lambda: calls.append(1))

        unregister()
        token.cancel()

        self.assertEqual(calls, [])

    def test_unregister_is_safe_to_call_twice(self):
        token = CancellationToken()
        unregister = token.add_callback(lambda: None)
        unregister()
        unregister()  # no error

    def test_wait_returns_false_on_timeout(self):
        token = CancellationToken()
        self.assertFalse(token.wait(0.01))

    def test_wait_returns_true_when_cancelled_from_another_thread(self):
        token = CancellationToken()
        timer = threading.Timer(0.02, token.cancel)
        timer.start()
        try:
            self.assertTrue(token.wait(2.0))
        finally:
            timer.cancel()

    def test_satisfies_signal_protocol(self):
        self.assertIsInstance(CancellationToken(), CancellationSignal)

    def test_repr(self):
        self.assertEqual(repr(CancellationToken()), "CancellationToken(cancelled=False)")
