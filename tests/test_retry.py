"""Tests for retry utilities."""

import random
import unittest
from datetime import UTC, datetime, timedelta
from email.utils import format_datetime
from unittest.mock import MagicMock, patch

import requests

from companycam import CancellationToken, CancelledError
from companycam._retry import RetryAttempt, Retrying, RetryOptions, RetryPolicy


def http_error(status_code, method="GET", headers=None):
    """Build a requests.HTTPError carrying a response and a prepared request."""
    response = requests.Response()
    response.status_code = status_code
    response.headers.update(headers or {})
    request = requests.Request(method, "https://api.companycam.com/v2/projects").prepare()
    response.request = request
    return requests.HTTPError(f"{status_code} Error", response=response, request=request)


def connection_error(method="GET"):
    request = requests.Request(method, "https://api.companycam.com/v2/projects").prepare()
    return requests.ConnectionError("Connection refused", request=request)


class TestRetryOptions(unittest.TestCase):
    """Tests for RetryOptions dataclass."""

    def test_defaults(self):
        options = RetryOptions()
        self.assertEqual(options.retries, 3)
        self.assertFalse(options.allow_post_retry)
        self.assertIsNone(options.on_retry)

    def test_is_frozen(self):
        with self.assertRaises(AttributeError):
            RetryOptions().retries = 5  # type: ignore


class TestRetryAttempt(unittest.TestCase):
    """Tests for RetryAttempt dataclass."""

    def test_is_last_attempt_false_when_not_last(self):
        self.assertFalse(RetryAttempt(attempt_number=1, max_attempts=4).is_last_attempt)

    def test_is_last_attempt_true_when_last(self):
        self.assertTrue(RetryAttempt(attempt_number=4, max_attempts=4).is_last_attempt)


# =============================================================================
# Retry eligibility
# =============================================================================


class TestRetryPolicyShouldRetry(unittest.TestCase):
    """Tests for RetryPolicy.should_retry()."""

    def setUp(self):
        self.policy = RetryPolicy()

    def test_retries_server_errors_for_idempotent_methods(self):
        for method in ("GET", "PUT", "PATCH", "DELETE"):
            for status in (500, 502, 503, 504):
                with self.subTest(method=method, status=status):
                    self.assertTrue(self.policy.should_retry(http_error(status, method=method)))

    def test_retries_408_and_429(self):
        self.assertTrue(self.policy.should_retry(http_error(408)))
        self.assertTrue(self.policy.should_retry(http_error(429)))

    def test_does_not_retry_other_client_errors(self):
        for status in (400, 401, 403, 404, 409, 422):
            with self.subTest(status=status):
                self.assertFalse(self.policy.should_retry(http_error(status)))

    def test_retries_network_errors(self):
        self.assertTrue(self.policy.should_retry(connection_error()))
        self.assertTrue(self.policy.should_retry(requests.Timeout("timed out")))

    def test_does_not_retry_post_by_default(self):
        self.assertFalse(self.policy.should_retry(http_error(503, method="POST")))
        self.assertFalse(self.policy.should_retry(connection_error(method="POST")))

    def test_retries_post_when_allowed(self):
        policy = RetryPolicy(allow_post_retry=True)
        self.assertTrue(policy.should_retry(http_error(503, method="POST")))

    def test_method_is_case_insensitive(self):
        error = http_error(500)
        error.request.method = "get"
        self.assertTrue(self.policy.should_retry(error))

    def test_missing_method_is_treated_as_retryable(self):
        """Without any method information the error alone decides."""
        error = requests.ConnectionError("Connection refused")
        self.assertTrue(self.policy.should_retry(error))

    def test_falls_back_to_given_method(self):
        error = requests.ConnectionError("Connection refused")
        self.assertFalse(self.policy.should_retry(error, method="post"))
        self.assertTrue(self.policy.should_retry(error, method="get"))

    def test_unclassified_method_is_retryable(self):
        self.assertTrue(self.policy.should_retry(http_error(503, method="HEAD")))

    def test_non_requests_exception_is_not_retried(self):
        self.assertFalse(self.policy.should_retry(ValueError("boom"), method="GET"))


# =============================================================================
# Delay computation
# =============================================================================


class TestRetryPolicyComputeDelay(unittest.TestCase):
    """Tests for RetryPolicy.compute_delay() and Retry-After parsing."""

    def setUp(self):
        self.policy = RetryPolicy(rng=random.Random(42))

    def test_retry_after_seconds(self):
        error = http_error(429, headers={"Retry-After": "5"})
        self.assertEqual(self.policy.compute_delay(1, error), 5.0)

    def test_retry_after_is_capped_at_max_delay(self):
        error = http_error(429, headers={"Retry-After": "120"})
        self.assertEqual(self.policy.compute_delay(1, error), RetryPolicy.MAX_DELAY)

    def test_retry_after_negative_seconds_is_zero(self):
        error = http_error(503, headers={"Retry-After": "-3"})
        self.assertEqual(self.policy.compute_delay(1, error), 0.0)

    def test_retry_after_future_http_date(self):
        future = datetime.now(UTC) + timedelta(seconds=5)
        error = http_error(503, headers={"Retry-After": format_datetime(future, usegmt=True)})

        delay = self.policy.compute_delay(1, error)

        self.assertGreater(delay, 0.0)
        self.assertLessEqual(delay, RetryPolicy.MAX_DELAY)

    def test_retry_after_past_http_date_is_zero(self):
        past = datetime.now(UTC) - timedelta(minutes=5)
        error = http_error(503, headers={"Retry-After": format_datetime(past, usegmt=True)})
        self.assertEqual(self.policy.compute_delay(1, error), 0.0)

    def test_unparseable_retry_after_falls_back_to_backoff(self):
        error = http_error(503, headers={"Retry-After": "soon"})
        delay = self.policy.compute_delay(1, error)
        self.assertGreaterEqual(delay, 0.2)
        self.assertLessEqual(delay, 0.24)

    def test_exponential_backoff_with_jitter_bounds(self):
        error = http_error(503)
        for attempt, base in ((1, 0.2), (2, 0.4), (3, 0.8), (4, 1.6)):
            with self.subTest(attempt=attempt):
                delay = self.policy.compute_delay(attempt, error)
                self.assertGreaterEqual(delay, base)
                self.assertLessEqual(delay, base * 1.2)

    def test_backoff_is_capped_at_max_delay(self):
        delay = self.policy.compute_delay(20, http_error(503))
        self.assertGreaterEqual(delay, RetryPolicy.MAX_DELAY)
        self.assertLessEqual(delay, RetryPolicy.MAX_DELAY * 1.2)

    def test_network_error_uses_backoff(self):
        delay = self.policy.compute_delay(3, connection_error())
        self.assertGreaterEqual(delay, 0.8)
        self.assertLessEqual(delay, 0.96)


# =============================================================================
# Retry loop
# =============================================================================


class TestRetryingBasicUsage(unittest.TestCase):
    """Tests for basic Retrying usage."""

    def test_success_on_first_attempt(self):
        call_count = 0

        for attempt in Retrying(max_retries=3):
            with attempt:
                call_count += 1
                break

        self.assertEqual(call_count, 1)

    def test_invalid_max_retries(self):
        with self.assertRaises(AssertionError):
            Retrying(max_retries=-1)

    @patch("companycam._retry.sleep")
    def test_retries_until_success(self, mock_sleep):
        attempts = []

        for attempt in Retrying(max_retries=3, compute_delay=lambda n, e: 0.5):
            with attempt as current:
                attempts.append(current.attempt_number)
                if current.attempt_number < 3:
                    raise http_error(503)
                break

        self.assertEqual(attempts, [1, 2, 3])
        self.assertEqual(mock_sleep.call_count, 2)
        mock_sleep.assert_called_with(0.5, signal=None)

    @patch("companycam._retry.sleep")
    def test_reraises_last_error_when_exhausted(self, mock_sleep):
        errors = [http_error(500) for _ in range(4)]
        attempts = 0

        with self.assertRaises(requests.HTTPError) as ctx:
            for attempt in Retrying(max_retries=3):
                with attempt:
                    attempts += 1
                    raise errors[attempts - 1]

        self.assertIs(ctx.exception, errors[-1])
        self.assertEqual(attempts, 4)
        self.assertEqual(mock_sleep.call_count, 3)

    @patch("companycam._retry.sleep")
    def test_non_retryable_error_is_raised_immediately(self, mock_sleep):
        attempts = 0

        with self.assertRaises(requests.HTTPError):
            for attempt in Retrying(max_retries=3):
                with attempt:
                    attempts += 1
                    raise http_error(404)

        self.assertEqual(attempts, 1)
        mock_sleep.assert_not_called()

    @patch("companycam._retry.sleep")
    def test_no_retry_when_max_retries_is_zero(self, mock_sleep):
        attempts = 0

        with self.assertRaises(requests.HTTPError):
            for attempt in Retrying(max_retries=0):
                with attempt:
                    attempts += 1
                    raise http_error(503)

        self.assertEqual(attempts, 1)
        mock_sleep.assert_not_called()

    @patch("companycam._retry.sleep")
    def test_on_retry_hook_receives_attempt_and_error(self, mock_sleep):
        on_retry = MagicMock()
        error = http_error(503)

        with self.assertRaises(requests.HTTPError):
            for attempt in Retrying(max_retries=2, on_retry=on_retry):
                with attempt:
                    raise error

        self.assertEqual(on_retry.call_count, 2)
        on_retry.assert_any_call(1, error)
        on_retry.assert_any_call(2, error)

    def test_keyboard_interrupt_is_not_handled(self):
        with self.assertRaises(KeyboardInterrupt):
            for attempt in Retrying(max_retries=3):
                with attempt:
                    raise KeyboardInterrupt()


class TestRetryingCancellation(unittest.TestCase):
    """Tests for cancellation inside the retry loop."""

    def test_cancelled_signal_prevents_first_attempt(self):
        token = CancellationToken()
        token.cancel()
        attempts = 0

        with self.assertRaises(CancelledError):
            for attempt in Retrying(max_retries=3, signal=token):
                with attempt:
                    attempts += 1

        self.assertEqual(attempts, 0)

    def test_cancelled_error_is_never_retried(self):
        attempts = 0

        with self.assertRaises(CancelledError):
            for attempt in Retrying(max_retries=3, should_retry=lambda e: True):
                with attempt:
                    attempts += 1
                    raise CancelledError()

        self.assertEqual(attempts, 1)

    def test_cancellation_during_sleep_stops_next_attempt(self):
        token = CancellationToken()
        attempts = 0

        def cancel_then_delay(attempt_number, error):
            token.cancel()
            return 5.0

        with self.assertRaises(CancelledError):
            for attempt in Retrying(max_retries=3, compute_delay=cancel_then_delay, signal=token):
                with attempt:
                    attempts += 1
                    raise http_error(503)

        self.assertEqual(attempts, 1)
