import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BackoffPolicy:
    """Capped exponential delay schedule: initial, initial*multiplier, ... up to cap."""
    initial: float = 1.0
    cap: float = 30.0
    multiplier: float = 2.0

    def delay(self, attempt):
        """Delay to wait after the given failed attempt (0-based)."""
        if attempt < 0:
            raise ValueError("attempt must be >= 0")
        return min(self.cap, self.initial * (self.multiplier ** attempt))

    @classmethod
    def from_config(cls):
        import config
        return cls(initial=float(config.BACKOFF_INITIAL), cap=float(config.BACKOFF_CAP_SECONDS))


class Backoff:
    """Tracks consecutive failures against a policy for loops that cannot block."""

    def __init__(self, policy):
        self.policy = policy
        self.failures = 0
        self.next_attempt_at = 0.0

    def ready(self, now):
        return now >= self.next_attempt_at

    def failed(self, now):
        delay = self.policy.delay(self.failures)
        self.failures += 1
        self.next_attempt_at = now + delay
        return delay

    def reset(self):
        self.failures = 0
        self.next_attempt_at = 0.0


def retry_with_backoff(operation, policy, wait, should_continue=lambda: True, retry_on=(Exception,), on_failure=None):
    """
    Calls `operation` until it succeeds, sleeping per `policy` between attempts.

    `wait(delay)` performs the sleep and returns True when the wait was
    interrupted (e.g. shutdown), which aborts the retry. `should_continue()`
    is checked before every attempt. Returns the operation's result, or None
    when retrying stopped without success.
    """
    attempt = 0
    while should_continue():
        try:
            return operation()
        except retry_on as e:
            delay = policy.delay(attempt)
            attempt += 1
            if on_failure is not None:
                on_failure(e, attempt, delay)
            else:
                logger.debug(f"Versuch {attempt} fehlgeschlagen ({e}), neuer Versuch in {delay:.0f}s")
            if wait(delay):
                return None
    return None
