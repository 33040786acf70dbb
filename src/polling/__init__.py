"""
Bounded-retry polling.
"""

from .poll import PollOutcome, poll_until

__all__ = ["PollOutcome", "poll_until"]
