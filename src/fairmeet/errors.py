"""
Error taxonomy.

Only `QuotaExpiredError` and `QuotaExceededError` ever leave the engine; the planner
turns them into degraded sentinel results. Provider failures and timeouts are
converted to "no data" at the engine boundary.
"""

from __future__ import annotations


class FairMeetError(RuntimeError):
    pass


class InvalidInputError(FairMeetError, ValueError):
    """Input that cannot be computed on (e.g. centroid of no points)."""


class QuotaError(FairMeetError):
    pass


class QuotaExpiredError(QuotaError):
    """The fixed expiry instant has passed. Terminal for the process."""


class QuotaExceededError(QuotaError):
    """The daily call budget is used up. Clears at the next day rollover."""


class ProviderError(FairMeetError):
    """An upstream venue-search or routing provider returned an unusable response."""
