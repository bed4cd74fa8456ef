from esg_lite.quota.models import RateLimitResult


class AdmissionError(Exception):
    """Base exception for requests rejected before any work is done."""


class RateLimitExceededError(AdmissionError):
    """Raised when the per-window request limit has been reached."""

    def __init__(self, result: RateLimitResult) -> None:
        super().__init__(
            f"Rate limit exceeded: {result.limit} requests per window "
            f"for tier {result.subscription_tier}"
        )
        self.result = result


class QuotaExceededError(AdmissionError):
    """Raised when a monthly ceiling has been reached. Not retryable."""


class OrganizationBlockedError(AdmissionError):
    """Raised when the organization has been blocked by moderation."""
