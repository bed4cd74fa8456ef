from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a rate gate admission check."""

    allowed: bool
    remaining: int
    limit: int
    reset_at: datetime
    retry_after_seconds: int = 0
    reason: str | None = None
    subscription_tier: str | None = None


def organization_key(organization_id: str, action: str = "ocr") -> str:
    """Rate gate key for submissions made on behalf of an organization."""
    return f"{action}:org:{organization_id}"
