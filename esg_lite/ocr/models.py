from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class OcrResult:
    """Text recognised from one document."""

    text: str
    confidence: float
    provider: str
    processing_time_ms: int = 0
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be within [0, 1], got {self.confidence}")


@dataclass(frozen=True)
class TextLayer:
    """Embedded text of a PDF, page by page."""

    pages: list[str]

    @property
    def text(self) -> str:
        return "\n".join(self.pages).strip()

    @property
    def page_count(self) -> int:
        return len(self.pages)
