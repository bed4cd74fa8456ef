from dataclasses import dataclass, field
from typing import Any, Literal

from esg_lite.database.models import DocumentCategory

KG_PER_TONNE = 1000.0

SCOPE_BY_CATEGORY: dict[DocumentCategory, int] = {
    DocumentCategory.PRODUCTION: 1,
    DocumentCategory.TRANSPORT: 1,
    DocumentCategory.ENERGY: 2,
    DocumentCategory.SUPPLIERS: 3,
    DocumentCategory.WASTE: 3,
    DocumentCategory.OTHER: 3,
    DocumentCategory.UNKNOWN: 3,
}


def scope_for(category: DocumentCategory) -> int:
    return SCOPE_BY_CATEGORY.get(category, 3)


@dataclass(frozen=True)
class TransportExtraction:
    """CO2 from the structured transport analysis, reported in kilograms."""

    co2_kg: float
    confidence_score: float | None = None
    kind: Literal["transport"] = "transport"

    @property
    def tonnes(self) -> float:
        return self.co2_kg / KG_PER_TONNE


@dataclass(frozen=True)
class FlatNumericExtraction:
    """A top-level ``emissions``/``co2``/``carbon`` figure, already in tonnes."""

    field_name: str
    value: float
    kind: Literal["flat"] = "flat"

    @property
    def tonnes(self) -> float:
        return self.value


@dataclass(frozen=True)
class UnrecognizedExtraction:
    """The document carries no emission figure."""

    kind: Literal["unrecognized"] = "unrecognized"

    @property
    def tonnes(self) -> float:
        return 0.0


EmissionExtraction = TransportExtraction | FlatNumericExtraction | UnrecognizedExtraction


@dataclass(frozen=True)
class Contribution:
    """Provenance of one document's share of a report total."""

    document_id: str
    category: DocumentCategory
    scope: int
    source: str
    tonnes: float
    raw_tonnes: float
    confidence: float | None
    low_confidence: bool

    @property
    def clamped(self) -> bool:
        return self.raw_tonnes < 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "documentId": self.document_id,
            "category": self.category.value,
            "scope": self.scope,
            "source": self.source,
            "emissions": self.tonnes,
            "rawEmissions": self.raw_tonnes,
            "clamped": self.clamped,
            "confidence": self.confidence,
            "lowConfidence": self.low_confidence,
        }


@dataclass(frozen=True)
class EmissionTotals:
    """Scope-bucketed totals in tonnes CO2-equivalent."""

    scope1: float
    scope2: float
    scope3: float
    total: float
    contributing_count: int
    document_count: int
    contributions: list[Contribution] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "scope1": self.scope1,
            "scope2": self.scope2,
            "scope3": self.scope3,
            "totalEmissions": self.total,
            "contributingCount": self.contributing_count,
            "documentCount": self.document_count,
            "contributions": [contribution.to_dict() for contribution in self.contributions],
        }
