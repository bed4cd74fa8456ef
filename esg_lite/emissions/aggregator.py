import math

from esg_lite.database.models import DocumentRecord
from esg_lite.emissions.extraction import extract_emission
from esg_lite.emissions.models import (
    Contribution,
    EmissionTotals,
    FlatNumericExtraction,
    TransportExtraction,
    scope_for,
)
from esg_lite.logging.logger import Log


class EmissionAggregator:
    """Sums per-document emission figures into scope totals.

    Deterministic for a given document list: values are summed with
    ``math.fsum`` in input order and no clock or randomness is involved.
    """

    def __init__(self, low_confidence_threshold: float = 0.6) -> None:
        self._low_confidence_threshold = low_confidence_threshold

    def aggregate(self, documents: list[DocumentRecord]) -> EmissionTotals:
        contributions = [self._contribution(document) for document in documents]

        by_scope: dict[int, list[float]] = {1: [], 2: [], 3: []}
        for contribution in contributions:
            by_scope[contribution.scope].append(contribution.tonnes)

        return EmissionTotals(
            scope1=math.fsum(by_scope[1]),
            scope2=math.fsum(by_scope[2]),
            scope3=math.fsum(by_scope[3]),
            total=math.fsum(contribution.tonnes for contribution in contributions),
            contributing_count=sum(
                1 for contribution in contributions if contribution.source != "none"
            ),
            document_count=len(documents),
            contributions=contributions,
        )

    def _contribution(self, document: DocumentRecord) -> Contribution:
        extraction = extract_emission(document.ocr_data)
        confidence = document.ocr_confidence

        if isinstance(extraction, TransportExtraction):
            source = "transport"
            score = extraction.confidence_score
            if score is not None:
                confidence = score if confidence is None else min(confidence, score)
        elif isinstance(extraction, FlatNumericExtraction):
            source = extraction.field_name
        else:
            source = "none"
            Log.warning(
                f"Document {document.id} has no emissions data",
                category=document.category.value,
            )

        raw = extraction.tonnes
        tonnes = raw
        if raw < 0:
            Log.warning(
                f"Negative emission value clamped to zero for document {document.id}",
                source=source,
                value=raw,
            )
            tonnes = 0.0

        return Contribution(
            document_id=document.id,
            category=document.category,
            scope=scope_for(document.category),
            source=source,
            tonnes=tonnes,
            raw_tonnes=raw,
            confidence=confidence,
            low_confidence=confidence is not None and confidence < self._low_confidence_threshold,
        )
