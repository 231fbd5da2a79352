"""
Confidence Aggregation Module.

Combines per-field confidences into one record confidence using fixed
weights. Pure and deterministic.

Author: ML Engineering Team
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Optional

from config import get_config
from .extraction_result import ExtractedField


class ConfidenceAggregator:
    """
    Weighted record confidence.

    Attributes:
        weights: Weight per field; line-item presence uses key 'line_items'
        line_item_score: Score contributed by line items when any exist
        review_threshold: Confidence below which a record needs review

    Example:
        >>> aggregator = ConfidenceAggregator()
        >>> fields = {name: ExtractedField("x", 90, FieldSource.LABEL)
        ...           for name in ("invoice_number", "invoice_date", "due_date", "contact_name")}
        >>> aggregator.aggregate(fields, line_item_count=1)
        90
    """

    WEIGHTS = {
        'invoice_number': Decimal("0.25"),
        'invoice_date': Decimal("0.20"),
        'due_date': Decimal("0.15"),
        'contact_name': Decimal("0.25"),
        'line_items': Decimal("0.15"),
    }

    def __init__(
        self,
        line_item_score: Optional[int] = None,
        review_threshold: Optional[int] = None
    ) -> None:
        self.weights = dict(self.WEIGHTS)
        self.line_item_score = (
            line_item_score if line_item_score is not None
            else get_config("confidence.line_item_score", 90)
        )
        self.review_threshold = (
            review_threshold if review_threshold is not None
            else get_config("confidence.review_threshold", 60)
        )

    def aggregate(self, fields: Dict[str, ExtractedField], line_item_count: int) -> int:
        """
        Compute the overall confidence.

        Args:
            fields: ExtractedField per header field. Missing keys count as 0.
            line_item_count: Number of extracted line items.

        Returns:
            Integer confidence 0-100, rounded half-up.
        """
        total = Decimal(0)
        for name, weight in self.weights.items():
            if name == 'line_items':
                score = self.line_item_score if line_item_count > 0 else 0
            else:
                extracted = fields.get(name)
                score = extracted.confidence if extracted is not None else 0
            total += Decimal(str(score)) * weight

        result = int(total.quantize(Decimal(1), rounding=ROUND_HALF_UP))
        return max(0, min(100, result))

    def needs_review(self, confidence: int) -> bool:
        """Check whether a confidence calls for manual review."""
        return confidence < self.review_threshold
