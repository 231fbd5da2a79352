"""
Field Extractor Module.

This module provides the FieldExtractor class that turns raw document
text into an InvoiceRecord using ordered, pattern-based strategies.

Approach:
    Each target field has a prioritized list of strategies; the first
    one that matches wins and its fixed confidence weight is recorded.
    A field that no strategy finds is emitted empty with confidence 0,
    and a warning is added for required fields. Extraction never raises
    for a missing field.

Author: ML Engineering Team
"""

import logging
import time
from typing import Dict, List, Optional

from config import get_config
from invoice_engine.utils.exceptions import ExtractionError
from invoice_engine.utils.logger import get_logger
from .confidence import ConfidenceAggregator
from .extraction_result import ExtractedField, InvoiceRecord, LineItem
from .normalizers import DateNormalizer
from .strategies import (
    ExtractionStrategy,
    LineItemStrategy,
    contact_name_strategies,
    detect_total,
    due_date_strategies,
    invoice_date_strategies,
    invoice_number_strategies,
    line_item_strategies,
    reference_strategies,
    total_amount_strategies,
)


class FieldExtractor:
    """
    Heuristic invoice field extractor.

    Strategy lists are class-level defaults and can be replaced per
    instance through the ``strategies`` argument.

    Attributes:
        strategies: Ordered strategies per field
        line_item_chain: Ordered line-item strategies
        date_normalizer: Normalizes captured dates to DD/MM/YYYY
        aggregator: Computes the overall record confidence

    Example:
        >>> extractor = FieldExtractor()
        >>> record = extractor.extract(text, source_id="invoice_001.txt")
        >>> print(record.invoice_number, record.overall_confidence)
    """

    DEFAULT_STRATEGIES = {
        'invoice_number': invoice_number_strategies(),
        'invoice_date': invoice_date_strategies(),
        'due_date': due_date_strategies(),
        'contact_name': contact_name_strategies(),
        'reference': reference_strategies(),
        'total_amount': total_amount_strategies(),
    }

    # Fields whose absence is reported as an extraction warning
    REQUIRED_FIELDS = {
        'invoice_number': "invoice number",
        'invoice_date': "invoice date",
        'due_date': "due date",
        'contact_name': "contact name",
    }

    DATE_FIELDS = ('invoice_date', 'due_date')

    def __init__(
        self,
        strategies: Optional[Dict[str, List[ExtractionStrategy]]] = None,
        line_item_chain: Optional[List[LineItemStrategy]] = None,
        date_normalizer: Optional[DateNormalizer] = None,
        aggregator: Optional[ConfidenceAggregator] = None,
        logger: Optional[logging.Logger] = None
    ) -> None:
        """
        Initialize the field extractor.

        Args:
            strategies: Replacement strategy lists keyed by field name.
                Fields not given keep their defaults.
            line_item_chain: Replacement line-item strategies.
            date_normalizer: Date normalizer to use.
            aggregator: Confidence aggregator to use.
            logger: Logger to report through.
        """
        self.strategies = dict(self.DEFAULT_STRATEGIES)
        if strategies:
            self.strategies.update(strategies)

        line_item_score = get_config("confidence.line_item_score", 90)
        self.line_item_chain = (
            line_item_chain if line_item_chain is not None
            else line_item_strategies(line_item_score)
        )
        self.date_normalizer = date_normalizer or DateNormalizer()
        self.aggregator = aggregator or ConfidenceAggregator()
        self.logger = logger or get_logger(__name__)

    def extract(self, text: str, source_id: str = "") -> InvoiceRecord:
        """
        Extract an invoice record from document text.

        Args:
            text: Raw document text.
            source_id: Identifier of the source document.

        Returns:
            InvoiceRecord with fields, confidences and warnings.

        Raises:
            ExtractionError: If the document content is not text.
        """
        start_time = time.time()
        if text is None:
            text = ""
        elif not isinstance(text, str):
            raise ExtractionError(source_id or "<unknown>", f"expected text, got {type(text).__name__}")
        warnings: List[str] = []
        fields: Dict[str, ExtractedField] = {}

        for field_name in ('invoice_number', 'invoice_date', 'due_date', 'contact_name', 'reference'):
            extracted = self.extract_field(text, field_name)

            if field_name in self.DATE_FIELDS and extracted.found:
                normalized, warning = self.date_normalizer.normalize(extracted.value)
                if warning:
                    warnings.append(warning)
                extracted = ExtractedField(normalized, extracted.confidence, extracted.source)

            if not extracted.found and field_name in self.REQUIRED_FIELDS:
                warnings.append(f"Could not extract {self.REQUIRED_FIELDS[field_name]}")

            fields[field_name] = extracted

        detected_total = detect_total(text, self.strategies.get('total_amount'))
        line_items, line_field, line_warnings = self.extract_line_items(text)
        warnings.extend(line_warnings)
        fields['line_items'] = line_field

        confidence = self.aggregator.aggregate(fields, len(line_items))

        metadata = {
            'processing_time': time.time() - start_time,
            'line_item_source': line_field.source.value,
        }
        if detected_total is not None:
            metadata['detected_total'] = detected_total

        record = InvoiceRecord(
            invoice_number=fields['invoice_number'].value,
            invoice_date=fields['invoice_date'].value,
            due_date=fields['due_date'].value,
            contact_name=fields['contact_name'].value,
            reference=fields['reference'].value or None,
            line_items=line_items,
            source_id=source_id,
            overall_confidence=confidence,
            warnings=warnings,
            fields=fields,
            metadata=metadata
        )

        found = sum(1 for name in self.REQUIRED_FIELDS if fields[name].found)
        self.logger.info(
            f"Extracted {source_id or 'document'}: {found}/{len(self.REQUIRED_FIELDS)} fields, "
            f"{len(line_items)} line item(s), confidence {confidence}"
        )
        return record

    def extract_field(self, text: str, field_name: str) -> ExtractedField:
        """
        Run the strategy list of one field.

        Args:
            text: Document text.
            field_name: Key into ``strategies``.

        Returns:
            ExtractedField from the first matching strategy, or an empty
            NOT_FOUND field.
        """
        for strategy in self.strategies.get(field_name, []):
            match = strategy.attempt(text)
            if match is not None:
                self.logger.debug(
                    f"{field_name}: '{match.value}' via {strategy.name} "
                    f"(confidence {match.confidence})"
                )
                return ExtractedField(match.value, match.confidence, match.source)
        return ExtractedField.not_found()

    def extract_line_items(self, text: str):
        """
        Run the line-item fallback chain.

        Returns:
            Tuple of (line items, summary ExtractedField, warnings).
        """
        for strategy in self.line_item_chain:
            match = strategy.attempt(text)
            if match is not None and match.items:
                self.logger.debug(f"line_items: {len(match.items)} via {strategy.name}")
                summary = ExtractedField(str(len(match.items)), match.confidence, match.source)
                return list(match.items), summary, list(match.warnings)

        empty: List[LineItem] = []
        return empty, ExtractedField.not_found(), ["Could not extract line items or total amount"]
