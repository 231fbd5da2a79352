"""
Extraction Module.

Recovers structured invoice records from document text:
    - FieldExtractor: ordered pattern strategies per field
    - ConfidenceAggregator: weighted record confidence
    - DateNormalizer / AmountNormalizer: value normalization
"""

from .extraction_result import ExtractedField, FieldSource, LineItem, InvoiceRecord
from .normalizers import DateNormalizer, AmountNormalizer
from .confidence import ConfidenceAggregator
from .strategies import ExtractionStrategy, RegexStrategy, LineItemStrategy
from .extractor import FieldExtractor

__all__ = [
    'ExtractedField',
    'FieldSource',
    'LineItem',
    'InvoiceRecord',
    'DateNormalizer',
    'AmountNormalizer',
    'ConfidenceAggregator',
    'ExtractionStrategy',
    'RegexStrategy',
    'LineItemStrategy',
    'FieldExtractor'
]
