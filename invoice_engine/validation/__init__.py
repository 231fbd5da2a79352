"""
Validation Module.

Checks extracted invoices before export:
    - SchemaValidator: canonical schema, dates, headers
    - AmountVerifier: fixed-point totals and misread hints
    - DuplicateDetector: batch-wide invoice fingerprints
"""

from .validators import (
    Severity,
    ValidationIssue,
    ValidationResult,
    DateValidator,
    SchemaValidator,
    format_validation_results,
)
from .amount_verifier import (
    AmountVerifier,
    AmountVerificationResult,
    BatchVerificationResult,
    LineItemVerification,
)
from .duplicate_detector import (
    DuplicateContext,
    DuplicateDetector,
    DuplicateDetectionResult,
    DuplicateGroup,
    Fingerprint,
)

__all__ = [
    'Severity',
    'ValidationIssue',
    'ValidationResult',
    'DateValidator',
    'SchemaValidator',
    'format_validation_results',
    'AmountVerifier',
    'AmountVerificationResult',
    'BatchVerificationResult',
    'LineItemVerification',
    'DuplicateContext',
    'DuplicateDetector',
    'DuplicateDetectionResult',
    'DuplicateGroup',
    'Fingerprint'
]
