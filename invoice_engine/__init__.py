"""
Invoice Import Engine - Source Package.

This package recovers structured invoice records from document text and
prepares them for import into an accounting system with a fixed ten-column
CSV template. Each module has a single responsibility.

Modules:
    - input_handler: Collaborator input types and text document loading
    - extraction: Pattern strategies, field extraction and confidence
    - validation: Schema validation, amount verification, duplicate detection
    - output_handler: Canonical row formatting, CSV and Excel export
    - processor: Batch pipeline coordination
    - utils: Logging, exceptions, helpers and fixed-point money math

Architecture:
    Text → Extraction → Confidence → Amount Check → Validation
         → Duplicate Detection → Formatting → CSV
"""

__version__ = "1.0.0"
__author__ = "ML Engineering Team"

__all__ = [
    'input_handler',
    'extraction',
    'validation',
    'output_handler',
    'processor',
    'schema',
    'utils'
]
