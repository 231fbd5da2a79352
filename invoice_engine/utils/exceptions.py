"""
Custom Exceptions Module.

This module defines all custom exceptions used throughout the invoice
import engine. Recoverable conditions (missing fields, schema violations,
amount discrepancies) are reported as validation issues, not exceptions;
the classes here cover input, collaborator, configuration and output
failures.

Exception Hierarchy:
    InvoiceEngineError (base)
    ├── InputError
    │   ├── UnsupportedFileTypeError
    │   ├── DocumentNotFoundError
    │   └── CorruptedFileError
    ├── TextAcquisitionError
    │   └── OCREngineNotAvailableError
    ├── ExtractionError
    ├── ConfigurationError
    └── OutputError
        ├── CSVExportError
        └── ExcelExportError
"""


class InvoiceEngineError(Exception):
    """
    Base exception for all invoice engine errors.

    Attributes:
        message: Human-readable error message.
        details: Optional dictionary with additional error details.
    """

    def __init__(self, message: str, details: dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# INPUT ERRORS
# =============================================================================

class InputError(InvoiceEngineError):
    """Base exception for input handling errors."""
    pass


class UnsupportedFileTypeError(InputError):
    """
    Raised when an unsupported file type is provided.

    Example:
        >>> raise UnsupportedFileTypeError(".pdf", [".txt", ".json"])
    """

    def __init__(self, file_type: str, supported_types: list):
        message = f"Unsupported file type: '{file_type}'"
        details = {"file_type": file_type, "supported_types": supported_types}
        super().__init__(message, details)


class DocumentNotFoundError(InputError):
    """Raised when an input document cannot be found."""

    def __init__(self, filepath: str):
        message = f"File not found: {filepath}"
        details = {"filepath": filepath}
        super().__init__(message, details)


class CorruptedFileError(InputError):
    """Raised when a file appears to be corrupted or unreadable."""

    def __init__(self, filepath: str, reason: str = None):
        message = f"Corrupted or unreadable file: {filepath}"
        details = {"filepath": filepath, "reason": reason}
        super().__init__(message, details)


# =============================================================================
# TEXT ACQUISITION ERRORS
# =============================================================================

class TextAcquisitionError(InvoiceEngineError):
    """Raised when a text collaborator fails for a single document."""

    def __init__(self, source_id: str, reason: str = None):
        message = f"Text acquisition failed for: {source_id}"
        details = {"source_id": source_id, "reason": reason}
        super().__init__(message, details)


class OCREngineNotAvailableError(TextAcquisitionError):
    """
    Raised when the OCR collaborator cannot be initialized.

    This is the only failure that stops a batch; documents processed
    before it are still returned.
    """

    def __init__(self, engine_name: str, reason: str = None):
        message = f"OCR engine not available: {engine_name}"
        details = {"engine": engine_name, "reason": reason}
        InvoiceEngineError.__init__(self, message, details)


# =============================================================================
# PROCESSING ERRORS
# =============================================================================

class ExtractionError(InvoiceEngineError):
    """Raised when a document cannot be turned into an invoice record at all."""

    def __init__(self, source_id: str, reason: str = None):
        message = f"Extraction failed for: {source_id}"
        details = {"source_id": source_id, "reason": reason}
        super().__init__(message, details)


class ConfigurationError(InvoiceEngineError):
    """Raised when configuration cannot be loaded or is malformed."""
    pass


# =============================================================================
# OUTPUT ERRORS
# =============================================================================

class OutputError(InvoiceEngineError):
    """Base exception for output handling errors."""
    pass


class CSVExportError(OutputError):
    """Raised when the canonical CSV cannot be written."""

    def __init__(self, filepath: str, reason: str = None):
        message = f"Failed to export CSV file: {filepath}"
        details = {"filepath": filepath, "reason": reason}
        super().__init__(message, details)


class ExcelExportError(OutputError):
    """Raised when Excel export fails."""

    def __init__(self, filepath: str, reason: str = None):
        message = f"Failed to export Excel file: {filepath}"
        details = {"filepath": filepath, "reason": reason}
        super().__init__(message, details)


__all__ = [
    'InvoiceEngineError',
    'InputError',
    'UnsupportedFileTypeError',
    'DocumentNotFoundError',
    'CorruptedFileError',
    'TextAcquisitionError',
    'OCREngineNotAvailableError',
    'ExtractionError',
    'ConfigurationError',
    'OutputError',
    'CSVExportError',
    'ExcelExportError',
]
