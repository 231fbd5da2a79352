"""
Batch Processor Module.

This module provides the InvoiceBatchProcessor class that runs a batch
of source documents through extraction, amount verification, schema
validation and duplicate detection, and formats the canonical rows.

Pipeline:
    1. Text acquisition (external collaborator, optional)
    2. Field extraction per document (optionally on worker threads)
    3. Duplicate detection over the whole batch
    4. Amount verification and schema validation
    5. Canonical row formatting

A failure on one document is recorded and the rest of the batch keeps
going. Only an unavailable OCR engine stops the batch, and documents
processed before that point are kept.

Author: ML Engineering Team
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any, Callable, Iterable, Sequence

from config import get_config
from invoice_engine.extraction import FieldExtractor, InvoiceRecord
from invoice_engine.input_handler import SourceDocument
from invoice_engine.output_handler.formatter import CanonicalRow, RecordFormatter
from invoice_engine.utils.exceptions import InvoiceEngineError, OCREngineNotAvailableError
from invoice_engine.utils.logger import get_logger
from invoice_engine.validation import (
    AmountVerifier,
    BatchVerificationResult,
    DuplicateContext,
    DuplicateDetectionResult,
    DuplicateDetector,
    SchemaValidator,
    ValidationResult,
)


class CancellationToken:
    """
    Cooperative cancellation flag shared with a running batch.

    The processor checks it between documents; a document already in
    progress always finishes.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        """Request cancellation."""
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        """Whether cancellation was requested."""
        return self._event.is_set()


@dataclass
class BatchContext:
    """
    Caller-owned state of one batch run.

    Create one per batch and discard it afterwards.
    """
    duplicate_context: DuplicateContext = field(default_factory=DuplicateContext)
    cancellation: CancellationToken = field(default_factory=CancellationToken)
    logger: Optional[logging.Logger] = None


@dataclass
class DocumentError:
    """A document that could not be processed."""
    source_id: str
    message: str
    error_type: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'source_id': self.source_id,
            'message': self.message,
            'error_type': self.error_type
        }


@dataclass
class BatchResult:
    """
    Outcome of one batch run.

    Attributes:
        records: Extracted records in input order
        rows: Canonical rows formatted from ``records``
        validation: Combined validation result
        amount_verification: Amount check roll-up
        duplicates: Duplicate groups in the batch
        errors: Documents that failed
        cancelled: Whether the batch was cancelled early
        fatal_error: Message of the error that stopped the batch
    """
    records: List[InvoiceRecord] = field(default_factory=list)
    rows: List[CanonicalRow] = field(default_factory=list)
    validation: ValidationResult = field(default_factory=ValidationResult)
    amount_verification: BatchVerificationResult = field(default_factory=BatchVerificationResult)
    duplicates: DuplicateDetectionResult = field(default_factory=DuplicateDetectionResult)
    errors: List[DocumentError] = field(default_factory=list)
    cancelled: bool = False
    fatal_error: Optional[str] = None

    @property
    def can_export(self) -> bool:
        """Export is allowed once there are rows and no blocking errors."""
        return bool(self.rows) and self.validation.is_valid

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'records': [r.to_dict() for r in self.records],
            'rows': [r.to_dict() for r in self.rows],
            'validation': self.validation.to_dict(),
            'amount_verification': self.amount_verification.to_dict(),
            'duplicates': self.duplicates.to_dict(),
            'errors': [e.to_dict() for e in self.errors],
            'cancelled': self.cancelled,
            'fatal_error': self.fatal_error,
            'can_export': self.can_export
        }


@dataclass
class _Outcome:
    record: Optional[InvoiceRecord] = None
    error: Optional[DocumentError] = None
    fatal: bool = False


class InvoiceBatchProcessor:
    """
    Runs batches of documents through the extraction pipeline.

    Extraction is stateless and may run on worker threads. Duplicate
    detection, amount verification and validation run afterwards on the
    calling thread over the whole batch.

    Example:
        >>> processor = InvoiceBatchProcessor()
        >>> result = processor.process_batch(documents)
        >>> if result.can_export:
        ...     OutputHandler().save(result, "outputs/import.csv")
    """

    def __init__(
        self,
        extractor: Optional[FieldExtractor] = None,
        validator: Optional[SchemaValidator] = None,
        verifier: Optional[AmountVerifier] = None,
        formatter: Optional[RecordFormatter] = None,
        ocr_threshold: Optional[float] = None,
        max_workers: Optional[int] = None,
        logger: Optional[logging.Logger] = None
    ) -> None:
        self.logger = logger or get_logger(__name__)
        self.extractor = extractor or FieldExtractor(logger=self.logger)
        self.validator = validator or SchemaValidator()
        self.verifier = verifier or AmountVerifier(logger=self.logger)
        self.formatter = formatter or RecordFormatter()
        self.ocr_threshold = (
            ocr_threshold if ocr_threshold is not None
            else get_config("ocr.confidence_threshold", 60)
        )
        self.max_workers = (
            max_workers if max_workers is not None
            else get_config("processing.max_workers", 1)
        )

    # =========================================================================
    # SINGLE DOCUMENT
    # =========================================================================

    def process_document(self, document: SourceDocument) -> InvoiceRecord:
        """
        Extract one document.

        OCR text below the confidence threshold gets a warning listing
        the low-confidence words.

        Args:
            document: Acquired document text.

        Returns:
            Extracted InvoiceRecord.
        """
        record = self.extractor.extract(document.text, source_id=document.source_id)

        if document.is_ocr:
            ocr = document.ocr
            confidence = ocr.average_confidence
            record.metadata['ocr_confidence'] = confidence
            record.metadata['ocr_engine'] = ocr.engine

            if not ocr.meets_confidence_threshold(self.ocr_threshold):
                words = [w.text for w in ocr.get_low_confidence_words(self.ocr_threshold)]
                warning = f"Low OCR confidence ({confidence:.0f}%)"
                if words:
                    warning += f". Check: {', '.join(words)}"
                record.add_warning(warning)

        return record

    # =========================================================================
    # BATCHES
    # =========================================================================

    def process_batch(
        self,
        documents: Iterable[SourceDocument],
        context: Optional[BatchContext] = None,
        remove_duplicates: bool = False,
        max_workers: Optional[int] = None
    ) -> BatchResult:
        """
        Process already acquired documents.

        Args:
            documents: Source documents.
            context: Batch state. A fresh one is created if None.
            remove_duplicates: Drop repeated invoices (first one wins)
                before validation and formatting.
            max_workers: Worker threads for extraction.

        Returns:
            BatchResult for the batch.
        """
        return self._run(
            list(documents),
            self.process_document,
            lambda document: document.source_id,
            context,
            remove_duplicates,
            max_workers
        )

    def process_sources(
        self,
        sources: Iterable[Any],
        acquire: Callable[[Any], SourceDocument],
        context: Optional[BatchContext] = None,
        remove_duplicates: bool = False,
        max_workers: Optional[int] = None
    ) -> BatchResult:
        """
        Acquire and process sources.

        Args:
            sources: Source handles, e.g. file paths.
            acquire: Text acquisition collaborator; returns a
                SourceDocument for a source handle.
            context: Batch state. A fresh one is created if None.
            remove_duplicates: Drop repeated invoices before validation.
            max_workers: Worker threads for acquisition and extraction.

        Returns:
            BatchResult. If acquisition reports an unavailable OCR
            engine, ``fatal_error`` is set and only documents processed
            before it are included.
        """
        return self._run(
            list(sources),
            lambda source: self.process_document(acquire(source)),
            lambda source: getattr(source, 'name', None) or str(source),
            context,
            remove_duplicates,
            max_workers
        )

    def _run(
        self,
        items: Sequence[Any],
        work: Callable[[Any], InvoiceRecord],
        source_id_of: Callable[[Any], str],
        context: Optional[BatchContext],
        remove_duplicates: bool,
        max_workers: Optional[int]
    ) -> BatchResult:
        context = context or BatchContext()
        logger = context.logger or self.logger
        workers = max(1, max_workers if max_workers is not None else self.max_workers)
        stop = threading.Event()

        def attempt(item: Any) -> Optional[_Outcome]:
            if stop.is_set() or context.cancellation.is_cancelled:
                return None
            source_id = source_id_of(item)
            try:
                return _Outcome(record=work(item))
            except OCREngineNotAvailableError as e:
                stop.set()
                logger.error(f"OCR engine unavailable, stopping batch: {e}")
                return _Outcome(error=DocumentError(source_id, str(e), type(e).__name__), fatal=True)
            except InvoiceEngineError as e:
                logger.error(f"Failed to process {source_id}: {e}")
                return _Outcome(error=DocumentError(source_id, str(e), type(e).__name__))
            except Exception as e:
                logger.exception(f"Unexpected error processing {source_id}: {e}")
                return _Outcome(error=DocumentError(source_id, str(e), type(e).__name__))

        logger.info(f"Processing batch of {len(items)} document(s) with {workers} worker(s)")

        outcomes: List[_Outcome] = []
        if workers == 1 or len(items) <= 1:
            for item in items:
                outcome = attempt(item)
                if outcome is None:
                    break
                outcomes.append(outcome)
        else:
            with ThreadPoolExecutor(max_workers=workers) as executor:
                futures = [executor.submit(attempt, item) for item in items]
                # Collected in submission order, so results keep input order
                for future in futures:
                    outcome = future.result()
                    if outcome is not None:
                        outcomes.append(outcome)

        result = BatchResult(cancelled=context.cancellation.is_cancelled)
        for outcome in outcomes:
            if outcome.record is not None:
                result.records.append(outcome.record)
            if outcome.error is not None:
                result.errors.append(outcome.error)
            if outcome.fatal:
                result.fatal_error = outcome.error.message

        if result.cancelled:
            logger.warning(
                f"Batch cancelled after {len(outcomes)} of {len(items)} document(s)"
            )

        self._finalize(result, context, remove_duplicates, logger)
        return result

    def _finalize(
        self,
        result: BatchResult,
        context: BatchContext,
        remove_duplicates: bool,
        logger: logging.Logger
    ) -> None:
        """Batch-wide checks, run once on the calling thread."""
        detector = DuplicateDetector(context.duplicate_context, logger=logger)
        result.duplicates = detector.detect(result.records)
        if remove_duplicates and result.duplicates.has_duplicates:
            before = len(result.records)
            result.records = detector.remove_duplicates(result.records)
            logger.info(f"Removed {before - len(result.records)} duplicate invoice(s)")

        result.amount_verification = self.verifier.verify_batch(result.records)
        result.validation = self.validator.validate_records(result.records)

        for group in result.duplicates.groups:
            result.validation.add_warning(
                'Duplicate',
                f"Invoice {group.invoice_number} appears {group.occurrences} times "
                f"({', '.join(group.source_ids)})",
                invoice_number=group.invoice_number or None
            )

        for check in result.amount_verification.results:
            number = check.invoice_number or None
            if not check.is_valid:
                result.validation.add_warning(
                    'Amount',
                    f"Calculated total ${check.calculated_total:.2f} does not match "
                    f"document total ${check.expected_total:.2f} "
                    f"(difference ${check.discrepancy:.2f})",
                    invoice_number=number
                )
            for detail in check.details:
                for hint in detail.suggestions:
                    result.validation.add_warning('Amount', f"Line {detail.index}: {hint}", invoice_number=number)

        result.rows = self.formatter.to_rows(result.records)

        logger.info(
            f"Batch complete: {len(result.records)} invoice(s), {len(result.rows)} row(s), "
            f"{len(result.errors)} failed document(s), "
            f"{len(result.validation.errors)} error(s), {len(result.validation.warnings)} warning(s)"
        )
