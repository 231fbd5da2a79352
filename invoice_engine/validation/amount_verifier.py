"""
Amount Verification Module.

Recomputes line and invoice totals with integer-cent arithmetic, checks
them against any total found in the document, and flags values that
look like recognition misreads.

Misread hints are advisory: they are reported as suggestions and never
change a stored value.

Author: ML Engineering Team
"""

import logging
import re
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, List, Dict, Any, Iterable

from config import get_config
from invoice_engine.utils.logger import get_logger
from invoice_engine.utils.money import (
    cents_to_amount,
    format_cents,
    is_finite_number,
    line_total_cents,
    to_cents,
)


@dataclass
class LineItemVerification:
    """
    Verification of one line item.

    Attributes:
        index: 1-based line number
        description: Line description
        quantity: Quantity as extracted
        unit_amount: Unit amount as extracted
        line_total: Fixed-point line total (0.0 when not computable)
        issues: Hard problems with the line
        suggestions: Advisory misread hints
    """
    index: int
    description: str
    quantity: float
    unit_amount: float
    line_total: float = 0.0
    issues: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)

    @property
    def has_issues(self) -> bool:
        """Whether the line has hard problems."""
        return bool(self.issues)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'index': self.index,
            'description': self.description,
            'quantity': self.quantity,
            'unit_amount': self.unit_amount,
            'line_total': self.line_total,
            'has_issues': self.has_issues,
            'issues': list(self.issues),
            'suggestions': list(self.suggestions)
        }


@dataclass
class AmountVerificationResult:
    """
    Amount verification of one invoice.

    Attributes:
        invoice_number: Invoice identifier
        calculated_total: Sum of fixed-point line totals
        expected_total: Total found in the document, if any
        discrepancy: Absolute difference (0.0 without an expected total)
        is_valid: False only when the discrepancy exceeds tolerance
        line_items_count: Number of line items verified
        details: Per-line verification
        suggestions: Advisory hints for the reviewer
    """
    invoice_number: str
    calculated_total: float
    expected_total: Optional[float]
    discrepancy: float
    is_valid: bool
    line_items_count: int
    details: List[LineItemVerification] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'invoice_number': self.invoice_number,
            'calculated_total': self.calculated_total,
            'expected_total': self.expected_total,
            'discrepancy': self.discrepancy,
            'is_valid': self.is_valid,
            'line_items_count': self.line_items_count,
            'details': [d.to_dict() for d in self.details],
            'suggestions': list(self.suggestions)
        }


@dataclass
class BatchVerificationResult:
    """Roll-up of amount verification over a batch."""
    total_invoices: int = 0
    valid_invoices: int = 0
    invalid_invoices: int = 0
    total_discrepancy: float = 0.0
    results: List[AmountVerificationResult] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'total_invoices': self.total_invoices,
            'valid_invoices': self.valid_invoices,
            'invalid_invoices': self.invalid_invoices,
            'total_discrepancy': self.total_discrepancy,
            'results': [r.to_dict() for r in self.results]
        }


def _quantity_text(quantity: Any) -> str:
    return f"{float(quantity):.4f}".rstrip('0').rstrip('.')


class AmountVerifier:
    """
    Verifies invoice amounts using fixed-point arithmetic.

    Attributes:
        tolerance: Maximum accepted |calculated - expected|
        tax_rate: Tax rate used to explain discrepancies
        sanity_ceiling: Unit amounts above this are suspicious
        round_amount_floor: Amounts above this ending in 00.00 get a hint
        low_confidence: Extraction confidence below this gets a hint

    Example:
        >>> verifier = AmountVerifier()
        >>> result = verifier.verify(record)
        >>> print(result.calculated_total, result.is_valid)
    """

    EXPECTED_TOTAL_PATTERN = re.compile(r'total[:\s]+\$?([\d,]+\.?\d*)', re.IGNORECASE)

    def __init__(
        self,
        tolerance: Optional[float] = None,
        tax_rate: Optional[float] = None,
        sanity_ceiling: Optional[float] = None,
        round_amount_floor: Optional[float] = None,
        low_confidence: Optional[int] = None,
        logger: Optional[logging.Logger] = None
    ) -> None:
        """Initialize the verifier from configuration with optional overrides."""
        self.tolerance = tolerance if tolerance is not None else get_config("amounts.tolerance", 0.10)
        self.tax_rate = tax_rate if tax_rate is not None else get_config("amounts.tax_rate", 0.10)
        self.sanity_ceiling = (
            sanity_ceiling if sanity_ceiling is not None
            else get_config("amounts.sanity_ceiling", 1000000)
        )
        self.round_amount_floor = (
            round_amount_floor if round_amount_floor is not None
            else get_config("amounts.round_amount_floor", 100)
        )
        self.low_confidence = (
            low_confidence if low_confidence is not None
            else get_config("amounts.low_confidence_suggestion", 70)
        )
        self.logger = logger or get_logger(__name__)

    def set_tolerance(self, amount: float) -> None:
        """Update tolerance amount."""
        self.tolerance = amount

    def set_tax_rate(self, rate: float) -> None:
        """Update tax rate."""
        self.tax_rate = rate

    # =========================================================================
    # VERIFICATION
    # =========================================================================

    def verify(self, record) -> AmountVerificationResult:
        """
        Verify a single invoice record.

        Args:
            record: InvoiceRecord to verify.

        Returns:
            AmountVerificationResult. Without an expected total the
            result is valid.
        """
        details: List[LineItemVerification] = []
        total_cents = 0

        for index, item in enumerate(record.line_items, 1):
            detail, cents = self.verify_line_item(item, index)
            details.append(detail)
            total_cents += cents

        expected_total = self.extract_expected_total(record)
        tolerance_cents = to_cents(self.tolerance)

        discrepancy_cents = 0
        if expected_total is not None:
            discrepancy_cents = abs(total_cents - to_cents(expected_total))

        is_valid = expected_total is None or discrepancy_cents <= tolerance_cents

        result = AmountVerificationResult(
            invoice_number=record.invoice_number,
            calculated_total=cents_to_amount(total_cents),
            expected_total=expected_total,
            discrepancy=cents_to_amount(discrepancy_cents),
            is_valid=is_valid,
            line_items_count=len(record.line_items),
            details=details
        )
        result.suggestions = self._generate_suggestions(record, result, total_cents, discrepancy_cents)

        if not is_valid:
            self.logger.warning(
                f"Amount discrepancy on invoice {record.invoice_number or '?'}: "
                f"calculated {format_cents(total_cents)}, expected {expected_total:.2f}"
            )
        return result

    def verify_line_item(self, item, index: int):
        """
        Verify one line item.

        Returns:
            Tuple of (LineItemVerification, line total in cents).
        """
        detail = LineItemVerification(
            index=index,
            description=item.description or "",
            quantity=item.quantity,
            unit_amount=item.unit_amount
        )

        quantity_ok = is_finite_number(item.quantity)
        amount_ok = is_finite_number(item.unit_amount)

        if not quantity_ok:
            detail.issues.append(f"Invalid quantity: {item.quantity}")
        elif float(item.quantity) <= 0:
            detail.issues.append(f"Invalid quantity: {item.quantity} (must be positive)")

        if not amount_ok:
            detail.issues.append(f"Invalid unit amount: {item.unit_amount}")
        else:
            amount = float(item.unit_amount)
            if amount < 0:
                detail.issues.append(f"Negative unit amount: ${amount:.2f}")
            if amount > self.sanity_ceiling:
                detail.issues.append(
                    f"Suspiciously high unit amount: ${amount:.2f} - possible OCR error"
                )

        if not (quantity_ok and amount_ok):
            return detail, 0

        cents = line_total_cents(item.quantity, item.unit_amount)
        detail.line_total = cents_to_amount(cents)
        detail.suggestions.extend(self.detect_misreads(item))
        return detail, cents

    def detect_misreads(self, item) -> List[str]:
        """
        Detect likely recognition misreads in a unit amount.

        A 7 in the amount's digits while no 1 appears anywhere else on
        the line suggests a 1 read as 7. Large round amounts get a
        decimal-placement hint.

        Returns:
            Advisory messages; the item is never modified.
        """
        hints: List[str] = []
        amount_text = format_cents(to_cents(item.unit_amount))
        digits = amount_text.replace('.', '').lstrip('-')

        other_fields = f"{_quantity_text(item.quantity)} {item.description or ''}"
        if '7' in digits and '1' not in other_fields:
            proposed = amount_text.replace('7', '1')
            hints.append(
                f"Unit amount ${amount_text} might be OCR error. Did you mean ${proposed}?"
            )

        if amount_text.endswith('00.00') and float(item.unit_amount) > self.round_amount_floor:
            hints.append("Amount ends in .00 - verify decimal placement is correct")

        return hints

    def extract_expected_total(self, record) -> Optional[float]:
        """
        Recover the document's stated total.

        Uses ``metadata['detected_total']`` first, then a "Total: $X"
        pattern in the record's warnings.
        """
        detected = record.metadata.get('detected_total') if record.metadata else None
        if detected is not None and is_finite_number(detected):
            return float(detected)

        for warning in record.warnings:
            match = self.EXPECTED_TOTAL_PATTERN.search(warning)
            if match:
                text = match.group(1).replace(',', '')
                if is_finite_number(text):
                    return float(text)
        return None

    def _generate_suggestions(
        self,
        record,
        result: AmountVerificationResult,
        total_cents: int,
        discrepancy_cents: int
    ) -> List[str]:
        suggestions: List[str] = []
        tolerance_cents = to_cents(self.tolerance)

        if result.expected_total is not None and discrepancy_cents > tolerance_cents:
            suggestions.append(
                f"Total discrepancy of ${format_cents(discrepancy_cents)} detected. "
                f"Review line items for OCR errors."
            )

            tax = Decimal(total_cents) * Decimal(str(self.tax_rate))
            tax_cents = int(tax.quantize(Decimal(1), rounding=ROUND_HALF_UP))
            if abs(discrepancy_cents - tax_cents) < tolerance_cents:
                suggestions.append(
                    f"Discrepancy matches tax amount (${format_cents(tax_cents)}). "
                    f"Check if tax is already included in unit amounts."
                )

            if discrepancy_cents % 1000 == 0 and discrepancy_cents < 10000:
                suggestions.append("Discrepancy is a multiple of $10 - possible single digit OCR error.")

        for detail in result.details:
            for hint in detail.suggestions:
                suggestions.append(f"Line {detail.index}: {hint}")

        issue_count = sum(1 for d in result.details if d.has_issues)
        if issue_count:
            suggestions.append(f"{issue_count} line item(s) have potential issues. Review highlighted items.")

        if not record.line_items:
            suggestions.append("No line items found. Manual entry may be required.")

        if record.overall_confidence < self.low_confidence:
            suggestions.append(
                f"Low extraction confidence ({record.overall_confidence}%). "
                f"Manual verification strongly recommended."
            )

        return suggestions

    def verify_batch(self, records: Iterable) -> BatchVerificationResult:
        """
        Verify every record in a batch.

        One invalid invoice never stops verification of the rest.
        """
        batch = BatchVerificationResult()
        discrepancy_cents = 0

        for record in records:
            result = self.verify(record)
            batch.results.append(result)
            batch.total_invoices += 1
            if result.is_valid:
                batch.valid_invoices += 1
            else:
                batch.invalid_invoices += 1
            discrepancy_cents += to_cents(result.discrepancy)

        batch.total_discrepancy = cents_to_amount(discrepancy_cents)
        return batch

    def format_result(self, result: AmountVerificationResult) -> str:
        """Render a verification result as plain text."""
        lines = [
            f"Amount Verification: Invoice {result.invoice_number}",
            "-" * 50,
            f"Calculated Total: ${result.calculated_total:.2f}",
        ]
        if result.expected_total is not None:
            lines.append(f"Expected Total: ${result.expected_total:.2f}")
            lines.append(f"Discrepancy: ${result.discrepancy:.2f}")
        lines.append(f"Status: {'Valid' if result.is_valid else 'Needs Review'}")
        lines.append(f"Line Items: {result.line_items_count}")

        flagged = [d for d in result.details if d.has_issues]
        if flagged:
            lines.append("")
            lines.append("Issues Found:")
            for detail in flagged:
                lines.append(f"  Line {detail.index}: {detail.description[:30]}")
                lines.extend(f"    ! {issue}" for issue in detail.issues)

        if result.suggestions:
            lines.append("")
            lines.append("Suggestions:")
            lines.extend(f"  * {s}" for s in result.suggestions)

        return "\n".join(lines) + "\n"
