"""
Data Validators Module.

This module provides validation for:
    - Date fields (DD/MM/YYYY, calendar validity, year range)
    - Invoice records before formatting
    - Canonical rows and header lists before import

Schema violations are collected as errors; nothing here raises for a
recoverable problem.

Author: ML Engineering Team
"""

import calendar
import re
from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from difflib import SequenceMatcher
from enum import Enum
from typing import Optional, List, Dict, Any, Iterable, Mapping, Tuple

from config import get_config
from invoice_engine.schema import CANONICAL_COLUMNS, DATE_PATTERN, REQUIRED_FIELDS, TAX_TYPES
from invoice_engine.utils.logger import get_logger
from invoice_engine.utils.money import is_finite_number

# Initialize module logger
logger = get_logger(__name__)


class Severity(Enum):
    """Validation severity levels."""
    ERROR = "error"        # Blocks export until resolved
    WARNING = "warning"    # Surfaced but does not block


@dataclass
class ValidationIssue:
    """
    One validation finding.

    Attributes:
        severity: ERROR or WARNING
        field: Column or concern the issue refers to
        message: Human-readable description
        row: 1-based row number for row checks
        invoice_number: Invoice the issue belongs to
    """
    severity: Severity
    field: str
    message: str
    row: Optional[int] = None
    invoice_number: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'severity': self.severity.value,
            'field': self.field,
            'message': self.message,
            'row': self.row,
            'invoice_number': self.invoice_number
        }

    def __str__(self) -> str:
        text = f"[{self.field}] {self.message}"
        if self.invoice_number:
            text += f" (Invoice: {self.invoice_number})"
        if self.row is not None:
            text += f" (Row: {self.row})"
        return text


@dataclass
class ValidationResult:
    """
    Contains the result of validation checks.

    Attributes:
        errors: Blocking issues
        warnings: Non-blocking issues
    """
    errors: List[ValidationIssue] = field(default_factory=list)
    warnings: List[ValidationIssue] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        """Valid when there are no errors."""
        return not self.errors

    def add_error(
        self,
        field_name: str,
        message: str,
        row: Optional[int] = None,
        invoice_number: Optional[str] = None
    ) -> None:
        """Add an error (marks the result invalid)."""
        self.errors.append(ValidationIssue(Severity.ERROR, field_name, message, row, invoice_number))

    def add_warning(
        self,
        field_name: str,
        message: str,
        row: Optional[int] = None,
        invoice_number: Optional[str] = None
    ) -> None:
        """Add a warning (doesn't affect validity)."""
        self.warnings.append(ValidationIssue(Severity.WARNING, field_name, message, row, invoice_number))

    def merge(self, other: 'ValidationResult') -> 'ValidationResult':
        """Append another result's issues to this one."""
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'is_valid': self.is_valid,
            'errors': [e.to_dict() for e in self.errors],
            'warnings': [w.to_dict() for w in self.warnings]
        }


class DateValidator:
    """
    Validates DD/MM/YYYY date strings.

    Checks for:
        - Exact DD/MM/YYYY shape
        - Calendar validity (month lengths, leap years)
        - Year within the accepted range
        - Due date on or after invoice date

    Example:
        >>> validator = DateValidator()
        >>> validator.is_valid("29/02/2024")
        True
        >>> validator.validate("31/04/2024")
        (False, "Invalid date: 31/04/2024. Expected DD/MM/YYYY")
    """

    PATTERN = re.compile(DATE_PATTERN)

    def __init__(self, min_year: Optional[int] = None, max_year: Optional[int] = None) -> None:
        """Initialize the date validator."""
        self.min_year = min_year if min_year is not None else get_config("validation.min_year", 1900)
        self.max_year = max_year if max_year is not None else get_config("validation.max_year", 2100)

    def is_valid(self, date_str: str) -> bool:
        """Check if date string is valid."""
        valid, _ = self.validate(date_str)
        return valid

    def validate(self, date_str: str) -> Tuple[bool, str]:
        """
        Validate a date string with detailed feedback.

        Args:
            date_str: Date string to validate.

        Returns:
            Tuple of (is_valid, message).
        """
        if not date_str:
            return False, "Date is empty"

        if not self.PATTERN.match(date_str):
            return False, f"Invalid date format: {date_str}. Expected DD/MM/YYYY"

        day, month, year = (int(part) for part in date_str.split('/'))

        if year < self.min_year or year > self.max_year:
            return False, f"Year {year} is outside {self.min_year}-{self.max_year}"

        if month < 1 or month > 12:
            return False, f"Invalid date: {date_str}. Expected DD/MM/YYYY"

        if day < 1 or day > calendar.monthrange(year, month)[1]:
            return False, f"Invalid date: {date_str}. Expected DD/MM/YYYY"

        return True, "Valid date"

    def parse(self, date_str: str) -> Optional[date]:
        """Parse a valid DD/MM/YYYY string, or return None."""
        if not self.is_valid(date_str):
            return None
        day, month, year = (int(part) for part in date_str.split('/'))
        return date(year, month, day)

    def is_due_after_invoice(
        self,
        invoice_date: str,
        due_date: str
    ) -> Tuple[bool, str]:
        """
        Check if due date is after or equal to invoice date.

        Returns:
            Tuple of (is_valid, message). Unparseable dates pass; they
            are reported by format validation.
        """
        inv_parsed = self.parse(invoice_date)
        due_parsed = self.parse(due_date)

        if inv_parsed is None or due_parsed is None:
            return True, "Could not validate date relationship"

        if due_parsed < inv_parsed:
            return False, "Due date is before invoice date"

        return True, "Valid date relationship"


def _as_mapping(row: Any) -> Mapping[str, Any]:
    return row.to_dict() if hasattr(row, 'to_dict') else row


class SchemaValidator:
    """
    Enforces the canonical import schema.

    Validates:
        - Required fields presence
        - Date format and calendar validity
        - Numeric well-formedness of quantity and unit amount
        - Exact header identity and order

    Example:
        >>> validator = SchemaValidator()
        >>> result = validator.validate_record(record)
        >>> print(result.is_valid)
        >>> print([str(e) for e in result.errors])
    """

    def __init__(
        self,
        max_lines_per_invoice: Optional[int] = None,
        min_description_length: Optional[int] = None,
        review_threshold: Optional[int] = None,
        date_validator: Optional[DateValidator] = None
    ) -> None:
        """Initialize the schema validator."""
        self.max_lines_per_invoice = (
            max_lines_per_invoice if max_lines_per_invoice is not None
            else get_config("validation.max_lines_per_invoice", 50)
        )
        self.min_description_length = (
            min_description_length if min_description_length is not None
            else get_config("validation.min_description_length", 3)
        )
        self.review_threshold = (
            review_threshold if review_threshold is not None
            else get_config("confidence.review_threshold", 60)
        )
        self.date_validator = date_validator or DateValidator()

    # =========================================================================
    # RECORDS
    # =========================================================================

    def validate_record(self, record) -> ValidationResult:
        """
        Validate a single extracted invoice record.

        Args:
            record: InvoiceRecord to validate.

        Returns:
            ValidationResult with errors and warnings tagged with the
            invoice number.
        """
        result = ValidationResult()
        number = record.invoice_number or None

        required = (
            ('InvoiceNumber', record.invoice_number, "Invoice number is required"),
            ('ContactName', record.contact_name, "Contact name is required"),
        )
        for field_name, value, message in required:
            if not value or not str(value).strip():
                result.add_error(field_name, message, invoice_number=number or 'unknown')

        for field_name, label, value in (
            ('InvoiceDate', "Invoice date", record.invoice_date),
            ('DueDate', "Due date", record.due_date),
        ):
            if not value:
                result.add_error(field_name, f"{label} is required", invoice_number=number)
                continue
            valid, message = self.date_validator.validate(value)
            if not valid:
                result.add_error(field_name, message, invoice_number=number)

        ordered, message = self.date_validator.is_due_after_invoice(record.invoice_date, record.due_date)
        if not ordered:
            result.add_warning('DueDate', message, invoice_number=number)

        if not record.line_items:
            result.add_error('LineItems', "At least one line item is required", invoice_number=number)
        elif len(record.line_items) > self.max_lines_per_invoice:
            result.add_warning(
                'LineItems',
                f"Invoice has {len(record.line_items)} line items "
                f"(more than {self.max_lines_per_invoice}); check for split or merged invoices",
                invoice_number=number
            )

        for index, item in enumerate(record.line_items, 1):
            self._check_description(result, item.description, f"Line item {index}", number=number)

            if not is_finite_number(item.quantity) or float(item.quantity) <= 0:
                result.add_error(
                    'Quantity', f"Line item {index} has invalid quantity: {item.quantity}",
                    invoice_number=number
                )

            if not is_finite_number(item.unit_amount):
                result.add_error(
                    'UnitAmount', f"Line item {index} has invalid unit amount",
                    invoice_number=number
                )

            if not item.account_code:
                result.add_warning(
                    'AccountCode', f"Line item {index} has no account code (will use default)",
                    invoice_number=number
                )

            if item.tax_type and item.tax_type not in TAX_TYPES:
                result.add_warning(
                    'TaxType', f"Line item {index} has unknown tax type: {item.tax_type}",
                    invoice_number=number
                )

        if record.overall_confidence < self.review_threshold:
            result.add_warning(
                'Confidence',
                f"Low extraction confidence: {record.overall_confidence}%. Manual review recommended.",
                invoice_number=number
            )

        for warning in record.warnings:
            result.add_warning('Extraction', warning, invoice_number=number)

        return result

    def validate_records(self, records: Iterable) -> ValidationResult:
        """
        Validate a batch of records.

        Duplicate invoice numbers are a warning, not an error.
        """
        records = list(records)
        result = ValidationResult()

        counts = Counter(r.invoice_number for r in records if r.invoice_number)
        for number, count in counts.items():
            if count > 1:
                result.add_warning(
                    'InvoiceNumber',
                    f"Duplicate invoice number: {number} appears {count} times",
                    invoice_number=number
                )

        for record in records:
            result.merge(self.validate_record(record))

        logger.debug(
            f"Validated {len(records)} record(s): "
            f"{len(result.errors)} error(s), {len(result.warnings)} warning(s)"
        )
        return result

    # =========================================================================
    # ROWS
    # =========================================================================

    def validate_row(self, row: Any, row_index: int) -> ValidationResult:
        """
        Validate one canonical row.

        Args:
            row: CanonicalRow or mapping of column name to string.
            row_index: 1-based row number used in messages.
        """
        result = ValidationResult()
        values = _as_mapping(row)
        number = (values.get('InvoiceNumber') or '').strip() or None

        for field_name in REQUIRED_FIELDS:
            value = values.get(field_name)
            if value is None or str(value).strip() == '':
                result.add_error(field_name, f"Required field {field_name} is empty", row=row_index)

        for field_name in ('InvoiceDate', 'DueDate'):
            value = values.get(field_name)
            if value:
                valid, message = self.date_validator.validate(value)
                if not valid:
                    result.add_error(field_name, message, row=row_index, invoice_number=number)

        quantity = values.get('Quantity')
        if quantity not in (None, ''):
            if not is_finite_number(quantity):
                result.add_error('Quantity', f"Invalid quantity: {quantity}", row=row_index, invoice_number=number)
            elif float(quantity) <= 0:
                result.add_error(
                    'Quantity', f"Quantity must be positive: {quantity}", row=row_index, invoice_number=number
                )

        unit_amount = values.get('UnitAmount')
        if unit_amount not in (None, '') and not is_finite_number(unit_amount):
            result.add_error(
                'UnitAmount', f"Invalid unit amount: {unit_amount}", row=row_index, invoice_number=number
            )

        if not values.get('AccountCode'):
            result.add_warning(
                'AccountCode', "No account code (will use default)", row=row_index, invoice_number=number
            )

        tax_type = values.get('TaxType')
        if tax_type and tax_type not in TAX_TYPES:
            result.add_warning(
                'TaxType', f"Unknown tax type: {tax_type}", row=row_index, invoice_number=number
            )

        self._check_description(result, values.get('Description'), "Row", row=row_index, number=number)
        return result

    def validate_rows(self, rows: Iterable[Any]) -> ValidationResult:
        """
        Validate canonical rows.

        Adds one warning per invoice number whose row count exceeds the
        per-invoice line limit.
        """
        rows = list(rows)
        result = ValidationResult()

        for index, row in enumerate(rows, 1):
            result.merge(self.validate_row(row, index))

        counts = Counter(
            (_as_mapping(row).get('InvoiceNumber') or '').strip() for row in rows
        )
        for number, count in counts.items():
            if number and count > self.max_lines_per_invoice:
                result.add_warning(
                    'LineItems',
                    f"Invoice {number} has {count} rows (more than {self.max_lines_per_invoice})",
                    invoice_number=number
                )

        return result

    # =========================================================================
    # HEADERS
    # =========================================================================

    def validate_headers(self, headers: List[str]) -> ValidationResult:
        """
        Validate a header list against the canonical columns.

        The header list is aligned against the schema so that each
        missing, unexpected or misnamed column yields exactly one error.
        A byte-order mark on the first header is ignored.

        Example:
            >>> headers = list(CANONICAL_COLUMNS)
            >>> del headers[6]
            >>> [str(e) for e in validator.validate_headers(headers).errors]
            ['[Headers] Column 7: expected "UnitAmount" is missing']
        """
        result = ValidationResult()
        expected = list(CANONICAL_COLUMNS)
        actual = [str(h).strip() if h is not None else '' for h in headers]
        if actual:
            actual[0] = actual[0].lstrip('\ufeff').strip()

        matcher = SequenceMatcher(None, expected, actual, autojunk=False)
        for tag, i1, i2, j1, j2 in matcher.get_opcodes():
            if tag == 'equal':
                continue

            if tag == 'replace':
                paired = min(i2 - i1, j2 - j1)
                for k in range(paired):
                    found = actual[j1 + k] or 'missing'
                    result.add_error(
                        'Headers', f'Column {i1 + k + 1} should be "{expected[i1 + k]}", found "{found}"'
                    )
                i1 += paired
                j1 += paired

            for i in range(i1, i2):
                result.add_error('Headers', f'Column {i + 1}: expected "{expected[i]}" is missing')

            for j in range(j1, j2):
                result.add_error('Headers', f'Column {j + 1}: unexpected column "{actual[j]}"')

        return result

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _check_description(
        self,
        result: ValidationResult,
        description: Optional[str],
        label: str,
        row: Optional[int] = None,
        number: Optional[str] = None
    ) -> None:
        text = (description or '').strip()
        if not text:
            result.add_warning('Description', f"{label} has no description", row=row, invoice_number=number)
        elif len(text) < self.min_description_length:
            result.add_warning(
                'Description', f"{label} has a very short description: '{text}'",
                row=row, invoice_number=number
            )


def format_validation_results(result: ValidationResult) -> str:
    """
    Format validation results as a human-readable report.

    Returns:
        Multi-line text listing errors then warnings.
    """
    if result.is_valid and not result.warnings:
        return "All validations passed successfully."

    lines: List[str] = []
    if result.errors:
        lines.append("ERRORS:")
        lines.extend(f"  - {issue}" for issue in result.errors)
    if result.warnings:
        if lines:
            lines.append("")
        lines.append("WARNINGS:")
        lines.extend(f"  - {issue}" for issue in result.warnings)
    return "\n".join(lines) + "\n"
