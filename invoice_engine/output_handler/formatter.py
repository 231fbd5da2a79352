"""
Record Formatter Module.

Maps invoice records to the canonical ten-column import rows and
renders them as CSV text.

Each line item becomes one row; invoice-level fields are repeated on
every row. Free-text columns are sanitized so that no value can be
interpreted as a spreadsheet formula.

Author: ML Engineering Team
"""

import csv
import io
import re
from collections import OrderedDict
from dataclasses import dataclass
from typing import Optional, List, Dict, Any, Iterable, Mapping, Tuple

from config import get_config
from invoice_engine.schema import CANONICAL_COLUMNS, DEFAULTS, TEXT_FIELDS
from invoice_engine.utils.logger import get_logger
from invoice_engine.utils.money import (
    cents_to_amount,
    format_money,
    is_finite_number,
    line_total_cents,
)

# Initialize module logger
logger = get_logger(__name__)

BOM = '\ufeff'

_CONTROL_CHARS = re.compile(r'[\x00-\x08\x0e-\x1f\x7f-\x9f]')
_FORMULA_PREFIXES = ('=', '+', '-', '@', '\t', '\r')


def sanitize_text(value: Optional[str]) -> str:
    """
    Sanitize a free-text value for export.

    Strips control characters, collapses whitespace and prefixes a
    single quote when the value starts with a formula trigger. Applying
    it twice gives the same result as applying it once.

    Example:
        >>> sanitize_text("  =SUM(A1:A2) ")
        "'=SUM(A1:A2)"
    """
    if not value:
        return ''
    text = _CONTROL_CHARS.sub('', str(value))
    text = ' '.join(text.split())
    if text.startswith(_FORMULA_PREFIXES):
        text = "'" + text
    return text


def escape_csv_field(value: Optional[str]) -> str:
    """Quote a CSV field when it contains a comma, quote or newline."""
    if not value:
        return ''
    if ',' in value or '"' in value or '\n' in value or '\r' in value:
        return '"' + value.replace('"', '""') + '"'
    return value


def format_quantity(value: Any) -> str:
    """Render a quantity without trailing zeros; non-finite becomes the default."""
    if not is_finite_number(value):
        return DEFAULTS['Quantity']
    text = f"{float(value):.4f}".rstrip('0').rstrip('.')
    return text if text not in ('', '-0') else '0'


def format_unit_amount(value: Any) -> str:
    """Render a unit amount with two decimals, half-up; non-finite becomes 0.00."""
    if not is_finite_number(value):
        return '0.00'
    return format_money(value)


@dataclass(frozen=True)
class CanonicalRow:
    """
    One import row in canonical column order.

    Attribute names match the column names exactly, so the field order
    of this class is the column order.
    """
    ContactName: str = ''
    InvoiceNumber: str = ''
    InvoiceDate: str = ''
    DueDate: str = ''
    Description: str = ''
    Quantity: str = ''
    UnitAmount: str = ''
    AccountCode: str = ''
    TaxType: str = ''
    Reference: str = ''

    def values(self) -> List[str]:
        """Column values in canonical order."""
        return [getattr(self, column) for column in CANONICAL_COLUMNS]

    def to_dict(self) -> Dict[str, str]:
        """Convert to an ordered column mapping."""
        return OrderedDict((column, getattr(self, column)) for column in CANONICAL_COLUMNS)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'CanonicalRow':
        """Create a row from a column mapping; unknown keys are ignored."""
        return cls(**{
            column: '' if data.get(column) is None else str(data.get(column))
            for column in CANONICAL_COLUMNS
        })


class RecordFormatter:
    """
    Formats invoice records into canonical rows and CSV text.

    Attributes:
        include_bom: Whether CSV text starts with a UTF-8 byte-order mark

    Example:
        >>> formatter = RecordFormatter()
        >>> rows = formatter.to_rows([record])
        >>> text = formatter.to_csv_text(rows)
    """

    def __init__(self, include_bom: Optional[bool] = None) -> None:
        self.include_bom = (
            include_bom if include_bom is not None
            else get_config("output.csv.include_bom", True)
        )

    @staticmethod
    def headers() -> List[str]:
        """Canonical header list."""
        return list(CANONICAL_COLUMNS)

    def format_record(self, record) -> List[CanonicalRow]:
        """
        Format one record into rows, one per line item.

        Args:
            record: InvoiceRecord.

        Returns:
            List of CanonicalRow; empty when the record has no line items.
        """
        rows = []
        for item in record.line_items:
            values = {
                'ContactName': record.contact_name,
                'InvoiceNumber': record.invoice_number,
                'InvoiceDate': record.invoice_date or '',
                'DueDate': record.due_date or '',
                'Description': item.description,
                'Quantity': format_quantity(item.quantity),
                'UnitAmount': format_unit_amount(item.unit_amount),
                'AccountCode': item.account_code,
                'TaxType': item.tax_type,
                'Reference': record.reference,
            }
            for column in TEXT_FIELDS:
                values[column] = sanitize_text(values[column])
            for column, default in DEFAULTS.items():
                values[column] = values[column] or default
            rows.append(CanonicalRow(**values))
        return rows

    def to_rows(self, records: Iterable) -> List[CanonicalRow]:
        """Format a batch of records; rows are recomputed on every call."""
        rows: List[CanonicalRow] = []
        for record in records:
            rows.extend(self.format_record(record))
        logger.debug(f"Formatted {len(rows)} row(s)")
        return rows

    def to_csv_text(self, rows: Iterable[CanonicalRow], include_bom: Optional[bool] = None) -> str:
        """
        Render rows as CSV text with a header row.

        Args:
            rows: Canonical rows.
            include_bom: Overrides the configured byte-order-mark setting.

        Returns:
            CSV text, lines separated by newlines.
        """
        lines = [','.join(self.headers())]
        for row in rows:
            lines.append(','.join(escape_csv_field(value) for value in row.values()))

        text = '\n'.join(lines)
        bom = self.include_bom if include_bom is None else include_bom
        return BOM + text if bom else text

    @staticmethod
    def parse_csv_text(text: str) -> Tuple[List[str], List[Dict[str, str]]]:
        """
        Read CSV text back into a header list and row mappings.

        A leading byte-order mark is ignored.
        """
        if text.startswith(BOM):
            text = text[len(BOM):]
        reader = csv.reader(io.StringIO(text))
        rows = [r for r in reader if r]
        if not rows:
            return [], []
        headers = rows[0]
        return headers, [dict(zip(headers, r)) for r in rows[1:]]

    @staticmethod
    def validate_row_schema(row: Mapping[str, Any]) -> bool:
        """Check that a mapping carries every canonical column."""
        return all(column in row for column in CANONICAL_COLUMNS)

    @staticmethod
    def group_rows_by_invoice(rows: Iterable[Any]) -> Dict[str, List[Any]]:
        """Group rows by invoice number, preserving first-seen order."""
        grouped: Dict[str, List[Any]] = OrderedDict()
        for row in rows:
            values = row.to_dict() if hasattr(row, 'to_dict') else row
            grouped.setdefault(values.get('InvoiceNumber', ''), []).append(row)
        return grouped

    @staticmethod
    def calculate_totals(rows: Iterable[Any]) -> Dict[str, float]:
        """
        Fixed-point total per invoice number.

        Rows with unparseable numbers contribute nothing.
        """
        totals: Dict[str, int] = OrderedDict()
        for row in rows:
            values = row.to_dict() if hasattr(row, 'to_dict') else row
            number = values.get('InvoiceNumber', '')
            quantity = values.get('Quantity') or DEFAULTS['Quantity']
            amount = values.get('UnitAmount') or '0'
            cents = 0
            if is_finite_number(quantity) and is_finite_number(amount):
                cents = line_total_cents(quantity, amount)
            totals[number] = totals.get(number, 0) + cents
        return {number: cents_to_amount(cents) for number, cents in totals.items()}

    def create_preview(self, rows: List[CanonicalRow], max_rows: int = 10) -> str:
        """Render the first rows as a fixed-width text table."""
        rule = '-' * 80
        lines = ['CSV Preview:', rule, ' | '.join(self.headers()), rule]

        for row in rows[:max_rows]:
            cells = [v[:12] + '...' if len(v) > 15 else v.ljust(15) for v in row.values()]
            lines.append(' | '.join(cells))

        if len(rows) > max_rows:
            lines.append(f"... and {len(rows) - max_rows} more rows")

        lines.append(rule)
        lines.append(f"Total rows: {len(rows)}")
        return '\n'.join(lines) + '\n'
