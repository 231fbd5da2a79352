"""
Extraction Result Data Classes.

This module defines the data structures produced by field extraction:
the per-field capture, the invoice line item and the invoice record
that flows through verification, validation and export.

Author: ML Engineering Team
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Any, List, Optional

from invoice_engine.utils.money import is_finite_number, line_total_cents


class FieldSource(Enum):
    """How a field value was located in the text."""
    LABEL = "label"
    KEYWORD = "keyword"
    PATTERN = "pattern"
    TABLE = "table"
    TOTAL_FALLBACK = "total_fallback"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class ExtractedField:
    """
    A single captured field value.

    Attributes:
        value: Captured (and for dates, normalized) text
        confidence: Fixed weight of the strategy that matched (0-100)
        source: Which kind of strategy matched
    """
    value: str = ""
    confidence: int = 0
    source: FieldSource = FieldSource.NOT_FOUND

    @property
    def found(self) -> bool:
        """Whether a strategy matched."""
        return self.source is not FieldSource.NOT_FOUND

    @classmethod
    def not_found(cls) -> 'ExtractedField':
        """Empty field with zero confidence."""
        return cls()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary format."""
        return {
            'value': self.value,
            'confidence': self.confidence,
            'source': self.source.value
        }


@dataclass
class LineItem:
    """
    One invoice line.

    Attributes:
        description: Line description
        quantity: Billed quantity (must be positive)
        unit_amount: Price per unit
        account_code: Optional ledger account code
        tax_type: Optional tax type
    """
    description: str
    quantity: float = 1.0
    unit_amount: float = 0.0
    account_code: Optional[str] = None
    tax_type: Optional[str] = None

    @property
    def is_finite(self) -> bool:
        """Whether quantity and unit amount are both finite numbers."""
        return is_finite_number(self.quantity) and is_finite_number(self.unit_amount)

    def total_cents(self) -> int:
        """Line total in integer cents. Raises ValueError for non-finite values."""
        return line_total_cents(self.quantity, self.unit_amount)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary format."""
        return {
            'description': self.description,
            'quantity': self.quantity,
            'unit_amount': self.unit_amount,
            'account_code': self.account_code,
            'tax_type': self.tax_type
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LineItem':
        """Create LineItem from dictionary."""
        return cls(
            description=data.get('description', ''),
            quantity=data.get('quantity', 1.0),
            unit_amount=data.get('unit_amount', 0.0),
            account_code=data.get('account_code'),
            tax_type=data.get('tax_type')
        )


@dataclass
class InvoiceRecord:
    """
    Structured invoice recovered from one source document.

    Attributes:
        invoice_number: Invoice identifier
        invoice_date: Issue date (DD/MM/YYYY)
        due_date: Payment due date (DD/MM/YYYY)
        contact_name: Customer/contact name
        reference: Optional reference or purchase order number
        line_items: Extracted line items
        source_id: Source document identifier
        overall_confidence: Weighted record confidence (0-100)
        warnings: Extraction warnings
        fields: ExtractedField per target field
        metadata: Extra facts found during extraction (e.g. detected_total)

    Example:
        >>> record = InvoiceRecord(
        ...     invoice_number="INV-001",
        ...     invoice_date="15/03/2024",
        ...     due_date="15/04/2024",
        ...     contact_name="ABC Pty Ltd",
        ...     line_items=[LineItem("Consulting", 2, 50.0)]
        ... )
        >>> record.total_cents
        10000
    """
    invoice_number: str = ""
    invoice_date: str = ""
    due_date: str = ""
    contact_name: str = ""
    reference: Optional[str] = None
    line_items: List[LineItem] = field(default_factory=list)
    source_id: str = ""
    overall_confidence: int = 0
    warnings: List[str] = field(default_factory=list)
    fields: Dict[str, ExtractedField] = field(default_factory=dict)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def total_cents(self) -> int:
        """
        Fixed-point invoice total in cents.

        Lines with non-finite quantity or amount contribute nothing;
        they are reported by validation instead.
        """
        return sum(item.total_cents() for item in self.line_items if item.is_finite)

    def add_warning(self, warning: str) -> None:
        """Add a warning message."""
        self.warnings.append(warning)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to dictionary format.

        Returns:
            Dictionary representation of the record.
        """
        return {
            'invoice_number': self.invoice_number,
            'invoice_date': self.invoice_date,
            'due_date': self.due_date,
            'contact_name': self.contact_name,
            'reference': self.reference,
            'line_items': [item.to_dict() for item in self.line_items],
            'source_id': self.source_id,
            'overall_confidence': self.overall_confidence,
            'warnings': list(self.warnings),
            'fields': {name: f.to_dict() for name, f in self.fields.items()},
            'metadata': dict(self.metadata)
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'InvoiceRecord':
        """
        Create InvoiceRecord from dictionary.

        Args:
            data: Dictionary with record data.

        Returns:
            InvoiceRecord instance.
        """
        fields = {
            name: ExtractedField(
                value=f.get('value', ''),
                confidence=f.get('confidence', 0),
                source=FieldSource(f.get('source', FieldSource.NOT_FOUND.value))
            )
            for name, f in (data.get('fields') or {}).items()
        }
        return cls(
            invoice_number=data.get('invoice_number', ''),
            invoice_date=data.get('invoice_date', ''),
            due_date=data.get('due_date', ''),
            contact_name=data.get('contact_name', ''),
            reference=data.get('reference'),
            line_items=[LineItem.from_dict(i) for i in data.get('line_items', [])],
            source_id=data.get('source_id', ''),
            overall_confidence=data.get('overall_confidence', 0),
            warnings=list(data.get('warnings', [])),
            fields=fields,
            metadata=dict(data.get('metadata', {}))
        )

    def __repr__(self) -> str:
        return (
            f"InvoiceRecord("
            f"invoice={self.invoice_number}, "
            f"contact={self.contact_name}, "
            f"lines={len(self.line_items)}, "
            f"confidence={self.overall_confidence})"
        )
