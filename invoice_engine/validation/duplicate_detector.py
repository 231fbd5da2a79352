"""
Duplicate Detection Module.

Fingerprints invoices by their identifying fields so the same invoice
is never imported twice within a batch.

Fingerprint:
    sha256("number|contact|date|total")[:16], with number and contact
    lower-cased and trimmed, and the total rendered from the fixed-point
    invoice total with two decimals.

Author: ML Engineering Team
"""

import hashlib
import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any, Iterable

from invoice_engine.utils.logger import get_logger
from invoice_engine.utils.money import (
    cents_to_amount,
    format_cents,
    is_finite_number,
    line_total_cents,
)


@dataclass(frozen=True)
class Fingerprint:
    """Identifying fields of one invoice and their hash."""
    hash: str
    invoice_number: str
    contact_name: str
    invoice_date: str
    total_amount: float
    source_id: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'hash': self.hash,
            'invoice_number': self.invoice_number,
            'contact_name': self.contact_name,
            'invoice_date': self.invoice_date,
            'total_amount': self.total_amount,
            'source_id': self.source_id
        }


@dataclass
class DuplicateGroup:
    """Invoices sharing one fingerprint."""
    invoice_number: str
    contact_name: str
    invoice_date: str
    total_amount: float
    occurrences: int
    source_ids: List[str]
    hash: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'invoice_number': self.invoice_number,
            'contact_name': self.contact_name,
            'invoice_date': self.invoice_date,
            'total_amount': self.total_amount,
            'occurrences': self.occurrences,
            'source_ids': list(self.source_ids),
            'hash': self.hash
        }


@dataclass
class DuplicateDetectionResult:
    """
    Outcome of a duplicate scan.

    Attributes:
        has_duplicates: Whether any fingerprint occurs more than once
        groups: One group per repeated fingerprint
        total_duplicate_count: Extra occurrences beyond the first
        unique_count: Number of distinct fingerprints
    """
    has_duplicates: bool = False
    groups: List[DuplicateGroup] = field(default_factory=list)
    total_duplicate_count: int = 0
    unique_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'has_duplicates': self.has_duplicates,
            'groups': [g.to_dict() for g in self.groups],
            'total_duplicate_count': self.total_duplicate_count,
            'unique_count': self.unique_count
        }


@dataclass
class DuplicateContext:
    """
    Fingerprint index for one batch run.

    Owned by exactly one detector at a time; callers may create it per
    batch and pass it in.
    """
    seen: Dict[str, List[Fingerprint]] = field(default_factory=OrderedDict)

    def track(self, fingerprint: Fingerprint) -> None:
        """Add a fingerprint to the index."""
        self.seen.setdefault(fingerprint.hash, []).append(fingerprint)

    def get(self, hash_value: str) -> List[Fingerprint]:
        """Fingerprints recorded under a hash."""
        return self.seen.get(hash_value, [])

    def reset(self) -> None:
        """Forget every tracked fingerprint."""
        self.seen.clear()

    def __len__(self) -> int:
        return len(self.seen)


def fingerprint_hash(invoice_number: str, contact_name: str, invoice_date: str, total_cents: int) -> str:
    """Hash the normalized identifying fields."""
    parts = [
        (invoice_number or '').lower().strip(),
        (contact_name or '').lower().strip(),
        (invoice_date or '').strip(),
        format_cents(total_cents),
    ]
    return hashlib.sha256('|'.join(parts).encode('utf-8')).hexdigest()[:16]


class DuplicateDetector:
    """
    Detects duplicate invoices within a batch.

    Attributes:
        context: Fingerprint index, reset at the start of every detect()

    Example:
        >>> detector = DuplicateDetector()
        >>> result = detector.detect(records)
        >>> print(result.total_duplicate_count)
    """

    def __init__(
        self,
        context: Optional[DuplicateContext] = None,
        logger: Optional[logging.Logger] = None
    ) -> None:
        self.context = context if context is not None else DuplicateContext()
        self.logger = logger or get_logger(__name__)

    def fingerprint(self, record) -> Fingerprint:
        """
        Build the fingerprint of an invoice record.

        Args:
            record: InvoiceRecord.

        Returns:
            Fingerprint with the fixed-point total.
        """
        total_cents = record.total_cents
        return Fingerprint(
            hash=fingerprint_hash(record.invoice_number, record.contact_name, record.invoice_date, total_cents),
            invoice_number=record.invoice_number,
            contact_name=record.contact_name,
            invoice_date=record.invoice_date,
            total_amount=cents_to_amount(total_cents),
            source_id=record.source_id
        )

    def detect(self, records: Iterable) -> DuplicateDetectionResult:
        """
        Group records by fingerprint.

        The context is reset first, so results never carry over from an
        earlier run.
        """
        self.context.reset()
        for record in records:
            self.context.track(self.fingerprint(record))

        result = self._build_result(self.context.seen)
        if result.has_duplicates:
            self.logger.warning(
                f"Found {result.total_duplicate_count} duplicate invoice(s) "
                f"in {len(result.groups)} group(s)"
            )
        return result

    def is_duplicate(self, record) -> bool:
        """
        Check a record against tracked fingerprints.

        Only matches from a different source document count.
        """
        fingerprint = self.fingerprint(record)
        return any(f.source_id != record.source_id for f in self.context.get(fingerprint.hash))

    def track(self, record) -> Fingerprint:
        """Add a record to the tracked set."""
        fingerprint = self.fingerprint(record)
        self.context.track(fingerprint)
        return fingerprint

    def remove_duplicates(self, records: Iterable) -> List:
        """Keep the first record per fingerprint, preserving order."""
        seen = set()
        unique = []
        for record in records:
            hash_value = self.fingerprint(record).hash
            if hash_value not in seen:
                seen.add(hash_value)
                unique.append(record)
        return unique

    def detect_in_rows(self, rows: Iterable[Any]) -> DuplicateDetectionResult:
        """
        Detect duplicates in already formatted canonical rows.

        Rows are grouped by invoice number; each group is fingerprinted
        from its first row and its fixed-point total.
        """
        grouped: Dict[str, List[Dict[str, Any]]] = OrderedDict()
        for row in rows:
            values = row.to_dict() if hasattr(row, 'to_dict') else row
            grouped.setdefault(values.get('InvoiceNumber', ''), []).append(values)

        index: Dict[str, List[Fingerprint]] = OrderedDict()
        for invoice_number, invoice_rows in grouped.items():
            total_cents = sum(self._row_cents(r) for r in invoice_rows)
            first = invoice_rows[0]
            fingerprint = Fingerprint(
                hash=fingerprint_hash(
                    invoice_number, first.get('ContactName', ''), first.get('InvoiceDate', ''), total_cents
                ),
                invoice_number=invoice_number,
                contact_name=first.get('ContactName', ''),
                invoice_date=first.get('InvoiceDate', ''),
                total_amount=cents_to_amount(total_cents),
                source_id=invoice_number
            )
            index.setdefault(fingerprint.hash, []).append(fingerprint)

        return self._build_result(index)

    def reset(self) -> None:
        """Clear the tracking state."""
        self.context.reset()

    @staticmethod
    def _row_cents(values: Dict[str, Any]) -> int:
        quantity = values.get('Quantity') or '1'
        amount = values.get('UnitAmount') or '0'
        if not (is_finite_number(quantity) and is_finite_number(amount)):
            return 0
        return line_total_cents(quantity, amount)

    @staticmethod
    def _build_result(index: Dict[str, List[Fingerprint]]) -> DuplicateDetectionResult:
        result = DuplicateDetectionResult(unique_count=len(index))
        for hash_value, fingerprints in index.items():
            if len(fingerprints) < 2:
                continue
            first = fingerprints[0]
            result.groups.append(DuplicateGroup(
                invoice_number=first.invoice_number,
                contact_name=first.contact_name,
                invoice_date=first.invoice_date,
                total_amount=first.total_amount,
                occurrences=len(fingerprints),
                source_ids=[f.source_id for f in fingerprints],
                hash=hash_value
            ))
            result.total_duplicate_count += len(fingerprints) - 1
        result.has_duplicates = bool(result.groups)
        return result

    def format_result(self, result: DuplicateDetectionResult) -> str:
        """Render a detection result as plain text."""
        if not result.has_duplicates:
            return f"No duplicates found. {result.unique_count} unique invoices detected."

        lines = [
            "DUPLICATE INVOICES DETECTED",
            "=" * 39,
            f"Total Duplicates: {result.total_duplicate_count}",
            f"Unique Invoices: {result.unique_count}",
            "",
        ]
        for group in result.groups:
            lines.extend([
                f"Invoice #{group.invoice_number}",
                f"  Contact: {group.contact_name}",
                f"  Date: {group.invoice_date}",
                f"  Amount: ${group.total_amount:.2f}",
                f"  Occurrences: {group.occurrences}",
                f"  Sources: {', '.join(group.source_ids)}",
                "",
            ])
        return "\n".join(lines)
