"""
Extraction Strategies Module.

Each target field is located by an ordered list of strategy objects.
A strategy implements ``attempt(text)`` and returns a match carrying the
raw value, a fixed confidence weight and its source tag, or None. The
extractor takes the first strategy that matches; strategies are never
scored against each other.

Classes:
    ExtractionStrategy: Abstract base for single-value strategies
    RegexStrategy: Pattern-based strategy with optional rejection filter
    LineItemStrategy: Abstract base for line-item strategies
    StructuredLineStrategy: Full-line "description qty price [amount]" rows
    SectionTableStrategy: Rows between an item header and a subtotal
    TotalFallbackStrategy: Single "Invoice Total" line from the invoice total

Author: ML Engineering Team
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Pattern

from invoice_engine.utils.money import format_cents, line_total_cents, to_cents
from .extraction_result import FieldSource, LineItem
from .normalizers import AmountNormalizer, clean_text


@dataclass(frozen=True)
class StrategyMatch:
    """Raw value captured by a strategy."""
    value: str
    confidence: int
    source: FieldSource
    strategy: str = ""


@dataclass
class LineItemMatch:
    """Line items captured by a line-item strategy."""
    items: List[LineItem]
    confidence: int
    source: FieldSource
    strategy: str = ""
    warnings: List[str] = field(default_factory=list)


class ExtractionStrategy(ABC):
    """
    Abstract base class for single-value extraction strategies.

    Attributes:
        name: Strategy identifier for logging
        confidence: Fixed confidence weight reported on a match (0-100)
        source: FieldSource reported on a match
    """

    def __init__(self, name: str, confidence: int, source: FieldSource) -> None:
        self.name = name
        self.confidence = confidence
        self.source = source

    @abstractmethod
    def attempt(self, text: str) -> Optional[StrategyMatch]:
        """
        Try to locate the field in text.

        Args:
            text: Full document text.

        Returns:
            StrategyMatch, or None if this strategy does not apply.
        """
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}('{self.name}', confidence={self.confidence})"


class RegexStrategy(ExtractionStrategy):
    """
    Strategy that captures the first group of a regular expression.

    Candidates are tried in document order; a candidate refused by the
    rejection filter moves the search on to the next occurrence.

    Example:
        >>> strategy = RegexStrategy(
        ...     "invoice_label", r"Invoice\\s*Number\\s*:\\s*(\\S+)", 90, FieldSource.LABEL
        ... )
        >>> strategy.attempt("Invoice Number: INV-001").value
        "INV-001"
    """

    def __init__(
        self,
        name: str,
        pattern: str,
        confidence: int,
        source: FieldSource,
        flags: int = re.IGNORECASE,
        reject: Optional[Callable[[str], bool]] = None
    ) -> None:
        super().__init__(name, confidence, source)
        self.pattern: Pattern = re.compile(pattern, flags)
        self.reject = reject

    def attempt(self, text: str) -> Optional[StrategyMatch]:
        for match in self.pattern.finditer(text or ""):
            value = clean_text(match.group(1))
            if not value:
                continue
            if self.reject is not None and self.reject(value):
                continue
            return StrategyMatch(value, self.confidence, self.source, self.name)
        return None


# =============================================================================
# FIELD PATTERNS
# =============================================================================

_NUMERIC_DATE = r'\d{4}[/\-.]\d{1,2}[/\-.]\d{1,2}|\d{1,2}[/\-.]\d{1,2}[/\-.]\d{2,4}'
_MONTH = r'(?:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Sept|Oct|Nov|Dec)[a-z]*\.?'
_TEXT_DATE = (
    rf'\d{{1,2}}(?:st|nd|rd|th)?\s+{_MONTH},?\s+\d{{4}}'
    rf'|{_MONTH}\s+\d{{1,2}}(?:st|nd|rd|th)?,?\s+\d{{4}}'
)
DATE_VALUE = rf'({_NUMERIC_DATE}|{_TEXT_DATE})'

AMOUNT_VALUE = r'(\d[\d,]*(?:\.\d{1,2})?)'

_NOT_A_NAME = [
    re.compile(r'^\d+$'),
    re.compile(r'^Invoice', re.IGNORECASE),
    re.compile(r'^Date', re.IGNORECASE),
    re.compile(r'^Total', re.IGNORECASE),
    re.compile(r'^Amount', re.IGNORECASE),
    re.compile(r'^ABN', re.IGNORECASE),
    re.compile(r'^GST', re.IGNORECASE),
]


def is_likely_not_a_name(text: str) -> bool:
    """Check if captured text is obviously not a contact name."""
    return any(pattern.search(text) for pattern in _NOT_A_NAME)


def invoice_number_strategies() -> List[ExtractionStrategy]:
    """Invoice number: explicit label > keyword > INV- prefix > leading #token."""
    return [
        RegexStrategy(
            "invoice_number_label",
            r'\bInvoice\s*(?:Number|No\b\.?|#)\s*[:.]?\s*([A-Z0-9][A-Z0-9\-/]*)',
            90, FieldSource.LABEL
        ),
        RegexStrategy(
            "invoice_number_keyword",
            r'\bInvoice\s*[:.]?\s*(?=[A-Z\-]*\d)([A-Z0-9][A-Z0-9\-/]*)',
            80, FieldSource.KEYWORD
        ),
        RegexStrategy(
            "invoice_number_prefix",
            r'\b(INV[-\s]?\d+)\b',
            70, FieldSource.PATTERN
        ),
        RegexStrategy(
            "invoice_number_hash",
            r'^[ \t]*#\s*([A-Z0-9][A-Z0-9\-]*)',
            60, FieldSource.PATTERN,
            flags=re.IGNORECASE | re.MULTILINE
        ),
    ]


def invoice_date_strategies() -> List[ExtractionStrategy]:
    """Invoice date: "Invoice Date" label > bare "Date" > "Issued"."""
    return [
        RegexStrategy(
            "invoice_date_label",
            rf'\bInvoice\s*Date\s*[:.]?\s*{DATE_VALUE}',
            85, FieldSource.LABEL
        ),
        RegexStrategy(
            "invoice_date_keyword",
            rf'(?<!Due )(?<!Due)\bDate\s*[:.]?\s*{DATE_VALUE}',
            75, FieldSource.KEYWORD
        ),
        RegexStrategy(
            "invoice_date_issued",
            rf'\bIssued(?:\s+on)?\s*[:.]?\s*{DATE_VALUE}',
            70, FieldSource.KEYWORD
        ),
    ]


def due_date_strategies() -> List[ExtractionStrategy]:
    """Due date: "Due Date" label > "Payment Due" > bare "Due"."""
    return [
        RegexStrategy(
            "due_date_label",
            rf'\bDue\s*Date\s*[:.]?\s*{DATE_VALUE}',
            85, FieldSource.LABEL
        ),
        RegexStrategy(
            "due_date_payment",
            rf'\bPayment\s*Due\s*[:.]?\s*{DATE_VALUE}',
            80, FieldSource.KEYWORD
        ),
        RegexStrategy(
            "due_date_keyword",
            rf'\bDue(?:\s+(?:by|on))?\s*[:.]?\s*{DATE_VALUE}',
            70, FieldSource.KEYWORD
        ),
    ]


def contact_name_strategies() -> List[ExtractionStrategy]:
    """Contact name: billing labels > "To:"/"Attention:"."""
    return [
        RegexStrategy(
            "contact_name_label",
            r'\b(?:Bill(?:ed)?\s*To|Invoice\s*To|Customer|Client)\b\s*[:.]?[ \t]*(?:\n[ \t]*)*([^\n]+)',
            75, FieldSource.LABEL,
            reject=is_likely_not_a_name
        ),
        RegexStrategy(
            "contact_name_keyword",
            r'\b(?:To|Attention|Attn)\s*:[ \t]*(?:\n[ \t]*)*([^\n]+)',
            65, FieldSource.KEYWORD,
            reject=is_likely_not_a_name
        ),
    ]


def reference_strategies() -> List[ExtractionStrategy]:
    """Reference: labelled reference / PO number > "Your Ref"."""
    return [
        RegexStrategy(
            "reference_label",
            r'\b(?:Reference|Ref|PO|P\.O\.|Purchase\s*Order)\s*(?:Number|No\b\.?)?\s*[:#]\s*([A-Z0-9][A-Z0-9\-/]*)',
            80, FieldSource.LABEL
        ),
        RegexStrategy(
            "reference_your_ref",
            r'\bYour\s*Ref(?:erence)?\s*[:.]?\s*([A-Z0-9][A-Z0-9\-/]*)',
            70, FieldSource.KEYWORD
        ),
    ]


def total_amount_strategies() -> List[ExtractionStrategy]:
    """Invoice total. "Subtotal" never matches."""
    return [
        RegexStrategy(
            "total_grand",
            rf'\bGrand\s*Total\s*[:.]?\s*(?:AUD)?\s*\$?\s*{AMOUNT_VALUE}',
            90, FieldSource.LABEL
        ),
        RegexStrategy(
            "total_label",
            rf'(?<!Sub )(?<!Sub-)\bTotal\s*(?:Amount|Due)?\s*[:.]?\s*(?:AUD)?\s*\$?\s*{AMOUNT_VALUE}',
            85, FieldSource.LABEL
        ),
        RegexStrategy(
            "total_amount_due",
            rf'\bAmount\s*Due\s*[:.]?\s*(?:AUD)?\s*\$?\s*{AMOUNT_VALUE}',
            80, FieldSource.KEYWORD
        ),
        RegexStrategy(
            "total_balance_due",
            rf'\bBalance\s*Due\s*[:.]?\s*(?:AUD)?\s*\$?\s*{AMOUNT_VALUE}',
            75, FieldSource.KEYWORD
        ),
    ]


def detect_total(
    text: str,
    strategies: Optional[List[ExtractionStrategy]] = None
) -> Optional[float]:
    """
    Find the invoice total in text.

    Returns:
        Positive total, or None if no total label is found.
    """
    normalizer = AmountNormalizer()
    for strategy in strategies if strategies is not None else total_amount_strategies():
        match = strategy.attempt(text)
        if match is None:
            continue
        value = normalizer.parse(match.value)
        if value is not None and value > 0:
            return value
    return None


# =============================================================================
# LINE ITEM STRATEGIES
# =============================================================================

# Descriptions starting with these words are header or summary lines
SKIP_KEYWORDS = {
    'abn', 'acn', 'phone', 'ph', 'tel', 'fax', 'mobile', 'bsb', 'account',
    'total', 'subtotal', 'gst', 'tax', 'balance', 'amount', 'invoice',
    'date', 'due',
}

_TOTAL_WORD = re.compile(r'\b(?:sub\s*-?\s*)?total\b', re.IGNORECASE)


def is_summary_line(description: str) -> bool:
    """Check whether a description is a header/summary keyword line."""
    words = re.split(r'[^a-z]+', description.lower().strip())
    first = next((w for w in words if w), "")
    return first in SKIP_KEYWORDS or bool(_TOTAL_WORD.search(description))


class LineItemStrategy(ABC):
    """Abstract base class for line-item strategies."""

    def __init__(self, name: str, confidence: int, source: FieldSource) -> None:
        self.name = name
        self.confidence = confidence
        self.source = source
        self.amounts = AmountNormalizer()

    @abstractmethod
    def attempt(self, text: str) -> Optional[LineItemMatch]:
        """
        Try to recover line items.

        Returns:
            LineItemMatch with at least one item, or None.
        """
        pass

    def _build_item(self, description: str, quantity: str, price: str) -> Optional[LineItem]:
        description = clean_text(description)
        if not description or not re.search(r"[A-Za-z]", description):
            return None
        if is_summary_line(description):
            return None
        unit_amount = self.amounts.parse(price)
        if unit_amount is None:
            return None
        try:
            qty = float(quantity)
        except ValueError:
            return None
        return LineItem(description=description, quantity=qty, unit_amount=unit_amount)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}('{self.name}', confidence={self.confidence})"


class StructuredLineStrategy(LineItemStrategy):
    """
    Whole-line rows of "description quantity unit-price [amount]".

    The four-column shape is tried first (unit price and amount both
    with cents); its amount is cross-checked against quantity times unit
    price and a mismatch is reported as a warning.
    """

    FOUR_COLUMN = re.compile(
        r'^\s*(.+?)\s+(\d+(?:\.\d+)?)\s+\$?(\d[\d,]*\.\d{2})\s+\$?(\d[\d,]*\.\d{2})\s*$'
    )
    THREE_COLUMN = re.compile(
        r'^\s*(.+?)\s+(\d+(?:\.\d+)?)\s+\$?(\d[\d,]*(?:\.\d{2})?)\s*$'
    )

    def __init__(self, confidence: int = 90) -> None:
        super().__init__("structured_lines", confidence, FieldSource.PATTERN)

    def attempt(self, text: str) -> Optional[LineItemMatch]:
        items: List[LineItem] = []
        warnings: List[str] = []

        for line in (text or "").splitlines():
            match = self.FOUR_COLUMN.match(line)
            if match:
                item = self._build_item(match.group(1), match.group(2), match.group(3))
                if item is not None:
                    items.append(item)
                    warning = self._cross_check(item, match.group(4))
                    if warning:
                        warnings.append(warning)
                continue

            match = self.THREE_COLUMN.match(line)
            if match:
                item = self._build_item(match.group(1), match.group(2), match.group(3))
                if item is not None:
                    items.append(item)

        if not items:
            return None
        return LineItemMatch(items, self.confidence, self.source, self.name, warnings)

    def _cross_check(self, item: LineItem, amount_text: str) -> Optional[str]:
        stated = self.amounts.parse(amount_text)
        if stated is None:
            return None
        computed = line_total_cents(item.quantity, item.unit_amount)
        if computed != to_cents(stated):
            return (
                f"Line item '{item.description}': quantity x unit price "
                f"({format_cents(computed)}) does not match line amount ({format_cents(to_cents(stated))})"
            )
        return None


class SectionTableStrategy(LineItemStrategy):
    """
    Rows inside an item table bounded by a header and a subtotal line.

    Looser than StructuredLineStrategy: trailing text after the unit
    price is tolerated.
    """

    SECTION_START = re.compile(r'\b(?:Description|Item|Product|Service)s?\b', re.IGNORECASE)
    SECTION_END = re.compile(r'\b(?:Sub\s*-?\s*total|Total|Tax|GST)\b', re.IGNORECASE)
    ROW = re.compile(r'(.+?)\s+(\d+(?:\.\d+)?)\s+\$?(\d[\d,]*(?:\.\d+)?)')

    def __init__(self, confidence: int = 90) -> None:
        super().__init__("section_table", confidence, FieldSource.TABLE)

    def attempt(self, text: str) -> Optional[LineItemMatch]:
        items: List[LineItem] = []
        in_section = False

        for line in (text or "").splitlines():
            if not in_section:
                in_section = bool(self.SECTION_START.search(line))
                continue
            if self.SECTION_END.search(line):
                in_section = False
                continue

            match = self.ROW.search(line)
            if match:
                item = self._build_item(match.group(1), match.group(2), match.group(3))
                if item is not None:
                    items.append(item)

        if not items:
            return None
        return LineItemMatch(items, self.confidence, self.source, self.name)


class TotalFallbackStrategy(LineItemStrategy):
    """Single quantity-1 "Invoice Total" line built from the invoice total."""

    DESCRIPTION = "Invoice Total"

    def __init__(
        self,
        confidence: int = 90,
        total_strategies: Optional[List[ExtractionStrategy]] = None
    ) -> None:
        super().__init__("total_fallback", confidence, FieldSource.TOTAL_FALLBACK)
        self.total_strategies = total_strategies

    def attempt(self, text: str) -> Optional[LineItemMatch]:
        total = detect_total(text, self.total_strategies)
        if total is None:
            return None
        item = LineItem(description=self.DESCRIPTION, quantity=1.0, unit_amount=total)
        return LineItemMatch(
            [item], self.confidence, self.source, self.name,
            ["Could not extract individual line items, using total amount"]
        )


def line_item_strategies(confidence: int = 90) -> List[LineItemStrategy]:
    """Three-tier line-item fallback chain."""
    return [
        StructuredLineStrategy(confidence),
        SectionTableStrategy(confidence),
        TotalFallbackStrategy(confidence),
    ]
