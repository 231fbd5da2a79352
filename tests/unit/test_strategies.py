import pytest

from invoice_engine.extraction.extraction_result import FieldSource
from invoice_engine.extraction.strategies import (
    RegexStrategy,
    SectionTableStrategy,
    StructuredLineStrategy,
    TotalFallbackStrategy,
    contact_name_strategies,
    detect_total,
    invoice_number_strategies,
    is_summary_line,
)


def first_match(strategies, text):
    for strategy in strategies:
        match = strategy.attempt(text)
        if match is not None:
            return match
    return None


def test_regex_strategy_skips_rejected_candidates():
    strategy = RegexStrategy(
        "to", r"To:\s*([^\n]+)", 65, FieldSource.KEYWORD,
        reject=lambda value: value.startswith("Invoice")
    )
    match = strategy.attempt("To: Invoice dept\nTo: Jane Citizen\n")
    assert match.value == "Jane Citizen"
    assert match.confidence == 65
    assert match.source is FieldSource.KEYWORD


def test_invoice_number_label_beats_prefix():
    match = first_match(invoice_number_strategies(), "Ref INV-999\nInvoice No: A-100\n")
    assert match.value == "A-100"
    assert match.confidence == 90


def test_invoice_number_prefix_and_hash():
    assert first_match(invoice_number_strategies(), "Your copy of INV 42").value == "INV 42"
    match = first_match(invoice_number_strategies(), "Statement\n# 7781\n")
    assert match.value == "7781"
    assert match.confidence == 60


def test_invoice_keyword_requires_a_digit():
    assert first_match(invoice_number_strategies(), "Tax Invoice\nThanks") is None


def test_contact_name_rejects_non_names():
    text = "Bill To: Invoice Department\nAttention: Jane Citizen\n"
    match = first_match(contact_name_strategies(), text)
    assert match.value == "Jane Citizen"
    assert match.source is FieldSource.KEYWORD


@pytest.mark.parametrize("text", [
    "Bill To:\n\nABC Pty Ltd\n",
    "Bill To:\n  \n\t\nABC Pty Ltd\n",
    "Attention:\n\nABC Pty Ltd\n",
])
def test_contact_name_crosses_blank_lines(text):
    assert first_match(contact_name_strategies(), text).value == "ABC Pty Ltd"


def test_detect_total_ignores_subtotal():
    text = "Subtotal: $90.00\nGST: $9.00\nTotal: $99.00\n"
    assert detect_total(text) == 99.0
    assert detect_total("Subtotal: 50.00") is None


def test_summary_lines():
    assert is_summary_line("Subtotal")
    assert is_summary_line("GST 10%")
    assert is_summary_line("Freight total")
    assert not is_summary_line("Widget A")


def test_structured_lines_cross_check():
    text = "Widget A   2   50.00   100.00\nGadget B   3   10.00   40.00\n"
    match = StructuredLineStrategy().attempt(text)
    assert [item.description for item in match.items] == ["Widget A", "Gadget B"]
    assert match.items[1].quantity == 3.0
    assert match.source is FieldSource.PATTERN
    assert match.warnings == [
        "Line item 'Gadget B': quantity x unit price (30.00) does not match line amount (40.00)"
    ]


def test_structured_lines_need_a_description():
    assert StructuredLineStrategy().attempt("12 345 678\n") is None


def test_section_table_stops_at_subtotal():
    text = (
        "Item list\n"
        "Cleaning 4 25.00 per hour\n"
        "Subtotal 100.00\n"
        "Extra 1 5.00\n"
    )
    match = SectionTableStrategy().attempt(text)
    assert len(match.items) == 1
    assert match.items[0].description == "Cleaning"
    assert match.items[0].quantity == 4.0
    assert match.source is FieldSource.TABLE


def test_total_fallback():
    match = TotalFallbackStrategy().attempt("Amount Due: $1,250.00")
    item = match.items[0]
    assert (item.description, item.quantity, item.unit_amount) == ("Invoice Total", 1.0, 1250.0)
    assert match.source is FieldSource.TOTAL_FALLBACK
    assert match.warnings == ["Could not extract individual line items, using total amount"]
    assert TotalFallbackStrategy().attempt("nothing here") is None
