import pytest

from invoice_engine.extraction import ConfidenceAggregator, ExtractedField, FieldExtractor, FieldSource
from invoice_engine.extraction.strategies import RegexStrategy
from invoice_engine.utils.exceptions import ExtractionError


def test_extracts_labelled_invoice(sample_text):
    record = FieldExtractor().extract(sample_text, source_id="inv.txt")

    assert record.invoice_number == "INV-001"
    assert record.invoice_date == "15/03/2024"
    assert record.due_date == "15/04/2024"
    assert record.contact_name == "ABC Pty Ltd"
    assert record.reference == "PO-7788"
    assert record.source_id == "inv.txt"
    assert record.warnings == []

    assert len(record.line_items) == 1
    item = record.line_items[0]
    assert (item.description, item.quantity, item.unit_amount) == ("Widget A", 2.0, 50.0)

    assert record.fields['invoice_number'].source is FieldSource.LABEL
    assert record.fields['line_items'].source is FieldSource.PATTERN
    assert record.metadata['detected_total'] == 100.0
    assert record.overall_confidence == 85


def test_total_only_invoice_falls_back(total_only_text):
    record = FieldExtractor().extract(total_only_text)

    assert record.invoice_number == "5521"
    assert record.invoice_date == "03/03/2024"
    assert record.due_date == "02/04/2024"
    assert record.contact_name == "Contoso Ltd"
    assert record.reference is None
    assert [(i.description, i.unit_amount) for i in record.line_items] == [("Invoice Total", 1250.0)]
    assert record.fields['line_items'].source is FieldSource.TOTAL_FALLBACK
    assert "Could not extract individual line items, using total amount" in record.warnings
    assert record.overall_confidence == 80


def test_contact_name_after_blank_line():
    record = FieldExtractor().extract("Invoice Number: INV-7\nBill To:\n\nABC Pty Ltd\nWidget 2 50.00\n")

    assert record.contact_name == "ABC Pty Ltd"
    assert "Could not extract contact name" not in record.warnings


def test_nothing_found_still_produces_a_record(empty_text):
    record = FieldExtractor().extract(empty_text)

    assert record.line_items == []
    assert record.overall_confidence == 0
    assert record.warnings == [
        "Could not extract invoice number",
        "Could not extract invoice date",
        "Could not extract due date",
        "Could not extract contact name",
        "Could not extract line items or total amount",
    ]
    assert record.fields['contact_name'] == ExtractedField.not_found()


def test_out_of_range_date_is_left_for_validation():
    record = FieldExtractor().extract("Invoice Number: 7\nInvoice Date: 32/13/2024\n")
    assert record.invoice_date == "32/13/2024"
    assert record.fields['invoice_date'].confidence == 85


def test_custom_strategy_list_replaces_default():
    custom = {'invoice_number': [RegexStrategy("po", r"Order\s+(\d+)", 50, FieldSource.PATTERN)]}
    extractor = FieldExtractor(strategies=custom)
    field = extractor.extract_field("Invoice Number: INV-1\nOrder 889", 'invoice_number')
    assert field == ExtractedField("889", 50, FieldSource.PATTERN)


def test_aggregate_weights():
    aggregator = ConfidenceAggregator(line_item_score=90)
    fields = {
        'invoice_number': ExtractedField("A", 90, FieldSource.LABEL),
        'invoice_date': ExtractedField("B", 85, FieldSource.LABEL),
        'due_date': ExtractedField("C", 85, FieldSource.LABEL),
        'contact_name': ExtractedField("D", 75, FieldSource.LABEL),
    }
    # 22.5 + 17 + 12.75 + 18.75 + 13.5 = 84.5 -> 85 (half-up)
    assert aggregator.aggregate(fields, line_item_count=1) == 85
    assert aggregator.aggregate(fields, line_item_count=0) == 71
    assert aggregator.aggregate({}, 0) == 0


def test_needs_review_threshold():
    aggregator = ConfidenceAggregator(review_threshold=60)
    assert aggregator.needs_review(59)
    assert not aggregator.needs_review(60)


def test_non_text_content_raises():
    with pytest.raises(ExtractionError, match="scan.bin"):
        FieldExtractor().extract(b"Invoice Number: 7", source_id="scan.bin")
