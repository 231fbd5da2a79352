from invoice_engine.extraction import LineItem
from invoice_engine.validation import AmountVerifier


def test_matching_total_is_valid(make_record):
    record = make_record(metadata={'detected_total': 100.0})
    result = AmountVerifier().verify(record)

    assert result.calculated_total == 100.0
    assert result.expected_total == 100.0
    assert result.discrepancy == 0.0
    assert result.is_valid
    assert result.line_items_count == 1


def test_without_expected_total_is_valid(make_record):
    result = AmountVerifier().verify(make_record())
    assert result.expected_total is None
    assert result.is_valid


def test_discrepancy_beyond_tolerance(make_record):
    record = make_record(metadata={'detected_total': 110.0})
    result = AmountVerifier(tolerance=0.10, tax_rate=0.10).verify(record)

    assert not result.is_valid
    assert result.discrepancy == 10.0
    assert "Total discrepancy of $10.00 detected. Review line items for OCR errors." in result.suggestions
    assert any(s.startswith("Discrepancy matches tax amount ($10.00)") for s in result.suggestions)


def test_discrepancy_within_tolerance(make_record):
    record = make_record(metadata={'detected_total': 100.05})
    assert AmountVerifier(tolerance=0.10).verify(record).is_valid


def test_expected_total_from_warnings(make_record):
    record = make_record(warnings=["Document says Total: $1,000.50"])
    assert AmountVerifier().extract_expected_total(record) == 1000.50


def test_seven_misread_is_advisory(make_record):
    item = LineItem("Consulting", 2, 71.0)
    record = make_record(line_items=[item])
    result = AmountVerifier().verify(record)

    assert "Unit amount $71.00 might be OCR error. Did you mean $11.00?" in result.details[0].suggestions
    assert "Line 1: Unit amount $71.00 might be OCR error. Did you mean $11.00?" in result.suggestions
    assert item.unit_amount == 71.0
    assert result.calculated_total == 142.0


def test_no_seven_hint_when_line_has_a_one(make_record):
    record = make_record(line_items=[LineItem("Consulting", 1, 71.0)])
    assert AmountVerifier().detect_misreads(record.line_items[0]) == []


def test_line_issues(make_record):
    record = make_record(line_items=[
        LineItem("Broken", float('nan'), 10.0),
        LineItem("Refund", 1, -5.0),
        LineItem("Huge", 1, 2000000.0),
    ])
    result = AmountVerifier().verify(record)

    assert result.details[0].issues == ["Invalid quantity: nan"]
    assert result.details[0].line_total == 0.0
    assert result.details[1].issues == ["Negative unit amount: $-5.00"]
    assert "possible OCR error" in result.details[2].issues[0]
    assert "3 line item(s) have potential issues. Review highlighted items." in result.suggestions
    assert result.calculated_total == 1999995.0


def test_verify_batch_rolls_up(make_record):
    records = [
        make_record(metadata={'detected_total': 100.0}),
        make_record(invoice_number="INV-002", metadata={'detected_total': 90.0}),
    ]
    batch = AmountVerifier().verify_batch(records)

    assert batch.total_invoices == 2
    assert batch.valid_invoices == 1
    assert batch.invalid_invoices == 1
    assert batch.total_discrepancy == 10.0


def test_format_result(make_record):
    verifier = AmountVerifier()
    text = verifier.format_result(verifier.verify(make_record(metadata={'detected_total': 100.0})))
    assert "Calculated Total: $100.00" in text
    assert "Status: Valid" in text


def test_parameters_can_be_updated(make_record):
    record = make_record(metadata={'detected_total': 115.0})
    verifier = AmountVerifier(tolerance=0.10, tax_rate=0.10)

    result = verifier.verify(record)
    assert not result.is_valid
    assert not any(s.startswith("Discrepancy matches tax amount") for s in result.suggestions)

    verifier.set_tax_rate(0.15)
    result = verifier.verify(record)
    assert any(s.startswith("Discrepancy matches tax amount ($15.00)") for s in result.suggestions)

    verifier.set_tolerance(20.0)
    assert verifier.verify(record).is_valid
