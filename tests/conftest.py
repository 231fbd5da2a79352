"""Shared fixtures for the invoice import engine tests."""

import pytest

from config import ConfigurationManager
from invoice_engine.extraction import InvoiceRecord, LineItem


SAMPLE_INVOICE = """ACME Supplies Pty Ltd
Invoice Number: INV-001
Invoice Date: 15/03/2024
Due Date: 15/04/2024
Reference: PO-7788

Bill To:
ABC Pty Ltd

Description    Qty   Unit Price   Amount
Widget A       2     50.00        100.00

Total: $100.00
"""

TOTAL_ONLY_INVOICE = """Northwind Traders
Invoice # 5521
Date: 3 March 2024
Due: 02/04/24
Customer: Contoso Ltd

Thank you for your business.
Amount Due: $1,250.00
"""

EMPTY_INVOICE = """Thank you for your business.
Please call us with any questions.
"""


@pytest.fixture(autouse=True)
def reset_config():
    """Every test starts from the default settings file."""
    ConfigurationManager.reset()
    yield
    ConfigurationManager.reset()


@pytest.fixture
def sample_text():
    return SAMPLE_INVOICE


@pytest.fixture
def total_only_text():
    return TOTAL_ONLY_INVOICE


@pytest.fixture
def empty_text():
    return EMPTY_INVOICE


@pytest.fixture
def make_record():
    """Factory for valid invoice records; keyword arguments override fields."""

    def _make(**overrides):
        values = dict(
            invoice_number="INV-001",
            invoice_date="15/03/2024",
            due_date="15/04/2024",
            contact_name="ABC Pty Ltd",
            line_items=[LineItem("Consulting services", 2, 50.0, account_code="200")],
            source_id="invoice_001.txt",
            overall_confidence=85,
        )
        values.update(overrides)
        return InvoiceRecord(**values)

    return _make
