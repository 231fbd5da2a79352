"""
Canonical Import Schema.

The accounting system accepts a fixed ten-column table. This module is
the single source of truth for the column order, required columns,
date format and default values.

Author: ML Engineering Team
"""

from typing import Dict, List, Tuple

CANONICAL_COLUMNS: Tuple[str, ...] = (
    "ContactName",
    "InvoiceNumber",
    "InvoiceDate",
    "DueDate",
    "Description",
    "Quantity",
    "UnitAmount",
    "AccountCode",
    "TaxType",
    "Reference",
)

REQUIRED_FIELDS: Tuple[str, ...] = (
    "ContactName",
    "InvoiceNumber",
    "InvoiceDate",
    "DueDate",
)

# Columns that carry free text and are sanitized before export
TEXT_FIELDS: Tuple[str, ...] = (
    "ContactName",
    "InvoiceNumber",
    "Description",
    "AccountCode",
    "TaxType",
    "Reference",
)

DATE_FORMAT = "%d/%m/%Y"
DATE_PATTERN = r"^\d{2}/\d{2}/\d{4}$"

TAX_TYPES: List[str] = [
    "GST Free Income",
    "GST on Income",
    "BAS Excluded",
    "GST Free Exports",
]

DEFAULTS: Dict[str, str] = {
    "Quantity": "1",
    "AccountCode": "200",
    "TaxType": "GST on Income",
}
