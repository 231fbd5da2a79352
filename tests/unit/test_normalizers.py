import pytest

from invoice_engine.extraction.normalizers import AmountNormalizer, DateNormalizer, clean_text


@pytest.mark.parametrize("raw, expected", [
    ("15/03/2024", "15/03/2024"),
    ("5-3-24", "05/03/2024"),
    ("5.3.2024", "05/03/2024"),
    ("2024-03-15", "15/03/2024"),
    ("01/01/99", "01/01/1999"),
    ("15 March 2024", "15/03/2024"),
    ("March 5th, 2024", "05/03/2024"),
])
def test_date_normalization(raw, expected):
    assert DateNormalizer().normalize(raw) == (expected, None)


def test_two_digit_year_pivot_is_configurable():
    assert DateNormalizer(year_pivot=10).normalize("01/01/24")[0] == "01/01/1924"
    assert DateNormalizer(year_pivot=30).normalize("01/01/24")[0] == "01/01/2024"


def test_unparseable_date_passes_through_with_warning():
    value, warning = DateNormalizer().normalize("sometime soon")
    assert value == "sometime soon"
    assert warning == "Invalid date format: sometime soon"


def test_empty_date():
    assert DateNormalizer().normalize("") == ("", None)


@pytest.mark.parametrize("raw, expected", [
    ("$1,234.56", 1234.56),
    ("€ 1.234,56", 1234.56),
    ("AUD 99", 99.0),
    ("12,50", 12.5),
    ("n/a", None),
    ("", None),
])
def test_amount_parse(raw, expected):
    assert AmountNormalizer().parse(raw) == expected


def test_clean_text():
    assert clean_text("  ABC   Pty Ltd. ") == "ABC Pty Ltd"
    assert clean_text("") == ""
