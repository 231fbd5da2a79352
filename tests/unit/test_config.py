import pytest

from config import ConfigurationManager, get_config
from invoice_engine.utils.exceptions import ConfigurationError, InvoiceEngineError
from invoice_engine.validation import AmountVerifier


def test_defaults_are_loaded():
    assert get_config("amounts.tolerance") == 0.10
    assert get_config("validation.max_lines_per_invoice") == 50
    assert get_config("ocr.confidence_threshold") == 60
    assert get_config("missing.key", "fallback") == "fallback"


def test_custom_config_file(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text("amounts:\n  tolerance: 0.5\n", encoding="utf-8")
    ConfigurationManager(str(path))

    assert get_config("amounts.tolerance") == 0.5
    assert AmountVerifier().tolerance == 0.5
    # Constructor arguments win over configuration
    assert AmountVerifier(tolerance=0.01).tolerance == 0.01


def test_missing_config_file(tmp_path):
    with pytest.raises(ConfigurationError):
        ConfigurationManager(str(tmp_path / "nope.yaml"))


def test_malformed_config_file(tmp_path):
    path = tmp_path / "broken.yaml"
    path.write_text("amounts: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigurationError) as excinfo:
        ConfigurationManager(str(path))
    assert isinstance(excinfo.value, InvoiceEngineError)
    assert "broken.yaml" in str(excinfo.value)


def test_reload_picks_up_changes(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text("amounts:\n  tolerance: 0.5\n", encoding="utf-8")
    config = ConfigurationManager(str(path))

    path.write_text("amounts:\n  tolerance: 0.25\n", encoding="utf-8")
    config.reload()

    assert get_config("amounts.tolerance") == 0.25
