import logging

import pytest

import main
from invoice_engine.utils.logger import LOGGER_NAMESPACE


@pytest.fixture(autouse=True)
def restore_logging():
    yield
    logger = logging.getLogger(LOGGER_NAMESPACE)
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)


def test_parse_arguments():
    args = main.parse_arguments(["-i", "in", "-o", "out.csv", "--excel", "--workers", "3", "-q"])
    assert args.input == "in"
    assert args.output == "out.csv"
    assert args.excel
    assert args.workers == 3
    assert args.quiet
    assert not args.no_csv


def test_valid_batch_exits_zero(tmp_path, sample_text):
    (tmp_path / "a.txt").write_text(sample_text, encoding="utf-8")
    output = tmp_path / "import.csv"

    code = main.main(["-i", str(tmp_path), "-o", str(output), "-q"])

    assert code == main.EXIT_OK
    assert output.exists()
    assert (tmp_path / "import.log").exists()


def test_validation_errors_exit_two(tmp_path, empty_text):
    (tmp_path / "a.txt").write_text(empty_text, encoding="utf-8")
    output = tmp_path / "import.csv"

    code = main.main(["-i", str(tmp_path / "a.txt"), "-o", str(output), "-q"])

    assert code == main.EXIT_VALIDATION_ERRORS
    assert not output.exists()


def test_missing_input_exits_one(tmp_path):
    assert main.main(["-i", str(tmp_path / "missing.txt"), "-q"]) == main.EXIT_FAILURE


def test_empty_directory_exits_one(tmp_path):
    assert main.main(["-i", str(tmp_path), "-q"]) == main.EXIT_FAILURE


def test_bad_config_exits_one(tmp_path, sample_text):
    (tmp_path / "a.txt").write_text(sample_text, encoding="utf-8")
    code = main.main(["-i", str(tmp_path), "-c", str(tmp_path / "missing.yaml"), "-q"])
    assert code == main.EXIT_FAILURE
