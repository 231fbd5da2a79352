import json

import pytest

from invoice_engine.input_handler import InputHandler, OCRResult
from invoice_engine.utils.exceptions import (
    CorruptedFileError,
    DocumentNotFoundError,
    UnsupportedFileTypeError,
)


def test_load_text_file(tmp_path, sample_text):
    path = tmp_path / "invoice.txt"
    path.write_text(sample_text, encoding="utf-8")

    document = InputHandler().load(path)

    assert document.source_id == "invoice.txt"
    assert document.text == sample_text
    assert not document.is_ocr


def test_text_file_bom_is_dropped(tmp_path):
    path = tmp_path / "bom.txt"
    path.write_bytes(b"\xef\xbb\xbfInvoice Number: 7")
    assert InputHandler().load(path).text == "Invoice Number: 7"


def test_load_ocr_payload(tmp_path):
    payload = {
        "text": "Invoice Number: INV-5",
        "confidence": 72.5,
        "perWordConfidence": [{"text": "Invoice", "confidence": 95}, {"text": "INV-5", "confidence": 50}],
    }
    path = tmp_path / "scan.json"
    path.write_text(json.dumps(payload), encoding="utf-8")

    document = InputHandler().load(path)

    assert document.is_ocr
    assert document.text == "Invoice Number: INV-5"
    assert document.ocr.average_confidence == 72.5
    assert [w.text for w in document.ocr.get_low_confidence_words(60)] == ["INV-5"]


def test_ocr_confidence_falls_back_to_words():
    ocr = OCRResult.from_dict({"text": "x", "perWordConfidence": [{"text": "a", "confidence": 40},
                                                                  {"text": "b", "confidence": 80}]})
    assert ocr.confidence is None
    assert ocr.average_confidence == 60.0
    assert ocr.meets_confidence_threshold(60)
    assert OCRResult.from_dict(ocr.to_dict()).words == ocr.words


@pytest.mark.parametrize("content", ["{not json", json.dumps({"confidence": 80}), json.dumps([1, 2])])
def test_malformed_ocr_payload(tmp_path, content):
    path = tmp_path / "bad.json"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(CorruptedFileError):
        InputHandler().load(path)


def test_missing_and_unsupported_files(tmp_path):
    handler = InputHandler()
    with pytest.raises(DocumentNotFoundError):
        handler.load(tmp_path / "missing.txt")

    pdf = tmp_path / "invoice.pdf"
    pdf.write_bytes(b"%PDF")
    with pytest.raises(UnsupportedFileTypeError):
        handler.load(pdf)


def test_discover_and_resolve(tmp_path):
    for name in ("b.txt", "a.json", "c.pdf", "notes.md"):
        (tmp_path / name).write_text("{}")
    nested = tmp_path / "sub"
    nested.mkdir()
    (nested / "d.txt").write_text("x")

    handler = InputHandler()
    assert [p.name for p in handler.discover(tmp_path)] == ["a.json", "b.txt"]
    assert [p.name for p in handler.discover(tmp_path, recursive=True)] == ["a.json", "b.txt", "d.txt"]
    assert handler.resolve(tmp_path / "b.txt") == [tmp_path / "b.txt"]

    with pytest.raises(DocumentNotFoundError):
        handler.discover(tmp_path / "nope")
