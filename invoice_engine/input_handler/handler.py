"""
Main Input Handler Module.

This module provides the InputHandler class that loads already-acquired
document text from disk. Native text arrives as ``.txt`` files; OCR
collaborator output arrives as ``.json`` payloads.

Usage:
    from invoice_engine.input_handler import InputHandler

    handler = InputHandler()
    document = handler.load("invoice.txt")

    # Discover a directory
    paths = handler.discover("./invoices/")

Classes:
    SourceDocument: Text of one document plus optional OCR detail
    InputHandler: Main class for file input handling
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Union, List, Optional

from config import get_config
from invoice_engine.utils.logger import get_logger
from invoice_engine.utils.helpers import get_file_extension
from invoice_engine.utils.exceptions import (
    InputError,
    UnsupportedFileTypeError,
    DocumentNotFoundError,
    CorruptedFileError
)

from .ocr_result import OCRResult


# Initialize module logger
logger = get_logger(__name__)


@dataclass
class SourceDocument:
    """
    Text acquired for one source document.

    Attributes:
        source_id: Identifier of the source (usually the file name)
        text: Full document text
        ocr: OCR detail when the text came from recognition
    """
    source_id: str
    text: str
    ocr: Optional[OCRResult] = None

    @property
    def is_ocr(self) -> bool:
        """Whether the text was produced by OCR."""
        return self.ocr is not None

    def __repr__(self) -> str:
        return (
            f"SourceDocument(source_id='{self.source_id}', "
            f"chars={len(self.text)}, ocr={self.is_ocr})"
        )


class InputHandler:
    """
    Main input handler for acquired document text.

    Attributes:
        supported_extensions: Set of supported file extensions
        encoding: Text encoding used to read files

    Example:
        >>> handler = InputHandler()
        >>> document = handler.load("invoice.json")
        >>> print(document.ocr.average_confidence)
    """

    TEXT_EXTENSIONS = {'.txt'}
    OCR_EXTENSIONS = {'.json'}

    def __init__(self, encoding: Optional[str] = None) -> None:
        """
        Initialize the InputHandler.

        Args:
            encoding: Text encoding. Defaults to ``input.encoding``
                from configuration.
        """
        self.supported_extensions = self.TEXT_EXTENSIONS | self.OCR_EXTENSIONS
        self.encoding = encoding or get_config("input.encoding", "utf-8-sig")

        logger.debug(f"InputHandler initialized with extensions: {sorted(self.supported_extensions)}")

    def detect_file_type(self, filepath: Union[str, Path]) -> str:
        """
        Detect the type of input file.

        Returns:
            File type string: 'text' or 'ocr'.

        Raises:
            UnsupportedFileTypeError: If file type is not supported.
        """
        extension = get_file_extension(filepath)

        if extension in self.TEXT_EXTENSIONS:
            return 'text'
        elif extension in self.OCR_EXTENSIONS:
            return 'ocr'
        raise UnsupportedFileTypeError(extension, sorted(self.supported_extensions))

    def validate_file(self, filepath: Union[str, Path]) -> Path:
        """
        Validate that a file exists and is accessible.

        Raises:
            DocumentNotFoundError: If file doesn't exist.
            InputError: If the path is not a regular file.
            UnsupportedFileTypeError: If file type is not supported.
        """
        path = Path(filepath)

        if not path.exists():
            raise DocumentNotFoundError(str(filepath))

        if not path.is_file():
            raise InputError(f"Path is not a file: {filepath}")

        self.detect_file_type(path)
        return path

    def load(self, filepath: Union[str, Path]) -> SourceDocument:
        """
        Load one document.

        Args:
            filepath: Path to a ``.txt`` or ``.json`` file.

        Returns:
            SourceDocument with the document text.

        Raises:
            DocumentNotFoundError: If the file is missing.
            UnsupportedFileTypeError: If the extension is not supported.
            CorruptedFileError: If the file cannot be decoded.
        """
        path = self.validate_file(filepath)
        file_type = self.detect_file_type(path)
        logger.debug(f"Loading {file_type} file: {path}")

        try:
            content = path.read_text(encoding=self.encoding)
        except (OSError, UnicodeDecodeError) as e:
            raise CorruptedFileError(str(path), str(e)) from e

        if file_type == 'text':
            return SourceDocument(source_id=path.name, text=content)

        try:
            payload = json.loads(content)
        except json.JSONDecodeError as e:
            raise CorruptedFileError(str(path), f"Invalid JSON: {e}") from e

        if not isinstance(payload, dict) or 'text' not in payload:
            raise CorruptedFileError(str(path), "OCR payload must be an object with a 'text' field")

        try:
            ocr = OCRResult.from_dict(payload)
        except (TypeError, ValueError, AttributeError) as e:
            raise CorruptedFileError(str(path), f"Malformed OCR payload: {e}") from e

        return SourceDocument(source_id=path.name, text=ocr.text, ocr=ocr)

    def discover(
        self,
        directory: Union[str, Path],
        recursive: bool = False
    ) -> List[Path]:
        """
        Collect all supported files in a directory.

        Args:
            directory: Path to directory containing documents.
            recursive: Whether to search subdirectories.

        Returns:
            Sorted list of file paths.

        Raises:
            DocumentNotFoundError: If the directory doesn't exist.
            InputError: If the path is not a directory.
        """
        directory = Path(directory)

        if not directory.exists():
            raise DocumentNotFoundError(str(directory))

        if not directory.is_dir():
            raise InputError(f"Path is not a directory: {directory}")

        pattern = "**/*" if recursive else "*"
        files = [
            path for path in directory.glob(pattern)
            if path.is_file() and get_file_extension(path) in self.supported_extensions
        ]
        files = sorted(set(files))

        logger.info(f"Found {len(files)} files to process in {directory}")
        return files

    def resolve(self, target: Union[str, Path]) -> List[Path]:
        """Expand a file or directory argument into a list of files."""
        path = Path(target)
        if path.is_dir():
            return self.discover(path)
        return [path]
