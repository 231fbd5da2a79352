"""
Input Handler Module.

Loads document text produced by external text-acquisition
collaborators (native text extraction or OCR).
"""

from .ocr_result import OCRWord, OCRResult
from .handler import SourceDocument, InputHandler

__all__ = ['OCRWord', 'OCRResult', 'SourceDocument', 'InputHandler']
