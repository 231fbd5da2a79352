"""
OCR Result Data Classes.

This module defines the data structures handed over by an OCR
collaborator. Recognition itself happens outside the engine; these
classes only describe its output.

Classes:
    OCRWord: Individual recognized word with its confidence
    OCRResult: Complete OCR output for one document

Author: ML Engineering Team
"""

from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional


@dataclass
class OCRWord:
    """
    Represents a single word/token recognized by OCR.

    Attributes:
        text: The recognized text content
        confidence: OCR confidence score (0-100)

    Example:
        >>> word = OCRWord(text="Invoice", confidence=95.5)
    """
    text: str
    confidence: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary format."""
        return {'text': self.text, 'confidence': self.confidence}

    def __repr__(self) -> str:
        return f"OCRWord('{self.text}', conf={self.confidence:.1f})"


@dataclass
class OCRResult:
    """
    Complete OCR result for a single document.

    Attributes:
        text: Full recognized text
        confidence: Document-level confidence (0-100), if reported
        words: Per-word recognition results
        engine: OCR engine name

    Example:
        >>> result = OCRResult.from_dict({
        ...     "text": "Invoice Number: INV-001",
        ...     "confidence": 88,
        ...     "perWordConfidence": [{"text": "INV-001", "confidence": 41}]
        ... })
        >>> result.meets_confidence_threshold(60)
        True
    """
    text: str = ""
    confidence: Optional[float] = None
    words: List[OCRWord] = field(default_factory=list)
    engine: str = "unknown"

    @property
    def word_count(self) -> int:
        """Get total number of words."""
        return len(self.words)

    @property
    def average_confidence(self) -> float:
        """
        Document confidence, falling back to the mean word confidence.

        Returns:
            Confidence in the 0-100 range, 0.0 when nothing was reported.
        """
        if self.confidence is not None:
            return float(self.confidence)
        if not self.words:
            return 0.0
        return sum(w.confidence for w in self.words) / len(self.words)

    def meets_confidence_threshold(self, threshold: float) -> bool:
        """Check whether the document confidence reaches the threshold."""
        return self.average_confidence >= threshold

    def get_low_confidence_words(self, threshold: float) -> List[OCRWord]:
        """
        Get words recognized below the confidence threshold.

        Args:
            threshold: Minimum acceptable word confidence.

        Returns:
            Words in reading order whose confidence is below threshold.
        """
        return [w for w in self.words if w.confidence < threshold]

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to the collaborator payload format.

        Returns:
            Dictionary with text, confidence and perWordConfidence.
        """
        return {
            'text': self.text,
            'confidence': self.confidence,
            'perWordConfidence': [w.to_dict() for w in self.words],
            'engine': self.engine
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'OCRResult':
        """
        Create OCRResult from a collaborator payload.

        Args:
            data: Dictionary with 'text', optional 'confidence' and
                optional 'perWordConfidence' entries.

        Returns:
            OCRResult instance.
        """
        words = [
            OCRWord(text=str(w.get('text', '')), confidence=float(w.get('confidence', 0.0)))
            for w in data.get('perWordConfidence') or []
        ]
        confidence = data.get('confidence')
        return cls(
            text=str(data.get('text') or ''),
            confidence=float(confidence) if confidence is not None else None,
            words=words,
            engine=str(data.get('engine', 'unknown'))
        )

    def __repr__(self) -> str:
        return (
            f"OCRResult(words={self.word_count}, "
            f"confidence={self.average_confidence:.1f})"
        )
