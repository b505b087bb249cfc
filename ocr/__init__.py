"""OCR module for text extraction from screenshots."""

from ocr.ocr_engine import OCREngine, join_extracted_texts

__all__ = ['OCREngine', 'join_extracted_texts']
