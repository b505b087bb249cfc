"""
OCR Engine for Screenshot Text
EasyOCR with screen-text preprocessing, used by the OCR+text execution path
and by the rate-limit fallback.
"""

import asyncio
import os
from typing import List, Sequence, Tuple

import cv2
import numpy as np

from core.config import OCR_SEPARATOR


class OCREngine:
    """
    OCR engine for on-screen questions and code.
    Uses EasyOCR with upscaling and contrast normalisation tuned for
    rendered (not handwritten) text.

    Extraction never raises to the caller: an unreadable image contributes
    an empty string, which is dropped before concatenation.
    """
    
    def __init__(self, use_gpu: bool = False, lang: str = 'en'):
        self.use_gpu = use_gpu
        self.lang = [lang] if isinstance(lang, str) else lang
        self.reader = None
    
    def _initialize_reader(self):
        """Initialize EasyOCR on first use (model loading is slow)."""
        if self.reader is not None:
            return
        try:
            import easyocr
            self.reader = easyocr.Reader(
                self.lang,
                gpu=self.use_gpu,
                verbose=False
            )
            print("✓ EasyOCR initialized for screenshot text")
        except Exception as e:
            raise RuntimeError(f"Failed to initialize EasyOCR: {str(e)}")
    
    def preprocess_image(self, image_path: str) -> np.ndarray:
        """
        Preprocessing for screen-rendered text.
        
        Strategy:
        - Upscale small captures (2.5x below 1920px wide, 1.5x otherwise)
        - Grayscale and normalise contrast
        - Moderate sharpening, no thresholding (EasyOCR handles it)
        """
        img = cv2.imread(image_path)
        if img is None:
            raise ValueError(f"Unable to read image: {image_path}")
        
        height, width = img.shape[:2]
        scale = 2.5 if width < 1920 else 1.5
        upscaled = cv2.resize(
            img, (int(width * scale), int(height * scale)),
            interpolation=cv2.INTER_LANCZOS4
        )
        
        gray = cv2.cvtColor(upscaled, cv2.COLOR_BGR2GRAY)
        normalized = cv2.normalize(gray, None, 0, 255, cv2.NORM_MINMAX)
        
        kernel = np.array([[0, -1, 0],
                           [-1, 5, -1],
                           [0, -1, 0]])
        sharpened = cv2.filter2D(normalized, -1, kernel)
        
        return sharpened
    
    def run_ocr(self, processed_img: np.ndarray) -> List[Tuple[str, float, List]]:
        """Run EasyOCR and return (text, confidence, bbox) detections."""
        self._initialize_reader()
        results = self.reader.readtext(
            processed_img,
            detail=1,
            paragraph=False,
            width_ths=0.7,
            mag_ratio=1.0,
        )
        
        detections = []
        for item in results:
            if len(item) >= 3:
                bbox, text, conf = item[0], item[1], item[2]
                detections.append((str(text).strip(), float(conf), bbox))
        
        return detections
    
    def reconstruct_lines(self, detections: List[Tuple[str, float, List]]) -> str:
        """Rebuild reading order: group detections into lines, left to right."""
        if not detections:
            return ""
        
        lines = {}
        for text, conf, bbox in detections:
            if not text:
                continue
            y_pos = int(np.mean([p[1] for p in bbox])) if bbox else 0
            line_key = y_pos // 30  # Grouping tolerance
            lines.setdefault(line_key, []).append((text, bbox))
        
        rebuilt = []
        for line_key in sorted(lines.keys()):
            items = sorted(lines[line_key], key=lambda item: self._get_x_pos(item[1]))
            rebuilt.append(" ".join(text for text, _ in items))
        
        return "\n".join(rebuilt)
    
    def _get_x_pos(self, bbox) -> float:
        """Get X position from bounding box."""
        if not bbox:
            return 0
        return float(np.mean([p[0] for p in bbox]))
    
    def extract_text(self, image_path: str) -> str:
        """
        Extract text from one screenshot.
        
        Returns:
            Recognised text, or "" when the file is missing or OCR fails
        """
        if not os.path.exists(image_path):
            print(f"⚠️ Image file not found: {image_path}")
            return ""
        
        try:
            processed = self.preprocess_image(image_path)
            detections = self.run_ocr(processed)
            text = self.reconstruct_lines(detections)
            print(f"✓ OCR completed for {os.path.basename(image_path)} ({len(text)} chars)")
            return text.strip()
        except Exception as e:
            print(f"❌ OCR extraction failed for {image_path}: {e}")
            return ""
    
    async def extract_text_from_multiple(self, paths: Sequence[str]) -> str:
        """
        Extract text from several screenshots, keeping queue order.
        
        Args:
            paths: Screenshot paths in capture order
            
        Returns:
            Per-image texts joined with a visible separator; empty results
            are dropped. "" on total failure.
        """
        if not paths:
            return ""
        
        # gather keeps input order regardless of completion order
        texts = await asyncio.gather(
            *(asyncio.to_thread(self.extract_text, path) for path in paths)
        )
        return join_extracted_texts(texts)


def join_extracted_texts(texts: Sequence[str]) -> str:
    """Join per-image OCR results in order, dropping empty ones."""
    valid = [text.strip() for text in texts if text and text.strip()]
    return OCR_SEPARATOR.join(valid)
