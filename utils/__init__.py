"""Utilities for screenshot handling."""

from .image_compressor import ImageCompressor

__all__ = ['ImageCompressor']
