"""
Input Handler Module for Invoice Archive System.

This module handles turning uploaded files into reviewed invoice records:
    - PDF first-page rendering
    - Image preparation for the OCR provider's limits
    - The upload-to-review ingestion pipeline
"""

from .handler import IngestionPipeline
from .image_processor import ImageProcessor
from .pdf_processor import PDFProcessor

__all__ = ['IngestionPipeline', 'ImageProcessor', 'PDFProcessor']
