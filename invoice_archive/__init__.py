"""
Invoice Archive System.

Ingests scanned or photographed receipts, extracts their fields through an
OCR service and archives them in a self-describing directory layout that
doubles as the record store.

Subpackages:
    models: InvoiceRecord and its status state machine
    ocr_engine: OCR client and response normalization
    input_handler: PDF/image preparation and the ingestion pipeline
    archive: Naming codec, archive store, bundle export, activity log
    statistics: Aggregation and heatmap
    utils: Logging, exceptions, helpers
"""

__version__ = "1.0.0"

__all__ = [
    'models',
    'ocr_engine',
    'input_handler',
    'archive',
    'statistics',
    'utils',
]
