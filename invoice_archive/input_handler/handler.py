"""
Ingestion Pipeline Module.

This module provides the IngestionPipeline class that takes an uploaded
receipt from a raw file to an InvoiceRecord ready for review:

    save_upload -> PENDING -> PROCESSING -> (render/prepare, OCR, normalize) -> REVIEW

Recognition problems never abort ingestion. A record whose PDF could not
be rendered, whose OCR call failed or whose response was malformed still
reaches REVIEW, with the error text in ``raw_ocr_data`` and its fields at
their defaults, so the user can fill them in by hand.

Usage:
    from invoice_archive.input_handler import IngestionPipeline

    pipeline = IngestionPipeline(config, BaiduOCRClient(config))
    path = pipeline.save_upload(data, "scan.pdf")
    record = pipeline.ingest(path)
"""

import shutil
from dataclasses import replace
from datetime import date
from pathlib import Path
from typing import List, Optional, Sequence, Union

from config import ConfigurationManager
from invoice_archive.archive.activity_log import ActivityLog
from invoice_archive.models import (
    InvoiceRecord,
    InvoiceStatus,
    StatusEvent,
    advance,
)
from invoice_archive.ocr_engine import OCRResultNormalizer
from invoice_archive.utils.exceptions import (
    InputError,
    OCRError,
    SourceMissingError,
    UnsupportedFileTypeError,
)
from invoice_archive.utils.helpers import (
    ensure_directory,
    get_file_extension,
    safe_filename,
    unique_path,
)
from invoice_archive.utils.logger import get_logger

from .image_processor import ImageProcessor
from .pdf_processor import PDFProcessor

logger = get_logger(__name__)


class IngestionPipeline:
    """
    Upload-to-review pipeline for invoice files.

    Attributes:
        config: Settings record
        ocr_client: Object with ``recognize(image_bytes) -> bytes``
        normalizer: OCRResultNormalizer instance
        pdf_processor: PDFProcessor instance for PDF files
        image_processor: ImageProcessor instance for image files
        activity_log: Optional ActivityLog receiving upload events

    Example:
        >>> pipeline = IngestionPipeline(config, client)
        >>> records = pipeline.ingest_many(["a.pdf", "b.jpg"])
        >>> [r.status.value for r in records]
        ['review', 'review']
    """

    PDF_EXTENSIONS = {'.pdf'}
    IMAGE_EXTENSIONS = {'.jpg', '.jpeg', '.png', '.bmp', '.tif', '.tiff'}

    def __init__(
        self,
        config: ConfigurationManager,
        ocr_client,
        normalizer: Optional[OCRResultNormalizer] = None,
        pdf_processor: Optional[PDFProcessor] = None,
        image_processor: Optional[ImageProcessor] = None,
        activity_log: Optional[ActivityLog] = None
    ) -> None:
        self.config = config
        self.ocr_client = ocr_client
        self.normalizer = normalizer or OCRResultNormalizer(config)
        self.pdf_processor = pdf_processor or PDFProcessor(config)
        self.image_processor = image_processor or ImageProcessor(config)
        self.activity_log = activity_log

        logger.info("IngestionPipeline initialized")

    @property
    def supported_extensions(self) -> List[str]:
        return sorted(self.PDF_EXTENSIONS | self.IMAGE_EXTENSIONS)

    def save_upload(self, data: bytes, file_name: str) -> Path:
        """
        Store an uploaded file in the temp upload directory.

        Args:
            data: File content.
            file_name: Original file name.

        Returns:
            Path of the stored copy; ``_1``, ``_2``, ... is appended when the
            name is already taken.
        """
        self.detect_file_type(file_name)

        upload_dir = ensure_directory(self.config.temp_upload_dir)
        target = unique_path(upload_dir / safe_filename(Path(file_name).name))
        target.write_bytes(data)

        logger.info(f"Saved upload {file_name} -> {target}")
        return target

    def detect_file_type(self, filepath: Union[str, Path]) -> str:
        """
        Classify a file as 'pdf' or 'image' by extension.

        Raises:
            UnsupportedFileTypeError: If the extension is not supported.
        """
        extension = get_file_extension(filepath)

        if extension in self.PDF_EXTENSIONS:
            return 'pdf'
        if extension in self.IMAGE_EXTENSIONS:
            return 'image'

        raise UnsupportedFileTypeError(extension, self.supported_extensions)

    def ingest(self, filepath: Union[str, Path], default_date: Optional[date] = None) -> InvoiceRecord:
        """
        Recognize one invoice file.

        Args:
            filepath: Path of the (uploaded) invoice file.
            default_date: Date kept when recognition yields no readable date.

        Returns:
            InvoiceRecord in REVIEW status.

        Raises:
            SourceMissingError: If the file does not exist.
            UnsupportedFileTypeError: If the file type is not supported.
        """
        path = Path(filepath)
        if not path.is_file():
            raise SourceMissingError(str(path))

        file_type = self.detect_file_type(path)

        record = InvoiceRecord(file_name=path.name, file_path=str(path))
        record = advance(record, StatusEvent.START_RECOGNITION)
        logger.info(f"Recognizing {path.name} ({file_type})")

        try:
            image_bytes = self._prepare(path, file_type)
            response = self.ocr_client.recognize(image_bytes)
            record = self.normalizer.normalize(
                response,
                record.file_name,
                file_path=record.file_path,
                default_date=default_date
            )
        except (InputError, OCRError, OSError) as e:
            logger.error(f"Recognition failed for {path.name}: {e}")
            record = advance(
                record,
                StatusEvent.RECOGNITION_FAILED,
                invoice_date=default_date or record.invoice_date,
                raw_ocr_data=f"Recognition failed: {e}"
            )

        if self.activity_log:
            self.activity_log.log_upload(record.file_name, record.amount)

        return record

    def ingest_many(
        self,
        filepaths: Sequence[Union[str, Path]],
        default_date: Optional[date] = None
    ) -> List[InvoiceRecord]:
        """
        Recognize several files one after another.

        Files that are missing or of an unsupported type are logged and
        skipped; every other file yields a record in REVIEW.
        """
        records = []
        for i, filepath in enumerate(filepaths, 1):
            logger.info(f"Processing file {i}/{len(filepaths)}: {Path(filepath).name}")
            try:
                records.append(self.ingest(filepath, default_date))
            except (SourceMissingError, UnsupportedFileTypeError) as e:
                logger.error(f"Skipping {filepath}: {e}")

        logger.info(f"Batch ingestion complete: {len(records)}/{len(filepaths)} files recognized")
        return records

    def apply_date_to_all(self, records: Sequence[InvoiceRecord], day: date) -> List[InvoiceRecord]:
        """Set ``day`` as the invoice date of every record under review."""
        return [
            replace(record, invoice_date=day) if record.status == InvoiceStatus.REVIEW else record
            for record in records
        ]

    def cleanup_temp_uploads(self) -> int:
        """
        Remove everything left in the temp upload directory.

        Returns:
            Number of removed entries. Failures are logged and skipped.
        """
        upload_dir = Path(self.config.temp_upload_dir)
        if not upload_dir.is_dir():
            return 0

        removed = 0
        for entry in upload_dir.iterdir():
            try:
                if entry.is_dir():
                    shutil.rmtree(entry)
                else:
                    entry.unlink()
                removed += 1
            except OSError as e:
                logger.warning(f"Could not remove temp upload {entry}: {e}")

        logger.info(f"Cleaned up {removed} temp uploads")
        return removed

    def _prepare(self, path: Path, file_type: str) -> bytes:
        data = path.read_bytes()
        if file_type == 'pdf':
            return self.pdf_processor.render_first_page(data, path.name)
        return self.image_processor.prepare_for_ocr(data, path.name)
