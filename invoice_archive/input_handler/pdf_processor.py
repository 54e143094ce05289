"""
PDF Processor Module.

Renders the first page of a PDF to a PNG image for the OCR provider,
which only accepts images. Uses PyMuPDF for rendering.
"""

import fitz  # PyMuPDF

from config import ConfigurationManager
from invoice_archive.utils.exceptions import (
    CorruptedFileError,
    EmptyInputError,
    InvalidFormatError,
)
from invoice_archive.utils.logger import get_logger

logger = get_logger(__name__)

PDF_SIGNATURE = b"%PDF-"


class PDFProcessor:
    """
    Processor for PDF invoices.

    Attributes:
        dpi: Resolution the page is rendered at

    Example:
        >>> processor = PDFProcessor()
        >>> png_bytes = processor.render_first_page(pdf_bytes)
    """

    def __init__(self, config: ConfigurationManager = None) -> None:
        config = config or ConfigurationManager(autoload=False)
        self.dpi = config.get("input.pdf.dpi", 300)

        logger.debug(f"PDFProcessor initialized (DPI={self.dpi})")

    def render_first_page(self, pdf_bytes: bytes, source: str = None) -> bytes:
        """
        Render page one of a PDF document.

        Args:
            pdf_bytes: Raw PDF file content.
            source: File name used in error messages.

        Returns:
            PNG encoded image of the first page.

        Raises:
            EmptyInputError: If the input has zero length.
            InvalidFormatError: If the input lacks the "%PDF-" header.
            CorruptedFileError: If the document cannot be rendered.
        """
        if not pdf_bytes:
            raise EmptyInputError(source)

        if not pdf_bytes.startswith(PDF_SIGNATURE):
            raise InvalidFormatError("PDF", "missing %PDF- header", source)

        try:
            with fitz.open(stream=pdf_bytes, filetype="pdf") as doc:
                if doc.page_count == 0:
                    raise CorruptedFileError(source or "<memory>", "document has no pages")

                page = doc.load_page(0)

                # Default PDF resolution is 72 DPI
                zoom = self.dpi / 72.0
                pix = page.get_pixmap(matrix=fitz.Matrix(zoom, zoom))
                png_bytes = pix.tobytes("png")

        except CorruptedFileError:
            raise
        except Exception as e:
            logger.error(f"PyMuPDF rendering failed: {e}")
            raise CorruptedFileError(source or "<memory>", str(e))

        logger.debug(f"Rendered first PDF page ({len(png_bytes)} bytes PNG)")
        return png_bytes
