"""
Bundle Exporter Module.

This module packs archived invoice files into a single zip together with
an Excel summary of their metadata. Uses openpyxl for the summary sheet.

Features:
    - Formatted header row
    - Auto-column width
    - Header-only sheet for an empty selection
    - Bundle naming per day group

Bundle layout:
    {bundle}.zip
    ├── 20240302-办公用品-现金-88元.pdf
    ├── ...
    └── 发票明细.xlsx
"""

import io
import zipfile
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Union

import openpyxl
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from invoice_archive.models import UNKNOWN_DATE, ArchiveGroup, InvoiceRecord
from invoice_archive.utils.exceptions import ExportError
from invoice_archive.utils.helpers import ensure_directory, generate_timestamp
from invoice_archive.utils.logger import get_logger

logger = get_logger(__name__)


DEFAULT_SUMMARY_NAME = "发票明细.xlsx"


def bundle_name_for_group(group: ArchiveGroup) -> str:
    """
    Zip name for exporting one day's invoices.

    Returns ``{YYYYMMDD}+{method}.zip`` when the day has exactly one
    payment method, otherwise ``{YYYYMMDD}_发票.zip``.

    Example:
        >>> bundle_name_for_group(group)   # 2024-03-02, all "现金"
        "20240302+现金.zip"
    """
    date_str = group.day.replace("-", "")
    methods = sorted({
        e.record.payment_method for e in group.entries
        if e.record.payment_method and e.record.payment_method.strip()
    })

    if len(methods) == 1:
        return f"{date_str}+{methods[0]}.zip"
    return f"{date_str}_发票.zip"


class BundleExporter:
    """
    Exports archived files plus a metadata summary as one zip.

    Attributes:
        export_dir: Directory the bundles are written to
        summary_name: File name of the summary sheet inside the bundle

    Example:
        >>> exporter = BundleExporter("export_data")
        >>> path = exporter.export(paths, records, "20240302+现金.zip")
    """

    # Column definitions
    COLUMNS = [
        ('日期', 'invoice_date'),
        ('金额', 'amount'),
        ('项目名称', 'item_name'),
        ('支付方式', 'payment_method'),
        ('发票号码', 'invoice_number'),
        ('销售方名称', 'seller_name'),
        ('销售方税号', 'seller_tax_id'),
    ]

    SHEET_NAME = "发票明细"

    def __init__(
        self,
        export_dir: Union[str, Path],
        summary_name: str = DEFAULT_SUMMARY_NAME
    ) -> None:
        self.export_dir = Path(export_dir)
        self.summary_name = summary_name

        logger.debug(f"BundleExporter initialized (export_dir: {self.export_dir})")

    def export(
        self,
        paths: Iterable[Union[str, Path]],
        records: Sequence[InvoiceRecord],
        bundle_name: Optional[str] = None
    ) -> str:
        """
        Write a zip bundle.

        Args:
            paths: Files to include; entries use their base names.
                Missing files are skipped with a warning.
            records: Rows of the summary sheet. An empty sequence still
                produces a sheet with the header row.
            bundle_name: Zip file name. Auto-generated when None.

        Returns:
            Path to the created zip file.

        Raises:
            ExportError: If the bundle cannot be written.
        """
        ensure_directory(self.export_dir)

        if bundle_name is None:
            bundle_name = f"invoices_{generate_timestamp()}.zip"

        bundle_path = self.export_dir / bundle_name
        if bundle_path.exists():
            bundle_path.unlink()

        try:
            summary = self.build_summary(records)

            added = 0
            with zipfile.ZipFile(bundle_path, "w", compression=zipfile.ZIP_DEFLATED) as bundle:
                for path in paths:
                    path = Path(path)
                    if not path.is_file():
                        logger.warning(f"Skipping missing file in export: {path}")
                        continue
                    bundle.write(path, arcname=path.name)
                    added += 1

                bundle.writestr(self.summary_name, summary)

        except (OSError, zipfile.BadZipFile) as e:
            logger.error(f"Bundle export failed: {e}")
            raise ExportError(str(bundle_path), str(e))

        logger.info(f"Bundle saved: {bundle_path} ({added} files, {len(records)} rows)")
        return str(bundle_path)

    def build_summary(self, records: Sequence[InvoiceRecord]) -> bytes:
        """
        Render the summary workbook.

        Returns:
            The .xlsx file content.
        """
        workbook = openpyxl.Workbook()
        self._create_data_sheet(workbook, records)

        buffer = io.BytesIO()
        workbook.save(buffer)
        return buffer.getvalue()

    def _create_data_sheet(self, workbook, records: Sequence[InvoiceRecord]) -> None:
        sheet = workbook.active
        sheet.title = self.SHEET_NAME

        header_font = Font(bold=True, color="FFFFFF")
        header_fill = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
        header_alignment = Alignment(horizontal="center", vertical="center")
        thin_border = Border(
            left=Side(style='thin'),
            right=Side(style='thin'),
            top=Side(style='thin'),
            bottom=Side(style='thin')
        )

        for col, (header_name, _) in enumerate(self.COLUMNS, 1):
            cell = sheet.cell(row=1, column=col, value=header_name)
            cell.font = header_font
            cell.fill = header_fill
            cell.alignment = header_alignment
            cell.border = thin_border

        for row_num, record in enumerate(records, 2):
            for col, (_, field_name) in enumerate(self.COLUMNS, 1):
                cell = sheet.cell(row=row_num, column=col, value=self._cell_value(record, field_name))
                cell.border = thin_border
                if field_name == 'invoice_date':
                    cell.number_format = 'yyyy-mm-dd'
                elif field_name == 'amount':
                    cell.number_format = '0.00'

        # Adjust column widths
        for col, (header_name, _) in enumerate(self.COLUMNS, 1):
            max_length = len(header_name) * 2
            for row in range(2, len(records) + 2):
                cell_value = sheet.cell(row=row, column=col).value
                if cell_value is not None:
                    max_length = max(max_length, len(str(cell_value)))
            sheet.column_dimensions[get_column_letter(col)].width = min(max_length + 2, 50)

        sheet.freeze_panes = 'A2'

    def _cell_value(self, record: InvoiceRecord, field_name: str):
        value = getattr(record, field_name, None)
        if field_name == 'invoice_date':
            return value if value and value != UNKNOWN_DATE else None
        if field_name == 'amount':
            return float(value) if value is not None else None
        return value or ''

    def list_entries(self, bundle_path: Union[str, Path]) -> List[str]:
        """Names of the entries inside an exported bundle."""
        with zipfile.ZipFile(bundle_path) as bundle:
            return bundle.namelist()
