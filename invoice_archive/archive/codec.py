"""
Archive Codec Module.

Maps invoice records to their on-disk representation and back:

    {YYYYMMDD}-{item}-{method}-{amount}元{ext}     archived file
    {YYYYMMDD}-{item}-{method}-{amount}元.json     sidecar metadata

The sidecar is authoritative and lossless. The file name is a secondary
index: decoding it recovers date, amount and payment method, but any
hyphen that was inside the item name cannot be told apart from the field
delimiter.
"""

import json
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, Optional

from dateutil import parser as date_parser

from invoice_archive.models import (
    UNKNOWN_DATE,
    InvoiceRecord,
    InvoiceStatus,
)
from invoice_archive.utils.helpers import safe_filename
from invoice_archive.utils.logger import get_logger

logger = get_logger(__name__)


FIELD_SEPARATOR = "-"
SEPARATOR_REPLACEMENT = "_"
AMOUNT_SUFFIX = "元"
DATE_FORMAT = "%Y%m%d"
SIDECAR_EXTENSION = ".json"
MIN_NAME_PARTS = 4
DEDUP_SUFFIX = re.compile(r"_\d+$")

UNNAMED_ITEM = "未命名"
UNCATEGORIZED_METHOD = "未分类"

# Sidecar key -> record field. PascalCase keys are read for sidecars
# written by the earlier desktop application.
SIDECAR_FIELDS = {
    "invoiceDate": "invoice_date",
    "amount": "amount",
    "itemName": "item_name",
    "paymentMethod": "payment_method",
    "invoiceNumber": "invoice_number",
    "sellerName": "seller_name",
    "sellerTaxId": "seller_tax_id",
}


def format_amount(amount: Decimal) -> str:
    """Plain decimal notation of an amount (no exponent)."""
    return format(amount, "f")


def sidecar_name(file_name: str) -> str:
    """
    Name of the sidecar that belongs to an archived file.

    Example:
        >>> sidecar_name("20240302-办公用品-现金-88元.pdf")
        "20240302-办公用品-现金-88元.json"
    """
    return Path(file_name).stem + SIDECAR_EXTENSION


def sidecar_path(file_path) -> Path:
    return Path(file_path).with_suffix(SIDECAR_EXTENSION)


def is_sidecar(file_path) -> bool:
    return Path(file_path).suffix.lower() == SIDECAR_EXTENSION


class ArchiveCodec:
    """
    Encoder/decoder between InvoiceRecord and archive names/sidecars.

    Example:
        >>> codec = ArchiveCodec()
        >>> name = codec.encode_name(record)
        >>> codec.decode(name).payment_method
        "现金"
    """

    def encode_name(self, record: InvoiceRecord, extension: Optional[str] = None) -> str:
        """
        Build the canonical archive file name for a record.

        Args:
            record: Record to encode.
            extension: File extension including the dot. Defaults to the
                extension of ``record.file_path`` (or ``record.file_name``).

        Returns:
            File name with separators inside fields replaced by "_" and
            characters illegal in file names replaced by "_".
        """
        if extension is None:
            extension = Path(record.file_path or record.file_name).suffix

        item_name = self._encode_field(record.item_name, UNNAMED_ITEM)
        payment_method = self._encode_field(record.payment_method, UNCATEGORIZED_METHOD)

        name = (
            f"{record.invoice_date.strftime(DATE_FORMAT)}"
            f"{FIELD_SEPARATOR}{item_name}"
            f"{FIELD_SEPARATOR}{payment_method}"
            f"{FIELD_SEPARATOR}{format_amount(record.amount)}{AMOUNT_SUFFIX}{extension}"
        )
        return safe_filename(name)

    def encode_sidecar(self, record: InvoiceRecord) -> bytes:
        """
        Serialize the sidecar-carried fields of a record.

        Returns:
            UTF-8 encoded JSON document. The amount is written as a string
            to keep its exact decimal digits.
        """
        metadata = {
            "invoiceDate": record.invoice_date.isoformat(),
            "amount": format_amount(record.amount),
            "itemName": record.item_name or "",
            "paymentMethod": record.payment_method or "",
            "invoiceNumber": record.invoice_number or "",
            "sellerName": record.seller_name or "",
            "sellerTaxId": record.seller_tax_id or "",
        }
        return json.dumps(metadata, ensure_ascii=False, indent=2).encode("utf-8")

    def decode(
        self,
        file_name: str,
        sidecar: Optional[bytes] = None,
        file_path: str = ""
    ) -> InvoiceRecord:
        """
        Rebuild an archived record.

        Uses the sidecar when one is given and readable, otherwise falls
        back to parsing the file name.

        Args:
            file_name: Base name of the archived file.
            sidecar: Raw sidecar content, or None when there is no sidecar.
            file_path: Full path of the archived file.

        Returns:
            InvoiceRecord in ARCHIVED status.
        """
        if sidecar is not None:
            try:
                return self.decode_sidecar(file_name, sidecar, file_path)
            except (ValueError, TypeError, InvalidOperation) as e:
                logger.warning(f"Unreadable sidecar for {file_name}, parsing file name instead: {e}")

        logger.debug(f"Decoding {file_name} from its file name")
        return self.decode_filename(file_name, file_path)

    def decode_sidecar(self, file_name: str, sidecar: bytes, file_path: str = "") -> InvoiceRecord:
        """
        Authoritative decode path: read every field from the sidecar.

        Raises:
            ValueError: If the sidecar is not a JSON object, a field
                cannot be converted or the amount is negative or not finite.
        """
        text = sidecar.decode("utf-8-sig") if isinstance(sidecar, bytes) else sidecar
        metadata = json.loads(text, parse_float=Decimal)
        if not isinstance(metadata, dict):
            raise ValueError("sidecar is not a JSON object")

        values = self._read_sidecar_fields(metadata)

        return InvoiceRecord(
            file_name=file_name,
            file_path=file_path,
            status=InvoiceStatus.ARCHIVED,
            invoice_date=self._parse_sidecar_date(values.get("invoice_date")),
            amount=self._parse_sidecar_amount(values.get("amount")),
            item_name=values.get("item_name") or "",
            payment_method=values.get("payment_method") or "",
            invoice_number=values.get("invoice_number") or "",
            seller_name=values.get("seller_name") or "",
            seller_tax_id=values.get("seller_tax_id") or "",
        )

    def decode_filename(self, file_name: str, file_path: str = "") -> InvoiceRecord:
        """
        Fallback decode path: parse fields from the file name by position.

        Names with fewer than four parts yield a degraded record carrying
        only the file name, path and status; this never raises.
        """
        path = Path(file_name)
        parts = path.stem.split(FIELD_SEPARATOR)

        if len(parts) < MIN_NAME_PARTS:
            logger.debug(f"File name has {len(parts)} parts, returning degraded record: {file_name}")
            return InvoiceRecord(
                file_name=file_name,
                file_path=file_path,
                status=InvoiceStatus.ARCHIVED,
                invoice_date=UNKNOWN_DATE,
                payment_method="",
            )

        try:
            invoice_date = datetime.strptime(parts[0], DATE_FORMAT).date()
        except ValueError:
            invoice_date = UNKNOWN_DATE

        amount = self._parse_name_amount(parts[-1])

        return InvoiceRecord(
            file_name=file_name,
            file_path=file_path,
            status=InvoiceStatus.ARCHIVED,
            invoice_date=invoice_date,
            amount=amount,
            item_name=FIELD_SEPARATOR.join(parts[1:-2]),
            payment_method=parts[-2],
        )

    def _parse_name_amount(self, text: str) -> Decimal:
        # Drop the "_N" suffix added when the name was de-duplicated
        amount_text = DEDUP_SUFFIX.sub("", text).replace(AMOUNT_SUFFIX, "")
        if SEPARATOR_REPLACEMENT in amount_text:
            return Decimal("0")

        try:
            amount = Decimal(amount_text)
        except InvalidOperation:
            return Decimal("0")

        return amount if amount.is_finite() else Decimal("0")

    def _encode_field(self, value: str, placeholder: str) -> str:
        if not value or not value.strip():
            return placeholder
        return value.replace(FIELD_SEPARATOR, SEPARATOR_REPLACEMENT)

    def _read_sidecar_fields(self, metadata: Dict[str, Any]) -> Dict[str, Any]:
        values = {}
        for key, field_name in SIDECAR_FIELDS.items():
            pascal_key = key[0].upper() + key[1:]
            if key in metadata:
                values[field_name] = metadata[key]
            elif pascal_key in metadata:
                values[field_name] = metadata[pascal_key]
        return values

    def _parse_sidecar_date(self, value: Any) -> date:
        if not value:
            return UNKNOWN_DATE
        # Desktop sidecars carry a full timestamp ("2024-03-02T00:00:00")
        return date_parser.isoparse(str(value)).date()

    def _parse_sidecar_amount(self, value: Any) -> Decimal:
        if value is None or value == "":
            return Decimal("0")

        amount = Decimal(str(value))
        if not amount.is_finite() or amount < 0:
            raise ValueError(f"sidecar amount out of range: {value}")
        return amount
