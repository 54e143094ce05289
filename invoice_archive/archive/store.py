"""
Archive Store Module.

A directory tree that doubles as the invoice record store:

    {archive_root}/
    ├── 2024-03/
    │   ├── 20240302-办公用品-现金-88元.pdf
    │   ├── 20240302-办公用品-现金-88元.json
    │   └── 20240302-办公用品-现金-88元_1.pdf
    └── 2024-02/
        └── ...

The store assumes a single process owns the archive root. The free-name
scan before a move is not safe against another process archiving into the
same directory at the same moment, and listing or deleting while another
process mutates the tree may see a partial state.
"""

import shutil
from collections import OrderedDict
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Union

from invoice_archive.models import (
    ArchiveEntry,
    ArchiveGroup,
    InvoiceRecord,
    StatusEvent,
    advance,
    can_advance,
    validate_for_archive,
)
from invoice_archive.utils.exceptions import (
    ArchiveError,
    InvalidStatusTransitionError,
    InvoiceArchiveError,
    PartialBatchFailure,
    SourceMissingError,
    ValidationError,
)
from invoice_archive.utils.helpers import ensure_directory, get_file_extension
from invoice_archive.utils.logger import get_logger
from .activity_log import ActivityLog
from .codec import SIDECAR_EXTENSION, ArchiveCodec, is_sidecar, sidecar_path
from .exporter import BundleExporter, bundle_name_for_group

logger = get_logger(__name__)


class ArchiveStore:
    """
    Archive of invoice files grouped by year-month directory.

    Attributes:
        archive_root: Root of the managed directory tree
        codec: ArchiveCodec used for names and sidecars
        exporter: BundleExporter used for zip exports
        activity_log: Optional ActivityLog receiving archive/delete/export events

    Example:
        >>> store = ArchiveStore.from_config(config)
        >>> archived = store.archive(record)
        >>> for entry in store.list_entries():
        ...     print(entry.day, entry.record.amount)
    """

    def __init__(
        self,
        archive_root: Union[str, Path],
        codec: Optional[ArchiveCodec] = None,
        exporter: Optional[BundleExporter] = None,
        activity_log: Optional[ActivityLog] = None
    ) -> None:
        self.archive_root = Path(archive_root)
        self.codec = codec or ArchiveCodec()
        self.exporter = exporter or BundleExporter(self.archive_root.parent / "export_data")
        self.activity_log = activity_log

        logger.debug(f"ArchiveStore initialized (root: {self.archive_root})")

    @classmethod
    def from_config(cls, config, activity_log: Optional[ActivityLog] = None) -> 'ArchiveStore':
        """Build a store from the ``paths`` and ``output`` settings."""
        exporter = BundleExporter(
            config.export_dir,
            summary_name=config.get("output.summary_filename", "发票明细.xlsx")
        )
        return cls(config.archive_dir, exporter=exporter, activity_log=activity_log)

    # ------------------------------------------------------------------
    # Archival
    # ------------------------------------------------------------------

    def archive(self, record: InvoiceRecord) -> InvoiceRecord:
        """
        Move a reviewed invoice's file into the archive.

        The file lands in ``{root}/{YYYY-MM}/`` under its encoded name; an
        existing file is never overwritten, the new name gets ``_1``,
        ``_2``, ... instead. The sidecar is written after the move; if that
        fails the archival still counts as done and later reads fall back
        to the file name.

        Args:
            record: Record in REVIEW status whose file_path exists.

        Returns:
            The record in ARCHIVED status pointing at the archived file.

        Raises:
            ValidationError: If amount or item name are missing, or the file
                has no extension or the sidecar extension.
            SourceMissingError: If the source file does not exist, including
                a second call for a source that was already archived.
            InvalidStatusTransitionError: If the record is not in REVIEW.
            ArchiveError: If the file cannot be moved.
        """
        validate_for_archive(record)
        self._check_extension(record)

        source = Path(record.file_path) if record.file_path else None
        if source is None or not source.is_file():
            raise SourceMissingError(record.file_path or record.file_name)

        if not can_advance(record, StatusEvent.ARCHIVE):
            raise InvalidStatusTransitionError(record.status.value, StatusEvent.ARCHIVE.value)

        target_dir = ensure_directory(self.archive_root / record.year_month)
        target = self._free_target(target_dir / self.codec.encode_name(record))

        try:
            shutil.move(str(source), str(target))
        except OSError as e:
            raise ArchiveError(
                f"Failed to move {source} into the archive",
                {"source": str(source), "target": str(target), "reason": str(e)}
            )

        archived = advance(record, StatusEvent.ARCHIVE, file_path=str(target), file_name=target.name)
        self._write_sidecar(target, archived)

        logger.info(f"Archived {source.name} -> {target.relative_to(self.archive_root)}")
        if self.activity_log:
            self.activity_log.log_archive(target.name)

        return archived

    def archive_many(self, records: Sequence[InvoiceRecord]) -> List[InvoiceRecord]:
        """
        Archive each record independently.

        Returns:
            The archived records, in input order.

        Raises:
            PartialBatchFailure: If any record failed; the others are still
                archived and available as ``error.succeeded``.
        """
        archived = []
        failures = []

        for record in records:
            try:
                archived.append(self.archive(record))
            except InvoiceArchiveError as e:
                logger.error(f"Archiving {record.file_name} failed: {e}")
                failures.append(f"{record.file_name}: {e}")

        if failures:
            raise PartialBatchFailure("archive", len(archived), len(records), failures, archived)

        return archived

    def _check_extension(self, record: InvoiceRecord) -> None:
        # Encoded names end in "元{ext}"; ext must be real and not the sidecar's
        extension = get_file_extension(record.file_path or record.file_name)
        if not extension or extension == SIDECAR_EXTENSION:
            raise ValidationError(
                "file_name",
                record.file_name,
                f"an archived file needs an extension other than {SIDECAR_EXTENSION}"
            )

    def _free_target(self, target: Path) -> Path:
        # A name is free only if neither the file nor its sidecar exists
        candidate = target
        counter = 1
        while candidate.exists() or sidecar_path(candidate).exists():
            candidate = target.with_name(f"{target.stem}_{counter}{target.suffix}")
            counter += 1
        return candidate

    def _write_sidecar(self, target: Path, record: InvoiceRecord) -> None:
        try:
            sidecar_path(target).write_bytes(self.codec.encode_sidecar(record))
        except OSError as e:
            logger.error(f"Failed to write sidecar for {target.name}: {e}")

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    def list_entries(self) -> List[ArchiveEntry]:
        """
        Enumerate the archive.

        Year-month directories are walked newest first and files within a
        directory in name order. Sidecars are skipped. Directories that
        cannot be read are logged and skipped.

        Returns:
            One ArchiveEntry per archived file.
        """
        entries: List[ArchiveEntry] = []

        if not self.archive_root.is_dir():
            return entries

        try:
            month_dirs = sorted(
                (d for d in self.archive_root.iterdir() if d.is_dir()),
                key=lambda d: d.name,
                reverse=True
            )
        except OSError as e:
            logger.error(f"Failed to list archive root {self.archive_root}: {e}")
            return entries

        for month_dir in month_dirs:
            try:
                files = sorted(
                    (f for f in month_dir.iterdir() if f.is_file()),
                    key=lambda f: f.name
                )
            except OSError as e:
                logger.error(f"Failed to list {month_dir}: {e}")
                continue

            for file_path in files:
                if is_sidecar(file_path):
                    continue
                entries.append(self.read_entry(file_path, month_dir.name))

        return entries

    def read_entry(self, file_path: Path, year_month: str) -> ArchiveEntry:
        """Decode one archived file, preferring its sidecar."""
        sidecar = None
        metadata_path = sidecar_path(file_path)
        if metadata_path.exists():
            try:
                sidecar = metadata_path.read_bytes()
            except OSError as e:
                logger.warning(f"Failed to read sidecar {metadata_path.name}: {e}")

        record = self.codec.decode(file_path.name, sidecar, str(file_path))

        return ArchiveEntry(
            year_month=year_month,
            day=record.invoice_date.isoformat() if record.has_known_date else "",
            file_name=file_path.name,
            file_path=str(file_path),
            record=record,
        )

    def groups(self, entries: Optional[Iterable[ArchiveEntry]] = None) -> List[ArchiveGroup]:
        """
        Group archive entries by calendar day, newest day first.

        Args:
            entries: Entries to group. Defaults to a fresh listing.
        """
        if entries is None:
            entries = self.list_entries()

        by_day = OrderedDict()
        for entry in entries:
            by_day.setdefault(entry.day, []).append(entry)

        return [
            ArchiveGroup(day=day, entries=tuple(by_day[day]))
            for day in sorted(by_day, reverse=True)
        ]

    def find_group(self, day: str) -> Optional[ArchiveGroup]:
        """The group for ``day`` (YYYY-MM-DD), or None when it is empty."""
        for group in self.groups():
            if group.day == day:
                return group
        return None

    # ------------------------------------------------------------------
    # Deletion
    # ------------------------------------------------------------------

    def delete(self, path: Union[str, Path]) -> None:
        """
        Delete an archived file and its sidecar.

        The containing directory is removed as well when it ends up empty,
        but only if it lies strictly below the archive root.

        Raises:
            SourceMissingError: If the file does not exist.
            ArchiveError: If the file cannot be removed.
        """
        path = Path(path)
        if not path.is_file():
            raise SourceMissingError(str(path))

        try:
            path.unlink()
        except OSError as e:
            raise ArchiveError(f"Failed to delete {path}", {"filepath": str(path), "reason": str(e)})

        self._delete_sidecar(path)
        self._prune_directory(path.parent)

        logger.info(f"Deleted {path.name}")

    def delete_many(self, paths: Sequence[Union[str, Path]]) -> int:
        """
        Delete each file independently.

        Returns:
            Number of deleted files.

        Raises:
            PartialBatchFailure: If any deletion failed; the rest are still
                attempted.
        """
        success_count = 0
        failures = []

        for path in paths:
            try:
                self.delete(path)
                success_count += 1
            except InvoiceArchiveError as e:
                failures.append(f"{Path(path).name}: {e}")

        if self.activity_log and success_count:
            self.activity_log.log_delete(f"Deleted {success_count}/{len(paths)} files")

        if failures:
            raise PartialBatchFailure("delete", success_count, len(paths), failures)

        return success_count

    def delete_group(self, group: ArchiveGroup) -> int:
        """Delete every file of one day group."""
        return self.delete_many(group.file_paths)

    def _delete_sidecar(self, path: Path) -> None:
        metadata_path = sidecar_path(path)
        try:
            if metadata_path.exists():
                metadata_path.unlink()
        except OSError as e:
            logger.warning(f"Failed to delete sidecar {metadata_path.name}: {e}")

    def _prune_directory(self, directory: Path) -> None:
        try:
            directory = directory.resolve()
            root = self.archive_root.resolve()

            if directory == root or root not in directory.parents:
                return

            if not any(directory.iterdir()):
                directory.rmdir()
                logger.debug(f"Removed empty archive directory {directory.name}")
        except OSError as e:
            logger.warning(f"Failed to remove empty directory {directory}: {e}")

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def export_bundle(
        self,
        paths: Sequence[Union[str, Path]],
        records: Sequence[InvoiceRecord],
        bundle_name: Optional[str] = None
    ) -> str:
        """
        Zip the given files together with a summary sheet of ``records``.

        Returns:
            Path to the bundle.
        """
        bundle_path = self.exporter.export(paths, records, bundle_name)

        if self.activity_log:
            self.activity_log.log_export(f"Exported {len(paths)} invoices => {Path(bundle_path).name}")

        return bundle_path

    def export_group(self, group: ArchiveGroup) -> str:
        """Export one day group under its conventional bundle name."""
        return self.export_bundle(group.file_paths, group.records, bundle_name_for_group(group))
