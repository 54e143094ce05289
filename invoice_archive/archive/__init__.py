"""
Archive Module for Invoice Archive System.

This module provides:
    - The naming/sidecar codec for archived files
    - The directory-based archive store (archive, list, delete)
    - Zip bundle export with an Excel summary
    - The user-facing activity log
"""

from .activity_log import ActivityEntry, ActivityLog
from .codec import ArchiveCodec, sidecar_name
from .exporter import BundleExporter, bundle_name_for_group
from .store import ArchiveStore

__all__ = [
    'ActivityEntry',
    'ActivityLog',
    'ArchiveCodec',
    'ArchiveStore',
    'BundleExporter',
    'bundle_name_for_group',
    'sidecar_name',
]
