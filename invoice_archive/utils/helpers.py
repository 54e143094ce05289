"""
Helper Utilities Module.

Generic filesystem and scheduling helpers shared by the archive,
ingestion and export code.

Functions:
    - ensure_directory: Create directory if it doesn't exist
    - get_file_extension: Extract file extension safely
    - generate_timestamp: Generate formatted timestamps
    - safe_filename: Replace characters illegal in file names
    - unique_path: First free "_N"-suffixed variant of a path
    - merge_dicts: Deep merge of two dictionaries
    - run_in_background: Run a callable on the shared worker pool
"""

import atexit
import re
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime
from pathlib import Path
from typing import Callable, Union

# Characters not allowed in Windows filenames
INVALID_FILENAME_CHARS = r'[<>:"/\\|?*\x00-\x1f]'

_executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="invoice_archive")
atexit.register(_executor.shutdown, wait=False)


def ensure_directory(path: Union[str, Path]) -> Path:
    """
    Ensure a directory exists, creating it if necessary.

    Args:
        path: Directory path to ensure exists.

    Returns:
        Path object pointing to the directory.

    Example:
        >>> ensure_directory("archive_data/2024-03")
        PosixPath('archive_data/2024-03')
    """
    dir_path = Path(path)
    dir_path.mkdir(parents=True, exist_ok=True)
    return dir_path


def get_file_extension(filepath: Union[str, Path]) -> str:
    """
    Extract the file extension from a filepath, lowercased, dot included.

    Example:
        >>> get_file_extension("scan.PDF")
        ".pdf"
    """
    return Path(filepath).suffix.lower()


def generate_timestamp(format_str: str = "%Y%m%d_%H%M%S") -> str:
    """Generate a formatted timestamp string for the current time."""
    return datetime.now().strftime(format_str)


def safe_filename(filename: str, replacement: str = "_") -> str:
    """
    Replace characters that are illegal in file names.

    Unlike a general sanitizer this keeps the length and position of every
    other character, so encoded names remain parseable.

    Args:
        filename: Original filename.
        replacement: Character to put in place of each invalid character.

    Returns:
        Filename safe for the filesystem.

    Example:
        >>> safe_filename("20240302-A/B-现金-88元.pdf")
        "20240302-A_B-现金-88元.pdf"
    """
    return re.sub(INVALID_FILENAME_CHARS, replacement, filename)


def unique_path(path: Union[str, Path]) -> Path:
    """
    Return ``path`` or, if it is taken, the first free ``stem_N.ext``.

    Example:
        >>> unique_path("2024-03/a.pdf")   # a.pdf exists
        PosixPath('2024-03/a_1.pdf')
    """
    path = Path(path)
    if not path.exists():
        return path

    counter = 1
    while True:
        candidate = path.with_name(f"{path.stem}_{counter}{path.suffix}")
        if not candidate.exists():
            return candidate
        counter += 1


def merge_dicts(base: dict, override: dict) -> dict:
    """
    Deep merge two dictionaries, with override taking precedence.

    Example:
        >>> merge_dicts({"a": 1, "b": {"c": 2}}, {"b": {"d": 3}})
        {"a": 1, "b": {"c": 2, "d": 3}}
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = merge_dicts(result[key], value)
        else:
            result[key] = value

    return result


def run_in_background(func: Callable, *args, **kwargs) -> Future:
    """
    Run a blocking call (OCR request, file move, zip creation) off the
    caller's thread.

    Exceptions raised by ``func`` are re-raised by ``Future.result()``.

    Example:
        >>> future = run_in_background(store.archive, record)
        >>> archived = future.result()
    """
    return _executor.submit(func, *args, **kwargs)
