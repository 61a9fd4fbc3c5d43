"""Zip a materialized project for download."""
import fnmatch
import os
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Sequence

from portforge.core.logger import get_logger

logger = get_logger(__name__)

# Directory names skipped wherever they appear
EXCLUDED_DIRS = ("node_modules", "dist", "build", ".git")
# File name patterns skipped wherever they appear
EXCLUDED_FILES = ("*.log", ".env", ".DS_Store")

COMPRESSION_LEVEL = 9


@dataclass(frozen=True)
class ArchiveReport:
    path: Path
    source_bytes: int
    archive_bytes: int
    file_count: int


def _mb(size: int) -> str:
    return f"{size / (1024 * 1024):.2f} MB"


def folder_size(path: Path) -> int:
    """Total size in bytes of all files below path."""
    total = 0
    for dirpath, _dirnames, filenames in os.walk(path):
        for filename in filenames:
            file_path = os.path.join(dirpath, filename)
            if not os.path.islink(file_path):
                total += os.path.getsize(file_path)
    return total


def is_excluded(relative: Path,
                excluded_dirs: Sequence[str] = EXCLUDED_DIRS,
                excluded_files: Sequence[str] = EXCLUDED_FILES) -> bool:
    """Whether a path relative to the archive root is left out."""
    if any(part in excluded_dirs for part in relative.parts[:-1]):
        return True
    return any(fnmatch.fnmatch(relative.name, pattern) for pattern in excluded_files)


def iter_archive_files(source: Path) -> Iterator[Path]:
    """Yield files under source that belong in the archive, sorted."""
    source = Path(source)
    for dirpath, dirnames, filenames in os.walk(source):
        # Prune excluded directories in place so os.walk never enters them
        dirnames[:] = sorted(d for d in dirnames if d not in EXCLUDED_DIRS)
        for filename in sorted(filenames):
            file_path = Path(dirpath) / filename
            if not is_excluded(file_path.relative_to(source)):
                yield file_path


def zip_folder(source: Path, destination: Path) -> ArchiveReport:
    """Compress source into a zip archive at destination.

    Build output, dependencies, VCS metadata, logs, local env files and OS
    metadata are excluded.

    Raises:
        NotADirectoryError: source is not a readable directory
        OSError: destination cannot be written
    """
    source = Path(source)
    destination = Path(destination)
    if not source.is_dir():
        raise NotADirectoryError(f"Cannot archive {source}: not a directory")

    logger.info(f"Zipping folder: {source}")
    source_bytes = folder_size(source)
    logger.info(f"Original folder size: {_mb(source_bytes)}")

    file_count = 0
    with zipfile.ZipFile(
        destination,
        "w",
        compression=zipfile.ZIP_DEFLATED,
        compresslevel=COMPRESSION_LEVEL,
    ) as archive:
        for file_path in iter_archive_files(source):
            archive.write(file_path, file_path.relative_to(source).as_posix())
            file_count += 1

    archive_bytes = destination.stat().st_size
    logger.info(f"Zipped file size: {_mb(archive_bytes)}")
    logger.info(f"Folder zipped successfully to {destination}")

    return ArchiveReport(
        path=destination,
        source_bytes=source_bytes,
        archive_bytes=archive_bytes,
        file_count=file_count,
    )
