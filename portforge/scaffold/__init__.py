"""Portfolio project generation: template materialization and archiving."""

from .archiver import ArchiveReport, folder_size, zip_folder
from .materializer import TemplateMaterializer, write_vercel_config

__all__ = [
    "ArchiveReport",
    "TemplateMaterializer",
    "folder_size",
    "write_vercel_config",
    "zip_folder",
]
