"""Project archive access."""

from .reader import ArchiveEntry, ArchiveError, ArchiveReader

__all__ = ["ArchiveEntry", "ArchiveError", "ArchiveReader"]
