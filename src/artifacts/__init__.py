"""
Artifact discovery.

Canonical import: `from artifacts.locator import locate_module`.
"""

from .locator import locate_module, DEFAULT_ARCHIVE_GLOB, DEFAULT_EXTRACTED_SUBPATH

__all__ = ["locate_module", "DEFAULT_ARCHIVE_GLOB", "DEFAULT_EXTRACTED_SUBPATH"]
