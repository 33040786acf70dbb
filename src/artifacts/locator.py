"""
Module artifact discovery.

CI extracts the AppImage ahead of time (`squashfs-root/AppRun`); local
development builds leave a single `*.AppImage` next to it. The extracted
layout wins when both exist.
"""

from __future__ import annotations

import glob
import logging
import os
from pathlib import Path
from typing import Optional, Union

from runtime.errors import AmbiguousArtifact, ArtifactNotFound

DEFAULT_EXTRACTED_SUBPATH = os.path.join("squashfs-root", "AppRun")
DEFAULT_ARCHIVE_GLOB = "*.AppImage"


def locate_module(
    base_dir: Union[str, Path],
    extracted_subpath: str = DEFAULT_EXTRACTED_SUBPATH,
    archive_glob: str = DEFAULT_ARCHIVE_GLOB,
    strict: bool = False,
    logger: Optional[logging.Logger] = None,
) -> Path:
    """
    Return the absolute path of the module executable under base_dir.

    Args:
        base_dir: Directory holding the build output.
        extracted_subpath: Relative path of the pre-extracted entry point.
        archive_glob: Pattern for single-file archives in base_dir.
        strict: Raise AmbiguousArtifact instead of picking the first of
            several matching archives.

    Raises:
        ArtifactNotFound: Neither layout is present.
        AmbiguousArtifact: Several archives match and strict is set.
    """
    log = logger or logging.getLogger(__name__)
    base = Path(base_dir).resolve()

    extracted = base / extracted_subpath
    if extracted.exists():
        log.info(f"Using extracted module: {extracted}")
        return extracted

    matches = sorted(glob.glob(str(base / archive_glob)))
    matches = [m for m in matches if os.path.isfile(m)]
    if not matches:
        raise ArtifactNotFound(
            f"Failed to find {archive_glob} or extracted {extracted_subpath} in {base}"
        )

    if len(matches) > 1:
        if strict:
            raise AmbiguousArtifact(
                f"{len(matches)} archives match {archive_glob} in {base}: "
                + ", ".join(os.path.basename(m) for m in matches)
            )
        log.warning(
            f"{len(matches)} archives match {archive_glob} in {base}; using {os.path.basename(matches[0])}"
        )

    path = Path(matches[0])
    log.info(f"Using module archive: {path}")
    return path
