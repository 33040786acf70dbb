"""
Launchers that make the simulated module look like a built artifact.

The host runtime executes modules by path with no arguments, so the flags
are baked into a small shell script.
"""

from __future__ import annotations

import os
import shlex
import stat
import sys
from pathlib import Path
from typing import Sequence, Union

# Directory that contains the simcam package (src/ in a checkout)
PACKAGE_ROOT = Path(__file__).resolve().parents[1]


def write_launcher(
    directory: Union[str, Path],
    filename: str = "AppRun",
    args: Sequence[str] = (),
    python: str = sys.executable,
) -> Path:
    """
    Write an executable script that runs `python -m simcam <args>`.

    Returns:
        Path of the new launcher.
    """
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / filename

    pythonpath = str(PACKAGE_ROOT)
    command = " ".join(shlex.quote(a) for a in [python, "-m", "simcam", *args])
    path.write_text(
        "#!/bin/sh\n"
        f"PYTHONPATH={shlex.quote(pythonpath)}${{PYTHONPATH:+:$PYTHONPATH}}\n"
        "export PYTHONPATH\n"
        f'exec {command} "$@"\n'
    )
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


def write_extracted_layout(base_dir: Union[str, Path], args: Sequence[str] = ()) -> Path:
    """Lay the launcher out the way an extracted AppImage looks (squashfs-root/AppRun)."""
    return write_launcher(Path(base_dir) / "squashfs-root", "AppRun", args)


def write_archive(base_dir: Union[str, Path], name: str = "simcam.AppImage", args: Sequence[str] = ()) -> Path:
    """Lay the launcher out as a single-file archive."""
    return write_launcher(base_dir, name, args)


def is_executable(path: Union[str, Path]) -> bool:
    return os.path.isfile(path) and os.access(path, os.X_OK)
