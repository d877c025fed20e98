"""
Script: image_tools/downloads.py
What: Fetches pinned release artifacts and unpacks them into the mounted image.
Doing: Downloads one URL with curl and extracts tar archives with member-path checks.
Why: The cri-tools, CNI plugin, and runc steps all fetch the same way.
Goal: Put upstream release binaries into the image root or fail on the first error.
"""

from __future__ import annotations

import tarfile
import tempfile
from pathlib import Path

from image_tools.common import run_cmd


def download_file(url: str, destination: Path) -> None:
    """Download `url` to `destination` with curl; any HTTP error fails the build."""
    destination.parent.mkdir(parents=True, exist_ok=True)
    run_cmd(["curl", "-sSfL", "-o", str(destination), url], capture_output=False)


def extract_tarball(archive: Path, destination: Path) -> list[str]:
    """
    Unpack `archive` (gzip or plain tar) under `destination` and return its member names.

    The "data" extraction filter rejects members that would land outside
    `destination`, so a release archive cannot write elsewhere in the image.
    """
    destination.mkdir(parents=True, exist_ok=True)
    with tarfile.open(archive, "r:*") as tar:
        names = tar.getnames()
        tar.extractall(destination, filter="data")
    return names


def fetch_and_extract(url: str, destination: Path) -> list[str]:
    # Archives go to a scratch dir outside the image so they never end up in a layer.
    with tempfile.TemporaryDirectory() as temp_dir:
        archive = Path(temp_dir) / url.rsplit("/", 1)[-1]
        download_file(url, archive)
        return extract_tarball(archive, destination)
