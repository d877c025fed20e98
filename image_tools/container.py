"""
Script: image_tools/container.py
What: Thin wrappers around buildah working-container commands.
Doing: Creates, mounts, and runs commands in a working container, and re-enters this CLI under `buildah unshare`.
Why: Mounting a container filesystem needs a user namespace the outer process does not have.
Goal: Give the install steps a mounted root filesystem plus a handle they can run commands in.
"""

from __future__ import annotations

import sys
from collections.abc import Sequence
from pathlib import Path

from image_tools.common import ImageToolError, run_cmd
from image_tools.config import BuildConfig


def create_working_container(image: str) -> str:
    """Create a working container from `image` and return its buildah handle."""
    handle = run_cmd(["buildah", "from", "--pull", image]).strip()
    if not handle:
        raise ImageToolError(f"buildah from {image} did not return a container name")
    print(f"Created working container {handle} from {image}")
    return handle


def mount_working_container(handle: str) -> Path:
    mount_point = run_cmd(["buildah", "mount", handle]).strip()
    if not mount_point:
        raise ImageToolError(f"buildah mount {handle} did not return a mount point")
    print(f"Mounted {handle} at {mount_point}")
    return Path(mount_point)


def buildah_run(handle: str, args: Sequence[str]) -> None:
    """Run one command inside the working container, streaming its output."""
    run_cmd(["buildah", "run", handle, "--", *args], capture_output=False)


def reentry_command(config: BuildConfig) -> list[str]:
    if not config.working_container:
        raise ImageToolError("Cannot re-enter without a working container handle")
    return [
        "buildah",
        "unshare",
        sys.executable,
        "-m",
        "image_tools.cli",
        *config.to_argv(),
    ]


def reenter_unshared(config: BuildConfig) -> None:
    """
    Run the rest of the build inside `buildah unshare`.

    The inner invocation receives the same flags plus `-w <handle>`, does all
    the work, and this (outer) invocation has nothing left to do afterwards.
    """
    run_cmd(reentry_command(config), capture_output=False)
