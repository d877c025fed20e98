"""
Script: image_tools/finalize.py
What: Turns the populated working container into the target image.
Doing: Unmounts the container, sets its architecture, commits a squashed image, and prints its summary.
Why: A single squashed layer keeps the test image small and free of intermediate state.
Goal: Produce one local image named after the resolved target name.
"""

from __future__ import annotations

from image_tools.common import run_cmd


def finalize_image(handle: str, arch: str, target_image: str) -> str:
    """Commit `handle` as `target_image` and return the `buildah images` summary."""
    run_cmd(["buildah", "umount", handle], capture_output=False)
    run_cmd(["buildah", "config", "--arch", arch, handle], capture_output=False)
    run_cmd(["buildah", "commit", "--squash", handle, target_image], capture_output=False)

    summary = run_cmd(["buildah", "images", target_image]).rstrip()
    print(summary)
    return summary
