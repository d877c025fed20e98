"""
Script: image_tools/build_image.py
What: Runs one image build from parsed flags to committed image.
Doing: Handles dry run, checks tools, pins the base image, re-enters under unshare, then installs and commits.
Why: Keeps the ordering of the build in one place, separate from each step's details.
Goal: Either commit the full image or stop at the first failure without committing anything.
"""

from __future__ import annotations

from image_tools.base_image import BASE_IMAGE, pinned_reference, resolve_base_image_digest
from image_tools.common import require_tools
from image_tools.config import BuildConfig
from image_tools.container import create_working_container, mount_working_container, reenter_unshared
from image_tools.finalize import finalize_image
from image_tools.installers import InstallContext, resolve_repo_root, run_install_steps


# buildah must stay first: its absence is reported before anything else runs.
REQUIRED_TOOLS = ("buildah", "skopeo", "curl", "git")


def start_build(config: BuildConfig) -> None:
    """Outer invocation: pin the base image, create the working container, and hand off."""
    digest = resolve_base_image_digest(config.arch, config.go_version)
    handle = create_working_container(pinned_reference(BASE_IMAGE, digest))
    reenter_unshared(config.with_working_container(handle))


def finish_build(config: BuildConfig) -> None:
    """Inner invocation (under `buildah unshare`): install everything and commit."""
    mount = mount_working_container(config.working_container)
    ctx = InstallContext(
        container=config.working_container,
        mount=mount,
        arch=config.arch,
        repo_root=resolve_repo_root(),
    )
    run_install_steps(ctx)
    finalize_image(config.working_container, config.arch, config.target_image)


def run(config: BuildConfig) -> None:
    if config.dry_run:
        # Callers capture this value verbatim, so no trailing newline.
        print(config.target_image, end="")
        return

    require_tools(REQUIRED_TOOLS)

    if config.working_container:
        finish_build(config)
    else:
        start_build(config)
