"""
Script: image_tools/config.py
What: Parses command-line flags into one immutable build configuration.
Doing: Applies flag defaults, validates the architecture, and composes the target image name.
Why: Every later step reads the same record instead of re-reading flags.
Goal: Make the target image name deterministic for a given set of flags.
"""

from __future__ import annotations

import argparse
import dataclasses
import sys
from collections.abc import Sequence

from image_tools.common import ImageToolError


DEFAULT_ARCH = "amd64"
DEFAULT_GO_VERSION = "1.13"
DEFAULT_IMAGE_NAME = "crio-build"
DEFAULT_TAG = "latest"

# Architectures the golang base image is published for.
SUPPORTED_ARCHES = ("amd64", "arm64", "arm", "ppc64le", "s390x")


@dataclasses.dataclass(frozen=True)
class BuildConfig:
    """
    Settings for one build invocation.

    `working_container` is empty until the outer invocation has created the
    buildah container; it is set once and then handed to the re-entered
    invocation through `-w`.
    """

    arch: str = DEFAULT_ARCH
    go_version: str = DEFAULT_GO_VERSION
    registry: str = ""
    image_name: str = DEFAULT_IMAGE_NAME
    tag: str = DEFAULT_TAG
    dry_run: bool = False
    working_container: str = ""

    @property
    def target_image(self) -> str:
        """Return `{registry/}{name}-{arch}-go{version}:{tag}`."""
        prefix = f"{self.registry.rstrip('/')}/" if self.registry else ""
        return f"{prefix}{self.image_name}-{self.arch}-go{self.go_version}:{self.tag}"

    def with_working_container(self, handle: str) -> BuildConfig:
        if self.working_container:
            raise ImageToolError(
                f"Working container already set to {self.working_container}; refusing to replace it"
            )
        if not handle:
            raise ImageToolError("Working container handle must not be empty")
        return dataclasses.replace(self, working_container=handle)

    def to_argv(self) -> list[str]:
        """Render the record back into flags, used when re-entering under unshare."""
        argv = ["-a", self.arch, "-g", self.go_version, "-t", self.image_name, "-v", self.tag]
        if self.registry:
            argv.extend(["-r", self.registry])
        if self.dry_run:
            argv.append("-d")
        if self.working_container:
            argv.extend(["-w", self.working_container])
        return argv


class _UsageParser(argparse.ArgumentParser):
    """Argument parser that reports usage errors on stdout with exit status 1."""

    def error(self, message: str) -> None:  # type: ignore[override]
        self.print_usage(sys.stdout)
        print(f"{self.prog}: error: {message}")
        raise SystemExit(1)


def build_parser() -> argparse.ArgumentParser:
    parser = _UsageParser(
        prog="python3 -m image_tools.cli",
        description="Build the CRI-O build/test container image with buildah.",
        add_help=False,
    )
    parser.add_argument(
        "-a",
        dest="arch",
        default=DEFAULT_ARCH,
        choices=SUPPORTED_ARCHES,
        help=f"target architecture (default: {DEFAULT_ARCH})",
    )
    parser.add_argument(
        "-d",
        dest="dry_run",
        action="store_true",
        help="print the target image name and exit",
    )
    parser.add_argument(
        "-g",
        dest="go_version",
        default=DEFAULT_GO_VERSION,
        help=f"golang base image version (default: {DEFAULT_GO_VERSION})",
    )
    parser.add_argument("-r", dest="registry", default="", help="registry prefix (default: none)")
    parser.add_argument(
        "-t",
        dest="image_name",
        default=DEFAULT_IMAGE_NAME,
        help=f"image name (default: {DEFAULT_IMAGE_NAME})",
    )
    parser.add_argument("-v", dest="tag", default=DEFAULT_TAG, help=f"image tag (default: {DEFAULT_TAG})")
    # Only set by the re-entered invocation under `buildah unshare`.
    parser.add_argument("-w", dest="working_container", default="", help=argparse.SUPPRESS)
    parser.add_argument("-h", action="help", help="show this help message and exit")
    return parser


def parse_args(argv: Sequence[str] | None = None) -> BuildConfig:
    args = build_parser().parse_args(argv)
    return BuildConfig(
        arch=args.arch,
        go_version=args.go_version,
        registry=args.registry,
        image_name=args.image_name,
        tag=args.tag,
        dry_run=args.dry_run,
        working_container=args.working_container,
    )
