from __future__ import annotations

import contextlib
import io
import sys
import unittest
from pathlib import Path
from unittest import mock

from image_tools.common import ImageToolError
from image_tools.config import BuildConfig
from image_tools.container import (
    buildah_run,
    create_working_container,
    mount_working_container,
    reenter_unshared,
    reentry_command,
)


class WorkingContainerTests(unittest.TestCase):
    def test_create_returns_handle(self) -> None:
        with (
            mock.patch("image_tools.container.run_cmd", return_value="golang-working-container\n") as run_cmd,
            contextlib.redirect_stdout(io.StringIO()),
        ):
            handle = create_working_container("docker.io/library/golang@sha256:abc")

        self.assertEqual(handle, "golang-working-container")
        run_cmd.assert_called_once_with(["buildah", "from", "--pull", "docker.io/library/golang@sha256:abc"])

    def test_create_without_handle_fails(self) -> None:
        with mock.patch("image_tools.container.run_cmd", return_value="\n"):
            with self.assertRaises(ImageToolError):
                create_working_container("golang@sha256:abc")

    def test_mount_returns_path(self) -> None:
        with (
            mock.patch("image_tools.container.run_cmd", return_value="/var/lib/containers/storage/overlay/x/merged\n"),
            contextlib.redirect_stdout(io.StringIO()),
        ):
            mount = mount_working_container("ctr-1")

        self.assertEqual(mount, Path("/var/lib/containers/storage/overlay/x/merged"))

    def test_buildah_run_separates_command(self) -> None:
        with mock.patch("image_tools.container.run_cmd") as run_cmd:
            buildah_run("ctr-1", ["runc", "--version"])

        run_cmd.assert_called_once_with(["buildah", "run", "ctr-1", "--", "runc", "--version"], capture_output=False)


class ReentryTests(unittest.TestCase):
    def test_command_passes_flags_and_handle(self) -> None:
        config = BuildConfig(arch="arm64", registry="myreg").with_working_container("ctr-1")
        command = reentry_command(config)

        self.assertEqual(command[:5], ["buildah", "unshare", sys.executable, "-m", "image_tools.cli"])
        self.assertEqual(command[5:], config.to_argv())
        self.assertEqual(command[-2:], ["-w", "ctr-1"])

    def test_requires_handle(self) -> None:
        with self.assertRaises(ImageToolError):
            reentry_command(BuildConfig())

    def test_inner_failure_propagates(self) -> None:
        config = BuildConfig().with_working_container("ctr-1")
        with mock.patch("image_tools.container.run_cmd", side_effect=ImageToolError("Command failed")):
            with self.assertRaises(ImageToolError):
                reenter_unshared(config)


if __name__ == "__main__":
    unittest.main()
