"""
Script: tests/test_config.py
What: Tests flag parsing and target-name composition in `image_tools/config.py`.
Doing: Checks defaults, the documented examples, usage errors, and handle rules.
Why: The target name is consumed verbatim by CI, so any drift breaks image pushes.
Goal: Keep the flag surface and naming scheme stable.
"""

from __future__ import annotations

import contextlib
import io
import unittest

from image_tools.common import ImageToolError
from image_tools.config import BuildConfig, parse_args


class TargetImageTests(unittest.TestCase):
    def test_defaults(self) -> None:
        self.assertEqual(parse_args([]).target_image, "crio-build-amd64-go1.13:latest")

    def test_all_flags(self) -> None:
        config = parse_args(["-d", "-a", "arm64", "-g", "1.14", "-r", "myreg", "-t", "crio-build", "-v", "v1"])
        self.assertTrue(config.dry_run)
        self.assertEqual(config.target_image, "myreg/crio-build-arm64-go1.14:v1")

    def test_registry_with_trailing_slash_is_not_doubled(self) -> None:
        config = BuildConfig(registry="quay.io/crio/")
        self.assertEqual(config.target_image, "quay.io/crio/crio-build-amd64-go1.13:latest")

    def test_partial_flags_keep_other_defaults(self) -> None:
        config = parse_args(["-v", "pr-12"])
        self.assertEqual(config.target_image, "crio-build-amd64-go1.13:pr-12")
        self.assertFalse(config.dry_run)
        self.assertEqual(config.working_container, "")


class UsageTests(unittest.TestCase):
    def _parse(self, argv: list[str]) -> tuple[int, str]:
        stdout = io.StringIO()
        with contextlib.redirect_stdout(stdout), contextlib.redirect_stderr(io.StringIO()):
            with self.assertRaises(SystemExit) as raised:
                parse_args(argv)
        return raised.exception.code, stdout.getvalue()

    def test_unknown_flag_prints_usage_and_fails(self) -> None:
        code, output = self._parse(["-x"])
        self.assertEqual(code, 1)
        self.assertIn("usage:", output)

    def test_unsupported_arch_is_a_usage_error(self) -> None:
        code, output = self._parse(["-a", "mips"])
        self.assertEqual(code, 1)
        self.assertIn("usage:", output)

    def test_help_exits_zero(self) -> None:
        code, output = self._parse(["-h"])
        self.assertEqual(code, 0)
        self.assertIn("-a", output)
        # The re-entry flag stays out of the help text.
        self.assertNotIn("-w", output)


class WorkingContainerTests(unittest.TestCase):
    def test_handle_is_set_once(self) -> None:
        config = BuildConfig().with_working_container("golang-working-container")
        self.assertEqual(config.working_container, "golang-working-container")
        with self.assertRaises(ImageToolError):
            config.with_working_container("another-container")

    def test_empty_handle_is_rejected(self) -> None:
        with self.assertRaises(ImageToolError):
            BuildConfig().with_working_container("")

    def test_to_argv_carries_handle_and_flags(self) -> None:
        config = BuildConfig(arch="arm64", go_version="1.14", registry="myreg", tag="v1")
        config = config.with_working_container("ctr-1")
        self.assertEqual(parse_args(config.to_argv()), config)


if __name__ == "__main__":
    unittest.main()
