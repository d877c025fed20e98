"""
Script: image_tools/common.py
What: Shared helper functions used by all `image_tools` modules.
Doing: Wraps env reads, command execution, and required-tool checks.
Why: Avoids duplicated helper code.
Goal: Keep fail-fast behavior consistent across every build step.
"""

from __future__ import annotations

import json
import os
import shutil
import subprocess
from typing import Sequence


class ImageToolError(RuntimeError):
    """Raised when an image build step hits a known error condition."""


def optional_env(name: str, default: str = "") -> str:
    """Return an environment variable with a fallback default."""
    return os.environ.get(name) or default


def run_cmd(
    args: Sequence[str],
    *,
    capture_output: bool = True,
    cwd: str | None = None,
) -> str:
    """Run a command and return stdout, raising a readable error on failure."""
    try:
        result = subprocess.run(
            list(args),
            check=True,
            text=True,
            capture_output=capture_output,
            cwd=cwd,
        )
    except FileNotFoundError as exc:
        raise ImageToolError(f"Command not found: {args[0]}") from exc
    except subprocess.CalledProcessError as exc:
        stderr = (exc.stderr or "").strip()
        stdout = (exc.stdout or "").strip()
        details = stderr or stdout or str(exc)
        raise ImageToolError(f"Command failed: {' '.join(args)}\n{details}") from exc

    if not capture_output:
        return ""
    return result.stdout


def run_json_cmd(args: Sequence[str]) -> dict:
    """Run a command that returns JSON and parse it."""
    output = run_cmd(args)
    try:
        return json.loads(output)
    except json.JSONDecodeError as exc:
        raise ImageToolError(f"Expected JSON from command: {' '.join(args)}") from exc


def require_tools(names: Sequence[str]) -> None:
    """
    Fail on the first tool that is not on PATH.

    Order matters: callers list the image-build tool first so its absence is
    reported before anything else is attempted.
    """
    for name in names:
        if shutil.which(name) is None:
            raise ImageToolError(f"{name} not installed")
