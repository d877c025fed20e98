from __future__ import annotations

import sys
from collections.abc import Sequence

from image_tools.build_image import run
from image_tools.common import ImageToolError
from image_tools.config import parse_args


def main(argv: Sequence[str] | None = None) -> None:
    # Usage errors and `-h` exit inside parse_args with their own status.
    config = parse_args(argv)

    try:
        run(config)
    except ImageToolError as exc:
        # Keep failures short and readable in CI logs.
        print(str(exc), file=sys.stderr)
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
