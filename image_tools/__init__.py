"""
Script: image_tools package
What: Holds the Python helpers that assemble the CRI-O build/test image.
Doing: Groups the CLI entrypoint, the install steps, and shared utility code in one importable package.
Why: Keeps image assembly readable and testable instead of one long shell script.
Goal: Provide a clear, maintainable home for test-image build logic.
"""
