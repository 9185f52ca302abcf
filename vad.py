# /// script
# requires-python = ">=3.12"
# dependencies = [
#     "voxgate",
# ]
#
# [tool.uv.sources]
# voxgate = { path = "." }
# ///
"""Standalone voice activity detection for files and microphones."""

from voxgate.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
