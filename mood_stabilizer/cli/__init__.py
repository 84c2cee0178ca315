"""
CLI subpackage for command-line interface tools.

Available CLI scripts:
- run: Open the camera and show the mood-driven chat overlay

Usage:
    python -m mood_stabilizer.cli.run --help
"""

__all__ = ["run"]
