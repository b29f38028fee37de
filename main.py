#!/usr/bin/env python3
"""
main.py: quick-start entry point.

Drop images into ``images/`` and run:

    python main.py batch

Or pick a command:

    python -m shape_mosaic.cli single my_photo.jpg --shape diamond
    python -m shape_mosaic.cli camera --fps 12
"""

from shape_mosaic.cli import app

if __name__ == "__main__":
    app()
