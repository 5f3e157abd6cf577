#!/usr/bin/env python3
"""
main.py — Quick-start entry point.

Drop tile images into ``tiles/`` and run:

    python main.py render my_photo.jpg -o output/mosaic.png

Or use the full CLI:

    python -m tile_mosaic.cli batch --help
    python -m tile_mosaic.cli palette --tiles tiles --cache palette.npz
"""

from tile_mosaic.cli import app

if __name__ == "__main__":
    app()
