#!/usr/bin/env python3
"""Chord Grid - chord sheet editor served as a JSON API.

Usage:
    python main.py [--port 5000] [--host 127.0.0.1] [--debug]   # from project root
    python -m chordgrid.main [--settings FILE] [--data-dir DIR]
"""
import sys
from pathlib import Path

# Ensure the project root (this file's directory) is on sys.path so that
# `import chordgrid` works regardless of how the script is invoked.
_root = str(Path(__file__).resolve().parent)
if _root not in sys.path:
    sys.path.insert(0, _root)

from chordgrid.main import main


if __name__ == '__main__':
    main()
