#!/usr/bin/env python3
"""
LoadTap - HAR capture to k6 load-test script converter

This is a convenience wrapper that calls the modular implementation.
The actual implementation is in src/loadtap/cli.py

Usage:
    python loadtap-convert.py convert session.har -O script.js
    python loadtap-convert.py validate session.har
"""

import sys
from pathlib import Path

# Add the source tree to the path
src_dir = Path(__file__).parent / "src"
sys.path.insert(0, str(src_dir))

from loadtap.cli import main

if __name__ == '__main__':
    main()
