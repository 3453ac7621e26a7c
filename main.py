#!/usr/bin/env python3
"""
Main entry point for the NASA curated image cache.

:copyright: (c) 2025 by Meir Miyara.
:license: MPL-2.0, see LICENSE for more details.
"""

import sys
from pathlib import Path

# Add the package to the Python path
sys.path.insert(0, str(Path(__file__).parent))

if __name__ == "__main__":
    from nasa_curated.driver import main

    sys.exit(main())
