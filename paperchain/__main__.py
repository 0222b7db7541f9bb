"""paperchain CLI entry point: python -m paperchain"""

from __future__ import annotations

import sys

from paperchain.cli import main

if __name__ == "__main__":
    sys.exit(main())
