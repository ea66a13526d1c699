"""
Entry point for module execution (``python -m anyhint``).

This module delegates execution to the CLI handler in ``anyhint.cli.__main__``.
"""

import sys
from anyhint.cli.__main__ import main

if __name__ == "__main__":
  sys.exit(main())
