"""
Entry point for module execution (``python -m stubsynth``).

This module delegates execution to the CLI handler in ``stubsynth.cli.__main__``.
"""

import sys
from stubsynth.cli.__main__ import main

if __name__ == "__main__":
  sys.exit(main())
