"""
Main Entry Point for the stubsynth CLI.

This module handles argument parsing and dispatches to the command handlers
defined in `stubsynth.cli.handlers`.
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from stubsynth import __version__
from stubsynth.cli import handlers


def main(argv: Optional[List[str]] = None) -> int:
  """
  Main CLI entry point.

  Args:
      argv: Optional list of command line arguments (defaults to sys.argv).

  Returns:
      int: Exit code (0 for success, non-zero for failure).
  """
  parser = argparse.ArgumentParser(description="stubsynth: declaration stubs from runtime reflection")
  parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

  subparsers = parser.add_subparsers(dest="command", required=True)

  # --- Command: GENERATE ---
  cmd_gen = subparsers.add_parser("generate", help="Generate stubs for installed packages")
  cmd_gen.add_argument("packages", nargs="*", help="Distribution names (e.g. attrs)")
  cmd_gen.add_argument("--all", action="store_true", dest="all_packages", help="Generate for every eligible package")
  cmd_gen.add_argument("--out-dir", type=Path, default=None, help="Output directory (default: from toml)")
  cmd_gen.add_argument("--verbose", action="store_true", default=None, help="Trace skipped symbols")

  # --- Command: GHOST (Snapshot Universe) ---
  cmd_ghost = subparsers.add_parser("ghost", help="Generate stubs from a universe snapshot")
  cmd_ghost.add_argument("snapshot", type=Path, help="Snapshot JSON document")
  cmd_ghost.add_argument("--out-dir", type=Path, default=None, help="Output directory (default: from toml)")
  cmd_ghost.add_argument("--stdout", action="store_true", dest="to_stdout", help="Print instead of writing a file")
  cmd_ghost.add_argument("--verbose", action="store_true", default=None, help="Trace skipped symbols")

  # --- Command: PACKAGES ---
  subparsers.add_parser("packages", help="List packages eligible for generation")

  args = parser.parse_args(argv)

  if args.command == "generate":
    return handlers.handle_generate(args.packages, args.all_packages, args.out_dir, args.verbose)

  elif args.command == "ghost":
    return handlers.handle_ghost(args.snapshot, args.out_dir, args.to_stdout, args.verbose)

  elif args.command == "packages":
    return handlers.handle_packages()

  return 1


if __name__ == "__main__":
  sys.exit(main())
