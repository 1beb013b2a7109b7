"""
Package Listing Command Handler.
"""

from rich.table import Table

from stubsynth.config import RuntimeConfig
from stubsynth.packages.registry import PackageRegistry, normalize_name
from stubsynth.utils.console import console, log_warning


def handle_packages() -> int:
  """
  Handles the 'packages' command.

  Prints every installed distribution stubs would be generated for, with the
  stub file it maps to. Configured exclusions are marked.

  Returns:
      int: Exit code.
  """
  config = RuntimeConfig.load()
  app_dir = str(config.app_dir) if config.app_dir else None
  packages = PackageRegistry(config.ignored_packages, app_dir=app_dir).dependencies()

  if not packages:
    log_warning("No eligible packages installed.")
    return 0

  excluded_names = {normalize_name(n) for n in config.exclude}
  table = Table(title="Eligible Packages")
  table.add_column("Package", style="bold magenta")
  table.add_column("Version")
  table.add_column("Stub File", style="bold blue")
  table.add_column("Excluded")

  for package in packages:
    excluded = "yes" if normalize_name(package.name) in excluded_names else ""
    table.add_row(package.name, package.version, package.stub_file_name, excluded)

  console.print(table)
  return 0
