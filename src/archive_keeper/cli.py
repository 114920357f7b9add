"""CLI command for converging archives described in a manifest."""

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, Optional, Sequence

import toml
from pydantic import ValidationError

from .common import ArchiveKeeperError, ConfigLoader, ConfigurationError, setup_logging
from .config import KeeperConfig
from .extractor import Extractor
from .fetcher import Fetcher
from .reconciler import Action, Ensure, Reconciler
from .resource import ArchiveResource
from .tool_checker import report_missing_tools

# Application name derived from package name
_package = __package__ or "archive_keeper"
APP_NAME = _package.replace('_', '-').replace('.', '-')


def load_manifest(manifest_path: Path) -> Dict[str, ArchiveResource]:
    """Read ``[archive.<name>]`` tables from a TOML manifest.

    Raises:
        ConfigurationError: If the file is unreadable or an entry is invalid
    """
    try:
        data = toml.load(manifest_path)
    except (OSError, toml.TomlDecodeError) as e:
        raise ConfigurationError(f"Unable to read manifest {manifest_path}: {e}", manifest=str(manifest_path)) from e

    resources = {}
    for name, fields in data.get("archive", {}).items():
        try:
            resources[name] = ArchiveResource(**fields)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid archive '{name}': {e}", archive=name) from e

    return resources


def converge_command(
    config: KeeperConfig,
    manifest_path: Path,
    ensure: Ensure = Ensure.PRESENT,
    only: Optional[str] = None,
    noop: bool = False,
) -> int:
    """Converge every archive in the manifest.

    Args:
        config: Configuration object
        manifest_path: TOML manifest with archive definitions
        ensure: Requested presence for all archives
        only: Converge only the archive with this name
        noop: Report planned actions without changing anything

    Returns:
        Exit code (0 for success)
    """
    logger = logging.getLogger(__package__ or __name__)

    try:
        resources = load_manifest(manifest_path)
    except ConfigurationError as e:
        logger.error(str(e))
        return 1

    if only is not None:
        if only not in resources:
            logger.error(f"Archive '{only}' not found in {manifest_path}")
            return 1
        resources = {only: resources[only]}

    if not resources:
        logger.warning(f"No archives defined in {manifest_path}")
        return 0

    report_missing_tools(resources.values(), config.transfer)

    fetcher = Fetcher(config=config.transfer)
    extractor = Extractor()
    failed = []

    for name, resource in resources.items():
        reconciler = Reconciler(resource, fetcher=fetcher, extractor=extractor)
        try:
            result = reconciler.converge(ensure, noop=noop)
        except (ArchiveKeeperError, OSError) as e:
            context = getattr(e, "context", {})
            logger.error(f"Failed to converge {name}: {e}", extra={"extra_fields": {"archive": name, **context}})
            failed.append(name)
            continue

        if noop and result.action is not Action.NONE:
            logger.info(f"Would {result.action.value} {name} ({result.state.value})")
        elif result.changed:
            logger.info(f"Converged {name}: {result.action.value}")
        else:
            logger.info(f"{name} already in sync ({result.state.value})")

    logger.info(f"Convergence complete: {len(resources) - len(failed)} successful, {len(failed)} failed")

    return 1 if failed else 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Download, verify and extract archives described in a manifest"
    )
    parser.add_argument(
        "manifest",
        type=Path,
        help="TOML manifest with [archive.<name>] tables"
    )
    parser.add_argument(
        "--ensure",
        choices=[e.value for e in Ensure],
        default=Ensure.PRESENT.value,
        help="Whether the archives should be present or absent"
    )
    parser.add_argument(
        "--only",
        help="Converge a single archive by name"
    )
    parser.add_argument(
        "--noop",
        action="store_true",
        help="Report what would change without changing anything"
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to config file (defaults.toml)"
    )

    args = parser.parse_args(argv)

    loader = ConfigLoader(
        app_name=APP_NAME,
        config_class=KeeperConfig
    )

    try:
        config = loader.load(defaults_path=args.config)
    except (ValidationError, toml.TomlDecodeError) as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2

    setup_logging(
        level=config.logging.level,
        format=config.logging.format,
        log_file=Path(config.logging.file) if config.logging.file else None,
    )

    return converge_command(
        config=config,
        manifest_path=args.manifest,
        ensure=Ensure(args.ensure),
        only=args.only,
        noop=args.noop,
    )


if __name__ == "__main__":
    sys.exit(main())
