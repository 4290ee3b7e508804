#!/usr/bin/env python3
"""
Prefetch and stage deployment assets from the command line.

Usage:
  python scripts/prefetch_assets.py [--config SRC] get NAME [NAME ...]
  python scripts/prefetch_assets.py [--config SRC] fetch NAME [NAME ...]
  python scripts/prefetch_assets.py [--config SRC] purge NAME [NAME ...]
  python scripts/prefetch_assets.py [--config SRC] ls PATH
  python scripts/prefetch_assets.py [--config SRC] extract ARCHIVE MEMBER DEST
  python scripts/prefetch_assets.py [--config SRC] catalog

Notes:
- SRC is a local JSON file or an http(s) URL. Without --config the source is
  taken from CONFIG_SOURCE, then ./config.json, then REMOTE_CONFIG_URL.
- Exit code 0 on success, 1 when an asset operation fails.
"""
from __future__ import annotations

import argparse
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List, Optional

# Ensure project root is on sys.path so 'asset_stager' is importable when running this file directly
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from asset_stager.application.interfaces import IAssetManager
from asset_stager.application.use_cases.stage_assets import StageAssetsUseCase
from asset_stager.core.config import (
    Settings,
    TransportConfig,
    load_deploy_config,
    resolve_config_source,
    settings,
)
from asset_stager.core.exceptions import AssetError
from asset_stager.infrastructure.adapters import AssetManager

logger = logging.getLogger("prefetch_assets")


def configure_logging(app_settings: Settings) -> None:
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if app_settings.log_file:
        Path(app_settings.log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                app_settings.log_file,
                maxBytes=5 * 1024 * 1024,
                backupCount=2,
                encoding="utf-8",
            )
        )
    logging.basicConfig(
        level=getattr(logging, app_settings.log_level.upper(), logging.INFO),
        format=app_settings.log_format,
        datefmt=app_settings.log_date_format,
        handlers=handlers,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Download deployment assets into the cache and stage them under the install root",
    )
    parser.add_argument("--config", help="Configuration file path or http(s) URL")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("get", help="Download (if needed) and stage assets")
    p.add_argument("names", nargs="+")
    p = sub.add_parser("fetch", help="Download assets into the cache only")
    p.add_argument("names", nargs="+")
    p = sub.add_parser("purge", help="Remove cached and staged files of assets")
    p.add_argument("names", nargs="+")
    p = sub.add_parser("ls", help="List a directory on the configured FTP server")
    p.add_argument("path")
    p = sub.add_parser("extract", help="Extract one member of a zip archive")
    p.add_argument("archive")
    p.add_argument("member")
    p.add_argument("dest")
    sub.add_parser("catalog", help="Print the asset catalog")
    return parser


def run(args: argparse.Namespace, manager: IAssetManager) -> None:
    if args.command == "get":
        for name, path in StageAssetsUseCase(manager).execute(args.names).items():
            print(f"{name}\t{path}")
    elif args.command == "fetch":
        for name in args.names:
            print(f"{name}\t{manager.download_to_cache(name)}")
    elif args.command == "purge":
        for name in args.names:
            manager.purge_asset(name)
            print(f"{name}\tpurged")
    elif args.command == "ls":
        for entry in manager.list_remote_directory(args.path):
            print(f"{entry.name}/" if entry.is_directory else entry.name)
    elif args.command == "extract":
        manager.extract_file(args.archive, args.member, args.dest)
        print(args.dest)
    elif args.command == "catalog":
        for name, desc in sorted(manager.config.asset_catalog.items()):
            print(f"{name}\t{desc.transport}\t{desc.artifact_type}\t{desc.destination}\t{desc.url}")


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(settings)

    try:
        source = resolve_config_source(args.config)
        config = load_deploy_config(source)
        manager = AssetManager(config, TransportConfig.from_config(config, settings))
        run(args, manager)
    except AssetError as e:
        logger.error("%s", e.message)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
